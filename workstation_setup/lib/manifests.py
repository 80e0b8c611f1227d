from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..errors import ConfigError


def _package_root() -> Path:
    # workstation_setup/lib/manifests.py -> workstation_setup
    return Path(__file__).resolve().parents[1]


DEFAULT_MANIFEST = _package_root() / "manifests" / "workstation.yaml"


def load_manifest(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the package/URL manifest (the packaged default unless a path is given)."""

    p = Path(path) if path else DEFAULT_MANIFEST
    if not p.is_file():
        raise ConfigError(f"manifest not found: {p}")
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"manifest {p} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Manifest must be a mapping/dict: {p}")
    return data


def section(manifest: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = manifest.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"manifest: {key} must be a mapping")
    return value


def string_list(manifest: Dict[str, Any], key: str) -> List[str]:
    value = manifest.get(key) or []
    if not isinstance(value, list):
        raise ConfigError(f"manifest: {key} must be a list")
    return [str(v).strip() for v in value if str(v).strip()]
