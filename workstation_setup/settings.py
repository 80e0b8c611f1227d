from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError
from .lib.retry import RetryPolicy

DEFAULT_CONFIG_PATH = "/etc/workstation-setup/config.yaml"


@dataclass(frozen=True)
class Settings:
    raw: Dict[str, Any] = field(default_factory=dict)

    def _section(self, key: str) -> Dict[str, Any]:
        value = self.raw.get(key) or {}
        if not isinstance(value, dict):
            raise ConfigError(f"config: {key} must be a mapping")
        return value

    @property
    def retry_policy(self) -> RetryPolicy:
        r = self._section("retry")
        try:
            return RetryPolicy(
                max_attempts=int(r.get("max_attempts", 3)),
                delay=float(r.get("delay_seconds", 5)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"config: invalid retry settings: {e}") from e

    @property
    def work_dir_parent(self) -> Optional[str]:
        parent = self._section("work_dir").get("parent")
        return str(parent) if parent else None

    @property
    def work_dir_prefix(self) -> str:
        return str(self._section("work_dir").get("prefix") or "setup_temp.")

    @property
    def desktop(self) -> Optional[str]:
        d = self.raw.get("desktop")
        return str(d) if d else None

    @property
    def manifest_path(self) -> Optional[str]:
        m = self.raw.get("manifest")
        return str(m) if m else None

    def _step_list(self, key: str) -> List[str]:
        value = self._section("steps").get(key) or []
        if not isinstance(value, list):
            raise ConfigError(f"config: steps.{key} must be a list")
        return [str(v) for v in value]

    @property
    def enabled_steps(self) -> List[str]:
        return self._step_list("enable")

    @property
    def disabled_steps(self) -> List[str]:
        return self._step_list("disable")

    @property
    def apt_suite(self) -> str:
        return str(self._section("apt").get("suite") or "trixie")

    @property
    def reboot(self) -> bool:
        return bool(self.raw.get("reboot", False))


def load_settings(path: Optional[str], *, required: bool = False) -> Settings:
    """Read the YAML configuration.

    A missing file yields defaults unless ``required`` is set (the path was
    given explicitly on the command line).
    """

    if not path:
        return Settings()

    p = Path(path)
    if not p.exists():
        if required:
            raise ConfigError(f"config file not found: {path}")
        return Settings()

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ConfigError("config must be YAML")

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"config {path} is not valid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError("config must contain a mapping/object")

    settings = Settings(raw=raw)
    # Surface type errors now rather than halfway through the run.
    settings.retry_policy
    settings.enabled_steps
    settings.disabled_steps
    return settings
