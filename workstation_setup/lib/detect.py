from __future__ import annotations

import enum
import logging
import os
import shlex
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple

from ..errors import UnsupportedEnvironment

logger = logging.getLogger(__name__)

OS_RELEASE_PATHS = ("/etc/os-release", "/usr/lib/os-release")

SESSION_KEYS = ("XDG_CURRENT_DESKTOP", "XDG_SESSION_DESKTOP", "DESKTOP_SESSION")


class Variant(enum.Enum):
    GNOME = "gnome"
    KDE = "kde"


# Ordered: first match wins. XDG_CURRENT_DESKTOP is authoritative; the other
# session keys only matter when it is unset.
SIGNATURES: Tuple[Tuple[Variant, str, str], ...] = (
    (Variant.GNOME, "XDG_CURRENT_DESKTOP", "gnome"),
    (Variant.KDE, "XDG_CURRENT_DESKTOP", "kde"),
    (Variant.GNOME, "XDG_SESSION_DESKTOP", "gnome"),
    (Variant.KDE, "XDG_SESSION_DESKTOP", "kde"),
    (Variant.KDE, "XDG_SESSION_DESKTOP", "plasma"),
    (Variant.GNOME, "DESKTOP_SESSION", "gnome"),
    (Variant.KDE, "DESKTOP_SESSION", "plasma"),
    (Variant.KDE, "DESKTOP_SESSION", "kde"),
)


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse os-release(5) content into a dict."""

    out: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("\"'")]
        out[key.strip()] = parts[0] if parts else ""
    return out


def read_os_release(paths: Sequence[str] = OS_RELEASE_PATHS) -> Dict[str, str]:
    for p in paths:
        path = Path(p)
        if path.is_file():
            return parse_os_release(path.read_text(encoding="utf-8", errors="ignore"))
    return {}


def read_host_identity(
    *,
    environ: Optional[Mapping[str, str]] = None,
    desktop_override: Optional[str] = None,
    os_release_paths: Sequence[str] = OS_RELEASE_PATHS,
) -> Dict[str, str]:
    """Collect os-release fields and desktop session variables into one mapping."""

    env = os.environ if environ is None else environ
    identity = read_os_release(os_release_paths)
    for key in SESSION_KEYS:
        value = env.get(key)
        if value:
            identity[key] = value
    if desktop_override:
        identity["XDG_CURRENT_DESKTOP"] = desktop_override
    return identity


def _tokens(value: str) -> list[str]:
    return [t.strip().lower() for t in value.split(":") if t.strip()]


def _matches(value: str, token: str) -> bool:
    return any(token in t for t in _tokens(value))


def detect(identity: Mapping[str, str]) -> Variant:
    """Classify the host. Raises UnsupportedEnvironment rather than guessing."""

    for variant, key, token in SIGNATURES:
        value = identity.get(key)
        if value and _matches(value, token):
            logger.info("Detected desktop environment: %s (%s=%s)", variant.name, key, value)
            return variant

    seen = {k: identity.get(k) for k in SESSION_KEYS if identity.get(k)}
    raise UnsupportedEnvironment(
        f"unrecognized desktop environment {seen or '(no session variables set)'}; "
        "set 'desktop' in the configuration if sudo dropped the session environment"
    )


def require_debian(identity: Mapping[str, str]) -> None:
    ids = _tokens(identity.get("ID", "")) + (identity.get("ID_LIKE", "") or "").lower().split()
    if "debian" not in ids:
        raise UnsupportedEnvironment(
            f"not a Debian-based system (ID={identity.get('ID')!r}, ID_LIKE={identity.get('ID_LIKE')!r})"
        )
