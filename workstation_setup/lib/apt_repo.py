from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from .command import run_cmd
from .net import download

logger = logging.getLogger(__name__)

KEYRING_DIR = "/usr/share/keyrings"
SOURCES_DIR = "/etc/apt/sources.list.d"

DEBIAN_COMPONENTS = ("main", "contrib", "non-free", "non-free-firmware")


def install_signing_key(
    *,
    key_url: str,
    keyring_name: str,
    work_dir: Path,
    keyring_dir: str = KEYRING_DIR,
    dry_run: bool = False,
) -> Path:
    """Fetch an ASCII-armored key and store it dearmored as a keyring file.

    Returns the keyring path, for use in ``signed-by=``.
    """

    raw = download(key_url, work_dir / f"{keyring_name}.asc", dry_run=dry_run)
    keyring = Path(keyring_dir) / f"{keyring_name}.gpg"
    if not dry_run:
        keyring.parent.mkdir(parents=True, exist_ok=True)
    run_cmd(["gpg", "--batch", "--yes", "--dearmor", "-o", str(keyring), str(raw)], dry_run=dry_run)
    logger.info("Installed apt signing key %s", keyring)
    return keyring


def write_source_list(
    *,
    name: str,
    uri: str,
    suite: str,
    components: Sequence[str],
    keyring: Path,
    sources_dir: str = SOURCES_DIR,
    dry_run: bool = False,
) -> Path:
    """Write a one-line .list file for a third-party repository."""

    p = Path(sources_dir) / f"{name}.list"
    line = f"deb [signed-by={keyring}] {uri} {suite} {' '.join(components)}\n"
    if dry_run:
        logger.info("Would write %s: %s", p, line.strip())
        return p
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(line, encoding="utf-8")
    logger.info("Configured apt repo %s: %s %s", name, uri, suite)
    return p


def render_debian_sources(
    suite: str,
    *,
    mirror: str = "http://deb.debian.org/debian/",
    security_mirror: str = "http://security.debian.org/debian-security/",
    components: Sequence[str] = DEBIAN_COMPONENTS,
    keyring: str = "/usr/share/keyrings/debian-archive-keyring.gpg",
) -> str:
    """Render deb822 stanzas for the main, security and updates suites."""

    stanzas = []
    for uri, s in ((mirror, suite), (security_mirror, f"{suite}-security"), (mirror, f"{suite}-updates")):
        stanzas.append(
            "Types: deb deb-src\n"
            f"URIs: {uri}\n"
            f"Suites: {s}\n"
            f"Components: {' '.join(components)}\n"
            f"Signed-By: {keyring}\n"
        )
    return "\n".join(stanzas)


def write_debian_sources(
    suite: str,
    *,
    etc_apt: str = "/etc/apt",
    dry_run: bool = False,
) -> Path:
    """Replace the legacy sources.list with a deb822 debian.sources file.

    The old file is kept as sources.list.backup.
    """

    apt_dir = Path(etc_apt)
    target = apt_dir / "sources.list.d" / "debian.sources"
    legacy = apt_dir / "sources.list"
    content = render_debian_sources(suite)

    if dry_run:
        logger.info("Would write %s for suite %s", target, suite)
        return target

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    if legacy.exists():
        legacy.rename(apt_dir / "sources.list.backup")
        logger.info("Moved %s to sources.list.backup", legacy)
    logger.info("Wrote %s (suite=%s)", target, suite)
    return target
