from __future__ import annotations

import logging
from pathlib import Path

from .command import run_cmd
from .preconditions import Principal
from .user import as_user_argv

logger = logging.getLogger(__name__)


def _curl_argv(url: str, dest: Path) -> list[str]:
    return ["curl", "-fsSL", "-o", str(dest), url]


def download(url: str, dest: Path, *, dry_run: bool = False) -> Path:
    """Fetch url to dest as root. Raises CommandError on HTTP or network failure."""

    dest.parent.mkdir(parents=True, exist_ok=True)
    run_cmd(_curl_argv(url, dest), dry_run=dry_run)
    logger.info("Downloaded %s -> %s", url, dest)
    return dest


def download_as_user(principal: Principal, url: str, dest: Path, *, dry_run: bool = False) -> Path:
    """Fetch url to dest as the principal, so the file ends up owned by them."""

    run_cmd(as_user_argv(principal, ["mkdir", "-p", str(dest.parent)]), dry_run=dry_run)
    run_cmd(as_user_argv(principal, _curl_argv(url, dest)), dry_run=dry_run)
    logger.info("Downloaded %s -> %s (as %s)", url, dest, principal.username)
    return dest
