from __future__ import annotations

import logging
from typing import Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)


def add_remote(name: str, url: str, *, dry_run: bool = False) -> None:
    run_cmd(["flatpak", "remote-add", "--if-not-exists", name, url], dry_run=dry_run)


def has_remote(name: str) -> bool:
    r = run_cmd(["flatpak", "remotes", "--columns=name"], check=False)
    if r.returncode != 0:
        return False
    return name in {line.strip() for line in r.stdout.splitlines()}


def install_apps(remote: str, app_ids: Sequence[str], *, dry_run: bool = False) -> None:
    if not app_ids:
        return
    run_cmd(["flatpak", "install", "-y", "--noninteractive", remote, *app_ids], dry_run=dry_run)


def is_app_installed(app_id: str) -> bool:
    r = run_cmd(["flatpak", "info", app_id], check=False)
    return r.returncode == 0


def missing_apps(app_ids: Sequence[str]) -> list[str]:
    return [a for a in app_ids if not is_app_installed(a)]
