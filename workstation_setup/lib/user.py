from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional, Sequence

from .command import CmdResult, run_cmd
from .preconditions import Principal


def user_env(principal: Principal, extra: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    env = {
        "HOME": str(principal.home),
        "USER": principal.username,
        "LOGNAME": principal.username,
        "PATH": os.environ.get("PATH", "/usr/local/bin:/usr/bin:/bin"),
    }
    env.update(extra or {})
    return env


def as_user_argv(
    principal: Principal,
    argv: Sequence[str],
    *,
    extra_env: Optional[Mapping[str, str]] = None,
) -> list[str]:
    """Wrap argv so it runs as the principal with their HOME."""

    assignments = [f"{k}={v}" for k, v in user_env(principal, extra_env).items()]
    return ["sudo", "-u", principal.username, "env", *assignments, *argv]


def run_as_user(
    principal: Principal,
    argv: Sequence[str],
    *,
    extra_env: Optional[Mapping[str, str]] = None,
    cwd: str | None = None,
    check: bool = True,
    dry_run: bool = False,
) -> CmdResult:
    return run_cmd(
        as_user_argv(principal, argv, extra_env=extra_env),
        cwd=cwd,
        check=check,
        dry_run=dry_run,
    )


def ensure_user_dir(principal: Principal, path: Path, *, dry_run: bool = False) -> None:
    run_as_user(principal, ["mkdir", "-p", str(path)], dry_run=dry_run)
