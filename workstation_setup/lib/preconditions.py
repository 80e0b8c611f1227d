from __future__ import annotations

import logging
import os
import pwd
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from ..errors import InsufficientPrivilege, UnresolvableUser
from .command import CommandError, run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """The regular user the workstation is being set up for."""

    username: str
    home: Path
    uid: int
    gid: int
    shell: str = ""


def discover_login_user(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return the name of the user who logged in on this session.

    ``logname`` reads the session's login record, which survives sudo. When it
    has nothing (no controlling terminal, containers), fall back to SUDO_USER.
    """

    env = os.environ if environ is None else environ
    try:
        r = run_cmd(["logname"], check=False)
        name = r.stdout.strip()
        if r.returncode == 0 and name:
            return name
    except CommandError:
        logger.debug("logname not available")

    name = (env.get("SUDO_USER") or "").strip()
    return name or None


def validate(
    *,
    username: Optional[str] = None,
    geteuid: Callable[[], int] = os.geteuid,
    lookup: Callable[[str], Any] = pwd.getpwnam,
    discover: Callable[[], Optional[str]] = discover_login_user,
) -> Principal:
    """Check the run may proceed and resolve the target user.

    Read-only. Raises InsufficientPrivilege or UnresolvableUser.
    """

    euid = geteuid()
    if euid != 0:
        raise InsufficientPrivilege(f"must be run as root (effective uid is {euid}); use sudo")

    name = username or discover()
    if not name:
        raise UnresolvableUser("unable to determine the logged-in user (logname and SUDO_USER are empty)")
    if name == "root":
        raise UnresolvableUser("target user resolved to root; run via sudo from a regular user session")

    try:
        entry = lookup(name)
    except KeyError as e:
        raise UnresolvableUser(f"user {name!r} does not exist") from e

    home = Path(entry.pw_dir) if entry.pw_dir else None
    if home is None or not home.is_dir():
        raise UnresolvableUser(f"home directory for {name!r} not found: {entry.pw_dir!r}")

    principal = Principal(
        username=name,
        home=home,
        uid=int(entry.pw_uid),
        gid=int(entry.pw_gid),
        shell=str(entry.pw_shell or ""),
    )
    logger.info("Target user: %s (home=%s)", principal.username, principal.home)
    return principal
