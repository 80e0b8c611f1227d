from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from .preconditions import Principal
from .user import run_as_user

logger = logging.getLogger(__name__)


def clone_as_user(
    principal: Principal,
    url: str,
    dest: Path,
    *,
    branch: Optional[str] = None,
    depth: Optional[int] = None,
    fresh: bool = False,
    dry_run: bool = False,
) -> Path:
    """Clone url into dest as the principal.

    An existing checkout is kept as-is unless ``fresh`` is set, in which case it
    is removed first. Scratch clones use ``fresh`` so that a retried attempt
    does not trip over the half-written directory of the previous one.
    """

    if dest.exists():
        if not fresh:
            logger.info("%s already present, skipping clone", dest)
            return dest
        if not dry_run:
            shutil.rmtree(dest)

    argv = ["git", "clone"]
    if depth:
        argv += ["--depth", str(depth)]
    if branch:
        argv += ["--branch", branch]
    argv += [url, str(dest)]
    run_as_user(principal, argv, dry_run=dry_run)
    return dest
