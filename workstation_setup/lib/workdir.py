from __future__ import annotations

import atexit
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from .preconditions import Principal
from .signals import deferred

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "setup_temp."


class WorkingDirectory:
    """Scratch directory owned by one run.

    The directory is created on enter and removed exactly once: on exit of the
    ``with`` block, or by the atexit hook if the interpreter goes down first.
    Removal errors are logged and never raised, so they cannot hide the run's
    own outcome. Termination signals are held back while the directory is
    created and while it is removed.
    """

    def __init__(
        self,
        parent: Path,
        *,
        prefix: str = DEFAULT_PREFIX,
        owner: Optional[Principal] = None,
    ) -> None:
        self.parent = Path(parent)
        self.prefix = prefix
        self.owner = owner
        self._path: Optional[Path] = None
        self._released = False

    @property
    def path(self) -> Path:
        if self._path is None:
            raise RuntimeError("working directory not acquired")
        return self._path

    @property
    def released(self) -> bool:
        return self._released

    def acquire(self) -> Path:
        if self._path is not None:
            raise RuntimeError(f"working directory already acquired: {self._path}")

        self.parent.mkdir(parents=True, exist_ok=True)
        try:
            # No signal may land between creating the directory and registering its removal.
            with deferred():
                self._path = Path(tempfile.mkdtemp(prefix=self.prefix, dir=str(self.parent)))
                atexit.register(self.release)

            # User-scoped steps clone and build inside it.
            if self.owner is not None and os.geteuid() == 0:
                os.chown(self._path, self.owner.uid, self.owner.gid)
        except BaseException:
            self.release()
            raise

        logger.info("Created working directory %s", self._path)
        return self._path

    def release(self) -> None:
        if self._path is None or self._released:
            return

        with deferred():
            try:
                shutil.rmtree(self._path)
            except FileNotFoundError:
                logger.warning("Working directory %s was already gone", self._path)
            except OSError as e:
                logger.error("Failed to remove working directory %s: %s", self._path, e)
            else:
                logger.info("Removed working directory %s", self._path)
            finally:
                self._released = True
                atexit.unregister(self.release)

    def __enter__(self) -> Path:
        return self.acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
