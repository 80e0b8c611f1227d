from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

DEFAULT_LOG_PATH = "/var/log/workstation-setup.log"
FALLBACK_LOG_NAME = "workstation-setup.log"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"

_CONFIGURED = "_workstation_setup_configured"
_LOG_PATH = "_workstation_setup_log_path"


def _open_log_file(candidates: List[Path]) -> tuple[logging.Handler, Path]:
    last_error: Optional[OSError] = None
    for path in candidates:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            return logging.FileHandler(path, encoding="utf-8"), path
        except OSError as e:
            last_error = e
    raise OSError(f"no writable log file among {[str(p) for p in candidates]}") from last_error


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Send log records to the run log and, by default, to stderr.

    The file always gets DEBUG, so captured command output is kept for later
    even when the console only shows ``level``. If ``log_path`` cannot be
    opened (not root yet, read-only /var/log) the log goes to the current
    directory instead.

    Safe to call again: handlers are added once, only the level changes.
    Returns the path actually written to.
    """

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    if getattr(root, _CONFIGURED, False):
        for h in root.handlers:
            if getattr(h, _CONFIGURED, False) and not isinstance(h, logging.FileHandler):
                h.setLevel(level)
        return getattr(root, _LOG_PATH)

    file_handler, chosen = _open_log_file([Path(log_path), Path.cwd() / FALLBACK_LOG_NAME])
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    setattr(file_handler, _CONFIGURED, True)
    root.addHandler(file_handler)

    if also_console:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(level)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        setattr(console, _CONFIGURED, True)
        root.addHandler(console)

    setattr(root, _CONFIGURED, True)
    setattr(root, _LOG_PATH, str(chosen))

    log = logging.getLogger(__name__)
    if str(chosen) != log_path:
        log.warning("Cannot write %s; logging to %s instead", log_path, chosen)
    log.info("Logging to %s", chosen)
    return str(chosen)
