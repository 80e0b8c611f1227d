from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def quote_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


class CommandError(RuntimeError):
    """A command exited non-zero (or never finished)."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
        super().__init__(
            f"`{quote_argv(self.argv)}` exited {returncode}" + (f": {detail}" if detail else "")
        )


class CommandNotFound(CommandError):
    """The executable could not be started."""

    def __init__(self, argv: Sequence[str], reason: str) -> None:
        super().__init__(argv, 127, reason)



def _child_env(overrides: Optional[Mapping[str, str]]) -> Dict[str, str]:
    env = dict(os.environ)
    if overrides:
        env.update({k: str(v) for k, v in overrides.items()})
    return env


def _log_stream(label: str, text: str) -> None:
    for line in text.splitlines():
        if line.strip():
            logger.debug("%s %s", label, line)


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[str] = None,
    input_text: Optional[str] = None,
    timeout: Optional[float] = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run argv to completion and capture its output.

    Every command is logged at INFO before it runs (also under dry_run, which
    then returns a successful empty result). Output goes to DEBUG line by line.
    A timeout counts as a failure with returncode -1.
    """

    argv = [str(a) for a in argv]
    logger.info("CMD %s", quote_argv(argv))
    if dry_run:
        return CmdResult(argv, 0, "", "")

    try:
        proc = subprocess.run(
            argv,
            input=input_text,
            capture_output=True,
            text=True,
            cwd=cwd,
            env=_child_env(env),
            timeout=timeout,
        )
    except (FileNotFoundError, PermissionError, NotADirectoryError) as e:
        raise CommandNotFound(argv, str(e)) from e
    except subprocess.TimeoutExpired as e:
        raise CommandError(argv, -1, f"timed out after {timeout}s") from e

    _log_stream("stdout:", proc.stdout or "")
    _log_stream("stderr:", proc.stderr or "")

    result = CmdResult(argv, proc.returncode, proc.stdout or "", proc.stderr or "")
    if check and not result.ok:
        raise CommandError(argv, result.returncode, result.stderr)
    return result
