from __future__ import annotations

import enum
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .pipeline import ExecutionRecord, StepStatus

logger = logging.getLogger(__name__)


class RunStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    DEGRADED = "degraded"
    ABORTED = "aborted"
    INTERRUPTED = "interrupted"
    FAILED_PRECONDITION = "failed_precondition"


@dataclass
class RunReport:
    """What happened during one run, in enough detail to audit it afterwards."""

    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None
    status: Optional[RunStatus] = None
    user: Optional[str] = None
    variant: Optional[str] = None
    work_dir: Optional[str] = None
    # Step in progress; left set when the run stops inside a step.
    current_step: Optional[str] = None
    dry_run: bool = False
    error: Optional[str] = None
    exit_code: Optional[int] = None
    records: List[ExecutionRecord] = field(default_factory=list)

    def finish(self, status: RunStatus, exit_code: int, error: Optional[str] = None) -> None:
        self.status = status
        self.exit_code = exit_code
        self.error = error
        self.finished_at = time.time()

    def counts(self) -> Dict[str, int]:
        out = {s.value: 0 for s in StepStatus}
        for r in self.records:
            out[r.status.value] += 1
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "status": self.status.value if self.status else None,
            "exit_code": self.exit_code,
            "user": self.user,
            "variant": self.variant,
            "work_dir": self.work_dir,
            "current_step": self.current_step,
            "dry_run": self.dry_run,
            "error": self.error,
            "counts": self.counts(),
            "records": [r.to_dict() for r in self.records],
        }


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def save_report(path: str, report: RunReport) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    data = report.to_dict()
    if _detect_format(p) in {"yaml", "yml"}:
        p.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    else:
        p.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def load_report(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    text = p.read_text(encoding="utf-8")
    if _detect_format(p) in {"yaml", "yml"}:
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)

    if not isinstance(data, dict):
        raise ValueError(f"Report file must be an object/dict, got {type(data)}")
    return data


def log_summary(report: RunReport) -> None:
    logger.info(
        "Run %s: %s",
        report.status.value if report.status else "unfinished",
        ", ".join(f"{k}={v}" for k, v in report.counts().items()),
    )
    for r in report.records:
        if r.failed:
            logger.warning("  %s %s: %s", r.step_id, r.status.value, r.error)
    if report.current_step and report.status in (RunStatus.ABORTED, RunStatus.INTERRUPTED):
        logger.warning("  stopped in step %s", report.current_step)
