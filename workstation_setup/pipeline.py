from __future__ import annotations

import enum
import functools
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from .errors import StepActionError, StepVerificationError
from .lib.detect import Variant
from .lib.preconditions import Principal
from .lib.retry import RetryExhausted, RetryPolicy, retry
from .settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunContext:
    """Everything a step may read. Built once per run, never modified."""

    principal: Principal
    variant: Variant
    work_dir: Path
    manifest: Dict[str, Any] = field(default_factory=dict)
    settings: Settings = field(default_factory=Settings)
    dry_run: bool = False


class Step(Protocol):
    """A single guarded, verifiable provisioning step."""

    step_id: str
    description: str
    critical: bool
    retryable: bool
    max_attempts: Optional[int]

    def guard(self, variant: Variant) -> bool:
        ...

    def action(self, ctx: RunContext) -> None:
        ...

    def verify(self, ctx: RunContext) -> bool:
        ...


class StepStatus(str, enum.Enum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED_RETRIES_EXHAUSTED = "failed_retries_exhausted"
    FAILED_FATAL = "failed_fatal"


@dataclass(frozen=True)
class ExecutionRecord:
    step_id: str
    status: StepStatus
    attempts: int = 0
    error: Optional[str] = None
    critical: bool = False
    reason: Optional[str] = None
    duration_s: float = 0.0

    @property
    def failed(self) -> bool:
        return self.status in (StepStatus.FAILED_RETRIES_EXHAUSTED, StepStatus.FAILED_FATAL)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_id": self.step_id,
            "status": self.status.value,
            "attempts": self.attempts,
            "error": self.error,
            "critical": self.critical,
            "reason": self.reason,
            "duration_s": round(self.duration_s, 3),
        }


@dataclass(frozen=True)
class PipelineResult:
    records: List[ExecutionRecord]

    @property
    def failures(self) -> List[ExecutionRecord]:
        return [r for r in self.records if r.failed]

    @property
    def degraded(self) -> bool:
        return bool(self.failures)


def _append(records: List[ExecutionRecord], rec: ExecutionRecord) -> ExecutionRecord:
    records.append(rec)
    if rec.status == StepStatus.SKIPPED:
        logger.info("Step %s: skipped (%s)", rec.step_id, rec.reason)
    elif rec.status == StepStatus.SUCCEEDED:
        logger.info("Step %s: succeeded (attempts=%d)", rec.step_id, rec.attempts)
    elif rec.status == StepStatus.FAILED_RETRIES_EXHAUSTED and not rec.critical:
        logger.warning("Step %s: failed_retries_exhausted (attempts=%d): %s", rec.step_id, rec.attempts, rec.error)
    else:
        logger.error("Step %s: %s (attempts=%d): %s", rec.step_id, rec.status.value, rec.attempts, rec.error)
    return rec


def attempt_budget(step: Step, policy: RetryPolicy) -> int:
    if not step.retryable:
        return 1
    return step.max_attempts or policy.max_attempts


def _check_step_ids(steps: Sequence[Step], start_at: Optional[str], stop_after: Optional[str]) -> None:
    seen: set[str] = set()
    for s in steps:
        if s.step_id in seen:
            raise ValueError(f"duplicate step_id: {s.step_id}")
        seen.add(s.step_id)
    for name, value in (("start_at", start_at), ("stop_after", stop_after)):
        if value is not None and value not in seen:
            raise ValueError(f"{name}: unknown step_id {value!r}")


def run_step(
    step: Step,
    *,
    ctx: RunContext,
    records: List[ExecutionRecord],
    retry_policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> ExecutionRecord:
    """Guard, act (with retries), verify. Appends exactly one record.

    Raises StepActionError / StepVerificationError for critical steps, after
    the record has been appended.
    """

    if not step.guard(ctx.variant):
        return _append(
            records,
            ExecutionRecord(
                step_id=step.step_id,
                status=StepStatus.SKIPPED,
                critical=step.critical,
                reason=f"not applicable to {ctx.variant.name}",
            ),
        )

    logger.info("Running step %s: %s", step.step_id, step.description)
    started = time.monotonic()

    try:
        result = retry(
            functools.partial(step.action, ctx),
            max_attempts=attempt_budget(step, retry_policy),
            delay=retry_policy.delay,
            sleep=sleep,
            description=step.step_id,
        )
    except RetryExhausted as e:
        _append(
            records,
            ExecutionRecord(
                step_id=step.step_id,
                status=StepStatus.FAILED_RETRIES_EXHAUSTED,
                attempts=e.attempts,
                error=str(e.last_error),
                critical=step.critical,
                duration_s=time.monotonic() - started,
            ),
        )
        if step.critical:
            raise StepActionError(step.step_id, e.attempts, str(e.last_error)) from e.last_error
        logger.warning("Continuing after non-critical step %s failed", step.step_id)
        return records[-1]

    if ctx.dry_run:
        return _append(
            records,
            ExecutionRecord(
                step_id=step.step_id,
                status=StepStatus.SUCCEEDED,
                attempts=result.attempts,
                critical=step.critical,
                reason="dry run: verification skipped",
                duration_s=time.monotonic() - started,
            ),
        )

    error: Optional[str] = None
    try:
        if not step.verify(ctx):
            error = "action reported success but verification failed"
    except Exception as e:
        error = f"verification raised {type(e).__name__}: {e}"

    if error is not None:
        _append(
            records,
            ExecutionRecord(
                step_id=step.step_id,
                status=StepStatus.FAILED_FATAL,
                attempts=result.attempts,
                error=error,
                critical=step.critical,
                duration_s=time.monotonic() - started,
            ),
        )
        if step.critical:
            raise StepVerificationError(step.step_id, error)
        return records[-1]

    return _append(
        records,
        ExecutionRecord(
            step_id=step.step_id,
            status=StepStatus.SUCCEEDED,
            attempts=result.attempts,
            critical=step.critical,
            duration_s=time.monotonic() - started,
        ),
    )


def run_pipeline(
    *,
    ctx: RunContext,
    steps: Sequence[Step],
    records: List[ExecutionRecord],
    retry_policy: RetryPolicy,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
    on_step: Optional[Callable[[Optional[str]], None]] = None,
) -> PipelineResult:
    """Run steps strictly in order.

    ``records`` is appended to as steps finish, so the caller still holds the
    partial history when a critical failure or an interrupt unwinds out of here.
    ``on_step`` is told the step_id before each step runs and None once all
    are done, so after an abort or interrupt the last id it saw names the
    step the run stopped in.
    """

    _check_step_ids(steps, start_at, stop_after)

    started = start_at is None
    stopped = False

    for step in steps:
        if not started and step.step_id == start_at:
            started = True

        if not started or stopped:
            _append(
                records,
                ExecutionRecord(
                    step_id=step.step_id,
                    status=StepStatus.SKIPPED,
                    critical=step.critical,
                    reason="outside_window",
                ),
            )
            continue

        if on_step is not None:
            on_step(step.step_id)
        run_step(step, ctx=ctx, records=records, retry_policy=retry_policy, sleep=sleep)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            stopped = True

    if on_step is not None:
        on_step(None)
    return PipelineResult(records=list(records))
