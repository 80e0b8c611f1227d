"""
Tests for the step runner: guards, retries, criticality, verification, windows.
"""

import logging

import pytest

from workstation_setup.errors import RunInterrupted, StepActionError, StepVerificationError
from workstation_setup.lib.detect import Variant
from workstation_setup.lib.retry import RetryPolicy
from workstation_setup.pipeline import StepStatus, run_pipeline

from .fakes import FakeStep

NO_WAIT = RetryPolicy(max_attempts=3, delay=0)


def _run(ctx, steps, **kwargs):
    records = []
    result = run_pipeline(ctx=ctx, steps=steps, records=records, retry_policy=NO_WAIT, sleep=lambda _: None, **kwargs)
    return result, records


class TestGuards:
    def test_guarded_step_skipped_for_other_variant(self, make_ctx):
        gnome_only = FakeStep("gnome_only", variants=frozenset({Variant.GNOME}))
        unguarded = FakeStep("everywhere")

        result, _ = _run(make_ctx(Variant.KDE), [gnome_only, unguarded])

        assert len(result.records) == 2
        assert result.records[0].status == StepStatus.SKIPPED
        assert result.records[1].status == StepStatus.SUCCEEDED
        assert gnome_only.action_calls == 0
        assert gnome_only.verify_calls == 0
        assert unguarded.action_calls == 1
        assert unguarded.verify_calls == 1

    def test_guarded_step_runs_for_matching_variant(self, make_ctx):
        step = FakeStep("gnome_only", variants=frozenset({Variant.GNOME}))
        result, _ = _run(make_ctx(Variant.GNOME), [step])
        assert result.records[0].status == StepStatus.SUCCEEDED
        assert result.records[0].attempts == 1


class TestFailures:
    def test_non_critical_exhausted_continues(self, make_ctx):
        broken = FakeStep("broken", retryable=True, failures=-1)
        after = FakeStep("after")

        result, _ = _run(make_ctx(), [broken, after])

        assert broken.action_calls == 3
        assert broken.verify_calls == 0
        rec = result.records[0]
        assert rec.status == StepStatus.FAILED_RETRIES_EXHAUSTED
        assert rec.attempts == 3
        assert "broken failed" in rec.error
        assert result.records[1].status == StepStatus.SUCCEEDED
        assert result.degraded

    def test_non_retryable_gets_one_attempt(self, make_ctx):
        step = FakeStep("once", failures=-1)
        result, _ = _run(make_ctx(), [step])
        assert step.action_calls == 1
        assert result.records[0].attempts == 1

    def test_step_override_of_attempt_budget(self, make_ctx):
        step = FakeStep("five", retryable=True, max_attempts=5, failures=4)
        result, _ = _run(make_ctx(), [step])
        assert result.records[0].status == StepStatus.SUCCEEDED
        assert result.records[0].attempts == 5

    def test_recovers_within_budget(self, make_ctx):
        step = FakeStep("flaky", retryable=True, failures=2)
        result, _ = _run(make_ctx(), [step])
        assert result.records[0].status == StepStatus.SUCCEEDED
        assert result.records[0].attempts == 3
        assert not result.degraded

    def test_critical_failure_aborts(self, make_ctx):
        critical = FakeStep("critical", critical=True, retryable=True, failures=-1)
        never = FakeStep("never")
        records = []

        with pytest.raises(StepActionError) as exc:
            run_pipeline(ctx=make_ctx(), steps=[critical, never], records=records, retry_policy=NO_WAIT, sleep=lambda _: None)

        assert exc.value.step_id == "critical"
        assert exc.value.attempts == 3
        assert never.guard_calls == 0
        assert [r.step_id for r in records] == ["critical"]
        assert records[0].status == StepStatus.FAILED_RETRIES_EXHAUSTED


class TestVerification:
    def test_verify_failure_is_failed_fatal(self, make_ctx, caplog):
        step = FakeStep("liar", verify_result=False)
        after = FakeStep("after")

        with caplog.at_level(logging.ERROR):
            result, _ = _run(make_ctx(), [step, after])

        assert result.records[0].status == StepStatus.FAILED_FATAL
        assert after.action_calls == 1
        assert result.degraded
        assert "Step liar: failed_fatal" in caplog.text

    def test_critical_verify_failure_aborts(self, make_ctx):
        step = FakeStep("liar", critical=True, verify_result=False)
        with pytest.raises(StepVerificationError):
            _run(make_ctx(), [step, FakeStep("after")])

    def test_verify_exception_counts_as_failure(self, make_ctx):
        step = FakeStep("explodes")

        def boom(ctx):
            raise FileNotFoundError("nope")

        step.verify = boom
        result, _ = _run(make_ctx(), [step])
        assert result.records[0].status == StepStatus.FAILED_FATAL
        assert "FileNotFoundError" in result.records[0].error

    def test_dry_run_skips_verification(self, make_ctx):
        step = FakeStep("dry", verify_result=False)
        result, _ = _run(make_ctx(dry_run=True), [step])
        assert step.verify_calls == 0
        assert result.records[0].status == StepStatus.SUCCEEDED


class TestOrdering:
    def test_steps_run_in_order(self, make_ctx):
        seen = []
        steps = [FakeStep(n, on_action=lambda ctx, n=n: seen.append(n)) for n in ("a", "b", "c")]
        _run(make_ctx(), steps)
        assert seen == ["a", "b", "c"]

    def test_duplicate_ids_rejected_before_running(self, make_ctx):
        a = FakeStep("same")
        with pytest.raises(ValueError, match="duplicate"):
            _run(make_ctx(), [a, FakeStep("same")])
        assert a.guard_calls == 0

    def test_window(self, make_ctx):
        steps = [FakeStep(n) for n in ("a", "b", "c", "d")]
        result, _ = _run(make_ctx(), steps, start_at="b", stop_after="c")
        assert [r.status for r in result.records] == [
            StepStatus.SKIPPED,
            StepStatus.SUCCEEDED,
            StepStatus.SUCCEEDED,
            StepStatus.SKIPPED,
        ]
        assert result.records[0].reason == "outside_window"
        assert steps[0].action_calls == 0 and steps[3].action_calls == 0

    def test_unknown_window_step(self, make_ctx):
        with pytest.raises(ValueError, match="start_at"):
            _run(make_ctx(), [FakeStep("a")], start_at="zzz")

    def test_interrupt_keeps_partial_records(self, make_ctx):
        def interrupt(ctx):
            raise RunInterrupted(2)

        first = FakeStep("first")
        second = FakeStep("second", retryable=True, on_action=interrupt)
        records = []
        with pytest.raises(RunInterrupted):
            run_pipeline(ctx=make_ctx(), steps=[first, second, FakeStep("third")], records=records, retry_policy=NO_WAIT)
        assert second.action_calls == 1
        assert [r.step_id for r in records] == ["first"]

    def test_status_line_per_step(self, make_ctx, caplog):
        steps = [
            FakeStep("skip_me", variants=frozenset({Variant.KDE})),
            FakeStep("ok"),
            FakeStep("bad", failures=-1),
        ]
        with caplog.at_level(logging.INFO, logger="workstation_setup.pipeline"):
            _run(make_ctx(Variant.GNOME), steps)
        assert "Step skip_me: skipped" in caplog.text
        assert "Step ok: succeeded" in caplog.text
        assert "Step bad: failed_retries_exhausted" in caplog.text


class TestCurrentStep:
    def test_reports_each_step_then_none(self, make_ctx):
        seen = []
        steps = [FakeStep("a"), FakeStep("b"), FakeStep("c")]
        _run(make_ctx(), steps, start_at="b", on_step=seen.append)
        assert seen == ["b", "c", None]

    def test_left_on_interrupted_step(self, make_ctx):
        def interrupt(ctx):
            raise RunInterrupted(15)

        seen = []
        with pytest.raises(RunInterrupted):
            _run(make_ctx(), [FakeStep("first"), FakeStep("second", on_action=interrupt)], on_step=seen.append)
        assert seen == ["first", "second"]
