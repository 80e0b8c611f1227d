from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import (
    EXIT_CONFIG_ERROR,
    EXIT_INTERNAL,
    EXIT_OK,
    EXIT_PRECONDITION,
    EXIT_STEP_FAILED,
    EXIT_VERIFY_FAILED,
    ConfigError,
    DetectionError,
    RunInterrupted,
    StepActionError,
    StepVerificationError,
    ValidationError,
)
from .lib.command import CommandError, run_cmd
from .lib.detect import detect, read_host_identity, require_debian
from .lib.manifests import load_manifest
from .lib.preconditions import validate
from .lib.signals import deferred, interrupt_signals
from .lib.workdir import WorkingDirectory
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import RunContext, Step, run_pipeline
from .report import RunReport, RunStatus, log_summary, save_report
from .settings import DEFAULT_CONFIG_PATH, Settings, load_settings
from .steps import (
    AddFlatpakRemoteStep,
    ApplyZshrcStep,
    CleanPackageCacheStep,
    ConfigureAptSourcesStep,
    ConfigureFastfetchStep,
    ConfigureTerminalStep,
    DisableServicesStep,
    InstallBlurMyShellStep,
    InstallBrowserStep,
    InstallCorePackagesStep,
    InstallDesktopToolsStep,
    InstallEzaStep,
    InstallFabricCompletionsStep,
    InstallFabricStep,
    InstallFlatpakAppsStep,
    InstallOhMyZshStep,
    InstallPopShellStep,
    InstallShellExtensionPackagesStep,
    InstallTerminalStep,
    InstallZshPluginsStep,
    PurgeDefaultAppsStep,
    RefreshPackageIndexStep,
    SetDefaultShellStep,
)
from .steps.base import BaseStep

logger = logging.getLogger(__name__)


DEFAULT_REPORT_PATH = "/var/lib/workstation-setup/report.json"


def all_steps() -> List[BaseStep]:
    return [
        ConfigureAptSourcesStep(),
        RefreshPackageIndexStep(),
        PurgeDefaultAppsStep(),
        InstallCorePackagesStep(),
        InstallDesktopToolsStep(),
        InstallEzaStep(),
        ConfigureFastfetchStep(),
        SetDefaultShellStep(),
        InstallOhMyZshStep(),
        InstallZshPluginsStep(),
        ApplyZshrcStep(),
        InstallBrowserStep(),
        InstallTerminalStep(),
        ConfigureTerminalStep(),
        AddFlatpakRemoteStep(),
        InstallFlatpakAppsStep(),
        InstallShellExtensionPackagesStep(),
        InstallPopShellStep(),
        InstallBlurMyShellStep(),
        InstallFabricStep(),
        InstallFabricCompletionsStep(),
        CleanPackageCacheStep(),
        DisableServicesStep(),
    ]


def build_steps(settings: Optional[Settings] = None) -> List[BaseStep]:
    """The ordered step list, after applying steps.enable / steps.disable."""

    settings = settings or Settings()
    steps = all_steps()

    known = {s.step_id for s in steps}
    unknown = sorted(set(settings.enabled_steps + settings.disabled_steps) - known)
    if unknown:
        raise ConfigError(f"unknown step id(s) in config: {', '.join(unknown)}")

    enabled = set(settings.enabled_steps)
    disabled = set(settings.disabled_steps)
    selected: List[BaseStep] = []
    for step in steps:
        if step.step_id in disabled or (not step.default_enabled and step.step_id not in enabled):
            logger.info("Step %s disabled by configuration", step.step_id)
            continue
        selected.append(step)
    return selected


def _check_window(steps: Sequence[Step], start_at: Optional[str], stop_after: Optional[str]) -> None:
    ids = [s.step_id for s in steps]
    for flag, value in (("--start-at", start_at), ("--stop-after", stop_after)):
        if value is not None and value not in ids:
            raise ConfigError(f"{flag}: unknown or disabled step {value!r}")


def _reboot() -> None:
    logger.info("Rebooting")
    try:
        r = run_cmd(["systemctl", "reboot"], check=False)
    except CommandError as e:
        logger.warning("Reboot failed: %s; reboot manually", e)
        return
    if not r.ok:
        logger.warning("Reboot failed (exit %d); reboot manually", r.returncode)


def _write_report(report: RunReport, report_path: str) -> None:
    # Signals are held until the report is on disk, then dropped.
    try:
        with deferred():
            log_summary(report)
            try:
                save_report(report_path, report)
            except OSError as e:
                logger.error("Could not write report to %s: %s", report_path, e)
    except RunInterrupted as e:
        logger.warning("Ignored %s received while writing the report", e.signame)


def _provision(
    report: RunReport,
    *,
    config_path: str,
    config_required: bool,
    start_at: Optional[str],
    stop_after: Optional[str],
    dry_run: bool,
    reboot: bool,
    steps: Optional[Sequence[Step]],
) -> int:
    try:
        settings = load_settings(config_path, required=config_required)
        manifest = load_manifest(settings.manifest_path)
        if steps is None:
            steps = build_steps(settings)
        _check_window(steps, start_at, stop_after)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        report.finish(RunStatus.FAILED_PRECONDITION, EXIT_CONFIG_ERROR, str(e))
        return EXIT_CONFIG_ERROR

    try:
        principal = validate()
        identity = read_host_identity(desktop_override=settings.desktop)
        require_debian(identity)
        variant = detect(identity)
    except (ValidationError, DetectionError) as e:
        logger.error("Cannot continue: %s", e)
        report.finish(RunStatus.FAILED_PRECONDITION, EXIT_PRECONDITION, str(e))
        return EXIT_PRECONDITION

    report.user = principal.username
    report.variant = variant.name

    parent = Path(settings.work_dir_parent) if settings.work_dir_parent else principal.home
    with WorkingDirectory(parent, prefix=settings.work_dir_prefix, owner=principal) as work_dir:
        report.work_dir = str(work_dir)
        ctx = RunContext(
            principal=principal,
            variant=variant,
            work_dir=work_dir,
            manifest=manifest,
            settings=settings,
            dry_run=dry_run,
        )
        try:
            result = run_pipeline(
                ctx=ctx,
                steps=steps,
                records=report.records,
                retry_policy=settings.retry_policy,
                start_at=start_at,
                stop_after=stop_after,
                on_step=lambda step_id: setattr(report, "current_step", step_id),
            )
        except StepActionError as e:
            logger.error("Aborting: critical step failed: %s", e)
            report.finish(RunStatus.ABORTED, EXIT_STEP_FAILED, str(e))
            return EXIT_STEP_FAILED
        except StepVerificationError as e:
            logger.error("Aborting: critical step did not take effect: %s", e)
            report.finish(RunStatus.ABORTED, EXIT_VERIFY_FAILED, str(e))
            return EXIT_VERIFY_FAILED

    if result.degraded:
        report.finish(RunStatus.DEGRADED, EXIT_OK)
        logger.warning("Setup finished with %d non-critical failure(s); see the report", len(result.failures))
    else:
        report.finish(RunStatus.SUCCEEDED, EXIT_OK)
        logger.info("Workstation setup complete for %s (%s)", principal.username, variant.name)

    if (reboot or settings.reboot) and not dry_run:
        _reboot()
    else:
        logger.info("A reboot is required for all changes to take effect")
    return EXIT_OK


def run(
    *,
    config_path: str = DEFAULT_CONFIG_PATH,
    config_required: bool = False,
    log_path: str = DEFAULT_LOG_PATH,
    report_path: str = DEFAULT_REPORT_PATH,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    dry_run: bool = False,
    reboot: bool = False,
    verbose: bool = False,
    steps: Optional[Sequence[Step]] = None,
) -> int:
    """Provision the workstation and return the process exit code."""

    configure_logging(log_path=log_path, level=logging.DEBUG if verbose else logging.INFO)
    report = RunReport(dry_run=dry_run)

    with interrupt_signals():
        try:
            exit_code = _provision(
                report,
                config_path=config_path,
                config_required=config_required,
                start_at=start_at,
                stop_after=stop_after,
                dry_run=dry_run,
                reboot=reboot,
                steps=steps,
            )
        except RunInterrupted as e:
            logger.error(
                "Run interrupted by %s during %s; working directory cleaned up",
                e.signame,
                report.current_step or "setup",
            )
            report.finish(RunStatus.INTERRUPTED, e.exit_code, str(e))
            exit_code = e.exit_code
        except Exception as e:
            logger.exception("Provisioning failed unexpectedly")
            report.finish(RunStatus.ABORTED, EXIT_INTERNAL, f"{type(e).__name__}: {e}")
            exit_code = EXIT_INTERNAL

        _write_report(report, report_path)

    return exit_code


def list_steps(config_path: str, *, config_required: bool = False) -> int:
    settings = load_settings(config_path, required=config_required)
    selected = {s.step_id for s in build_steps(settings)}
    for step in all_steps():
        scope = ",".join(sorted(v.name for v in step.variants)) if step.variants else "all"
        flags = [
            "critical" if step.critical else "best-effort",
            "retry" if step.retryable else "once",
            "enabled" if step.step_id in selected else "disabled",
        ]
        print(f"{step.step_id:40} {scope:6} {' '.join(flags):30} {step.description}")
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="workstation-setup", description="Provision a Debian desktop workstation.")
    p.add_argument("--config", default=None, help=f"YAML configuration (default: {DEFAULT_CONFIG_PATH} if present)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to the run log")
    p.add_argument("--report", default=DEFAULT_REPORT_PATH, help="Path to the run report (.json|.yaml)")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 30_set_default_shell)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    p.add_argument("--reboot", action="store_true", help="Reboot when setup finishes")
    p.add_argument("--verbose", action="store_true", help="Log command output")
    p.add_argument("--list-steps", action="store_true", help="List steps and exit")

    args = p.parse_args(argv)
    config_path = args.config or DEFAULT_CONFIG_PATH
    config_required = args.config is not None

    if args.list_steps:
        try:
            return list_steps(config_path, config_required=config_required)
        except ConfigError as e:
            p.error(str(e))

    return run(
        config_path=config_path,
        config_required=config_required,
        log_path=args.log,
        report_path=args.report,
        start_at=args.start_at,
        stop_after=args.stop_after,
        dry_run=bool(args.dry_run),
        reboot=bool(args.reboot),
        verbose=bool(args.verbose),
    )


if __name__ == "__main__":
    raise SystemExit(main())
