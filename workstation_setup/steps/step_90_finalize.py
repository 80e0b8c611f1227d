from __future__ import annotations

import logging

from ..lib.command import run_cmd
from ..lib.manifests import string_list
from ..lib.pkg import apt_autoclean, apt_autoremove
from ..pipeline import RunContext
from .base import BaseStep

logger = logging.getLogger(__name__)


class CleanPackageCacheStep(BaseStep):
    step_id = "90_clean_package_cache"
    description = "Remove orphaned packages and clean the apt cache"

    def action(self, ctx: RunContext) -> None:
        apt_autoremove(dry_run=ctx.dry_run)
        apt_autoclean(dry_run=ctx.dry_run)


def is_enabled(service: str) -> bool:
    r = run_cmd(["systemctl", "is-enabled", service], check=False)
    return r.stdout.strip() == "enabled"


class DisableServicesStep(BaseStep):
    step_id = "91_disable_services"
    description = "Disable services a workstation does not need"

    def action(self, ctx: RunContext) -> None:
        for service in string_list(ctx.manifest, "services_to_disable"):
            r = run_cmd(["systemctl", "disable", service], check=False, dry_run=ctx.dry_run)
            if r.returncode != 0:
                # Missing units are fine; the hardware may simply not have them.
                logger.info("Could not disable %s (exit %d)", service, r.returncode)

    def verify(self, ctx: RunContext) -> bool:
        still = [s for s in string_list(ctx.manifest, "services_to_disable") if is_enabled(s)]
        if still:
            logger.error("Still enabled: %s", ", ".join(still))
        return not still
