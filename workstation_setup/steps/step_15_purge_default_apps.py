from __future__ import annotations

import logging

from ..lib.manifests import string_list
from ..lib.pkg import apt_purge, installed_subset
from ..pipeline import RunContext
from .base import GNOME_ONLY, BaseStep

logger = logging.getLogger(__name__)


class PurgeDefaultAppsStep(BaseStep):
    step_id = "15_purge_default_apps"
    description = "Remove bundled GNOME applications"
    variants = GNOME_ONLY

    def action(self, ctx: RunContext) -> None:
        wanted_gone = string_list(ctx.manifest, "purge")
        # apt-get purge refuses unknown names, so only pass what is actually installed.
        present = wanted_gone if ctx.dry_run else installed_subset(wanted_gone)
        if not present:
            logger.info("Nothing to purge")
            return
        apt_purge(present, dry_run=ctx.dry_run)
        logger.info("Purged %d package(s)", len(present))

    def verify(self, ctx: RunContext) -> bool:
        leftover = installed_subset(string_list(ctx.manifest, "purge"))
        if leftover:
            logger.error("Still installed after purge: %s", ", ".join(leftover))
        return not leftover
