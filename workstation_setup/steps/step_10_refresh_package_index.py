from __future__ import annotations

from ..lib.pkg import apt_update
from ..pipeline import RunContext
from .base import BaseStep


class RefreshPackageIndexStep(BaseStep):
    step_id = "10_refresh_package_index"
    description = "Update apt package lists"
    critical = True
    retryable = True

    def action(self, ctx: RunContext) -> None:
        apt_update(dry_run=ctx.dry_run)
