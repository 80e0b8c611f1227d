from __future__ import annotations

import logging

from ..lib.flatpak import add_remote, has_remote, install_apps, missing_apps
from ..lib.manifests import section
from ..pipeline import RunContext
from .base import BaseStep

logger = logging.getLogger(__name__)


def _apps(ctx: RunContext) -> list[str]:
    return [str(a) for a in (section(ctx.manifest, "flatpak").get("apps") or [])]


class AddFlatpakRemoteStep(BaseStep):
    step_id = "50_add_flatpak_remote"
    description = "Register the Flathub remote"
    retryable = True

    def action(self, ctx: RunContext) -> None:
        cfg = section(ctx.manifest, "flatpak")
        add_remote(str(cfg.get("remote", "flathub")), str(cfg["remote_url"]), dry_run=ctx.dry_run)

    def verify(self, ctx: RunContext) -> bool:
        return has_remote(str(section(ctx.manifest, "flatpak").get("remote", "flathub")))


class InstallFlatpakAppsStep(BaseStep):
    step_id = "51_install_flatpak_apps"
    description = "Install desktop applications from Flathub"
    retryable = True

    def action(self, ctx: RunContext) -> None:
        remote = str(section(ctx.manifest, "flatpak").get("remote", "flathub"))
        apps = _apps(ctx) if ctx.dry_run else missing_apps(_apps(ctx))
        if not apps:
            logger.info("All Flatpak applications already installed")
            return
        install_apps(remote, apps, dry_run=ctx.dry_run)

    def verify(self, ctx: RunContext) -> bool:
        missing = missing_apps(_apps(ctx))
        if missing:
            logger.error("Flatpak applications missing: %s", ", ".join(missing))
        return not missing
