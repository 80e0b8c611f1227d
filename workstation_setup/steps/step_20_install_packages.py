from __future__ import annotations

import logging

from ..lib.manifests import string_list
from ..lib.pkg import apt_install, missing_packages
from ..pipeline import RunContext
from .base import GNOME_ONLY, BaseStep

logger = logging.getLogger(__name__)


def _verify_installed(packages: list[str]) -> bool:
    missing = missing_packages(packages)
    if missing:
        logger.error("Not installed: %s", ", ".join(missing))
    return not missing


class InstallCorePackagesStep(BaseStep):
    step_id = "20_install_core_packages"
    description = "Install developer tooling, CLI tools and media codecs"
    critical = True
    retryable = True

    def action(self, ctx: RunContext) -> None:
        apt_install(string_list(ctx.manifest, "core"), dry_run=ctx.dry_run)

    def verify(self, ctx: RunContext) -> bool:
        return _verify_installed(string_list(ctx.manifest, "core"))


class InstallDesktopToolsStep(BaseStep):
    step_id = "21_install_desktop_tools"
    description = "Install GNOME Tweaks, Extension Manager and the Flatpak software plugin"
    retryable = True
    variants = GNOME_ONLY

    def action(self, ctx: RunContext) -> None:
        apt_install(string_list(ctx.manifest, "gnome_tools"), dry_run=ctx.dry_run)

    def verify(self, ctx: RunContext) -> bool:
        return _verify_installed(string_list(ctx.manifest, "gnome_tools"))
