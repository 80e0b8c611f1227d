from __future__ import annotations

import logging
from pathlib import Path

from ..lib.manifests import section
from ..lib.net import download, download_as_user
from ..lib.pkg import apt_fix_broken, dpkg_architecture, dpkg_install, is_installed
from ..pipeline import RunContext
from .base import BaseStep

logger = logging.getLogger(__name__)


class InstallTerminalStep(BaseStep):
    step_id = "45_install_terminal"
    description = "Install the terminal emulator from its .deb"
    retryable = True

    def action(self, ctx: RunContext) -> None:
        cfg = section(ctx.manifest, "terminal")
        package = str(cfg["package"])
        if not ctx.dry_run and is_installed(package):
            logger.info("%s already installed", package)
            return

        arch = dpkg_architecture(dry_run=ctx.dry_run)
        url = str(cfg["deb_url"]).format(arch=arch)
        deb = download(url, ctx.work_dir / Path(url).name, dry_run=ctx.dry_run)

        # The package ships terminfo files that collide with ncurses-term.
        dpkg_install(str(deb), force_overwrite=True, dry_run=ctx.dry_run)
        apt_fix_broken(dry_run=ctx.dry_run)

    def verify(self, ctx: RunContext) -> bool:
        return is_installed(str(section(ctx.manifest, "terminal")["package"]))


class ConfigureTerminalStep(BaseStep):
    step_id = "46_configure_terminal"
    description = "Install the terminal emulator configuration for the user"
    retryable = True

    def _target(self, ctx: RunContext) -> Path:
        return ctx.principal.home / ".config" / "ghostty" / "config"

    def action(self, ctx: RunContext) -> None:
        url = str(section(ctx.manifest, "dotfiles")["ghostty"])
        download_as_user(ctx.principal, url, self._target(ctx), dry_run=ctx.dry_run)

    def verify(self, ctx: RunContext) -> bool:
        return self._target(ctx).is_file()
