from __future__ import annotations

import logging
from pathlib import Path

from ..lib.git import clone_as_user
from ..lib.manifests import section, string_list
from ..lib.pkg import apt_has_package, apt_install, is_installed, missing_packages
from ..lib.user import run_as_user
from ..pipeline import RunContext
from .base import GNOME_ONLY, BaseStep

logger = logging.getLogger(__name__)


def user_extension_dir(ctx: RunContext, uuid: str) -> Path:
    return ctx.principal.home / ".local" / "share" / "gnome-shell" / "extensions" / uuid


class InstallShellExtensionPackagesStep(BaseStep):
    step_id = "60_install_shell_extension_packages"
    description = "Install GNOME Shell extension support packages"
    retryable = True
    variants = GNOME_ONLY

    def action(self, ctx: RunContext) -> None:
        apt_install(string_list(section(ctx.manifest, "gnome_extensions"), "packages"), dry_run=ctx.dry_run)

    def verify(self, ctx: RunContext) -> bool:
        return not missing_packages(string_list(section(ctx.manifest, "gnome_extensions"), "packages"))


class InstallPopShellStep(BaseStep):
    step_id = "61_install_pop_shell"
    description = "Build and install the Pop Shell tiling extension for the user"
    retryable = True
    variants = GNOME_ONLY

    def _cfg(self, ctx: RunContext) -> dict:
        return section(section(ctx.manifest, "gnome_extensions"), "pop_shell")

    def action(self, ctx: RunContext) -> None:
        cfg = self._cfg(ctx)
        src = clone_as_user(
            ctx.principal,
            str(cfg["url"]),
            ctx.work_dir / "pop-shell",
            branch=cfg.get("branch"),
            fresh=True,
            dry_run=ctx.dry_run,
        )
        run_as_user(ctx.principal, ["make", "local-install"], cwd=str(src), dry_run=ctx.dry_run)

    def verify(self, ctx: RunContext) -> bool:
        return user_extension_dir(ctx, str(self._cfg(ctx)["uuid"])).is_dir()


class InstallBlurMyShellStep(BaseStep):
    step_id = "62_install_blur_my_shell"
    description = "Install Blur My Shell, from apt when packaged, otherwise from source"
    retryable = True
    variants = GNOME_ONLY

    def _cfg(self, ctx: RunContext) -> dict:
        return section(section(ctx.manifest, "gnome_extensions"), "blur_my_shell")

    def action(self, ctx: RunContext) -> None:
        cfg = self._cfg(ctx)
        package = str(cfg["package"])
        if apt_has_package(package, dry_run=ctx.dry_run):
            logger.info("Installing %s from the archive", package)
            apt_install([package], dry_run=ctx.dry_run)
            return

        logger.info("%s not packaged here; building from source", package)
        src = clone_as_user(
            ctx.principal,
            str(cfg["url"]),
            ctx.work_dir / "blur-my-shell",
            fresh=True,
            dry_run=ctx.dry_run,
        )
        run_as_user(ctx.principal, ["make", "install"], cwd=str(src), dry_run=ctx.dry_run)

    def verify(self, ctx: RunContext) -> bool:
        cfg = self._cfg(ctx)
        return is_installed(str(cfg["package"])) or user_extension_dir(ctx, str(cfg["uuid"])).is_dir()
