from __future__ import annotations

import logging
import pwd
import shutil
from pathlib import Path

from ..lib.command import run_cmd
from ..lib.git import clone_as_user
from ..lib.manifests import section
from ..lib.net import download, download_as_user
from ..lib.user import run_as_user
from ..pipeline import RunContext
from .base import BaseStep

logger = logging.getLogger(__name__)

GO_ENV_BLOCK = (
    "\n"
    "# Go environment variables\n"
    "export GOPATH=$HOME/go\n"
    "export PATH=$PATH:$GOPATH/bin:/usr/local/go/bin\n"
)


def oh_my_zsh_dir(ctx: RunContext) -> Path:
    return ctx.principal.home / ".oh-my-zsh"


def current_shell(username: str) -> str:
    return pwd.getpwnam(username).pw_shell


class SetDefaultShellStep(BaseStep):
    step_id = "30_set_default_shell"
    description = "Make zsh the user's login shell"

    def action(self, ctx: RunContext) -> None:
        zsh = shutil.which("zsh") or "/usr/bin/zsh"
        if not ctx.dry_run and current_shell(ctx.principal.username) == zsh:
            logger.info("%s already uses %s", ctx.principal.username, zsh)
            return
        run_cmd(["chsh", "-s", zsh, ctx.principal.username], dry_run=ctx.dry_run)

    def verify(self, ctx: RunContext) -> bool:
        return Path(current_shell(ctx.principal.username)).name == "zsh"


class InstallOhMyZshStep(BaseStep):
    step_id = "31_install_oh_my_zsh"
    description = "Install Oh My Zsh for the user"
    retryable = True

    def action(self, ctx: RunContext) -> None:
        if oh_my_zsh_dir(ctx).is_dir():
            logger.info("Oh My Zsh already installed at %s", oh_my_zsh_dir(ctx))
            return
        url = str(section(ctx.manifest, "zsh")["oh_my_zsh_installer"])
        installer = download(url, ctx.work_dir / "install-ohmyzsh.sh", dry_run=ctx.dry_run)
        # The shell and .zshrc are handled by their own steps.
        run_as_user(
            ctx.principal,
            ["sh", str(installer), "--unattended"],
            extra_env={"RUNZSH": "no", "CHSH": "no", "KEEP_ZSHRC": "yes"},
            dry_run=ctx.dry_run,
        )

    def verify(self, ctx: RunContext) -> bool:
        return oh_my_zsh_dir(ctx).is_dir()


class InstallZshPluginsStep(BaseStep):
    step_id = "32_install_zsh_plugins"
    description = "Clone zsh plugins into the Oh My Zsh custom directory"
    retryable = True

    def _plugins(self, ctx: RunContext) -> list[dict]:
        return list(section(ctx.manifest, "zsh").get("plugins") or [])

    def _plugin_dir(self, ctx: RunContext, name: str) -> Path:
        return oh_my_zsh_dir(ctx) / "custom" / "plugins" / name

    def action(self, ctx: RunContext) -> None:
        for plugin in self._plugins(ctx):
            clone_as_user(
                ctx.principal,
                str(plugin["url"]),
                self._plugin_dir(ctx, str(plugin["name"])),
                depth=plugin.get("depth"),
                dry_run=ctx.dry_run,
            )

    def verify(self, ctx: RunContext) -> bool:
        missing = [p["name"] for p in self._plugins(ctx) if not self._plugin_dir(ctx, str(p["name"])).is_dir()]
        if missing:
            logger.error("zsh plugins missing: %s", ", ".join(missing))
        return not missing


class ApplyZshrcStep(BaseStep):
    step_id = "33_apply_zshrc"
    description = "Install the user's .zshrc and make sure it exports the Go paths"
    retryable = True

    def _zshrc(self, ctx: RunContext) -> Path:
        return ctx.principal.home / ".zshrc"

    def action(self, ctx: RunContext) -> None:
        url = str(section(ctx.manifest, "dotfiles")["zshrc"])
        zshrc = download_as_user(ctx.principal, url, self._zshrc(ctx), dry_run=ctx.dry_run)
        if ctx.dry_run:
            return
        if "export GOPATH" not in zshrc.read_text(encoding="utf-8", errors="ignore"):
            with zshrc.open("a", encoding="utf-8") as f:
                f.write(GO_ENV_BLOCK)
            logger.info("Appended Go environment to %s", zshrc)

    def verify(self, ctx: RunContext) -> bool:
        zshrc = self._zshrc(ctx)
        return zshrc.is_file() and "GOPATH" in zshrc.read_text(encoding="utf-8", errors="ignore")
