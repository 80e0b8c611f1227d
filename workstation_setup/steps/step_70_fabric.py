from __future__ import annotations

import logging
import os
from pathlib import Path

from ..lib.git import clone_as_user
from ..lib.manifests import section
from ..lib.user import ensure_user_dir, run_as_user
from ..pipeline import RunContext
from .base import BaseStep

logger = logging.getLogger(__name__)


def go_env(ctx: RunContext) -> dict[str, str]:
    gopath = ctx.principal.home / "go"
    path = os.environ.get("PATH", "/usr/local/bin:/usr/bin:/bin")
    return {"GOPATH": str(gopath), "PATH": f"{path}:{gopath}/bin:/usr/local/go/bin"}


class InstallFabricStep(BaseStep):
    step_id = "70_install_fabric"
    description = "Install Fabric with go install"
    retryable = True

    def _binary(self, ctx: RunContext) -> Path:
        return ctx.principal.home / "go" / "bin" / "fabric"

    def action(self, ctx: RunContext) -> None:
        module = str(section(ctx.manifest, "fabric")["module"])
        run_as_user(ctx.principal, ["go", "install", module], extra_env=go_env(ctx), dry_run=ctx.dry_run)

    def verify(self, ctx: RunContext) -> bool:
        return self._binary(ctx).is_file()


class InstallFabricCompletionsStep(BaseStep):
    step_id = "71_install_fabric_completions"
    description = "Install Fabric's zsh completion and an empty .env"
    retryable = True

    def _completion_target(self, ctx: RunContext) -> Path:
        return ctx.principal.home / ".zsh" / "completions" / "_fabric"

    def action(self, ctx: RunContext) -> None:
        cfg = section(ctx.manifest, "fabric")
        src = clone_as_user(
            ctx.principal,
            str(cfg["repo_url"]),
            ctx.work_dir / "fabric",
            depth=1,
            fresh=True,
            dry_run=ctx.dry_run,
        )
        target = self._completion_target(ctx)
        ensure_user_dir(ctx.principal, target.parent, dry_run=ctx.dry_run)
        run_as_user(
            ctx.principal,
            ["cp", str(src / str(cfg.get("completion", "completions/_fabric"))), str(target)],
            dry_run=ctx.dry_run,
        )

        config_dir = ctx.principal.home / ".config" / "fabric"
        ensure_user_dir(ctx.principal, config_dir, dry_run=ctx.dry_run)
        run_as_user(ctx.principal, ["touch", str(config_dir / ".env")], dry_run=ctx.dry_run)

    def verify(self, ctx: RunContext) -> bool:
        return self._completion_target(ctx).is_file()
