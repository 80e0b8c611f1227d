from __future__ import annotations

import logging

from ..lib.apt_repo import install_signing_key, write_source_list
from ..lib.manifests import section
from ..lib.pkg import apt_install, apt_update, is_installed
from ..pipeline import RunContext
from .base import BaseStep

logger = logging.getLogger(__name__)


class InstallBrowserStep(BaseStep):
    step_id = "40_install_browser"
    description = "Add the browser vendor's apt repository and install the browser"
    retryable = True

    def action(self, ctx: RunContext) -> None:
        cfg = section(ctx.manifest, "browser")
        package = str(cfg["package"])
        if not ctx.dry_run and is_installed(package):
            logger.info("%s already installed", package)
            return

        keyring = install_signing_key(
            key_url=str(cfg["key_url"]),
            keyring_name=str(cfg["keyring"]),
            work_dir=ctx.work_dir,
            dry_run=ctx.dry_run,
        )
        write_source_list(
            name=str(cfg["repo_name"]),
            uri=str(cfg["repo_uri"]),
            suite=str(cfg.get("suite", "stable")),
            components=[str(c) for c in (cfg.get("components") or ["main"])],
            keyring=keyring,
            dry_run=ctx.dry_run,
        )
        apt_update(dry_run=ctx.dry_run)
        apt_install([package], dry_run=ctx.dry_run)

    def verify(self, ctx: RunContext) -> bool:
        return is_installed(str(section(ctx.manifest, "browser")["package"]))
