from __future__ import annotations

import logging
import os
import tarfile
from pathlib import Path

from ..lib.manifests import section
from ..lib.net import download, download_as_user
from ..pipeline import RunContext
from .base import BaseStep

logger = logging.getLogger(__name__)


def extract_binary(archive: Path, member_name: str, dest_dir: Path) -> Path:
    """Copy a single file named ``member_name`` out of a tarball into dest_dir, mode 0755."""

    with tarfile.open(archive) as tar:
        member = next(
            (m for m in tar.getmembers() if m.isfile() and Path(m.name).name == member_name),
            None,
        )
        if member is None:
            raise RuntimeError(f"{member_name} not found in {archive}")
        src = tar.extractfile(member)
        if src is None:
            raise RuntimeError(f"cannot read {member.name} from {archive}")
        dest_dir.mkdir(parents=True, exist_ok=True)
        dest = dest_dir / member_name
        tmp = dest.with_name(f".{member_name}.tmp")
        with src, open(tmp, "wb") as out:
            out.write(src.read())
    os.chmod(tmp, 0o755)
    os.replace(tmp, dest)
    return dest


class InstallEzaStep(BaseStep):
    step_id = "25_install_eza"
    description = "Install eza (ls replacement) from the upstream release tarball"
    retryable = True

    def _cfg(self, ctx: RunContext) -> dict:
        return section(section(ctx.manifest, "cli_tools"), "eza")

    def action(self, ctx: RunContext) -> None:
        cfg = self._cfg(ctx)
        archive = download(str(cfg["url"]), ctx.work_dir / "eza.tar.gz", dry_run=ctx.dry_run)
        if ctx.dry_run:
            return
        dest = extract_binary(archive, str(cfg.get("binary", "eza")), Path(cfg.get("install_dir", "/usr/local/bin")))
        logger.info("Installed %s", dest)

    def verify(self, ctx: RunContext) -> bool:
        cfg = self._cfg(ctx)
        binary = Path(cfg.get("install_dir", "/usr/local/bin")) / str(cfg.get("binary", "eza"))
        return os.access(binary, os.X_OK)


class ConfigureFastfetchStep(BaseStep):
    step_id = "26_configure_fastfetch"
    description = "Install the fastfetch configuration for the user"
    retryable = True

    def _target(self, ctx: RunContext) -> Path:
        return ctx.principal.home / ".config" / "fastfetch" / "config.jsonc"

    def action(self, ctx: RunContext) -> None:
        url = str(section(ctx.manifest, "dotfiles")["fastfetch"])
        download_as_user(ctx.principal, url, self._target(ctx), dry_run=ctx.dry_run)

    def verify(self, ctx: RunContext) -> bool:
        return self._target(ctx).is_file()
