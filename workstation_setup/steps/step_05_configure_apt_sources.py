from __future__ import annotations

import logging
from pathlib import Path

from ..lib.apt_repo import write_debian_sources
from ..pipeline import RunContext
from .base import BaseStep

logger = logging.getLogger(__name__)

DEBIAN_SOURCES = Path("/etc/apt/sources.list.d/debian.sources")


class ConfigureAptSourcesStep(BaseStep):
    step_id = "05_configure_apt_sources"
    description = "Point apt at the configured Debian suite (deb822 format)"
    critical = True
    default_enabled = False

    def action(self, ctx: RunContext) -> None:
        suite = ctx.settings.apt_suite
        write_debian_sources(suite, dry_run=ctx.dry_run)
        logger.info("Debian sources set to %s", suite)

    def verify(self, ctx: RunContext) -> bool:
        return DEBIAN_SOURCES.is_file()
