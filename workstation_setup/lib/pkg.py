from __future__ import annotations

import logging
from typing import Iterable, Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def apt_update(*, dry_run: bool = False) -> None:
    run_cmd(["apt-get", "update"], env=APT_ENV, dry_run=dry_run)


def apt_install(
    packages: Sequence[str],
    *,
    with_recommends: bool = True,
    dry_run: bool = False,
) -> None:
    if not packages:
        return
    argv = ["apt-get", "install", "-y"]
    if not with_recommends:
        argv.append("--no-install-recommends")
    run_cmd([*argv, *packages], env=APT_ENV, dry_run=dry_run)


def apt_purge(packages: Sequence[str], *, dry_run: bool = False) -> None:
    if not packages:
        return
    run_cmd(["apt-get", "purge", "-y", *packages], env=APT_ENV, dry_run=dry_run)


def apt_fix_broken(*, dry_run: bool = False) -> None:
    run_cmd(["apt-get", "install", "-f", "-y"], env=APT_ENV, dry_run=dry_run)


def apt_autoremove(*, dry_run: bool = False) -> None:
    run_cmd(["apt-get", "autoremove", "-y"], env=APT_ENV, dry_run=dry_run)


def apt_autoclean(*, dry_run: bool = False) -> None:
    run_cmd(["apt-get", "autoclean"], env=APT_ENV, dry_run=dry_run)


def apt_has_package(package: str, *, dry_run: bool = False) -> bool:
    """Return True if apt knows about a package name.

    This is useful for optional packages that may only exist in some repos.
    """
    if dry_run:
        # Be permissive in dry-run so planning doesn't fail.
        return True
    r = run_cmd(["apt-cache", "show", package], check=False)
    return r.returncode == 0


def is_installed(package: str) -> bool:
    r = run_cmd(["dpkg-query", "-W", "-f=${Status}", package], check=False)
    return r.returncode == 0 and "install ok installed" in r.stdout


def installed_subset(packages: Iterable[str]) -> list[str]:
    return [p for p in packages if is_installed(p)]


def missing_packages(packages: Iterable[str]) -> list[str]:
    return [p for p in packages if not is_installed(p)]


def dpkg_architecture(*, dry_run: bool = False) -> str:
    if dry_run:
        return "amd64"
    r = run_cmd(["dpkg", "--print-architecture"])
    return r.stdout.strip()


def dpkg_install(deb_path: str, *, force_overwrite: bool = False, dry_run: bool = False) -> bool:
    """Install a local .deb. Returns False if dpkg left dependencies unresolved."""

    argv = ["dpkg", "-i"]
    if force_overwrite:
        argv.append("--force-overwrite")
    r = run_cmd([*argv, deb_path], env=APT_ENV, check=False, dry_run=dry_run)
    if r.returncode != 0:
        logger.warning("dpkg -i %s exited %d; dependencies will be fixed up by apt", deb_path, r.returncode)
    return r.returncode == 0
