from .step_05_configure_apt_sources import ConfigureAptSourcesStep
from .step_10_refresh_package_index import RefreshPackageIndexStep
from .step_15_purge_default_apps import PurgeDefaultAppsStep
from .step_20_install_packages import InstallCorePackagesStep, InstallDesktopToolsStep
from .step_25_cli_tools import ConfigureFastfetchStep, InstallEzaStep
from .step_30_shell import (
    ApplyZshrcStep,
    InstallOhMyZshStep,
    InstallZshPluginsStep,
    SetDefaultShellStep,
)
from .step_40_install_browser import InstallBrowserStep
from .step_45_terminal import ConfigureTerminalStep, InstallTerminalStep
from .step_50_flatpak import AddFlatpakRemoteStep, InstallFlatpakAppsStep
from .step_60_shell_extensions import (
    InstallBlurMyShellStep,
    InstallPopShellStep,
    InstallShellExtensionPackagesStep,
)
from .step_70_fabric import InstallFabricCompletionsStep, InstallFabricStep
from .step_90_finalize import CleanPackageCacheStep, DisableServicesStep

__all__ = [
    "ConfigureAptSourcesStep",
    "RefreshPackageIndexStep",
    "PurgeDefaultAppsStep",
    "InstallCorePackagesStep",
    "InstallDesktopToolsStep",
    "InstallEzaStep",
    "ConfigureFastfetchStep",
    "SetDefaultShellStep",
    "InstallOhMyZshStep",
    "InstallZshPluginsStep",
    "ApplyZshrcStep",
    "InstallBrowserStep",
    "InstallTerminalStep",
    "ConfigureTerminalStep",
    "AddFlatpakRemoteStep",
    "InstallFlatpakAppsStep",
    "InstallShellExtensionPackagesStep",
    "InstallPopShellStep",
    "InstallBlurMyShellStep",
    "InstallFabricStep",
    "InstallFabricCompletionsStep",
    "CleanPackageCacheStep",
    "DisableServicesStep",
]
