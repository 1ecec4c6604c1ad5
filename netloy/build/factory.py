"""Maps a requested format and runtime onto a concrete builder."""

from __future__ import annotations

import pathlib
from typing import Dict, FrozenSet, Optional, Type

from netloy.build.appimage import AppImagePackageBuilder
from netloy.build.builder import PackageBuilder
from netloy.build.deb import DebPackageBuilder
from netloy.build.exe import ExePackageBuilder
from netloy.build.flatpak import FlatpakPackageBuilder
from netloy.build.macos import AppPackageBuilder, DmgPackageBuilder
from netloy.build.msi import MsiPackageBuilder
from netloy.build.options import BuildOptions
from netloy.build.pacman import PacmanPackageBuilder
from netloy.build.portable import PortablePackageBuilder
from netloy.build.rpm import RpmPackageBuilder
from netloy.config.models import Configuration
from netloy.core.command_runner import CommandRunner
from netloy.core.confirm import Confirm
from netloy.core.logging_manager import get_logger
from netloy.core.platform import (
    LINUX_PACKAGES,
    MACOS_PACKAGES,
    RUNTIMES_BY_HOST,
    WINDOWS_PACKAGES,
    HostOS,
    PackageType,
    default_runtime,
    host_os,
)
from netloy.utils.exceptions import UnsupportedPlatformError

logger = get_logger(__name__)

BUILDERS: Dict[PackageType, Type[PackageBuilder]] = {
    PackageType.EXE: ExePackageBuilder,
    PackageType.MSI: MsiPackageBuilder,
    PackageType.APP: AppPackageBuilder,
    PackageType.DMG: DmgPackageBuilder,
    PackageType.APPIMAGE: AppImagePackageBuilder,
    PackageType.DEB: DebPackageBuilder,
    PackageType.RPM: RpmPackageBuilder,
    PackageType.PACMAN: PacmanPackageBuilder,
    PackageType.FLATPAK: FlatpakPackageBuilder,
    PackageType.PORTABLE: PortablePackageBuilder,
}

ALL_RUNTIMES: FrozenSet[str] = frozenset().union(*RUNTIMES_BY_HOST.values())


def required_host(package_type: PackageType) -> Optional[HostOS]:
    """Return the host a format must be built on, or None when any host will do."""
    if package_type in WINDOWS_PACKAGES:
        return HostOS.WINDOWS
    if package_type in MACOS_PACKAGES:
        return HostOS.MACOS
    if package_type in LINUX_PACKAGES:
        return HostOS.LINUX
    return None


class PackageBuilderFactory:
    """Single dispatch point from (format, runtime) to a builder.

    Attributes:
        configuration: Validated project configuration.
        options: Run options; ``runtime`` is filled in from the host when empty.
        host: Host operating system, detected when not given.
    """

    def __init__(
            self,
            configuration: Configuration,
            options: BuildOptions,
            confirm: Optional[Confirm] = None,
            runner: Optional[CommandRunner] = None,
            temp_root: Optional[pathlib.Path] = None,
            host: Optional[HostOS] = None,
            machine: Optional[str] = None,
    ) -> None:
        self.configuration = configuration
        self.options = options
        self.confirm = confirm
        self.runner = runner
        self.temp_root = temp_root
        self.host = host or host_os()
        self.machine = machine

    def unsupported_reason(self) -> Optional[str]:
        """Describe why the requested build is impossible, or None when it is possible."""
        package_type = self.options.package_type
        runtime = self.options.runtime
        host = self.host

        needed = required_host(package_type)
        if needed is not None and needed != host:
            return (
                f"Package type '{package_type.value}' can only be built on {needed.value}, "
                f"current host is {host.value} (runtime: {runtime or 'default'})"
            )

        if not runtime:
            if default_runtime(needed or host, self.machine) is None:
                return (
                    f"Could not determine a runtime for package type '{package_type.value}' "
                    f"on {host.value} from the processor architecture"
                )
            return None

        allowed = RUNTIMES_BY_HOST[needed] if needed is not None else ALL_RUNTIMES
        if runtime not in allowed:
            return (
                f"Runtime '{runtime}' is not supported for package type '{package_type.value}' "
                f"on {host.value}. Supported runtimes: {', '.join(sorted(allowed))}"
            )
        return None

    def can_create(self) -> bool:
        logger.info("Checking if package can be created", package_type=self.options.package_type.value)
        reason = self.unsupported_reason()
        if reason:
            logger.debug("Package cannot be created", reason=reason)
        return reason is None

    def create(self) -> PackageBuilder:
        """Return the builder for the requested format.

        Raises:
            UnsupportedPlatformError: When the format, runtime and host do not fit together.
        """
        reason = self.unsupported_reason()
        package_type = self.options.package_type
        if reason:
            raise UnsupportedPlatformError(
                reason,
                package_type=package_type.value,
                runtime=self.options.runtime,
                host=self.host.value,
            )

        options = self.options
        if not options.runtime:
            runtime = default_runtime(required_host(package_type) or self.host, self.machine)
            options = options.model_copy(update={"runtime": runtime})
            logger.debug("Runtime set from host architecture", runtime=runtime)

        builder_class = BUILDERS[package_type]
        return builder_class(
            self.configuration,
            options,
            confirm=self.confirm,
            runner=self.runner,
            temp_root=self.temp_root,
        )
