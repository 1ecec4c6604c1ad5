"""Package formats, runtime identifiers and host detection."""

from __future__ import annotations

import enum
import platform
import sys
from typing import Dict, FrozenSet, Optional


class PackageType(str, enum.Enum):
    """Installer formats that can be produced."""

    EXE = "exe"  # Inno Setup installer
    MSI = "msi"  # WiX installer
    APP = "app"  # Zipped macOS application bundle
    DMG = "dmg"  # macOS disk image
    APPIMAGE = "appimage"
    DEB = "deb"
    RPM = "rpm"
    PACMAN = "pacman"
    FLATPAK = "flatpak"
    PORTABLE = "portable"  # Archive of the publish directory

    @classmethod
    def parse(cls, value: str) -> "PackageType":
        try:
            return cls(value.strip().lower())
        except ValueError:
            names = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown package type '{value}'. Expected one of: {names}") from None


class HostOS(str, enum.Enum):
    """Operating systems the packager can run on."""

    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"


WINDOWS_PACKAGES = frozenset({PackageType.EXE, PackageType.MSI})
MACOS_PACKAGES = frozenset({PackageType.APP, PackageType.DMG})
LINUX_PACKAGES = frozenset(
    {PackageType.APPIMAGE, PackageType.DEB, PackageType.RPM, PackageType.PACMAN, PackageType.FLATPAK}
)

WINDOWS_RUNTIMES = frozenset({"win-x64", "win-x86", "win-arm64"})
MACOS_RUNTIMES = frozenset({"osx-x64", "osx-arm64"})
LINUX_RUNTIMES = frozenset({"linux-x64", "linux-x86", "linux-arm64", "linux-arm"})

RUNTIMES_BY_HOST: Dict[HostOS, FrozenSet[str]] = {
    HostOS.WINDOWS: WINDOWS_RUNTIMES,
    HostOS.MACOS: MACOS_RUNTIMES,
    HostOS.LINUX: LINUX_RUNTIMES,
}

RUNTIME_PREFIX: Dict[HostOS, str] = {
    HostOS.WINDOWS: "win",
    HostOS.MACOS: "osx",
    HostOS.LINUX: "linux",
}

# platform.machine() values mapped to runtime architecture suffixes
MACHINE_ARCH: Dict[str, str] = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv7h": "arm",
    "arm": "arm",
}

ARTIFACT_EXTENSIONS: Dict[PackageType, str] = {
    PackageType.EXE: ".exe",
    PackageType.MSI: ".msi",
    PackageType.APP: ".app.zip",
    PackageType.DMG: ".dmg",
    PackageType.APPIMAGE: ".AppImage",
    PackageType.DEB: ".deb",
    PackageType.RPM: ".rpm",
    PackageType.FLATPAK: ".flatpak",
    PackageType.PACMAN: ".pkg.tar.zst",
}


def host_os() -> HostOS:
    """Return the operating system the process runs on."""
    if sys.platform.startswith("win"):
        return HostOS.WINDOWS
    if sys.platform == "darwin":
        return HostOS.MACOS
    return HostOS.LINUX


def runtime_arch(runtime: str) -> str:
    """Return the architecture part of a runtime id (``linux-arm64`` -> ``arm64``)."""
    return runtime.rsplit("-", 1)[-1].lower()


def default_runtime(host: Optional[HostOS] = None, machine: Optional[str] = None) -> Optional[str]:
    """Derive a runtime id from the host and its processor architecture.

    Args:
        host: Host operating system, detected when omitted.
        machine: Value of ``platform.machine()``, detected when omitted.

    Returns:
        A runtime id such as ``linux-x64``, or None when the architecture has no
        supported runtime on that host.
    """
    host = host or host_os()
    machine = (machine if machine is not None else platform.machine()).lower()
    arch = MACHINE_ARCH.get(machine)
    if arch is None:
        return None

    runtime = f"{RUNTIME_PREFIX[host]}-{arch}"
    if runtime not in RUNTIMES_BY_HOST[host]:
        return None
    return runtime


def artifact_extension(package_type: PackageType, host: Optional[HostOS] = None) -> str:
    """Return the file extension of the artifact a format produces.

    Portable archives are zip files on Windows hosts and tarballs elsewhere.
    """
    if package_type == PackageType.PORTABLE:
        return ".zip" if (host or host_os()) == HostOS.WINDOWS else ".tar.gz"
    return ARTIFACT_EXTENSIONS[package_type]
