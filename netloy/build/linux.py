"""Shared layout for the Linux package formats.

Linux packages carry the same desktop integration files regardless of format:
a ``.desktop`` entry, optional AppStream metainfo, hicolor icons and an
optional launcher script on PATH.
"""

from __future__ import annotations

import pathlib
from typing import Dict, List, Optional

from netloy.build.builder import PackageBuilder
from netloy.build.utils import copy_file, make_executable, write_lf
from netloy.config.models import IconDescriptor
from netloy.core.logging_manager import get_logger
from netloy.core.platform import PackageType, runtime_arch
from netloy.utils.exceptions import BuildError

logger = get_logger(__name__)

DESKTOP_FILE_EXTENSION = ".desktop"
METAINFO_FILE_EXTENSION = ".metainfo.xml"

# Runtime architecture -> architecture name used by each format
ARCH_MAPS: Dict[PackageType, Dict[str, str]] = {
    PackageType.DEB: {"x64": "amd64", "arm64": "arm64", "x86": "i386", "arm": "armhf"},
    PackageType.RPM: {"x64": "x86_64", "arm64": "aarch64", "x86": "i686", "arm": "armhfp"},
    PackageType.PACMAN: {"x64": "x86_64", "arm64": "aarch64", "x86": "i686", "arm": "armv7h"},
    PackageType.APPIMAGE: {"x64": "x86_64", "arm64": "arm_aarch64", "x86": "i686", "arm": "arm"},
    PackageType.FLATPAK: {"x64": "x86_64", "arm64": "aarch64", "x86": "i386", "arm": "arm"},
}

DEFAULT_DESKTOP_ENTRY = """[Desktop Entry]
Type=Application
Name=${APP_FRIENDLY_NAME}
Comment=${APP_SHORT_SUMMARY}
Exec=${INSTALL_EXEC}
Icon=${APP_ID}
Terminal=${DESKTOP_TERMINAL}
NoDisplay=${DESKTOP_NODISPLAY}
Categories=${PRIME_CATEGORY};
"""


def linux_arch(package_type: PackageType, runtime: str) -> str:
    """Translate a runtime id to the architecture name a format expects."""
    arch = runtime_arch(runtime)
    return ARCH_MAPS.get(package_type, {}).get(arch, arch)


def icon_bucket(icon: IconDescriptor) -> str:
    """Return the hicolor size directory (``128x128``) for a PNG icon.

    Raises:
        BuildError: If the size cannot be read from the file name.
    """
    if icon.size_bucket is None:
        raise BuildError(f"Unable to determine icon size for {icon.path.name}")
    return icon.size_bucket


def largest_png(icons: List[IconDescriptor]) -> Optional[IconDescriptor]:
    pngs = [icon for icon in icons if icon.extension == "png"]
    return max(pngs, key=lambda icon: icon.area, default=None)


class LinuxPackageBuilder(PackageBuilder):
    """Base for DEB, RPM, Pacman, AppImage and Flatpak builders.

    Subclasses choose where the ``usr`` tree lives through ``usr_directory``.
    """

    include_pixmaps = True
    include_launcher = True

    @property
    def package_arch(self) -> str:
        return linux_arch(self.package_type, self.context.runtime)

    @property
    def install_exec(self) -> str:
        return f"/opt/{self.config.app_id}/{self.context.app_exec_name}"

    @property
    def usr_directory(self) -> pathlib.Path:
        return self.context.root_dir / "usr"

    @property
    def bin_directory(self) -> pathlib.Path:
        return self.usr_directory / "bin"

    @property
    def share_directory(self) -> pathlib.Path:
        return self.usr_directory / "share"

    @property
    def applications_directory(self) -> pathlib.Path:
        return self.share_directory / "applications"

    @property
    def metainfo_directory(self) -> pathlib.Path:
        return self.share_directory / "metainfo"

    @property
    def hicolor_directory(self) -> pathlib.Path:
        return self.share_directory / "icons" / "hicolor"

    @property
    def pixmaps_directory(self) -> pathlib.Path:
        return self.share_directory / "pixmaps"

    @property
    def desktop_file_path(self) -> pathlib.Path:
        return self.applications_directory / f"{self.config.app_id}{DESKTOP_FILE_EXTENSION}"

    @property
    def metainfo_file_path(self) -> pathlib.Path:
        return self.metainfo_directory / f"{self.config.app_id}{METAINFO_FILE_EXTENSION}"

    @property
    def launcher_path(self) -> Optional[pathlib.Path]:
        if not self.include_launcher or not self.config.start_command:
            return None
        return self.bin_directory / self.config.start_command

    def validation_errors(self) -> List[str]:
        errors = super().validation_errors()
        if not self.config.icons:
            logger.warning("No icons configured. At least one icon is recommended")
        return errors

    def stage(self) -> None:
        self.create_share_tree()
        self.write_desktop_entry()
        self.write_metainfo()
        self.install_icons()
        self.write_launcher()

    def create_share_tree(self) -> None:
        directories = [
            self.bin_directory,
            self.applications_directory,
            self.metainfo_directory,
            self.hicolor_directory,
        ]
        if self.include_pixmaps:
            directories.append(self.pixmaps_directory)
        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    def desktop_entry(self) -> str:
        """Return the macro-expanded desktop entry text."""
        if self.config.desktop_file:
            template = pathlib.Path(self.config.desktop_file).read_text(encoding="utf-8-sig")
        else:
            logger.info("No desktop file configured. Generating one")
            template = DEFAULT_DESKTOP_ENTRY
        return self.macros.expand(template)

    def write_desktop_entry(self) -> pathlib.Path:
        path = write_lf(self.desktop_file_path, self.desktop_entry())
        logger.info("Desktop file written", path=str(path))
        return path

    def write_metainfo(self) -> Optional[pathlib.Path]:
        if not self.config.meta_file:
            logger.info("MetaInfo file not provided. Skipping")
            return None
        path = self.expand_file(pathlib.Path(self.config.meta_file), self.metainfo_file_path)
        logger.info("MetaInfo file written", path=str(path))
        return path

    def install_icons(self) -> None:
        app_id = self.config.app_id
        for icon in self.icons:
            if icon.extension == "png":
                copy_file(icon.path, self.hicolor_directory / icon_bucket(icon) / "apps" / f"{app_id}.png")
            elif icon.extension == "svg":
                copy_file(icon.path, self.hicolor_directory / "scalable" / "apps" / f"{app_id}.svg")

        if self.include_pixmaps:
            largest = largest_png(self.icons)
            if largest is not None:
                copy_file(largest.path, self.pixmaps_directory / f"{app_id}.png")
        logger.debug("Icons installed", directory=str(self.hicolor_directory))

    def write_launcher(self) -> Optional[pathlib.Path]:
        path = self.launcher_path
        if path is None:
            logger.info("No start command configured. Skipping launcher script")
            return None

        text = (
            "#!/bin/bash\n"
            f"# Launcher script for {self.config.app_base_name}\n"
            "\n"
            f'exec {self.install_exec} "$@"\n'
        )
        write_lf(path, text)
        make_executable(path)
        logger.info("Launcher script written", path=str(path))
        return path

    def copy_license(self, target: pathlib.Path) -> Optional[pathlib.Path]:
        if not self.config.app_license_file:
            logger.info("No license file configured. Skipping")
            return None
        return copy_file(self.config.app_license_file, target)
