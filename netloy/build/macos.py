"""macOS application bundle builders.

Both formats assemble ``<AppFriendlyName>.app``; the App format zips it with
``ditto`` and the DMG format wraps it in a compressed disk image with
``hdiutil``. Code signing and notarization are not performed.
"""

from __future__ import annotations

import os
import pathlib
import plistlib
from typing import Any, Dict, List

from netloy.build.builder import PackageBuilder
from netloy.build.utils import copy_file, make_executable, make_readable_tree, write_lf
from netloy.core.logging_manager import get_logger
from netloy.core.platform import PackageType
from netloy.macro.registry import MacroId

logger = get_logger(__name__)

INFO_PLIST_FILE_NAME = "Info.plist"
PKG_INFO_FILE_NAME = "PkgInfo"
# Type code and creator code, 4 bytes each
PKG_INFO_CONTENT = "APPL????"


class MacOsPackageBuilder(PackageBuilder):
    """Shared ``.app`` bundle layout."""

    required_tools: Dict[str, str] = {}

    @property
    def bundle_name(self) -> str:
        return f"{self.config.app_friendly_name}.app"

    @property
    def bundle_path(self) -> pathlib.Path:
        return self.context.root_dir / self.bundle_name

    @property
    def contents_directory(self) -> pathlib.Path:
        return self.bundle_path / "Contents"

    @property
    def resources_directory(self) -> pathlib.Path:
        return self.contents_directory / "Resources"

    @property
    def publish_directory(self) -> pathlib.Path:
        return self.contents_directory / "MacOS"

    @property
    def icon_file_name(self) -> str:
        return f"{self.config.app_base_name}.icns"

    def validation_errors(self) -> List[str]:
        errors = super().validation_errors()
        if not self.config.icons_with_extension("icns"):
            errors.append("No .icns icon file found. macOS package requires an .icns icon file.")
        return errors

    def stage(self) -> None:
        self.resources_directory.mkdir(parents=True, exist_ok=True)
        icon = self.macros.get(MacroId.PRIMARY_ICON_FILE_PATH)
        if icon:
            copy_file(icon, self.resources_directory / self.icon_file_name)
            logger.info("Icon copied to Resources directory", icon=self.icon_file_name)

    def info_plist(self) -> Dict[str, Any]:
        """Return the generated Info.plist used when no template is configured."""
        config = self.config
        return {
            "CFBundleName": config.app_friendly_name,
            "CFBundleDisplayName": config.app_friendly_name,
            "CFBundleIdentifier": config.app_id,
            "CFBundleVersion": self.context.app_version,
            "CFBundleShortVersionString": self.context.app_version,
            "CFBundleExecutable": self.context.app_exec_name,
            "CFBundleIconFile": self.icon_file_name,
            "CFBundlePackageType": "APPL",
            "LSApplicationCategoryType": self.macros.get(MacroId.PRIME_CATEGORY),
            "NSHumanReadableCopyright": config.publisher_copyright,
            "NSHighResolutionCapable": True,
        }

    def write_manifest(self) -> None:
        contents = self.contents_directory
        info_plist = contents / INFO_PLIST_FILE_NAME
        if self.config.mac_os_info_plist:
            self.expand_file(pathlib.Path(self.config.mac_os_info_plist), info_plist)
        else:
            logger.info("No Info.plist configured. Generating one")
            with open(info_plist, "wb") as f:
                plistlib.dump(self.info_plist(), f)
        logger.info("Info.plist written", path=str(info_plist))

        if self.config.mac_os_entitlements:
            source = pathlib.Path(self.config.mac_os_entitlements)
            self.expand_file(source, contents / source.name)

        write_lf(contents / PKG_INFO_FILE_NAME, PKG_INFO_CONTENT)

        make_executable(self.publish_directory / self.context.app_exec_name)
        make_readable_tree(self.bundle_path)


class AppPackageBuilder(MacOsPackageBuilder):
    """Zipped ``.app`` bundle."""

    package_type = PackageType.APP
    required_tools = {"ditto": "ditto not found. The App package must be built on macOS"}

    def invoke(self) -> pathlib.Path:
        if self.output_path.exists():
            self.output_path.unlink()
        self.run_tool(
            ["ditto", "-c", "-k", "--sequesterRsrc", "--keepParent", self.bundle_name, str(self.output_path)],
            cwd=self.context.root_dir,
        )
        return self.output_path


class DmgPackageBuilder(MacOsPackageBuilder):
    """Disk image holding the bundle and a link to ``/Applications``."""

    package_type = PackageType.DMG
    required_tools = {"hdiutil": "hdiutil not found. The DMG package must be built on macOS"}

    @property
    def bundle_path(self) -> pathlib.Path:
        return self.stage_directory / self.bundle_name

    @property
    def stage_directory(self) -> pathlib.Path:
        return self.context.root_dir / "dmg"

    def invoke(self) -> pathlib.Path:
        link = self.stage_directory / "Applications"
        if not link.is_symlink():
            os.symlink("/Applications", link)

        if self.output_path.exists():
            self.output_path.unlink()
        self.run_tool(
            [
                "hdiutil",
                "create",
                "-volname",
                self.config.app_friendly_name,
                "-srcfolder",
                str(self.stage_directory),
                "-ov",
                "-format",
                "UDZO",
                str(self.output_path),
            ]
        )
        return self.output_path
