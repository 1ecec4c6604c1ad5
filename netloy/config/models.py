"""Configuration model for Netloy.

This module contains the typed record that a ``.netloy`` file is parsed into.
Each attribute is addressed in the file by its PascalCase alias (``AppBaseName``,
``DotnetPublishArgs`` and so on); keys are matched case-insensitively by the
parser.
"""

from __future__ import annotations

import pathlib
import re
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

LONG_VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+(\[\d+\])?$")
REVERSE_DNS_PATTERN = re.compile(r"^[a-z][a-z0-9]*(\.[a-z][a-z0-9]*)+$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
ICON_SIZE_PATTERN = re.compile(r"^(\d+)x(\d+)$", re.IGNORECASE)

CONFIG_FILE_EXTENSION = ".netloy"
ICON_EXTENSIONS = ("svg", "ico", "icns", "png")

# Value of DotnetProjectPath that disables the publish step
NO_PROJECT = "NONE"


def parse_icon_size(file_name: str) -> Optional[Tuple[int, int]]:
    """Parse the ``WxH`` segment of an icon file name such as ``app.128x128.png``.

    Args:
        file_name: Icon file name or path.

    Returns:
        (width, height) or None when the name has no parsable size segment.
    """
    parts = pathlib.Path(file_name).name.split(".")
    if len(parts) < 3:
        return None
    match = ICON_SIZE_PATTERN.match(parts[-2])
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


class IconDescriptor(BaseModel):
    """Icon file accepted during validation.

    Attributes:
        path: Absolute path of the icon file.
        extension: Lowercase extension without the dot.
        width: Width parsed from the file name, if present.
        height: Height parsed from the file name, if present.
    """

    path: pathlib.Path
    extension: str
    width: Optional[int] = None
    height: Optional[int] = None

    @classmethod
    def from_path(cls, path: pathlib.Path) -> "IconDescriptor":
        size = parse_icon_size(path.name)
        return cls(
            path=path,
            extension=path.suffix.lower().lstrip("."),
            width=size[0] if size else None,
            height=size[1] if size else None,
        )

    @property
    def size_bucket(self) -> Optional[str]:
        if self.width is None or self.height is None:
            return None
        return f"{self.width}x{self.height}"

    @property
    def area(self) -> int:
        return (self.width or 0) * (self.height or 0)


class Configuration(BaseModel):
    """Settings read from a ``.netloy`` file.

    Path attributes hold the text from the file until validation resolves
    them against the configuration file's directory.
    """

    model_config = ConfigDict(populate_by_name=True)

    # App preamble
    app_base_name: str = Field("", alias="AppBaseName")
    app_friendly_name: str = Field("", alias="AppFriendlyName")
    app_id: str = Field("", alias="AppId")
    app_version_release: str = Field("", alias="AppVersionRelease")
    app_short_summary: str = Field("", alias="AppShortSummary")
    app_description: str = Field("", alias="AppDescription")
    app_license_id: str = Field("", alias="AppLicenseId")
    app_license_file: str = Field("", alias="AppLicenseFile")
    app_change_file: str = Field("", alias="AppChangeFile")

    # Publisher
    publisher_name: str = Field("", alias="PublisherName")
    publisher_id: str = Field("", alias="PublisherId")
    publisher_copyright: str = Field("", alias="PublisherCopyright")
    publisher_link_name: str = Field("", alias="PublisherLinkName")
    publisher_link_url: str = Field("", alias="PublisherLinkUrl")
    publisher_email: str = Field("", alias="PublisherEmail")

    # Desktop integration
    desktop_no_display: bool = Field(False, alias="DesktopNoDisplay")
    desktop_terminal: bool = Field(False, alias="DesktopTerminal")
    desktop_file: str = Field("", alias="DesktopFile")
    start_command: str = Field("", alias="StartCommand")
    prime_category: str = Field("", alias="PrimeCategory")
    meta_file: str = Field("", alias="MetaFile")
    icon_files: str = Field("", alias="IconFiles")
    auto_generate_icons: bool = Field(False, alias="AutoGenerateIcons")

    # Dotnet publish
    dotnet_project_path: str = Field("", alias="DotnetProjectPath")
    dotnet_publish_args: str = Field("", alias="DotnetPublishArgs")
    dotnet_post_publish: str = Field("", alias="DotnetPostPublish")
    dotnet_post_publish_on_windows: str = Field("", alias="DotnetPostPublishOnWindows")
    dotnet_post_publish_arguments: str = Field("", alias="DotnetPostPublishArguments")

    # Package output
    package_name: str = Field("", alias="PackageName")
    output_directory: str = Field("", alias="OutputDirectory")

    # AppImage
    app_image_args: str = Field("", alias="AppImageArgs")

    # Flatpak
    flatpak_platform_runtime: str = Field("", alias="FlatpakPlatformRuntime")
    flatpak_platform_sdk: str = Field("", alias="FlatpakPlatformSdk")
    flatpak_platform_version: str = Field("", alias="FlatpakPlatformVersion")
    flatpak_finish_args: str = Field("", alias="FlatpakFinishArgs")
    flatpak_builder_args: str = Field("", alias="FlatpakBuilderArgs")

    # RPM
    rpm_auto_req: bool = Field(False, alias="RpmAutoReq")
    rpm_auto_prov: bool = Field(False, alias="RpmAutoProv")
    rpm_requires: str = Field("", alias="RpmRequires")

    # Debian
    debian_recommends: str = Field("", alias="DebianRecommends")

    # Pacman
    arch_depends: str = Field("", alias="ArchDepends")
    arch_opt_depends: str = Field("", alias="ArchOptDepends")

    # macOS
    mac_os_info_plist: str = Field("", alias="MacOsInfoPlist")
    mac_os_entitlements: str = Field("", alias="MacOsEntitlements")

    # Windows setup
    setup_group_name: str = Field("", alias="SetupGroupName")
    setup_admin_install: bool = Field(False, alias="SetupAdminInstall")
    setup_command_prompt: str = Field("", alias="SetupCommandPrompt")
    setup_min_windows_version: str = Field("10", alias="SetupMinWindowsVersion")
    setup_sign_tool: str = Field("", alias="SetupSignTool")
    msi_upgrade_code: str = Field("", alias="MsiUpgradeCode")
    setup_uninstall_script: str = Field("", alias="SetupUninstallScript")
    setup_password_encryption: str = Field("", alias="SetupPasswordEncryption")
    exe_wizard_image_file: str = Field("", alias="ExeWizardImageFile")
    exe_wizard_small_image_file: str = Field("", alias="ExeWizardSmallImageFile")
    msi_ui_banner: str = Field("", alias="MsiUiBanner")
    msi_ui_dialog: str = Field("", alias="MsiUiDialog")
    setup_close_applications: bool = Field(True, alias="SetupCloseApplications")
    setup_restart_if_needed: bool = Field(False, alias="SetupRestartIfNeeded")
    setup_uninstall_display_name: str = Field("", alias="SetupUninstallDisplayName")
    exe_version_info_company: str = Field("", alias="ExeVersionInfoCompany")
    exe_version_info_description: str = Field("", alias="ExeVersionInfoDescription")
    associate_files: bool = Field(False, alias="AssociateFiles")
    file_extension: str = Field("", alias="FileExtension")
    context_menu_integration: bool = Field(False, alias="ContextMenuIntegration")
    context_menu_text: str = Field("", alias="ContextMenuText")
    setup_start_on_windows_startup: bool = Field(False, alias="SetupStartOnWindowsStartup")

    # Configuration options
    config_version: str = Field("", alias="ConfigVersion")

    # Derived during validation, never read from or written to the file
    icons: List[IconDescriptor] = Field(default_factory=list, exclude=True)
    config_directory: Optional[pathlib.Path] = Field(None, exclude=True)

    @classmethod
    def key_map(cls) -> Dict[str, str]:
        """Map lowercase file keys to attribute names."""
        return {
            field.alias.lower(): name
            for name, field in cls.model_fields.items()
            if field.alias
        }

    @classmethod
    def alias_of(cls, attribute: str) -> str:
        return cls.model_fields[attribute].alias or attribute

    @classmethod
    def is_bool_field(cls, attribute: str) -> bool:
        return cls.model_fields[attribute].annotation in (bool, "bool")

    @property
    def publish_enabled(self) -> bool:
        return self.dotnet_project_path.strip().upper() != NO_PROJECT

    def icons_with_extension(self, extension: str) -> List[IconDescriptor]:
        return [icon for icon in self.icons if icon.extension == extension.lower().lstrip(".")]
