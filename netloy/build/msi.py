"""Windows Installer builder (WiX Toolset v4 ``wix build``)."""

from __future__ import annotations

import hashlib
import pathlib
import re
import uuid
from typing import List, Optional
from xml.etree import ElementTree

from netloy.build.builder import PackageBuilder
from netloy.build.utils import walk
from netloy.core.logging_manager import get_logger
from netloy.core.platform import PackageType, runtime_arch
from netloy.macro.registry import MacroId

logger = get_logger(__name__)

WIX_NAMESPACE = "http://wixtoolset.org/schemas/v4/wxs"
WIX_DOWNLOAD_URL = "https://wixtoolset.org/docs/intro/"
GUID_PATTERN = re.compile(r"^\{?[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\}?$")

ElementTree.register_namespace("", WIX_NAMESPACE)


def sanitize_id(value: str) -> str:
    """Keep letters, digits and dots; anything else becomes an underscore."""
    return "".join(char if char.isalnum() or char == "." else "_" for char in value)


def upgrade_code(app_id: str) -> str:
    """Stable UpgradeCode derived from the MD5 of the application id."""
    digest = hashlib.md5(app_id.encode("utf-8")).digest()
    return str(uuid.UUID(bytes_le=digest)).upper()


def _tag(name: str) -> str:
    return f"{{{WIX_NAMESPACE}}}{name}"


def _add(parent: ElementTree.Element, name: str, **attributes: str) -> ElementTree.Element:
    return ElementTree.SubElement(parent, _tag(name), attributes)


class MsiPackageBuilder(PackageBuilder):
    """Builds an ``.msi`` from a generated WiX source file."""

    package_type = PackageType.MSI
    required_tools = {"wix": f"WiX Toolset (wix) not found. Please install WiX Toolset v4+ from {WIX_DOWNLOAD_URL}"}

    @property
    def package_arch(self) -> str:
        return runtime_arch(self.context.runtime)

    @property
    def source_path(self) -> pathlib.Path:
        return self.context.root_dir / f"{self.config.app_base_name}.wxs"

    @property
    def registry_key(self) -> str:
        return f"Software\\{self.config.publisher_name}\\{self.config.app_base_name}"

    def validation_errors(self) -> List[str]:
        errors = super().validation_errors()
        config = self.config
        if config.msi_ui_banner and not pathlib.Path(config.msi_ui_banner).is_file():
            errors.append(f"MSI UI banner file not found: {config.msi_ui_banner}")
        if config.msi_ui_dialog and not pathlib.Path(config.msi_ui_dialog).is_file():
            errors.append(f"MSI UI dialog file not found: {config.msi_ui_dialog}")
        if (config.associate_files or config.context_menu_integration) and not config.setup_admin_install:
            errors.append("You must set SetupAdminInstall to true if you want to associate files or add context menu items.")
        if not config.icons_with_extension("ico"):
            errors.append("Couldn't find icon file. The ico file is required for building MSI package.")
        if config.msi_upgrade_code and not GUID_PATTERN.match(config.msi_upgrade_code):
            errors.append(f"Invalid MsiUpgradeCode: {config.msi_upgrade_code}. Must be a valid GUID.")
        return errors

    def write_manifest(self) -> None:
        document = ElementTree.ElementTree(self.wix_source())
        ElementTree.indent(document)
        document.write(self.source_path, encoding="utf-8", xml_declaration=True)
        logger.info("WiX source written", path=str(self.source_path))

    def wix_source(self) -> ElementTree.Element:
        config = self.config
        wix = ElementTree.Element(_tag("Wix"))
        self._package(wix)
        self._main_components(wix)
        self._application_files(wix)
        if config.associate_files or config.context_menu_integration:
            self._registry_components(wix)
        if config.start_command:
            self._path_environment(wix)
        return wix

    def _package(self, wix: ElementTree.Element) -> None:
        config = self.config
        package = _add(
            wix,
            "Package",
            Name=config.app_friendly_name,
            Manufacturer=config.publisher_name,
            Version=self.context.app_version,
            UpgradeCode=(config.msi_upgrade_code or upgrade_code(config.app_id)).strip("{}").upper(),
            Language="1033",
            Scope="perMachine" if config.setup_admin_install else "perUser",
        )
        _add(
            package,
            "MajorUpgrade",
            DowngradeErrorMessage="A newer version of [ProductName] is already installed.",
            AllowSameVersionUpgrades="yes",
        )
        _add(package, "MediaTemplate", EmbedCab="yes")
        _add(package, "Icon", Id="AppIcon", SourceFile=self.macros.get(MacroId.PRIMARY_ICON_FILE_PATH))
        _add(package, "Property", Id="ARPPRODUCTICON", Value="AppIcon")
        if config.publisher_link_url:
            _add(package, "Property", Id="ARPHELPLINK", Value=config.publisher_link_url)
        if config.app_short_summary:
            _add(package, "Property", Id="ARPCOMMENTS", Value=config.app_short_summary)

        standard = _add(
            package, "StandardDirectory", Id="ProgramFiles64Folder" if config.setup_admin_install else "LocalAppDataFolder"
        )
        _add(standard, "Directory", Id="INSTALLFOLDER", Name=config.setup_group_name or config.app_base_name)

        feature = _add(package, "Feature", Id="MainFeature", Title=config.app_friendly_name, Level="1")
        if config.app_short_summary:
            feature.set("Description", config.app_short_summary)
        _add(feature, "ComponentGroupRef", Id="MainComponents")
        _add(feature, "ComponentGroupRef", Id="ApplicationFiles")
        if config.associate_files or config.context_menu_integration:
            _add(feature, "ComponentGroupRef", Id="RegistryComponents")
        if config.start_command:
            path_feature = _add(
                feature,
                "Feature",
                Id="PathFeature",
                Title="Add to PATH",
                Description=f"Add {config.app_friendly_name} to system PATH",
                Level="1000",
            )
            _add(path_feature, "ComponentGroupRef", Id="PathComponents")

        if config.msi_ui_banner:
            _add(package, "WixVariable", Id="WixUIBannerBmp", Value=config.msi_ui_banner)
        if config.msi_ui_dialog:
            _add(package, "WixVariable", Id="WixUIDialogBmp", Value=config.msi_ui_dialog)

    def _main_components(self, wix: ElementTree.Element) -> None:
        config = self.config
        exec_name = self.context.app_exec_name
        fragment = _add(wix, "Fragment")
        group = _add(fragment, "ComponentGroup", Id="MainComponents", Directory="INSTALLFOLDER")

        main = _add(group, "Component", Id="MainExecutable", Guid="*")
        _add(main, "File", Id="MainExeFile", Source=str(self.publish_directory / exec_name), KeyPath="yes")

        if not config.desktop_no_display:
            shortcuts = _add(group, "Component", Id="ApplicationShortcuts", Guid="*")
            for shortcut_id, directory in (("StartMenuShortcut", "ProgramMenuFolder"), ("DesktopShortcut", "DesktopFolder")):
                _add(
                    shortcuts,
                    "Shortcut",
                    Id=shortcut_id,
                    Name=config.app_friendly_name,
                    Target=f"[INSTALLFOLDER]{exec_name}",
                    WorkingDirectory="INSTALLFOLDER",
                    Icon="AppIcon",
                    Directory=directory,
                )
            _add(shortcuts, "RemoveFolder", Id="RemoveProgramMenuFolder", Directory="ProgramMenuFolder", On="uninstall")
            self._key_path(shortcuts, "installed")

        _add(fragment, "StandardDirectory", Id="ProgramMenuFolder")
        _add(fragment, "StandardDirectory", Id="DesktopFolder")

    def _application_files(self, wix: ElementTree.Element) -> None:
        fragment = _add(wix, "Fragment")
        group = _add(fragment, "ComponentGroup", Id="ApplicationFiles", Directory="INSTALLFOLDER")
        publish = self.publish_directory
        exec_name = self.context.app_exec_name.lower()

        files = [path for path in walk(publish) if path.is_file()] if publish.is_dir() else []
        index = 0
        for path in files:
            relative = path.relative_to(publish)
            if relative.as_posix().lower() == exec_name:
                continue
            name = sanitize_id(path.stem)
            component = _add(group, "Component", Id=f"File_{name}_{index}", Guid="*")
            if len(relative.parts) > 1:
                component.set("Subdirectory", str(pathlib.PureWindowsPath(*relative.parts[:-1])))
            _add(component, "File", Id=f"F_{name}_{index}", Source=str(path), KeyPath="yes")
            index += 1

    def _registry_components(self, wix: ElementTree.Element) -> None:
        config = self.config
        command = f'"[INSTALLFOLDER]{self.context.app_exec_name}" "%1"'
        fragment = _add(wix, "Fragment")
        group = _add(fragment, "ComponentGroup", Id="RegistryComponents", Directory="INSTALLFOLDER")

        if config.associate_files and config.file_extension:
            extension = config.file_extension if config.file_extension.startswith(".") else f".{config.file_extension}"
            prog_id = f"{config.app_base_name}File"
            component = _add(group, "Component", Id="FileAssociation", Guid="*")
            for key, value in (
                    (extension, prog_id),
                    (prog_id, f"{config.app_friendly_name} File"),
                    (f"{prog_id}\\shell\\open\\command", command),
            ):
                registry_key = _add(component, "RegistryKey", Root="HKCR", Key=key)
                _add(registry_key, "RegistryValue", Type="string", Value=value)
            self._key_path(component, "FileAssoc")

        if config.context_menu_integration:
            menu_text = config.context_menu_text or f"Open with {config.app_friendly_name}"
            component = _add(group, "Component", Id="ContextMenu", Guid="*")
            for key, value in (
                    (f"*\\shell\\{config.app_base_name}", menu_text),
                    (f"*\\shell\\{config.app_base_name}\\command", command),
            ):
                registry_key = _add(component, "RegistryKey", Root="HKCR", Key=key)
                _add(registry_key, "RegistryValue", Type="string", Value=value)
            self._key_path(component, "ContextMenu")

    def _path_environment(self, wix: ElementTree.Element) -> None:
        fragment = _add(wix, "Fragment")
        group = _add(fragment, "ComponentGroup", Id="PathComponents", Directory="INSTALLFOLDER")
        component = _add(group, "Component", Id="PathEnvironment", Guid="*")
        _add(
            component,
            "Environment",
            Id="PATH_Main",
            Name="PATH",
            Value="[INSTALLFOLDER]",
            Permanent="no",
            Part="last",
            Action="set",
            System="yes" if self.config.setup_admin_install else "no",
        )
        self._key_path(component, "PathAdded")

    def _key_path(self, component: ElementTree.Element, name: str) -> None:
        _add(
            component,
            "RegistryValue",
            Root="HKCU",
            Key=self.registry_key,
            Name=name,
            Type="integer",
            Value="1",
            KeyPath="yes",
        )

    def invoke(self) -> pathlib.Path:
        self.run_tool(
            ["wix", "build", "-arch", self.package_arch, str(self.source_path), "-o", str(self.output_path)],
            # The .NET startup hook breaks wix.exe
            env={"DOTNET_STARTUP_HOOKS": None},
        )
        return self.output_path
