"""Windows setup builder (Inno Setup ``iscc``)."""

from __future__ import annotations

import pathlib
from typing import List, Optional

from netloy.build.builder import PackageBuilder
from netloy.core.logging_manager import get_logger
from netloy.core.platform import PackageType, runtime_arch
from netloy.macro.registry import MacroId
from netloy.utils.exceptions import BuildError

logger = get_logger(__name__)

PROMPT_BAT = "CommandPrompt.bat"
INNO_SETUP_URL = "https://jrsoftware.org/isdl.php"


def escape_bat(command: Optional[str]) -> str:
    """Escape the batch metacharacters of a value echoed by a ``.bat`` file."""
    if not command:
        return ""
    command = command.replace("^", "^^")
    for char in ("\\", "&", "|", "<", ">"):
        command = command.replace(char, "^" + char)
    return command.replace("%", "")


def yes_no(value: bool) -> str:
    return "yes" if value else "no"


class ExePackageBuilder(PackageBuilder):
    """Builds a setup ``.exe`` from a generated Inno Setup script."""

    package_type = PackageType.EXE
    required_tools = {"iscc": f"Inno Setup compiler (iscc) not found. Please install Inno Setup from {INNO_SETUP_URL}"}

    @property
    def package_arch(self) -> str:
        return runtime_arch(self.context.runtime)

    @property
    def script_path(self) -> pathlib.Path:
        return self.context.root_dir / f"{self.config.app_base_name}.iss"

    @property
    def icon_file_name(self) -> str:
        return self.macros.get(MacroId.PRIMARY_ICON_FILE_NAME)

    def validation_errors(self) -> List[str]:
        errors = super().validation_errors()
        config = self.config
        for value, label in (
                (config.exe_wizard_image_file, "Setup wizard image"),
                (config.exe_wizard_small_image_file, "Setup wizard small image"),
        ):
            if value and pathlib.Path(value).suffix.lower() != ".bmp":
                errors.append(f"{label} must be a .bmp file. File path: {value}")

        if config.setup_uninstall_script and pathlib.Path(config.setup_uninstall_script).suffix.lower() != ".bat":
            errors.append(f"Setup uninstall script must be a .bat file. File path: {config.setup_uninstall_script}")

        if (config.associate_files or config.context_menu_integration) and not config.setup_admin_install:
            errors.append("You must set SetupAdminInstall to true if you want to associate files or add context menu items.")

        if not config.icons_with_extension("ico"):
            errors.append("No .ico icon file found. Windows setup requires an .ico icon file.")
        return errors

    def stage(self) -> None:
        config = self.config
        publish = self.publish_directory
        exec_name = self.context.app_exec_name

        if config.start_command and config.start_command.lower() != exec_name.lower():
            path = publish / f"{config.start_command}.bat"
            path.write_text(f"start {exec_name} %*", encoding="utf-8")

        if config.setup_command_prompt:
            title = escape_bat(config.setup_command_prompt)
            command = escape_bat(config.start_command or config.app_base_name)
            copyright_echo = f" & echo {escape_bat(config.publisher_copyright)}" if config.publisher_copyright else ""
            script = (
                f'start cmd /k "cd /D %userprofile% & title {title} & echo {command} '
                f'{self.context.app_version}{copyright_echo} & set path=%path%;%~dp0"'
            )
            (publish / PROMPT_BAT).write_text(script, encoding="utf-8")

    def write_manifest(self) -> None:
        self.script_path.write_text(self.setup_script(), encoding="utf-8")
        logger.info("Inno Setup script written", path=str(self.script_path))

    def setup_script(self) -> str:
        icon_path = self.macros.get(MacroId.PRIMARY_ICON_FILE_PATH)
        if not icon_path:
            raise BuildError("Couldn't find the .ico icon file", package_type=self.package_type.value)

        sections = [
            self._setup_section(icon_path),
            self._files_section(icon_path),
            self._tasks_section(),
            self._registry_section(),
            self._icons_section(),
            self._run_section(),
            ["[InstallDelete]", 'Type: filesandordirs; Name: "{app}\\*";', 'Type: filesandordirs; Name: "{group}\\*";'],
            self._uninstall_run_section(),
            ["[UninstallDelete]", 'Type: dirifempty; Name: "{app}"'],
        ]
        return "\n\n".join("\n".join(section) for section in sections) + "\n"

    def _setup_section(self, icon_path: str) -> List[str]:
        config = self.config
        version = self.context.app_version
        group = config.setup_group_name
        lines = [
            "[Setup]",
            f"AppName={config.app_friendly_name}",
            f"AppId={config.app_id}",
            f"AppVersion={version}",
            f"AppVerName={config.app_friendly_name} {version}",
            f"VersionInfoVersion={version}",
            f"OutputDir={self.context.output_dir}",
            f"OutputBaseFilename={pathlib.Path(self.context.output_name).stem}",
            f"AppPublisher={config.publisher_name}",
            f"AppCopyright={config.publisher_copyright}",
            f"AppPublisherURL={config.publisher_link_url}",
            f"InfoBeforeFile={config.app_change_file}",
            f"LicenseFile={config.app_license_file}",
            f"SetupIconFile={icon_path}",
            "AllowNoIcons=yes",
            f"MinVersion={config.setup_min_windows_version}",
            f"DefaultDirName={{autopf}}\\{group or config.app_base_name}",
            f"DefaultGroupName={group or config.app_friendly_name}",
            "Compression=lzma2/max",
            "SolidCompression=yes",
        ]
        if config.setup_password_encryption:
            lines.append(f"Password={config.setup_password_encryption}")
        if config.exe_wizard_image_file:
            lines.append(f"WizardImageFile={config.exe_wizard_image_file}")
        if config.exe_wizard_small_image_file:
            lines.append(f"WizardSmallImageFile={config.exe_wizard_small_image_file}")
        lines.append(f"CloseApplications={yes_no(config.setup_close_applications)}")
        if config.setup_restart_if_needed:
            lines.append("RestartIfNeededByRun=yes")
        if config.setup_uninstall_display_name:
            lines.append(f"UninstallDisplayName={config.setup_uninstall_display_name}")
        if config.exe_version_info_company:
            lines.append(f"VersionInfoCompany={config.exe_version_info_company}")
        if config.exe_version_info_description:
            lines.append(f"VersionInfoDescription={config.exe_version_info_description}")
        if config.associate_files and config.file_extension:
            lines.append("ChangesAssociations=yes")

        if self.package_arch in ("x64", "arm64"):
            lines.append(f"ArchitecturesAllowed={self.package_arch}")
            lines.append(f"ArchitecturesInstallIn64BitMode={self.package_arch}")

        lines.append(f"PrivilegesRequired={'admin' if config.setup_admin_install else 'lowest'}")
        lines.append(f"UninstallDisplayIcon={{app}}\\{self.icon_file_name}")
        if config.setup_sign_tool:
            lines.append(f"SignTool={config.setup_sign_tool}")
        return lines

    def _files_section(self, icon_path: str) -> List[str]:
        publish = self.publish_directory
        flags = "Flags: ignoreversion recursesubdirs createallsubdirs"
        lines = [
            "[Files]",
            f'Source: "{publish}\\*.exe"; DestDir: "{{app}}"; {flags} signonce;',
        ]
        files = [path for path in publish.iterdir() if path.is_file()] if publish.is_dir() else []
        if any(path.suffix.lower() == ".dll" for path in files):
            lines.append(f'Source: "{publish}\\*.dll"; DestDir: "{{app}}"; {flags} signonce;')
        if any(path.suffix.lower() not in (".exe", ".dll") for path in files):
            lines.append(f'Source: "{publish}\\*"; Excludes: "*.exe,*.dll"; DestDir: "{{app}}"; {flags};')
        lines.append(f'Source: "{icon_path}"; DestDir: "{{app}}"; {flags};')
        if self.config.setup_uninstall_script:
            lines.append(f'Source: "{self.config.setup_uninstall_script}"; DestDir: "{{app}}"; {flags};')
        return lines

    def _tasks_section(self) -> List[str]:
        config = self.config
        lines = ["[Tasks]"]
        if not config.desktop_no_display:
            lines.append(
                'Name: "desktopicon"; Description: "Create a &Desktop Icon"; '
                'GroupDescription: "Additional icons:"; Flags: unchecked'
            )
        lines.append(
            'Name: "quicklaunchicon"; Description: "Create a &Quick Launch icon"; '
            'GroupDescription: "Additional icons:"; Flags: unchecked'
        )
        startup_flags = "" if config.setup_start_on_windows_startup else "; Flags: unchecked"
        lines.append(
            f'Name: "startup"; Description: "Run {config.app_friendly_name} at Windows startup"; '
            f'GroupDescription: "Additional options:"{startup_flags}'
        )
        if config.associate_files and config.file_extension:
            lines.append(
                f'Name: "associatefiles"; Description: "Associate {config.file_extension} files with '
                f'{config.app_friendly_name}"; GroupDescription: "File associations:"; Flags: unchecked'
            )
        if config.context_menu_integration:
            lines.append(
                'Name: "contextmenu"; Description: "Add to context menu"; '
                'GroupDescription: "Integration:"; Flags: unchecked'
            )
        return lines

    def _registry_section(self) -> List[str]:
        config = self.config
        exec_name = self.context.app_exec_name
        icon = self.icon_file_name
        open_command = f'"""{{app}}\\{exec_name}"" ""%1"""'
        lines = ["[Registry]"]

        if config.associate_files and config.file_extension:
            extension = config.file_extension if config.file_extension.startswith(".") else f".{config.file_extension}"
            prog_id = f"{config.app_base_name}File"
            lines += [
                f'Root: HKCR; Subkey: "{extension}"; ValueType: string; ValueName: ""; '
                f'ValueData: "{prog_id}"; Flags: uninsdeletevalue; Tasks: associatefiles',
                f'Root: HKCR; Subkey: "{prog_id}"; ValueType: string; ValueName: ""; '
                f'ValueData: "{config.app_friendly_name} File"; Flags: uninsdeletekey; Tasks: associatefiles',
                f'Root: HKCR; Subkey: "{prog_id}\\DefaultIcon"; ValueType: string; ValueName: ""; '
                f'ValueData: "{{app}}\\{icon},0"; Tasks: associatefiles',
                f'Root: HKCR; Subkey: "{prog_id}\\shell\\open\\command"; ValueType: string; ValueName: ""; '
                f"ValueData: {open_command}; Tasks: associatefiles",
            ]

        if config.context_menu_integration:
            menu_text = config.context_menu_text or f"Open with {config.app_friendly_name}"
            key = f"*\\shell\\{config.app_base_name}"
            lines += [
                f'Root: HKCR; Subkey: "{key}"; ValueType: string; ValueName: ""; '
                f'ValueData: "{menu_text}"; Flags: uninsdeletekey; Tasks: contextmenu',
                f'Root: HKCR; Subkey: "{key}\\command"; ValueType: string; ValueName: ""; '
                f"ValueData: {open_command}; Tasks: contextmenu",
                f'Root: HKCR; Subkey: "{key}"; ValueType: string; ValueName: "Icon"; '
                f'ValueData: "{{app}}\\{icon},0"; Tasks: contextmenu',
            ]
        return lines

    def _icons_section(self) -> List[str]:
        config = self.config
        name = config.app_friendly_name
        target = f'Filename: "{{app}}\\{self.context.app_exec_name}"; IconFilename: "{{app}}\\{self.icon_file_name}"'
        lines = [
            "[Icons]",
            f'Name: "{{userappdata}}\\Microsoft\\Internet Explorer\\Quick Launch\\{name}"; {target}; Tasks: quicklaunchicon',
        ]
        if not config.desktop_no_display:
            lines.append(f'Name: "{{group}}\\{name}"; {target}')
            lines.append(f'Name: "{{userdesktop}}\\{name}"; {target}; Tasks: desktopicon')
        lines.append(f'Name: "{{userstartup}}\\{name}"; {target}; Tasks: startup')
        lines.append(f'Name: "{{group}}\\Uninstall {name}"; Filename: "{{uninstallexe}}"')
        if config.setup_command_prompt:
            lines.append(
                f'Name: "{{group}}\\{config.setup_command_prompt}"; Filename: "{{app}}\\{PROMPT_BAT}"; '
                f'IconFilename: "{{app}}\\{self.icon_file_name}"'
            )
        if config.publisher_link_name and config.publisher_link_url:
            lines.append(f'Name: "{{group}}\\{config.publisher_link_name}"; Filename: "{config.publisher_link_url}"')
        return lines

    def _run_section(self) -> List[str]:
        lines = ["[Run]"]
        if not self.config.desktop_no_display:
            lines.append(
                f'Filename: "{{app}}\\{self.context.app_exec_name}"; Description: Start Application Now; '
                "Flags: postinstall nowait skipifsilent"
            )
        return lines

    def _uninstall_run_section(self) -> List[str]:
        lines = ["[UninstallRun]"]
        if self.config.setup_uninstall_script:
            name = pathlib.Path(self.config.setup_uninstall_script).name
            lines.append(f'Filename: "{{app}}\\{name}"; Flags: runhidden waituntilterminated')
        return lines

    def invoke(self) -> pathlib.Path:
        self.run_tool(["iscc", f"/O{self.context.output_dir}", str(self.script_path)])
        # iscc names the file from OutputBaseFilename
        return self.context.output_dir / f"{pathlib.Path(self.context.output_name).stem}.exe"
