"""Reading, validating and writing ``.netloy`` configuration files.

The file format is line oriented::

    # comment
    AppBaseName = HelloWorld
    AppDescription = \"\"\"
        First line.
        Second line.
    \"\"\"

Keys are case-insensitive and the last assignment wins. Values fenced with
triple quotes may span several physical lines; each interior line is trimmed
and the lines are joined with newlines.
"""

from __future__ import annotations

import pathlib
import re
import shutil
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple, Union
from urllib.parse import urlparse

from netloy.__version__ import __version__
from netloy.config.models import (
    CONFIG_FILE_EXTENSION,
    EMAIL_PATTERN,
    ICON_EXTENSIONS,
    LONG_VERSION_PATTERN,
    REVERSE_DNS_PATTERN,
    Configuration,
    IconDescriptor,
    parse_icon_size,
)
from netloy.core.confirm import Confirm
from netloy.core.logging_manager import get_logger
from netloy.utils.exceptions import NotFoundError, ValidationFailedError

logger = get_logger(__name__)

FENCE = '"""'
SECTION_RULE = "#" * 40
HEADER_RULE = "#" * 80

# Attributes written in fenced form even when they hold a single line
MULTILINE_FIELDS = {
    "app_description",
    "icon_files",
    "dotnet_post_publish_on_windows",
    "flatpak_finish_args",
    "rpm_requires",
    "debian_recommends",
    "arch_depends",
    "arch_opt_depends",
}

# Optional file settings resolved against the configuration directory
OPTIONAL_FILE_FIELDS = (
    "app_license_file",
    "app_change_file",
    "desktop_file",
    "meta_file",
    "dotnet_post_publish",
    "dotnet_post_publish_on_windows",
    "mac_os_info_plist",
    "mac_os_entitlements",
    "setup_uninstall_script",
    "exe_wizard_image_file",
    "exe_wizard_small_image_file",
    "msi_ui_banner",
    "msi_ui_dialog",
)

REQUIRED_FIELDS = (
    "app_base_name",
    "app_friendly_name",
    "app_short_summary",
    "app_description",
    "app_license_id",
    "publisher_name",
    "publisher_copyright",
)

DEFAULT_APP_DESCRIPTION = "\n".join(
    [
        "A detailed description of your application.",
        "You can use multiple lines here.",
        "Describe the features and functionality of your software.",
    ]
)

DEFAULT_PUBLISH_ARGS = (
    "-p:Version=${APP_VERSION} -p:FileVersion=${APP_VERSION} -p:AssemblyVersion=${APP_VERSION} "
    "--self-contained true -p:DebugType=None -p:DebugSymbols=false -p:PublishSingleFile=true"
)

SectionEntry = Tuple[str, Sequence[str]]

# Section layout of a serialized file: (section title, [(attribute, comment lines)])
SECTIONS: List[Tuple[str, List[SectionEntry]]] = [
    (
        "APP PREAMBLE",
        [
            ("app_base_name", [
                "Mandatory base name of the main executable, without directory or extension.",
            ]),
            ("app_friendly_name", ["Mandatory human readable application name."]),
            ("app_id", [
                "Mandatory application ID in reverse DNS form (e.g. com.example.app). Keep it",
                "constant for the lifetime of the software.",
            ]),
            ("app_version_release", [
                "Mandatory version and package release of the form VERSION[RELEASE], e.g. 1.2.3[1].",
                "Without the bracketed part the release defaults to 1.",
            ]),
            ("app_short_summary", ["Mandatory single line summary."]),
            ("app_description", [
                "Mandatory multi-line description. Paragraphs are separated by an empty line and",
                "list items may start with '* ', '+ ' or '- '. Populates ${APPSTREAM_DESCRIPTION_XML}.",
            ]),
            ("app_license_id", ["Mandatory SPDX license identifier, e.g. MIT or GPL-3.0-or-later."]),
            ("app_license_file", ["Optional path of the license text packaged with the application."]),
            ("app_change_file", [
                "Optional changelog path. Headings of the form '+ Version 1.2.3; 2025-01-31' followed",
                "by '- change' items populate ${APPSTREAM_CHANGELOG_XML}.",
            ]),
        ],
    ),
    (
        "PUBLISHER",
        [
            ("publisher_name", ["Mandatory publisher, group or creator."]),
            ("publisher_id", ["Optional publisher ID in reverse DNS form. Defaults to AppId."]),
            ("publisher_copyright", ["Mandatory copyright statement."]),
            ("publisher_link_name", ["Name of the publisher web link. Required when PublisherLinkUrl is set."]),
            ("publisher_link_url", ["Publisher or application web link URL."]),
            ("publisher_email", ["Maintainer email address. DEB packages expect it."]),
        ],
    ),
    (
        "DESKTOP INTEGRATION",
        [
            ("desktop_no_display", ["Hide the application from desktop menus (true or false)."]),
            ("desktop_terminal", ["The application runs in a terminal (true or false)."]),
            ("desktop_file", [
                "Optional Linux .desktop file. Must contain 'Exec=${INSTALL_EXEC}'. Generated when empty.",
            ]),
            ("start_command", ["Optional command name used to start the application from a terminal."]),
            ("prime_category", ["Optional primary category, e.g. Development, Graphics or Utility."]),
            ("meta_file", ["Optional AppStream metainfo file. Macros are expanded in its content."]),
            ("icon_files", [
                "Icon paths separated by semicolons or one per line. Supported: svg, ico, icns and",
                "png named as name.WxH.png with equal width and height.",
            ]),
            ("auto_generate_icons", ["Generate missing PNG sizes from the largest PNG (true or false)."]),
        ],
    ),
    (
        "DOTNET PUBLISH",
        [
            ("dotnet_project_path", [
                "Path of the .csproj file or the directory containing it. NONE disables dotnet publish.",
            ]),
            ("dotnet_publish_args", [
                "Extra arguments for 'dotnet publish'. Do not include -r or -c. Macros are expanded.",
            ]),
            ("dotnet_post_publish", ["Optional script run after publish on Linux and macOS hosts."]),
            ("dotnet_post_publish_on_windows", ["Optional script run after publish on Windows hosts."]),
            ("dotnet_post_publish_arguments", ["Optional arguments passed to the post-publish script."]),
        ],
    ),
    (
        "PACKAGE OUTPUT",
        [
            ("package_name", ["Base name of output files and of DEB/RPM package identifiers."]),
            ("output_directory", ["Output directory, relative to this file."]),
        ],
    ),
    (
        "APPIMAGE OPTIONS",
        [
            ("app_image_args", ["Extra arguments for appimagetool."]),
        ],
    ),
    (
        "FLATPAK OPTIONS",
        [
            ("flatpak_platform_runtime", ["Flatpak runtime, e.g. org.freedesktop.Platform."]),
            ("flatpak_platform_sdk", ["Flatpak SDK, e.g. org.freedesktop.Sdk."]),
            ("flatpak_platform_version", ["Runtime and SDK version."]),
            ("flatpak_finish_args", ["Sandbox permissions, one per line."]),
            ("flatpak_builder_args", ["Extra arguments for flatpak-builder."]),
        ],
    ),
    (
        "RPM OPTIONS",
        [
            ("rpm_auto_req", ["Let rpmbuild detect dependencies automatically (true or false)."]),
            ("rpm_auto_prov", ["Let rpmbuild detect provides automatically (true or false)."]),
            ("rpm_requires", ["Required packages, separated by newline, comma or semicolon."]),
        ],
    ),
    (
        "DEBIAN OPTIONS",
        [
            ("debian_recommends", ["Recommended packages, separated by newline, comma or semicolon."]),
        ],
    ),
    (
        "PACMAN OPTIONS",
        [
            ("arch_depends", ["Dependencies, separated by newline, comma or semicolon."]),
            ("arch_opt_depends", ["Optional dependencies, one per line ('pkg: reason')."]),
        ],
    ),
    (
        "MACOS OPTIONS",
        [
            ("mac_os_info_plist", ["Optional Info.plist template. Generated when empty."]),
            ("mac_os_entitlements", ["Optional entitlements file copied into the bundle."]),
        ],
    ),
    (
        "WINDOWS SETUP OPTIONS",
        [
            ("setup_group_name", ["Start menu group and install folder name. Defaults to the app name."]),
            ("setup_admin_install", ["Install for all users with administrator rights (true or false)."]),
            ("setup_command_prompt", ["Optional title of a start menu command prompt entry."]),
            ("setup_min_windows_version", ["Minimum Windows version, e.g. 10."]),
            ("setup_sign_tool", ["Optional Inno Setup SignTool definition."]),
            ("msi_upgrade_code", ["Optional MSI UpgradeCode GUID. Derived from AppId when empty."]),
            ("setup_uninstall_script", ["Optional .bat script run before uninstall."]),
            ("setup_password_encryption", ["Optional setup password."]),
            ("exe_wizard_image_file", ["Optional .bmp wizard image."]),
            ("exe_wizard_small_image_file", ["Optional small .bmp wizard image."]),
            ("msi_ui_banner", ["Optional MSI banner bitmap."]),
            ("msi_ui_dialog", ["Optional MSI dialog bitmap."]),
            ("setup_close_applications", ["Close running instances during setup (true or false)."]),
            ("setup_restart_if_needed", ["Allow setup to restart the machine (true or false)."]),
            ("setup_uninstall_display_name", ["Optional name shown in the uninstall list."]),
            ("exe_version_info_company", ["Optional company name in the setup version info."]),
            ("exe_version_info_description", ["Optional description in the setup version info."]),
            ("associate_files", ["Register a file association (true or false). Needs admin install."]),
            ("file_extension", ["Extension used for the file association, e.g. .myext."]),
            ("context_menu_integration", ["Add an explorer context menu entry (true or false)."]),
            ("context_menu_text", ["Text of the context menu entry."]),
            ("setup_start_on_windows_startup", ["Start the application at logon (true or false)."]),
        ],
    ),
    (
        "CONFIGURATION OPTIONS",
        [
            ("config_version", [
                "Configuration format version. Managed by netloy; use --upgrade-config to update it.",
            ]),
        ],
    ),
]


def find_config_file(directory: Union[str, pathlib.Path, None] = None) -> pathlib.Path:
    """Locate the ``.netloy`` file in a directory.

    Args:
        directory: Directory to search, the current directory by default.

    Returns:
        Path of the first configuration file found.

    Raises:
        NotFoundError: If the directory contains no configuration file.
    """
    directory = pathlib.Path(directory or pathlib.Path.cwd())
    candidates = sorted(directory.glob(f"*{CONFIG_FILE_EXTENSION}"))
    if not candidates:
        raise NotFoundError(
            f"No {CONFIG_FILE_EXTENSION} configuration file found in directory: {directory}",
            path=str(directory),
        )
    if len(candidates) > 1:
        logger.warning(
            "Multiple configuration files found, using the first one",
            selected=candidates[0].name,
            directory=str(directory),
        )
    return candidates[0]


def parse_bool(value: str) -> bool:
    return value.strip().lower() == "true"


def split_list(value: str, separators: str = "\r\n,;") -> List[str]:
    """Split a free-text list on any of the separator characters.

    There is no escaping: an item containing a separator is split.
    """
    pattern = "[" + re.escape(separators) + "]"
    return [item.strip() for item in re.split(pattern, value) if item.strip()]


def is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class ConfigurationParser:
    """Reads, validates and writes ``.netloy`` configuration files.

    Attributes:
        confirm: Decision point for interactive questions.
        output_path: Explicit output path given by the caller; makes PackageName optional.
        project_path: Explicit project path given by the caller; skips project validation.
    """

    def __init__(
            self,
            confirm: Optional[Confirm] = None,
            output_path: Optional[str] = None,
            project_path: Optional[str] = None,
    ) -> None:
        self.confirm = confirm or Confirm(unattended=True)
        self.output_path = output_path
        self.project_path = project_path

    # Parsing

    def parse(
            self,
            path: Union[str, pathlib.Path, None] = None,
            validate: bool = True,
    ) -> Configuration:
        """Parse a configuration file.

        Args:
            path: Configuration file path. When omitted the current directory is searched.
            validate: Run validation after reading.

        Returns:
            The parsed configuration.

        Raises:
            NotFoundError: If the file does not exist.
            ValidationFailedError: If validation finds any violation.
        """
        config_path = pathlib.Path(path) if path else find_config_file()
        if not config_path.is_file():
            raise NotFoundError(f"Configuration file not found: {config_path}", path=str(config_path))

        config_path = config_path.resolve()
        logger.info("Reading configuration", path=str(config_path))
        text = config_path.read_text(encoding="utf-8-sig")
        return self.parse_text(text, base_dir=config_path.parent, validate=validate)

    def parse_text(
            self,
            text: str,
            base_dir: Union[str, pathlib.Path, None] = None,
            validate: bool = True,
    ) -> Configuration:
        """Parse configuration text.

        Args:
            text: File content.
            base_dir: Directory relative paths are resolved against.
            validate: Run validation after reading.

        Returns:
            The parsed configuration.
        """
        values = self.read_values(text)
        config = self.to_configuration(values)
        config.config_directory = pathlib.Path(base_dir or pathlib.Path.cwd()).resolve()
        if validate:
            self.validate(config)
            logger.info("Configuration loaded", status="success", app_id=config.app_id)
        return config

    def read_values(self, text: str) -> Dict[str, str]:
        """Read raw key/value pairs.

        Returns:
            Mapping of lowercase keys to values.
        """
        values: Dict[str, str] = {}
        current_key: Optional[str] = None
        buffer: List[str] = []

        for number, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()

            if current_key is not None:
                end = line.find(FENCE)
                if end >= 0:
                    buffer.append(line[:end].strip())
                    values[current_key] = "\n".join(buffer).strip()
                    current_key = None
                    buffer = []
                else:
                    buffer.append(line)
                continue

            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                logger.warning("Invalid line, no '=' separator found. Skipping", line=number)
                continue

            key, value = line.split("=", 1)
            key = key.strip().lower()
            value = value.strip()

            if value.startswith(FENCE):
                if value.endswith(FENCE) and len(value) > 2 * len(FENCE):
                    values[key] = value[len(FENCE):-len(FENCE)].strip()
                else:
                    current_key = key
                    buffer = []
                    content = value[len(FENCE):].strip()
                    if content:
                        buffer.append(content)
            else:
                values[key] = value

        if current_key is not None:
            logger.warning("Unterminated multi-line value", key=current_key)
            values[current_key] = "\n".join(buffer).strip()

        logger.debug("Parsed configuration entries", count=len(values))
        return values

    @staticmethod
    def to_configuration(values: Dict[str, str]) -> Configuration:
        """Build a Configuration from raw values, ignoring unknown keys."""
        key_map = Configuration.key_map()
        data: Dict[str, object] = {}
        for key, value in values.items():
            attribute = key_map.get(key)
            if attribute is None:
                logger.debug("Ignoring unknown configuration key", key=key)
                continue
            data[attribute] = parse_bool(value) if Configuration.is_bool_field(attribute) else value
        return Configuration(**data)

    # Validation

    def validate(self, config: Configuration) -> Configuration:
        """Check every rule and resolve path settings in place.

        All violations are collected and reported together.

        Raises:
            ValidationFailedError: If at least one rule is violated.
            UserCancelledError: If the operator declines a confirmation.
        """
        errors: List[str] = []

        for attribute in REQUIRED_FIELDS:
            if not getattr(config, attribute).strip():
                errors.append(f"{Configuration.alias_of(attribute)} is required")

        if not config.app_id:
            errors.append("AppId is required")
        elif not REVERSE_DNS_PATTERN.match(config.app_id):
            errors.append(f"AppId '{config.app_id}' doesn't follow reverse domain notation (e.g., com.example.app)")

        if not config.app_version_release:
            errors.append("AppVersionRelease is required")
        elif not LONG_VERSION_PATTERN.match(config.app_version_release):
            errors.append(
                f"Invalid AppVersionRelease format: '{config.app_version_release}'. "
                "Expected format: 1.0.0 or 1.0.0[1]"
            )

        if config.publisher_id and not REVERSE_DNS_PATTERN.match(config.publisher_id):
            errors.append(
                f"PublisherId '{config.publisher_id}' doesn't follow reverse domain notation (e.g., com.example.app)"
            )

        if config.publisher_link_url:
            if not config.publisher_link_name:
                errors.append("PublisherLinkName is required")
            if not is_valid_url(config.publisher_link_url):
                errors.append(f"PublisherLinkUrl '{config.publisher_link_url}' is not a valid URL")

        if config.publisher_email and not EMAIL_PATTERN.match(config.publisher_email):
            logger.warning("Invalid PublisherEmail", value=config.publisher_email)

        self._validate_icons(config, errors)
        self._validate_project_path(config, errors)

        for attribute in OPTIONAL_FILE_FIELDS:
            self._validate_path(config, attribute, errors, is_directory=False, required=False)

        if not config.package_name and not self.output_path:
            errors.append("PackageName is required")

        self._validate_path(config, "output_directory", errors, is_directory=True, required=True)
        self._validate_min_windows_version(config)

        if errors:
            raise ValidationFailedError(errors)
        return config

    def _resolve(self, config: Configuration, value: str) -> pathlib.Path:
        path = pathlib.Path(value.strip().replace("\\", "/")).expanduser()
        if not path.is_absolute():
            path = config.config_directory / path
        return path.resolve()

    def _validate_icons(self, config: Configuration, errors: List[str]) -> None:
        config.icons = []
        if not config.icon_files.strip():
            errors.append("IconFiles is required")
            return

        entries = split_list(config.icon_files, "\r\n;")
        if not entries:
            errors.append("No icon files specified")
            return

        png_format = "PNG icon file name should be in the format: <name>.<width>x<height>.png. File path: "
        icon_errors: List[str] = []
        for entry in entries:
            icon_path = self._resolve(config, entry)
            if not icon_path.is_file():
                icon_errors.append(f"Couldn't find icon. Icon path: {icon_path}")
                continue

            extension = icon_path.suffix.lower().lstrip(".")
            if extension not in ICON_EXTENSIONS:
                icon_errors.append(f"Only SVG, ICO, ICNS and PNG icon formats are supported. File path: {icon_path}")
                continue

            if extension == "png":
                size = parse_icon_size(icon_path.name)
                if size is None:
                    icon_errors.append(png_format + str(icon_path))
                    continue
                if size[0] != size[1]:
                    icon_errors.append(
                        f"PNG icon size should be square. Correct format: <name>.<size>x<size>.png. File path: {icon_path}"
                    )
                    continue

            config.icons.append(IconDescriptor.from_path(icon_path))

        errors.extend(icon_errors)
        if not config.icons and not icon_errors:
            errors.append("No valid icon files specified")

    def _validate_project_path(self, config: Configuration, errors: List[str]) -> None:
        if self.project_path or not config.publish_enabled:
            return

        project_path = self._resolve(config, config.dotnet_project_path)
        if project_path.is_file():
            config.dotnet_project_path = str(project_path)
            return

        if project_path.is_dir():
            candidates = sorted(project_path.glob("*.csproj"))
            if not candidates:
                errors.append(f"No project file found in the specified directory. Directory path: {project_path}")
                return
            if len(candidates) > 1:
                logger.warning("Multiple project files found", directory=str(project_path))
                self.confirm.require("Multiple project files found. Do you want to use the first project file found?")
                logger.info("Using first project file found", project=str(candidates[0]))
            config.dotnet_project_path = str(candidates[0])
            return

        errors.append(
            f"Project file not found. File path: {project_path}. Specify the .NET project file "
            "in the configuration file or on the command line"
        )

    def _validate_path(
            self,
            config: Configuration,
            attribute: str,
            errors: List[str],
            is_directory: bool,
            required: bool,
    ) -> None:
        value = getattr(config, attribute)
        name = Configuration.alias_of(attribute)
        if not value.strip():
            if required:
                errors.append(f"{name} is required")
            return

        path = self._resolve(config, value)
        if not is_directory and not path.is_file():
            errors.append(f"{name} file not found: {path}")
            return

        if is_directory and not path.is_dir():
            logger.warning("Directory not found", path=str(path))
            self.confirm.require(f"Directory not found: {path}. Do you want to create it?")
            logger.info("Creating directory", path=str(path))
            path.mkdir(parents=True, exist_ok=True)

        setattr(config, attribute, str(path))

    def _validate_min_windows_version(self, config: Configuration) -> None:
        try:
            float(config.setup_min_windows_version)
            return
        except ValueError:
            pass

        prompt = "SetupMinWindowsVersion is not a valid version number. Do you want to continue with 10?"
        if self.confirm.unattended:
            logger.warning("SetupMinWindowsVersion is not a valid version number. Setting it to 10")
        else:
            self.confirm.require(prompt)
        config.setup_min_windows_version = "10"

    # Serialization

    def serialize(
            self,
            config: Configuration,
            with_comments: bool = False,
            upgraded_on: Optional[datetime] = None,
    ) -> str:
        """Write a configuration in the ``.netloy`` text format.

        Args:
            config: Configuration to write.
            with_comments: Include section banners and explanatory comments.
            upgraded_on: Adds an "upgraded on" header line when given.

        Returns:
            The file content.
        """
        lines: List[str] = []
        if with_comments:
            lines.append(HEADER_RULE)
            lines.append(f"# Netloy {__version__} - .NET Application Packaging Tool")
        if upgraded_on is not None:
            lines.append(f"# Configuration upgraded on: {upgraded_on:%Y-%m-%d %H:%M:%S}")
        if with_comments:
            lines.append(HEADER_RULE)
        lines.append("")

        for title, entries in SECTIONS:
            if with_comments:
                lines.extend([SECTION_RULE, f"# {title}", SECTION_RULE, ""])
            for attribute, comments in entries:
                if with_comments:
                    lines.extend(f"# {comment}" for comment in comments)
                lines.extend(self._format_value(config, attribute))
                lines.append("")

        return "\n".join(lines).strip() + "\n"

    @staticmethod
    def _format_value(config: Configuration, attribute: str) -> List[str]:
        key = Configuration.alias_of(attribute)
        value = getattr(config, attribute)
        if isinstance(value, bool):
            return [f"{key} = {str(value).lower()}"]
        if not value:
            return [f"{key} = "]
        if attribute in MULTILINE_FIELDS or "\n" in value:
            body = [f"    {line.strip()}" if line.strip() else "" for line in value.splitlines()]
            return [f"{key} = {FENCE}", *body, FENCE]
        return [f"{key} = {value}"]

    # Default and upgrade

    @staticmethod
    def create_default() -> Configuration:
        """Return the template configuration written for new projects."""
        return Configuration(
            app_base_name="MyApp",
            app_friendly_name="My Application",
            app_id="com.example.myapp",
            app_version_release="1.0.0[1]",
            app_short_summary="A brief description of your application",
            app_description=DEFAULT_APP_DESCRIPTION,
            app_license_id="MIT",
            publisher_name="Your Name or Company",
            publisher_copyright=f"Copyright (C) Your Company {datetime.now().year}",
            publisher_link_name="Home Page",
            publisher_link_url="https://example.com",
            publisher_email="contact@example.com",
            prime_category="Utility",
            dotnet_publish_args=DEFAULT_PUBLISH_ARGS,
            package_name="MyApp",
            output_directory="Deploy/OUT",
            flatpak_platform_runtime="org.freedesktop.Platform",
            flatpak_platform_sdk="org.freedesktop.Sdk",
            flatpak_platform_version="23.08",
            flatpak_finish_args="\n".join(
                ["--socket=wayland", "--socket=x11", "--filesystem=host", "--share=network"]
            ),
            rpm_auto_prov=True,
            rpm_requires="\n".join(["krb5-libs", "libicu", "openssl-libs", "zlib"]),
            debian_recommends="\n".join(
                ["libc6", "libgcc1", "libgssapi-krb5-2", "libicu", "libssl", "zlib1g"]
            ),
            setup_min_windows_version="10",
            config_version=__version__,
        )

    def write_default(
            self,
            directory: Union[str, pathlib.Path],
            name: Optional[str] = None,
            with_comments: bool = True,
    ) -> Optional[pathlib.Path]:
        """Write a default configuration file.

        Args:
            directory: Target directory, created when missing.
            name: File name without extension. Defaults to the directory name.
            with_comments: Include explanatory comments.

        Returns:
            Path of the written file, or None if the operator kept an existing file.
        """
        directory = pathlib.Path(directory).resolve()
        directory.mkdir(parents=True, exist_ok=True)
        file_path = directory / f"{name or directory.name}{CONFIG_FILE_EXTENSION}"

        if file_path.exists():
            logger.warning("Configuration file already exists", path=str(file_path))
            if not self.confirm.ask("Overwrite?", default=False):
                logger.info("Operation cancelled")
                return None

        file_path.write_text(self.serialize(self.create_default(), with_comments=with_comments), encoding="utf-8")
        logger.info("Configuration file created", status="success", path=str(file_path))
        return file_path

    def upgrade(
            self,
            path: Union[str, pathlib.Path, None] = None,
            with_comments: bool = True,
    ) -> Optional[pathlib.Path]:
        """Rewrite a configuration file in the current format.

        The original file is copied to ``<path>.backup.YYYYMMDD_HHMMSS`` first.

        Returns:
            The backup path, or None when the file is already current or the
            operator declined.
        """
        config_path = pathlib.Path(path) if path else find_config_file()
        if not config_path.is_file():
            raise NotFoundError(f"Configuration file not found: {config_path}", path=str(config_path))

        config = self.parse(config_path, validate=False)
        if config.config_version == __version__:
            logger.info("Configuration file is already up-to-date", version=__version__)
            return None

        if not config.config_version:
            logger.warning("Configuration file does not have a version. This might be an old format.")
        else:
            logger.info("Upgrading configuration", current=config.config_version, latest=__version__)

        if not self.confirm.ask("Upgrade configuration file?"):
            logger.info("Operation cancelled")
            return None

        now = datetime.now()
        backup_path = config_path.with_name(f"{config_path.name}.backup.{now:%Y%m%d_%H%M%S}")
        shutil.copy2(config_path, backup_path)
        logger.info("Backup created", path=str(backup_path))

        config.config_version = __version__
        config_path.write_text(
            self.serialize(config, with_comments=with_comments, upgraded_on=now), encoding="utf-8"
        )
        logger.info("Configuration file upgraded", status="success", version=__version__)
        return backup_path
