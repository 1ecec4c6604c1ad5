"""Base class for the package builders.

Every format goes through the same stages, in order:

    init -> publish -> stage -> manifest -> invoke -> finalize

``init`` recreates the staging root and stages icons, ``publish`` runs
``dotnet publish`` and the optional post-publish script, ``stage`` lays out the
format's directory tree, ``manifest`` writes the control/spec/script files,
``invoke`` runs the native packaging tool and ``finalize`` checks that the
artifact exists.
"""

from __future__ import annotations

import enum
import pathlib
import re
import shlex
import shutil
from typing import Dict, List, Mapping, Optional, Sequence

from netloy.build.context import BuildContext
from netloy.build.options import BuildOptions
from netloy.build.utils import write_lf
from netloy.config.models import Configuration, IconDescriptor
from netloy.core.command_runner import CommandResult, CommandRunner, SubprocessCommandRunner
from netloy.core.confirm import Confirm
from netloy.core.logging_manager import get_logger
from netloy.core.platform import (
    LINUX_PACKAGES,
    MACOS_PACKAGES,
    WINDOWS_PACKAGES,
    HostOS,
    PackageType,
    host_os,
)
from netloy.helpers.appstream import changelog_xml_from_file, description_xml
from netloy.helpers.icons import stage_icons
from netloy.macro.registry import MacroId, MacroRegistry
from netloy.utils.exceptions import BuildError, NotFoundError, ValidationFailedError

logger = get_logger(__name__)

APP_HOST_PROPERTY = "-p:UseAppHost=true"


class BuildState(str, enum.Enum):
    """Build stages, in execution order."""

    CREATED = "created"
    INIT = "init"
    PUBLISH = "publish"
    STAGE = "stage"
    MANIFEST = "manifest"
    INVOKE = "invoke"
    FINALIZE = "finalize"
    DONE = "done"


_STATE_ORDER = list(BuildState)


def bool_text(value: bool) -> str:
    return "true" if value else "false"


def select_primary_icon(
        package_type: PackageType,
        icons: Sequence[IconDescriptor],
) -> Optional[IconDescriptor]:
    """Pick the icon a format embeds as its main icon.

    Windows formats use the ``.ico``, macOS formats the ``.icns`` and Linux
    formats the ``.svg`` or, failing that, the largest PNG. Other formats have
    no primary icon.
    """

    def first(extension: str) -> Optional[IconDescriptor]:
        return next((icon for icon in icons if icon.extension == extension), None)

    if package_type in WINDOWS_PACKAGES:
        return first("ico")
    if package_type in MACOS_PACKAGES:
        return first("icns")
    if package_type in LINUX_PACKAGES:
        svg = first("svg")
        if svg is not None:
            return svg
        pngs = [icon for icon in icons if icon.extension == "png"]
        return max(pngs, key=lambda icon: icon.area, default=None)
    return None


class PackageBuilder:
    """Common behavior of all package builders.

    Subclasses set ``package_type``, provide ``publish_directory`` and implement
    the ``stage``, ``write_manifest`` and ``invoke`` hooks.

    Attributes:
        config: Validated project configuration.
        options: Per-run options.
        confirm: Decision point for interactive questions.
        runner: Runs every external process.
        context: Paths and version data of this build.
        macros: Macro values of this build.
        icons: Icons staged during init.
        project_path: Project file published, or None when publishing is disabled.
        state: Last stage entered.
    """

    package_type: PackageType

    # Tool name -> message reported when it is missing from PATH
    required_tools: Dict[str, str] = {}

    def __init__(
            self,
            config: Configuration,
            options: BuildOptions,
            confirm: Optional[Confirm] = None,
            runner: Optional[CommandRunner] = None,
            temp_root: Optional[pathlib.Path] = None,
    ) -> None:
        if options.package_type != self.package_type:
            options = options.model_copy(update={"package_type": self.package_type})
        self.config = config
        self.options = options
        self.confirm = confirm or Confirm(unattended=options.unattended)
        self.runner = runner or SubprocessCommandRunner()
        self.context = BuildContext.create(config, options, temp_root)
        self.macros = MacroRegistry(self.package_type)
        self.icons: List[IconDescriptor] = []
        self.project_path: Optional[pathlib.Path] = None
        self.state = BuildState.CREATED
        self._seed_macros()

    # Properties overridden by the format builders

    @property
    def publish_directory(self) -> pathlib.Path:
        """Directory ``dotnet publish`` writes to."""
        return self.context.root_dir / "publish"

    @property
    def package_arch(self) -> str:
        """Architecture in the format's own naming."""
        return self.context.runtime

    @property
    def install_exec(self) -> str:
        """Command line that starts the installed application."""
        return self.context.app_exec_name

    @property
    def output_path(self) -> pathlib.Path:
        return self.context.output_path

    # Macros

    def _seed_macros(self) -> None:
        config = self.config
        context = self.context
        values = {
            MacroId.CONF_FILE_DIRECTORY: str(config.config_directory or ""),
            MacroId.APP_BASE_NAME: config.app_base_name,
            MacroId.APP_FRIENDLY_NAME: config.app_friendly_name,
            MacroId.APP_ID: config.app_id,
            MacroId.APP_SHORT_SUMMARY: config.app_short_summary,
            MacroId.APP_LICENSE_ID: config.app_license_id,
            MacroId.APP_EXEC_NAME: context.app_exec_name,
            MacroId.PUBLISHER_NAME: config.publisher_name,
            MacroId.PUBLISHER_ID: config.publisher_id or config.app_id,
            MacroId.PUBLISHER_COPYRIGHT: config.publisher_copyright,
            MacroId.PUBLISHER_LINK_NAME: config.publisher_link_name,
            MacroId.PUBLISHER_LINK_URL: config.publisher_link_url,
            MacroId.PUBLISHER_EMAIL: config.publisher_email,
            MacroId.DESKTOP_NODISPLAY: bool_text(config.desktop_no_display),
            MacroId.DESKTOP_INTEGRATE: bool_text(not config.desktop_no_display),
            MacroId.DESKTOP_TERMINAL: bool_text(config.desktop_terminal),
            MacroId.PRIME_CATEGORY: config.prime_category,
            MacroId.APP_VERSION: context.app_version,
            MacroId.PACKAGE_RELEASE: context.package_release,
            MacroId.PACKAGE_TYPE: self.package_type.value,
            MacroId.DOTNET_RUNTIME: context.runtime,
            MacroId.PACKAGE_ARCH: self.package_arch,
            MacroId.APPSTREAM_DESCRIPTION_XML: description_xml(config.app_description),
            MacroId.APPSTREAM_CHANGELOG_XML: changelog_xml_from_file(config.app_change_file),
            MacroId.INSTALL_EXEC: self.install_exec,
        }
        for macro, value in values.items():
            self.macros.set(macro, value)

    def expand_file(self, source: pathlib.Path, target: pathlib.Path) -> pathlib.Path:
        """Copy a text file with its macros expanded and Unix line endings."""
        text = pathlib.Path(source).read_text(encoding="utf-8-sig")
        return write_lf(target, self.macros.expand(text))

    # Validation

    def validation_errors(self) -> List[str]:
        """Return every problem that would make the build fail."""
        return [message for tool, message in self.required_tools.items() if not self.runner.which(tool)]

    def validate(self) -> None:
        """Check build requirements.

        Raises:
            ValidationFailedError: With every problem found.
        """
        logger.info("Validating build requirements", package_type=self.package_type.value)
        errors = self.validation_errors()
        if errors:
            raise ValidationFailedError(
                errors, header=f"{self.package_type.value.upper()} package validation failed:"
            )
        logger.info("Validation passed", package_type=self.package_type.value, status="success")

    # Pipeline

    def _enter(self, state: BuildState) -> None:
        if _STATE_ORDER.index(state) <= _STATE_ORDER.index(self.state):
            raise BuildError(
                f"Cannot enter build stage '{state.value}' after '{self.state.value}'",
                package_type=self.package_type.value,
            )
        self.state = state
        logger.debug("Build stage", stage=state.value, package_type=self.package_type.value)

    def build(self) -> pathlib.Path:
        """Run every stage and return the artifact path."""
        logger.info(
            "Starting package build",
            package_type=self.package_type.value,
            runtime=self.context.runtime,
            output=str(self.output_path),
        )
        self._enter(BuildState.INIT)
        self.initialize()
        self._enter(BuildState.PUBLISH)
        self.publish()
        self._enter(BuildState.STAGE)
        self.stage()
        self._enter(BuildState.MANIFEST)
        self.write_manifest()
        self._enter(BuildState.INVOKE)
        artifact = self.invoke()
        self._enter(BuildState.FINALIZE)
        return self.finalize(artifact)

    def initialize(self) -> None:
        context = self.context
        if context.root_dir.exists():
            shutil.rmtree(context.root_dir)
        context.root_dir.mkdir(parents=True)
        for directory in (context.output_dir, context.icons_dir, context.scripts_dir):
            directory.mkdir(parents=True, exist_ok=True)

        self.icons = stage_icons(
            self.config.icons,
            context.icons_dir,
            self.config.app_base_name,
            self.config.auto_generate_icons,
        )
        self.project_path = self._resolve_project(context.project_path)

    def _resolve_project(self, path: Optional[pathlib.Path]) -> Optional[pathlib.Path]:
        if path is None:
            return None
        if path.is_file():
            return path
        if path.is_dir():
            candidates = sorted(path.glob("*.csproj"))
            if not candidates:
                raise NotFoundError(
                    f"No project file found in the specified directory. Directory path: {path}", path=str(path)
                )
            if len(candidates) > 1:
                self.confirm.require("Multiple project files found. Do you want to use the first project file found?")
            return candidates[0]
        raise NotFoundError(f"Project file not found. File path: {path}", path=str(path))

    def publish(self) -> None:
        """Publish the .NET project into ``publish_directory`` and run the post-publish script."""
        publish_dir = self.publish_directory
        if publish_dir.exists() and any(publish_dir.iterdir()):
            if self.options.unattended:
                logger.info("Build directory already exists. Deleting it", directory=str(publish_dir))
            else:
                self.confirm.require(
                    f"Build directory already exists. Directory path: {publish_dir}. Do you want to delete it?"
                )
            shutil.rmtree(publish_dir)
        publish_dir.mkdir(parents=True, exist_ok=True)

        self.macros.set(MacroId.PUBLISH_OUTPUT_DIRECTORY, str(publish_dir))
        self._set_primary_icon()

        if self.project_path is None:
            logger.info("Publishing disabled, skipping dotnet publish")
        else:
            if self.options.clean:
                logger.info("Cleaning project", project=str(self.project_path))
                self.run_tool(["dotnet", "clean", str(self.project_path)])
            logger.info("Publishing project", project=str(self.project_path), runtime=self.context.runtime)
            self.run_tool(self.publish_command())
            logger.info("Project published", directory=str(publish_dir), status="success")

        self.run_post_publish()

    def publish_command(self) -> List[str]:
        args = shlex.split(self.macros.expand(self.config.dotnet_publish_args))
        if self.package_type in MACOS_PACKAGES:
            args = self._ensure_app_host(args)
        return [
            "dotnet",
            "publish",
            str(self.project_path),
            "-c",
            self.options.publish_configuration,
            "-r",
            self.context.runtime,
            "-o",
            str(self.publish_directory),
        ] + args

    def _ensure_app_host(self, args: List[str]) -> List[str]:
        joined = " ".join(args).lower()
        if "useapphost" not in joined:
            if self.options.unattended:
                logger.warning("UseAppHost is not set. Adding it to the publish arguments", argument=APP_HOST_PROPERTY)
                return args + [APP_HOST_PROPERTY]
            if self.confirm.ask(f"Do you want to add {APP_HOST_PROPERTY} to dotnet publish?"):
                return args + [APP_HOST_PROPERTY]
        elif "useapphost=false" in joined:
            logger.warning("UseAppHost=false produces no executable for the application bundle")
        return args

    def _set_primary_icon(self) -> None:
        icon = select_primary_icon(self.package_type, self.icons)
        if icon is None:
            logger.warning("No primary icon for this package type", package_type=self.package_type.value)
            return
        self.macros.set(MacroId.PRIMARY_ICON_FILE_NAME, icon.path.name)
        self.macros.set(MacroId.PRIMARY_ICON_FILE_PATH, str(icon.path))

    def run_post_publish(self) -> None:
        on_windows = host_os() == HostOS.WINDOWS
        script = self.config.dotnet_post_publish_on_windows if on_windows else self.config.dotnet_post_publish
        if not script:
            return

        source = pathlib.Path(script)
        text = self.macros.expand(source.read_text(encoding="utf-8-sig"))
        keyword = "pause" if on_windows else "read"
        if re.search(rf"\b{keyword}\b", text, re.IGNORECASE if on_windows else 0):
            logger.warning("Post-publish script may wait for input", script=source.name, keyword=keyword)

        target = self.context.scripts_dir / source.name
        target.parent.mkdir(parents=True, exist_ok=True)
        if on_windows:
            target.write_text(text, encoding="utf-8")
        else:
            write_lf(target, text)

        args = shlex.split(self.macros.expand(self.config.dotnet_post_publish_arguments))
        if target.suffix.lower() in (".bat", ".cmd"):
            command = ["cmd", "/c", str(target)]
        else:
            command = ["bash", str(target)]

        logger.info("Running post-publish script", script=str(source))
        self.run_tool(command + args, cwd=self.context.scripts_dir, env=self.macros.environment())

    def stage(self) -> None:
        """Lay out the package tree around the published files."""

    def write_manifest(self) -> None:
        """Write the files the packaging tool reads."""

    def invoke(self) -> pathlib.Path:
        """Run the packaging tool and return the artifact path."""
        raise NotImplementedError

    def finalize(self, artifact: pathlib.Path) -> pathlib.Path:
        if not artifact.exists():
            raise BuildError(f"Package was not created. Expected path: {artifact}", package_type=self.package_type.value)

        logger.info("Package created", path=str(artifact), package_type=self.package_type.value, status="success")
        if self.options.clear_after_build:
            self.clear()
        self.state = BuildState.DONE
        return artifact

    def clear(self) -> None:
        """Remove the staging root of this build."""
        root = self.context.root_dir
        if not root.exists():
            return
        try:
            shutil.rmtree(root)
            logger.info("Removed build directory", directory=str(root))
        except OSError as e:
            logger.warning("Could not remove build directory", directory=str(root), error=str(e))

    # Helpers

    def run_tool(
            self,
            command: Sequence[str],
            *,
            cwd: Optional[pathlib.Path] = None,
            env: Optional[Mapping[str, Optional[str]]] = None,
    ) -> CommandResult:
        command = [str(part) for part in command]
        logger.info("Running command", command=self.runner.format_command(command))
        result = self.runner.run(command, cwd=cwd, env=env)
        if self.options.verbose and result.stdout.strip():
            logger.info("Command output", tool=result.tool, output=result.stdout.strip())
        return result
