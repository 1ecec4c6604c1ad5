"""Paths and version data computed once per build."""

from __future__ import annotations

import dataclasses
import pathlib
import tempfile
from typing import Optional, Tuple

from netloy.build.options import BuildOptions
from netloy.config.models import Configuration
from netloy.core.platform import PackageType, artifact_extension

TEMP_DIRECTORY_NAME = "netloy"


def split_version(text: str) -> Tuple[str, str]:
    """Split ``VERSION[RELEASE]`` into its parts.

    ``1.2.3[4]`` gives ``("1.2.3", "4")``. Without brackets the release is
    ``"1"`` and a stray ``]`` is dropped, so ``1.2.3]`` gives ``("1.2.3", "1")``.
    """
    if "[" not in text:
        return text.replace("]", ""), "1"

    start = text.index("[")
    end = text.find("]", start)
    release = text[start + 1:end] if end >= 0 else text[start + 1:]
    return text[:start], release


def is_windows_runtime(runtime: str) -> bool:
    return runtime.lower().startswith("win-")


@dataclasses.dataclass(frozen=True)
class BuildContext:
    """Per-build values derived from the configuration and run options.

    Attributes:
        package_type: Format being built.
        runtime: .NET runtime id.
        project_dir: ``<tmp>/netloy/<AppBaseName>``, shared by all formats of the app.
        root_dir: Staging root for this format, ``<project_dir>/<format>``.
        icons_dir: Staged icons.
        scripts_dir: Macro-expanded copies of user scripts.
        output_dir: Directory the artifact is written to.
        output_name: Artifact file name.
        app_version: Version without the package release.
        package_release: Package release number.
        app_exec_name: Main executable name.
        project_path: Resolved project file, or None when publishing is disabled.
    """

    package_type: PackageType
    runtime: str
    project_dir: pathlib.Path
    root_dir: pathlib.Path
    icons_dir: pathlib.Path
    scripts_dir: pathlib.Path
    output_dir: pathlib.Path
    output_name: str
    app_version: str
    package_release: str
    app_exec_name: str
    project_path: Optional[pathlib.Path]

    @property
    def output_path(self) -> pathlib.Path:
        return self.output_dir / self.output_name

    @classmethod
    def create(
            cls,
            config: Configuration,
            options: BuildOptions,
            temp_root: Optional[pathlib.Path] = None,
    ) -> "BuildContext":
        """Compute the context for one build.

        Args:
            config: Validated configuration.
            options: Run options; ``options.runtime`` must already be set.
            temp_root: Base temporary directory, the system one by default.
        """
        runtime = options.runtime or ""
        project_dir = pathlib.Path(temp_root or tempfile.gettempdir()) / TEMP_DIRECTORY_NAME / config.app_base_name
        version, release = split_version(config.app_version_release)
        if options.app_version:
            version = options.app_version

        output_dir, output_name = cls._output_location(config, options, version, release, runtime)

        app_exec_name = config.app_base_name
        if is_windows_runtime(runtime):
            app_exec_name += ".exe"

        project_path = None
        if options.project_path:
            project_path = pathlib.Path(options.project_path).expanduser().resolve()
        elif config.publish_enabled and config.dotnet_project_path:
            project_path = pathlib.Path(config.dotnet_project_path)

        return cls(
            package_type=options.package_type,
            runtime=runtime,
            project_dir=project_dir,
            root_dir=project_dir / options.package_type.value,
            icons_dir=project_dir / "icons",
            scripts_dir=project_dir / "scripts",
            output_dir=output_dir,
            output_name=output_name,
            app_version=version,
            package_release=release,
            app_exec_name=app_exec_name,
            project_path=project_path,
        )

    @staticmethod
    def _output_location(
            config: Configuration,
            options: BuildOptions,
            version: str,
            release: str,
            runtime: str,
    ) -> Tuple[pathlib.Path, str]:
        default_dir = pathlib.Path(config.output_directory or ".")
        default_name = (
            f"{config.package_name}.{version}-{release}.{runtime}"
            f"{artifact_extension(options.package_type)}"
        )
        if not options.output_path:
            return default_dir, default_name

        path = pathlib.Path(options.output_path).expanduser()
        if not path.is_absolute():
            path = default_dir / path
        if path.is_dir():
            return path, default_name
        return path.parent, path.name
