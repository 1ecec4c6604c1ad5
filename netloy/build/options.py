"""Per-run build options.

These are the settings a caller chooses for one invocation (format, runtime,
output location...), as opposed to the project settings stored in the
``.netloy`` file.
"""

from __future__ import annotations

from typing import Optional

import pydantic

from netloy.core.platform import PackageType


class BuildOptions(pydantic.BaseModel):
    """Options for one packaging run.

    Attributes:
        package_type: Format to produce.
        runtime: .NET runtime id, derived from the host when omitted.
        output_path: Output file or directory; relative values are resolved
            against the configured OutputDirectory.
        project_path: Explicit project file or directory, overriding DotnetProjectPath.
        unattended: Answer every confirmation with its default.
        verbose: Log captured tool output.
        publish_configuration: Build configuration passed to ``dotnet publish -c``.
        clean: Run ``dotnet clean`` before publishing.
        app_version: Overrides the version part of AppVersionRelease.
        config_path: Path of the ``.netloy`` file.
        clear_after_build: Remove the temporary build tree once the artifact is written.
    """

    package_type: PackageType
    runtime: Optional[str] = None
    output_path: Optional[str] = None
    project_path: Optional[str] = None
    unattended: bool = False
    verbose: bool = False
    publish_configuration: str = "Release"
    clean: bool = False
    app_version: Optional[str] = None
    config_path: Optional[str] = None
    clear_after_build: bool = False

    @pydantic.field_validator("runtime", mode="before")
    @classmethod
    def normalize_runtime(cls, value):
        """Runtime ids are matched case-insensitively."""
        if value is None:
            return None
        value = str(value).strip().lower()
        return value or None

    @pydantic.field_validator("publish_configuration", mode="before")
    @classmethod
    def default_configuration(cls, value):
        return value or "Release"
