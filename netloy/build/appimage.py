"""AppImage builder (``appimagetool``)."""

from __future__ import annotations

import pathlib
import shlex
from typing import List

from netloy.build.builder import select_primary_icon
from netloy.build.linux import LinuxPackageBuilder
from netloy.build.utils import copy_file, make_executable, write_lf
from netloy.core.logging_manager import get_logger
from netloy.core.platform import PackageType

logger = get_logger(__name__)

APP_RUN = """#!/bin/sh
HERE="$(dirname "$(readlink -f "$0")")"
exec "$HERE/usr/bin/{exec_name}" "$@"
"""


class AppImagePackageBuilder(LinuxPackageBuilder):
    """Builds an ``.AppImage`` from an AppDir.

    The AppDir root holds ``AppRun``, the desktop entry and the primary icon;
    the application itself lives in ``usr/bin``.
    """

    package_type = PackageType.APPIMAGE
    required_tools = {"appimagetool": "appimagetool not found. Download it from https://appimage.github.io/appimagetool/"}
    include_launcher = False

    @property
    def install_exec(self) -> str:
        return self.context.app_exec_name

    @property
    def app_dir(self) -> pathlib.Path:
        return self.context.root_dir / f"{self.config.app_base_name}.AppDir"

    @property
    def usr_directory(self) -> pathlib.Path:
        return self.app_dir / "usr"

    @property
    def publish_directory(self) -> pathlib.Path:
        return self.bin_directory

    def validation_errors(self) -> List[str]:
        errors = super().validation_errors()
        if not any(icon.extension in ("png", "svg") for icon in self.config.icons):
            errors.append("No PNG or SVG icon found. AppImage requires an application icon.")
        return errors

    def stage(self) -> None:
        super().stage()
        app_dir = self.app_dir
        app_id = self.config.app_id

        write_lf(app_dir / f"{app_id}.desktop", self.desktop_entry())

        icon = select_primary_icon(self.package_type, self.icons)
        if icon is not None:
            copy_file(icon.path, app_dir / f"{app_id}.{icon.extension}")
            copy_file(icon.path, app_dir / ".DirIcon")

        app_run = write_lf(app_dir / "AppRun", APP_RUN.format(exec_name=self.context.app_exec_name))
        make_executable(app_run)
        make_executable(self.publish_directory / self.context.app_exec_name)
        logger.info("AppDir prepared", path=str(app_dir))

    def invoke(self) -> pathlib.Path:
        command = ["appimagetool"]
        command += shlex.split(self.macros.expand(self.config.app_image_args))
        command += [str(self.app_dir), str(self.output_path)]
        self.run_tool(command, cwd=self.context.root_dir, env={"ARCH": self.package_arch})
        return self.output_path
