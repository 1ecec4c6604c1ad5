"""Flatpak bundle builder (``flatpak-builder`` and ``flatpak build-bundle``)."""

from __future__ import annotations

import pathlib
import shlex
from typing import Any, Dict, List

import yaml

from netloy.build.linux import LinuxPackageBuilder
from netloy.build.utils import write_lf
from netloy.core.logging_manager import get_logger
from netloy.core.platform import PackageType

logger = get_logger(__name__)

MANIFEST_FILE_NAME = "manifest.yml"

BUILD_COMMANDS = [
    "mkdir -p /app/bin",
    "cp -rn bin/* /app/bin",
    "mkdir -p /app/share",
    "cp -rn share/* /app/share",
]


class FlatpakPackageBuilder(LinuxPackageBuilder):
    """Builds a single-file ``.flatpak`` bundle.

    The published application and its desktop files are laid out under
    ``files/`` and copied into ``/app`` by a simple build module.
    """

    package_type = PackageType.FLATPAK
    required_tools = {
        "flatpak-builder": "flatpak-builder not found. Please install flatpak-builder",
        "flatpak": "flatpak not found. Please install flatpak (https://flatpak.org/setup/)",
    }
    include_pixmaps = False
    include_launcher = False

    @property
    def install_exec(self) -> str:
        return self.context.app_exec_name

    @property
    def usr_directory(self) -> pathlib.Path:
        return self.context.root_dir / "files"

    @property
    def publish_directory(self) -> pathlib.Path:
        return self.usr_directory / "bin"

    @property
    def manifest_path(self) -> pathlib.Path:
        return self.context.root_dir / MANIFEST_FILE_NAME

    def validation_errors(self) -> List[str]:
        errors = super().validation_errors()
        config = self.config
        if not config.flatpak_platform_runtime:
            errors.append("FlatpakPlatformRuntime not configured (e.g., org.freedesktop.Platform)")
        if not config.flatpak_platform_sdk:
            errors.append("FlatpakPlatformSdk not configured (e.g., org.freedesktop.Sdk)")
        if not config.flatpak_platform_version:
            errors.append("FlatpakPlatformVersion not configured (e.g., 23.08)")
        if not any(icon.extension in ("png", "svg") for icon in config.icons):
            errors.append("No icon found in configuration. Flatpak requires at least one PNG or SVG icon.")
        return errors

    def stage(self) -> None:
        for name in ("build", "repo", "state"):
            (self.context.root_dir / name).mkdir(parents=True, exist_ok=True)
        super().stage()

    def manifest(self) -> Dict[str, Any]:
        config = self.config
        manifest: Dict[str, Any] = {
            "app-id": config.app_id,
            "runtime": config.flatpak_platform_runtime,
            "runtime-version": str(config.flatpak_platform_version),
            "sdk": config.flatpak_platform_sdk,
            "command": self.context.app_exec_name,
        }
        finish_args = self.macros.expand(config.flatpak_finish_args).split()
        if finish_args:
            manifest["finish-args"] = finish_args
        manifest["modules"] = [
            {
                "name": config.app_base_name,
                "buildsystem": "simple",
                "build-commands": list(BUILD_COMMANDS),
                "sources": [{"type": "dir", "path": "files"}],
            }
        ]
        return manifest

    def write_manifest(self) -> None:
        text = yaml.safe_dump(self.manifest(), sort_keys=False, default_flow_style=False)
        write_lf(self.manifest_path, text)
        logger.info("Flatpak manifest written", path=str(self.manifest_path))

    def invoke(self) -> pathlib.Path:
        root = self.context.root_dir
        arch = self.package_arch
        repo = root / "repo"

        builder_command = ["flatpak-builder"]
        builder_command += shlex.split(self.macros.expand(self.config.flatpak_builder_args))
        builder_command += [
            f"--arch={arch}",
            f"--repo={repo}",
            "--force-clean",
            str(root / "build"),
            "--state-dir",
            str(root / "state"),
            str(self.manifest_path),
        ]
        self.run_tool(builder_command, cwd=root)

        self.run_tool(
            ["flatpak", "build-bundle", str(repo), str(self.output_path), self.config.app_id, f"--arch={arch}"],
            cwd=root,
        )
        return self.output_path
