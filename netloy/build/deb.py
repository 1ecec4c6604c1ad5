"""Debian package builder (``dpkg-deb``)."""

from __future__ import annotations

import pathlib
from typing import List

from netloy.build.linux import LinuxPackageBuilder
from netloy.build.utils import directory_size, make_executable, set_mode, walk, write_lf
from netloy.config.parser import split_list
from netloy.core.logging_manager import get_logger
from netloy.core.platform import PackageType
from netloy.macro.registry import MacroId

logger = get_logger(__name__)

MAINTAINER_SCRIPTS = ("preinst", "postinst", "prerm", "postrm")

# Freedesktop main category -> Debian section
DEBIAN_SECTIONS = {
    "audiovideo": "sound",
    "audio": "sound",
    "video": "video",
    "development": "devel",
    "education": "education",
    "game": "games",
    "graphics": "graphics",
    "network": "net",
    "office": "text",
    "science": "science",
    "settings": "utils",
    "system": "admin",
    "utility": "utils",
}


def debian_package_name(name: str) -> str:
    """Debian package names are lowercase and use dashes."""
    return name.lower().replace(" ", "-").replace("_", "-").strip("-")


def debian_section(category: str) -> str:
    return DEBIAN_SECTIONS.get(category.strip().lower(), "misc")


class DebPackageBuilder(LinuxPackageBuilder):
    """Builds a ``.deb`` with the application installed under ``/opt/<AppId>``."""

    package_type = PackageType.DEB
    required_tools = {"dpkg-deb": "dpkg-deb not found. Please install dpkg"}

    @property
    def package_name(self) -> str:
        return debian_package_name(self.config.package_name)

    @property
    def debian_directory(self) -> pathlib.Path:
        return self.context.root_dir / "DEBIAN"

    @property
    def publish_directory(self) -> pathlib.Path:
        return self.context.root_dir / "opt" / self.config.app_id

    @property
    def doc_directory(self) -> pathlib.Path:
        return self.share_directory / "doc" / self.package_name

    def stage(self) -> None:
        self.debian_directory.mkdir(parents=True, exist_ok=True)
        super().stage()
        self.copy_license(self.doc_directory / "copyright")

    def write_manifest(self) -> None:
        path = write_lf(self.debian_directory / "control", self.control_file())
        logger.info("Control file written", path=str(path))
        self.set_permissions()

    def installed_size(self) -> int:
        """Installed size in KiB, excluding the DEBIAN directory."""
        total = directory_size(self.context.root_dir) - directory_size(self.debian_directory)
        return total // 1024 + 1

    def control_file(self) -> str:
        config = self.config
        section = debian_section(self.macros.get(MacroId.PRIME_CATEGORY))
        lines = [
            f"Package: {self.package_name}",
            f"Version: {self.context.app_version}-{self.context.package_release}",
            f"Architecture: {self.package_arch}",
            f"Maintainer: {config.publisher_email}",
            f"Section: multiverse/{section}",
            "Priority: optional",
            f"Installed-Size: {self.installed_size()}",
        ]
        if config.publisher_link_url:
            lines.append(f"Homepage: {config.publisher_link_url}")

        lines.append(f"Description: {config.app_short_summary}")
        if config.app_description:
            for line in config.app_description.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
                line = line.strip()
                lines.append(f" {line}" if line else " .")

        lines.append(f"License: {config.app_license_id}")
        lines.append(f"Vendor: {config.publisher_name}")

        recommends = split_list(config.debian_recommends)
        if recommends:
            lines.append(f"Recommends: {', '.join(recommends)}")

        # dpkg-deb requires the trailing newline after the last field
        return "\n".join(lines) + "\n\n"

    def set_permissions(self) -> None:
        """Directories 755, files 644, executables and maintainer scripts 755."""
        root = self.context.root_dir
        debian = self.debian_directory
        set_mode(root, 0o755)
        for path in walk(root):
            if path.is_symlink():
                continue
            if path.is_dir():
                set_mode(path, 0o755)
            elif debian not in path.parents:
                set_mode(path, 0o644)

        for path in self._executables():
            set_mode(path, 0o755)

    def _executables(self) -> List[pathlib.Path]:
        executables: List[pathlib.Path] = []
        publish = self.publish_directory
        main = publish / self.context.app_exec_name
        if main.is_file():
            executables.append(main)
        for path in walk(publish):
            if path.is_file() and not path.is_symlink() and path.suffix.lower() in ("", ".so"):
                executables.append(path)

        launcher = self.launcher_path
        if launcher is not None and launcher.is_file():
            executables.append(launcher)

        executables.extend(
            self.debian_directory / name for name in MAINTAINER_SCRIPTS if (self.debian_directory / name).is_file()
        )
        return list(dict.fromkeys(executables))

    def invoke(self) -> pathlib.Path:
        command = ["dpkg-deb", "--root-owner-group"]
        if self.options.verbose:
            command.append("--verbose")
        command += ["--build", str(self.context.root_dir), str(self.output_path)]
        self.run_tool(command)
        return self.output_path
