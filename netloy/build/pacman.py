"""Arch Linux package builder (``makepkg``)."""

from __future__ import annotations

import pathlib
import shutil
from typing import List

from netloy.build.linux import LinuxPackageBuilder
from netloy.build.rpm import source_date_epoch
from netloy.build.utils import copy_file, make_executable, write_lf
from netloy.config.parser import split_list
from netloy.core.logging_manager import get_logger
from netloy.core.platform import PackageType
from netloy.utils.exceptions import BuildError

logger = get_logger(__name__)


def arch_package_name(name: str) -> str:
    return name.lower().replace(" ", "-").replace("_", "-").strip("-")


def quote_list(items: List[str]) -> str:
    return " ".join(f"'{item}'" for item in items)


class PacmanPackageBuilder(LinuxPackageBuilder):
    """Builds a ``.pkg.tar.zst`` from a PKGBUILD that copies a prebuilt tree."""

    package_type = PackageType.PACMAN
    required_tools = {"makepkg": "makepkg not found. Please install the base-devel package group"}

    @property
    def package_name(self) -> str:
        return arch_package_name(self.config.package_name)

    @property
    def package_version(self) -> str:
        # pkgver may not contain hyphens
        return self.context.app_version.replace("-", "_")

    @property
    def structure_directory(self) -> pathlib.Path:
        return self.context.root_dir / "structure"

    @property
    def usr_directory(self) -> pathlib.Path:
        return self.structure_directory / "usr"

    @property
    def publish_directory(self) -> pathlib.Path:
        return self.structure_directory / "opt" / self.config.app_id

    @property
    def pkgbuild_path(self) -> pathlib.Path:
        return self.context.root_dir / "PKGBUILD"

    def stage(self) -> None:
        super().stage()
        if self.config.app_license_file:
            copy_file(
                self.config.app_license_file,
                self.share_directory / "licenses" / self.package_name / "LICENSE",
            )
        make_executable(self.publish_directory / self.context.app_exec_name)

    def write_manifest(self) -> None:
        path = write_lf(self.pkgbuild_path, self.pkgbuild())
        logger.info("PKGBUILD written", path=str(path))

    def pkgbuild(self) -> str:
        config = self.config
        lines = [
            f"# Maintainer: {config.publisher_name} <{config.publisher_email}>",
            "",
            f"pkgname={self.package_name}",
            f"pkgver={self.package_version}",
            f"pkgrel={self.context.package_release}",
            f'pkgdesc="{config.app_short_summary}"',
            f"arch=('{self.package_arch}')",
            f'url="{config.publisher_link_url}"',
            f"license=('{config.app_license_id or 'custom'}')",
        ]

        depends = split_list(config.arch_depends)
        if depends:
            lines.append(f"depends=({quote_list(depends)})")

        optdepends = split_list(config.arch_opt_depends, "\r\n")
        if optdepends:
            lines.append("optdepends=(")
            lines.extend(f"  '{item}'" for item in optdepends)
            lines.append(")")

        # Stripping breaks self-contained .NET binaries
        lines.append("options=('!strip')")
        lines.append("")
        lines.append("source=()")
        lines.append("sha256sums=()")
        lines.append("")

        lines.append("package() {")
        lines.append('  cp -r "${startdir}/structure/"* "${pkgdir}/"')
        lines.append(f'  chmod +x "${{pkgdir}}{self.install_exec}"')
        if self.launcher_path is not None:
            lines.append(f'  chmod +x "${{pkgdir}}/usr/bin/{config.start_command}"')
        lines.append("}")
        return "\n".join(lines) + "\n"

    def invoke(self) -> pathlib.Path:
        command = ["makepkg", "--nodeps", "--skipinteg", "--skippgpcheck", "--skipchecksums", "--ignorearch", "--force"]
        self.run_tool(command, cwd=self.context.root_dir, env={"SOURCE_DATE_EPOCH": source_date_epoch()})

        root = self.context.root_dir
        expected = root / (
            f"{self.package_name}-{self.package_version}-{self.context.package_release}-{self.package_arch}.pkg.tar.zst"
        )
        candidates = [expected] if expected.is_file() else sorted(root.glob(f"{self.package_name}-*.pkg.tar.zst"))
        if not candidates:
            raise BuildError(f"No package file found in: {root}", package_type=self.package_type.value)
        if len(candidates) > 1:
            raise BuildError(
                f"Multiple package files found in: {root}. Expected only one.", package_type=self.package_type.value
            )

        shutil.move(str(candidates[0]), str(self.output_path))
        logger.debug("Package moved", source=str(candidates[0]), target=str(self.output_path))
        return self.output_path
