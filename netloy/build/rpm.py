"""RPM package builder (``rpmbuild``)."""

from __future__ import annotations

import pathlib
import shutil
import time
from typing import List, Optional

from netloy.build.linux import LinuxPackageBuilder
from netloy.build.utils import copy_file, make_executable, walk, write_lf
from netloy.config.parser import split_list
from netloy.core.logging_manager import get_logger
from netloy.core.platform import PackageType
from netloy.utils.exceptions import BuildError

logger = get_logger(__name__)

LICENSE_STEMS = ("license", "licence", "copying")
DOC_STEMS = ("readme", "changelog", "changes")

POST_INSTALL = """%post
if [ -x /usr/bin/update-desktop-database ]; then
  /usr/bin/update-desktop-database -q /usr/share/applications 2>/dev/null || :
fi
if [ -x /usr/bin/gtk-update-icon-cache ]; then
  /usr/bin/gtk-update-icon-cache -q /usr/share/icons/hicolor 2>/dev/null || :
fi
"""

POST_UNINSTALL = """%postun
if [ -x /usr/bin/update-desktop-database ]; then
  /usr/bin/update-desktop-database -q /usr/share/applications 2>/dev/null || :
fi
if [ $1 -eq 0 ]; then
  if [ -x /usr/bin/gtk-update-icon-cache ]; then
    /usr/bin/gtk-update-icon-cache -q /usr/share/icons/hicolor 2>/dev/null || :
  fi
fi
"""


def rpm_package_name(name: str) -> str:
    return name.lower().replace(" ", "-").replace("_", "-").strip("-")


def source_date_epoch() -> str:
    return str(int(time.time()))


class RpmPackageBuilder(LinuxPackageBuilder):
    """Builds a ``.rpm`` from a prebuilt ``structure`` tree.

    The tree is handed to rpmbuild as the build root, so the spec file has no
    build or install sections, only the list of files.
    """

    package_type = PackageType.RPM
    required_tools = {"rpmbuild": "rpmbuild not found. Please install rpm-build (or rpm)"}

    @property
    def package_name(self) -> str:
        return rpm_package_name(self.config.package_name)

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
    def rpmbuild_directory(self) -> pathlib.Path:
        return self.context.root_dir / "rpmbuild"

    @property
    def spec_file_path(self) -> pathlib.Path:
        return self.context.root_dir / f"{self.package_name}.spec"

    def stage(self) -> None:
        super().stage()
        for source in (self.config.app_license_file, self.config.app_change_file):
            if source:
                copy_file(source, self.publish_directory / pathlib.Path(source).name)
        make_executable(self.publish_directory / self.context.app_exec_name)

    def write_manifest(self) -> None:
        path = write_lf(self.spec_file_path, self.spec_file())
        logger.info("Spec file written", path=str(path))

    def _file_tag(self, path: pathlib.Path) -> Optional[str]:
        name = path.name
        stem = path.stem.lower()
        if stem in LICENSE_STEMS or (
                self.config.app_license_file and name == pathlib.Path(self.config.app_license_file).name
        ):
            return "%license"
        if stem in DOC_STEMS or (
                self.config.app_change_file and name == pathlib.Path(self.config.app_change_file).name
        ):
            return "%doc"
        return None

    def file_list(self) -> List[str]:
        """Return the ``%files`` entries for every file in the structure tree."""
        entries: List[str] = []
        root = self.structure_directory
        for path in walk(root):
            if path.is_dir() and not path.is_symlink():
                continue
            installed = "/" + path.relative_to(root).as_posix()
            if " " in installed:
                installed = f'"{installed}"'
            tag = self._file_tag(path)
            entries.append(f"{tag} {installed}" if tag else installed)
        return entries

    def spec_file(self) -> str:
        config = self.config
        lines = [
            f"Name: {self.package_name}",
            f"Version: {self.context.app_version}",
            f"Release: {self.context.package_release}",
            f"Summary: {config.app_short_summary}",
            f"License: {config.app_license_id or 'Proprietary'}",
            f"BuildArch: {self.package_arch}",
        ]
        if config.publisher_link_url:
            lines.append(f"URL: {config.publisher_link_url}")
        if config.publisher_name:
            lines.append(f"Vendor: {config.publisher_name}")
        lines.append(f"AutoReq: {'yes' if config.rpm_auto_req else 'no'}")
        lines.append(f"AutoProv: {'yes' if config.rpm_auto_prov else 'no'}")
        lines.extend(f"Requires: {item}" for item in split_list(config.rpm_requires))
        lines.append("")

        lines.append("%description")
        lines.append(config.app_description or config.app_short_summary)
        lines.append("")

        lines.append("%files")
        lines.append("%defattr(-,root,root,-)")
        lines.extend(self.file_list())
        lines.append("")

        return "\n".join(lines) + "\n" + POST_INSTALL + "\n" + POST_UNINSTALL

    def invoke(self) -> pathlib.Path:
        self.rpmbuild_directory.mkdir(parents=True, exist_ok=True)
        command = [
            "rpmbuild",
            "-bb",
            str(self.spec_file_path),
            "--define",
            f"_topdir {self.rpmbuild_directory}",
            f"--buildroot={self.structure_directory}",
            "--define",
            f"_rpmdir {self.rpmbuild_directory / 'RPMS'}",
            "--define",
            "_build_id_links none",
            "--noclean",
        ]
        if self.options.verbose:
            command.append("--verbose")
        self.run_tool(command, cwd=self.context.root_dir, env={"SOURCE_DATE_EPOCH": source_date_epoch()})

        rpm_dir = self.rpmbuild_directory / "RPMS" / self.package_arch
        generated = sorted(rpm_dir.glob("*.rpm")) if rpm_dir.is_dir() else []
        if not generated:
            raise BuildError(f"Generated RPM file not found in {rpm_dir}", package_type=self.package_type.value)

        shutil.copyfile(generated[0], self.output_path)
        return self.output_path
