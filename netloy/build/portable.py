"""Portable archive of the published application."""

from __future__ import annotations

import pathlib
import tarfile
import zipfile

from netloy.build.builder import PackageBuilder
from netloy.build.utils import make_executable, walk
from netloy.core.logging_manager import get_logger
from netloy.core.platform import HostOS, PackageType, host_os

logger = get_logger(__name__)


class PortablePackageBuilder(PackageBuilder):
    """Packs the publish directory into a ``.zip`` (Windows hosts) or ``.tar.gz``.

    Archive entries are relative to the publish directory, so unpacking gives
    the application files without a wrapping folder.
    """

    package_type = PackageType.PORTABLE

    def stage(self) -> None:
        if host_os() != HostOS.WINDOWS:
            make_executable(self.publish_directory / self.context.app_exec_name)

    def invoke(self) -> pathlib.Path:
        output = self.output_path
        output.parent.mkdir(parents=True, exist_ok=True)
        if output.exists():
            output.unlink()

        if output.name.lower().endswith(".zip"):
            count = self._write_zip(output)
        else:
            count = self._write_tar(output)
        logger.info("Archive written", path=str(output), files=count)
        return output

    def _write_zip(self, output: pathlib.Path) -> int:
        publish = self.publish_directory
        count = 0
        with zipfile.ZipFile(output, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
            for path in walk(publish):
                if path.is_file():
                    archive.write(path, path.relative_to(publish).as_posix())
                    count += 1
        return count

    def _write_tar(self, output: pathlib.Path) -> int:
        publish = self.publish_directory
        count = 0
        with tarfile.open(output, "w:gz", compresslevel=9) as archive:
            for path in walk(publish):
                archive.add(path, arcname=path.relative_to(publish).as_posix(), recursive=False)
                if path.is_file():
                    count += 1
        return count
