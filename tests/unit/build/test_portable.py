"""Unit tests for the portable archive builder."""

import sys
import tarfile
import zipfile

import pytest

from netloy.build.portable import PortablePackageBuilder


@pytest.mark.skipif(sys.platform.startswith("win"), reason="Windows hosts write zip archives")
def test_tarball(make_builder):
    builder = make_builder(PortablePackageBuilder)
    builder.initialize()
    builder.publish()
    builder.stage()
    artifact = builder.invoke()

    with tarfile.open(artifact, "r:gz") as archive:
        names = archive.getnames()
    assert "HelloWorld" in names
    assert "runtimes/native/libhello.so" in names
    assert not any(name.startswith("/") for name in names)


def test_zip_from_output_path(make_builder):
    builder = make_builder(PortablePackageBuilder, runtime="win-x64", output_path="HelloWorld.zip")
    artifact = builder.build()

    assert artifact.name == "HelloWorld.zip"
    with zipfile.ZipFile(artifact) as archive:
        names = sorted(archive.namelist())
    assert names == ["HelloWorld.exe", "appsettings.json", "runtimes/native/libhello.so"]


def test_existing_archive_is_replaced(make_builder):
    builder = make_builder(PortablePackageBuilder, output_path="HelloWorld.zip")
    builder.output_path.write_bytes(b"stale")
    artifact = builder.build()
    assert zipfile.is_zipfile(artifact)
