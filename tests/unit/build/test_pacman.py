"""Unit tests for the Arch Linux package builder."""

import pytest

from netloy.build.pacman import PacmanPackageBuilder, quote_list
from netloy.utils.exceptions import BuildError


def test_quote_list():
    assert quote_list(["glibc", "icu"]) == "'glibc' 'icu'"


class TestPacmanPackageBuilder:
    """Tests for the PKGBUILD and makepkg call."""

    @pytest.fixture
    def builder(self, make_builder):
        builder = make_builder(PacmanPackageBuilder)
        builder.initialize()
        builder.publish()
        builder.stage()
        builder.write_manifest()
        return builder

    def test_pkgbuild(self, builder):
        lines = builder.pkgbuild_path.read_text(encoding="utf-8").split("\n")
        assert "pkgname=helloworld" in lines
        assert "pkgver=1.2.3" in lines
        assert "pkgrel=4" in lines
        assert "arch=('x86_64')" in lines
        assert "license=('MIT')" in lines
        assert "depends=('glibc' 'icu')" in lines
        assert "  'krb5: kerberos support'" in lines
        assert "options=('!strip')" in lines
        assert '  chmod +x "${pkgdir}/opt/com.example.helloworld/HelloWorld"' in lines
        assert '  chmod +x "${pkgdir}/usr/bin/helloworld"' in lines

    def test_license_installed(self, builder):
        license_file = builder.share_directory / "licenses" / "helloworld" / "LICENSE"
        assert license_file.read_text(encoding="utf-8") == "MIT License\n"

    def test_invoke_moves_package(self, builder, runner):
        artifact = builder.invoke()
        call = [call for call in runner.calls if call["command"][0] == "makepkg"][0]
        assert call["cwd"] == builder.context.root_dir
        assert "--nodeps" in call["command"]
        assert artifact.is_file()
        assert not list(builder.context.root_dir.glob("*.pkg.tar.zst"))

    def test_several_packages(self, builder):
        root = builder.context.root_dir
        (root / "helloworld-0.9-1-x86_64.pkg.tar.zst").write_bytes(b"a")
        (root / "helloworld-1.0-1-x86_64.pkg.tar.zst").write_bytes(b"b")
        builder.runner._handlers["makepkg"] = lambda command, cwd: None
        with pytest.raises(BuildError) as exc_info:
            builder.invoke()
        assert "Multiple package files" in str(exc_info.value)
