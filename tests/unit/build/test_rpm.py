"""Unit tests for the RPM package builder."""

import pytest

from netloy.build.rpm import RpmPackageBuilder
from netloy.utils.exceptions import BuildError


class TestRpmPackageBuilder:
    """Tests for the RPM spec file and rpmbuild call."""

    @pytest.fixture
    def builder(self, make_builder):
        builder = make_builder(RpmPackageBuilder)
        builder.initialize()
        builder.publish()
        builder.stage()
        builder.write_manifest()
        return builder

    def test_spec_header(self, builder):
        text = builder.spec_file_path.read_text(encoding="utf-8")
        assert builder.spec_file_path.name == "helloworld.spec"
        lines = text.split("\n")
        assert lines[:6] == [
            "Name: helloworld",
            "Version: 1.2.3",
            "Release: 4",
            "Summary: Says hello to the world",
            "License: MIT",
            "BuildArch: x86_64",
        ]
        assert "AutoReq: no" in lines
        assert "AutoProv: yes" in lines
        assert "Requires: krb5-libs" in lines
        assert "Requires: libicu" in lines
        assert "%post" in lines
        assert "%postun" in lines

    def test_file_list(self, builder):
        entries = builder.file_list()
        assert "/opt/com.example.helloworld/HelloWorld" in entries
        assert "/opt/com.example.helloworld/runtimes/native/libhello.so" in entries
        assert "%license /opt/com.example.helloworld/LICENSE.txt" in entries
        assert "%doc /opt/com.example.helloworld/CHANGES.txt" in entries
        assert "/usr/bin/helloworld" in entries
        assert "/usr/share/applications/com.example.helloworld.desktop" in entries
        assert not any(entry.endswith("/opt/com.example.helloworld") for entry in entries)

    def test_invoke(self, builder, runner):
        artifact = builder.invoke()
        call = [call for call in runner.calls if call["command"][0] == "rpmbuild"][0]
        assert call["command"][:3] == ["rpmbuild", "-bb", str(builder.spec_file_path)]
        assert f"--buildroot={builder.structure_directory}" in call["command"]
        assert "SOURCE_DATE_EPOCH" in call["env"]
        assert artifact == builder.output_path
        assert artifact.read_bytes() == b"artifact"

    def test_missing_rpm(self, builder, monkeypatch):
        monkeypatch.setitem(builder.runner._handlers, "rpmbuild", lambda command, cwd: None)
        with pytest.raises(BuildError):
            builder.invoke()
