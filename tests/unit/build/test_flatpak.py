"""Unit tests for the Flatpak bundle builder."""

import pytest
import yaml

from netloy.build.flatpak import BUILD_COMMANDS, FlatpakPackageBuilder
from netloy.utils.exceptions import ValidationFailedError


class TestFlatpakPackageBuilder:
    """Tests for the Flatpak manifest and tool calls."""

    @pytest.fixture
    def builder(self, make_builder):
        builder = make_builder(FlatpakPackageBuilder)
        builder.initialize()
        builder.publish()
        builder.stage()
        builder.write_manifest()
        return builder

    def test_manifest(self, builder):
        manifest = yaml.safe_load(builder.manifest_path.read_text(encoding="utf-8"))
        assert manifest["app-id"] == "com.example.helloworld"
        assert manifest["runtime"] == "org.freedesktop.Platform"
        assert manifest["runtime-version"] == "23.08"
        assert manifest["sdk"] == "org.freedesktop.Sdk"
        assert manifest["command"] == "HelloWorld"
        assert manifest["finish-args"] == ["--socket=wayland", "--socket=x11"]
        module = manifest["modules"][0]
        assert module["buildsystem"] == "simple"
        assert module["build-commands"] == BUILD_COMMANDS
        assert module["sources"] == [{"type": "dir", "path": "files"}]

    def test_layout(self, builder):
        files = builder.context.root_dir / "files"
        assert (files / "bin" / "HelloWorld").is_file()
        assert (files / "share" / "applications" / "com.example.helloworld.desktop").is_file()
        assert not (files / "bin" / "helloworld").exists()
        assert not (files / "share" / "pixmaps").exists()
        assert "Exec=HelloWorld\n" in builder.desktop_file_path.read_text(encoding="utf-8")

    def test_invoke(self, builder, runner):
        artifact = builder.invoke()
        build, bundle = runner.calls[-2:]
        assert build["command"][0] == "flatpak-builder"
        assert "--arch=x86_64" in build["command"]
        assert build["command"][-1] == str(builder.manifest_path)
        assert bundle["command"] == [
            "flatpak",
            "build-bundle",
            str(builder.context.root_dir / "repo"),
            str(builder.output_path),
            "com.example.helloworld",
            "--arch=x86_64",
        ]
        assert artifact.is_file()


def test_validation_requires_runtime(make_builder, config):
    config.flatpak_platform_runtime = ""
    config.flatpak_platform_version = ""
    with pytest.raises(ValidationFailedError) as exc_info:
        make_builder(FlatpakPackageBuilder).validate()
    assert len(exc_info.value.errors) == 2
    assert "FlatpakPlatformRuntime not configured" in exc_info.value.errors[0]
