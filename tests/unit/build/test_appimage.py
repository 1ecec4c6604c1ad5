"""Unit tests for the AppImage builder."""

import os

import pytest

from netloy.build.appimage import AppImagePackageBuilder
from netloy.utils.exceptions import ValidationFailedError


class TestAppImagePackageBuilder:
    """Tests for the AppDir layout and appimagetool call."""

    @pytest.fixture
    def builder(self, make_builder):
        builder = make_builder(AppImagePackageBuilder)
        builder.initialize()
        builder.publish()
        builder.stage()
        return builder

    def test_app_dir(self, builder):
        app_dir = builder.app_dir
        assert app_dir.name == "HelloWorld.AppDir"
        assert (app_dir / "usr" / "bin" / "HelloWorld").is_file()
        assert (app_dir / "com.example.helloworld.desktop").is_file()
        assert (app_dir / "com.example.helloworld.svg").is_file()
        assert (app_dir / ".DirIcon").is_file()

    def test_app_run(self, builder):
        app_run = builder.app_dir / "AppRun"
        assert 'exec "$HERE/usr/bin/HelloWorld" "$@"' in app_run.read_text(encoding="utf-8")
        if os.name == "posix":
            assert os.access(app_run, os.X_OK)

    def test_invoke(self, builder, runner):
        artifact = builder.invoke()
        call = runner.calls[-1]
        assert call["command"] == ["appimagetool", str(builder.app_dir), str(builder.output_path)]
        assert call["env"] == {"ARCH": "x86_64"}
        assert artifact.name == "HelloWorld.1.2.3-4.linux-x64.AppImage"


def test_requires_png_or_svg(make_builder, config):
    config.icons = [icon for icon in config.icons if icon.extension not in ("png", "svg")]
    with pytest.raises(ValidationFailedError) as exc_info:
        make_builder(AppImagePackageBuilder).validate()
    assert exc_info.value.errors == ["No PNG or SVG icon found. AppImage requires an application icon."]
