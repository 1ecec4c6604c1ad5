"""Unit tests for the macOS bundle builders."""

import plistlib
import sys

import pytest

from netloy.build.macos import PKG_INFO_CONTENT, AppPackageBuilder, DmgPackageBuilder
from netloy.utils.exceptions import ValidationFailedError


def _staged(make_builder, builder_class, runtime="osx-arm64"):
    builder = make_builder(builder_class, runtime=runtime)
    builder.initialize()
    builder.publish()
    builder.stage()
    builder.write_manifest()
    return builder


class TestAppPackageBuilder:
    """Tests for the zipped application bundle."""

    def test_bundle_layout(self, make_builder):
        builder = _staged(make_builder, AppPackageBuilder)
        contents = builder.bundle_path / "Contents"
        assert builder.bundle_path.name == "Hello World.app"
        assert (contents / "MacOS" / "HelloWorld").is_file()
        assert (contents / "Resources" / "HelloWorld.icns").is_file()
        assert (contents / "PkgInfo").read_text(encoding="utf-8") == PKG_INFO_CONTENT

    def test_generated_info_plist(self, make_builder):
        builder = _staged(make_builder, AppPackageBuilder)
        with open(builder.contents_directory / "Info.plist", "rb") as f:
            info = plistlib.load(f)
        assert info["CFBundleIdentifier"] == "com.example.helloworld"
        assert info["CFBundleVersion"] == "1.2.3"
        assert info["CFBundleExecutable"] == "HelloWorld"
        assert info["CFBundleIconFile"] == "HelloWorld.icns"
        assert info["LSApplicationCategoryType"] == "public.app-category.developer-tools"
        assert info["NSHighResolutionCapable"] is True

    def test_info_plist_template(self, make_builder, config, project_dir):
        template = project_dir / "Deploy" / "Info.plist"
        template.write_text("<string>${APP_ID}</string>\n<string>${PRIME_CATEGORY}</string>\n", encoding="utf-8")
        config.mac_os_info_plist = str(template)
        builder = _staged(make_builder, AppPackageBuilder)
        text = (builder.contents_directory / "Info.plist").read_text(encoding="utf-8")
        assert text == "<string>com.example.helloworld</string>\n<string>public.app-category.developer-tools</string>\n"

    def test_publish_adds_app_host(self, make_builder, runner):
        _staged(make_builder, AppPackageBuilder)
        assert runner.commands("dotnet")[0][-1] == "-p:UseAppHost=true"

    def test_invoke(self, make_builder, runner):
        builder = _staged(make_builder, AppPackageBuilder, runtime="osx-x64")
        artifact = builder.invoke()
        call = runner.calls[-1]
        assert call["command"] == [
            "ditto", "-c", "-k", "--sequesterRsrc", "--keepParent", "Hello World.app", str(builder.output_path),
        ]
        assert call["cwd"] == builder.context.root_dir
        assert artifact.name == "HelloWorld.1.2.3-4.osx-x64.app.zip"

    def test_requires_icns(self, make_builder, config):
        config.icons = [icon for icon in config.icons if icon.extension != "icns"]
        with pytest.raises(ValidationFailedError) as exc_info:
            make_builder(AppPackageBuilder).validate()
        assert exc_info.value.errors == ["No .icns icon file found. macOS package requires an .icns icon file."]


@pytest.mark.skipif(sys.platform.startswith("win"), reason="symbolic links need privileges on Windows")
class TestDmgPackageBuilder:
    """Tests for the disk image."""

    def test_invoke(self, make_builder, runner):
        builder = _staged(make_builder, DmgPackageBuilder)
        assert builder.bundle_path.parent.name == "dmg"

        artifact = builder.invoke()
        link = builder.stage_directory / "Applications"
        assert link.is_symlink()
        command = runner.commands("hdiutil")[0]
        assert command[:4] == ["hdiutil", "create", "-volname", "Hello World"]
        assert command[command.index("-srcfolder") + 1] == str(builder.stage_directory)
        assert "UDZO" in command
        assert artifact.name.endswith(".dmg")
