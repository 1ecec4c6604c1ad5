"""Unit tests for the shared builder pipeline."""

import pathlib
import sys
from unittest import mock

import pytest

from conftest import FakeRunner
from netloy.build.builder import APP_HOST_PROPERTY, BuildState, PackageBuilder, select_primary_icon
from netloy.build.deb import DebPackageBuilder
from netloy.build.macos import AppPackageBuilder
from netloy.build.options import BuildOptions
from netloy.config.models import IconDescriptor
from netloy.core.confirm import Confirm
from netloy.core.platform import PackageType
from netloy.macro.registry import MacroId
from netloy.utils.exceptions import BuildError, NotFoundError, UserCancelledError, ValidationFailedError


def _icons(*names):
    return [IconDescriptor.from_path(pathlib.Path("/icons") / name) for name in names]


class TestSelectPrimaryIcon:
    """Tests for the per-format icon choice."""

    def test_windows_uses_ico(self):
        icon = select_primary_icon(PackageType.MSI, _icons("a.png", "a.ico"))
        assert icon.extension == "ico"

    def test_macos_uses_icns(self):
        assert select_primary_icon(PackageType.DMG, _icons("a.ico", "a.icns")).extension == "icns"

    def test_linux_prefers_svg_then_largest_png(self):
        assert select_primary_icon(PackageType.DEB, _icons("a.32x32.png", "a.svg")).extension == "svg"
        icon = select_primary_icon(PackageType.RPM, _icons("a.32x32.png", "a.256x256.png", "a.64x64.png"))
        assert icon.path.name == "a.256x256.png"

    def test_portable_has_none(self):
        assert select_primary_icon(PackageType.PORTABLE, _icons("a.ico", "a.svg")) is None

    def test_missing_icon(self):
        assert select_primary_icon(PackageType.EXE, _icons("a.svg")) is None


class TestConstruction:
    """Tests for builder construction."""

    def test_package_type_follows_class(self, config, runner, temp_root):
        options = BuildOptions(package_type=PackageType.RPM, runtime="linux-x64")
        builder = DebPackageBuilder(config, options, runner=runner, temp_root=temp_root)
        assert builder.options.package_type is PackageType.DEB
        assert builder.context.root_dir.name == "deb"

    def test_macros_are_seeded(self, make_builder):
        builder = make_builder(DebPackageBuilder)
        assert builder.macros.get(MacroId.APP_VERSION) == "1.2.3"
        assert builder.macros.get(MacroId.PACKAGE_RELEASE) == "4"
        assert builder.macros.get(MacroId.PACKAGE_ARCH) == "amd64"
        assert builder.macros.get(MacroId.DOTNET_RUNTIME) == "linux-x64"
        assert builder.macros.get(MacroId.PUBLISHER_ID) == "com.example.helloworld"
        assert builder.macros.get(MacroId.DESKTOP_INTEGRATE) == "true"
        assert builder.macros.get(MacroId.INSTALL_EXEC) == "/opt/com.example.helloworld/HelloWorld"
        assert "<li>Added greeting</li>" in builder.macros.get(MacroId.APPSTREAM_CHANGELOG_XML)
        assert builder.macros.get(MacroId.PUBLISH_OUTPUT_DIRECTORY) == ""
        assert builder.state is BuildState.CREATED


class TestValidate:
    """Tests for build requirement validation."""

    def test_missing_tool(self, config, temp_root):
        options = BuildOptions(package_type=PackageType.DEB, runtime="linux-x64")
        builder = DebPackageBuilder(config, options, runner=FakeRunner(missing=["dpkg-deb"]), temp_root=temp_root)
        with pytest.raises(ValidationFailedError) as exc_info:
            builder.validate()
        assert str(exc_info.value).startswith("DEB package validation failed:")
        assert exc_info.value.errors == ["dpkg-deb not found. Please install dpkg"]

    def test_passes(self, make_builder):
        make_builder(DebPackageBuilder).validate()


class TestPipeline:
    """Tests for the build stages."""

    def test_stage_order_is_enforced(self, make_builder):
        builder = make_builder(DebPackageBuilder)
        builder._enter(BuildState.INIT)
        builder._enter(BuildState.PUBLISH)
        with pytest.raises(BuildError):
            builder._enter(BuildState.INIT)
        with pytest.raises(BuildError):
            builder._enter(BuildState.PUBLISH)

    def test_initialize_recreates_root(self, make_builder):
        builder = make_builder(DebPackageBuilder)
        stale = builder.context.root_dir / "stale.txt"
        stale.parent.mkdir(parents=True)
        stale.write_text("old", encoding="utf-8")

        builder.initialize()
        assert not stale.exists()
        assert builder.context.root_dir.is_dir()
        assert sorted(icon.path.name for icon in builder.icons) == [
            "HelloWorld.256x256.png",
            "HelloWorld.icns",
            "HelloWorld.ico",
            "HelloWorld.svg",
        ]
        assert builder.project_path.name == "HelloWorld.csproj"

    def test_publish_runs_dotnet(self, make_builder, runner):
        builder = make_builder(DebPackageBuilder, clean=True)
        builder.initialize()
        builder.publish()

        clean, publish = runner.commands("dotnet")
        assert clean[:2] == ["dotnet", "clean"]
        assert publish[:3] == ["dotnet", "publish", str(builder.project_path)]
        assert publish[3:9] == ["-c", "Release", "-r", "linux-x64", "-o", str(builder.publish_directory)]
        assert publish[9:] == ["-p:Version=1.2.3", "--self-contained", "true"]
        assert (builder.publish_directory / "HelloWorld").is_file()
        assert builder.macros.get(MacroId.PUBLISH_OUTPUT_DIRECTORY) == str(builder.publish_directory)
        assert builder.macros.get(MacroId.PRIMARY_ICON_FILE_NAME) == "HelloWorld.svg"

    def test_publish_disabled(self, make_builder, runner, config):
        config.dotnet_project_path = "NONE"
        builder = make_builder(DebPackageBuilder)
        builder.initialize()
        builder.publish()
        assert runner.commands("dotnet") == []
        assert builder.publish_directory.is_dir()

    def test_existing_publish_directory_declined(self, config, runner, temp_root):
        options = BuildOptions(package_type=PackageType.DEB, runtime="linux-x64")
        confirm = Confirm(decide=lambda prompt: False)
        builder = DebPackageBuilder(config, options, confirm=confirm, runner=runner, temp_root=temp_root)
        builder.initialize()
        builder.publish_directory.mkdir(parents=True, exist_ok=True)
        (builder.publish_directory / "old.dll").write_bytes(b"old")

        with pytest.raises(UserCancelledError):
            builder.publish()

    def test_project_directory_without_project(self, make_builder, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        builder = make_builder(DebPackageBuilder, project_path=str(empty))
        with pytest.raises(NotFoundError):
            builder.initialize()

    def test_several_projects_ask(self, config, runner, temp_root, tmp_path):
        projects = tmp_path / "projects"
        projects.mkdir()
        (projects / "A.csproj").write_text("", encoding="utf-8")
        (projects / "B.csproj").write_text("", encoding="utf-8")
        decide = mock.Mock(return_value=True)
        options = BuildOptions(package_type=PackageType.DEB, runtime="linux-x64", project_path=str(projects))
        builder = DebPackageBuilder(config, options, confirm=Confirm(decide=decide), runner=runner, temp_root=temp_root)

        builder.initialize()
        assert builder.project_path.name == "A.csproj"
        decide.assert_called_once()

    @pytest.mark.skipif(sys.platform.startswith("win"), reason="bash post-publish scripts run on Unix hosts")
    def test_post_publish_script(self, make_builder, runner, config, project_dir):
        script = project_dir / "Deploy" / "post.sh"
        script.write_text("echo ${APP_VERSION}\r\nread answer\r\n", encoding="utf-8")
        config.dotnet_post_publish = str(script)
        config.dotnet_post_publish_arguments = "--flag '${APP_ID} x'"

        builder = make_builder(DebPackageBuilder)
        builder.initialize()
        builder.publish()

        call = [call for call in runner.calls if call["command"][0] == "bash"][0]
        staged = builder.context.scripts_dir / "post.sh"
        assert call["command"] == ["bash", str(staged), "--flag", "com.example.helloworld x"]
        assert call["cwd"] == builder.context.scripts_dir
        assert call["env"]["APP_VERSION"] == "1.2.3"
        assert staged.read_bytes() == b"echo 1.2.3\nread answer\n"

    def test_finalize_requires_artifact(self, make_builder):
        builder = make_builder(DebPackageBuilder)
        with pytest.raises(BuildError) as exc_info:
            builder.finalize(builder.output_path)
        assert "Package was not created" in str(exc_info.value)

    def test_clear_after_build(self, make_builder):
        builder = make_builder(DebPackageBuilder, clear_after_build=True)
        artifact = builder.build()
        assert artifact.is_file()
        assert not builder.context.root_dir.exists()
        assert builder.state is BuildState.DONE

    def test_base_invoke_is_abstract(self, config, temp_root):
        class NullBuilder(PackageBuilder):
            package_type = PackageType.PORTABLE

        options = BuildOptions(package_type=PackageType.PORTABLE, runtime="linux-x64")
        with pytest.raises(NotImplementedError):
            NullBuilder(config, options, runner=FakeRunner(), temp_root=temp_root).invoke()


class TestAppHost:
    """Tests for the UseAppHost check on macOS publishes."""

    def test_added_in_unattended_mode(self, make_builder):
        builder = make_builder(AppPackageBuilder, runtime="osx-arm64")
        builder.project_path = pathlib.Path("/src/HelloWorld.csproj")
        assert builder.publish_command()[-1] == APP_HOST_PROPERTY

    def test_declined(self, config, runner, temp_root):
        options = BuildOptions(package_type=PackageType.APP, runtime="osx-arm64")
        confirm = Confirm(decide=lambda prompt: False)
        builder = AppPackageBuilder(config, options, confirm=confirm, runner=runner, temp_root=temp_root)
        builder.project_path = pathlib.Path("/src/HelloWorld.csproj")
        assert APP_HOST_PROPERTY not in builder.publish_command()

    def test_existing_setting_is_kept(self, make_builder, config):
        config.dotnet_publish_args = "-p:UseAppHost=true"
        builder = make_builder(AppPackageBuilder, runtime="osx-x64")
        builder.project_path = pathlib.Path("/src/HelloWorld.csproj")
        assert builder.publish_command().count(APP_HOST_PROPERTY) == 1
