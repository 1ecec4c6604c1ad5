"""Pytest configuration and fixtures for Netloy tests."""

from __future__ import annotations

import pathlib
import re
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import pytest
from PIL import Image

from netloy.build.options import BuildOptions
from netloy.config.models import Configuration
from netloy.config.parser import ConfigurationParser
from netloy.core.command_runner import CommandResult, CommandRunner
from netloy.core.platform import PackageType

APP_BASE_NAME = "HelloWorld"

CONFIG_TEMPLATE = '''# Test configuration
AppBaseName = HelloWorld
AppFriendlyName = Hello World
AppId = com.example.helloworld
AppVersionRelease = 1.2.3[4]
AppShortSummary = Says hello to the world
AppDescription = """
    Hello World prints a greeting.

    Features:
    * Greets the world
    * Exits cleanly
"""
AppLicenseId = MIT
AppLicenseFile = LICENSE.txt
AppChangeFile = CHANGES.txt

PublisherName = Example Inc
PublisherCopyright = Copyright (C) Example Inc 2025
PublisherLinkName = Home Page
PublisherLinkUrl = https://example.com
PublisherEmail = dev@example.com

DesktopNoDisplay = false
DesktopTerminal = false
DesktopFile = HelloWorld.desktop
StartCommand = helloworld
PrimeCategory = Development
IconFiles = """
    app.256x256.png
    app.svg
    app.ico
    app.icns
"""

DotnetProjectPath = ..
DotnetPublishArgs = -p:Version=${APP_VERSION} --self-contained true

PackageName = HelloWorld
OutputDirectory = OUT

FlatpakPlatformRuntime = org.freedesktop.Platform
FlatpakPlatformSdk = org.freedesktop.Sdk
FlatpakPlatformVersion = 23.08
FlatpakFinishArgs = """
    --socket=wayland
    --socket=x11
"""

RpmAutoReq = false
RpmAutoProv = true
RpmRequires = """
    krb5-libs
    libicu
"""
DebianRecommends = """
    libc6
    libicu
"""
ArchDepends = glibc, icu
ArchOptDepends = """
    krb5: kerberos support
"""

SetupMinWindowsVersion = 10
ConfigVersion = {version}
'''

DESKTOP_ENTRY = """[Desktop Entry]
Type=Application
Name=${APP_FRIENDLY_NAME}
Exec=${INSTALL_EXEC}
Icon=${APP_ID}
Categories=${PRIME_CATEGORY};
"""

CHANGES = """+ Version 1.2.3; 2025-01-15
- Added greeting
- Fixed exit code
"""


class FakeRunner(CommandRunner):
    """Records commands and fabricates the files the real tools would write.

    Attributes:
        calls: One dict per command with ``command``, ``cwd`` and ``env``.
        missing: Tool names ``which`` reports as absent.
    """

    def __init__(self, missing: Sequence[str] = ()) -> None:
        self.calls: List[Dict[str, object]] = []
        self.missing = set(missing)
        self._handlers: Dict[str, Callable[[List[str], Optional[pathlib.Path]], None]] = {
            "dotnet": self._dotnet,
            "dpkg-deb": self._last_argument,
            "rpmbuild": self._rpmbuild,
            "makepkg": self._makepkg,
            "appimagetool": self._last_argument,
            "flatpak": self._flatpak,
            "ditto": self._last_argument,
            "hdiutil": self._last_argument,
            "wix": self._wix,
            "iscc": self._iscc,
        }

    def which(self, tool: str) -> Optional[str]:
        return None if tool in self.missing else f"/usr/bin/{tool}"

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Optional[pathlib.Path] = None,
        env: Optional[Mapping[str, Optional[str]]] = None,
        timeout: Optional[float] = None,
        cancel_event=None,
        check: bool = True,
    ) -> CommandResult:
        command = [str(part) for part in command]
        self.calls.append({"command": command, "cwd": cwd, "env": dict(env) if env else None})
        handler = self._handlers.get(command[0])
        if handler is not None:
            handler(command, cwd)
        return CommandResult(command=command, returncode=0, stdout="", stderr="")

    def commands(self, tool: str) -> List[List[str]]:
        return [call["command"] for call in self.calls if call["command"][0] == tool]

    @staticmethod
    def _write(path: pathlib.Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"artifact")

    def _last_argument(self, command: List[str], cwd: Optional[pathlib.Path]) -> None:
        self._write(pathlib.Path(command[-1]))

    def _dotnet(self, command: List[str], cwd: Optional[pathlib.Path]) -> None:
        if command[1] != "publish":
            return
        output = pathlib.Path(command[command.index("-o") + 1])
        runtime = command[command.index("-r") + 1]
        name = pathlib.Path(command[2]).stem
        if runtime.startswith("win-"):
            name += ".exe"
        output.mkdir(parents=True, exist_ok=True)
        (output / name).write_bytes(b"\x7fELF")
        (output / "appsettings.json").write_text("{}", encoding="utf-8")
        (output / "runtimes" / "native").mkdir(parents=True, exist_ok=True)
        (output / "runtimes" / "native" / "libhello.so").write_bytes(b"so")

    def _rpmbuild(self, command: List[str], cwd: Optional[pathlib.Path]) -> None:
        spec = pathlib.Path(command[2]).read_text(encoding="utf-8")
        arch = re.search(r"^BuildArch: (\S+)$", spec, re.MULTILINE).group(1)
        rpm_dir = next(
            part.split(" ", 1)[1] for part in command if part.startswith("_rpmdir ")
        )
        self._write(pathlib.Path(rpm_dir) / arch / "helloworld.rpm")

    def _makepkg(self, command: List[str], cwd: Optional[pathlib.Path]) -> None:
        text = (cwd / "PKGBUILD").read_text(encoding="utf-8")
        fields = dict(re.findall(r"^(pkgname|pkgver|pkgrel)=(\S+)$", text, re.MULTILINE))
        arch = re.search(r"^arch=\('([^']+)'\)$", text, re.MULTILINE).group(1)
        self._write(cwd / f"{fields['pkgname']}-{fields['pkgver']}-{fields['pkgrel']}-{arch}.pkg.tar.zst")

    def _flatpak(self, command: List[str], cwd: Optional[pathlib.Path]) -> None:
        if command[1] == "build-bundle":
            self._write(pathlib.Path(command[3]))

    def _wix(self, command: List[str], cwd: Optional[pathlib.Path]) -> None:
        self._write(pathlib.Path(command[command.index("-o") + 1]))

    def _iscc(self, command: List[str], cwd: Optional[pathlib.Path]) -> None:
        output_dir = pathlib.Path(command[1][2:])
        script = pathlib.Path(command[2]).read_text(encoding="utf-8")
        base = re.search(r"^OutputBaseFilename=(.+)$", script, re.MULTILINE).group(1)
        self._write(output_dir / f"{base}.exe")


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def project_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """Create a .NET project with a Deploy directory holding a complete configuration."""
    from netloy.__version__ import __version__

    project = tmp_path / "HelloWorld"
    deploy = project / "Deploy"
    deploy.mkdir(parents=True)
    (project / f"{APP_BASE_NAME}.csproj").write_text("<Project Sdk=\"Microsoft.NET.Sdk\" />", encoding="utf-8")

    Image.new("RGBA", (256, 256), (200, 30, 30, 255)).save(deploy / "app.256x256.png")
    (deploy / "app.svg").write_text(
        '<svg xmlns="http://www.w3.org/2000/svg" width="16" height="16"/>', encoding="utf-8"
    )
    (deploy / "app.ico").write_bytes(b"\x00\x00\x01\x00")
    (deploy / "app.icns").write_bytes(b"icns")
    (deploy / "LICENSE.txt").write_text("MIT License\n", encoding="utf-8")
    (deploy / "CHANGES.txt").write_text(CHANGES, encoding="utf-8")
    (deploy / "HelloWorld.desktop").write_text(DESKTOP_ENTRY, encoding="utf-8")
    (deploy / "OUT").mkdir()
    (deploy / "HelloWorld.netloy").write_text(CONFIG_TEMPLATE.replace("{version}", __version__), encoding="utf-8")
    return project


@pytest.fixture
def config_path(project_dir: pathlib.Path) -> pathlib.Path:
    return project_dir / "Deploy" / "HelloWorld.netloy"


@pytest.fixture
def config(config_path: pathlib.Path) -> Configuration:
    return ConfigurationParser().parse(config_path)


@pytest.fixture
def temp_root(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "tmp"


@pytest.fixture
def make_builder(config: Configuration, runner: FakeRunner, temp_root: pathlib.Path):
    """Return a factory building a PackageBuilder of the given class with test defaults."""

    def factory(builder_class, runtime: str = "linux-x64", configuration: Optional[Configuration] = None, **options):
        build_options = BuildOptions(
            package_type=builder_class.package_type,
            runtime=runtime,
            unattended=True,
            **options,
        )
        return builder_class(configuration or config, build_options, runner=runner, temp_root=temp_root)

    return factory
