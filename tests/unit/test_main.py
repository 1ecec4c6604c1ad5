"""Tests for the command line entry point."""

import functools
import re
import sys
from unittest import mock

import pytest

from conftest import FakeRunner
from netloy import main as cli
from netloy.build.factory import PackageBuilderFactory
from netloy.core.logging_manager import configure_logging
from netloy.core.platform import HostOS
from netloy.utils.exceptions import UserCancelledError


@pytest.fixture(autouse=True)
def restore_logging():
    """Point logging back at the real stderr once capsys is gone."""
    yield
    configure_logging(stream=sys.__stderr__)


@pytest.fixture
def use_runner(monkeypatch, temp_root):
    """Route builds through a FakeRunner on a Linux x64 host."""

    def install(runner):
        factory = functools.partial(
            PackageBuilderFactory, runner=runner, temp_root=temp_root, host=HostOS.LINUX, machine="x86_64"
        )
        monkeypatch.setattr(cli, "PackageBuilderFactory", factory)
        return runner

    return install


def test_parse_arguments_defaults():
    args = cli.parse_arguments([])
    assert args.package_type is None
    assert args.publish_config == "Release"
    assert args.log_format == "text"
    assert not args.skip_all


def test_help_macros(capsys):
    assert cli.main(["--help-macros"]) == cli.EXIT_OK
    assert "${APP_VERSION}" in capsys.readouterr().out


def test_new_configuration(tmp_path, capsys):
    target = tmp_path / "Deploy"
    assert cli.main(["--new", str(target), "-y"]) == cli.EXIT_OK
    assert (target / "Deploy.netloy").is_file()
    assert "Configuration file created" in capsys.readouterr().out


def test_missing_package_type():
    assert cli.main([]) == cli.EXIT_ERROR


def test_unknown_package_type(config_path):
    assert cli.main(["-t", "snap", "--config-path", str(config_path)]) == cli.EXIT_ERROR


def test_build_deb(config_path, runner, use_runner, capsys):
    use_runner(runner)
    code = cli.main(["-t", "deb", "-r", "linux-x64", "-y", "--config-path", str(config_path)])

    assert code == cli.EXIT_OK
    out = capsys.readouterr().out
    assert "Package created:" in out
    assert out.strip().splitlines()[-1].endswith("HelloWorld.1.2.3-4.linux-x64.deb")
    assert len(runner.commands("dpkg-deb")) == 1


def test_version_override(config_path, runner, use_runner, capsys):
    use_runner(runner)
    code = cli.main(["-t", "deb", "-y", "-v", "9.9.9", "--config-path", str(config_path)])
    assert code == cli.EXIT_OK
    assert "HelloWorld.9.9.9-4.linux-x64.deb" in capsys.readouterr().out


def test_config_version_mismatch_warns(config_path, runner, use_runner, monkeypatch):
    text = config_path.read_text(encoding="utf-8")
    config_path.write_text(re.sub(r"(?m)^ConfigVersion = .*$", "ConfigVersion = 0.0.1", text), encoding="utf-8")
    logger = mock.Mock()
    monkeypatch.setattr(cli, "logger", logger)
    use_runner(runner)

    assert cli.main(["-t", "deb", "-y", "--config-path", str(config_path)]) == cli.EXIT_OK
    warning = logger.warning.call_args_list[0]
    assert warning.kwargs["config_version"] == "0.0.1"
    assert warning.kwargs["netloy_version"] == cli.__version__


def test_validation_failure(config_path, use_runner, capsys):
    use_runner(FakeRunner(missing=["dpkg-deb"]))
    code = cli.main(["-t", "deb", "-y", "--config-path", str(config_path)])
    assert code == cli.EXIT_ERROR
    err = capsys.readouterr().err
    assert "DEB package validation failed:" in err
    assert "dpkg-deb not found" in err


def test_wrong_host(config_path, runner, use_runner):
    use_runner(runner)
    assert cli.main(["-t", "msi", "-y", "--config-path", str(config_path)]) == cli.EXIT_ERROR
    assert runner.calls == []


def test_cancelled(monkeypatch):
    def cancel(args):
        raise UserCancelledError("Operation cancelled by user")

    monkeypatch.setattr(cli, "run", cancel)
    assert cli.main(["-t", "deb"]) == cli.EXIT_CANCELLED


def test_ask_terminal(monkeypatch):
    monkeypatch.setattr("builtins.input", lambda prompt: "")
    assert cli.ask_terminal("Continue?")
    monkeypatch.setattr("builtins.input", lambda prompt: "n")
    assert not cli.ask_terminal("Continue?")
