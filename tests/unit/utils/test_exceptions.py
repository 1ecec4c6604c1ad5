"""Unit tests for the exceptions module."""

import pytest

from netloy.utils.exceptions import (
    BuildError,
    ExternalToolError,
    NetloyError,
    NotFoundError,
    UnsupportedPlatformError,
    UserCancelledError,
    ValidationFailedError,
)


def test_netloy_error():
    """Test the base NetloyError class."""
    error = NetloyError("Test error message")
    assert str(error) == "Test error message"
    assert error.details == {}

    error = NetloyError("Test with details", key="value")
    assert error.details == {"key": "value"}


def test_not_found_error():
    """Test the NotFoundError class."""
    error = NotFoundError("Missing file", path="/tmp/app.netloy")
    assert str(error) == "Missing file"
    assert error.path == "/tmp/app.netloy"
    assert error.details["details"]["path"] == "/tmp/app.netloy"
    assert isinstance(error, NetloyError)


def test_validation_failed_error_lists_every_violation():
    """Test that every violation is rendered as one bullet."""
    error = ValidationFailedError(["AppId is required", "IconFiles is required", "PackageName is required"])
    lines = str(error).splitlines()
    assert lines[0] == "Configuration validation failed:"
    assert lines[1:] == [
        "  - AppId is required",
        "  - IconFiles is required",
        "  - PackageName is required",
    ]
    assert error.errors == ["AppId is required", "IconFiles is required", "PackageName is required"]


def test_validation_failed_error_custom_header():
    error = ValidationFailedError(["dpkg-deb not found"], header="DEB package validation failed:")
    assert str(error).startswith("DEB package validation failed:\n  - dpkg-deb not found")


def test_external_tool_error():
    """Test the ExternalToolError class."""
    error = ExternalToolError("dpkg-deb", 2, stdout="", stderr="bad control file\n")
    assert str(error) == "'dpkg-deb' failed with exit code 2:\nbad control file"
    assert error.returncode == 2
    assert error.details["details"]["tool"] == "dpkg-deb"

    error = ExternalToolError("rpmbuild", None, reason="'rpmbuild' timed out after 5 seconds")
    assert str(error) == "'rpmbuild' timed out after 5 seconds"


def test_user_cancelled_error():
    error = UserCancelledError()
    assert str(error) == "Operation cancelled by user."


def test_unsupported_platform_error():
    error = UnsupportedPlatformError("Cannot build", package_type="deb", runtime="linux-x64", host="windows")
    assert error.package_type == "deb"
    assert error.runtime == "linux-x64"
    assert error.host == "windows"


def test_build_error():
    """Test the BuildError class."""
    error = BuildError("Package was not created", package_type="rpm")
    assert str(error) == "Package was not created (Package: RPM)"

    error = BuildError("Generic failure")
    assert str(error) == "Generic failure"


def test_exception_inheritance():
    for error_class in (NotFoundError, ExternalToolError, UserCancelledError, UnsupportedPlatformError, BuildError):
        assert issubclass(error_class, NetloyError)

    with pytest.raises(NetloyError):
        raise BuildError("boom")
