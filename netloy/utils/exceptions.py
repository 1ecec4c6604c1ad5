from __future__ import annotations

from typing import Any, List, Optional


class NetloyError(Exception):
    """Base exception for all Netloy errors."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        """
        Initialize exception.

        Args:
            message: Error message
            **kwargs: Additional error information
        """
        self.message = message
        self.details = kwargs
        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return f"{self.message}"


class NotFoundError(NetloyError):
    """Exception raised when a configuration, project or resource file is absent."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        """Initialize a NotFoundError.

        Args:
            message: A descriptive error message.
            path: The path that could not be found.
            **kwargs: Additional error information.
        """
        details = kwargs.pop("details", {})
        if path:
            details["path"] = str(path)
        super().__init__(message, details=details, **kwargs)
        self.path = path


class ValidationFailedError(NetloyError):
    """Exception raised once with every schema or business-rule violation."""

    def __init__(
            self,
            errors: List[str],
            header: str = "Configuration validation failed:",
            **kwargs: Any,
    ) -> None:
        """Initialize a ValidationFailedError.

        Args:
            errors: Every violation found, in discovery order.
            header: First line of the composite message.
            **kwargs: Additional error information.
        """
        self.errors = list(errors)
        message = header + "\n  - " + "\n  - ".join(self.errors)
        details = kwargs.pop("details", {})
        details["errors"] = self.errors
        super().__init__(message, details=details, **kwargs)


class ExternalToolError(NetloyError):
    """Exception raised when a spawned process fails."""

    def __init__(
            self,
            tool: str,
            returncode: Optional[int],
            stdout: str = "",
            stderr: str = "",
            reason: Optional[str] = None,
            **kwargs: Any,
    ) -> None:
        """Initialize an ExternalToolError.

        Args:
            tool: Name of the executable that failed.
            returncode: Process exit code, or None when it never finished.
            stdout: Captured standard output.
            stderr: Captured standard error.
            reason: Overrides the exit code description (timeouts, cancellation).
            **kwargs: Additional error information.
        """
        self.tool = tool
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        output = self.stderr.strip() or self.stdout.strip()
        headline = reason or f"'{tool}' failed with exit code {returncode}"
        message = f"{headline}:\n{output}" if output else headline
        details = kwargs.pop("details", {})
        details.update({"tool": tool, "returncode": returncode})
        super().__init__(message, details=details, **kwargs)


class UserCancelledError(NetloyError):
    """Exception raised when the operator declines an interactive confirmation."""

    def __init__(self, message: str = "Operation cancelled by user.", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class UnsupportedPlatformError(NetloyError):
    """Exception raised for a format, runtime and host combination that cannot be built."""

    def __init__(
            self,
            message: str,
            package_type: Optional[str] = None,
            runtime: Optional[str] = None,
            host: Optional[str] = None,
            **kwargs: Any,
    ) -> None:
        """Initialize an UnsupportedPlatformError.

        Args:
            message: A descriptive error message.
            package_type: Requested package format.
            runtime: Requested runtime identifier.
            host: Host operating system name.
            **kwargs: Additional error information.
        """
        details = kwargs.pop("details", {})
        details.update({"package_type": package_type, "runtime": runtime, "host": host})
        super().__init__(message, details=details, **kwargs)
        self.package_type = package_type
        self.runtime = runtime
        self.host = host


class BuildError(NetloyError):
    """Exception raised for errors inside a format builder."""

    def __init__(self, message: str, package_type: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, package_type=package_type, **kwargs)
        self.package_type = package_type

    def __str__(self) -> str:
        """String representation."""
        if self.package_type:
            return f"{self.message} (Package: {self.package_type.upper()})"
        return super().__str__()
