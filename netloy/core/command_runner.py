"""Utilities for executing external tools with optional timeout and cancellation."""
from __future__ import annotations

import os
import shlex
import shutil
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence

from netloy.core.logging_manager import get_logger
from netloy.utils.exceptions import ExternalToolError

logger = get_logger(__name__)

# Interval at which a running process is checked for cancellation
_POLL_INTERVAL = 0.1


@dataclass
class CommandResult:
    """Represents the outcome of an executed command."""

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def tool(self) -> str:
        return Path(self.command[0]).name if self.command else ""

    @property
    def output(self) -> str:
        """Captured stderr, or stdout when stderr is empty."""
        return self.stderr.strip() or self.stdout.strip()


class CommandRunner:
    """Abstract command runner interface.

    Every external process the build pipeline starts (publish tool, user
    scripts, permission fixes, native packagers) goes through ``run``.
    """

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, Optional[str]]] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        check: bool = True,
    ) -> CommandResult:
        raise NotImplementedError

    def which(self, tool: str) -> Optional[str]:
        """Return the full path of an executable on PATH, or None."""
        return shutil.which(tool)

    def format_command(self, command: Sequence[str]) -> str:
        return " ".join(shlex.quote(str(part)) for part in command)


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`.

    Without a timeout or cancellation event the call blocks until the child
    exits. Either signal kills the child and raises ExternalToolError.
    """

    @staticmethod
    def _merge_environment(env: Optional[Mapping[str, Optional[str]]]) -> Optional[Dict[str, str]]:
        """Overlay ``env`` on a copy of os.environ; a None value removes the variable."""
        if env is None:
            return None
        merged = os.environ.copy()
        for key, value in env.items():
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value
        return merged

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, Optional[str]]] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        check: bool = True,
    ) -> CommandResult:
        command = [str(part) for part in command]
        tool = Path(command[0]).name
        logger.debug("Running command", command=self.format_command(command), cwd=str(cwd) if cwd else None)

        try:
            process = subprocess.Popen(
                command,
                cwd=str(cwd) if cwd else None,
                env=self._merge_environment(env),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError as e:
            raise ExternalToolError(tool, None, reason=f"'{tool}' was not found on PATH") from e

        if cancel_event is None:
            try:
                stdout, stderr = process.communicate(timeout=timeout)
            except subprocess.TimeoutExpired:
                process.kill()
                stdout, stderr = process.communicate()
                raise ExternalToolError(
                    tool, None, stdout, stderr, reason=f"'{tool}' timed out after {timeout} seconds"
                )
        else:
            stdout, stderr = self._wait_cancellable(process, tool, timeout, cancel_event)

        result = CommandResult(
            command=command,
            returncode=process.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
        )
        if check and result.returncode != 0:
            raise ExternalToolError(tool, result.returncode, result.stdout, result.stderr)
        return result

    @staticmethod
    def _wait_cancellable(
        process: subprocess.Popen,
        tool: str,
        timeout: Optional[float],
        cancel_event: threading.Event,
    ) -> tuple:
        deadline = time.monotonic() + timeout if timeout is not None else None
        while True:
            try:
                return process.communicate(timeout=_POLL_INTERVAL)
            except subprocess.TimeoutExpired:
                pass

            reason = None
            if cancel_event.is_set():
                reason = f"'{tool}' was cancelled"
            elif deadline is not None and time.monotonic() >= deadline:
                reason = f"'{tool}' timed out after {timeout} seconds"

            if reason:
                process.kill()
                stdout, stderr = process.communicate()
                raise ExternalToolError(tool, None, stdout, stderr, reason=reason)
