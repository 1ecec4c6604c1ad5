"""File system helpers shared by the package builders.

Permission changes are best-effort: a failure is logged and the build goes on,
since the packaging tools usually normalize modes themselves.
"""

from __future__ import annotations

import os
import pathlib
import shutil
from typing import Iterator, Union

from netloy.core.logging_manager import get_logger

logger = get_logger(__name__)

PathLike = Union[str, pathlib.Path]


def write_lf(path: pathlib.Path, text: str) -> pathlib.Path:
    """Write UTF-8 text with Unix line endings, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = text.replace("\r\n", "\n")
    with open(path, "w", encoding="utf-8", newline="\n") as f:
        f.write(text)
    return path


def set_mode(path: pathlib.Path, mode: int) -> bool:
    """Set the permission bits of ``path``.

    Returns:
        True on success, False when the change was refused.
    """
    try:
        path.chmod(mode)
        return True
    except OSError as e:
        logger.warning("Could not set file permissions", path=str(path), mode=oct(mode), error=str(e))
        return False


def make_executable(path: pathlib.Path) -> bool:
    """Add the executable bits to an existing file."""
    if not path.is_file():
        logger.debug("Executable not found, permissions unchanged", path=str(path))
        return False
    try:
        path.chmod(path.stat().st_mode | 0o111)
        return True
    except OSError as e:
        logger.warning("Could not set executable permission", path=str(path), error=str(e))
        return False


def make_readable_tree(root: pathlib.Path) -> None:
    """Give everyone read access to files and read/execute access to directories."""
    for path in walk(root):
        extra = 0o555 if path.is_dir() else 0o444
        try:
            path.chmod(path.stat().st_mode | extra)
        except OSError as e:
            logger.warning("Could not set file permissions", path=str(path), error=str(e))


def walk(root: pathlib.Path) -> Iterator[pathlib.Path]:
    """Yield every directory and file below ``root`` in a stable order, without following links."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        base = pathlib.Path(dirpath)
        for name in dirnames:
            yield base / name
        for name in sorted(filenames):
            yield base / name


def directory_size(root: pathlib.Path) -> int:
    """Total size in bytes of the regular files below ``root``."""
    return sum(path.stat().st_size for path in walk(root) if path.is_file() and not path.is_symlink())


def copy_file(source: PathLike, target: pathlib.Path) -> pathlib.Path:
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, target)
    return target
