"""AppStream metainfo fragments generated from plain text.

Linux software centers read ``<description>`` and ``<releases>`` markup from
the metainfo file. Both fragments are produced here from the configuration's
description text and the optional changelog file, and are exposed to
templates through macros.
"""

from __future__ import annotations

import dataclasses
import datetime
import pathlib
import re
from typing import Dict, List, Optional, Union
from xml.sax.saxutils import escape

from netloy.core.logging_manager import get_logger

logger = get_logger(__name__)

LIST_MARKERS = ("* ", "+ ", "- ")
RELEASE_HEADER = re.compile(r"\+\s*Version\s+([\d.]+)\s*;\s*(\d{4})-(\d{2})-(\d{2})")
PARAGRAPH_BREAK = re.compile(r"\r?\n\s*\r?\n|\r\r")
WHITESPACE = re.compile(r"\s+")

_ENTITIES = {'"': "&quot;", "'": "&apos;"}


@dataclasses.dataclass
class Release:
    version: str
    date: datetime.date
    changes: List[str] = dataclasses.field(default_factory=list)


def xml_escape(text: str) -> str:
    return escape(text, _ENTITIES)


def _is_list_item(line: str) -> bool:
    return line.strip().startswith(LIST_MARKERS)


def _list_xml(lines: List[str]) -> List[str]:
    output: List[str] = []
    in_list = False
    for line in lines:
        text = line.strip()
        if _is_list_item(text):
            if not in_list:
                output.append("    <ul>")
                in_list = True
            output.append(f"      <li>{xml_escape(text[2:].strip())}</li>")
            continue

        if in_list:
            output.append("    </ul>")
            in_list = False
        output.append(f"    <p>{xml_escape(text)}</p>")

    if in_list:
        output.append("    </ul>")
    return output


def description_xml(text: Optional[str]) -> str:
    """Render a description as AppStream paragraphs and lists.

    Paragraphs are separated by blank lines. A paragraph containing lines that
    start with ``* ``, ``+ `` or ``- `` becomes a ``<ul>``; any other paragraph
    becomes a single ``<p>`` with its whitespace collapsed.

    Args:
        text: Plain text description.

    Returns:
        XML fragment indented for a ``<description>`` element, or an empty string.
    """
    if not text or not text.strip():
        return ""

    output: List[str] = []
    for paragraph in PARAGRAPH_BREAK.split(text):
        paragraph = paragraph.strip()
        if not paragraph:
            continue

        lines = [line for line in paragraph.splitlines() if line.strip()]
        if any(_is_list_item(line) for line in lines):
            output.extend(_list_xml(lines))
        else:
            output.append(f"    <p>{xml_escape(WHITESPACE.sub(' ', paragraph).strip())}</p>")

    return "\n".join(output).rstrip()


def parse_changelog(text: str) -> List[Release]:
    """Read releases from changelog text.

    A release starts with a header such as ``+ Version 1.2.0; 2025-10-29`` and
    owns the ``- item`` lines that follow. Releases without items are dropped.
    """
    releases: List[Release] = []
    current: Optional[Release] = None

    for raw_line in re.split(r"[\r\n]", text):
        line = raw_line.strip()
        if line.startswith("+") and "Version" in line:
            if current is not None and current.changes:
                releases.append(current)
            current = None
            match = RELEASE_HEADER.search(line)
            if match:
                try:
                    date = datetime.date(int(match.group(2)), int(match.group(3)), int(match.group(4)))
                except ValueError:
                    logger.warning("Invalid release date in changelog", line=line)
                    continue
                current = Release(version=match.group(1), date=date)
        elif line.startswith("-") and current is not None:
            change = line[1:].strip()
            if change:
                current.changes.append(change)

    if current is not None and current.changes:
        releases.append(current)
    return releases


def group_changes(changes: List[str]) -> Dict[str, List[str]]:
    """Group changes under ``Category:`` items; ungrouped changes use the key ``""``."""
    groups: Dict[str, List[str]] = {}
    category = ""
    for change in changes:
        if change.endswith(":") and "." not in change:
            category = change.rstrip(":")
            groups.setdefault(category, [])
        else:
            groups.setdefault(category, []).append(change)
    return groups


def changelog_xml(text: Optional[str], max_releases: int = 5) -> str:
    """Render changelog text as AppStream ``<release>`` elements.

    Args:
        text: Changelog content.
        max_releases: Number of most recent releases to keep.

    Returns:
        XML fragment for a ``<releases>`` element, or an empty string.
    """
    if not text:
        return ""

    output: List[str] = []
    for release in parse_changelog(text)[:max_releases]:
        output.append(f'    <release version="{xml_escape(release.version)}" date="{release.date:%Y-%m-%d}">')
        output.append("      <description>")

        groups = group_changes(release.changes)
        if len(groups) > 1:
            for category, items in groups.items():
                if category:
                    output.append(f"        <p>{xml_escape(category)}:</p>")
                output.append("        <ul>")
                output.extend(f"          <li>{xml_escape(item)}</li>" for item in items)
                output.append("        </ul>")
        else:
            output.append("        <ul>")
            for items in groups.values():
                output.extend(f"          <li>{xml_escape(item)}</li>" for item in items)
            output.append("        </ul>")

        output.append("      </description>")
        output.append("    </release>")

    return "\n".join(output).rstrip()


def changelog_xml_from_file(path: Union[str, pathlib.Path, None], max_releases: int = 5) -> str:
    if not path:
        return ""
    file_path = pathlib.Path(path)
    if not file_path.is_file():
        return ""
    return changelog_xml(file_path.read_text(encoding="utf-8-sig"), max_releases)
