"""Macro tokens and the per-build registry that resolves them.

A macro is a ``${NAME}`` placeholder that may appear in desktop entries,
AppStream files, scripts, plist templates and publish arguments. Each build
owns one :class:`MacroRegistry`; nothing here touches ``os.environ``.
"""

from __future__ import annotations

import enum
import re
from typing import Dict, List, Optional, Tuple

from netloy.core.logging_manager import get_logger
from netloy.core.platform import LINUX_PACKAGES, PackageType

logger = get_logger(__name__)


class MacroId(str, enum.Enum):
    """Every substitution token, in expansion order."""

    CONF_FILE_DIRECTORY = "${CONF_FILE_DIRECTORY}"
    APP_BASE_NAME = "${APP_BASE_NAME}"
    APP_FRIENDLY_NAME = "${APP_FRIENDLY_NAME}"
    APP_ID = "${APP_ID}"
    APP_SHORT_SUMMARY = "${APP_SHORT_SUMMARY}"
    APP_LICENSE_ID = "${APP_LICENSE_ID}"
    APP_EXEC_NAME = "${APP_EXEC_NAME}"
    PUBLISHER_NAME = "${PUBLISHER_NAME}"
    PUBLISHER_ID = "${PUBLISHER_ID}"
    PUBLISHER_COPYRIGHT = "${PUBLISHER_COPYRIGHT}"
    PUBLISHER_LINK_NAME = "${PUBLISHER_LINK_NAME}"
    PUBLISHER_LINK_URL = "${PUBLISHER_LINK_URL}"
    PUBLISHER_EMAIL = "${PUBLISHER_EMAIL}"
    DESKTOP_NODISPLAY = "${DESKTOP_NODISPLAY}"
    DESKTOP_INTEGRATE = "${DESKTOP_INTEGRATE}"
    DESKTOP_TERMINAL = "${DESKTOP_TERMINAL}"
    PRIME_CATEGORY = "${PRIME_CATEGORY}"
    APP_VERSION = "${APP_VERSION}"
    PACKAGE_RELEASE = "${PACKAGE_RELEASE}"
    PACKAGE_TYPE = "${PACKAGE_TYPE}"
    DOTNET_RUNTIME = "${DOTNET_RUNTIME}"
    PACKAGE_ARCH = "${PACKAGE_ARCH}"
    PUBLISH_OUTPUT_DIRECTORY = "${PUBLISH_OUTPUT_DIRECTORY}"
    APPSTREAM_DESCRIPTION_XML = "${APPSTREAM_DESCRIPTION_XML}"
    APPSTREAM_CHANGELOG_XML = "${APPSTREAM_CHANGELOG_XML}"
    PRIMARY_ICON_FILE_NAME = "${PRIMARY_ICON_FILE_NAME}"
    PRIMARY_ICON_FILE_PATH = "${PRIMARY_ICON_FILE_PATH}"
    INSTALL_EXEC = "${INSTALL_EXEC}"

    @property
    def variable_name(self) -> str:
        """Environment variable name, the token without ``${`` and ``}``."""
        return self.value[2:-1]


DESCRIPTIONS: Dict[MacroId, str] = {
    MacroId.CONF_FILE_DIRECTORY: "Directory containing the .netloy configuration file",
    MacroId.APP_BASE_NAME: "Base name of the main executable",
    MacroId.APP_FRIENDLY_NAME: "Human readable application name",
    MacroId.APP_ID: "Application identifier in reverse DNS form",
    MacroId.APP_SHORT_SUMMARY: "One line application summary",
    MacroId.APP_LICENSE_ID: "SPDX license identifier",
    MacroId.APP_EXEC_NAME: "Main executable file name, with .exe on Windows runtimes",
    MacroId.PUBLISHER_NAME: "Publisher, company or creator name",
    MacroId.PUBLISHER_ID: "Publisher identifier, AppId when not configured",
    MacroId.PUBLISHER_COPYRIGHT: "Copyright statement",
    MacroId.PUBLISHER_LINK_NAME: "Label of the publisher web link",
    MacroId.PUBLISHER_LINK_URL: "Publisher web link URL",
    MacroId.PUBLISHER_EMAIL: "Publisher contact email",
    MacroId.DESKTOP_NODISPLAY: "true when the application is hidden from menus",
    MacroId.DESKTOP_INTEGRATE: "Inverse of DESKTOP_NODISPLAY",
    MacroId.DESKTOP_TERMINAL: "true when the application runs in a terminal",
    MacroId.PRIME_CATEGORY: "Primary category, translated for Linux and macOS formats",
    MacroId.APP_VERSION: "Application version without the package release",
    MacroId.PACKAGE_RELEASE: "Package release number",
    MacroId.PACKAGE_TYPE: "Package format being built (deb, rpm, exe...)",
    MacroId.DOTNET_RUNTIME: ".NET runtime identifier passed to dotnet publish",
    MacroId.PACKAGE_ARCH: "Target architecture in the package format's naming",
    MacroId.PUBLISH_OUTPUT_DIRECTORY: "Directory dotnet publish writes to",
    MacroId.APPSTREAM_DESCRIPTION_XML: "AppDescription rendered as AppStream XML",
    MacroId.APPSTREAM_CHANGELOG_XML: "AppChangeFile rendered as AppStream releases",
    MacroId.PRIMARY_ICON_FILE_NAME: "File name of the icon chosen for the format",
    MacroId.PRIMARY_ICON_FILE_PATH: "Full path of the icon chosen for the format",
    MacroId.INSTALL_EXEC: "Installed executable path (Linux formats)",
}

APPLE_CATEGORY_FALLBACK = "public.app-category.utilities"
FREEDESKTOP_CATEGORY_FALLBACK = "Utility"

APPLE_CATEGORIES: Dict[str, str] = {
    "development": "public.app-category.developer-tools",
    "graphics": "public.app-category.graphics-design",
    "network": "public.app-category.networking",
    "utility": "public.app-category.utilities",
    "game": "public.app-category.games",
    "office": "public.app-category.productivity",
    "productivity": "public.app-category.productivity",
    "audiovideo": "public.app-category.music",
    "audio": "public.app-category.music",
    "video": "public.app-category.music",
    "music": "public.app-category.music",
    "education": "public.app-category.education",
    "finance": "public.app-category.finance",
    "business": "public.app-category.business",
    "entertainment": "public.app-category.entertainment",
    "health": "public.app-category.healthcare-fitness",
    "lifestyle": "public.app-category.lifestyle",
    "news": "public.app-category.news",
    "photo": "public.app-category.photography",
    "reference": "public.app-category.reference",
    "social": "public.app-category.social-networking",
    "sports": "public.app-category.sports",
    "travel": "public.app-category.travel",
    "weather": "public.app-category.weather",
}

# Freedesktop main category -> words mapped onto it
_FREEDESKTOP_GROUPS: Dict[str, Tuple[str, ...]] = {
    "Development": (
        "development", "building", "debugger", "ide", "profiling", "translation", "webdevelopment",
    ),
    "Graphics": (
        "graphics", "2dgraphics", "3dgraphics", "scanning", "photography", "rastergraphics",
        "vectorgraphics", "viewer", "photo",
    ),
    "Science": (
        "science", "biology", "chemistry", "math", "astronomy", "physics", "engineering",
        "electronics", "geography", "geology",
    ),
    "AudioVideo": (
        "audiovideo", "audio", "video", "music", "audiovideoediting", "player", "recorder",
        "discburning", "entertainment", "tv",
    ),
    "Network": (
        "network", "email", "instantmessaging", "chat", "irc", "telephony", "webbrowser", "p2p",
        "filetransfer", "dialup", "social", "news",
    ),
    "Office": (
        "office", "productivity", "calendar", "contactmanagement", "database", "dictionary",
        "chart", "finance", "flowchart", "pda", "projectmanagement", "presentation",
        "spreadsheet", "wordprocessor", "publishing", "business", "reference",
    ),
    "Game": (
        "game", "boardgame", "cardgame", "arcadegame", "actiongame", "adventuregame",
        "simulation", "sportsgame", "strategygame", "roleplaying", "sports",
    ),
    "Utility": (
        "utility", "archiving", "compression", "filetools", "calculator", "clock", "texteditor",
        "lifestyle", "travel", "weather",
    ),
    "Settings": (
        "settings", "accessibility", "desktopsettings", "hardwaresettings", "packagesettings",
        "security",
    ),
    "System": ("system", "emulator", "filesystem", "monitor", "terminalemulator"),
    "Education": ("education", "languages", "kids", "health"),
}

FREEDESKTOP_CATEGORIES: Dict[str, str] = {
    word: category for category, words in _FREEDESKTOP_GROUPS.items() for word in words
}

APPLE_PACKAGES = frozenset({PackageType.APP, PackageType.DMG})

_TOKEN_PATTERN = re.compile("|".join(re.escape(macro.value) for macro in MacroId))


def apple_category(value: str) -> str:
    return APPLE_CATEGORIES.get(value.strip().lower(), APPLE_CATEGORY_FALLBACK)


def freedesktop_category(value: str) -> str:
    return FREEDESKTOP_CATEGORIES.get(value.strip().lower(), FREEDESKTOP_CATEGORY_FALLBACK)


class MacroRegistry:
    """Resolved macro values for one build.

    Every value set here is mirrored into a private environment mapping keyed
    by the bare variable name (``APP_VERSION`` for ``${APP_VERSION}``). Child
    processes receive that mapping through :meth:`environment`.

    Attributes:
        package_type: Format being built; selects the category translation.
    """

    def __init__(self, package_type: Optional[PackageType] = None) -> None:
        self.package_type = package_type
        self._values: Dict[MacroId, str] = {}
        self._environment: Dict[str, str] = {}

    def set(self, macro: MacroId, value: Optional[str]) -> None:
        """Store a value; an empty value removes the mirrored variable."""
        value = value or ""
        self._values[macro] = value
        if value:
            self._environment[macro.variable_name] = value
        else:
            self._environment.pop(macro.variable_name, None)
        logger.debug("Macro set", macro=macro.variable_name)

    def get(self, macro: MacroId) -> str:
        value = self._values.get(macro, "")
        if macro is MacroId.PRIME_CATEGORY and macro in self._values:
            if self.package_type in APPLE_PACKAGES:
                return apple_category(value)
            if self.package_type in LINUX_PACKAGES:
                return freedesktop_category(value)
        return value

    def expand(self, text: Optional[str]) -> str:
        """Replace every macro token in ``text``.

        Values may themselves contain tokens, so substitution repeats until the
        text no longer changes. Unresolved tokens become empty
        strings; applying ``expand`` twice gives the same result as once.
        """
        if not text:
            return ""

        for _ in range(len(MacroId)):
            if not _TOKEN_PATTERN.search(text):
                return text
            expanded = _TOKEN_PATTERN.sub(lambda match: self.get(MacroId(match.group(0))), text)
            if expanded == text:
                break
            text = expanded

        # Self-referencing values leave tokens behind. Removing one can join
        # its neighbours into a new token, so strip until none is left.
        while _TOKEN_PATTERN.search(text):
            text = _TOKEN_PATTERN.sub("", text)
        return text

    def environment(self) -> Dict[str, str]:
        """Return a copy of the mirrored environment variables."""
        return dict(self._environment)

    @staticmethod
    def describe() -> List[Tuple[str, str]]:
        """Return (token, description) pairs for every macro."""
        return [(macro.value, DESCRIPTIONS[macro]) for macro in MacroId]

    @classmethod
    def help_text(cls) -> str:
        lines = ["=" * 80, "NETLOY MACRO VARIABLES", "=" * 80, ""]
        lines.extend(f"  {token:<35} {description}" for token, description in cls.describe())
        lines.extend(
            [
                "",
                "Macros are replaced in desktop files, metainfo files, scripts and publish",
                "arguments. Post-publish scripts also receive them as environment variables",
                "named without the ${ } wrapper, e.g. $APP_VERSION or %APP_VERSION%.",
                "=" * 80,
            ]
        )
        return "\n".join(lines)
