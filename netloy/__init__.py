"""Netloy: package published .NET applications into platform-native installers."""

from __future__ import annotations

from netloy.__version__ import __version__

__all__ = ["__version__"]
