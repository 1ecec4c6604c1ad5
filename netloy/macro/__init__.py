"""Macro tokens and their per-build resolution."""

from netloy.macro.registry import (
    APPLE_CATEGORY_FALLBACK,
    FREEDESKTOP_CATEGORY_FALLBACK,
    MacroId,
    MacroRegistry,
    apple_category,
    freedesktop_category,
)

__all__ = [
    "APPLE_CATEGORY_FALLBACK",
    "FREEDESKTOP_CATEGORY_FALLBACK",
    "MacroId",
    "MacroRegistry",
    "apple_category",
    "freedesktop_category",
]
