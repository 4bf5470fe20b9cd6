"""Custom theme definitions for livetv-tui."""
from __future__ import annotations

from typing import Mapping

from textual.theme import Theme

__all__ = [
    "CUSTOM_THEMES",
    "DEFAULT_THEME_NAME",
]

# Zinc and indigo palette.
_ZINC_50 = "#fafafa"
_ZINC_100 = "#f4f4f5"
_ZINC_200 = "#e4e4e7"
_ZINC_300 = "#d4d4d8"
_ZINC_600 = "#52525b"
_ZINC_700 = "#3f3f46"
_ZINC_800 = "#27272a"
_ZINC_900 = "#18181b"
_ZINC_950 = "#09090b"
_INDIGO_400 = "#818cf8"
_INDIGO_600 = "#4f46e5"
_VIOLET_500 = "#8b5cf6"
_AMBER_500 = "#f59e0b"
_RED_500 = "#ef4444"
_RED_600 = "#dc2626"
_EMERALD_500 = "#10b981"

_LIVETV_DARK = Theme(
    "livetv-dark",
    primary=_INDIGO_400,
    secondary=_VIOLET_500,
    warning=_AMBER_500,
    error=_RED_500,
    success=_EMERALD_500,
    accent=_RED_600,
    foreground=_ZINC_300,
    background=_ZINC_950,
    surface=_ZINC_900,
    panel=_ZINC_800,
    boost=_ZINC_700,
    dark=True,
)

_LIVETV_LIGHT = Theme(
    "livetv-light",
    primary=_INDIGO_600,
    secondary=_VIOLET_500,
    warning=_AMBER_500,
    error=_RED_600,
    success=_EMERALD_500,
    accent=_RED_500,
    foreground=_ZINC_800,
    background=_ZINC_50,
    surface=_ZINC_100,
    panel=_ZINC_200,
    boost=_ZINC_600,
    dark=False,
)

CUSTOM_THEMES: Mapping[str, Theme] = {
    _LIVETV_DARK.name: _LIVETV_DARK,
    _LIVETV_LIGHT.name: _LIVETV_LIGHT,
}
"""Themes bundled with the application keyed by their names."""

DEFAULT_THEME_NAME = _LIVETV_DARK.name
"""Default theme to apply when none is specified explicitly."""
