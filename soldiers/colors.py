"""Marker colour codec used by the soldier JSON documents."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from PIL import ImageColor


@dataclass(frozen=True)
class Color:
    r: int
    g: int
    b: int

    @property
    def rgb(self) -> tuple:
        return (self.r, self.g, self.b)

    @property
    def hex(self) -> str:
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"


# Palette names are written back with this capitalisation.
NAMED_COLORS: Dict[str, Color] = {
    "Red": Color(255, 0, 0),
    "Lime": Color(0, 255, 0),
    "Blue": Color(0, 0, 255),
    "Yellow": Color(255, 255, 0),
    "Magenta": Color(255, 0, 255),
}

_NAMES_BY_KEY = {name.lower(): name for name in NAMED_COLORS}


class ColorFormatError(ValueError):
    pass


def palette_name(color: Color) -> Optional[str]:
    for name, value in NAMED_COLORS.items():
        if value == color:
            return name
    return None


def encode_color(color: Color) -> str:
    """Return the palette name for ``color``, falling back to ``#RRGGBB``."""
    return palette_name(color) or color.hex


def decode_color(text: object) -> Color:
    """
    Parse a palette name or any colour string Pillow understands.

    Palette names match case-insensitively. Other values go through
    ``PIL.ImageColor.getrgb`` (``#RGB``, ``#RRGGBB``, ``#RRGGBBAA``, CSS
    names); any alpha component is dropped.
    """
    if not isinstance(text, str):
        raise ColorFormatError(f"Invalid color name or hex code: {text}")

    name = _NAMES_BY_KEY.get(text.strip().lower())
    if name is not None:
        return NAMED_COLORS[name]

    try:
        rgb = ImageColor.getrgb(text.strip())
    except ValueError as exc:
        raise ColorFormatError(f"Invalid color name or hex code: {text}") from exc
    return Color(*rgb[:3])
