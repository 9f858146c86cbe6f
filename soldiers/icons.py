from __future__ import annotations

from datetime import datetime
from typing import Optional

from PIL import Image, ImageDraw

from soldiers.colors import Color
from soldiers.model import Soldier

MARKER_SIZE = 30
# Rendered larger then downsampled so the circle edge is antialiased.
_SUPERSAMPLE = 4


def render_marker_image(color: Color, size: int = MARKER_SIZE) -> Image.Image:
    """
    Draw a filled circle of ``color`` on a transparent square.

    Parameters
    ----------
    color:
        Fill colour of the soldier's marker.
    size:
        Width and height of the returned RGBA image in pixels.
    """
    if size <= 0:
        raise ValueError(f"Marker size must be positive, got {size}")

    big = size * _SUPERSAMPLE
    img = Image.new("RGBA", (big, big), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.ellipse([0, 0, big - 1, big - 1], fill=(*color.rgb, 255))
    return img.resize((size, size), Image.LANCZOS)


def marker_label(soldier: Soldier) -> str:
    return f"{soldier.rank} {soldier.last_name}".strip()


def describe_soldier(soldier: Soldier, latest: Optional[datetime]) -> str:
    latest_text = latest.strftime("%Y-%m-%d %H:%M:%S") if latest else "n/a"
    return (
        f"Name: {soldier.full_name}  Latest date: {latest_text}\n"
        f"Rank: {soldier.rank}\n"
        f"Country: {soldier.country}\n"
        f"TrainingInfo: {soldier.training_info}"
    )
