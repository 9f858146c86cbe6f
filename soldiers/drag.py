from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from soldiers.icons import MARKER_SIZE
from soldiers.tracker import MarkerTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    width: float
    height: float

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x < self.left + self.width and self.top <= y < self.top + self.height


def marker_rect(center_x: float, center_y: float, width: float, height: float) -> Rect:
    """Screen box of a marker whose icon is centred on its position."""
    return Rect(center_x - width / 2, center_y - height / 2, width, height)


class DragController:
    """
    Press/move/release state machine for dragging markers.

    ``to_screen(lat, lon)`` and ``to_latlon(x, y)`` convert between map and
    canvas coordinates. ``on_release(soldier_id, lat, lon)`` is called once
    per completed drag.
    """

    def __init__(
        self,
        tracker: MarkerTracker,
        to_screen: Callable[[float, float], Tuple[float, float]],
        to_latlon: Callable[[float, float], Tuple[float, float]],
        on_release: Callable[[int, float, float], object],
        marker_size: Tuple[int, int] = (MARKER_SIZE, MARKER_SIZE),
    ) -> None:
        self.tracker = tracker
        self.to_screen = to_screen
        self.to_latlon = to_latlon
        self.on_release = on_release
        self.marker_size = marker_size
        self.dragged_id: Optional[int] = None

    @property
    def dragging(self) -> bool:
        return self.dragged_id is not None

    def hit_test(self, x: float, y: float) -> Optional[int]:
        width, height = self.marker_size
        for soldier_id, marker in self.tracker.items():
            center_x, center_y = self.to_screen(*marker.position)
            if marker_rect(center_x, center_y, width, height).contains(x, y):
                return soldier_id
        return None

    def press(self, x: float, y: float) -> bool:
        soldier_id = self.hit_test(x, y)
        if soldier_id is None:
            return False
        self.dragged_id = soldier_id
        logger.debug("Started dragging soldier %s", soldier_id)
        return True

    def move(self, x: float, y: float) -> bool:
        if self.dragged_id is None:
            return False
        lat, lon = self.to_latlon(x, y)
        self.tracker.move(self.dragged_id, lat, lon)
        return True

    def release(self, x: float, y: float) -> bool:
        if self.dragged_id is None:
            return False
        soldier_id = self.dragged_id
        self.dragged_id = None
        lat, lon = self.to_latlon(x, y)
        self.tracker.move(soldier_id, lat, lon)
        logger.info("Soldier %s dropped at %.6f, %.6f", soldier_id, lat, lon)
        self.on_release(soldier_id, lat, lon)
        return True
