"""Reconcile position update records against the markers shown on the map."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Tuple, runtime_checkable

from soldiers.model import Position, PositionUpdate, Soldier, SoldierDocument

logger = logging.getLogger(__name__)

LatLon = Tuple[float, float]
Bounds = Tuple[LatLon, LatLon]

# Smallest box (degrees) handed to the map so a lone marker does not zoom in forever.
MIN_SPAN_DEGREES = 0.01
# Web Mercator tiles stop short of the poles.
MAX_LATITUDE = 85.0


@runtime_checkable
class MapMarker(Protocol):
    """The part of a tkintermapview marker the tracker relies on."""

    position: LatLon

    def set_position(self, deg_x: float, deg_y: float) -> None:
        ...


@dataclass
class ReconcileResult:
    moved: List[int] = field(default_factory=list)
    created: List[int] = field(default_factory=list)
    ignored: List[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.moved or self.created)


class MarkerTracker:
    """
    Owns the ``soldier_id -> marker`` registry for one map.

    ``create_marker(soldier, position)`` builds the on-screen marker, any
    ``MapMarker``; tkintermapview markers satisfy it.
    """

    def __init__(
        self,
        document: SoldierDocument,
        create_marker: Callable[[Soldier, Position], MapMarker],
    ) -> None:
        self.document = document
        self.create_marker = create_marker
        self._markers: Dict[int, MapMarker] = {}

    @property
    def soldier_ids(self) -> List[int]:
        return list(self._markers)

    def marker_for(self, soldier_id: int) -> Optional[MapMarker]:
        return self._markers.get(soldier_id)

    def items(self) -> Iterable[Tuple[int, MapMarker]]:
        return list(self._markers.items())

    def positions(self) -> Dict[int, LatLon]:
        return {soldier_id: tuple(marker.position) for soldier_id, marker in self._markers.items()}

    def apply_update(self, update: PositionUpdate) -> ReconcileResult:
        result = ReconcileResult()
        for position in update.positions:
            marker = self._markers.get(position.soldier_id)
            if marker is not None:
                marker.set_position(position.latitude, position.longitude)
                result.moved.append(position.soldier_id)
                continue

            soldier = self.document.find_soldier(position.soldier_id)
            if soldier is None:
                logger.warning(
                    "Ignoring position for unknown soldier id %s (update %s)",
                    position.soldier_id,
                    update.timestamp.isoformat(),
                )
                result.ignored.append(position.soldier_id)
                continue

            self._markers[position.soldier_id] = self.create_marker(soldier, position)
            result.created.append(position.soldier_id)
        return result

    def move(self, soldier_id: int, latitude: float, longitude: float) -> None:
        self._markers[soldier_id].set_position(latitude, longitude)

    def clear(self) -> List[MapMarker]:
        """Forget every marker and return them so the caller can delete them."""
        markers = list(self._markers.values())
        self._markers.clear()
        return markers


def fit_bounds(positions: Iterable[LatLon], padding: float = 0.1) -> Optional[Bounds]:
    """
    Bounding box around ``positions`` as ``((top, left), (bottom, right))``.

    ``padding`` widens each side by that fraction of the span. Spans smaller
    than ``MIN_SPAN_DEGREES`` are widened around their centre. Latitudes are
    held inside +/-``MAX_LATITUDE`` before and after padding, so ``top`` always
    lies north of ``bottom``.
    """
    points = list(positions)
    if not points:
        return None

    lats = [min(max(lat, -MAX_LATITUDE), MAX_LATITUDE) for lat, _ in points]
    lons = [lon for _, lon in points]

    def expand(low: float, high: float) -> Tuple[float, float]:
        span = high - low
        if span < MIN_SPAN_DEGREES:
            centre = (low + high) / 2
            low, high = centre - MIN_SPAN_DEGREES / 2, centre + MIN_SPAN_DEGREES / 2
            span = MIN_SPAN_DEGREES
        return low - span * padding, high + span * padding

    south, north = expand(min(lats), max(lats))
    west, east = expand(min(lons), max(lons))
    north = min(north, MAX_LATITUDE)
    south = max(south, -MAX_LATITUDE)
    return (north, west), (south, east)
