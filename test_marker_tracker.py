#!/usr/bin/env python3
"""Tests for reconciling update records against map markers."""

import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from soldiers.colors import Color
from soldiers.model import Position, PositionUpdate, Soldier, SoldierDocument
from soldiers.tracker import MAX_LATITUDE, MIN_SPAN_DEGREES, MapMarker, MarkerTracker, fit_bounds


class FakeMarker:
    """Mimics the tkintermapview marker API used by the tracker."""

    def __init__(self, soldier, lat, lon):
        self.soldier = soldier
        self.position = (lat, lon)
        self.moves = 0

    def set_position(self, lat, lon):
        self.position = (lat, lon)
        self.moves += 1


def make_tracker():
    document = SoldierDocument(
        soldiers=[
            Soldier(1, "John", "Carter", "Sergeant", "USA", "", Color(255, 0, 0)),
            Soldier(2, "Anna", "Kowalski", "Lieutenant", "Poland", "", Color(0, 255, 0)),
        ]
    )
    created = []

    def create_marker(soldier, position):
        marker = FakeMarker(soldier, position.latitude, position.longitude)
        created.append(marker)
        return marker

    return document, MarkerTracker(document, create_marker), created


def update(minute, *positions):
    return PositionUpdate(datetime(2024, 5, 1, 10, minute), [Position(*p) for p in positions])


def test_first_sighting_creates_marker():
    _, tracker, created = make_tracker()
    result = tracker.apply_update(update(0, (1, 10.0, 20.0)))
    assert result.created == [1]
    assert result.moved == []
    assert len(created) == 1
    assert tracker.marker_for(1).position == (10.0, 20.0)
    assert tracker.marker_for(1).soldier.last_name == "Carter"


def test_known_marker_is_moved_not_recreated():
    _, tracker, created = make_tracker()
    tracker.apply_update(update(0, (1, 10.0, 20.0)))
    result = tracker.apply_update(update(1, (1, 11.0, 21.0)))
    assert result.moved == [1]
    assert result.created == []
    assert len(created) == 1
    assert tracker.marker_for(1).position == (11.0, 21.0)
    assert tracker.marker_for(1).moves == 1


def test_unknown_soldier_never_creates_marker():
    _, tracker, created = make_tracker()
    result = tracker.apply_update(update(0, (7, 1.0, 1.0), (2, 5.0, 6.0), (7, 2.0, 2.0)))
    assert result.ignored == [7, 7]
    assert result.created == [2]
    assert tracker.marker_for(7) is None
    assert tracker.soldier_ids == [2]
    assert [m.soldier.id for m in created] == [2]


def test_only_unknown_ids_reports_no_change():
    _, tracker, _ = make_tracker()
    result = tracker.apply_update(update(0, (99, 1.0, 1.0)))
    assert not result.changed


def test_one_marker_per_soldier_within_a_record():
    _, tracker, created = make_tracker()
    tracker.apply_update(update(0, (1, 1.0, 1.0), (1, 2.0, 2.0)))
    assert len(created) == 1
    assert tracker.marker_for(1).position == (2.0, 2.0)


def test_replay_converges_to_latest_positions():
    document, tracker, _ = make_tracker()
    document.position_updates = [
        update(0, (1, 1.0, 1.0), (2, 5.0, 5.0)),
        update(5, (1, 2.0, 2.0)),
        update(10, (2, 6.0, 6.0), (1, 3.0, 3.0)),
        update(15, (2, 7.0, 7.0)),
    ]
    for record in sorted(document.position_updates, key=lambda u: u.timestamp):
        tracker.apply_update(record)

    expected = {
        soldier_id: (position.latitude, position.longitude)
        for soldier_id, position in document.latest_positions().items()
    }
    assert tracker.positions() == expected
    assert expected == {1: (3.0, 3.0), 2: (7.0, 7.0)}


def test_move_and_clear():
    _, tracker, _ = make_tracker()
    tracker.apply_update(update(0, (1, 1.0, 1.0), (2, 2.0, 2.0)))
    tracker.move(2, 9.0, 9.0)
    assert tracker.positions()[2] == (9.0, 9.0)
    removed = tracker.clear()
    assert len(removed) == 2
    assert tracker.soldier_ids == []


def test_fit_bounds_empty():
    assert fit_bounds([]) is None


def test_fit_bounds_wraps_all_points():
    (top, left), (bottom, right) = fit_bounds([(10.0, 20.0), (12.0, 25.0)], padding=0.1)
    assert top > 12.0 and bottom < 10.0
    assert left < 20.0 and right > 25.0
    assert abs(top - 12.2) < 1e-9
    assert abs(right - 25.5) < 1e-9


def test_fit_bounds_single_point_gets_minimum_span():
    (top, left), (bottom, right) = fit_bounds([(32.0, 34.0)], padding=0.0)
    assert abs((top - bottom) - MIN_SPAN_DEGREES) < 1e-9
    assert abs((right - left) - MIN_SPAN_DEGREES) < 1e-9
    assert bottom < 32.0 < top
    assert left < 34.0 < right


def test_fake_marker_satisfies_map_marker_contract():
    assert isinstance(FakeMarker(None, 1.0, 2.0), MapMarker)
    assert not isinstance(object(), MapMarker)


def test_fit_bounds_near_the_poles_stays_ordered():
    for lat in (86.0, 85.0, 90.0, -86.0, -90.0):
        (top, left), (bottom, right) = fit_bounds([(lat, 10.0)])
        assert top > bottom
        assert -MAX_LATITUDE <= bottom and top <= MAX_LATITUDE
        assert left < 10.0 < right


def test_fit_bounds_mixed_polar_and_normal_points():
    (top, _), (bottom, _) = fit_bounds([(89.0, 0.0), (60.0, 5.0)])
    assert top == MAX_LATITUDE
    assert bottom < 60.0
