#!/usr/bin/env python3
"""Tests for marker bitmaps and soldier descriptions."""

import sys
from datetime import datetime
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from soldiers.colors import Color
from soldiers.icons import MARKER_SIZE, describe_soldier, marker_label, render_marker_image
from soldiers.model import Soldier

SOLDIER = Soldier(3, "David", "Levi", "Corporal", "Israel", "Combat engineering", Color(30, 144, 255))


def test_marker_image_is_filled_circle():
    img = render_marker_image(Color(255, 0, 0))
    assert img.mode == "RGBA"
    assert img.size == (MARKER_SIZE, MARKER_SIZE)
    centre = img.getpixel((MARKER_SIZE // 2, MARKER_SIZE // 2))
    assert centre[:3] == (255, 0, 0)
    assert centre[3] == 255
    assert img.getpixel((0, 0))[3] == 0


def test_marker_image_custom_size():
    assert render_marker_image(Color(0, 0, 255), size=12).size == (12, 12)
    with pytest.raises(ValueError):
        render_marker_image(Color(0, 0, 255), size=0)


def test_marker_label():
    assert marker_label(SOLDIER) == "Corporal Levi"


def test_describe_soldier():
    text = describe_soldier(SOLDIER, datetime(2024, 5, 1, 10, 10))
    assert "Name: David Levi" in text
    assert "Latest date: 2024-05-01 10:10:00" in text
    assert "Rank: Corporal" in text
    assert "Country: Israel" in text
    assert "TrainingInfo: Combat engineering" in text


def test_describe_soldier_without_updates():
    assert "Latest date: n/a" in describe_soldier(SOLDIER, None)
