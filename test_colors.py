#!/usr/bin/env python3
"""Tests for the marker colour codec."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from soldiers.colors import NAMED_COLORS, Color, ColorFormatError, decode_color, encode_color


@pytest.mark.parametrize("name", sorted(NAMED_COLORS))
def test_palette_names_round_trip(name):
    assert encode_color(decode_color(name)) == name


def test_palette_lookup_ignores_case():
    assert decode_color("magenta") == Color(255, 0, 255)
    assert decode_color("YELLOW") == Color(255, 255, 0)
    assert encode_color(decode_color("lime")) == "Lime"


@pytest.mark.parametrize("text", ["#123456", "#ABCDEF", "#1E90FF", "#000000"])
def test_unknown_hex_round_trips(text):
    assert encode_color(decode_color(text)) == text


def test_hex_matching_palette_encodes_as_name():
    assert encode_color(decode_color("#FF0000")) == "Red"


def test_short_hex_and_alpha_forms():
    assert decode_color("#0f0") == Color(0, 255, 0)
    assert decode_color("#11223344") == Color(0x11, 0x22, 0x33)


def test_other_named_colours_fall_back_to_hex():
    assert encode_color(decode_color("orange")) == "#FFA500"


@pytest.mark.parametrize("value", ["NotAColour", "#GGGGGG", "", None, 12])
def test_invalid_values_raise(value):
    with pytest.raises(ColorFormatError, match="Invalid color name or hex code"):
        decode_color(value)


def test_color_hex_property():
    assert Color(1, 2, 255).hex == "#0102FF"
