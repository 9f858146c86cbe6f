#!/usr/bin/env python3
"""Tests for tools/summarize_soldiers.py."""

import importlib.util
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from soldiers.model import SoldierDocument

ROOT = Path(__file__).parent
_tool = importlib.util.spec_from_file_location("summarize_soldiers", ROOT / "tools" / "summarize_soldiers.py")
summarize_soldiers = importlib.util.module_from_spec(_tool)
_tool.loader.exec_module(summarize_soldiers)


def test_summary_rows_use_latest_positions():
    document = SoldierDocument.load(ROOT / "SoldierData.json")
    rows = {row["id"]: row for row in summarize_soldiers.summarize(document)}
    assert set(rows) == {1, 2, 3}
    assert (rows[1]["latitude"], rows[1]["longitude"]) == (32.0871, 34.7839)
    assert rows[2]["last_seen"] == "2024-05-01T10:10:00"
    assert rows[3]["color"] == "#1E90FF"


def test_summary_without_positions():
    document = SoldierDocument.load(ROOT / "SoldierData.json")
    document.position_updates = []
    rows = summarize_soldiers.summarize(document)
    assert all(row["latitude"] is None and row["last_seen"] is None for row in rows)
    assert "no position" in summarize_soldiers.format_rows(rows)
