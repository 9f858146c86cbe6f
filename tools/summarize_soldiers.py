#!/usr/bin/env python3
"""
Print the soldier roster from a tracker JSON document with each soldier's
latest recorded position.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List

sys.path.append(str(Path(__file__).resolve().parents[1]))

from soldiers.colors import encode_color
from soldiers.model import DEFAULT_DATA_FILE, DocumentError, SoldierDocument


def summarize(document: SoldierDocument) -> List[Dict[str, object]]:
    latest = document.latest_positions()
    rows: List[Dict[str, object]] = []
    for soldier in document.soldiers:
        position = latest.get(soldier.id)
        stamp = document.latest_timestamp(soldier.id)
        rows.append(
            {
                "id": soldier.id,
                "name": soldier.full_name,
                "rank": soldier.rank,
                "country": soldier.country,
                "color": encode_color(soldier.color),
                "latitude": position.latitude if position else None,
                "longitude": position.longitude if position else None,
                "last_seen": stamp.isoformat() if stamp else None,
            }
        )
    return rows


def format_rows(rows: List[Dict[str, object]]) -> str:
    lines = []
    for row in rows:
        if row["latitude"] is None:
            where = "no position"
        else:
            where = f"{row['latitude']:.5f}, {row['longitude']:.5f} @ {row['last_seen']}"
        lines.append(f"{row['id']:>4}  {row['rank']:<10} {row['name']:<24} {row['country']:<12} {where}")
    return "\n".join(lines)


def main() -> int:
    parser = argparse.ArgumentParser(description="Summarise a soldier tracker data file.")
    parser.add_argument("data", nargs="?", type=Path, default=Path(DEFAULT_DATA_FILE))
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit structured JSON instead of the human-readable table.",
    )
    args = parser.parse_args()

    try:
        document = SoldierDocument.load(args.data)
    except FileNotFoundError:
        print(f"{args.data} not found.", file=sys.stderr)
        return 1
    except DocumentError as exc:
        print(f"Error deserializing {args.data}: {exc}", file=sys.stderr)
        return 1

    rows = summarize(document)
    if args.json:
        print(json.dumps(rows, indent=2))
    else:
        print(format_rows(rows))
    return 0


if __name__ == "__main__":
    sys.exit(main())
