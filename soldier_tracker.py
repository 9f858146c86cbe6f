#!/usr/bin/env python3
"""
Tkinter soldier tracker.

Features:
    - Show every soldier in SoldierData.json as a coloured marker on a slippy map.
    - Replay the recorded position updates with a fixed pause between records.
    - Drag a marker to correct its position; each drop is appended to the file
      as a new timestamped update and the whole document is rewritten.
"""

from __future__ import annotations

import argparse
import logging
import tkinter as tk
from dataclasses import dataclass
from pathlib import Path
from tkinter import filedialog, messagebox
from typing import Dict, List, Optional, Sequence, Tuple

import tkintermapview
from PIL import ImageTk
from tkintermapview.utility_functions import decimal_to_osm, osm_to_decimal

from soldiers.drag import DragController
from soldiers.colors import Color
from soldiers.icons import MARKER_SIZE, describe_soldier, marker_label, render_marker_image
from soldiers.model import DEFAULT_DATA_FILE, Position, PositionUpdate, Soldier, SoldierDocument
from soldiers.replay import DEFAULT_DELAY_SECONDS, UiDispatcher, UpdateReplayer
from soldiers.session import open_document, report_replay_error, save_correction
from soldiers.tracker import MapMarker, MarkerTracker, fit_bounds

try:
    from tkinter import ttk
except ImportError:  # pragma: no cover - ttk is bundled with Tk in CPython.
    ttk = None  # type: ignore

DRAG_BINDTAG = "SoldierDrag"
DEFAULT_TILE_SERVER = "https://a.tile.openstreetmap.org/{z}/{x}/{y}.png"


class MarkerIconCache:
    """Keeps one PhotoImage per colour alive for the lifetime of the map."""

    def __init__(self, size: int = MARKER_SIZE) -> None:
        self.size = size
        self._photos: Dict[Color, ImageTk.PhotoImage] = {}

    def get(self, color: Color) -> ImageTk.PhotoImage:
        if color not in self._photos:
            self._photos[color] = ImageTk.PhotoImage(render_marker_image(color, self.size))
        return self._photos[color]


@dataclass(frozen=True)
class Settings:
    data_path: Path = Path(DEFAULT_DATA_FILE)
    delay: float = DEFAULT_DELAY_SECONDS
    tile_server: Optional[str] = None
    log_level: str = "INFO"


def parse_args(argv: Optional[Sequence[str]] = None) -> Settings:
    parser = argparse.ArgumentParser(
        description="Replay soldier positions on a map and record manual corrections."
    )
    parser.add_argument(
        "data",
        nargs="?",
        type=Path,
        default=Path(DEFAULT_DATA_FILE),
        help=f"Soldier JSON document (default: {DEFAULT_DATA_FILE})",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=DEFAULT_DELAY_SECONDS,
        help="Seconds to wait between replayed update records.",
    )
    parser.add_argument("--tile-server", help="Tile URL template, e.g. https://.../{z}/{x}/{y}.png")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    args = parser.parse_args(argv)
    if args.delay < 0:
        parser.error("--delay must not be negative")
    return Settings(
        data_path=args.data,
        delay=args.delay,
        tile_server=args.tile_server,
        log_level=args.log_level,
    )


class SoldierTrackerApp:
    def __init__(self, root: tk.Tk, settings: Settings) -> None:
        if ttk is None:
            raise RuntimeError("ttk is required for this application.")

        self.root = root
        self.root.title("Soldier Tracker")
        self.settings = settings

        self.data_path: Path = settings.data_path
        self.document: Optional[SoldierDocument] = None
        self.tracker: Optional[MarkerTracker] = None
        self.drag: Optional[DragController] = None
        self.replayer: Optional[UpdateReplayer] = None
        self.icon_cache = MarkerIconCache(MARKER_SIZE)

        self.status_var = tk.StringVar(value="No data loaded.")
        self.details_var = tk.StringVar(value="")

        self.dispatcher = UiDispatcher(root)
        self.dispatcher.start()

        self._build_menu()
        self._build_map()
        self._build_status_bar()
        self._install_drag_bindings()

    # ------------------------------------------------------------------#
    # UI construction
    # ------------------------------------------------------------------#
    def _build_menu(self) -> None:
        menubar = tk.Menu(self.root)
        file_menu = tk.Menu(menubar, tearoff=False)
        file_menu.add_command(label="Open Data…", command=self._open_data_dialog)
        file_menu.add_command(label="Reload", command=self.start)
        file_menu.add_separator()
        file_menu.add_command(label="Quit", command=self.root.quit)
        menubar.add_cascade(label="File", menu=file_menu)
        self.root.config(menu=menubar)

    def _build_map(self) -> None:
        frame = ttk.Frame(self.root)
        frame.pack(fill=tk.BOTH, expand=True)
        self.map_widget = tkintermapview.TkinterMapView(frame, width=1000, height=700, corner_radius=0)
        self.map_widget.pack(fill=tk.BOTH, expand=True)
        self.map_widget.set_tile_server(self.settings.tile_server or DEFAULT_TILE_SERVER)

    def _build_status_bar(self) -> None:
        bar = ttk.Frame(self.root, padding=(6, 2))
        bar.pack(fill=tk.X, side=tk.BOTTOM)
        ttk.Label(bar, textvariable=self.status_var).pack(side=tk.LEFT)
        ttk.Label(bar, textvariable=self.details_var, justify=tk.LEFT).pack(side=tk.RIGHT)

    def _install_drag_bindings(self) -> None:
        # Our bindtag runs before the map's own canvas bindings, so returning
        # "break" keeps a marker drag from also panning the map.
        canvas = self.map_widget.canvas
        canvas.bindtags((DRAG_BINDTAG,) + canvas.bindtags())
        canvas.bind_class(DRAG_BINDTAG, "<ButtonPress-1>", self._on_press)
        canvas.bind_class(DRAG_BINDTAG, "<B1-Motion>", self._on_drag_motion)
        canvas.bind_class(DRAG_BINDTAG, "<ButtonRelease-1>", self._on_release)
        canvas.bind_class(DRAG_BINDTAG, "<Motion>", self._on_hover)

    # ------------------------------------------------------------------#
    # Loading and replay
    # ------------------------------------------------------------------#
    def start(self) -> None:
        """Load the current data file and replay its updates."""
        self._reset_markers()

        path = self.data_path
        document = open_document(path, messagebox.showerror)
        if document is None:
            return

        self.document = document
        tracker = MarkerTracker(document, self._create_marker)
        self.tracker = tracker
        self.drag = DragController(
            tracker,
            to_screen=self._latlon_to_canvas,
            to_latlon=self._canvas_to_latlon,
            on_release=self._on_marker_dropped,
            marker_size=(MARKER_SIZE, MARKER_SIZE),
        )
        self.status_var.set(
            f"{path.name}: {len(document.soldiers)} soldiers, "
            f"{len(document.position_updates)} updates"
        )

        self.replayer = UpdateReplayer(
            document.position_updates,
            apply=lambda update: self._apply_update(tracker, update),
            dispatcher=self.dispatcher,
            delay=self.settings.delay,
            on_error=lambda exc: self._on_replay_error(tracker, exc),
            on_finished=lambda: self._on_replay_finished(tracker),
        )
        self.replayer.start()

    def _apply_update(self, tracker: MarkerTracker, update: PositionUpdate) -> None:
        if tracker is not self.tracker:
            # A reload replaced this tracker; the old replayer runs out quietly.
            return
        result = tracker.apply_update(update)
        if result.changed:
            self._fit_markers()
        self.status_var.set(f"Update {update.timestamp:%Y-%m-%d %H:%M:%S}: "
                            f"{len(result.moved)} moved, {len(result.created)} new")

    def _on_replay_error(self, tracker: MarkerTracker, exc: BaseException) -> None:
        if tracker is self.tracker:
            report_replay_error(exc, messagebox.showerror)

    def _on_replay_finished(self, tracker: MarkerTracker) -> None:
        if tracker is self.tracker:
            self.status_var.set(f"Replay finished: {len(tracker.soldier_ids)} soldiers on the map")

    def _reset_markers(self) -> None:
        if self.tracker is not None:
            for marker in self.tracker.clear():
                marker.delete()
        self.tracker = None
        self.drag = None
        self.document = None
        self.details_var.set("")

    def _create_marker(self, soldier: Soldier, position: Position) -> MapMarker:
        return self.map_widget.set_marker(
            position.latitude,
            position.longitude,
            text=marker_label(soldier),
            icon=self.icon_cache.get(soldier.color),
            icon_anchor="center",
        )

    def _fit_markers(self) -> None:
        bounds = fit_bounds(self.tracker.positions().values())
        if bounds is not None:
            top_left, bottom_right = bounds
            self.map_widget.fit_bounding_box(top_left, bottom_right)

    # ------------------------------------------------------------------#
    # Coordinate conversion
    # ------------------------------------------------------------------#
    def _latlon_to_canvas(self, lat: float, lon: float) -> Tuple[float, float]:
        widget = self.map_widget
        tile_x, tile_y = decimal_to_osm(lat, lon, round(widget.zoom))
        tiles_wide = widget.lower_right_tile_pos[0] - widget.upper_left_tile_pos[0]
        tiles_high = widget.lower_right_tile_pos[1] - widget.upper_left_tile_pos[1]
        x = (tile_x - widget.upper_left_tile_pos[0]) / tiles_wide * widget.width
        y = (tile_y - widget.upper_left_tile_pos[1]) / tiles_high * widget.height
        return x, y

    def _canvas_to_latlon(self, x: float, y: float) -> Tuple[float, float]:
        widget = self.map_widget
        tiles_wide = widget.lower_right_tile_pos[0] - widget.upper_left_tile_pos[0]
        tiles_high = widget.lower_right_tile_pos[1] - widget.upper_left_tile_pos[1]
        tile_x = widget.upper_left_tile_pos[0] + x / widget.width * tiles_wide
        tile_y = widget.upper_left_tile_pos[1] + y / widget.height * tiles_high
        return osm_to_decimal(tile_x, tile_y, round(widget.zoom))

    # ------------------------------------------------------------------#
    # Mouse handling
    # ------------------------------------------------------------------#
    def _on_press(self, event: tk.Event):
        if self.drag is not None and self.drag.press(event.x, event.y):
            return "break"
        return None

    def _on_drag_motion(self, event: tk.Event):
        if self.drag is not None and self.drag.move(event.x, event.y):
            return "break"
        return None

    def _on_release(self, event: tk.Event):
        if self.drag is not None and self.drag.release(event.x, event.y):
            return "break"
        return None

    def _on_hover(self, event: tk.Event) -> None:
        if self.drag is None or self.document is None:
            return
        soldier_id = self.drag.hit_test(event.x, event.y)
        soldier = self.document.find_soldier(soldier_id) if soldier_id is not None else None
        if soldier is None:
            self.details_var.set("")
            return
        self.details_var.set(describe_soldier(soldier, self.document.latest_timestamp(soldier.id)))

    def _on_marker_dropped(self, soldier_id: int, lat: float, lon: float) -> None:
        document = self.document
        if document is None:
            return
        if not save_correction(document, soldier_id, lat, lon, messagebox.showerror):
            return
        self.status_var.set(f"Saved new position for soldier {soldier_id} to {document.path.name}")

    # ------------------------------------------------------------------#
    # File dialogs and helpers
    # ------------------------------------------------------------------#
    def _open_data_dialog(self) -> None:
        path = filedialog.askopenfilename(
            title="Open Soldier Data",
            filetypes=[("JSON", "*.json"), ("All files", "*.*")],
            initialdir=self.data_path.parent,
        )
        if path:
            self.data_path = Path(path)
            self.start()


def main(argv: Optional[List[str]] = None) -> None:
    settings = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    root = tk.Tk()
    app = SoldierTrackerApp(root, settings)
    root.after_idle(app.start)
    root.mainloop()


if __name__ == "__main__":
    main()
