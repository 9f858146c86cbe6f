"""Load, save and replay steps that end in a single user-facing notice."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from soldiers.model import DocumentError, SoldierDocument

logger = logging.getLogger(__name__)

# notify(title, message): shows one notice to the user.
Notify = Callable[[str, str], object]


def open_document(path: Path, notify: Notify) -> Optional[SoldierDocument]:
    """Load ``path``; on failure notify once and return ``None``."""
    path = Path(path)
    if not path.exists():
        _report(notify, "Missing Data", f"{path} not found.")
        return None
    try:
        return SoldierDocument.load(path)
    except (DocumentError, OSError) as exc:
        _report(notify, "Load Error", f"Error deserializing {path}: {exc}")
        return None


def save_correction(
    document: SoldierDocument,
    soldier_id: int,
    latitude: float,
    longitude: float,
    notify: Notify,
) -> bool:
    """
    Append a drag correction and rewrite the document.

    The correction stays in memory when the write fails; the caller gets
    ``False`` after one notice.
    """
    document.append_correction(soldier_id, latitude, longitude)
    try:
        document.save()
    except (OSError, ValueError) as exc:
        _report(notify, "Save Error", f"Unable to save {document.path}: {exc}")
        return False
    return True


def report_replay_error(exc: BaseException, notify: Notify) -> None:
    _report(notify, "Replay Error", f"Error: {exc}")


def _report(notify: Notify, title: str, message: str) -> None:
    logger.error(message)
    notify(title, message)
