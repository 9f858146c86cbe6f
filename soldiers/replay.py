"""Background replay of position updates, marshalled onto the Tk thread."""

from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import Future
from typing import Callable, Iterable, Optional

from soldiers.model import PositionUpdate

logger = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 2.0


class UiDispatcher:
    """
    Runs callables on the thread that owns ``root``.

    Tk widgets may only be touched from the thread running ``mainloop``.
    Calls from that thread execute immediately; calls from any other thread
    are queued, drained by an ``after`` poll, and the caller blocks until the
    callable has run.
    """

    def __init__(self, root, poll_interval_ms: int = 50) -> None:
        self.root = root
        self.poll_interval_ms = poll_interval_ms
        self._ui_thread = threading.get_ident()
        self._pending: "queue.Queue[tuple]" = queue.Queue()
        self._poll_id = None

    @property
    def on_ui_thread(self) -> bool:
        return threading.get_ident() == self._ui_thread

    def start(self) -> None:
        if self._poll_id is None:
            self._poll_id = self.root.after(self.poll_interval_ms, self._poll)

    def stop(self) -> None:
        if self._poll_id is not None:
            self.root.after_cancel(self._poll_id)
            self._poll_id = None

    def invoke(self, fn: Callable, *args):
        if self.on_ui_thread:
            return fn(*args)
        future: Future = Future()
        self._pending.put((fn, args, future))
        return future.result()

    def drain(self) -> int:
        """Run every queued call; returns how many ran."""
        count = 0
        while True:
            try:
                fn, args, future = self._pending.get_nowait()
            except queue.Empty:
                return count
            count += 1
            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(fn(*args))
            except Exception as exc:
                future.set_exception(exc)

    def _poll(self) -> None:
        self.drain()
        self._poll_id = self.root.after(self.poll_interval_ms, self._poll)


class UpdateReplayer:
    """Feeds update records to ``apply`` one at a time with a fixed pause."""

    def __init__(
        self,
        updates: Iterable[PositionUpdate],
        apply: Callable[[PositionUpdate], object],
        dispatcher: UiDispatcher,
        delay: float = DEFAULT_DELAY_SECONDS,
        on_error: Optional[Callable[[BaseException], object]] = None,
        on_finished: Optional[Callable[[], object]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._source = updates
        self.apply = apply
        self.dispatcher = dispatcher
        self.delay = delay
        self.on_error = on_error
        self.on_finished = on_finished
        self._sleep = sleep
        self._thread: Optional[threading.Thread] = None
        self.applied = 0
        self.error: Optional[BaseException] = None

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Replayer already started")
        # Drag corrections appended while replaying are not replayed.
        updates = list(self._source)
        self._thread = threading.Thread(
            target=self.run, args=(updates,), name="update-replayer", daemon=True
        )
        self._thread.start()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def run(self, updates: Iterable[PositionUpdate]) -> None:
        updates = list(updates)
        logger.info("Replaying %d position updates", len(updates))
        try:
            for index, update in enumerate(updates):
                self.dispatcher.invoke(self.apply, update)
                self.applied += 1
                if index < len(updates) - 1:
                    self._sleep(self.delay)
        except Exception as exc:
            logger.exception("Replay stopped after %d updates", self.applied)
            self.error = exc
            if self.on_error is not None:
                self.dispatcher.invoke(self.on_error, exc)
            return

        logger.info("Replay finished after %d updates", self.applied)
        if self.on_finished is not None:
            self.dispatcher.invoke(self.on_finished)
