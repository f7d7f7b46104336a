from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class TimerHandle:
    room_code: str
    label: str
    delay_sec: float
    callback: Callable[[], Any]
    repeat: bool = False
    cancelled: bool = False
    created_at: float = field(default_factory=time.time)

    def cancel(self) -> None:
        self.cancelled = True


class TurnScheduler:
    """Keeps at most one pending timer per room.

    ``start_task`` launches a background runner (``socketio.start_background_task``
    in the server); when it is ``None`` handles are only recorded and run through
    :meth:`fire`. A handle that was cancelled or superseded never calls back.
    """

    def __init__(
        self,
        start_task: Callable[..., Any] | None = None,
        sleep: Callable[[float], Any] = time.sleep,
    ) -> None:
        self._start_task = start_task
        self._sleep = sleep
        self._lock = Lock()
        self._timers: dict[str, TimerHandle] = {}

    def _arm(self, handle: TimerHandle) -> TimerHandle:
        with self._lock:
            previous = self._timers.pop(handle.room_code, None)
            if previous is not None:
                previous.cancel()
            self._timers[handle.room_code] = handle

        logger.info(
            "[timer-set] room=%s label=%s delay=%ss repeat=%s",
            handle.room_code, handle.label, handle.delay_sec, handle.repeat,
        )
        if self._start_task is not None:
            runner = self._run_repeating if handle.repeat else self._run_once
            self._start_task(runner, handle)
        return handle

    def schedule(self, room_code: str, delay_sec: float, callback: Callable[[], Any], label: str = "delay") -> TimerHandle:
        return self._arm(TimerHandle(room_code=room_code, label=label, delay_sec=delay_sec, callback=callback))

    def start_countdown(
        self,
        room_code: str,
        on_tick: Callable[[], bool],
        interval_sec: float = 1.0,
        label: str = "countdown",
    ) -> TimerHandle:
        """Call ``on_tick`` every ``interval_sec`` until it returns False."""
        return self._arm(
            TimerHandle(room_code=room_code, label=label, delay_sec=interval_sec, callback=on_tick, repeat=True)
        )

    def pending(self, room_code: str) -> TimerHandle | None:
        with self._lock:
            return self._timers.get(room_code)

    def cancel(self, room_code: str) -> bool:
        with self._lock:
            handle = self._timers.pop(room_code, None)
        if handle is None:
            return False
        handle.cancel()
        logger.info("[timer-cancel] room=%s label=%s", room_code, handle.label)
        return True

    def cancel_all(self) -> None:
        with self._lock:
            handles = list(self._timers.values())
            self._timers.clear()
        for handle in handles:
            handle.cancel()

    def _is_current(self, handle: TimerHandle) -> bool:
        with self._lock:
            return not handle.cancelled and self._timers.get(handle.room_code) is handle

    def _release(self, handle: TimerHandle) -> None:
        with self._lock:
            if self._timers.get(handle.room_code) is handle:
                del self._timers[handle.room_code]

    def _step(self, handle: TimerHandle) -> bool:
        """Run one firing of ``handle``. Returns True if a repeating handle should continue."""
        if not self._is_current(handle):
            logger.info("[timer-abort] room=%s label=%s stale", handle.room_code, handle.label)
            return False

        if not handle.repeat:
            self._release(handle)
            logger.info("[timer-fire] room=%s label=%s", handle.room_code, handle.label)
            handle.callback()
            return False

        keep_going = bool(handle.callback())
        if not keep_going:
            self._release(handle)
        return keep_going and not handle.cancelled

    def _run_once(self, handle: TimerHandle) -> None:
        self._sleep(handle.delay_sec)
        self._run_callback(handle)

    def _run_repeating(self, handle: TimerHandle) -> None:
        while True:
            self._sleep(handle.delay_sec)
            if not self._run_callback(handle):
                break

    def _run_callback(self, handle: TimerHandle) -> bool:
        try:
            return self._step(handle)
        except Exception:
            # A failing callback must not kill the worker silently.
            logger.exception("[timer-error] room=%s label=%s", handle.room_code, handle.label)
            self._release(handle)
            return False

    def fire(self, room_code: str) -> bool:
        """Run the pending timer of a room now (one tick for countdowns)."""
        handle = self.pending(room_code)
        if handle is None:
            return False
        self._step(handle)
        return True
