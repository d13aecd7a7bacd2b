"""Timers used to auto-advance matches.

``SocketIOTimer`` runs each callback in a Socket.IO background task, so it
works under threading, eventlet and gevent alike. ``VirtualTimer`` keeps a
virtual clock and only fires when told to; tests and the CLI simulator use it
to play matches deterministically.
"""
import heapq
import itertools
import threading
import time
from typing import Callable, List, Optional


class TimerHandle:
    """A scheduled callback. Fires at most once and never after ``cancel()``."""

    def __init__(self, delay: float, callback: Callable[[], None], due: float):
        self.delay = delay
        self.callback = callback
        self.due = due
        self.cancelled = False
        self.fired = False
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        with self._lock:
            self.cancelled = True

    def claim(self) -> bool:
        with self._lock:
            if self.cancelled or self.fired:
                return False
            self.fired = True
            return True

    def __repr__(self):
        state = 'cancelled' if self.cancelled else 'fired' if self.fired else 'pending'
        return f"<TimerHandle due={self.due:.3f} {state}>"


class SocketIOTimer:
    def __init__(self, socketio):
        self.socketio = socketio

    def now(self) -> float:
        return time.time()

    def after(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(delay, callback, self.now() + delay)
        self.socketio.start_background_task(self._worker, handle)
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()

    def _worker(self, handle: TimerHandle) -> None:
        self.socketio.sleep(handle.delay)
        if handle.claim():
            handle.callback()


class VirtualTimer:
    def __init__(self, start: float = 0.0):
        self.clock = start
        self._queue = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self.clock

    def after(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(delay, callback, self.clock + delay)
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle))
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()

    @property
    def pending(self) -> List[TimerHandle]:
        return [h for _, _, h in sorted(self._queue) if h.active]

    def run_next(self) -> bool:
        """Fire the earliest live callback, moving the clock to its due time."""
        while self._queue:
            due, _, handle = heapq.heappop(self._queue)
            if not handle.claim():
                continue
            self.clock = max(self.clock, due)
            handle.callback()
            return True
        return False

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing everything that falls due on the way."""
        target = self.clock + seconds
        fired = 0
        while True:
            while self._queue and not self._queue[0][2].active:
                heapq.heappop(self._queue)
            if not self._queue or self._queue[0][0] > target:
                break
            if self.run_next():
                fired += 1
        self.clock = max(self.clock, target)
        return fired

    def run_until_idle(self, max_steps: int = 10000) -> int:
        fired = 0
        while fired < max_steps and self.run_next():
            fired += 1
        return fired
