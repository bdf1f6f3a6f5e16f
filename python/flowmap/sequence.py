"""Sequence numbers stamping refresh cycles, used to reject stale results."""

from __future__ import annotations

from threading import Lock


class CycleSequence:
    """Issues increasing cycle numbers and tracks which one may publish.

    Only the most recently issued number is current. :meth:`invalidate`
    advances the counter without handing out a number, so every cycle in
    flight becomes stale at once.
    """

    __slots__ = ("_lock", "_latest")

    def __init__(self, initial: int = 0) -> None:
        self._lock = Lock()
        self._latest = int(initial)

    @property
    def latest(self) -> int:
        with self._lock:
            return self._latest

    def issue(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def invalidate(self) -> None:
        with self._lock:
            self._latest += 1

    def is_current(self, sequence: int) -> bool:
        with self._lock:
            return sequence == self._latest


__all__ = ["CycleSequence"]
