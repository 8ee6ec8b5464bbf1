"""Bounded, most-recent-first record of processed voice commands."""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterator, Optional, Tuple

from voicepos.router import CommandResult

HISTORY_CAPACITY = 10


class CommandHistory:
    def __init__(self, capacity: int = HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError("history capacity must be at least 1")
        self.capacity = capacity
        self._items: Deque[CommandResult] = deque(maxlen=capacity)

    def push(self, result: CommandResult) -> None:
        """Record ``result`` as the newest entry; the oldest falls off when full."""
        self._items.appendleft(result)

    def snapshot(self) -> Tuple[CommandResult, ...]:
        return tuple(self._items)

    @property
    def latest(self) -> Optional[CommandResult]:
        return self._items[0] if self._items else None

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[CommandResult]:
        return iter(self.snapshot())
