"""Fixed-capacity click history.

A thin ring buffer over :class:`collections.deque`: appending past capacity
silently drops the oldest entry, so the stored history never grows beyond
the configured bound however many redirects a link receives.
"""

from collections import deque
from collections.abc import Iterable, Iterator
from typing import Generic, TypeVar

__all__ = ["ClickHistory", "DEFAULT_HISTORY_CAPACITY"]

DEFAULT_HISTORY_CAPACITY = 100

T = TypeVar("T")


class ClickHistory(Generic[T]):
    def __init__(self, entries: Iterable[T] = (), capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        # Seeding through maxlen keeps only the newest ``capacity`` entries.
        self._entries: deque[T] = deque(entries, maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def append(self, entry: T) -> None:
        self._entries.append(entry)

    def to_list(self) -> list[T]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return iter(self._entries)
