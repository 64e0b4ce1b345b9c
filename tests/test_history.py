"""Bounded click history tests."""

import pytest

from shortener.history import ClickHistory


def test_history_keeps_everything_below_capacity() -> None:
    history = ClickHistory(capacity=5)
    for i in range(3):
        history.append(i)
    assert history.to_list() == [0, 1, 2]


def test_history_drops_oldest_past_capacity() -> None:
    history = ClickHistory(capacity=100)
    for i in range(150):
        history.append(i)
    assert len(history) == 100
    assert history.to_list() == list(range(50, 150))


def test_history_seeded_beyond_capacity_keeps_newest() -> None:
    history = ClickHistory(range(10), capacity=4)
    assert history.to_list() == [6, 7, 8, 9]
    assert history.capacity == 4


def test_history_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError):
        ClickHistory(capacity=0)
