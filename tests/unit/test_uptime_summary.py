from types import SimpleNamespace

import pytest

from lanmon.services.uptime import summarize_uptime


def _entries(*statuses):
    return [SimpleNamespace(status=s) for s in statuses]


def test_mixed_history():
    summary = summarize_uptime(_entries("up", "up", "down", "up"))
    assert summary.percent_up == 75.0
    assert [(s.status, s.count) for s in summary.segments] == [("up", 2), ("down", 1), ("up", 1)]


def test_all_up():
    summary = summarize_uptime(_entries("up", "up", "up"))
    assert summary.percent_up == 100.0
    assert [(s.status, s.count) for s in summary.segments] == [("up", 3)]


def test_empty_history_has_no_percentage():
    summary = summarize_uptime([])
    assert summary.percent_up is None
    assert summary.segments == []
    assert summary.model_dump(by_alias=True) == {"percentUp": None, "segments": []}


def test_rounds_to_one_decimal():
    summary = summarize_uptime(_entries("up", "down", "down"))
    assert summary.percent_up == 33.3


def test_warning_and_unknown_count_as_not_up():
    summary = summarize_uptime(_entries("warning", "unknown", "up", "up"))
    assert summary.percent_up == 50.0
    assert [s.status for s in summary.segments] == ["warning", "unknown", "up"]


@pytest.mark.parametrize(
    "up, total, expected",
    [(1, 16, 6.3), (5, 16, 31.3), (3, 8, 37.5), (1, 3, 33.3), (2, 3, 66.7)],
)
def test_ties_round_half_up(up, total, expected):
    summary = summarize_uptime(_entries(*(["up"] * up + ["down"] * (total - up))))
    assert summary.percent_up == expected
