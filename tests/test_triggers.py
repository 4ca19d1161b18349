"""Tests for transcript normalization and hotlink trigger detection."""

from __future__ import annotations

from talkpoints.engine.triggers import (
    TriggerDetector,
    TriggerHistory,
    normalize_word,
    normalize_words,
)


def test_normalize_words_strips_punctuation_and_case() -> None:
    assert normalize_words("Budget, COST! and value?") == ["budget", "cost", "and", "value"]
    assert normalize_words("   ") == []
    assert normalize_word("Co-Op") == "coop"


def test_counts_each_present_hotlink_once() -> None:
    detector = TriggerDetector(cooldown=1.0)
    count = detector.count_matches("Budget budget budget and value", ["budget", "cost", "value"], 10.0)
    assert count == 2


def test_detection_is_case_and_punctuation_insensitive() -> None:
    detector = TriggerDetector()
    assert detector.count_matches("What about PRICING?!", ["pricing"], 0.0) == 1


def test_substrings_do_not_match() -> None:
    detector = TriggerDetector()
    assert detector.count_matches("costly budgeting", ["cost", "budget"], 0.0) == 0


def test_same_word_within_cooldown_does_not_count_twice() -> None:
    detector = TriggerDetector(cooldown=1.0)
    transcript = "the budget is tight"

    assert detector.count_matches(transcript, ["budget"], 5.0) == 1
    assert detector.count_matches(transcript, ["budget"], 5.5) == 0
    assert detector.count_matches(transcript, ["budget"], 6.0) == 1


def test_history_is_shared_between_detector_calls() -> None:
    history = TriggerHistory()
    detector = TriggerDetector(history, cooldown=1.0)

    detector.count_matches("cost", ["cost"], 1.0)

    assert "cost" in history
    assert history.last_fired("cost") == 1.0


def test_history_purge_drops_stale_entries() -> None:
    history = TriggerHistory()
    history.mark("old", 0.0)
    history.mark("fresh", 25.0)

    removed = history.purge(now=40.0, max_age=30.0)

    assert removed == 1
    assert "old" not in history and "fresh" in history
    assert len(history) == 1


def test_uses_injected_clock_when_now_is_omitted() -> None:
    ticks = iter([100.0, 100.2])
    detector = TriggerDetector(cooldown=1.0, clock=lambda: next(ticks))

    assert detector.count_matches("value", ["value"]) == 1
    assert detector.count_matches("value", ["value"]) == 0
