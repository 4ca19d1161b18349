"""Trigger detection over the live transcript.

The detector answers one question per card and pass: how many of this card's
hotlinks newly qualify right now? A hotlink qualifies when its normalized form
appears in the normalized transcript and the same word has not counted within
the per-word cooldown. Cooldowns live in a :class:`TriggerHistory` keyed by
the word itself, not by card; hotlinks are unique across the set so a word
belongs to at most one card at a time.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable, Iterable

_PUNCTUATION_RE = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()@?]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_word(word: str) -> str:
    """Lowercase ``word`` and strip the punctuation class."""
    return _PUNCTUATION_RE.sub("", word.lower()).strip()


def normalize_words(text: str) -> list[str]:
    """Lowercase, strip punctuation, collapse whitespace and split ``text``."""
    cleaned = _PUNCTUATION_RE.sub("", text.lower())
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return cleaned.split(" ") if cleaned else []


class TriggerHistory:
    """Map of normalized trigger word to the time it last counted."""

    __slots__ = ("_fired",)

    def __init__(self) -> None:
        self._fired: dict[str, float] = {}

    def last_fired(self, word: str) -> float | None:
        return self._fired.get(word)

    def mark(self, word: str, when: float) -> None:
        self._fired[word] = when

    def purge(self, now: float, max_age: float) -> int:
        """Drop entries older than ``max_age`` seconds; return how many went."""
        stale = [word for word, when in self._fired.items() if now - when > max_age]
        for word in stale:
            del self._fired[word]
        return len(stale)

    def clear(self) -> None:
        self._fired.clear()

    def __contains__(self, word: object) -> bool:
        return word in self._fired

    def __len__(self) -> int:
        return len(self._fired)


class TriggerDetector:
    """Count newly qualifying hotlink matches with a per-word cooldown.

    Parameters
    ----------
    history:
        Shared :class:`TriggerHistory`; stamped for every counted word.
    cooldown:
        Minimum seconds between two counts of the same word.
    clock:
        Time source used when callers do not pass ``now``.
    """

    def __init__(
        self,
        history: TriggerHistory | None = None,
        *,
        cooldown: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.history = history if history is not None else TriggerHistory()
        self.cooldown = cooldown
        self._clock = clock

    def count_matches(
        self,
        transcript: str,
        hotlinks: Iterable[str],
        now: float | None = None,
    ) -> int:
        """Return how many of ``hotlinks`` newly qualify in ``transcript``."""
        if now is None:
            now = self._clock()
        words = set(normalize_words(transcript))
        if not words:
            return 0

        count = 0
        for hotlink in hotlinks:
            trigger = normalize_word(hotlink)
            if not trigger or trigger not in words:
                continue
            last = self.history.last_fired(trigger)
            if last is not None and now - last < self.cooldown:
                continue
            self.history.mark(trigger, now)
            count += 1
        return count


__all__ = ["TriggerDetector", "TriggerHistory", "normalize_word", "normalize_words"]
