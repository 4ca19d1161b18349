"""Update orchestrator: when to call the generation service, and what to keep.

Milestone
---------
The orchestrator is the only component that suspends. Detection, the state
machine and the card set manager run synchronously inside
:meth:`UpdateOrchestrator.on_transcript_update`; remote work happens in
:meth:`initialize`, :meth:`request_update` and :meth:`regenerate`.

Flow Overview
-------------
1. ``start()`` records the session start and arms the warm-up timer, which
   calls ``initialize()`` once enough transcript has accumulated.
2. Every transcript change runs the trigger detector over unlocked cards.
   When any count grows, the debounce timer (→ ``request_update()``) and the
   silence timer (→ ``regenerate()``) are rearmed.
3. ``request_update()`` drops the request (no queueing) when disabled,
   uninitialized, in flight, without new triggers, on a short transcript or
   inside the cooldown window. Otherwise it snapshots the set and sends it.
4. Success merges content into the pre-call set (or applies split placement);
   failure restores the pre-call set verbatim and reports the failure.

Concurrency
-----------
Single-threaded asyncio. At most one remote call is outstanding, guarded by
``in_flight``; the flag is released ``release_delay`` seconds after the call
settles. All timers are cancelled by ``set_enabled(False)`` and ``close()``;
a closed engine drops every later event and request. A call cancelled
mid-flight leaves the live set alone and keeps the older snapshot.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from talkpoints.core.contracts.card import Card
from talkpoints.core.contracts.generation import (
    ContextPack,
    FailureKind,
    GenerationFailure,
    GenerationRequest,
    GenerationService,
    SplitDirective,
    UpdatePayload,
)
from talkpoints.core.result import Result, err, ok
from talkpoints.core.settings import EngineConfig, get_logger

from . import state_machine
from .card_set import CardSetManager, fresh_card, replaced_slots
from .history import SnapshotStack
from .normalizer import normalize_init, normalize_update
from .timers import PeriodicTimer, Timer
from .triggers import TriggerDetector, TriggerHistory

logger = get_logger("talkpoints.engine")

P = TypeVar("P")
CardsResult = Result[list[Card], GenerationFailure]
ErrorHandler = Callable[[GenerationFailure], None]


def _dropped(kind: FailureKind, message: str) -> CardsResult:
    logger.debug("Generation request dropped (%s): %s", kind.value, message)
    return err(GenerationFailure(kind=kind, message=message))


def _carry_over(new: Card, old: Card | None) -> Card:
    """Keep the engine-owned bookkeeping of ``old`` on generated ``new``."""
    if old is None:
        return fresh_card(new)
    return new.model_copy(
        update={
            "trigger_count": old.trigger_count,
            "state": old.state,
            "last_trigger_time": old.last_trigger_time,
            "locked": old.locked,
        }
    )


class UpdateOrchestrator:
    """Drive one talking-points session.

    Parameters
    ----------
    service:
        The content generator (see :class:`GenerationService`).
    context_pack:
        Goals and audience for this session.
    config:
        Timers, cooldowns and thresholds. Defaults to :class:`EngineConfig`.
    clock:
        Time source for trigger stamps, warm-up and cooldown bookkeeping.
    on_error:
        Called with every user-visible failure (transport or contract).
    """

    def __init__(
        self,
        service: GenerationService,
        context_pack: ContextPack,
        config: EngineConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        on_error: ErrorHandler | None = None,
    ) -> None:
        self.config = config if config is not None else EngineConfig()
        self.context_pack = context_pack
        self.opening = ""
        self.initialized = False
        self.in_flight = False
        self.enabled = self.config.enabled

        self._service = service
        self._clock = clock
        self._on_error = on_error

        self.history = TriggerHistory()
        self.detector = TriggerDetector(
            self.history, cooldown=self.config.trigger_cooldown, clock=clock
        )
        self.manager = CardSetManager(split_threshold=self.config.split_threshold)
        self.snapshots = SnapshotStack()

        self._session_started_at: float | None = None
        self._last_call_at: float | None = None
        self._transcript = ""
        self._last_evaluated: str | None = None
        self._new_triggers = False
        self._release_handle: asyncio.TimerHandle | None = None
        self._closed = False

        self._warmup = Timer(self.config.warmup_delay, self.initialize, name="warmup")
        self._debounce = Timer(self.config.debounce_delay, self.request_update, name="debounce")
        self._silence = Timer(self.config.silence_timeout, self.regenerate, name="silence")
        self._cleanup = PeriodicTimer(
            self.config.history_cleanup_interval, self.purge_history, name="history-cleanup"
        )

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def cards(self) -> list[Card]:
        return self.manager.cards

    @property
    def transcript(self) -> str:
        return self._transcript

    def transcript_tail(self) -> str:
        return self._transcript[-self.config.transcript_tail_chars :]

    def cooldown_remaining(self) -> float:
        if self._last_call_at is None:
            return 0.0
        elapsed = self._clock() - self._last_call_at
        return max(0.0, self.config.update_cooldown - elapsed)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        """Begin the session: arm warm-up and history cleanup.

        Must be called from inside the running event loop.
        """
        if self._closed:
            raise RuntimeError("Cannot start a closed talking-points session.")
        self._session_started_at = self._clock()
        self._cleanup.start()
        if self.enabled and not self.initialized:
            self._warmup.arm()
        logger.info("Talking-points session started (warm-up %.1fs)", self.config.warmup_delay)

    def set_enabled(self, enabled: bool) -> None:
        """Turn the engine on or off.

        Turning off cancels pending timers; turning back on rearms warm-up
        (before initialization) or the silence timer (after it). A closed
        engine stays off.
        """
        if self._closed:
            logger.debug("Ignoring set_enabled(%s) on a closed session", enabled)
            return
        self.enabled = enabled
        if not enabled:
            self._cancel_activity_timers()
            return
        if self._session_started_at is None:
            return
        if self.initialized:
            self._silence.arm()
        else:
            self._warmup.arm()

    def close(self) -> None:
        """Tear down: cancel every timer so nothing fires after disposal.

        The engine is disabled for good; later transcript updates and remote
        requests are dropped.
        """
        self._closed = True
        self.enabled = False
        self._cancel_activity_timers()
        self._cleanup.stop()
        if self._release_handle is not None:
            self._release_handle.cancel()
            self._release_handle = None
        logger.info("Talking-points session closed")

    def _cancel_activity_timers(self) -> None:
        self._warmup.cancel()
        self._debounce.cancel()
        self._silence.cancel()

    def purge_history(self) -> int:
        """Drop trigger-history entries older than the configured TTL."""
        return self.history.purge(self._clock(), self.config.history_ttl)

    # ------------------------------------------------------------------ #
    # Local, synchronous path
    # ------------------------------------------------------------------ #

    def on_transcript_update(self, transcript: str) -> int:
        """Host event handler for every transcript change.

        Returns the number of cards whose trigger count grew in this pass.
        """
        self._transcript = transcript
        if not self.enabled or not self.initialized or self.in_flight:
            return 0
        if self.manager.is_empty() or transcript == self._last_evaluated:
            return 0
        self._last_evaluated = transcript

        now = self._clock()
        threshold = self.config.split_threshold
        grown = 0
        crossed: list[int] = []
        for idx, card in enumerate(self.manager):
            if card.locked:
                continue
            matches = self.detector.count_matches(transcript, card.hotlinks, now)
            if not matches:
                continue
            updated = state_machine.register_matches(card, matches, now, split_threshold=threshold)
            self.manager[idx] = updated
            if state_machine.crossed_split_threshold(card, updated, split_threshold=threshold):
                crossed.append(idx)
            grown += 1

        if crossed:
            self.manager.note_pass(crossed)
        if grown:
            self._new_triggers = True
            self._silence.arm()
            self._debounce.arm()
        return grown

    def lock(self, index: int) -> None:
        self.manager[index] = state_machine.set_locked(self.manager[index], True)

    def unlock(self, index: int) -> None:
        self.manager[index] = state_machine.set_locked(self.manager[index], False)

    def reset(self, index: int) -> None:
        """Manual reset of one card; wins over its lock."""
        self.manager[index] = state_machine.reset(self.manager[index])

    def undo(self) -> CardsResult:
        """Restore the set saved before the last remote call.

        The cooldown clock is left alone.
        """
        snapshot = self.snapshots.pop()
        if snapshot is None:
            return _dropped(FailureKind.EMPTY_HISTORY, "No previous card set to restore.")
        self.manager.replace_all(snapshot, keep_signals=False)
        logger.info("Card set rolled back to the previous snapshot")
        return ok(self.cards)

    # ------------------------------------------------------------------ #
    # Remote path
    # ------------------------------------------------------------------ #

    async def initialize(self) -> CardsResult:
        """Fetch the opening statement and the first four cards.

        A no-op returning the live set once initialization has succeeded.
        """
        if not self.enabled:
            return _dropped(FailureKind.DISABLED, "Engine is disabled.")
        if self.initialized:
            return ok(self.cards)
        if self._session_started_at is None:
            return _dropped(FailureKind.NOT_READY, "Session has not started.")
        if self._clock() - self._session_started_at < self.config.warmup_delay:
            return _dropped(FailureKind.NOT_READY, "Still inside the warm-up window.")
        if self.in_flight:
            return _dropped(FailureKind.IN_FLIGHT, "A generation call is in flight.")

        request = GenerationRequest(
            action="init",
            context_pack=self.context_pack,
            transcript=self.transcript_tail(),
        )
        result = await self._send(request, normalize_init)
        if result.is_err():
            failure = result.unwrap_err()
            self._report(failure)
            if self.enabled:
                self._warmup.arm()
            return err(failure)

        payload = result.unwrap()
        self.opening = payload.opening
        self.manager.replace_all([fresh_card(card) for card in payload.cards], keep_signals=False)
        self.initialized = True
        if self.enabled:
            self._silence.arm()
        logger.info("Initialized %d talking-point cards", len(self.manager))
        return ok(self.cards)

    async def request_update(self) -> CardsResult:
        """Ask for new card content after trigger activity.

        Requests that arrive while a call is in flight or inside the cooldown
        are dropped; the next transcript change re-evaluates.
        """
        blocked = self._update_blocker()
        if blocked is not None:
            return _dropped(*blocked)

        pre_call = [card.model_copy(deep=True) for card in self.manager]
        split_source = self.manager.select_split_source()
        split = None
        if split_source is not None:
            split = SplitDirective(
                source=split_source + 1,
                replace=[slot + 1 for slot in replaced_slots(split_source)],
            )

        request = GenerationRequest(
            action="update",
            context_pack=self.context_pack,
            transcript=self.transcript_tail(),
            current_cards=pre_call,
            split=split,
        )
        displaced = self.snapshots.push(pre_call)
        self._last_call_at = self._clock()
        self._new_triggers = False

        try:
            result = await self._send(request, lambda raw: normalize_update(raw, pre_call))
        except asyncio.CancelledError:
            self._abandon(displaced)
            raise
        if result.is_err():
            return self._roll_back(result.unwrap_err(), displaced)

        payload = result.unwrap()
        if split_source is not None:
            self._merge_split(pre_call, payload, split_source)
            logger.info("Split card %d into slots %s", split_source + 1, split.replace if split else [])
        else:
            self._merge_update(pre_call, payload)
        return ok(self.cards)

    async def regenerate(self) -> CardsResult:
        """Topic-shift regeneration: replace the whole set.

        Seeded with the current goal and sub-goal rather than a first-time
        init; no cooldown applies, only the in-flight guard.
        """
        if not self.enabled:
            return _dropped(FailureKind.DISABLED, "Engine is disabled.")
        if not self.initialized:
            return _dropped(FailureKind.NOT_INITIALIZED, "Cards are not initialized yet.")
        if self.in_flight:
            self._silence.arm()
            return _dropped(FailureKind.IN_FLIGHT, "A generation call is in flight.")

        logger.info("No triggers for %.0fs; regenerating the card set", self.config.silence_timeout)
        pre_call = [card.model_copy(deep=True) for card in self.manager]
        request = GenerationRequest(
            action="init",
            context_pack=self.context_pack,
            transcript=self.transcript_tail(),
            regenerate=True,
        )
        displaced = self.snapshots.push(pre_call)

        try:
            result = await self._send(request, normalize_init)
        except asyncio.CancelledError:
            self._abandon(displaced)
            raise
        if result.is_err():
            rolled = self._roll_back(result.unwrap_err(), displaced)
            if self.enabled:
                self._silence.arm()
            return rolled

        payload = result.unwrap()
        if payload.opening:
            self.opening = payload.opening
        self.manager.replace_all([fresh_card(card) for card in payload.cards], keep_signals=False)
        self._new_triggers = False
        if self.enabled:
            self._silence.arm()
        return ok(self.cards)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _update_blocker(self) -> tuple[FailureKind, str] | None:
        if not self.enabled:
            return FailureKind.DISABLED, "Engine is disabled."
        if not self.initialized or self.manager.is_empty():
            return FailureKind.NOT_INITIALIZED, "Cards are not initialized yet."
        if self.in_flight:
            return FailureKind.IN_FLIGHT, "A generation call is in flight."
        if not self._new_triggers and self.manager.select_split_source() is None:
            return FailureKind.NO_NEW_TRIGGERS, "No card gained a trigger since the last call."
        if len(self._transcript.split()) < self.config.min_transcript_words:
            return FailureKind.TRANSCRIPT_TOO_SHORT, "Transcript is too short to update from."
        remaining = self.cooldown_remaining()
        if remaining > 0:
            return FailureKind.COOLDOWN, f"Cooldown active for another {remaining:.1f}s."
        return None

    async def _send(
        self,
        request: GenerationRequest,
        normalize: Callable[[Any], Result[P, GenerationFailure]],
    ) -> Result[P, GenerationFailure]:
        """Run one remote call under the in-flight guard and normalize it."""
        self.in_flight = True
        try:
            raw = await self._service.generate(request)
        except Exception as exc:
            return err(
                GenerationFailure(
                    kind=FailureKind.TRANSPORT,
                    message=f"Generation call failed: {exc}",
                )
            )
        finally:
            self._schedule_release()
        return normalize(raw)

    def _schedule_release(self) -> None:
        delay = self.config.release_delay
        if delay <= 0:
            self.in_flight = False
            return
        loop = asyncio.get_running_loop()
        self._release_handle = loop.call_later(delay, self._release)

    def _release(self) -> None:
        self._release_handle = None
        self.in_flight = False

    def _abandon(self, displaced: list[Card] | None) -> None:
        """A cancelled call never touched the live set; only the snapshot moves back."""
        self.snapshots.restore(displaced)
        logger.debug("Generation call cancelled; previous snapshot kept")

    def _roll_back(
        self,
        failure: GenerationFailure,
        displaced: list[Card] | None,
    ) -> CardsResult:
        """Restore the pre-call set verbatim and keep the older snapshot."""
        snapshot = self.snapshots.pop()
        if snapshot is not None:
            self.manager.replace_all(snapshot)
        self.snapshots.restore(displaced)
        self._report(failure)
        return err(failure)

    def _merge_update(self, pre_call: Sequence[Card], payload: UpdatePayload) -> None:
        cues = payload.visual_cues
        merged: list[Card] = []
        for idx, new in enumerate(payload.updated_cards):
            old = pre_call[idx] if idx < len(pre_call) else None
            card = _carry_over(new, old).model_copy(
                update={"priority": cues.priority, "growth_factor": cues.growth_factor}
            )
            merged.append(card)
        self.manager.replace_all(merged, pre_call)

    def _merge_split(
        self,
        pre_call: Sequence[Card],
        payload: UpdatePayload,
        source_index: int,
    ) -> None:
        cues = payload.visual_cues
        subtopics = [
            payload.updated_cards[slot].model_copy(
                update={"priority": cues.priority, "growth_factor": cues.growth_factor}
            )
            for slot in replaced_slots(source_index)
        ]
        self.manager.replace_all(pre_call)
        self.manager.apply_split(source_index, subtopics)

    def _report(self, failure: GenerationFailure) -> None:
        if not failure.user_visible:
            logger.debug("Generation skipped: %s", failure.message)
            return
        logger.warning("Generation failed (%s): %s", failure.kind.value, failure.message)
        if self._on_error is not None:
            self._on_error(failure)


__all__ = ["UpdateOrchestrator"]
