from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable
from datetime import datetime
from functools import partial
from typing import Any

from gamenight.core.clock import Clock, LoopClock, TimerHandle
from gamenight.core.evaluator import answer_text
from gamenight.core.events import EventDefinition, NoneEvent
from gamenight.core.fsm import SchedulerFSM, SchedulerPhase
from gamenight.core.timeline import Timeline

logger = logging.getLogger(__name__)

ANSWER_PLACEHOLDER = "{answer}"


class SchedulerStateError(RuntimeError):
    pass


def substitute_answer(content: str, text: str) -> str:
    # Plain replace-all: the inserted text is never re-scanned.
    return content.replace(ANSWER_PLACEHOLDER, text)


class Scheduler:
    """Drives the global broadcast slot from the timeline's trigger times.

    Each definition gets a one-shot timer at `trigger_at`; when it fires it becomes the
    current broadcast event, and `auto_hide_after` arms a second timer that swaps in a
    `none` sentinel with the same id. Branch events injected from answers go through
    the same path with zero delay.

    Timers are tracked per event id so `reset()` can cancel every one of them.
    """

    def __init__(self, *, clock: Clock | None = None, timeline: Timeline | None = None) -> None:
        self._clock: Clock = clock or LoopClock()
        self._fsm = SchedulerFSM()
        self._timeline = timeline or Timeline.empty()
        self._game_start_time: datetime | None = None
        self._current: EventDefinition | None = None
        self._timers: dict[str, list[TimerHandle]] = defaultdict(list)

    # ---- state -----------------------------------------------------------

    @property
    def phase(self) -> SchedulerPhase:
        return self._fsm.phase

    @property
    def is_running(self) -> bool:
        return self._fsm.phase == SchedulerPhase.running

    @property
    def game_start_time(self) -> datetime | None:
        return self._game_start_time

    @property
    def timeline(self) -> Timeline:
        return self._timeline

    @property
    def armed_timer_count(self) -> int:
        return sum(len(handles) for handles in self._timers.values())

    def get_current_broadcast_event(self) -> EventDefinition | None:
        """`None` means nothing has fired yet; a `none`-kind event means it was hidden."""

        return self._current

    def now(self) -> datetime:
        return self._clock.now()

    # ---- lifecycle -------------------------------------------------------

    def load_events(self, timeline: Timeline) -> None:
        if self.is_running:
            raise SchedulerStateError("Cannot load events while the game is running; reset first")
        self._timeline = timeline
        logger.info("Loaded %d events", len(timeline))

    def start_game(self) -> datetime:
        if self.is_running and self._game_start_time is not None:
            logger.warning("Game already started at %s; ignoring start", self._game_start_time.isoformat())
            return self._game_start_time

        self._fsm.game_started()
        self._game_start_time = self._clock.now()
        logger.info("Game started at %s", self._game_start_time.isoformat())

        for event in self._timeline:
            self._schedule(event)
        return self._game_start_time

    def reset(self) -> None:
        cancelled = 0
        for handles in self._timers.values():
            for handle in handles:
                handle.cancel()
                cancelled += 1
        self._timers.clear()

        self._current = None
        self._game_start_time = None
        self._fsm.game_reset()
        logger.info("Scheduler reset (%d timers cancelled)", cancelled)

    # ---- injection -------------------------------------------------------

    def inject_immediate(self, definitions: Iterable[EventDefinition], *, answer: Any) -> list[EventDefinition]:
        """Fire branch events now, in the order given, with `{answer}` substituted."""

        text = answer_text(answer)
        now = self._clock.now()
        injected: list[EventDefinition] = []

        for definition in definitions:
            update: dict[str, Any] = {"trigger_at": now}
            content = getattr(definition, "content", None)
            if content is not None:
                update["content"] = substitute_answer(content, text)
            prepared = definition.model_copy(update=update)

            logger.info("Injecting branch event %s", prepared.id)
            self._arm(prepared.id, 0.0, partial(self._fire, prepared))
            injected.append(prepared)

        return injected

    # ---- timers ----------------------------------------------------------

    def _schedule(self, event: EventDefinition) -> None:
        delay = (event.trigger_at - self._clock.now()).total_seconds()
        if delay < 0:
            logger.warning("Event %s is in the past, skipping", event.id)
            return

        logger.debug("Scheduling event %s in %.1fs", event.id, delay)
        self._arm(event.id, delay, partial(self._fire, event))

    def _arm(self, event_id: str, delay: float, callback: Callable[[], None]) -> None:
        handle: TimerHandle | None = None

        def _run() -> None:
            self._disarm(event_id, handle)
            try:
                callback()
            except Exception:
                # Nobody is waiting on a timer; log and keep the loop alive.
                logger.exception("Timer callback for event %s failed", event_id)

        handle = self._clock.call_later(delay, _run)
        self._timers[event_id].append(handle)

    def _disarm(self, event_id: str, handle: TimerHandle | None) -> None:
        handles = self._timers.get(event_id)
        if not handles:
            return
        if handle in handles:
            handles.remove(handle)
        if not handles:
            self._timers.pop(event_id, None)

    def _fire(self, event: EventDefinition) -> None:
        logger.info("Triggering event %s", event.id)
        self._current = event

        if event.auto_hide_after is not None:
            self._arm(event.id, event.auto_hide_after.total_seconds(), partial(self._hide, event))

    def _hide(self, event: EventDefinition) -> None:
        # Only hide the firing that armed this timer: the slot may since hold another
        # event, or a later firing of the same branch child.
        if self._current is not event:
            return
        self._current = NoneEvent(id=event.id, trigger_at=self._clock.now())
