from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from gamenight.core.evaluator import CORRECT, evaluate
from gamenight.core.events import EventDefinition
from gamenight.core.scheduler import Scheduler

logger = logging.getLogger(__name__)


class InvalidSubmissionError(ValueError):
    pass


class EventNotFoundError(LookupError):
    def __init__(self, event_id: str) -> None:
        super().__init__(f"Event not found: {event_id}")
        self.event_id = event_id


class AnswerStore(Protocol):
    """The slice of the participant store the controller needs."""

    def get_cursor(self, participant_id: str) -> int: ...

    def advance_cursor(self, participant_id: str, *, expected: int) -> bool: ...

    def has_answered(self, participant_id: str, event_id: str) -> bool: ...

    def record_answer(self, participant_id: str, event_id: str, value: Any) -> bool: ...


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    accepted: bool
    was_duplicate: bool
    trigger_key: str | None = None
    # None when the event has no validation rule.
    correct: bool | None = None
    cursor_advanced: bool = False
    injected: tuple[EventDefinition, ...] = ()


def select_branches(event: EventDefinition, trigger_key: str) -> list[EventDefinition]:
    branches = event.branches
    if branches is None:
        return []
    if isinstance(branches, list):
        return list(branches)
    return list(branches.get(trigger_key, []))


class ProgressionController:
    """Entry point for answer submission.

    Evaluates, records, injects branch events and moves the participant's cursor on
    by one when they answered the event they were standing on. Mandatory catch-up
    answers (behind the cursor) leave the cursor alone.
    """

    def __init__(self, *, scheduler: Scheduler, store: AnswerStore) -> None:
        self._scheduler = scheduler
        self._store = store

    def submit_answer(self, participant_id: str, event_id: str, answer: Any) -> SubmissionResult:
        if not participant_id:
            raise InvalidSubmissionError("participant_id is required")
        if not event_id:
            raise InvalidSubmissionError("event_id is required")
        if answer is None:
            raise InvalidSubmissionError("answer is required")

        timeline = self._scheduler.timeline
        event = timeline.get(event_id)
        if event is None:
            raise EventNotFoundError(event_id)

        if self._store.has_answered(participant_id, event_id):
            return SubmissionResult(accepted=True, was_duplicate=True)

        # The store's write is the real guard: a concurrent submission may have won.
        if not self._store.record_answer(participant_id, event_id, answer):
            logger.info("Concurrent duplicate answer from %s for %s", participant_id, event_id)
            return SubmissionResult(accepted=True, was_duplicate=True)

        trigger_key = evaluate(answer, event)
        correct = None if event.validation is None else trigger_key == CORRECT
        children = select_branches(event, trigger_key)
        injected: list[EventDefinition] = []
        if children:
            logger.info("Answer to %s triggered %d events (key=%r)", event_id, len(children), trigger_key)
            injected = self._scheduler.inject_immediate(children, answer=answer)

        advanced = False
        position = timeline.position_of(event_id)
        cursor = self._store.get_cursor(participant_id)
        if position == cursor:
            advanced = self._store.advance_cursor(participant_id, expected=cursor)

        return SubmissionResult(
            accepted=True,
            was_duplicate=False,
            trigger_key=trigger_key,
            correct=correct,
            cursor_advanced=advanced,
            injected=tuple(injected),
        )
