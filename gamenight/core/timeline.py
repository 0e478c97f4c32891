from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from gamenight.core.events import EVENT_TYPES, EventDefinition, parse_event


class TimelineValidationError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class Timeline:
    """Ordered event definitions, immutable once loaded.

    Array position is the canonical order for both cursor advancement and the
    mandatory-checkpoint scan.
    """

    events: tuple[EventDefinition, ...]
    _positions: dict[str, int]

    @staticmethod
    def empty() -> "Timeline":
        return Timeline(events=(), _positions={})

    @staticmethod
    def load(definitions: Iterable[EventDefinition | Mapping[str, Any]]) -> "Timeline":
        events: list[EventDefinition] = []
        positions: dict[str, int] = {}

        for idx, item in enumerate(definitions):
            event = _coerce(idx, item)
            if event.id in positions:
                raise TimelineValidationError(
                    f"Duplicate event id {event.id!r} at index {idx} (first seen at index {positions[event.id]})"
                )
            positions[event.id] = idx
            events.append(event)

        return Timeline(events=tuple(events), _positions=positions)

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[EventDefinition]:
        return iter(self.events)

    def all(self) -> tuple[EventDefinition, ...]:
        return self.events

    def get(self, event_id: str) -> EventDefinition | None:
        pos = self._positions.get(event_id)
        return None if pos is None else self.events[pos]

    def by_id(self, event_id: str) -> EventDefinition:
        event = self.get(event_id)
        if event is None:
            raise KeyError(event_id)
        return event

    def position_of(self, event_id: str) -> int | None:
        return self._positions.get(event_id)

    def at(self, position: int) -> EventDefinition | None:
        if 0 <= position < len(self.events):
            return self.events[position]
        return None


def _coerce(idx: int, item: EventDefinition | Mapping[str, Any]) -> EventDefinition:
    if isinstance(item, EVENT_TYPES):
        return item
    if not isinstance(item, Mapping):
        raise TimelineValidationError(
            f"Event at index {idx} must be a mapping or event definition, got {type(item).__name__}"
        )

    label = item.get("id") or f"index {idx}"
    if not item.get("kind"):
        raise TimelineValidationError(f"Event {label!r} is missing required field: kind")

    try:
        return parse_event(dict(item))
    except ValidationError as e:
        raise TimelineValidationError(f"Event {label!r} is invalid: {e}") from e
