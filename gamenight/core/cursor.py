from __future__ import annotations

from collections.abc import Callable

from gamenight.core.events import NONE_VIEW, EventDefinition, EventView, to_view
from gamenight.core.timeline import Timeline


def first_blocking_event(
    *,
    cursor: int,
    has_answered: Callable[[str], bool],
    timeline: Timeline,
) -> EventDefinition | None:
    """Earliest mandatory event before `cursor` the participant has not answered.

    Events at or after the cursor never block: the participant hasn't reached them.
    """

    for event in timeline.all()[: max(cursor, 0)]:
        if event.mandatory and not has_answered(event.id):
            return event
    return None


def resolve(
    *,
    cursor: int,
    has_answered: Callable[[str], bool],
    timeline: Timeline,
) -> EventView:
    """The single event a participant should see right now.

    An unanswered mandatory checkpoint behind the cursor wins over the cursor
    position; only the earliest one is surfaced per call.
    """

    blocking = first_blocking_event(cursor=cursor, has_answered=has_answered, timeline=timeline)
    if blocking is not None:
        return to_view(blocking)

    event = timeline.at(cursor)
    if event is None:
        return NONE_VIEW
    return to_view(event)
