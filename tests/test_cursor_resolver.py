from __future__ import annotations

import itertools
from datetime import UTC, datetime

import pytest

from gamenight.core.cursor import first_blocking_event, resolve
from gamenight.core.events import QuestionEvent, TextEvent
from gamenight.core.timeline import Timeline

T = datetime(2025, 10, 31, 19, 0, tzinfo=UTC)


def _answered(*ids: str):
    done = set(ids)
    return lambda event_id: event_id in done


def _timeline(*mandatory_flags: bool) -> Timeline:
    return Timeline.load(
        [
            QuestionEvent(id=f"event_{i}", trigger_at=T, content=f"Event {i}", mandatory=flag)
            for i, flag in enumerate(mandatory_flags)
        ]
    )


@pytest.fixture()
def scenario_timeline() -> Timeline:
    return Timeline.load(
        [
            TextEvent(id="welcome", trigger_at=T, content="Welcome"),
            QuestionEvent(id="q1", trigger_at=T, content="Ready?", mandatory=True),
            TextEvent(id="after", trigger_at=T, content="Onwards"),
        ]
    )


def test_unanswered_mandatory_behind_cursor_wins(scenario_timeline: Timeline) -> None:
    view = resolve(cursor=2, has_answered=_answered("welcome"), timeline=scenario_timeline)
    assert view.event_id == "q1"
    assert view.mandatory is True


def test_answered_mandatory_releases_cursor_event(scenario_timeline: Timeline) -> None:
    view = resolve(cursor=2, has_answered=_answered("welcome", "q1"), timeline=scenario_timeline)
    assert view.event_id == "after"


def test_event_at_cursor_returned() -> None:
    timeline = _timeline(False, False, False)
    assert resolve(cursor=0, has_answered=_answered(), timeline=timeline).event_id == "event_0"
    assert resolve(cursor=1, has_answered=_answered(), timeline=timeline).content == "Event 1"


def test_cursor_past_end_is_none_view() -> None:
    view = resolve(cursor=5, has_answered=_answered(), timeline=_timeline(False, False))
    assert view.kind == "none"
    assert view.event_id == ""
    assert view.content == ""


def test_empty_timeline_is_none_view() -> None:
    assert resolve(cursor=0, has_answered=_answered(), timeline=Timeline.empty()).is_none


def test_earliest_unanswered_mandatory_only() -> None:
    timeline = _timeline(True, True, False)
    assert resolve(cursor=2, has_answered=_answered(), timeline=timeline).event_id == "event_0"
    assert resolve(cursor=2, has_answered=_answered("event_0"), timeline=timeline).event_id == "event_1"
    assert resolve(cursor=2, has_answered=_answered("event_0", "event_1"), timeline=timeline).event_id == "event_2"


def test_mandatory_at_or_after_cursor_never_blocks() -> None:
    timeline = _timeline(False, False, True, True)
    assert resolve(cursor=2, has_answered=_answered(), timeline=timeline).event_id == "event_2"
    assert first_blocking_event(cursor=2, has_answered=_answered(), timeline=timeline) is None


def test_mandatory_gate_holds_for_every_cursor_and_answer_set() -> None:
    flags = (False, True, False, True, False)
    timeline = _timeline(*flags)
    ids = [e.id for e in timeline]

    for cursor in range(len(ids) + 2):
        for n in range(len(ids) + 1):
            for answered in itertools.combinations(ids, n):
                view = resolve(cursor=cursor, has_answered=_answered(*answered), timeline=timeline)
                blocking = [
                    i for i in range(min(cursor, len(ids))) if flags[i] and ids[i] not in answered
                ]
                if blocking:
                    assert view.event_id == ids[blocking[0]]
                elif cursor < len(ids):
                    assert view.event_id == ids[cursor]
                else:
                    assert view.is_none
