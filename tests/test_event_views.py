from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from gamenight.core.events import (
    NONE_VIEW,
    CustomComponentEvent,
    MultipleChoiceEvent,
    NoneEvent,
    QuestionEvent,
    TextEvent,
    to_view,
)

T = datetime(2025, 10, 31, 19, 0, tzinfo=UTC)

KIND_FIELDS = {
    "text": ("content",),
    "question": ("content", "placeholder"),
    "multiple_choice": ("content", "options"),
    "custom_component": ("component_name", "props"),
    "none": ("content",),
}


@pytest.mark.parametrize(
    "event",
    [
        TextEvent(id="t", trigger_at=T, content="Welcome"),
        QuestionEvent(id="q", trigger_at=T, content="Name?", placeholder="Type here", mandatory=True),
        MultipleChoiceEvent(
            id="mc",
            trigger_at=T,
            content="Pick",
            options=[{"id": "a", "text": "A", "value": "a"}],
            auto_hide_after=timedelta(milliseconds=1500),
        ),
        CustomComponentEvent(id="cc", trigger_at=T, component_name="CountdownTimer", props={"seconds": 30}),
        NoneEvent(id="n", trigger_at=T),
    ],
)
def test_view_round_trip_preserves_kind_fields(event) -> None:
    back = to_view(event).to_definition(trigger_at=T)

    assert back.id == event.id
    assert back.kind == event.kind
    assert back.mandatory == event.mandatory
    assert back.auto_hide_after == event.auto_hide_after
    for name in KIND_FIELDS[event.kind]:
        assert getattr(back, name) == getattr(event, name)


def test_view_exposes_participant_fields_only() -> None:
    event = QuestionEvent(
        id="q",
        trigger_at=T,
        content="Name?",
        auto_hide_after=timedelta(seconds=5),
        validation={"type": "exact", "correct_answers": ["jack"]},
    )
    data = to_view(event).model_dump()

    assert data["kind"] == "question"
    assert data["event_id"] == "q"
    assert data["auto_hide_after_ms"] == 5000
    assert "validation" not in data
    assert "branches" not in data
    assert "trigger_at" not in data


def test_none_view_is_empty() -> None:
    assert NONE_VIEW.kind == "none"
    assert NONE_VIEW.event_id == ""
    assert NONE_VIEW.content == ""
    assert NONE_VIEW.is_none
