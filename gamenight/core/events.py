from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

EventKind = Literal[
    "text",
    "question",
    "multiple_choice",
    "custom_component",
    "none",
]

# Only these kinds carry an answer that a validation rule can judge.
VALIDATED_KINDS: frozenset[str] = frozenset({"question", "multiple_choice"})


class ExactMatch(BaseModel):
    """Case-insensitive, whitespace-trimmed comparison against a list of answers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["exact"] = "exact"
    correct_answers: list[str] = Field(..., min_length=1)


class RegexMatch(BaseModel):
    """Pattern searched in the normalized (trimmed, lowercased) answer."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["regex"] = "regex"
    pattern: str

    @field_validator("pattern")
    @classmethod
    def _pattern_compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid regex pattern {value!r}: {e}") from e
        return value


class CustomValidation(BaseModel):
    """Named validator hook. Not implemented yet: always accepted."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["custom"] = "custom"
    name: str = Field(..., min_length=1)


ValidationRule = Annotated[
    Union[ExactMatch, RegexMatch, CustomValidation],
    Field(discriminator="type"),
]


class ChoiceOption(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    text: str
    value: str


class _EventBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1)
    trigger_at: datetime
    auto_hide_after: timedelta | None = None
    mandatory: bool = False
    validation: ValidationRule | None = None

    # Either an unconditional list, or lists keyed by trigger key.
    branches: list[EventDefinition] | dict[str, list[EventDefinition]] | None = None

    @field_validator("trigger_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_validator("auto_hide_after")
    @classmethod
    def _positive_duration(cls, value: timedelta | None) -> timedelta | None:
        if value is not None and value <= timedelta(0):
            raise ValueError("auto_hide_after must be a positive duration")
        return value


class TextEvent(_EventBase):
    kind: Literal["text"] = "text"
    content: str


class QuestionEvent(_EventBase):
    kind: Literal["question"] = "question"
    content: str
    placeholder: str | None = None


class MultipleChoiceEvent(_EventBase):
    kind: Literal["multiple_choice"] = "multiple_choice"
    content: str
    options: list[ChoiceOption] = Field(..., min_length=1)


class CustomComponentEvent(_EventBase):
    kind: Literal["custom_component"] = "custom_component"
    component_name: str = Field(..., min_length=1)
    props: dict[str, Any] = Field(default_factory=dict)


class NoneEvent(_EventBase):
    """Nothing showing. Also used as the sentinel left behind by auto-hide."""

    kind: Literal["none"] = "none"
    content: str = ""


EventDefinition = Annotated[
    Union[TextEvent, QuestionEvent, MultipleChoiceEvent, CustomComponentEvent, NoneEvent],
    Field(discriminator="kind"),
]

for _model in (_EventBase, TextEvent, QuestionEvent, MultipleChoiceEvent, CustomComponentEvent, NoneEvent):
    _model.model_rebuild()

EVENT_TYPES = (TextEvent, QuestionEvent, MultipleChoiceEvent, CustomComponentEvent, NoneEvent)

EVENT_ADAPTER: TypeAdapter[EventDefinition] = TypeAdapter(EventDefinition)


def parse_event(raw: Any) -> EventDefinition:
    return EVENT_ADAPTER.validate_python(raw)


class EventView(BaseModel):
    """What a participant is shown for one event.

    Server-only fields (validation rules, branches, trigger time) never leave the core.
    `has_answered` / `answer_count` are filled in by the transport layer.
    """

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    event_id: str
    content: str = ""
    placeholder: str | None = None
    options: list[ChoiceOption] | None = None
    component_name: str | None = None
    props: dict[str, Any] | None = None
    auto_hide_after_ms: int | None = None
    mandatory: bool = False
    has_answered: bool | None = None
    answer_count: int | None = None

    @property
    def is_none(self) -> bool:
        return self.kind == "none"

    def to_definition(self, *, trigger_at: datetime) -> EventDefinition:
        raw: dict[str, Any] = {
            "kind": self.kind,
            "id": self.event_id,
            "trigger_at": trigger_at,
            "mandatory": self.mandatory,
        }
        if self.auto_hide_after_ms is not None:
            raw["auto_hide_after"] = timedelta(milliseconds=self.auto_hide_after_ms)
        if self.kind == "custom_component":
            raw["component_name"] = self.component_name
            raw["props"] = self.props or {}
        else:
            raw["content"] = self.content
        if self.kind == "question":
            raw["placeholder"] = self.placeholder
        if self.kind == "multiple_choice":
            raw["options"] = self.options
        return parse_event(raw)


NONE_VIEW = EventView(kind="none", event_id="", content="")


def to_view(event: EventDefinition) -> EventView:
    hide_ms = None
    if event.auto_hide_after is not None:
        hide_ms = event.auto_hide_after // timedelta(milliseconds=1)

    return EventView(
        kind=event.kind,
        event_id=event.id,
        content=getattr(event, "content", ""),
        placeholder=getattr(event, "placeholder", None),
        options=getattr(event, "options", None),
        component_name=getattr(event, "component_name", None),
        props=getattr(event, "props", None),
        auto_hide_after_ms=hide_ms,
        mandatory=event.mandatory,
    )
