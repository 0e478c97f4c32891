from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from gamenight.core.events import EventView


class AnswerRequest(BaseModel):
    event_id: str = Field(..., min_length=1)
    # Free-form: text for questions, option value (or any JSON) for other kinds.
    answer: Any = Field(...)


class AnswerResponse(BaseModel):
    success: bool
    duplicate: bool
    # Only meaningful when the event has a validation rule.
    correct: bool | None = None


class AnswerRecord(BaseModel):
    participant_id: str
    event_id: str
    value: str
    answered_at: datetime


class ParticipantRecord(BaseModel):
    participant_id: str
    participant_key: str
    first_seen: datetime
    last_seen: datetime
    cursor: int = 0


class GameStatusResponse(BaseModel):
    game_active: bool
    game_start_time: datetime | None
    server_time: datetime
    participant_count: int


class GameStartResponse(BaseModel):
    success: bool
    start_time: datetime


class BroadcastResponse(BaseModel):
    # False until the first timer fires; a hidden event comes back as a "none" view.
    fired: bool
    event: EventView | None = None


class CursorUpdateRequest(BaseModel):
    event_index: int


class CursorUpdateResponse(BaseModel):
    success: bool
    participant_id: str
    new_cursor: int


class SessionsResponse(BaseModel):
    total: int
    active: int
    sessions: list[ParticipantRecord]


class EventAnswersResponse(BaseModel):
    event_id: str
    total_answers: int
    unique_sessions: int
    answers: list[AnswerRecord]


class ExportGameState(BaseModel):
    game_start_time: datetime | None
    current_event: EventView | None


class ExportResponse(BaseModel):
    sessions: list[ParticipantRecord]
    answers: list[AnswerRecord]
    game_state: ExportGameState | None
    exported_at: datetime
