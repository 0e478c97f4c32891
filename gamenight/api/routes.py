from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from gamenight.api.deps import get_participant_id, get_scheduler, get_store
from gamenight.api.models import (
    AnswerRequest,
    AnswerResponse,
    BroadcastResponse,
    CursorUpdateRequest,
    CursorUpdateResponse,
    EventAnswersResponse,
    ExportGameState,
    ExportResponse,
    GameStartResponse,
    GameStatusResponse,
    SessionsResponse,
)
from gamenight.config import get_active_window
from gamenight.core.cursor import resolve
from gamenight.core.events import EventView, to_view
from gamenight.core.progression import EventNotFoundError, InvalidSubmissionError, ProgressionController
from gamenight.core.scheduler import Scheduler
from gamenight.participant_store import ParticipantStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


# ---- participant polling / answers -----------------------------------------


@router.get("/api/current-event", response_model=EventView)
async def current_event_route(
    response: Response,
    participant_id: str = Depends(get_participant_id),
    store: ParticipantStore = Depends(get_store),
    scheduler: Scheduler = Depends(get_scheduler),
) -> EventView:
    response.headers["X-Participant-Id"] = participant_id

    view = resolve(
        cursor=store.get_cursor(participant_id),
        has_answered=lambda event_id: store.has_answered(participant_id, event_id),
        timeline=scheduler.timeline,
    )
    if view.is_none:
        return view

    return view.model_copy(
        update={
            "has_answered": store.has_answered(participant_id, view.event_id),
            "answer_count": store.answer_count_for(view.event_id),
        }
    )


@router.post("/api/answer", response_model=AnswerResponse)
async def answer_route(
    payload: AnswerRequest,
    response: Response,
    participant_id: str = Depends(get_participant_id),
    store: ParticipantStore = Depends(get_store),
    scheduler: Scheduler = Depends(get_scheduler),
) -> AnswerResponse:
    response.headers["X-Participant-Id"] = participant_id

    controller = ProgressionController(scheduler=scheduler, store=store)
    try:
        result = controller.submit_answer(participant_id, payload.event_id, payload.answer)
    except EventNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except InvalidSubmissionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    return AnswerResponse(success=result.accepted, duplicate=result.was_duplicate, correct=result.correct)


# ---- game status ------------------------------------------------------------


@router.get("/api/game/status", response_model=GameStatusResponse)
async def game_status_route(
    store: ParticipantStore = Depends(get_store),
    scheduler: Scheduler = Depends(get_scheduler),
) -> GameStatusResponse:
    return GameStatusResponse(
        game_active=scheduler.is_running,
        game_start_time=scheduler.game_start_time,
        server_time=scheduler.now(),
        participant_count=store.active_participant_count(within=get_active_window()),
    )


@router.get("/api/broadcast", response_model=BroadcastResponse)
async def broadcast_route(scheduler: Scheduler = Depends(get_scheduler)) -> BroadcastResponse:
    current = scheduler.get_current_broadcast_event()
    if current is None:
        return BroadcastResponse(fired=False)
    return BroadcastResponse(fired=True, event=to_view(current))


# ---- admin ------------------------------------------------------------------


@router.post("/api/admin/start", response_model=GameStartResponse)
async def start_game_route(scheduler: Scheduler = Depends(get_scheduler)) -> GameStartResponse:
    return GameStartResponse(success=True, start_time=scheduler.start_game())


@router.post("/api/admin/reset")
async def reset_game_route(
    store: ParticipantStore = Depends(get_store),
    scheduler: Scheduler = Depends(get_scheduler),
) -> dict[str, bool]:
    scheduler.reset()
    removed = store.clear_all()
    logger.info("Cleared %d store keys", removed)
    return {"success": True}


@router.get("/api/admin/sessions", response_model=SessionsResponse)
async def list_sessions_route(store: ParticipantStore = Depends(get_store)) -> SessionsResponse:
    sessions = store.list_participants()
    return SessionsResponse(
        total=len(sessions),
        active=store.active_participant_count(within=get_active_window()),
        sessions=sessions,
    )


@router.post("/api/admin/session/{participant_id}/cursor", response_model=CursorUpdateResponse)
async def set_cursor_route(
    participant_id: str,
    payload: CursorUpdateRequest,
    store: ParticipantStore = Depends(get_store),
    scheduler: Scheduler = Depends(get_scheduler),
) -> CursorUpdateResponse:
    total = len(scheduler.timeline)
    if payload.event_index < 0 or payload.event_index > total:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"event_index must be between 0 and {total}",
        )
    if not store.exists(participant_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Participant not found")

    store.set_cursor(participant_id, payload.event_index)
    return CursorUpdateResponse(success=True, participant_id=participant_id, new_cursor=payload.event_index)


@router.get("/api/admin/answers/{event_id}", response_model=EventAnswersResponse)
async def event_answers_route(event_id: str, store: ParticipantStore = Depends(get_store)) -> EventAnswersResponse:
    answers = store.answers_for_event(event_id)
    return EventAnswersResponse(
        event_id=event_id,
        total_answers=len(answers),
        unique_sessions=len({a.participant_id for a in answers}),
        answers=answers,
    )


@router.get("/api/admin/export", response_model=ExportResponse)
async def export_route(
    store: ParticipantStore = Depends(get_store),
    scheduler: Scheduler = Depends(get_scheduler),
) -> ExportResponse:
    game_state = None
    if scheduler.is_running:
        current = scheduler.get_current_broadcast_event()
        game_state = ExportGameState(
            game_start_time=scheduler.game_start_time,
            current_event=to_view(current) if current is not None else None,
        )

    return ExportResponse(
        sessions=store.list_participants(),
        answers=store.all_answers(),
        game_state=game_state,
        exported_at=scheduler.now(),
    )
