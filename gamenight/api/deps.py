from __future__ import annotations

from collections.abc import Generator

import redis
from fastapi import Depends, Header, Request

from gamenight.config import get_key_prefix
from gamenight.core.scheduler import Scheduler
from gamenight.infra.redis_client import create_redis
from gamenight.participant_store import ParticipantStore


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        try:
            client.close()
        except Exception:
            # Some redis client versions don't require explicit close.
            pass


def get_scheduler(request: Request) -> Scheduler:
    # One scheduler per process, built at startup and owned by the app.
    return request.app.state.scheduler


def get_store(r: redis.Redis = Depends(get_redis)) -> ParticipantStore:
    return ParticipantStore(r=r, prefix=get_key_prefix())


def get_participant_id(
    request: Request,
    store: ParticipantStore = Depends(get_store),
    x_client_id: str | None = Header(default=None),
) -> str:
    """Identify the caller: the client-generated id if sent, else host + user agent."""

    if x_client_id:
        key = f"client:{x_client_id}"
    else:
        host = request.client.host if request.client else "unknown"
        key = f"ua:{host}:{request.headers.get('user-agent', 'unknown')}"
    return store.create_or_find(key)
