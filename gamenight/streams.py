from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence, cast

import redis


@dataclass(frozen=True, slots=True)
class AnswerStream:
    """Append-only answer log: one stream for everything, one per event."""

    prefix: str
    event_id: str | None = None

    @property
    def key(self) -> str:
        if self.event_id is None:
            return f"{self.prefix}:answers:log"
        return f"{self.prefix}:answers:event:{self.event_id}"


def publish_many(*, r: redis.Redis, entries: Sequence[tuple[str, Mapping[str, str]]]) -> list[str]:
    """Append entries in order. On a pipeline in MULTI mode the ids come back from `execute()`."""

    ids: list[str] = []
    for key, fields in entries:
        stream_id = r.xadd(key, {str(k): str(v) for k, v in fields.items()})
        ids.append(cast(str, stream_id))
    return ids


def read_stream(*, r: redis.Redis, stream: AnswerStream) -> list[dict[str, str]]:
    entries = r.xrange(stream.key)
    return [dict(fields) for _, fields in entries]


def stream_length(*, r: redis.Redis, stream: AnswerStream) -> int:
    return cast(int, r.xlen(stream.key))
