from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import redis

from gamenight.api.models import AnswerRecord, ParticipantRecord
from gamenight.core.evaluator import answer_text
from gamenight.streams import AnswerStream, publish_many, read_stream, stream_length


def _now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class ParticipantStore:
    """Redis-backed participants, cursors and answers.

    Keys (all under `prefix`):
      - `participant_keys` hash: client key -> participant id
      - `participants` zset: participant id scored by last-seen epoch seconds
      - `participant:{id}` hash: client key, first/last seen
      - `cursor:{id}` string: timeline index, default 0
      - `answers:{id}` hash: event id -> answered_at; HSETNX makes the first answer win
      - `answers:log` / `answers:event:{event_id}` streams: append-only answer records
    """

    r: redis.Redis
    prefix: str = "gamenight"

    def _key(self, *parts: str) -> str:
        return ":".join((self.prefix, *parts))

    # ---- participants ----------------------------------------------------

    def create_or_find(self, client_key: str) -> str:
        candidate = f"p_{uuid4().hex[:16]}"
        if self.r.hsetnx(self._key("participant_keys"), client_key, candidate):
            now = _now()
            self.r.hset(
                self._key("participant", candidate),
                mapping={
                    "participant_key": client_key,
                    "first_seen": now.isoformat(),
                    "last_seen": now.isoformat(),
                },
            )
            self.r.zadd(self._key("participants"), {candidate: now.timestamp()})
            return candidate

        participant_id = str(self.r.hget(self._key("participant_keys"), client_key))
        self.touch(participant_id)
        return participant_id

    def touch(self, participant_id: str) -> None:
        now = _now()
        self.r.hset(self._key("participant", participant_id), "last_seen", now.isoformat())
        self.r.zadd(self._key("participants"), {participant_id: now.timestamp()})

    def exists(self, participant_id: str) -> bool:
        return bool(self.r.exists(self._key("participant", participant_id)))

    def list_participants(self) -> list[ParticipantRecord]:
        ids = self.r.zrange(self._key("participants"), 0, -1, desc=True)
        out: list[ParticipantRecord] = []
        for pid in ids:
            raw = self.r.hgetall(self._key("participant", pid))
            if not raw:
                continue
            out.append(ParticipantRecord(participant_id=pid, cursor=self.get_cursor(pid), **raw))
        return out

    def active_participant_count(self, *, within: timedelta) -> int:
        cutoff = (_now() - within).timestamp()
        return int(self.r.zcount(self._key("participants"), cutoff, "+inf"))

    # ---- cursors ---------------------------------------------------------

    def get_cursor(self, participant_id: str) -> int:
        raw = self.r.get(self._key("cursor", participant_id))
        return int(raw) if raw is not None else 0

    def set_cursor(self, participant_id: str, value: int) -> None:
        if value < 0:
            raise ValueError("cursor must be >= 0")
        self.r.set(self._key("cursor", participant_id), value)

    def advance_cursor(self, participant_id: str, *, expected: int) -> bool:
        """Compare-and-set `expected` -> `expected + 1`. False if the cursor moved meanwhile."""

        key = self._key("cursor", participant_id)
        with self.r.pipeline() as pipe:
            try:
                pipe.watch(key)
                raw = pipe.get(key)
                current = int(raw) if raw is not None else 0
                if current != expected:
                    pipe.unwatch()
                    return False
                pipe.multi()
                pipe.set(key, current + 1)
                pipe.execute()
            except redis.WatchError:
                return False
        return True

    # ---- answers ---------------------------------------------------------

    def has_answered(self, participant_id: str, event_id: str) -> bool:
        return bool(self.r.hexists(self._key("answers", participant_id), event_id))

    def record_answer(self, participant_id: str, event_id: str, value: Any) -> bool:
        """Append an answer. Returns False (and writes nothing) if one already exists.

        The answered marker and both stream entries go out in one MULTI, so a failed
        write leaves the participant free to answer again.
        """

        key = self._key("answers", participant_id)
        text = answer_text(value)
        while True:
            with self.r.pipeline() as pipe:
                try:
                    pipe.watch(key)
                    if pipe.hexists(key, event_id):
                        pipe.unwatch()
                        return False

                    answered_at = _now().isoformat()
                    fields = {
                        "participant_id": participant_id,
                        "event_id": event_id,
                        "value": text,
                        "answered_at": answered_at,
                    }
                    pipe.multi()
                    pipe.hset(key, event_id, answered_at)
                    publish_many(
                        r=pipe,
                        entries=[
                            (AnswerStream(prefix=self.prefix).key, fields),
                            (AnswerStream(prefix=self.prefix, event_id=event_id).key, fields),
                        ],
                    )
                    pipe.execute()
                    return True
                except redis.WatchError:
                    # Another answer from this participant landed first; check again.
                    continue

    def answer_count_for(self, event_id: str) -> int:
        return stream_length(r=self.r, stream=AnswerStream(prefix=self.prefix, event_id=event_id))

    def answers_for_event(self, event_id: str) -> list[AnswerRecord]:
        rows = read_stream(r=self.r, stream=AnswerStream(prefix=self.prefix, event_id=event_id))
        return [AnswerRecord.model_validate(row) for row in rows]

    def all_answers(self) -> list[AnswerRecord]:
        rows = read_stream(r=self.r, stream=AnswerStream(prefix=self.prefix))
        return [AnswerRecord.model_validate(row) for row in rows]

    # ---- admin -----------------------------------------------------------

    def clear_all(self) -> int:
        keys = list(self.r.scan_iter(match=f"{self.prefix}:*"))
        if keys:
            self.r.delete(*keys)
        return len(keys)
