from __future__ import annotations

from datetime import timedelta

import fakeredis
import pytest
import redis
import redis.client

from gamenight.participant_store import ParticipantStore


def test_create_or_find_is_stable_per_key(store: ParticipantStore) -> None:
    a = store.create_or_find("client:a")
    again = store.create_or_find("client:a")
    b = store.create_or_find("client:b")

    assert a == again
    assert a != b
    assert store.exists(a)
    assert not store.exists("p_missing")


def test_cursor_defaults_to_zero_and_can_be_set(store: ParticipantStore) -> None:
    pid = store.create_or_find("client:a")
    assert store.get_cursor(pid) == 0

    store.set_cursor(pid, 3)
    assert store.get_cursor(pid) == 3

    with pytest.raises(ValueError):
        store.set_cursor(pid, -1)


def test_advance_cursor_is_compare_and_set(store: ParticipantStore) -> None:
    pid = store.create_or_find("client:a")

    assert store.advance_cursor(pid, expected=0) is True
    assert store.get_cursor(pid) == 1

    # Stale expectation: somebody else already moved it.
    assert store.advance_cursor(pid, expected=0) is False
    assert store.get_cursor(pid) == 1


def test_first_answer_wins(store: ParticipantStore) -> None:
    pid = store.create_or_find("client:a")

    assert store.has_answered(pid, "q1") is False
    assert store.record_answer(pid, "q1", "first") is True
    assert store.record_answer(pid, "q1", "second") is False
    assert store.has_answered(pid, "q1") is True

    answers = store.answers_for_event("q1")
    assert [a.value for a in answers] == ["first"]
    assert answers[0].participant_id == pid
    assert store.answer_count_for("q1") == 1


def test_answers_are_logged_per_event_and_globally(store: ParticipantStore) -> None:
    a = store.create_or_find("client:a")
    b = store.create_or_find("client:b")

    store.record_answer(a, "q1", "yes")
    store.record_answer(b, "q1", {"choice": "b"})
    store.record_answer(a, "q2", 7)

    assert store.answer_count_for("q1") == 2
    assert store.answer_count_for("q2") == 1
    assert store.answer_count_for("q3") == 0
    assert [x.value for x in store.answers_for_event("q1")] == ["yes", '{"choice":"b"}']
    assert [(x.event_id, x.value) for x in store.all_answers()] == [("q1", "yes"), ("q1", '{"choice":"b"}'), ("q2", "7")]


def test_list_participants_includes_cursor(store: ParticipantStore) -> None:
    a = store.create_or_find("client:a")
    store.set_cursor(a, 2)

    [record] = store.list_participants()
    assert record.participant_id == a
    assert record.participant_key == "client:a"
    assert record.cursor == 2
    assert record.last_seen >= record.first_seen


def test_active_participant_count(store: ParticipantStore) -> None:
    store.create_or_find("client:a")
    store.create_or_find("client:b")

    assert store.active_participant_count(within=timedelta(minutes=5)) == 2
    assert store.active_participant_count(within=timedelta(seconds=-60)) == 0


def test_clear_all_only_touches_own_prefix(r: fakeredis.FakeRedis, store: ParticipantStore) -> None:
    other = ParticipantStore(r=r, prefix="other")
    kept = other.create_or_find("client:z")

    pid = store.create_or_find("client:a")
    store.record_answer(pid, "q1", "x")
    store.set_cursor(pid, 1)

    assert store.clear_all() > 0
    assert store.list_participants() == []
    assert store.answer_count_for("q1") == 0
    assert store.get_cursor(pid) == 0
    assert other.exists(kept)


def test_failed_answer_write_leaves_nothing_behind(
    store: ParticipantStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    pid = store.create_or_find("client:a")

    def _connection_lost(self, raise_on_error: bool = True):
        raise redis.ConnectionError("connection lost")

    monkeypatch.setattr(redis.client.Pipeline, "execute", _connection_lost)
    with pytest.raises(redis.ConnectionError):
        store.record_answer(pid, "q1", "a")
    monkeypatch.undo()

    assert store.has_answered(pid, "q1") is False
    assert store.answer_count_for("q1") == 0
    assert store.all_answers() == []

    assert store.record_answer(pid, "q1", "a") is True
    assert store.answer_count_for("q1") == 1
