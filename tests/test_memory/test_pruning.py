"""Tests for tom.memory.pruning."""

from __future__ import annotations

from datetime import timedelta

from tom.memory.pruning import prune_old_sessions


def _seed(store, make_session_log, make_session_model, now, count: int) -> None:
    # s0 is the oldest session.
    for i in range(count):
        sid = f"s{i}"
        store.write_session_log(make_session_log(session_id=sid, started_at=now + timedelta(hours=i)))
        store.write_session_model(make_session_model(session_id=sid))


def test_under_limit_is_noop(store, make_session_log, make_session_model, now) -> None:
    _seed(store, make_session_log, make_session_model, now, 3)

    result = prune_old_sessions(store, 5)

    assert result.pruned_session_ids == []
    assert result.sessions_before_prune == 3
    assert result.sessions_after_prune == 3
    assert result.index_rebuilt is False
    assert store.load_index() is None


def test_prunes_oldest_first(store, make_session_log, make_session_model, now) -> None:
    _seed(store, make_session_log, make_session_model, now, 5)

    result = prune_old_sessions(store, 2)

    assert result.pruned_session_ids == ["s0", "s1", "s2"]
    assert result.sessions_before_prune == 5
    assert result.sessions_after_prune == 2
    assert store.list_session_ids(1) == ["s3", "s4"]
    assert store.list_session_ids(2) == ["s3", "s4"]


def test_index_rebuilt_without_pruned(store, make_session_log, make_session_model, now) -> None:
    _seed(store, make_session_log, make_session_model, now, 3)

    result = prune_old_sessions(store, 1)

    assert result.index_rebuilt is True
    index = store.load_index()
    ids = {doc.id for doc in index.docs}
    assert ids == {"session:s2", "model:s2"}


def test_project_scope(store, make_session_log, now) -> None:
    for i in range(3):
        store.write_session_log(
            make_session_log(session_id=f"p{i}", started_at=now + timedelta(days=i)), "project"
        )

    result = prune_old_sessions(store, 2, scope="project")

    assert result.pruned_session_ids == ["p0"]
    assert store.list_session_ids(1, "project") == ["p1", "p2"]
