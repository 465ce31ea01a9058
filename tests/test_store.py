from datetime import datetime, timezone

import pytest
from sqlalchemy import event
from sqlalchemy.exc import StatementError

from readdash.db.store import SERVER_TIMESTAMP, sort_key


def test_set_get_and_merge(store):
    store.set("things", "t1", {"name": "one", "count": 1})
    store.set("things", "t1", {"count": 2}, merge=True)
    assert store.get("things", "t1") == {"id": "t1", "name": "one", "count": 2}

    store.set("things", "t1", {"count": 3})
    assert store.get("things", "t1") == {"id": "t1", "count": 3}


def test_get_missing_returns_none(store):
    assert store.get("things", "missing") is None


def test_add_generates_ids(store):
    first = store.add("things", {"n": 1})
    second = store.add("things", {"n": 2})
    assert first != second
    assert store.get("things", second)["n"] == 2


def test_query_filters_order_and_limit(store):
    for n in (3, 1, 2):
        store.add("things", {"n": n, "kind": "odd" if n % 2 else "even"})
    store.add("other", {"n": 99})

    assert [d["n"] for d in store.query("things", order_by="n")] == [1, 2, 3]
    assert [d["n"] for d in store.query("things", order_by="-n", limit=2)] == [3, 2]
    assert [d["n"] for d in store.query("things", [("kind", "==", "odd")], order_by="n")] == [1, 3]
    assert [d["n"] for d in store.query("things", [("n", "in", [2, 3])], order_by="n")] == [2, 3]
    assert [d["n"] for d in store.query("things", [("n", ">", 1), ("n", "<=", 3)], order_by="n")] == [2, 3]


def test_unsupported_operator(store):
    store.add("things", {"n": 1})
    with pytest.raises(ValueError):
        store.query("things", [("n", "~", 1)])


def test_server_timestamp_and_datetime_range(store):
    store.set("events", "e1", {"at": SERVER_TIMESTAMP})
    stored = store.get("events", "e1")["at"]
    assert datetime.fromisoformat(stored).tzinfo is not None

    past = datetime(2000, 1, 1, tzinfo=timezone.utc)
    assert len(store.query("events", [("at", ">=", past)])) == 1
    assert store.query("events", [("at", "<", past)]) == []


def test_batch_is_deferred_until_commit(store):
    store.set("things", "keep", {"n": 1})
    batch = store.batch()
    batch.set("things", "a", {"n": 2}).delete("things", "keep")
    assert len(batch) == 2
    assert store.get("things", "a") is None
    batch.commit()
    assert store.get("things", "a") == {"id": "a", "n": 2}
    assert store.get("things", "keep") is None


def test_batch_delete(store):
    ids = [store.add("things", {"n": n}) for n in range(3)]
    store.batch_delete("things", ids[:2])
    assert [d["id"] for d in store.query("things")] == ids[2:]


def test_batch_failure_rolls_back_earlier_writes(store):
    store.set("things", "keep", {"n": 1})
    batch = store.batch()
    batch.set("things", "a", {"n": 2}).delete("things", "keep").set("things", "bad", {"n": object()})
    with pytest.raises((TypeError, StatementError)):
        batch.commit()

    assert store.get("things", "a") is None
    assert store.get("things", "bad") is None
    assert store.get("things", "keep") == {"id": "keep", "n": 1}
    store.set("things", "after", {"n": 3})
    assert store.get("things", "after") == {"id": "after", "n": 3}


def test_order_by_mixed_types_does_not_raise(store):
    for value in (2, "b", True, 1, "a", {"x": 1}):
        store.add("things", {"v": value})
    store.add("things", {"other": 1})

    ordered = [d.get("v") for d in store.query("things", order_by="v")]
    assert ordered == [True, 1, 2, "a", "b", {"x": 1}, None]
    assert [d.get("v") for d in store.query("things", order_by="-v")][:2] == [{"x": 1}, "b"]


def test_sort_key_ranks_types():
    assert sort_key(False) < sort_key(0) < sort_key("") < sort_key([])


def test_string_filters_are_exact(store):
    store.set("things", "num", {"n": 1})
    store.set("things", "text", {"n": "1"})
    store.set("things", "flag", {"n": True})

    assert [d["id"] for d in store.query("things", [("n", "==", "1")])] == ["text"]
    assert [d["id"] for d in store.query("things", [("n", "in", ["1", "2"])])] == ["text"]
    assert [d["id"] for d in store.query("things", [("id", "in", ["num", "flag"])], order_by="id")] == ["flag", "num"]


def test_limit_applies_after_filters(store):
    for n in range(6):
        store.set("things", f"t{n}", {"n": n, "owner": "u1" if n % 2 else "u2"})
    assert [d["n"] for d in store.query("things", [("owner", "==", "u1")], limit=2)] == [1, 3]
    assert [d["n"] for d in store.query("things", [("owner", "==", "u1"), ("n", ">", 1)], limit=1)] == [3]


def test_string_equality_is_filtered_in_sql(store):
    store.add("things", {"owner": "u1"})
    statements = []

    def capture(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    engine = store.db.get_bind()
    event.listen(engine, "before_cursor_execute", capture)
    try:
        assert len(store.query("things", [("owner", "==", "u1")])) == 1
    finally:
        event.remove(engine, "before_cursor_execute", capture)
    assert any("JSON_EXTRACT" in s.upper() for s in statements)
