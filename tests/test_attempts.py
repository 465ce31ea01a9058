import pytest

from readdash.db.collections import RESULTS, USERS
from readdash.services.attempts import AttemptService


def _failing_user_write(store):
    original = store._write

    def write(collection, doc_id, doc, merge, now):
        if collection == USERS:
            raise RuntimeError("write rejected")
        return original(collection, doc_id, doc, merge, now)

    return write


def test_failed_reset_keeps_results_and_points(store, monkeypatch):
    store.set(USERS, "u1", {"uid": "u1", "knowledgePoints": 40})
    for score in (50, 80):
        store.add(RESULTS, {"userId": "u1", "quizId": "quiz", "score": score, "pointsEarned": 20})
    monkeypatch.setattr(store, "_write", _failing_user_write(store))

    with pytest.raises(RuntimeError):
        AttemptService(store).reset("u1", zero_points=True)

    assert len(store.query(RESULTS, [("userId", "==", "u1")])) == 2
    assert store.get(USERS, "u1")["knowledgePoints"] == 40


def test_reset_only_touches_own_results(store):
    store.set(USERS, "u1", {"uid": "u1", "knowledgePoints": 40})
    store.add(RESULTS, {"userId": "u1", "quizId": "quiz", "score": 50})
    store.add(RESULTS, {"userId": "u2", "quizId": "quiz", "score": 70})

    assert AttemptService(store).reset("u1", zero_points=True) == 1
    assert [d["userId"] for d in store.query(RESULTS)] == ["u2"]
    assert store.get(USERS, "u1")["knowledgePoints"] == 0
