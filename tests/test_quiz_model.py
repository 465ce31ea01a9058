from readdash.models.quiz import Quiz


def _question(**extra):
    return dict({"type": "true-false-not-given", "text": "?", "correctAnswer": "true"}, **extra)


def test_missing_result_ids_filled_by_position():
    quiz = Quiz.model_validate({"title": "Old", "questions": [_question(), _question(), _question()]})
    assert [q.result_id for q in quiz.questions] == ["q-0", "q-1", "q-2"]


def test_only_missing_result_ids_are_filled():
    quiz = Quiz.model_validate({
        "title": "Mixed",
        "questions": [_question(resultId="c-first"), _question(), _question(resultId="")],
    })
    assert [q.result_id for q in quiz.questions] == ["c-first", "q-1", "q-2"]


def test_legacy_id_key_is_read_as_result_id():
    quiz = Quiz.model_validate({"title": "Legacy", "questions": [_question(id="q-7")]})
    assert quiz.questions[0].result_id == "q-7"
    assert quiz.to_document()["questions"][0]["resultId"] == "q-7"
