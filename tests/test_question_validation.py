import pytest
from pydantic import ValidationError

from readdash.models.components import (
    Blank,
    FillBlanksComponent,
    MultipleChoiceComponent,
    Option,
    PassageComponent,
    SentenceCompletionComponent,
    TrueFalseNotGivenComponent,
    parse_component,
    parse_components,
)
from readdash.services.quiz_builder import validate_components


def _with_passage(*questions):
    return [PassageComponent(id="p", order=0, content="text")] + [
        q.model_copy(update={"order": i + 1}) for i, q in enumerate(questions)
    ]


def test_parse_component_uses_type_tag():
    component = parse_component({
        "id": "x", "type": "yes-no-not-given", "order": 0,
        "question": "Q?", "correctAnswer": "not-given",
    })
    assert component.correct_answer == "not-given"
    assert component.is_question


def test_unknown_type_is_rejected():
    with pytest.raises(ValidationError):
        parse_component({"id": "x", "type": "video", "order": 0})


def test_true_false_answer_space_is_fixed():
    with pytest.raises(ValidationError):
        parse_component({"id": "x", "type": "true-false-not-given", "order": 0, "correctAnswer": "maybe"})


def test_word_limit_must_be_positive():
    with pytest.raises(ValidationError):
        SentenceCompletionComponent(question="___", word_limit=0)


def test_parse_components_keeps_camel_case_fields():
    components = parse_components([
        {"id": "m", "type": "multiple-choice", "order": 0, "question": "?",
         "options": [{"id": "a", "text": "A"}, {"id": "b", "text": "B"}], "correctOption": "b"},
    ])
    assert components[0].correct_option == "b"
    assert components[0].to_document()["correctOption"] == "b"


def test_correct_option_must_exist():
    mc = MultipleChoiceComponent(
        id="m", question="?", options=[Option(id="a"), Option(id="b")], correct_option="z"
    )
    report = validate_components(_with_passage(mc))
    assert any("no valid correct option" in e for e in report.errors)


def test_duplicate_option_ids_rejected():
    mc = MultipleChoiceComponent(
        id="m", question="?", options=[Option(id="a"), Option(id="a")], correct_option="a"
    )
    report = validate_components(_with_passage(mc))
    assert any("duplicate option ids" in e for e in report.errors)


def test_blank_count_must_match_markers():
    fb = FillBlanksComponent(id="f", question="___ and ___", blanks=[Blank(answer="x")])
    report = validate_components(_with_passage(fb))
    assert any("2 blank markers but 1 answers" in e for e in report.errors)


def test_valid_document_has_no_errors():
    report = validate_components(_with_passage(
        TrueFalseNotGivenComponent(id="t", question="?", correct_answer="true")
    ))
    assert report.ok
    assert report.warnings == []


def test_answers_over_word_limit_warn():
    sc = SentenceCompletionComponent(
        id="s", question="___", answers=[{"text": "far too many words"}], word_limit=2
    )
    report = validate_components(_with_passage(sc))
    assert report.ok
    assert any("longer than 2 words" in w for w in report.warnings)
