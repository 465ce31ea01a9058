import pytest

from readdash.core.exceptions import NotFoundError, QuizValidationError
from readdash.models.components import (
    COMPONENT_TYPES,
    Blank,
    FillBlanksComponent,
    MultipleChoiceComponent,
    PassageComponent,
    TableComponent,
)
from readdash.services.quiz_builder import (
    MISSING_PASSAGE,
    MISSING_QUESTION,
    QuizDocument,
    default_component,
    deserialize_from_storage,
    flatten_table,
    restore_table,
    serialize_for_storage,
    sync_blanks,
)


def test_add_component_appends_with_next_order():
    document = QuizDocument()
    title = document.add_component("title")
    passage = document.add_component("passage")
    assert (title.order, passage.order) == (0, 1)
    assert passage.content == "Enter the reading passage text here..."


def test_default_multiple_choice_has_four_lettered_options_first_correct():
    component = default_component("multiple-choice", 0)
    assert [o.text for o in component.options] == ["Option A", "Option B", "Option C", "Option D"]
    assert component.correct_option == component.options[0].id
    assert len({o.id for o in component.options}) == 4


@pytest.mark.parametrize("component_type", COMPONENT_TYPES)
def test_every_type_has_a_default(component_type):
    assert default_component(component_type, 3).type == component_type


def test_unknown_component_type_is_rejected():
    with pytest.raises(ValueError):
        QuizDocument().add_component("video")


def test_update_keeps_id_type_and_order():
    document = QuizDocument()
    document.add_component("title")
    passage = document.add_component("passage")
    document.update_component(passage.id, {"content": "New text", "order": 7, "type": "title"})
    updated = document.get_component(passage.id)
    assert updated.content == "New text"
    assert updated.order == 1
    assert updated.type == "passage"


def test_update_accepts_snake_case_keys():
    document = QuizDocument()
    mc = document.add_component("multiple-choice")
    second = mc.options[1].id
    document.update_component(mc.id, {"correct_option": second})
    assert document.get_component(mc.id).correct_option == second


def test_update_missing_component_raises_not_found():
    with pytest.raises(NotFoundError):
        QuizDocument().update_component("nope", {"content": "x"})


def test_delete_renumbers_contiguously():
    document = QuizDocument()
    first = document.add_component("title")
    middle = document.add_component("passage")
    last = document.add_component("heading")
    document.delete_component(middle.id)
    assert [c.id for c in document.components] == [first.id, last.id]
    assert [c.order for c in document.components] == [0, 1]


def test_move_swaps_with_neighbour_and_is_noop_at_boundaries():
    document = QuizDocument()
    a = document.add_component("title")
    b = document.add_component("passage")
    c = document.add_component("heading")

    document.move_component(b.id, "up")
    assert [x.id for x in document.components] == [b.id, a.id, c.id]
    assert [x.order for x in document.components] == [0, 1, 2]

    document.move_component(b.id, "up")
    document.move_component(c.id, "down")
    assert [x.id for x in document.components] == [b.id, a.id, c.id]


def test_sync_blanks_appends_and_truncates_without_reordering():
    blanks = [Blank(id="b1", answer="one"), Blank(id="b2", answer="two")]
    grown = sync_blanks(blanks, "___ ___ ___")
    assert [b.id for b in grown[:2]] == ["b1", "b2"]
    assert grown[2].answer == ""

    shrunk = sync_blanks(blanks, "only ___ here")
    assert [(b.id, b.answer) for b in shrunk] == [("b1", "one")]


def test_editing_fill_blanks_prompt_grows_blanks():
    document = QuizDocument([
        FillBlanksComponent(
            id="fb", order=0,
            question="The capital of France is ___.",
            blanks=[Blank(id="b1", answer="Paris")],
        )
    ])
    document.update_component("fb", {"question": "The capital of France is ___ and of Spain is ___."})
    blanks = document.get_component("fb").blanks
    assert len(blanks) == 2
    assert (blanks[0].id, blanks[0].answer) == ("b1", "Paris")
    assert blanks[1].answer == ""


def test_explicit_blanks_in_patch_are_kept():
    document = QuizDocument([
        FillBlanksComponent(id="fb", order=0, question="___", blanks=[Blank(id="b1", answer="x")])
    ])
    document.update_component("fb", {"question": "___ ___", "blanks": [{"id": "z", "answer": "only"}]})
    assert [b.id for b in document.get_component("fb").blanks] == ["z"]


def test_table_round_trip():
    rows = [["a", "b", "c"], ["d", "e", "f"]]
    table = TableComponent(id="t", order=0, headers=["x", "y", "z"], rows=rows)
    flat = flatten_table(table)
    assert "rows" not in flat
    assert flat["flatRows"]["1_2"] == "f"
    assert (flat["rowCount"], flat["colCount"]) == (2, 3)
    assert restore_table(flat)["rows"] == rows


def test_table_restore_fills_missing_cells():
    restored = restore_table({
        "type": "table", "headers": ["a", "b"],
        "flatRows": {"0_0": "x"}, "rowCount": 1, "colCount": 2,
    })
    assert restored["rows"] == [["x", ""]]


def test_serialize_projections(sample_components):
    payload = serialize_for_storage(sample_components)
    assert payload.passage.startswith("Paris is the capital")
    assert payload.question_count == 4
    assert [q.result_id for q in payload.questions] == ["q-0", "q-1", "q-2", "q-3"]
    assert [q.component_id for q in payload.questions] == ["c-mc", "c-fill", "c-tfng", "c-sc"]
    assert payload.questions[0].correct_answer == "a"
    stored_table = payload.components[2]
    assert stored_table["type"] == "table" and "flatRows" in stored_table


def test_serialize_uses_first_passage(sample_components):
    extra = PassageComponent(id="p2", order=len(sample_components), content="Second")
    payload = serialize_for_storage(sample_components + [extra])
    assert payload.passage.startswith("Paris")


def test_result_ids_stable_across_reserialization(sample_components):
    first = serialize_for_storage(sample_components)
    reloaded = deserialize_from_storage(first.components)
    second = serialize_for_storage(reloaded)
    assert [q.result_id for q in first.questions] == [q.result_id for q in second.questions]
    assert reloaded[2].rows == [["Paris", "France"], ["Madrid", "Spain"]]


def test_component_key_scheme_uses_component_ids(sample_components):
    payload = serialize_for_storage(sample_components, key_scheme="component")
    assert [q.result_id for q in payload.questions] == ["c-mc", "c-fill", "c-tfng", "c-sc"]


def test_missing_passage_and_questions_fail(sample_components):
    with pytest.raises(QuizValidationError) as exc:
        serialize_for_storage([sample_components[0]])
    assert MISSING_PASSAGE in exc.value.errors
    assert MISSING_QUESTION in exc.value.errors


def test_bad_multiple_choice_fails(sample_components):
    broken = sample_components[:3] + [
        MultipleChoiceComponent(id="m", order=3, question="?", options=[], correct_option="a")
    ]
    with pytest.raises(QuizValidationError) as exc:
        serialize_for_storage(broken)
    assert any("at least two options" in e for e in exc.value.errors)


def test_non_contiguous_order_fails(sample_components):
    sample_components[-1] = sample_components[-1].model_copy(update={"order": 42})
    with pytest.raises(QuizValidationError):
        serialize_for_storage(sample_components)


def test_empty_sentence_completion_answers_only_warn(sample_components):
    sc = sample_components[-1].model_copy(update={"answers": []})
    payload = serialize_for_storage(sample_components[:-1] + [sc])
    assert payload.question_count == 4
    assert len(payload.warnings) == 1


def test_stored_questions_are_keyed_by_result_id(sample_components):
    stored = serialize_for_storage(sample_components).to_document()["questions"]
    assert [q["resultId"] for q in stored] == ["q-0", "q-1", "q-2", "q-3"]
    assert all("id" not in q for q in stored)
    assert stored[0]["componentId"] == "c-mc"
