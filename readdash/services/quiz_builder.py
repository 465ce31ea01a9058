"""Quiz authoring document builder.

Administrators author a quiz as an ordered list of components. This module
edits that list (`QuizDocument`) and converts it to and from the two
persisted projections: the flattened `components` list and the normalized
`questions` list that grading and review work from.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from readdash.core.exceptions import NotFoundError, QuizValidationError
from readdash.models.components import (
    COMPONENT_TYPES,
    FILL_BLANKS,
    MULTIPLE_CHOICE,
    PASSAGE,
    QUESTION_TYPES,
    SENTENCE_COMPLETION,
    TABLE,
    Blank,
    CompletionAnswer,
    Component,
    FillBlanksComponent,
    HeadingComponent,
    ImageComponent,
    MultipleChoiceComponent,
    Option,
    PassageComponent,
    SentenceCompletionComponent,
    SubheadingComponent,
    TableComponent,
    TitleComponent,
    TrueFalseNotGivenComponent,
    YesNoNotGivenComponent,
    parse_component,
)
from readdash.models.question import (
    FillBlanksQuestion,
    MultipleChoiceQuestion,
    Question,
    SentenceCompletionQuestion,
    TrueFalseNotGivenQuestion,
    YesNoNotGivenQuestion,
    result_id_for,
)
from readdash.utils.text import count_blank_markers, word_count

logger = logging.getLogger(__name__)

KEY_SCHEME_POSITION = "position"
KEY_SCHEME_COMPONENT = "component"

MISSING_PASSAGE = "Quiz must include at least one reading passage"
MISSING_QUESTION = "quiz must include at least one question"


def default_component(component_type: str, order: int) -> Component:
    """Build a new component of `component_type` with starter content."""
    if component_type == "title":
        return TitleComponent(order=order, content="Quiz Title")
    if component_type == "heading":
        return HeadingComponent(order=order, content="Section Heading")
    if component_type == "subheading":
        return SubheadingComponent(order=order, content="Subsection Heading")
    if component_type == PASSAGE:
        return PassageComponent(order=order, content="Enter the reading passage text here...")
    if component_type == "image":
        return ImageComponent(order=order, url="", alt="")
    if component_type == TABLE:
        return TableComponent(
            order=order,
            headers=["Header 1", "Header 2"],
            rows=[["Cell 1", "Cell 2"], ["Cell 3", "Cell 4"]],
        )
    if component_type == MULTIPLE_CHOICE:
        options = [Option(text=f"Option {letter}") for letter in "ABCD"]
        return MultipleChoiceComponent(
            order=order,
            question="Enter your question here?",
            options=options,
            # first option is correct by default
            correct_option=options[0].id,
        )
    if component_type == FILL_BLANKS:
        return FillBlanksComponent(
            order=order,
            question="The capital of France is ___.",
            blanks=[Blank(answer="Paris")],
        )
    if component_type == "true-false-not-given":
        return TrueFalseNotGivenComponent(
            order=order,
            question="According to the passage, Earth is the third planet from the Sun.",
            correct_answer="true",
        )
    if component_type == "yes-no-not-given":
        return YesNoNotGivenComponent(
            order=order,
            question="According to the passage, ...",
            correct_answer="yes",
        )
    if component_type == SENTENCE_COMPLETION:
        return SentenceCompletionComponent(
            order=order,
            question="Complete the following sentence using no more than the specified number of words.",
            answers=[CompletionAnswer(text="")],
            word_limit=2,
        )
    raise ValueError(f"Unknown component type: {component_type}")


def sync_blanks(blanks: List[Blank], question_text: str) -> List[Blank]:
    """Resize `blanks` to the number of `___` markers in `question_text`.

    Existing entries keep their position; missing ones are appended with an
    empty answer and surplus ones are trimmed from the end.
    """
    target = count_blank_markers(question_text)
    synced = list(blanks[:target])
    while len(synced) < target:
        synced.append(Blank(answer=""))
    return synced


def _patch_keys(patch: Dict[str, Any]) -> Dict[str, Any]:
    return {(to_camel(key) if "_" in key else key): value for key, value in patch.items()}


class QuizDocument:
    """In-progress list of authoring components.

    Usage:
        document = QuizDocument()
        passage = document.add_component("passage")
        document.update_component(passage.id, {"content": "..."})
        payload = document.serialize()
    """

    def __init__(self, components: Optional[List[Component]] = None):
        self._components: List[Component] = sorted(components or [], key=lambda c: c.order)

    @property
    def components(self) -> List[Component]:
        return list(self._components)

    def __len__(self) -> int:
        return len(self._components)

    def _index_of(self, component_id: str) -> int:
        for index, component in enumerate(self._components):
            if component.id == component_id:
                return index
        raise NotFoundError("Component", component_id)

    def _renumber(self) -> None:
        self._components = [
            c if c.order == index else c.model_copy(update={"order": index})
            for index, c in enumerate(self._components)
        ]

    def get_component(self, component_id: str) -> Component:
        return self._components[self._index_of(component_id)]

    def add_component(self, component_type: str) -> Component:
        component = default_component(component_type, order=len(self._components))
        self._components.append(component)
        return component

    def update_component(self, component_id: str, patch: Union[Dict[str, Any], BaseModel]) -> None:
        """Replace the component with `component_id`, keeping its id, type and order.

        Editing a fill-blanks prompt without supplying `blanks` resizes the
        blanks to match the new marker count.
        """
        index = self._index_of(component_id)
        current = self._components[index]
        if isinstance(patch, BaseModel):
            changes = patch.model_dump(by_alias=True)
        else:
            changes = _patch_keys(patch)

        merged = current.model_dump(by_alias=True)
        merged.update(changes)
        merged.update({"id": current.id, "order": current.order, "type": current.type})

        if current.type == FILL_BLANKS and "question" in changes and "blanks" not in changes:
            merged["blanks"] = [
                b.model_dump(by_alias=True) for b in sync_blanks(current.blanks, merged["question"])
            ]

        self._components[index] = parse_component(merged)

    def delete_component(self, component_id: str) -> None:
        index = self._index_of(component_id)
        del self._components[index]
        self._renumber()

    def move_component(self, component_id: str, direction: str) -> None:
        if direction not in ("up", "down"):
            raise ValueError(f"Unknown direction: {direction}")
        index = self._index_of(component_id)
        target = index - 1 if direction == "up" else index + 1
        if target < 0 or target >= len(self._components):
            return
        self._components[index], self._components[target] = (
            self._components[target],
            self._components[index],
        )
        self._renumber()

    def serialize(self, key_scheme: str = KEY_SCHEME_POSITION) -> "StoragePayload":
        return serialize_for_storage(self._components, key_scheme=key_scheme)


@dataclass
class ValidationReport:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class StoragePayload:
    """The persisted projections of an authored component list."""

    passage: str
    question_count: int
    components: List[Dict[str, Any]]
    questions: List[Question]
    warnings: List[str] = field(default_factory=list)

    def to_document(self) -> Dict[str, Any]:
        return {
            "passage": self.passage,
            "questionCount": self.question_count,
            "components": self.components,
            "questions": [q.to_document() for q in self.questions],
        }


def validate_components(components: List[Component]) -> ValidationReport:
    """Save-time checks for an authored component list."""
    report = ValidationReport()

    orders = sorted(c.order for c in components)
    if orders != list(range(len(components))):
        report.errors.append("Component order must be contiguous and unique, starting at 0")

    ids = [c.id for c in components]
    if len(set(ids)) != len(ids):
        report.errors.append("Component ids must be unique")

    if not any(c.type == PASSAGE for c in components):
        report.errors.append(MISSING_PASSAGE)

    questions = [c for c in sorted(components, key=lambda c: c.order) if c.type in QUESTION_TYPES]
    if not questions:
        report.errors.append(MISSING_QUESTION)

    for number, component in enumerate(questions, 1):
        label = f"Question {number} ({component.type})"
        if isinstance(component, MultipleChoiceComponent):
            option_ids = [o.id for o in component.options]
            if len(option_ids) < 2:
                report.errors.append(f"{label} needs at least two options")
            if len(set(option_ids)) != len(option_ids):
                report.errors.append(f"{label} has duplicate option ids")
            if component.correct_option not in option_ids:
                report.errors.append(f"{label} has no valid correct option")
        elif isinstance(component, FillBlanksComponent):
            markers = count_blank_markers(component.question)
            if markers != len(component.blanks):
                report.errors.append(
                    f"{label} has {markers} blank markers but {len(component.blanks)} answers"
                )
        elif isinstance(component, SentenceCompletionComponent):
            if not any(a.text.strip() for a in component.answers):
                report.warnings.append(f"{label} has no acceptable answers")
            elif any(word_count(a.text) > component.word_limit for a in component.answers):
                report.warnings.append(f"{label} has answers longer than {component.word_limit} words")

    return report


def flatten_table(component: TableComponent) -> Dict[str, Any]:
    """Storage form of a table: cells keyed by "<row>_<col>" instead of nested lists."""
    stored = component.model_dump(by_alias=True, exclude_none=True)
    rows = stored.pop("rows", [])
    flat_rows = {}
    for row_index, row in enumerate(rows):
        for col_index, cell in enumerate(row):
            flat_rows[f"{row_index}_{col_index}"] = cell
    stored["flatRows"] = flat_rows
    stored["rowCount"] = len(rows)
    stored["colCount"] = max((len(row) for row in rows), default=len(component.headers))
    return stored


def restore_table(stored: Dict[str, Any]) -> Dict[str, Any]:
    """Inverse of `flatten_table`; missing cells come back as empty strings."""
    data = dict(stored)
    flat_rows = data.pop("flatRows", None)
    row_count = data.pop("rowCount", None)
    col_count = data.pop("colCount", None)
    if flat_rows is None:
        return data
    row_count = int(row_count or 0)
    col_count = int(col_count if col_count is not None else len(data.get("headers", [])))
    data["rows"] = [
        [flat_rows.get(f"{r}_{c}", "") for c in range(col_count)]
        for r in range(row_count)
    ]
    return data


def _result_key(component: Component, index: int, key_scheme: str) -> str:
    if key_scheme == KEY_SCHEME_POSITION:
        return result_id_for(index)
    if key_scheme == KEY_SCHEME_COMPONENT:
        return component.id
    raise ValueError(f"Unknown result key scheme: {key_scheme}")


def build_question(component: Component, result_id: str) -> Question:
    """Normalize a question-kind component into its gradeable form."""
    common = dict(
        result_id=result_id,
        component_id=component.id,
        text=component.question,
        reason=component.reason,
    )
    if isinstance(component, MultipleChoiceComponent):
        return MultipleChoiceQuestion(
            options=component.options, correct_answer=component.correct_option, **common
        )
    if isinstance(component, FillBlanksComponent):
        return FillBlanksQuestion(blanks=component.blanks, **common)
    if isinstance(component, TrueFalseNotGivenComponent):
        return TrueFalseNotGivenQuestion(correct_answer=component.correct_answer, **common)
    if isinstance(component, YesNoNotGivenComponent):
        return YesNoNotGivenQuestion(correct_answer=component.correct_answer, **common)
    if isinstance(component, SentenceCompletionComponent):
        return SentenceCompletionQuestion(
            answers=component.answers, word_limit=component.word_limit, **common
        )
    raise ValueError(f"Component {component.id} of type {component.type} is not a question")


def serialize_for_storage(
    components: List[Component], key_scheme: str = KEY_SCHEME_POSITION
) -> StoragePayload:
    """Convert authored components into the persisted quiz projections.

    Raises:
        QuizValidationError: missing passage, no questions or malformed questions
    """
    report = validate_components(components)
    if not report.ok:
        raise QuizValidationError(report.errors)

    ordered = sorted(components, key=lambda c: c.order)

    stored_components = []
    for component in ordered:
        if isinstance(component, TableComponent):
            stored_components.append(flatten_table(component))
        else:
            stored_components.append(component.model_dump(by_alias=True, exclude_none=True))

    passage = next(c.content for c in ordered if c.type == PASSAGE)

    question_components = [c for c in ordered if c.type in QUESTION_TYPES]
    questions = [
        build_question(component, _result_key(component, index, key_scheme))
        for index, component in enumerate(question_components)
    ]

    for warning in report.warnings:
        logger.warning("Quiz saved with warning: %s", warning)

    return StoragePayload(
        passage=passage,
        question_count=len(questions),
        components=stored_components,
        questions=questions,
        warnings=report.warnings,
    )


def deserialize_from_storage(stored_components: List[Dict[str, Any]]) -> List[Component]:
    """Rebuild authoring components from their storage form."""
    components = []
    for index, stored in enumerate(stored_components or []):
        data = dict(stored)
        if data.get("type") == TABLE:
            data = restore_table(data)
        data.setdefault("order", index)
        if data.get("type") not in COMPONENT_TYPES:
            logger.warning("Skipping stored component with unknown type %r", data.get("type"))
            continue
        components.append(parse_component(data))
    return sorted(components, key=lambda c: c.order)

