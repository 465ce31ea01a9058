"""Quiz authoring components.

A quiz is authored as an ordered list of components. Content components
(title, headings, passages, images, tables) are only displayed; question
components carry an answer key and become gradeable questions when the
quiz is saved.
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from readdash.models.base import CamelModel, new_id


TITLE = "title"
HEADING = "heading"
SUBHEADING = "subheading"
PASSAGE = "passage"
IMAGE = "image"
TABLE = "table"

MULTIPLE_CHOICE = "multiple-choice"
FILL_BLANKS = "fill-blanks"
TRUE_FALSE_NOT_GIVEN = "true-false-not-given"
YES_NO_NOT_GIVEN = "yes-no-not-given"
SENTENCE_COMPLETION = "sentence-completion"

CONTENT_TYPES = (TITLE, HEADING, SUBHEADING, PASSAGE, IMAGE, TABLE)
QUESTION_TYPES = (
    MULTIPLE_CHOICE,
    FILL_BLANKS,
    TRUE_FALSE_NOT_GIVEN,
    YES_NO_NOT_GIVEN,
    SENTENCE_COMPLETION,
)
COMPONENT_TYPES = CONTENT_TYPES + QUESTION_TYPES

TrueFalseAnswer = Literal["true", "false", "not-given"]
YesNoAnswer = Literal["yes", "no", "not-given"]


class Option(CamelModel):
    id: str = Field(default_factory=new_id)
    text: str = ""


class Blank(CamelModel):
    id: str = Field(default_factory=new_id)
    answer: str = ""


class CompletionAnswer(CamelModel):
    id: str = Field(default_factory=new_id)
    text: str = ""


class ComponentBase(CamelModel):
    id: str = Field(default_factory=new_id)
    order: int = 0

    @property
    def is_question(self) -> bool:
        return self.type in QUESTION_TYPES


class TitleComponent(ComponentBase):
    type: Literal["title"] = TITLE
    content: str = ""


class HeadingComponent(ComponentBase):
    type: Literal["heading"] = HEADING
    content: str = ""


class SubheadingComponent(ComponentBase):
    type: Literal["subheading"] = SUBHEADING
    content: str = ""


class PassageComponent(ComponentBase):
    type: Literal["passage"] = PASSAGE
    content: str = ""


class ImageComponent(ComponentBase):
    type: Literal["image"] = IMAGE
    url: str = ""
    alt: str = ""


class TableComponent(ComponentBase):
    type: Literal["table"] = TABLE
    headers: List[str] = Field(default_factory=list)
    rows: List[List[str]] = Field(default_factory=list)


class QuestionComponent(ComponentBase):
    question: str = ""
    reason: Optional[str] = None


class MultipleChoiceComponent(QuestionComponent):
    type: Literal["multiple-choice"] = MULTIPLE_CHOICE
    options: List[Option] = Field(default_factory=list)
    correct_option: str = ""


class FillBlanksComponent(QuestionComponent):
    type: Literal["fill-blanks"] = FILL_BLANKS
    blanks: List[Blank] = Field(default_factory=list)


class TrueFalseNotGivenComponent(QuestionComponent):
    type: Literal["true-false-not-given"] = TRUE_FALSE_NOT_GIVEN
    correct_answer: TrueFalseAnswer = "true"


class YesNoNotGivenComponent(QuestionComponent):
    type: Literal["yes-no-not-given"] = YES_NO_NOT_GIVEN
    correct_answer: YesNoAnswer = "yes"


class SentenceCompletionComponent(QuestionComponent):
    type: Literal["sentence-completion"] = SENTENCE_COMPLETION
    answers: List[CompletionAnswer] = Field(default_factory=list)
    word_limit: int = Field(default=2, ge=1)


Component = Annotated[
    Union[
        TitleComponent,
        HeadingComponent,
        SubheadingComponent,
        PassageComponent,
        ImageComponent,
        TableComponent,
        MultipleChoiceComponent,
        FillBlanksComponent,
        TrueFalseNotGivenComponent,
        YesNoNotGivenComponent,
        SentenceCompletionComponent,
    ],
    Field(discriminator="type"),
]

component_adapter = TypeAdapter(Component)
component_list_adapter = TypeAdapter(List[Component])


def parse_component(data: Dict[str, Any]) -> Component:
    return component_adapter.validate_python(data)


def parse_components(data: List[Dict[str, Any]]) -> List[Component]:
    return component_list_adapter.validate_python(data)
