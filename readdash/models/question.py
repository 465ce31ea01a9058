"""Normalized, gradeable questions stored alongside a quiz."""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import AliasChoices, Field

from readdash.models.base import CamelModel
from readdash.models.components import (
    Blank,
    CompletionAnswer,
    Option,
    TrueFalseAnswer,
    YesNoAnswer,
)


def result_id_for(index: int) -> str:
    return f"q-{index}"


class QuestionBase(CamelModel):
    # Key answers and question results are joined on; older documents store it as `id`
    result_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("resultId", "result_id", "id"),
        serialization_alias="resultId",
    )
    component_id: Optional[str] = None
    text: str = ""
    reason: Optional[str] = None


class MultipleChoiceQuestion(QuestionBase):
    type: Literal["multiple-choice"] = "multiple-choice"
    options: List[Option] = Field(default_factory=list)
    correct_answer: str = ""

    def option_text(self, option_id: str) -> Optional[str]:
        for option in self.options:
            if option.id == option_id:
                return option.text
        return None


class FillBlanksQuestion(QuestionBase):
    type: Literal["fill-blanks"] = "fill-blanks"
    blanks: List[Blank] = Field(default_factory=list)


class TrueFalseNotGivenQuestion(QuestionBase):
    type: Literal["true-false-not-given"] = "true-false-not-given"
    correct_answer: TrueFalseAnswer


class YesNoNotGivenQuestion(QuestionBase):
    type: Literal["yes-no-not-given"] = "yes-no-not-given"
    correct_answer: YesNoAnswer


class SentenceCompletionQuestion(QuestionBase):
    type: Literal["sentence-completion"] = "sentence-completion"
    answers: List[CompletionAnswer] = Field(default_factory=list)
    word_limit: int = Field(default=2, ge=1)


Question = Annotated[
    Union[
        MultipleChoiceQuestion,
        FillBlanksQuestion,
        TrueFalseNotGivenQuestion,
        YesNoNotGivenQuestion,
        SentenceCompletionQuestion,
    ],
    Field(discriminator="type"),
]
