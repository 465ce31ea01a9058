"""OpenAI LLM service for reading passage and quiz generation."""
import json
import logging
import re
import string
from typing import List, Optional

from openai import OpenAI
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from readdash.core.config import settings
from readdash.core.exceptions import GenerationError
from readdash.models.components import (
    Component,
    MultipleChoiceComponent,
    Option,
    PassageComponent,
    TitleComponent,
)

logger = logging.getLogger(__name__)

_OPTION_PREFIX = re.compile(r"^\s*([A-Za-z])[.)]\s+")


class GeneratedQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    options: List[str] = Field(default_factory=list)
    correct_answer: str = Field(alias="correctAnswer")


class GeneratedQuiz(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    passage: str
    questions: List[GeneratedQuestion] = Field(default_factory=list)
    reading_level: Optional[str] = Field(default=None, alias="readingLevel")
    category: Optional[str] = None


class OpenAIService:
    """Service for interacting with OpenAI API."""

    def __init__(self, client: Optional[OpenAI] = None):
        """Initialize OpenAI client with API key from settings."""
        self.client = client or OpenAI(api_key=settings.OPENAI_API_KEY)
        self.model = settings.OPENAI_MODEL

    def generate_quiz(
        self,
        reading_level: str,
        category: str,
        keywords: Optional[str] = None,
        question_count: int = 5,
    ) -> GeneratedQuiz:
        """
        Generate a reading passage with multiple-choice questions.

        Args:
            reading_level: Target reading level, e.g. "8B"
            category: Subject of the passage
            keywords: Optional focus keywords
            question_count: Number of questions to generate

        Returns:
            GeneratedQuiz with title, passage and questions

        Raises:
            GenerationError: The API call failed or returned unusable JSON
        """
        system_prompt = self._build_system_prompt()
        user_prompt = self._build_user_prompt(reading_level, category, keywords, question_count)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt}
                ],
                temperature=0.7,
                response_format={"type": "json_object"}
            )
            content = response.choices[0].message.content
        except Exception as e:
            logger.exception("OpenAI quiz generation request failed")
            raise GenerationError(f"Error generating quiz from OpenAI: {str(e)}") from e

        try:
            generated = GeneratedQuiz.model_validate(json.loads(content or ""))
        except (ValueError, ValidationError) as e:
            logger.error("OpenAI returned an unusable quiz payload: %s", e)
            raise GenerationError("OpenAI returned an invalid quiz payload") from e

        if not generated.questions:
            raise GenerationError("OpenAI returned a quiz without questions")

        generated.reading_level = generated.reading_level or reading_level
        generated.category = generated.category or category
        logger.info(
            "Generated quiz %r with %d questions", generated.title, len(generated.questions)
        )
        return generated

    def _build_system_prompt(self) -> str:
        """Build the system prompt for passage generation."""
        return """You are an expert author of reading comprehension material for students.
Your task is to write an informative, engaging passage and multiple-choice questions that test comprehension of it.

Guidelines:
- The passage must suit the requested reading level
- Every question must be answerable from the passage alone
- Each question has 4 options (A, B, C, D) with exactly one correct answer
- Return ONLY valid JSON in the specified format

Output format:
{
  "title": "The title of the passage",
  "passage": "The full text of the passage, paragraphs separated by line breaks",
  "questions": [
    {
      "text": "Question text?",
      "options": ["A. Option 1", "B. Option 2", "C. Option 3", "D. Option 4"],
      "correctAnswer": "A"
    }
  ]
}"""

    def _build_user_prompt(
        self,
        reading_level: str,
        category: str,
        keywords: Optional[str],
        question_count: int
    ) -> str:
        """Build the user prompt with the passage requirements."""
        keywords_text = f" with focus on {keywords}" if keywords else ""
        return f"""Create an educational reading comprehension passage appropriate for a {reading_level} reading level student.
The passage should be about {category}{keywords_text}.

After the passage, create exactly {question_count} multiple-choice questions that test comprehension of the passage.

Return your response as valid JSON following the specified format."""


def _correct_index(question: GeneratedQuestion) -> int:
    answer = question.correct_answer.strip()
    if len(answer) == 1 and answer.isalpha():
        return string.ascii_uppercase.index(answer.upper())
    for idx, option in enumerate(question.options):
        if option.strip() == answer or _OPTION_PREFIX.sub("", option).strip() == answer:
            return idx
    return 0


def generated_to_components(generated: GeneratedQuiz) -> List[Component]:
    """Turn a generated quiz into editable authoring components."""
    components: List[Component] = [
        TitleComponent(order=0, content=generated.title),
        PassageComponent(order=1, content=generated.passage),
    ]
    for question in generated.questions:
        options = [
            Option(id=string.ascii_lowercase[idx], text=_OPTION_PREFIX.sub("", text).strip())
            for idx, text in enumerate(question.options[:len(string.ascii_lowercase)])
        ]
        correct = _correct_index(question)
        components.append(
            MultipleChoiceComponent(
                order=len(components),
                question=question.text,
                options=options,
                correct_option=options[correct].id if correct < len(options) else "",
            )
        )
    return components
