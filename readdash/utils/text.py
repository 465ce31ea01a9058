"""Small text helpers shared by the builder, grading and progress code."""
import re
from typing import List

BLANK_MARKER = "___"
BLANK_ANSWER_SEPARATOR = "|"

_LEVEL_NUMBER = re.compile(r"\d+")


def count_blank_markers(text: str) -> int:
    """Count non-overlapping `___` markers in a fill-blanks prompt."""
    return (text or "").count(BLANK_MARKER)


def split_blank_answers(answer: str) -> List[str]:
    """Split a typed fill-blanks answer into one entry per blank."""
    if answer is None or answer == "":
        return []
    return [part.strip() for part in answer.split(BLANK_ANSWER_SEPARATOR)]


def word_count(text: str) -> int:
    return len((text or "").split())


def reading_level_number(level: str, default: int = 5) -> int:
    """Numeric part of a reading level such as "8B" -> 8."""
    match = _LEVEL_NUMBER.search(level or "")
    if not match:
        return default
    return int(match.group(0))


def humanize_tag(tag: str) -> str:
    """"not-given" -> "Not given", "true" -> "True"."""
    words = (tag or "").replace("-", " ").strip()
    return words[:1].upper() + words[1:]
