"""
Question parsing for Questex.

Two ways to turn a raw multi-question blob into question records:
- parse_with_ai: ask the text-generation provider for a JSON array of
  {question_statement, options} and validate it as a whole batch.
- parse_locally: split the blob with the QuestionSplitter, no provider needed.

Either way, convert_question runs the LaTeX conversion pipeline over the
statement and every option.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple

from config import Config
from core.errors import QuestionParseError, QuestionValidationError
from core.latex_enhancer import enhance_question_with_latex
from core.question_splitter import split_questions

logger = logging.getLogger(__name__)


class QuestionType(Enum):
    """Question categories. Only choice questions keep their options when stored."""

    MCQ = "MCQ"
    MSQ = "MSQ"
    NAT = "NAT"
    SUBJECTIVE = "Subjective"

    @property
    def has_options(self) -> bool:
        return self in (QuestionType.MCQ, QuestionType.MSQ)

    @classmethod
    def from_value(cls, value: str) -> "QuestionType":
        """Look up a type by its stored value, case-insensitively."""
        for member in cls:
            if member.value.lower() == value.strip().lower():
                return member
        raise ValueError(f"Unknown question type: {value!r}")


@dataclass
class ParsedQuestion:
    """A question as returned by a parser, before LaTeX conversion."""

    question_statement: str
    options: Optional[List[str]] = None


@dataclass(frozen=True)
class ConvertedQuestion:
    """A question after LaTeX conversion and enhancement."""

    statement: str
    options: Optional[Tuple[str, ...]] = None


SYSTEM_PROMPT = """You are a question parser. Your job is to extract questions from text and convert mathematical expressions to proper LaTeX format.

You must return ONLY valid JSON, no explanations."""


USER_PROMPT_TEMPLATE = """CRITICAL RULES:
1. Preserve ALL content but enhance mathematical expressions with LaTeX
2. Convert matrices like [[1,0],[0,1]] to \\begin{{bmatrix}} 1 & 0 \\\\ 0 & 1 \\end{{bmatrix}}
3. Convert mathematical symbols: alpha -> \\alpha, lambda -> \\lambda, etc.
4. Convert fractions: 3/4 -> \\frac{{3}}{{4}}
5. Convert superscripts: A^T -> A^T, A^-1 -> A^{{-1}}
6. Wrap mathematical expressions in $ for inline or $$ for display
7. Preserve ALL context and supporting information
8. Handle determinants: |A| should become |A| or \\det(A)

The questions are of type: {question_type}

Parse the following text into individual questions separated by "---":

{raw_text}

For each question:
- If it has options (after "-" or listed as a), b), c)), extract them as an array
- If no options, set options to null
- Convert mathematical content to proper LaTeX format
- Preserve COMPLETE question context

Return ONLY a JSON array in this format:
[
  {{
    "question_statement": "Question text with LaTeX-formatted mathematical expressions",
    "options": ["LaTeX-formatted option1", "LaTeX-formatted option2"] or null
  }}
]"""


# Two-letter LaTeX commands that also read as a JSON escape plus one letter
SHORT_LATEX_COMMANDS = {"bf", "ne", "ni", "nu", "rm", "to", "tt"}

# A backslash followed by another backslash, a \uXXXX escape, a word, or any
# single character
BACKSLASH_SEQUENCE = re.compile(r"\\(\\|u[0-9a-fA-F]{4}|[A-Za-z]+|.)", re.DOTALL)

UNICODE_ESCAPE = re.compile(r"u[0-9a-fA-F]{4}")


def _is_json_escape(token: str) -> bool:
    """Whether a backslash-plus-letters token reads as a JSON escape.

    A \\b \\f \\n \\r \\t escape is kept when it stands alone, is followed by
    a single letter that does not form a LaTeX command, or runs into a
    capitalized word ("\\nThe"). Any longer lowercase run is a LaTeX command.
    """
    if token[0] == "u":
        return UNICODE_ESCAPE.fullmatch(token) is not None
    if token[0] not in "bfnrt":
        return False
    rest = token[1:]
    if len(rest) <= 1:
        return token not in SHORT_LATEX_COMMANDS
    return rest[0].isupper()


def _protect_backslash(match: re.Match) -> str:
    token = match.group(1)
    if token == "\\":
        # Already a valid escaped backslash
        return match.group(0)
    if token[0].isalpha():
        if _is_json_escape(token):
            return match.group(0)
        return "\\\\" + token
    if token in ('"', "/"):
        return match.group(0)
    return "\\\\" + token


def protect_latex_backslashes(json_text: str) -> str:
    """Double the lone backslashes of LaTeX commands in model-emitted JSON.

    Models tend to write "\\frac" inside JSON strings unescaped, which either
    fails to decode or silently decodes to a form feed. Valid JSON escapes
    and already-doubled backslashes are left as they are.
    """
    return BACKSLASH_SEQUENCE.sub(_protect_backslash, json_text)


def extract_json_array(response_text: str) -> Any:
    """Strip markdown fences, locate the JSON array and decode it.

    Raises:
        QuestionParseError: If no decodable JSON is found
    """
    cleaned = response_text.strip()
    cleaned = re.sub(r"```(?:json)?\s*", "", cleaned)

    json_match = re.search(r"\[[\s\S]*\]", cleaned)
    json_text = json_match.group() if json_match else cleaned

    try:
        return json.loads(protect_latex_backslashes(json_text))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse LLM response: {e}")
        raise QuestionParseError("Could not extract valid JSON from AI response") from e


def validate_questions(data: Any, min_length: Optional[int] = None) -> List[ParsedQuestion]:
    """Validate a decoded response as a whole batch.

    The batch is rejected if any element is invalid; errors name the
    1-based index of the offending question.

    Raises:
        QuestionValidationError: On a non-list or empty response, or a
            missing, non-string or too-short question_statement
    """
    min_length = Config.MIN_STATEMENT_LENGTH if min_length is None else min_length

    if not isinstance(data, list) or not data:
        raise QuestionValidationError("AI returned invalid question format")

    questions = []
    for index, item in enumerate(data, start=1):
        statement = item.get("question_statement") if isinstance(item, dict) else None
        if not statement or not isinstance(statement, str):
            raise QuestionValidationError(
                f"Question {index} is missing or has invalid question_statement", index=index
            )
        if len(statement.strip()) < min_length:
            raise QuestionValidationError(
                f"Question {index} appears to be truncated or too short", index=index
            )

        raw_options = item.get("options")
        options = None
        if isinstance(raw_options, list):
            options = [opt.strip() for opt in raw_options if isinstance(opt, str) and opt.strip()]

        questions.append(ParsedQuestion(question_statement=statement.strip(), options=options))

    return questions


def convert_question(statement: str, options: Optional[List[str]] = None) -> ConvertedQuestion:
    """Run the LaTeX pipeline over a statement and its options."""
    converted_options = None
    if options is not None:
        converted_options = tuple(enhance_question_with_latex(opt) for opt in options)
    return ConvertedQuestion(
        statement=enhance_question_with_latex(statement),
        options=converted_options,
    )


class QuestionParser:
    """Parse raw question text into ParsedQuestion records."""

    def __init__(self, llm=None):
        """Initialize parser.

        Args:
            llm: LLMManager (or anything with a compatible generate()). Only
                needed for parse_with_ai.
        """
        self.llm = llm

    def parse_with_ai(self, raw_text: str, question_type: str = "MCQ") -> List[ParsedQuestion]:
        """Parse questions with the text-generation provider.

        Args:
            raw_text: Raw blob with questions separated by "---"
            question_type: Question type hint for the prompt

        Returns:
            Validated list of ParsedQuestion

        Raises:
            QuestionParseError: If the provider fails or returns unusable JSON
            QuestionValidationError: If any returned question is invalid
        """
        if self.llm is None:
            raise QuestionParseError("No LLM configured for AI parsing")

        prompt = USER_PROMPT_TEMPLATE.format(question_type=question_type, raw_text=raw_text)

        logger.info("Calling LLM for question parsing...")
        response = self.llm.generate(
            prompt=prompt,
            system=SYSTEM_PROMPT,
            temperature=0.0,
            max_tokens=Config.LLM_MAX_OUTPUT_TOKENS,
            json_mode=True,
        )

        if not response.success:
            raise QuestionParseError(f"Failed to parse questions: {response.error}")
        if not response.text or not response.text.strip():
            raise QuestionParseError("Failed to parse questions: No response from AI provider")

        questions = validate_questions(extract_json_array(response.text))
        logger.info(f"LLM parsed {len(questions)} questions")
        return questions

    def parse_locally(self, raw_text: str) -> List[ParsedQuestion]:
        """Parse questions with the local splitter.

        Options are the labeled option texts without their labels; a block
        without labeled options gets None.
        """
        questions = []
        for block in split_questions(raw_text):
            option_texts = [option.text for option in block.options]
            questions.append(
                ParsedQuestion(question_statement=block.statement, options=option_texts or None)
            )
        logger.info(f"Locally parsed {len(questions)} questions")
        return questions
