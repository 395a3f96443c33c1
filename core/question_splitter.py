"""
Question splitting for Questex.
Splits a raw multi-question blob into question blocks and separates each
question statement from its answer options.

Input format:
    Question one statement
    -
    a) first option
    b) second option
    ---
    Question two statement (no options)
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Option:
    """A single labeled answer option, e.g. label "a)" and its text."""

    label: str
    text: str


@dataclass(frozen=True)
class QuestionBlock:
    """One question unit: its statement and the raw options text, if any."""

    statement: str
    options_text: Optional[str] = None

    @property
    def has_options(self) -> bool:
        return bool(self.options_text)

    @property
    def options(self) -> List[Option]:
        """Options parsed from options_text, in the order they appear."""
        if not self.options_text:
            return []
        return parse_options(self.options_text)


class QuestionSplitter:
    """Split raw question text into QuestionBlocks."""

    # Separates question units
    QUESTION_SEPARATOR = "---"

    # A line holding only "-" separates the statement from its options
    OPTIONS_SEPARATOR = re.compile(r"\r?\n[ \t]*-[ \t]*(?:\r?\n|\Z)")

    # Lowercase letter label, e.g. "a)"; labels must start the text or follow
    # whitespace so "f(x)" inside an option is not read as a label.
    # Uppercase and numeric labels ("A)", "1)") are not recognized.
    OPTION_PATTERN = re.compile(r"(?<!\S)([a-z])\)[ \t]*(.*?)(?=\s*(?<!\S)[a-z]\)|\Z)", re.DOTALL)

    def split(self, raw: str) -> List[QuestionBlock]:
        """Split a raw blob into question blocks.

        Args:
            raw: Text with question units separated by "---"

        Returns:
            List of QuestionBlock objects; empty when there is nothing to parse
        """
        if not raw or not raw.strip():
            logger.debug("Nothing to split: empty input")
            return []

        blocks = []
        for piece in raw.split(self.QUESTION_SEPARATOR):
            piece = piece.strip()
            if not piece:
                continue

            statement, options_text = self.split_statement_and_options(piece)
            if not statement:
                # A unit made only of options has no question to attach them to
                logger.debug("Dropping question unit with empty statement")
                continue

            blocks.append(QuestionBlock(statement=statement, options_text=options_text))

        logger.debug(f"Split input into {len(blocks)} question blocks")
        return blocks

    def split_statement_and_options(self, text: str) -> Tuple[str, Optional[str]]:
        """Separate a question unit into statement and options text.

        Only the first options separator splits the unit; later "-" lines
        stay part of the options text.

        Returns:
            (statement, options_text) where options_text is None if the unit
            has no separator or nothing after it
        """
        parts = self.OPTIONS_SEPARATOR.split(text, maxsplit=1)
        statement = parts[0].strip()
        if len(parts) == 1:
            return statement, None

        options_text = parts[1].strip()
        return statement, options_text or None

    def parse_options(self, options_text: str) -> List[Option]:
        """Extract labeled options from options text.

        Content runs until the next label or the end of the text, across
        line breaks. Options with whitespace-only content are dropped.
        Labels are not validated for order or uniqueness.
        """
        options = []
        for match in self.OPTION_PATTERN.finditer(options_text):
            text = match.group(2).strip()
            if text:
                options.append(Option(label=f"{match.group(1)})", text=text))
        return options


_default_splitter = QuestionSplitter()


def split_questions(raw: str) -> List[QuestionBlock]:
    """Split a raw blob into question blocks (see QuestionSplitter.split)."""
    return _default_splitter.split(raw)


def parse_options(options_text: str) -> List[Option]:
    """Extract labeled options from options text (see QuestionSplitter.parse_options)."""
    return _default_splitter.parse_options(options_text)
