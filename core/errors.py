"""
Exception types for Questex.

Parsing and LaTeX conversion never raise; only the collaborator
boundaries (text generation, typesetting, storage) do.
"""

from typing import Optional


class QuestexError(Exception):
    """Base class for all Questex errors."""


class QuestionParseError(QuestexError):
    """The text-generation service failed or returned unusable output."""


class QuestionValidationError(QuestionParseError):
    """A parsed question batch failed validation.

    The whole batch is rejected; ``index`` is the 1-based position of the
    offending question, or None when the response itself is malformed.
    """

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class MathRenderError(QuestexError):
    """The typesetting engine rejected an expression."""


class StorageError(QuestexError):
    """A datastore operation failed."""
