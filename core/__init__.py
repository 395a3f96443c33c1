"""
Questex Core - exam question parsing and LaTeX conversion library.

Main components:
- latex_rules / latex_enhancer: shorthand math to LaTeX
- QuestionSplitter: raw blob to question blocks and options
- MathRenderer: LaTeX-bearing text to typed, typeset segments
- QuestionParser: AI and local question parsing
"""

from core.errors import (
    MathRenderError,
    QuestexError,
    QuestionParseError,
    QuestionValidationError,
    StorageError,
)
from core.latex_enhancer import enhance, enhance_question_with_latex
from core.latex_rules import LATEX_RULES, RewriteRule, apply_rules, convert_to_latex
from core.math_renderer import (
    MathMLTypesetter,
    MathRenderer,
    RenderedSegment,
    Segment,
    SegmentKind,
    split_segments,
)
from core.question_parser import (
    ConvertedQuestion,
    ParsedQuestion,
    QuestionParser,
    QuestionType,
    convert_question,
)
from core.question_splitter import (
    Option,
    QuestionBlock,
    QuestionSplitter,
    parse_options,
    split_questions,
)

__all__ = [
    "convert_to_latex",
    "apply_rules",
    "LATEX_RULES",
    "RewriteRule",
    "enhance",
    "enhance_question_with_latex",
    "QuestionSplitter",
    "QuestionBlock",
    "Option",
    "split_questions",
    "parse_options",
    "MathRenderer",
    "MathMLTypesetter",
    "Segment",
    "SegmentKind",
    "RenderedSegment",
    "split_segments",
    "QuestionParser",
    "ParsedQuestion",
    "ConvertedQuestion",
    "QuestionType",
    "convert_question",
    # Errors
    "QuestexError",
    "QuestionParseError",
    "QuestionValidationError",
    "MathRenderError",
    "StorageError",
]
