"""
Semantic LaTeX enhancement for Questex.

Context-sensitive rewrites layered on top of the rule-based conversion:
labeled calculation blocks (determinants, eigenvalues, final answers) and a
best-effort heuristic that promotes equation lines to display math.
"""

import logging
import re

from core.latex_rules import convert_to_latex

logger = logging.getLogger(__name__)

# Equation lines longer than this are promoted to display math
EQUATION_LENGTH_THRESHOLD = 50

DETERMINANT_PATTERN = re.compile(
    r"Determinant[ \t]*:?[ \t]*([^=\n]+)=([^=\n]+)=([^\n]+)", re.IGNORECASE
)
EIGENVALUES_PATTERN = re.compile(
    r"\**Eigenvalues?[ \t]*\**[ \t]*:[ \t]*\**[ \t]*(?!\*+[ \t]*$)(\S[^\n]*)",
    re.IGNORECASE | re.MULTILINE,
)
# Decorations such as emoji, bullets or markdown markers may precede the label;
# markdown bold around the label is consumed with it
FINAL_ANSWER_PATTERN = re.compile(
    r"^[^\w\n]*Final Answer[ \t]*\**[ \t]*:?[ \t]*\**[ \t]*(?!:?\*+[ \t]*$)(\S[^\n]*)",
    re.IGNORECASE | re.MULTILINE,
)
EQUATION_LINE_PATTERN = re.compile(r"^[^\n]*=[^\n]*$", re.MULTILINE)


def _determinant_block(match: re.Match) -> str:
    parts = " = ".join(part.strip() for part in match.groups())
    return f"**Determinant:**\n$${parts}$$"


def _eigenvalues_block(match: re.Match) -> str:
    return f"**Eigenvalues:**\n{match.group(1)}"


def _final_answer_block(match: re.Match) -> str:
    answer = match.group(1).strip().strip("$").strip()
    return f"**Final Answer:**\n$${answer}$$"


def _promote_equation(match: re.Match) -> str:
    line = match.group(0)
    if "$" in line:
        # Already math; wrapping again would nest delimiters
        return line
    if "\\" in line or len(line) > EQUATION_LENGTH_THRESHOLD:
        return f"$${line.strip()}$$"
    return line


def enhance(text: str) -> str:
    """Apply semantic enhancements to already-converted text.

    Pure and total. The equation heuristic accepts false positives and
    negatives: a line is promoted when it contains '=' and either a
    backslash or more than EQUATION_LENGTH_THRESHOLD characters.
    """
    if not text:
        return text

    enhanced = DETERMINANT_PATTERN.sub(_determinant_block, text)
    enhanced = EIGENVALUES_PATTERN.sub(_eigenvalues_block, enhanced)
    enhanced = FINAL_ANSWER_PATTERN.sub(_final_answer_block, enhanced)
    enhanced = EQUATION_LINE_PATTERN.sub(_promote_equation, enhanced)
    return enhanced


def enhance_question_with_latex(text: str) -> str:
    """Full conversion pipeline: rule-based LaTeX conversion, then enhancement."""
    if not text:
        return text
    return enhance(convert_to_latex(text))
