"""
Math segment rendering for Questex.

Splits a finished LaTeX-bearing string into ordered typed segments (literal
text, inline math, display math) and hands math segments to a typesetting
engine. A segment the engine rejects degrades to a marked fallback showing
the raw expression; the rest of the document renders normally.

Known limitation: there is no escape for a literal "$" in text, every "$"
is read as a math delimiter.
"""

import html
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol

from latex2mathml.converter import convert as latex2mathml_convert

from core.errors import MathRenderError

logger = logging.getLogger(__name__)

DISPLAY_MATH_PATTERN = re.compile(r"\$\$([\s\S]*?)\$\$")
INLINE_MATH_PATTERN = re.compile(r"\$([^$\n]*?)\$")


class SegmentKind(Enum):
    """Kind of a rendered text segment."""

    LITERAL = "literal"
    INLINE_MATH = "inline_math"
    DISPLAY_MATH = "display_math"


@dataclass(frozen=True)
class Segment:
    """A typed piece of text. For math kinds, text is the raw expression."""

    kind: SegmentKind
    text: str

    @property
    def is_math(self) -> bool:
        return self.kind is not SegmentKind.LITERAL

    @property
    def lines(self) -> List[str]:
        """Literal text split at its line breaks."""
        return self.text.split("\n")


@dataclass(frozen=True)
class RenderedSegment:
    """A segment after typesetting.

    content is the typesetter output for math, the text for literals, or
    the raw (trimmed) expression when typesetting failed.
    """

    segment: Segment
    content: str
    error: Optional[str] = None

    @property
    def kind(self) -> SegmentKind:
        return self.segment.kind

    @property
    def is_fallback(self) -> bool:
        return self.error is not None


class MathTypesetter(Protocol):
    """Typesetting engine interface: LaTeX expression in, rendered markup out.

    Implementations raise on expressions they cannot render.
    """

    def typeset(self, expression: str, display: bool) -> str:
        ...


class MathMLTypesetter:
    """Typesetter producing MathML via latex2mathml."""

    def typeset(self, expression: str, display: bool) -> str:
        try:
            return latex2mathml_convert(expression, display="block" if display else "inline")
        except Exception as e:
            raise MathRenderError(f"Cannot typeset {expression!r}: {e}") from e


def split_segments(text: str) -> List[Segment]:
    """Split text into ordered literal / inline-math / display-math segments.

    Display math ($$...$$, may span lines) is split out first; the remaining
    text is split on inline math ($...$, single line). Expressions are kept
    verbatim, so joining the segment texts gives back the input without its
    math delimiters. Empty literal pieces are dropped.
    """
    if not text:
        return []

    segments = []
    for index, part in enumerate(DISPLAY_MATH_PATTERN.split(text)):
        if index % 2 == 1:
            segments.append(Segment(SegmentKind.DISPLAY_MATH, part))
            continue

        for sub_index, sub_part in enumerate(INLINE_MATH_PATTERN.split(part)):
            if sub_index % 2 == 1:
                segments.append(Segment(SegmentKind.INLINE_MATH, sub_part))
            elif sub_part:
                segments.append(Segment(SegmentKind.LITERAL, sub_part))

    return segments


class MathRenderer:
    """Render LaTeX-bearing text segment by segment."""

    def __init__(self, typesetter: Optional[MathTypesetter] = None):
        """Initialize renderer.

        Args:
            typesetter: Math engine to use. Defaults to MathMLTypesetter.
        """
        self.typesetter = typesetter or MathMLTypesetter()

    def render(self, text: str) -> List[RenderedSegment]:
        """Split text into segments and typeset the math ones.

        A failing math segment never aborts rendering: it is returned with
        its raw expression as content and the error message attached.
        """
        return [self._render_segment(segment) for segment in split_segments(text)]

    def _render_segment(self, segment: Segment) -> RenderedSegment:
        if not segment.is_math:
            return RenderedSegment(segment=segment, content=segment.text)

        expression = segment.text.strip()
        display = segment.kind is SegmentKind.DISPLAY_MATH
        try:
            rendered = self.typesetter.typeset(expression, display)
        except Exception as e:
            logger.warning(f"Math render failed for {expression!r}: {e}")
            return RenderedSegment(segment=segment, content=expression, error=str(e))

        return RenderedSegment(segment=segment, content=rendered)

    def render_html(self, text: str) -> str:
        """Render text to an HTML fragment.

        Literal text is escaped with <br> line breaks, display math sits in
        its own block, failed math shows the raw expression in a
        "math-error" span.
        """
        parts = []
        for rendered in self.render(text):
            if rendered.kind is SegmentKind.LITERAL:
                parts.append("<br>".join(html.escape(line) for line in rendered.segment.lines))
            elif rendered.is_fallback:
                raw = html.escape(rendered.content)
                if rendered.kind is SegmentKind.DISPLAY_MATH:
                    parts.append(f'<div class="math-display"><span class="math-error">Math Error: {raw}</span></div>')
                else:
                    parts.append(f'<span class="math-error">{raw}</span>')
            elif rendered.kind is SegmentKind.DISPLAY_MATH:
                parts.append(f'<div class="math-display">{rendered.content}</div>')
            else:
                parts.append(rendered.content)
        return "".join(parts)
