"""
Tests for the math segment renderer.

Covers segment splitting (order, reconstruction, kinds), typesetting through
a pluggable engine, per-segment fallback on render errors, and HTML output.
Uses fake typesetters; one test exercises the real latex2mathml engine.
"""

import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.errors import MathRenderError
from core.math_renderer import (
    MathMLTypesetter,
    MathRenderer,
    Segment,
    SegmentKind,
    split_segments,
)


# ============================================================================
# Fake typesetters
# ============================================================================


class EchoTypesetter:
    """Wraps the expression in a tag showing the display mode."""

    def __init__(self):
        self.calls = []

    def typeset(self, expression: str, display: bool) -> str:
        self.calls.append((expression, display))
        tag = "D" if display else "I"
        return f"<{tag}>{expression}</{tag}>"


class FailingTypesetter:
    """Rejects expressions containing an unknown command."""

    def typeset(self, expression: str, display: bool) -> str:
        if "\\invalidcmd" in expression:
            raise MathRenderError(f"Unknown command in {expression}")
        return f"<ok>{expression}</ok>"


# ============================================================================
# Segment splitting
# ============================================================================


def test_split_segments_order_and_kinds():
    """Segments come out in input order with the right kinds."""
    segments = split_segments("Let $x$ and $$y = 1$$ end")

    assert segments == [
        Segment(SegmentKind.LITERAL, "Let "),
        Segment(SegmentKind.INLINE_MATH, "x"),
        Segment(SegmentKind.LITERAL, " and "),
        Segment(SegmentKind.DISPLAY_MATH, "y = 1"),
        Segment(SegmentKind.LITERAL, " end"),
    ]
    print("✓ test_split_segments_order_and_kinds passed")


def test_split_segments_reconstruction():
    """Concatenated segment texts reproduce the input without delimiters."""
    text = "A $\\alpha$ then\n$$\\frac{1}{2}\n+ x$$ and $b$."
    segments = split_segments(text)
    assert "".join(s.text for s in segments) == text.replace("$", "")
    print("✓ test_split_segments_reconstruction passed")


def test_display_math_spans_lines():
    """Display math may contain line breaks, inline math may not."""
    segments = split_segments("$$a\nb$$")
    assert segments == [Segment(SegmentKind.DISPLAY_MATH, "a\nb")]

    segments = split_segments("$a\nb$")
    assert all(s.kind is SegmentKind.LITERAL for s in segments)
    print("✓ test_display_math_spans_lines passed")


def test_split_segments_empty_and_plain():
    """Empty text gives nothing; plain text is one literal."""
    assert split_segments("") == []
    assert split_segments("no math") == [Segment(SegmentKind.LITERAL, "no math")]
    print("✓ test_split_segments_empty_and_plain passed")


def test_literal_lines():
    """Literal segments expose their line structure."""
    segment = Segment(SegmentKind.LITERAL, "one\ntwo")
    assert segment.lines == ["one", "two"]
    assert not segment.is_math
    print("✓ test_literal_lines passed")


# ============================================================================
# Rendering
# ============================================================================


def test_render_passes_trimmed_expression_and_mode():
    """Math expressions are trimmed and typeset with their display mode."""
    typesetter = EchoTypesetter()
    rendered = MathRenderer(typesetter).render("x $ a $ y $$ b $$")

    assert typesetter.calls == [("a", False), ("b", True)]
    assert [r.content for r in rendered] == ["x ", "<I>a</I>", " y ", "<D>b</D>"]
    assert not any(r.is_fallback for r in rendered)
    print("✓ test_render_passes_trimmed_expression_and_mode passed")


def test_render_fallback_on_invalid_command():
    """A failing expression becomes a single fallback segment."""
    rendered = MathRenderer(FailingTypesetter()).render("$\\invalidcmd$")

    assert len(rendered) == 1
    assert rendered[0].is_fallback
    assert rendered[0].content == "\\invalidcmd"
    assert "Unknown command" in rendered[0].error
    print("✓ test_render_fallback_on_invalid_command passed")


def test_render_fallback_is_local():
    """One failing segment does not affect its neighbours."""
    rendered = MathRenderer(FailingTypesetter()).render("ok $a$ bad $\\invalidcmd$ fine $$b$$")

    assert [r.kind for r in rendered] == [
        SegmentKind.LITERAL,
        SegmentKind.INLINE_MATH,
        SegmentKind.LITERAL,
        SegmentKind.INLINE_MATH,
        SegmentKind.LITERAL,
        SegmentKind.DISPLAY_MATH,
    ]
    assert [r.is_fallback for r in rendered] == [False, False, False, True, False, False]
    assert rendered[5].content == "<ok>b</ok>"
    print("✓ test_render_fallback_is_local passed")


def test_render_catches_unexpected_errors():
    """Any typesetter exception degrades to a fallback."""

    class BrokenTypesetter:
        def typeset(self, expression, display):
            raise ValueError("boom")

    rendered = MathRenderer(BrokenTypesetter()).render("$$x$$")
    assert rendered[0].is_fallback
    assert rendered[0].error == "boom"
    print("✓ test_render_catches_unexpected_errors passed")


# ============================================================================
# HTML output
# ============================================================================


def test_render_html():
    """Literals are escaped, line breaks become <br>, display math is a block."""
    html = MathRenderer(EchoTypesetter()).render_html("a < b\nnext $x$ $$y$$")
    assert html == 'a &lt; b<br>next <I>x</I> <div class="math-display"><D>y</D></div>'
    print("✓ test_render_html passed")


def test_render_html_fallbacks():
    """Display fallbacks are prefixed, inline fallbacks show the raw expression."""
    renderer = MathRenderer(FailingTypesetter())

    inline = renderer.render_html("$\\invalidcmd$")
    display = renderer.render_html("$$\\invalidcmd$$")

    assert inline == '<span class="math-error">\\invalidcmd</span>'
    assert display == (
        '<div class="math-display"><span class="math-error">Math Error: \\invalidcmd</span></div>'
    )
    print("✓ test_render_html_fallbacks passed")


# ============================================================================
# latex2mathml engine
# ============================================================================


def test_mathml_typesetter():
    """The default engine produces MathML."""
    output = MathMLTypesetter().typeset("x^2", display=False)
    assert "<math" in output
    assert "<msup>" in output

    block = MathMLTypesetter().typeset("\\frac{1}{2}", display=True)
    assert 'display="block"' in block
    print("✓ test_mathml_typesetter passed")


def test_default_renderer_uses_mathml():
    """MathRenderer defaults to the latex2mathml engine."""
    rendered = MathRenderer().render("Area $\\pi r^2$")
    assert rendered[0].content == "Area "
    assert "<math" in rendered[1].content
    print("✓ test_default_renderer_uses_mathml passed")
