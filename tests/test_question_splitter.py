"""
Tests for QuestionSplitter.

Tests cover:
- Splitting a blob on '---' into question blocks
- Statement / options separation on a lone '-' line
- Labeled option parsing
- Empty input and malformed units
"""

import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.question_splitter import (
    Option,
    QuestionBlock,
    QuestionSplitter,
    parse_options,
    split_questions,
)


# ============================================================================
# Block splitting
# ============================================================================


def test_split_three_questions():
    """n separators between non-empty pieces give n+1 blocks."""
    raw = "First question?\n---\nSecond question?\n---\nThird question?"
    blocks = split_questions(raw)

    assert len(blocks) == 3, f"Expected 3 blocks, got {len(blocks)}"
    assert [b.statement for b in blocks] == [
        "First question?",
        "Second question?",
        "Third question?",
    ]
    assert all(b.options_text is None for b in blocks)
    print("✓ test_split_three_questions passed")


def test_split_drops_empty_pieces():
    """Empty pieces between separators are dropped."""
    blocks = split_questions("---\nOnly one\n---\n   \n---")
    assert len(blocks) == 1
    assert blocks[0].statement == "Only one"
    print("✓ test_split_drops_empty_pieces passed")


def test_split_empty_input():
    """Empty and whitespace-only input give no blocks."""
    assert split_questions("") == []
    assert split_questions("   \n\t ") == []
    print("✓ test_split_empty_input passed")


def test_statement_and_options():
    """A lone '-' line separates statement from options."""
    blocks = split_questions("What is 2+2?\n-\na) 3\nb) 4")

    assert len(blocks) == 1
    block = blocks[0]
    assert block.statement == "What is 2+2?"
    assert block.options_text == "a) 3\nb) 4"
    assert block.has_options
    assert block.options == [Option("a)", "3"), Option("b)", "4")]
    print("✓ test_statement_and_options passed")


def test_separator_tolerates_crlf_and_spaces():
    """Windows line endings and padding around the dash are accepted."""
    blocks = split_questions("Pick one\r\n  -  \r\na) x\r\nb) y")
    assert blocks[0].statement == "Pick one"
    assert [o.text for o in blocks[0].options] == ["x", "y"]
    print("✓ test_separator_tolerates_crlf_and_spaces passed")


def test_only_first_separator_splits():
    """A later stray '-' line stays in the options text."""
    splitter = QuestionSplitter()
    statement, options_text = splitter.split_statement_and_options("Q text\n-\na) one\n-\nb) two")

    assert statement == "Q text"
    assert options_text == "a) one\n-\nb) two"
    assert [o.label for o in splitter.parse_options(options_text)] == ["a)", "b)"]
    print("✓ test_only_first_separator_splits passed")


def test_hyphen_inside_text_is_not_separator():
    """A dash inside a line does not split."""
    blocks = split_questions("Compute 5 - 3 here")
    assert blocks[0].statement == "Compute 5 - 3 here"
    assert blocks[0].options_text is None
    print("✓ test_hyphen_inside_text_is_not_separator passed")


def test_separator_without_options():
    """A separator followed by nothing gives no options."""
    block = QuestionBlock(statement="Q", options_text=None)
    assert not block.has_options
    assert block.options == []

    blocks = split_questions("Lonely question\n-\n")
    assert blocks[0].statement == "Lonely question"
    assert blocks[0].options_text is None
    print("✓ test_separator_without_options passed")


# ============================================================================
# Option parsing
# ============================================================================


def test_parse_options_in_order():
    """k well-formed labels give k options in order."""
    options = parse_options("a) alpha\nb) beta\nc) gamma\nd) delta")

    assert len(options) == 4
    assert [o.label for o in options] == ["a)", "b)", "c)", "d)"]
    assert [o.text for o in options] == ["alpha", "beta", "gamma", "delta"]
    print("✓ test_parse_options_in_order passed")


def test_parse_options_inline():
    """Options on a single line are split at each label."""
    options = parse_options("a) 1 b) 2 c) 3")
    assert [o.text for o in options] == ["1", "2", "3"]
    print("✓ test_parse_options_inline passed")


def test_parse_options_multiline_content():
    """Option content runs across line breaks up to the next label."""
    options = parse_options("a) first line\ncontinued\nb) second")
    assert options[0].text == "first line\ncontinued"
    assert options[1].text == "second"
    print("✓ test_parse_options_multiline_content passed")


def test_parse_options_function_call_not_label():
    """f(x) inside an option is not read as a label."""
    options = parse_options("a) f(x) = 2x\nb) g(x) = x")
    assert len(options) == 2
    assert options[0].text == "f(x) = 2x"
    assert options[1].text == "g(x) = x"
    print("✓ test_parse_options_function_call_not_label passed")


def test_parse_options_interval_reads_as_label():
    """An interval such as (a, b) inside an option text splits at " b)".

    Labels only need leading whitespace, so the "b)" of an interval starts
    a new option. Here it is empty and dropped; "c)" still gets its text.
    """
    options = parse_options("a) (a, b) c) y")
    assert options == [Option("a)", "(a,"), Option("c)", "y")]

    # An empty option never swallows the next label
    assert parse_options("a) b) x") == [Option("b)", "x")]
    print("✓ test_parse_options_interval_reads_as_label passed")


def test_parse_options_drops_empty():
    """Whitespace-only options are discarded."""
    options = parse_options("a)   \nb) kept")
    assert options == [Option("b)", "kept")]
    print("✓ test_parse_options_drops_empty passed")


def test_parse_options_keeps_duplicates_and_order():
    """Labels are not validated for order or uniqueness."""
    options = parse_options("b) second\na) first\na) again")
    assert [o.label for o in options] == ["b)", "a)", "a)"]
    print("✓ test_parse_options_keeps_duplicates_and_order passed")


def test_uppercase_labels_not_recognized():
    """Only lowercase letter labels are options."""
    assert parse_options("A) one\nB) two") == []
    assert parse_options("1) one\n2) two") == []
    print("✓ test_uppercase_labels_not_recognized passed")
