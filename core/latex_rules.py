"""
LaTeX conversion rules for Questex.

Rewrites shorthand math notation (ASCII operators, bracket matrices,
spelled-out Greek letters, named functions, ...) into LaTeX markup.

The rules are data: an ordered tuple of RewriteRule objects folded over the
input by apply_rules(). Each rule runs exactly once over the whole string, in
the order of LATEX_RULES. Many rules are not order-commutative, e.g. the
superscript rule must run before the transpose shorthand, and the
subscripted-symbol rule matches the control words produced by the Greek pass.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Tuple, Union

logger = logging.getLogger(__name__)

Replacement = Union[str, Callable[[re.Match], str]]


@dataclass(frozen=True)
class RewriteRule:
    """A single pattern -> replacement rewrite.

    A string replacement is inserted literally (no group expansion), which
    keeps LaTeX backslashes intact. Use a callable to build the replacement
    from match groups.
    """

    name: str
    pattern: re.Pattern
    replace: Replacement

    def apply(self, text: str) -> str:
        if isinstance(self.replace, str):
            replacement = self.replace
            return self.pattern.sub(lambda _match: replacement, text)
        return self.pattern.sub(self.replace, text)


def _rule(name: str, pattern: str, replace: Replacement, flags: int = 0) -> RewriteRule:
    return RewriteRule(name=name, pattern=re.compile(pattern, flags), replace=replace)


# ============================================================================
# Replacement builders
# ============================================================================


def _matrix_row(row: str) -> str:
    return " & ".join(cell.strip() for cell in row.split(","))


def _bmatrix(match: re.Match) -> str:
    rows = " \\\\ ".join(_matrix_row(row) for row in match.groups())
    return f"\\begin{{bmatrix}} {rows} \\end{{bmatrix}}"


def _braced(match: re.Match) -> str:
    # "^" or "_" followed by the grouped exponent/index
    return f"{match.group(1)}{{{match.group(2)}}}"


def _control_word(match: re.Match) -> str:
    return "\\" + match.group(1)


def _split_columns(line: str) -> list:
    if re.search(r"\s{2,}", line):
        return [cell for cell in re.split(r"\s{2,}", line.strip()) if cell]
    return line.split()


def _parens_balanced(text: str) -> bool:
    depth = 0
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def _vmatrix(match: re.Match) -> str:
    """Turn a bar-delimited block into a vmatrix when it looks like one.

    Multi-line content gives one row per line, with columns split on runs of
    two or more spaces (single whitespace when a line has no such run).
    Single-line content separated by runs of 2+ spaces gives one row per
    run. Anything with fewer than two rows, or whose parentheses do not
    balance, is left untouched.
    """
    content = match.group(1)
    if not _parens_balanced(content):
        # The bars belong to different groups, e.g. P(A|B)  +  P(B|A)
        return match.group(0)

    if "\n" in content:
        lines = [line.strip() for line in content.split("\n") if line.strip()]
        rows = [_split_columns(line) for line in lines]
    elif re.search(r"\s{2,}", content.strip()):
        runs = [run for run in re.split(r"\s{2,}", content.strip()) if run]
        rows = [run.split() for run in runs]
    else:
        return match.group(0)

    if len(rows) < 2:
        return match.group(0)

    body = " \\\\ ".join(" & ".join(cells) for cells in rows)
    return f"\\begin{{vmatrix}} {body} \\end{{vmatrix}}"


# ============================================================================
# Pattern building blocks
# ============================================================================

GREEK_LOWER = (
    "alpha", "beta", "gamma", "delta", "epsilon", "zeta", "eta", "theta",
    "iota", "kappa", "lambda", "mu", "nu", "xi", "pi", "rho", "sigma", "tau",
    "upsilon", "phi", "chi", "psi", "omega",
)
GREEK_UPPER = (
    "Gamma", "Delta", "Theta", "Lambda", "Xi", "Pi", "Sigma", "Upsilon",
    "Phi", "Psi", "Omega",
)

# Greek names that take a numeric index, e.g. lambda1 -> \lambda_{1}
SUBSCRIPTED_GREEK = ("alpha", "beta", "theta", "lambda", "mu", "sigma")

NAMED_FUNCTIONS = (
    "arcsin", "arccos", "arctan", "sinh", "cosh", "tanh",
    "sin", "cos", "tan", "sec", "csc", "cot", "log", "ln", "exp",
)

# One bracketed matrix row: [a, b, c]
_ROW = r"\[([^\[\]]+)\]"

# A bar that is not part of \left| / \right| / \|
_BAR = r"(?<!\\left)(?<!\\right)(?<!\\)\|"

# Bar content may hold whole parenthesised groups but never cross a paren,
# so P(A|B) keeps its bars
_BAR_CONTENT = r"(?:[^|\n()]|\([^|\n()]*\))+?"

# Parenthesised content with up to two levels of nesting
_PAREN_1 = r"\([^()]*\)"
_BALANCED = rf"(?:[^()]|\((?:[^()]|{_PAREN_1})*\))*"

_GREEK = "|".join(GREEK_LOWER + GREEK_UPPER)


# ============================================================================
# The ordered rule list
# ============================================================================

LATEX_RULES: Tuple[RewriteRule, ...] = (
    # 1. Matrix literals, before any superscript/subscript rule touches them.
    # The loose form runs last so it cannot steal the double-bracket forms.
    _rule("matrix_3x", r"\[" + _ROW + r"\s*,\s*" + _ROW + r"\s*,\s*" + _ROW + r"\]", _bmatrix),
    _rule("matrix_2x", r"\[" + _ROW + r"\s*,\s*" + _ROW + r"\]", _bmatrix),
    _rule("matrix_loose", _ROW + "," + _ROW, _bmatrix),
    # 2. Superscript / subscript grouping
    _rule("superscript", r"(\^)(-?\d+|[a-zA-Z])", _braced),
    _rule("subscript", r"(_)(-?\d+|[a-zA-Z])", _braced),
    # 3. Matrix operation shorthand for single uppercase operands
    _rule("transpose", r"\b([A-Z])T\b", lambda m: f"{m.group(1)}^T"),
    _rule("inverse", r"\b([A-Z])-1\b", lambda m: f"{m.group(1)}^{{-1}}"),
    # 4. Greek letters and operators
    _rule("greek", rf"(?<![\\A-Za-z])({_GREEK})(?![A-Za-z])", _control_word),
    _rule("iff", r"\bif and only if\b", "\\iff"),
    _rule("plus_minus", r"\+-[ \t]*", "\\pm "),
    _rule("minus_plus", r"-\+[ \t]*", "\\mp "),
    _rule("infinity", r"(?<!\\)\binfinity\b", "\\infty"),
    _rule("inf", r"(?<!\\)\binf\b", "\\infty"),
    _rule("leq", r"<=(?!>)[ \t]*", "\\leq "),
    _rule("geq", r">=[ \t]*", "\\geq "),
    _rule("approx_word", r"(?<!\\)\bapprox\b", "\\approx"),
    _rule("approx", r"~=[ \t]*", "\\approx "),
    _rule("neq_words", r"\bnot equal\b", "\\neq"),
    _rule("neq", r"!=[ \t]*", "\\neq "),
    # 5. Named functions; sqrt's closing parenthesis becomes the brace closer
    _rule("functions", rf"(?<!\\)\b({'|'.join(NAMED_FUNCTIONS)})\(", lambda m: f"\\{m.group(1)}("),
    _rule("sqrt", rf"(?<!\\)\bsqrt\(({_BALANCED})\)", lambda m: f"\\sqrt{{{m.group(1)}}}"),
    _rule("big_operators", r"(?<!\\)\b(lim|sum|int)\b", _control_word),
    # 6. Fractions
    _rule("fraction", r"(?<![\d.])(\d+)/(\d+)(?!\.?\d)", lambda m: f"\\frac{{{m.group(1)}}}{{{m.group(2)}}}"),
    _rule("paren_fraction", r"\(([^()]+)\)/\(([^()]+)\)", lambda m: f"\\frac{{{m.group(1)}}}{{{m.group(2)}}}"),
    # 7. Determinants, absolute values and vectors
    _rule("vmatrix", _BAR + r"([^|]+)" + _BAR, _vmatrix),
    _rule("absolute_value", _BAR + rf"[ \t]*({_BAR_CONTENT})[ \t]*" + _BAR, lambda m: f"\\left| {m.group(1)} \\right|"),
    _rule("det_call", r"(?<!\\)\bdet\s*\(", "\\det("),
    _rule("det", r"(?<!\\)\bdet\b", "\\det"),
    _rule("bold", r"(?<!\\)\bbold\s+([a-zA-Z])(?![A-Za-z])", lambda m: f"\\mathbf{{{m.group(1)}}}"),
    _rule("vector", r"(?<!\\)\bvec\s+([a-zA-Z])(?![A-Za-z])", lambda m: f"\\vec{{{m.group(1)}}}"),
    # 8. Number sets
    _rule("number_sets", r"(?<![\\{])\b([RNZQC])\b(?!})", lambda m: f"\\mathbb{{{m.group(1)}}}"),
    # 9. Probability operators
    _rule("probability", r"(?<![\\{])\bP\(", "\\mathrm{P}("),
    _rule("expectation", r"(?<![\\{])\bE\[", "\\mathrm{E}["),
    _rule("variance", r"(?<![\\{])\bVar\(", "\\mathrm{Var}("),
    # 10. Indexed Greek symbols, matched on the Greek pass output
    _rule(
        "greek_index",
        rf"\\({'|'.join(SUBSCRIPTED_GREEK)})(\d+)",
        lambda m: f"\\{m.group(1)}_{{{m.group(2)}}}",
    ),
    _rule("matrix_env_open", r"(?<![\\A-Za-z])matrix\s*:", "$$\\begin{pmatrix}"),
    _rule("matrix_env_close", r"\bend matrix\b", "\\end{pmatrix}$$"),
    # 11. Collapse doubled display-math wrapping
    _rule("display_cleanup", r"\$\$\$\$([^$]+)\$\$\$\$", lambda m: f"$${m.group(1)}$$"),
)


def rule_names(rules: Iterable[RewriteRule] = LATEX_RULES) -> Tuple[str, ...]:
    """Names of the rules, in application order."""
    return tuple(rule.name for rule in rules)


def apply_rules(text: str, rules: Iterable[RewriteRule] = LATEX_RULES) -> str:
    """Fold the rules over text, each applied once, in order."""
    for rule in rules:
        text = rule.apply(text)
    return text


def convert_to_latex(text: str) -> str:
    """Convert shorthand math notation in text to LaTeX.

    Total and pure: text with no recognizable shorthand is returned
    unchanged.

    Args:
        text: Free-form question or option text

    Returns:
        Text with LaTeX markup
    """
    if not text:
        return text

    converted = apply_rules(text)
    if converted != text:
        logger.debug("LaTeX conversion changed %d -> %d chars", len(text), len(converted))
    return converted
