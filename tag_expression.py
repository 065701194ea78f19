"""
Boolean tag expressions.

Selects fold-eligible vertices by testing a vertex's tag set against an
expression such as "(fold_1_moved OR fold_2_moved) AND NOT fold_3_static".

================================================================================
GRAMMAR
================================================================================

Operators are the literal words AND, OR and NOT. Evaluation order:

  1. Parentheses are resolved first, left to right. Each top-level group is
     evaluated on its own and stands in for a boolean literal.
  2. OR splits the remaining text at depth 0 (any part true -> true).
  3. AND splits each part (all parts true -> true).
  4. "NOT <rest>" negates the rest.
  5. TRUE / FALSE are literals; anything else is a tag name looked up in the
     vertex's tag set.

Operators only match on word boundaries, so "ANDROID" is a tag name, not
"AND" followed by "ROID".

An empty or all-whitespace expression matches every vertex.

Structurally odd input ("a AND AND b", trailing operators) never raises.
The empty operands it produces are looked up as tag names and are simply
never present. Use validate_expression() for the checks that are reported.

================================================================================
COMPILATION
================================================================================

compile_expression() turns an expression into a predicate closure once and
caches it by string, so a fold over thousands of vertices parses the
expression a single time. A group glued to a word (e.g. "NOT(a)") keeps its
literal meaning: it is looked up as the tag "NOTTRUE" or "NOTFALSE".
"""

from functools import lru_cache
from typing import Callable, Iterable, Optional
import re


TagPredicate = Callable[[Optional[Iterable[str]]], bool]

LITERALS = ("TRUE", "FALSE")

_GROUP_TOKEN = "__group{}__"
_GROUP_TOKEN_RE = re.compile(r"__group(\d+)__")
_OPERATOR_WORD_RE = re.compile(r"\b(?:AND|OR|NOT)\b")
_INVALID_CHAR_RE = re.compile(r"[^a-zA-Z0-9_\s()]")
_TAG_NAME_RE = re.compile(r"\b[a-zA-Z_][a-zA-Z0-9_]*\b")


def evaluate(expression: Optional[str], tags: Optional[Iterable[str]]) -> bool:
    """
    Evaluate an expression against a tag set.

    Args:
        expression: Boolean tag expression (None or blank matches everything)
        tags: Tags of one vertex

    Returns:
        True if the tag set satisfies the expression
    """
    if expression is None or not expression.strip():
        return True
    return compile_expression(expression.strip())(tags)


@lru_cache(maxsize=256)
def compile_expression(expression: str) -> TagPredicate:
    """Compile an expression into a cached predicate over tag sets."""
    if not expression.strip():
        return _constant(True)
    return _compile(expression, [])


def validate_expression(expression: Optional[str]) -> tuple[bool, str]:
    """
    Check an expression for unbalanced parentheses and invalid characters.

    Returns:
        (is_valid, error_message); error_message is "" when valid
    """
    if expression is None or not expression.strip():
        return (True, "")

    expression = expression.strip()

    depth = 0
    for ch in expression:
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
        if depth < 0:
            return (False, "Unbalanced parentheses")
    if depth != 0:
        return (False, "Unbalanced parentheses")

    cleaned = _OPERATOR_WORD_RE.sub("", expression)
    if _INVALID_CHAR_RE.search(cleaned):
        return (False, "Invalid characters in expression")

    return (True, "")


def extract_tag_names(expression: Optional[str]) -> set[str]:
    """Return the tag names referenced by an expression."""
    if expression is None or not expression.strip():
        return set()

    cleaned = _OPERATOR_WORD_RE.sub(" ", expression)
    cleaned = re.sub(r"[()]", " ", cleaned)

    return {
        name for name in _TAG_NAME_RE.findall(cleaned)
        if name not in LITERALS
    }


# =============================================================================
# Compiler
# =============================================================================

def _compile(expr: str, groups: list[TagPredicate]) -> TagPredicate:
    """
    Compile one (sub)expression.

    groups collects the predicates of resolved parenthesis groups; the text
    refers to them through __groupN__ tokens.
    """
    expr = expr.strip()

    while "(" in expr:
        span = _find_group(expr)
        if span is None:
            break  # Malformed parentheses
        start, end = span
        groups.append(_compile(expr[start + 1:end], groups))
        expr = expr[:start] + _GROUP_TOKEN.format(len(groups) - 1) + expr[end + 1:]

    or_parts = _split_by_operator(expr, "OR")
    if len(or_parts) > 1:
        return _any_of([_compile(part, groups) for part in or_parts])

    and_parts = _split_by_operator(expr, "AND")
    if len(and_parts) > 1:
        return _all_of([_compile(part, groups) for part in and_parts])

    if expr.startswith("NOT "):
        return _negate(_compile(expr[4:], groups))

    if expr == "TRUE":
        return _constant(True)
    if expr == "FALSE":
        return _constant(False)

    match = _GROUP_TOKEN_RE.fullmatch(expr)
    if match and int(match.group(1)) < len(groups):
        return groups[int(match.group(1))]

    if any(int(m.group(1)) < len(groups) for m in _GROUP_TOKEN_RE.finditer(expr)):
        return _fused_tag(expr, groups)
    return _tag(expr)


def _find_group(expr: str) -> Optional[tuple[int, int]]:
    """Find the first top-level parenthesis pair as (open_index, close_index)."""
    depth = 0
    start = -1
    for i, ch in enumerate(expr):
        if ch == '(':
            if depth == 0:
                start = i
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth == 0:
                if start >= 0:
                    return (start, i)
                return None
    return None


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == '_'


def _split_by_operator(expr: str, op: str) -> list[str]:
    """Split expr on every depth-0 occurrence of the operator word op."""
    parts = []
    depth = 0
    last_split = 0
    width = len(op)
    i = 0

    while i <= len(expr) - width:
        ch = expr[i]
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1

        if depth == 0 and expr.startswith(op, i):
            valid_before = i == 0 or not _is_word_char(expr[i - 1])
            valid_after = i + width >= len(expr) or not _is_word_char(expr[i + width])
            if valid_before and valid_after:
                parts.append(expr[last_split:i])
                last_split = i + width
                i += width
                continue
        i += 1

    if not parts:
        return [expr]

    parts.append(expr[last_split:])
    return parts


def _constant(value: bool) -> TagPredicate:
    def predicate(tags):
        return value
    return predicate


def _tag(name: str) -> TagPredicate:
    def predicate(tags):
        return tags is not None and name in tags
    return predicate


def _fused_tag(text: str, groups: list[TagPredicate]) -> TagPredicate:
    # A group glued to other characters reads as its literal, e.g. "NOTTRUE"
    def predicate(tags):
        def literal(match):
            index = int(match.group(1))
            if index >= len(groups):
                return match.group(0)
            return "TRUE" if groups[index](tags) else "FALSE"

        name = _GROUP_TOKEN_RE.sub(literal, text)
        return tags is not None and name in tags
    return predicate


def _negate(inner: TagPredicate) -> TagPredicate:
    def predicate(tags):
        return not inner(tags)
    return predicate


def _any_of(parts: list[TagPredicate]) -> TagPredicate:
    def predicate(tags):
        return any(part(tags) for part in parts)
    return predicate


def _all_of(parts: list[TagPredicate]) -> TagPredicate:
    def predicate(tags):
        return all(part(tags) for part in parts)
    return predicate
