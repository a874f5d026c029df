"""Translate a parsed query tree into a search-backend `query_string`.

Every field has one rule mapping `(operator, value)` to a clause:

- level      exact match on `level.keyword`, value uppercased
- message    phrase match on `message`
- text, raw  phrase match on `raw`
- source     exact match on `source.keyword`
- timestamp  range on `timestamp`

Equality and CONTAINS select the clause; NEQ and NOT_CONTAINS negate it.
"""
from __future__ import annotations

from collections.abc import Callable
from functools import partial
from typing import assert_never

from .ast import Binary, Condition, ConditionOperator, Negation, Node
from .errors import QueryTranslationError
from .timestamps import format_instant, try_parse_timestamp

POSITIVE_OPERATORS = frozenset({ConditionOperator.EQ, ConditionOperator.CONTAINS})
NEGATIVE_OPERATORS = frozenset({ConditionOperator.NEQ, ConditionOperator.NOT_CONTAINS})

# operator -> (open bracket, lower, upper, close bracket); "{}" marks the bound
RANGE_TEMPLATES: dict[ConditionOperator, tuple[str, str, str, str]] = {
    ConditionOperator.EQ: ("[", "{}", "{}", "]"),
    ConditionOperator.GTE: ("[", "{}", "*", "]"),
    ConditionOperator.GT: ("{", "{}", "*", "}"),
    ConditionOperator.LTE: ("[", "*", "{}", "]"),
    ConditionOperator.LT: ("{", "*", "{}", "}"),
}


def escape_phrase(value: str | None) -> str:
    """Backslash-escape backslashes and double quotes for a quoted clause."""
    if value is None:
        return ""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _phrase_clause(
    target: str,
    normalize: Callable[[str], str] | None,
    condition: Condition,
) -> str:
    value = normalize(condition.value) if normalize else condition.value
    clause = f'{target}:"{escape_phrase(value)}"'
    if condition.operator in POSITIVE_OPERATORS:
        return clause
    if condition.operator in NEGATIVE_OPERATORS:
        return f"NOT ({clause})"
    raise QueryTranslationError(
        f"Operator {condition.operator.value} is not supported for field '{condition.field}'",
        field=condition.field,
    )


def _range_clause(target: str, condition: Condition) -> str:
    template = RANGE_TEMPLATES.get(condition.operator)
    if template is None:
        raise QueryTranslationError(
            f"Operator {condition.operator.value} is not supported for field '{condition.field}'",
            field=condition.field,
        )

    if not condition.value or not condition.value.strip():
        raise QueryTranslationError("Timestamp value cannot be empty", field=condition.field)
    moment = try_parse_timestamp(condition.value)
    if moment is None:
        raise QueryTranslationError(
            f"Timestamp value '{condition.value}' is not in a supported format",
            field=condition.field,
        )

    iso = format_instant(moment)
    opening, lower, upper, closing = template
    return f"{target}:{opening}{lower.format(iso)} TO {upper.format(iso)}{closing}"


FIELD_RULES: dict[str, Callable[[Condition], str]] = {
    "level": partial(_phrase_clause, "level.keyword", str.upper),
    "message": partial(_phrase_clause, "message", None),
    "text": partial(_phrase_clause, "raw", None),
    "raw": partial(_phrase_clause, "raw", None),
    "source": partial(_phrase_clause, "source.keyword", None),
    "timestamp": partial(_range_clause, "timestamp"),
}


def translate_condition(condition: Condition) -> str:
    """Translate a single field condition into a query-string clause."""
    rule = FIELD_RULES.get(condition.field)
    if rule is None:
        raise QueryTranslationError(
            f"Unsupported field '{condition.field}'", field=condition.field
        )
    return rule(condition)


def translate(node: Node) -> str:
    """Recursively render an expression tree."""
    match node:
        case Condition():
            return translate_condition(node)
        case Negation(child=child):
            return f"NOT ({translate(child)})"
        case Binary(left=left, right=right, operator=operator):
            return f"({translate(left)} {operator.value} {translate(right)})"
        case _:
            assert_never(node)


def translate_root(node: Node) -> str:
    """Render the root of a tree, without the redundant outer parentheses."""
    if isinstance(node, Binary):
        return f"{translate(node.left)} {node.operator.value} {translate(node.right)}"
    return translate(node)
