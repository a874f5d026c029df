"""Expression tree for parsed log queries."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class LogicalOperator(str, Enum):
    """Boolean connectives between two expressions."""

    AND = "AND"
    OR = "OR"


class ConditionOperator(str, Enum):
    """Comparison operators allowed in a field condition."""

    EQ = "EQ"
    NEQ = "NEQ"
    GT = "GT"
    GTE = "GTE"
    LT = "LT"
    LTE = "LTE"
    CONTAINS = "CONTAINS"
    NOT_CONTAINS = "NOT_CONTAINS"


@dataclass(frozen=True)
class Condition:
    """`field <operator> value` leaf."""

    field: str
    operator: ConditionOperator
    value: str


@dataclass(frozen=True)
class Negation:
    """`NOT child`."""

    child: Node


@dataclass(frozen=True)
class Binary:
    """`left AND|OR right`."""

    left: Node
    right: Node
    operator: LogicalOperator


Node = Union[Condition, Negation, Binary]
