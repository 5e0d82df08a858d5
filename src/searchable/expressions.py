"""
Expression tree for search predicates.

Nodes are immutable, so two trees built from the same inputs compare equal.
Rendering to SQL happens in searchable.renderer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class Connective(str, Enum):
    """Boolean connective for grouped conditions."""

    AND = "AND"
    OR = "OR"


@dataclass(frozen=True)
class ExpressionNode:
    """Base class for expression nodes."""

    pass


@dataclass(frozen=True)
class FieldRef(ExpressionNode):
    """Field reference (e.g. 'name', 'users.email')."""

    name: str


@dataclass(frozen=True)
class Param(ExpressionNode):
    """Value bound as a query parameter."""

    value: Any
    name: str = "term"


@dataclass(frozen=True)
class Call(ExpressionNode):
    """SQL function call (e.g. lower(name), soundex(:term))."""

    function: str
    arguments: tuple[ExpressionNode, ...]


@dataclass(frozen=True)
class Comparison(ExpressionNode):
    """Binary comparison leaf (LIKE, ILIKE, =, <=)."""

    left: ExpressionNode
    operator: str
    right: ExpressionNode
    escape: str | None = None


@dataclass(frozen=True)
class BooleanGroup(ExpressionNode):
    """AND/OR combination of conditions."""

    connective: Connective
    children: tuple[ExpressionNode, ...] = ()


@dataclass(frozen=True)
class RawFragment(ExpressionNode):
    """Dialect-native SQL embedded verbatim; values must already be quoted."""

    sql: str


@dataclass(frozen=True)
class CaseWhen(ExpressionNode):
    """CASE WHEN <condition> THEN <then> ELSE <otherwise> END."""

    condition: RawFragment
    then: Union[int, float]
    otherwise: Union[int, float] = 0


@dataclass(frozen=True)
class Sum(ExpressionNode):
    """Arithmetic sum of numeric expressions."""

    terms: tuple[ExpressionNode, ...]


@dataclass(frozen=True)
class RelationMatch(ExpressionNode):
    """Rows having at least one related record matching the condition.

    Field references inside the condition belong to the related entity.
    """

    relation: str
    condition: ExpressionNode


def any_of(*children: ExpressionNode) -> BooleanGroup:
    return BooleanGroup(Connective.OR, tuple(children))


def all_of(*children: ExpressionNode) -> BooleanGroup:
    return BooleanGroup(Connective.AND, tuple(children))


def referenced_fields(node: ExpressionNode, include_relations: bool = False) -> set[str]:
    """Collect the field names a predicate tree compares against.

    Fields under a RelationMatch belong to the related entity and are skipped
    unless include_relations is set.
    """
    if isinstance(node, RelationMatch):
        return referenced_fields(node.condition) if include_relations else set()
    if isinstance(node, FieldRef):
        return {node.name}

    found: set[str] = set()
    if isinstance(node, Call):
        children: tuple[ExpressionNode, ...] = node.arguments
    elif isinstance(node, Comparison):
        children = (node.left, node.right)
    elif isinstance(node, BooleanGroup):
        children = node.children
    else:
        children = ()
    for child in children:
        found |= referenced_fields(child, include_relations)
    return found
