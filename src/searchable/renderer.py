"""
Renders expression trees into SQLAlchemy column elements.

All dialect-native SQL text produced by this package passes through here.
"""

from typing import TYPE_CHECKING, Optional, Union

from sqlalchemy import Float, and_, bindparam, func, literal_column, or_, true
from sqlalchemy.sql.elements import ColumnElement

from searchable.expressions import (
    BooleanGroup,
    Call,
    CaseWhen,
    Comparison,
    Connective,
    ExpressionNode,
    FieldRef,
    Param,
    RawFragment,
    RelationMatch,
    Sum,
)

if TYPE_CHECKING:  # pragma: no cover
    from searchable.adapter import ConnectionInfo, QueryAdapter


def format_number(value: Union[int, float]) -> str:
    """Format a validated numeric weight as a SQL numeric literal."""
    if isinstance(value, int):
        return str(value)
    return repr(float(value))


class SQLRenderer:
    """Renders expression nodes for one connection.

    Args:
        connection: Supplies identifier quoting
        adapter: Resolves RelationMatch nodes; optional when no relation is rendered
    """

    def __init__(self, connection: "ConnectionInfo", adapter: Optional["QueryAdapter"] = None):
        self.connection = connection
        self.adapter = adapter

    def render(self, node: ExpressionNode, scope: Optional[str] = None) -> ColumnElement:
        """
        Render an expression node.

        Args:
            node: Expression tree
            scope: Relation whose table qualifies bare field names

        Returns:
            SQLAlchemy column element
        """
        if isinstance(node, FieldRef):
            return literal_column(self.connection.quote_identifier(self._qualified(node.name, scope)))

        elif isinstance(node, Param):
            return bindparam(node.name, node.value, unique=True)

        elif isinstance(node, Call):
            arguments = [self.render(argument, scope) for argument in node.arguments]
            return getattr(func, node.function)(*arguments)

        elif isinstance(node, Comparison):
            return self._render_comparison(node, scope)

        elif isinstance(node, BooleanGroup):
            children = [self.render(child, scope) for child in node.children]
            if not children:
                return true()
            if node.connective == Connective.OR:
                return or_(*children)
            return and_(*children)

        elif isinstance(node, RelationMatch):
            if self.adapter is None:
                raise ValueError(f"Rendering relation '{node.relation}' requires a query adapter")
            condition = self.render(node.condition, scope=node.relation)
            return self.adapter.related(node.relation, condition)

        elif isinstance(node, (RawFragment, CaseWhen, Sum)):
            sql = self.to_sql(node)
            if isinstance(node, RawFragment):
                return literal_column(sql)
            return literal_column(sql, type_=Float())

        else:
            raise ValueError(f"Unknown expression type: {type(node)}")

    def _qualified(self, name: str, scope: Optional[str]) -> str:
        if scope is None or self.adapter is None:
            return name
        return self.adapter.qualify(scope, name)

    def _render_comparison(self, node: Comparison, scope: Optional[str]) -> ColumnElement:
        left = self.render(node.left, scope)
        right = self.render(node.right, scope)
        operator = node.operator.upper()

        if operator == "LIKE":
            return left.like(right, escape=node.escape)
        elif operator == "ILIKE":
            return left.ilike(right, escape=node.escape)
        elif operator == "=":
            return left == right
        elif operator == "<=":
            return left <= right
        else:
            return left.op(node.operator, is_comparison=True)(right)

    def to_sql(self, node: ExpressionNode) -> str:
        """Render raw-SQL nodes (RawFragment, CaseWhen, Sum) to a string."""
        if isinstance(node, RawFragment):
            return node.sql
        elif isinstance(node, CaseWhen):
            return (
                f"CASE WHEN {node.condition.sql} "
                f"THEN {format_number(node.then)} "
                f"ELSE {format_number(node.otherwise)} END"
            )
        elif isinstance(node, Sum):
            return "(" + " + ".join(self.to_sql(term) for term in node.terms) + ")"
        else:
            raise ValueError(f"Cannot render {type(node).__name__} as raw SQL")
