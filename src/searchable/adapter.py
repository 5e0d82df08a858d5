"""Contracts with the host query layer, and their SQLAlchemy implementations.

- ConnectionInfo: dialect identity, capability probe, literal/identifier quoting
- QueryAdapter: attaching predicates, output columns and ordering to a query
"""

from typing import Any, Optional, Protocol, Union

from loguru import logger
from sqlalchemy import Connection, Engine, Select, String, desc, literal_column, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import RelationshipProperty, Session
from sqlalchemy.sql.elements import ColumnElement

from searchable.expressions import ExpressionNode
from searchable.renderer import SQLRenderer

Bind = Union[Engine, Connection, Session]


class ConnectionInfo(Protocol):
    """What the search engine needs to know about the active connection."""

    def dialect_name(self) -> Optional[str]:
        """Driver-level dialect identifier (e.g. 'postgresql'), None if unknown."""
        ...

    def probe(self, sql: str) -> Optional[Any]:
        """Run a read-only scalar query; None when it could not be run."""
        ...

    def quote_literal(self, value: str) -> Optional[str]:
        """Quote a string literal natively; None when no native facility exists."""
        ...

    def quote_identifier(self, name: str) -> str:
        """Quote a possibly dotted identifier per dialect rules."""
        ...


class SQLAlchemyConnectionInfo:
    """ConnectionInfo backed by a SQLAlchemy Engine, Connection or Session."""

    def __init__(self, bind: Bind):
        self.bind = bind

    @property
    def dialect(self):
        if isinstance(self.bind, Session):
            session_bind = self.bind.get_bind()
            return session_bind.dialect
        return self.bind.dialect

    def dialect_name(self) -> Optional[str]:
        try:
            return self.dialect.name
        except (AttributeError, SQLAlchemyError) as e:
            logger.error(f"Unable to read dialect from bind {self.bind!r}: {e}")
            return None

    def probe(self, sql: str) -> Optional[Any]:
        try:
            if isinstance(self.bind, Engine):
                with self.bind.connect() as connection:
                    return connection.execute(text(sql)).scalar()
            return self.bind.execute(text(sql)).scalar()
        except SQLAlchemyError as e:
            logger.warning(f"Capability probe failed, treating as unavailable: {e}")
            return None

    def quote_literal(self, value: str) -> Optional[str]:
        dialect = self.dialect
        if String().literal_processor(dialect=dialect) is None:
            return None

        compiler = dialect.statement_compiler(dialect, None)
        quoted = compiler.render_literal_value(value, String())
        # String literals come back with % doubled for format paramstyles, and
        # literal_column doubles them again at compile time. _double_percents is
        # private SQLAlchemy API, pinned by test_percent_doubling_flag_per_dialect.
        if dialect.identifier_preparer._double_percents:
            quoted = quoted.replace("%%", "%")
        return quoted

    def quote_identifier(self, name: str) -> str:
        preparer = self.dialect.identifier_preparer
        return ".".join(preparer.quote(part) for part in name.split("."))


class QueryAdapter(Protocol):
    """What the search engine needs from the host's query builder."""

    def render(self, node: ExpressionNode) -> Any:
        """Turn an expression tree into a host condition or expression."""
        ...

    def where(self, predicate: ExpressionNode) -> None:
        """AND-attach a predicate."""
        ...

    def add_column(self, label: str, expression: ExpressionNode) -> None:
        """Add a computed output column."""
        ...

    def order_by_desc(self, label: str) -> None:
        """Order by an output column, descending."""
        ...

    def related(self, relation: str, condition: Any) -> Any:
        """Condition: at least one related record matches."""
        ...

    def qualify(self, relation: str, field: str) -> str:
        """Qualify a bare field name with the relation's table."""
        ...


class SelectQueryAdapter:
    """QueryAdapter for a SQLAlchemy ``Select``.

    ``Select`` is generative, so every change replaces ``self.statement`` and
    the caller's original statement is never modified.

    Args:
        statement: Base query
        connection: ConnectionInfo used for identifier and literal quoting
        model: Mapped class owning the relationships named in relation searches.
            Defaults to the first mapped entity selected by the statement.
    """

    def __init__(self, statement: Select, connection: ConnectionInfo, model: Any = None):
        self.statement = statement
        self.connection = connection
        self.model = model if model is not None else self._primary_entity(statement)
        self.renderer = SQLRenderer(connection, self)

    @staticmethod
    def _primary_entity(statement: Select) -> Any:
        for description in statement.column_descriptions:
            entity = description.get("entity")
            if entity is not None:
                return entity
        return None

    def render(self, node: ExpressionNode) -> ColumnElement:
        return self.renderer.render(node)

    def where(self, predicate: ExpressionNode) -> None:
        self.statement = self.statement.where(self.render(predicate))

    def add_column(self, label: str, expression: ExpressionNode) -> None:
        self.statement = self.statement.add_columns(self.render(expression).label(label))

    def order_by_desc(self, label: str) -> None:
        self.statement = self.statement.order_by(desc(literal_column(label)))

    def _relationship(self, relation: str):
        if self.model is None:
            raise ValueError(f"Cannot search relation '{relation}' without a mapped model")
        attribute = getattr(self.model, relation, None)
        prop = getattr(attribute, "property", None)
        if not isinstance(prop, RelationshipProperty):
            raise ValueError(f"'{relation}' is not a relationship of {self.model!r}")
        return attribute

    def related(self, relation: str, condition: Any) -> ColumnElement:
        attribute = self._relationship(relation)
        if attribute.property.uselist:
            return attribute.any(condition)
        return attribute.has(condition)

    def qualify(self, relation: str, field: str) -> str:
        if "." in field:
            return field
        table = self._relationship(relation).property.mapper.local_table
        return f"{table.name}.{field}"
