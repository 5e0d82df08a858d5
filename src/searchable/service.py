"""Service applying search predicates to SQLAlchemy queries."""

from typing import Any, Mapping, Optional, Sequence, Union

from loguru import logger
from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession

from searchable.adapter import Bind, ConnectionInfo, SelectQueryAdapter, SQLAlchemyConnectionInfo
from searchable.conditions import ConditionBuilder
from searchable.config import ConfigManager, SearchableConfig
from searchable.dialect import CapabilityCache, Dialect, DialectProbe, default_capability_cache
from searchable.escaping import PatternEscaper
from searchable.expressions import ExpressionNode
from searchable.fields import FieldResolver, FieldSpec, RelationSpec, Weight
from searchable.modes import SearchModes
from searchable.ranked import RankedPredicate, RankedSearch


class SearchService:
    """Applies search modes to ``Select`` statements.

    Every method validates its fields before touching the statement and returns
    a new statement; the one passed in is left as is.

    Args:
        connection: ConnectionInfo, or a SQLAlchemy Engine/Connection/Session to wrap
        app_config: Configuration, defaults to ConfigManager().config
        capability_cache: Cache for the edit distance capability, defaults to
            the process-wide cache
    """

    def __init__(
        self,
        connection: Union[ConnectionInfo, Bind],
        app_config: Optional[SearchableConfig] = None,
        capability_cache: Optional[CapabilityCache] = None,
    ):
        if not hasattr(connection, "dialect_name"):
            connection = SQLAlchemyConnectionInfo(connection)
        self.connection: ConnectionInfo = connection
        self.config = app_config or ConfigManager().config
        self.capability_cache = (
            capability_cache if capability_cache is not None else default_capability_cache()
        )
        self.escaper = PatternEscaper(self.config.escape_character)
        self.probe = DialectProbe(
            self.connection,
            cache=self.capability_cache,
            distance_function=self.config.distance_function,
        )

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    def condition_builder(self) -> ConditionBuilder:
        return ConditionBuilder(
            self.probe.dialect(),
            self.connection,
            escaper=self.escaper,
            distance_function=self.config.distance_function,
            phonetic_function=self.config.phonetic_function,
        )

    def modes(self, with_capabilities: bool = False) -> SearchModes:
        builder = self.condition_builder()
        has_distance = self.probe.has_extended_distance() if with_capabilities else False
        return SearchModes(builder, has_extended_distance=has_distance)

    def _case_insensitive(self, case_insensitive: Optional[bool]) -> bool:
        return self.config.case_insensitive if case_insensitive is None else case_insensitive

    def _adapter(self, statement: Select, model: Any) -> SelectQueryAdapter:
        return SelectQueryAdapter(statement, self.connection, model=model)

    def _resolve(
        self, adapter: SelectQueryAdapter, fields: Optional[Sequence[str]]
    ) -> FieldSpec:
        return FieldResolver.resolve(fields, adapter.model)

    def _apply(self, adapter: SelectQueryAdapter, mode: str, predicate: ExpressionNode) -> Select:
        logger.debug(f"Applying {mode} predicate: {predicate}")
        adapter.where(predicate)
        return adapter.statement

    # ------------------------------------------------------------------
    # Search modes
    # ------------------------------------------------------------------

    def search(
        self,
        statement: Select,
        term: str,
        fields: Optional[Sequence[str]] = None,
        *,
        model: Any = None,
        case_insensitive: Optional[bool] = None,
    ) -> Select:
        """Rows where any field contains the term."""
        adapter = self._adapter(statement, model)
        resolved = self._resolve(adapter, fields)
        predicate = self.modes().search(term, resolved, self._case_insensitive(case_insensitive))
        return self._apply(adapter, "search", predicate)

    def exact_match(
        self,
        statement: Select,
        term: str,
        fields: Optional[Sequence[str]] = None,
        *,
        model: Any = None,
    ) -> Select:
        """Rows where any field equals the term."""
        adapter = self._adapter(statement, model)
        resolved = self._resolve(adapter, fields)
        predicate = self.modes().exact_match(term, resolved)
        return self._apply(adapter, "exact", predicate)

    def keyword_search(
        self,
        statement: Select,
        term: str,
        fields: Optional[Sequence[str]] = None,
        *,
        model: Any = None,
        case_insensitive: Optional[bool] = None,
    ) -> Select:
        """Rows where any field contains any keyword of the term."""
        adapter = self._adapter(statement, model)
        resolved = self._resolve(adapter, fields)
        predicate = self.modes().keyword_search(
            term, resolved, self._case_insensitive(case_insensitive)
        )
        return self._apply(adapter, "keyword", predicate)

    def search_across(
        self,
        statement: Select,
        term: str,
        relations: RelationSpec,
        fields: Optional[Sequence[str]] = None,
        *,
        by_keywords: bool = False,
        model: Any = None,
        case_insensitive: Optional[bool] = None,
    ) -> Select:
        """Rows matching on their own fields or through any related record.

        Args:
            statement: Base query
            term: Search term
            relations: Relationship name to the related entity's fields
            fields: Fields of the base entity, defaults to its searchable fields
            by_keywords: Split the term into keywords for the base entity only
            model: Mapped class owning the relationships
            case_insensitive: Override the configured default
        """
        adapter = self._adapter(statement, model)
        resolved = self._resolve(adapter, fields)
        predicate = self.modes().search_across(
            term,
            resolved,
            relations,
            by_keywords=by_keywords,
            case_insensitive=self._case_insensitive(case_insensitive),
        )
        return self._apply(adapter, "cross-relation", predicate)

    def fuzzy_search(
        self,
        statement: Select,
        term: str,
        fields: Optional[Sequence[str]] = None,
        max_distance: Optional[int] = None,
        *,
        model: Any = None,
    ) -> Select:
        """Rows approximately matching the term; see SearchModes.fuzzy_search."""
        adapter = self._adapter(statement, model)
        resolved = self._resolve(adapter, fields)
        distance = self.config.fuzzy_max_distance if max_distance is None else max_distance
        predicate = self.modes(with_capabilities=True).fuzzy_search(term, resolved, distance)
        return self._apply(adapter, "fuzzy", predicate)

    def ranked(self, term: str, weights: Mapping[str, Weight]) -> RankedPredicate:
        """Build the ranked predicate without applying it."""
        ranked_search = RankedSearch(
            self.condition_builder(),
            relevance_column=self.config.relevance_column,
            relevance_suffix=self.config.relevance_suffix,
        )
        return ranked_search.ranked_search(term, weights)

    def ranked_search(
        self,
        statement: Select,
        term: str,
        weights: Mapping[str, Weight],
        *,
        model: Any = None,
    ) -> Select:
        """Matching rows with per-field and total relevance columns, best first.

        Raises:
            MissingWeightsError: If weights is empty
        """
        ranked = self.ranked(term, weights)
        adapter = self._adapter(statement, model)
        for column in ranked.relevance.columns:
            adapter.add_column(column.label, column.expression)
        adapter.add_column(ranked.relevance.total_label, ranked.relevance.total)
        adapter.order_by_desc(ranked.relevance.total_label)
        return self._apply(adapter, "ranked", ranked.predicate)

    # ------------------------------------------------------------------
    # Async hosts
    # ------------------------------------------------------------------

    async def warm_capabilities(self, session: Union[AsyncSession, AsyncConnection]) -> bool:
        """Probe capabilities through an async session, filling the shared cache.

        Later builds read the cache and never probe on their own.
        """

        def _probe(sync_bind) -> bool:
            probe = DialectProbe(
                SQLAlchemyConnectionInfo(sync_bind),
                cache=self.capability_cache,
                distance_function=self.config.distance_function,
            )
            return probe.has_extended_distance()

        available = await session.run_sync(_probe)
        logger.debug(f"Capabilities warmed for {self.dialect.value}: distance={available}")
        return available

    @property
    def dialect(self) -> Dialect:
        return self.probe.dialect()
