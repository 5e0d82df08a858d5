"""
Dialect-aware search predicates for SQLAlchemy queries.

Builds substring, exact, keyword, cross-relation, fuzzy and ranked search
predicates for the dialect of the active connection.
"""

from searchable.adapter import (
    ConnectionInfo,
    QueryAdapter,
    SelectQueryAdapter,
    SQLAlchemyConnectionInfo,
)
from searchable.conditions import ConditionBuilder
from searchable.config import ConfigManager, SearchableConfig
from searchable.dialect import CapabilityCache, Dialect, DialectProbe
from searchable.errors import (
    DialectUnavailableError,
    InvalidWeightError,
    MissingFieldsError,
    MissingWeightsError,
    SearchableError,
)
from searchable.escaping import PatternEscaper
from searchable.fields import FieldResolver, Searchable, SearchableMixin, split_keywords
from searchable.modes import SearchModes
from searchable.ranked import RankedPredicate, RankedSearch, RelevanceExpression
from searchable.service import SearchService

__version__ = "0.1.0"

__all__ = [
    # Adapters
    "ConnectionInfo",
    "QueryAdapter",
    "SelectQueryAdapter",
    "SQLAlchemyConnectionInfo",
    # Building blocks
    "CapabilityCache",
    "ConditionBuilder",
    "Dialect",
    "DialectProbe",
    "FieldResolver",
    "PatternEscaper",
    "Searchable",
    "SearchableMixin",
    "split_keywords",
    # Modes
    "RankedPredicate",
    "RankedSearch",
    "RelevanceExpression",
    "SearchModes",
    "SearchService",
    # Config
    "ConfigManager",
    "SearchableConfig",
    # Errors
    "DialectUnavailableError",
    "InvalidWeightError",
    "MissingFieldsError",
    "MissingWeightsError",
    "SearchableError",
]
