"""
Search modes composing leaf conditions into a single predicate.

Every mode expects an already resolved, non-empty field list.
"""

from typing import Sequence

from loguru import logger

from searchable.conditions import ConditionBuilder
from searchable.dialect import Dialect
from searchable.errors import MissingFieldsError
from searchable.expressions import BooleanGroup, ExpressionNode, RelationMatch, any_of
from searchable.fields import RelationSpec, split_keywords


class SearchModes:
    """The five predicate-building search algorithms.

    Args:
        builder: ConditionBuilder for the active dialect
        has_extended_distance: Whether the edit distance function is usable
    """

    def __init__(self, builder: ConditionBuilder, has_extended_distance: bool = False):
        self.builder = builder
        self.has_extended_distance = has_extended_distance

    @property
    def dialect(self) -> Dialect:
        return self.builder.dialect

    def search(
        self, term: str, fields: Sequence[str], case_insensitive: bool = False
    ) -> BooleanGroup:
        """Any field contains the term."""
        return any_of(*(self.builder.condition(field, term, case_insensitive) for field in fields))

    def exact_match(self, term: str, fields: Sequence[str]) -> BooleanGroup:
        """Any field equals the term."""
        return any_of(*(self.builder.exact(field, term) for field in fields))

    def keyword_search(
        self, term: str, fields: Sequence[str], case_insensitive: bool = False
    ) -> BooleanGroup:
        """Any field contains any whitespace-separated keyword of the term."""
        keywords = split_keywords(term)
        if not keywords:
            logger.debug("Keyword search term has no keywords, predicate is unconstrained")

        return any_of(
            *(
                self.builder.condition(field, keyword, case_insensitive)
                for field in fields
                for keyword in keywords
            )
        )

    def search_across(
        self,
        term: str,
        fields: Sequence[str],
        relations: RelationSpec,
        by_keywords: bool = False,
        case_insensitive: bool = False,
    ) -> BooleanGroup:
        """Base fields (optionally keyword-split) or any related record containing the term.

        Relation fields are always matched against the whole term.
        """
        if by_keywords:
            base = self.keyword_search(term, fields, case_insensitive)
        else:
            base = self.search(term, fields, case_insensitive)

        branches: list[ExpressionNode] = [base]
        for relation, relation_fields in relations.items():
            if not relation_fields:
                raise MissingFieldsError(f"No searchable fields given for relation '{relation}'.")
            branches.append(
                RelationMatch(relation, self.search(term, relation_fields, case_insensitive))
            )
        return any_of(*branches)

    def fuzzy_search(self, term: str, fields: Sequence[str], max_distance: int = 5) -> BooleanGroup:
        """Approximate match, degrading with dialect capability.

        - Postgres with the distance function: edit distance <= max_distance
        - Postgres without it: case-insensitive substring
        - other dialects: case-insensitive substring or equal phonetic code
        """
        if max_distance < 0:
            raise ValueError("max_distance must not be negative")

        if self.dialect == Dialect.POSTGRES:
            if self.has_extended_distance:
                return any_of(
                    *(self.builder.distance(field, term, max_distance) for field in fields)
                )
            logger.debug("Edit distance unavailable on Postgres, using substring match")
            return any_of(*(self.builder.condition(field, term, True) for field in fields))

        return any_of(
            *(
                any_of(
                    self.builder.condition(field, term, True),
                    self.builder.phonetic(field, term),
                )
                for field in fields
            )
        )
