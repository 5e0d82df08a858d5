"""
Field resolution for search predicates.

Decides which fields (or weighted fields) a search call covers.
"""

import math
from numbers import Real
from typing import ClassVar, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

from searchable.errors import InvalidWeightError, MissingFieldsError, MissingWeightsError

FieldSpec = list[str]
Weight = Union[int, float]
WeightMap = dict[str, Weight]
RelationSpec = Mapping[str, Sequence[str]]


@runtime_checkable
class Searchable(Protocol):
    """An entity type that knows its own default search fields."""

    @classmethod
    def searchable_fields(cls) -> Sequence[str]: ...


class SearchableMixin:
    """Declarative model mixin exposing ``__searchable__`` as default fields.

    Example:
        class User(SearchableMixin, Base):
            __tablename__ = "users"
            __searchable__ = ["name", "email"]
    """

    __searchable__: ClassVar[Sequence[str]] = ()

    @classmethod
    def searchable_fields(cls) -> Sequence[str]:
        return list(cls.__searchable__)


class FieldResolver:
    """Resolves the effective field list or weight map for a call."""

    @staticmethod
    def resolve(
        explicit_fields: Optional[Sequence[str]] = None,
        model: Optional[Searchable] = None,
    ) -> FieldSpec:
        """
        Resolve the fields a search should cover.

        Args:
            explicit_fields: Fields passed by the caller, used verbatim when non-empty.
                A single field name may be passed as a plain string.
            model: Entity providing default fields through searchable_fields()

        Returns:
            A new list of field identifiers

        Raises:
            MissingFieldsError: If neither source yields a field
        """
        if isinstance(explicit_fields, str):
            explicit_fields = [explicit_fields]
        if explicit_fields:
            return list(explicit_fields)

        if model is not None and isinstance(model, Searchable):
            defaults = model.searchable_fields()
            if defaults:
                return list(defaults)

        raise MissingFieldsError()

    @staticmethod
    def resolve_weights(weights: Optional[Mapping[str, Weight]]) -> WeightMap:
        """Validate a weight map, keeping insertion order."""
        if not weights:
            raise MissingWeightsError()

        resolved: WeightMap = {}
        for field, weight in weights.items():
            # bool is a Real subclass but never a meaningful weight
            if (
                isinstance(weight, bool)
                or not isinstance(weight, Real)
                or not math.isfinite(weight)
                or weight <= 0
            ):
                raise InvalidWeightError(field, weight)
            resolved[field] = weight
        return resolved


def split_keywords(term: str) -> list[str]:
    """Split a search term on whitespace, dropping empty tokens."""
    return [keyword for keyword in term.split() if keyword]
