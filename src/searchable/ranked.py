"""Weighted relevance search."""

from dataclasses import dataclass
from typing import Mapping

from searchable.conditions import ConditionBuilder
from searchable.expressions import BooleanGroup, CaseWhen, Sum, any_of
from searchable.fields import FieldResolver, Weight
from searchable.utils import relevance_label


@dataclass(frozen=True)
class RelevanceColumn:
    """One field's contribution to the relevance score."""

    field: str
    label: str
    expression: CaseWhen


@dataclass(frozen=True)
class RelevanceExpression:
    """Per-field relevance columns and their total."""

    columns: tuple[RelevanceColumn, ...]
    total: Sum
    total_label: str


@dataclass(frozen=True)
class RankedPredicate:
    """Matching predicate plus the relevance score that orders the matches."""

    predicate: BooleanGroup
    relevance: RelevanceExpression


class RankedSearch:
    """Builds a scored predicate from a weighted field map.

    Args:
        builder: ConditionBuilder for the active dialect
        relevance_column: Label of the total score column
        relevance_suffix: Suffix of per-field score column labels
    """

    def __init__(
        self,
        builder: ConditionBuilder,
        relevance_column: str = "relevance",
        relevance_suffix: str = "_relevance",
    ):
        self.builder = builder
        self.relevance_column = relevance_column
        self.relevance_suffix = relevance_suffix

    def ranked_search(self, term: str, weights: Mapping[str, Weight]) -> RankedPredicate:
        """
        Build the predicate and relevance expression for a weighted search.

        Args:
            term: Search term
            weights: Field to positive weight, in output column order

        Returns:
            RankedPredicate whose predicate excludes rows matching no field

        Raises:
            MissingWeightsError: If weights is empty
            InvalidWeightError: If a weight is not a positive finite number
            ValueError: If two fields map to the same relevance label
        """
        resolved = FieldResolver.resolve_weights(weights)

        columns: list[RelevanceColumn] = []
        labels: dict[str, str] = {}
        for field, weight in resolved.items():
            label = relevance_label(field, self.relevance_suffix)
            if label in labels or label == self.relevance_column:
                other = labels.get(label, "the total")
                raise ValueError(
                    f"Relevance label '{label}' for field '{field}' collides with {other}"
                )
            labels[label] = f"field '{field}'"
            columns.append(
                RelevanceColumn(
                    field=field,
                    label=label,
                    expression=CaseWhen(self.builder.literal_condition(field, term), then=weight),
                )
            )

        relevance = RelevanceExpression(
            columns=tuple(columns),
            total=Sum(tuple(column.expression for column in columns)),
            total_label=self.relevance_column,
        )
        predicate = any_of(*(self.builder.condition(field, term, True) for field in resolved))
        return RankedPredicate(predicate=predicate, relevance=relevance)
