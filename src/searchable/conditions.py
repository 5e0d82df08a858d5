"""Primitive search conditions for a given dialect."""

from searchable.adapter import ConnectionInfo
from searchable.dialect import Dialect
from searchable.escaping import PatternEscaper
from searchable.expressions import Call, Comparison, FieldRef, Param, RawFragment


class ConditionBuilder:
    """Builds leaf conditions as expression nodes.

    Values are bound as parameters, except in literal_condition() which emits
    raw SQL for generated expressions.
    """

    def __init__(
        self,
        dialect: Dialect,
        connection: ConnectionInfo,
        escaper: PatternEscaper | None = None,
        distance_function: str = "levenshtein",
        phonetic_function: str = "soundex",
    ):
        self.dialect = dialect
        self.connection = connection
        self.escaper = escaper or PatternEscaper()
        self.distance_function = distance_function
        self.phonetic_function = phonetic_function

    @property
    def has_native_ilike(self) -> bool:
        return self.dialect == Dialect.POSTGRES

    def condition(self, field: str, term: str, case_insensitive: bool = False) -> Comparison:
        """Substring match of term anywhere in field.

        - case sensitive: field LIKE '%term%'
        - case insensitive on Postgres: field ILIKE '%term%'
        - case insensitive elsewhere: lower(field) LIKE lower('%term%')
        """
        pattern = self.escaper.contains_pattern(term)
        escape = self.escaper.escape_character

        if not case_insensitive:
            return Comparison(FieldRef(field), "LIKE", Param(pattern), escape=escape)

        if self.has_native_ilike:
            return Comparison(FieldRef(field), "ILIKE", Param(pattern), escape=escape)

        return Comparison(
            Call("lower", (FieldRef(field),)),
            "LIKE",
            Call("lower", (Param(pattern.lower()),)),
            escape=escape,
        )

    def exact(self, field: str, term: str) -> Comparison:
        """Equality with the bound term, no wildcards."""
        return Comparison(FieldRef(field), "=", Param(term))

    def distance(self, field: str, term: str, max_distance: int) -> Comparison:
        """Edit distance between lower-cased field and term, inclusive bound."""
        return Comparison(
            Call(
                self.distance_function,
                (Call("lower", (FieldRef(field),)), Call("lower", (Param(term),))),
            ),
            "<=",
            Param(max_distance, name="max_distance"),
        )

    def phonetic(self, field: str, term: str) -> Comparison:
        """Phonetic code of field equals phonetic code of term."""
        return Comparison(
            Call(self.phonetic_function, (FieldRef(field),)),
            "=",
            Call(self.phonetic_function, (Param(term),)),
        )

    def literal_condition(self, field: str, term: str) -> RawFragment:
        """Case-insensitive substring test as raw SQL with the pattern quoted inline."""
        column = self.connection.quote_identifier(field)
        escape = self.escaper.quote_literal(self.connection, self.escaper.escape_character)
        pattern = self.escaper.contains_pattern(term)

        if self.has_native_ilike:
            quoted = self.escaper.quote_literal(self.connection, pattern)
            return RawFragment(f"{column} ILIKE {quoted} ESCAPE {escape}")

        quoted = self.escaper.quote_literal(self.connection, pattern.lower())
        return RawFragment(f"LOWER({column}) LIKE {quoted} ESCAPE {escape}")
