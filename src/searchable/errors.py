"""Typed errors for search predicate construction."""


class SearchableError(Exception):
    """Base exception for all searchable errors."""

    pass


class MissingFieldsError(SearchableError, ValueError):
    """Raised when a search resolves to an empty field list."""

    DEFAULT_MESSAGE = (
        "No searchable fields. Define __searchable__ on the model "
        "or pass fields explicitly."
    )

    def __init__(self, message: str | None = None):
        super().__init__(message or self.DEFAULT_MESSAGE)


class MissingWeightsError(SearchableError, ValueError):
    """Raised when a ranked search is requested with an empty weight map."""

    def __init__(self, message: str | None = None):
        super().__init__(message or "Ranked search requires at least one weighted field.")


class InvalidWeightError(SearchableError, ValueError):
    """Raised when a weight is not a positive number."""

    def __init__(self, field: str, weight: object):
        self.field = field
        self.weight = weight
        super().__init__(f"Weight for field '{field}' must be a positive number, got {weight!r}")


class DialectUnavailableError(SearchableError, RuntimeError):
    """Raised when the connection cannot report which SQL dialect it speaks."""
