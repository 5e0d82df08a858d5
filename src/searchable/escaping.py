"""LIKE pattern escaping and literal quoting."""

from loguru import logger

from searchable.adapter import ConnectionInfo

DEFAULT_ESCAPE_CHARACTER = "\\"


class PatternEscaper:
    """Escapes user input before it is embedded in LIKE patterns or raw SQL."""

    def __init__(self, escape_character: str = DEFAULT_ESCAPE_CHARACTER):
        if len(escape_character) != 1:
            raise ValueError("escape_character must be a single character")
        self.escape_character = escape_character

    def escape_pattern(self, term: str) -> str:
        """Escape LIKE wildcards so they match literally.

        The escape character itself is escaped first, then % and _.
        """
        esc = self.escape_character
        escaped = term.replace(esc, esc + esc)
        for wildcard in ("%", "_"):
            if wildcard != esc:
                escaped = escaped.replace(wildcard, esc + wildcard)
        return escaped

    def contains_pattern(self, term: str) -> str:
        """Substring pattern: %escaped-term%."""
        return f"%{self.escape_pattern(term)}%"

    @staticmethod
    def quote_literal(connection: ConnectionInfo, value: str) -> str:
        """Quote a string literal for raw embedding.

        Uses the connection's native quoting when it has one, otherwise doubles
        single quotes.
        """
        quoted = connection.quote_literal(value)
        if quoted is not None:
            return quoted

        logger.debug("No native literal quoting available, doubling quotes")
        return "'" + value.replace("'", "''") + "'"
