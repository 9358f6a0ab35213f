"""Custom exceptions for mdquery."""


class MDQueryError(Exception):
    """Base exception for all mdquery errors."""

    pass


class ConfigError(MDQueryError):
    """Configuration value is missing or invalid."""

    pass


class QueryParseError(MDQueryError):
    """Query text does not match the query grammar."""

    def __init__(self, message: str, position: int = 0):
        """Initialize exception with message and source offset.

        Args:
            message: Human-readable description of the problem.
            position: Character offset in the query text where it was found.
        """
        self.message = message
        self.position = position
        super().__init__(f"Parse error at position {position}: {message}")


class EvaluationError(MDQueryError):
    """Expression could not be evaluated against a single document."""

    pass


class FunctionNotFoundError(EvaluationError):
    """Query calls a function that is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown function: {name}")


class ExtractionError(MDQueryError):
    """Metadata extraction failed for a document."""

    pass
