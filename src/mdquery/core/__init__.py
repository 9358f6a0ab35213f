"""Core types, configuration and exceptions for mdquery."""

from .config import Config, QueryCacheConfig, TaskConfig
from .exceptions import (
    ConfigError,
    EvaluationError,
    ExtractionError,
    FunctionNotFoundError,
    MDQueryError,
    QueryParseError,
)
from .protocols import LinkBuilder, MetadataExtractor, TextReader
from .types import Document, QueryKind, QueryResult, ResultRow, TaskItem

__all__ = [
    # Config
    "Config",
    "QueryCacheConfig",
    "TaskConfig",
    # Exceptions
    "ConfigError",
    "EvaluationError",
    "ExtractionError",
    "FunctionNotFoundError",
    "MDQueryError",
    "QueryParseError",
    # Protocols
    "LinkBuilder",
    "MetadataExtractor",
    "TextReader",
    # Types
    "Document",
    "QueryKind",
    "QueryResult",
    "ResultRow",
    "TaskItem",
]
