"""Builtin query functions and the function registry.

Functions receive the resolved metadata of the document being evaluated and
their already-evaluated arguments. Names are case-insensitive.

Builtins:
    contains(value, item)       substring / element / key test
    date(value)                 date from a date, ISO string, "today" or "now"
    length(value)               length of a list, string or mapping
    lower(value), upper(value)  case conversion
    default(value, fallback)    fallback when value is null
    startswith(value, prefix)   case-insensitive prefix test
    endswith(value, suffix)     case-insensitive suffix test
    choice(cond, a, b)          a if cond is truthy else b
    number(value)               numeric conversion (null if not numeric)
    string(value)               string conversion
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import TYPE_CHECKING, Any, Callable, Optional

from ..core.exceptions import EvaluationError, FunctionNotFoundError
from .values import contains_value, normalize_value, parse_datetime, to_number, truthy

if TYPE_CHECKING:
    from ..metadata.model import DocumentMetadata


# Takes (metadata, evaluated args) and returns a value
QueryFunction = Callable[["DocumentMetadata", list[Any]], Any]


@dataclass
class FunctionRegistration:
    """Registration entry for a query function.

    Attributes:
        function: The implementation.
        min_args: Minimum number of arguments.
        max_args: Maximum number of arguments, None for variadic.
    """

    function: QueryFunction
    min_args: int = 0
    max_args: Optional[int] = None


class FunctionRegistry:
    """Registry of functions callable from query expressions."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._functions: dict[str, FunctionRegistration] = {}

    def register(
        self,
        name: str,
        function: QueryFunction,
        *,
        min_args: int = 0,
        max_args: Optional[int] = None,
        override: bool = False,
    ) -> None:
        """Register a function under a case-insensitive name.

        Raises:
            ValueError: If the name is taken and override is False.
        """
        key = name.lower()
        if key in self._functions and not override:
            raise ValueError(
                f"Function '{key}' is already registered. "
                f"Use override=True to replace."
            )
        self._functions[key] = FunctionRegistration(function, min_args, max_args)

    def unregister(self, name: str) -> bool:
        """Remove a registered function."""
        return self._functions.pop(name.lower(), None) is not None

    def has(self, name: str) -> bool:
        return name.lower() in self._functions

    def names(self) -> list[str]:
        return sorted(self._functions)

    def call(self, name: str, metadata: "DocumentMetadata", args: list[Any]) -> Any:
        """Invoke a function for one document.

        Raises:
            FunctionNotFoundError: If no function has this name.
            EvaluationError: On a wrong argument count or a failing function.
        """
        registration = self._functions.get(name.lower())
        if registration is None:
            raise FunctionNotFoundError(name)

        if len(args) < registration.min_args or (
            registration.max_args is not None and len(args) > registration.max_args
        ):
            raise EvaluationError(
                f"{name}() takes {_arity(registration)} arguments, got {len(args)}"
            )

        try:
            return registration.function(metadata, args)
        except EvaluationError:
            raise
        except Exception as e:
            raise EvaluationError(f"{name}() failed: {e}") from e

    def copy(self) -> "FunctionRegistry":
        """Return an independent registry with the same functions."""
        clone = FunctionRegistry()
        clone._functions = dict(self._functions)
        return clone


def _arity(registration: FunctionRegistration) -> str:
    if registration.max_args is None:
        return f"at least {registration.min_args}"
    if registration.min_args == registration.max_args:
        return str(registration.min_args)
    return f"{registration.min_args} to {registration.max_args}"


# =============================================================================
# Builtins
# =============================================================================


def _fn_contains(metadata: "DocumentMetadata", args: list[Any]) -> bool:
    return contains_value(args[0], args[1])


def _fn_date(metadata: "DocumentMetadata", args: list[Any]) -> Optional[datetime]:
    value = args[0]
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return normalize_value(value)

    text = str(value).strip().lower()
    if text == "today":
        return datetime.combine(date.today(), time.min)
    if text == "now":
        return datetime.now()

    parsed = parse_datetime(text)
    return normalize_value(parsed) if parsed is not None else None


def _fn_length(metadata: "DocumentMetadata", args: list[Any]) -> int:
    value = args[0]
    if isinstance(value, (str, list, tuple, dict)):
        return len(value)
    return 0


def _fn_lower(metadata: "DocumentMetadata", args: list[Any]) -> str:
    return "" if args[0] is None else str(args[0]).lower()


def _fn_upper(metadata: "DocumentMetadata", args: list[Any]) -> str:
    return "" if args[0] is None else str(args[0]).upper()


def _fn_default(metadata: "DocumentMetadata", args: list[Any]) -> Any:
    return args[1] if args[0] is None else args[0]


def _fn_startswith(metadata: "DocumentMetadata", args: list[Any]) -> bool:
    value, prefix = args
    if not isinstance(value, str) or prefix is None:
        return False
    return value.casefold().startswith(str(prefix).casefold())


def _fn_endswith(metadata: "DocumentMetadata", args: list[Any]) -> bool:
    value, suffix = args
    if not isinstance(value, str) or suffix is None:
        return False
    return value.casefold().endswith(str(suffix).casefold())


def _fn_choice(metadata: "DocumentMetadata", args: list[Any]) -> Any:
    condition, if_true, if_false = args
    return if_true if truthy(condition) else if_false


def _fn_number(metadata: "DocumentMetadata", args: list[Any]) -> Any:
    return to_number(args[0])


def _fn_string(metadata: "DocumentMetadata", args: list[Any]) -> str:
    return "" if args[0] is None else str(args[0])


def _register_builtin_functions(registry: FunctionRegistry) -> None:
    """Register built-in query functions."""
    registry.register("contains", _fn_contains, min_args=2, max_args=2)
    registry.register("date", _fn_date, min_args=1, max_args=1)
    registry.register("length", _fn_length, min_args=1, max_args=1)
    registry.register("lower", _fn_lower, min_args=1, max_args=1)
    registry.register("upper", _fn_upper, min_args=1, max_args=1)
    registry.register("default", _fn_default, min_args=2, max_args=2)
    registry.register("startswith", _fn_startswith, min_args=2, max_args=2)
    registry.register("endswith", _fn_endswith, min_args=2, max_args=2)
    registry.register("choice", _fn_choice, min_args=3, max_args=3)
    registry.register("number", _fn_number, min_args=1, max_args=1)
    registry.register("string", _fn_string, min_args=1, max_args=1)


def create_function_registry() -> FunctionRegistry:
    """Create a new registry pre-populated with the builtins."""
    registry = FunctionRegistry()
    _register_builtin_functions(registry)
    return registry


_default_registry: FunctionRegistry | None = None


def get_default_function_registry() -> FunctionRegistry:
    """Get the shared builtin registry.

    Engines that register their own functions should use
    ``create_function_registry()`` instead so extensions stay local.
    """
    global _default_registry
    if _default_registry is None:
        _default_registry = create_function_registry()
    return _default_registry
