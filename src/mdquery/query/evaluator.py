"""Expression evaluation against resolved document metadata.

``evaluate`` walks an expression tree and returns a value; ``evaluate_bool``
applies query truthiness on top. Comparisons normalize both sides first, so
``due > "2024-01-01"`` compares dates and ``status = "Open"`` matches
``open``.

Null handling: when either side of a comparison is null, ``=`` is true only
if both are null and ``!=`` is true only if the left side is present and
the right side is null. Every other operator is false.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from ..core.exceptions import EvaluationError
from .ast import (
    Comparison,
    ComparisonOperator,
    Expression,
    FieldRef,
    FunctionCall,
    Literal,
    Logical,
    LogicalOperator,
    Not,
)
from .functions import FunctionRegistry, get_default_function_registry
from .values import coerce_pair, contains_value, normalize_value, truthy

if TYPE_CHECKING:
    from ..metadata.model import DocumentMetadata

# Field heads that never come from frontmatter or inline fields
_IMPLICIT_HEADS = frozenset({"file", "task", "today", "now"})


def compare_values(left: Any, operator: ComparisonOperator, right: Any) -> bool:
    """Compare two resolved values.

    Args:
        left: Value of the left operand (usually a field).
        operator: Comparison operator.
        right: Value of the right operand (usually a literal).

    Returns:
        Result of the comparison. Values that cannot be ordered against
        each other compare as False.
    """
    if left is None or right is None:
        if operator is ComparisonOperator.EQ:
            return left is None and right is None
        if operator is ComparisonOperator.NEQ:
            return left is not None and right is None
        return False

    if operator is ComparisonOperator.CONTAINS:
        return contains_value(left, right)

    left, right = coerce_pair(_normalize(left), _normalize(right))

    if operator is ComparisonOperator.EQ:
        return left == right
    if operator is ComparisonOperator.NEQ:
        return left != right

    try:
        if operator is ComparisonOperator.GT:
            return left > right
        if operator is ComparisonOperator.LT:
            return left < right
        if operator is ComparisonOperator.GTE:
            return left >= right
        if operator is ComparisonOperator.LTE:
            return left <= right
    except TypeError:
        return False

    raise EvaluationError(f"Unsupported operator: {operator}")


def _normalize(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [normalize_value(item) for item in value]
    return normalize_value(value)


def evaluate(
    expression: Expression,
    metadata: "DocumentMetadata",
    functions: Optional[FunctionRegistry] = None,
) -> Any:
    """Evaluate an expression for one document.

    Args:
        expression: Expression node.
        metadata: Resolved metadata of the document (or task row).
        functions: Function registry, defaults to the builtins.

    Returns:
        The expression value. Comparisons and boolean nodes return bool.

    Raises:
        EvaluationError: If a field path is malformed or a function fails.
    """
    if functions is None:
        functions = get_default_function_registry()

    if isinstance(expression, Literal):
        return expression.value

    if isinstance(expression, FieldRef):
        return metadata.resolve(expression.name)

    if isinstance(expression, Comparison):
        left = evaluate(expression.field, metadata, functions)
        right = evaluate(expression.value, metadata, functions)
        return compare_values(left, expression.operator, right)

    if isinstance(expression, Logical):
        operands = (evaluate_bool(operand, metadata, functions) for operand in _chain(expression))
        if expression.op is LogicalOperator.AND:
            return all(operands)
        return any(operands)

    if isinstance(expression, Not):
        return not evaluate_bool(expression.inner, metadata, functions)

    if isinstance(expression, FunctionCall):
        args = [evaluate(arg, metadata, functions) for arg in expression.args]
        return functions.call(expression.name, metadata, args)

    raise EvaluationError(f"Unknown expression node: {type(expression).__name__}")


def evaluate_bool(
    expression: Expression,
    metadata: "DocumentMetadata",
    functions: Optional[FunctionRegistry] = None,
) -> bool:
    """Evaluate an expression in boolean context."""
    return truthy(evaluate(expression, metadata, functions))


def required_fields(expression: Optional[Expression]) -> set[str]:
    """Plain fields a document must define for the expression to hold.

    Only top-level AND conjuncts are considered. A conjunct requires its
    field when a missing value would make it false: a bare field, or a
    comparison with the field on the left, except ``= null`` and
    ``= <field>``.

    Args:
        expression: WHERE expression, or None.

    Returns:
        Lowercase top-level field names, safe to intersect with the
        field index.
    """
    if expression is None:
        return set()

    if isinstance(expression, Logical) and expression.op is LogicalOperator.AND:
        return set().union(*(required_fields(operand) for operand in _chain(expression)))

    if isinstance(expression, FieldRef):
        return _plain_field(expression.name)

    if isinstance(expression, Comparison) and isinstance(expression.field, FieldRef):
        if expression.operator is ComparisonOperator.EQ and not (
            isinstance(expression.value, Literal) and expression.value.value is not None
        ):
            return set()
        return _plain_field(expression.field.name)

    return set()


def _chain(expression: Logical) -> list[Expression]:
    """Operands of a left-nested run of one logical operator, left to right.

    The parser builds ``a AND b AND c`` as ``(a AND b) AND c``.
    """
    rights: list[Expression] = []
    node: Expression = expression
    while isinstance(node, Logical) and node.op is expression.op:
        rights.append(node.right)
        node = node.left
    return [node, *reversed(rights)]


def _plain_field(name: str) -> set[str]:
    head = name.split(".", 1)[0].lower()
    if not head or head in _IMPLICIT_HEADS:
        return set()
    return {head}
