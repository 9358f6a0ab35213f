"""Abstract Syntax Tree (AST) definitions for queries.

All nodes are immutable. ``Expression`` is a closed union; evaluation code
dispatches on the concrete node type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from ..core.types import QueryKind


class SortDirection(Enum):
    """Sort direction for SORT clause."""

    ASC = "ASC"
    DESC = "DESC"


class ComparisonOperator(Enum):
    """Comparison operators in WHERE expressions."""

    EQ = "="
    NEQ = "!="
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    CONTAINS = "contains"


class LogicalOperator(Enum):
    """Boolean connectives."""

    AND = "AND"
    OR = "OR"


@dataclass(frozen=True)
class Literal:
    """Literal value (string, number, boolean, null)."""

    value: Any


@dataclass(frozen=True)
class FieldRef:
    """Field reference (e.g., 'status', 'file.name')."""

    name: str


@dataclass(frozen=True)
class Comparison:
    """Comparison (e.g., 'status = "active"', 'priority > 1').

    ``field`` is usually a FieldRef and ``value`` usually a Literal, but
    either side may be any expression, e.g. ``length(tags) > 2``.
    """

    field: "Expression"
    operator: ComparisonOperator
    value: "Expression"


@dataclass(frozen=True)
class Logical:
    """AND / OR of two expressions."""

    op: LogicalOperator
    left: "Expression"
    right: "Expression"


@dataclass(frozen=True)
class Not:
    """Boolean negation."""

    inner: "Expression"


@dataclass(frozen=True)
class FunctionCall:
    """Function call (e.g., 'contains(tags, "bug")')."""

    name: str
    args: tuple["Expression", ...] = ()


Expression = Union[Literal, FieldRef, Comparison, Logical, Not, FunctionCall]


@dataclass(frozen=True)
class Projection:
    """Column in a TABLE query."""

    expression: Expression
    name: str


@dataclass(frozen=True)
class LinkFilter:
    """Link predicates in a FROM clause.

    Attributes:
        to: Notes the candidate must link to (``outgoing-to [[X]]``).
        from_: Notes whose outgoing links select the candidate
            (``[[X]]`` or ``incoming-from [[X]]``).
    """

    to: frozenset[str] = frozenset()
    from_: frozenset[str] = frozenset()

    def __bool__(self) -> bool:
        return bool(self.to or self.from_)


@dataclass(frozen=True)
class FromClause:
    """FROM clause sources."""

    tags: frozenset[str] = frozenset()
    folders: frozenset[str] = frozenset()
    links: LinkFilter = field(default_factory=LinkFilter)

    def is_empty(self) -> bool:
        return not (self.tags or self.folders or self.links)


@dataclass(frozen=True)
class SortKey:
    """SORT clause entry."""

    field: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class Query:
    """Complete query AST."""

    kind: QueryKind
    fields: tuple[Projection, ...] = ()  # TABLE only
    source: Optional[FromClause] = None
    where: Optional[Expression] = None
    sort: tuple[SortKey, ...] = ()
    limit: Optional[int] = None

    @property
    def columns(self) -> list[str]:
        return [projection.name for projection in self.fields]

    def __repr__(self) -> str:
        parts = [f"Query(kind={self.kind.value}"]
        if self.fields:
            parts.append(f"fields={self.columns}")
        if self.source:
            parts.append("from=...")
        if self.where is not None:
            parts.append("where=...")
        if self.sort:
            parts.append(f"sort={len(self.sort)}")
        if self.limit is not None:
            parts.append(f"limit={self.limit}")
        return ", ".join(parts) + ")"
