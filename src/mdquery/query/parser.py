"""Recursive descent parser for the query language.

Grammar, top to bottom::

    query      := kind [fields] [from] [where] [sort] [limit] EOF
    kind       := LIST | TABLE | TASK
    fields     := projection ("," projection)*            (TABLE only)
    projection := expression [AS (identifier | string)]
    from       := FROM source ([AND | ","] source)*
    source     := #tag | "folder" | [[note]]
                | outgoing-to [[note]] | incoming-from [[note]]
    where      := WHERE expression
    expression := and (OR and)*
    and        := not (AND not)*
    not        := (NOT | "!") not | comparison
    comparison := operand [operator operand]
    operand    := "(" expression ")" | literal | identifier
                | identifier "(" [expression ("," expression)*] ")"
    sort       := SORT [BY] key [ASC | DESC] ("," key [ASC | DESC])*
    limit      := LIMIT integer

Query text is usually edited live, so failing to parse is an expected
outcome: ``parse_query`` returns a ParseSuccess or ParseFailure value and
never raises. ``Parser.parse`` raises QueryParseError for callers that
prefer exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NoReturn, Union

from loguru import logger

from ..core.exceptions import QueryParseError
from ..core.types import QueryKind
from .ast import (
    Comparison,
    ComparisonOperator,
    Expression,
    FieldRef,
    FromClause,
    FunctionCall,
    LinkFilter,
    Literal,
    Logical,
    LogicalOperator,
    Not,
    Projection,
    Query,
    SortDirection,
    SortKey,
)
from .lexer import Lexer, Token, TokenType

_KINDS = {
    TokenType.LIST: QueryKind.LIST,
    TokenType.TABLE: QueryKind.TABLE,
    TokenType.TASK: QueryKind.TASK,
}

_COMPARISON_OPERATORS = {
    TokenType.EQ: ComparisonOperator.EQ,
    TokenType.NEQ: ComparisonOperator.NEQ,
    TokenType.GT: ComparisonOperator.GT,
    TokenType.LT: ComparisonOperator.LT,
    TokenType.GTE: ComparisonOperator.GTE,
    TokenType.LTE: ComparisonOperator.LTE,
    TokenType.CONTAINS: ComparisonOperator.CONTAINS,
}

_CLAUSE_STARTS = (TokenType.FROM, TokenType.WHERE, TokenType.SORT, TokenType.LIMIT, TokenType.EOF)

# Deepest run of parentheses, NOT and function calls in one expression
MAX_NESTING = 64

# Link predicates spelled as identifiers in FROM
_OUTGOING_TO = "outgoing-to"
_INCOMING_FROM = "incoming-from"


@dataclass(frozen=True)
class ParseSuccess:
    """Successful parse."""

    query: Query

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ParseFailure:
    """Failed parse with the offending offset."""

    message: str
    position: int

    @property
    def ok(self) -> bool:
        return False

    @property
    def error(self) -> str:
        """Message in the form shown to users."""
        return f"Parse error at position {self.position}: {self.message}"


ParseResult = Union[ParseSuccess, ParseFailure]


class Parser:
    """Parser producing a Query AST.

    Example:
        >>> query = Parser().parse('TABLE status FROM #project WHERE priority > 2')
        >>> query.kind, query.columns
        (<QueryKind.TABLE: 'TABLE'>, ['status'])
    """

    def __init__(self) -> None:
        self._text = ""
        self._tokens: list[Token] = []
        self._index = 0
        self._depth = 0

    def parse(self, text: str) -> Query:
        """Parse query text.

        Args:
            text: Query source.

        Returns:
            Fully resolved Query.

        Raises:
            QueryParseError: If the text does not match the grammar.
        """
        self._text = text
        self._tokens = Lexer(text).tokenize()
        self._index = 0
        self._depth = 0
        return self._parse_query()

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------

    def _current(self) -> Token:
        return self._tokens[self._index]

    def _previous(self) -> Token:
        return self._tokens[self._index - 1]

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        if token.type is not TokenType.EOF:
            self._index += 1
        return token

    def _match(self, *types: TokenType) -> bool:
        return self._current().type in types

    def _expect(self, token_type: TokenType, message: str) -> Token:
        if not self._match(token_type):
            self._error(message)
        return self._advance()

    def _error(self, message: str) -> NoReturn:
        token = self._current()
        if token.type is TokenType.EOF:
            message = f"{message}, got end of query"
        else:
            message = f"{message}, got {token.value!r}"
        raise QueryParseError(message, token.position)

    def _enter(self) -> None:
        """Open one nesting level at the current token."""
        self._depth += 1
        if self._depth > MAX_NESTING:
            raise QueryParseError(
                f"Expression nested too deeply (limit {MAX_NESTING})",
                self._current().position,
            )

    # ------------------------------------------------------------------
    # Clauses
    # ------------------------------------------------------------------

    def _parse_query(self) -> Query:
        token = self._current()
        kind = _KINDS.get(token.type)
        if kind is None:
            self._error("Expected LIST, TABLE, or TASK")
        self._advance()

        fields: tuple[Projection, ...] = ()
        if kind is QueryKind.TABLE and not self._match(*_CLAUSE_STARTS):
            fields = self._parse_projections()

        source = self._parse_from() if self._match(TokenType.FROM) else None
        where = self._parse_where() if self._match(TokenType.WHERE) else None
        sort = self._parse_sort() if self._match(TokenType.SORT) else ()
        limit = self._parse_limit() if self._match(TokenType.LIMIT) else None

        if not self._match(TokenType.EOF):
            self._error("Unexpected token")

        return Query(kind=kind, fields=fields, source=source, where=where, sort=sort, limit=limit)

    def _parse_projections(self) -> tuple[Projection, ...]:
        projections = [self._parse_projection()]
        while self._match(TokenType.COMMA):
            self._advance()
            projections.append(self._parse_projection())

        seen: set[str] = set()
        for projection in projections:
            if projection.name in seen:
                raise QueryParseError(f"Duplicate column {projection.name!r}", self._previous().position)
            seen.add(projection.name)
        return tuple(projections)

    def _parse_projection(self) -> Projection:
        start = self._current().position
        expression = self._parse_expression()
        name = self._text[start : self._previous().end].strip()

        if self._match(TokenType.AS):
            self._advance()
            if not self._match(TokenType.IDENTIFIER, TokenType.STRING):
                self._error("Expected column name after AS")
            name = self._advance().value

        return Projection(expression=expression, name=name)

    def _parse_from(self) -> FromClause:
        self._expect(TokenType.FROM, "Expected FROM")

        tags: set[str] = set()
        folders: set[str] = set()
        links_to: set[str] = set()
        links_from: set[str] = set()

        self._parse_source(tags, folders, links_to, links_from)
        while True:
            if self._match(TokenType.AND, TokenType.COMMA):
                self._advance()
            elif self._match(TokenType.OR):
                self._error("OR is not supported in FROM (sources are intersected)")
            elif not self._match(TokenType.TAG, TokenType.STRING, TokenType.LINK, TokenType.IDENTIFIER):
                break
            self._parse_source(tags, folders, links_to, links_from)

        return FromClause(
            tags=frozenset(tags),
            folders=frozenset(folders),
            links=LinkFilter(to=frozenset(links_to), from_=frozenset(links_from)),
        )

    def _parse_source(
        self,
        tags: set[str],
        folders: set[str],
        links_to: set[str],
        links_from: set[str],
    ) -> None:
        token = self._current()

        if token.type is TokenType.TAG:
            tags.add(self._advance().value)
            return

        if token.type is TokenType.STRING:
            folders.add(self._advance().value)
            return

        if token.type is TokenType.LINK:
            links_from.add(self._advance().value)
            return

        if token.type is TokenType.IDENTIFIER and token.value.lower() in (_OUTGOING_TO, _INCOMING_FROM):
            self._advance()
            target = self._expect(TokenType.LINK, f"Expected [[note]] after {token.value}").value
            if token.value.lower() == _OUTGOING_TO:
                links_to.add(target)
            else:
                links_from.add(target)
            return

        self._error('Expected tag (#tag), folder ("path"), or link ([[note]])')

    def _parse_where(self) -> Expression:
        self._expect(TokenType.WHERE, "Expected WHERE")
        return self._parse_expression()

    def _parse_sort(self) -> tuple[SortKey, ...]:
        self._expect(TokenType.SORT, "Expected SORT")
        if self._match(TokenType.BY):
            self._advance()

        keys = [self._parse_sort_key()]
        while self._match(TokenType.COMMA):
            self._advance()
            keys.append(self._parse_sort_key())
        return tuple(keys)

    def _parse_sort_key(self) -> SortKey:
        name = self._expect(TokenType.IDENTIFIER, "Expected field name").value
        direction = SortDirection.ASC
        if self._match(TokenType.ASC):
            self._advance()
        elif self._match(TokenType.DESC):
            self._advance()
            direction = SortDirection.DESC
        return SortKey(field=name, direction=direction)

    def _parse_limit(self) -> int:
        self._expect(TokenType.LIMIT, "Expected LIMIT")
        token = self._current()
        if token.type is not TokenType.NUMBER or not token.value.isdigit():
            self._error("Expected non-negative integer after LIMIT")
        self._advance()
        return int(token.value)

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _parse_expression(self) -> Expression:
        left = self._parse_and()
        while self._match(TokenType.OR):
            self._advance()
            left = Logical(LogicalOperator.OR, left, self._parse_and())
        return left

    def _parse_and(self) -> Expression:
        left = self._parse_not()
        while self._match(TokenType.AND):
            self._advance()
            left = Logical(LogicalOperator.AND, left, self._parse_not())
        return left

    def _parse_not(self) -> Expression:
        if self._match(TokenType.NOT):
            self._enter()
            self._advance()
            inner = self._parse_not()
            self._depth -= 1
            return Not(inner)
        return self._parse_comparison()

    def _parse_comparison(self) -> Expression:
        left = self._parse_operand()
        operator = _COMPARISON_OPERATORS.get(self._current().type)
        if operator is None:
            return left
        self._advance()
        return Comparison(field=left, operator=operator, value=self._parse_operand())

    def _parse_operand(self) -> Expression:
        token = self._current()

        if token.type is TokenType.LPAREN:
            self._enter()
            self._advance()
            expression = self._parse_expression()
            self._expect(TokenType.RPAREN, "Expected ')'")
            self._depth -= 1
            return expression

        if token.type is TokenType.STRING:
            return Literal(self._advance().value)

        if token.type is TokenType.NUMBER:
            value = self._advance().value
            return Literal(float(value) if "." in value else int(value))

        if token.type is TokenType.BOOLEAN:
            return Literal(self._advance().value == "true")

        if token.type is TokenType.NULL:
            self._advance()
            return Literal(None)

        if token.type is TokenType.TAG:
            return Literal("#" + self._advance().value)

        if token.type in (TokenType.IDENTIFIER, TokenType.CONTAINS):
            is_call = self._tokens[self._index + 1].type is TokenType.LPAREN
            if token.type is TokenType.CONTAINS and not is_call:
                self._error("Expected expression")
            name = self._advance().value
            if is_call:
                return self._parse_call(name)
            return FieldRef(name)

        self._error("Expected expression")

    def _parse_call(self, name: str) -> FunctionCall:
        self._enter()
        self._expect(TokenType.LPAREN, "Expected '('")
        args: list[Expression] = []
        if not self._match(TokenType.RPAREN):
            args.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                self._advance()
                args.append(self._parse_expression())
        self._expect(TokenType.RPAREN, "Expected ')' after function arguments")
        self._depth -= 1
        return FunctionCall(name=name.lower(), args=tuple(args))


def parse_query(text: str) -> ParseResult:
    """Parse query text into a discriminated outcome.

    Args:
        text: Query source.

    Returns:
        ParseSuccess with the Query, or ParseFailure with message and offset.
    """
    try:
        return ParseSuccess(Parser().parse(text))
    except QueryParseError as e:
        logger.debug(f"Query parse failed at {e.position}: {e.message}")
        return ParseFailure(message=e.message, position=e.position)
