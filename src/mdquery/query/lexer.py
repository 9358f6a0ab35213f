"""Query lexer.

Turns query text into a flat list of tokens, each carrying its character
offsets so parse errors can point at the offending input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from ..core.exceptions import QueryParseError


class TokenType(Enum):
    """Token categories produced by the lexer."""

    # Query kinds and clauses
    LIST = "LIST"
    TABLE = "TABLE"
    TASK = "TASK"
    FROM = "FROM"
    WHERE = "WHERE"
    SORT = "SORT"
    BY = "BY"
    LIMIT = "LIMIT"
    ASC = "ASC"
    DESC = "DESC"
    AS = "AS"
    # Boolean and comparison
    AND = "AND"
    OR = "OR"
    NOT = "NOT"
    CONTAINS = "CONTAINS"
    EQ = "="
    NEQ = "!="
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    # Values
    TAG = "TAG"
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    NULL = "NULL"
    IDENTIFIER = "IDENTIFIER"
    LINK = "LINK"
    # Punctuation
    LPAREN = "("
    RPAREN = ")"
    COMMA = ","
    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    """A lexical token.

    Attributes:
        type: Token category.
        value: Token text (string contents without quotes, tag without #).
        position: Offset of the first character in the query text.
        end: Offset just past the last character.
    """

    type: TokenType
    value: str
    position: int
    end: int


KEYWORDS: dict[str, TokenType] = {
    "LIST": TokenType.LIST,
    "TABLE": TokenType.TABLE,
    "TASK": TokenType.TASK,
    "FROM": TokenType.FROM,
    "WHERE": TokenType.WHERE,
    "SORT": TokenType.SORT,
    "BY": TokenType.BY,
    "LIMIT": TokenType.LIMIT,
    "ASC": TokenType.ASC,
    "DESC": TokenType.DESC,
    "AS": TokenType.AS,
    "AND": TokenType.AND,
    "OR": TokenType.OR,
    "NOT": TokenType.NOT,
    "CONTAINS": TokenType.CONTAINS,
    "TRUE": TokenType.BOOLEAN,
    "FALSE": TokenType.BOOLEAN,
    "NULL": TokenType.NULL,
}

# Two-character operators must be tried before their one-character prefixes
_OPERATORS: list[tuple[str, TokenType]] = [
    ("!=", TokenType.NEQ),
    (">=", TokenType.GTE),
    ("<=", TokenType.LTE),
    ("=", TokenType.EQ),
    (">", TokenType.GT),
    ("<", TokenType.LT),
    ("!", TokenType.NOT),
    ("(", TokenType.LPAREN),
    (")", TokenType.RPAREN),
    (",", TokenType.COMMA),
]

_IDENTIFIER = re.compile(r"[^\W\d][\w.\-]*")
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_TAG_BODY = re.compile(r"[\w/\-]+")


class Lexer:
    """Tokenizer for the query language.

    Example:
        >>> [t.type.name for t in Lexer('LIST FROM #project').tokenize()]
        ['LIST', 'FROM', 'TAG', 'EOF']
    """

    def __init__(self, text: str):
        self._text = text
        self._pos = 0

    def tokenize(self) -> list[Token]:
        """Tokenize the whole input.

        Returns:
            Tokens in order, always terminated by an EOF token.

        Raises:
            QueryParseError: On unterminated strings/links, empty tags or
                characters that are not part of the language.
        """
        tokens: list[Token] = []
        self._pos = 0
        text = self._text

        while True:
            self._skip_whitespace()
            if self._pos >= len(text):
                break
            tokens.append(self._next_token())

        tokens.append(Token(TokenType.EOF, "", len(text), len(text)))
        return tokens

    def _skip_whitespace(self) -> None:
        text = self._text
        while self._pos < len(text) and text[self._pos].isspace():
            self._pos += 1

    def _next_token(self) -> Token:
        text = self._text
        start = self._pos
        char = text[start]

        if char == "#":
            return self._read_tag()

        if char in ("'", '"'):
            return self._read_string(char)

        if text.startswith("[[", start):
            return self._read_link()

        number = _NUMBER.match(text, start)
        if number:
            self._pos = number.end()
            return Token(TokenType.NUMBER, number.group(), start, self._pos)

        for symbol, token_type in _OPERATORS:
            if text.startswith(symbol, start):
                self._pos = start + len(symbol)
                return Token(token_type, symbol, start, self._pos)

        identifier = _IDENTIFIER.match(text, start)
        if identifier:
            self._pos = identifier.end()
            word = identifier.group()
            keyword = KEYWORDS.get(word.upper())
            if keyword is None:
                return Token(TokenType.IDENTIFIER, word, start, self._pos)
            value = word.lower() if keyword in (TokenType.BOOLEAN, TokenType.NULL) else word.upper()
            return Token(keyword, value, start, self._pos)

        raise QueryParseError(f"Unexpected character {char!r}", start)

    def _read_tag(self) -> Token:
        start = self._pos
        body = _TAG_BODY.match(self._text, start + 1)
        if not body:
            raise QueryParseError("Expected tag name after '#'", start)
        self._pos = body.end()
        return Token(TokenType.TAG, body.group(), start, self._pos)

    def _read_string(self, quote: str) -> Token:
        text = self._text
        start = self._pos
        self._pos += 1
        chars: list[str] = []

        while self._pos < len(text):
            char = text[self._pos]
            if char == "\\" and self._pos + 1 < len(text):
                chars.append(text[self._pos + 1])
                self._pos += 2
                continue
            if char == quote:
                self._pos += 1
                return Token(TokenType.STRING, "".join(chars), start, self._pos)
            chars.append(char)
            self._pos += 1

        raise QueryParseError("Unterminated string", start)

    def _read_link(self) -> Token:
        start = self._pos
        close = self._text.find("]]", start + 2)
        if close == -1:
            raise QueryParseError("Unterminated link, expected ']]'", start)
        target = self._text[start + 2 : close].split("|", 1)[0].strip()
        if not target:
            raise QueryParseError("Empty link", start)
        self._pos = close + 2
        return Token(TokenType.LINK, target, start, self._pos)
