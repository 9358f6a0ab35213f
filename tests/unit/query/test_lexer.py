"""Tests for the query lexer."""

import pytest

from mdquery.core.exceptions import QueryParseError
from mdquery.query.lexer import Lexer, TokenType


def types(text: str) -> list[TokenType]:
    return [token.type for token in Lexer(text).tokenize()]


class TestLexer:
    """Tests for Lexer.tokenize."""

    def test_keywords_case_insensitive(self):
        """Should recognise keywords in any case."""
        assert types("list From where Sort BY limit") == [
            TokenType.LIST,
            TokenType.FROM,
            TokenType.WHERE,
            TokenType.SORT,
            TokenType.BY,
            TokenType.LIMIT,
            TokenType.EOF,
        ]

    def test_operators(self):
        """Should prefer two-character operators."""
        assert types("a != b >= c <= d = e > f < g") == [
            TokenType.IDENTIFIER,
            TokenType.NEQ,
            TokenType.IDENTIFIER,
            TokenType.GTE,
            TokenType.IDENTIFIER,
            TokenType.LTE,
            TokenType.IDENTIFIER,
            TokenType.EQ,
            TokenType.IDENTIFIER,
            TokenType.GT,
            TokenType.IDENTIFIER,
            TokenType.LT,
            TokenType.IDENTIFIER,
            TokenType.EOF,
        ]

    def test_values(self):
        """Should lex tags, strings, numbers, booleans, null and links."""
        tokens = Lexer('#proj/sub "Work Folder" -2.5 TRUE null [[Note|alias]]').tokenize()

        assert [(t.type, t.value) for t in tokens[:-1]] == [
            (TokenType.TAG, "proj/sub"),
            (TokenType.STRING, "Work Folder"),
            (TokenType.NUMBER, "-2.5"),
            (TokenType.BOOLEAN, "true"),
            (TokenType.NULL, "null"),
            (TokenType.LINK, "Note"),
        ]

    def test_dotted_identifier(self):
        """Should keep dotted and dashed identifiers whole."""
        tokens = Lexer("file.name outgoing-to").tokenize()

        assert [t.value for t in tokens[:-1]] == ["file.name", "outgoing-to"]

    def test_string_escapes(self):
        """Should unescape backslash sequences in strings."""
        token = Lexer(r"'it\'s'").tokenize()[0]

        assert token.value == "it's"

    def test_positions(self):
        """Should record start and end offsets."""
        tokens = Lexer("LIST  FROM #a").tokenize()

        assert [(t.position, t.end) for t in tokens] == [(0, 4), (6, 10), (11, 13), (13, 13)]

    def test_bang_is_not(self):
        """Should lex a lone '!' as NOT."""
        assert types("!done")[:2] == [TokenType.NOT, TokenType.IDENTIFIER]

    @pytest.mark.parametrize(
        "text, position",
        [
            ('LIST FROM "open', 10),
            ("LIST FROM [[open", 10),
            ("LIST FROM # ", 10),
            ("LIST WHERE a ~ b", 13),
            ("LIST FROM [[ ]]", 10),
        ],
    )
    def test_errors(self, text, position):
        """Should raise QueryParseError at the offending offset."""
        with pytest.raises(QueryParseError) as exc_info:
            Lexer(text).tokenize()

        assert exc_info.value.position == position
