"""Query language: lexing, parsing, evaluation and execution.

Example
-------
>>> from mdquery.query import run_query
>>> result = run_query('TABLE status FROM "Work" WHERE priority > 3', documents)
>>> [row.values for row in result.rows]
"""

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
from .evaluator import compare_values, evaluate, evaluate_bool, required_fields
from .executor import execute_query, run_query, select_candidates, sort_rows
from .functions import (
    FunctionRegistry,
    create_function_registry,
    get_default_function_registry,
)
from .lexer import Lexer, Token, TokenType
from .parser import ParseFailure, ParseResult, Parser, ParseSuccess, parse_query
from .tasks import scan_tasks

__all__ = [
    # AST
    "Comparison",
    "ComparisonOperator",
    "Expression",
    "FieldRef",
    "FromClause",
    "FunctionCall",
    "LinkFilter",
    "Literal",
    "Logical",
    "LogicalOperator",
    "Not",
    "Projection",
    "Query",
    "SortDirection",
    "SortKey",
    # Lexing and parsing
    "Lexer",
    "Token",
    "TokenType",
    "Parser",
    "ParseFailure",
    "ParseResult",
    "ParseSuccess",
    "parse_query",
    # Evaluation
    "FunctionRegistry",
    "compare_values",
    "create_function_registry",
    "evaluate",
    "evaluate_bool",
    "get_default_function_registry",
    "required_fields",
    # Execution
    "execute_query",
    "run_query",
    "scan_tasks",
    "select_candidates",
    "sort_rows",
]
