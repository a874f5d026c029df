"""Recursive-descent parser for the log field-query language.

Grammar, lowest precedence first::

    expr      := term (OR term)*
    term      := factor (AND factor)*
    factor    := NOT factor | '(' expr ')' | condition
    condition := WORD op (STRING | WORD)
    op        := '==' | '=' | '!=' | '>' | '>=' | '<' | '<=' | CONTAINS | NOT_CONTAINS

Keywords and field names are case-insensitive.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .ast import Binary, Condition, ConditionOperator, LogicalOperator, Negation, Node
from .errors import QueryError, QuerySyntaxError
from .lexer import Lexer, Token, TokenType
from .translator import translate_root

logger = logging.getLogger(__name__)

CONDITION_OPERATORS: dict[TokenType, ConditionOperator] = {
    TokenType.EQ: ConditionOperator.EQ,
    TokenType.NEQ: ConditionOperator.NEQ,
    TokenType.GT: ConditionOperator.GT,
    TokenType.GTE: ConditionOperator.GTE,
    TokenType.LT: ConditionOperator.LT,
    TokenType.LTE: ConditionOperator.LTE,
    TokenType.CONTAINS: ConditionOperator.CONTAINS,
    TokenType.NOT_CONTAINS: ConditionOperator.NOT_CONTAINS,
}

VALUE_TOKENS = frozenset({TokenType.STRING, TokenType.WORD})


@dataclass(frozen=True)
class ParseResult:
    """Outcome of compiling a query: the backend `query_string`."""

    query_string: str


def _describe(token: Token) -> str:
    return "end of input" if token.type is TokenType.EOF else f"'{token.text}'"


class Parser:
    """Builds an expression tree from the lexer's token stream."""

    def __init__(self, text: str) -> None:
        self.lexer = Lexer(text)
        self.current: Token = self.lexer.next_token()

    def parse(self) -> Node:
        """Parse a full expression and require that nothing follows it."""
        node = self.parse_expression()
        self.expect(TokenType.EOF, "Unexpected token after end of expression")
        return node

    def parse_expression(self) -> Node:
        node = self.parse_term()
        while self.match(TokenType.OR):
            node = Binary(node, self.parse_term(), LogicalOperator.OR)
        return node

    def parse_term(self) -> Node:
        node = self.parse_factor()
        while self.match(TokenType.AND):
            node = Binary(node, self.parse_factor(), LogicalOperator.AND)
        return node

    def parse_factor(self) -> Node:
        if self.match(TokenType.NOT):
            return Negation(self.parse_factor())
        if self.match(TokenType.LPAREN):
            expression = self.parse_expression()
            self.expect(TokenType.RPAREN, "Missing closing parenthesis")
            return expression
        return self.parse_condition()

    def parse_condition(self) -> Condition:
        field = self.expect(TokenType.WORD, "Expected field name").text.lower()

        operator = CONDITION_OPERATORS.get(self.current.type)
        if operator is None:
            raise QuerySyntaxError(
                f"Unsupported operator for field '{field}' (found {_describe(self.current)})",
                position=self.current.position,
            )
        self.advance()

        value = self.current
        if value.type not in VALUE_TOKENS:
            raise QuerySyntaxError(
                f"Missing value for condition on field '{field}' (found {_describe(value)})",
                position=value.position,
            )
        self.advance()
        return Condition(field, operator, value.text)

    def advance(self) -> Token:
        token = self.current
        self.current = self.lexer.next_token()
        return token

    def match(self, expected: TokenType) -> bool:
        if self.current.type is expected:
            self.advance()
            return True
        return False

    def expect(self, expected: TokenType, message: str) -> Token:
        if self.current.type is not expected:
            raise QuerySyntaxError(
                f"{message} (found {_describe(self.current)})",
                position=self.current.position,
            )
        return self.advance()


class LogQueryParser:
    """Compiles log queries into search-backend query strings.

    Example:
        >>> LogQueryParser().parse('message CONTAINS "boom" AND level == error').query_string
        'message:"boom" AND level.keyword:"ERROR"'
    """

    def parse(self, text: str | None) -> ParseResult:
        """Compile `text`, raising a QueryError subclass on bad input."""
        if not text or not text.strip():
            raise QuerySyntaxError("Query cannot be empty")

        root = Parser(text).parse()
        translated = translate_root(root)
        logger.debug("Translated query %r -> %r", text, translated)
        return ParseResult(translated)

    def try_parse(self, text: str | None) -> ParseResult | QueryError:
        """Compile `text`, returning the error instead of raising it."""
        try:
            return self.parse(text)
        except QueryError as exc:
            return exc
