"""Tokenizer for the log field-query language.

Example:
    >>> [t.type.name for t in Lexer('level == "ERROR" AND NOT source = app')]
    ['WORD', 'EQ', 'STRING', 'AND', 'NOT', 'WORD', 'EQ', 'WORD', 'EOF']
"""
from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum, auto

from .errors import QuerySyntaxError


class TokenType(Enum):
    """Token kinds produced by the lexer."""

    LPAREN = auto()
    RPAREN = auto()
    AND = auto()
    OR = auto()
    NOT = auto()
    WORD = auto()
    STRING = auto()
    EQ = auto()
    NEQ = auto()
    GT = auto()
    GTE = auto()
    LT = auto()
    LTE = auto()
    CONTAINS = auto()
    NOT_CONTAINS = auto()
    EOF = auto()


@dataclass(frozen=True)
class Token:
    """A single lexical token."""

    type: TokenType
    text: str
    position: int = 0


RESERVED_WORDS: dict[str, TokenType] = {
    "AND": TokenType.AND,
    "OR": TokenType.OR,
    "NOT": TokenType.NOT,
    "CONTAINS": TokenType.CONTAINS,
    "NOT_CONTAINS": TokenType.NOT_CONTAINS,
}

TWO_CHAR_OPERATORS: dict[str, TokenType] = {
    "==": TokenType.EQ,
    "!=": TokenType.NEQ,
    ">=": TokenType.GTE,
    "<=": TokenType.LTE,
}

ONE_CHAR_OPERATORS: dict[str, TokenType] = {
    ">": TokenType.GT,
    "<": TokenType.LT,
    "=": TokenType.EQ,
}

COMPARISON_START = frozenset("!=<>")
WORD_PUNCTUATION = frozenset("_-:./")


def is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch in WORD_PUNCTUATION


class Lexer:
    """Turns a query string into tokens, one call to `next_token` at a time.

    Once the input is exhausted every further call returns an EOF token.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self.length = len(text)
        self.position = 0

    def __iter__(self) -> Iterator[Token]:
        """Yield tokens lazily, ending with (and including) EOF."""
        while True:
            token = self.next_token()
            yield token
            if token.type is TokenType.EOF:
                return

    def next_token(self) -> Token:
        self._skip_whitespace()
        if self.position >= self.length:
            return Token(TokenType.EOF, "", self.length)

        start = self.position
        ch = self.text[start]
        if ch == "(":
            self.position += 1
            return Token(TokenType.LPAREN, ch, start)
        if ch == ")":
            self.position += 1
            return Token(TokenType.RPAREN, ch, start)
        if ch == '"':
            return self._read_quoted()
        if ch in COMPARISON_START:
            return self._read_comparison()
        if is_word_char(ch):
            return self._read_word()

        raise QuerySyntaxError(f"Unexpected character '{ch}' in query", position=start)

    def _skip_whitespace(self) -> None:
        while self.position < self.length and self.text[self.position].isspace():
            self.position += 1

    def _read_quoted(self) -> Token:
        start = self.position
        self.position += 1  # opening quote
        chars: list[str] = []
        while self.position < self.length:
            ch = self.text[self.position]
            self.position += 1
            if ch == '"':
                return Token(TokenType.STRING, "".join(chars), start)
            if ch == "\\" and self.position < self.length:
                chars.append(self.text[self.position])
                self.position += 1
            else:
                chars.append(ch)
        raise QuerySyntaxError("Unterminated string literal in query", position=start)

    def _read_comparison(self) -> Token:
        start = self.position
        pair = self.text[start:start + 2]
        if pair in TWO_CHAR_OPERATORS:
            self.position += 2
            return Token(TWO_CHAR_OPERATORS[pair], pair, start)

        single = self.text[start]
        self.position += 1
        if single in ONE_CHAR_OPERATORS:
            return Token(ONE_CHAR_OPERATORS[single], single, start)
        raise QuerySyntaxError(f"Unexpected operator starting with '{single}'", position=start)

    def _read_word(self) -> Token:
        start = self.position
        while self.position < self.length and is_word_char(self.text[self.position]):
            self.position += 1
        word = self.text[start:self.position]
        return Token(RESERVED_WORDS.get(word.upper(), TokenType.WORD), word, start)
