"""
Lexer / Tokenizer for the JPL compiler.

Converts a raw source buffer into a flat list of tokens for the parser.
Single left-to-right pass, no backtracking. Handles integer and float
literals, double-quoted strings, names, the arithmetic operators, '=',
parentheses, braces and '//' line comments.

Keywords (let, function, return, print) are not reserved here: they come
out as NAME tokens and the parser resolves them by context.
"""

from __future__ import annotations
import enum
import logging
import string
from dataclasses import dataclass
from typing import Dict, List, Union

from .errors import LexError

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Token types
# ──────────────────────────────────────────────

class TokenType(enum.Enum):
    # Operators
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    EQUAL = "="

    # Grouping / blocks
    LPAREN = "("
    RPAREN = ")"
    LBRACE = "{"
    RBRACE = "}"

    # Literals
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    STRING = "STRING"

    # Identifier
    NAME = "NAME"

    # Special
    EOF = "EOF"


# ──────────────────────────────────────────────
# Token data classes
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Span:
    """Half-open byte range [start, end) into the source buffer."""
    start: int
    end: int


@dataclass
class Token:
    type: TokenType
    value: Union[str, int, float]
    span: Span
    line: int

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, L{self.line} {self.span.start}..{self.span.end})"


SINGLE_CHAR_TOKENS: Dict[int, TokenType] = {
    ord("+"): TokenType.PLUS,
    ord("-"): TokenType.MINUS,
    ord("*"): TokenType.STAR,
    ord("/"): TokenType.SLASH,
    ord("="): TokenType.EQUAL,
    ord("("): TokenType.LPAREN,
    ord(")"): TokenType.RPAREN,
    ord("{"): TokenType.LBRACE,
    ord("}"): TokenType.RBRACE,
}

_DIGITS = frozenset(string.digits.encode("ascii"))
_LETTERS = frozenset(string.ascii_letters.encode("ascii"))
_ALNUM = _DIGITS | _LETTERS
_SKIPPED = frozenset(b" \t\r")

_DOT = ord(".")
_QUOTE = ord('"')
_SLASH = ord("/")
_NEWLINE = ord("\n")


def _describe_byte(ch: int) -> str:
    if ch < 0x80:
        return repr(chr(ch))
    return f"byte 0x{ch:02X}"


# ──────────────────────────────────────────────
# Lexer
# ──────────────────────────────────────────────

class Lexer:
    """Tokenizes a JPL source buffer into a list of Tokens."""

    def __init__(self, source: Union[bytes, str]):
        if isinstance(source, str):
            source = source.encode("utf-8")
        self.source = source
        self.pos = 0
        self.line = 1
        self.tokens: List[Token] = []

    def _peek(self, offset: int = 0) -> int:
        i = self.pos + offset
        return self.source[i] if i < len(self.source) else -1

    def _at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _add(self, ttype: TokenType, value, start: int, line: int):
        self.tokens.append(Token(ttype, value, Span(start, self.pos), line))

    def _read_number(self):
        start = self.pos
        floating = False
        while not self._at_end() and (self._peek() in _DIGITS or self._peek() == _DOT):
            if self._peek() == _DOT:
                if floating:
                    raise LexError("Bad floating point number, found two decimal points",
                                   self.line)
                floating = True
            self.pos += 1

        text = self.source[start:self.pos].decode("ascii")
        if floating:
            self._add(TokenType.FLOAT, float(text), start, self.line)
        else:
            self._add(TokenType.INTEGER, int(text), start, self.line)

    def _read_name(self):
        start = self.pos
        while not self._at_end() and self._peek() in _ALNUM:
            self.pos += 1
        self._add(TokenType.NAME, self.source[start:self.pos].decode("ascii"),
                  start, self.line)

    def _read_string(self):
        start_line = self.line
        self.pos += 1  # opening "
        start = self.pos
        while not self._at_end() and self._peek() != _QUOTE:
            if self._peek() == _NEWLINE:
                self.line += 1
            self.pos += 1
        if self._at_end():
            raise LexError("Unterminated string", start_line)

        text = self.source[start:self.pos].decode("utf-8", errors="replace")
        self.tokens.append(Token(TokenType.STRING, text, Span(start, self.pos), start_line))
        self.pos += 1  # closing "

    def _skip_line_comment(self):
        while not self._at_end() and self._peek() != _NEWLINE:
            self.pos += 1

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source and return a list of tokens ending in EOF."""
        self.tokens = []

        while not self._at_end():
            ch = self._peek()

            if ch in _SKIPPED:
                self.pos += 1
                continue

            if ch == _NEWLINE:
                self.line += 1
                self.pos += 1
                continue

            # Line comment (a lone '/' falls through to the divide operator)
            if ch == _SLASH and self._peek(1) == _SLASH:
                self._skip_line_comment()
                continue

            if ch in _DIGITS:
                self._read_number()
                continue

            if ch in _LETTERS:
                self._read_name()
                continue

            if ch == _QUOTE:
                self._read_string()
                continue

            if ch in SINGLE_CHAR_TOKENS:
                start = self.pos
                self.pos += 1
                self._add(SINGLE_CHAR_TOKENS[ch], chr(ch), start, self.line)
                continue

            raise LexError(f"Unexpected character {_describe_byte(ch)}", self.line)

        self.tokens.append(Token(TokenType.EOF, "", Span(self.pos, self.pos), self.line))
        log.debug("lexed %d tokens over %d lines", len(self.tokens), self.line)
        return self.tokens


def lex(source: Union[bytes, str]) -> List[Token]:
    """Convenience wrapper: tokenize *source* in one call."""
    return Lexer(source).tokenize()
