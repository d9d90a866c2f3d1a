"""
Recursive-descent parser for the JPL compiler.

Parses a token stream from the Lexer into the statement list defined in
ast_nodes. Grammar:

    statement   := 'let' NAME '=' expression
                 | 'function' NAME '(' NAME ')' '{' body '}'
                 | NAME '(' argument ')'
    body        := ( 'return' expression | statement )*
    expression  := term (('+' | '-') term)*
    term        := factor (('*' | '/') factor)*
    factor      := INTEGER | FLOAT | STRING
                 | NAME '(' argument ')' | NAME
                 | '(' expression ')'

Keywords are matched case-insensitively against NAME tokens. Every
diagnostic carries the line of the current token, i.e. the token that
broke the rule.
"""

from __future__ import annotations
import logging
from typing import List

from .lexer import Token, TokenType
from .errors import ParseError
from .ast_nodes import *

log = logging.getLogger(__name__)


ADDITIVE_OPS = {
    TokenType.PLUS: BinaryOperator.ADD,
    TokenType.MINUS: BinaryOperator.SUBTRACT,
}

MULTIPLICATIVE_OPS = {
    TokenType.STAR: BinaryOperator.MULTIPLY,
    TokenType.SLASH: BinaryOperator.DIVIDE,
}


class Parser:
    """Recursive descent parser producing a statement list from tokens."""

    def __init__(self, tokens: List[Token]):
        if not tokens or tokens[-1].type != TokenType.EOF:
            raise ValueError("token stream must end with an EOF token")
        self.tokens = tokens
        self.pos = 0

    # ── Helpers ─────────────────────────────

    def _cur(self) -> Token:
        return self.tokens[self.pos]

    def _peek(self) -> Token:
        """The token after the current one (EOF once the stream is exhausted)."""
        if self.pos + 1 < len(self.tokens):
            return self.tokens[self.pos + 1]
        return self.tokens[-1]

    def _at(self, *types: TokenType) -> bool:
        return self._cur().type in types

    def _at_keyword(self, keyword: str) -> bool:
        tok = self._cur()
        return tok.type == TokenType.NAME and tok.value.lower() == keyword

    def _advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _expect(self, ttype: TokenType, msg: str = "") -> Token:
        if self._cur().type != ttype:
            if not msg:
                msg = f"Expected {ttype.value!r}"
            raise ParseError(msg, self._cur())
        return self._advance()

    # ── Top-level parsing ─────────────────────

    def parse(self) -> List[Statement]:
        """Parse the full token stream into an ordered list of statements."""
        statements: List[Statement] = []
        while not self._at(TokenType.EOF):
            statements.append(self._parse_statement())
        log.debug("parsed %d top-level statements", len(statements))
        return statements

    def _parse_statement(self) -> Statement:
        """Dispatch on the leading name: let / function / call."""
        if self._at(TokenType.NAME):
            if self._at_keyword("let"):
                return self._parse_var_decl()
            if self._at_keyword("function"):
                return self._parse_func_decl()
            if self._peek().type == TokenType.LPAREN:
                return self._parse_call()

        raise ParseError("Expected variable or literal", self._cur())

    def _parse_var_decl(self) -> VarDecl:
        tok = self._advance()  # 'let'
        name_tok = self._expect(TokenType.NAME, "Expected variable name")
        self._expect(TokenType.EQUAL, "Expected '=' after variable name")
        value = self._parse_expr()
        return VarDecl(name=name_tok.value, value=value, line=tok.line)

    def _parse_func_decl(self) -> FunctionDecl:
        tok = self._advance()  # 'function'
        name_tok = self._expect(TokenType.NAME, "Expected function name")
        self._expect(TokenType.LPAREN, "Expected '(' after function name")
        param_tok = self._expect(TokenType.NAME, "Expected parameter name")
        self._expect(TokenType.RPAREN, "Expected ')' after parameter name")
        self._expect(TokenType.LBRACE, "Expected '{' before function body")

        body: List[Statement] = []
        while not self._at(TokenType.RBRACE):
            if self._at(TokenType.EOF):
                raise ParseError("Expected '}' to close function body", self._cur())
            if self._at_keyword("return"):
                ret_tok = self._advance()
                body.append(ReturnStmt(value=self._parse_expr(), line=ret_tok.line))
            else:
                body.append(self._parse_statement())
        self._advance()  # '}'

        return FunctionDecl(name=name_tok.value, param=param_tok.value, body=body,
                            line=tok.line)

    def _parse_call(self) -> FunctionCall:
        """NAME '(' argument ')' with exactly one argument."""
        name_tok = self._expect(TokenType.NAME, "Expected function name")
        self._expect(TokenType.LPAREN, "Expected '(' after function name")
        arg = self._parse_expr()
        self._expect(TokenType.RPAREN, "Expected ')' after argument")
        return FunctionCall(name=name_tok.value, args=[arg], line=name_tok.line)

    # ── Expression parsing (precedence climbing) ──

    def _parse_expr(self) -> Expression:
        left = self._parse_term()
        while self._at(*ADDITIVE_OPS):
            tok = self._advance()
            right = self._parse_term()
            left = BinaryOp(left=left, op=ADDITIVE_OPS[tok.type], right=right,
                            line=tok.line)
        return left

    def _parse_term(self) -> Expression:
        left = self._parse_factor()
        while self._at(*MULTIPLICATIVE_OPS):
            tok = self._advance()
            right = self._parse_factor()
            left = BinaryOp(left=left, op=MULTIPLICATIVE_OPS[tok.type], right=right,
                            line=tok.line)
        return left

    def _parse_factor(self) -> Expression:
        tok = self._cur()

        if self._at(TokenType.INTEGER):
            self._advance()
            return IntConstant(value=tok.value, line=tok.line)

        if self._at(TokenType.FLOAT):
            self._advance()
            return FloatConstant(value=tok.value, line=tok.line)

        if self._at(TokenType.STRING):
            self._advance()
            return QuotedString(value=tok.value, line=tok.line)

        if self._at(TokenType.NAME):
            # Must look past the name before consuming it: NAME '(' is a call
            if self._peek().type == TokenType.LPAREN:
                return self._parse_call()
            self._advance()
            return Var(name=tok.value, line=tok.line)

        if self._at(TokenType.LPAREN):
            self._advance()
            expr = self._parse_expr()
            self._expect(TokenType.RPAREN, "Expected closing parenthesis")
            return expr

        raise ParseError("Expected number, name or parenthesis", tok)


def parse(tokens: List[Token]) -> List[Statement]:
    """Convenience wrapper: parse *tokens* in one call."""
    return Parser(tokens).parse()
