"""
Lexer tests for the JPL compiler.

Tests cover:
  - Integer and float literals (including the two-decimal-point error)
  - Names, keywords-as-names, strings and spans
  - Single-character operators, comments, whitespace and line counting
  - Error reporting (unterminated string, unexpected character)
  - The EOF invariant
"""

import pytest
from jpl_compiler.errors import LexError
from jpl_compiler.lexer import Lexer, Span, TokenType, lex


def _types(source):
    return [t.type for t in lex(source)]


# ─── Numbers ──────────────────────────────

class TestNumbers:
    @pytest.mark.parametrize("text", ["0", "7", "42", "65535", "1234567890", "007"])
    def test_integer_literal(self, text):
        tokens = lex(text)
        assert len(tokens) == 2
        assert tokens[0].type == TokenType.INTEGER
        assert tokens[0].value == int(text)
        assert tokens[1].type == TokenType.EOF

    def test_float_literal(self):
        tok = lex("3.14")[0]
        assert tok.type == TokenType.FLOAT
        assert tok.value == pytest.approx(3.14)

    def test_trailing_dot_is_float(self):
        tok = lex("1.")[0]
        assert tok.type == TokenType.FLOAT
        assert tok.value == 1.0

    def test_two_decimal_points(self):
        with pytest.raises(LexError, match="two decimal points") as exc:
            lex("1.2.3")
        assert exc.value.line == 1

    def test_two_decimal_points_reports_line(self):
        with pytest.raises(LexError) as exc:
            lex("print(1)\n\nlet x = 4.5.6")
        assert exc.value.line == 3

    def test_number_then_name(self):
        tokens = lex("9lives")
        assert tokens[0].type == TokenType.INTEGER
        assert tokens[1].type == TokenType.NAME
        assert tokens[1].value == "lives"


# ─── Names and strings ────────────────────

class TestNamesAndStrings:
    def test_keywords_are_names(self):
        tokens = lex("let function return print")
        assert [t.type for t in tokens[:-1]] == [TokenType.NAME] * 4
        assert [t.value for t in tokens[:-1]] == ["let", "function", "return", "print"]

    def test_alphanumeric_name(self):
        tokens = lex("abc123")
        assert tokens[0].value == "abc123"
        assert len(tokens) == 2

    def test_underscore_is_rejected(self):
        with pytest.raises(LexError, match="'_'"):
            lex("my_var")

    def test_string_literal(self):
        tok = lex('"hello world"')[0]
        assert tok.type == TokenType.STRING
        assert tok.value == "hello world"

    def test_string_span_covers_contents(self):
        source = b'"hello world"'
        tok = lex(source)[0]
        assert tok.span == Span(1, 12)
        assert source[tok.span.start:tok.span.end] == b"hello world"

    def test_name_spans(self):
        tokens = lex("let x")
        assert tokens[0].span == Span(0, 3)
        assert tokens[1].span == Span(4, 5)

    def test_utf8_string_from_str(self):
        tok = lex('print("héllo")')[2]
        assert tok.type == TokenType.STRING
        assert tok.value == "héllo"

    def test_unterminated_string(self):
        with pytest.raises(LexError, match="Unterminated string") as exc:
            lex('let s = "abc')
        assert exc.value.line == 1

    def test_unterminated_string_reports_opening_line(self):
        with pytest.raises(LexError) as exc:
            lex('print(1)\nlet s = "abc\n\n')
        assert exc.value.line == 2

    def test_unterminated_string_stops_lexing(self):
        lexer = Lexer('let s = "abc + 1')
        with pytest.raises(LexError):
            lexer.tokenize()
        assert [t.type for t in lexer.tokens] == [TokenType.NAME, TokenType.NAME, TokenType.EQUAL]

    def test_newline_inside_string_counts_lines(self):
        tokens = lex('let s = "a\nb"\nlet t = 1')
        assert tokens[3].line == 1
        assert tokens[4].line == 3


# ─── Operators, comments, whitespace ──────

class TestPunctuation:
    def test_single_char_tokens(self):
        assert _types("+ - * / = ( ) { }") == [
            TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH,
            TokenType.EQUAL, TokenType.LPAREN, TokenType.RPAREN,
            TokenType.LBRACE, TokenType.RBRACE, TokenType.EOF,
        ]

    def test_line_comment(self):
        tokens = lex("// hello\n1 // trailing\n")
        assert [t.type for t in tokens] == [TokenType.INTEGER, TokenType.EOF]
        assert tokens[0].line == 2

    def test_lone_slash_is_divide(self):
        assert _types("8 / 2") == [TokenType.INTEGER, TokenType.SLASH,
                                   TokenType.INTEGER, TokenType.EOF]

    def test_whitespace_skipped(self):
        tokens = lex(" \t\r\n 5")
        assert tokens[0].type == TokenType.INTEGER
        assert tokens[0].line == 2

    def test_line_numbers(self):
        tokens = lex("let a = 1\nlet b = 2")
        assert tokens[0].line == 1
        assert tokens[4].line == 2

    def test_unexpected_character(self):
        with pytest.raises(LexError, match="';'") as exc:
            lex("let x = 5\nprint(x);")
        assert exc.value.line == 2

    def test_non_ascii_outside_string(self):
        with pytest.raises(LexError, match="0xC3"):
            lex("let é = 1")


# ─── EOF invariant ────────────────────────

class TestEof:
    def test_empty_bytes(self):
        tokens = lex(b"")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF
        assert tokens[0].span == Span(0, 0)

    def test_empty_str(self):
        assert _types("") == [TokenType.EOF]

    @pytest.mark.parametrize("source", [
        "", "   ", "// only a comment", "let x = 1", "print(\"hi\")\n", "1 2 3",
    ])
    def test_exactly_one_eof_at_end(self, source):
        types = _types(source)
        assert types.count(TokenType.EOF) == 1
        assert types[-1] == TokenType.EOF
