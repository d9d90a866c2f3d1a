"""
jplc: an ahead-of-time compiler for the JPL toy language
========================================================
Turns JPL source text into 32-bit x86 NASM assembly for Linux.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌───────────┐    ┌───────────┐
    │  Source  │───>│  Lexer   │───>│  Parser  │───>│  CodeGen  │───>│ Toolchain │
    │ (.jpl)   │    │ (tokens) │    │  (AST)   │    │ (asm text)│    │ nasm / ld │
    └──────────┘    └──────────┘    └──────────┘    └───────────┘    └───────────┘

    - lexer.py:     single-pass byte scanner
    - parser.py:    recursive descent with one token of lookahead
    - ast_nodes.py: dataclass tree
    - codegen.py:   stack-machine tree walker emitting NASM
    - toolchain.py: external assemble / link / run / clean-up driver
    - runtime/jplrt.asm: print_int, print_char, print_string
"""

__version__ = "0.2.0"

from .errors import (
    CompileError, LexError, ParseError, CodeGenError, UnsupportedConstruct, ToolchainError,
)
from .lexer import Lexer, Token, TokenType, Span, lex
from .ast_nodes import *
from .parser import Parser, parse
from .codegen import CodeGenerator
from .config import DEFAULT_TARGET, TARGET_PROFILES, ToolchainConfig
from .toolchain import Toolchain, RunResult


def compile_source(source, *, target: str = DEFAULT_TARGET) -> str:
    """Compile JPL source (bytes or str) to NASM assembly text.

    Full pipeline: Lexer -> Parser -> AST -> CodeGenerator.

    Raises:
        LexError, ParseError, CodeGenError / UnsupportedConstruct.
    """
    tokens = Lexer(source).tokenize()
    statements = Parser(tokens).parse()
    return CodeGenerator(target=target).generate(statements)
