"""
Exception hierarchy for the JPL compiler.

Every pipeline stage raises one of these instead of exiting; the CLI
(jplc.py) is the only place that turns them into exit statuses.
"""

from __future__ import annotations
from typing import Optional


class CompileError(Exception):
    """Base class for diagnostics produced by the lexer, parser or code generator."""

    kind = "Compile"

    def __init__(self, message: str, line: int):
        self.message = message
        self.line = line
        super().__init__(f"{self.kind} error at L{line}: {message}")


class LexError(CompileError):
    kind = "Lexer"


class ParseError(CompileError):
    kind = "Parse"

    def __init__(self, message: str, token):
        self.token = token
        super().__init__(f"{message} (got {token.type.name} = {token.value!r})", token.line)


class CodeGenError(CompileError):
    kind = "Code generation"

    def __init__(self, message: str, node):
        self.node = node
        super().__init__(message, node.line)


class UnsupportedConstruct(CodeGenError):
    """A well-formed node the generator has no emission rule for."""

    kind = "Unsupported construct"


class ToolchainError(Exception):
    """An external tool (assembler, linker, program) failed or is missing."""

    def __init__(self, message: str, output: str = "", returncode: Optional[int] = None):
        self.output = output
        self.returncode = returncode
        super().__init__(message)
