"""
AST Node definitions for the JPL compiler.

Defines the tree produced by the parser and consumed by the code
generator. Statements are the top-level program units; expressions nest
by owning their children outright, so the tree can never share or cycle.
"""

from __future__ import annotations
import enum
from dataclasses import dataclass, field
from typing import List, Union


class BinaryOperator(enum.Enum):
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"


# ──────────────────────────────────────────────
# Base AST node
# ──────────────────────────────────────────────

@dataclass
class ASTNode:
    """Base class for all AST nodes (line is 1-based, for diagnostics)."""
    line: int = 0


# ──────────────────────────────────────────────
# Expressions
# ──────────────────────────────────────────────

Expression = Union[
    "IntConstant", "FloatConstant", "BinaryOp",
    "QuotedString", "Var", "FunctionCall",
]

@dataclass
class IntConstant(ASTNode):
    value: int = 0

@dataclass
class FloatConstant(ASTNode):
    value: float = 0.0

@dataclass
class BinaryOp(ASTNode):
    """Binary operation: left op right."""
    left: Expression = None   # type: ignore
    op: BinaryOperator = BinaryOperator.ADD
    right: Expression = None  # type: ignore

@dataclass
class QuotedString(ASTNode):
    """String literal, kept verbatim (no escape processing)."""
    value: str = ""

@dataclass
class Var(ASTNode):
    """Reference to a declared variable or function parameter."""
    name: str = ""

@dataclass
class FunctionCall(ASTNode):
    """name(arg). Used both as a statement and nested inside expressions."""
    name: str = ""
    args: List[Expression] = field(default_factory=list)


# ──────────────────────────────────────────────
# Statements
# ──────────────────────────────────────────────

@dataclass
class VarDecl(ASTNode):
    """let name = value"""
    name: str = ""
    value: Expression = None  # type: ignore

@dataclass
class FunctionDecl(ASTNode):
    """function name(param) { body }"""
    name: str = ""
    param: str = ""
    body: List[Statement] = field(default_factory=list)

@dataclass
class ReturnStmt(ASTNode):
    """return value (only produced inside a function body)"""
    value: Expression = None  # type: ignore


Statement = Union[VarDecl, FunctionCall, FunctionDecl, ReturnStmt]
