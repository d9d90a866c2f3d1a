"""
x86 Code Generator for the JPL compiler.

Translates the statement list into 32-bit NASM assembly for Linux.

Evaluation model (stack machine, no register allocation):
  - every expression leaves its 32-bit result on top of the machine stack
  - integer constant:  push dword <n>
  - variable:          push dword [v_<name>]
  - parameter:         push dword [ebp - 4]
  - binary op:         <left> <right> pop ebx ; pop eax ; op eax, ebx ; push eax
    so eax always holds the left operand and ebx the right one

Function calling convention:
  - the single argument is passed in eax
  - callee frame: push ebp / mov ebp, esp / push eax  (argument at [ebp - 4])
  - return value in eax, explicit `ret` through the frame
  - a body that falls off its end returns 0

Runtime entry points (provided by runtime/jplrt.asm):
  - print_int     eax = value
  - print_char    al  = character
  - print_string  ecx = address, edx = length

Memory layout:
  - SECTION .data  one 32-bit slot per numeric variable, one byte string
                   (newline-terminated) per string variable or literal
  - SECTION .text  _start, top-level code, exit sequence, then functions
"""

from __future__ import annotations
import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .ast_nodes import *
from .config import DEFAULT_TARGET, EXIT_SUCCESS_CODE, RUNTIME_SYMBOLS, TARGET_PROFILES
from .errors import CodeGenError, UnsupportedConstruct

log = logging.getLogger(__name__)

BUILTIN_PRINT = "print"

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1


# ──────────────────────────────────────────────
# Symbol / scope tracking
# ──────────────────────────────────────────────

class SymbolKind(enum.Enum):
    NUMBER = "number"
    STRING = "string"
    PARAM = "param"


@dataclass
class Symbol:
    name: str
    kind: SymbolKind
    label: str                          # data label, or frame operand for params
    value: Optional[Expression] = None  # originating initializer


@dataclass
class Scope:
    symbols: Dict[str, Symbol] = field(default_factory=dict)
    parent: Optional[Scope] = None

    def lookup(self, name: str) -> Optional[Symbol]:
        if name in self.symbols:
            return self.symbols[name]
        if self.parent:
            return self.parent.lookup(name)
        return None

    def define(self, sym: Symbol):
        self.symbols[sym.name] = sym


# ──────────────────────────────────────────────
# NASM formatting helpers
# ──────────────────────────────────────────────

def _hex_byte(b: int) -> str:
    digits = f"{b:02X}"
    if digits[0] in "ABCDEF":
        digits = "0" + digits
    return digits + "h"


def nasm_string(text: str) -> str:
    """Render *text* plus a trailing newline as NASM `db` operands.

    Printable ASCII goes in single-quoted runs; quotes, control bytes and
    non-ASCII bytes are written as numbers since NASM single-quoted
    strings have no escapes.
    """
    parts: List[str] = []
    run = bytearray()
    for b in text.encode("utf-8"):
        if 0x20 <= b <= 0x7E and b != 0x27:
            run.append(b)
            continue
        if run:
            parts.append(f"'{run.decode('ascii')}'")
            run.clear()
        parts.append(_hex_byte(b))
    if run:
        parts.append(f"'{run.decode('ascii')}'")
    parts.append(_hex_byte(0x0A))
    return ", ".join(parts)


def string_length(text: str) -> int:
    """Bytes written by print_string for *text*, including the newline."""
    return len(text.encode("utf-8")) + 1


# ──────────────────────────────────────────────
# Code generator
# ──────────────────────────────────────────────

class CodeGenerator:
    """Generates NASM assembly from a JPL statement list."""

    def __init__(self, target: str = DEFAULT_TARGET):
        if target not in TARGET_PROFILES:
            raise ValueError(f"unknown target {target!r}")
        self.target = target
        self.profile = TARGET_PROFILES[target]

        # Output sections
        self._data_lines: List[str] = []
        self._code_lines: List[str] = []
        self._func_lines: List[str] = []
        self._out: List[str] = self._code_lines

        # State
        self._global_scope = Scope()
        self._current_scope: Scope = self._global_scope
        self._functions: Dict[str, FunctionDecl] = {}
        self._in_function: Optional[FunctionDecl] = None
        self._string_counter = 0

    # ── Output helpers ────────────────────────

    def _emit(self, line: str):
        """Emit an instruction to the active text buffer."""
        self._out.append(f"    {line}")

    def _emit_label(self, label: str):
        self._out.append(f"{label}:")

    def _emit_comment(self, text: str):
        self._out.append(f"    ; {text}")

    def _emit_blank(self):
        self._out.append("")

    def _emit_data(self, label: str, directive: str, operands: str):
        self._data_lines.append(f"    {label} {directive} {operands}")

    # ── Main generation entry point ───────────

    def generate(self, statements: List[Statement]) -> str:
        """Generate complete assembly output from a parsed statement list."""

        # First pass: register functions so calls may precede declarations
        for stmt in statements:
            if isinstance(stmt, FunctionDecl):
                self._register_function(stmt)

        # Second pass: emit code in declaration order
        for stmt in statements:
            self._gen_statement(stmt)

        self._gen_exit()

        text = self._assemble_output()
        log.debug("generated %d data lines, %d code lines, %d function lines",
                  len(self._data_lines), len(self._code_lines), len(self._func_lines))
        return text

    def _assemble_output(self) -> str:
        sections = [
            "; Program compiled using jplc (JPL compiler)",
            f"; Target: {self.profile['description']}",
            "",
            "SECTION .data",
        ]
        sections.extend(self._data_lines)
        sections.append("")
        sections.append("SECTION .text")
        sections.append(f"extern {', '.join(RUNTIME_SYMBOLS)}")
        sections.append("global _start")
        sections.append("")
        sections.append("_start:")
        sections.extend(self._code_lines)
        sections.extend(self._func_lines)
        sections.append("")
        return "\n".join(sections)

    def _gen_exit(self):
        self._emit_comment(f"exit({EXIT_SUCCESS_CODE})")
        self._emit(f"mov ebx, {EXIT_SUCCESS_CODE}")
        self._emit(f"mov eax, {self.profile['sys_exit']}")
        self._emit(self.profile["syscall"])

    # ── Function registration / generation ────

    def _register_function(self, decl: FunctionDecl):
        if decl.name.lower() == BUILTIN_PRINT:
            raise CodeGenError(f"Cannot redefine builtin '{decl.name}'", decl)
        if decl.name in self._functions:
            raise CodeGenError(f"Function '{decl.name}' already declared", decl)
        self._functions[decl.name] = decl

    def _gen_function(self, decl: FunctionDecl):
        if self._in_function is not None:
            raise UnsupportedConstruct(
                f"Nested function declaration '{decl.name}' inside '{self._in_function.name}'",
                decl)

        self._in_function = decl
        self._out = self._func_lines
        self._current_scope = Scope(parent=self._global_scope)
        self._current_scope.define(
            Symbol(name=decl.param, kind=SymbolKind.PARAM, label="[ebp - 4]"))

        self._emit_blank()
        self._emit_comment(f"Function: {decl.name}({decl.param})")
        self._emit_label(f"fn_{decl.name}")
        self._emit("push ebp")
        self._emit("mov ebp, esp")
        self._emit("push eax")

        for stmt in decl.body:
            self._gen_statement(stmt)

        # Default return (if no explicit return ends the body)
        if not decl.body or not isinstance(decl.body[-1], ReturnStmt):
            self._emit("xor eax, eax")
            self._emit_epilogue()

        self._in_function = None
        self._out = self._code_lines
        self._current_scope = self._global_scope

    def _emit_epilogue(self):
        self._emit("mov esp, ebp")
        self._emit("pop ebp")
        self._emit("ret")

    # ── Statement generation ──────────────────

    def _gen_statement(self, stmt: Statement):
        if isinstance(stmt, VarDecl):
            self._gen_var_decl(stmt)
        elif isinstance(stmt, FunctionCall):
            self._gen_call(stmt, as_value=False)
        elif isinstance(stmt, FunctionDecl):
            self._gen_function(stmt)
        elif isinstance(stmt, ReturnStmt):
            self._gen_return(stmt)
        else:
            raise UnsupportedConstruct(f"Unhandled statement type {type(stmt).__name__}", stmt)

    def _gen_var_decl(self, decl: VarDecl):
        if decl.name in self._current_scope.symbols:
            raise CodeGenError(f"Variable '{decl.name}' already declared", decl)

        kind = self._kind_of(decl.value)
        if self._in_function is not None:
            label = f"v_{self._in_function.name}_{decl.name}"
        else:
            label = f"v_{decl.name}"

        if kind is SymbolKind.STRING:
            if not isinstance(decl.value, QuotedString):
                raise UnsupportedConstruct(
                    f"Variable '{decl.name}' aliases another string variable", decl)
            self._emit_data(label, "db", nasm_string(decl.value.value))
        elif isinstance(decl.value, IntConstant) and self._in_function is None:
            self._check_int_range(decl.value)
            self._emit_data(label, self.profile["word"], str(decl.value.value))
        else:
            # Reserve a zeroed slot, then evaluate and store at declaration time
            self._emit_data(label, self.profile["word"], "0")
            self._emit_comment(f"let {decl.name}")
            self._gen_expr(decl.value)
            self._emit("pop eax")
            self._emit(f"mov [{label}], eax")

        self._current_scope.define(
            Symbol(name=decl.name, kind=kind, label=label, value=decl.value))

    def _gen_return(self, stmt: ReturnStmt):
        if self._in_function is None:
            raise CodeGenError("return outside of function", stmt)
        if self._kind_of(stmt.value) is SymbolKind.STRING:
            raise UnsupportedConstruct("Returning a string from a function", stmt)
        self._gen_expr(stmt.value)
        self._emit("pop eax")
        self._emit_epilogue()

    # ── Calls ─────────────────────────────────

    def _gen_call(self, call: FunctionCall, as_value: bool):
        if len(call.args) != 1:
            raise UnsupportedConstruct(
                f"Call to '{call.name}' with {len(call.args)} arguments (exactly one supported)",
                call)

        if call.name.lower() == BUILTIN_PRINT:
            if as_value:
                raise UnsupportedConstruct(f"'{call.name}' does not produce a value", call)
            self._gen_print(call.args[0])
            return

        if call.name not in self._functions:
            raise CodeGenError(f"Unknown function '{call.name}'", call)

        arg = call.args[0]
        if self._kind_of(arg) is SymbolKind.STRING:
            raise UnsupportedConstruct(f"String argument to function '{call.name}'", call)

        self._gen_expr(arg)
        self._emit("pop eax")
        self._emit(f"call fn_{call.name}")
        if as_value:
            self._emit("push eax")

    def _gen_print(self, arg: Expression):
        if isinstance(arg, QuotedString):
            label = self._new_string(arg.value)
            self._emit_print_string(label, arg.value)
            return

        if self._kind_of(arg) is SymbolKind.STRING:
            # Only a variable can resolve to a string here; literals were handled above
            sym = self._current_scope.lookup(arg.name)
            self._emit_print_string(sym.label, sym.value.value)
            return

        self._emit_comment("print integer")
        self._gen_expr(arg)
        self._emit("pop eax")
        self._emit("call print_int")
        self._emit("mov eax, 0Ah")
        self._emit("call print_char")

    def _emit_print_string(self, label: str, text: str):
        self._emit_comment("print string")
        self._emit(f"mov edx, {string_length(text)}")
        self._emit(f"mov ecx, {label}")
        self._emit("call print_string")

    def _new_string(self, text: str) -> str:
        label = f"str_{self._string_counter}"
        self._string_counter += 1
        self._emit_data(label, "db", nasm_string(text))
        return label

    # ── Expression generation ─────────────────
    # Convention: expression result is pushed onto the machine stack

    def _kind_of(self, expr: Expression) -> SymbolKind:
        """Storage class an expression evaluates to (NUMBER or STRING)."""
        if isinstance(expr, QuotedString):
            return SymbolKind.STRING
        if isinstance(expr, FloatConstant):
            raise UnsupportedConstruct("Floating-point values are not supported", expr)
        if isinstance(expr, Var):
            sym = self._lookup(expr)
            return SymbolKind.STRING if sym.kind is SymbolKind.STRING else SymbolKind.NUMBER
        if isinstance(expr, BinaryOp):
            for side in (expr.left, expr.right):
                if self._kind_of(side) is SymbolKind.STRING:
                    raise UnsupportedConstruct(
                        f"String operand to '{expr.op.value}' (string concatenation)", expr)
        return SymbolKind.NUMBER

    def _lookup(self, var: Var) -> Symbol:
        sym = self._current_scope.lookup(var.name)
        if sym is None:
            raise CodeGenError(f"Unknown variable '{var.name}'", var)
        return sym

    def _gen_expr(self, expr: Expression):
        if isinstance(expr, IntConstant):
            self._check_int_range(expr)
            self._emit(f"push dword {expr.value}")
        elif isinstance(expr, Var):
            self._gen_var_load(expr)
        elif isinstance(expr, BinaryOp):
            self._gen_binary_op(expr)
        elif isinstance(expr, FunctionCall):
            self._gen_call(expr, as_value=True)
        elif isinstance(expr, FloatConstant):
            raise UnsupportedConstruct("Floating-point arithmetic is not supported", expr)
        elif isinstance(expr, QuotedString):
            raise UnsupportedConstruct("String literal used as a number", expr)
        else:
            raise UnsupportedConstruct(f"Unhandled expression type {type(expr).__name__}", expr)

    def _check_int_range(self, const: IntConstant):
        if not INT32_MIN <= const.value <= INT32_MAX:
            raise UnsupportedConstruct(
                f"Integer constant {const.value} does not fit in a signed 32-bit integer", const)

    def _gen_var_load(self, var: Var):
        sym = self._lookup(var)
        if sym.kind is SymbolKind.STRING:
            raise UnsupportedConstruct(f"String variable '{var.name}' used as a number", var)
        if sym.kind is SymbolKind.PARAM:
            self._emit(f"push dword {sym.label}")
        else:
            self._emit(f"push dword [{sym.label}]")

    def _gen_binary_op(self, op: BinaryOp):
        """Evaluate left then right, pop into ebx (right) and eax (left), combine.

        Popping right first keeps eax = left, so subtraction and division
        come out as left - right and left / right.
        """
        self._kind_of(op)
        self._gen_expr(op.left)
        self._gen_expr(op.right)
        self._emit("pop ebx")
        self._emit("pop eax")

        if op.op is BinaryOperator.ADD:
            self._emit("add eax, ebx")
        elif op.op is BinaryOperator.SUBTRACT:
            self._emit("sub eax, ebx")
        elif op.op is BinaryOperator.MULTIPLY:
            self._emit("imul eax, ebx")
        elif op.op is BinaryOperator.DIVIDE:
            self._emit("cdq")           # clear remainder register (edx = sign of eax)
            self._emit("idiv ebx")
        else:
            raise UnsupportedConstruct(f"Unhandled operator {op.op}", op)

        self._emit("push eax")


def compile(statements: List[Statement], target: str = DEFAULT_TARGET) -> str:
    """Generate assembly text for a parsed program."""
    return CodeGenerator(target=target).generate(statements)
