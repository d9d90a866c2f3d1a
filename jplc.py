#!/usr/bin/env python3
"""
jplc — JPL compiler CLI

Usage:
    python jplc.py <input.jpl> [-o output.asm] [-S] [--no-run] [--keep]
                               [--build-dir DIR] [--nasm PATH] [--ld PATH]
                               [--tokens] [--ast] [-v | -q] [--log-file PATH]

By default the program is compiled, assembled, linked against the runtime
support object, run, and its output echoed; jplc then exits with the
program's status. -S / -o stop after code generation.

Exit status:
    0  success (or the program's own status after a run; 128+n if killed by signal n)
    1  input file missing or unreadable
    2  lexical or syntax error
    3  unsupported construct / code generation error
    4  assembler, linker or launcher failure
    5  internal compiler error

Examples:
    python jplc.py hello.jpl                 # build, run, clean up
    python jplc.py hello.jpl -S              # assembly to stdout
    python jplc.py hello.jpl -o hello.asm    # assembly to a file
    python jplc.py hello.jpl --keep --build-dir build/
"""

import argparse
import logging
import sys
import os
from pathlib import Path

# Allow running from project root or as module
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from jpl_compiler import __version__
from jpl_compiler.lexer import Lexer
from jpl_compiler.parser import Parser
from jpl_compiler.codegen import CodeGenerator
from jpl_compiler.config import DEFAULT_TARGET, TARGET_PROFILES, ToolchainConfig
from jpl_compiler.errors import LexError, ParseError, CodeGenError, ToolchainError
from jpl_compiler.log import setup_logging
from jpl_compiler.toolchain import Toolchain

EXIT_OK = 0
EXIT_IO_ERROR = 1
EXIT_SYNTAX_ERROR = 2
EXIT_CODEGEN_ERROR = 3
EXIT_TOOLCHAIN_ERROR = 4
EXIT_INTERNAL_ERROR = 5

log = logging.getLogger("jpl_compiler.cli")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jplc",
        description="Ahead-of-time compiler for the JPL toy language",
        epilog="Targets: " + ", ".join(TARGET_PROFILES.keys()),
    )
    parser.add_argument("input", help="Input JPL source file")
    parser.add_argument("-o", "--output", help="Write assembly to this file and stop")
    parser.add_argument("-S", "--emit-asm", action="store_true",
                        help="Print assembly to stdout and stop")
    parser.add_argument("--target", default=DEFAULT_TARGET,
                        choices=list(TARGET_PROFILES.keys()),
                        help=f"Target platform (default: {DEFAULT_TARGET})")
    parser.add_argument("--no-run", action="store_true",
                        help="Assemble and link but do not run the program (implies --keep)")
    parser.add_argument("--keep", action="store_true",
                        help="Keep the .asm file and executable after running")
    parser.add_argument("--build-dir", default=".",
                        help="Directory for intermediate files (default: .)")
    parser.add_argument("--nasm", default=None, help="Assembler executable (default: $JPLC_NASM or nasm)")
    parser.add_argument("--ld", default=None, help="Linker executable (default: $JPLC_LD or ld)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log compilation details to stderr")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Only log errors")
    parser.add_argument("--log-file", default=None, help="Also write a DEBUG log to this file")
    parser.add_argument("--tokens", action="store_true",
                        help="Dump token stream and exit (debug)")
    parser.add_argument("--ast", action="store_true",
                        help="Dump AST and exit (debug)")
    parser.add_argument("--version", action="version",
                        version=f"jplc {__version__}")
    return parser


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)

    if args.quiet:
        level = logging.ERROR
    elif args.verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING
    setup_logging(console_level=level, log_file=args.log_file)

    # Read input
    try:
        source = Path(args.input).read_bytes()
    except FileNotFoundError:
        log.error("File not found: %s", args.input)
        return EXIT_IO_ERROR
    except OSError as e:
        log.error("Error reading %s: %s", args.input, e)
        return EXIT_IO_ERROR

    log.debug("Input: %s (%d bytes)", args.input, len(source))

    try:
        tokens = Lexer(source).tokenize()
        if args.tokens:
            for tok in tokens:
                print(tok)
            return EXIT_OK

        statements = Parser(tokens).parse()
        if args.ast:
            for stmt in statements:
                _print_ast(stmt)
            return EXIT_OK

        asm_text = CodeGenerator(target=args.target).generate(statements)
        log.debug("Generated %d lines of assembly", asm_text.count("\n") + 1)

        if args.emit_asm:
            sys.stdout.write(asm_text)
            return EXIT_OK
        if args.output:
            Path(args.output).write_text(asm_text, encoding="utf-8")
            log.info("Output: %s", args.output)
            return EXIT_OK

        config = ToolchainConfig(build_dir=Path(args.build_dir),
                                 stem=Path(args.input).stem or "a",
                                 target=args.target,
                                 keep=args.keep or args.no_run)
        config.avoid_clobbering(Path(args.input))
        log.debug("Build stem: %s", config.stem)
        if args.nasm:
            config.nasm = args.nasm
        if args.ld:
            config.ld = args.ld
        toolchain = Toolchain(config)

        if args.no_run:
            try:
                exe = toolchain.build(asm_text)
            finally:
                toolchain.clean_up()
            log.info("Executable: %s", exe)
            return EXIT_OK

        result = toolchain.build_and_run(asm_text)
        sys.stdout.write(result.output)
        sys.stdout.flush()
        if result.returncode < 0:
            # Killed by a signal: report 128+n like a shell
            signum = -result.returncode
            log.warning("Program terminated by signal %d", signum)
            return 128 + signum
        return result.returncode

    except (LexError, ParseError) as e:
        log.error("%s", e)
        return EXIT_SYNTAX_ERROR
    except CodeGenError as e:
        log.error("%s", e)
        return EXIT_CODEGEN_ERROR
    except ToolchainError as e:
        log.error("%s", e)
        if e.output:
            sys.stderr.write(e.output)
        return EXIT_TOOLCHAIN_ERROR
    except OSError as e:
        log.error("I/O error: %s", e)
        return EXIT_IO_ERROR
    except Exception:
        log.exception("Internal compiler error")
        return EXIT_INTERNAL_ERROR


def _print_ast(node, indent=0):
    """Pretty-print an AST node tree (debug helper)."""
    prefix = "  " * indent
    if hasattr(node, '__dataclass_fields__'):
        print(f"{prefix}{type(node).__name__}:")
        for fname in node.__dataclass_fields__:
            val = getattr(node, fname)
            if isinstance(val, list):
                print(f"{prefix}  {fname}:")
                for item in val:
                    _print_ast(item, indent + 2)
            elif hasattr(val, '__dataclass_fields__'):
                print(f"{prefix}  {fname}:")
                _print_ast(val, indent + 2)
            else:
                print(f"{prefix}  {fname}: {val}")
    else:
        print(f"{prefix}{node}")


if __name__ == "__main__":
    sys.exit(main())
