"""
Target and toolchain configuration for the JPL compiler.

Target knowledge lives in TARGET_PROFILES (one entry per supported
platform); per-run toolchain settings live in ToolchainConfig, which the
CLI fills from its arguments and the JPLC_NASM / JPLC_LD environment
variables.
"""

from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


# ──────────────────────────────────────────────
# Target profiles
# ──────────────────────────────────────────────

TARGET_PROFILES = {
    "linux-i386": {
        "nasm_format": "elf32",
        "ld_emulation": "elf_i386",
        "word": "dd",              # data directive for a 32-bit slot
        "sys_exit": 1,
        "syscall": "int 80h",
        "description": "32-bit x86 Linux (NASM, int 80h)",
    },
}

DEFAULT_TARGET = "linux-i386"

EXIT_SUCCESS_CODE = 0              # status the generated program exits with

# Runtime support object shipped with the package
RUNTIME_SOURCE = Path(__file__).resolve().parent / "runtime" / "jplrt.asm"
RUNTIME_SYMBOLS = ("print_int", "print_char", "print_string")

ENV_NASM = "JPLC_NASM"
ENV_LD = "JPLC_LD"


@dataclass
class ToolchainConfig:
    """Settings for the external assemble / link / run steps."""
    nasm: str = field(default_factory=lambda: os.environ.get(ENV_NASM, "nasm"))
    ld: str = field(default_factory=lambda: os.environ.get(ENV_LD, "ld"))
    build_dir: Path = field(default_factory=Path.cwd)
    stem: str = "a"
    target: str = DEFAULT_TARGET
    keep: bool = False
    timeout: Optional[float] = 30.0

    @property
    def profile(self) -> dict:
        return TARGET_PROFILES[self.target]

    @property
    def asm_path(self) -> Path:
        return self.build_dir / f"{self.stem}.asm"

    @property
    def obj_path(self) -> Path:
        return self.build_dir / f"{self.stem}.o"

    @property
    def runtime_obj_path(self) -> Path:
        return self.build_dir / f"{self.stem}.jplrt.o"

    @property
    def exe_path(self) -> Path:
        return self.build_dir / self.stem

    def output_paths(self) -> List[Path]:
        return [self.asm_path, self.obj_path, self.runtime_obj_path, self.exe_path]

    def avoid_clobbering(self, source: Path):
        """Append ".out" to the stem until no build output resolves to *source*.

        e.g. `prog` builds ./prog.out, and `hello.asm` writes hello.out.asm.
        """
        source = Path(source).resolve()
        while source in (p.resolve() for p in self.output_paths()):
            self.stem += ".out"
