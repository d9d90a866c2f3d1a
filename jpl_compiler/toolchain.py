"""
Toolchain driver: assemble, link, run and clean up.

Takes the assembly text produced by the code generator and turns it into
a running program with NASM and GNU ld, linking against the runtime
support object (runtime/jplrt.asm). Steps run one after another and block;
a failing step raises ToolchainError with the tool's combined output and
is never retried.
"""

from __future__ import annotations
import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .config import RUNTIME_SOURCE, ToolchainConfig
from .errors import ToolchainError

log = logging.getLogger(__name__)


@dataclass
class RunResult:
    returncode: int
    output: str


class Toolchain:
    """Drives nasm / ld / the produced executable for one build directory."""

    def __init__(self, config: Optional[ToolchainConfig] = None):
        self.config = config or ToolchainConfig()

    def _call(self, cmd: List[str], step: str) -> subprocess.CompletedProcess:
        log.info("[%s] %s", step, shlex.join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                timeout=self.config.timeout,
            )
        except FileNotFoundError as e:
            raise ToolchainError(f"{step}: '{cmd[0]}' not found on PATH") from e
        except subprocess.TimeoutExpired as e:
            output = e.output or ""
            if isinstance(output, bytes):   # run() does not decode on timeout
                output = output.decode("utf-8", errors="replace")
            raise ToolchainError(f"{step}: timed out after {e.timeout}s",
                                 output=output) from e
        if proc.stdout:
            log.debug("[%s] output:\n%s", step, proc.stdout.rstrip())
        return proc

    def _check(self, proc: subprocess.CompletedProcess, step: str):
        if proc.returncode != 0:
            raise ToolchainError(f"{step} failed with exit code {proc.returncode}",
                                 output=proc.stdout, returncode=proc.returncode)

    # ── Individual steps ─────────────────────

    def write_source(self, asm_text: str) -> Path:
        path = self.config.asm_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(asm_text, encoding="utf-8")
        log.debug("wrote %s (%d bytes)", path, len(asm_text))
        return path

    def assemble(self, source: Path, obj: Path):
        cmd = [self.config.nasm, "-f", self.config.profile["nasm_format"],
               str(source), "-o", str(obj)]
        self._check(self._call(cmd, "assemble"), "assemble")

    def assemble_runtime(self):
        self.assemble(RUNTIME_SOURCE, self.config.runtime_obj_path)

    def link(self):
        cfg = self.config
        cmd = [cfg.ld, "-m", cfg.profile["ld_emulation"],
               str(cfg.obj_path), str(cfg.runtime_obj_path), "-o", str(cfg.exe_path)]
        self._check(self._call(cmd, "link"), "link")

    def run(self) -> RunResult:
        proc = self._call([str(self.config.exe_path.resolve())], "run")
        return RunResult(returncode=proc.returncode, output=proc.stdout)

    def clean_up(self):
        """Delete object files, plus the .asm and executable unless keep is set."""
        cfg = self.config
        doomed = [cfg.obj_path, cfg.runtime_obj_path]
        if not cfg.keep:
            doomed += [cfg.asm_path, cfg.exe_path]
        for path in doomed:
            path.unlink(missing_ok=True)

    # ── Pipelines ────────────────────────────

    def build(self, asm_text: str) -> Path:
        """Write, assemble and link; returns the executable path."""
        source = self.write_source(asm_text)
        self.assemble(source, self.config.obj_path)
        self.assemble_runtime()
        self.link()
        return self.config.exe_path

    def build_and_run(self, asm_text: str) -> RunResult:
        try:
            self.build(asm_text)
            return self.run()
        finally:
            self.clean_up()
