"""
Main Compiler Driver

Orchestrates the compilation pipeline: lex, parse, resolve, generate, and
optionally assemble and link with binutils.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Dict, List, Optional

from foldcc.ast_nodes import Program
from foldcc.codegen import CodeGenerator
from foldcc.errors import CompileError
from foldcc.lexer import Lexer, LexerError, Token
from foldcc.parser import DEFAULT_MAX_DEPTH, Parser
from foldcc.resolver import DEFAULT_MAX_ITERATIONS, ResolveResult, Resolver
from foldcc.tree import TreeBuilder


logger = logging.getLogger(__name__)


@dataclass
class CompilationResult:
    """Result of compilation"""
    success: bool
    output_file: Optional[str] = None
    errors: List[str] = None
    warnings: List[str] = None
    assembly: Optional[str] = None
    ast: Optional[Program] = None
    symbols: Optional[Dict[str, int]] = None

    def __post_init__(self):
        if self.errors is None:
            self.errors = []
        if self.warnings is None:
            self.warnings = []


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("ignoring %s=%r: not an integer", name, raw)
        return default


class Compiler:
    """Main compiler class orchestrating all compilation stages"""

    def __init__(self, max_iterations: Optional[int] = None, max_depth: Optional[int] = None):
        if max_iterations is None:
            max_iterations = _env_int("FOLDCC_MAX_ITERATIONS", DEFAULT_MAX_ITERATIONS)
        if max_depth is None:
            max_depth = _env_int("FOLDCC_MAX_DEPTH", DEFAULT_MAX_DEPTH)
        self.max_iterations = max_iterations
        self.max_depth = max_depth

        # Toolchain defaults (binutils).
        self.assembler = os.environ.get("FOLDCC_AS", "as")
        self.linker = os.environ.get("FOLDCC_LD", "ld")

        self.builder = TreeBuilder()

    def compile_file(self, source_file: str, output_file: Optional[str] = None) -> CompilationResult:
        """Compile a source file.

        If output_file endswith:
        - .s : emit assembly
        - .o : assemble with system toolchain
        - otherwise: link to a static ELF executable (as + ld, no libc)
        """
        try:
            with open(source_file, 'r') as f:
                source_code = f.read()
        except IOError as e:
            return CompilationResult(
                success=False,
                errors=[f"Failed to read source file: {e}"]
            )
        return self.compile_code(source_code, output_file, source_path=source_file)

    def compile_code(self, source_code: str, output_file: Optional[str] = None, source_path: str = "<input>") -> CompilationResult:
        """Compile source code"""
        self.builder = TreeBuilder()

        try:
            logger.debug("%s: lexing", source_path)
            tokens = self.get_tokens(source_code, source_path)
            logger.debug("%s: parsing %d tokens", source_path, len(tokens))
            resolved = self.get_ast(tokens)
            logger.debug("%s: generating code", source_path)
            assembly = self.get_assembly(resolved)
        except (CompileError, LexerError) as e:
            return CompilationResult(success=False, errors=[str(e)])
        except (MemoryError, RecursionError) as e:
            self.builder.release_all()
            what = "Out of memory" if isinstance(e, MemoryError) else "Nesting too deep"
            return CompilationResult(success=False, errors=[what])

        if output_file:
            try:
                self._write_output(assembly, output_file)
            except IOError as e:
                return CompilationResult(success=False, errors=[f"Failed to write output file: {e}"])
            except subprocess.CalledProcessError as e:
                what = "Assembling" if output_file.endswith(".o") else "Linking"
                detail = getattr(e, "stderr", None) or getattr(e, "output", None)
                msg = f"{what} failed: {e}"
                if detail:
                    msg += f"\n{detail}"
                return CompilationResult(success=False, errors=[msg])

        return CompilationResult(
            success=True,
            output_file=output_file,
            assembly=assembly,
            warnings=list(resolved.warnings),
            ast=resolved.program,
            symbols=resolved.globals,
        )

    def _write_output(self, assembly: str, out: str) -> None:
        ext = os.path.splitext(out)[1]

        if ext == ".s":
            with open(out, 'w') as f:
                f.write(assembly)
            return

        with tempfile.TemporaryDirectory(prefix="foldcc_") as td:
            s_path = os.path.join(td, "out.s")
            with open(s_path, 'w') as f:
                f.write(assembly)
            if ext == ".o":
                self._run([self.assembler, "-o", out, s_path], "assemble")
                return
            o_path = os.path.join(td, "out.o")
            self._run([self.assembler, "-o", o_path, s_path], "assemble")
            self._run([self.linker, "-o", out, o_path], "link")

    def _run(self, cmd: List[str], what: str) -> None:
        logger.debug("%s: %s", what, " ".join(cmd))
        try:
            p = subprocess.run(cmd, check=False, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
        except FileNotFoundError as e:
            raise subprocess.CalledProcessError(127, cmd, stderr=str(e))
        if p.returncode != 0:
            msg = p.stderr.strip() or p.stdout.strip() or "(no output)"
            raise subprocess.CalledProcessError(p.returncode, cmd, output=p.stdout, stderr=msg)

    def get_tokens(self, source_code: str, source_path: str = "<input>") -> List[Token]:
        """Get tokens from source code"""
        lexer = Lexer(source_code, source_path)
        tokens = lexer.tokenize()
        if lexer.has_errors():
            # The first diagnostic aborts compilation.
            raise lexer.get_errors()[0]
        return tokens

    def get_ast(self, tokens: List[Token]) -> ResolveResult:
        """Parse and resolve; only the resolved tree stays live."""
        parser = Parser(tokens, builder=self.builder, max_depth=self.max_depth)
        syntax = parser.parse()
        resolver = Resolver(builder=self.builder, max_iterations=self.max_iterations)
        result = resolver.resolve(syntax)
        self.builder.release(syntax)
        logger.debug(
            "resolved: %d nodes live, %d allocated, %d released",
            self.builder.live,
            self.builder.allocated,
            self.builder.released,
        )
        return result

    def get_assembly(self, resolved: ResolveResult) -> str:
        """Generate assembly from the resolved tree"""
        generator = CodeGenerator()
        return generator.generate(resolved.program, resolved.exit_code)
