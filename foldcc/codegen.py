"""foldcc.codegen

x86-64 Linux code generator.

The resolved tree has no run-time computation left: every expression that
executes is already a literal and every branch and loop has been decided.
What remains is the program's exit status, so the output is a freestanding
``_start`` that issues the ``exit`` system call (no C runtime is linked).

The status the kernel reports is the low byte of the 32-bit value.
"""

from __future__ import annotations

from typing import List, Optional

from foldcc.ast_nodes import (
    ASTNode,
    Block,
    DoWhileStmt,
    ExitCall,
    IfStmt,
    Program,
    VarDecl,
    WhileStmt,
)
from foldcc.evaluator import constant_value


SYS_EXIT = 60


class CodeGenerator:
    """Generates x86-64 assembly (GNU as, AT&T syntax)"""

    def __init__(self):
        self.assembly_lines: List[str] = []

    def generate(self, program: Program, exit_code: Optional[int] = None) -> str:
        """Generate assembly for a resolved program.

        ``exit_code`` is the status recorded by the resolver. It is used when
        the exit that ended the program was reached in a loop iteration whose
        tree was discarded; otherwise the reached ``ExitCall`` in the tree
        decides.
        """
        self.assembly_lines = []

        self._emit(".text")
        self._emit(".globl _start")
        self._emit("_start:")

        for name in self._declared_globals(program):
            self._emit(f"  # int {name}")

        call = self._find_reached_exit(program)
        if call is not None:
            code = constant_value(call.argument)
            if code is None:
                code = 0
        elif exit_code is not None:
            code = exit_code
        else:
            code = 0

        self._emit(f"  movq ${SYS_EXIT}, %rax")
        self._emit(f"  movq ${code}, %rdi")
        self._emit("  syscall")
        return "\n".join(self.assembly_lines) + "\n"

    def _emit(self, line: str) -> None:
        self.assembly_lines.append(line)

    @staticmethod
    def _declared_globals(program: Program) -> List[str]:
        return [s.name for s in program.statements if isinstance(s, VarDecl) and s.active]

    def _find_reached_exit(self, node: ASTNode) -> Optional[ExitCall]:
        # Only code that actually ran can hold the reached exit.
        if isinstance(node, ExitCall):
            return node if node.reached else None
        if isinstance(node, (Program, Block)):
            for stmt in node.statements:
                found = self._find_reached_exit(stmt)
                if found is not None:
                    return found
            return None
        if isinstance(node, IfStmt):
            block = node.live_block()
            return self._find_reached_exit(block) if block is not None else None
        if isinstance(node, (WhileStmt, DoWhileStmt)):
            if node.iterations > 0:
                return self._find_reached_exit(node.body)
            return None
        return None
