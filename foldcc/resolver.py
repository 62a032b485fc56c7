"""foldcc.resolver

Static execution of a parsed program.

The resolver walks the syntax tree once per compile-time execution step,
keeping the scope stack in exactly the state a real run would leave it in:

- declarations and assignments are applied only in active code;
- an if-chain activates the first clause whose condition folds nonzero,
  or its ``else`` when none does, and still resolves the other clauses
  structurally so they remain in the tree;
- loops are executed iteration by iteration against the live scopes until
  their condition folds to zero. Only the first iteration's resolved
  condition and body are kept; later iterations are released once their
  effects are applied;
- the first ``exit`` reached ends the program, so everything after it is
  resolved as inactive.

The scope stack, the ``active`` flag and the execution state are passed
explicitly to every method.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from foldcc.ast_nodes import (
    ASTNode,
    Assignment,
    Block,
    DoWhileStmt,
    ElseClause,
    ElseIfClause,
    ExitCall,
    Expression,
    IfStmt,
    IntLiteral,
    Program,
    Statement,
    VarDecl,
    WhileStmt,
)
from foldcc.errors import CompileError, LoopLimitError, UnresolvedReferenceError
from foldcc.evaluator import ExpressionEvaluator, constant_value
from foldcc.folding import COMPOUND_OPERATORS, apply_operator
from foldcc.symbols import ScopeStack
from foldcc.tree import TreeBuilder


logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100000


@dataclass
class ExecutionState:
    """Compile-time program state that outlives a single statement"""
    halted: bool = False
    exit_code: Optional[int] = None


@dataclass
class ResolveResult:
    program: Program
    globals: Dict[str, int] = field(default_factory=dict)
    exit_code: Optional[int] = None
    warnings: List[str] = field(default_factory=list)


class Resolver:
    """Resolves control flow by executing the program at compile time"""

    def __init__(self, builder: Optional[TreeBuilder] = None, max_iterations: int = DEFAULT_MAX_ITERATIONS):
        self.builder = builder if builder is not None else TreeBuilder()
        self.evaluator = ExpressionEvaluator(self.builder)
        self.max_iterations = max_iterations
        self.warnings: List[str] = []

    def resolve(self, program: Program, scopes: Optional[ScopeStack] = None) -> ResolveResult:
        """Resolve ``program``; the input tree is left untouched."""
        if scopes is None:
            scopes = ScopeStack()
        self.warnings = []
        state = ExecutionState()
        try:
            statements = self._resolve_statements(program.statements, scopes, True, state)
            resolved = self.builder.make(Program, statements=statements, line=program.line, column=program.column)
            return ResolveResult(
                program=resolved,
                globals=scopes.globals.values(),
                exit_code=state.exit_code,
                warnings=list(self.warnings),
            )
        except CompileError:
            scopes.close()
            self.builder.release_all()
            raise

    # -----------------
    # Helpers
    # -----------------

    @staticmethod
    def _live(active: bool, state: ExecutionState) -> bool:
        return active and not state.halted

    def _warn(self, message: str, node: ASTNode) -> None:
        text = f"{message} at {node.line}:{node.column}"
        logger.warning("%s", text)
        self.warnings.append(text)

    def _is_true(self, cond: Expression) -> bool:
        value = constant_value(cond)
        if value is None:
            self._warn("Condition is not a compile-time constant; treating it as true", cond)
            return True
        return value != 0

    # -----------------
    # Statements
    # -----------------

    def _resolve_statements(
        self, statements: List[Statement], scopes: ScopeStack, active: bool, state: ExecutionState
    ) -> List[Statement]:
        return [self._resolve_statement(stmt, scopes, active, state) for stmt in statements]

    def _resolve_statement(self, stmt: Statement, scopes: ScopeStack, active: bool, state: ExecutionState) -> Statement:
        if isinstance(stmt, VarDecl):
            return self._resolve_declaration(stmt, scopes, active, state)
        if isinstance(stmt, Assignment):
            return self._resolve_assignment(stmt, scopes, active, state)
        if isinstance(stmt, ExitCall):
            return self._resolve_exit(stmt, scopes, active, state)
        if isinstance(stmt, Block):
            return self._resolve_block(stmt, scopes, active, state)
        if isinstance(stmt, IfStmt):
            return self._resolve_if(stmt, scopes, active, state)
        if isinstance(stmt, WhileStmt):
            return self._resolve_while(stmt, scopes, active, state)
        if isinstance(stmt, DoWhileStmt):
            return self._resolve_do_while(stmt, scopes, active, state)
        raise TypeError(f"not a statement: {stmt.__class__.__name__}")

    def _resolve_block(self, block: Block, scopes: ScopeStack, active: bool, state: ExecutionState) -> Block:
        with scopes.scope():
            statements = self._resolve_statements(block.statements, scopes, active, state)
        return self.builder.make(Block, statements=statements, line=block.line, column=block.column)

    def _resolve_declaration(self, decl: VarDecl, scopes: ScopeStack, active: bool, state: ExecutionState) -> VarDecl:
        live = self._live(active, state)
        init = None
        if decl.initializer is not None:
            init = self.evaluator.evaluate(decl.initializer, scopes, strict=live)
        if live:
            value = constant_value(init)
            scopes.declare(decl.name, value if value is not None else 0, decl.line, decl.column)
        return self.builder.make(
            VarDecl, name=decl.name, initializer=init, active=live, line=decl.line, column=decl.column
        )

    def _resolve_assignment(
        self, assign: Assignment, scopes: ScopeStack, active: bool, state: ExecutionState
    ) -> Assignment:
        live = self._live(active, state)
        value = self.evaluator.evaluate(assign.value, scopes, strict=live)
        if not live:
            return self.builder.make(
                Assignment,
                target=assign.target,
                operator=assign.operator,
                value=value,
                active=False,
                line=assign.line,
                column=assign.column,
            )

        symbol = scopes.lookup(assign.target)
        if symbol is None:
            raise UnresolvedReferenceError(assign.target, assign.line, assign.column)
        rhs = constant_value(value)
        if assign.operator == "=":
            new_value = rhs
        else:
            new_value = apply_operator(
                COMPOUND_OPERATORS[assign.operator], symbol.value, rhs, assign.line, assign.column
            )
        scopes.assign(assign.target, new_value, assign.line, assign.column)

        # The stored value replaces the right-hand side in the kept tree.
        self.builder.release(value)
        literal = self.builder.make(IntLiteral, value=symbol.value, line=assign.line, column=assign.column)
        return self.builder.make(
            Assignment,
            target=assign.target,
            operator="=",
            value=literal,
            active=True,
            line=assign.line,
            column=assign.column,
        )

    def _resolve_exit(self, call: ExitCall, scopes: ScopeStack, active: bool, state: ExecutionState) -> ExitCall:
        live = self._live(active, state)
        arg = None
        if call.argument is not None:
            arg = self.evaluator.evaluate(call.argument, scopes, strict=live)
        if live:
            code = constant_value(arg)
            state.halted = True
            state.exit_code = code if code is not None else 0
            if not 0 <= state.exit_code <= 255:
                self._warn(f"Exit status {state.exit_code} is reported as {state.exit_code & 0xFF}", call)
            logger.debug("exit(%d) reached at %d:%d", state.exit_code, call.line, call.column)
        return self.builder.make(ExitCall, argument=arg, reached=live, line=call.line, column=call.column)

    # -----------------
    # Branches
    # -----------------

    def _resolve_if(self, stmt: IfStmt, scopes: ScopeStack, active: bool, state: ExecutionState) -> IfStmt:
        live = self._live(active, state)

        cond = self.evaluator.evaluate(stmt.condition, scopes, strict=live)
        if_active = live and self._is_true(cond)
        then_block = self._resolve_block(stmt.then_block, scopes, if_active, state)
        taken = if_active

        else_ifs: List[ElseIfClause] = []
        for clause in stmt.else_ifs:
            clause_live = live and not taken
            c = self.evaluator.evaluate(clause.condition, scopes, strict=clause_live)
            c_active = clause_live and self._is_true(c)
            b = self._resolve_block(clause.block, scopes, c_active, state)
            taken = taken or c_active
            else_ifs.append(self.builder.make(
                ElseIfClause, condition=c, block=b, active=c_active, line=clause.line, column=clause.column
            ))

        else_clause = None
        if stmt.else_clause is not None:
            e_active = live and not taken
            b = self._resolve_block(stmt.else_clause.block, scopes, e_active, state)
            else_clause = self.builder.make(
                ElseClause,
                block=b,
                active=e_active,
                line=stmt.else_clause.line,
                column=stmt.else_clause.column,
            )

        return self.builder.make(
            IfStmt,
            condition=cond,
            then_block=then_block,
            else_ifs=else_ifs,
            else_clause=else_clause,
            active=if_active,
            line=stmt.line,
            column=stmt.column,
        )

    # -----------------
    # Loops
    # -----------------

    def _check_iterations(self, loop: Statement, iterations: int) -> None:
        if iterations > self.max_iterations:
            raise LoopLimitError(
                f"Loop did not terminate within {self.max_iterations} compile-time iterations",
                loop.line,
                loop.column,
            )

    def _resolve_while(self, loop: WhileStmt, scopes: ScopeStack, active: bool, state: ExecutionState) -> WhileStmt:
        if not self._live(active, state):
            cond = self.evaluator.evaluate(loop.condition, scopes, strict=False)
            body = self._resolve_block(loop.body, scopes, False, state)
            return self.builder.make(
                WhileStmt, condition=cond, body=body, iterations=0, line=loop.line, column=loop.column
            )

        first_cond: Optional[Expression] = None
        first_body: Optional[Block] = None
        final_cond: Optional[Expression] = None
        iterations = 0

        while True:
            cond = self.evaluator.evaluate(loop.condition, scopes, strict=True)
            if not self._is_true(cond):
                final_cond = cond
                break
            iterations += 1
            self._check_iterations(loop, iterations)
            logger.debug("while at %d:%d: iteration %d", loop.line, loop.column, iterations)
            body = self._resolve_block(loop.body, scopes, True, state)
            if first_cond is None:
                first_cond, first_body = cond, body
            else:
                self.builder.release(cond)
                self.builder.release(body)
            if state.halted:
                break

        if first_cond is None:
            # Never entered: keep the false condition and a structural body.
            first_cond = final_cond
            first_body = self._resolve_block(loop.body, scopes, False, state)
        elif final_cond is not None:
            self.builder.release(final_cond)

        logger.debug("while at %d:%d: %d iterations executed", loop.line, loop.column, iterations)
        return self.builder.make(
            WhileStmt,
            condition=first_cond,
            body=first_body,
            iterations=iterations,
            line=loop.line,
            column=loop.column,
        )

    def _resolve_do_while(
        self, loop: DoWhileStmt, scopes: ScopeStack, active: bool, state: ExecutionState
    ) -> DoWhileStmt:
        if not self._live(active, state):
            body = self._resolve_block(loop.body, scopes, False, state)
            cond = self.evaluator.evaluate(loop.condition, scopes, strict=False)
            return self.builder.make(
                DoWhileStmt, body=body, condition=cond, iterations=0, line=loop.line, column=loop.column
            )

        first_body: Optional[Block] = None
        first_cond: Optional[Expression] = None
        iterations = 0

        while True:
            iterations += 1
            self._check_iterations(loop, iterations)
            logger.debug("do-while at %d:%d: iteration %d", loop.line, loop.column, iterations)
            body = self._resolve_block(loop.body, scopes, True, state)
            # After exit() the condition is never evaluated at run time.
            cond = self.evaluator.evaluate(loop.condition, scopes, strict=not state.halted)
            if first_body is None:
                first_body, first_cond = body, cond
            else:
                self.builder.release(body)
                self.builder.release(cond)
            if state.halted or not self._is_true(cond):
                break

        logger.debug("do-while at %d:%d: %d iterations executed", loop.line, loop.column, iterations)
        return self.builder.make(
            DoWhileStmt,
            body=first_body,
            condition=first_cond,
            iterations=iterations,
            line=loop.line,
            column=loop.column,
        )
