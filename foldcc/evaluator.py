"""foldcc.evaluator

Expression evaluation against the scope stack.

``evaluate`` never mutates its input: it builds a fresh resolved copy in
which every identifier is replaced by a literal holding the variable's
current value and every operator whose operands are both literals is folded.
"""

from __future__ import annotations

from typing import List, Optional

from foldcc.ast_nodes import BinaryOp, Expression, Identifier, IntLiteral
from foldcc.errors import ConstantFoldError, UnresolvedReferenceError
from foldcc.folding import apply_operator
from foldcc.symbols import ScopeStack
from foldcc.tree import TreeBuilder


def constant_value(expr: Optional[Expression]) -> Optional[int]:
    """The literal value of a fully folded expression, else None."""
    if isinstance(expr, IntLiteral):
        return expr.value
    return None


class ExpressionEvaluator:
    """Resolves and folds expression trees."""

    def __init__(self, builder: TreeBuilder):
        self.builder = builder

    def evaluate(self, expr: Expression, scopes: ScopeStack, strict: bool = True) -> Expression:
        """Return a resolved copy of ``expr``.

        With ``strict`` (code that actually runs at compile time) an unknown
        identifier or a division by zero is fatal. Otherwise the offending
        subtree is kept unfolded: it belongs to code that never runs.
        """
        if not isinstance(expr, BinaryOp):
            return self._evaluate_operand(expr, scopes, strict)

        # Walk the left spine without recursing: `x + x + ... + x` nests one
        # level per operator. Right operands only nest through parentheses
        # or a tighter-binding operator.
        spine: List[BinaryOp] = []
        node: Expression = expr
        while isinstance(node, BinaryOp):
            spine.append(node)
            node = node.left

        result = self._evaluate_operand(node, scopes, strict)
        for op in reversed(spine):
            right = self.evaluate(op.right, scopes, strict)
            result = self._combine(op, result, right, strict)
        return result

    def _evaluate_operand(self, expr: Expression, scopes: ScopeStack, strict: bool) -> Expression:
        if isinstance(expr, IntLiteral):
            return self.builder.make(IntLiteral, value=expr.value, line=expr.line, column=expr.column)

        if isinstance(expr, Identifier):
            symbol = scopes.lookup(expr.name)
            if symbol is not None:
                return self.builder.make(IntLiteral, value=symbol.value, line=expr.line, column=expr.column)
            if strict:
                raise UnresolvedReferenceError(expr.name, expr.line, expr.column)
            return self.builder.make(Identifier, name=expr.name, line=expr.line, column=expr.column)

        raise TypeError(f"not an expression: {expr.__class__.__name__}")

    def _combine(self, op: BinaryOp, left: Expression, right: Expression, strict: bool) -> Expression:
        binary = self.builder.make(
            BinaryOp, operator=op.operator, left=left, right=right, line=op.line, column=op.column
        )
        if not (isinstance(left, IntLiteral) and isinstance(right, IntLiteral)):
            return binary
        try:
            value = apply_operator(op.operator, left.value, right.value, op.line, op.column)
        except ConstantFoldError:
            if strict:
                raise
            return binary
        self.builder.release(binary)
        return self.builder.make(IntLiteral, value=value, line=op.line, column=op.column)
