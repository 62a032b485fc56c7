"""
Abstract Syntax Tree (AST) Node Definitions for foldcc

One dataclass per node kind. Statement sequences are ordered lists (the
sibling chain) and nested constructs hang off named fields (the child link),
so the tree never contains back-edges.

The same classes describe both the parsed syntax tree and the resolved tree
handed to code generation; the resolver fills in the ``active``/``reached``/
``iterations`` fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Union


@dataclass
class ASTNode:
    """Base class for all AST nodes"""
    line: int
    column: int
    # Assigned by the TreeBuilder that allocated the node.
    node_id: int = field(default=0, init=False, repr=False, compare=False)

    def children(self) -> Iterator["ASTNode"]:
        """Owned subtrees, first child before next sibling."""
        return iter(())


# ============== Expression Nodes ==============

@dataclass
class Expression(ASTNode):
    """Base class for expressions"""
    pass


@dataclass
class IntLiteral(Expression):
    """Integer literal (always a signed 32-bit value)"""
    value: int


@dataclass
class Identifier(Expression):
    """Variable reference"""
    name: str


@dataclass
class BinaryOp(Expression):
    """Binary operation"""
    operator: str
    left: Expression
    right: Expression

    def children(self) -> Iterator[ASTNode]:
        yield self.left
        yield self.right


# ============== Statement Nodes ==============

@dataclass
class Statement(ASTNode):
    """Base class for statements"""
    pass


@dataclass
class Block(Statement):
    """Block statement { ... }"""
    statements: List[Statement] = field(default_factory=list)

    def children(self) -> Iterator[ASTNode]:
        return iter(list(self.statements))


@dataclass
class VarDecl(Statement):
    """One declarator of an ``int`` declaration"""
    name: str
    initializer: Optional[Expression] = None
    active: bool = True

    def children(self) -> Iterator[ASTNode]:
        if self.initializer is not None:
            yield self.initializer


@dataclass
class Assignment(Statement):
    """Assignment statement ``name op= value;``"""
    target: str
    operator: str  # '=', '+=', '-=', '*=', '/=', '%=', '<<=', '>>='
    value: Expression
    active: bool = True

    def children(self) -> Iterator[ASTNode]:
        yield self.value


@dataclass
class ExitCall(Statement):
    """Built-in ``exit(code);``"""
    argument: Optional[Expression] = None
    # True for the exit that terminates the program at compile time.
    reached: bool = False

    def children(self) -> Iterator[ASTNode]:
        if self.argument is not None:
            yield self.argument


@dataclass
class ElseIfClause(ASTNode):
    """``else if (condition) { ... }`` link of an if-chain"""
    condition: Expression
    block: Block
    active: bool = False

    def children(self) -> Iterator[ASTNode]:
        yield self.condition
        yield self.block


@dataclass
class ElseClause(ASTNode):
    """Trailing ``else { ... }`` of an if-chain"""
    block: Block
    active: bool = False

    def children(self) -> Iterator[ASTNode]:
        yield self.block


@dataclass
class IfStmt(Statement):
    """If statement with its chained else-if/else clauses"""
    condition: Expression
    then_block: Block
    else_ifs: List[ElseIfClause] = field(default_factory=list)
    else_clause: Optional[ElseClause] = None
    active: bool = False

    def children(self) -> Iterator[ASTNode]:
        yield self.condition
        yield self.then_block
        yield from list(self.else_ifs)
        if self.else_clause is not None:
            yield self.else_clause

    def live_block(self) -> Optional[Block]:
        """The single branch whose effects were applied, if any."""
        if self.active:
            return self.then_block
        for clause in self.else_ifs:
            if clause.active:
                return clause.block
        if self.else_clause is not None and self.else_clause.active:
            return self.else_clause.block
        return None


@dataclass
class WhileStmt(Statement):
    """While loop; a resolved loop keeps its first iteration only"""
    condition: Expression
    body: Block
    iterations: int = 0

    def children(self) -> Iterator[ASTNode]:
        yield self.condition
        yield self.body


@dataclass
class DoWhileStmt(Statement):
    """Do-while loop"""
    body: Block
    condition: Expression
    iterations: int = 0

    def children(self) -> Iterator[ASTNode]:
        yield self.body
        yield self.condition


# ============== Program Node ==============

@dataclass
class Program(ASTNode):
    """Root node representing entire program"""
    statements: List[Statement] = field(default_factory=list)

    def children(self) -> Iterator[ASTNode]:
        return iter(list(self.statements))


Node = Union[Program, Statement, Expression, ElseIfClause, ElseClause]


def walk(node: ASTNode) -> Iterator[ASTNode]:
    """Pre-order traversal of a subtree."""
    stack = [node]
    while stack:
        cur = stack.pop()
        yield cur
        stack.extend(reversed(list(cur.children())))


# ============== Utility Functions ==============

def print_ast(node: ASTNode, indent: int = 0) -> str:
    """Pretty-print AST node"""
    prefix = "  " * indent

    if isinstance(node, Program):
        result = f"{prefix}PROGRAM\n"
        for stmt in node.statements:
            result += print_ast(stmt, indent + 1)
        return result

    elif isinstance(node, Block):
        result = f"{prefix}BLOCK {{\n"
        for stmt in node.statements:
            result += print_ast(stmt, indent + 1)
        return result + f"{prefix}}} // END BLOCK\n"

    elif isinstance(node, VarDecl):
        result = f"{prefix}VAR_DECL: {node.name}{'' if node.active else ' (inactive)'}\n"
        if node.initializer is not None:
            result += print_ast(node.initializer, indent + 1)
        return result

    elif isinstance(node, Assignment):
        result = f"{prefix}ASSIGNMENT: {node.target} {node.operator}{'' if node.active else ' (inactive)'}\n"
        return result + print_ast(node.value, indent + 1)

    elif isinstance(node, ExitCall):
        result = f"{prefix}EXIT_CALL{' (reached)' if node.reached else ''}\n"
        if node.argument is not None:
            result += print_ast(node.argument, indent + 1)
        return result

    elif isinstance(node, IfStmt):
        result = f"{prefix}IF_STATEMENT{' (active)' if node.active else ''}\n"
        result += f"{prefix}  CONDITION:\n"
        result += print_ast(node.condition, indent + 2)
        result += print_ast(node.then_block, indent + 1)
        for clause in node.else_ifs:
            result += print_ast(clause, indent)
        if node.else_clause is not None:
            result += print_ast(node.else_clause, indent)
        return result

    elif isinstance(node, ElseIfClause):
        result = f"{prefix}ELSE_IF_STATEMENT{' (active)' if node.active else ''}\n"
        result += f"{prefix}  CONDITION:\n"
        result += print_ast(node.condition, indent + 2)
        return result + print_ast(node.block, indent + 1)

    elif isinstance(node, ElseClause):
        result = f"{prefix}ELSE_STATEMENT{' (active)' if node.active else ''}\n"
        return result + print_ast(node.block, indent + 1)

    elif isinstance(node, WhileStmt):
        result = f"{prefix}WHILE_STATEMENT (iterations={node.iterations})\n"
        result += f"{prefix}  CONDITION:\n"
        result += print_ast(node.condition, indent + 2)
        return result + print_ast(node.body, indent + 1)

    elif isinstance(node, DoWhileStmt):
        result = f"{prefix}DO_WHILE_STATEMENT (iterations={node.iterations})\n"
        result += print_ast(node.body, indent + 1)
        result += f"{prefix}  CONDITION:\n"
        return result + print_ast(node.condition, indent + 2)

    elif isinstance(node, BinaryOp):
        # left spine printed iteratively; each left child is one level deeper
        spine = [node]
        while isinstance(spine[-1].left, BinaryOp):
            spine.append(spine[-1].left)
        result = ""
        for depth, op in enumerate(spine):
            result += f"{'  ' * (indent + depth)}BINARY_EXPR: {op.operator}\n"
        result += print_ast(spine[-1].left, indent + len(spine))
        for depth in range(len(spine) - 1, -1, -1):
            result += print_ast(spine[depth].right, indent + depth + 1)
        return result

    elif isinstance(node, Identifier):
        return f"{prefix}IDENTIFIER: {node.name}\n"

    elif isinstance(node, IntLiteral):
        return f"{prefix}LITERAL_INT: {node.value}\n"

    else:
        return f"{prefix}{node.__class__.__name__}\n"
