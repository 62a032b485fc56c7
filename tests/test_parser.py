"""
Unit tests for the Parser module
"""

import pytest

from foldcc.ast_nodes import (
    Assignment,
    BinaryOp,
    Block,
    DoWhileStmt,
    ExitCall,
    Identifier,
    IfStmt,
    IntLiteral,
    VarDecl,
    WhileStmt,
)
from foldcc.errors import (
    ConstantFoldError,
    NestingLimitError,
    ParserError,
    UnexpectedEndOfInput,
)
from foldcc.lexer import Lexer
from foldcc.parser import Parser
from foldcc.tree import TreeBuilder


def _parse(code: str, builder=None, max_depth=100):
    tokens = Lexer(code).tokenize()
    return Parser(tokens, builder=builder, max_depth=max_depth).parse()


def _exit_arg(code: str):
    prog = _parse(code)
    stmt = prog.statements[-1]
    assert isinstance(stmt, ExitCall)
    return stmt.argument


class TestPrecedence:
    def test_multiplication_binds_tighter(self):
        arg = _exit_arg("exit(2 + 3 * 4);")
        assert isinstance(arg, IntLiteral)
        assert arg.value == 14

    def test_parentheses_override(self):
        arg = _exit_arg("exit((2 + 3) * 4);")
        assert isinstance(arg, IntLiteral)
        assert arg.value == 20

    def test_left_associative_subtraction(self):
        assert _exit_arg("exit(10 - 3 - 2);").value == 5

    def test_left_associative_division(self):
        assert _exit_arg("exit(100 / 10 / 5);").value == 2

    def test_shift_below_additive(self):
        assert _exit_arg("exit(1 << 2 + 1);").value == 8

    def test_comparison_below_shift(self):
        assert _exit_arg("exit(1 << 3 > 7);").value == 1

    def test_equality_below_relational(self):
        assert _exit_arg("exit(1 < 2 == 1);").value == 1

    def test_bitwise_ordering(self):
        # & binds tighter than ^, which binds tighter than |
        assert _exit_arg("exit(1 | 2 ^ 3 & 1);").value == (1 | (2 ^ (3 & 1)))

    def test_logical_ordering(self):
        assert _exit_arg("exit(0 && 1 || 1);").value == 1
        assert _exit_arg("exit(1 || 0 && 0);").value == 1

    def test_identifier_stays_symbolic(self):
        arg = _exit_arg("int x = 1; exit(x + 2 * 3);")
        assert isinstance(arg, BinaryOp)
        assert arg.operator == "+"
        assert isinstance(arg.left, Identifier)
        assert isinstance(arg.right, IntLiteral)
        assert arg.right.value == 6

    def test_folded_literal_takes_operator_position(self):
        arg = _exit_arg("exit(2 +\n 3);")
        assert (arg.line, arg.column) == (1, 8)

    def test_division_by_zero_while_folding(self):
        with pytest.raises(ConstantFoldError) as ei:
            _parse("exit(5 / 0);")
        assert (ei.value.line, ei.value.column) == (1, 8)


class TestStatements:
    def test_declaration_with_several_declarators(self):
        prog = _parse("int a = 1, b, c = 2 + 2;")
        assert [type(s) for s in prog.statements] == [VarDecl, VarDecl, VarDecl]
        a, b, c = prog.statements
        assert a.name == "a" and a.initializer.value == 1
        assert b.name == "b" and b.initializer is None
        assert c.initializer.value == 4

    def test_compound_assignment(self):
        prog = _parse("int x; x <<= 2;")
        stmt = prog.statements[1]
        assert isinstance(stmt, Assignment)
        assert stmt.operator == "<<="
        assert stmt.value.value == 2

    def test_exit_without_argument(self):
        prog = _parse("exit();")
        assert prog.statements[0].argument is None

    def test_if_else_if_else_chain(self):
        prog = _parse("if (0) { } else if (1) { } else if (2) { } else { }")
        stmt = prog.statements[0]
        assert isinstance(stmt, IfStmt)
        assert len(stmt.else_ifs) == 2
        assert stmt.else_clause is not None

    def test_while(self):
        prog = _parse("int i = 0; while (i < 3) { i += 1; }")
        loop = prog.statements[1]
        assert isinstance(loop, WhileStmt)
        assert isinstance(loop.body, Block)
        assert isinstance(loop.body.statements[0], Assignment)

    def test_do_while(self):
        prog = _parse("int x = 0; do { x = x + 1; } while (x < 1);")
        loop = prog.statements[1]
        assert isinstance(loop, DoWhileStmt)
        assert isinstance(loop.condition, BinaryOp)

    def test_nested_blocks(self):
        prog = _parse("{ { int x = 1; } }")
        outer = prog.statements[0]
        assert isinstance(outer, Block)
        assert isinstance(outer.statements[0], Block)


class TestErrors:
    def test_missing_semicolon(self):
        with pytest.raises(ParserError) as ei:
            _parse("int x = 1 int y;")
        assert "Expected ',' or ';'" in str(ei.value)
        assert (ei.value.line, ei.value.column) == (1, 11)

    def test_missing_paren_after_exit(self):
        with pytest.raises(ParserError, match="Expected '\\(' after 'exit'"):
            _parse("exit 3;")

    def test_else_without_if(self):
        with pytest.raises(ParserError, match="'else' without preceding 'if'"):
            _parse("else { }")

    def test_else_if_without_if(self):
        with pytest.raises(ParserError, match="'else if' without preceding 'if'"):
            _parse("int x; else if (1) { }")

    def test_if_requires_block(self):
        with pytest.raises(ParserError, match="Expected '\\{'"):
            _parse("if (1) exit(1);")

    def test_unsupported_statement(self):
        with pytest.raises(ParserError, match="Unsupported statement starting with 'x'"):
            _parse("x;")

    def test_unexpected_end_of_input(self):
        with pytest.raises(UnexpectedEndOfInput):
            _parse("while (1) {")

    def test_unexpected_end_in_expression(self):
        with pytest.raises(UnexpectedEndOfInput):
            _parse("exit(1 +")

    def test_stray_operator(self):
        with pytest.raises(ParserError, match="Unexpected token"):
            _parse("exit(*);")


class TestNestingLimit:
    def test_block_nesting(self):
        code = "{" * 11 + "}" * 11
        with pytest.raises(NestingLimitError):
            _parse(code, max_depth=10)

    def test_block_nesting_within_limit(self):
        code = "{" * 10 + "}" * 10
        _parse(code, max_depth=10)

    def test_parenthesis_nesting(self):
        code = "exit(" + "(" * 20 + "1" + ")" * 20 + ");"
        with pytest.raises(NestingLimitError):
            _parse(code, max_depth=10)

    def test_flat_symbolic_chain_is_not_nesting(self):
        code = "int x; exit(" + " + ".join(["x"] * 200) + ");"
        arg = _exit_arg(code)
        assert isinstance(arg, BinaryOp)
        depth = 0
        while isinstance(arg, BinaryOp):
            assert isinstance(arg.right, Identifier)
            arg = arg.left
            depth += 1
        assert depth == 199

    def test_flat_chain_with_small_limit(self):
        code = "int x; exit(" + " + ".join(["x"] * 50) + ");"
        _parse(code, max_depth=2)

    def test_parenthesised_symbolic_nesting(self):
        code = "int x; exit(" + "(x + " * 11 + "x" + ")" * 11 + ");"
        with pytest.raises(NestingLimitError):
            _parse(code, max_depth=10)

    def test_long_literal_chain_folds(self):
        code = "exit(" + " + ".join(["1"] * 500) + ");"
        assert _exit_arg(code).value == 500


class TestTreeAccounting:
    def test_release_balances(self):
        builder = TreeBuilder()
        prog = _parse("int x = 1 + 2; if (x) { x = 3; } else { exit(x); }", builder=builder)
        assert builder.live > 0
        builder.release(prog)
        assert builder.live == 0
        assert builder.allocated == builder.released

    def test_folding_releases_displaced_nodes(self):
        builder = TreeBuilder()
        prog = _parse("exit(2 + 3 * 4);", builder=builder)
        # Program, ExitCall and the folded literal remain
        assert builder.live == 3
        builder.release(prog)
        assert builder.live == 0

    def test_long_chain_release_balances(self):
        builder = TreeBuilder()
        prog = _parse("int x; exit(" + " + ".join(["x"] * 5000) + ");", builder=builder)
        builder.release(prog)
        assert builder.live == 0
        assert builder.allocated == builder.released

    def test_error_releases_everything(self):
        builder = TreeBuilder()
        with pytest.raises(ParserError):
            _parse("int x = 1; while (x) { x = 2;", builder=builder)
        assert builder.live == 0


def test_token_list_without_eof():
    tokens = Lexer("int x = 1; exit(x);").tokenize()[:-1]
    prog = Parser(tokens).parse()
    assert len(prog.statements) == 2


def test_token_list_without_eof_incomplete():
    tokens = Lexer("exit(1").tokenize()[:-1]
    with pytest.raises(UnexpectedEndOfInput):
        Parser(tokens).parse()


def test_repeated_construct_and_release():
    builder = TreeBuilder()
    for _ in range(5):
        prog = _parse("int a = (1 + 2) * 3 - 4 / 2; exit(a % 5 + 10 << 1);", builder=builder)
        builder.release(prog)
        assert builder.live == 0
    assert builder.allocated == builder.released
