from foldcc.codegen import CodeGenerator
from foldcc.lexer import Lexer
from foldcc.parser import Parser
from foldcc.resolver import Resolver
from foldcc.tree import TreeBuilder


def _asm(code: str) -> str:
    builder = TreeBuilder()
    program = Parser(Lexer(code).tokenize(), builder=builder).parse()
    res = Resolver(builder=builder).resolve(program)
    return CodeGenerator().generate(res.program, res.exit_code)


def _exit_status(asm: str) -> str:
    lines = [l.strip() for l in asm.splitlines()]
    i = lines.index("movq $60, %rax")
    assert lines[i + 2] == "syscall"
    return lines[i + 1]


def test_entry_point():
    asm = _asm("exit(0);")
    lines = asm.splitlines()
    assert lines[:3] == [".text", ".globl _start", "_start:"]


def test_exit_code_from_folded_expression():
    assert _exit_status(_asm("exit(2 + 3 * 4);")) == "movq $14, %rdi"


def test_default_exit_zero():
    assert _exit_status(_asm("int x = 3;")) == "movq $0, %rdi"


def test_only_one_exit_is_emitted():
    asm = _asm("if (0) { exit(1); } else if (1) { exit(2); } else { exit(3); }")
    assert asm.count("syscall") == 1
    assert _exit_status(asm) == "movq $2, %rdi"


def test_exit_in_discarded_iteration():
    code = "int i = 0; while (1) { i += 1; if (i == 5) { exit(i); } }"
    assert _exit_status(_asm(code)) == "movq $5, %rdi"


def test_exit_in_loop_body():
    assert _exit_status(_asm("int i = 7; do { exit(i); } while (1);")) == "movq $7, %rdi"


def test_globals_listed():
    asm = _asm("int a = 1, b = 2; exit(a + b);")
    assert "# int a" in asm
    assert "# int b" in asm
    assert _exit_status(asm) == "movq $3, %rdi"
