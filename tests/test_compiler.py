import platform
import shutil
import subprocess

import pytest

from foldcc.compiler import Compiler


needs_binutils = pytest.mark.skipif(
    not (shutil.which("as") and shutil.which("ld")) or platform.machine() not in ("x86_64", "AMD64"),
    reason="x86-64 binutils (as, ld) not available",
)


def _compile_and_run(tmp_path, code: str) -> int:
    src = tmp_path / "t.fc"
    out = tmp_path / "t"
    src.write_text(code)

    comp = Compiler()
    res = comp.compile_file(str(src), str(out))
    assert res.success, "compile failed: " + "\n".join(res.errors)

    p = subprocess.run([str(out)], check=False)
    return p.returncode


def test_compile_code_success():
    res = Compiler().compile_code("int x = 2; x *= 21; exit(x);")
    assert res.success
    assert res.errors == []
    assert res.symbols == {"x": 42}
    assert "movq $42, %rdi" in res.assembly
    assert res.ast is not None


def test_diagnostic_format_for_undeclared():
    res = Compiler().compile_code("int x = 1;\nexit(y);")
    assert not res.success
    assert res.errors == ["Undefined variable 'y' at 2:6"]


def test_diagnostic_for_division_by_zero():
    res = Compiler().compile_code("exit(5 / 0);")
    assert not res.success
    assert res.errors == ["Division by zero at 1:8"]


def test_diagnostic_for_lexer_error():
    res = Compiler().compile_code("int x = 1 $ 2;")
    assert not res.success
    assert res.errors == ["Unexpected character '$' at 1:11"]


def test_diagnostic_for_syntax_error():
    res = Compiler().compile_code("int x = 1")
    assert not res.success
    assert len(res.errors) == 1
    assert "Unexpected end of input" in res.errors[0]


def test_loop_limit_from_constructor():
    res = Compiler(max_iterations=10).compile_code("while (1) { }")
    assert not res.success
    assert "compile-time iterations" in res.errors[0]


def test_loop_limit_from_environment(monkeypatch):
    monkeypatch.setenv("FOLDCC_MAX_ITERATIONS", "3")
    comp = Compiler()
    assert comp.max_iterations == 3
    res = comp.compile_code("int i = 0; while (i < 4) { i += 1; }")
    assert not res.success


def test_depth_limit_from_environment(monkeypatch):
    monkeypatch.setenv("FOLDCC_MAX_DEPTH", "2")
    res = Compiler().compile_code("{ { { } } }")
    assert not res.success
    assert "Nesting deeper than 2 levels" in res.errors[0]


def test_long_flat_sum_compiles():
    res = Compiler().compile_code("int x = 1; exit(" + " + ".join(["x"] * 200) + ");")
    assert res.success, res.errors
    assert "movq $200, %rdi" in res.assembly


def test_long_flat_sum_in_dead_branch():
    comp = Compiler()
    chain = " + ".join(["y"] * 3000)
    res = comp.compile_code(f"if (0) {{ exit({chain}); }} exit(4);")
    assert res.success, res.errors
    assert "movq $4, %rdi" in res.assembly
    comp.builder.release(res.ast)
    assert comp.builder.live == 0


def test_warnings_are_collected():
    res = Compiler().compile_code("exit(256 + 7);")
    assert res.success
    assert res.warnings == ["Exit status 263 is reported as 7 at 1:1"]


def test_no_warnings_for_plain_program():
    res = Compiler().compile_code("int x = 2; exit(x);")
    assert res.warnings == []


def test_bad_environment_value_falls_back(monkeypatch):
    monkeypatch.setenv("FOLDCC_MAX_DEPTH", "lots")
    assert Compiler().max_depth == 100


def test_only_resolved_tree_stays_live():
    comp = Compiler()
    res = comp.compile_code("int i = 0; while (i < 10) { i += 1; }")
    assert res.success
    comp.builder.release(res.ast)
    assert comp.builder.live == 0


def test_failed_compile_releases_everything():
    comp = Compiler()
    res = comp.compile_code("int i = 0; while (i < 10) { i += j; }")
    assert not res.success
    assert comp.builder.live == 0


def test_missing_source_file(tmp_path):
    res = Compiler().compile_file(str(tmp_path / "nope.fc"))
    assert not res.success
    assert "Failed to read source file" in res.errors[0]


def test_emit_assembly_file(tmp_path):
    src = tmp_path / "t.fc"
    src.write_text("exit(3);")
    out = tmp_path / "t.s"
    res = Compiler().compile_file(str(src), str(out))
    assert res.success
    assert out.read_text() == res.assembly


def test_missing_assembler_is_reported(tmp_path, monkeypatch):
    monkeypatch.setenv("FOLDCC_AS", str(tmp_path / "no-such-as"))
    res = Compiler().compile_code("exit(0);", str(tmp_path / "t.o"))
    assert not res.success
    assert res.errors[0].startswith("Assembling failed")


@needs_binutils
def test_object_file(tmp_path):
    out = tmp_path / "t.o"
    res = Compiler().compile_code("exit(1);", str(out))
    assert res.success, res.errors
    assert out.exists()


@needs_binutils
def test_run_exit_code(tmp_path):
    assert _compile_and_run(tmp_path, "exit(2 + 3 * 4);") == 14


@needs_binutils
def test_run_default_exit(tmp_path):
    assert _compile_and_run(tmp_path, "int x = 5;") == 0


@needs_binutils
def test_run_loop(tmp_path):
    code = r'''
int i = 0;
int sum = 0;
while (i < 10) {
    i += 1;
    if (i % 2 == 0) {
        sum += i;
    }
}
exit(sum);
'''.lstrip()
    assert _compile_and_run(tmp_path, code) == 30


@needs_binutils
def test_run_exit_status_is_low_byte(tmp_path):
    assert _compile_and_run(tmp_path, "exit(256 + 7);") == 7
