import os
import subprocess
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
CLI = os.path.join(ROOT, "cli.py")


def run_cli(*args, inp=None):
    return subprocess.run(
        [sys.executable, CLI, *args],
        input=inp,
        text=True,
        capture_output=True,
        cwd=ROOT,
        timeout=10,
    )


def run_repl_with_input(inp: str) -> str:
    proc = run_cli("repl", inp=inp)

    # REPL should exit cleanly after :q
    if proc.returncode != 0:
        raise AssertionError(f"REPL exited with code {proc.returncode}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}")

    return proc.stdout


def write_script(tmp_path, source):
    path = tmp_path / "script.lox"
    path.write_text(source, encoding="utf-8")
    return str(path)


def test_run_file_success(tmp_path):
    path = write_script(tmp_path, 'var greeting = "hello";\nprint greeting + " world";\n')
    proc = run_cli("run", path)
    if proc.returncode != 0 or proc.stdout != "hello world\n":
        raise AssertionError(f"code={proc.returncode}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}")


def test_bare_path_runs_the_file(tmp_path):
    path = write_script(tmp_path, "print 1 + 2;\n")
    proc = run_cli(path)
    if proc.returncode != 0 or proc.stdout != "3\n":
        raise AssertionError(f"code={proc.returncode}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}")


def test_static_error_exit_code(tmp_path):
    path = write_script(tmp_path, "print 1;\nvar = 2;\nprint ;\n")
    proc = run_cli("run", path)
    if proc.returncode != 65:
        raise AssertionError(f"Expected exit 65, got {proc.returncode}\nSTDERR:\n{proc.stderr}")
    if proc.stdout != "":
        raise AssertionError(f"Nothing should run on a syntax error:\n{proc.stdout}")
    if "[line 2] Error at '='" not in proc.stderr or "[line 3] Error at ';'" not in proc.stderr:
        raise AssertionError(f"Both syntax errors should be reported:\n{proc.stderr}")


def test_runtime_error_exit_code(tmp_path):
    path = write_script(tmp_path, 'print "before";\nprint undefinedThing;\nprint "after";\n')
    proc = run_cli("run", path)
    if proc.returncode != 70:
        raise AssertionError(f"Expected exit 70, got {proc.returncode}\nSTDERR:\n{proc.stderr}")
    if proc.stdout != "before\n":
        raise AssertionError(f"Output before the error should be kept:\n{proc.stdout}")
    if proc.stderr != "Undefined variable 'undefinedThing'.\n[line 2]\n":
        raise AssertionError(proc.stderr)


def test_missing_file_and_usage():
    proc = run_cli("run", os.path.join(ROOT, "does-not-exist.lox"))
    if proc.returncode != 66:
        raise AssertionError(f"Expected exit 66, got {proc.returncode}")
    proc = run_cli()
    if proc.returncode != 64:
        raise AssertionError(f"Expected exit 64, got {proc.returncode}")


def test_parse_command_dumps_ast(tmp_path):
    path = write_script(tmp_path, "var x = 1 + 2;\n")
    proc = run_cli("parse", path)
    if proc.returncode != 0:
        raise AssertionError(proc.stderr)
    for expected in ("type: Var", "name: x", "type: Binary", "op: +"):
        if expected not in proc.stdout:
            raise AssertionError(f"Missing {expected!r} in:\n{proc.stdout}")


def test_tokens_command(tmp_path):
    path = write_script(tmp_path, "print 1;\n")
    proc = run_cli("tokens", path)
    if proc.returncode != 0:
        raise AssertionError(proc.stderr)
    for expected in ("PRINT", "NUMBER(1.0)", "SEMICOLON", "EOF"):
        if expected not in proc.stdout:
            raise AssertionError(f"Missing {expected!r} in:\n{proc.stdout}")


def test_trace_flag(tmp_path):
    path = write_script(tmp_path, "var a = 1;\nprint a;\n")
    proc = run_cli("run", path, "--trace")
    if proc.stdout != "1\n":
        raise AssertionError(proc.stdout)
    if "TRACE line=1 Var" not in proc.stderr or "TRACE line=2 Print" not in proc.stderr:
        raise AssertionError(proc.stderr)


def test_deep_recursion_reports_stack_overflow(tmp_path):
    path = write_script(tmp_path, "fun f() { f(); }\nf();\n")
    proc = run_cli("run", path)
    if proc.returncode != 70 or "Stack overflow." not in proc.stderr:
        raise AssertionError(f"code={proc.returncode}\nSTDERR:\n{proc.stderr}")


def test_deep_recursion_within_the_limit_runs(tmp_path):
    source = (
        "fun down(n) {\n"
        "  for (var i = 0; i < 1; i = i + 1) {\n"
        "    while (true) { { if (n > 0) { return down(n - 1) + 1; } return 0; } }\n"
        "  }\n"
        "}\n"
        "print down(900);\n"
    )
    proc = run_cli("run", write_script(tmp_path, source))
    if proc.returncode != 0 or proc.stdout != "900\n":
        raise AssertionError(f"code={proc.returncode}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}")


def test_non_ascii_digit_is_a_static_error(tmp_path):
    proc = run_cli("run", write_script(tmp_path, "print ²;\n"))
    if proc.returncode != 65 or "Unexpected character." not in proc.stderr:
        raise AssertionError(f"code={proc.returncode}\nSTDERR:\n{proc.stderr}")
    if "Traceback" in proc.stderr or "Internal error" in proc.stderr:
        raise AssertionError(proc.stderr)


def test_auto_print_expression():
    out = run_repl_with_input("1 + 2\n:q\n")
    if "3" not in out:
        raise AssertionError(f"Expected 3 in output.\nOUT:\n{out}")


def test_persistent_state_expression():
    out = run_repl_with_input("var x = 2;\nx + 5\n:q\n")
    if "7" not in out:
        raise AssertionError(f"Expected 7 in output.\nOUT:\n{out}")


def test_multiline_block_and_error_recovery():
    inp = "fun add(a, b) {\n  return a + b;\n}\nprint nope;\nprint add(2, 3);\n:q\n"
    proc = run_cli("repl", inp=inp)
    if proc.returncode != 0:
        raise AssertionError(f"REPL exited with code {proc.returncode}\nSTDERR:\n{proc.stderr}")
    if "5" not in proc.stdout:
        raise AssertionError(f"Expected 5 in output.\nOUT:\n{proc.stdout}")
    if "Undefined variable 'nope'." not in proc.stderr:
        raise AssertionError(f"Expected the runtime error to be reported.\nERR:\n{proc.stderr}")


if __name__ == "__main__":
    test_auto_print_expression()
    test_persistent_state_expression()
    test_multiline_block_and_error_recovery()
    test_missing_file_and_usage()
    print("ok")
