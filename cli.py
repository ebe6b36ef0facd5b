import io
import sys
import traceback

from ast_nodes import Print
from errors import Diagnostics
from interpreter import Interpreter
from lexer import Lexer, Token
from parser import Parser
from resolver import Resolver


EXIT_USAGE = 64
EXIT_DATA_ERROR = 65
EXIT_NO_INPUT = 66
EXIT_SOFTWARE = 70


# Simple AST printer (so you can SEE what the parser built)
def ast_to_dict(node):
    if node is None:
        return None
    if isinstance(node, Token):
        return node.lexeme
    if isinstance(node, list):
        return [ast_to_dict(n) for n in node]

    t = node.__class__.__name__
    d = {"type": t}

    if t == "Literal":
        d["value"] = node.value
    elif t in ("Grouping", "Expression", "Print"):
        d["expression"] = ast_to_dict(node.expression)
    elif t == "Unary":
        d["op"] = node.operator.lexeme
        d["right"] = ast_to_dict(node.right)
    elif t in ("Binary", "Logical"):
        d["op"] = node.operator.lexeme
        d["left"] = ast_to_dict(node.left)
        d["right"] = ast_to_dict(node.right)
    elif t == "Variable":
        d["name"] = node.name.lexeme
    elif t == "Assign":
        d["name"] = node.name.lexeme
        d["value"] = ast_to_dict(node.value)
    elif t == "Call":
        d["callee"] = ast_to_dict(node.callee)
        d["args"] = ast_to_dict(node.arguments)
    elif t == "Get":
        d["object"] = ast_to_dict(node.object)
        d["name"] = node.name.lexeme
    elif t == "Set":
        d["object"] = ast_to_dict(node.object)
        d["name"] = node.name.lexeme
        d["value"] = ast_to_dict(node.value)
    elif t == "This":
        pass
    elif t == "Super":
        d["method"] = node.method.lexeme
    elif t == "Var":
        d["name"] = node.name.lexeme
        d["initializer"] = ast_to_dict(node.initializer)
    elif t == "Block":
        d["statements"] = ast_to_dict(node.statements)
    elif t == "If":
        d["condition"] = ast_to_dict(node.condition)
        d["then_branch"] = ast_to_dict(node.then_branch)
        d["else_branch"] = ast_to_dict(node.else_branch)
    elif t == "While":
        d["condition"] = ast_to_dict(node.condition)
        d["body"] = ast_to_dict(node.body)
    elif t == "Function":
        d["name"] = node.name.lexeme
        d["params"] = [p.lexeme for p in node.params]
        d["body"] = ast_to_dict(node.body)
    elif t == "Return":
        d["value"] = ast_to_dict(node.value)
    elif t == "Class":
        d["name"] = node.name.lexeme
        d["superclass"] = ast_to_dict(node.superclass)
        d["methods"] = ast_to_dict(node.methods)
    else:
        d["raw"] = str(node)

    return d


def pretty(obj, indent=0):
    sp = "  " * indent
    if isinstance(obj, dict):
        lines = []
        for k, v in obj.items():
            if isinstance(v, (dict, list)):
                lines.append(f"{sp}{k}:")
                lines.append(pretty(v, indent + 1))
            else:
                lines.append(f"{sp}{k}: {v}")
        return "\n".join(lines)
    if isinstance(obj, list):
        lines = []
        for item in obj:
            lines.append(f"{sp}-")
            lines.append(pretty(item, indent + 1))
        return "\n".join(lines)
    return f"{sp}{obj}"


def read_source(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        print(f"Cannot read {path}: {e.strerror}", file=sys.stderr)
        sys.exit(EXIT_NO_INPUT)


def run_source(source, interpreter: Interpreter, diagnostics: Diagnostics):
    """Lex, parse, resolve and run one input against a long-lived interpreter.

    Static errors stop the pipeline before execution; the caller inspects
    diagnostics.had_error / had_runtime_error afterwards.
    """
    tokens = Lexer(source, diagnostics).scan_tokens()
    statements = Parser(tokens, diagnostics).parse()
    if diagnostics.had_error:
        return

    locals_table = Resolver(diagnostics).resolve(statements)
    if diagnostics.had_error:
        return

    interpreter.interpret(statements, locals_table)


def cmd_tokens(path):
    diagnostics = Diagnostics()
    tokens = Lexer(read_source(path), diagnostics).scan_tokens()
    for tok in tokens:
        print(f"  {tok.line:4d}:{tok.column:<3d} {tok!r}")
    if diagnostics.had_error:
        sys.exit(EXIT_DATA_ERROR)


def cmd_parse(path):
    diagnostics = Diagnostics()
    tokens = Lexer(read_source(path), diagnostics).scan_tokens()
    statements = Parser(tokens, diagnostics).parse()

    print(pretty(ast_to_dict(statements)))
    if diagnostics.had_error:
        sys.exit(EXIT_DATA_ERROR)


def cmd_run(path, debug: bool = False, trace: bool = False):
    source = read_source(path)
    diagnostics = Diagnostics()
    interpreter = Interpreter(diagnostics)
    interpreter.trace_enabled = trace
    try:
        run_source(source, interpreter, diagnostics)
    except Exception as e:
        if debug:
            traceback.print_exc()
        else:
            print(f"Internal error: {e}", file=sys.stderr)
        sys.exit(EXIT_SOFTWARE)

    if diagnostics.had_error:
        sys.exit(EXIT_DATA_ERROR)
    if diagnostics.had_runtime_error:
        sys.exit(EXIT_SOFTWARE)


def _count_braces_delta(line: str) -> int:
    # Minimal brace balancer for REPL multiline input.
    # Ignores braces inside "..." strings and after // comments.
    delta = 0
    in_string = False
    i = 0
    while i < len(line):
        ch = line[i]
        if not in_string and line.startswith("//", i):
            break
        if ch == "\\" and in_string:
            i += 2
            continue
        if ch == '"':
            in_string = not in_string
        elif not in_string:
            if ch == "{":
                delta += 1
            elif ch == "}":
                delta -= 1
        i += 1
    return delta


def repl_eval(source, interpreter: Interpreter, diagnostics: Diagnostics):
    # A bare expression (no trailing ';') is printed instead of executed as a
    # statement. Statements are tried first with errors buffered, so the
    # fallback doesn't leave spurious diagnostics behind.
    quiet = Diagnostics(stream=io.StringIO())
    tokens = Lexer(source, quiet).scan_tokens()
    lex_failed = quiet.had_error
    Parser(tokens, quiet).parse()
    if quiet.had_error and not lex_failed:
        expr = Parser(tokens, Diagnostics(stream=io.StringIO())).parse_expression()
        if expr is not None:
            stmt = Print(expr)
            stmt.line = expr.line
            locals_table = Resolver(diagnostics).resolve([stmt])
            if not diagnostics.had_error:
                interpreter.interpret([stmt], locals_table)
            return

    run_source(source, interpreter, diagnostics)


def cmd_repl(debug: bool = False, trace: bool = False):
    diagnostics = Diagnostics()
    interpreter = Interpreter(diagnostics)
    interpreter.trace_enabled = trace

    print("Lox REPL. Type :q to quit.")

    buffer_lines = []
    brace_depth = 0
    while True:
        prompt = "> " if not buffer_lines else "... "
        try:
            line = input(prompt)
        except (EOFError, KeyboardInterrupt):
            print()
            break

        stripped = line.strip()
        if not buffer_lines and stripped in (":q", ":quit", "quit", "exit"):
            break

        # Allow blank lines to submit when not inside a block.
        if not stripped and brace_depth == 0 and not buffer_lines:
            continue

        buffer_lines.append(line)
        brace_depth += _count_braces_delta(line)

        # Wait for block completion if braces aren't balanced yet.
        if brace_depth > 0:
            continue

        source = "\n".join(buffer_lines) + "\n"
        buffer_lines = []
        brace_depth = 0

        try:
            repl_eval(source, interpreter, diagnostics)
        except Exception as e:
            if debug:
                traceback.print_exc()
            else:
                print(f"Internal error: {e}", file=sys.stderr)
        # each input stands alone
        diagnostics.reset()


def usage():
    print("Usage:", file=sys.stderr)
    print("  python cli.py run <file.lox>", file=sys.stderr)
    print("  python cli.py parse <file.lox>", file=sys.stderr)
    print("  python cli.py tokens <file.lox>", file=sys.stderr)
    print("  python cli.py repl", file=sys.stderr)
    print("  (optional) --debug to show Python traceback", file=sys.stderr)
    print("  (optional) --trace to print each executed statement", file=sys.stderr)
    sys.exit(EXIT_USAGE)


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)
    debug = "--debug" in args
    trace = "--trace" in args
    args = [a for a in args if a not in ("--debug", "--trace")]

    if not args:
        usage()

    cmd = args[0]

    if cmd == "repl":
        if len(args) != 1:
            usage()
        cmd_repl(debug=debug, trace=trace)
        return

    # a bare path behaves like `run <path>`
    if cmd not in ("run", "parse", "tokens"):
        if len(args) != 1:
            print(f"Unknown command: {cmd}", file=sys.stderr)
            usage()
        args = ["run", cmd]
        cmd = "run"

    if len(args) != 2:
        usage()

    path = args[1]
    if cmd == "parse":
        cmd_parse(path)
    elif cmd == "tokens":
        cmd_tokens(path)
    else:
        cmd_run(path, debug=debug, trace=trace)


if __name__ == "__main__":
    main()
