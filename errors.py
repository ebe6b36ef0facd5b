import sys


class LoxError(Exception):
    pass


class LoxRuntimeError(LoxError):
    def __init__(self, token, message: str):
        super().__init__(message)
        self.token = token
        self.message = message

    @property
    def line(self) -> int | None:
        return getattr(self.token, "line", None)

    def format(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message}\n[line {self.line}]"

    def __str__(self) -> str:
        return self.format()


class Diagnostics:
    """Collects lexer, parser, resolver and runtime errors for one driver.

    had_error is sticky until reset(); the driver resets it between
    independent inputs (each REPL line) and picks the exit code from it.
    """

    def __init__(self, stream=None):
        self.stream = stream
        self.messages = []
        self.had_error = False
        self.had_runtime_error = False

    def _write(self, text: str):
        self.messages.append(text)
        print(text, file=self.stream if self.stream is not None else sys.stderr)

    def report(self, line: int, where: str, message: str):
        self._write(f"[line {line}] Error{where}: {message}")
        self.had_error = True

    def error(self, line: int, message: str):
        self.report(line, "", message)

    def error_at(self, token, message: str):
        if token.type == "EOF":
            self.report(token.line, " at end", message)
        else:
            self.report(token.line, f" at '{token.lexeme}'", message)

    def runtime_error(self, error: LoxRuntimeError):
        self._write(error.format())
        self.had_runtime_error = True

    def reset(self):
        self.had_error = False
        self.had_runtime_error = False
