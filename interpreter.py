import math
import sys
import time
from decimal import Decimal

from ast_nodes import (
    Literal, Grouping, Unary, Binary, Logical, Variable, Assign, Call, Get, Set, This, Super,
    Expression, Print, Var, Block, If, While, Function, Return, Class,
)
from environment import Environment
from errors import Diagnostics, LoxRuntimeError
from runtime import LoxCallable, LoxClass, LoxFunction, LoxInstance, NativeFunction


class ReturnSignal:
    """Result of executing a `return`; unwinds statement execution up to
    the enclosing call."""

    __slots__ = ("value",)

    def __init__(self, value):
        self.value = value


def is_truthy(value) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return True


def is_equal(a, b) -> bool:
    # no coercion between kinds: true != 1, nil != false
    if a is None or b is None:
        return a is None and b is None
    if type(a) is not type(b):
        return False
    if isinstance(a, float):
        return number_equal(a, b)
    return a == b


def number_equal(a: float, b: float) -> bool:
    # value identity, not IEEE comparison: NaN equals NaN, 0 differs from -0
    if math.isnan(a) or math.isnan(b):
        return math.isnan(a) and math.isnan(b)
    return a == b and math.copysign(1.0, a) == math.copysign(1.0, b)


def format_number(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    if 1e-3 <= abs(value) < 1e7:
        text = repr(value)
        return text[:-2] if text.endswith(".0") else text

    # scientific form with the shortest round-tripping digits: 1.0E16, 1.5E-5
    sign, digits, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = list(digits)
    while len(digits) > 1 and digits[-1] == 0:
        digits.pop()
        exponent += 1
    power = len(digits) + exponent - 1
    fraction = "".join(str(d) for d in digits[1:]) or "0"
    prefix = "-" if value < 0 else ""
    return f"{prefix}{digits[0]}.{fraction}E{power}"


def stringify(value) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return format_number(value)
    return str(value)


def divide(left: float, right: float) -> float:
    if right != 0:
        return left / right
    if left == 0 or math.isnan(left):
        return math.nan
    return math.copysign(math.inf, left) * math.copysign(1.0, right)


ARITHMETIC = {
    "MINUS": lambda a, b: a - b,
    "STAR": lambda a, b: a * b,
    "SLASH": divide,
    "GT": lambda a, b: a > b,
    "GTE": lambda a, b: a >= b,
    "LT": lambda a, b: a < b,
    "LTE": lambda a, b: a <= b,
}


class Interpreter:
    MAX_CALL_DEPTH = 1000
    PYTHON_RECURSION_LIMIT = 50000

    def __init__(self, diagnostics: Diagnostics | None = None, out=None):
        self.diagnostics = diagnostics or Diagnostics()
        self.out = out
        self.globals = Environment()
        self.environment = self.globals
        self.locals = {}
        self.call_depth = 0
        self.trace_enabled = False

        self.define_native("clock", 0, time.time)

        self._stmt_handlers = {
            Block: self._block,
            Class: self._class,
            Expression: self._expression_stmt,
            Function: self._function_stmt,
            If: self._if,
            Print: self._print,
            Return: self._return,
            Var: self._var,
            While: self._while,
        }
        self._expr_handlers = {
            Assign: self._assign,
            Binary: self._binary,
            Call: self._call,
            Get: self._get,
            Grouping: self._grouping,
            Literal: self._literal,
            Logical: self._logical,
            Set: self._set,
            Super: self._super,
            This: self._this,
            Unary: self._unary,
            Variable: self._variable,
        }

    def define_native(self, name: str, arity: int, fn):
        self.globals.define(name, NativeFunction(name, arity, fn))

    def interpret(self, statements, locals_table=None):
        # Entries from earlier inputs stay: functions declared there can
        # still be called, and their bodies are resolved only once.
        if locals_table:
            self.locals.update(locals_table)

        # one Lox call costs a dozen or more Python frames
        saved_limit = sys.getrecursionlimit()
        sys.setrecursionlimit(max(saved_limit, self.PYTHON_RECURSION_LIMIT))
        try:
            for stmt in statements:
                self.execute(stmt)
        except LoxRuntimeError as e:
            self.diagnostics.runtime_error(e)
        except RecursionError:
            # exhausted outside any call, e.g. a deeply nested expression
            self.diagnostics.runtime_error(LoxRuntimeError(None, "Stack overflow."))
        finally:
            sys.setrecursionlimit(saved_limit)
            self.environment = self.globals
            self.call_depth = 0

    # ---------- statements ----------
    def execute(self, stmt):
        if self.trace_enabled:
            print(f"TRACE line={stmt.line} {type(stmt).__name__}", file=sys.stderr)
        return self._stmt_handlers[type(stmt)](stmt)

    def execute_block(self, statements, environment: Environment):
        previous = self.environment
        self.environment = environment
        try:
            for stmt in statements:
                signal = self.execute(stmt)
                if signal is not None:
                    return signal
            return None
        finally:
            self.environment = previous

    def _block(self, stmt):
        return self.execute_block(stmt.statements, Environment(self.environment))

    def _class(self, stmt):
        superclass = None
        if stmt.superclass is not None:
            superclass = self.evaluate(stmt.superclass)
            if not isinstance(superclass, LoxClass):
                raise LoxRuntimeError(stmt.superclass.name, "Superclass must be a class.")

        # bound first so methods can refer to their own class
        self.environment.define(stmt.name.lexeme, None)

        if superclass is not None:
            self.environment = Environment(self.environment)
            self.environment.define("super", superclass)

        methods = {}
        for method in stmt.methods:
            is_init = method.name.lexeme == "init"
            methods[method.name.lexeme] = LoxFunction(method, self.environment, is_init)

        klass = LoxClass(stmt.name.lexeme, superclass, methods)

        if superclass is not None:
            self.environment = self.environment.enclosing

        self.environment.assign(stmt.name, klass)
        return None

    def _expression_stmt(self, stmt):
        self.evaluate(stmt.expression)
        return None

    def _function_stmt(self, stmt):
        self.environment.define(stmt.name.lexeme, LoxFunction(stmt, self.environment))
        return None

    def _if(self, stmt):
        if is_truthy(self.evaluate(stmt.condition)):
            return self.execute(stmt.then_branch)
        if stmt.else_branch is not None:
            return self.execute(stmt.else_branch)
        return None

    def _print(self, stmt):
        value = self.evaluate(stmt.expression)
        print(stringify(value), file=self.out if self.out is not None else sys.stdout)
        return None

    def _return(self, stmt):
        value = None
        if stmt.value is not None:
            value = self.evaluate(stmt.value)
        return ReturnSignal(value)

    def _var(self, stmt):
        value = None
        if stmt.initializer is not None:
            value = self.evaluate(stmt.initializer)
        self.environment.define(stmt.name.lexeme, value)
        return None

    def _while(self, stmt):
        while is_truthy(self.evaluate(stmt.condition)):
            signal = self.execute(stmt.body)
            if signal is not None:
                return signal
        return None

    # ---------- expressions ----------
    def evaluate(self, expr):
        return self._expr_handlers[type(expr)](expr)

    def look_up_variable(self, name, expr):
        distance = self.locals.get(expr)
        if distance is not None:
            return self.environment.get_at(distance, name.lexeme)
        return self.globals.get(name)

    def _assign(self, expr):
        value = self.evaluate(expr.value)
        distance = self.locals.get(expr)
        if distance is not None:
            self.environment.assign_at(distance, expr.name, value)
        else:
            self.globals.assign(expr.name, value)
        return value

    def _binary(self, expr):
        left = self.evaluate(expr.left)
        right = self.evaluate(expr.right)
        op = expr.operator

        if op.type == "EQEQ":
            return is_equal(left, right)
        if op.type == "NOTEQ":
            return not is_equal(left, right)

        if op.type == "PLUS":
            if isinstance(left, float) and isinstance(right, float):
                return left + right
            if isinstance(left, str) and isinstance(right, str):
                return left + right
            raise LoxRuntimeError(op, "Operands of '+' must be two numbers or two strings.")

        if op.type in ARITHMETIC:
            self.check_number_operands(op, left, right)
            return ARITHMETIC[op.type](left, right)

        raise LoxRuntimeError(op, f"Unknown binary operator '{op.lexeme}'.")

    def _call(self, expr):
        callee = self.evaluate(expr.callee)
        arguments = [self.evaluate(arg) for arg in expr.arguments]

        if not isinstance(callee, LoxCallable):
            raise LoxRuntimeError(expr.paren, "Can only call functions and classes.")

        expected = callee.arity()
        if len(arguments) != expected:
            raise LoxRuntimeError(expr.paren, f"Expected {expected} arguments but got {len(arguments)}.")

        if self.call_depth >= self.MAX_CALL_DEPTH:
            raise LoxRuntimeError(expr.paren, "Stack overflow.")

        self.call_depth += 1
        try:
            return callee.call(self, arguments)
        except RecursionError:
            # Python ran out of frames before MAX_CALL_DEPTH was reached
            raise LoxRuntimeError(expr.paren, "Stack overflow.") from None
        finally:
            self.call_depth -= 1

    def _get(self, expr):
        obj = self.evaluate(expr.object)
        if isinstance(obj, LoxInstance):
            return obj.get(expr.name)
        raise LoxRuntimeError(expr.name, "Only instances have properties.")

    def _grouping(self, expr):
        return self.evaluate(expr.expression)

    def _literal(self, expr):
        return expr.value

    def _logical(self, expr):
        left = self.evaluate(expr.left)
        if expr.operator.type == "OR":
            if is_truthy(left):
                return left
        elif not is_truthy(left):
            return left
        return self.evaluate(expr.right)

    def _set(self, expr):
        obj = self.evaluate(expr.object)
        if not isinstance(obj, LoxInstance):
            raise LoxRuntimeError(expr.name, "Only instances have fields.")
        value = self.evaluate(expr.value)
        obj.set(expr.name, value)
        return value

    def _super(self, expr):
        distance = self.locals[expr]
        superclass = self.environment.get_at(distance, "super")
        # "this" lives in the scope just inside the one binding "super"
        obj = self.environment.get_at(distance - 1, "this")

        method = superclass.find_method(expr.method.lexeme)
        if method is None:
            raise LoxRuntimeError(expr.method, f"Undefined property '{expr.method.lexeme}'.")
        return method.bind(obj)

    def _this(self, expr):
        return self.look_up_variable(expr.keyword, expr)

    def _unary(self, expr):
        right = self.evaluate(expr.right)
        if expr.operator.type == "BANG":
            return not is_truthy(right)
        if expr.operator.type == "MINUS":
            if not isinstance(right, float):
                raise LoxRuntimeError(expr.operator, "Operand of '-' must be a number.")
            return -right
        raise LoxRuntimeError(expr.operator, f"Unknown unary operator '{expr.operator.lexeme}'.")

    def _variable(self, expr):
        return self.look_up_variable(expr.name, expr)

    # ---------- helpers ----------
    def check_number_operands(self, operator, left, right):
        if isinstance(left, float) and isinstance(right, float):
            return
        raise LoxRuntimeError(operator, f"Operands of '{operator.lexeme}' must be numbers.")
