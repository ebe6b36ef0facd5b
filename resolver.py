from ast_nodes import (
    Literal, Grouping, Unary, Binary, Logical, Variable, Assign, Call, Get, Set, This, Super,
    Expression, Print, Var, Block, If, While, Function, Return, Class,
)
from errors import Diagnostics


# enclosing function kinds
FUNC_NONE = "none"
FUNC_FUNCTION = "function"
FUNC_INITIALIZER = "initializer"
FUNC_METHOD = "method"

# enclosing class kinds
CLASS_NONE = "none"
CLASS_CLASS = "class"
CLASS_SUBCLASS = "subclass"


class Resolver:
    """Static pass computing how many scopes separate each local reference
    from its declaration.

    The result maps expression nodes to distances; a reference missing from
    the table is a global. Errors are reported through diagnostics and the
    driver must not interpret statements that produced any.
    """

    def __init__(self, diagnostics: Diagnostics | None = None):
        self.diagnostics = diagnostics or Diagnostics()
        self.scopes = []  # list[dict[str, bool]], innermost last
        self.locals = {}
        # globals are not scoped, but their initializers still may not read them
        self.pending_globals = set()
        self.current_function = FUNC_NONE
        self.current_class = CLASS_NONE

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
            Logical: self._binary,
            Set: self._set,
            Super: self._super,
            This: self._this,
            Unary: self._unary,
            Variable: self._variable,
        }

    def resolve(self, statements):
        self.resolve_statements(statements)
        return self.locals

    def resolve_statements(self, statements):
        for stmt in statements:
            self._stmt_handlers[type(stmt)](stmt)

    def resolve_expr(self, expr):
        self._expr_handlers[type(expr)](expr)

    # ---------- scopes ----------
    def begin_scope(self):
        self.scopes.append({})

    def end_scope(self):
        self.scopes.pop()

    def declare(self, name):
        if not self.scopes:
            return
        scope = self.scopes[-1]
        if name.lexeme in scope:
            self.diagnostics.error_at(name, "Already a variable with this name in this scope.")
        scope[name.lexeme] = False

    def define(self, name):
        if not self.scopes:
            return
        self.scopes[-1][name.lexeme] = True

    def resolve_local(self, expr, name):
        for distance, scope in enumerate(reversed(self.scopes)):
            if name.lexeme in scope:
                self.locals[expr] = distance
                return
        # not found: global

    def resolve_function(self, function, kind):
        enclosing_function = self.current_function
        self.current_function = kind

        self.begin_scope()
        for param in function.params:
            self.declare(param)
            self.define(param)
        self.resolve_statements(function.body)
        self.end_scope()

        self.current_function = enclosing_function

    # ---------- statements ----------
    def _block(self, stmt):
        self.begin_scope()
        self.resolve_statements(stmt.statements)
        self.end_scope()

    def _class(self, stmt):
        enclosing_class = self.current_class
        self.current_class = CLASS_CLASS

        self.declare(stmt.name)
        self.define(stmt.name)

        if stmt.superclass is not None:
            if stmt.superclass.name.lexeme == stmt.name.lexeme:
                self.diagnostics.error_at(stmt.superclass.name, "A class can't inherit from itself.")
            self.current_class = CLASS_SUBCLASS
            self.resolve_expr(stmt.superclass)
            self.begin_scope()
            self.scopes[-1]["super"] = True

        self.begin_scope()
        self.scopes[-1]["this"] = True

        for method in stmt.methods:
            kind = FUNC_INITIALIZER if method.name.lexeme == "init" else FUNC_METHOD
            self.resolve_function(method, kind)

        self.end_scope()
        if stmt.superclass is not None:
            self.end_scope()

        self.current_class = enclosing_class

    def _expression_stmt(self, stmt):
        self.resolve_expr(stmt.expression)

    def _function_stmt(self, stmt):
        # defined before the body so the function can recurse
        self.declare(stmt.name)
        self.define(stmt.name)
        self.resolve_function(stmt, FUNC_FUNCTION)

    def _if(self, stmt):
        self.resolve_expr(stmt.condition)
        self._stmt_handlers[type(stmt.then_branch)](stmt.then_branch)
        if stmt.else_branch is not None:
            self._stmt_handlers[type(stmt.else_branch)](stmt.else_branch)

    def _print(self, stmt):
        self.resolve_expr(stmt.expression)

    def _return(self, stmt):
        if self.current_function == FUNC_NONE:
            self.diagnostics.error_at(stmt.keyword, "Can't return from top-level code.")

        if stmt.value is not None:
            if self.current_function == FUNC_INITIALIZER:
                self.diagnostics.error_at(stmt.keyword, "Can't return a value from an initializer.")
            self.resolve_expr(stmt.value)

    def _var(self, stmt):
        self.declare(stmt.name)
        if stmt.initializer is not None:
            if not self.scopes:
                self.pending_globals.add(stmt.name.lexeme)
            self.resolve_expr(stmt.initializer)
            self.pending_globals.discard(stmt.name.lexeme)
        self.define(stmt.name)

    def _while(self, stmt):
        self.resolve_expr(stmt.condition)
        self._stmt_handlers[type(stmt.body)](stmt.body)

    # ---------- expressions ----------
    def _assign(self, expr):
        self.resolve_expr(expr.value)
        self.resolve_local(expr, expr.name)

    def _binary(self, expr):
        self.resolve_expr(expr.left)
        self.resolve_expr(expr.right)

    def _call(self, expr):
        self.resolve_expr(expr.callee)
        for arg in expr.arguments:
            self.resolve_expr(arg)

    def _get(self, expr):
        # properties are looked up dynamically; only the object is resolved
        self.resolve_expr(expr.object)

    def _grouping(self, expr):
        self.resolve_expr(expr.expression)

    def _literal(self, expr):
        pass

    def _set(self, expr):
        self.resolve_expr(expr.value)
        self.resolve_expr(expr.object)

    def _super(self, expr):
        if self.current_class == CLASS_NONE:
            self.diagnostics.error_at(expr.keyword, "Can't use 'super' outside of a class.")
        elif self.current_class != CLASS_SUBCLASS:
            self.diagnostics.error_at(expr.keyword, "Can't use 'super' in a class with no superclass.")
        self.resolve_local(expr, expr.keyword)

    def _this(self, expr):
        if self.current_class == CLASS_NONE:
            self.diagnostics.error_at(expr.keyword, "Can't use 'this' outside of a class.")
            return
        self.resolve_local(expr, expr.keyword)

    def _unary(self, expr):
        self.resolve_expr(expr.right)

    def _variable(self, expr):
        name = expr.name.lexeme
        if self.scopes and self.scopes[-1].get(name) is False:
            self.diagnostics.error_at(expr.name, "Can't read local variable in its own initializer.")
        elif not self.scopes and name in self.pending_globals:
            self.diagnostics.error_at(expr.name, "Can't read variable in its own initializer.")
        self.resolve_local(expr, expr.name)
