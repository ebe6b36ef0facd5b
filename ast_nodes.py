class ASTNode:
    # Optional source line (1-based). Parser may set this.
    line: int | None = None


# Nodes hash and compare by identity: the resolver keys its locals table on
# the node object, so two identical-looking expressions stay distinct.
class Expr(ASTNode):
    pass


class Stmt(ASTNode):
    pass


# ---------- expressions ----------

class Literal(Expr):
    def __init__(self, value):
        self.value = value


class Grouping(Expr):
    def __init__(self, expression):
        self.expression = expression


class Unary(Expr):
    def __init__(self, operator, right):
        self.operator = operator  # Token
        self.right = right


class Binary(Expr):
    def __init__(self, left, operator, right):
        self.left = left
        self.operator = operator  # Token
        self.right = right


class Logical(Expr):
    def __init__(self, left, operator, right):
        self.left = left
        self.operator = operator  # Token: AND / OR
        self.right = right


class Variable(Expr):
    def __init__(self, name):
        self.name = name  # Token


class Assign(Expr):
    def __init__(self, name, value):
        self.name = name  # Token
        self.value = value


class Call(Expr):
    def __init__(self, callee, paren, arguments):
        self.callee = callee
        self.paren = paren          # closing ')' token, used for error lines
        self.arguments = arguments  # list[Expr]


class Get(Expr):
    def __init__(self, object, name):
        self.object = object
        self.name = name  # Token


class Set(Expr):
    def __init__(self, object, name, value):
        self.object = object
        self.name = name  # Token
        self.value = value


class This(Expr):
    def __init__(self, keyword):
        self.keyword = keyword


class Super(Expr):
    def __init__(self, keyword, method):
        self.keyword = keyword
        self.method = method  # Token


# ---------- statements ----------

class Expression(Stmt):
    def __init__(self, expression):
        self.expression = expression


class Print(Stmt):
    def __init__(self, expression):
        self.expression = expression


class Var(Stmt):
    def __init__(self, name, initializer=None):
        self.name = name                # Token
        self.initializer = initializer  # Expr | None


class Block(Stmt):
    def __init__(self, statements):
        self.statements = statements


class If(Stmt):
    def __init__(self, condition, then_branch, else_branch=None):
        self.condition = condition
        self.then_branch = then_branch
        self.else_branch = else_branch


class While(Stmt):
    def __init__(self, condition, body):
        self.condition = condition
        self.body = body


class Function(Stmt):
    def __init__(self, name, params, body):
        self.name = name      # Token
        self.params = params  # list[Token]
        self.body = body      # list[Stmt]


class Return(Stmt):
    def __init__(self, keyword, value=None):
        self.keyword = keyword
        self.value = value  # Expr | None


class Class(Stmt):
    def __init__(self, name, methods, superclass=None):
        self.name = name              # Token
        self.methods = methods        # list[Function]
        self.superclass = superclass  # Variable | None
