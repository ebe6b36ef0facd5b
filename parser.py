from ast_nodes import (
    Literal, Grouping, Unary, Binary, Logical, Variable, Assign, Call, Get, Set, This, Super,
    Expression, Print, Var, Block, If, While, Function, Return, Class,
)
from errors import Diagnostics, LoxError


MAX_ARGS = 255

# tokens that can begin a statement; synchronize() stops in front of these
STATEMENT_STARTS = ("CLASS", "FUN", "VAR", "FOR", "IF", "WHILE", "PRINT", "RETURN")


class ParseError(LoxError):
    pass


class Parser:
    def __init__(self, tokens, diagnostics: Diagnostics | None = None):
        self.tokens = tokens
        self.diagnostics = diagnostics or Diagnostics()
        self.pos = 0

    @property
    def current_token(self):
        return self.tokens[self.pos]

    def previous(self):
        return self.tokens[self.pos - 1]

    def is_at_end(self):
        return self.current_token.type == "EOF"

    def check(self, token_type):
        return not self.is_at_end() and self.current_token.type == token_type

    def advance(self):
        if not self.is_at_end():
            self.pos += 1
        return self.previous()

    def match(self, *token_types):
        for token_type in token_types:
            if self.check(token_type):
                self.advance()
                return True
        return False

    # move to next token, but only if it matches what we expect
    def eat(self, token_type, message):
        if self.check(token_type):
            return self.advance()
        raise self.error_here(message)

    def error(self, token, message):
        # report and hand back an exception; callers decide whether to unwind
        self.diagnostics.error_at(token, message)
        return ParseError(message)

    def error_here(self, message):
        return self.error(self.current_token, message)

    def synchronize(self):
        self.advance()
        while not self.is_at_end():
            if self.previous().type == "SEMICOLON":
                return
            if self.current_token.type in STATEMENT_STARTS:
                return
            self.advance()

    # ---------- TOP LEVEL ----------
    def parse(self):
        statements = []
        while not self.is_at_end():
            stmt = self.declaration()
            if stmt is not None:
                statements.append(stmt)
        return statements

    def parse_expression(self):
        # single bare expression spanning all tokens (REPL auto-print)
        try:
            expr = self.expr()
            if not self.is_at_end():
                raise self.error_here("Expect end of expression.")
            return expr
        except ParseError:
            return None

    # ---------- DECLARATIONS ----------
    def declaration(self):
        try:
            if self.match("CLASS"):
                return self.class_declaration()
            if self.match("FUN"):
                return self.function("function")
            if self.match("VAR"):
                return self.var_declaration()
            return self.statement()
        except ParseError:
            self.synchronize()
            return None

    def class_declaration(self):
        tok = self.previous()
        name = self.eat("IDENT", "Expect class name.")

        superclass = None
        if self.match("LT"):
            super_name = self.eat("IDENT", "Expect superclass name.")
            superclass = Variable(super_name)
            superclass.line = super_name.line

        self.eat("LBRACE", "Expect '{' before class body.")
        methods = []
        while not self.check("RBRACE") and not self.is_at_end():
            methods.append(self.function("method"))
        self.eat("RBRACE", "Expect '}' after class body.")

        node = Class(name, methods, superclass)
        node.line = tok.line
        return node

    def function(self, kind):
        name = self.eat("IDENT", f"Expect {kind} name.")
        self.eat("LPAREN", f"Expect '(' after {kind} name.")

        params = []
        if not self.check("RPAREN"):
            while True:
                if len(params) >= MAX_ARGS:
                    self.error_here(f"Can't have more than {MAX_ARGS} parameters.")
                params.append(self.eat("IDENT", "Expect parameter name."))
                if not self.match("COMMA"):
                    break
        self.eat("RPAREN", "Expect ')' after parameters.")

        self.eat("LBRACE", f"Expect '{{' before {kind} body.")
        body = self.block()
        node = Function(name, params, body)
        node.line = name.line
        return node

    def var_declaration(self):
        name = self.eat("IDENT", "Expect variable name.")

        initializer = None
        if self.match("EQUAL"):
            initializer = self.expr()

        self.eat("SEMICOLON", "Expect ';' after variable declaration.")
        node = Var(name, initializer)
        node.line = name.line
        return node

    # ---------- STATEMENTS ----------
    def statement(self):
        if self.match("FOR"):
            return self.for_statement()
        if self.match("IF"):
            return self.if_statement()
        if self.match("PRINT"):
            return self.print_statement()
        if self.match("RETURN"):
            return self.return_statement()
        if self.match("WHILE"):
            return self.while_statement()
        if self.match("LBRACE"):
            tok = self.previous()
            node = Block(self.block())
            node.line = tok.line
            return node
        return self.expression_statement()

    def for_statement(self):
        # for (init; cond; incr) body
        #   => { init; while (cond) { body; incr; } }
        tok = self.previous()
        self.eat("LPAREN", "Expect '(' after 'for'.")

        if self.match("SEMICOLON"):
            initializer = None
        elif self.match("VAR"):
            initializer = self.var_declaration()
        else:
            initializer = self.expression_statement()

        condition = None
        if not self.check("SEMICOLON"):
            condition = self.expr()
        self.eat("SEMICOLON", "Expect ';' after loop condition.")

        increment = None
        if not self.check("RPAREN"):
            increment = self.expr()
        self.eat("RPAREN", "Expect ')' after for clauses.")

        body = self.statement()

        if increment is not None:
            incr_stmt = Expression(increment)
            incr_stmt.line = tok.line
            body = Block([body, incr_stmt])
            body.line = tok.line

        if condition is None:
            condition = Literal(True)
            condition.line = tok.line
        loop = While(condition, body)
        loop.line = tok.line

        statements = [loop] if initializer is None else [initializer, loop]
        node = Block(statements)
        node.line = tok.line
        return node

    def if_statement(self):
        tok = self.previous()
        self.eat("LPAREN", "Expect '(' after 'if'.")
        condition = self.expr()
        self.eat("RPAREN", "Expect ')' after if condition.")

        then_branch = self.statement()
        else_branch = None
        # dangling else binds to the nearest if
        if self.match("ELSE"):
            else_branch = self.statement()

        node = If(condition, then_branch, else_branch)
        node.line = tok.line
        return node

    def print_statement(self):
        tok = self.previous()
        value = self.expr()
        self.eat("SEMICOLON", "Expect ';' after value.")
        node = Print(value)
        node.line = tok.line
        return node

    def return_statement(self):
        keyword = self.previous()
        value = None
        if not self.check("SEMICOLON"):
            value = self.expr()
        self.eat("SEMICOLON", "Expect ';' after return value.")
        node = Return(keyword, value)
        node.line = keyword.line
        return node

    def while_statement(self):
        tok = self.previous()
        self.eat("LPAREN", "Expect '(' after 'while'.")
        condition = self.expr()
        self.eat("RPAREN", "Expect ')' after condition.")
        body = self.statement()
        node = While(condition, body)
        node.line = tok.line
        return node

    def block(self):
        # assumes '{' is already consumed
        statements = []
        while not self.check("RBRACE") and not self.is_at_end():
            stmt = self.declaration()
            if stmt is not None:
                statements.append(stmt)
        self.eat("RBRACE", "Expect '}' after block.")
        return statements

    def expression_statement(self):
        tok = self.current_token
        expr = self.expr()
        self.eat("SEMICOLON", "Expect ';' after expression.")
        node = Expression(expr)
        node.line = tok.line
        return node

    # ---------- EXPRESSIONS ----------
    # expr -> assignment
    def expr(self):
        return self.assignment()

    # assignment -> (call ".")? IDENT "=" assignment | or_expr
    def assignment(self):
        expr = self.or_expr()

        if self.match("EQUAL"):
            equals = self.previous()
            value = self.assignment()

            if isinstance(expr, Variable):
                node = Assign(expr.name, value)
                node.line = equals.line
                return node
            if isinstance(expr, Get):
                node = Set(expr.object, expr.name, value)
                node.line = equals.line
                return node

            # not fatal: nothing to resynchronize
            self.error(equals, "Invalid assignment target.")

        return expr

    # or_expr -> and_expr (OR and_expr)*
    def or_expr(self):
        node = self.and_expr()
        while self.match("OR"):
            op_token = self.previous()
            right = self.and_expr()
            node = Logical(node, op_token, right)
            node.line = op_token.line
        return node

    # and_expr -> equality (AND equality)*
    def and_expr(self):
        node = self.equality()
        while self.match("AND"):
            op_token = self.previous()
            right = self.equality()
            node = Logical(node, op_token, right)
            node.line = op_token.line
        return node

    def binary_level(self, operand, *op_types):
        node = operand()
        while self.match(*op_types):
            op_token = self.previous()
            right = operand()
            node = Binary(node, op_token, right)
            node.line = op_token.line
        return node

    # equality -> comparison ((== | !=) comparison)*
    def equality(self):
        return self.binary_level(self.comparison, "NOTEQ", "EQEQ")

    # comparison -> term ((< | <= | > | >=) term)*
    def comparison(self):
        return self.binary_level(self.term, "GT", "GTE", "LT", "LTE")

    # term -> factor ((+ | -) factor)*
    def term(self):
        return self.binary_level(self.factor, "MINUS", "PLUS")

    # factor -> unary ((* | /) unary)*
    def factor(self):
        return self.binary_level(self.unary, "SLASH", "STAR")

    # unary -> (! | -) unary | call
    def unary(self):
        if self.match("BANG", "MINUS"):
            op_token = self.previous()
            node = Unary(op_token, self.unary())
            node.line = op_token.line
            return node
        return self.call()

    # call -> primary ("(" arguments? ")" | "." IDENT)*
    def call(self):
        node = self.primary()
        while True:
            if self.match("LPAREN"):
                node = self.finish_call(node)
            elif self.match("DOT"):
                name = self.eat("IDENT", "Expect property name after '.'.")
                node = Get(node, name)
                node.line = name.line
            else:
                break
        return node

    def finish_call(self, callee):
        args = []
        if not self.check("RPAREN"):
            while True:
                if len(args) >= MAX_ARGS:
                    self.error_here(f"Can't have more than {MAX_ARGS} arguments.")
                args.append(self.expr())
                if not self.match("COMMA"):
                    break

        paren = self.eat("RPAREN", "Expect ')' after arguments.")
        node = Call(callee, paren, args)
        node.line = paren.line
        return node

    # primary -> NUMBER | STRING | BOOL | NIL | THIS | IDENT | SUPER "." IDENT | "(" expr ")"
    def primary(self):
        tok = self.current_token

        if self.match("BOOL", "NUMBER", "STRING"):
            node = Literal(tok.literal)
        elif self.match("NIL"):
            node = Literal(None)
        elif self.match("THIS"):
            node = This(tok)
        elif self.match("IDENT"):
            node = Variable(tok)
        elif self.match("SUPER"):
            self.eat("DOT", "Expect '.' after 'super'.")
            method = self.eat("IDENT", "Expect superclass method name.")
            node = Super(tok, method)
        elif self.match("LPAREN"):
            inner = self.expr()
            self.eat("RPAREN", "Expect ')' after expression.")
            node = Grouping(inner)
        else:
            raise self.error_here("Expect expression.")

        node.line = tok.line
        return node
