from errors import Diagnostics


KEYWORDS = {
    "and": "AND",
    "class": "CLASS",
    "else": "ELSE",
    "false": "BOOL",
    "for": "FOR",
    "fun": "FUN",
    "if": "IF",
    "nil": "NIL",
    "or": "OR",
    "print": "PRINT",
    "return": "RETURN",
    "super": "SUPER",
    "this": "THIS",
    "true": "BOOL",
    "var": "VAR",
    "while": "WHILE",
}

SINGLE_CHAR_TOKENS = {
    "(": "LPAREN",
    ")": "RPAREN",
    "{": "LBRACE",
    "}": "RBRACE",
    ",": "COMMA",
    ".": "DOT",
    "-": "MINUS",
    "+": "PLUS",
    ";": "SEMICOLON",
    "*": "STAR",
}

# one-char operator -> (kind alone, kind when followed by '=')
EQ_SUFFIX_TOKENS = {
    "!": ("BANG", "NOTEQ"),
    "=": ("EQUAL", "EQEQ"),
    "<": ("LT", "LTE"),
    ">": ("GT", "GTE"),
}

ESCAPES = {"n": "\n", "t": "\t", '"': '"', "\\": "\\"}


# ASCII only: str.isdigit() also accepts characters like '²'
def is_digit(ch):
    return ch is not None and "0" <= ch <= "9"


def is_alpha(ch):
    return ch is not None and ("a" <= ch <= "z" or "A" <= ch <= "Z" or ch == "_")


def is_alnum(ch):
    return is_alpha(ch) or is_digit(ch)


class Token:
    def __init__(self, type, lexeme="", literal=None, line=1, column=1):
        self.type = type
        self.lexeme = lexeme
        self.literal = literal
        self.line = line
        self.column = column

    def __repr__(self):
        if self.literal is not None:
            return f"{self.type}({self.literal!r})"
        if self.type in ("IDENT", "EOF"):
            return f"{self.type}({self.lexeme})" if self.lexeme else self.type
        return f"{self.type}"


class Lexer:
    def __init__(self, text, diagnostics: Diagnostics | None = None):
        self.text = text
        self.diagnostics = diagnostics or Diagnostics()
        self.pos = 0
        self.current_char = text[0] if text else None
        self.line = 1
        self.column = 1
        # start of the lexeme being scanned
        self.start = 0
        self.start_line = 1
        self.start_col = 1

    def advance(self):
        # track line/column based on current_char before moving
        if self.current_char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self.pos += 1
        if self.pos >= len(self.text):
            self.current_char = None
        else:
            self.current_char = self.text[self.pos]

    def peek(self):
        nxt = self.pos + 1
        if nxt >= len(self.text):
            return None
        return self.text[nxt]

    def skip_comment(self):
        while self.current_char and self.current_char != "\n":
            self.advance()

    def make_token(self, type, literal=None):
        lexeme = self.text[self.start:self.pos]
        return Token(type, lexeme, literal, line=self.start_line, column=self.start_col)

    def read_identifier(self):
        while is_alnum(self.current_char):
            self.advance()
        text = self.text[self.start:self.pos]
        kind = KEYWORDS.get(text, "IDENT")
        if kind == "BOOL":
            return self.make_token(kind, text == "true")
        return self.make_token(kind)

    def read_number(self):
        while is_digit(self.current_char):
            self.advance()

        # fractional part needs a digit after the dot
        peeked = self.peek()
        if self.current_char == "." and is_digit(peeked):
            self.advance()
            while is_digit(self.current_char):
                self.advance()

        return self.make_token("NUMBER", float(self.text[self.start:self.pos]))

    def read_string(self):
        self.advance()  # skip opening quote
        result = ""

        while self.current_char is not None and self.current_char != '"':
            if self.current_char == "\\":
                self.advance()  # consume backslash
                if self.current_char is None:
                    break
                # unknown escape: keep literally
                result += ESCAPES.get(self.current_char, self.current_char)
                self.advance()
                continue

            result += self.current_char
            self.advance()

        if self.current_char is None:
            self.diagnostics.error(self.start_line, "Unterminated string.")
            return None

        self.advance()  # skip closing quote
        return self.make_token("STRING", result)

    def get_next_token(self):
        while self.current_char:
            self.start = self.pos
            self.start_line, self.start_col = self.line, self.column
            ch = self.current_char

            if ch in " \t\r\n":
                self.advance()
                continue

            # comments
            if ch == "/" and self.peek() == "/":
                self.skip_comment()
                continue

            # identifiers / keywords
            if is_alpha(ch):
                return self.read_identifier()

            if is_digit(ch):
                return self.read_number()

            if ch == '"':
                tok = self.read_string()
                if tok is None:
                    continue
                return tok

            # !, !=, =, ==, <, <=, >, >=
            if ch in EQ_SUFFIX_TOKENS:
                alone, with_eq = EQ_SUFFIX_TOKENS[ch]
                self.advance()
                if self.current_char == "=":
                    self.advance()
                    return self.make_token(with_eq)
                return self.make_token(alone)

            if ch == "/":
                self.advance()
                return self.make_token("SLASH")

            if ch in SINGLE_CHAR_TOKENS:
                self.advance()
                return self.make_token(SINGLE_CHAR_TOKENS[ch])

            self.diagnostics.error(self.line, "Unexpected character.")
            self.advance()

        return Token("EOF", "", line=self.line, column=self.column)

    def scan_tokens(self):
        tokens = []
        while True:
            tok = self.get_next_token()
            tokens.append(tok)
            if tok.type == "EOF":
                return tokens
