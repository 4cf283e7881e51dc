"""
The lexer: converts script source text into a flat token stream.

Lexing is total. Bad input produces INVALID placeholder tokens and an
entry in `Lexer.errors`; it never raises.
"""
from typing import List

from autoscript.autoscript_tokens import Token, TokenType, lookup_keyword, wrap_int64, INT64_MASK

_ESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '\\': '\\',
    '"': '"',
    "'": "'",
}

_SINGLE_CHAR_TOKENS = {
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '{': TokenType.LBRACE,
    '}': TokenType.RBRACE,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    ',': TokenType.COMMA,
    '.': TokenType.DOT,
    ':': TokenType.COLON,
    ';': TokenType.SEMICOLON,
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.MULTIPLY,
    '%': TokenType.MODULO,
}

# first char -> (kind when followed by '=', kind otherwise)
_EQUALS_PAIRS = {
    '!': (TokenType.NOT_EQUAL, TokenType.LOGICAL_NOT),
    '=': (TokenType.EQUAL, TokenType.ASSIGN),
    '<': (TokenType.LESS_EQUAL, TokenType.LESS),
    '>': (TokenType.GREATER_EQUAL, TokenType.GREATER),
}


def _is_digit(c: str) -> bool:
    return '0' <= c <= '9'


def _is_alpha(c: str) -> bool:
    return ('a' <= c <= 'z') or ('A' <= c <= 'Z')


def _is_identifier_start(c: str) -> bool:
    return _is_alpha(c) or c == '$' or c == '_'


def _is_identifier_part(c: str) -> bool:
    return _is_identifier_start(c) or _is_digit(c)


class Lexer:
    """Single-pass scanner with one and two character lookahead."""

    def __init__(self, source: str):
        self.source = source
        self.errors: List[str] = []
        self._reset()

    def _reset(self):
        self.current = 0
        self.start = 0
        self.line = 1
        self.column = 1
        self.start_line = 1
        self.start_column = 1
        self.errors = []

    def tokenize(self) -> List[Token]:
        """Scan the whole source. Newlines and comments are dropped."""
        self._reset()
        tokens: List[Token] = []
        while True:
            token = self.next_token()
            if token.type is TokenType.END_OF_FILE:
                break
            if token.type is not TokenType.NEWLINE:
                tokens.append(token)
        tokens.append(Token.eof(self.line, self.column))
        return tokens

    def has_errors(self) -> bool:
        return bool(self.errors)

    def next_token(self) -> Token:
        while True:
            self._skip_whitespace()
            self._mark_start()
            if self._is_at_end():
                return self._make_token(TokenType.END_OF_FILE)

            c = self._advance()
            if c == '\n':
                return self._make_token(TokenType.NEWLINE)
            if _is_digit(c):
                return self._number()
            if _is_identifier_start(c):
                return self._identifier()
            if c == '"' or c == "'":
                return self._string(c)
            if c == '/':
                if self._match('/'):
                    self._skip_line_comment()
                    continue
                if self._match('*'):
                    self._skip_block_comment()
                    continue
                return self._make_token(TokenType.DIVIDE)
            if c in _SINGLE_CHAR_TOKENS:
                return self._make_token(_SINGLE_CHAR_TOKENS[c])
            if c in _EQUALS_PAIRS:
                with_eq, alone = _EQUALS_PAIRS[c]
                return self._make_token(with_eq if self._match('=') else alone)
            if c == '&':
                if self._match('&'):
                    return self._make_token(TokenType.LOGICAL_AND)
                return self._error_token("Expected '&' after '&'")
            if c == '|':
                if self._match('|'):
                    return self._make_token(TokenType.LOGICAL_OR)
                return self._error_token("Expected '|' after '|'")
            if c == '#':
                return self._directive()
            return self._error_token(f"Unexpected character: {c}")

    # --- character helpers ---

    def _is_at_end(self) -> bool:
        return self.current >= len(self.source)

    def _advance(self) -> str:
        c = self.source[self.current]
        self.current += 1
        if c == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return c

    def _peek(self) -> str:
        return '\0' if self._is_at_end() else self.source[self.current]

    def _peek_next(self) -> str:
        if self.current + 1 >= len(self.source):
            return '\0'
        return self.source[self.current + 1]

    def _match(self, expected: str) -> bool:
        if self._is_at_end() or self.source[self.current] != expected:
            return False
        self._advance()
        return True

    def _mark_start(self):
        self.start = self.current
        self.start_line = self.line
        self.start_column = self.column

    def _make_token(self, type: TokenType, literal=None) -> Token:
        lexeme = self.source[self.start:self.current]
        return Token(type, lexeme, self.start_line, self.start_column, literal)

    def _error_token(self, message: str) -> Token:
        self._report_error(message)
        return self._make_token(TokenType.INVALID)

    def _report_error(self, message: str):
        self.errors.append(
            f"Lexer error at line {self.start_line}, column {self.start_column}: {message}"
        )

    # --- scanners ---

    def _string(self, quote: str) -> Token:
        chars = []
        while not self._is_at_end() and self._peek() != quote:
            c = self._advance()
            if c == '\\':
                if self._is_at_end():
                    break
                escaped = self._advance()
                chars.append(_ESCAPES.get(escaped, escaped))
            else:
                chars.append(c)

        if self._is_at_end():
            return self._error_token("Unterminated string")

        self._advance()  # closing quote
        return Token(TokenType.STRING, ''.join(chars), self.start_line, self.start_column)

    def _number(self) -> Token:
        while _is_digit(self._peek()):
            self._advance()

        if self._peek() == '.' and _is_digit(self._peek_next()):
            self._advance()
            while _is_digit(self._peek()):
                self._advance()
            lexeme = self.source[self.start:self.current]
            return self._make_token(TokenType.FLOAT, float(lexeme))

        # Accumulate modulo 2**64; int() refuses very long digit strings.
        value = 0
        for c in self.source[self.start:self.current]:
            value = (value * 10 + ord(c) - 48) & INT64_MASK
        return self._make_token(TokenType.INTEGER, wrap_int64(value))

    def _identifier(self) -> Token:
        while _is_identifier_part(self._peek()):
            self._advance()

        text = self.source[self.start:self.current]
        kind = lookup_keyword(text)
        if kind is TokenType.TRUE:
            return self._make_token(kind, True)
        if kind is TokenType.FALSE:
            return self._make_token(kind, False)
        return self._make_token(kind)

    def _directive(self) -> Token:
        while _is_alpha(self._peek()):
            self._advance()
        return self._make_token(TokenType.DIRECTIVE)

    def _skip_whitespace(self):
        while not self._is_at_end():
            c = self._peek()
            if c == '\n' or not c.isspace():
                return
            self._advance()

    def _skip_line_comment(self):
        while not self._is_at_end() and self._peek() != '\n':
            self._advance()

    def _skip_block_comment(self):
        # An unterminated comment runs to end of input without an error.
        while not self._is_at_end():
            if self._peek() == '*' and self._peek_next() == '/':
                self._advance()
                self._advance()
                return
            self._advance()


def tokenize(source: str) -> List[Token]:
    """Convenience wrapper: token stream only, errors discarded."""
    return Lexer(source).tokenize()
