"""
Token kinds, the immutable Token record, and the keyword table for the
automation script language.
"""
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, Optional, Union


class TokenType(Enum):
    # Literals
    IDENTIFIER = auto()
    STRING = auto()
    INTEGER = auto()
    FLOAT = auto()
    TRUE = auto()
    FALSE = auto()
    NULL = auto()

    # Operators
    PLUS = auto()           # +
    MINUS = auto()          # -
    MULTIPLY = auto()       # *
    DIVIDE = auto()         # /
    MODULO = auto()         # %
    ASSIGN = auto()         # =
    EQUAL = auto()          # ==
    NOT_EQUAL = auto()      # !=
    LESS = auto()           # <
    LESS_EQUAL = auto()     # <=
    GREATER = auto()        # >
    GREATER_EQUAL = auto()  # >=
    LOGICAL_AND = auto()    # &&
    LOGICAL_OR = auto()     # ||
    LOGICAL_NOT = auto()    # !

    # Delimiters
    LPAREN = auto()
    RPAREN = auto()
    LBRACE = auto()
    RBRACE = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    COMMA = auto()
    DOT = auto()
    COLON = auto()
    SEMICOLON = auto()

    # Keywords
    IF = auto()
    ELSE = auto()
    WHILE = auto()
    FOR = auto()
    FOREACH = auto()
    REPEAT = auto()
    UNTIL = auto()
    FUNCTION = auto()
    RETURN = auto()
    BREAK = auto()
    CONTINUE = auto()
    TRY = auto()
    CATCH = auto()
    FINALLY = auto()
    IN = auto()

    # '#include' and friends
    DIRECTIVE = auto()

    # Special
    NEWLINE = auto()
    END_OF_FILE = auto()
    INVALID = auto()


Literal = Union[None, int, float, bool]

INT64_MASK = (1 << 64) - 1


def wrap_int64(value: int) -> int:
    """Truncate an arbitrary Python int to signed 64-bit two's complement."""
    value &= INT64_MASK
    if value & (1 << 63):
        value -= 1 << 64
    return value


@dataclass(frozen=True)
class Token:
    """A lexical token.

    `lexeme` is the source text of the token, except for string literals
    where it holds the decoded contents. `literal` carries the parsed
    payload of number and boolean tokens.
    """
    type: TokenType
    lexeme: str
    line: int
    column: int
    literal: Literal = None

    def __repr__(self) -> str:
        payload = f", {self.literal!r}" if self.literal is not None else ""
        return f"Token({self.type.name}, {self.lexeme!r}, {self.line}:{self.column}{payload})"

    @classmethod
    def eof(cls, line: int, column: int) -> 'Token':
        return cls(TokenType.END_OF_FILE, "", line, column)

    @classmethod
    def synthetic(cls, type: TokenType, lexeme: str, near: Optional['Token'] = None) -> 'Token':
        """A token not present in the source, positioned at `near` when given."""
        line = near.line if near is not None else 0
        column = near.column if near is not None else 0
        return cls(type, lexeme, line, column)


KEYWORDS: Dict[str, TokenType] = {
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "foreach": TokenType.FOREACH,
    "repeat": TokenType.REPEAT,
    "until": TokenType.UNTIL,
    "function": TokenType.FUNCTION,
    "return": TokenType.RETURN,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "try": TokenType.TRY,
    "catch": TokenType.CATCH,
    "finally": TokenType.FINALLY,
    "in": TokenType.IN,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,
}


def lookup_keyword(identifier: str) -> TokenType:
    """Keyword kind for `identifier` (case-insensitive), else IDENTIFIER."""
    return KEYWORDS.get(identifier.lower(), TokenType.IDENTIFIER)
