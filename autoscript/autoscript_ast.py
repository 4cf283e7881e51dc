"""
Defines the abstract syntax tree for the automation script language.

Nodes are frozen dataclasses holding their children directly, so every
tree is immutable and acyclic. Consumers (the interpreter, the printer)
dispatch on node type with `match` rather than through visitor methods on
the nodes themselves.
"""
from abc import ABC
from dataclasses import dataclass
from typing import Optional, Tuple

from autoscript.autoscript_tokens import Token, TokenType


class Node(ABC):
    """Abstract base class for all syntax tree nodes."""
    __slots__ = ()


class Expression(Node):
    __slots__ = ()


class Statement(Node):
    __slots__ = ()


# =================================================================
# Expressions
# =================================================================

@dataclass(frozen=True)
class BinaryExpr(Expression):
    """`left op right`, e.g. `1 + 2`, `$a && $b`."""
    left: Expression
    op: Token
    right: Expression


@dataclass(frozen=True)
class UnaryExpr(Expression):
    """`!flag`, `-value`."""
    op: Token
    operand: Expression


@dataclass(frozen=True)
class LiteralExpr(Expression):
    token: Token

    @property
    def value(self):
        match self.token.type:
            case TokenType.STRING:
                return self.token.lexeme
            case TokenType.NULL:
                return None
            case _:
                return self.token.literal


@dataclass(frozen=True)
class VariableExpr(Expression):
    name: Token


@dataclass(frozen=True)
class CallExpr(Expression):
    """`callee(arg, ...)`. `paren` is the opening parenthesis."""
    callee: Expression
    arguments: Tuple[Expression, ...]
    paren: Token


@dataclass(frozen=True)
class ArrayExpr(Expression):
    elements: Tuple[Expression, ...]
    bracket: Token


@dataclass(frozen=True)
class MemberExpr(Expression):
    """`obj.member`."""
    obj: Expression
    member: Token


@dataclass(frozen=True)
class IndexExpr(Expression):
    """`obj[index]`. `bracket` is the opening bracket."""
    obj: Expression
    index: Expression
    bracket: Token


# =================================================================
# Statements
# =================================================================

@dataclass(frozen=True)
class ExpressionStmt(Statement):
    expression: Expression


@dataclass(frozen=True)
class AssignmentStmt(Statement):
    """`$x = expr`. Creates the variable in the current scope if unbound."""
    name: Token
    value: Expression


@dataclass(frozen=True)
class BlockStmt(Statement):
    statements: Tuple[Statement, ...]


@dataclass(frozen=True)
class IfStmt(Statement):
    condition: Expression
    then_branch: Statement
    else_branch: Optional[Statement] = None


@dataclass(frozen=True)
class WhileStmt(Statement):
    condition: Expression
    body: Statement


@dataclass(frozen=True)
class ForStmt(Statement):
    """C-style `for (init; cond; step) body`; every clause is optional."""
    initializer: Optional[Statement]
    condition: Optional[Expression]
    increment: Optional[Statement]
    body: Statement


@dataclass(frozen=True)
class ForEachStmt(Statement):
    """`foreach ($item in expr) body`."""
    variable: Token
    iterable: Expression
    body: Statement


@dataclass(frozen=True)
class FunctionStmt(Statement):
    name: Token
    params: Tuple[Token, ...]
    body: BlockStmt


@dataclass(frozen=True)
class ReturnStmt(Statement):
    keyword: Token
    value: Optional[Expression] = None


@dataclass(frozen=True)
class BreakStmt(Statement):
    keyword: Token


@dataclass(frozen=True)
class ContinueStmt(Statement):
    keyword: Token


def node_token(node: Node) -> Optional[Token]:
    """The token that best locates `node` in the source, if any."""
    match node:
        case BinaryExpr(op=op) | UnaryExpr(op=op):
            return op
        case LiteralExpr(token=tok):
            return tok
        case VariableExpr(name=tok) | AssignmentStmt(name=tok) | FunctionStmt(name=tok):
            return tok
        case CallExpr(paren=tok) | ArrayExpr(bracket=tok) | IndexExpr(bracket=tok):
            return tok
        case MemberExpr(member=tok) | ForEachStmt(variable=tok):
            return tok
        case ReturnStmt(keyword=tok) | BreakStmt(keyword=tok) | ContinueStmt(keyword=tok):
            return tok
        case ExpressionStmt(expression=expr):
            return node_token(expr)
        case IfStmt(condition=expr) | WhileStmt(condition=expr):
            return node_token(expr)
        case BlockStmt(statements=stmts) if stmts:
            return node_token(stmts[0])
    return None
