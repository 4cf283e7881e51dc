"""
Recursive-descent parser producing the statement list for a script.

Syntax errors are collected rather than raised. After an error the parser
skips ahead to a likely statement boundary and carries on, so a malformed
statement yields one message instead of a cascade.
"""
from typing import List, Optional, Sequence

from autoscript.autoscript_tokens import Token, TokenType
from autoscript.autoscript_ast import (
    Expression, Statement,
    BinaryExpr, UnaryExpr, LiteralExpr, VariableExpr, CallExpr, ArrayExpr, MemberExpr, IndexExpr,
    ExpressionStmt, AssignmentStmt, BlockStmt, IfStmt, WhileStmt, ForStmt, ForEachStmt,
    FunctionStmt, ReturnStmt, BreakStmt, ContinueStmt,
)

# Tokens that begin a fresh statement; synchronization stops in front of them.
_STATEMENT_STARTERS = frozenset({
    TokenType.IF,
    TokenType.WHILE,
    TokenType.FOR,
    TokenType.FOREACH,
    TokenType.FUNCTION,
    TokenType.RETURN,
})

_LITERAL_TOKENS = frozenset({
    TokenType.TRUE,
    TokenType.FALSE,
    TokenType.NULL,
    TokenType.INTEGER,
    TokenType.FLOAT,
    TokenType.STRING,
})


class ParseError(Exception):
    def __init__(self, token: Token, message: str):
        super().__init__(message)
        self.token = token
        self.message = message


class Parser:
    """Consumes a token stream (as produced by `Lexer.tokenize`)."""

    def __init__(self, tokens: Sequence[Token]):
        self.tokens: List[Token] = list(tokens)
        if not self.tokens or self.tokens[-1].type is not TokenType.END_OF_FILE:
            last = self.tokens[-1] if self.tokens else None
            self.tokens.append(Token.eof(last.line if last else 1, last.column if last else 1))
        self.current = 0
        self.errors: List[str] = []
        self._block_depth = 0

    def parse(self) -> List[Statement]:
        """Parse every top-level statement, recovering from syntax errors."""
        statements: List[Statement] = []
        while not self._is_at_end():
            try:
                stmt = self._guarded_declaration()
            except RecursionError:
                # Nesting deep enough to exhaust the Python stack; the rest is unreliable.
                self._report_error(self._peek(), "Expression nested too deeply")
                self._block_depth = 0
                self.current = len(self.tokens) - 1
                break
            if stmt is not None:
                statements.append(stmt)
        return statements

    def has_errors(self) -> bool:
        return bool(self.errors)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _guarded_declaration(self) -> Optional[Statement]:
        try:
            return self._declaration()
        except ParseError as e:
            self._report_error(e.token, e.message)
            self._synchronize()
            return None

    def _declaration(self) -> Optional[Statement]:
        if self._match(TokenType.SEMICOLON):
            return None
        if self._match(TokenType.FUNCTION):
            return self._function_declaration()
        return self._statement()

    def _statement(self) -> Statement:
        if self._match(TokenType.IF):
            return self._if_statement()
        if self._match(TokenType.WHILE):
            return self._while_statement()
        if self._match(TokenType.FOR):
            return self._for_statement()
        if self._match(TokenType.FOREACH):
            return self._foreach_statement()
        if self._match(TokenType.REPEAT):
            return self._repeat_statement()
        if self._match(TokenType.LBRACE):
            return self._block()
        if self._match(TokenType.RETURN):
            return self._terminated(self._return_statement())
        if self._match(TokenType.BREAK):
            return self._terminated(BreakStmt(self._previous()))
        if self._match(TokenType.CONTINUE):
            return self._terminated(ContinueStmt(self._previous()))
        if self._check(TokenType.TRY):
            raise ParseError(self._peek(), "try-catch-finally is not supported")
        if self._check(TokenType.DIRECTIVE):
            raise ParseError(self._peek(), f"Directives are not supported: {self._peek().lexeme}")
        return self._terminated(self._simple_statement())

    def _simple_statement(self) -> Statement:
        """An assignment or a bare expression, without its terminator."""
        if self._check(TokenType.IDENTIFIER) and self._peek_next().type is TokenType.ASSIGN:
            return self._assignment()
        expr = self._expression()
        if self._check(TokenType.ASSIGN):
            raise ParseError(self._peek(), "Invalid assignment target")
        return ExpressionStmt(expr)

    def _terminated(self, stmt: Statement) -> Statement:
        self._match(TokenType.SEMICOLON)
        return stmt

    def _assignment(self) -> AssignmentStmt:
        name = self._advance()
        self._consume(TokenType.ASSIGN, "Expected '=' in assignment")
        return AssignmentStmt(name, self._expression())

    def _block(self) -> BlockStmt:
        statements: List[Statement] = []
        self._block_depth += 1
        try:
            while not self._check(TokenType.RBRACE) and not self._is_at_end():
                stmt = self._guarded_declaration()
                if stmt is not None:
                    statements.append(stmt)
        finally:
            self._block_depth -= 1
        self._consume(TokenType.RBRACE, "Expected '}' after block")
        return BlockStmt(tuple(statements))

    def _if_statement(self) -> IfStmt:
        self._consume(TokenType.LPAREN, "Expected '(' after 'if'")
        condition = self._expression()
        self._consume(TokenType.RPAREN, "Expected ')' after condition")
        then_branch = self._statement()
        else_branch = None
        if self._match(TokenType.ELSE):
            else_branch = self._statement()
        return IfStmt(condition, then_branch, else_branch)

    def _while_statement(self) -> WhileStmt:
        self._consume(TokenType.LPAREN, "Expected '(' after 'while'")
        condition = self._expression()
        self._consume(TokenType.RPAREN, "Expected ')' after condition")
        return WhileStmt(condition, self._statement())

    def _for_statement(self) -> ForStmt:
        self._consume(TokenType.LPAREN, "Expected '(' after 'for'")

        initializer = None
        if not self._check(TokenType.SEMICOLON):
            initializer = self._simple_statement()
        self._consume(TokenType.SEMICOLON, "Expected ';' after for loop initializer")

        condition = None
        if not self._check(TokenType.SEMICOLON):
            condition = self._expression()
        self._consume(TokenType.SEMICOLON, "Expected ';' after for loop condition")

        increment = None
        if not self._check(TokenType.RPAREN):
            increment = self._simple_statement()
        self._consume(TokenType.RPAREN, "Expected ')' after for clauses")

        return ForStmt(initializer, condition, increment, self._statement())

    def _foreach_statement(self) -> ForEachStmt:
        self._consume(TokenType.LPAREN, "Expected '(' after 'foreach'")
        variable = self._consume(TokenType.IDENTIFIER, "Expected variable name")
        self._consume(TokenType.IN, "Expected 'in' in foreach loop")
        iterable = self._expression()
        self._consume(TokenType.RPAREN, "Expected ')' after foreach clauses")
        return ForEachStmt(variable, iterable, self._statement())

    def _repeat_statement(self) -> WhileStmt:
        # repeat { body } until (cond)  =>  while (!cond) { body }
        # The body may therefore run zero times.
        body = self._statement()
        until = self._consume(TokenType.UNTIL, "Expected 'until' after repeat block")
        self._consume(TokenType.LPAREN, "Expected '(' after 'until'")
        condition = self._expression()
        self._consume(TokenType.RPAREN, "Expected ')' after condition")
        self._match(TokenType.SEMICOLON)
        negated = UnaryExpr(Token.synthetic(TokenType.LOGICAL_NOT, "!", near=until), condition)
        return WhileStmt(negated, body)

    def _function_declaration(self) -> FunctionStmt:
        name = self._consume(TokenType.IDENTIFIER, "Expected function name")
        self._consume(TokenType.LPAREN, "Expected '(' after function name")

        params: List[Token] = []
        if not self._check(TokenType.RPAREN):
            while True:
                param = self._consume(TokenType.IDENTIFIER, "Expected parameter name")
                if any(p.lexeme == param.lexeme for p in params):
                    raise ParseError(param, f"Duplicate parameter name: {param.lexeme}")
                params.append(param)
                if not self._match(TokenType.COMMA):
                    break

        self._consume(TokenType.RPAREN, "Expected ')' after parameters")
        self._consume(TokenType.LBRACE, "Expected '{' before function body")
        return FunctionStmt(name, tuple(params), self._block())

    def _return_statement(self) -> ReturnStmt:
        keyword = self._previous()
        value = None
        if not (self._check(TokenType.SEMICOLON) or self._check(TokenType.RBRACE) or self._is_at_end()):
            value = self._expression()
        return ReturnStmt(keyword, value)

    # ------------------------------------------------------------------
    # Expressions, lowest to highest precedence
    # ------------------------------------------------------------------

    def _expression(self) -> Expression:
        return self._logical_or()

    def _binary(self, operand, *kinds: TokenType) -> Expression:
        expr = operand()
        while self._match(*kinds):
            op = self._previous()
            expr = BinaryExpr(expr, op, operand())
        return expr

    def _logical_or(self) -> Expression:
        return self._binary(self._logical_and, TokenType.LOGICAL_OR)

    def _logical_and(self) -> Expression:
        return self._binary(self._equality, TokenType.LOGICAL_AND)

    def _equality(self) -> Expression:
        return self._binary(self._comparison, TokenType.EQUAL, TokenType.NOT_EQUAL)

    def _comparison(self) -> Expression:
        return self._binary(
            self._term,
            TokenType.LESS, TokenType.LESS_EQUAL, TokenType.GREATER, TokenType.GREATER_EQUAL,
        )

    def _term(self) -> Expression:
        return self._binary(self._factor, TokenType.PLUS, TokenType.MINUS)

    def _factor(self) -> Expression:
        return self._binary(self._unary, TokenType.MULTIPLY, TokenType.DIVIDE, TokenType.MODULO)

    def _unary(self) -> Expression:
        if self._match(TokenType.LOGICAL_NOT, TokenType.MINUS):
            op = self._previous()
            return UnaryExpr(op, self._unary())
        return self._call()

    def _call(self) -> Expression:
        expr = self._primary()
        while True:
            if self._match(TokenType.LPAREN):
                paren = self._previous()
                args = self._comma_list(TokenType.RPAREN)
                self._consume(TokenType.RPAREN, "Expected ')' after arguments")
                expr = CallExpr(expr, args, paren)
            elif self._match(TokenType.DOT):
                member = self._consume(TokenType.IDENTIFIER, "Expected property name after '.'")
                expr = MemberExpr(expr, member)
            elif self._match(TokenType.LBRACKET):
                bracket = self._previous()
                index = self._expression()
                self._consume(TokenType.RBRACKET, "Expected ']' after index")
                expr = IndexExpr(expr, index, bracket)
            else:
                return expr

    def _primary(self) -> Expression:
        if self._match(*_LITERAL_TOKENS):
            return LiteralExpr(self._previous())
        if self._match(TokenType.IDENTIFIER):
            return VariableExpr(self._previous())
        if self._match(TokenType.LPAREN):
            expr = self._expression()
            self._consume(TokenType.RPAREN, "Expected ')' after expression")
            return expr
        if self._match(TokenType.LBRACKET):
            bracket = self._previous()
            elements = self._comma_list(TokenType.RBRACKET)
            self._consume(TokenType.RBRACKET, "Expected ']' after array elements")
            return ArrayExpr(elements, bracket)
        raise ParseError(self._peek(), "Expected expression")

    def _comma_list(self, closer: TokenType) -> tuple:
        items: List[Expression] = []
        if not self._check(closer):
            items.append(self._expression())
            while self._match(TokenType.COMMA):
                items.append(self._expression())
        return tuple(items)

    # ------------------------------------------------------------------
    # Token cursor
    # ------------------------------------------------------------------

    def _advance(self) -> Token:
        if not self._is_at_end():
            self.current += 1
        return self._previous()

    def _peek(self) -> Token:
        return self.tokens[self.current]

    def _peek_next(self) -> Token:
        if self.current + 1 < len(self.tokens):
            return self.tokens[self.current + 1]
        return self.tokens[-1]

    def _previous(self) -> Token:
        return self.tokens[self.current - 1]

    def _check(self, kind: TokenType) -> bool:
        if self._is_at_end():
            return False
        return self._peek().type is kind

    def _match(self, *kinds: TokenType) -> bool:
        for kind in kinds:
            if self._check(kind):
                self._advance()
                return True
        return False

    def _consume(self, kind: TokenType, message: str) -> Token:
        if self._check(kind):
            return self._advance()
        raise ParseError(self._peek(), message)

    def _is_at_end(self) -> bool:
        return self._peek().type is TokenType.END_OF_FILE

    # ------------------------------------------------------------------
    # Error recovery
    # ------------------------------------------------------------------

    def _report_error(self, token: Token, message: str):
        where = "at end" if token.type is TokenType.END_OF_FILE else f"near '{token.lexeme}'"
        self.errors.append(
            f"Parser error at line {token.line}, column {token.column} ({where}): {message}"
        )

    def _synchronize(self):
        # Leave a closing brace for the enclosing block to consume.
        if not (self._check(TokenType.RBRACE) and self._block_depth > 0):
            self._advance()
        while not self._is_at_end():
            if self._previous().type is TokenType.SEMICOLON:
                return
            kind = self._peek().type
            if kind in _STATEMENT_STARTERS:
                return
            if kind is TokenType.RBRACE and self._block_depth > 0:
                return
            self._advance()


def parse(tokens: Sequence[Token]) -> List[Statement]:
    """Convenience wrapper: statements only, errors discarded."""
    return Parser(tokens).parse()
