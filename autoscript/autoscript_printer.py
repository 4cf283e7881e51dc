"""
A pretty-printer for script syntax trees and runtime values.
"""
from autoscript.autoscript_tokens import TokenType
from autoscript.autoscript_ast import (
    BinaryExpr, UnaryExpr, LiteralExpr, VariableExpr, CallExpr, ArrayExpr, MemberExpr, IndexExpr,
    ExpressionStmt, AssignmentStmt, BlockStmt, IfStmt, WhileStmt, ForStmt, ForEachStmt,
    FunctionStmt, ReturnStmt, BreakStmt, ContinueStmt,
)
from autoscript.autoscript_values import UserFunction, NativeFunction, format_float

_PRECEDENCE = {
    TokenType.LOGICAL_OR: 1,
    TokenType.LOGICAL_AND: 2,
    TokenType.EQUAL: 3,
    TokenType.NOT_EQUAL: 3,
    TokenType.LESS: 4,
    TokenType.LESS_EQUAL: 4,
    TokenType.GREATER: 4,
    TokenType.GREATER_EQUAL: 4,
    TokenType.PLUS: 5,
    TokenType.MINUS: 5,
    TokenType.MULTIPLY: 6,
    TokenType.DIVIDE: 6,
    TokenType.MODULO: 6,
}

_STRING_ESCAPES = {
    '\\': '\\\\',
    '"': '\\"',
    '\n': '\\n',
    '\t': '\\t',
    '\r': '\\r',
}


class Printer:
    """Formats nodes as valid script source and values as readable literals."""

    def __init__(self, indent_width=2):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        handler = self._get_handler(obj)
        return handler(obj, level)

    def format_program(self, statements) -> str:
        return "\n".join(self.pformat(stmt, 0) for stmt in statements)

    def _get_handler(self, obj):
        """Dispatcher to find the correct formatting method."""
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        # Default to Python's repr for unknown types
        return lambda o, l: repr(o)

    def _create_handlers(self):
        return {
            # values
            type(None): self._pformat_none,
            bool: self._pformat_bool,
            int: self._pformat_primitive,
            float: self._pformat_float,
            str: self._pformat_str,
            list: self._pformat_array,
            dict: self._pformat_object,
            UserFunction: self._pformat_user_function,
            NativeFunction: self._pformat_native_function,
            # expressions
            BinaryExpr: self._pformat_binary,
            UnaryExpr: self._pformat_unary,
            LiteralExpr: self._pformat_literal,
            VariableExpr: self._pformat_variable,
            CallExpr: self._pformat_call,
            ArrayExpr: self._pformat_array_expr,
            MemberExpr: self._pformat_member,
            IndexExpr: self._pformat_index,
            # statements
            ExpressionStmt: self._pformat_expression_stmt,
            AssignmentStmt: self._pformat_assignment,
            BlockStmt: self._pformat_block,
            IfStmt: self._pformat_if,
            WhileStmt: self._pformat_while,
            ForStmt: self._pformat_for,
            ForEachStmt: self._pformat_foreach,
            FunctionStmt: self._pformat_function,
            ReturnStmt: self._pformat_return,
            BreakStmt: lambda o, l: "break;",
            ContinueStmt: lambda o, l: "continue;",
        }

    # --- values ---

    def _pformat_none(self, obj, level):
        return 'null'

    def _pformat_bool(self, obj, level):
        return 'true' if obj else 'false'

    def _pformat_primitive(self, obj, level):
        return str(obj)

    def _pformat_float(self, obj, level):
        return format_float(obj)

    def _pformat_str(self, obj, level):
        return '"' + ''.join(_STRING_ESCAPES.get(c, c) for c in obj) + '"'

    def _pformat_array(self, obj, level):
        return "[" + ", ".join(self.pformat(v, level) for v in obj) + "]"

    def _pformat_object(self, obj, level):
        if not obj:
            return "{}"
        items = [f"{k}: {self.pformat(v, level)}" for k, v in obj.items()]
        return "{" + ", ".join(items) + "}"

    def _pformat_user_function(self, obj, level):
        return f"function {obj.name}({', '.join(obj.params)})"

    def _pformat_native_function(self, obj, level):
        return f"<native function {obj.name}>"

    # --- expressions ---

    def _operand(self, node, min_precedence, level):
        """Format `node`, parenthesized when it binds looser than `min_precedence`."""
        text = self.pformat(node, level)
        if isinstance(node, BinaryExpr) and _PRECEDENCE[node.op.type] < min_precedence:
            return f"({text})"
        return text

    def _pformat_binary(self, obj, level):
        prec = _PRECEDENCE[obj.op.type]
        # operators are left-associative: a right operand of equal rank needs parens
        left = self._operand(obj.left, prec, level)
        right = self._operand(obj.right, prec + 1, level)
        return f"{left} {obj.op.lexeme} {right}"

    def _pformat_unary(self, obj, level):
        operand = self.pformat(obj.operand, level)
        if isinstance(obj.operand, BinaryExpr):
            operand = f"({operand})"
        return f"{obj.op.lexeme}{operand}"

    def _pformat_postfix_base(self, node, level):
        text = self.pformat(node, level)
        if isinstance(node, (BinaryExpr, UnaryExpr)):
            return f"({text})"
        return text

    def _pformat_literal(self, obj, level):
        match obj.token.type:
            case TokenType.STRING:
                return self._pformat_str(obj.token.lexeme, level)
            case TokenType.TRUE:
                return 'true'
            case TokenType.FALSE:
                return 'false'
            case TokenType.NULL:
                return 'null'
        return obj.token.lexeme

    def _pformat_variable(self, obj, level):
        return obj.name.lexeme

    def _pformat_call(self, obj, level):
        args = ", ".join(self.pformat(a, level) for a in obj.arguments)
        return f"{self._pformat_postfix_base(obj.callee, level)}({args})"

    def _pformat_array_expr(self, obj, level):
        return "[" + ", ".join(self.pformat(e, level) for e in obj.elements) + "]"

    def _pformat_member(self, obj, level):
        return f"{self._pformat_postfix_base(obj.obj, level)}.{obj.member.lexeme}"

    def _pformat_index(self, obj, level):
        index = self.pformat(obj.index, level)
        return f"{self._pformat_postfix_base(obj.obj, level)}[{index}]"

    # --- statements ---

    def _clause(self, stmt, level):
        """A statement without its trailing ';' (for-loop clauses)."""
        if stmt is None:
            return ""
        text = self.pformat(stmt, level)
        return text[:-1] if text.endswith(";") else text

    def _pformat_expression_stmt(self, obj, level):
        return f"{self.pformat(obj.expression, level)};"

    def _pformat_assignment(self, obj, level):
        return f"{obj.name.lexeme} = {self.pformat(obj.value, level)};"

    def _pformat_block(self, obj, level):
        if not obj.statements:
            return "{}"
        inner_indent = self._indent_char * (level + 1)
        lines = [inner_indent + self.pformat(stmt, level + 1) for stmt in obj.statements]
        return "{\n" + "\n".join(lines) + "\n" + self._indent_char * level + "}"

    def _pformat_if(self, obj, level):
        text = f"if ({self.pformat(obj.condition, level)}) {self.pformat(obj.then_branch, level)}"
        if obj.else_branch is not None:
            text += f" else {self.pformat(obj.else_branch, level)}"
        return text

    def _pformat_while(self, obj, level):
        return f"while ({self.pformat(obj.condition, level)}) {self.pformat(obj.body, level)}"

    def _pformat_for(self, obj, level):
        init = self._clause(obj.initializer, level)
        cond = self.pformat(obj.condition, level) if obj.condition is not None else ""
        step = self._clause(obj.increment, level)
        return f"for ({init}; {cond}; {step}) {self.pformat(obj.body, level)}"

    def _pformat_foreach(self, obj, level):
        iterable = self.pformat(obj.iterable, level)
        return f"foreach ({obj.variable.lexeme} in {iterable}) {self.pformat(obj.body, level)}"

    def _pformat_function(self, obj, level):
        params = ", ".join(p.lexeme for p in obj.params)
        return f"function {obj.name.lexeme}({params}) {self.pformat(obj.body, level)}"

    def _pformat_return(self, obj, level):
        if obj.value is None:
            return "return;"
        return f"return {self.pformat(obj.value, level)};"
