"""
The tree-walking evaluator for the automation script language.
"""
import os
import sys
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from autoscript.autoscript_tokens import Token, TokenType
from autoscript.autoscript_ast import (
    Expression, Statement, node_token,
    BinaryExpr, UnaryExpr, LiteralExpr, VariableExpr, CallExpr, ArrayExpr, MemberExpr, IndexExpr,
    ExpressionStmt, AssignmentStmt, BlockStmt, IfStmt, WhileStmt, ForStmt, ForEachStmt,
    FunctionStmt, ReturnStmt, BreakStmt, ContinueStmt,
)
from autoscript.autoscript_environment import Environment, UndefinedVariable
from autoscript.autoscript_values import (
    ScriptRuntimeError, UserFunction, NativeFunction,
    type_name, is_truthy, from_host, values_equal, compare,
    add, subtract, multiply, divide, modulo, negate, get_index, get_member,
)

DEFAULT_MAX_CALL_DEPTH = 100


# =================================================================
# Control signals
# =================================================================
# Statements evaluate to None on normal completion or to one of these
# signals. Loops consume Break/Continue, calls consume Return; anything
# that reaches the top level is reported as misplaced.

class ControlSignal:
    __slots__ = ("token",)

    def __init__(self, token: Optional[Token] = None):
        self.token = token


class ReturnSignal(ControlSignal):
    __slots__ = ("value",)

    def __init__(self, value: Any, token: Optional[Token] = None):
        super().__init__(token)
        self.value = value


class BreakSignal(ControlSignal):
    __slots__ = ()


class ContinueSignal(ControlSignal):
    __slots__ = ()


def is_return(signal) -> bool:
    return isinstance(signal, ReturnSignal)


_MISPLACED_SIGNALS = {
    ReturnSignal: "Return statement outside of function",
    BreakSignal: "Break statement outside of loop",
    ContinueSignal: "Continue statement outside of loop",
}

_BINARY_OPERATORS: Dict[TokenType, Callable[[Any, Any], Any]] = {
    TokenType.PLUS: add,
    TokenType.MINUS: subtract,
    TokenType.MULTIPLY: multiply,
    TokenType.DIVIDE: divide,
    TokenType.MODULO: modulo,
    TokenType.EQUAL: values_equal,
    TokenType.NOT_EQUAL: lambda a, b: not values_equal(a, b),
    TokenType.LESS: lambda a, b: compare("<", a, b),
    TokenType.LESS_EQUAL: lambda a, b: compare("<=", a, b),
    TokenType.GREATER: lambda a, b: compare(">", a, b),
    TokenType.GREATER_EQUAL: lambda a, b: compare(">=", a, b),
}


class Interpreter:
    """Evaluates statements against a global scope seeded with natives.

    One instance serves one script execution at a time; concurrent runs
    need separate interpreters.
    """
    def __init__(self, natives: Optional[Mapping[str, Callable[[List[Any]], Any]]] = None,
                 max_call_depth: int = DEFAULT_MAX_CALL_DEPTH):
        self.globals = Environment()
        self.environment = self.globals
        self.errors: List[str] = []
        self.call_stack: List[Dict[str, Any]] = []
        self.max_call_depth = max_call_depth
        for name, func in (natives or {}).items():
            self.define_native(name, func)

    def define_native(self, name: str, func: Callable[[List[Any]], Any]):
        if not isinstance(func, NativeFunction):
            func = NativeFunction(name, func)
        self.globals.define(name, func)

    def has_errors(self) -> bool:
        return bool(self.errors)

    def _dbg(self, *parts):
        if os.environ.get("AUTOSCRIPT_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    # ------------------------------------------------------------------
    # Top level
    # ------------------------------------------------------------------

    def execute(self, statements: Sequence[Statement]):
        """Run top-level statements; a failing statement does not stop the rest."""
        for stmt in statements:
            self.call_stack.clear()
            self.environment = self.globals
            try:
                signal = self.execute_statement(stmt)
            except ScriptRuntimeError as e:
                self._report_runtime_error(e)
                continue
            except RecursionError:
                self._report_runtime_error(ScriptRuntimeError("Stack overflow", node_token(stmt)))
                continue
            finally:
                self.environment = self.globals
            if signal is not None:
                self.errors.append(_MISPLACED_SIGNALS[type(signal)])

    def _report_runtime_error(self, error: ScriptRuntimeError):
        token = error.token
        if token is not None and token.line > 0:
            message = f"Runtime error at line {token.line}, column {token.column}: {error.message}"
        else:
            message = f"Runtime error: {error.message}"
        trace = self._format_stacktrace()
        if trace:
            message = f"{message}\n{trace}"
        self.errors.append(message)
        self._dbg("ERROR", message)

    def _format_stacktrace(self) -> str:
        if not self.call_stack:
            return ""
        from autoscript.autoscript_printer import Printer
        printer = Printer()

        def fmt(arg):
            match arg:
                case list():
                    return f"[{len(arg)}]"
                case dict():
                    return "{...}"
                case _:
                    return printer.pformat(arg)

        frames = []
        stack = self.call_stack
        if len(stack) > 10:
            frames.append(f"... {len(stack) - 10} more")
            stack = stack[-10:]
        for frame in stack:
            args = " ".join(fmt(a) for a in frame['args'])
            frames.append(f"({frame['name']} {args})" if args else f"({frame['name']})")
        return "Script stacktrace: " + " ".join(frames)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def execute_statement(self, stmt: Statement) -> Optional[ControlSignal]:
        match stmt:
            case ExpressionStmt(expression=expr):
                self.evaluate(expr)
                return None

            case AssignmentStmt(name=name, value=value_expr):
                value = self.evaluate(value_expr)
                try:
                    self.environment.assign(name.lexeme, value)
                except UndefinedVariable:
                    self.environment.define(name.lexeme, value)
                return None

            case BlockStmt(statements=statements):
                return self.execute_block(statements, self.environment.child())

            case IfStmt(condition=condition, then_branch=then_branch, else_branch=else_branch):
                if is_truthy(self.evaluate(condition)):
                    return self.execute_statement(then_branch)
                if else_branch is not None:
                    return self.execute_statement(else_branch)
                return None

            case WhileStmt(condition=condition, body=body):
                while is_truthy(self.evaluate(condition)):
                    signal = self.execute_statement(body)
                    if isinstance(signal, BreakSignal):
                        break
                    if isinstance(signal, ReturnSignal):
                        return signal
                return None

            case ForStmt():
                return self._execute_for(stmt)

            case ForEachStmt():
                return self._execute_foreach(stmt)

            case FunctionStmt(name=name, params=params, body=body):
                func = UserFunction(name.lexeme, tuple(p.lexeme for p in params), body, self.environment)
                self.environment.define(name.lexeme, func)
                return None

            case ReturnStmt(keyword=keyword, value=value_expr):
                value = self.evaluate(value_expr) if value_expr is not None else None
                return ReturnSignal(value, keyword)

            case BreakStmt(keyword=keyword):
                return BreakSignal(keyword)

            case ContinueStmt(keyword=keyword):
                return ContinueSignal(keyword)

        raise ScriptRuntimeError(f"Unknown statement: {type(stmt).__name__}")

    def execute_block(self, statements: Sequence[Statement], env: Environment) -> Optional[ControlSignal]:
        previous = self.environment
        self.environment = env
        try:
            for stmt in statements:
                signal = self.execute_statement(stmt)
                if signal is not None:
                    return signal
            return None
        finally:
            self.environment = previous

    def _execute_for(self, stmt: ForStmt) -> Optional[ControlSignal]:
        previous = self.environment
        self.environment = previous.child()
        try:
            if stmt.initializer is not None:
                self.execute_statement(stmt.initializer)
            while stmt.condition is None or is_truthy(self.evaluate(stmt.condition)):
                signal = self.execute_statement(stmt.body)
                if isinstance(signal, BreakSignal):
                    break
                if isinstance(signal, ReturnSignal):
                    return signal
                if stmt.increment is not None:
                    self.execute_statement(stmt.increment)
            return None
        finally:
            self.environment = previous

    def _execute_foreach(self, stmt: ForEachStmt) -> Optional[ControlSignal]:
        iterable = self.evaluate(stmt.iterable)
        if not isinstance(iterable, list):
            raise ScriptRuntimeError(
                f"foreach requires an array, got {type_name(iterable)}", stmt.variable
            )
        # Iterate a snapshot so Push/Pop inside the body cannot skip items.
        for item in list(iterable):
            loop_env = self.environment.child()
            loop_env.define(stmt.variable.lexeme, item)
            signal = self.execute_block((stmt.body,), loop_env)
            if isinstance(signal, BreakSignal):
                break
            if isinstance(signal, ReturnSignal):
                return signal
        return None

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def evaluate(self, expr: Expression) -> Any:
        try:
            return self._evaluate(expr)
        except ScriptRuntimeError as e:
            if e.token is None:
                e.token = node_token(expr)
            raise

    def _evaluate(self, expr: Expression) -> Any:
        match expr:
            case LiteralExpr():
                return expr.value

            case VariableExpr(name=name):
                return self.environment.get(name.lexeme)

            case BinaryExpr(left=left, op=op, right=right):
                if op.type is TokenType.LOGICAL_AND:
                    return is_truthy(self.evaluate(left)) and is_truthy(self.evaluate(right))
                if op.type is TokenType.LOGICAL_OR:
                    return is_truthy(self.evaluate(left)) or is_truthy(self.evaluate(right))
                operator = _BINARY_OPERATORS.get(op.type)
                if operator is None:
                    raise ScriptRuntimeError(f"Unknown binary operator: {op.lexeme}", op)
                lhs = self.evaluate(left)
                rhs = self.evaluate(right)
                return operator(lhs, rhs)

            case UnaryExpr(op=op, operand=operand):
                value = self.evaluate(operand)
                if op.type is TokenType.MINUS:
                    return negate(value)
                if op.type is TokenType.LOGICAL_NOT:
                    return not is_truthy(value)
                raise ScriptRuntimeError(f"Unknown unary operator: {op.lexeme}", op)

            case CallExpr(callee=callee_expr, arguments=arguments):
                callee = self.evaluate(callee_expr)
                args = [self.evaluate(arg) for arg in arguments]
                return self.call_function(callee, args, node_token(expr))

            case ArrayExpr(elements=elements):
                return [self.evaluate(e) for e in elements]

            case MemberExpr(obj=obj_expr, member=member):
                return get_member(self.evaluate(obj_expr), member.lexeme)

            case IndexExpr(obj=obj_expr, index=index_expr):
                container = self.evaluate(obj_expr)
                index = self.evaluate(index_expr)
                return get_index(container, index)

        raise ScriptRuntimeError(f"Unknown expression: {type(expr).__name__}")

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def _push_frame(self, name: str, args: List[Any]):
        self.call_stack.append({'name': name, 'args': args})

    def _pop_frame(self):
        if self.call_stack:
            self.call_stack.pop()

    def call_function(self, callee: Any, args: List[Any], call_site: Optional[Token] = None) -> Any:
        match callee:
            case NativeFunction(name=name):
                self._push_frame(name, args)
                self._dbg("NATIVE", name, args)
                try:
                    result = callee(args)
                except (ScriptRuntimeError, RecursionError):
                    raise
                except Exception as e:
                    raise ScriptRuntimeError(f"{name} failed: {e}", call_site) from e
                finally:
                    # natives never call back into script code
                    self._pop_frame()
                return from_host(result)

            case UserFunction(name=name, params=params):
                if len(args) != len(params):
                    raise ScriptRuntimeError(
                        f"{name} expects {len(params)} arguments but got {len(args)}", call_site
                    )
                if len(self.call_stack) >= self.max_call_depth:
                    raise ScriptRuntimeError("Stack overflow", call_site)
                # Parameters live in a frame rooted at the defining scope.
                env = Environment(callee.closure)
                for param, arg in zip(params, args):
                    env.define(param, arg)
                self._push_frame(name, args)
                signal = self.execute_block(callee.body.statements, env)
                self._pop_frame()
                if is_return(signal):
                    return signal.value
                if signal is not None:
                    raise ScriptRuntimeError(_MISPLACED_SIGNALS[type(signal)], signal.token)
                return None

        raise ScriptRuntimeError(f"Value of type {type_name(callee)} is not callable", call_site)
