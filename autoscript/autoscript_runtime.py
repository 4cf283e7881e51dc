import asyncio
import os
import sys
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from autoscript.autoscript_lexer import Lexer
from autoscript.autoscript_parser import Parser
from autoscript.autoscript_interpreter import Interpreter, DEFAULT_MAX_CALL_DEPTH
from autoscript.autoscript_natives import StdLib
from autoscript.autoscript_host import AutomationHost, AutomationBridge

SUCCESS_OUTPUT = "Script executed successfully"
RUNNER_BUSY = "Runner is busy: a previous script is still running"


# ===================================================================
# Script Execution
# ===================================================================

@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    success: bool
    errors: List[str] = field(default_factory=list)
    output: Optional[str] = None
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        """All error messages, one per line; empty on success."""
        if self.success:
            return ""
        return "\n".join(self.errors) or "Unknown error"


class ScriptRunner:
    """Lexes, parses, and executes automation scripts.

    Global bindings persist across `execute` calls on the same runner, so a
    REPL can define a function on one line and call it on the next. Errors
    and side effects are collected per call.
    """

    def __init__(self, host_object: Optional[AutomationHost] = None,
                 natives: Optional[Mapping[str, Callable[[List[Any]], Any]]] = None,
                 load_builtins: bool = True,
                 max_call_depth: int = DEFAULT_MAX_CALL_DEPTH):
        if host_object is not None and not isinstance(host_object, AutomationHost):
            raise TypeError(f"host_object must be an AutomationHost, got {type(host_object).__name__}")
        self.host_object = host_object
        self.side_effects: List[Dict] = []
        self._lock = threading.Lock()

        # Later bindings shadow earlier ones: builtins < host < explicit natives
        bindings: Dict[str, Any] = {}
        self.stdlib = None
        if load_builtins:
            self.stdlib = StdLib(self.side_effects)
            bindings.update(self.stdlib.natives())
        self.bridge = None
        if host_object is not None:
            self.bridge = AutomationBridge(host_object)
            bindings.update(self.bridge.natives())
        if natives:
            bindings.update(natives)

        self.interpreter = Interpreter(bindings, max_call_depth=max_call_depth)

    def _dbg(self, *parts):
        if os.environ.get("AUTOSCRIPT_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    def _result(self, errors: List[str]) -> ExecutionResult:
        if errors:
            return ExecutionResult(success=False, errors=list(errors),
                                   side_effects=list(self.side_effects))
        return ExecutionResult(success=True, output=SUCCESS_OUTPUT,
                               side_effects=list(self.side_effects))

    @property
    def busy(self) -> bool:
        """True while a script is running, including one abandoned by a timeout."""
        return self._lock.locked()

    def execute(self, source_code: str) -> ExecutionResult:
        """Run a script to completion on the calling thread.

        Calls are serialized: one interpreter never runs two scripts at once.
        """
        with self._lock:
            try:
                return self._execute(source_code)
            except Exception as e:
                self._dbg("execution failed:", repr(e))
                return ExecutionResult(
                    success=False,
                    errors=[f"Execution error: {e}"],
                    side_effects=list(self.side_effects),
                )

    def _execute(self, source_code: str) -> ExecutionResult:
        self.side_effects.clear()
        self.interpreter.errors = []

        # 1. Lex
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()
        self._dbg("lexed", len(tokens), "tokens,", len(lexer.errors), "errors")
        if lexer.has_errors():
            return self._result(lexer.errors)

        # 2. Parse
        parser = Parser(tokens)
        statements = parser.parse()
        self._dbg("parsed", len(statements), "statements,", len(parser.errors), "errors")
        if parser.has_errors():
            return self._result(parser.errors)

        # 3. Evaluate
        self.interpreter.execute(statements)
        self._dbg("executed with", len(self.interpreter.errors), "errors")
        return self._result(self.interpreter.errors)

    async def handle_script(self, source_code: str, timeout: Optional[float] = None) -> ExecutionResult:
        """The async entry point: runs `execute` on a worker thread.

        On timeout the result is a failure; the worker thread is not
        interrupted and finishes in the background. Until it does, further
        calls fail with a busy error instead of sharing the interpreter.
        """
        if self.busy:
            return ExecutionResult(success=False, errors=[RUNNER_BUSY])
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self.execute, source_code)
        try:
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            self._dbg("timed out after", timeout, "seconds")
            return ExecutionResult(
                success=False,
                errors=[f"Script timed out after {timeout} seconds"],
                side_effects=list(self.side_effects),
            )
