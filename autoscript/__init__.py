from autoscript.autoscript_runtime import ScriptRunner, ExecutionResult
from autoscript.autoscript_host import AutomationHost, ElementInfo, Bounds, SimulatedHost
from autoscript.autoscript_values import ScriptRuntimeError

__all__ = [
    "ScriptRunner",
    "ExecutionResult",
    "AutomationHost",
    "ElementInfo",
    "Bounds",
    "SimulatedHost",
    "ScriptRuntimeError",
]
