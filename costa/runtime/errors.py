"""
Errors raised by the execution core.

Module resolution failures use the builtin ModuleNotFoundError. Exceptions
raised by a plugin script itself are never wrapped and reach the caller as-is.
"""


class EntryPointNotFoundError(TypeError):
    """A script was loaded but exposes no callable entry for its stage."""
    def __init__(self, script_name: str, script_path: str):
        self.script_name = script_name
        self.script_path = script_path
        super().__init__(f"no entry found in {script_name}({script_path})")


class ContextNotInitializedError(RuntimeError):
    """A stage was run before `Costa.init_framework()` completed."""
    def __init__(self, operation: str = "run a stage"):
        self.operation = operation
        super().__init__(
            f"Cannot {operation}: the script context is not initialized, "
            f"call init_framework() first"
        )
