"""Code Execution Sandbox.

Runs user-edited Python source from a pattern page:
- Source is compiled and executed in a fresh, restricted namespace
- ``print`` inside the script goes to the shared print channel, which is
  redirected into an in-memory sink for the duration of the run
- Every fault raised by the script becomes a failed ExecutionResult,
  including BaseException subclasses such as KeyboardInterrupt

Isolation is scope-level only. The namespace holds no reference to host
state, and the builtins table and import allow-list are rebuilt for every
run. A determined script can still reach interpreter internals through
function attributes such as ``__globals__``; this is not a security
boundary.
"""

from __future__ import annotations

import builtins
import logging
import time
import traceback
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from patternlab.sandbox.channel import OutputSink, PrintChannel, print_channel

logger = logging.getLogger(__name__)

SANDBOX_FILENAME = "<sandbox>"
NO_OUTPUT_SENTINEL = "# Code executed successfully but had no output"
ERROR_PREFIX = "# Error: "

DEFAULT_ALLOWED_IMPORTS = [
    "abc", "collections", "contextlib", "copy", "dataclasses",
    "datetime", "enum", "functools", "itertools", "json", "math",
    "random", "re", "statistics", "string", "typing", "weakref",
]

# Builtins removed from the sandbox namespace
BLOCKED_BUILTINS = frozenset({
    "eval", "exec", "compile", "open", "input", "breakpoint",
    "exit", "quit", "help", "copyright", "credits", "license",
    "globals", "locals", "vars", "memoryview",
})


@dataclass
class SandboxConfig:
    """Configuration for the code execution sandbox."""

    allowed_imports: list[str] = field(
        default_factory=lambda: list(DEFAULT_ALLOWED_IMPORTS)
    )


class Outcome(str, Enum):
    """Outcome of one sandbox run."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class ExecutionResult:
    """Result of code execution."""

    outcome: Outcome
    captured_output: tuple[str, ...] = ()
    error_message: str | None = None
    error_type: str | None = None
    traceback: str | None = None
    execution_time_ms: int = 0

    @property
    def success(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @property
    def output(self) -> str:
        """Text shown in the output view."""
        if not self.success:
            return f"{ERROR_PREFIX}{self.error_message}"
        return "\n".join(self.captured_output) or NO_OUTPUT_SENTINEL

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "outcome": self.outcome.value,
            "success": self.success,
            "output": self.output,
            "capturedOutput": list(self.captured_output),
            "errorMessage": self.error_message,
            "errorType": self.error_type,
            "traceback": self.traceback,
            "executionTimeMs": self.execution_time_ms,
        }


Emit = Callable[..., None]


@runtime_checkable
class Evaluator(Protocol):
    """Boundary for evaluating untrusted source.

    ``evaluate`` runs ``source`` with ``emit`` bound as its ``print`` and
    lets any fault raised by the source propagate to the caller.
    """

    def evaluate(self, source: str, emit: Emit) -> None: ...


class RestrictedEvaluator:
    """Evaluate Python source with a reduced builtins table."""

    def __init__(self, config: SandboxConfig):
        self.config = config

    def _make_import_guard(self) -> Callable[..., Any]:
        """Build an import hook that only admits allow-listed modules.

        The hook closes over its own copy of the allow-list, so a script
        that reaches into it can only change the run it belongs to.
        """
        allowed_roots = frozenset(
            name.split(".")[0] for name in self.config.allowed_imports
        )

        def guarded_import(
            name: str,
            globals: dict[str, Any] | None = None,
            locals: dict[str, Any] | None = None,
            fromlist: tuple[str, ...] = (),
            level: int = 0,
        ) -> Any:
            if level != 0:
                raise ImportError("relative imports are not available in the sandbox")
            if name.split(".")[0] not in allowed_roots:
                raise ImportError(f"import of '{name}' is not allowed in the sandbox")
            return builtins.__import__(name, globals, locals, fromlist, level)

        return guarded_import

    def _get_safe_builtins(self, emit: Emit) -> dict[str, Any]:
        """Get a restricted set of builtins for sandboxed execution."""
        safe_builtins = {
            name: getattr(builtins, name)
            for name in dir(builtins)
            if not name.startswith("_") and name not in BLOCKED_BUILTINS
        }

        # Class statements compile to a __build_class__ call
        safe_builtins["__build_class__"] = builtins.__build_class__
        safe_builtins["__import__"] = self._make_import_guard()
        safe_builtins["print"] = emit

        return safe_builtins

    def build_namespace(self, emit: Emit) -> dict[str, Any]:
        """Create a fresh global namespace for one run."""
        return {
            "__builtins__": self._get_safe_builtins(emit),
            "__name__": "__main__",
            "__doc__": None,
        }

    def evaluate(self, source: str, emit: Emit) -> None:
        code = compile(source, SANDBOX_FILENAME, "exec")
        exec(code, self.build_namespace(emit))


def format_sandbox_traceback(exc: BaseException) -> str:
    """Format ``exc`` keeping only the frames that belong to the script."""
    tb = traceback.TracebackException.from_exception(exc)
    tb.stack = traceback.StackSummary.from_list(
        [frame for frame in tb.stack if frame.filename == SANDBOX_FILENAME]
    )
    return "".join(tb.format(chain=False))


class CodeExecutor:
    """Execute Python code in a sandboxed scope and capture its prints.

    Workflow per call:
    1. Redirect the print channel into a fresh sink
    2. Hand the source to the evaluator
    3. Restore the channel, whatever happened in step 2
    4. Wrap the captured lines or the fault in an ExecutionResult
    """

    def __init__(
        self,
        config: SandboxConfig | None = None,
        evaluator: Evaluator | None = None,
        channel: PrintChannel | None = None,
    ):
        """Initialize executor with configuration."""
        self.config = config or SandboxConfig()
        self.evaluator = evaluator or RestrictedEvaluator(self.config)
        self.channel = channel or print_channel

    def execute(self, source: str) -> ExecutionResult:
        """Execute Python source in the sandbox.

        Args:
            source: Python code to execute

        Returns:
            ExecutionResult with the captured lines or the error message
        """
        start_time = time.perf_counter()
        sink = OutputSink()
        fault: BaseException | None = None

        with self.channel.redirect(sink):
            try:
                self.evaluator.evaluate(source, self.channel.emit)
            except BaseException as e:
                # Includes SystemExit and KeyboardInterrupt raised by the script
                fault = e

        execution_time = int((time.perf_counter() - start_time) * 1000)

        if fault is None:
            logger.debug(
                f"Sandbox run succeeded in {execution_time}ms ({len(sink)} lines)"
            )
            return ExecutionResult(
                outcome=Outcome.SUCCESS,
                captured_output=sink.lines,
                execution_time_ms=execution_time,
            )

        error_type = type(fault).__name__
        error_msg = str(fault) or error_type
        logger.info(f"Sandbox run failed with {error_type}: {error_msg}")

        return ExecutionResult(
            outcome=Outcome.FAILURE,
            captured_output=sink.lines,
            error_message=error_msg,
            error_type=error_type,
            traceback=format_sandbox_traceback(fault),
            execution_time_ms=execution_time,
        )
