"""Code execution sandbox for pattern code templates."""

from patternlab.sandbox.channel import OutputSink, PrintChannel, print_channel
from patternlab.sandbox.errors import (
    ChannelRestorationError,
    SandboxError,
    SessionBusyError,
)
from patternlab.sandbox.executor import (
    CodeExecutor,
    Evaluator,
    ExecutionResult,
    Outcome,
    RestrictedEvaluator,
    SandboxConfig,
)
from patternlab.sandbox.session import (
    ExecutionSession,
    Notice,
    SessionPhase,
    SessionRegistry,
)

__all__ = [
    "ChannelRestorationError",
    "CodeExecutor",
    "Evaluator",
    "ExecutionResult",
    "ExecutionSession",
    "Notice",
    "Outcome",
    "OutputSink",
    "PrintChannel",
    "RestrictedEvaluator",
    "SandboxConfig",
    "SandboxError",
    "SessionBusyError",
    "SessionPhase",
    "SessionRegistry",
    "print_channel",
]
