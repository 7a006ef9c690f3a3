"""Sandbox error types."""


class SandboxError(Exception):
    """Base class for sandbox-level faults.

    Errors raised by the code being executed are never wrapped in this
    class; they become failed ExecutionResults instead.
    """


class ChannelRestorationError(SandboxError):
    """The print channel could not be put back after a run."""


class SessionBusyError(SandboxError):
    """A run was requested while the session was already running."""
