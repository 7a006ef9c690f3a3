"""Diagnostic-print channel for sandboxed code.

Sandboxed scripts never write to the host's stdout. Their ``print`` is bound
to the process-wide ``print_channel``, whose handler is swapped for an
``OutputSink`` for the duration of one execution and put back afterwards.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from patternlab.sandbox.errors import ChannelRestorationError

logger = logging.getLogger(__name__)

Handler = Callable[[str], None]

# Argument types rendered as indented JSON rather than str()
STRUCTURED_TYPES = (dict, list, tuple)


def format_argument(value: Any) -> str:
    """Render one print argument.

    Dicts, lists, tuples and dataclass instances become indented JSON;
    everything else, and anything json rejects, goes through ``str``.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        try:
            return json.dumps(dataclasses.asdict(value), indent=2, default=str)
        except (TypeError, ValueError, RecursionError):
            return str(value)
    if isinstance(value, STRUCTURED_TYPES):
        try:
            return json.dumps(value, indent=2, default=str)
        except (TypeError, ValueError):
            # Circular references, non-string keys that json rejects
            return str(value)
    return str(value)


def format_line(args: tuple[Any, ...], sep: str | None = None) -> str:
    """Render one print call as a single line."""
    if sep is None:
        sep = " "
    return sep.join(format_argument(arg) for arg in args)


class OutputSink:
    """In-memory accumulator for captured print lines."""

    def __init__(self) -> None:
        self._lines: list[str] = []

    def write_line(self, line: str) -> None:
        self._lines.append(line)

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(self._lines)

    def __len__(self) -> int:
        return len(self._lines)


def _log_handler(line: str) -> None:
    logger.info("sandbox print outside of a run: %s", line)


class PrintChannel:
    """Process-wide channel that sandboxed ``print`` calls go through.

    The channel has exactly one handler at a time. ``redirect`` installs a
    sink's ``write_line`` as the handler and restores the previous one on
    every exit path.
    """

    def __init__(self, handler: Handler | None = None):
        self.handler: Handler = handler or _log_handler

    def emit(self, *args: Any, sep: str | None = None, **_ignored: Any) -> None:
        """Format a print call and hand the line to the current handler.

        ``end``, ``file`` and ``flush`` are accepted for compatibility with
        the builtin and ignored: every call produces exactly one line.
        """
        self.handler(format_line(args, sep))

    @contextmanager
    def redirect(self, sink: OutputSink) -> Iterator[OutputSink]:
        """Route the channel into ``sink`` until the block exits."""
        original = self.handler
        self.handler = sink.write_line
        try:
            yield sink
        finally:
            self.handler = original
            if self.handler is not original:
                logger.error("Print channel handler could not be restored")
                raise ChannelRestorationError(
                    "print channel is still redirected after execution"
                )


# Shared channel used by the executor unless one is injected
print_channel = PrintChannel()
