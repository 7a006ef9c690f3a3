"""Execution sessions: the editable source buffer and its run state machine.

One session backs one code editor on a pattern page. A run moves the
session IDLE -> RUNNING -> SHOWING_RESULT; the next run starts the cycle
again from SHOWING_RESULT.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from patternlab.sandbox.errors import ChannelRestorationError, SessionBusyError
from patternlab.sandbox.executor import CodeExecutor, ExecutionResult, Outcome

logger = logging.getLogger(__name__)

DEFAULT_RUN_DELAY = 0.1
OUTPUT_PLACEHOLDER = "# Output will appear here after you run your code"
VIEWS = ("code", "output")


class SessionPhase(str, Enum):
    """Phase of an execution session."""

    IDLE = "idle"
    RUNNING = "running"
    SHOWING_RESULT = "showing_result"


@dataclass(frozen=True)
class Notice:
    """Transient user-visible notification."""

    title: str
    description: str
    variant: str = "default"

    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "description": self.description,
            "variant": self.variant,
        }


class ExecutionSession:
    """Editable source plus the run/result state for one editor.

    Runs are not re-entrant: ``run()`` while RUNNING is ignored. The delay
    before execution only lets a "running" state be observed; execution
    itself is synchronous and cannot be cancelled once started.
    """

    def __init__(
        self,
        seed_source: str,
        language: str = "python",
        executor: CodeExecutor | None = None,
        delay: float = DEFAULT_RUN_DELAY,
        on_notify: Callable[[Notice], None] | None = None,
    ):
        self._source = seed_source
        self.language = language
        self.executor = executor or CodeExecutor()
        self.delay = delay
        self.on_notify = on_notify

        self.phase = SessionPhase.IDLE
        self.last_result: ExecutionResult | None = None
        self.active_view = "code"
        self._notices: list[Notice] = []

    @property
    def source(self) -> str:
        return self._source

    @property
    def is_running(self) -> bool:
        return self.phase is SessionPhase.RUNNING

    @property
    def output(self) -> str:
        if self.last_result is None:
            return OUTPUT_PLACEHOLDER
        return self.last_result.output

    def update_source(self, text: str) -> None:
        """Replace the source buffer. Does not affect a run in flight."""
        self._source = text

    def select_view(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unknown view '{view}', expected one of {VIEWS}")
        self.active_view = view

    def pop_notices(self) -> list[Notice]:
        """Return and clear pending notices."""
        notices, self._notices = self._notices, []
        return notices

    def _notify(self, notice: Notice) -> None:
        self._notices.append(notice)
        if self.on_notify is not None:
            self.on_notify(notice)

    async def run(self) -> ExecutionResult | None:
        """Run the current source.

        Returns:
            The new result, or None when a run was already in flight
        """
        if self.is_running:
            logger.debug("Ignoring run request: session already running")
            return None

        self.phase = SessionPhase.RUNNING
        self.active_view = "output"
        snapshot = self._source
        result: ExecutionResult | None = None

        try:
            await asyncio.sleep(self.delay)
            result = self.executor.execute(snapshot)
        except asyncio.CancelledError:
            logger.debug("Run cancelled before execution")
            raise
        except ChannelRestorationError:
            logger.error("Print channel is broken, refusing to report a result")
            raise
        except Exception as e:
            # Executor-level fault (not a script error); keep the page alive
            logger.exception(f"Sandbox execution failed: {e}")
            result = ExecutionResult(
                outcome=Outcome.FAILURE,
                error_message=str(e) or type(e).__name__,
                error_type=type(e).__name__,
            )
            self._notify(
                Notice("Error", "Failed to execute code", variant="destructive")
            )
            return result
        finally:
            if result is not None:
                self.last_result = result
                self.phase = SessionPhase.SHOWING_RESULT
            else:
                self.phase = (
                    SessionPhase.SHOWING_RESULT
                    if self.last_result is not None
                    else SessionPhase.IDLE
                )

        if not result.success:
            self._notify(
                Notice(
                    "Execution Error",
                    result.error_message or "",
                    variant="destructive",
                )
            )
        return result

    def snapshot(self) -> dict[str, Any]:
        """JSON-friendly view of the session state."""
        return {
            "phase": self.phase.value,
            "language": self.language,
            "source": self._source,
            "activeView": self.active_view,
            "output": self.output,
            "lastResult": self.last_result.to_dict() if self.last_result else None,
        }


class SessionRegistry:
    """In-memory sessions keyed by (user id, pattern slug).

    Sessions are ephemeral: the least recently used one is dropped once
    ``max_sessions`` is exceeded, and nothing survives a restart.
    """

    def __init__(
        self,
        executor: CodeExecutor | None = None,
        delay: float = DEFAULT_RUN_DELAY,
        max_sessions: int = 1000,
    ):
        self.executor = executor or CodeExecutor()
        self.delay = delay
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[tuple[str, str], ExecutionSession] = OrderedDict()

    def get_or_create(
        self,
        user_id: str,
        slug: str,
        seed_source: str,
        language: str = "python",
    ) -> ExecutionSession:
        key = (user_id, slug)
        session = self._sessions.get(key)
        if session is not None:
            self._sessions.move_to_end(key)
            return session

        session = ExecutionSession(
            seed_source,
            language=language,
            executor=self.executor,
            delay=self.delay,
        )
        self._sessions[key] = session
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.debug(f"Evicted session {evicted}")
        return session

    def get(self, user_id: str, slug: str) -> ExecutionSession | None:
        return self._sessions.get((user_id, slug))

    async def run(self, user_id: str, slug: str) -> ExecutionSession:
        """Run an existing session, refusing overlapping runs."""
        session = self._sessions.get((user_id, slug))
        if session is None:
            raise KeyError(slug)
        if session.is_running:
            raise SessionBusyError(f"A run is already in progress for '{slug}'")
        await session.run()
        return session

    def __len__(self) -> int:
        return len(self._sessions)
