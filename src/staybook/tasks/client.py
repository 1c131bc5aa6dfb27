"""Background tasks client with idempotent spawn.

Backends, selectable via TASKS_BACKEND env var:
- asyncio (default): schedules a detached task on the running event loop
- deferred: registers the task without running it; drain() runs it
  (for tests and scripts without a long-lived loop)

Spawned work is fire-and-forget: the caller never awaits it, nothing
cancels it, and its outcome only reaches the logs and the completion
channel.
"""

from __future__ import annotations

import asyncio
import os
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from staybook.observability.correlation import (
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from staybook.observability.logging import get_logger

logger = get_logger(__name__)

TASKS_BACKEND = os.environ.get("TASKS_BACKEND", "asyncio")

TaskFactory = Callable[[], Awaitable[Any]]

OUTCOME_HISTORY = 1000


@dataclass(frozen=True)
class TaskOutcome:
    """Completion record of a spawned task."""

    task_id: str
    result: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


OutcomeListener = Callable[[TaskOutcome], None]


class TasksClient:
    """Spawns detached tasks, idempotent by task_id.

    Tracks task_ids so the same task_id is never spawned twice while it is
    pending or among the last *history* finished tasks; call forget() to
    allow a new run under an old id.
    """

    def __init__(
        self, backend: str | None = None, history: int = OUTCOME_HISTORY
    ) -> None:
        self._backend = backend or TASKS_BACKEND
        if self._backend not in ("asyncio", "deferred"):
            raise ValueError(f"Unknown TASKS_BACKEND: {self._backend}")
        self._spawned_ids: set[str] = set()
        self._deferred: list[tuple[str, TaskFactory, str]] = []
        self._running: dict[str, asyncio.Task[Any]] = {}
        self._listeners: list[OutcomeListener] = []
        self._finished_ids: deque[str] = deque()
        self._history = history
        self.outcomes: deque[TaskOutcome] = deque(maxlen=history)

    def subscribe(self, listener: OutcomeListener) -> None:
        """Register a completion listener (called once per finished task)."""
        self._listeners.append(listener)

    def spawn(
        self,
        task_id: str,
        factory: TaskFactory,
        correlation_id: str | None = None,
    ) -> bool:
        """Start *factory()* in the background.

        Args:
            task_id: Unique identifier for idempotency.
            factory: Zero-arg callable returning the awaitable to run.
            correlation_id: Tracing id for the task's log lines (generated
                if omitted).

        Returns:
            True if spawned (new task_id), False if no-op (task_id seen).
        """
        if task_id in self._spawned_ids:
            return False
        self._spawned_ids.add(task_id)
        cid = correlation_id or generate_correlation_id("task")

        if self._backend == "asyncio":
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.warning(
                    "no running event loop, task deferred",
                    extra={"extra_fields": {"task_id": task_id}},
                )
            else:
                task = loop.create_task(self._run(task_id, factory, cid))
                self._running[task_id] = task
                return True

        self._deferred.append((task_id, factory, cid))
        return True

    async def drain(self) -> list[TaskOutcome]:
        """Run deferred tasks and wait for in-flight ones.

        Returns:
            Outcomes of the tasks finished by this call.
        """
        finished: list[TaskOutcome] = []
        while self._deferred:
            task_id, factory, cid = self._deferred.pop(0)
            finished.append(await self._run(task_id, factory, cid))
        running = list(self._running.values())
        if running:
            finished.extend(await asyncio.gather(*running))
        return finished

    def was_spawned(self, task_id: str) -> bool:
        return task_id in self._spawned_ids

    def forget(self, task_id: str) -> None:
        """Allow task_id to be spawned again."""
        self._spawned_ids.discard(task_id)

    @property
    def in_flight(self) -> int:
        return len(self._running) + len(self._deferred)

    def get_deferred_tasks(self) -> list[str]:
        """task_ids registered but not yet run (useful for testing)."""
        return [task_id for task_id, _, _ in self._deferred]

    def clear(self) -> None:
        """Clear ids, deferred tasks and outcomes (useful for testing)."""
        self._spawned_ids.clear()
        self._finished_ids.clear()
        self._deferred.clear()
        self.outcomes.clear()

    async def _run(self, task_id: str, factory: TaskFactory, cid: str) -> TaskOutcome:
        token = set_correlation_id(cid)
        try:
            result = await factory()
            outcome = TaskOutcome(task_id=task_id, result=result)
        except Exception as e:
            # A background task has no caller to raise to.
            logger.exception(
                "background task crashed",
                extra={"extra_fields": {"task_id": task_id}},
            )
            outcome = TaskOutcome(task_id=task_id, error=type(e).__name__)
        finally:
            reset_correlation_id(token)
            self._running.pop(task_id, None)

        self.outcomes.append(outcome)
        self._retire(task_id)
        for listener in self._listeners:
            listener(outcome)
        return outcome

    def _retire(self, task_id: str) -> None:
        self._finished_ids.append(task_id)
        while len(self._finished_ids) > self._history:
            old = self._finished_ids.popleft()
            if old not in self._finished_ids and old not in self._running:
                self._spawned_ids.discard(old)
