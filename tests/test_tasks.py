"""Tests for tasks subsystem."""

import asyncio

import pytest

from staybook.observability.correlation import get_correlation_id
from staybook.tasks.client import TasksClient


class TestDeferredBackend:
    """Tests for TasksClient with the deferred backend."""

    def test_spawn_registers_without_running(self):
        client = TasksClient(backend="deferred")
        executed = []

        async def work():
            executed.append(1)

        assert client.spawn("task-1", work) is True
        assert executed == []
        assert client.get_deferred_tasks() == ["task-1"]
        assert client.in_flight == 1

    def test_drain_runs_deferred(self):
        client = TasksClient(backend="deferred")

        async def work():
            return "done"

        client.spawn("task-1", work)
        outcomes = asyncio.run(client.drain())

        assert [o.task_id for o in outcomes] == ["task-1"]
        assert outcomes[0].result == "done"
        assert outcomes[0].ok
        assert client.in_flight == 0

    def test_spawn_idempotent_same_task_id(self):
        """Spawn with same task_id should be no-op (work runs once)."""
        client = TasksClient(backend="deferred")
        call_count = 0

        async def work():
            nonlocal call_count
            call_count += 1

        assert client.spawn("same-id", work) is True
        assert client.spawn("same-id", work) is False
        asyncio.run(client.drain())
        assert client.spawn("same-id", work) is False
        assert call_count == 1

    def test_forget_allows_respawn(self):
        client = TasksClient(backend="deferred")

        async def work():
            return None

        client.spawn("task-1", work)
        client.forget("task-1")
        assert client.was_spawned("task-1") is False
        assert client.spawn("task-1", work) is True

    def test_crash_recorded_not_raised(self):
        client = TasksClient(backend="deferred")

        async def boom():
            raise RuntimeError("kaput")

        client.spawn("task-1", boom)
        (outcome,) = asyncio.run(client.drain())

        assert outcome.ok is False
        assert outcome.error == "RuntimeError"
        assert list(client.outcomes) == [outcome]

    def test_listeners_notified(self):
        client = TasksClient(backend="deferred")
        seen = []
        client.subscribe(seen.append)

        async def work():
            return 42

        client.spawn("task-1", work)
        asyncio.run(client.drain())
        assert [o.result for o in seen] == [42]

    def test_correlation_id_set_inside_task(self):
        client = TasksClient(backend="deferred")
        seen = []

        async def work():
            seen.append(get_correlation_id())

        client.spawn("task-1", work, correlation_id="req-123")
        asyncio.run(client.drain())
        assert seen == ["req-123"]
        assert get_correlation_id() == ""

    def test_clear(self):
        client = TasksClient(backend="deferred")

        async def work():
            return None

        client.spawn("task-1", work)
        client.clear()
        assert client.get_deferred_tasks() == []
        assert client.was_spawned("task-1") is False

    def test_history_is_bounded(self):
        """Long-running processes keep only the last N outcomes and ids."""
        client = TasksClient(backend="deferred", history=3)

        async def work():
            return None

        for i in range(10):
            client.spawn(f"task-{i}", work)
        asyncio.run(client.drain())

        assert [o.task_id for o in client.outcomes] == ["task-7", "task-8", "task-9"]
        assert client.was_spawned("task-0") is False
        assert client.was_spawned("task-9") is True
        assert client.spawn("task-9", work) is False

    def test_pending_ids_never_expire(self):
        client = TasksClient(backend="deferred", history=1)

        async def work():
            return None

        client.spawn("pending", work)
        client.spawn("a", work)
        client.spawn("b", work)
        assert client.was_spawned("pending") is True


class TestAsyncioBackend:
    def test_spawn_on_running_loop_is_detached(self):
        client = TasksClient(backend="asyncio")
        order = []

        async def work():
            order.append("task")

        async def caller():
            client.spawn("task-1", work)
            order.append("caller")
            await client.drain()

        asyncio.run(caller())
        assert order == ["caller", "task"]
        assert client.outcomes[0].ok

    def test_spawn_without_loop_defers(self):
        client = TasksClient(backend="asyncio")

        async def work():
            return "late"

        assert client.spawn("task-1", work) is True
        assert client.get_deferred_tasks() == ["task-1"]
        (outcome,) = asyncio.run(client.drain())
        assert outcome.result == "late"


class TestBackendSelection:
    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown TASKS_BACKEND"):
            TasksClient(backend="celery")
