"""Unit tests for DeferredCompletionQueue."""

import asyncio

import pytest

from editor_companion.core.deferred_queue import DeferredCompletionQueue, DeferredTask
from editor_companion.core.errors import DeferredTaskError


class TestEnqueue:

    @pytest.mark.asyncio
    async def test_enqueue_never_runs_synchronously(self, queue):
        ran = []

        queue.defer("task", ran.append, 1)

        assert ran == []
        assert queue.pending == 1

        await queue.drain()

        assert ran == [1]
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_tasks_run_in_fifo_order(self, queue):
        ran = []

        async def record_async(value):
            await asyncio.sleep(0)
            ran.append(value)

        queue.defer("first", ran.append, "a")
        queue.defer("second", record_async, "b")
        queue.defer("third", ran.append, "c")
        await queue.drain()

        assert ran == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_arguments_are_captured_at_enqueue(self, queue):
        ran = []
        payload = {"value": 1}

        queue.defer("capture", lambda data: ran.append(data["value"]), dict(payload))
        payload["value"] = 2
        await queue.drain()

        assert ran == [1]

    @pytest.mark.asyncio
    async def test_tasks_enqueued_during_flush_still_run(self, queue):
        ran = []

        def chain():
            ran.append("outer")
            queue.defer("inner", ran.append, "inner")

        queue.defer("outer", chain)
        await queue.drain()

        assert ran == ["outer", "inner"]


class TestFlushFailures:

    @pytest.mark.asyncio
    async def test_failure_does_not_abort_siblings(self):
        queue = DeferredCompletionQueue()
        ran = []

        def boom():
            raise RuntimeError("import failed")

        queue.enqueue(DeferredTask("ok-1", ran.append, ("a",)))
        queue.enqueue(DeferredTask("bad", boom))
        queue.enqueue(DeferredTask("ok-2", ran.append, ("b",)))

        with pytest.raises(DeferredTaskError) as excinfo:
            await queue.flush()

        assert ran == ["a", "b"]
        assert [name for name, _ in excinfo.value.failures] == ["bad"]
        assert isinstance(excinfo.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_error_policy_sees_each_failure(self):
        handled = []
        queue = DeferredCompletionQueue(error_policy=lambda task, exc: handled.append((task.name, str(exc))))

        def fail(message):
            raise ValueError(message)

        queue.enqueue(DeferredTask("one", fail, ("first",)))
        queue.enqueue(DeferredTask("two", fail, ("second",)))

        with pytest.raises(DeferredTaskError):
            await queue.flush()

        assert handled == [("one", "first"), ("two", "second")]

    @pytest.mark.asyncio
    async def test_scheduled_flush_logs_failures(self, queue, caplog):
        def boom():
            raise RuntimeError("nope")

        queue.defer("bad", boom)
        await queue.drain()

        assert "bad" in caplog.text
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_empty_flush_is_a_no_op(self, queue):
        await queue.flush()
        assert queue.pending == 0
