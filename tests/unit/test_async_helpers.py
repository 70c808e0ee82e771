"""Background task, retry and signal helpers."""

import asyncio

import pytest

from featuretree.utils.async_helpers import create_safe_task, retry_with_backoff
from featuretree.utils.observer import Signal


async def test_safe_task_logs_failures(caplog):
    async def boom():
        raise RuntimeError("exploded")

    task = create_safe_task(boom(), name="boom")
    await asyncio.gather(task, return_exceptions=True)
    await asyncio.sleep(0)

    assert "exploded" in caplog.text


async def test_safe_task_tracks_pending():
    pending = set()
    gate = asyncio.Event()

    async def wait():
        await gate.wait()

    task = create_safe_task(wait(), name="wait", pending=pending)
    assert pending == {task}

    gate.set()
    await task
    await asyncio.sleep(0)
    assert pending == set()


async def test_retry_returns_first_success():
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ConnectionError("not yet")
        return "ok"

    assert await retry_with_backoff(flaky, attempts=5, backoff=0) == "ok"
    assert len(attempts) == 3


async def test_retry_reraises_last_error():
    async def down():
        raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        await retry_with_backoff(down, attempts=2, backoff=0)


def test_signal_connect_and_unsubscribe():
    received = []
    signal = Signal("test")
    unsubscribe = signal.connect(received.append)
    signal.connect(received.append)
    assert len(signal) == 1

    signal.emit(1)
    unsubscribe()
    signal.emit(2)

    assert received == [1]
    assert len(signal) == 0
