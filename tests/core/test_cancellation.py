import asyncio
import threading

import pytest

from deskagent.core.cancellation import CancellationToken
from deskagent.core.errors import TaskCanceled


def test_checkpoint_raises_after_cancel():
    token = CancellationToken()
    token.checkpoint()

    assert token.cancel() is True
    assert token.cancel() is False
    assert token.canceled
    with pytest.raises(TaskCanceled):
        token.checkpoint()


@pytest.mark.asyncio
async def test_run_returns_result():
    token = CancellationToken()

    async def _work():
        await asyncio.sleep(0)
        return 42

    assert await token.run(_work()) == 42


@pytest.mark.asyncio
async def test_run_refuses_when_already_canceled():
    token = CancellationToken()
    token.cancel()
    started = []

    async def _work():
        started.append(True)

    with pytest.raises(TaskCanceled):
        await token.run(_work())
    assert started == []


@pytest.mark.asyncio
async def test_cancel_interrupts_pending_work():
    token = CancellationToken()
    interrupted = asyncio.Event()

    async def _slow():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            interrupted.set()
            raise

    async def _cancel_soon():
        await asyncio.sleep(0.05)
        token.cancel()

    canceller = asyncio.create_task(_cancel_soon())
    with pytest.raises(TaskCanceled):
        await asyncio.wait_for(token.run(_slow()), timeout=2)
    await canceller
    assert interrupted.is_set()


@pytest.mark.asyncio
async def test_cancel_from_other_thread_wakes_sleep():
    token = CancellationToken()

    async def _cancel_from_thread():
        await asyncio.sleep(0.05)
        threading.Thread(target=token.cancel).start()

    asyncio.create_task(_cancel_from_thread())
    with pytest.raises(TaskCanceled):
        await asyncio.wait_for(token.sleep(10), timeout=2)


@pytest.mark.asyncio
async def test_work_errors_propagate():
    token = CancellationToken()

    async def _fail():
        raise RuntimeError("bad")

    with pytest.raises(RuntimeError):
        await token.run(_fail())
