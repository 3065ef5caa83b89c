import asyncio
import threading

import pytest

from deskagent.core.thread_pool import (
    get_compute_pool,
    get_io_pool,
    run_in_compute,
    run_in_io,
    shutdown_pools,
)


@pytest.fixture(autouse=True)
def _reset_pools():
    shutdown_pools()
    yield
    shutdown_pools()


@pytest.mark.asyncio
async def test_run_in_io_uses_io_threads():
    name = await run_in_io(lambda: threading.current_thread().name)
    assert name.startswith("desk-io")


@pytest.mark.asyncio
async def test_run_in_compute_passes_args():
    name, total = await run_in_compute(
        lambda a, b: (threading.current_thread().name, a + b), 2, 3
    )
    assert name.startswith("cv-compute")
    assert total == 5


@pytest.mark.asyncio
async def test_exceptions_propagate_to_caller():
    def _boom():
        raise ValueError("boom")

    with pytest.raises(ValueError):
        await run_in_io(_boom)


@pytest.mark.asyncio
async def test_pools_run_concurrently():
    barrier = threading.Barrier(2, timeout=2)

    def _meet():
        barrier.wait()
        return True

    results = await asyncio.gather(run_in_compute(_meet), run_in_compute(_meet))
    assert results == [True, True]


def test_shutdown_pools_recreates_pools():
    io1, cpu1 = get_io_pool(), get_compute_pool()
    shutdown_pools()
    io2, cpu2 = get_io_pool(), get_compute_pool()

    assert io1 is not io2
    assert cpu1 is not cpu2


def test_configured_sizes_override_defaults(monkeypatch):
    from deskagent.core.config import settings

    monkeypatch.setattr(settings, "io_thread_pool_size", 3)
    monkeypatch.setattr(settings, "compute_thread_pool_size", 0)

    assert get_io_pool()._max_workers == 3
    assert 2 <= get_compute_pool()._max_workers <= 8


def test_io_pool_defaults_to_two_workers(monkeypatch):
    from deskagent.core.config import settings

    monkeypatch.setattr(settings, "io_thread_pool_size", 0)
    assert get_io_pool()._max_workers == 2
