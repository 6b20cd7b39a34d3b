# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import asyncio
import logging
from typing import Awaitable, Callable, Hashable, Mapping, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


def remaining_time(deadline: Optional[float]) -> Optional[float]:
    """Seconds left before ``deadline`` (event loop clock), None without one."""
    if deadline is None:
        return None
    return max(0.0, deadline - asyncio.get_running_loop().time())


async def gather_bounded(
    jobs: Mapping[K, Callable[[], Awaitable[T]]],
    limit: int,
    timeout: Optional[float] = None,
) -> dict[K, Union[T, BaseException]]:
    """Run jobs with at most ``limit`` of them in flight.

    Every job gets its own slot in the result: its return value, or the
    exception it raised. Jobs still pending or running when ``timeout``
    expires are cancelled and reported as ``asyncio.TimeoutError``. The
    function returns only once every job has settled.

    Args:
        jobs: Mapping of key to a zero-argument coroutine function
        limit: Maximum number of jobs running at the same time (>= 1)
        timeout: Overall time budget in seconds (None = unbounded)
    """
    if limit < 1:
        raise ValueError(f"Concurrency limit must be at least 1, got {limit}")
    if not jobs:
        return {}

    semaphore = asyncio.Semaphore(limit)

    async def _run(job: Callable[[], Awaitable[T]]) -> T:
        async with semaphore:
            return await job()

    tasks = {key: asyncio.ensure_future(_run(job)) for key, job in jobs.items()}
    try:
        _, pending = await asyncio.wait(tasks.values(), timeout=timeout)
    except asyncio.CancelledError:
        for task in tasks.values():
            task.cancel()
        await asyncio.gather(*tasks.values(), return_exceptions=True)
        raise

    if pending:
        logger.warning(
            f"{len(pending)} of {len(tasks)} job(s) still running after {timeout}s, cancelling"
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    results: dict[K, Union[T, BaseException]] = {}
    for key, task in tasks.items():
        if task in pending:
            results[key] = asyncio.TimeoutError(f"did not finish within {timeout}s")
        elif task.cancelled():
            results[key] = asyncio.CancelledError()
        elif task.exception() is not None:
            results[key] = task.exception()
        else:
            results[key] = task.result()
    return results
