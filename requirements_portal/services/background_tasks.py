"""
Background tasks — detached work the UI never waits for (best-effort
remote deletes). Each task retries with a growing delay and logs its
final failure instead of raising.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


async def retry_async(
    operation: Callable[[], Awaitable[Any]],
    attempts: int,
    backoff_seconds: float,
    label: str,
) -> Any:
    """Run ``operation`` up to ``attempts`` times, sleeping backoff * n between tries."""
    attempts = max(attempts, 1)
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:
            logger.warning(f"{label}: attempt {attempt}/{attempts} failed: {exc}")
            if attempt >= attempts:
                raise
        await asyncio.sleep(backoff_seconds * attempt)
        attempt += 1


class BackgroundTasks:
    """Keeps references to fire-and-forget tasks so they are not garbage-collected."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()
        self.failures: list[str] = []
        self.completed: list[str] = []

    def spawn(
        self,
        label: str,
        operation: Callable[[], Awaitable[Any]],
        attempts: int = 1,
        backoff_seconds: float = 0.0,
    ) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            self._run(label, operation, attempts, backoff_seconds), name=label
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every pending task (tests, orderly shutdown)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def _run(
        self,
        label: str,
        operation: Callable[[], Awaitable[Any]],
        attempts: int,
        backoff_seconds: float,
    ) -> None:
        try:
            result = await retry_async(operation, attempts, backoff_seconds, label)
        except asyncio.CancelledError:
            logger.info(f"{label}: cancelled")
            raise
        except Exception as exc:
            self.failures.append(label)
            logger.error(f"{label}: giving up after {attempts} attempts: {exc}")
            return
        self.completed.append(label)
        logger.info(f"{label}: done ({result})")
