"""Delayed table steps (dealing, bot turns, resolution)."""
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from casino.config import config
from casino.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Delays:
    """Pacing delays in seconds. They change when things happen, never what happens."""
    deal: float = config.deal_delay
    bot_think: float = config.bot_think_delay
    community: float = config.community_delay
    resolve: float = config.resolve_delay
    overlay: float = config.overlay_delay

    @classmethod
    def instant(cls) -> "Delays":
        """No pacing at all (tests, batch simulation)."""
        return cls(deal=0, bot_think=0, community=0, resolve=0, overlay=0)


class TurnScheduler:
    """Runs table steps after a delay.

    Every step remembers the generation it was scheduled in. ``cancel_all``
    starts a new generation, so a step that wakes up after a reset or a
    table close is dropped instead of acting on the new state.
    """

    def __init__(
        self,
        name: str = "table",
        on_failure: Optional[Callable[[BaseException], None]] = None,
    ):
        """Initialize the scheduler.

        Args:
            name: Label used in log lines.
            on_failure: Called with the error when a step raises.
        """
        self.name = name
        self.on_failure = on_failure
        self._generation = 0
        self._tasks: set[asyncio.Task] = set()
        self._failure: Optional[BaseException] = None

    def schedule(
        self,
        delay: float,
        callback: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> asyncio.Task:
        """Run ``callback(*args)`` after ``delay`` seconds.

        Args:
            delay: Seconds to wait.
            callback: Coroutine function to run.
            *args: Arguments for the callback.

        Returns:
            The task running the step.
        """
        generation = self._generation
        task = asyncio.get_running_loop().create_task(
            self._run(generation, delay, callback, *args)
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    async def _run(
        self,
        generation: int,
        delay: float,
        callback: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> None:
        await asyncio.sleep(delay)
        if generation != self._generation:
            logger.debug(f"[{self.name}] Discarding stale step {callback.__name__}")
            return
        await callback(*args)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"[{self.name}] Scheduled step failed: {exc!r}")
            if self._failure is None:
                self._failure = exc
            if self.on_failure:
                self.on_failure(exc)

    def cancel_all(self) -> int:
        """Cancel every pending step and invalidate any that is mid-flight.

        Returns:
            Number of steps cancelled.
        """
        self._generation += 1
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            logger.debug(f"[{self.name}] Cancelled {len(tasks)} pending step(s)")
        return len(tasks)

    async def wait_idle(self) -> None:
        """Wait until no step is pending, including steps scheduled by other steps.

        Raises:
            Exception: The first error raised by a step since the last call.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await asyncio.sleep(0)
        if self._failure is not None:
            failure, self._failure = self._failure, None
            raise failure
