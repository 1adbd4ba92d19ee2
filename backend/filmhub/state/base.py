"""Observable state containers shared by every screen area.

A holder owns one frozen state value and replaces it atomically on every
change, so observers never see a half-applied update. Live subscriptions
run as tasks owned by the holder and are cancelled by ``close()``.
"""

import asyncio
import logging
from contextlib import aclosing
from dataclasses import dataclass, replace
from typing import Any, AsyncIterator, Awaitable, Callable, Generic, Optional, TypeVar

from filmhub.result import Result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScreenState:
    is_loading: bool = False
    error_message: Optional[str] = None
    success_message: Optional[str] = None


S = TypeVar("S", bound=ScreenState)
T = TypeVar("T")


class StateHolder(Generic[S]):
    """Single observable state value plus the tasks feeding it."""

    def __init__(self, initial: S):
        self._state = initial
        self._initial = initial
        self._watchers: list[Callable[[S], None]] = []
        self._jobs: dict[str, asyncio.Task] = {}

    @property
    def state(self) -> S:
        return self._state

    def watch(self, callback: Callable[[S], None]) -> Callable[[], None]:
        """Call ``callback`` with every new state. Returns an unwatch function."""
        self._watchers.append(callback)

        def unwatch() -> None:
            if callback in self._watchers:
                self._watchers.remove(callback)

        return unwatch

    def _set(self, **changes: Any) -> S:
        self._state = replace(self._state, **changes)
        for callback in list(self._watchers):
            try:
                callback(self._state)
            except Exception:
                logger.exception(f"{type(self).__name__} watcher failed")
        return self._state

    def reset_messages(self) -> None:
        self._set(error_message=None, success_message=None)

    async def _run(
        self,
        call: Awaitable[Result],
        on_success: Optional[Callable[[Any], dict]] = None,
        success_message: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> Result:
        """Loading flag on, await the repository, fold the result into state.

        ``is_loading`` is cleared on every path.
        """
        self._set(is_loading=True, error_message=None, success_message=None)
        try:
            result = await call
            changes = on_success(result.value) if result.ok and on_success else {}
        except BaseException:
            self._set(is_loading=False)
            raise
        if result.ok:
            self._set(is_loading=False, error_message=None, success_message=success_message, **changes)
        else:
            self._set(is_loading=False, error_message=error_message or result.message)
        return result

    def _fail(self, message: str) -> None:
        """Report a local validation failure without touching any backend."""
        self._set(is_loading=False, success_message=None, error_message=message)

    # ── Live subscriptions ───────────────────────────────────────

    def _collect(
        self,
        name: str,
        stream: AsyncIterator[T],
        handler: Callable[[T], Awaitable[None]],
    ) -> asyncio.Task:
        """Feed ``stream`` into ``handler`` until closed. Restarting ``name`` replaces it."""
        previous = self._jobs.pop(name, None)
        if previous is not None:
            previous.cancel()

        async def consume() -> None:
            async with aclosing(stream):
                async for item in stream:
                    await handler(item)

        task = asyncio.get_running_loop().create_task(consume(), name=f"{type(self).__name__}.{name}")
        self._jobs[name] = task
        task.add_done_callback(lambda t: self._job_done(name, t))
        return task

    def _job_done(self, name: str, task: asyncio.Task) -> None:
        if self._jobs.get(name) is task:
            del self._jobs[name]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(f"Subscription {task.get_name()} stopped: {exc}")
            self._set(error_message=str(exc) or "Live updates stopped")

    @property
    def active_subscriptions(self) -> list[str]:
        return sorted(self._jobs)

    async def stop(self, name: str) -> None:
        task = self._jobs.pop(name, None)
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def close(self) -> None:
        """Cancel every live subscription and wait for their cleanup."""
        tasks = list(self._jobs.values())
        self._jobs.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._watchers.clear()
