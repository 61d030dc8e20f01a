"""Background observers driving a session manager.

Each watcher runs one asyncio task that sleeps for its interval and then
ticks. Stopping a watcher from inside its own tick lets the tick finish and
ends the loop afterwards.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from gatehouse.core.logging import get_logger

if TYPE_CHECKING:
    from gatehouse.client.session import SessionManager

logger = get_logger(__name__)


class Watcher:
    """Periodic task with start/stop control."""

    name = "watcher"

    def __init__(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError("Watcher interval must be positive")
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the loop. Must be called from a running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    def stop(self) -> asyncio.Task | None:
        """Stop the loop and return the cancelled task, if any."""
        task, self._task = self._task, None
        if task is None or task.done() or task is asyncio.current_task():
            return None
        task.cancel()
        return task

    async def _run(self) -> None:
        me = asyncio.current_task()
        while self._task is me:
            await asyncio.sleep(self.interval)
            if self._task is not me:
                break
            try:
                await self.tick()
            except Exception as e:
                logger.warning("Watcher tick failed", watcher=self.name, error=str(e))

    async def tick(self) -> None:
        raise NotImplementedError


class IdleWatcher(Watcher):
    """Logs the session out locally once it has been idle too long."""

    name = "idle-watcher"

    def __init__(self, session: "SessionManager", interval: float) -> None:
        super().__init__(interval)
        self.session = session

    async def tick(self) -> None:
        self.session.check_idle()


class PeriodicRefresher(Watcher):
    """Keeps an authenticated session warm."""

    name = "periodic-refresher"

    def __init__(self, session: "SessionManager", interval: float) -> None:
        super().__init__(interval)
        self.session = session

    async def tick(self) -> None:
        if self.session.is_authenticated:
            await self.session.refresh()


class ConnectivityWatcher(Watcher):
    """Polls a reachability probe and reports it to the session.

    Args:
        session: Session to notify.
        probe: Coroutine function returning True when the server is reachable.
        interval: Seconds between probes.
    """

    name = "connectivity-watcher"

    def __init__(
        self,
        session: "SessionManager",
        probe: Callable[[], Awaitable[bool]],
        interval: float = 30.0,
    ) -> None:
        super().__init__(interval)
        self.session = session
        self.probe = probe

    async def tick(self) -> None:
        try:
            online = await self.probe()
        except Exception:
            online = False
        await self.session.set_online(online)
