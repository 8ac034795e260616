"""Timed event scheduler.

Delayed lifecycle effects run as independent asyncio tasks keyed to a
package, not to a connection. A timer captures the package ``generation``
when it is scheduled; when it fires it re-fetches the package and does
nothing if the package vanished or was overridden in the meantime.
Otherwise the action runs exactly once.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from pywms.models.package import Package

_logger = logging.getLogger(__name__)

TimerAction = Callable[[Package], None]


@dataclass(slots=True)
class _Timer:
    package_id: str
    generation: int
    label: str
    delay: float


class TimedScheduler:
    """Runs per-package delayed actions on the running event loop."""

    def __init__(self, lookup: Callable[[str], Package | None]) -> None:
        self._lookup = lookup
        self._tasks: set[asyncio.Task[None]] = set()
        self.fired = 0
        self.skipped = 0

    @property
    def pending(self) -> int:
        """Number of timers that have not fired yet."""
        return len(self._tasks)

    def schedule(
        self,
        package: Package,
        delay: float,
        action: TimerAction,
        *,
        label: str,
    ) -> asyncio.Task[None]:
        """Run *action* with the package after *delay* seconds.

        Must be called from within a running event loop.
        """
        timer = _Timer(
            package_id=package.package_id,
            generation=package.generation,
            label=label,
            delay=delay,
        )
        task = asyncio.get_running_loop().create_task(
            self._run(timer, action),
            name=f"pywms-{label}-{package.package_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        _logger.debug("Scheduled %s for %s in %.3fs", label, package.package_id, delay)
        return task

    async def _run(self, timer: _Timer, action: TimerAction) -> None:
        await asyncio.sleep(timer.delay)

        package = self._lookup(timer.package_id)
        if package is None:
            self.skipped += 1
            _logger.debug("Timer %s: package %s no longer exists", timer.label, timer.package_id)
            return
        if package.generation != timer.generation:
            self.skipped += 1
            _logger.debug(
                "Timer %s for %s is stale (generation %d, now %d)",
                timer.label,
                timer.package_id,
                timer.generation,
                package.generation,
            )
            return

        self.fired += 1
        try:
            action(package)
        except Exception:
            _logger.exception("Timer %s for %s failed", timer.label, timer.package_id)

    async def join(self) -> None:
        """Wait until no timers are pending, including ones scheduled meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel every pending timer (shutdown only)."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
