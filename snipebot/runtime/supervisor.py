from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from snipebot.infra import NullEventLogger


class LoopSupervisor:
    """Restarts an advisory async loop after it exits or fails, with bounded backoff."""

    def __init__(self, *, base_delay: float = 2.0, max_delay: float = 20.0, events=None):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.events = events or NullEventLogger()
        self.restarts: dict[str, int] = {}

    async def run_forever(self, name: str, fn: Callable[[], Awaitable[None]], log) -> None:
        delay = self.base_delay
        while True:
            try:
                await fn()
                log.warning("loop %s exited; reconnecting in %.1fs", name, delay)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.restarts[name] = self.restarts.get(name, 0) + 1
                log.warning("loop %s crashed: %s; reconnecting in %.1fs", name, exc, delay)
                self.events.emit("loop.crash", name=name, error=str(exc), restarts=self.restarts[name])
            await asyncio.sleep(delay)
            delay = min(self.max_delay, max(self.base_delay, delay * 1.5))
