from __future__ import annotations

import asyncio

from snipebot.data import ObservationStore
from snipebot.runtime.supervisor import LoopSupervisor
from snipebot.tracking.reconciler import PollReconciler
from snipebot.tracking.watcher import EventChannelWatcher


class RoundTracker:
    """Owns the per-round observation state and both producers that feed it.

    Only the scheduler calls :meth:`begin_round`; the reset there happens
    before control returns to the event loop, so no producer can record a
    sample for the new round ahead of it.
    """

    def __init__(self, reader, stream, log, *, reconcile_interval_sec: float = 2.0, supervisor=None):
        self.store = ObservationStore()
        self.stream = stream
        self.log = log
        self.watcher = EventChannelWatcher(self.store, log, resolve_signer=reader.fetch_transaction_signer)
        self.reconciler = PollReconciler(self.store, reader, log, interval_sec=reconcile_interval_sec)
        self.supervisor = supervisor or LoopSupervisor()
        self._tasks: list[asyncio.Task] = []
        self._stopped = False

    @property
    def round_id(self) -> int:
        return self.store.round_id

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def begin_round(self, round_id: int, *, joined_mid_round: bool = False) -> None:
        self.store.reset(round_id)
        self.reconciler.reset(round_id, primed=not joined_mid_round)
        self.log.info("tracking bets for round %d", round_id)
        if self._stopped or self._tasks:
            return
        self._tasks = [
            asyncio.create_task(
                self.supervisor.run_forever("event-watcher", lambda: self.watcher.consume(self.stream), self.log),
                name="tracker:event-watcher",
            ),
            asyncio.create_task(
                self.supervisor.run_forever("poll-reconciler", self.reconciler.run, self.log),
                name="tracker:poll-reconciler",
            ),
        ]
        self.log.info("push tracking and %.0fs polling backup active", self.reconciler.interval_sec)

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        try:
            await self.stream.close()
        except Exception as exc:
            self.log.warning("unsubscribe failed: %s", exc)
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.watcher.drain()
        self._tasks = []
        self.log.info("stopped bet tracking")
