from __future__ import annotations

import asyncio
import re

from snipebot.data import ObservationStore
from snipebot.domain import LogNotification

# Ordered, first match wins. e.g. "Program log: Round #10947: deploying 0.12834 SOL to 25 squares"
AMOUNT_PATTERNS = (
    re.compile(r"deploying\s+(\d+\.?\d*)\s*SOL", re.IGNORECASE),
    re.compile(r"deployed?\s+(\d+\.?\d*)\s*SOL", re.IGNORECASE),
    re.compile(r"amount[:\s]+(\d+\.?\d*)\s*SOL", re.IGNORECASE),
    re.compile(r"bet[:\s]+(\d+\.?\d*)\s*SOL", re.IGNORECASE),
)

LOG_MIN_AMOUNT = 0.005


def extract_amount(line: str) -> float | None:
    for pattern in AMOUNT_PATTERNS:
        match = pattern.search(line)
        if match is None:
            continue
        try:
            amount = float(match.group(1))
        except ValueError:
            continue
        if amount > 0:
            return amount
    return None


class EventChannelWatcher:
    """Push-path producer: scrapes stake amounts from program log notifications.

    The push signal cannot attribute a stake to a single slot, so every
    amount is recorded against all slots. Failed transactions and lines that
    match no pattern are ignored. Nothing here raises into the stream loop.
    """

    def __init__(self, store: ObservationStore, log, *, resolve_signer=None):
        self.store = store
        self.log = log
        self._resolve_signer = resolve_signer
        self._lookups: set[asyncio.Task] = set()

    def handle(self, note: LogNotification) -> int:
        """Record every amount in ``note``; returns the number of samples kept."""
        if note.failed:
            return 0
        recorded = 0
        try:
            for line in note.lines:
                amount = extract_amount(line)
                if amount is None:
                    continue
                if self.store.record_sample(amount):
                    recorded += 1
                    self._describe(note.signature, amount)
        except Exception as exc:
            self.log.debug("dropping notification %s: %s", note.signature, exc)
        return recorded

    def _describe(self, signature: str, amount: float) -> None:
        if amount < LOG_MIN_AMOUNT:
            return
        if self._resolve_signer is None or not signature:
            self.log.info("tracked bet %.6f SOL", amount)
            return
        try:
            task = asyncio.get_running_loop().create_task(self._lookup(signature, amount))
        except RuntimeError:
            self.log.info("tracked bet %.6f SOL", amount)
            return
        self._lookups.add(task)
        task.add_done_callback(self._lookups.discard)

    async def _lookup(self, signature: str, amount: float) -> None:
        try:
            bettor = await self._resolve_signer(signature) or "unknown"
        except Exception:
            bettor = "unknown"
        self.log.info("tracked bet %.6f SOL (%s)", amount, bettor)

    async def consume(self, stream) -> None:
        async for note in stream.notifications():
            self.handle(note)

    async def drain(self) -> None:
        for task in list(self._lookups):
            task.cancel()
        if self._lookups:
            await asyncio.gather(*self._lookups, return_exceptions=True)
