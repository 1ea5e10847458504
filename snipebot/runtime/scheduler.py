from __future__ import annotations

import asyncio
from dataclasses import dataclass

from snipebot.domain import Phase, RoundInfo, SlotSnapshot
from snipebot.execution import CommitStatus
from snipebot.infra import NullEventLogger
from snipebot.strategy import in_snipe_window, pass_funds_gate

STATUS_EVERY_SEC = 30


@dataclass
class RoundContext:
    """Mutable loop state, owned by the scheduler and passed through each tick."""

    round_id: int | None = None
    phase: Phase = Phase.AWAITING_ROUND
    handled: bool = False
    skip_betting: bool = False
    balance: float | None = None
    seconds_remaining: float = 0.0
    bid_attempts: int = 0
    deployed_rounds: int = 0
    consecutive_errors: int = 0
    status_bucket: int | None = None


@dataclass(frozen=True)
class SchedulerConfig:
    snipe_window_seconds: float = 10.0
    slot_duration_sec: float = 0.4
    unstarted_round_slots: int = 150
    poll_interval_sec: float = 2.0
    min_wallet_balance: float = 0.1
    error_backoff_sec: float = 10.0
    error_backoff_max_sec: float = 60.0


class RoundScheduler:
    """Top-level control loop: round transitions, settlement, one bid per round.

    Phases per round: AWAITING_ROUND -> TRACKING -> SNIPE_WINDOW -> SETTLING.
    SETTLING is terminal until the ledger reports a different round id. The
    round is marked handled before the bid is submitted, so a failed or slow
    submission can never lead to a second attempt for the same round.
    """

    def __init__(self, reader, tracker, estimator, sequencer, settlement, log, cfg: SchedulerConfig, *, events=None):
        self.reader = reader
        self.tracker = tracker
        self.estimator = estimator
        self.sequencer = sequencer
        self.settlement = settlement
        self.log = log
        self.cfg = cfg
        self.events = events or NullEventLogger()

    def seconds_remaining(self, info: RoundInfo, current_slot: int) -> float:
        if not info.started:
            slots = self.cfg.unstarted_round_slots
        else:
            slots = info.end_slot - current_slot
        return max(0.0, slots * self.cfg.slot_duration_sec)

    async def _refresh_remaining(self, ctx: RoundContext, info: RoundInfo) -> float:
        remaining = self.seconds_remaining(info, await self.reader.fetch_current_position())
        ctx.seconds_remaining = remaining
        return remaining

    def _mark_closed(self, ctx: RoundContext, round_id: int) -> None:
        self.log.warning("round %d closed before a bid could be placed; waiting for next round", round_id)
        ctx.handled = True
        ctx.phase = Phase.SETTLING
        self.events.emit("round.skip", round_id=round_id, reason="round_closed")

    async def tick(self, ctx: RoundContext) -> None:
        info, current_slot = await asyncio.gather(
            self.reader.fetch_round_info(),
            self.reader.fetch_current_position(),
        )
        remaining = self.seconds_remaining(info, current_slot)
        ctx.seconds_remaining = remaining

        if info.round_id != ctx.round_id:
            await self._begin_round(ctx, info, remaining)
            if ctx.handled:
                return
            # settlement and the funds check above can take several seconds
            remaining = await self._refresh_remaining(ctx, info)
            if info.started and remaining <= 0:
                self._mark_closed(ctx, info.round_id)
                return

        if ctx.handled:
            return
        if in_snipe_window(remaining, self.cfg.snipe_window_seconds):
            await self._snipe(ctx, info, remaining)
        elif remaining > self.cfg.snipe_window_seconds:
            bucket = int(remaining // STATUS_EVERY_SEC)
            if bucket != ctx.status_bucket:
                ctx.status_bucket = bucket
                self.log.info("waiting... %ds until snipe window", int(remaining - self.cfg.snipe_window_seconds))

    async def _begin_round(self, ctx: RoundContext, info: RoundInfo, remaining: float) -> None:
        joined_mid_round = ctx.round_id is None and info.started
        ctx.round_id = info.round_id
        ctx.phase = Phase.TRACKING
        ctx.handled = False
        ctx.skip_betting = False
        ctx.balance = None
        ctx.bid_attempts = 0
        ctx.status_bucket = None

        self.log.info("round %d", info.round_id)
        if info.started:
            self.log.info("round ends in ~%.0f seconds", remaining)
        else:
            self.log.info("round starting soon (waiting for first deploy)")
        self.events.emit("round.start", round_id=info.round_id, seconds_remaining=remaining, started=info.started)

        self.tracker.begin_round(info.round_id, joined_mid_round=joined_mid_round)

        if info.started and remaining <= 0:
            self.log.warning("round %d already closed when first seen; waiting for next round", info.round_id)
            ctx.handled = True
            ctx.phase = Phase.SETTLING

        try:
            await self.settlement.settle_previous_round()
        except Exception as exc:
            self.log.error("settlement of previous round failed: %s", exc)

        try:
            funds = await self.settlement.ensure_funds()
        except Exception as exc:
            self.log.warning("balance check failed: %s", exc)
            return
        ctx.balance = funds.balance
        if not funds.ok:
            ctx.skip_betting = True
            ctx.handled = True
            ctx.phase = Phase.SETTLING
            self.events.emit("round.skip", round_id=info.round_id, reason="insufficient_funds", balance=funds.balance)

    async def _snipe(self, ctx: RoundContext, info: RoundInfo, remaining: float) -> None:
        ctx.handled = True
        ctx.phase = Phase.SNIPE_WINDOW
        ctx.bid_attempts += 1
        self.log.info("SNIPE WINDOW: %.1fs remaining in round %d", remaining, info.round_id)

        snapshot: SlotSnapshot | None
        try:
            snapshot = await self.reader.fetch_slot_snapshot(info.round_id)
        except Exception as exc:
            self.log.info("round data not available (%s); using live data or minimum", exc)
            snapshot = None

        store = self.tracker.store
        if store.has_samples():
            stats = store.stats()
            self.log.info(
                "real-time tracking: %d bets, max %.6f SOL, top %s",
                stats.total_samples,
                stats.max_overall,
                ", ".join(f"{v:.6f}" for v in stats.top_samples),
            )
        decision = self.estimator.decide(store, snapshot)
        self.log.info(
            "bid %.6f SOL/slot (target %.6f from %s, strategy %s, total %.6f SOL)",
            decision.amount, decision.target, decision.source, decision.strategy, decision.total,
        )
        self.events.emit(
            "bid.decision",
            round_id=info.round_id,
            amount=decision.amount,
            target=decision.target,
            source=decision.source,
        )

        if ctx.balance is not None:
            ok, reason = pass_funds_gate(ctx.balance, bet_per_slot=decision.amount, reserve=self.cfg.min_wallet_balance)
            if not ok:
                self.log.error("insufficient funds for bid (%s, balance %.4f SOL); skipping round", reason, ctx.balance)
                self.events.emit("round.skip", round_id=info.round_id, reason=reason, balance=ctx.balance)
                ctx.skip_betting = True
                ctx.phase = Phase.SETTLING
                return

        await self._close_automation()

        prev_round: int | None = None
        try:
            state = await self.reader.fetch_settlement_state()
        except Exception as exc:
            self.log.warning("settlement state unavailable (%s); bidding without checkpoint", exc)
            state = None
        if state is not None and state.settlement_owed:
            prev_round = state.round_id

        ctx.phase = Phase.SETTLING
        if await self._refresh_remaining(ctx, info) <= 0:
            self._mark_closed(ctx, info.round_id)
            return
        result = await self.sequencer.settle_and_bid(prev_round, decision.amount, round_id=info.round_id)
        if result.status in (CommitStatus.CONFIRMED, CommitStatus.DRY_RUN):
            ctx.deployed_rounds += 1
            self.log.info("deployed round %d (total rounds: %d)", info.round_id, ctx.deployed_rounds)

    async def _close_automation(self) -> None:
        try:
            budget = await self.reader.fetch_automation()
        except Exception as exc:
            self.log.warning("automation lookup failed: %s", exc)
            return
        if budget is None:
            return
        self.log.info(
            "automation account exists (%.4f SOL, ~%d rounds); closing for manual mode",
            budget.balance, budget.remaining_rounds,
        )
        await self.sequencer.close_automation()

    def _backoff(self, ctx: RoundContext) -> float:
        n = max(1, ctx.consecutive_errors)
        return min(self.cfg.error_backoff_max_sec, self.cfg.error_backoff_sec * (2 ** (n - 1)))

    async def run(self, ctx: RoundContext | None = None) -> RoundContext:
        ctx = ctx or RoundContext()
        while True:
            try:
                await self.tick(ctx)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                ctx.consecutive_errors += 1
                delay = self._backoff(ctx)
                self.log.error("loop error (%dx): %s; retrying in %.0fs", ctx.consecutive_errors, exc, delay)
                await asyncio.sleep(delay)
                continue
            ctx.consecutive_errors = 0
            await asyncio.sleep(self.cfg.poll_interval_sec)
