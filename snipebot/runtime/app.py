from __future__ import annotations

import asyncio
import signal
from dataclasses import dataclass

from snipebot.config import Settings
from snipebot.data import JsonRpcService
from snipebot.domain.errors import ConfigError
from snipebot.execution import CommitSequencer
from snipebot.infra import ErrorTracker, RuntimeEventLogger, get_logger
from snipebot.ledger import load_codec
from snipebot.ledger.rpc import RpcLedger
from snipebot.ledger.stream import LogsSubscription
from snipebot.ledger.submit import RpcSubmitter
from snipebot.runtime.scheduler import RoundContext, RoundScheduler, SchedulerConfig
from snipebot.runtime.supervisor import LoopSupervisor
from snipebot.settlement import SettlementManager
from snipebot.strategy import BidConfig, BidEstimator
from snipebot.tracking import RoundTracker

EXIT_OK = 0
EXIT_CONFIG = 2


@dataclass
class Components:
    scheduler: RoundScheduler
    tracker: RoundTracker
    sequencer: CommitSequencer
    rpc: JsonRpcService


class App:
    """Wires collaborators together and owns startup/shutdown."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.log = get_logger("snipebot", settings.log_level)
        self.events = RuntimeEventLogger(settings.data_dir)
        self._stop = asyncio.Event()

    def build(self, codec) -> Components:
        s = self.settings
        errors = ErrorTracker(self.log)
        rpc = JsonRpcService(s.rpc_url, error_tick=errors.tick)
        reader = RpcLedger(rpc, codec)
        stream = LogsSubscription(s.ws_url, s.program_id)
        submitter = RpcSubmitter(rpc, codec, confirm_timeout_sec=s.confirm_timeout_sec)

        tracker = RoundTracker(
            reader,
            stream,
            get_logger("snipebot.tracker", s.log_level),
            reconcile_interval_sec=s.reconcile_interval_sec,
            supervisor=LoopSupervisor(events=self.events),
        )
        sequencer = CommitSequencer(
            submitter,
            get_logger("snipebot.commit", s.log_level),
            dry_run=s.dry_run,
            min_claimable_sol=s.min_claimable_sol,
            min_claimable_ore=s.min_claimable_ore,
            events=self.events,
        )
        settlement = SettlementManager(
            reader,
            sequencer,
            get_logger("snipebot.settlement", s.log_level),
            claim_every_round=s.claim_every_round,
            min_wallet_balance=s.min_wallet_balance,
            refresh_delay_sec=s.settle_refresh_delay_sec,
        )
        estimator = BidEstimator(
            BidConfig(
                strategy=s.betting_strategy,
                buffer_percent=s.buffer_percent,
                min_bet_per_slot=s.min_bet_per_slot,
                max_bet_per_slot=s.max_bet_per_slot,
                assumed_min_stake=s.assumed_min_stake,
            ),
            get_logger("snipebot.strategy", s.log_level),
        )
        scheduler = RoundScheduler(
            reader,
            tracker,
            estimator,
            sequencer,
            settlement,
            self.log,
            SchedulerConfig(
                snipe_window_seconds=s.snipe_window_seconds,
                slot_duration_sec=s.slot_duration_sec,
                unstarted_round_slots=s.unstarted_round_slots,
                poll_interval_sec=s.poll_interval_sec,
                min_wallet_balance=s.min_wallet_balance,
                error_backoff_sec=s.error_backoff_sec,
                error_backoff_max_sec=s.error_backoff_max_sec,
            ),
            events=self.events,
        )
        return Components(scheduler=scheduler, tracker=tracker, sequencer=sequencer, rpc=rpc)

    def request_stop(self) -> None:
        if not self._stop.is_set():
            self.log.info("stopping bot...")
            self._stop.set()

    async def run(self) -> int:
        s = self.settings
        try:
            codec = load_codec(s.ledger_codec, rpc_url=s.rpc_url, program_id=s.program_id)
        except ConfigError as exc:
            self.log.error("fatal config: %s", exc)
            return EXIT_CONFIG

        self.log.info(
            "starting snipebot wallet=%s strategy=%s buffer=%.1f%% window=%.0fs bet=%.6f-%.6f SOL dry_run=%s",
            f"{codec.identity[:10]}...",
            s.betting_strategy,
            s.buffer_percent,
            s.snipe_window_seconds,
            s.min_bet_per_slot,
            s.max_bet_per_slot,
            s.dry_run,
        )
        self.events.emit("engine.start", strategy=s.betting_strategy, dry_run=s.dry_run)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.request_stop)

        parts = self.build(codec)
        ctx = RoundContext()
        task = asyncio.create_task(parts.scheduler.run(ctx), name="round-scheduler")
        stopper = asyncio.create_task(self._stop.wait(), name="stop-signal")
        try:
            await asyncio.wait({task, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for t in (task, stopper):
                t.cancel()
            await asyncio.gather(task, stopper, return_exceptions=True)
            await parts.tracker.stop()
            await parts.sequencer.drain()
            await parts.rpc.close()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)

        self.log.info("bot stopped. total rounds deployed: %d", ctx.deployed_rounds)
        self.events.emit("engine.stop", deployed_rounds=ctx.deployed_rounds)
        return EXIT_OK


def run_main(settings: Settings) -> int:
    return asyncio.run(App(settings).run())
