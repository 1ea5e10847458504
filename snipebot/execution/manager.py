from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass

from snipebot.domain import Step, StepKind
from snipebot.domain.errors import ErrorClass, classify_error
from snipebot.infra import NullEventLogger


class CommitStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    DRY_RUN = "dry_run"
    NOTHING_TO_DO = "nothing_to_do"
    RACED = "raced"
    FAILED = "failed"


@dataclass(frozen=True)
class CommitResult:
    ok: bool
    status: CommitStatus
    token: str = ""
    reason: str = ""
    steps: tuple[Step, ...] = ()


class CommitSequencer:
    """Execution boundary: turns decisions into one atomic step list per call.

    Never raises. Race-rejected submissions come back as ``RACED`` and are
    expected; anything else is ``FAILED`` and logged.
    """

    def __init__(
        self,
        submitter,
        log,
        *,
        dry_run: bool = False,
        min_claimable_sol: float = 0.001,
        min_claimable_ore: float = 0.5,
        events=None,
    ):
        self.submitter = submitter
        self.log = log
        self.dry_run = dry_run
        self.min_claimable_sol = min_claimable_sol
        self.min_claimable_ore = min_claimable_ore
        self.events = events or NullEventLogger()
        self._inflight: set[asyncio.Future] = set()

    async def drain(self) -> None:
        """Wait for submissions still in flight (used at shutdown)."""
        if self._inflight:
            self.log.info("waiting for %d in-flight submission(s)", len(self._inflight))
            await asyncio.gather(*self._inflight, return_exceptions=True)

    async def _submit(self, steps: list[Step], description: str, *, program_errors_benign: bool = False) -> CommitResult:
        if self.dry_run:
            self.log.info("[DRY RUN] would submit %s", description)
            result = CommitResult(ok=True, status=CommitStatus.DRY_RUN, reason="dry_run", steps=tuple(steps))
            self.events.emit("commit.result", action=description, status=result.status.value)
            return result

        self.log.info("sending %s", description)
        task = asyncio.ensure_future(self.submitter.submit(steps))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        try:
            # the ledger may already hold the transaction; cancelling the caller must not abandon it
            token = await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            kind = classify_error(exc, program_errors_benign=program_errors_benign)
            if kind is ErrorClass.RACE:
                self.log.info("%s rejected by ledger state (%s); will retry next round", description, exc)
                result = CommitResult(ok=False, status=CommitStatus.RACED, reason=str(exc), steps=tuple(steps))
            else:
                self.log.error("%s failed [%s]: %s", description, kind.value, exc)
                result = CommitResult(ok=False, status=CommitStatus.FAILED, reason=str(exc), steps=tuple(steps))
        else:
            self.log.info("confirmed %s: %s", description, token)
            result = CommitResult(ok=True, status=CommitStatus.CONFIRMED, token=str(token), steps=tuple(steps))
        self.events.emit("commit.result", action=description, status=result.status.value, token=result.token, reason=result.reason)
        return result

    async def settle_and_bid(self, prev_round_if_owed: int | None, bet_per_slot: float, *, round_id: int | None = None) -> CommitResult:
        steps: list[Step] = []
        if prev_round_if_owed is not None:
            steps.append(Step(kind=StepKind.SETTLE, round_id=prev_round_if_owed))
        steps.append(Step(kind=StepKind.BID, round_id=round_id, amount=bet_per_slot))
        description = "checkpoint + bid" if len(steps) == 2 else "bid"
        return await self._submit(steps, f"{description} {bet_per_slot:.6f} SOL/slot")

    async def checkpoint(self, round_id: int) -> CommitResult:
        return await self._submit([Step(kind=StepKind.SETTLE, round_id=round_id)], f"checkpoint round {round_id}")

    async def claim_rewards(self, sol_amount: float, ore_amount: float) -> CommitResult:
        steps: list[Step] = []
        if sol_amount >= self.min_claimable_sol:
            steps.append(Step(kind=StepKind.CLAIM_SOL, amount=sol_amount))
        if ore_amount >= self.min_claimable_ore:
            steps.append(Step(kind=StepKind.CLAIM_ORE, amount=ore_amount))
        if not steps:
            self.log.info("no rewards ready to claim (%.6f SOL, %.4f ORE)", sol_amount, ore_amount)
            return CommitResult(ok=True, status=CommitStatus.NOTHING_TO_DO, reason="nothing to claim")
        label = " + ".join("SOL" if s.kind is StepKind.CLAIM_SOL else "ORE" for s in steps)
        return await self._submit(
            steps,
            f"claim {label} ({sol_amount:.6f} SOL, {ore_amount:.4f} ORE)",
            program_errors_benign=True,
        )

    async def close_automation(self) -> CommitResult:
        return await self._submit([Step(kind=StepKind.CLOSE_BUDGET)], "close automation")
