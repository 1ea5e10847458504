import asyncio

from fakes import LOG, FakeLedger, FakeSubmitter

from snipebot.domain import SettlementState, StepKind
from snipebot.execution import CommitSequencer
from snipebot.settlement import SettlementManager


def _manager(ledger, submitter, **kwargs) -> SettlementManager:
    return SettlementManager(ledger, CommitSequencer(submitter, LOG), LOG, refresh_delay_sec=0, **kwargs)


def test_nothing_to_settle_without_miner() -> None:
    submitter = FakeSubmitter()
    assert asyncio.run(_manager(FakeLedger(), submitter).settle_previous_round()) is None
    assert submitter.calls == []


def test_checkpoint_then_claim() -> None:
    ledger = FakeLedger(settlement=SettlementState(checkpoint_id=4, round_id=5, rewards_sol=0.02, rewards_ore=1.0))
    submitter = FakeSubmitter()
    asyncio.run(_manager(ledger, submitter).settle_previous_round())
    assert [s.kind for s in submitter.calls[0]] == [StepKind.SETTLE]
    assert submitter.calls[0][0].round_id == 5
    assert [s.kind for s in submitter.calls[1]] == [StepKind.CLAIM_SOL, StepKind.CLAIM_ORE]


def test_claim_skipped_when_disabled() -> None:
    ledger = FakeLedger(settlement=SettlementState(checkpoint_id=5, round_id=5, rewards_sol=0.02, rewards_ore=0.0))
    submitter = FakeSubmitter()
    asyncio.run(_manager(ledger, submitter, claim_every_round=False).settle_previous_round())
    assert submitter.calls == []


def test_low_balance_recovered_by_claim() -> None:
    ledger = FakeLedger(
        balance=0.05,
        settlement=SettlementState(checkpoint_id=5, round_id=5, rewards_sol=0.2, rewards_ore=0.0),
    )

    class PayingSubmitter(FakeSubmitter):
        async def submit(self, steps) -> str:
            ledger.balance += 0.2
            return await super().submit(steps)

    funds = asyncio.run(_manager(ledger, PayingSubmitter(), min_wallet_balance=0.1).ensure_funds())
    assert funds.ok
    assert funds.recovered
    assert funds.balance >= 0.1


def test_low_balance_without_rewards_fails() -> None:
    ledger = FakeLedger(balance=0.05)
    funds = asyncio.run(_manager(ledger, FakeSubmitter(), min_wallet_balance=0.1).ensure_funds())
    assert not funds.ok
    assert funds.balance == 0.05
