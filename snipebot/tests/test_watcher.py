import asyncio

from fakes import LOG, FakeStream

from snipebot.data import ObservationStore
from snipebot.domain import SLOT_COUNT, LogNotification
from snipebot.tracking import EventChannelWatcher, extract_amount


def test_extract_amount_patterns() -> None:
    assert extract_amount("Program log: Round #10947: deploying 0.12834 SOL to 25 squares") == 0.12834
    assert extract_amount("Program log: Deployed 0.5 SOL") == 0.5
    assert extract_amount("Program log: amount: 2 SOL") == 2.0
    assert extract_amount("Program log: bet 0.003SOL") == 0.003
    assert extract_amount("Program log: deploy 0.01 ORE") is None
    assert extract_amount("Program log: deploying 0 SOL") is None


def test_failed_notification_is_ignored() -> None:
    store = ObservationStore(round_id=1)
    watcher = EventChannelWatcher(store, LOG)
    note = LogNotification(signature="s1", failed=True, lines=("Program log: deploying 1.0 SOL",))
    assert watcher.handle(note) == 0
    assert not store.has_samples()


def test_amount_applies_to_every_slot() -> None:
    store = ObservationStore(round_id=1)
    watcher = EventChannelWatcher(store, LOG)
    note = LogNotification(
        signature="s2",
        failed=False,
        lines=("Program log: deploying 0.002 SOL to 25 squares", "Program log: unrelated", "Program log: bet: 0.001 SOL"),
    )
    assert watcher.handle(note) == 2
    assert store.max_per_slot() == (0.002,) * SLOT_COUNT
    assert all(s.slot is None for s in store.samples())


def test_consume_resolves_bettor_for_large_stakes() -> None:
    seen: list[str] = []

    async def resolve(signature: str) -> str:
        seen.append(signature)
        return "Bettor1111"

    async def scenario() -> ObservationStore:
        store = ObservationStore(round_id=1)
        watcher = EventChannelWatcher(store, LOG, resolve_signer=resolve)
        stream = FakeStream([
            LogNotification(signature="big", failed=False, lines=("Program log: deploying 0.05 SOL",)),
            LogNotification(signature="small", failed=False, lines=("Program log: deploying 0.0001 SOL",)),
        ])
        await watcher.consume(stream)
        await asyncio.sleep(0)
        await watcher.drain()
        return store

    store = asyncio.run(scenario())
    assert store.total_samples() == 2
    assert seen == ["big"]
