import asyncio
from pathlib import Path

import pytest
from fakes import LOG, FakeLedger, FakeStream

from snipebot import main as entry
from snipebot.config import Settings
from snipebot.runtime.app import EXIT_CONFIG, EXIT_OK, App, Components
from snipebot.tracking import RoundTracker


def _settings(data_dir: str, codec: str) -> Settings:
    return Settings(
        rpc_url="http://127.0.0.1:8899",
        ws_url="ws://127.0.0.1:8900",
        program_id="Program1111",
        ledger_codec=codec,
        betting_strategy="max",
        buffer_percent=10.0,
        min_bet_per_slot=0.0001,
        max_bet_per_slot=0.01,
        assumed_min_stake=0.001,
        poll_interval_sec=2.0,
        reconcile_interval_sec=2.0,
        snipe_window_seconds=10.0,
        slot_duration_sec=0.4,
        unstarted_round_slots=150,
        claim_every_round=True,
        min_claimable_sol=0.001,
        min_claimable_ore=0.5,
        min_wallet_balance=0.1,
        settle_refresh_delay_sec=3.0,
        confirm_timeout_sec=30.0,
        error_backoff_sec=10.0,
        error_backoff_max_sec=60.0,
        dry_run=True,
        data_dir=data_dir,
        log_level="INFO",
    )


def test_unimportable_codec_exits_with_config_code(tmp_path: Path) -> None:
    app = App(_settings(str(tmp_path), "snipebot_missing_codec_module:make"))
    assert asyncio.run(app.run()) == EXIT_CONFIG


def test_missing_identity_config_exits_with_config_code(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("LEDGER_CODEC", raising=False)
    assert entry.main() == EXIT_CONFIG


class _Codec:
    identity = "Wallet11111111111111111111111111"


def make_codec(**kwargs) -> _Codec:
    return _Codec()


class _RecordingStream(FakeStream):
    def __init__(self, order: list[str]):
        super().__init__()
        self.order = order

    async def close(self) -> None:
        await super().close()
        self.order.append("unsubscribe")


class _StopOnFirstTick:
    def __init__(self, app: App):
        self.app = app

    async def run(self, ctx) -> None:
        ctx.deployed_rounds = 1
        self.app.request_stop()
        await asyncio.Event().wait()


class _Sequencer:
    def __init__(self, order: list[str]):
        self.order = order

    async def drain(self) -> None:
        self.order.append("drain")


class _Rpc:
    def __init__(self, order: list[str]):
        self.order = order

    async def close(self) -> None:
        self.order.append("rpc_close")


class _FakeWiredApp(App):
    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.order: list[str] = []
        self.stream = _RecordingStream(self.order)

    def build(self, codec) -> Components:
        return Components(
            scheduler=_StopOnFirstTick(self),
            tracker=RoundTracker(FakeLedger(), self.stream, LOG),
            sequencer=_Sequencer(self.order),
            rpc=_Rpc(self.order),
        )


def test_stop_request_shuts_down_cleanly(tmp_path: Path) -> None:
    app = _FakeWiredApp(_settings(str(tmp_path), f"{__name__}:make_codec"))
    assert asyncio.run(app.run()) == EXIT_OK
    assert app.stream.closed == 1
    assert app.order == ["unsubscribe", "drain", "rpc_close"]
    events = (tmp_path / "runtime_events.jsonl").read_text()
    assert '"event":"engine.stop"' in events
    assert '"deployed_rounds":1' in events
