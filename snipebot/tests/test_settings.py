from pathlib import Path

import pytest

from snipebot.config import load_settings
from snipebot.domain.errors import ConfigError


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for name in ("RPC_URL", "WS_URL", "BETTING_STRATEGY", "MIN_BET_PER_SLOT", "MAX_BET_PER_SLOT", "DRY_RUN", "BUFFER_PERCENT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LEDGER_CODEC", "mycodec:make")
    return monkeypatch


def test_defaults(env: pytest.MonkeyPatch) -> None:
    s = load_settings()
    assert s.betting_strategy == "max"
    assert s.buffer_percent == 10.0
    assert s.min_bet_per_slot == 0.0001
    assert s.max_bet_per_slot == 0.01
    assert s.snipe_window_seconds == 10.0
    assert s.ws_url == "wss://api.mainnet-beta.solana.com"
    assert s.dry_run is False


def test_overrides(env: pytest.MonkeyPatch) -> None:
    env.setenv("RPC_URL", "http://localhost:8899")
    env.setenv("BETTING_STRATEGY", "MEDIAN")
    env.setenv("DRY_RUN", "yes")
    s = load_settings()
    assert s.ws_url == "ws://localhost:8899"
    assert s.betting_strategy == "median"
    assert s.dry_run is True


def test_unknown_strategy_rejected(env: pytest.MonkeyPatch) -> None:
    env.setenv("BETTING_STRATEGY", "martingale")
    with pytest.raises(ConfigError):
        load_settings()


def test_missing_codec_rejected(env: pytest.MonkeyPatch) -> None:
    env.delenv("LEDGER_CODEC")
    with pytest.raises(ConfigError):
        load_settings()


def test_bad_number_rejected(env: pytest.MonkeyPatch) -> None:
    env.setenv("BUFFER_PERCENT", "ten")
    with pytest.raises(ConfigError):
        load_settings()


def test_min_above_max_rejected(env: pytest.MonkeyPatch) -> None:
    env.setenv("MIN_BET_PER_SLOT", "0.5")
    env.setenv("MAX_BET_PER_SLOT", "0.1")
    with pytest.raises(ConfigError):
        load_settings()
