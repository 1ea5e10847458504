from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from snipebot.domain.errors import ConfigError

STRATEGIES = ("max", "median")


def _env_str(name: str, default: str | None = None) -> str:
    raw = os.environ.get(name)
    value = default if raw is None or not raw.strip() else raw.strip()
    if value is None:
        raise ConfigError(f"Missing required environment variable: {name}")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.environ.get(name)
    if raw is None:
        value = default
    else:
        try:
            value = int(raw)
        except ValueError as exc:
            raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if min_value is not None:
        value = max(min_value, value)
    return value


def _env_float(name: str, default: float, min_value: float | None = None) -> float:
    raw = os.environ.get(name)
    if raw is None:
        value = default
    else:
        try:
            value = float(raw)
        except ValueError as exc:
            raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
    if min_value is not None:
        value = max(min_value, value)
    return value


def _ws_from_http(url: str) -> str:
    if url.startswith("https://"):
        return "wss://" + url[len("https://"):]
    if url.startswith("http://"):
        return "ws://" + url[len("http://"):]
    return url


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    ws_url: str
    program_id: str
    ledger_codec: str
    betting_strategy: str
    buffer_percent: float
    min_bet_per_slot: float
    max_bet_per_slot: float
    assumed_min_stake: float
    poll_interval_sec: float
    reconcile_interval_sec: float
    snipe_window_seconds: float
    slot_duration_sec: float
    unstarted_round_slots: int
    claim_every_round: bool
    min_claimable_sol: float
    min_claimable_ore: float
    min_wallet_balance: float
    settle_refresh_delay_sec: float
    confirm_timeout_sec: float
    error_backoff_sec: float
    error_backoff_max_sec: float
    dry_run: bool
    data_dir: str
    log_level: str

    def validate(self) -> Settings:
        if self.betting_strategy not in STRATEGIES:
            raise ConfigError(
                f"Unsupported BETTING_STRATEGY={self.betting_strategy}. Use one of {', '.join(STRATEGIES)}."
            )
        if self.min_bet_per_slot > self.max_bet_per_slot:
            raise ConfigError(
                f"MIN_BET_PER_SLOT={self.min_bet_per_slot} exceeds MAX_BET_PER_SLOT={self.max_bet_per_slot}"
            )
        if ":" not in self.ledger_codec:
            raise ConfigError(f"LEDGER_CODEC must look like 'module:factory', got {self.ledger_codec!r}")
        return self


def load_settings() -> Settings:
    load_dotenv(os.path.expanduser("~/.snipebot.env"))
    load_dotenv()

    rpc_url = _env_str("RPC_URL", "https://api.mainnet-beta.solana.com")
    return Settings(
        rpc_url=rpc_url,
        ws_url=_env_str("WS_URL", _ws_from_http(rpc_url)),
        program_id=_env_str("PROGRAM_ID", "oreV3EG1i9BEgiAJ8b177Z2S2rMarzak4NMv1kULvWv"),
        ledger_codec=_env_str("LEDGER_CODEC"),
        betting_strategy=_env_str("BETTING_STRATEGY", "max").lower(),
        buffer_percent=_env_float("BUFFER_PERCENT", 10.0, min_value=0.0),
        min_bet_per_slot=_env_float("MIN_BET_PER_SLOT", 0.0001, min_value=0.0),
        max_bet_per_slot=_env_float("MAX_BET_PER_SLOT", 0.01, min_value=0.0),
        assumed_min_stake=_env_float("ASSUMED_MIN_STAKE", 0.001, min_value=0.0),
        poll_interval_sec=_env_float("POLL_INTERVAL_SEC", 2.0, min_value=0.1),
        reconcile_interval_sec=_env_float("RECONCILE_INTERVAL_SEC", 2.0, min_value=0.1),
        snipe_window_seconds=_env_float("SNIPE_WINDOW_SECONDS", 10.0, min_value=0.0),
        slot_duration_sec=_env_float("SLOT_DURATION_SEC", 0.4, min_value=0.01),
        unstarted_round_slots=_env_int("UNSTARTED_ROUND_SLOTS", 150, min_value=0),
        claim_every_round=_env_bool("CLAIM_EVERY_ROUND", True),
        min_claimable_sol=_env_float("MIN_CLAIMABLE_SOL", 0.001, min_value=0.0),
        min_claimable_ore=_env_float("MIN_CLAIMABLE_ORE", 0.5, min_value=0.0),
        min_wallet_balance=_env_float("MIN_WALLET_BALANCE", 0.1, min_value=0.0),
        settle_refresh_delay_sec=_env_float("SETTLE_REFRESH_DELAY_SEC", 3.0, min_value=0.0),
        confirm_timeout_sec=_env_float("CONFIRM_TIMEOUT_SEC", 30.0, min_value=1.0),
        error_backoff_sec=_env_float("ERROR_BACKOFF_SEC", 10.0, min_value=0.0),
        error_backoff_max_sec=_env_float("ERROR_BACKOFF_MAX_SEC", 60.0, min_value=0.0),
        dry_run=_env_bool("DRY_RUN", False),
        data_dir=_env_str("DATA_DIR", "./data"),
        log_level=_env_str("LOG_LEVEL", "INFO").upper(),
    ).validate()
