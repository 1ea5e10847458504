from __future__ import annotations

import importlib
from collections.abc import AsyncIterator, Sequence
from typing import Protocol

from snipebot.domain import AutomationBudget, LogNotification, RoundInfo, SettlementState, SlotSnapshot, Step
from snipebot.domain.errors import ConfigError


class LedgerReader(Protocol):
    """Read-only query surface. Implementations may raise, callers retry."""

    async def fetch_round_info(self) -> RoundInfo: ...

    async def fetch_slot_snapshot(self, round_id: int) -> SlotSnapshot: ...

    async def fetch_settlement_state(self) -> SettlementState | None: ...

    async def fetch_current_position(self) -> int: ...

    async def fetch_balance(self) -> float: ...

    async def fetch_automation(self) -> AutomationBudget | None: ...

    async def fetch_transaction_signer(self, signature: str) -> str | None: ...


class NotificationStream(Protocol):
    def notifications(self) -> AsyncIterator[LogNotification]: ...

    async def close(self) -> None: ...


class TransactionSubmitter(Protocol):
    async def submit(self, steps: Sequence[Step]) -> str: ...


class LedgerCodec(Protocol):
    """Addresses, instruction encoding and signing for the remote program."""

    identity: str

    def board_address(self) -> str: ...

    def round_address(self, round_id: int) -> str: ...

    def miner_address(self) -> str: ...

    def automation_address(self) -> str: ...

    def encode(self, steps: Sequence[Step], recent_blockhash: str) -> str: ...


def load_codec(spec: str, **kwargs) -> LedgerCodec:
    """Import ``module:factory`` and call the factory with ``kwargs``."""
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise ConfigError(f"LEDGER_CODEC must look like 'module:factory', got {spec!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"cannot import ledger codec module {module_name!r}: {exc}") from exc
    factory = getattr(module, attr, None)
    if factory is None:
        raise ConfigError(f"ledger codec factory {attr!r} not found in {module_name!r}")
    codec = factory(**kwargs)
    if not getattr(codec, "identity", None):
        raise ConfigError("ledger codec did not provide a wallet identity")
    return codec
