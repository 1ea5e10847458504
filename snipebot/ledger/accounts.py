from __future__ import annotations

import base64
import binascii
import struct

from snipebot.domain import (
    LAMPORTS_PER_SOL,
    ORE_UNITS,
    SLOT_COUNT,
    U64_MAX,
    AutomationBudget,
    RoundInfo,
    SettlementState,
    SlotSnapshot,
)
from snipebot.domain.errors import ParseError

# Byte offsets include the 8-byte account discriminator.
BOARD_ROUND_ID = 8
BOARD_START_SLOT = 16
BOARD_END_SLOT = 24

ROUND_ID = 8
ROUND_DEPLOYED = 16
ROUND_COUNT = 248
ROUND_TOTAL_DEPLOYED = 536

MINER_CHECKPOINT_ID = 448
MINER_REWARDS_SOL = 488
MINER_REWARDS_ORE = 496
MINER_ROUND_ID = 512

AUTOMATION_AMOUNT = 8
AUTOMATION_BALANCE = 48
AUTOMATION_MASK = 104
AUTOMATION_MIN_LEN = 112


def _u64(data: bytes, offset: int) -> int:
    try:
        return struct.unpack_from("<Q", data, offset)[0]
    except struct.error as exc:
        raise ParseError(f"account data too short for u64 at offset {offset} (len={len(data)})") from exc


def _u64_array(data: bytes, offset: int, n: int = SLOT_COUNT) -> tuple[int, ...]:
    try:
        return struct.unpack_from(f"<{n}Q", data, offset)
    except struct.error as exc:
        raise ParseError(f"account data too short for u64[{n}] at offset {offset} (len={len(data)})") from exc


def account_bytes(value: dict | None) -> bytes | None:
    """Raw bytes of a ``getAccountInfo`` value (base64 encoding), None when absent."""
    if value is None:
        return None
    data = value.get("data")
    if not isinstance(data, list) or not data:
        raise ParseError(f"unexpected account data shape: {type(data).__name__}")
    try:
        return base64.b64decode(data[0])
    except (binascii.Error, TypeError) as exc:
        raise ParseError(f"account data is not base64: {exc}") from exc


def decode_board(data: bytes) -> RoundInfo:
    end_slot = _u64(data, BOARD_END_SLOT)
    return RoundInfo(
        round_id=_u64(data, BOARD_ROUND_ID),
        start_slot=_u64(data, BOARD_START_SLOT),
        end_slot=None if end_slot >= U64_MAX else end_slot,
    )


def decode_round(data: bytes) -> SlotSnapshot:
    return SlotSnapshot(
        round_id=_u64(data, ROUND_ID),
        deployed=tuple(_u64_array(data, ROUND_DEPLOYED)),
        count=tuple(_u64_array(data, ROUND_COUNT)),
        total_deployed=_u64(data, ROUND_TOTAL_DEPLOYED),
    )


def decode_miner(data: bytes) -> SettlementState:
    return SettlementState(
        checkpoint_id=_u64(data, MINER_CHECKPOINT_ID),
        round_id=_u64(data, MINER_ROUND_ID),
        rewards_sol=_u64(data, MINER_REWARDS_SOL) / LAMPORTS_PER_SOL,
        rewards_ore=_u64(data, MINER_REWARDS_ORE) / ORE_UNITS,
    )


def decode_automation(data: bytes) -> AutomationBudget | None:
    if len(data) < AUTOMATION_MIN_LEN:
        return None
    return AutomationBudget(
        amount_per_slot=_u64(data, AUTOMATION_AMOUNT) / LAMPORTS_PER_SOL,
        balance=_u64(data, AUTOMATION_BALANCE) / LAMPORTS_PER_SOL,
        slot_mask=_u64(data, AUTOMATION_MASK),
    )
