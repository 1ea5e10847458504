from __future__ import annotations

from snipebot.domain import SLOT_COUNT


def in_snipe_window(seconds_remaining: float, window_seconds: float) -> bool:
    return 0 < seconds_remaining <= window_seconds


def pass_funds_gate(
    balance: float,
    *,
    bet_per_slot: float,
    reserve: float,
    slots: int = SLOT_COUNT,
) -> tuple[bool, str]:
    if balance < reserve:
        return False, "balance_below_reserve"
    if balance < bet_per_slot * slots + reserve:
        return False, "balance_below_bet"
    return True, "ok"
