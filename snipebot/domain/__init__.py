from .models import (
    LAMPORTS_PER_SOL,
    ORE_UNITS,
    SLOT_COUNT,
    U64_MAX,
    AutomationBudget,
    LogNotification,
    Phase,
    RoundInfo,
    Sample,
    SettlementState,
    SlotSnapshot,
    Step,
    StepKind,
    lamports_to_sol,
)

__all__ = [
    "LAMPORTS_PER_SOL",
    "ORE_UNITS",
    "SLOT_COUNT",
    "U64_MAX",
    "AutomationBudget",
    "LogNotification",
    "Phase",
    "RoundInfo",
    "Sample",
    "SettlementState",
    "SlotSnapshot",
    "Step",
    "StepKind",
    "lamports_to_sol",
]
