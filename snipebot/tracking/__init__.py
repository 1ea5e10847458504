from .reconciler import PollReconciler, ReconciliationCursor
from .tracker import RoundTracker
from .watcher import AMOUNT_PATTERNS, EventChannelWatcher, extract_amount

__all__ = [
    "AMOUNT_PATTERNS",
    "EventChannelWatcher",
    "PollReconciler",
    "ReconciliationCursor",
    "RoundTracker",
    "extract_amount",
]
