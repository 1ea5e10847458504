from .engine import BidConfig, BidDecision, BidEstimator
from .gates import in_snipe_window, pass_funds_gate

__all__ = ["BidConfig", "BidDecision", "BidEstimator", "in_snipe_window", "pass_funds_gate"]
