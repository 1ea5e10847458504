from .manager import FundsCheck, SettlementManager

__all__ = ["FundsCheck", "SettlementManager"]
