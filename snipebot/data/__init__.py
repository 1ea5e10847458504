from .observation_store import ObservationStats, ObservationStore
from .rpc_service import JsonRpcService, RpcError

__all__ = ["JsonRpcService", "ObservationStats", "ObservationStore", "RpcError"]
