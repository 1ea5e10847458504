from __future__ import annotations

from snipebot.data import JsonRpcService
from snipebot.domain import LAMPORTS_PER_SOL, AutomationBudget, RoundInfo, SettlementState, SlotSnapshot
from snipebot.domain.errors import ParseError
from snipebot.ledger import accounts
from snipebot.ledger.base import LedgerCodec

COMMITMENT = "confirmed"


class RpcLedger:
    """LedgerReader backed by a JSON-RPC node."""

    def __init__(self, rpc: JsonRpcService, codec: LedgerCodec):
        self.rpc = rpc
        self.codec = codec

    async def _account(self, address: str) -> bytes | None:
        result = await self.rpc.call(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": COMMITMENT}],
        )
        if not isinstance(result, dict):
            raise ParseError(f"getAccountInfo returned {type(result).__name__}")
        return accounts.account_bytes(result.get("value"))

    async def fetch_round_info(self) -> RoundInfo:
        data = await self._account(self.codec.board_address())
        if data is None:
            raise ParseError("board account not found")
        return accounts.decode_board(data)

    async def fetch_slot_snapshot(self, round_id: int) -> SlotSnapshot:
        data = await self._account(self.codec.round_address(round_id))
        if data is None:
            raise ParseError(f"round {round_id} account not found")
        return accounts.decode_round(data)

    async def fetch_settlement_state(self) -> SettlementState | None:
        data = await self._account(self.codec.miner_address())
        if data is None:
            return None
        return accounts.decode_miner(data)

    async def fetch_automation(self) -> AutomationBudget | None:
        data = await self._account(self.codec.automation_address())
        if data is None:
            return None
        return accounts.decode_automation(data)

    async def fetch_current_position(self) -> int:
        slot = await self.rpc.call("getSlot", [{"commitment": COMMITMENT}])
        if not isinstance(slot, int):
            raise ParseError(f"getSlot returned {slot!r}")
        return slot

    async def fetch_balance(self) -> float:
        result = await self.rpc.call("getBalance", [self.codec.identity, {"commitment": COMMITMENT}])
        try:
            return int(result["value"]) / LAMPORTS_PER_SOL
        except (KeyError, TypeError, ValueError) as exc:
            raise ParseError(f"getBalance returned {result!r}") from exc

    async def fetch_transaction_signer(self, signature: str) -> str | None:
        tx = await self.rpc.call(
            "getTransaction",
            [signature, {"encoding": "jsonParsed", "commitment": COMMITMENT, "maxSupportedTransactionVersion": 0}],
        )
        if not isinstance(tx, dict):
            return None
        keys = (((tx.get("transaction") or {}).get("message") or {}).get("accountKeys")) or []
        for key in keys:
            if isinstance(key, dict) and key.get("signer"):
                return key.get("pubkey")
        return None
