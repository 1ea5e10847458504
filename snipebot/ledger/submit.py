from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

from snipebot.data import JsonRpcService, RpcError
from snipebot.domain import Step
from snipebot.domain.errors import ParseError, SubmissionError
from snipebot.ledger.base import LedgerCodec

_CONFIRMED = {"confirmed", "finalized"}


class RpcSubmitter:
    """Sends one codec-encoded transaction and waits for confirmation."""

    def __init__(
        self,
        rpc: JsonRpcService,
        codec: LedgerCodec,
        *,
        confirm_timeout_sec: float = 30.0,
        status_poll_sec: float = 0.5,
    ):
        self.rpc = rpc
        self.codec = codec
        self.confirm_timeout_sec = confirm_timeout_sec
        self.status_poll_sec = status_poll_sec

    async def _latest_blockhash(self) -> str:
        result = await self.rpc.call("getLatestBlockhash", [{"commitment": "confirmed"}])
        try:
            return str(result["value"]["blockhash"])
        except (KeyError, TypeError) as exc:
            raise ParseError(f"getLatestBlockhash returned {result!r}") from exc

    async def submit(self, steps: Sequence[Step]) -> str:
        if not steps:
            raise SubmissionError("refusing to submit an empty operation")
        blockhash = await self._latest_blockhash()
        wire = self.codec.encode(list(steps), blockhash)
        try:
            signature = await self.rpc.call(
                "sendTransaction",
                [wire, {"encoding": "base64", "preflightCommitment": "confirmed"}],
            )
        except RpcError as exc:
            raise SubmissionError(str(exc)) from exc
        await self._await_confirmation(str(signature))
        return str(signature)

    async def _await_confirmation(self, signature: str) -> None:
        deadline = time.monotonic() + self.confirm_timeout_sec
        while time.monotonic() < deadline:
            result = await self.rpc.call(
                "getSignatureStatuses",
                [[signature], {"searchTransactionHistory": False}],
            )
            statuses = (result or {}).get("value") or [None]
            status = statuses[0]
            if status:
                if status.get("err") is not None:
                    raise SubmissionError(f"transaction {signature} failed: {status['err']}")
                if status.get("confirmationStatus") in _CONFIRMED:
                    return
            await asyncio.sleep(self.status_poll_sec)
        raise SubmissionError(f"transaction {signature} not confirmed within {self.confirm_timeout_sec:.0f}s")
