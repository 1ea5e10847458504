from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator

import websockets

from snipebot.domain import LogNotification
from snipebot.domain.errors import TransientNetworkError


def parse_notification(raw: str | bytes) -> LogNotification | None:
    """Decode one ``logsNotification`` frame; anything else yields None."""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", "ignore")
    try:
        msg = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(msg, dict) or msg.get("method") != "logsNotification":
        return None
    try:
        value = msg["params"]["result"]["value"]
    except (KeyError, TypeError):
        return None
    if not isinstance(value, dict):
        return None
    lines = value.get("logs") or []
    return LogNotification(
        signature=str(value.get("signature") or ""),
        failed=value.get("err") is not None,
        lines=tuple(str(line) for line in lines if isinstance(line, str)),
    )


class LogsSubscription:
    """Program log subscription over the node's websocket endpoint."""

    def __init__(self, ws_url: str, program_id: str, *, commitment: str = "confirmed", open_timeout: float = 10.0):
        self.ws_url = ws_url
        self.program_id = program_id
        self.commitment = commitment
        self.open_timeout = open_timeout
        self._ws = None
        self._subscription_id: int | None = None
        self._closed = False

    async def notifications(self) -> AsyncIterator[LogNotification]:
        if self._closed:
            return
        async with websockets.connect(self.ws_url, ping_interval=20, open_timeout=self.open_timeout) as ws:
            self._ws = ws
            await ws.send(json.dumps({
                "jsonrpc": "2.0",
                "id": 1,
                "method": "logsSubscribe",
                "params": [{"mentions": [self.program_id]}, {"commitment": self.commitment}],
            }))
            resp = json.loads(await asyncio.wait_for(ws.recv(), timeout=self.open_timeout))
            if "error" in resp or "result" not in resp:
                raise TransientNetworkError(f"logsSubscribe rejected: {resp}")
            self._subscription_id = resp["result"]
            try:
                async for raw in ws:
                    note = parse_notification(raw)
                    if note is not None:
                        yield note
            finally:
                self._ws = None
                self._subscription_id = None

    @property
    def subscription_id(self) -> int | None:
        return self._subscription_id

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        ws, sub_id = self._ws, self._subscription_id
        if ws is None:
            return
        try:
            if sub_id is not None:
                await ws.send(json.dumps({
                    "jsonrpc": "2.0",
                    "id": 2,
                    "method": "logsUnsubscribe",
                    "params": [sub_id],
                }))
        except websockets.ConnectionClosed:
            # socket already gone, the node dropped the subscription with it
            pass
        finally:
            await ws.close()
