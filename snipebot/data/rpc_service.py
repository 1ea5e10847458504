from __future__ import annotations

import asyncio
import itertools
import random
import time
import urllib.parse
from typing import Any

import aiohttp

from snipebot.domain.errors import LedgerError, TransientNetworkError


class RpcError(LedgerError):
    """The node answered with a JSON-RPC error object."""

    def __init__(self, method: str, code: int | None, message: str, data: Any = None):
        super().__init__(f"{method} failed ({code}): {message}")
        self.method = method
        self.code = code
        self.data = data


class JsonRpcService:
    """JSON-RPC over HTTP with request pacing and 429/5xx retry/backoff.

    Reads are never cached: every call reflects current ledger state.
    """

    def __init__(
        self,
        url: str,
        *,
        conn_limit: int = 16,
        keepalive_sec: float = 30.0,
        min_gap_ms: float = 0.0,
        retries_429: int = 2,
        retries_5xx: int = 2,
        timeout: float = 8.0,
        error_tick=None,
    ):
        self.url = url
        self._host = urllib.parse.urlparse(url).netloc
        self._conn_limit = max(1, int(conn_limit))
        self._keepalive_sec = max(5.0, float(keepalive_sec))
        self._min_gap_s = max(0.0, float(min_gap_ms) / 1000.0)
        self._retries_429 = max(0, int(retries_429))
        self._retries_5xx = max(0, int(retries_5xx))
        self._timeout = float(timeout)
        self._error_tick = error_tick

        self._session: aiohttp.ClientSession | None = None
        self._ids = itertools.count(1)
        self._backoff_until = 0.0
        self._last_ts = 0.0
        self._pace_lock = asyncio.Lock()

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def _ensure_session(self) -> None:
        if self._session is not None and not self._session.closed:
            return
        connector = aiohttp.TCPConnector(
            limit=self._conn_limit,
            enable_cleanup_closed=True,
            keepalive_timeout=self._keepalive_sec,
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            headers={"User-Agent": "snipebot/1.0", "Content-Type": "application/json"},
        )

    async def _pace(self) -> None:
        async with self._pace_lock:
            now = time.time()
            if self._backoff_until > now:
                raise TransientNetworkError(
                    f"rpc 429 backoff active for {self._host} ({self._backoff_until - now:.0f}s left)"
                )
            if self._last_ts > 0 and (now - self._last_ts) < self._min_gap_s:
                await asyncio.sleep(self._min_gap_s - (now - self._last_ts))
            self._last_ts = time.time()

    async def call(self, method: str, params: list | None = None, *, timeout: float | None = None) -> Any:
        await self._ensure_session()
        assert self._session is not None
        await self._pace()

        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        timeout = self._timeout if timeout is None else float(timeout)
        attempts = max(self._retries_429, self._retries_5xx) + 1
        last_err: Exception | None = None

        for i in range(attempts):
            try:
                async with self._session.post(
                    self.url,
                    json=body,
                    timeout=aiohttp.ClientTimeout(total=timeout),
                ) as r:
                    if r.status == 429:
                        retry_after = max(1.0, float(r.headers.get("Retry-After", "2") or 2.0))
                        backoff_s = min(90.0, retry_after + (0.35 * i) + random.uniform(0.05, 0.35))
                        last_err = TransientNetworkError(f"rpc 429 {method}")
                        if i < self._retries_429:
                            await asyncio.sleep(backoff_s)
                            continue
                        self._backoff_until = max(self._backoff_until, time.time() + backoff_s)
                        break
                    if r.status >= 500:
                        last_err = TransientNetworkError(f"rpc http {r.status} {method}")
                        if i < self._retries_5xx:
                            await asyncio.sleep(0.25 + (0.25 * i))
                            continue
                        break
                    if r.status >= 400:
                        raise TransientNetworkError(f"rpc http {r.status} {method}")
                    payload = await r.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                last_err = exc
                if i < attempts - 1:
                    await asyncio.sleep(0.20 + (0.15 * i))
                    continue
                break

            if not isinstance(payload, dict):
                raise TransientNetworkError(f"rpc {method} returned non-object payload")
            err = payload.get("error")
            if err:
                raise RpcError(method, err.get("code"), str(err.get("message", "")), err.get("data"))
            return payload.get("result")

        if self._error_tick is not None:
            self._error_tick("rpc_call", err=last_err)
        raise TransientNetworkError(f"rpc call failed: {method} err={last_err}")
