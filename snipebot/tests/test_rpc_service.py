import asyncio

import pytest
from aiohttp import web

from snipebot.data import JsonRpcService, RpcError
from snipebot.domain.errors import TransientNetworkError


async def _serve(handler) -> tuple[web.AppRunner, str]:
    app = web.Application()
    app.router.add_post("/", handler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    return runner, f"http://127.0.0.1:{port}/"


def test_call_retries_server_errors() -> None:
    hits: list[str] = []

    async def handler(request: web.Request) -> web.Response:
        body = await request.json()
        hits.append(body["method"])
        if len(hits) == 1:
            return web.Response(status=503)
        return web.json_response({"jsonrpc": "2.0", "id": body["id"], "result": 1234})

    async def scenario():
        runner, url = await _serve(handler)
        rpc = JsonRpcService(url)
        try:
            return await rpc.call("getSlot")
        finally:
            await rpc.close()
            await runner.cleanup()

    assert asyncio.run(scenario()) == 1234
    assert hits == ["getSlot", "getSlot"]


def test_error_object_raises_rpc_error() -> None:
    async def handler(request: web.Request) -> web.Response:
        body = await request.json()
        return web.json_response({"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32602, "message": "bad params"}})

    async def scenario():
        runner, url = await _serve(handler)
        rpc = JsonRpcService(url)
        try:
            await rpc.call("getBalance", ["x"])
        finally:
            await rpc.close()
            await runner.cleanup()

    with pytest.raises(RpcError) as info:
        asyncio.run(scenario())
    assert info.value.code == -32602


def test_exhausted_retries_are_transient() -> None:
    ticks: list[str] = []

    async def handler(request: web.Request) -> web.Response:
        return web.Response(status=502)

    async def scenario():
        runner, url = await _serve(handler)
        rpc = JsonRpcService(url, retries_5xx=1, error_tick=lambda key, err=None: ticks.append(key))
        try:
            await rpc.call("getSlot")
        finally:
            await rpc.close()
            await runner.cleanup()

    with pytest.raises(TransientNetworkError):
        asyncio.run(scenario())
    assert ticks == ["rpc_call"]
