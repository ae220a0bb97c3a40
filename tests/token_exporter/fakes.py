"""
Test doubles shared by the token exporter tests.

Local aiohttp servers stand in for the token feed and for JSON-RPC
endpoints, so the real clients are exercised end to end.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from aiohttp import web
from aiohttp.test_utils import TestServer
from eth_abi import encode
from eth_utils import encode_hex

from token_exporter.models import CanonicalAddress, RawTokenRecord, TargetChain, TokenFields
from token_exporter.providers.base import TokenInfoProvider
from token_exporter.providers.live_verify import DECIMALS_SELECTOR, NAME_SELECTOR, SYMBOL_SELECTOR


USDC_CHECKSUM = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
USDC_LOWER = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
USDC_POLYGON = "0x2791bca1f2de4661ed88a30c99a7a9449aa84174"


def usdc_record(**overrides: Any) -> RawTokenRecord:
    values = {
        "symbol": "USDC",
        "name": "USD Coin",
        "decimals": 6,
        "logo_uri": "https://icons.llamao.fi/icons/tokens/1/usdc.png",
        "platforms": {
            "ethereum": USDC_CHECKSUM,
            "polygon-pos": USDC_POLYGON,
        },
    }
    values.update(overrides)
    return RawTokenRecord(**values)


def numbered_address(index: int) -> str:
    return "0x" + f"{index:040x}"


# ============================================================
# LOCAL SERVERS
# ============================================================

@asynccontextmanager
async def serve(app: web.Application) -> AsyncIterator[TestServer]:
    """Run app on a random local port for the duration of the block."""
    server = TestServer(app)
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


def feed_app(payload: Any = None, status: int = 200, body: Optional[str] = None) -> web.Application:
    """Token feed endpoint at /tokenlist/all.json."""
    async def handler(request: web.Request) -> web.Response:
        if body is not None:
            return web.Response(status=status, text=body, content_type="application/json")
        return web.json_response(payload, status=status)

    app = web.Application()
    app.router.add_get("/tokenlist/all.json", handler)
    return app


def abi_string(value: str) -> str:
    return encode_hex(encode(["string"], [value]))


def abi_uint(value: int) -> str:
    return encode_hex(encode(["uint256"], [value]))


def abi_bytes32(value: str) -> str:
    return encode_hex(value.encode("utf-8").ljust(32, b"\x00"))


class RpcBehavior:
    """Per (contract, selector) responses for the fake JSON-RPC endpoint."""

    def __init__(self) -> None:
        self.results: dict[tuple[str, str], str] = {}
        self.errors: dict[tuple[str, str], dict[str, Any]] = {}
        self.delay: float = 0.0
        self.calls: list[tuple[str, str]] = []

    def set_token(self, address: str, symbol: str, name: str, decimals: int) -> None:
        address = address.lower()
        self.results[(address, DECIMALS_SELECTOR)] = abi_uint(decimals)
        self.results[(address, SYMBOL_SELECTOR)] = abi_string(symbol)
        self.results[(address, NAME_SELECTOR)] = abi_string(name)


def rpc_app(behavior: RpcBehavior) -> web.Application:
    """JSON-RPC endpoint at /rpc answering eth_call from behavior."""
    async def handler(request: web.Request) -> web.Response:
        payload = await request.json()
        call, _block = payload["params"]
        key = (call["to"].lower(), call["data"])
        behavior.calls.append(key)

        if behavior.delay:
            await asyncio.sleep(behavior.delay)

        response: dict[str, Any] = {"jsonrpc": "2.0", "id": payload["id"]}
        if key in behavior.errors:
            response["error"] = behavior.errors[key]
        elif key in behavior.results:
            response["result"] = behavior.results[key]
        else:
            response["result"] = "0x"
        return web.json_response(response)

    app = web.Application()
    app.router.add_post("/rpc", handler)
    return app


# ============================================================
# PROVIDERS
# ============================================================

class TrackingProvider(TokenInfoProvider):
    """Returns the feed fields after a per-address delay, recording concurrency."""

    def __init__(self, delays: Optional[dict[str, float]] = None) -> None:
        self._delays = delays or {}
        self.events: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def name(self) -> str:
        return "tracking"

    async def fetch(
        self,
        chain: TargetChain,
        address: CanonicalAddress,
        fallback: TokenFields,
    ) -> TokenFields:
        self.events.append(("start", address.hex))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self._delays.get(address.hex, 0.0))
        finally:
            self.in_flight -= 1
            self.events.append(("end", address.hex))
        return fallback
