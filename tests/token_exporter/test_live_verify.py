"""
Live-Verify Provider Tests.

============================================================
PURPOSE
============================================================
Contract reads through JsonRpcClient against a local JSON-RPC
server. A token either gets all three fields or none.

============================================================
"""

import json

import aiohttp
import pytest

from token_exporter.addresses import normalize_address
from token_exporter.chains import ChainResolver
from token_exporter.config import ExportConfig
from token_exporter.exceptions import ErrorKind, InfoUnavailableError, RpcCallError
from token_exporter.models import TargetChain, TokenFields
from token_exporter.pipeline import BatchPipeline
from token_exporter.providers import JsonRpcClient, LiveVerifyProvider
from token_exporter.providers.live_verify import (
    DECIMALS_SELECTOR,
    NAME_SELECTOR,
    SYMBOL_SELECTOR,
    decode_text,
    decode_uint,
)
from token_exporter.reporting import NullProgressReporter
from token_exporter.storage import OutputStore

from tests.token_exporter.fakes import (
    USDC_LOWER,
    RpcBehavior,
    abi_bytes32,
    abi_string,
    abi_uint,
    rpc_app,
    serve,
    usdc_record,
)


FALLBACK = TokenFields(symbol="FEED", name="Feed Name", decimals=18)


def target_for(server) -> TargetChain:
    return TargetChain(chain_id="ethereum", rpc_url=str(server.make_url("/rpc")))


# ============================================================
# DECODING
# ============================================================

class TestDecoding:
    """Tests for return data decoding."""

    def test_decode_uint(self):
        assert decode_uint(bytes.fromhex(abi_uint(6)[2:])) == 6

    def test_decode_string(self):
        assert decode_text(bytes.fromhex(abi_string("USD Coin")[2:])) == "USD Coin"

    def test_decode_bytes32(self):
        assert decode_text(bytes.fromhex(abi_bytes32("MKR")[2:])) == "MKR"

    def test_empty_data(self):
        with pytest.raises(ValueError):
            decode_text(b"")
        with pytest.raises(ValueError):
            decode_uint(b"")

    def test_selectors(self):
        assert DECIMALS_SELECTOR == "0x313ce567"
        assert SYMBOL_SELECTOR == "0x95d89b41"
        assert NAME_SELECTOR == "0x06fdde03"


# ============================================================
# PROVIDER
# ============================================================

class TestLiveVerifyProvider:
    """Tests for LiveVerifyProvider.fetch."""

    @pytest.mark.asyncio
    async def test_reads_all_fields(self):
        behavior = RpcBehavior()
        behavior.set_token(USDC_LOWER, "USDC", "USD Coin", 6)

        async with serve(rpc_app(behavior)) as server:
            async with aiohttp.ClientSession() as session:
                provider = LiveVerifyProvider(JsonRpcClient(session))
                fields = await provider.fetch(target_for(server), normalize_address(USDC_LOWER), FALLBACK)

        assert fields == TokenFields(symbol="USDC", name="USD Coin", decimals=6)
        assert len(behavior.calls) == 3

    @pytest.mark.asyncio
    async def test_bytes32_symbol(self):
        behavior = RpcBehavior()
        behavior.set_token(USDC_LOWER, "MKR", "Maker", 18)
        behavior.results[(USDC_LOWER, SYMBOL_SELECTOR)] = abi_bytes32("MKR")

        async with serve(rpc_app(behavior)) as server:
            async with aiohttp.ClientSession() as session:
                provider = LiveVerifyProvider(JsonRpcClient(session))
                fields = await provider.fetch(target_for(server), normalize_address(USDC_LOWER), FALLBACK)

        assert fields.symbol == "MKR"

    @pytest.mark.asyncio
    async def test_one_failed_read_fails_the_token(self):
        behavior = RpcBehavior()
        behavior.set_token(USDC_LOWER, "USDC", "USD Coin", 6)
        behavior.errors[(USDC_LOWER, NAME_SELECTOR)] = {"code": 3, "message": "execution reverted"}

        async with serve(rpc_app(behavior)) as server:
            async with aiohttp.ClientSession() as session:
                provider = LiveVerifyProvider(JsonRpcClient(session))
                with pytest.raises(InfoUnavailableError) as exc_info:
                    await provider.fetch(target_for(server), normalize_address(USDC_LOWER), FALLBACK)

        assert exc_info.value.kind == ErrorKind.INFO_UNAVAILABLE
        assert exc_info.value.failed_reads == ["name"]
        assert "execution reverted" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_empty_return_data(self):
        """Test a contract without symbol()."""
        behavior = RpcBehavior()
        behavior.set_token(USDC_LOWER, "USDC", "USD Coin", 6)
        del behavior.results[(USDC_LOWER, SYMBOL_SELECTOR)]

        async with serve(rpc_app(behavior)) as server:
            async with aiohttp.ClientSession() as session:
                provider = LiveVerifyProvider(JsonRpcClient(session))
                with pytest.raises(InfoUnavailableError) as exc_info:
                    await provider.fetch(target_for(server), normalize_address(USDC_LOWER), FALLBACK)

        assert exc_info.value.failed_reads == ["symbol"]

    @pytest.mark.asyncio
    async def test_read_timeout(self):
        behavior = RpcBehavior()
        behavior.set_token(USDC_LOWER, "USDC", "USD Coin", 6)
        behavior.delay = 0.3

        async with serve(rpc_app(behavior)) as server:
            async with aiohttp.ClientSession() as session:
                provider = LiveVerifyProvider(JsonRpcClient(session), timeout=0.05)
                with pytest.raises(InfoUnavailableError) as exc_info:
                    await provider.fetch(target_for(server), normalize_address(USDC_LOWER), FALLBACK)

        assert sorted(exc_info.value.failed_reads) == ["decimals", "name", "symbol"]

    @pytest.mark.asyncio
    async def test_chain_without_rpc(self):
        async with aiohttp.ClientSession() as session:
            provider = LiveVerifyProvider(JsonRpcClient(session))
            with pytest.raises(InfoUnavailableError) as exc_info:
                await provider.fetch(TargetChain(chain_id="kava"), normalize_address(USDC_LOWER), FALLBACK)

        assert exc_info.value.chain == "kava"


# ============================================================
# JSON-RPC CLIENT
# ============================================================

class TestJsonRpcClient:
    """Tests for transport-level failures."""

    @pytest.mark.asyncio
    async def test_unreachable_endpoint(self):
        async with aiohttp.ClientSession() as session:
            client = JsonRpcClient(session, timeout=5)
            with pytest.raises(RpcCallError) as exc_info:
                await client.eth_call("http://127.0.0.1:1/rpc", USDC_LOWER, NAME_SELECTOR)

        assert exc_info.value.rpc_method == "eth_call"

    @pytest.mark.asyncio
    async def test_rpc_error_payload(self):
        behavior = RpcBehavior()
        behavior.errors[(USDC_LOWER, NAME_SELECTOR)] = {"code": -32000, "message": "header not found"}

        async with serve(rpc_app(behavior)) as server:
            async with aiohttp.ClientSession() as session:
                client = JsonRpcClient(session)
                with pytest.raises(RpcCallError) as exc_info:
                    await client.eth_call(str(server.make_url("/rpc")), USDC_LOWER, NAME_SELECTOR)

        assert exc_info.value.rpc_error["code"] == -32000


# ============================================================
# PIPELINE INTEGRATION
# ============================================================

class TestLiveExport:
    """Tests for the pipeline with the live-verify strategy."""

    @pytest.mark.asyncio
    async def test_on_chain_fields_written(self, tmp_path):
        behavior = RpcBehavior()
        behavior.set_token(USDC_LOWER, "USDC.e", "Bridged USD Coin", 6)

        async with serve(rpc_app(behavior)) as server:
            async with aiohttp.ClientSession() as session:
                store = OutputStore(tmp_path)
                pipeline = BatchPipeline(
                    config=ExportConfig(output_dir=tmp_path),
                    store=store,
                    provider=LiveVerifyProvider(JsonRpcClient(session)),
                    resolver=ChainResolver(rpc_overrides={"ethereum": str(server.make_url("/rpc"))}),
                    reporter=NullProgressReporter(),
                )
                summary = await pipeline.run([usdc_record(decimals=None, platforms={"ethereum": USDC_LOWER})])

        assert summary.done == 1
        data = json.loads((tmp_path / "ethereum" / f"{USDC_LOWER}.json").read_text(encoding="utf-8"))
        assert data["symbol"] == "USDC.e"
        assert data["name"] == "Bridged USD Coin"
        assert data["decimals"] == 6

    @pytest.mark.asyncio
    async def test_partial_reads_write_nothing(self, tmp_path):
        behavior = RpcBehavior()
        behavior.set_token(USDC_LOWER, "USDC", "USD Coin", 6)
        behavior.errors[(USDC_LOWER, DECIMALS_SELECTOR)] = {"code": 3, "message": "execution reverted"}

        async with serve(rpc_app(behavior)) as server:
            async with aiohttp.ClientSession() as session:
                pipeline = BatchPipeline(
                    config=ExportConfig(output_dir=tmp_path),
                    store=OutputStore(tmp_path),
                    provider=LiveVerifyProvider(JsonRpcClient(session)),
                    resolver=ChainResolver(rpc_overrides={"ethereum": str(server.make_url("/rpc"))}),
                    reporter=NullProgressReporter(),
                )
                summary = await pipeline.run([usdc_record(platforms={"ethereum": USDC_LOWER})])

        assert summary.failed == 1
        assert summary.failures_by_kind[ErrorKind.INFO_UNAVAILABLE] == 1
        assert not (tmp_path / "ethereum" / f"{USDC_LOWER}.json").exists()
