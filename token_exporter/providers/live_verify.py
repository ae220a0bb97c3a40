"""
Live-verify provider - Reads decimals/symbol/name from the token contract.

============================================================
CONTRACT
============================================================
- Three eth_call reads issued concurrently against chain.rpc_url
- Each read bounded by its own timeout
- All three must succeed, otherwise InfoUnavailableError
- No partial records, no retries

symbol() and name() are decoded as ABI strings, falling back to
right-padded bytes32 for legacy tokens. decimals() is decoded as
uint256.

============================================================
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import encode_hex, function_signature_to_4byte_selector

from token_exporter.exceptions import InfoUnavailableError, RpcCallError
from token_exporter.models import CanonicalAddress, TargetChain, TokenFields
from token_exporter.providers.base import TokenInfoProvider
from token_exporter.providers.rpc_client import JsonRpcClient


logger = logging.getLogger(__name__)


DECIMALS_SELECTOR = encode_hex(function_signature_to_4byte_selector("decimals()"))
SYMBOL_SELECTOR = encode_hex(function_signature_to_4byte_selector("symbol()"))
NAME_SELECTOR = encode_hex(function_signature_to_4byte_selector("name()"))

BYTES32_LENGTH = 32


def decode_uint(data: bytes) -> int:
    if not data:
        raise ValueError("empty return data")
    (value,) = decode(["uint256"], data)
    return int(value)


def decode_text(data: bytes) -> str:
    if not data:
        raise ValueError("empty return data")
    if len(data) == BYTES32_LENGTH:
        return data.rstrip(b"\x00").decode("utf-8")
    (value,) = decode(["string"], data)
    return value


class LiveVerifyProvider(TokenInfoProvider):
    """Resolves token fields with eth_call against the chain's RPC endpoint."""

    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        rpc: JsonRpcClient,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._rpc = rpc
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "live"

    async def fetch(
        self,
        chain: TargetChain,
        address: CanonicalAddress,
        fallback: TokenFields,
    ) -> TokenFields:
        if not chain.supports_live_reads:
            raise InfoUnavailableError(
                message="No RPC endpoint configured",
                chain=chain.chain_id,
                address=address.hex,
                failed_reads=["decimals", "symbol", "name"],
            )

        reads = {
            "decimals": self._read(chain, address, DECIMALS_SELECTOR, decode_uint),
            "symbol": self._read(chain, address, SYMBOL_SELECTOR, decode_text),
            "name": self._read(chain, address, NAME_SELECTOR, decode_text),
        }
        outcomes = await asyncio.gather(*reads.values(), return_exceptions=True)
        values = dict(zip(reads.keys(), outcomes))

        failed = {key: value for key, value in values.items() if isinstance(value, BaseException)}
        if failed:
            first_error: Optional[BaseException] = next(iter(failed.values()))
            details = "; ".join(f"{key}: {err}" for key, err in failed.items())
            raise InfoUnavailableError(
                message=f"Contract reads failed ({details})",
                chain=chain.chain_id,
                address=address.hex,
                failed_reads=list(failed),
                original_error=first_error if isinstance(first_error, Exception) else None,
            )

        fields = TokenFields(
            symbol=values["symbol"],
            name=values["name"],
            decimals=values["decimals"],
        )
        if fields.decimals != fallback.decimals:
            logger.debug(
                f"[{chain.chain_id}] {address.hex}: on-chain decimals {fields.decimals} "
                f"differ from feed value {fallback.decimals}"
            )
        return fields

    async def _read(
        self,
        chain: TargetChain,
        address: CanonicalAddress,
        selector: str,
        decoder: Callable[[bytes], Any],
    ) -> Any:
        try:
            data = await asyncio.wait_for(
                self._rpc.eth_call(chain.rpc_url, address.hex, selector),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise RpcCallError(
                message=f"Timed out after {self._timeout}s",
                chain=chain.chain_id,
                address=address.hex,
                rpc_method="eth_call",
                original_error=e,
            ) from e

        try:
            return decoder(data)
        except (DecodingError, UnicodeDecodeError, ValueError) as e:
            raise RpcCallError(
                message=f"Undecodable return data for {selector}: {e}",
                chain=chain.chain_id,
                address=address.hex,
                rpc_method="eth_call",
                original_error=e,
            ) from e
