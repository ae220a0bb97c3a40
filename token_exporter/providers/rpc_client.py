"""
JSON-RPC Client - Minimal aiohttp transport for eth_call.

Single attempt per call. No retries, no caching.
"""

import asyncio
import itertools
import logging
from typing import Any

import aiohttp
from eth_utils import decode_hex

from token_exporter.exceptions import RpcCallError


logger = logging.getLogger(__name__)


class JsonRpcClient:
    """Posts JSON-RPC 2.0 requests over a shared aiohttp session."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        timeout: float = 10.0,
    ) -> None:
        self._session = session
        self._timeout = timeout
        self._ids = itertools.count(1)

    @property
    def timeout(self) -> float:
        return self._timeout

    async def call(self, url: str, method: str, params: list[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        logger.debug(f"[rpc] {method} #{payload['id']} -> {url}")
        try:
            async with self._session.post(
                url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise RpcCallError(
                        message=f"HTTP {response.status}: {body[:200]}",
                        rpc_method=method,
                        status_code=response.status,
                    )
                data = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise RpcCallError(
                message=f"Connection error: {e}",
                rpc_method=method,
                original_error=e,
            ) from e
        except asyncio.TimeoutError as e:
            raise RpcCallError(
                message=f"Timed out after {self._timeout}s",
                rpc_method=method,
                original_error=e,
            ) from e
        except ValueError as e:
            raise RpcCallError(
                message=f"Invalid JSON response: {e}",
                rpc_method=method,
                original_error=e,
            ) from e

        if not isinstance(data, dict):
            raise RpcCallError(message="Malformed JSON-RPC response", rpc_method=method)
        if data.get("error") is not None:
            raise RpcCallError(
                message=f"RPC error: {data['error']}",
                rpc_method=method,
                rpc_error=data["error"],
            )
        if "result" not in data:
            raise RpcCallError(message="JSON-RPC response has no result", rpc_method=method)
        return data["result"]

    async def eth_call(
        self,
        url: str,
        to: str,
        data: str,
        block: str = "latest",
    ) -> bytes:
        """Run eth_call and return the raw return data."""
        result = await self.call(url, "eth_call", [{"to": to, "data": data}, block])
        if not isinstance(result, str):
            raise RpcCallError(
                message=f"eth_call returned {type(result).__name__}, expected hex string",
                rpc_method="eth_call",
                address=to,
            )
        try:
            return decode_hex(result)
        except ValueError as e:
            raise RpcCallError(
                message=f"eth_call returned non-hex data: {result[:66]}",
                rpc_method="eth_call",
                address=to,
                original_error=e,
            ) from e
