"""EVM JSON-RPC client for read-only ``eth_call`` over aiohttp."""
from __future__ import annotations

import asyncio
import itertools
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ..codec import from_hex, to_hex
from ..errors import TransportError

logger = logging.getLogger(__name__)


class JsonRpcClient:
    """Single-endpoint JSON-RPC client.

    Failures are raised immediately as TransportError; retrying is left to
    the caller.
    """

    def __init__(self, url: str, timeout: int = 30) -> None:
        self.url = url
        self.timeout = timeout
        self._ids = itertools.count(1)

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make a JSON-RPC call and return its ``result`` member."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.post(
                    self.url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        raise TransportError(
                            f"{method}: HTTP {response.status} from RPC endpoint"
                        )
                    result = await response.json(content_type=None)
        except TransportError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as e:
            logger.debug("RPC %s to %s failed: %s", method, self.url, e)
            raise TransportError(f"{method}: {e.__class__.__name__}: {e}") from e

        if not isinstance(result, dict):
            raise TransportError(f"{method}: malformed JSON-RPC response")
        if result.get("error") is not None:
            raise TransportError(f"{method}: RPC Error: {result['error']}")
        if "result" not in result:
            raise TransportError(f"{method}: response has no result")

        return result["result"]

    async def eth_call(self, to: str, data: bytes, block: str = "latest") -> bytes:
        """Run a read-only call against ``to`` and return the raw output."""
        result = await self.rpc_call(
            "eth_call", [{"to": to, "data": to_hex(data)}, block]
        )
        return from_hex(result)
