"""Minimal async JSON-RPC client for read calls against public chain RPCs."""

from __future__ import annotations

import itertools
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..core.payments.chain_registry import ChainRegistry, get_chain_registry


class RpcError(RuntimeError):
    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class JsonRpcClient:
    """Sends JSON-RPC requests to the registry's RPC URL for a chain."""

    def __init__(
        self,
        *,
        registry: Optional[ChainRegistry] = None,
        rpc_urls: Optional[Dict[int, str]] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._registry = registry or get_chain_registry()
        self._rpc_urls = dict(rpc_urls or {})
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._transport = transport
        self._ids = itertools.count(1)

    def rpc_url(self, chain_id: int) -> str:
        url = self._rpc_urls.get(chain_id)
        if url:
            return url
        return self._registry.get_chain(chain_id).rpc_url

    async def call(self, chain_id: int, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
            response = await client.post(self.rpc_url(chain_id), json=payload)
            response.raise_for_status()
            result = response.json()

        if "error" in result:
            error = result["error"] or {}
            raise RpcError(f"RPC error: {error.get('message', error)}", code=error.get("code"))
        return result.get("result")

    async def eth_call(self, chain_id: int, to: str, data: str) -> str:
        return await self.call(chain_id, "eth_call", [{"to": to, "data": data}, "latest"])
