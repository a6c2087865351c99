"""Async client for the LI.FI routing and execution API."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..config import settings


def error_message(exc: Exception) -> Optional[str]:
    """Best-effort extraction of the service's error message."""
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            text = exc.response.text.strip()
            return text[:300] or None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            if isinstance(message, str) and message:
                return message
        return None
    text = str(exc).strip()
    return text or None


class LifiProvider:
    """Thin wrapper around https://li.quest/v1 endpoints.

    Constructed explicitly and injected into the route engine, the balance
    inventory and the execution driver; no module-level SDK state.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        integrator: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.lifi_base_url).rstrip("/")
        self.api_key = settings.lifi_api_key if api_key is None else api_key
        self.integrator = integrator or settings.lifi_integrator
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": "PayFlowLifiClient/0.1",
        }
        if self.api_key:
            headers["x-lifi-api-key"] = self.api_key
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_s,
            transport=self._transport,
        ) as client:
            response = await client.request(method, path, params=params, json=json, headers=self._headers())
            response.raise_for_status()
            return response

    # ------------------------------------------------------------------
    # Quotes and routes
    # ------------------------------------------------------------------

    async def get_quote(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Single-step quote sized by ``fromAmount``.

        The response is a step object carrying a ready ``transactionRequest``.
        """
        query = {"integrator": self.integrator, **params}
        resp = await self._request("GET", "/quote", params=_clean(query))
        return resp.json()

    async def get_quote_to_amount(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Single-step quote sized by the amount the recipient must receive (``toAmount``)."""
        query = {"integrator": self.integrator, **params}
        resp = await self._request("GET", "/quote/toAmount", params=_clean(query))
        return resp.json()

    async def get_routes(self, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        body = dict(payload)
        options = dict(body.get("options") or {})
        options.setdefault("integrator", self.integrator)
        body["options"] = options
        resp = await self._request("POST", "/advanced/routes", json=body)
        data = resp.json()
        routes = data.get("routes") if isinstance(data, dict) else None
        return routes or []

    async def get_step_transaction(self, step: Dict[str, Any]) -> Dict[str, Any]:
        """Populate a route step with its ``transactionRequest``."""
        resp = await self._request("POST", "/advanced/stepTransaction", json=step)
        return resp.json()

    # ------------------------------------------------------------------
    # Status and balances
    # ------------------------------------------------------------------

    async def get_status(
        self,
        tx_hash: str,
        *,
        from_chain: Optional[int] = None,
        to_chain: Optional[int] = None,
        bridge: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {"txHash": tx_hash, "fromChain": from_chain, "toChain": to_chain, "bridge": bridge}
        resp = await self._request("GET", "/status", params=_clean(params))
        return resp.json()

    async def get_token_balances(self, wallet_address: str, chain_ids: Iterable[int]) -> Dict[str, List[Dict[str, Any]]]:
        """Holdings keyed by chain id (as a string), one token list per chain."""
        params = {
            "walletAddress": wallet_address,
            "chains": ",".join(str(chain_id) for chain_id in chain_ids),
        }
        resp = await self._request("GET", "/token/balances", params=params)
        data = resp.json()
        if isinstance(data, dict) and isinstance(data.get("balances"), dict):
            return data["balances"]
        return data if isinstance(data, dict) else {}

    async def ping(self) -> bool:
        try:
            await self._request("GET", "/chains", params={"chainTypes": "EVM"})
        except httpx.HTTPError:
            return False
        return True


def _clean(params: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None and value != ""}
