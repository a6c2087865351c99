"""
Multi-leg route execution against the LI.FI API.

Walks a raw route step by step: allowance, step transaction, submission,
source confirmation and, for bridges, destination delivery. The route's
``execution`` blocks are updated in place on a private copy and a deep
copy is handed to the update hook after every change.
"""

import asyncio
import copy
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from ...providers.lifi import LifiProvider
from .amounts import parse_int
from .approval import ApprovalManager
from .chain_registry import ChainRegistry, get_chain_registry
from .errors import (
    ConfirmationTimeoutError,
    DestinationDeliveryError,
    ExchangeRateRejectedError,
    QuoteError,
)
from .normalize import parse_transaction_request, step_requires_approval
from .wallet import WalletClient


logger = logging.getLogger(__name__)

SwitchChainHook = Callable[[int], Awaitable[WalletClient]]
UpdateRouteHook = Callable[[Dict[str, Any]], Any]
AcceptExchangeRateHook = Callable[[int, int], Any]


@dataclass
class ExecutionHooks:
    """Callbacks supplied by the caller of ``execute_route``.

    ``switch_chain_hook`` activates a chain and returns the wallet handle
    that signs on it. ``update_route_hook`` receives a snapshot on every
    state change. ``accept_exchange_rate_update_hook`` is asked whether to
    continue when the re-quoted minimum output drops; without one, drops
    are rejected.
    """
    switch_chain_hook: SwitchChainHook
    update_route_hook: Optional[UpdateRouteHook] = None
    accept_exchange_rate_update_hook: Optional[AcceptExchangeRateHook] = None


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _strip_execution(step: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in step.items() if key != "execution"}


class LifiRouteDriver:
    """Executes routes that need more than one prepared transaction."""

    def __init__(
        self,
        provider: LifiProvider,
        approvals: ApprovalManager,
        *,
        registry: Optional[ChainRegistry] = None,
        status_poll_interval_seconds: float = 5.0,
        status_timeout_seconds: float = 1800,
    ) -> None:
        self._provider = provider
        self._approvals = approvals
        self._registry = registry or get_chain_registry()
        self.status_poll_interval_seconds = status_poll_interval_seconds
        self.status_timeout_seconds = status_timeout_seconds

    async def execute_route(self, route: Dict[str, Any], hooks: ExecutionHooks) -> Dict[str, Any]:
        """Run every step of ``route`` in order and return the final snapshot."""
        live = copy.deepcopy(route)
        for step in live.get("steps") or []:
            await self._execute_step(live, step, hooks)
        return copy.deepcopy(live)

    # ------------------------------------------------------------------
    # Step execution
    # ------------------------------------------------------------------

    async def _emit(self, route: Dict[str, Any], hooks: ExecutionHooks) -> None:
        if hooks.update_route_hook is not None:
            await _maybe_await(hooks.update_route_hook(copy.deepcopy(route)))

    def _start_process(self, step: Dict[str, Any], process_type: str, status: str = "STARTED") -> Dict[str, Any]:
        process = {"type": process_type, "status": status, "startedAt": int(time.time() * 1000)}
        step["execution"]["process"].append(process)
        return process

    def _set_tx(self, process: Dict[str, Any], chain_id: int, tx_hash: str) -> None:
        process["txHash"] = tx_hash
        process["txLink"] = self._registry.explorer_tx_url(chain_id, tx_hash)

    async def _execute_step(self, route: Dict[str, Any], step: Dict[str, Any], hooks: ExecutionHooks) -> None:
        action = step.get("action") or {}
        from_chain = parse_int(action.get("fromChainId"))
        to_chain = parse_int(action.get("toChainId"), default=from_chain)
        from_address = action.get("fromAddress") or route.get("fromAddress")

        step["execution"] = {"status": "PENDING", "process": []}
        await self._emit(route, hooks)

        process: Optional[Dict[str, Any]] = None
        try:
            wallet = await hooks.switch_chain_hook(from_chain)

            if step_requires_approval(step):
                process = self._start_process(step, "TOKEN_ALLOWANCE")
                await self._emit(route, hooks)
                await self._ensure_allowance(route, step, process, wallet, from_chain, from_address, hooks)

            main_type = "CROSS_CHAIN" if from_chain != to_chain else "SWAP"
            process = self._start_process(step, main_type)
            await self._emit(route, hooks)

            await self._refresh_transaction(step, hooks)
            transaction = parse_transaction_request(step.get("transactionRequest"), from_chain)
            if transaction is None:
                raise QuoteError("Routing service returned no transaction for this step")

            process["status"] = "ACTION_REQUIRED"
            await self._emit(route, hooks)

            tx_hash = await wallet.send_transaction(transaction.to_wallet_params(from_address))
            self._set_tx(process, from_chain, tx_hash)
            process["status"] = "PENDING"
            await self._emit(route, hooks)

            await wallet.wait_for_receipt(tx_hash, from_chain)
            process["status"] = "DONE"

            if main_type == "CROSS_CHAIN":
                process = self._start_process(step, "RECEIVING_CHAIN", status="PENDING")
                await self._emit(route, hooks)
                status = await self._wait_for_destination(step, tx_hash, from_chain, to_chain)
                receiving = status.get("receiving") or {}
                if receiving.get("txHash"):
                    process["txHash"] = receiving["txHash"]
                    process["txLink"] = receiving.get("txLink") or self._registry.explorer_tx_url(
                        to_chain, receiving["txHash"]
                    )
                process["status"] = "DONE"

            step["execution"]["status"] = "DONE"
            await self._emit(route, hooks)
        except Exception as exc:
            if process is not None and process.get("status") != "DONE":
                process["status"] = "FAILED"
                process["error"] = {"message": getattr(exc, "message", None) or str(exc)}
            step["execution"]["status"] = "FAILED"
            await self._emit(route, hooks)
            raise

    async def _ensure_allowance(
        self,
        route: Dict[str, Any],
        step: Dict[str, Any],
        process: Dict[str, Any],
        wallet: WalletClient,
        chain_id: int,
        owner: str,
        hooks: ExecutionHooks,
    ) -> None:
        action = step.get("action") or {}
        token = (action.get("fromToken") or {}).get("address")
        spender = (step.get("estimate") or {}).get("approvalAddress")
        required = parse_int(action.get("fromAmount"))

        allowance = await self._approvals.get_allowance(token, owner, spender, chain_id)
        if allowance >= required:
            process["status"] = "DONE"
            return

        process["status"] = "ACTION_REQUIRED"
        await self._emit(route, hooks)

        approval = self._approvals.build_approval_transaction(token, spender, amount=required, chain_id=chain_id)
        tx_hash = await wallet.send_transaction(approval.to_wallet_params(owner))
        self._set_tx(process, chain_id, tx_hash)
        process["status"] = "PENDING"
        await self._emit(route, hooks)

        await wallet.wait_for_receipt(tx_hash, chain_id)
        process["status"] = "DONE"

    async def _refresh_transaction(self, step: Dict[str, Any], hooks: ExecutionHooks) -> None:
        """Fetch the step's transaction and apply the exchange-rate policy."""
        old_minimum = parse_int((step.get("estimate") or {}).get("toAmountMin"))
        try:
            updated = await self._provider.get_step_transaction(_strip_execution(step))
        except httpx.HTTPError as exc:
            raise QuoteError(str(exc) or None) from exc

        new_minimum = parse_int((updated.get("estimate") or {}).get("toAmountMin"), default=old_minimum)
        if new_minimum < old_minimum:
            accepted = False
            if hooks.accept_exchange_rate_update_hook is not None:
                accepted = bool(await _maybe_await(hooks.accept_exchange_rate_update_hook(old_minimum, new_minimum)))
            if not accepted:
                raise ExchangeRateRejectedError(old_minimum, new_minimum)
            logger.info(f"Accepted exchange rate update: toAmountMin {old_minimum} -> {new_minimum}")

        if updated.get("estimate"):
            step["estimate"] = updated["estimate"]
        step["transactionRequest"] = updated.get("transactionRequest")

    async def _wait_for_destination(
        self,
        step: Dict[str, Any],
        tx_hash: str,
        from_chain: int,
        to_chain: int,
    ) -> Dict[str, Any]:
        """Poll ``/status`` until the bridge reports DONE or FAILED."""
        started = time.monotonic()

        while True:
            try:
                status = await self._provider.get_status(
                    tx_hash,
                    from_chain=from_chain,
                    to_chain=to_chain,
                    bridge=step.get("tool"),
                )
            except httpx.HTTPError as exc:
                logger.warning(f"Error checking bridge status for {tx_hash}: {exc}")
                status = {}

            state = str(status.get("status", "")).upper()
            substatus = status.get("substatus")
            if state == "DONE":
                if str(substatus or "").upper() == "REFUNDED":
                    raise DestinationDeliveryError(tx_hash, state, substatus)
                return status
            if state == "FAILED":
                raise DestinationDeliveryError(tx_hash, state, substatus)

            if time.monotonic() - started >= self.status_timeout_seconds:
                raise ConfirmationTimeoutError(
                    tx_hash,
                    self.status_timeout_seconds,
                    self._registry.explorer_tx_url(from_chain, tx_hash),
                )

            await asyncio.sleep(self.status_poll_interval_seconds)
