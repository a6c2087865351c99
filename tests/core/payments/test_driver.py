"""
Tests for multi-leg route execution through the LI.FI route driver.
"""

import pytest
from unittest.mock import AsyncMock

from payflow.core.payments.approval import ApprovalManager
from payflow.core.payments.driver import ExecutionHooks, LifiRouteDriver
from payflow.core.payments.errors import DestinationDeliveryError, ExchangeRateRejectedError
from payflow.core.payments.executor import PaymentExecutor
from payflow.core.payments.models import ExecutionState, StepStatus
from payflow.core.payments.normalize import normalize_route
from payflow.core.payments.wallet import WalletClient
from payflow.providers.rpc import JsonRpcClient


TX_REQUEST = {
    "to": "0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE",
    "data": "0xabcdef",
    "value": "0x0",
    "gasLimit": "0x30d40",
}


def _provider(to_amount_min: str = "9900000", status=None):
    provider = AsyncMock()

    def step_transaction(step):
        updated = dict(step)
        updated["estimate"] = dict(step["estimate"], toAmountMin=to_amount_min)
        updated["transactionRequest"] = dict(TX_REQUEST)
        return updated

    provider.get_step_transaction.side_effect = step_transaction
    provider.get_status.return_value = status or {
        "status": "DONE",
        "substatus": "COMPLETED",
        "receiving": {"txHash": "0xrecv", "chainId": 8453},
    }
    return provider


def _approvals(allowance: int) -> ApprovalManager:
    approvals = ApprovalManager(JsonRpcClient())
    approvals.get_allowance = AsyncMock(return_value=allowance)
    return approvals


def _driver(provider, allowance: int = 10**12) -> LifiRouteDriver:
    return LifiRouteDriver(
        provider,
        _approvals(allowance),
        status_poll_interval_seconds=0,
        status_timeout_seconds=5,
    )


def _hooks(wallet, snapshots, accept=None) -> ExecutionHooks:
    async def switch_chain_hook(chain_id):
        await wallet.ensure_chain(chain_id)
        return wallet

    return ExecutionHooks(
        switch_chain_hook=switch_chain_hook,
        update_route_hook=snapshots.append,
        accept_exchange_rate_update_hook=accept,
    )


@pytest.mark.asyncio
async def test_cross_chain_step_waits_for_receiving_chain(route_factory, wallet_provider):
    provider = _provider()
    wallet = WalletClient(wallet_provider, poll_interval_seconds=0)
    snapshots = []

    final = await _driver(provider).execute_route(route_factory("r1"), _hooks(wallet, snapshots))

    execution = final["steps"][0]["execution"]
    assert execution["status"] == "DONE"
    processes = {process["type"]: process for process in execution["process"]}
    assert processes["TOKEN_ALLOWANCE"]["status"] == "DONE"
    assert processes["CROSS_CHAIN"]["status"] == "DONE"
    assert processes["RECEIVING_CHAIN"]["txHash"] == "0xrecv"
    assert processes["RECEIVING_CHAIN"]["txLink"] == "https://basescan.org/tx/0xrecv"

    provider.get_status.assert_awaited_once()
    assert provider.get_status.await_args.kwargs["bridge"] == "stargate"
    assert wallet_provider.sent[0]["data"] == "0xabcdef"
    assert len(snapshots) >= 4


@pytest.mark.asyncio
async def test_short_allowance_sends_approval_first(route_factory, wallet_provider):
    wallet = WalletClient(wallet_provider, poll_interval_seconds=0)

    await _driver(_provider(), allowance=0).execute_route(route_factory("r1"), _hooks(wallet, []))

    assert len(wallet_provider.sent) == 2
    assert wallet_provider.sent[0]["data"].startswith("0x095ea7b3")
    assert wallet_provider.sent[1]["data"] == "0xabcdef"


@pytest.mark.asyncio
async def test_rate_drop_is_rejected_without_acceptance(route_factory, wallet_provider):
    wallet = WalletClient(wallet_provider, poll_interval_seconds=0)
    snapshots = []

    with pytest.raises(ExchangeRateRejectedError):
        await _driver(_provider(to_amount_min="9000000")).execute_route(
            route_factory("r1"), _hooks(wallet, snapshots, accept=lambda old, new: False)
        )

    assert wallet_provider.sent == []
    assert snapshots[-1]["steps"][0]["execution"]["status"] == "FAILED"


@pytest.mark.asyncio
async def test_rate_drop_continues_when_accepted(route_factory, wallet_provider):
    wallet = WalletClient(wallet_provider, poll_interval_seconds=0)
    seen = []

    def accept(old, new):
        seen.append((old, new))
        return True

    final = await _driver(_provider(to_amount_min="9000000")).execute_route(
        route_factory("r1"), _hooks(wallet, [], accept=accept)
    )

    assert seen == [(9900000, 9000000)]
    assert final["steps"][0]["estimate"]["toAmountMin"] == "9000000"


@pytest.mark.asyncio
async def test_failed_bridge_raises_delivery_error(route_factory, wallet_provider):
    wallet = WalletClient(wallet_provider, poll_interval_seconds=0)
    provider = _provider(status={"status": "FAILED", "substatus": "UNKNOWN_ERROR"})

    with pytest.raises(DestinationDeliveryError):
        await _driver(provider).execute_route(route_factory("r1"), _hooks(wallet, []))


@pytest.mark.asyncio
async def test_snapshots_are_copies(route_factory, wallet_provider):
    wallet = WalletClient(wallet_provider, poll_interval_seconds=0)
    route = route_factory("r1")
    snapshots = []

    await _driver(_provider()).execute_route(route, _hooks(wallet, snapshots))

    snapshots[0]["steps"].clear()
    assert "execution" not in route["steps"][0]
    assert snapshots[1]["steps"]


@pytest.mark.asyncio
async def test_executor_runs_multi_leg_routes_through_driver(route_factory, wallet_provider):
    route = normalize_route(route_factory("r1"))
    assert not route.is_single_transaction

    approvals = _approvals(10**12)
    driver = LifiRouteDriver(_provider(), approvals, status_poll_interval_seconds=0)
    executor = PaymentExecutor(approvals=approvals, driver=driver)
    states = []
    executor.subscribe(lambda event: states.append(event.state))

    result = await executor.execute(route, WalletClient(wallet_provider, poll_interval_seconds=0))

    assert result.state == ExecutionState.SUCCESS
    assert result.transaction_hash == "0x" + format(1, "064x")
    assert result.explorer_link.startswith("https://arbiscan.io/tx/")
    assert all(step.status == StepStatus.COMPLETED for step in result.steps)
    assert states.index(ExecutionState.SENDING) < states.index(ExecutionState.CONFIRMING)
    assert states[-1] == ExecutionState.SUCCESS


@pytest.mark.asyncio
async def test_executor_without_driver_fails_multi_leg_routes(route_factory, wallet_provider):
    executor = PaymentExecutor(approvals=_approvals(0))

    result = await executor.execute(
        normalize_route(route_factory("r1")), WalletClient(wallet_provider, poll_interval_seconds=0)
    )

    assert result.state == ExecutionState.FAILED
    assert "route driver" in result.error
