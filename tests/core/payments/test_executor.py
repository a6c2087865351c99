"""
Tests for the payment execution engine (single-transaction path).
"""

import asyncio
import logging

import pytest
from unittest.mock import AsyncMock

from payflow.core.payments.approval import ApprovalManager
from payflow.core.payments.chain_registry import get_chain_registry
from payflow.core.payments.errors import ExecutionInProgressError, InvalidTransitionError, WalletInteractionError
from payflow.core.payments.executor import PaymentExecutor, PaymentRun
from payflow.core.payments.models import ExecutionState, PaymentStatus, StepStatus, StepType
from payflow.core.payments.normalize import normalize_route, route_from_quote
from payflow.core.payments.records import InMemoryPaymentLedger
from payflow.core.payments.wallet import WalletClient, WalletRpcError
from payflow.providers.rpc import JsonRpcClient


USDC_ARB = "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"
ROUTER = "0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE"


def _route(quote_factory, **overrides):
    return normalize_route(route_from_quote(quote_factory(**overrides)))


def _wallet(provider, timeout: float = 5) -> WalletClient:
    return WalletClient(provider, poll_interval_seconds=0, confirmation_timeout_seconds=timeout)


def _executor(allowance: int = 0, recorder=None) -> PaymentExecutor:
    approvals = ApprovalManager(JsonRpcClient())
    approvals.get_allowance = AsyncMock(return_value=allowance)
    return PaymentExecutor(approvals=approvals, recorder=recorder)


# =============================================================================
# Network switching
# =============================================================================


@pytest.mark.asyncio
async def test_unrecognized_chain_is_added_then_switch_retried_once(quote_factory, wallet_provider):
    wallet_provider.chain_id = 1
    wallet_provider.switch_errors = [WalletRpcError("Unrecognized chain ID", code=4902)]
    route = _route(quote_factory, from_chain=10)

    result = await _executor(allowance=10**12).execute(route, _wallet(wallet_provider))

    assert result.state == ExecutionState.SUCCESS
    methods = wallet_provider.methods()
    assert methods[:4] == [
        "eth_chainId",
        "wallet_switchEthereumChain",
        "wallet_addEthereumChain",
        "wallet_switchEthereumChain",
    ]
    assert methods.count("wallet_switchEthereumChain") == 2
    add_params = wallet_provider.calls[2][1][0]
    assert add_params == get_chain_registry().add_network_params(10)
    assert add_params["chainName"] == "Optimism"


@pytest.mark.asyncio
async def test_other_switch_errors_fail_the_run_with_wallet_message(quote_factory, wallet_provider):
    wallet_provider.chain_id = 1
    wallet_provider.switch_errors = [WalletRpcError("User rejected the request.", code=4001)]

    result = await _executor().execute(_route(quote_factory), _wallet(wallet_provider))

    assert result.state == ExecutionState.FAILED
    assert result.error == "User rejected the request."
    assert "wallet_addEthereumChain" not in wallet_provider.methods()
    assert wallet_provider.sent == []


@pytest.mark.asyncio
async def test_user_rejection_is_reported_by_the_wallet_client(wallet_provider):
    wallet_provider.chain_id = 1
    wallet_provider.switch_errors = [WalletRpcError("User rejected the request.", code=4001)]

    with pytest.raises(WalletInteractionError) as exc_info:
        await _wallet(wallet_provider).ensure_chain(42161)

    assert exc_info.value.user_rejected is True
    assert exc_info.value.code == 4001


@pytest.mark.asyncio
async def test_user_rejection_is_logged_as_info(quote_factory, wallet_provider, caplog):
    wallet_provider.chain_id = 1
    wallet_provider.switch_errors = [WalletRpcError("User rejected the request.", code=4001)]

    with caplog.at_level(logging.INFO, logger="payflow.core.payments.executor"):
        result = await _executor().execute(_route(quote_factory), _wallet(wallet_provider))

    assert result.state == ExecutionState.FAILED
    rejected = [record for record in caplog.records if "rejected in wallet" in record.getMessage()]
    assert rejected and rejected[0].levelno == logging.INFO
    assert not [
        record
        for record in caplog.records
        if record.name == "payflow.core.payments.executor" and record.levelno >= logging.WARNING
    ]


@pytest.mark.asyncio
async def test_no_switch_when_wallet_is_on_source_chain(quote_factory, wallet_provider):
    await _executor(allowance=10**12).execute(_route(quote_factory), _wallet(wallet_provider))

    assert "wallet_switchEthereumChain" not in wallet_provider.methods()


# =============================================================================
# Approval
# =============================================================================


@pytest.mark.asyncio
async def test_zero_allowance_sends_approval_before_primary(quote_factory, wallet_provider):
    route = _route(quote_factory)

    result = await _executor(allowance=0).execute(route, _wallet(wallet_provider))

    assert result.state == ExecutionState.SUCCESS
    assert len(wallet_provider.sent) == 2
    approval, primary = wallet_provider.sent
    assert approval["to"] == USDC_ARB
    assert approval["data"].startswith("0x095ea7b3")
    assert approval["data"].endswith(format(route.from_amount, "064x"))
    assert primary["to"] == ROUTER
    assert primary["data"] == "0xdeadbeef"
    assert primary["gas"] == hex(200_000)


@pytest.mark.asyncio
async def test_sufficient_allowance_skips_approval(quote_factory, wallet_provider):
    route = _route(quote_factory)

    result = await _executor(allowance=route.from_amount).execute(route, _wallet(wallet_provider))

    assert result.state == ExecutionState.SUCCESS
    assert len(wallet_provider.sent) == 1
    assert wallet_provider.sent[0]["to"] == ROUTER
    approval_step = next(step for step in result.steps if step.type == StepType.APPROVAL)
    assert approval_step.status == StepStatus.COMPLETED
    assert approval_step.transaction_hash is None


# =============================================================================
# Confirmation outcomes
# =============================================================================


@pytest.mark.asyncio
async def test_reverted_receipt_fails_the_run(quote_factory, wallet_provider):
    wallet_provider.receipt_status = "0x0"
    ledger = InMemoryPaymentLedger()

    result = await _executor(allowance=10**12, recorder=ledger).execute(
        _route(quote_factory), _wallet(wallet_provider), invoice_id="inv_1"
    )

    assert result.state == ExecutionState.FAILED
    assert result.error == "Transaction reverted"
    assert all(step.status == StepStatus.FAILED for step in result.steps if step.type != StepType.APPROVAL)
    records = await ledger.list()
    assert len(records) == 1
    assert records[0].status == PaymentStatus.FAILED
    assert records[0].invoice_id == "inv_1"


@pytest.mark.asyncio
async def test_missing_receipt_times_out(quote_factory, wallet_provider):
    wallet_provider.receipt_status = None
    ledger = InMemoryPaymentLedger()

    result = await _executor(allowance=10**12, recorder=ledger).execute(
        _route(quote_factory), _wallet(wallet_provider, timeout=0)
    )

    assert result.state == ExecutionState.TIMED_OUT
    assert "block explorer" in result.error
    assert result.explorer_link.startswith("https://arbiscan.io/tx/")
    assert (await ledger.list())[0].status == PaymentStatus.TIMED_OUT


@pytest.mark.asyncio
async def test_success_is_recorded_with_hash_and_steps(quote_factory, wallet_provider):
    ledger = InMemoryPaymentLedger()

    result = await _executor(allowance=10**12, recorder=ledger).execute(
        _route(quote_factory), _wallet(wallet_provider), invoice_id="inv_2"
    )

    record = await ledger.get(result.record_id)
    assert record.status == PaymentStatus.COMPLETED
    assert record.transaction_hash == result.transaction_hash
    assert record.amount == "10"
    assert record.source_token == "USDC"
    assert [step["status"] for step in record.steps] == ["completed", "completed"]


@pytest.mark.asyncio
async def test_success_is_only_emitted_after_receipt(quote_factory, wallet_provider):
    executor = _executor(allowance=10**12)
    observed = []
    executor.subscribe(
        lambda event: observed.append((event.state, "eth_getTransactionReceipt" in wallet_provider.methods()))
    )

    await executor.execute(_route(quote_factory), _wallet(wallet_provider))

    states = [state for state, _ in observed]
    assert states[-1] == ExecutionState.SUCCESS
    assert ExecutionState.CONFIRMING in states
    assert states.index(ExecutionState.SENDING) < states.index(ExecutionState.CONFIRMING)
    assert observed[-1][1] is True
    assert all(state != ExecutionState.SUCCESS for state, seen_receipt in observed if not seen_receipt)


# =============================================================================
# Run management
# =============================================================================


@pytest.mark.asyncio
async def test_second_execute_is_refused_while_active(quote_factory, wallet_provider):
    release = asyncio.Event()
    original_request = wallet_provider.request

    async def slow_request(method, params=None):
        if method == "eth_sendTransaction":
            await release.wait()
        return await original_request(method, params)

    wallet_provider.request = slow_request
    executor = _executor(allowance=10**12)
    route = _route(quote_factory)

    first = asyncio.create_task(executor.execute(route, _wallet(wallet_provider)))
    await asyncio.sleep(0.01)
    assert executor.is_busy

    with pytest.raises(ExecutionInProgressError):
        await executor.execute(route, _wallet(wallet_provider))

    release.set()
    result = await first
    assert result.state == ExecutionState.SUCCESS
    assert not executor.is_busy


@pytest.mark.asyncio
async def test_unexpected_errors_map_to_generic_failure(quote_factory, wallet_provider):
    executor = _executor()
    executor.approvals.get_allowance = AsyncMock(side_effect=RuntimeError("socket closed"))

    result = await executor.execute(_route(quote_factory), _wallet(wallet_provider))

    assert result.state == ExecutionState.FAILED
    assert result.error == "Transaction failed"
    assert not executor.is_busy


@pytest.mark.asyncio
async def test_recorder_errors_do_not_change_the_outcome(quote_factory, wallet_provider):
    recorder = AsyncMock()
    recorder.save.side_effect = RuntimeError("db down")

    result = await _executor(allowance=10**12, recorder=recorder).execute(
        _route(quote_factory), _wallet(wallet_provider)
    )

    assert result.state == ExecutionState.SUCCESS
    assert result.record_id is None


def test_terminal_states_do_not_transition(quote_factory):
    run = PaymentRun(_route(quote_factory))
    run.transition_to(ExecutionState.FAILED)

    with pytest.raises(InvalidTransitionError):
        run.transition_to(ExecutionState.SWITCHING_NETWORK)


def test_run_cannot_skip_to_success(quote_factory):
    run = PaymentRun(_route(quote_factory))

    assert not run.can_transition_to(ExecutionState.SUCCESS)
    with pytest.raises(InvalidTransitionError):
        run.transition_to(ExecutionState.SUCCESS)
