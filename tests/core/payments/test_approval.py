"""
Tests for allowance checks and approval encoding.
"""

import json

import httpx
import pytest

from payflow.core.payments.approval import ApprovalManager
from payflow.core.payments.constants import MAX_UINT256
from payflow.providers.rpc import JsonRpcClient


OWNER = "0x1111111111111111111111111111111111111111"
SPENDER = "0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE"
USDC_ARB = "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"


def _manager(handler, unlimited: bool = False) -> ApprovalManager:
    client = JsonRpcClient(transport=httpx.MockTransport(handler))
    return ApprovalManager(client, unlimited=unlimited)


def _allowance_handler(value: int, seen: dict = None):
    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        if seen is not None:
            seen.update(payload=payload, url=str(request.url))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": "0x" + format(value, "064x")})

    return handler


def test_native_assets_never_need_approval():
    manager = ApprovalManager(JsonRpcClient())

    assert manager.needs_approval("0x0000000000000000000000000000000000000000") is False
    assert manager.needs_approval("0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE") is False
    assert manager.needs_approval(USDC_ARB) is True


@pytest.mark.asyncio
async def test_get_allowance_reads_erc20_allowance():
    seen = {}
    manager = _manager(_allowance_handler(500, seen))

    allowance = await manager.get_allowance(USDC_ARB, OWNER, SPENDER, 42161)

    assert allowance == 500
    assert seen["url"] == "https://arb1.arbitrum.io/rpc"
    call = seen["payload"]["params"][0]
    assert call["to"] == USDC_ARB
    assert call["data"].startswith("0xdd62ed3e" + "0" * 24 + OWNER[2:].lower())
    assert call["data"].endswith(SPENDER[2:].lower())


@pytest.mark.asyncio
async def test_allowance_read_failure_counts_as_zero():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    manager = _manager(handler)

    assert await manager.get_allowance(USDC_ARB, OWNER, SPENDER, 42161) == 0


@pytest.mark.asyncio
async def test_rpc_error_counts_as_zero():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "execution reverted"}})

    manager = _manager(handler)

    assert await manager.get_allowance(USDC_ARB, OWNER, SPENDER, 42161) == 0


def test_build_exact_approval():
    manager = ApprovalManager(JsonRpcClient())

    tx = manager.build_approval_transaction(USDC_ARB, SPENDER, amount=10_000_000, chain_id=42161)

    assert tx.to == USDC_ARB
    assert tx.value == 0
    assert tx.data == "0x095ea7b3" + SPENDER[2:].lower().zfill(64) + format(10_000_000, "064x")


def test_build_unlimited_approval_when_configured():
    manager = ApprovalManager(JsonRpcClient(), unlimited=True)

    tx = manager.build_approval_transaction(USDC_ARB, SPENDER, amount=10_000_000, chain_id=42161)

    assert tx.data.endswith(format(MAX_UINT256, "064x"))


@pytest.mark.asyncio
async def test_requires_approval_compares_allowance_to_required_amount():
    short = _manager(_allowance_handler(0))
    enough = _manager(_allowance_handler(10_000_000))

    assert await short.requires_approval(USDC_ARB, OWNER, SPENDER, 42161, 10_000_000) is True
    assert await enough.requires_approval(USDC_ARB, OWNER, SPENDER, 42161, 10_000_000) is False
    assert await short.requires_approval("0x0000000000000000000000000000000000000000", OWNER, SPENDER, 42161, 1) is False
