"""Shared builders for LI.FI payloads and a scripted EIP-1193 wallet."""

from typing import Any, Dict, List, Optional

import pytest

WALLET = "0x1111111111111111111111111111111111111111"
RECIPIENT = "0x2222222222222222222222222222222222222222"
SPENDER = "0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE"
USDC_ARB = "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"
USDC_BASE = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
NATIVE = "0x0000000000000000000000000000000000000000"


def make_token(chain_id: int, address: str, symbol: str = "USDC", decimals: int = 6, price: Optional[str] = "1.00") -> Dict[str, Any]:
    token = {"chainId": chain_id, "address": address, "symbol": symbol, "decimals": decimals, "name": symbol}
    if price is not None:
        token["priceUSD"] = price
    return token


def make_step(
    *,
    step_id: str = "step-1",
    tool: str = "stargate",
    step_type: str = "lifi",
    from_chain: int = 42161,
    to_chain: int = 8453,
    from_token: Optional[Dict[str, Any]] = None,
    to_token: Optional[Dict[str, Any]] = None,
    from_amount: str = "10000000",
    to_amount: str = "9950000",
    to_amount_min: str = "9900000",
    duration: int = 60,
    gas_usd: str = "0.10",
    fee_usd: str = "0.05",
    approval_address: Optional[str] = SPENDER,
    included: Optional[List[Dict[str, Any]]] = None,
    transaction_request: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    from_token = from_token or make_token(from_chain, USDC_ARB)
    to_token = to_token or make_token(to_chain, USDC_BASE)
    action = {
        "fromChainId": from_chain,
        "toChainId": to_chain,
        "fromToken": from_token,
        "toToken": to_token,
        "fromAmount": from_amount,
        "fromAddress": WALLET,
        "toAddress": RECIPIENT,
        "slippage": 0.005,
    }
    if included is None:
        included = [
            {
                "id": f"{step_id}-cross",
                "type": "cross" if from_chain != to_chain else "swap",
                "tool": tool,
                "toolDetails": {"key": tool, "name": tool.title(), "logoURI": None},
                "action": dict(action),
                "estimate": {},
            }
        ]
    step = {
        "id": step_id,
        "type": step_type,
        "tool": tool,
        "toolDetails": {"key": tool, "name": tool.title(), "logoURI": None},
        "action": action,
        "estimate": {
            "tool": tool,
            "approvalAddress": approval_address,
            "fromAmount": from_amount,
            "toAmount": to_amount,
            "toAmountMin": to_amount_min,
            "executionDuration": duration,
            "gasCosts": [{"type": "SEND", "amountUSD": gas_usd}],
            "feeCosts": [{"name": "LP fee", "amountUSD": fee_usd, "included": True}],
        },
        "includedSteps": included,
    }
    if transaction_request is not None:
        step["transactionRequest"] = transaction_request
    return step


def make_route(
    route_id: str,
    *,
    steps: Optional[List[Dict[str, Any]]] = None,
    to_amount: str = "9950000",
    to_amount_min: str = "9900000",
    duration: int = 60,
    gas_usd: str = "0.10",
    fee_usd: str = "0.05",
    from_chain: int = 42161,
    to_chain: int = 8453,
    to_price: Optional[str] = "1.00",
) -> Dict[str, Any]:
    if steps is None:
        steps = [
            make_step(
                step_id=f"{route_id}-step",
                from_chain=from_chain,
                to_chain=to_chain,
                to_amount=to_amount,
                to_amount_min=to_amount_min,
                duration=duration,
                gas_usd=gas_usd,
                fee_usd=fee_usd,
                to_token=make_token(to_chain, USDC_BASE, price=to_price),
            )
        ]
    return {
        "id": route_id,
        "fromChainId": from_chain,
        "toChainId": to_chain,
        "fromToken": make_token(from_chain, USDC_ARB),
        "toToken": make_token(to_chain, USDC_BASE, price=to_price),
        "fromAmount": "10000000",
        "toAmount": to_amount,
        "toAmountMin": to_amount_min,
        "fromAddress": WALLET,
        "toAddress": RECIPIENT,
        "steps": steps,
    }


def make_quote(**overrides: Any) -> Dict[str, Any]:
    """A /quote response: one step carrying a transactionRequest."""
    params = {
        "step_id": "quote-1",
        "transaction_request": {
            "from": WALLET,
            "to": "0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE",
            "data": "0xdeadbeef",
            "value": "0x0",
            "gasLimit": "0x30d40",
            "chainId": 42161,
        },
    }
    params.update(overrides)
    return make_step(**params)


class FakeWalletProvider:
    """Scripted EIP-1193 provider recording every request."""

    def __init__(self, chain_id: int = 42161, receipt_status: Optional[str] = "0x1"):
        self.chain_id = chain_id
        self.receipt_status = receipt_status
        self.switch_errors: List[Exception] = []
        self.calls: List[tuple] = []
        self.sent: List[Dict[str, Any]] = []

    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        self.calls.append((method, params))
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "wallet_switchEthereumChain":
            if self.switch_errors:
                raise self.switch_errors.pop(0)
            self.chain_id = int(params[0]["chainId"], 16)
            return None
        if method == "wallet_addEthereumChain":
            return None
        if method == "eth_sendTransaction":
            self.sent.append(params[0])
            return "0x" + format(len(self.sent), "064x")
        if method == "eth_getTransactionReceipt":
            if self.receipt_status is None:
                return None
            return {"transactionHash": params[0], "status": self.receipt_status}
        raise AssertionError(f"unexpected wallet method {method}")


@pytest.fixture
def route_factory():
    return make_route


@pytest.fixture
def step_factory():
    return make_step


@pytest.fixture
def token_factory():
    return make_token


@pytest.fixture
def quote_factory():
    return make_quote


@pytest.fixture
def wallet_provider():
    return FakeWalletProvider()
