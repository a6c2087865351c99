"""
Token approval handling.

Decides whether a route's source token needs an ERC-20 allowance for the
route's spender, reads the live allowance and builds the ``approve`` call.
"""

import logging
from typing import Optional

import httpx

from ...providers.rpc import JsonRpcClient, RpcError
from .amounts import parse_int
from .constants import (
    ERC20_ALLOWANCE_SELECTOR,
    ERC20_APPROVE_SELECTOR,
    MAX_UINT256,
    NATIVE_PLACEHOLDER,
    NATIVE_TOKEN_ADDRESS,
)
from .models import TransactionRequest


logger = logging.getLogger(__name__)


def _encode_uint256(value: int) -> str:
    """Encode a uint256 as a 32-byte hex string (without 0x prefix)."""
    return format(value, "064x")


def _encode_address(address: str) -> str:
    """Encode an address as a 32-byte hex string (without 0x prefix)."""
    return address.lower().replace("0x", "").zfill(64)


def encode_approve(spender: str, amount: int) -> str:
    return ERC20_APPROVE_SELECTOR + _encode_address(spender) + _encode_uint256(amount)


def encode_allowance(owner: str, spender: str) -> str:
    return ERC20_ALLOWANCE_SELECTOR + _encode_address(owner) + _encode_address(spender)


class ApprovalManager:
    """
    Allowance checks for route execution.

    Approvals are for the exact amount the route needs unless ``unlimited``
    is set, in which case ``MAX_UINT256`` is approved.
    """

    def __init__(self, rpc_client: Optional[JsonRpcClient] = None, *, unlimited: bool = False):
        self.rpc_client = rpc_client or JsonRpcClient()
        self.unlimited = unlimited

    def needs_approval(self, token_address: Optional[str]) -> bool:
        """False for the chain's native asset, True for any token contract."""
        if not token_address:
            return False
        return token_address.lower() not in {NATIVE_TOKEN_ADDRESS, NATIVE_PLACEHOLDER}

    async def get_allowance(self, token_address: str, owner: str, spender: str, chain_id: int) -> int:
        """Current allowance; read failures count as zero so approval is requested."""
        try:
            result = await self.rpc_client.eth_call(chain_id, token_address, encode_allowance(owner, spender))
        except (httpx.HTTPError, RpcError, ValueError) as exc:
            logger.warning(f"Allowance read failed for {token_address} on chain {chain_id}: {exc}")
            return 0
        if not result or result == "0x":
            return 0
        return parse_int(result)

    def build_approval_transaction(
        self,
        token_address: str,
        spender: str,
        *,
        amount: Optional[int] = None,
        chain_id: int = 1,
    ) -> TransactionRequest:
        approve_amount = MAX_UINT256 if (self.unlimited or amount is None) else amount
        return TransactionRequest(
            chain_id=chain_id,
            to=token_address,
            data=encode_approve(spender, approve_amount),
            value=0,
        )

    async def requires_approval(
        self,
        token_address: str,
        owner: str,
        spender: Optional[str],
        chain_id: int,
        required_amount: int,
    ) -> bool:
        if not spender or not self.needs_approval(token_address):
            return False
        allowance = await self.get_allowance(token_address, owner, spender, chain_id)
        return allowance < required_amount
