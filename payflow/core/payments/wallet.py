"""
Signing wallet adapter.

The wallet is an opaque EIP-1193 capability: ``await request(method, params)``.
``WalletClient`` layers the chain switch/add fallback, submission and receipt
polling on top of it.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Protocol

from .amounts import parse_int
from .chain_registry import ChainRegistry, get_chain_registry
from .constants import UNRECOGNIZED_CHAIN_ERROR_CODE
from .errors import (
    ConfirmationTimeoutError,
    TransactionRevertedError,
    WalletInteractionError,
)


logger = logging.getLogger(__name__)


class WalletRpcError(Exception):
    """Error raised by a wallet provider, carrying its EIP-1193 code."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data


class WalletProvider(Protocol):
    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        ...


class WalletClient:
    """Drives one connected wallet on behalf of an execution run."""

    def __init__(
        self,
        provider: WalletProvider,
        *,
        registry: Optional[ChainRegistry] = None,
        poll_interval_seconds: float = 2.0,
        confirmation_timeout_seconds: float = 600,
    ) -> None:
        self.provider = provider
        self.registry = registry or get_chain_registry()
        self.poll_interval_seconds = poll_interval_seconds
        self.confirmation_timeout_seconds = confirmation_timeout_seconds

    async def _request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        try:
            return await self.provider.request(method, params or [])
        except WalletRpcError as exc:
            raise WalletInteractionError(exc.message, code=exc.code, data=exc.data) from exc

    async def get_chain_id(self) -> int:
        return parse_int(await self._request("eth_chainId"))

    async def switch_chain(self, chain_id: int) -> None:
        await self._request("wallet_switchEthereumChain", [{"chainId": hex(chain_id)}])

    async def add_chain(self, chain_id: int) -> None:
        await self._request("wallet_addEthereumChain", [self.registry.add_network_params(chain_id)])

    async def ensure_chain(self, chain_id: int) -> bool:
        """Make ``chain_id`` the wallet's active chain.

        Returns True when a switch was needed. When the wallet does not know
        the chain (4902) it is added from the registry and the switch retried
        once; any other switch error propagates.
        """
        current = await self.get_chain_id()
        if current == chain_id:
            return False

        logger.info(f"Switching wallet from chain {current} to {chain_id}")
        try:
            await self.switch_chain(chain_id)
        except WalletInteractionError as exc:
            if exc.code != UNRECOGNIZED_CHAIN_ERROR_CODE:
                raise
            logger.info(f"Wallet does not know chain {chain_id}; adding it")
            await self.add_chain(chain_id)
            await self.switch_chain(chain_id)
        return True

    async def send_transaction(self, params: Dict[str, Any]) -> str:
        tx_hash = await self._request("eth_sendTransaction", [params])
        if not tx_hash:
            raise WalletInteractionError("Wallet returned no transaction hash")
        logger.info(f"Transaction submitted: {tx_hash}")
        return tx_hash

    async def get_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self._request("eth_getTransactionReceipt", [tx_hash])

    async def wait_for_receipt(self, tx_hash: str, chain_id: Optional[int] = None) -> Dict[str, Any]:
        """Poll for a receipt until it is mined or the timeout elapses.

        A receipt with status 0 raises ``TransactionRevertedError``; no receipt
        within ``confirmation_timeout_seconds`` raises ``ConfirmationTimeoutError``.
        """
        started = time.monotonic()

        while True:
            receipt = await self.get_receipt(tx_hash)
            if receipt:
                status = parse_int(receipt.get("status"), default=1)
                if status == 0:
                    raise TransactionRevertedError(tx_hash)
                logger.info(f"Transaction confirmed: {tx_hash}")
                return receipt

            if time.monotonic() - started >= self.confirmation_timeout_seconds:
                explorer_link = self.registry.explorer_tx_url(chain_id, tx_hash) if chain_id else None
                raise ConfirmationTimeoutError(tx_hash, self.confirmation_timeout_seconds, explorer_link)

            await asyncio.sleep(self.poll_interval_seconds)
