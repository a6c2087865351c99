"""Wallet balance inventory across the supported chains."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ...providers.lifi import LifiProvider
from .amounts import parse_decimal, parse_int
from .models import WalletTokenBalance


logger = logging.getLogger(__name__)


def _parse_balance(chain_id: int, raw: Dict[str, Any]) -> Optional[WalletTokenBalance]:
    amount = raw.get("amount")
    if amount is None or str(amount) in {"", "0"}:
        return None
    amount_raw = parse_int(amount)
    if amount_raw <= 0:
        return None
    return WalletTokenBalance(
        symbol=raw.get("symbol") or "???",
        chain_id=parse_int(raw.get("chainId"), default=chain_id),
        token_address=raw["address"],
        amount_raw=amount_raw,
        decimals=parse_int(raw.get("decimals"), default=18),
        price_usd=parse_decimal(raw.get("priceUSD")) or Decimal("0"),
        name=raw.get("name"),
        logo_uri=raw.get("logoURI"),
    )


class BalanceInventory:
    """Spendable token balances for a wallet. Never raises on fetch errors."""

    def __init__(self, provider: LifiProvider, *, default_chain_ids: Optional[Iterable[int]] = None) -> None:
        self._provider = provider
        self._default_chain_ids = list(default_chain_ids or [1, 42161, 10, 137, 8453])

    async def fetch_balances(
        self,
        wallet_address: str,
        chain_ids: Optional[Iterable[int]] = None,
    ) -> List[WalletTokenBalance]:
        chains = list(chain_ids) if chain_ids is not None else self._default_chain_ids
        try:
            by_chain = await self._provider.get_token_balances(wallet_address, chains)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Balance fetch failed for {wallet_address}: {e}")
            return []

        if not isinstance(by_chain, dict):
            logger.warning(f"Unexpected balance payload for {wallet_address}: {type(by_chain).__name__}")
            return []

        balances: List[WalletTokenBalance] = []
        for chain_key, tokens in by_chain.items():
            if not isinstance(tokens, list):
                logger.warning(f"Skipping balances for chain {chain_key}: expected a token list")
                continue
            chain_id = parse_int(chain_key)
            for raw in tokens:
                try:
                    balance = _parse_balance(chain_id, raw)
                except (AttributeError, KeyError, TypeError, ValueError, InvalidOperation) as e:
                    logger.warning(f"Skipping malformed balance on chain {chain_key}: {e}")
                    continue
                if balance is not None:
                    balances.append(balance)
        return balances
