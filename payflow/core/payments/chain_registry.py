"""Chain registry backed by the static chain and token tables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .constants import (
    CHAIN_METADATA,
    NATIVE_SYMBOLS,
    NATIVE_TOKEN_ADDRESS,
    RECEIVE_TOKENS,
    TOKEN_BY_CHAIN,
    UNAVAILABLE_TOKEN_ADDRESS,
)
from .errors import IntentValidationError, UnsupportedTokenError


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int
    name: str
    display_name: str
    native_currency: str
    native_currency_name: str
    rpc_url: str
    explorer_url: str
    usdc_address: str
    native_decimals: int = 18


class ChainRegistry:
    """Lookups over the supported chains.

    Used for wallet network-add requests, explorer links and resolving
    receive-token symbols to per-chain contract addresses.

    Usage:
        registry = get_chain_registry()
        registry.explorer_tx_url(8453, "0xabc...")
        registry.resolve_token_address("USDC", 8453)
    """

    def __init__(
        self,
        chains: Optional[Dict[int, Dict[str, Any]]] = None,
        tokens: Optional[Dict[str, Dict[int, str]]] = None,
        token_decimals: Optional[Dict[str, int]] = None,
    ) -> None:
        metadata = chains if chains is not None else CHAIN_METADATA
        self._tokens = tokens if tokens is not None else TOKEN_BY_CHAIN
        self._decimals = token_decimals if token_decimals is not None else RECEIVE_TOKENS

        self._chains: Dict[int, ChainConfig] = {}
        self._alias_to_id: Dict[str, int] = {}
        for chain_id, meta in metadata.items():
            self._chains[chain_id] = ChainConfig(
                chain_id=chain_id,
                name=str(meta["name"]),
                display_name=str(meta["display_name"]),
                native_currency=str(meta["native_currency"]),
                native_currency_name=str(meta.get("native_currency_name") or meta["native_currency"]),
                rpc_url=str(meta["rpc_url"]),
                explorer_url=str(meta["explorer_url"]).rstrip("/"),
                usdc_address=str(meta["usdc"]),
            )
            self._alias_to_id[str(meta["name"]).lower()] = chain_id
            self._alias_to_id[str(chain_id)] = chain_id
            for alias in meta.get("aliases", []):
                self._alias_to_id[str(alias).lower()] = chain_id

    # ------------------------------------------------------------------
    # Chains
    # ------------------------------------------------------------------

    def supported_chain_ids(self) -> List[int]:
        return list(self._chains.keys())

    def is_supported(self, chain_id: int) -> bool:
        return chain_id in self._chains

    def get_chain(self, chain_id: int) -> ChainConfig:
        chain = self._chains.get(chain_id)
        if chain is None:
            raise IntentValidationError(
                f"Unsupported chain: {chain_id}",
                details={"chain_id": chain_id},
            )
        return chain

    def get_chain_id(self, value: Any) -> Optional[int]:
        """Resolve a chain id, name or alias ("arb", "base", "137") to an id."""
        if isinstance(value, int):
            return value if value in self._chains else None
        if value is None:
            return None
        return self._alias_to_id.get(str(value).strip().lower())

    def get_chain_name(self, chain_id: int) -> str:
        chain = self._chains.get(chain_id)
        return chain.display_name if chain else f"Chain {chain_id}"

    def explorer_tx_url(self, chain_id: int, tx_hash: Optional[str]) -> Optional[str]:
        if not tx_hash:
            return None
        chain = self._chains.get(chain_id)
        if chain is None:
            return None
        return f"{chain.explorer_url}/tx/{tx_hash}"

    def add_network_params(self, chain_id: int) -> Dict[str, Any]:
        """Parameters for ``wallet_addEthereumChain``."""
        chain = self.get_chain(chain_id)
        return {
            "chainId": hex(chain.chain_id),
            "chainName": chain.display_name,
            "nativeCurrency": {
                "name": chain.native_currency_name,
                "symbol": chain.native_currency,
                "decimals": chain.native_decimals,
            },
            "rpcUrls": [chain.rpc_url],
            "blockExplorerUrls": [chain.explorer_url],
        }

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def receive_token_symbols(self) -> List[str]:
        return list(self._decimals.keys())

    def token_decimals(self, symbol: str) -> int:
        decimals = self._decimals.get(symbol.upper())
        if decimals is None:
            raise IntentValidationError(f"Unknown token: {symbol}", details={"symbol": symbol})
        return decimals

    def resolve_token_address(self, symbol: str, chain_id: int) -> str:
        """Map a token symbol to its contract address on ``chain_id``.

        Native symbols resolve to the zero address on chains whose native
        currency they are. A table entry holding the zero-address sentinel
        raises ``UnsupportedTokenError`` instead of returning a bogus address.
        """
        chain = self.get_chain(chain_id)
        key = symbol.upper()

        if key in NATIVE_SYMBOLS:
            if chain.native_currency == key:
                return NATIVE_TOKEN_ADDRESS
            raise UnsupportedTokenError(key, chain_id)

        per_chain = self._tokens.get(key)
        if per_chain is None:
            raise IntentValidationError(f"Unknown token: {symbol}", details={"symbol": symbol})

        address = per_chain.get(chain_id, UNAVAILABLE_TOKEN_ADDRESS)
        if address.lower() == UNAVAILABLE_TOKEN_ADDRESS:
            raise UnsupportedTokenError(key, chain_id)
        return address

    def token_symbol_for_address(self, chain_id: int, address: str) -> Optional[str]:
        target = (address or "").lower()
        if target == NATIVE_TOKEN_ADDRESS:
            chain = self._chains.get(chain_id)
            return chain.native_currency if chain else None
        for symbol, per_chain in self._tokens.items():
            candidate = per_chain.get(chain_id)
            if candidate and candidate.lower() == target:
                return symbol
        return None


_registry: Optional[ChainRegistry] = None


def get_chain_registry() -> ChainRegistry:
    """Return the process-wide chain registry."""
    global _registry
    if _registry is None:
        _registry = ChainRegistry()
    return _registry
