"""
Payment intent construction.

Turns form input (human amount string, token symbols or addresses,
recipient address or ENS name) into a validated ``PaymentIntent``. Token
checks run before the ENS lookup, so an unsupported token fails without
any network call.
"""

from typing import List, Optional, Protocol, Tuple

from ...services.address import checksum, is_ens_name, is_valid_evm_address
from .amounts import to_base_units
from .chain_registry import ChainRegistry, get_chain_registry
from .errors import IntentValidationError
from .models import AmountMode, PaymentIntent, WalletTokenBalance


class NameResolver(Protocol):
    async def resolve(self, name: str) -> Optional[str]:
        ...


async def resolve_recipient(recipient: str, resolver: Optional[NameResolver] = None) -> str:
    """Return a 0x address for ``recipient``, resolving ENS names."""
    candidate = (recipient or "").strip()
    if is_valid_evm_address(candidate):
        return candidate
    if is_ens_name(candidate) and resolver is not None:
        address = await resolver.resolve(candidate)
        if address and is_valid_evm_address(address):
            return checksum(address)
        raise IntentValidationError(f"Could not resolve {candidate}", details={"recipient": candidate})
    raise IntentValidationError("Invalid recipient address", details={"recipient": candidate})


def _resolve_token(
    registry: ChainRegistry,
    token: str,
    chain_id: int,
    decimals: Optional[int],
) -> Tuple[str, Optional[int]]:
    if is_valid_evm_address(token):
        if decimals is None:
            symbol = registry.token_symbol_for_address(chain_id, token)
            decimals = registry.token_decimals(symbol) if symbol else None
        return token, decimals
    address = registry.resolve_token_address(token, chain_id)
    return address, decimals if decimals is not None else registry.token_decimals(token)


async def build_payment_intent(
    *,
    source_wallet_address: str,
    source_chain_id: int,
    source_token: str,
    destination_chain_id: int,
    destination_token: str,
    recipient: str,
    amount: str,
    amount_mode: AmountMode = AmountMode.EXACT_SEND,
    source_decimals: Optional[int] = None,
    destination_decimals: Optional[int] = None,
    slippage: Optional[float] = None,
    invoice_id: Optional[str] = None,
    registry: Optional[ChainRegistry] = None,
    resolver: Optional[NameResolver] = None,
) -> PaymentIntent:
    """
    Build a ``PaymentIntent`` from user input.

    Tokens may be given as symbols ("USDC") or addresses. The amount is
    converted once, with the decimals of the token it denominates: the
    source token for EXACT_SEND, the destination token for EXACT_RECEIVE.

    Raises:
        UnsupportedTokenError: token symbol has no deployment on the chain
        IntentValidationError: bad amount, recipient or unknown decimals
    """
    registry = registry or get_chain_registry()
    source_wallet_address = (source_wallet_address or "").strip()
    source_token = (source_token or "").strip()
    destination_token = (destination_token or "").strip()
    registry.get_chain(source_chain_id)
    registry.get_chain(destination_chain_id)

    source_address, source_decimals = _resolve_token(registry, source_token, source_chain_id, source_decimals)
    destination_address, destination_decimals = _resolve_token(
        registry, destination_token, destination_chain_id, destination_decimals
    )

    sizing_decimals = destination_decimals if amount_mode == AmountMode.EXACT_RECEIVE else source_decimals
    if sizing_decimals is None:
        raise IntentValidationError("Token decimals are unknown; pass them explicitly")
    raw_amount = to_base_units(amount, sizing_decimals)

    if not is_valid_evm_address(source_wallet_address):
        raise IntentValidationError("Invalid wallet address", details={"wallet": source_wallet_address})

    recipient_address = await resolve_recipient(recipient, resolver)

    return PaymentIntent(
        source_chain_id=source_chain_id,
        source_token_address=source_address,
        source_wallet_address=source_wallet_address,
        destination_chain_id=destination_chain_id,
        destination_token_address=destination_address,
        destination_address=recipient_address,
        amount=raw_amount,
        amount_mode=amount_mode,
        slippage=slippage,
        invoice_id=invoice_id,
    )


def select_default_balance(
    balances: List[WalletTokenBalance],
    token_symbol: Optional[str] = None,
    chain_id: Optional[int] = None,
) -> Optional[WalletTokenBalance]:
    """Pick the balance to pay from.

    Prefers the requested token on the requested chain, then the requested
    token on any chain, then the first balance.
    """
    if not balances:
        return None
    if token_symbol:
        wanted = token_symbol.upper()
        matches = [balance for balance in balances if balance.symbol.upper() == wanted]
        for balance in matches:
            if chain_id is not None and balance.chain_id == chain_id:
                return balance
        if matches:
            return matches[0]
    return balances[0]
