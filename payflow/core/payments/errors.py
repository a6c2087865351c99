"""
Error Classification

Error types raised by the payment pipeline. Validation errors are raised
before any network call; run-level errors end an execution run in a terminal
state and carry the message shown to the user.
"""

from enum import Enum
from typing import Any, Dict, Optional

from .constants import USER_REJECTED_ERROR_CODE


class ErrorCategory(str, Enum):
    """Categories of payment errors."""

    VALIDATION = "validation"              # Bad input, fix and resubmit
    UNSUPPORTED_TOKEN = "unsupported_token"
    PROVIDER = "provider"                  # Routing service / transport
    WALLET = "wallet"                      # User rejection, provider disconnect, chain add refused
    TRANSACTION_REVERTED = "transaction_reverted"
    TIMEOUT = "timeout"
    STATE = "state"                        # Illegal run transition or concurrent run
    UNKNOWN = "unknown"


class PaymentError(Exception):
    """Base class for payment pipeline errors."""

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class IntentValidationError(PaymentError):
    """Payment intent rejected before reaching the routing service."""

    category = ErrorCategory.VALIDATION


class UnsupportedTokenError(IntentValidationError):
    """Token has no deployment on the requested chain."""

    category = ErrorCategory.UNSUPPORTED_TOKEN

    def __init__(self, symbol: str, chain_id: int):
        super().__init__(
            f"{symbol} not available on this chain",
            details={"symbol": symbol, "chain_id": chain_id},
        )
        self.symbol = symbol
        self.chain_id = chain_id


class QuoteError(PaymentError):
    """Routing service failed to produce routes."""

    category = ErrorCategory.PROVIDER
    DEFAULT_MESSAGE = "Failed to get quote"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message or self.DEFAULT_MESSAGE, details={"status_code": status_code})
        self.status_code = status_code


class WalletInteractionError(PaymentError):
    """The signing wallet rejected or failed a request.

    ``code`` is the EIP-1193 / JSON-RPC error code when the wallet reported one
    (4001 user rejected, 4902 unrecognized chain, ...).
    """

    category = ErrorCategory.WALLET

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message, details={"code": code})
        self.code = code
        self.data = data

    @property
    def user_rejected(self) -> bool:
        return self.code == USER_REJECTED_ERROR_CODE


class TransactionRevertedError(PaymentError):
    """A mined transaction reported failure status."""

    category = ErrorCategory.TRANSACTION_REVERTED

    def __init__(self, tx_hash: Optional[str] = None, message: str = "Transaction reverted"):
        super().__init__(message, details={"tx_hash": tx_hash})
        self.tx_hash = tx_hash


class ConfirmationTimeoutError(PaymentError):
    """No receipt (or no destination delivery) within the configured window."""

    category = ErrorCategory.TIMEOUT

    def __init__(self, tx_hash: str, timeout_seconds: float, explorer_link: Optional[str] = None):
        message = (
            f"Transaction not confirmed after {int(timeout_seconds)}s; "
            "check the block explorer for its final status"
        )
        super().__init__(message, details={"tx_hash": tx_hash, "explorer_link": explorer_link})
        self.tx_hash = tx_hash
        self.explorer_link = explorer_link


class ExchangeRateRejectedError(PaymentError):
    """The route's output dropped mid-execution and the update was not accepted."""

    category = ErrorCategory.PROVIDER

    def __init__(self, old_amount: int, new_amount: int):
        super().__init__(
            "Exchange rate changed during execution and the update was not accepted",
            details={"old_to_amount_min": str(old_amount), "new_to_amount_min": str(new_amount)},
        )


class ExecutionInProgressError(PaymentError):
    """A payment attempt is already running on this engine."""

    category = ErrorCategory.STATE

    def __init__(self, message: str = "A payment is already in progress"):
        super().__init__(message)


class InvalidTransitionError(PaymentError):
    """Illegal execution state transition."""

    category = ErrorCategory.STATE

    def __init__(self, from_state: str, to_state: str):
        super().__init__(f"Invalid transition from {from_state} to {to_state}")
        self.from_state = from_state
        self.to_state = to_state


class DestinationDeliveryError(PaymentError):
    """The bridge reported the transfer failed or refunded on the destination side."""

    category = ErrorCategory.PROVIDER

    def __init__(self, tx_hash: str, status: str, substatus: Optional[str] = None):
        reason = f"{status} ({substatus})" if substatus else status
        super().__init__(f"Cross-chain transfer did not complete: {reason}", details={"tx_hash": tx_hash})
        self.tx_hash = tx_hash
        self.status = status
        self.substatus = substatus
