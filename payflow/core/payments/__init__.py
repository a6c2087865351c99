"""
Cross-chain payment pipeline.

Route acquisition and ranking, approvals, execution and progress tracking
for paying an invoice from whatever funds a wallet holds.
"""

from .chain_registry import ChainConfig, ChainRegistry, get_chain_registry
from .errors import (
    ConfirmationTimeoutError,
    DestinationDeliveryError,
    ErrorCategory,
    ExchangeRateRejectedError,
    ExecutionInProgressError,
    IntentValidationError,
    InvalidTransitionError,
    PaymentError,
    QuoteError,
    TransactionRevertedError,
    UnsupportedTokenError,
    WalletInteractionError,
)
from .models import (
    AmountMode,
    ExecutionEvent,
    ExecutionResult,
    ExecutionState,
    PaymentIntent,
    PaymentRecord,
    PaymentStatus,
    RouteLeg,
    RouteOption,
    RouteTag,
    StepStatus,
    StepType,
    TokenRef,
    TransactionRequest,
    TransactionStep,
    WalletTokenBalance,
)

__all__ = [
    # Chains
    "ChainConfig",
    "ChainRegistry",
    "get_chain_registry",
    # Errors
    "ErrorCategory",
    "PaymentError",
    "IntentValidationError",
    "UnsupportedTokenError",
    "QuoteError",
    "WalletInteractionError",
    "TransactionRevertedError",
    "ConfirmationTimeoutError",
    "DestinationDeliveryError",
    "ExchangeRateRejectedError",
    "ExecutionInProgressError",
    "InvalidTransitionError",
    # Models
    "AmountMode",
    "RouteTag",
    "StepType",
    "StepStatus",
    "ExecutionState",
    "PaymentStatus",
    "PaymentIntent",
    "TokenRef",
    "TransactionRequest",
    "RouteLeg",
    "TransactionStep",
    "RouteOption",
    "WalletTokenBalance",
    "PaymentRecord",
    "ExecutionEvent",
    "ExecutionResult",
]
