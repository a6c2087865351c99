"""
Payment flow models and types.
"""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


class AmountMode(str, Enum):
    """Which side of the trade the intent amount denominates."""
    EXACT_SEND = "EXACT_SEND"        # Amount is the source token input
    EXACT_RECEIVE = "EXACT_RECEIVE"  # Amount is what the recipient must get


class RouteTag(str, Enum):
    RECOMMENDED = "RECOMMENDED"
    FASTEST = "FASTEST"
    CHEAPEST = "CHEAPEST"
    BEST_VALUE = "BEST_VALUE"


class StepType(str, Enum):
    APPROVAL = "approval"
    SWAP = "swap"
    BRIDGE = "bridge"
    TRANSFER = "transfer"


class StepStatus(str, Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    ACTION_REQUIRED = "action_required"
    COMPLETED = "completed"
    FAILED = "failed"


class ExecutionState(str, Enum):
    """Lifecycle of one payment attempt."""
    IDLE = "idle"
    SWITCHING_NETWORK = "switching_network"
    APPROVING = "approving"
    SENDING = "sending"
    CONFIRMING = "confirming"
    SUCCESS = "success"
    FAILED = "failed"
    TIMED_OUT = "timed_out"      # Receipt not seen in time, check the explorer

    @property
    def is_terminal(self) -> bool:
        return self in {ExecutionState.SUCCESS, ExecutionState.FAILED, ExecutionState.TIMED_OUT}


class PaymentStatus(str, Enum):
    """Status stored on a payment record."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class PaymentIntent:
    """What the user wants to pay, in smallest token units.

    ``amount`` denominates the source token for EXACT_SEND and the
    destination token for EXACT_RECEIVE.
    """
    source_chain_id: int
    source_token_address: str
    source_wallet_address: str
    destination_chain_id: int
    destination_token_address: str
    destination_address: str
    amount: int
    amount_mode: AmountMode = AmountMode.EXACT_SEND
    slippage: Optional[float] = None
    invoice_id: Optional[str] = None


@dataclass(frozen=True)
class TokenRef:
    chain_id: int
    address: str
    symbol: str
    decimals: int
    price_usd: Optional[Decimal] = None
    name: Optional[str] = None
    logo_uri: Optional[str] = None


@dataclass(frozen=True)
class TransactionRequest:
    """A submittable transaction as returned by the routing service."""
    chain_id: int
    to: str
    data: str = "0x"
    value: int = 0
    gas_limit: Optional[int] = None
    from_address: Optional[str] = None

    def to_wallet_params(self, from_address: Optional[str] = None) -> Dict[str, Any]:
        """Parameters for ``eth_sendTransaction``."""
        params: Dict[str, Any] = {
            "from": from_address or self.from_address,
            "to": self.to,
            "data": self.data or "0x",
            "value": hex(self.value),
        }
        if self.gas_limit:
            params["gas"] = hex(self.gas_limit)
        return params


@dataclass(frozen=True)
class RouteLeg:
    type: StepType
    tool_name: str
    from_chain_id: int
    to_chain_id: int
    tool_logo: Optional[str] = None


@dataclass
class TransactionStep:
    """A leg as tracked during execution. Mutated only by its owning run."""
    type: StepType
    tool_name: str
    from_chain_id: int
    to_chain_id: int
    status: StepStatus = StepStatus.PENDING
    transaction_hash: Optional[str] = None
    explorer_link: Optional[str] = None

    @classmethod
    def from_leg(cls, leg: RouteLeg) -> "TransactionStep":
        return cls(
            type=leg.type,
            tool_name=leg.tool_name,
            from_chain_id=leg.from_chain_id,
            to_chain_id=leg.to_chain_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "toolName": self.tool_name,
            "fromChainId": self.from_chain_id,
            "toChainId": self.to_chain_id,
            "status": self.status.value,
            "transactionHash": self.transaction_hash,
            "explorerLink": self.explorer_link,
        }


@dataclass(frozen=True)
class RouteOption:
    """A normalized, ranked route. Never mutated after tagging."""
    id: str
    legs: Tuple[RouteLeg, ...]
    tags: FrozenSet[RouteTag]
    total_cost_usd: Decimal
    total_duration_seconds: int
    destination_amount: int
    destination_amount_minimum: int
    from_chain_id: int
    to_chain_id: int
    from_token: TokenRef
    to_token: TokenRef
    from_amount: int
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    approval_address: Optional[str] = None
    transaction_request: Optional[TransactionRequest] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False, repr=False)

    @property
    def is_recommended(self) -> bool:
        return RouteTag.RECOMMENDED in self.tags

    @property
    def is_single_transaction(self) -> bool:
        """True when the route can be sent as one prepared transaction."""
        return self.transaction_request is not None and len(self.raw.get("steps") or []) <= 1

    @property
    def destination_value_usd(self) -> Optional[Decimal]:
        if self.to_token.price_usd is None:
            return None
        return Decimal(self.destination_amount) / (Decimal(10) ** self.to_token.decimals) * self.to_token.price_usd

    @property
    def bridge_names(self) -> List[str]:
        return [leg.tool_name for leg in self.legs if leg.type == StepType.BRIDGE]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "legs": [
                {
                    "type": leg.type.value,
                    "toolName": leg.tool_name,
                    "fromChainId": leg.from_chain_id,
                    "toChainId": leg.to_chain_id,
                    "toolLogo": leg.tool_logo,
                }
                for leg in self.legs
            ],
            "tags": sorted(tag.value for tag in self.tags),
            "totalCostUSD": str(self.total_cost_usd),
            "totalDurationSeconds": self.total_duration_seconds,
            "destinationAmount": str(self.destination_amount),
            "destinationAmountMinimum": str(self.destination_amount_minimum),
            "fromChainId": self.from_chain_id,
            "toChainId": self.to_chain_id,
            "fromToken": _token_dict(self.from_token),
            "toToken": _token_dict(self.to_token),
            "fromAmount": str(self.from_amount),
            "approvalAddress": self.approval_address,
            "transactionRequest": asdict(self.transaction_request) if self.transaction_request else None,
        }


def _token_dict(token: TokenRef) -> Dict[str, Any]:
    return {
        "chainId": token.chain_id,
        "address": token.address,
        "symbol": token.symbol,
        "decimals": token.decimals,
        "priceUSD": str(token.price_usd) if token.price_usd is not None else None,
    }


@dataclass(frozen=True)
class WalletTokenBalance:
    """Read-only balance snapshot for one token on one chain."""
    symbol: str
    chain_id: int
    token_address: str
    amount_raw: int
    decimals: int
    price_usd: Decimal = Decimal("0")
    name: Optional[str] = None
    logo_uri: Optional[str] = None

    @property
    def amount(self) -> Decimal:
        return Decimal(self.amount_raw) / (Decimal(10) ** self.decimals)

    @property
    def value_usd(self) -> Decimal:
        return self.amount * self.price_usd

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "chainId": self.chain_id,
            "tokenAddress": self.token_address,
            "amountRaw": str(self.amount_raw),
            "decimals": self.decimals,
            "priceUSD": str(self.price_usd),
            "name": self.name,
            "logoURI": self.logo_uri,
        }


@dataclass
class PaymentRecord:
    """Outcome of a payment attempt handed to persistence."""
    source_chain: int
    destination_chain: int
    source_token: str
    destination_token: str
    amount: str
    status: PaymentStatus = PaymentStatus.PENDING
    invoice_id: Optional[str] = None
    transaction_hash: Optional[str] = None
    steps: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    id: str = field(default_factory=lambda: f"pay_{uuid.uuid4().hex[:16]}")
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "invoiceId": self.invoice_id,
            "transactionHash": self.transaction_hash,
            "sourceChain": self.source_chain,
            "destinationChain": self.destination_chain,
            "sourceToken": self.source_token,
            "destinationToken": self.destination_token,
            "amount": self.amount,
            "status": self.status.value,
            "routeData": {"steps": self.steps},
            "error": self.error,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class ExecutionEvent:
    """Immutable snapshot emitted to listeners on every run change."""
    state: ExecutionState
    steps: Tuple[TransactionStep, ...]
    transaction_hash: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass
class ExecutionResult:
    """Final outcome of a payment attempt."""
    state: ExecutionState
    steps: List[TransactionStep] = field(default_factory=list)
    transaction_hash: Optional[str] = None
    explorer_link: Optional[str] = None
    error: Optional[str] = None
    record_id: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.state == ExecutionState.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "steps": [step.to_dict() for step in self.steps],
            "transactionHash": self.transaction_hash,
            "explorerLink": self.explorer_link,
            "error": self.error,
            "recordId": self.record_id,
        }
