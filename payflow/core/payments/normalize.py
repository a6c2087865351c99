"""
Normalization of routing-service payloads.

LI.FI routes and quotes are loosely typed nested JSON. They are converted
here, once, into the fixed models. Only the execution driver and the
progress mapper read raw shapes, since both work on the live route object
the service executes.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from .amounts import parse_decimal, parse_int
from .constants import NATIVE_PLACEHOLDER, NATIVE_TOKEN_ADDRESS
from .models import RouteLeg, RouteOption, StepType, TokenRef, TransactionRequest


_SUB_STEP_TYPES = {
    "swap": StepType.SWAP,
    "cross": StepType.BRIDGE,
}


def is_native(address: Optional[str]) -> bool:
    return (address or "").lower() in {NATIVE_TOKEN_ADDRESS, NATIVE_PLACEHOLDER}


def parse_token(raw: Optional[Dict[str, Any]], chain_id: int) -> TokenRef:
    raw = raw or {}
    return TokenRef(
        chain_id=parse_int(raw.get("chainId"), default=chain_id),
        address=raw.get("address") or NATIVE_TOKEN_ADDRESS,
        symbol=raw.get("symbol") or "???",
        decimals=parse_int(raw.get("decimals"), default=18),
        price_usd=parse_decimal(raw.get("priceUSD")),
        name=raw.get("name"),
        logo_uri=raw.get("logoURI"),
    )


def parse_transaction_request(raw: Optional[Dict[str, Any]], chain_id: int) -> Optional[TransactionRequest]:
    if not raw or not raw.get("to"):
        return None
    gas_limit = parse_int(raw.get("gasLimit") or raw.get("gas"), default=0)
    return TransactionRequest(
        chain_id=parse_int(raw.get("chainId"), default=chain_id),
        to=raw["to"],
        data=raw.get("data") or "0x",
        value=parse_int(raw.get("value")),
        gas_limit=gas_limit or None,
        from_address=raw.get("from"),
    )


def step_tool_name(step: Dict[str, Any]) -> str:
    details = step.get("toolDetails") or {}
    return details.get("name") or step.get("tool") or "LI.FI"


def step_requires_approval(step: Dict[str, Any]) -> bool:
    action = step.get("action") or {}
    estimate = step.get("estimate") or {}
    token = (action.get("fromToken") or {}).get("address")
    return bool(estimate.get("approvalAddress")) and bool(token) and not is_native(token)


def legs_for_step(step: Dict[str, Any]) -> List[RouteLeg]:
    """Flatten one service step into ordered legs.

    An approval leg comes first when the step spends a token contract; the
    included sub-steps follow in service order. Fee-collection sub-steps
    ("protocol") produce no leg. A step that moves the same token on the
    same chain is a transfer.
    """
    action = step.get("action") or {}
    from_chain = parse_int(action.get("fromChainId"))
    to_chain = parse_int(action.get("toChainId"), default=from_chain)

    legs: List[RouteLeg] = []
    if step_requires_approval(step):
        symbol = (action.get("fromToken") or {}).get("symbol") or "token"
        legs.append(RouteLeg(StepType.APPROVAL, symbol, from_chain, from_chain))

    for sub in step.get("includedSteps") or [step]:
        leg = _leg_for_sub_step(sub)
        if leg is not None:
            legs.append(leg)

    if len(legs) == (1 if step_requires_approval(step) else 0):
        legs.append(RouteLeg(StepType.TRANSFER, step_tool_name(step), from_chain, to_chain))
    return legs


def _leg_for_sub_step(sub: Dict[str, Any]) -> Optional[RouteLeg]:
    action = sub.get("action") or {}
    from_chain = parse_int(action.get("fromChainId"))
    to_chain = parse_int(action.get("toChainId"), default=from_chain)
    sub_type = sub.get("type")

    if sub_type == "protocol":
        return None
    if sub_type in _SUB_STEP_TYPES:
        leg_type = _SUB_STEP_TYPES[sub_type]
    else:
        leg_type = StepType.BRIDGE if from_chain != to_chain else StepType.SWAP

    if leg_type == StepType.SWAP:
        from_token = (action.get("fromToken") or {}).get("address") or ""
        to_token = (action.get("toToken") or {}).get("address") or ""
        if from_token.lower() == to_token.lower():
            leg_type = StepType.TRANSFER

    details = sub.get("toolDetails") or {}
    return RouteLeg(
        type=leg_type,
        tool_name=step_tool_name(sub),
        from_chain_id=from_chain,
        to_chain_id=to_chain,
        tool_logo=details.get("logoURI"),
    )


def _sum_usd(costs: Iterable[Dict[str, Any]]) -> Decimal:
    total = Decimal("0")
    for cost in costs or []:
        if not isinstance(cost, dict):
            continue
        amount = parse_decimal(cost.get("amountUSD"))
        if amount is not None:
            total += amount
    return total


def step_cost_usd(step: Dict[str, Any]) -> Decimal:
    estimate = step.get("estimate") or {}
    return _sum_usd(estimate.get("gasCosts") or []) + _sum_usd(estimate.get("feeCosts") or [])


def step_duration_seconds(step: Dict[str, Any]) -> int:
    estimate = step.get("estimate") or {}
    duration = parse_decimal(estimate.get("executionDuration"))
    return int(duration) if duration is not None else 0


def route_from_quote(quote: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap a single-step quote in the route envelope used by ``/advanced/routes``."""
    action = quote.get("action") or {}
    estimate = quote.get("estimate") or {}
    return {
        "id": quote.get("id"),
        "fromChainId": action.get("fromChainId"),
        "toChainId": action.get("toChainId"),
        "fromToken": action.get("fromToken"),
        "toToken": action.get("toToken"),
        "fromAmount": estimate.get("fromAmount") or action.get("fromAmount"),
        "toAmount": estimate.get("toAmount"),
        "toAmountMin": estimate.get("toAmountMin"),
        "fromAmountUSD": estimate.get("fromAmountUSD"),
        "toAmountUSD": estimate.get("toAmountUSD"),
        "fromAddress": action.get("fromAddress"),
        "toAddress": action.get("toAddress"),
        "steps": [quote],
    }


def normalize_route(raw: Dict[str, Any]) -> RouteOption:
    """Build an untagged ``RouteOption`` from a service route.

    Raises ``ValueError`` for routes missing an id or steps.
    """
    steps = raw.get("steps") or []
    if not raw.get("id") or not steps:
        raise ValueError("route is missing its id or steps")

    from_chain = parse_int(raw.get("fromChainId"))
    to_chain = parse_int(raw.get("toChainId"), default=from_chain)

    legs: List[RouteLeg] = []
    for step in steps:
        legs.extend(legs_for_step(step))

    first_step = steps[0]
    transaction_request = None
    if len(steps) == 1:
        transaction_request = parse_transaction_request(first_step.get("transactionRequest"), from_chain)

    first_estimate = first_step.get("estimate") or {}

    return RouteOption(
        id=str(raw["id"]),
        legs=tuple(legs),
        tags=frozenset(),
        total_cost_usd=sum((step_cost_usd(step) for step in steps), Decimal("0")),
        total_duration_seconds=sum(step_duration_seconds(step) for step in steps),
        destination_amount=parse_int(raw.get("toAmount")),
        destination_amount_minimum=parse_int(raw.get("toAmountMin") or raw.get("toAmount")),
        from_chain_id=from_chain,
        to_chain_id=to_chain,
        from_token=parse_token(raw.get("fromToken"), from_chain),
        to_token=parse_token(raw.get("toToken"), to_chain),
        from_amount=parse_int(raw.get("fromAmount")),
        from_address=raw.get("fromAddress"),
        to_address=raw.get("toAddress"),
        approval_address=first_estimate.get("approvalAddress"),
        transaction_request=transaction_request,
        raw=raw,
    )
