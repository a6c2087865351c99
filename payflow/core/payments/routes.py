"""
Quote/Route engine.

Turns a ``PaymentIntent`` into ranked ``RouteOption`` candidates from LI.FI.
Intent validation happens before any network call; tags are recomputed
locally rather than trusted from the service.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Set

import httpx

from ...providers.lifi import LifiProvider, error_message
from ...services.address import is_valid_evm_address
from .chain_registry import ChainRegistry, get_chain_registry
from .errors import IntentValidationError, PaymentError, QuoteError
from .models import AmountMode, PaymentIntent, RouteOption, RouteTag
from .normalize import normalize_route, route_from_quote


logger = logging.getLogger(__name__)

NO_ROUTE_MARKERS = ("no available quotes", "no routes", "no route found")


def tag_routes(routes: List[RouteOption]) -> List[RouteOption]:
    """Assign RECOMMENDED/FASTEST/CHEAPEST/BEST_VALUE in service order.

    RECOMMENDED goes to the highest destination amount, FASTEST to the
    lowest duration, CHEAPEST to the lowest USD cost, BEST_VALUE to the
    highest destination USD value net of cost (only when prices are known).
    Ties keep the earliest route in service order.
    """
    if not routes:
        return []

    indexed = list(enumerate(routes))
    tags: Dict[int, Set[RouteTag]] = {index: set() for index, _ in indexed}

    recommended = min(indexed, key=lambda item: (-item[1].destination_amount, item[0]))[0]
    fastest = min(indexed, key=lambda item: (item[1].total_duration_seconds, item[0]))[0]
    cheapest = min(indexed, key=lambda item: (item[1].total_cost_usd, item[0]))[0]
    tags[recommended].add(RouteTag.RECOMMENDED)
    tags[fastest].add(RouteTag.FASTEST)
    tags[cheapest].add(RouteTag.CHEAPEST)

    priced = [
        (index, route.destination_value_usd - route.total_cost_usd)
        for index, route in indexed
        if route.destination_value_usd is not None
    ]
    if priced:
        best_value = min(priced, key=lambda item: (-item[1], item[0]))[0]
        tags[best_value].add(RouteTag.BEST_VALUE)

    return [replace(route, tags=frozenset(tags[index])) for index, route in indexed]


def default_route(routes: List[RouteOption]) -> Optional[RouteOption]:
    for route in routes:
        if route.is_recommended:
            return route
    return routes[0] if routes else None


class RouteEngine:
    """Fetches, normalizes and ranks routes for payment intents."""

    def __init__(
        self,
        provider: LifiProvider,
        *,
        registry: Optional[ChainRegistry] = None,
        default_slippage: float = 0.005,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._provider = provider
        self._registry = registry or get_chain_registry()
        self._default_slippage = default_slippage
        self._logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_intent(self, intent: PaymentIntent) -> None:
        if not is_valid_evm_address(intent.destination_address):
            raise IntentValidationError("Invalid recipient address", details={"recipient": intent.destination_address})
        if not is_valid_evm_address(intent.source_wallet_address):
            raise IntentValidationError("Invalid wallet address", details={"wallet": intent.source_wallet_address})
        if isinstance(intent.amount, bool) or not isinstance(intent.amount, int) or intent.amount <= 0:
            raise IntentValidationError("Amount must be greater than zero")
        for chain_id in (intent.source_chain_id, intent.destination_chain_id):
            if not self._registry.is_supported(chain_id):
                raise IntentValidationError(f"Unsupported chain: {chain_id}", details={"chain_id": chain_id})
        for token in (intent.source_token_address, intent.destination_token_address):
            if not is_valid_evm_address(token):
                raise IntentValidationError(f"Invalid token address: {token}")
        if intent.slippage is not None and not 0 <= intent.slippage < 1:
            raise IntentValidationError("Slippage must be between 0 and 1")

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _slippage(self, intent: PaymentIntent) -> float:
        return intent.slippage if intent.slippage is not None else self._default_slippage

    def _quote_params(self, intent: PaymentIntent) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "fromChain": intent.source_chain_id,
            "toChain": intent.destination_chain_id,
            "fromToken": intent.source_token_address,
            "toToken": intent.destination_token_address,
            "fromAddress": intent.source_wallet_address,
            "toAddress": intent.destination_address,
            "slippage": self._slippage(intent),
        }
        if intent.amount_mode == AmountMode.EXACT_RECEIVE:
            params["toAmount"] = str(intent.amount)
        else:
            params["fromAmount"] = str(intent.amount)
        return params

    def _routes_payload(self, intent: PaymentIntent) -> Dict[str, Any]:
        return {
            "fromChainId": intent.source_chain_id,
            "toChainId": intent.destination_chain_id,
            "fromTokenAddress": intent.source_token_address,
            "toTokenAddress": intent.destination_token_address,
            "fromAmount": str(intent.amount),
            "fromAddress": intent.source_wallet_address,
            "toAddress": intent.destination_address,
            "options": {"slippage": self._slippage(intent)},
        }

    async def _request_quote(self, intent: PaymentIntent) -> Dict[str, Any]:
        params = self._quote_params(intent)
        if intent.amount_mode == AmountMode.EXACT_RECEIVE:
            return await self._provider.get_quote_to_amount(params)
        return await self._provider.get_quote(params)

    async def _request_raw_routes(self, intent: PaymentIntent) -> List[Dict[str, Any]]:
        # /advanced/routes only sizes by input; receive-exact goes through the toAmount quote.
        if intent.amount_mode == AmountMode.EXACT_RECEIVE:
            return [route_from_quote(await self._request_quote(intent))]
        return await self._provider.get_routes(self._routes_payload(intent))

    def _normalize(self, raw_routes: List[Dict[str, Any]]) -> List[RouteOption]:
        routes: List[RouteOption] = []
        for raw in raw_routes:
            try:
                routes.append(normalize_route(raw))
            except (ValueError, TypeError, AttributeError) as exc:
                self._logger.warning(f"Skipping malformed route {raw.get('id') if isinstance(raw, dict) else raw!r}: {exc}")
        return routes

    async def fetch_routes(self, intent: PaymentIntent) -> List[RouteOption]:
        """Ranked candidate routes; an empty list means no route exists."""
        self.validate_intent(intent)

        try:
            raw_routes = await self._request_raw_routes(intent)
        except httpx.HTTPError as exc:
            if _is_no_route(exc):
                self._log_no_route(intent)
                return []
            raise _quote_error(exc) from exc

        routes = self._normalize(raw_routes)
        if not routes:
            self._log_no_route(intent)
            return []
        return tag_routes(routes)

    async def fetch_quote(self, intent: PaymentIntent) -> Optional[RouteOption]:
        """Single best candidate, or ``None`` when no route exists."""
        self.validate_intent(intent)

        try:
            quote = await self._request_quote(intent)
        except httpx.HTTPError as exc:
            if _is_no_route(exc):
                self._log_no_route(intent)
                return None
            raise _quote_error(exc) from exc

        routes = self._normalize([route_from_quote(quote)])
        if not routes:
            self._log_no_route(intent)
            return None
        return tag_routes(routes)[0]

    def _log_no_route(self, intent: PaymentIntent) -> None:
        self._logger.info(
            f"No route available for {intent.source_chain_id}:{intent.source_token_address} -> "
            f"{intent.destination_chain_id}:{intent.destination_token_address}"
        )


def _is_no_route(exc: httpx.HTTPError) -> bool:
    if not isinstance(exc, httpx.HTTPStatusError):
        return False
    if exc.response.status_code == 404:
        return True
    message = (error_message(exc) or "").lower()
    return any(marker in message for marker in NO_ROUTE_MARKERS)


def _quote_error(exc: httpx.HTTPError) -> QuoteError:
    status_code = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
    message = error_message(exc) if isinstance(exc, httpx.HTTPStatusError) else None
    return QuoteError(message, status_code=status_code)


class QuoteSession:
    """
    The route list shown for one payment form.

    Every ``request`` takes a new token from a monotonically increasing
    counter; a response whose token is no longer the latest is dropped.
    Changing the intent discards the displayed routes immediately; a failed
    request leaves them untouched.
    """

    def __init__(self, engine: RouteEngine) -> None:
        self._engine = engine
        self._latest_token = 0
        self.intent: Optional[PaymentIntent] = None
        self.routes: List[RouteOption] = []
        self.error: Optional[str] = None
        self.selected_route_id: Optional[str] = None

    @property
    def latest_token(self) -> int:
        return self._latest_token

    @property
    def selected_route(self) -> Optional[RouteOption]:
        for route in self.routes:
            if route.id == self.selected_route_id:
                return route
        return None

    def select(self, route_id: str) -> RouteOption:
        for route in self.routes:
            if route.id == route_id:
                self.selected_route_id = route_id
                return route
        raise KeyError(route_id)

    async def request(self, intent: PaymentIntent) -> Optional[List[RouteOption]]:
        """Fetch routes for ``intent``.

        Returns the applied route list, or ``None`` when the response was
        superseded by a newer request. Errors from the latest request are
        stored on ``error`` and re-raised.
        """
        self._latest_token += 1
        token = self._latest_token

        if intent != self.intent:
            self.intent = intent
            self.routes = []
            self.selected_route_id = None

        try:
            routes = await self._engine.fetch_routes(intent)
        except PaymentError as exc:
            if token != self._latest_token:
                logger.debug(f"Dropping error from superseded quote request {token}: {exc.message}")
                return None
            self.error = exc.message
            raise

        if token != self._latest_token:
            logger.debug(f"Dropping superseded quote response {token} (latest {self._latest_token})")
            return None

        self.routes = routes
        self.error = None
        chosen = default_route(routes)
        self.selected_route_id = chosen.id if chosen else None
        return routes
