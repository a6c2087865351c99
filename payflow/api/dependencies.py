"""Shared service instances for the HTTP routers and embedding callers.

Routers take these through ``Depends`` so tests can swap them with
``app.dependency_overrides``. Execution components are built from
``settings`` on every call.
"""

from typing import Optional

from ..config import settings
from ..core.payments.approval import ApprovalManager
from ..core.payments.balances import BalanceInventory
from ..core.payments.driver import LifiRouteDriver
from ..core.payments.executor import PaymentExecutor
from ..core.payments.records import InMemoryPaymentLedger
from ..core.payments.routes import RouteEngine
from ..core.payments.wallet import WalletClient, WalletProvider
from ..providers.ens import EnsProvider
from ..providers.lifi import LifiProvider

_lifi: Optional[LifiProvider] = None
_ledger: Optional[InMemoryPaymentLedger] = None
_ens: Optional[EnsProvider] = None


def get_lifi_provider() -> LifiProvider:
    global _lifi
    if _lifi is None:
        _lifi = LifiProvider()
    return _lifi


def get_route_engine() -> RouteEngine:
    return RouteEngine(get_lifi_provider(), default_slippage=settings.default_slippage)


def get_balance_inventory() -> BalanceInventory:
    return BalanceInventory(get_lifi_provider(), default_chain_ids=settings.balance_chain_ids)


def get_payment_ledger() -> InMemoryPaymentLedger:
    global _ledger
    if _ledger is None:
        _ledger = InMemoryPaymentLedger()
    return _ledger


def get_ens_provider() -> EnsProvider:
    global _ens
    if _ens is None:
        _ens = EnsProvider()
    return _ens


def get_approval_manager() -> ApprovalManager:
    return ApprovalManager(unlimited=settings.unlimited_approvals)


def get_route_driver(approvals: Optional[ApprovalManager] = None) -> LifiRouteDriver:
    return LifiRouteDriver(
        get_lifi_provider(),
        approvals or get_approval_manager(),
        status_poll_interval_seconds=settings.bridge_status_poll_interval_seconds,
        status_timeout_seconds=settings.bridge_status_timeout_seconds,
    )


def get_payment_executor() -> PaymentExecutor:
    """A new executor; callers keep one per paying session."""
    approvals = get_approval_manager()
    return PaymentExecutor(
        approvals=approvals,
        driver=get_route_driver(approvals),
        recorder=get_payment_ledger(),
        auto_accept_exchange_rate_updates=settings.auto_accept_exchange_rate_updates,
    )


def build_wallet_client(provider: WalletProvider) -> WalletClient:
    return WalletClient(
        provider,
        poll_interval_seconds=settings.confirmation_poll_interval_seconds,
        confirmation_timeout_seconds=settings.confirmation_timeout_seconds,
    )
