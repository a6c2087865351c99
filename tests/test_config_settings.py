from payflow.api import dependencies
from payflow.config import Settings
from payflow.core.payments.constants import MAX_UINT256

USDC_ARB = "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"
SPENDER = "0x1231DEB6f5749EF6cE6943a275A1D3E7486F4EaE"


def test_lifi_integrator_legacy_alias(monkeypatch):
    """Integrator id falls back to the frontend variable when unset."""

    monkeypatch.setenv("LIFI_INTEGRATOR", "")
    monkeypatch.setenv("NEXT_PUBLIC_LIFI_INTEGRATOR", "invoice-frontend")

    settings = Settings()

    assert settings.lifi_integrator == "invoice-frontend"


def test_lifi_integrator_direct_env(monkeypatch):
    """Environment-provided integrator remains the primary source."""

    monkeypatch.setenv("LIFI_INTEGRATOR", "invoice-backend")
    monkeypatch.setenv("NEXT_PUBLIC_LIFI_INTEGRATOR", "invoice-frontend")

    settings = Settings()

    assert settings.lifi_integrator == "invoice-backend"


def test_lifi_integrator_default(monkeypatch):
    monkeypatch.delenv("LIFI_INTEGRATOR", raising=False)
    monkeypatch.delenv("NEXT_PUBLIC_LIFI_INTEGRATOR", raising=False)

    assert Settings().lifi_integrator == "payflow"


def test_balance_chains_from_env(monkeypatch):
    monkeypatch.setenv("BALANCE_CHAIN_IDS", "[1, 8453]")

    assert Settings().balance_chain_ids == [1, 8453]


def test_unlimited_approval_mode_reaches_approvals(monkeypatch):
    monkeypatch.setenv("APPROVAL_MODE", "unlimited")
    monkeypatch.setattr(dependencies, "settings", Settings())

    approval = dependencies.get_approval_manager().build_approval_transaction(
        USDC_ARB, SPENDER, amount=10_000_000, chain_id=42161
    )

    assert approval.data.endswith(format(MAX_UINT256, "064x"))


def test_exact_approval_mode_is_default(monkeypatch):
    monkeypatch.delenv("APPROVAL_MODE", raising=False)
    monkeypatch.setattr(dependencies, "settings", Settings())

    approval = dependencies.get_approval_manager().build_approval_transaction(
        USDC_ARB, SPENDER, amount=10_000_000, chain_id=42161
    )

    assert approval.data.endswith(format(10_000_000, "064x"))


def test_execution_timings_reach_wallet_and_driver(monkeypatch):
    monkeypatch.setenv("CONFIRMATION_POLL_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("CONFIRMATION_TIMEOUT_SECONDS", "30")
    monkeypatch.setenv("BRIDGE_STATUS_POLL_INTERVAL_SECONDS", "3")
    monkeypatch.setenv("BRIDGE_STATUS_TIMEOUT_SECONDS", "90")
    monkeypatch.setenv("AUTO_ACCEPT_EXCHANGE_RATE_UPDATES", "false")
    monkeypatch.setattr(dependencies, "settings", Settings())

    wallet = dependencies.build_wallet_client(object())
    executor = dependencies.get_payment_executor()

    assert wallet.poll_interval_seconds == 0.5
    assert wallet.confirmation_timeout_seconds == 30
    assert executor.auto_accept_exchange_rate_updates is False
    assert executor.driver.status_poll_interval_seconds == 3
    assert executor.driver.status_timeout_seconds == 90
    assert executor.approvals is executor.driver._approvals
