import os

from pathlib import Path
from typing import Any, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up the integrator id from the legacy frontend variable."""

        super().model_post_init(__context)

        if not self.lifi_integrator:
            fallback = os.getenv("NEXT_PUBLIC_LIFI_INTEGRATOR")
            object.__setattr__(self, "lifi_integrator", fallback or "payflow")

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Routing service (LI.FI)
    lifi_base_url: str = Field(
        default="https://li.quest/v1",
        description="Base URL of the LI.FI REST API",
    )
    lifi_api_key: str = Field(default="", description="Optional LI.FI API key")
    lifi_integrator: str = Field(
        default="",
        description="Integrator id sent with every quote request",
    )
    default_slippage: float = Field(
        default=0.005,
        ge=0,
        lt=1,
        description="Default slippage tolerance as a fraction (0.005 = 0.5%)",
    )
    request_timeout_seconds: int = Field(default=20, description="HTTP request timeout")

    # Execution
    confirmation_poll_interval_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Interval between transaction receipt polls",
    )
    confirmation_timeout_seconds: int = Field(
        default=600,
        ge=1,
        description="Give up waiting for a receipt after this many seconds",
    )
    bridge_status_poll_interval_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Interval between cross-chain status polls",
    )
    bridge_status_timeout_seconds: int = Field(
        default=1800,
        ge=1,
        description="Give up waiting for destination-chain delivery after this many seconds",
    )
    approval_mode: str = Field(
        default="exact",
        pattern="^(exact|unlimited)$",
        description="Approve the exact required amount or an unlimited allowance",
    )
    auto_accept_exchange_rate_updates: bool = Field(
        default=True,
        description="Accept rate changes reported mid-execution without prompting",
    )

    # Balances
    balance_chain_ids: List[int] = Field(
        default_factory=lambda: [1, 42161, 10, 137, 8453],
        description="Chains queried for wallet balances",
    )

    # Name resolution
    ens_api_base_url: str = Field(
        default="https://api.ensdata.net",
        description="ENS lookup API used for names, reverse records and profiles",
    )

    @property
    def has_lifi_key(self) -> bool:
        return bool(self.lifi_api_key)

    @property
    def unlimited_approvals(self) -> bool:
        return self.approval_mode.lower() == "unlimited"


# Global settings instance
settings = Settings()
