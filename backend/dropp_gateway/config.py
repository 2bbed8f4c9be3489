"""
Dropp Gateway Configuration Module

Loads environment variables for the merchant-side Dropp payment integration.
"""
from pydantic_settings import BaseSettings
from typing import Literal


# Dropp merchant API roots per environment
DROPP_ENVIRONMENT_URLS = {
    "SANDBOX": "https://api.sandbox.dropp.cc/v1",
    "PROD": "https://api.dropp.cc/v1",
}

# Merchant portal roots (sub-merchant authorization pages)
DROPP_PORTAL_URLS = {
    "SANDBOX": "https://merchant.sandbox.dropp.cc",
    "PROD": "https://merchant.dropp.cc",
}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Notes:
    - Merchant id and signing key are process-wide defaults; the record store
      may override the signing key per transaction
    - The order/transaction record store is the only durable state
    """

    # Dropp Configuration
    dropp_environment: Literal["SANDBOX", "PROD"] = "SANDBOX"
    dropp_api_base_url: str = ""  # Overrides the environment URL when set
    dropp_merchant_id: str = ""
    dropp_merchant_signing_key: str = ""
    dropp_portal_base_url: str = ""  # Overrides the environment portal URL when set

    # Transaction record store (Django backend)
    django_base_url: str = "http://localhost:8001"

    # Hedera Mirror Node (read-only)
    hedera_mirror_node_url: str = "https://testnet.mirrornode.hedera.com/api/v1"

    # Public URL used to build the wallet callback URL
    public_base_url: str = ""

    # Outbound HTTP
    http_timeout_seconds: float = 15.0

    # Status polling
    status_poll_retries: int = 3
    status_poll_max_retries: int = 10
    status_poll_interval_seconds: float = 2.0

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def dropp_base_url(self) -> str:
        """Dropp API root for the configured environment."""
        return self.dropp_api_base_url or DROPP_ENVIRONMENT_URLS[self.dropp_environment]

    @property
    def dropp_portal_url(self) -> str:
        """Merchant portal root for the configured environment."""
        return self.dropp_portal_base_url or DROPP_PORTAL_URLS[self.dropp_environment]

    @property
    def transaction_base_url(self) -> str:
        """Root of the record store's transaction endpoints."""
        return f"{self.django_base_url.rstrip('/')}/transactions"


# Global settings instance
settings = Settings()
