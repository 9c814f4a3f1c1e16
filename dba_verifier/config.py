"""
Configuration management.

Pydantic-settings models read from environment variables (and a local
.env file). Credentials are a value, not ambient state: they are built
once by the caller and passed explicitly into every signing and
verification call.
"""

from __future__ import annotations

from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


class Credentials(BaseSettings):
    """Signing and witnessing options consumed by the provenance engine."""

    model_config = SettingsConfigDict(env_prefix="AQUA_", extra="ignore")

    mnemonic: SecretStr = Field(default=SecretStr(""))
    nostr_sk: SecretStr = Field(default=SecretStr(""))
    did_key: SecretStr = Field(default=SecretStr(""))
    alchemy_key: SecretStr = Field(default=SecretStr(""))
    witness_eth_network: str = Field(default="sepolia")
    witness_eth_platform: str = Field(default="metamask")
    witness_method: str = Field(default="cli")

    def to_engine_dict(self) -> dict[str, str]:
        """Plain-text view for engines that take a credentials mapping."""
        return {
            "mnemonic": self.mnemonic.get_secret_value(),
            "nostr_sk": self.nostr_sk.get_secret_value(),
            "did_key": self.did_key.get_secret_value(),
            "alchemy_key": self.alchemy_key.get_secret_value(),
            "witness_eth_network": self.witness_eth_network,
            "witness_eth_platform": self.witness_eth_platform,
            "witness_method": self.witness_method,
        }


class Settings(BaseSettings):
    """Runtime settings for scraping, DNS checks and the pipeline."""

    model_config = SettingsConfigDict(env_prefix="DBA_", extra="ignore")

    fetch_timeout: float = Field(default=10.0, gt=0)
    dns_timeout: float = Field(default=10.0, gt=0)
    dns_resolver_url: str = Field(default="https://cloudflare-dns.com/dns-query")
    user_agent: str = Field(default=DEFAULT_USER_AGENT)
    delegated_addresses: str = Field(
        default="",
        description="Comma-separated wallet addresses delegated by the claimant",
    )
    claim_type: str = Field(default="dba_claim")
    provenance_engine: str = Field(
        default="",
        description="Import path of the provenance engine factory, 'package.module:factory'",
    )
    parallel_layer2: bool = Field(default=False)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")


def load_settings() -> tuple[Settings, Credentials]:
    """Load .env (if present) and build settings plus credentials."""
    load_dotenv()
    return Settings(), Credentials()
