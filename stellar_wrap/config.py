"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Soulbound token contract (mint_wrap)
    contract_address: str = ""

    # Soroban RPC endpoints per network
    mainnet_rpc_url: str = ""
    testnet_rpc_url: str = "https://soroban-testnet.stellar.org"
    rpc_timeout: float = 30.0

    # Usage statistics indexer
    stats_api_url: str = "https://api.stellarwrapped.xyz"
    stats_period: str = "1y"

    # Redis (persisted transaction store)
    redis_url: str = "redis://localhost:6379/0"
    transaction_storage_key: str = "stellar-wrap-transaction-storage"

    # Confirmation polling
    poll_interval_ms: int = 3000
    max_poll_duration_ms: int = 60000

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    def rpc_url_for(self, network: str) -> str:
        """Get the configured RPC URL for a network (empty if unset)."""
        return {
            "mainnet": self.mainnet_rpc_url,
            "testnet": self.testnet_rpc_url,
        }.get(network, "")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
