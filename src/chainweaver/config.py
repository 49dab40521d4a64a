"""Application configuration using pydantic-settings.

The relay talks to exactly one network per process. Everything the relay
needs at call time is folded into an immutable NetworkConfig.
"""

from dataclasses import dataclass
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class NetworkConfig:
    """Network parameters handed to the relay at construction."""

    network_id: str
    rpc_url: str
    decimals: int = 24
    submission_timeout: float = 30.0

    @property
    def unit_scale(self) -> int:
        """Atomic units per whole currency unit."""
        return 10**self.decimals


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")

    # ======================
    # NEAR network
    # ======================
    near_network_id: str = Field(default="testnet", description="NEAR network identifier")
    near_rpc_url: str = Field(
        default="https://rpc.testnet.near.org", description="NEAR JSON-RPC URL"
    )
    near_decimals: int = Field(
        default=24, ge=0, description="Atomic units exponent (yoctoNEAR = 24)"
    )

    # ======================
    # Relay
    # ======================
    submission_timeout: float = Field(
        default=30.0, gt=0, description="Upper bound for one submission in seconds"
    )

    # ======================
    # Upstream client
    # ======================
    signer_endpoint: str = Field(
        default="http://localhost:8000/api/sign-and-send",
        description="Signer relay URL used by the workflow client",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def network_config(self) -> NetworkConfig:
        """Build the relay's network configuration."""
        return NetworkConfig(
            network_id=self.near_network_id,
            rpc_url=self.near_rpc_url,
            decimals=self.near_decimals,
            submission_timeout=self.submission_timeout,
        )

    def get_safe_dict(self) -> dict:
        """Return settings dict safe to expose over the health endpoint."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "network": {
                "id": self.near_network_id,
                "rpc": self._redact_url(self.near_rpc_url),
                "decimals": self.near_decimals,
            },
            "submission_timeout": self.submission_timeout,
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact credentials embedded in a URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
