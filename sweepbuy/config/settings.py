"""Configuration settings for the sweep buyer."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Network the wallet must be on before a purchase is submitted
    required_network_id: int = Field(
        default=4,
        description="Chain id the wallet must be connected to (Rinkeby)",
    )
    required_network_name: str = Field(
        default="Rinkeby Test Network",
        description="Human-readable name shown when the wallet is on another network",
    )

    # Collection
    collection_contract: str = Field(
        default="0x4d68e14cd7dec510c84326f54ee41f88e8fad59b",
        description="Default collection contract address to list tokens from",
    )

    # Execution backend
    api_base: str = Field(
        default="https://api-rinkeby.reservoir.tools",
        description="Base URL of the purchase execution backend",
    )

    # Catalog
    catalog_base_url: str = Field(
        default="https://api-rinkeby.reservoir.tools",
        description="Base URL of the token catalog",
    )
    catalog_limit: int = Field(
        default=20, description="Maximum number of tokens fetched per listing"
    )

    # Wallet bridge
    wallet_bridge_url: str = Field(
        default="http://localhost:8090",
        description="URL of the wallet bridge service",
    )

    # Outbound HTTP
    http_timeout_seconds: float = Field(default=15.0, description="Request timeout")
    http_max_retries: int = Field(default=3, description="Catalog fetch attempts")
    http_retry_delay_seconds: float = Field(
        default=1.0, description="Base delay between catalog fetch attempts"
    )

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    environment: str = Field(
        default="development",
        description="Environment: 'development' or 'production'",
    )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
