"""Credential and configuration validators."""

from polynance.exceptions import ConfigError


def validate_polymarket_credentials() -> None:
    """Raise ConfigError if Polymarket signing credentials are missing."""
    from config.settings import settings
    if not settings.POLYMARKET_PRIVATE_KEY:
        raise ConfigError("POLYMARKET_PRIVATE_KEY is required")


def validate_chain_rpc() -> None:
    """Raise ConfigError if no Polygon RPC endpoint is configured."""
    from config.settings import settings
    if not settings.POLYGON_RPC_URL:
        raise ConfigError("POLYGON_RPC_URL is required for allowance checks")
    if not settings.POLYGON_RPC_URL.startswith(("http://", "https://")):
        raise ConfigError("POLYGON_RPC_URL must be an http(s) endpoint")


def validate_polynance_api() -> None:
    """Raise ConfigError if the Polynance API base URL is unusable."""
    from config.settings import settings
    if not settings.POLYNANCE_API_URL.startswith(("http://", "https://")):
        raise ConfigError("POLYNANCE_API_URL must be an http(s) URL")
