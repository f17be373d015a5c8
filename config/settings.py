"""Runtime configuration, read from the environment and ``.env``."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # === Polynance API ===
    POLYNANCE_API_URL: str = "https://api.polynance.ag"
    POLYNANCE_TIMEOUT_SECONDS: float = 100.0

    # === Polymarket CLOB ===
    POLYMARKET_CLOB_HTTP: str = "https://clob.polymarket.com"
    POLYMARKET_CHAIN_ID: int = 137
    POLYMARKET_PRIVATE_KEY: str = ""
    POLYMARKET_WALLET_ADDRESS: str = ""
    POLYMARKET_SIGNATURE_TYPE: int = 0  # 0 = EOA, 1 = POLY_PROXY
    POLYMARKET_API_KEY: str = ""
    POLYMARKET_API_SECRET: str = ""
    POLYMARKET_API_PASSPHRASE: str = ""
    POLYMARKET_ORDER_TYPE: str = "GTC"

    # === Chain ===
    POLYGON_RPC_URL: str = ""
    POLYGON_RPC_TIMEOUT_SECONDS: float = 15.0
    APPROVAL_GAS_PRICE_WEI: int = 100_000_000_000  # 100 gwei
    APPROVAL_GAS_LIMIT: int = 200_000

    # === Execution ===
    DEFAULT_PROVIDER: str = "polymarket"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
