"""One-shot script to derive Polymarket CLOB API credentials from a wallet private key.

Usage:
    python scripts/derive_api_keys.py

Outputs the 3 values to add to your .env file:
    POLYMARKET_API_KEY, POLYMARKET_API_SECRET, POLYMARKET_API_PASSPHRASE
"""

import sys

from dotenv import load_dotenv

load_dotenv()

from py_clob_client.client import ClobClient

from config.settings import settings
from config.validators import validate_polymarket_credentials
from polynance.exceptions import ConfigError


def env_lines(client: ClobClient) -> list[str]:
    creds = client.create_or_derive_api_creds()
    return [
        f"POLYMARKET_API_KEY={creds.api_key}",
        f"POLYMARKET_API_SECRET={creds.api_secret}",
        f"POLYMARKET_API_PASSPHRASE={creds.api_passphrase}",
    ]


def main() -> None:
    try:
        validate_polymarket_credentials()
    except ConfigError as exc:
        print(f"ERROR: {exc} (set it in .env)")
        sys.exit(1)

    client = ClobClient(
        host=settings.POLYMARKET_CLOB_HTTP,
        key=settings.POLYMARKET_PRIVATE_KEY,
        chain_id=settings.POLYMARKET_CHAIN_ID,
    )

    print("Deriving API credentials from wallet...\n")
    for line in env_lines(client):
        print(line)
    print("\n→ Copy these 3 lines into your .env file")


if __name__ == "__main__":
    main()
