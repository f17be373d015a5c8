"""Resolve a market, build a signed order and execute it on Polymarket.

Usage:
    python scripts/execute_order.py will-it-rain-tomorrow YES BUY --usdc 10
    python scripts/execute_order.py 506729 NO SELL --size 20 --price 0.41 --order-type FOK
    python scripts/execute_order.py will-it-rain-tomorrow YES BUY --usdc 10 --dry-run
"""

import argparse
import asyncio
import sys
from typing import Optional

import structlog
from dotenv import load_dotenv

load_dotenv()

from config.settings import settings
from polynance.client import PolynanceClient
from polynance.exceptions import ConfigError, PolynanceApiError
from polynance.execution.models import TradeIntent
from polynance.utils.logging import configure_logging

logger = structlog.get_logger()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build and execute a Polymarket order.")
    parser.add_argument("market", help="Market id or slug")
    parser.add_argument("position", help="Outcome name (YES/NO) or token id")
    parser.add_argument("side", type=str.upper, choices=["BUY", "SELL"])
    parser.add_argument("--usdc", type=float, default=None, help="Notional in USDC")
    parser.add_argument("--size", type=float, default=None, help="Explicit share count")
    parser.add_argument("--price", type=float, default=None, help="Explicit limit price")
    parser.add_argument("--fee-bps", type=int, default=None)
    parser.add_argument("--order-type", default=settings.POLYMARKET_ORDER_TYPE)
    parser.add_argument("--provider", default=settings.DEFAULT_PROVIDER)
    parser.add_argument("--dry-run", action="store_true", help="Stop after building the order")
    args = parser.parse_args(argv)
    if args.usdc is None and args.size is None:
        parser.error("one of --usdc or --size is required")
    return args


def intent_from_args(args: argparse.Namespace) -> TradeIntent:
    return TradeIntent(
        market_id_or_slug=args.market,
        position_id_or_name=args.position,
        buy_or_sell=args.side,
        usdc_flow_abs=args.usdc,
        size=args.size,
        price=args.price,
        fee_rate_bps=args.fee_bps,
        provider=args.provider,
    )


async def run(args: argparse.Namespace) -> int:
    async with PolynanceClient.from_settings() as client:
        exchange = await client.resolve_exchange(args.market)
        print(client.as_context(exchange, prompt=exchange.question or exchange.name))

        try:
            order = await client.build_order(intent_from_args(args))
        except PolynanceApiError as exc:
            print(exc.report())
            return 1

        if args.dry_run:
            print(client.as_context(order.dict(), prompt="Signed order (not submitted)"))
            return 0

        result = await client.execute_order(order, args.order_type, provider=args.provider)
        if not result.ok:
            print(result.error.report())
            return 1

        print(client.as_context(result, prompt=f"Execution: {result.status}"))
        if client.get_pending_order_ids():
            print(f"Pending orders: {', '.join(client.get_pending_order_ids())}")
        return 0


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    args = parse_args()
    try:
        code = asyncio.run(run(args))
    except ConfigError as exc:
        logger.error("config_error", error=str(exc))
        code = 2
    except PolynanceApiError as exc:
        print(exc.report())
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
