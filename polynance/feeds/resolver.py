"""Resolve a market id or slug into a tradable ``Exchange``."""

from __future__ import annotations

import structlog

from polynance.errors import classify, mask
from polynance.exceptions import ErrorCode, PolynanceApiError
from polynance.feeds.polynance_api import PolynanceApi
from polynance.models import Exchange

logger = structlog.get_logger()


def is_slug(market_id_or_slug: str) -> bool:
    """Slugs are hyphenated (``will-x-happen``); opaque ids never are."""
    return "-" in market_id_or_slug


class InstrumentResolver:
    """Single round-trip lookup of an exchange, never cached."""

    def __init__(self, api: PolynanceApi, protocol: str = "polymarket") -> None:
        self._api = api
        self.protocol = protocol

    async def resolve(self, market_id_or_slug: str) -> Exchange:
        method_name = "resolve_exchange"
        ref = (market_id_or_slug or "").strip()
        if not ref:
            raise PolynanceApiError(
                "Missing required parameter 'market_id_or_slug'.",
                ErrorCode.INVALID_PARAMETER,
                method_name=method_name,
            )

        try:
            if is_slug(ref):
                rows = await self._api.get_exchange_by_slug(ref)
                raw = rows[0]
                if len(rows) > 1:
                    logger.debug("slug_multiple_matches", slug=ref, matches=len(rows))
            else:
                raw = await self._api.get_exchange(ref, protocol=self.protocol)
            exchange = Exchange.from_api(raw)
        except Exception as exc:
            raise classify(exc, method_name, {"market_id_or_slug": ref})

        if not exchange.position_tokens:
            raise PolynanceApiError(
                "Exchange payload carries no position tokens.",
                ErrorCode.VALIDATION_ERROR,
                method_name=method_name,
                response_data={"id": exchange.id, "slug": exchange.slug},
                context={"market_id_or_slug": mask(ref)},
            )

        logger.debug(
            "exchange_resolved",
            exchange_id=mask(exchange.id),
            slug=exchange.slug,
            tokens=[t.name for t in exchange.position_tokens],
        )
        return exchange
