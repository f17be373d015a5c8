"""Async client for the Polynance aggregation API.

Only the endpoints the trading pipeline needs live here: exchange lookup by
id or slug, and the price-proposal endpoints used when an order rests on the
book without an order id.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
import structlog

from polynance.errors import classify, mask
from polynance.exceptions import ErrorCode, PolynanceApiError

logger = structlog.get_logger()

DEFAULT_API_URL = "https://api.polynance.ag"
DEFAULT_TIMEOUT_SECONDS = 100.0


class PolynanceApi:
    """Thin wrapper over ``httpx.AsyncClient`` that raises ``PolynanceApiError``."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def from_settings(cls) -> "PolynanceApi":
        from config.settings import settings
        from config.validators import validate_polynance_api
        validate_polynance_api()
        return cls(
            base_url=settings.POLYNANCE_API_URL,
            timeout=settings.POLYNANCE_TIMEOUT_SECONDS,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def get_exchange(self, exchange_id: str, protocol: str = "polymarket") -> dict[str, Any]:
        """Fetch one exchange payload by its opaque id."""
        method_name = "get_exchange"
        context = {"protocol": protocol, "exchange_id": exchange_id}
        if not protocol:
            raise PolynanceApiError(
                "Missing required parameter 'protocol'.",
                ErrorCode.INVALID_PARAMETER,
                method_name=method_name,
                context={"exchange_id": mask(exchange_id)},
            )
        if not exchange_id:
            raise PolynanceApiError(
                "Missing required parameter 'exchange_id'.",
                ErrorCode.INVALID_PARAMETER,
                method_name=method_name,
                context={"protocol": protocol},
            )
        try:
            response = await self._client.get(
                self._url(f"/v1/markets/{exchange_id}"),
                params={"protocol": protocol},
            )
            response.raise_for_status()
            data = response.json()
        except Exception as exc:
            raise classify(exc, method_name, context)

        if not isinstance(data, dict) or not data:
            raise PolynanceApiError(
                f"Exchange '{mask(exchange_id)}' not found.",
                ErrorCode.NOT_FOUND,
                method_name=method_name,
                status_code=404,
                context={"protocol": protocol, "exchange_id": mask(exchange_id)},
            )
        return data

    async def get_exchange_by_slug(self, slug: str) -> list[dict[str, Any]]:
        """Fetch every exchange listed under ``slug``; never returns an empty list."""
        method_name = "get_exchange_by_slug"
        if not slug:
            raise PolynanceApiError(
                "Missing required parameter 'slug'.",
                ErrorCode.INVALID_PARAMETER,
                method_name=method_name,
            )
        try:
            response = await self._client.get(self._url("/v1/agg/market"), params={"slug": slug})
            response.raise_for_status()
            data = response.json()
        except Exception as exc:
            raise classify(exc, method_name, {"slug": slug})

        rows = [row for row in data if isinstance(row, dict)] if isinstance(data, list) else []
        if not rows:
            raise PolynanceApiError(
                f"Exchange with slug '{slug}' not found.",
                ErrorCode.NOT_FOUND,
                method_name=method_name,
                status_code=404,
                context={"slug": mask(slug)},
            )
        return rows

    async def propose_price(self, order: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Record a price proposal for a resting order. Failures are logged, not raised."""
        try:
            response = await self._client.post(self._url("/v1/proposePrice"), json={"order": order})
            response.raise_for_status()
            return response.json() if response.content else {}
        except Exception as exc:
            error = classify(exc, "propose_price", {"token_id": order.get("tokenId")})
            logger.warning("propose_price_failed", error_id=error.error_id, code=error.code.value)
            return None

    async def verify_price(self) -> Optional[dict[str, Any]]:
        try:
            response = await self._client.post(self._url("/v1/verifyPrice"))
            response.raise_for_status()
            return response.json() if response.content else {}
        except Exception as exc:
            error = classify(exc, "verify_price")
            logger.warning("verify_price_failed", error_id=error.error_id, code=error.code.value)
            return None

    async def scan_pending_price_data(self) -> bool:
        try:
            response = await self._client.get(self._url("/v1/scanPendingPriceData"))
            response.raise_for_status()
            return bool(response.json().get("result", False))
        except Exception as exc:
            error = classify(exc, "scan_pending_price_data")
            logger.warning("scan_pending_price_data_failed", error_id=error.error_id, code=error.code.value)
            return False
