"""Turn a ``TradeIntent`` into a signed, settlement-ready order.

A build is a single pass through the stages below; nothing is retried and the
only side effect is the signing call delegated to the settlement backend::

    validating -> resolving -> token_matching -> pricing -> signing
"""

from __future__ import annotations

import math
from typing import Any, Optional

import structlog
from eth_account.signers.local import LocalAccount

from polynance.errors import classify, mask, redact_context
from polynance.exceptions import ErrorCode, PolynanceApiError
from polynance.execution.backend import BackendRegistry
from polynance.execution.models import OrderRequest, TradeIntent
from polynance.feeds.resolver import InstrumentResolver
from polynance.models import Exchange, PositionToken

logger = structlog.get_logger()

_METHOD = "build_order"
_SIDES = ("BUY", "SELL")


def compute_price(intent: TradeIntent, token: PositionToken) -> float:
    """Explicit intent price, else the token's current reference price."""
    price = intent.price if intent.price is not None else token.price_value
    if price is None or not math.isfinite(price) or price <= 0:
        raise PolynanceApiError(
            f"Cannot price order: invalid price {price!r} for token '{token.name}'.",
            ErrorCode.INVALID_PARAMETER,
            method_name=_METHOD,
        )
    return float(price)


def compute_size(intent: TradeIntent, price: float) -> float:
    """Explicit intent size, else the USDC notional divided by ``price``."""
    if intent.size is not None:
        size = float(intent.size)
    elif intent.usdc_flow_abs is not None:
        size = abs(float(intent.usdc_flow_abs)) / price
    else:
        raise PolynanceApiError(
            "Either 'usdc_flow_abs' or 'size' is required.",
            ErrorCode.INVALID_PARAMETER,
            method_name=_METHOD,
        )
    if not math.isfinite(size) or size <= 0:
        raise PolynanceApiError(
            f"Order size must be positive, got {size!r}.",
            ErrorCode.INVALID_PARAMETER,
            method_name=_METHOD,
        )
    return size


def match_token(exchange: Exchange, position_id_or_name: str) -> PositionToken:
    token = exchange.find_token(position_id_or_name or "")
    if token is None:
        raise PolynanceApiError(
            f"Position token '{position_id_or_name}' not found.",
            ErrorCode.INVALID_PARAMETER,
            method_name=_METHOD,
            context={"available": [t.name for t in exchange.position_tokens]},
        )
    return token


class OrderBuilder:
    """Resolves, prices and signs orders through a registered backend."""

    def __init__(self, resolver: InstrumentResolver, backends: BackendRegistry) -> None:
        self._resolver = resolver
        self._backends = backends

    async def build(self, intent: TradeIntent, signer: Optional[LocalAccount] = None) -> Any:
        context = {"intent": intent}

        # validating
        backend = self._backends.get(intent.provider, method_name=_METHOD)
        side = (intent.buy_or_sell or "").upper()
        if side not in _SIDES:
            raise PolynanceApiError(
                f"Invalid side: {intent.buy_or_sell!r}",
                ErrorCode.INVALID_PARAMETER,
                method_name=_METHOD,
                context=redact_context(context),
            )

        # resolving
        try:
            exchange = await self._resolver.resolve(intent.market_id_or_slug)
        except Exception as exc:
            raise self._resolution_error(exc, context) from exc

        stage = "token_matching"
        try:
            token = match_token(exchange, intent.position_id_or_name)
            stage = "pricing"
            price = compute_price(intent, token)
            size = compute_size(intent, price)
            request = OrderRequest(
                token_id=token.token_id,
                side=side,
                price=price,
                size=size,
                fee_rate_bps=intent.fee_rate_bps,
                nonce=intent.nonce,
                expiration=intent.expiration,
                taker=intent.taker,
            )
            logger.info(
                "order_request_built",
                token=token.name,
                token_id=mask(token.token_id),
                side=side,
                price=price,
                size=size,
                notional=request.notional,
                usdc_flow_abs=intent.usdc_flow_abs,
            )

            stage = "signing"
            if signer is not None and hasattr(backend, "bind_signer"):
                backend.bind_signer(signer)
            return await backend.create_order(request)
        except PolynanceApiError as exc:
            raise PolynanceApiError(
                exc.raw_message,
                exc.code,
                method_name=_METHOD,
                status_code=exc.status_code,
                response_data=exc.response_data,
                context={**exc.context, **redact_context({**context, "stage": stage})},
                cause=exc,
            ) from exc
        except Exception as exc:
            raise classify(exc, _METHOD, {**context, "stage": stage})

    @staticmethod
    def _resolution_error(exc: Exception, context: dict[str, Any]) -> PolynanceApiError:
        if isinstance(exc, PolynanceApiError) and exc.code in (ErrorCode.NOT_FOUND, ErrorCode.INVALID_PARAMETER):
            code = exc.code
        else:
            code = ErrorCode.API_REQUEST_FAILED
        detail = exc.raw_message if isinstance(exc, PolynanceApiError) else str(exc)
        return PolynanceApiError(
            f"Exchange not found: {detail}",
            code,
            method_name=_METHOD,
            status_code=getattr(exc, "status_code", None),
            context=redact_context({**context, "stage": "resolving"}),
            cause=exc,
        )
