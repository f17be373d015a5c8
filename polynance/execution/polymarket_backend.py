"""Polymarket settlement backend using py-clob-client."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import structlog
from eth_account.signers.local import LocalAccount
from py_clob_client.client import ClobClient
from py_clob_client.clob_types import ApiCreds, OrderArgs, OrderType
from py_clob_client.config import get_contract_config
from py_clob_client.order_builder.constants import BUY, SELL
from web3 import Web3

from polynance.errors import mask
from polynance.exceptions import ErrorCode, PolynanceApiError
from polynance.execution.models import OrderRequest, SettlementContracts

logger = structlog.get_logger()

# NegRiskAdapter is not part of py-clob-client's contract config.
NEG_RISK_ADAPTERS: dict[int, str] = {
    137: "0xd91E80cF2E7be2e162c6513ceD06f1dD0dA35296",
    80002: "0xd91E80cF2E7be2e162c6513ceD06f1dD0dA35296",
}

_SIDES = {"BUY": BUY, "SELL": SELL}


class PolymarketBackend:
    """Signs, posts and tracks orders on the Polymarket CLOB."""

    name = "polymarket"

    def __init__(
        self,
        host: str,
        chain_id: int,
        private_key: str = "",
        funder: Optional[str] = None,
        signature_type: Optional[int] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        api_passphrase: Optional[str] = None,
        client: Optional[ClobClient] = None,
    ) -> None:
        self.host = host
        self.chain_id = chain_id
        self._funder = funder or None
        self._signature_type = signature_type
        self._api_key = api_key
        self._api_secret = api_secret
        self._api_passphrase = api_passphrase
        self._private_key = private_key
        self._client = client or self._new_client(private_key)
        self._creds_ready = client is not None and getattr(client, "creds", None) is not None

    @classmethod
    def from_settings(cls) -> "PolymarketBackend":
        """Build backend from global settings.

        Raises ConfigError if credentials are missing.
        """
        from config.settings import settings
        from config.validators import validate_polymarket_credentials
        validate_polymarket_credentials()
        return cls(
            host=settings.POLYMARKET_CLOB_HTTP,
            chain_id=settings.POLYMARKET_CHAIN_ID,
            private_key=settings.POLYMARKET_PRIVATE_KEY,
            funder=settings.POLYMARKET_WALLET_ADDRESS or None,
            signature_type=settings.POLYMARKET_SIGNATURE_TYPE,
            api_key=settings.POLYMARKET_API_KEY or None,
            api_secret=settings.POLYMARKET_API_SECRET or None,
            api_passphrase=settings.POLYMARKET_API_PASSPHRASE or None,
        )

    def _new_client(self, private_key: str) -> ClobClient:
        if not private_key:
            return ClobClient(host=self.host, chain_id=self.chain_id)
        return ClobClient(
            host=self.host,
            chain_id=self.chain_id,
            key=private_key,
            funder=self._funder,
            signature_type=self._signature_type,
        )

    @property
    def address(self) -> Optional[str]:
        return self._client.get_address()

    def bind_signer(self, signer: LocalAccount) -> None:
        """Sign with ``signer`` from now on; API credentials are re-derived."""
        if self._private_key and self.address == signer.address:
            return
        self._private_key = Web3.to_hex(signer.key)
        # configured API creds belong to the previous key
        self._api_key = self._api_secret = self._api_passphrase = None
        self._client = self._new_client(self._private_key)
        self._creds_ready = False
        logger.info("clob_signer_bound", wallet=mask(signer.address))

    # --- credentials ---

    def _ensure_creds(self) -> None:
        if self._creds_ready:
            return
        if not self._private_key:
            raise PolynanceApiError(
                "A private key or signer is required to trade on Polymarket.",
                ErrorCode.ENVIRONMENT_ERROR,
                method_name="ensure_creds",
            )

        creds: Optional[ApiCreds]
        if self._api_key and self._api_secret and self._api_passphrase:
            creds = ApiCreds(
                api_key=self._api_key,
                api_secret=self._api_secret,
                api_passphrase=self._api_passphrase,
            )
        else:
            creds = self._client.create_or_derive_api_creds()

        if not creds:
            raise PolynanceApiError(
                "Failed to create or derive Polymarket API credentials.",
                ErrorCode.UNAUTHORIZED,
                method_name="ensure_creds",
            )

        self._client.set_api_creds(creds)
        self._creds_ready = True
        logger.info("clob_creds_ready", wallet=mask(self.address or ""))

    async def init_creds(self) -> None:
        await asyncio.to_thread(self._ensure_creds)

    # --- orders ---

    @staticmethod
    def to_order_args(request: OrderRequest) -> OrderArgs:
        side = _SIDES.get(request.side.upper())
        if side is None:
            raise PolynanceApiError(
                f"Invalid side: {request.side}",
                ErrorCode.INVALID_PARAMETER,
                method_name="create_order",
            )
        optional = {
            "fee_rate_bps": request.fee_rate_bps,
            "nonce": request.nonce,
            "expiration": request.expiration,
            "taker": request.taker,
        }
        return OrderArgs(
            token_id=request.token_id,
            price=request.price,
            size=request.size,
            side=side,
            **{k: v for k, v in optional.items() if v is not None},
        )

    @staticmethod
    def resolve_order_type(order_type: str) -> OrderType:
        try:
            return getattr(OrderType, order_type.upper())
        except AttributeError:
            raise PolynanceApiError(
                f"Unknown order type: {order_type}",
                ErrorCode.INVALID_PARAMETER,
                method_name="post_order",
            ) from None

    def _create_order_sync(self, request: OrderRequest) -> Any:
        self._ensure_creds()
        return self._client.create_order(self.to_order_args(request))

    async def create_order(self, request: OrderRequest) -> Any:
        """Sign ``request``; returns the CLOB ``SignedOrder``."""
        return await asyncio.to_thread(self._create_order_sync, request)

    def _post_order_sync(self, order: Any, order_type: str) -> dict[str, Any]:
        self._ensure_creds()
        response = self._client.post_order(order, orderType=self.resolve_order_type(order_type))
        logger.info(
            "polymarket_order_posted",
            order_id=mask(str((response or {}).get("orderID") or "")),
            order_type=order_type,
            status=(response or {}).get("status"),
        )
        return response if isinstance(response, dict) else {"response": response}

    async def post_order(self, order: Any, order_type: str = "GTC") -> dict[str, Any]:
        return await asyncio.to_thread(self._post_order_sync, order, order_type)

    def _get_order_sync(self, order_id: str) -> Optional[dict[str, Any]]:
        self._ensure_creds()
        order = self._client.get_order(order_id)
        return order if isinstance(order, dict) and order else None

    async def get_order(self, order_id: str) -> Optional[dict[str, Any]]:
        """Fetch a single order by ID (any status: LIVE, MATCHED, CANCELLED)."""
        return await asyncio.to_thread(self._get_order_sync, order_id)

    # --- settlement ---

    def settlement_contracts(self) -> SettlementContracts:
        config = get_contract_config(self.chain_id, True)
        adapter = NEG_RISK_ADAPTERS.get(self.chain_id)
        if adapter is None:
            raise PolynanceApiError(
                f"No NegRiskAdapter known for chain {self.chain_id}.",
                ErrorCode.ENVIRONMENT_ERROR,
                method_name="settlement_contracts",
            )
        return SettlementContracts(
            chain_id=self.chain_id,
            collateral=config.collateral,
            conditional_tokens=config.conditional_tokens,
            spenders=(
                ("neg_risk_adapter", adapter),
                ("neg_risk_exchange", config.exchange),
            ),
        )

    @staticmethod
    def serialize_order(order: Any) -> dict[str, Any]:
        """Wire shape of a signed order for the Polynance price endpoints."""
        raw = order.dict()
        return {
            "salt": raw["salt"],
            "maker": raw["maker"],
            "signer": raw["signer"],
            "taker": raw["taker"],
            "tokenId": raw["tokenId"],
            "makerAmount": raw["makerAmount"],
            "takerAmount": raw["takerAmount"],
            "expiration": raw["expiration"],
            "nonce": raw["nonce"],
            "feeRateBps": str(raw["feeRateBps"]),
            "side": str(raw["side"]),
            "signatureType": str(raw["signatureType"]),
            "signature": raw["signature"],
        }
