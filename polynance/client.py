"""Public entry point: resolve, build, execute and track Polymarket orders."""

from __future__ import annotations

from typing import Any, Iterable, Optional

import structlog
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from polynance.errors import classify, mask
from polynance.exceptions import ErrorCode, PolynanceApiError
from polynance.execution.allowances import AllowanceManager
from polynance.execution.backend import BackendRegistry, SettlementBackend
from polynance.execution.models import ExecutionResult, TradeIntent
from polynance.execution.order_builder import OrderBuilder
from polynance.execution.order_tracker import AllowanceFactory, OrderExecutor, PendingOrderRegistry
from polynance.feeds.polynance_api import PolynanceApi
from polynance.feeds.resolver import InstrumentResolver
from polynance.models import Exchange
from polynance.utils.formatting import as_context

logger = structlog.get_logger()


class PolynanceClient:
    """Trades YES/NO position tokens through a registered settlement backend.

    Each instance owns its pending-order registry; two clients never share
    state.
    """

    def __init__(
        self,
        *,
        backends: Iterable[SettlementBackend],
        api: Optional[PolynanceApi] = None,
        web3: Optional[Web3] = None,
        signer: Optional[LocalAccount] = None,
        wallet_address: Optional[str] = None,
        allowance_factory: Optional[AllowanceFactory] = None,
    ) -> None:
        self.api = api or PolynanceApi()
        self.backends = BackendRegistry(*backends)
        self.resolver = InstrumentResolver(self.api)
        self.builder = OrderBuilder(self.resolver, self.backends)
        self.executor = OrderExecutor(
            self.backends,
            self.api,
            registry=PendingOrderRegistry(),
            web3=web3,
            signer=signer,
            allowance_factory=allowance_factory,
        )
        self.wallet_address = wallet_address or (signer.address if signer else None)

    @classmethod
    def from_settings(cls) -> "PolynanceClient":
        """Wire API, backend, chain RPC and signer from ``config.settings``."""
        from config.settings import settings
        from config.validators import validate_chain_rpc
        from polynance.execution.polymarket_backend import PolymarketBackend

        signer = Account.from_key(settings.POLYMARKET_PRIVATE_KEY) if settings.POLYMARKET_PRIVATE_KEY else None
        web3 = None
        if settings.POLYGON_RPC_URL:
            validate_chain_rpc()
            web3 = Web3(
                Web3.HTTPProvider(
                    settings.POLYGON_RPC_URL,
                    request_kwargs={"timeout": settings.POLYGON_RPC_TIMEOUT_SECONDS},
                )
            )
        return cls(
            backends=[PolymarketBackend.from_settings()],
            api=PolynanceApi.from_settings(),
            web3=web3,
            signer=signer,
            wallet_address=settings.POLYMARKET_WALLET_ADDRESS or None,
            allowance_factory=lambda w3, contracts: AllowanceManager(
                w3,
                contracts,
                gas_price_wei=settings.APPROVAL_GAS_PRICE_WEI,
                gas_limit=settings.APPROVAL_GAS_LIMIT,
            ),
        )

    async def __aenter__(self) -> "PolynanceClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.api.aclose()

    @property
    def signer(self) -> Optional[LocalAccount]:
        return self.executor.signer

    @property
    def web3(self) -> Optional[Web3]:
        return self.executor.web3

    # --- trading ---

    async def resolve_exchange(self, market_id_or_slug: str) -> Exchange:
        return await self.resolver.resolve(market_id_or_slug)

    async def build_order(self, intent: TradeIntent, signer: Optional[LocalAccount] = None) -> Any:
        """Resolve, price and sign ``intent``. Raises ``PolynanceApiError``."""
        return await self.builder.build(intent, signer or self.signer)

    async def execute_order(
        self,
        signed_order: Any,
        order_type: str = "GTC",
        web3: Optional[Web3] = None,
        signer: Optional[LocalAccount] = None,
        provider: str = "polymarket",
    ) -> ExecutionResult:
        return await self.executor.execute(signed_order, order_type, web3=web3, signer=signer, provider=provider)

    async def wait_order_matched(self, order_id: str, provider: str = "polymarket") -> bool:
        return await self.executor.wait_order_matched(order_id, provider=provider)

    def get_pending_order_ids(self) -> list[str]:
        return self.executor.get_pending_order_ids()

    # --- chain ---

    async def ensure_allowances(
        self,
        signer: Optional[LocalAccount] = None,
        web3: Optional[Web3] = None,
        provider: str = "polymarket",
    ) -> int:
        """Approve missing spend permissions; returns the USDC balance (raw units)."""
        web3, signer = self.executor.require_environment(web3, signer, method_name="ensure_allowances")
        manager = self.executor.allowance_manager(web3, provider)
        return await manager.ensure_allowances(signer)

    def _balance_owner(self, wallet_address: Optional[str], method_name: str) -> tuple[Web3, str]:
        owner = wallet_address or self.wallet_address
        if self.web3 is None or not owner:
            raise PolynanceApiError(
                "A chain RPC provider and a wallet address are required to read balances.",
                ErrorCode.ENVIRONMENT_ERROR,
                method_name=method_name,
            )
        return self.web3, owner

    async def get_usdc_balance(self, wallet_address: Optional[str] = None, provider: str = "polymarket") -> int:
        web3, owner = self._balance_owner(wallet_address, "get_usdc_balance")
        try:
            return await self.executor.allowance_manager(web3, provider).usdc_balance(owner)
        except Exception as exc:
            raise classify(exc, "get_usdc_balance", {"wallet": owner})

    async def get_conditional_tokens_balance(
        self,
        token_id: str,
        wallet_address: Optional[str] = None,
        provider: str = "polymarket",
    ) -> int:
        web3, owner = self._balance_owner(wallet_address, "get_conditional_tokens_balance")
        try:
            manager = self.executor.allowance_manager(web3, provider)
            return await manager.conditional_token_balance(owner, token_id)
        except Exception as exc:
            raise classify(exc, "get_conditional_tokens_balance", {"wallet": owner, "token_id": token_id})

    # --- backend credentials and price proposals ---

    async def init_creds(self, signer: Optional[LocalAccount] = None, provider: str = "polymarket") -> None:
        backend = self.backends.get(provider, method_name="init_creds")
        signer = signer or self.signer
        try:
            if signer is not None and hasattr(backend, "bind_signer"):
                backend.bind_signer(signer)
            await backend.init_creds()
        except Exception as exc:
            raise classify(exc, "init_creds", {"wallet": signer.address if signer else None})
        logger.info("creds_initialized", provider=provider, wallet=mask(signer.address) if signer else None)

    async def propose_price(self, signed_order: Any, provider: str = "polymarket") -> Optional[dict[str, Any]]:
        backend = self.backends.get(provider, method_name="propose_price")
        return await self.api.propose_price(backend.serialize_order(signed_order))

    async def verify_price(self) -> Optional[dict[str, Any]]:
        return await self.api.verify_price()

    async def scan_pending_price_data(self) -> bool:
        return await self.api.scan_pending_price_data()

    @staticmethod
    def as_context(data: Any, prompt: Optional[str] = None) -> str:
        return as_context(data, prompt)
