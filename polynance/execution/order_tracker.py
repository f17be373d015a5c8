"""Order submission and pending-order tracking."""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

import structlog
from eth_account.signers.local import LocalAccount
from web3 import Web3

from polynance.errors import classify, mask
from polynance.exceptions import ErrorCode, PolynanceApiError
from polynance.execution.allowances import AllowanceManager
from polynance.execution.backend import BackendRegistry
from polynance.execution.models import ExecutionResult, PendingOrder
from polynance.feeds.polynance_api import PolynanceApi

logger = structlog.get_logger()

MATCHED = "matched"

AllowanceFactory = Callable[[Web3, Any], AllowanceManager]


class PendingOrderRegistry:
    """Submitted orders whose last known status was not ``matched``.

    Owned by one client instance, keyed by order id, insertion ordered.
    """

    def __init__(self) -> None:
        self._orders: dict[str, PendingOrder] = {}

    def add(self, order_id: str, status: str = "live") -> PendingOrder:
        pending = self._orders.get(order_id)
        if pending is None:
            pending = PendingOrder(order_id=order_id, placed_at=time.time(), status=status)
            self._orders[order_id] = pending
        else:
            pending.status = status
        return pending

    def discard(self, order_id: str) -> Optional[PendingOrder]:
        return self._orders.pop(order_id, None)

    def get(self, order_id: str) -> Optional[PendingOrder]:
        return self._orders.get(order_id)

    def ids(self) -> list[str]:
        return list(self._orders)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._orders

    def __len__(self) -> int:
        return len(self._orders)


def order_status(order: Optional[dict[str, Any]]) -> str:
    if not order:
        return ""
    return str(order.get("status") or "").lower()


class OrderExecutor:
    """Gates submission on allowances, submits and records pending orders."""

    def __init__(
        self,
        backends: BackendRegistry,
        api: PolynanceApi,
        registry: Optional[PendingOrderRegistry] = None,
        web3: Optional[Web3] = None,
        signer: Optional[LocalAccount] = None,
        allowance_factory: Optional[AllowanceFactory] = None,
    ) -> None:
        self._backends = backends
        self._api = api
        self.registry = registry if registry is not None else PendingOrderRegistry()
        self.web3 = web3
        self.signer = signer
        self._allowance_factory = allowance_factory or (lambda w3, contracts: AllowanceManager(w3, contracts))

    def allowance_manager(self, web3: Web3, provider: str = "polymarket") -> AllowanceManager:
        backend = self._backends.get(provider, method_name="ensure_allowances")
        return self._allowance_factory(web3, backend.settlement_contracts())

    def require_environment(
        self,
        web3: Optional[Web3],
        signer: Optional[LocalAccount],
        method_name: str = "execute_order",
    ) -> tuple[Web3, LocalAccount]:
        signer = signer or self.signer
        web3 = web3 or self.web3
        if signer is None:
            raise PolynanceApiError(
                "A signer is required to approve allowances and execute orders.",
                ErrorCode.ENVIRONMENT_ERROR,
                method_name=method_name,
            )
        if web3 is None:
            raise PolynanceApiError(
                "A chain RPC provider (Web3) is required to execute orders.",
                ErrorCode.ENVIRONMENT_ERROR,
                method_name=method_name,
            )
        return web3, signer

    async def execute(
        self,
        signed_order: Any,
        order_type: str = "GTC",
        web3: Optional[Web3] = None,
        signer: Optional[LocalAccount] = None,
        provider: str = "polymarket",
    ) -> ExecutionResult:
        """Submit ``signed_order`` once allowances are in place.

        Never raises: failures come back as an ``"error"`` result carrying the
        classified ``PolynanceApiError``.
        """
        try:
            web3, signer = self.require_environment(web3, signer)
            backend = self._backends.get(provider, method_name="execute_order")
            backend.resolve_order_type(order_type)

            balance = await self.allowance_manager(web3, provider).ensure_allowances(signer)

            response = await backend.post_order(signed_order, order_type)
            order_id = str(response.get("orderID") or "")
            if order_id:
                order = await backend.get_order(order_id)
                status = order_status(order)
                if status == MATCHED:
                    logger.info("order_matched", order_id=mask(order_id))
                    return ExecutionResult(
                        status="matched",
                        order_id=order_id,
                        order=order,
                        response=response,
                        usdc_balance=balance,
                    )
                self.registry.add(order_id, status=status or "unknown")
                logger.info("order_pending", order_id=mask(order_id), status=status, pending=len(self.registry))
                return ExecutionResult(
                    status="pending",
                    order_id=order_id,
                    order=order,
                    response=response,
                    usdc_balance=balance,
                )

            proposal = await self._api.propose_price(backend.serialize_order(signed_order))
            logger.info("order_price_proposed", accepted=proposal is not None)
            return ExecutionResult(
                status="proposed",
                response=response,
                proposal=proposal,
                usdc_balance=balance,
            )
        except Exception as exc:
            error = classify(exc, "execute_order", {"order_type": order_type, "provider": provider})
            logger.error("order_execution_failed", error_id=error.error_id, code=error.code.value)
            return ExecutionResult(status="error", error=error)

    async def wait_order_matched(self, order_id: str, provider: str = "polymarket") -> bool:
        """One status fetch; ``False`` for not-yet-matched and for any failure."""
        try:
            backend = self._backends.get(provider, method_name="wait_order_matched")
            order = await backend.get_order(order_id)
        except Exception as exc:
            error = classify(exc, "wait_order_matched", {"order_id": order_id})
            logger.warning("order_status_unavailable", error_id=error.error_id, code=error.code.value)
            return False

        matched = order_status(order) == MATCHED
        if matched and self.registry.discard(order_id) is not None:
            logger.info("pending_order_matched", order_id=mask(order_id), pending=len(self.registry))
        return matched

    def get_pending_order_ids(self) -> list[str]:
        return self.registry.ids()
