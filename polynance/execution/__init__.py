from polynance.execution.models import (
    AllowanceState,
    ExecutionResult,
    OrderRequest,
    PendingOrder,
    SettlementContracts,
    TradeIntent,
)
from polynance.execution.backend import BackendRegistry, SettlementBackend
from polynance.execution.allowances import AllowanceManager
from polynance.execution.order_builder import OrderBuilder
from polynance.execution.order_tracker import OrderExecutor, PendingOrderRegistry
from polynance.execution.polymarket_backend import PolymarketBackend

__all__ = [
    "AllowanceState",
    "ExecutionResult",
    "OrderRequest",
    "PendingOrder",
    "SettlementContracts",
    "TradeIntent",
    "BackendRegistry",
    "SettlementBackend",
    "AllowanceManager",
    "OrderBuilder",
    "OrderExecutor",
    "PendingOrderRegistry",
    "PolymarketBackend",
]
