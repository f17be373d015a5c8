"""Settlement backend protocol and registry."""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from polynance.exceptions import UnsupportedProviderError
from polynance.execution.models import OrderRequest, SettlementContracts


@runtime_checkable
class SettlementBackend(Protocol):
    """Interface every settlement backend must satisfy.

    A backend signs orders, submits them, reports their status and names the
    contracts that need spend permissions before an order can fill.
    """

    name: str

    async def init_creds(self) -> None: ...

    async def create_order(self, request: OrderRequest) -> Any: ...

    def resolve_order_type(self, order_type: str) -> Any: ...

    async def post_order(self, order: Any, order_type: str = "GTC") -> dict[str, Any]: ...

    async def get_order(self, order_id: str) -> Optional[dict[str, Any]]: ...

    def settlement_contracts(self) -> SettlementContracts: ...

    def serialize_order(self, order: Any) -> dict[str, Any]: ...


class BackendRegistry:
    """One registered backend per provider name."""

    def __init__(self, *backends: SettlementBackend) -> None:
        self._backends: dict[str, SettlementBackend] = {}
        for backend in backends:
            self.register(backend)

    def register(self, backend: SettlementBackend) -> None:
        if not isinstance(backend, SettlementBackend):
            raise TypeError(f"{type(backend).__name__} does not implement SettlementBackend")
        self._backends[backend.name.lower()] = backend

    def get(self, provider: str, method_name: Optional[str] = None) -> SettlementBackend:
        backend = self._backends.get((provider or "").lower())
        if backend is None:
            raise UnsupportedProviderError(provider, method_name=method_name)
        return backend

    def names(self) -> list[str]:
        return sorted(self._backends)

    def __contains__(self, provider: str) -> bool:
        return (provider or "").lower() in self._backends
