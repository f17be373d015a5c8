"""Shared data structures for order building and execution."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Optional

from polynance.exceptions import PolynanceApiError


@dataclass(slots=True)
class TradeIntent:
    """What the caller wants to trade.

    Quantity comes from ``size``/``price`` when given, otherwise from
    ``usdc_flow_abs`` at the token's current reference price.
    """

    market_id_or_slug: str
    position_id_or_name: str  # "YES" / "NO" or a token id
    buy_or_sell: str  # "BUY" or "SELL"
    usdc_flow_abs: Optional[float] = None
    size: Optional[float] = None
    price: Optional[float] = None
    fee_rate_bps: Optional[int] = None
    nonce: Optional[int] = None
    expiration: Optional[int] = None
    taker: Optional[str] = None
    provider: str = "polymarket"


@dataclass(slots=True)
class OrderRequest:
    """Unsigned, fully priced order handed to the signing backend.

    ``None`` fields are left to the backend's own defaults.
    """

    token_id: str
    side: str
    price: float
    size: float
    fee_rate_bps: Optional[int] = None
    nonce: Optional[int] = None
    expiration: Optional[int] = None
    taker: Optional[str] = None

    @property
    def notional(self) -> float:
        return self.price * self.size


@dataclass(frozen=True, slots=True)
class SettlementContracts:
    """On-chain addresses a backend settles through.

    ``spenders`` are (label, address) pairs that must hold both the quote-token
    allowance and outcome-token operator approval.
    """

    chain_id: int
    collateral: str
    conditional_tokens: str
    spenders: tuple[tuple[str, str], ...]


@dataclass(frozen=True, slots=True)
class AllowanceState:
    """Permission facts read from chain for one wallet. Never cached."""

    owner: str
    usdc_allowances: dict[str, int]  # spender address -> allowance
    ctf_approvals: dict[str, bool]  # spender address -> isApprovedForAll
    usdc_balance: int  # raw units (6 decimals)

    @property
    def missing_usdc(self) -> list[str]:
        return [spender for spender, amount in self.usdc_allowances.items() if amount <= 0]

    @property
    def missing_ctf(self) -> list[str]:
        return [spender for spender, approved in self.ctf_approvals.items() if not approved]

    @property
    def is_sufficient(self) -> bool:
        return not self.missing_usdc and not self.missing_ctf


@dataclass(slots=True)
class PendingOrder:
    """An order submitted but not yet confirmed as matched."""

    order_id: str
    placed_at: float = field(default_factory=time.time)
    status: str = "live"


@dataclass(slots=True)
class ExecutionResult:
    """Outcome of ``execute_order``.

    ``status`` is one of ``"matched"``, ``"pending"``, ``"proposed"`` or
    ``"error"``; only the ``"error"`` outcome carries ``error``.
    """

    status: str
    order_id: str = ""
    order: Optional[dict[str, Any]] = None
    response: Optional[dict[str, Any]] = None
    proposal: Optional[dict[str, Any]] = None
    usdc_balance: Optional[int] = None
    error: Optional[PolynanceApiError] = None

    @property
    def ok(self) -> bool:
        return self.status != "error"

    @property
    def matched(self) -> bool:
        return self.status == "matched"
