"""Market instruments returned by the Polynance API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from polynance.utils.parsing import _to_bool, _to_float, _to_optional_float, parse_json_list


@dataclass(frozen=True, slots=True)
class PositionToken:
    """One side of an outcome, e.g. the YES token of a binary market."""

    token_id: str
    name: str
    price: str  # decimal string, current reference price

    @property
    def price_value(self) -> float:
        return _to_float(self.price, default=float("nan"))

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "PositionToken":
        return cls(
            token_id=str(raw.get("token_id") or raw.get("tokenId") or ""),
            name=str(raw.get("name") or raw.get("outcome") or ""),
            price=str(raw.get("price", "")),
        )


@dataclass(slots=True)
class Exchange:
    """A single tradable market (one question with its outcome tokens).

    A read-only snapshot: the resolver fetches a fresh one on every call and
    nothing in the client mutates it.
    """

    id: str
    slug: str
    name: str
    question: str
    active: bool
    funded: bool
    spread: Optional[float] = None
    rewards_min_size: Optional[float] = None
    rewards_max_spread: Optional[float] = None
    position_tokens: list[PositionToken] = field(default_factory=list)

    @property
    def is_binary(self) -> bool:
        names = sorted(t.name.lower() for t in self.position_tokens)
        return names == ["no", "yes"]

    def find_token(self, position_id_or_name: str) -> Optional[PositionToken]:
        """Case-insensitive lookup by outcome name, falling back to token id."""
        wanted = position_id_or_name.strip().lower()
        for token in self.position_tokens:
            if token.name.lower() == wanted:
                return token
        for token in self.position_tokens:
            if token.token_id == position_id_or_name:
                return token
        return None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Exchange":
        """Parse an exchange payload.

        Accepts both the aggregated shape (``position_tokens`` list) and the
        simple market shape where ``outcomes``, ``outcome_prices`` and
        ``clob_token_ids`` are parallel lists or JSON-encoded strings.
        """
        tokens = [
            PositionToken.from_api(t)
            for t in raw.get("position_tokens") or []
            if isinstance(t, dict)
        ]
        if not tokens:
            tokens = _tokens_from_outcomes(raw)

        question = str(raw.get("question") or "")
        return cls(
            id=str(raw.get("id", "")),
            slug=str(raw.get("slug") or ""),
            name=str(raw.get("name") or question),
            question=question,
            active=_to_bool(raw.get("active", True)),
            funded=_to_bool(raw.get("funded", False)),
            spread=_to_optional_float(raw.get("spread")),
            rewards_min_size=_to_optional_float(raw.get("rewardsMinSize")),
            rewards_max_spread=_to_optional_float(raw.get("rewardsMaxSpread")),
            position_tokens=tokens,
        )


def _tokens_from_outcomes(raw: dict[str, Any]) -> list[PositionToken]:
    outcomes = parse_json_list(raw.get("outcomes"))
    prices = parse_json_list(raw.get("outcome_prices") or raw.get("outcomePrices"))
    token_ids = parse_json_list(
        raw.get("clob_token_ids")
        or raw.get("clobTokenIds")
        or raw.get("position_token_ids")
    )
    if not outcomes or len(token_ids) != len(outcomes):
        return []
    return [
        PositionToken(
            token_id=str(token_id),
            name=str(outcome),
            price=str(prices[i]) if i < len(prices) else "",
        )
        for i, (outcome, token_id) in enumerate(zip(outcomes, token_ids))
    ]
