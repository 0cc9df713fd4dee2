# marketplace/domain/pricing.py
"""
Wybor ceny z progow ilosciowych.

Prog pasuje gdy min_quantity <= ilosc <= max_quantity (brak min = 0, brak max = nieskonczonosc).
Przy kilku pasujacych wygrywa ten z najwiekszym min_quantity.
"""
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

from marketplace.utils.settings import DEFAULT_CURRENCY


class Tier(Protocol):
    amount: int
    sale_amount: Optional[int]
    min_quantity: Optional[int]
    max_quantity: Optional[int]


@dataclass(frozen=True)
class PriceQuote:
    unit_amount: int
    is_on_sale: bool
    currency: str
    tier_id: Optional[int] = None


@dataclass(frozen=True)
class CurrencyPolicy:
    """Jawna polityka waluty zamiast hardkodowanego UGX w kazdym miejscu."""

    default: str = DEFAULT_CURRENCY

    def resolve(self, requested: Optional[str] = None) -> str:
        return (requested or self.default).upper()


def _lower(tier: Tier) -> int:
    return tier.min_quantity if tier.min_quantity is not None else 0


def _contains(tier: Tier, quantity: int) -> bool:
    if quantity < _lower(tier):
        return False
    return tier.max_quantity is None or quantity <= tier.max_quantity


def select_tier(tiers: Iterable[Tier], quantity: int) -> Optional[Tier]:
    tiers = list(tiers)
    if not tiers:
        return None

    matching = [t for t in tiers if _contains(t, quantity)]
    if matching:
        return max(matching, key=_lower)

    # zaden prog nie obejmuje ilosci - bierzemy najnizszy prog
    return min(tiers, key=_lower)


def effective_amount(tier: Tier) -> int:
    if tier.sale_amount is not None and tier.sale_amount < tier.amount:
        return tier.sale_amount
    return tier.amount


def bands_overlap(a: Tier, b: Tier) -> bool:
    a_hi = a.max_quantity if a.max_quantity is not None else float("inf")
    b_hi = b.max_quantity if b.max_quantity is not None else float("inf")
    return _lower(a) <= b_hi and _lower(b) <= a_hi


def quote(tiers: Iterable[Tier], quantity: int, currency: str) -> PriceQuote:
    tier = select_tier(tiers, quantity)
    if tier is None:
        return PriceQuote(unit_amount=0, is_on_sale=False, currency=currency)

    unit = effective_amount(tier)
    return PriceQuote(
        unit_amount=unit,
        is_on_sale=unit < tier.amount,
        currency=currency,
        tier_id=getattr(tier, "id", None),
    )
