"""Tests for tier selection and the database-backed PriceResolver."""

from dataclasses import dataclass
from typing import Optional

import pytest

from marketplace.domain.pricing import CurrencyPolicy, bands_overlap, effective_amount, quote, select_tier
from marketplace.services.pricing_service import PriceResolver


@dataclass
class StubTier:
    amount: int
    sale_amount: Optional[int] = None
    min_quantity: Optional[int] = None
    max_quantity: Optional[int] = None
    id: Optional[int] = None


def test_select_tier_prefers_most_specific_band():
    base = StubTier(10000, min_quantity=1, id=1)
    bulk = StubTier(9000, min_quantity=5, id=2)

    assert select_tier([base, bulk], 2) is base
    assert select_tier([base, bulk], 5) is bulk
    assert select_tier([base, bulk], 60) is bulk


def test_select_tier_tolerates_overlap_by_taking_highest_min():
    wide = StubTier(10000, min_quantity=1, max_quantity=10)
    narrow = StubTier(8000, min_quantity=3, max_quantity=6)

    assert select_tier([wide, narrow], 4) is narrow
    assert select_tier([wide, narrow], 8) is wide


def test_select_tier_falls_back_to_lowest_min_when_nothing_matches():
    low = StubTier(10000, min_quantity=2, max_quantity=4)
    high = StubTier(9000, min_quantity=10)

    assert select_tier([high, low], 1) is low
    assert select_tier([high, low], 7) is low


def test_select_tier_with_no_tiers():
    assert select_tier([], 3) is None


def test_quote_without_tiers_is_zero():
    result = quote([], 3, "UGX")

    assert result.unit_amount == 0
    assert result.is_on_sale is False
    assert result.tier_id is None


@pytest.mark.parametrize(
    "amount,sale,expected,on_sale",
    [
        (10000, 8000, 8000, True),
        (10000, 10000, 10000, False),
        (10000, 12000, 10000, False),
        (10000, None, 10000, False),
    ],
)
def test_sale_amount_only_applies_when_strictly_lower(amount, sale, expected, on_sale):
    tier = StubTier(amount, sale_amount=sale, id=7)

    assert effective_amount(tier) == expected
    assert effective_amount(tier) <= tier.amount
    assert quote([tier], 1, "UGX").is_on_sale is on_sale


def test_bands_overlap():
    assert bands_overlap(StubTier(1, min_quantity=1, max_quantity=4), StubTier(1, min_quantity=4))
    assert not bands_overlap(StubTier(1, min_quantity=1, max_quantity=4), StubTier(1, min_quantity=5))
    assert bands_overlap(StubTier(1), StubTier(1, min_quantity=100))


def test_currency_policy_defaults_and_normalises():
    policy = CurrencyPolicy(default="ugx")

    assert policy.resolve() == "UGX"
    assert policy.resolve("kes") == "KES"


def test_resolver_reads_tiers_from_store(db, catalog):
    resolver = PriceResolver(db, CurrencyPolicy("UGX"))

    assert resolver.resolve_unit_price("X", 2).unit_amount == 10000
    assert resolver.resolve_unit_price("X", 6).unit_amount == 9000

    sale = resolver.resolve_unit_price("Y", 1)
    assert sale.unit_amount == 2500
    assert sale.is_on_sale is True


def test_resolver_other_currency_has_no_price(db, catalog):
    resolver = PriceResolver(db, CurrencyPolicy("UGX"))

    result = resolver.resolve_unit_price("X", 2, "KES")

    assert result.unit_amount == 0
    assert result.currency == "KES"
