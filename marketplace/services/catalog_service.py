# marketplace/services/catalog_service.py
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from marketplace.data.models.price import PriceTierModel
from marketplace.data.models.variant import VariantModel
from marketplace.data.models.vendor import VendorModel
from marketplace.domain.errors import Conflict, NotFound
from marketplace.domain.pricing import CurrencyPolicy, PriceQuote, bands_overlap
from marketplace.repos.catalog_repo import CatalogRepo
from marketplace.services.pricing_service import PriceResolver
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogService:
    """Minimalny zapis katalogu (sklep, wariant, progi cenowe) i wycena wariantu."""

    def __init__(self, db: Session, currency_policy: CurrencyPolicy | None = None):
        self.repo = CatalogRepo(db)
        self.currency_policy = currency_policy or CurrencyPolicy()
        self.resolver = PriceResolver(db, self.currency_policy)

    def upsert_vendor(
        self,
        vendor_id: str,
        name: str,
        lat: float | None = None,
        lng: float | None = None,
        address: str | None = None,
        is_busy: bool = False,
    ) -> VendorModel:
        vendor = self.repo.get_vendor(vendor_id)
        if vendor is None:
            vendor = self.repo.add_vendor(VendorModel(id=vendor_id, name=name))

        vendor.name = name
        vendor.lat = lat
        vendor.lng = lng
        vendor.address = address
        vendor.is_busy = is_busy
        self.repo.commit()
        return vendor

    def upsert_variant(
        self,
        variant_id: str,
        vendor_id: str,
        sku: str,
        title: str,
        unit: str = "piece",
        stock_quantity: int = 0,
        is_available: bool = True,
    ) -> VariantModel:
        if stock_quantity < 0:
            raise ValueError("stock_quantity cannot be negative")
        if self.repo.get_vendor(vendor_id) is None:
            raise NotFound("Vendor not found")

        variant = self.repo.get_variant(variant_id)
        if variant is None:
            variant = self.repo.add_variant(VariantModel(id=variant_id, vendor_id=vendor_id, sku=sku, title=title))
        elif variant.vendor_id != vendor_id:
            raise Conflict("Variant belongs to a different vendor")

        variant.sku = sku
        variant.title = title
        variant.unit = unit
        variant.stock_quantity = stock_quantity
        variant.is_available = is_available
        self.repo.commit()
        return variant

    def set_price_tiers(
        self, variant_id: str, tiers: List[Dict[str, Any]], currency: str | None = None
    ) -> List[PriceTierModel]:
        """
        Zastepuje progi wariantu w danej walucie.
        Nakladajace sie przedzialy ilosci sa odrzucane (Conflict).
        """
        if self.repo.get_variant(variant_id) is None:
            raise NotFound("Product variant not found")
        currency = self.currency_policy.resolve(currency)

        models = []
        for t in tiers:
            tier = PriceTierModel(
                currency=currency,
                amount=t["amount"],
                sale_amount=t.get("sale_amount"),
                min_quantity=t.get("min_quantity"),
                max_quantity=t.get("max_quantity"),
            )
            if tier.amount < 0 or (tier.sale_amount is not None and tier.sale_amount < 0):
                raise ValueError("Price amounts cannot be negative")
            if (
                tier.min_quantity is not None
                and tier.max_quantity is not None
                and tier.min_quantity > tier.max_quantity
            ):
                raise ValueError("min_quantity cannot exceed max_quantity")
            models.append(tier)

        for i, a in enumerate(models):
            for b in models[i + 1:]:
                if bands_overlap(a, b):
                    raise Conflict(
                        f"Price tiers overlap: {a.min_quantity}-{a.max_quantity} and {b.min_quantity}-{b.max_quantity}"
                    )

        price_set = self.repo.get_or_create_price_set(variant_id)
        self.repo.replace_tiers(price_set, currency, models)
        self.repo.commit()

        logger.info(f"Ustawiono {len(models)} progow cen {currency} dla wariantu {variant_id}")
        return self.repo.get_tiers(variant_id, currency)

    def quote_price(self, variant_id: str, quantity: int = 1, currency: str | None = None) -> PriceQuote:
        """Cena dla istniejacego wariantu. Wariant bez progow w walucie kosztuje 0 (tier_id None)."""
        if self.repo.get_variant(variant_id) is None:
            raise NotFound("Product variant not found")
        return self.resolver.resolve_unit_price(variant_id, quantity, currency)
