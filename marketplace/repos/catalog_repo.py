# marketplace/repos/catalog_repo.py
from typing import List

from sqlalchemy.orm import Session

from marketplace.data.models.vendor import VendorModel
from marketplace.data.models.variant import VariantModel
from marketplace.data.models.price import PriceSetModel, PriceTierModel


class CatalogRepo:
    """Odczyt katalogu (sklep, wariant, progi cen) - tylko to czego potrzebuje koszyk."""

    def __init__(self, db: Session):
        self.db = db

    def get_vendor(self, vendor_id: str) -> VendorModel | None:
        return self.db.get(VendorModel, vendor_id)

    def get_variant(self, variant_id: str) -> VariantModel | None:
        return self.db.get(VariantModel, variant_id)

    def get_tiers(self, variant_id: str, currency: str) -> List[PriceTierModel]:
        return (
            self.db.query(PriceTierModel)
            .join(PriceSetModel, PriceTierModel.price_set_id == PriceSetModel.id)
            .filter(PriceSetModel.variant_id == variant_id, PriceTierModel.currency == currency)
            .order_by(PriceTierModel.id)
            .all()
        )

    def add_vendor(self, vendor: VendorModel) -> VendorModel:
        self.db.add(vendor)
        self.db.flush()
        return vendor

    def add_variant(self, variant: VariantModel) -> VariantModel:
        self.db.add(variant)
        self.db.flush()
        return variant

    def get_or_create_price_set(self, variant_id: str) -> PriceSetModel:
        price_set = (
            self.db.query(PriceSetModel)
            .filter(PriceSetModel.variant_id == variant_id)
            .one_or_none()
        )
        if price_set is None:
            price_set = PriceSetModel(variant_id=variant_id)
            self.db.add(price_set)
            self.db.flush()
        return price_set

    def replace_tiers(self, price_set: PriceSetModel, currency: str, tiers: List[PriceTierModel]) -> None:
        (
            self.db.query(PriceTierModel)
            .filter(PriceTierModel.price_set_id == price_set.id, PriceTierModel.currency == currency)
            .delete(synchronize_session=False)
        )
        for tier in tiers:
            tier.price_set_id = price_set.id
            self.db.add(tier)
        self.db.flush()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
