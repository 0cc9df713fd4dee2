# marketplace/data/seed.py
"""Dane startowe do lokalnego developmentu: jeden sklep w Kampali i kilka wariantow z progami cen."""
from marketplace.data.database import SessionLocal
from marketplace.data.models import VendorModel
from marketplace.services.catalog_service import CatalogService
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

VENDOR_ID = "org_demo_grocer"

VARIANTS = [
    # id, sku, tytul, jednostka, stan, progi
    ("var_sugar_1kg", "SUG-1KG", "Sugar 1kg", "bag", 40, [
        {"amount": 10000, "min_quantity": 1, "max_quantity": 4},
        {"amount": 9000, "min_quantity": 5},
    ]),
    ("var_rice_5kg", "RIC-5KG", "Rice 5kg", "bag", 15, [
        {"amount": 32000, "sale_amount": 29500, "min_quantity": 1},
    ]),
    ("var_milk_500ml", "MLK-500", "Fresh milk 500ml", "packet", 60, [
        {"amount": 2000, "min_quantity": 1, "max_quantity": 11},
        {"amount": 1800, "min_quantity": 12},
    ]),
]


def seed():
    db = SessionLocal()
    try:
        # tylko gdy baza pusta
        if db.query(VendorModel).first():
            return

        catalog = CatalogService(db)
        catalog.upsert_vendor(VENDOR_ID, "Demo Grocer", lat=0.3136, lng=32.5811, address="Kampala Road 1")
        for variant_id, sku, title, unit, stock, tiers in VARIANTS:
            catalog.upsert_variant(variant_id, VENDOR_ID, sku, title, unit=unit, stock_quantity=stock)
            catalog.set_price_tiers(variant_id, tiers)

        logger.info(f"Seeded vendor {VENDOR_ID} with {len(VARIANTS)} variants")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
