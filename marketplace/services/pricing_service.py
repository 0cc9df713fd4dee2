# marketplace/services/pricing_service.py
from sqlalchemy.orm import Session

from marketplace.domain.pricing import CurrencyPolicy, PriceQuote, quote
from marketplace.repos.catalog_repo import CatalogRepo


class PriceResolver:
    """
    Cena jednostkowa liczona przy odczycie z progow w bazie.
    Nigdy nie przyjmujemy ceny od klienta - checkout zawsze pyta tutaj.
    """

    def __init__(self, db: Session, currency_policy: CurrencyPolicy | None = None):
        self.catalog = CatalogRepo(db)
        self.currency_policy = currency_policy or CurrencyPolicy()

    def resolve_unit_price(self, variant_id: str, quantity: int, currency: str | None = None) -> PriceQuote:
        currency = self.currency_policy.resolve(currency)
        tiers = self.catalog.get_tiers(variant_id, currency)
        return quote(tiers, quantity, currency)
