# marketplace/api/routers/catalog.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from marketplace.api.deps import get_catalog_service
from marketplace.api.errors import to_http
from marketplace.domain.errors import MarketplaceError
from marketplace.domain.schemas import (
    PriceQuoteOut,
    PriceTierOut,
    PriceTiersIn,
    VariantIn,
    VariantOut,
    VendorIn,
    VendorOut,
)
from marketplace.services.catalog_service import CatalogService

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.put("/vendors/{vendor_id}", response_model=VendorOut)
def upsert_vendor(vendor_id: str, payload: VendorIn, svc: CatalogService = Depends(get_catalog_service)):
    return svc.upsert_vendor(vendor_id, **payload.model_dump())


@router.put("/variants/{variant_id}", response_model=VariantOut)
def upsert_variant(variant_id: str, payload: VariantIn, svc: CatalogService = Depends(get_catalog_service)):
    try:
        return svc.upsert_variant(variant_id, **payload.model_dump())
    except (MarketplaceError, ValueError) as e:
        raise to_http(e)


@router.put("/variants/{variant_id}/prices", response_model=List[PriceTierOut])
def set_price_tiers(variant_id: str, payload: PriceTiersIn, svc: CatalogService = Depends(get_catalog_service)):
    """Zastepuje wszystkie progi w walucie. 409 gdy przedzialy ilosci sie nakladaja."""
    try:
        return svc.set_price_tiers(
            variant_id,
            [t.model_dump() for t in payload.tiers],
            currency=payload.currency,
        )
    except (MarketplaceError, ValueError) as e:
        raise to_http(e)


@router.get("/variants/{variant_id}/price", response_model=PriceQuoteOut)
def resolve_price(
    variant_id: str,
    quantity: int = Query(1, ge=1),
    currency: Optional[str] = Query(None, min_length=3, max_length=3),
    svc: CatalogService = Depends(get_catalog_service),
):
    """404 dla nieznanego wariantu. Wariant bez progow w walucie: 0 i tier_id null."""
    try:
        return svc.quote_price(variant_id, quantity, currency)
    except (MarketplaceError, ValueError) as e:
        raise to_http(e)
