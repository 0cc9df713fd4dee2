# marketplace/domain/schemas.py
from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from marketplace.domain.dispatch import RiderStatus
from marketplace.domain.fulfillment import Action, ActorRole, FulfillmentType, PaymentMethod


# --- koszyk ---

class CartCreateIn(BaseModel):
    """Schema dla pobrania / utworzenia koszyka. Dokladnie jedno z customer_id / session_id."""

    vendor_id: str = Field(..., min_length=1)
    customer_id: Optional[str] = None
    session_id: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)


class CartItemIn(BaseModel):
    """quantity to zmiana ilosci - ujemna zmniejsza."""

    variant_id: str = Field(..., min_length=1)
    quantity: int = 1


class CartQuantityIn(BaseModel):
    quantity: int = Field(..., ge=0, description="0 usuwa pozycje")


class CartMergeIn(BaseModel):
    session_id: str = Field(..., min_length=1)
    customer_id: str = Field(..., min_length=1)
    vendor_id: str = Field(..., min_length=1)


class CartLineOut(BaseModel):
    variant_id: str
    title: str
    unit: str
    quantity: int
    unit_price: int
    is_on_sale: bool
    subtotal: int
    is_available: bool


class CartOut(BaseModel):
    cart_id: int
    customer_id: Optional[str] = None
    session_id: Optional[str] = None
    vendor_id: str
    currency_code: str
    items: List[CartLineOut]
    subtotal: int
    item_count: int
    expires_at: datetime


class ReorderIn(BaseModel):
    order_id: int = Field(..., gt=0)
    customer_id: str = Field(..., min_length=1)


class ReorderOut(BaseModel):
    cart: CartOut
    added_count: int
    unavailable_items: List[str]
    message: str


class CheckoutLineOut(BaseModel):
    variant_id: str
    title: str
    quantity: int
    unit_price: int
    subtotal: int
    is_on_sale: bool

    model_config = ConfigDict(from_attributes=True)


class CheckoutReportOut(BaseModel):
    valid: bool
    errors: List[str]
    warnings: List[str]
    lines: List[CheckoutLineOut]
    total: int

    model_config = ConfigDict(from_attributes=True)


# --- checkout ---

class QuoteIn(BaseModel):
    cart_id: int = Field(..., gt=0)
    customer_id: str = Field(..., min_length=1)
    fulfillment_type: FulfillmentType
    delivery_lat: Optional[float] = Field(None, ge=-90, le=90)
    delivery_lng: Optional[float] = Field(None, ge=-180, le=180)
    is_express: bool = False


class CheckoutIn(QuoteIn):
    payment_method: PaymentMethod
    delivery_address: Optional[str] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class QuoteOut(BaseModel):
    cart_id: int
    currency_code: str
    valid: bool
    errors: List[str]
    warnings: List[str]
    subtotal: int
    delivery_fee: int
    is_free_delivery: bool
    distance_km: Optional[float] = None
    estimated_minutes: Optional[Tuple[int, int]] = None
    total: int


# --- zamowienia ---

class OrderItemOut(BaseModel):
    variant_id: str
    title: str
    quantity: int
    unit_price: int
    subtotal: int
    tax_total: int

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    display_id: int
    status: str
    fulfillment_type: str
    fulfillment_status: str
    payment_status: str
    payment_method: str
    vendor_id: str
    customer_id: str
    rider_id: Optional[str] = None
    rider_name: Optional[str] = None
    rider_phone: Optional[str] = None
    currency_code: str
    total: int
    tax_total: int
    discount_total: int
    delivery_total: int
    delivery_lat: Optional[float] = None
    delivery_lng: Optional[float] = None
    delivery_address: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    items: List[OrderItemOut] = []

    model_config = ConfigDict(from_attributes=True)


class OrderEventOut(BaseModel):
    id: int
    order_id: int
    actor_id: str
    event_type: str
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    from_payment_status: Optional[str] = None
    to_payment_status: Optional[str] = None
    from_fulfillment_status: Optional[str] = None
    to_fulfillment_status: Optional[str] = None
    reason: Optional[str] = None
    snapshot_total: int
    snapshot_tax_total: int
    snapshot_discount_total: int
    snapshot_delivery_total: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransitionIn(BaseModel):
    """Akcja na zamowieniu. rider_* tylko dla vendor_assign / rider_accept."""

    action: Action
    actor_id: str = Field(..., min_length=1)
    role: ActorRole
    reason: Optional[str] = Field(None, max_length=500)
    rider_id: Optional[str] = None
    rider_name: Optional[str] = None
    rider_phone: Optional[str] = None


class NearbyIn(BaseModel):
    rider_id: str = Field(..., min_length=1)
    estimated_minutes: Optional[int] = Field(None, ge=0)


class CurrentDeliveryOut(BaseModel):
    order: OrderOut
    is_picked_up: bool
    delivery_distance_km: Optional[float] = None


class PendingCountOut(BaseModel):
    vendor_id: str
    pending: int


# --- kurierzy / dispatch ---

class RiderLocationIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class RiderStatusIn(BaseModel):
    status: RiderStatus
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)


class RiderLocationOut(BaseModel):
    rider_id: str
    lat: float
    lng: float
    status: str
    last_updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DeliveryCandidateOut(BaseModel):
    order_id: int
    display_id: int
    created_at: datetime
    vendor_id: str
    vendor_lat: Optional[float] = None
    vendor_lng: Optional[float] = None
    delivery_lat: Optional[float] = None
    delivery_lng: Optional[float] = None
    total: int
    delivery_total: int
    currency_code: str
    distance_from_rider_km: Optional[float] = None
    delivery_distance_km: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class RiderCandidateOut(BaseModel):
    rider_id: str
    lat: float
    lng: float
    status: str
    last_updated_at: datetime
    distance_km: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


# --- katalog ---

class VendorIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    address: Optional[str] = None
    is_busy: bool = False


class VendorOut(VendorIn):
    id: str

    model_config = ConfigDict(from_attributes=True)


class VariantIn(BaseModel):
    vendor_id: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    unit: str = "piece"
    stock_quantity: int = Field(0, ge=0)
    is_available: bool = True


class VariantOut(VariantIn):
    id: str

    model_config = ConfigDict(from_attributes=True)


class PriceTierIn(BaseModel):
    amount: int = Field(..., ge=0)
    sale_amount: Optional[int] = Field(None, ge=0)
    min_quantity: Optional[int] = Field(None, ge=0)
    max_quantity: Optional[int] = Field(None, ge=0)


class PriceTiersIn(BaseModel):
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    tiers: List[PriceTierIn]


class PriceTierOut(PriceTierIn):
    id: int
    currency: str

    model_config = ConfigDict(from_attributes=True)


class PriceQuoteOut(BaseModel):
    unit_amount: int
    is_on_sale: bool
    currency: str
    tier_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


# --- zarobki kuriera ---

class DeliveryRecordOut(BaseModel):
    order_id: int
    display_id: int
    delivery_total: int
    currency_code: str
    delivered_at: datetime
    store_name: Optional[str] = None


class DeliveryHistoryOut(BaseModel):
    deliveries: List[DeliveryRecordOut]
    count: int
    total_earnings: int


class EarningsPeriodOut(BaseModel):
    deliveries: int
    earnings: int


class EarningsSummaryOut(BaseModel):
    today: EarningsPeriodOut
    this_week: EarningsPeriodOut
    this_month: EarningsPeriodOut
    all_time: EarningsPeriodOut
