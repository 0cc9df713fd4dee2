from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, Float, Text
from sqlalchemy.orm import relationship

from marketplace.data.database import Base, UTCDateTime


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    display_id = Column(Integer, nullable=False, unique=True)

    # pending, confirmed, preparing, ready_for_pickup, out_for_delivery,
    # delivered, completed, cancelled, refunded
    status = Column(String, nullable=False, default="pending", index=True)
    fulfillment_type = Column(String, nullable=False)
    fulfillment_status = Column(String, nullable=False, default="not_fulfilled")
    payment_status = Column(String, nullable=False, default="awaiting")
    payment_method = Column(String, nullable=False)

    vendor_id = Column(String, ForeignKey("vendors.id"), nullable=False, index=True)
    customer_id = Column(String, nullable=False, index=True)

    rider_id = Column(String, nullable=True, index=True)
    rider_name = Column(String, nullable=True)
    rider_phone = Column(String, nullable=True)

    currency_code = Column(String(3), nullable=False)
    total = Column(Integer, nullable=False)
    tax_total = Column(Integer, nullable=False, default=0)
    discount_total = Column(Integer, nullable=False, default=0)
    delivery_total = Column(Integer, nullable=False, default=0)

    # punkt dostawy skopiowany z adresu klienta w momencie zakupu
    delivery_lat = Column(Float, nullable=True)
    delivery_lng = Column(Float, nullable=True)
    delivery_address = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
    vendor = relationship("VendorModel")


class OrderItemModel(Base):
    """Snapshot pozycji z chwili zakupu, nigdy nie czyta aktualnych cen."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_id = Column(String, nullable=False)

    title = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Integer, nullable=False)
    subtotal = Column(Integer, nullable=False)
    tax_total = Column(Integer, nullable=False, default=0)

    order = relationship("OrderModel", back_populates="items")
