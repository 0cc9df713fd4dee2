from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String

from marketplace.data.database import Base, UTCDateTime


class OrderEventModel(Base):
    """Audit log zamowienia - tylko insert, nigdy update/delete."""

    __tablename__ = "order_events"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    actor_id = Column(String, nullable=False)
    event_type = Column(String, nullable=False)

    from_status = Column(String, nullable=True)
    to_status = Column(String, nullable=True)
    from_payment_status = Column(String, nullable=True)
    to_payment_status = Column(String, nullable=True)
    from_fulfillment_status = Column(String, nullable=True)
    to_fulfillment_status = Column(String, nullable=True)
    reason = Column(String, nullable=True)

    snapshot_total = Column(Integer, nullable=False)
    snapshot_tax_total = Column(Integer, nullable=False)
    snapshot_discount_total = Column(Integer, nullable=False)
    snapshot_delivery_total = Column(Integer, nullable=False)

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
