from sqlalchemy import Column, Integer, ForeignKey, String, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship

from marketplace.data.database import Base


class VariantModel(Base):
    __tablename__ = "variants"

    id = Column(String, primary_key=True)
    vendor_id = Column(String, ForeignKey("vendors.id"), nullable=False, index=True)

    sku = Column(String, nullable=False)
    title = Column(String, nullable=False)
    unit = Column(String, nullable=False, default="piece")

    stock_quantity = Column(Integer, nullable=False, default=0)
    is_available = Column(Boolean, nullable=False, default=True)

    price_set = relationship(
        "PriceSetModel",
        back_populates="variant",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (UniqueConstraint("vendor_id", "sku", name="u_vendor_sku"),)
