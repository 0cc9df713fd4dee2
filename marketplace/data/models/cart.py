#marketplace/data/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from marketplace.data.database import Base, UTCDateTime


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)

    # dokladnie jedno z customer_id / session_id
    customer_id = Column(String, nullable=True, index=True)
    session_id = Column(String, nullable=True, index=True)
    # "customer:<id>" albo "session:<id>", klucz unikalnosci koszyka
    owner_key = Column(String, nullable=False)

    vendor_id = Column(String, ForeignKey("vendors.id"), nullable=False)
    currency_code = Column(String(3), nullable=False)

    expires_at = Column(UTCDateTime, nullable=False, index=True)
    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
    )

    __table_args__ = (UniqueConstraint("owner_key", "vendor_id", name="u_cart_owner_vendor"),)
