from sqlalchemy import Column, Integer, ForeignKey, String
from sqlalchemy.orm import relationship

from marketplace.data.database import Base


class PriceSetModel(Base):
    """Grupa cen wariantu (jedna na wariant, wiele walut w przyszlosci)."""

    __tablename__ = "price_sets"

    id = Column(Integer, primary_key=True)
    variant_id = Column(String, ForeignKey("variants.id", ondelete="CASCADE"), nullable=False, unique=True)

    variant = relationship("VariantModel", back_populates="price_set")
    tiers = relationship(
        "PriceTierModel",
        back_populates="price_set",
        cascade="all, delete-orphan",
    )


class PriceTierModel(Base):
    __tablename__ = "price_tiers"

    id = Column(Integer, primary_key=True)
    price_set_id = Column(Integer, ForeignKey("price_sets.id", ondelete="CASCADE"), nullable=False, index=True)

    currency = Column(String(3), nullable=False)
    # kwoty w najmniejszych jednostkach waluty
    amount = Column(Integer, nullable=False)
    sale_amount = Column(Integer, nullable=True)

    min_quantity = Column(Integer, nullable=True)
    max_quantity = Column(Integer, nullable=True)

    price_set = relationship("PriceSetModel", back_populates="tiers")
