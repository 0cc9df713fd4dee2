from sqlalchemy import Column, String, Float, Boolean

from marketplace.data.database import Base


class VendorModel(Base):
    """Sklep (organizacja) - tylko pola potrzebne do checkoutu i dispatchu."""

    __tablename__ = "vendors"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)

    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    address = Column(String, nullable=True)

    is_busy = Column(Boolean, nullable=False, default=False)
