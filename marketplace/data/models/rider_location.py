from sqlalchemy import Column, Integer, String, Float

from marketplace.data.database import Base, UTCDateTime


class RiderLocationModel(Base):
    __tablename__ = "rider_locations"

    id = Column(Integer, primary_key=True)
    rider_id = Column(String, nullable=False, unique=True)

    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    # offline, online, busy
    status = Column(String, nullable=False, default="offline", index=True)

    last_updated_at = Column(UTCDateTime, nullable=False)
    created_at = Column(UTCDateTime, nullable=False)
