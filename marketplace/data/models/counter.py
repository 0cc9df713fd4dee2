from sqlalchemy import Column, Integer, String

from marketplace.data.database import Base


class CounterModel(Base):
    __tablename__ = "counters"

    name = Column(String, primary_key=True)
    value = Column(Integer, nullable=False)
