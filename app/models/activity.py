from sqlalchemy import Column, Integer, String, Boolean, Float
from app.db.session import Base


class Activity(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    city = Column(String, nullable=True)
    location = Column(String, nullable=True)

    # Pricing (either may be unset; booking falls back to the default price)
    price = Column(Float, nullable=True)
    base_price = Column(Float, nullable=True)

    deleted = Column(Boolean, default=False)
