from sqlalchemy import Column, Integer, String, Boolean, Float
from app.db.session import Base


class Place(Base):
    __tablename__ = "places"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    city = Column(String, nullable=True)
    location = Column(String, nullable=True)

    price = Column(Float, nullable=True)
    base_price = Column(Float, nullable=True)

    deleted = Column(Boolean, default=False)
