"""Restaurant ORM model keyed by the upstream place id."""

from sqlalchemy import Column, Integer, Text, String, Float, Double, TIMESTAMP, func
from sqlalchemy.orm import relationship

from cheapeats.database import Base


class Restaurant(Base):
    """
    A restaurant discovered through the places provider.
    external_id is the provider's place_id and the natural key for upserts;
    the price fetcher rewrites every other column on each fetch cycle.
    """

    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)

    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    zip_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)

    latitude = Column(Double, nullable=False, index=True)
    longitude = Column(Double, nullable=False, index=True)

    cuisine_type = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    website = Column(String(255), nullable=True)
    rating = Column(Float, nullable=True)
    price_range = Column(String(10), nullable=True)   # 'Free' | '$' ... '$$$$' | 'N/A'

    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    menu_items = relationship(
        "MenuItem", back_populates="restaurant", cascade="all, delete-orphan"
    )
