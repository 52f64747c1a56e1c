"""MenuItem ORM model."""

from sqlalchemy import (
    Column, Integer, Text, String, Boolean, Double,
    TIMESTAMP, ForeignKey, func, true,
)
from sqlalchemy.orm import relationship

from cheapeats.database import Base


class MenuItem(Base):
    """
    A priced dish on a restaurant's menu.
    (restaurant_id, name) identifies an item during reconciliation but is not
    a database constraint.
    """

    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    price = Column(Double, nullable=False, index=True)
    currency = Column(String(10), nullable=False, server_default="USD")
    is_available = Column(Boolean, nullable=False, server_default=true())

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
    restaurant = relationship("Restaurant", back_populates="menu_items")
    price_history = relationship(
        "PriceHistory",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        order_by="PriceHistory.recorded_at.desc()",
    )
