"""PriceHistory ORM model: append-only price ledger per menu item."""

from datetime import datetime, timezone

from sqlalchemy import Column, BigInteger, Integer, Double, TIMESTAMP, ForeignKey
from sqlalchemy.orm import relationship

from cheapeats.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PriceHistory(Base):
    """One price point. Rows are only ever inserted."""

    __tablename__ = "price_history"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    menu_item_id = Column(
        Integer,
        ForeignKey("menu_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    price = Column(Double, nullable=False)
    recorded_at = Column(TIMESTAMP(timezone=True), nullable=False, default=_utcnow)

    # Relationships
    menu_item = relationship("MenuItem", back_populates="price_history")
