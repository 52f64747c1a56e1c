"""ScrapedData ORM model: raw upstream payloads kept as an audit trail."""

from datetime import datetime, timezone

from sqlalchemy import Column, BigInteger, Integer, String, JSON, TIMESTAMP, ForeignKey
from sqlalchemy.orm import relationship

from cheapeats.database import Base


class ScrapedData(Base):
    """
    Provenance record written once per restaurant per fetch cycle.
    raw_data is stored as-is ({"search_result": ..., "details": ...}) and is
    never read back by the API.
    """

    __tablename__ = "scraped_data"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    source = Column(String(100), nullable=False, index=True)
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="SET NULL"),
        nullable=True,
    )

    raw_data = Column(JSON, nullable=False, default=dict)

    scraped_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    restaurant = relationship("Restaurant")
