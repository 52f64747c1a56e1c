"""SQLAlchemy ORM models package."""

from cheapeats.database import Base
from cheapeats.models.restaurant import Restaurant
from cheapeats.models.menu_item import MenuItem
from cheapeats.models.price_history import PriceHistory
from cheapeats.models.scraped_data import ScrapedData

__all__ = ["Base", "Restaurant", "MenuItem", "PriceHistory", "ScrapedData"]
