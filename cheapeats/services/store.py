"""
Restaurant store: the only module that talks to the database.

A RestaurantStore wraps an async_sessionmaker and is built once at startup,
then handed to the price fetcher and the routers. Every operation runs in its
own short-lived session and commits before returning, so a failure affects
exactly one record. SQLAlchemy errors surface as PersistenceError.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from cheapeats.models import MenuItem, PriceHistory, Restaurant, ScrapedData
from cheapeats.services.geo import BoundingBox

logger = logging.getLogger(__name__)

# Columns the price fetcher may rewrite on an existing restaurant
RESTAURANT_MUTABLE_FIELDS: frozenset[str] = frozenset({
    "name", "address", "city", "state", "zip_code", "country",
    "latitude", "longitude", "cuisine_type", "phone", "website",
    "rating", "price_range",
})


class PersistenceError(Exception):
    """Raised when a read or write against the store fails."""


class IntegrityViolationError(PersistenceError):
    """Raised when a write violates a unique or foreign key constraint."""


class RestaurantStore:
    """Query and write operations for restaurants, menus and price history."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # ── Restaurants ──────────────────────────────────────────────────────────

    async def find_by_external_id(self, external_id: str) -> Optional[Restaurant]:
        """Return the restaurant with this upstream place id, or None."""
        async with self._session_factory() as session:
            try:
                result = await session.execute(
                    select(Restaurant).where(Restaurant.external_id == external_id)
                )
                return result.scalar_one_or_none()
            except SQLAlchemyError as exc:
                raise PersistenceError(
                    f"lookup of restaurant {external_id!r} failed: {exc}"
                ) from exc

    async def create_restaurant(self, fields: dict[str, Any]) -> Restaurant:
        """
        Insert a restaurant and return it with its generated id.
        Raises IntegrityViolationError if external_id is already stored.
        """
        restaurant = Restaurant(**fields)
        async with self._session_factory() as session:
            session.add(restaurant)
            await self._commit(
                session, f"create restaurant {fields.get('external_id')!r}", restaurant
            )
        logger.debug("Created restaurant %s (id=%s)", restaurant.external_id, restaurant.id)
        return restaurant

    async def update_restaurant(self, restaurant_id: int, fields: dict[str, Any]) -> None:
        """Overwrite mutable columns. Identity and created_at are never touched."""
        values = {k: v for k, v in fields.items() if k in RESTAURANT_MUTABLE_FIELDS}
        if not values:
            return
        async with self._session_factory() as session:
            try:
                await session.execute(
                    update(Restaurant)
                    .where(Restaurant.id == restaurant_id)
                    .values(**values)
                )
            except SQLAlchemyError as exc:
                await session.rollback()
                raise PersistenceError(
                    f"update of restaurant {restaurant_id} failed: {exc}"
                ) from exc
            await self._commit(session, f"update restaurant {restaurant_id}")

    async def get_restaurant(
        self, restaurant_id: int, with_menu: bool = False
    ) -> Optional[Restaurant]:
        """Return one restaurant by id, optionally with its menu items loaded."""
        stmt = select(Restaurant).where(Restaurant.id == restaurant_id)
        if with_menu:
            stmt = stmt.options(selectinload(Restaurant.menu_items))
        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                return result.scalar_one_or_none()
            except SQLAlchemyError as exc:
                raise PersistenceError(
                    f"fetch of restaurant {restaurant_id} failed: {exc}"
                ) from exc

    async def find_all(
        self,
        city: Optional[str] = None,
        cuisine: Optional[str] = None,
        price_range: Optional[str] = None,
    ) -> list[Restaurant]:
        """List restaurants, narrowed by any of the exact-match filters given."""
        stmt = select(Restaurant)
        if city:
            stmt = stmt.where(Restaurant.city == city)
        if cuisine:
            stmt = stmt.where(Restaurant.cuisine_type == cuisine)
        if price_range:
            stmt = stmt.where(Restaurant.price_range == price_range)
        stmt = stmt.order_by(Restaurant.id)

        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                return list(result.scalars().all())
            except SQLAlchemyError as exc:
                raise PersistenceError(f"restaurant listing failed: {exc}") from exc

    async def find_in_bounding_box(self, box: BoundingBox) -> list[Restaurant]:
        """Candidate rows for a nearby search; the caller applies the exact radius."""
        stmt = select(Restaurant).where(
            Restaurant.latitude >= box.min_lat,
            Restaurant.latitude <= box.max_lat,
        )
        if not box.wraps_longitude:
            stmt = stmt.where(
                Restaurant.longitude >= box.min_lng,
                Restaurant.longitude <= box.max_lng,
            )
        stmt = stmt.order_by(Restaurant.id)

        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                return list(result.scalars().all())
            except SQLAlchemyError as exc:
                raise PersistenceError(f"bounding box query failed: {exc}") from exc

    # ── Menu items ───────────────────────────────────────────────────────────

    async def find_menu_item(self, restaurant_id: int, name: str) -> Optional[MenuItem]:
        """Return the first item with this name on the restaurant's menu, or None."""
        async with self._session_factory() as session:
            try:
                result = await session.execute(
                    select(MenuItem)
                    .where(MenuItem.restaurant_id == restaurant_id, MenuItem.name == name)
                    .order_by(MenuItem.id)
                    .limit(1)
                )
                return result.scalar_one_or_none()
            except SQLAlchemyError as exc:
                raise PersistenceError(
                    f"lookup of menu item {name!r} for restaurant {restaurant_id} failed: {exc}"
                ) from exc

    async def create_menu_item(self, fields: dict[str, Any]) -> MenuItem:
        """
        Insert a menu item together with its first price_history row.
        Both rows commit in the same transaction.
        """
        item = MenuItem(**fields)
        async with self._session_factory() as session:
            session.add(item)
            try:
                await session.flush()
                session.add(PriceHistory(menu_item_id=item.id, price=item.price))
            except SQLAlchemyError as exc:
                await session.rollback()
                raise PersistenceError(
                    f"create of menu item {fields.get('name')!r} failed: {exc}"
                ) from exc
            await self._commit(session, f"create menu item {fields.get('name')!r}", item)
        return item

    async def append_price_history(self, menu_item_id: int, price: float) -> PriceHistory:
        """Record a price point for a menu item."""
        entry = PriceHistory(menu_item_id=menu_item_id, price=price)
        async with self._session_factory() as session:
            session.add(entry)
            await self._commit(session, f"price history for menu item {menu_item_id}", entry)
        return entry

    async def update_menu_item_price(self, menu_item_id: int, price: float) -> None:
        """
        Append a price_history row and set the item's price, atomically.
        History is written first so a price is never changed without a record.
        """
        async with self._session_factory() as session:
            try:
                session.add(PriceHistory(menu_item_id=menu_item_id, price=price))
                await session.flush()
                await session.execute(
                    update(MenuItem)
                    .where(MenuItem.id == menu_item_id)
                    .values(price=price)
                )
            except SQLAlchemyError as exc:
                await session.rollback()
                raise PersistenceError(
                    f"price update of menu item {menu_item_id} failed: {exc}"
                ) from exc
            await self._commit(session, f"price update of menu item {menu_item_id}")

    async def find_menu_items(
        self,
        restaurant_id: int,
        category: Optional[str] = None,
        max_price: Optional[float] = None,
    ) -> list[MenuItem]:
        """List a restaurant's menu, optionally by category and price ceiling."""
        stmt = select(MenuItem).where(MenuItem.restaurant_id == restaurant_id)
        if category:
            stmt = stmt.where(MenuItem.category == category)
        if max_price is not None:
            stmt = stmt.where(MenuItem.price <= max_price)
        stmt = stmt.order_by(MenuItem.id)

        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                return list(result.scalars().all())
            except SQLAlchemyError as exc:
                raise PersistenceError(
                    f"menu listing for restaurant {restaurant_id} failed: {exc}"
                ) from exc

    async def get_menu_item(
        self, menu_item_id: int, with_history: bool = False
    ) -> Optional[MenuItem]:
        """Return one menu item by id, optionally with its price history loaded."""
        stmt = select(MenuItem).where(MenuItem.id == menu_item_id)
        if with_history:
            stmt = stmt.options(selectinload(MenuItem.price_history))
        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                return result.scalar_one_or_none()
            except SQLAlchemyError as exc:
                raise PersistenceError(
                    f"fetch of menu item {menu_item_id} failed: {exc}"
                ) from exc

    async def find_price_history(self, menu_item_id: int) -> list[PriceHistory]:
        """Price points for a menu item, newest first."""
        stmt = (
            select(PriceHistory)
            .where(PriceHistory.menu_item_id == menu_item_id)
            .order_by(PriceHistory.recorded_at.desc(), PriceHistory.id.desc())
        )
        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                return list(result.scalars().all())
            except SQLAlchemyError as exc:
                raise PersistenceError(
                    f"price history for menu item {menu_item_id} failed: {exc}"
                ) from exc

    # ── Provenance ───────────────────────────────────────────────────────────

    async def append_scraped_record(
        self,
        source: str,
        raw_data: dict[str, Any],
        restaurant_id: Optional[int] = None,
    ) -> ScrapedData:
        """Store a raw upstream payload."""
        record = ScrapedData(source=source, restaurant_id=restaurant_id, raw_data=raw_data)
        async with self._session_factory() as session:
            session.add(record)
            await self._commit(session, f"scraped record for restaurant {restaurant_id}", record)
        return record

    # ── Helpers ──────────────────────────────────────────────────────────────

    @staticmethod
    async def _commit(session: AsyncSession, what: str, *refresh: Any) -> None:
        """
        Commit, then reload server-generated columns on the given objects.
        Failures roll back and surface as PersistenceError.
        """
        try:
            await session.commit()
            for obj in refresh:
                await session.refresh(obj)
        except IntegrityError as exc:
            await session.rollback()
            raise IntegrityViolationError(f"{what}: constraint violated ({exc.orig})") from exc
        except SQLAlchemyError as exc:
            await session.rollback()
            raise PersistenceError(f"{what} failed: {exc}") from exc
