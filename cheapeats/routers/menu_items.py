"""Menu item endpoints: single item lookup and its price history."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from cheapeats.dependencies import get_store
from cheapeats.schemas.restaurant import MenuItemDetail, PriceHistoryRead
from cheapeats.services.store import PersistenceError, RestaurantStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/menu-items", tags=["menu-items"])


@router.get("/{item_id}", response_model=MenuItemDetail)
async def get_menu_item(
    item_id: int,
    store: RestaurantStore = Depends(get_store),
) -> MenuItemDetail:
    """Return a menu item with its price history, newest first."""
    try:
        item = await store.get_menu_item(item_id, with_history=True)
    except PersistenceError as exc:
        logger.error("Menu item %d fetch failed: %s", item_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch menu item",
        ) from exc

    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Menu item not found",
        )
    return MenuItemDetail.model_validate(item)


@router.get("/{item_id}/price-history", response_model=list[PriceHistoryRead])
async def get_price_history(
    item_id: int,
    store: RestaurantStore = Depends(get_store),
) -> list[PriceHistoryRead]:
    """Return the recorded prices of a menu item, newest first."""
    try:
        history = await store.find_price_history(item_id)
    except PersistenceError as exc:
        logger.error("Price history for menu item %d failed: %s", item_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch price history",
        ) from exc
    return [PriceHistoryRead.model_validate(h) for h in history]
