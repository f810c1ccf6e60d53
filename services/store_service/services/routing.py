"""Nearest dark store routing."""

import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from libs.common.config import get_settings
from libs.common.errors import NoDarkStoreAvailable
from libs.common.geo import haversine_km
from libs.common.logging import get_logger
from services.store_service.models import Address, DarkStore
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoreSelection:
    dark_store_id: uuid.UUID
    distance_km: Optional[float] = None  # None when the fallback store was used

    @property
    def is_fallback(self) -> bool:
        return self.distance_km is None


def select_dark_store(
    address: Address,
    dark_stores: Sequence[DarkStore],
    default_store_id: Optional[uuid.UUID] = None,
) -> StoreSelection:
    """Pick the dark store closest to ``address``.

    Addresses without coordinates go to ``default_store_id`` (or the first
    store when no default is configured). Ties keep the first store found.
    """
    if not dark_stores:
        raise NoDarkStoreAvailable()

    if not address.has_coordinates:
        return StoreSelection(dark_store_id=default_store_id or dark_stores[0].id)

    nearest: Optional[DarkStore] = None
    min_distance = float("inf")
    for store in dark_stores:
        distance = haversine_km(address.lat, address.lng, store.lat, store.lng)
        if distance < min_distance:
            min_distance = distance
            nearest = store

    return StoreSelection(dark_store_id=nearest.id, distance_km=min_distance)


def _configured_default() -> Optional[uuid.UUID]:
    raw = get_settings().DEFAULT_DARK_STORE_ID
    return uuid.UUID(raw) if raw else None


async def resolve_dark_store(db: AsyncSession, address: Address) -> StoreSelection:
    """Load all dark stores and route ``address`` to one of them."""
    result = await db.execute(select(DarkStore).order_by(DarkStore.created_at))
    stores = list(result.scalars().all())

    default_id = _configured_default()
    if default_id is not None and not any(s.id == default_id for s in stores):
        logger.warning("Configured default dark store %s does not exist", default_id)
        default_id = None

    selection = select_dark_store(address, stores, default_id)
    if selection.is_fallback:
        logger.info("Address %s has no coordinates, using default store", address.id)
    else:
        logger.info(
            "Routing order to nearest store %s (%.2fkm away)",
            selection.dark_store_id,
            selection.distance_km,
        )
    return selection
