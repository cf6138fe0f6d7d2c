import logging
import time
from typing import Any, Optional

from config import get_settings
from db import AsyncClient
from models import CatalogCategory, RateRange, ServiceLocation, SystemSetting
from schema import CategoryRequest, LocationRequest
from services.base import execute, first_or_404, first_or_none

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTED_RATE = 1000

_cache: dict[str, dict] = {}


def _cached(key: str):
    entry = _cache.get(key)
    if entry and time.monotonic() - entry["fetched_at"] < get_settings().catalog_cache_ttl:
        return entry["data"]
    return None


def _store(key: str, data):
    _cache[key] = {"data": data, "fetched_at": time.monotonic()}


def clear_cache(*keys: str):
    if not keys:
        _cache.clear()
    for key in keys:
        _cache.pop(key, None)


# --- Categories ---

async def get_active_categories(sbase: AsyncClient) -> list[CatalogCategory]:
    cached = _cached("service_categories")
    if cached is not None:
        return cached

    res = await execute(
        sbase.table("service_categories")
        .select("*")
        .eq("is_active", True)
        .order("sort_order", desc=False)
        .order("label", desc=False),
        "fetch service categories",
    )
    categories = [CatalogCategory.model_validate(row) for row in res.data or []]
    _store("service_categories", categories)
    return categories


async def create_category(sbase: AsyncClient, data: CategoryRequest) -> CatalogCategory:
    res = await execute(sbase.table("service_categories").insert(data.model_dump()), "create service category")
    clear_cache("service_categories")
    return CatalogCategory.model_validate(first_or_404(res, "Created category"))


async def update_category(sbase: AsyncClient, category_id: str, updates: dict[str, Any]) -> CatalogCategory:
    res = await execute(
        sbase.table("service_categories").update(updates).eq("id", category_id),
        "update service category",
    )
    clear_cache("service_categories")
    return CatalogCategory.model_validate(first_or_404(res, "Service category"))


async def delete_category(sbase: AsyncClient, category_id: str) -> None:
    await execute(sbase.table("service_categories").delete().eq("id", category_id), "delete service category")
    clear_cache("service_categories")


# --- Locations ---

async def get_active_locations(sbase: AsyncClient, region: Optional[str] = None) -> list[ServiceLocation]:
    if region:
        res = await execute(
            sbase.table("service_locations")
            .select("*")
            .eq("is_active", True)
            .eq("region", region)
            .order("sort_order", desc=False),
            "fetch service locations",
        )
        return [ServiceLocation.model_validate(row) for row in res.data or []]

    cached = _cached("service_locations")
    if cached is not None:
        return cached

    res = await execute(
        sbase.table("service_locations")
        .select("*")
        .eq("is_active", True)
        .order("sort_order", desc=False)
        .order("name", desc=False),
        "fetch service locations",
    )
    locations = [ServiceLocation.model_validate(row) for row in res.data or []]
    _store("service_locations", locations)
    return locations


async def create_location(sbase: AsyncClient, data: LocationRequest) -> ServiceLocation:
    res = await execute(sbase.table("service_locations").insert(data.model_dump()), "create service location")
    clear_cache("service_locations")
    return ServiceLocation.model_validate(first_or_404(res, "Created location"))


async def update_location(sbase: AsyncClient, location_id: str, updates: dict[str, Any]) -> ServiceLocation:
    res = await execute(
        sbase.table("service_locations").update(updates).eq("id", location_id),
        "update service location",
    )
    clear_cache("service_locations")
    return ServiceLocation.model_validate(first_or_404(res, "Service location"))


async def delete_location(sbase: AsyncClient, location_id: str) -> None:
    await execute(sbase.table("service_locations").delete().eq("id", location_id), "delete service location")
    clear_cache("service_locations")


# --- System settings ---

async def get_system_settings(sbase: AsyncClient, category: Optional[str] = None) -> list[SystemSetting]:
    query = sbase.table("system_settings").select("*").eq("is_active", True)
    if category:
        query = query.eq("category", category)
    res = await execute(query.order("key", desc=False), "fetch system settings")
    return [SystemSetting.model_validate(row) for row in res.data or []]


async def get_setting_value(sbase: AsyncClient, key: str) -> Any:
    res = await execute(
        sbase.table("system_settings").select("*").eq("key", key).eq("is_active", True),
        "fetch system setting",
    )
    row = first_or_none(res)
    return row.get("value") if row else None


# --- Rates ---

async def get_rate_suggestions(sbase: AsyncClient, category_values: list[str]) -> dict[str, RateRange]:
    if not category_values:
        return {}
    res = await execute(
        sbase.table("service_categories")
        .select("value, rate_min, rate_typical, rate_max")
        .in_("value", category_values)
        .eq("is_active", True),
        "fetch rate suggestions",
    )
    return {
        row["value"]: RateRange(min=row["rate_min"], typical=row["rate_typical"], max=row["rate_max"])
        for row in res.data or []
    }


async def calculate_suggested_rate(sbase: AsyncClient, category_values: list[str]) -> int:
    """Mean typical rate across the given categories."""
    suggestions = await get_rate_suggestions(sbase, category_values)
    if not suggestions:
        return DEFAULT_SUGGESTED_RATE
    total = sum(s.typical for s in suggestions.values())
    return round(total / len(suggestions))
