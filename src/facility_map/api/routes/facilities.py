"""Facility catalog endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from ...data.facility_repository import get_catalog
from ...models.domain import Facility, FacilityCategory, parse_category
from ...schemas.facilities import CategoryStatsResponse, FacilityListResponse, FacilityModel
from ...services.catalog.search import compute_category_stats, filter_by_category, search_facilities

router = APIRouter(prefix="/facilities", tags=["facilities"])


def _to_model(facility: Facility) -> FacilityModel:
    return FacilityModel(
        id=facility.id,
        name=facility.name,
        address=facility.address,
        latitude=facility.latitude,
        longitude=facility.longitude,
        category=facility.category.value,
    )


def _load_catalog():
    try:
        return get_catalog()
    except (FileNotFoundError, ValueError) as exc:
        logging.exception(f"Failed to load facility catalog: {exc}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Facility catalog unavailable: {str(exc)}",
        ) from exc


@router.get("", response_model=FacilityListResponse, status_code=status.HTTP_200_OK)
def list_facilities(
    category: str | None = Query(default=None, description="Optional category filter (e.g. SD, SMP, Primary)"),
) -> FacilityListResponse:
    catalog = _load_catalog()
    selected: FacilityCategory | None = None
    if category:
        selected = parse_category(category)
        if selected is FacilityCategory.UNKNOWN:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown category '{category}'.")
    items = filter_by_category(catalog, selected)
    return FacilityListResponse(items=[_to_model(f) for f in items], total=len(items))


@router.get("/search", response_model=FacilityListResponse, status_code=status.HTTP_200_OK)
def search(
    q: str = Query(default="", description="Substring of the facility name or address"),
    limit: int | None = Query(default=None, ge=1, le=500),
) -> FacilityListResponse:
    items = search_facilities(_load_catalog(), q, limit=limit)
    return FacilityListResponse(items=[_to_model(f) for f in items], total=len(items))


@router.get("/stats", response_model=CategoryStatsResponse, status_code=status.HTTP_200_OK)
def stats() -> CategoryStatsResponse:
    return CategoryStatsResponse(**compute_category_stats(_load_catalog()))
