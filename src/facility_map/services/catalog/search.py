"""Facility lookup helpers for the search box and category filter."""

from __future__ import annotations

from collections import Counter
from typing import Optional

from ...data.facility_repository import FacilityCatalog
from ...models.domain import Facility, FacilityCategory


def search_facilities(catalog: FacilityCatalog, query: str, limit: Optional[int] = None) -> list[Facility]:
    """Case-insensitive substring match on name or address, in catalog order."""

    needle = (query or "").strip().lower()
    if not needle:
        return []
    matches = [
        facility
        for facility in catalog
        if needle in facility.name.lower() or needle in facility.address.lower()
    ]
    if limit is not None:
        return matches[: max(limit, 0)]
    return matches


def filter_by_category(catalog: FacilityCatalog, category: Optional[FacilityCategory]) -> list[Facility]:
    if category is None:
        return list(catalog)
    return [facility for facility in catalog if facility.category is category]


def compute_category_stats(catalog: FacilityCatalog) -> dict:
    counts: Counter[FacilityCategory] = Counter(facility.category for facility in catalog)
    return {
        "total": len(catalog),
        "categories": {category.value: counts.get(category, 0) for category in FacilityCategory},
    }
