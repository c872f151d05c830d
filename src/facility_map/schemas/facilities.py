"""Facility catalog API schemas."""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel


class FacilityModel(BaseModel):
    id: str
    name: str
    address: str
    latitude: float
    longitude: float
    category: str


class FacilityListResponse(BaseModel):
    items: List[FacilityModel]
    total: int


class CategoryStatsResponse(BaseModel):
    total: int
    categories: Dict[str, int]
