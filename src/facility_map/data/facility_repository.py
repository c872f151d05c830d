"""Data access helpers for loading the facility catalog."""

from __future__ import annotations

import csv
import functools
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional

from openpyxl import load_workbook

from ..config import settings
from ..models.domain import Facility, parse_category
from ..services.routing.errors import DataError

logger = logging.getLogger(__name__)

ID_KEYS = ("uuid", "id", "facility_id", "npsn")
NAME_KEYS = ("nama", "name")
ADDRESS_KEYS = ("alamat", "address")
LAT_KEYS = ("lat", "latitude")
LNG_KEYS = ("lng", "lon", "longitude")
CATEGORY_KEYS = ("bentuk_pendidikan", "category")


def _first(row: Mapping[str, Any], keys: Iterable[str]) -> Any:
    lowered = {str(key).strip().lower(): value for key, value in row.items() if key is not None}
    for key in keys:
        value = lowered.get(key)
        if value is not None and str(value).strip() != "":
            return value
    return None


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", "."))
    except ValueError as exc:
        raise DataError(f"Unable to parse coordinate from value '{value}'") from exc


def parse_facility(row: Mapping[str, Any]) -> Facility:
    """Build a Facility from a raw record, raising DataError when unusable."""

    raw_id = _first(row, ID_KEYS)
    if raw_id is None:
        raise DataError("Facility record is missing an identifier.")
    facility_id = str(raw_id).strip()

    lat = _coerce_float(_first(row, LAT_KEYS))
    lng = _coerce_float(_first(row, LNG_KEYS))
    if lat is None or lng is None:
        raise DataError(f"Facility '{facility_id}' is missing coordinates.")
    if not (-90.0 <= lat <= 90.0) or not (-180.0 <= lng <= 180.0):
        raise DataError(f"Facility '{facility_id}' has out-of-range coordinates ({lat}, {lng}).")

    name = _first(row, NAME_KEYS)
    address = _first(row, ADDRESS_KEYS)
    return Facility(
        id=facility_id,
        name=str(name).strip() if name is not None else facility_id,
        address=str(address).strip() if address is not None else "",
        latitude=lat,
        longitude=lng,
        category=parse_category(_first(row, CATEGORY_KEYS)),
    )


def build_facilities(rows: Iterable[Mapping[str, Any]]) -> tuple[Facility, ...]:
    """Parse records in order, skipping malformed rows and duplicate ids."""

    facilities: list[Facility] = []
    seen: set[str] = set()
    for index, row in enumerate(rows):
        try:
            facility = parse_facility(row)
        except DataError as exc:
            logger.warning(f"Skipping facility record #{index}: {exc.message}")
            continue
        if facility.id in seen:
            logger.warning(f"Skipping facility record #{index}: duplicate id '{facility.id}'")
            continue
        seen.add(facility.id)
        facilities.append(facility)
    return tuple(facilities)


def _iter_csv_rows(path: Path) -> Iterator[dict]:
    with path.open(mode="r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise ValueError(f"Facility file '{path}' is missing a header row.")
        yield from reader


def _iter_json_rows(path: Path) -> Iterator[dict]:
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if isinstance(data, dict):
        data = data.get("data", [])
    if not isinstance(data, list):
        raise ValueError(f"Facility file '{path}' must contain a list of records.")
    for item in data:
        if isinstance(item, dict):
            yield item
        else:
            logger.warning(f"Skipping non-object facility entry in '{path}': {item!r}")


def _iter_xlsx_rows(path: Path) -> Iterator[dict]:
    wb = load_workbook(path, data_only=True, read_only=True)
    try:
        sheet = wb.active
        rows = sheet.iter_rows(min_row=1, values_only=True)
        header = next(rows, None)
        if header is None:
            raise ValueError(f"Facility workbook '{path}' is empty.")
        names = [str(cell).strip() if cell is not None else "" for cell in header]
        for row in rows:
            yield dict(zip(names, row))
    finally:
        wb.close()


def load_facilities(source: Optional[Path] = None) -> tuple[Facility, ...]:
    """Load facilities from a .csv, .json or .xlsx file, preserving file order."""

    path = source or settings.facility_file
    if not path.exists():
        raise FileNotFoundError(f"Facility file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        rows = _iter_csv_rows(path)
    elif suffix == ".json":
        rows = _iter_json_rows(path)
    elif suffix == ".xlsx":
        rows = _iter_xlsx_rows(path)
    else:
        raise ValueError(f"Unsupported facility file type '{suffix}'. Use .csv, .json or .xlsx.")

    facilities = build_facilities(rows)
    logger.info(f"Loaded {len(facilities)} facilities from {path.name}")
    return facilities


class FacilityCatalog:
    """Read-only, ordered facility collection with id lookup."""

    def __init__(self, facilities: Iterable[Facility]) -> None:
        self._facilities = tuple(facilities)
        self._by_id = {facility.id: facility for facility in self._facilities}

    def __iter__(self) -> Iterator[Facility]:
        return iter(self._facilities)

    def __len__(self) -> int:
        return len(self._facilities)

    def __contains__(self, facility_id: object) -> bool:
        return facility_id in self._by_id

    def get(self, facility_id: str) -> Facility | None:
        return self._by_id.get(facility_id)

    @property
    def facilities(self) -> tuple[Facility, ...]:
        return self._facilities


@functools.lru_cache(maxsize=1)
def get_catalog(source: Optional[Path] = None) -> FacilityCatalog:
    """Return the cached catalog for the configured dataset."""

    return FacilityCatalog(load_facilities(source))
