"""HTTP client for interacting with OSRM services."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

import httpx

from ...config import settings
from ...models.domain import LatLng
from .errors import RoutingError, RoutingErrorKind

logger = logging.getLogger(__name__)

# OSRM response codes that mean the request was understood but no path exists.
NO_ROUTE_CODES = {"NoRoute", "NoSegment"}
INVALID_INPUT_CODES = {"InvalidInput", "InvalidValue", "InvalidQuery"}
RETRYABLE_STATUS_CODES = {429, 502, 503, 504}


class OSRMClient:
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float = 10.0,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self.timeout = timeout
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            transport=self._transport,
        )

    @staticmethod
    def format_coordinates(coordinates: Sequence[LatLng]) -> str:
        """Convert (lat, lng) pairs to OSRM's 'lng,lat;lng,lat' form."""
        return ";".join(f"{lng},{lat}" for lat, lng in coordinates)

    async def route(self, coordinates: Sequence[LatLng]) -> dict:
        """Get route geometry and turn-by-turn steps between coordinates.

        Args:
            coordinates: Sequence of (lat, lng) tuples for the route waypoints

        Returns:
            The raw OSRM response with 'routes' containing distance, duration,
            polyline geometry and legs with steps.

        Raises:
            RoutingError: NoRouteFound when OSRM finds no path,
                InvalidCoordinates when OSRM rejects the input, and
                EngineUnavailable when the service cannot be reached.
        """
        if len(coordinates) < 2:
            raise RoutingError(RoutingErrorKind.INVALID_COORDINATES, "At least two coordinates are required for OSRM route.")

        url = f"{self.base_url}/route/v1/{self.profile}/{self.format_coordinates(coordinates)}"
        params = {
            "overview": "full",
            "geometries": "polyline",
            "steps": "true",
        }

        async with self._get_client() as client:
            attempt = 0
            while True:
                try:
                    response = await client.get(url, params=params)
                    return self._parse_response(response)
                except _RetryableResponse as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise RoutingError(
                            RoutingErrorKind.ENGINE_UNAVAILABLE,
                            f"OSRM returned HTTP {exc.status_code} after {self.max_retries} retries.",
                        ) from None
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM route HTTP {exc.status_code}, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    await asyncio.sleep(wait_time)
                except httpx.TransportError as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OSRM route request failed after {self.max_retries} retries: {e}")
                        raise RoutingError(
                            RoutingErrorKind.ENGINE_UNAVAILABLE,
                            f"Failed to reach OSRM service at {self.base_url}.",
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    await asyncio.sleep(wait_time)
                except httpx.HTTPError as e:
                    raise RoutingError(RoutingErrorKind.ENGINE_UNAVAILABLE, f"OSRM request failed: {e}") from e

    @staticmethod
    def _parse_response(response: httpx.Response) -> dict:
        if response.status_code in RETRYABLE_STATUS_CODES:
            raise _RetryableResponse(response.status_code)
        try:
            data = response.json()
        except ValueError as exc:
            raise RoutingError(
                RoutingErrorKind.ENGINE_UNAVAILABLE,
                f"OSRM returned a non-JSON response (HTTP {response.status_code}).",
            ) from exc

        code = data.get("code") if isinstance(data, dict) else None
        message = data.get("message", "Unknown OSRM route error") if isinstance(data, dict) else "Unknown OSRM route error"
        if code in NO_ROUTE_CODES:
            raise RoutingError(RoutingErrorKind.NO_ROUTE_FOUND)
        if code in INVALID_INPUT_CODES:
            raise RoutingError(RoutingErrorKind.INVALID_COORDINATES, f"OSRM rejected the coordinates: {message}")
        if code != "Ok" or response.status_code >= 400:
            raise RoutingError(RoutingErrorKind.ENGINE_UNAVAILABLE, f"OSRM route request failed: {message}")
        if not data.get("routes"):
            raise RoutingError(RoutingErrorKind.NO_ROUTE_FOUND)
        return data


class _RetryableResponse(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(status_code)
        self.status_code = status_code


def decode_polyline(polyline: str, precision: int = 5) -> list[LatLng]:
    """Decode Google polyline string to list of (lat, lng) coordinates.

    OSRM uses Google's polyline encoding format for route geometry.
    """
    coordinates: list[LatLng] = []
    index = 0
    lat = 0
    lng = 0
    factor = 10 ** precision

    while index < len(polyline):
        deltas = []
        for _ in range(2):
            shift = 0
            result = 0
            while True:
                b = ord(polyline[index]) - 63
                index += 1
                result |= (b & 0x1F) << shift
                shift += 5
                if b < 0x20:
                    break
            deltas.append(~(result >> 1) if (result & 1) else (result >> 1))
        lat += deltas[0]
        lng += deltas[1]
        coordinates.append((lat / factor, lng / factor))

    return coordinates


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM service health with a minimal two-point route request."""
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        lat, lng = settings.map_center
        test_coords = f"{lng},{lat};{lng + 0.01},{lat + 0.01}"
        url = f"{base.rstrip('/')}/route/v1/{settings.osrm_profile}/{test_coords}"
        response = httpx.get(url, params={"overview": "false"}, timeout=5.0)
        response.raise_for_status()
        return response.json().get("code") == "Ok"
    except httpx.HTTPError:
        return False
    except ValueError:
        return False
