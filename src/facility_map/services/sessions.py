"""In-memory map sessions, one route planner per connected client."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from ..config import settings
from ..data.facility_repository import FacilityCatalog, get_catalog
from .routing.adapter import RoutingEngine, RoutingEngineAdapter
from .routing.coordinator import RoutePlanningCoordinator
from .routing.errors import SelectionError, SelectionErrorKind
from .routing.osrm_client import OSRMClient

logger = logging.getLogger(__name__)


class SessionNotFound(KeyError):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MapSession:
    session_id: str
    coordinator: RoutePlanningCoordinator
    search_selection: Optional[str] = None
    last_seen: datetime = field(default_factory=_now)

    def select_search_result(self, facility_id: str) -> None:
        if facility_id not in self.coordinator.catalog:
            raise SelectionError(SelectionErrorKind.INVALID_ENDPOINT, f"Unknown facility '{facility_id}'.")
        self.search_selection = facility_id

    def reset_search(self) -> None:
        self.search_selection = None


class SessionRegistry:
    def __init__(
        self,
        catalog_factory: Callable[[], FacilityCatalog] = get_catalog,
        engine_factory: Callable[[], RoutingEngine] = OSRMClient,
        ttl: timedelta | None = None,
    ) -> None:
        self._catalog_factory = catalog_factory
        self._engine_factory = engine_factory
        self._ttl = ttl or timedelta(minutes=settings.session_ttl_minutes)
        self._sessions: Dict[str, MapSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> MapSession:
        self.evict_expired()
        session_id = uuid.uuid4().hex
        coordinator = RoutePlanningCoordinator(
            catalog=self._catalog_factory(),
            adapter=RoutingEngineAdapter(self._engine_factory()),
        )
        session = MapSession(session_id=session_id, coordinator=coordinator)
        self._sessions[session_id] = session
        logger.info(f"Created map session {session_id}")
        return session

    def get(self, session_id: str) -> MapSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        session.last_seen = _now()
        return session

    def remove(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound(session_id)
        session.coordinator.clear_route()
        logger.info(f"Closed map session {session_id}")

    def evict_expired(self) -> int:
        cutoff = _now() - self._ttl
        expired = [sid for sid, session in self._sessions.items() if session.last_seen < cutoff]
        for session_id in expired:
            self._sessions.pop(session_id).coordinator.clear_route()
        if expired:
            logger.info(f"Evicted {len(expired)} idle map session(s)")
        return len(expired)


_registry: SessionRegistry | None = None


def get_session_registry() -> SessionRegistry:
    """FastAPI dependency returning the process-wide registry."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry()
    return _registry
