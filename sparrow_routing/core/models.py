"""
Sparrow Routing - Core Data Models

Provider-neutral data models shared by every routing provider.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

from .errors import InvalidCoordinateError


# ============================================================
# Enums
# ============================================================

class ProviderSlot(str, Enum):
    """Default provider slots, in fixed preference order."""
    PRIMARY = "primary"
    SECONDARY = "secondary"
    TERTIARY = "tertiary"


class RouteType(str, Enum):
    """Routing optimization preferences."""
    FAST = "fast"
    SHORT = "short"
    BALANCED = "balanced"
    ECONOMIC = "economic"


# Static preference ranks (higher is preferred)
DEFAULT_PREFERENCE_RANKS: Dict[str, int] = {
    ProviderSlot.PRIMARY.value: 3,
    ProviderSlot.SECONDARY.value: 2,
    ProviderSlot.TERTIARY.value: 1,
}


# ============================================================
# Coordinates and Requests
# ============================================================

@dataclass(frozen=True)
class Coordinate:
    """A WGS84 point. Equality is exact float equality."""
    latitude: float
    longitude: float

    def __post_init__(self):
        try:
            lat = float(self.latitude)
            lon = float(self.longitude)
        except (TypeError, ValueError):
            raise InvalidCoordinateError(self.latitude, self.longitude)

        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise InvalidCoordinateError(lat, lon)
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            raise InvalidCoordinateError(lat, lon)

        object.__setattr__(self, "latitude", lat)
        object.__setattr__(self, "longitude", lon)

    def as_param(self) -> str:
        """Render as a "lat,lon" query value."""
        return f"{self.latitude!r},{self.longitude!r}"


@dataclass(frozen=True)
class RouteRequest:
    """Origin, destination and ordered intermediate stops."""
    origin: Coordinate
    destination: Coordinate
    waypoints: Tuple[Coordinate, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "waypoints", tuple(self.waypoints))


@dataclass(frozen=True)
class StructuredRouteRequest(RouteRequest):
    """
    Route request with routing preferences.

    Only providers that advertise ``supports_structured_requests`` honour the
    preferences; others receive the plain origin/destination/waypoints.
    """
    route_types: Tuple[RouteType, ...] = (RouteType.FAST,)
    transport_mode: str = "car"
    departure_time: Optional[str] = None  # ISO 8601, scheduled deliveries
    avoid_tolls: bool = False

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(
            self, "route_types", tuple(RouteType(t) for t in self.route_types)
        )

    def to_query_params(self) -> Dict[str, str]:
        """Render the request as provider query parameters."""
        params: Dict[str, str] = {
            "origin": self.origin.as_param(),
            "destination": self.destination.as_param(),
        }

        if self.waypoints:
            params["via"] = "|".join(w.as_param() for w in self.waypoints)

        params["transportMode"] = self.transport_mode
        params["return"] = "polyline,summary,typicalDuration,instructions"

        if len(self.route_types) > 1:
            params["alternatives"] = str(len(self.route_types) - 1)

        if self.departure_time:
            params["departureTime"] = self.departure_time

        if self.avoid_tolls:
            params["avoid"] = "tollRoad"

        return params


# ============================================================
# Routes
# ============================================================

@dataclass(frozen=True)
class Route:
    """
    A candidate route returned by a provider.

    ``polyline`` and ``metadata`` are passed through untouched.
    """
    provider: str
    duration_seconds: int
    distance_meters: int
    traffic_delay_seconds: Optional[int] = None
    polyline: Optional[str] = None
    route_id: str = ""
    route_type: RouteType = RouteType.FAST
    summary: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def effective_duration_seconds(self) -> int:
        """Duration plus known live-traffic delay."""
        return self.duration_seconds + (self.traffic_delay_seconds or 0)

    @property
    def has_traffic(self) -> bool:
        return self.traffic_delay_seconds is not None and self.traffic_delay_seconds > 0

    @property
    def distance_text(self) -> str:
        if self.distance_meters < 1000:
            return f"{self.distance_meters}m"
        if self.distance_meters < 10000:
            return f"{self.distance_meters / 1000:.1f}km"
        return f"{self.distance_meters // 1000}km"

    @property
    def duration_text(self) -> str:
        minutes = (self.duration_seconds + 30) // 60  # nearest minute
        if minutes < 60:
            return f"{minutes}min"
        hours, remaining = divmod(minutes, 60)
        if remaining == 0:
            return f"{hours}h"
        return f"{hours}h {remaining}min"

    @property
    def traffic_delay_text(self) -> Optional[str]:
        if self.traffic_delay_seconds is None:
            return None
        delay_minutes = (self.traffic_delay_seconds + 30) // 60
        if delay_minutes > 0:
            return f"+{delay_minutes}min traffic"
        return None


def as_waypoints(waypoints: Optional[Sequence[Coordinate]]) -> Tuple[Coordinate, ...]:
    """Normalize an optional waypoint sequence to a tuple."""
    if not waypoints:
        return ()
    return tuple(waypoints)
