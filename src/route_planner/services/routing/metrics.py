"""Route distance and time estimates."""

from __future__ import annotations

from typing import Sequence

from ...config import settings
from ...models.domain import RouteMetrics, Stop
from ..geospatial import haversine_km
from .models import RoutingContext


def _edge_distance(origin: Stop, destination: Stop, context: RoutingContext | None) -> float | None:
    if context is not None:
        from_position = context.positions.get(origin.id)
        to_position = context.positions.get(destination.id)
        if from_position is not None and to_position is not None:
            return context.cost(from_position, to_position)
    if not (origin.has_coordinates and destination.has_coordinates):
        return None
    return haversine_km(origin.latitude, origin.longitude, destination.latitude, destination.longitude)


def calculate_metrics(
    stops: Sequence[Stop],
    context: RoutingContext | None = None,
    *,
    average_speed_kmh: float | None = None,
    service_time_minutes: float | None = None,
) -> RouteMetrics:
    """Total distance (km) and estimated time (minutes) along ``stops`` in order.

    Each leg adds its driving time at the average speed plus the service
    time at the arriving stop. Legs with an endpoint lacking coordinates
    are skipped.
    """
    if average_speed_kmh is None:
        average_speed_kmh = settings.average_speed_kmh
    if average_speed_kmh <= 0:
        raise ValueError(f"Average speed must be positive, got {average_speed_kmh} km/h.")
    if service_time_minutes is None:
        service_time_minutes = settings.service_time_minutes

    total_distance = 0.0
    estimated_time = 0.0
    for origin, destination in zip(stops, stops[1:]):
        distance = _edge_distance(origin, destination, context)
        if distance is None:
            continue
        total_distance += distance
        estimated_time += (distance / average_speed_kmh) * 60.0 + service_time_minutes

    return RouteMetrics(total_distance_km=total_distance, estimated_time_min=estimated_time)
