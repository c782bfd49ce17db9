"""Routing orchestration service."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Sequence

from ...models.domain import OptimizationResult, RouteMetrics, Stop
from ..geospatial import is_valid_coordinate
from .grouping import expand_route, group_stops
from .local_search import improve_route
from .maps_client import DistanceProvider, Geocoder, GeocodingError, get_maps_client
from .matrix import build_distance_matrix
from .metrics import calculate_metrics
from .models import RoutingContext
from .strategies import select_strategy

logger = logging.getLogger(__name__)


class InvalidStopError(ValueError):
    """The caller passed stops that break the optimiser's input contract."""


def _validate_stops(stops: Sequence[Stop]) -> None:
    seen: dict[str, Stop] = {}
    for stop in stops:
        if not stop.address or not stop.address.strip():
            raise InvalidStopError(f"Stop '{stop.id}' has no address.")
        if (stop.latitude is None) != (stop.longitude is None):
            raise InvalidStopError(f"Stop '{stop.id}' must set both latitude and longitude or neither.")
        if stop.has_coordinates and not is_valid_coordinate(stop.latitude, stop.longitude):
            raise InvalidStopError(
                f"Stop '{stop.id}' has invalid coordinates ({stop.latitude}, {stop.longitude})."
            )
        existing = seen.get(stop.id)
        if existing is not None and existing is not stop and existing != stop:
            raise InvalidStopError(f"Stop id '{stop.id}' is used by two different stops.")
        seen[stop.id] = stop


def _resolve_coordinates(stops: Sequence[Stop], geocoder: Geocoder | None) -> tuple[list[Stop], list[Stop]]:
    """Split stops into optimisable (with coordinates) and excluded ones.

    Stops missing coordinates are geocoded when a geocoder is available;
    geocoded stops are copies, the caller's objects are not modified.
    """
    optimizable: list[Stop] = []
    excluded: list[Stop] = []
    for stop in stops:
        if stop.has_coordinates:
            optimizable.append(stop)
            continue
        if geocoder is None:
            excluded.append(stop)
            continue
        try:
            latitude, longitude = geocoder.geocode(stop.address)
        except GeocodingError as e:
            logger.warning(f"Failed to geocode stop '{stop.id}': {e}")
            excluded.append(stop)
            continue
        if not is_valid_coordinate(latitude, longitude):
            logger.warning(f"Geocoder returned invalid coordinates for stop '{stop.id}'")
            excluded.append(stop)
            continue
        optimizable.append(replace(stop, latitude=latitude, longitude=longitude))
    return optimizable, excluded


def optimize(
    stops: Sequence[Stop],
    start: tuple[float, float] | None = None,
    *,
    provider: DistanceProvider | None = None,
    geocoder: Geocoder | None = None,
) -> OptimizationResult:
    """Order ``stops`` to keep the driven distance short.

    ``provider`` and ``geocoder`` default to the configured Google Maps
    client; without one, distances are great-circle and stops lacking
    coordinates are excluded. Exclusions are reported on the result, never
    raised.
    """
    _validate_stops(stops)
    if start is not None and not is_valid_coordinate(*start):
        raise ValueError(f"Invalid start coordinate {start}.")

    if provider is None or geocoder is None:
        client = get_maps_client()
        provider = provider or client
        geocoder = geocoder or client

    optimizable, excluded = _resolve_coordinates(stops, geocoder)
    if excluded:
        logger.warning(f"Excluded {len(excluded)} of {len(stops)} stops without coordinates from optimisation")

    metadata: dict = {
        "input_count": len(stops),
        "optimized_count": len(optimizable),
        "excluded_count": len(excluded),
        "excluded_stop_ids": [stop.id for stop in excluded],
    }

    if len(optimizable) <= 2:
        metadata.update({"strategy": "trivial", "group_count": len(optimizable), "matrix_source": "haversine"})
        return OptimizationResult(
            ordered_stops=tuple(optimizable),
            metrics=calculate_metrics(optimizable),
            excluded_stops=tuple(excluded),
            metadata=metadata,
        )

    groups = group_stops(optimizable)
    logger.info(f"Grouped {len(optimizable)} stops into {len(groups)} unique locations")

    matrix = build_distance_matrix(groups, provider)
    context = RoutingContext.build(groups, matrix)

    strategy = select_strategy(len(context))
    logger.info(f"Using {strategy.tier} strategy for {len(context)} locations")
    route = strategy.build(context, start)
    route = improve_route(context, route)

    ordered_stops = expand_route(context.groups, route)
    metrics = calculate_metrics(ordered_stops, context)
    logger.info(
        f"Route optimisation complete: {len(ordered_stops)} stops, "
        f"{metrics.total_distance_km:.2f} km, {metrics.estimated_time_min:.0f} min"
    )

    metadata.update(
        {
            "strategy": strategy.tier,
            "group_count": len(groups),
            "matrix_source": matrix.source,
            "provider_fallback_cells": matrix.fallback_cells,
        }
    )
    return OptimizationResult(
        ordered_stops=tuple(ordered_stops),
        metrics=metrics,
        excluded_stops=tuple(excluded),
        metadata=metadata,
    )


def compute_metrics(stops: Sequence[Stop]) -> RouteMetrics:
    """Metrics for ``stops`` in the given order, using great-circle distances."""
    _validate_stops(stops)
    return calculate_metrics(stops)
