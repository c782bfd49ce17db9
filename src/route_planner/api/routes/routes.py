"""Routing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...schemas.routing import (
    MetricsModel,
    MetricsRequest,
    OptimizeRequest,
    OptimizeResponse,
    StopModel,
)
from ...services.routing import service as routing_service

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/optimize", response_model=OptimizeResponse, status_code=status.HTTP_200_OK)
def optimize(payload: OptimizeRequest) -> OptimizeResponse:
    stops = [stop.to_domain() for stop in payload.stops]
    start = (payload.start.latitude, payload.start.longitude) if payload.start else None
    try:
        result = routing_service.optimize(stops, start)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error optimizing route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize route: {str(exc)}",
        ) from exc

    return OptimizeResponse(
        ordered_stops=[StopModel.from_domain(stop) for stop in result.ordered_stops],
        total_distance_km=result.total_distance,
        estimated_time_min=result.estimated_time,
        excluded_stop_ids=[stop.id for stop in result.excluded_stops],
        metadata=dict(result.metadata),
    )


@router.post("/metrics", response_model=MetricsModel, status_code=status.HTTP_200_OK)
def metrics(payload: MetricsRequest) -> MetricsModel:
    """Distance and time for the stops in the order given."""
    try:
        result = routing_service.compute_metrics([stop.to_domain() for stop in payload.stops])
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return MetricsModel.from_domain(result)
