"""Geographic clustering used to decompose large routing instances."""

from __future__ import annotations

import logging
import math

import numpy as np

from ...models.domain import LocationGroup, Stop
from ..geospatial import centroid, haversine_km
from .construction import Coordinate, nearest_neighbor
from .matrix import DistanceMatrix
from .models import Cluster, Route, RoutingContext

logger = logging.getLogger(__name__)


def build_clusters(context: RoutingContext, target_size: int) -> list[Cluster]:
    """Partition group positions by proximity to deterministically sampled seeds.

    ``k = ceil(n / target_size)`` seeds are taken at positions
    ``floor(i * n / k)``; every group joins its nearest seed in a single
    pass (ties to the lower seed) and empty clusters are dropped. Centres
    are not recomputed, so clusters can be unbalanced.
    """
    n = len(context)
    if n == 0:
        return []
    k = math.ceil(n / target_size)
    seeds = [context.groups[(i * n) // k].coordinates for i in range(k)]

    buckets: list[list[int]] = [[] for _ in range(k)]
    for position, group in enumerate(context.groups):
        nearest_seed = 0
        min_distance = float("inf")
        for seed_index, (seed_lat, seed_lon) in enumerate(seeds):
            distance = haversine_km(group.latitude, group.longitude, seed_lat, seed_lon)
            if distance < min_distance:
                min_distance = distance
                nearest_seed = seed_index
        buckets[nearest_seed].append(position)

    clusters = [
        Cluster(
            members=tuple(members),
            centroid=centroid(context.groups[position].coordinates for position in members),
        )
        for members in buckets
        if members
    ]
    logger.info(f"Created {len(clusters)} geographic clusters from {k} seeds")
    return clusters


def _centroid_context(clusters: list[Cluster]) -> RoutingContext:
    """Context over synthetic centroid points.

    The matrix is empty, so every lookup falls back to the haversine
    distance between centroids.
    """
    groups = []
    for index, cluster in enumerate(clusters):
        lat, lon = cluster.centroid
        point = Stop(id=f"cluster-{index}", address="cluster-center", latitude=lat, longitude=lon)
        groups.append(LocationGroup(key=point.id, members=(point,), representative=point))
    return RoutingContext.build(groups, DistanceMatrix(values=np.zeros((0, 0))))


def cluster_route(context: RoutingContext, start: Coordinate | None, target_size: int) -> Route:
    """Order each cluster internally, order the clusters, and concatenate."""
    clusters = build_clusters(context, target_size)

    ordered_clusters: list[Route] = []
    for cluster in clusters:
        local_route = nearest_neighbor(context.subcontext(cluster.members))
        ordered_clusters.append([cluster.members[local] for local in local_route])

    if len(clusters) <= 1:
        visit_order = list(range(len(clusters)))
    else:
        visit_order = nearest_neighbor(_centroid_context(clusters), start)

    route: Route = []
    for cluster_index in visit_order:
        route.extend(ordered_clusters[cluster_index])
    return route
