"""Size-tiered construction strategies and their selector."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Literal

from ...config import settings
from .clustering import cluster_route
from .construction import Coordinate, approximate_heuristic, greedy_edge, nearest_neighbor
from .local_search import or_opt, two_opt
from .models import Route, RoutingContext

logger = logging.getLogger(__name__)

Tier = Literal["trivial", "exact", "hybrid", "cluster"]


class RoutingStrategy(ABC):
    """Contract for producing an initial route from a routing context."""

    tier: Tier

    @abstractmethod
    def build(self, context: RoutingContext, start: Coordinate | None = None) -> Route:
        raise NotImplementedError


class TrivialStrategy(RoutingStrategy):
    tier: Tier = "trivial"

    def build(self, context: RoutingContext, start: Coordinate | None = None) -> Route:
        return list(range(len(context)))


class ExactStrategy(RoutingStrategy):
    """Run every construction heuristic and keep the shortest route.

    The heuristics only read the context, so they run side by side on a
    thread pool. Results are compared in submission order and a later route
    must be strictly shorter to win.
    """

    tier: Tier = "exact"

    heuristics: tuple[tuple[str, Callable[..., Route]], ...] = (
        ("nearest_neighbor", nearest_neighbor),
        ("greedy_edge", greedy_edge),
        ("approximate_heuristic", approximate_heuristic),
    )

    def build(self, context: RoutingContext, start: Coordinate | None = None) -> Route:
        with ThreadPoolExecutor(max_workers=len(self.heuristics)) as executor:
            futures = [(name, executor.submit(heuristic, context, start)) for name, heuristic in self.heuristics]
            candidates = [(name, future.result()) for name, future in futures]

        best_name, best_route = candidates[0]
        best_distance = context.route_distance(best_route)
        for name, route in candidates[1:]:
            distance = context.route_distance(route)
            if distance < best_distance:
                best_name, best_route, best_distance = name, route, distance
        logger.info(f"Best construction heuristic: {best_name} ({best_distance:.3f} km)")
        return best_route


class HybridStrategy(RoutingStrategy):
    tier: Tier = "hybrid"

    def build(self, context: RoutingContext, start: Coordinate | None = None) -> Route:
        route = nearest_neighbor(context, start)
        route = two_opt(context, route)
        return or_opt(context, route)


class ClusterStrategy(RoutingStrategy):
    tier: Tier = "cluster"

    def __init__(self, target_size: int | None = None) -> None:
        if target_size is None:
            target_size = settings.cluster_target_size
        if target_size < 1:
            raise ValueError(f"Cluster target size must be positive, got {target_size}.")
        self.target_size = target_size

    def build(self, context: RoutingContext, start: Coordinate | None = None) -> Route:
        return cluster_route(context, start, self.target_size)


def select_tier(
    group_count: int,
    *,
    exact_max: int | None = None,
    hybrid_max: int | None = None,
) -> Tier:
    if exact_max is None:
        exact_max = settings.exact_tier_max_groups
    if hybrid_max is None:
        hybrid_max = settings.hybrid_tier_max_groups
    if group_count <= 2:
        return "trivial"
    if group_count <= exact_max:
        return "exact"
    if group_count <= hybrid_max:
        return "hybrid"
    return "cluster"


def get_strategy(tier: Tier) -> RoutingStrategy:
    match tier:
        case "trivial":
            return TrivialStrategy()
        case "exact":
            return ExactStrategy()
        case "hybrid":
            return HybridStrategy()
        case "cluster":
            return ClusterStrategy()
        case _:
            raise ValueError(f"Unknown routing tier '{tier}'.")


def select_strategy(group_count: int) -> RoutingStrategy:
    return get_strategy(select_tier(group_count))
