"""Tour construction heuristics over a routing context."""

from __future__ import annotations

from .local_search import two_opt
from .models import Route, RoutingContext

Coordinate = tuple[float, float]


def _start_position(context: RoutingContext, start: Coordinate | None) -> int:
    if start is None:
        return 0
    return context.nearest_position(start)


def _grow_path(context: RoutingContext, root: int) -> Route:
    """Greedily extend from ``root`` to the cheapest unvisited group.

    Candidates are scanned in position order and only a strictly cheaper
    cost replaces the current best, so ties go to the earliest position.
    """
    unvisited = [position for position in range(len(context)) if position != root]
    route: Route = [root]
    current = root
    while unvisited:
        best_index = 0
        best_cost = context.cost(current, unvisited[0])
        for index in range(1, len(unvisited)):
            cost = context.cost(current, unvisited[index])
            if cost < best_cost:
                best_cost = cost
                best_index = index
        current = unvisited.pop(best_index)
        route.append(current)
    return route


def nearest_neighbor(context: RoutingContext, start: Coordinate | None = None) -> Route:
    if len(context) == 0:
        return []
    return _grow_path(context, _start_position(context, start))


def greedy_edge(context: RoutingContext, start: Coordinate | None = None) -> Route:
    if len(context) <= 3:
        return nearest_neighbor(context, start)
    return _grow_path(context, _start_position(context, start))


def approximate_heuristic(
    context: RoutingContext,
    start: Coordinate | None = None,
    *,
    two_opt_passes: int | None = None,
) -> Route:
    """Nearest neighbour plus one 2-opt improvement call.

    Loosely modelled on Christofides but without the spanning tree and
    matching steps.
    """
    if len(context) <= 5:
        return greedy_edge(context, start)
    route = nearest_neighbor(context, start)
    return two_opt(context, route, max_passes=two_opt_passes)
