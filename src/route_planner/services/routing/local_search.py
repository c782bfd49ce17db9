"""2-opt and Or-opt route improvement.

Both improvers take a route of group positions and return a new list; the
input is left untouched. A move is only applied when it shortens the route
by more than ``IMPROVEMENT_TOLERANCE_KM``, so neither pass can increase the
total distance and floating point noise cannot make them cycle.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ...config import settings
from .models import Route, RoutingContext

IMPROVEMENT_TOLERANCE_KM = 1e-9

logger = logging.getLogger(__name__)


def _reversal_delta(context: RoutingContext, route: Sequence[int], i: int, j: int) -> float:
    cost = context.cost
    delta = (
        cost(route[i - 1], route[j])
        + cost(route[i], route[j + 1])
        - cost(route[i - 1], route[i])
        - cost(route[j], route[j + 1])
    )
    if not context.matrix.symmetric:
        # reversed segment is travelled in the opposite direction
        for k in range(i, j):
            delta += cost(route[k + 1], route[k]) - cost(route[k], route[k + 1])
    return delta


def two_opt(context: RoutingContext, route: Sequence[int], *, max_passes: int | None = None) -> Route:
    """First-improvement 2-opt with fixed endpoints.

    Segments ``[i..j]`` with ``1 <= i``, ``j <= len - 2`` and ``j - i >= 2``
    are reversed as soon as that helps; scanning continues from the same
    position. Stops after a pass without moves or ``min(max_passes, len)``
    passes.
    """
    improved = list(route)
    length = len(improved)
    if length < 4:
        return improved

    if max_passes is None:
        max_passes = settings.two_opt_max_passes
    max_passes = min(max_passes, length)
    passes = 0
    moves = 0
    improvement_found = True
    while improvement_found and passes < max_passes:
        improvement_found = False
        passes += 1
        for i in range(1, length - 3):
            for j in range(i + 2, length - 1):
                if _reversal_delta(context, improved, i, j) < -IMPROVEMENT_TOLERANCE_KM:
                    improved[i : j + 1] = improved[i : j + 1][::-1]
                    improvement_found = True
                    moves += 1

    logger.debug(f"2-opt improvement: {passes} passes, {moves} moves")
    return improved


def _insertion_cost(context: RoutingContext, route: Sequence[int], position: int, node: int) -> float:
    if position == 0:
        return context.cost(node, route[0])
    if position == len(route):
        return context.cost(route[-1], node)
    before, after = route[position - 1], route[position]
    return context.cost(before, node) + context.cost(node, after) - context.cost(before, after)


def or_opt(context: RoutingContext, route: Sequence[int], *, max_sweeps: int | None = None) -> Route:
    """Relocate single interior elements to the first position that shortens the route.

    Each accepted move restarts the sweep; at most ``max_sweeps`` sweeps run.
    """
    improved = list(route)
    length = len(improved)
    if length < 4:
        return improved

    if max_sweeps is None:
        max_sweeps = settings.or_opt_max_sweeps
    sweeps = 0
    improvement_found = True
    while improvement_found and sweeps < max_sweeps:
        improvement_found = False
        sweeps += 1
        for i in range(1, length - 1):
            node = improved[i]
            previous, following = improved[i - 1], improved[i + 1]
            removal_gain = (
                context.cost(previous, node) + context.cost(node, following) - context.cost(previous, following)
            )
            remaining = improved[:i] + improved[i + 1 :]
            for position in range(len(remaining) + 1):
                if position == i:
                    continue
                if _insertion_cost(context, remaining, position, node) - removal_gain < -IMPROVEMENT_TOLERANCE_KM:
                    remaining.insert(position, node)
                    improved = remaining
                    improvement_found = True
                    break
            if improvement_found:
                break

    logger.debug(f"Or-opt improvement: {sweeps} sweeps")
    return improved


def improve_route(
    context: RoutingContext,
    route: Sequence[int],
    *,
    max_rounds: int | None = None,
    two_opt_passes: int | None = None,
    or_opt_sweeps: int | None = None,
) -> Route:
    """Alternate 2-opt and Or-opt until a round no longer shortens the route."""
    improved = list(route)
    if max_rounds is None:
        max_rounds = settings.local_search_max_rounds
    rounds = 0
    while rounds < max_rounds:
        before = context.route_distance(improved)
        improved = two_opt(context, improved, max_passes=two_opt_passes)
        improved = or_opt(context, improved, max_sweeps=or_opt_sweeps)
        rounds += 1
        if context.route_distance(improved) >= before - IMPROVEMENT_TOLERANCE_KM:
            break

    logger.info(f"Local search complete after {rounds} rounds")
    return improved
