import random

import numpy as np
import pytest

from route_planner.models.domain import LocationGroup, Stop
from route_planner.services.routing.local_search import improve_route, or_opt, two_opt
from route_planner.services.routing.matrix import DistanceMatrix, haversine_matrix
from route_planner.services.routing.models import RoutingContext


def _line_context(count: int) -> RoutingContext:
    points = [(0.0, float(i)) for i in range(count)]
    groups = []
    for i, (lat, lon) in enumerate(points):
        stop = Stop(id=f"L{i}", address=f"{i} Line Road", latitude=lat, longitude=lon)
        groups.append(LocationGroup(key=stop.id, members=(stop,), representative=stop))
    return RoutingContext.build(groups, haversine_matrix(points))


def _random_context(count: int, seed: int, symmetric: bool) -> RoutingContext:
    rng = np.random.default_rng(seed)
    values = rng.uniform(1.0, 100.0, size=(count, count))
    if symmetric:
        values = (values + values.T) / 2
    groups = []
    for i in range(count):
        stop = Stop(id=f"R{i}", address=f"{i} Random Way", latitude=0.0, longitude=0.0)
        groups.append(LocationGroup(key=stop.id, members=(stop,), representative=stop))
    return RoutingContext.build(groups, DistanceMatrix(values=values))


def test_two_opt_uncrosses_reversed_segment():
    context = _line_context(5)

    assert two_opt(context, [0, 3, 2, 1, 4]) == [0, 1, 2, 3, 4]


def test_two_opt_keeps_endpoints_fixed():
    context = _line_context(8)
    route = [7, 2, 5, 0, 3, 6, 1, 4]

    improved = two_opt(context, route)

    assert improved[0] == 7
    assert improved[-1] == 4
    assert sorted(improved) == list(range(8))


def test_two_opt_leaves_input_untouched():
    context = _line_context(5)
    route = [0, 3, 2, 1, 4]

    two_opt(context, route)

    assert route == [0, 3, 2, 1, 4]


def test_or_opt_relocates_single_stop():
    context = _line_context(5)

    assert or_opt(context, [0, 1, 4, 2, 3]) == [0, 1, 2, 3, 4]


@pytest.mark.parametrize("route", [[], [0], [0, 1], [2, 0, 1]])
def test_short_routes_are_unchanged(route):
    context = _line_context(3)

    assert two_opt(context, route) == route
    assert or_opt(context, route) == route


def test_collinear_chain_is_not_changed():
    context = _line_context(6)
    route = list(range(6))

    assert improve_route(context, route) == route


@pytest.mark.parametrize("symmetric", [True, False])
@pytest.mark.parametrize("seed", [1, 2, 3, 4])
def test_local_search_is_monotonic(seed, symmetric):
    count = 12
    context = _random_context(count, seed, symmetric)
    shuffler = random.Random(seed)

    for length in range(4, count + 1):
        route = shuffler.sample(range(count), length)
        before = context.route_distance(route)

        after_two_opt = two_opt(context, route)
        after_or_opt = or_opt(context, route)
        after_both = improve_route(context, route)

        for improved in (after_two_opt, after_or_opt, after_both):
            assert sorted(improved) == sorted(route)
            assert context.route_distance(improved) <= before + 1e-9


def test_local_search_is_deterministic():
    context = _random_context(15, seed=9, symmetric=False)
    route = list(range(15))

    assert improve_route(context, route) == improve_route(context, route)


def test_pass_caps_bound_the_work():
    context = _random_context(20, seed=3, symmetric=True)
    route = list(range(20))

    one_pass = two_opt(context, route, max_passes=1)
    one_sweep = or_opt(context, route, max_sweeps=1)

    assert context.route_distance(one_pass) <= context.route_distance(route)
    # a single sweep applies at most one relocation
    assert one_sweep == route or any(
        [node for node in one_sweep if node != moved] == [node for node in route if node != moved]
        for moved in route
    )


def test_zero_caps_leave_the_route_alone():
    context = _line_context(6)
    route = [0, 3, 2, 1, 5, 4]

    assert two_opt(context, route, max_passes=0) == route
    assert or_opt(context, route, max_sweeps=0) == route
    assert improve_route(context, route, max_rounds=0) == route
