import numpy as np
import pytest

from route_planner.models.domain import LocationGroup, Stop
from route_planner.services.routing.construction import approximate_heuristic, greedy_edge, nearest_neighbor
from route_planner.services.routing.matrix import haversine_matrix
from route_planner.services.routing.models import RoutingContext
from route_planner.services.routing.strategies import (
    ClusterStrategy,
    ExactStrategy,
    HybridStrategy,
    TrivialStrategy,
    get_strategy,
    select_strategy,
    select_tier,
)


def _context(count: int, seed: int = 7) -> RoutingContext:
    rng = np.random.default_rng(seed)
    points = [(float(lat), float(lon)) for lat, lon in rng.uniform(0, 0.3, size=(count, 2))]
    groups = []
    for i, (lat, lon) in enumerate(points):
        stop = Stop(id=f"T{i}", address=f"{i} Tier Lane", latitude=lat, longitude=lon)
        groups.append(LocationGroup(key=stop.id, members=(stop,), representative=stop))
    return RoutingContext.build(groups, haversine_matrix(points))


@pytest.mark.parametrize(
    "group_count, tier",
    [
        (0, "trivial"),
        (2, "trivial"),
        (3, "exact"),
        (25, "exact"),
        (26, "hybrid"),
        (100, "hybrid"),
        (101, "cluster"),
        (5000, "cluster"),
    ],
)
def test_select_tier_boundaries(group_count, tier):
    assert select_tier(group_count) == tier


def test_select_tier_honours_overrides():
    assert select_tier(10, exact_max=5, hybrid_max=8) == "cluster"
    assert select_tier(6, exact_max=5, hybrid_max=8) == "hybrid"


def test_get_strategy_dispatch():
    assert isinstance(get_strategy("trivial"), TrivialStrategy)
    assert isinstance(get_strategy("exact"), ExactStrategy)
    assert isinstance(get_strategy("hybrid"), HybridStrategy)
    assert isinstance(get_strategy("cluster"), ClusterStrategy)
    assert isinstance(select_strategy(40), HybridStrategy)


def test_get_strategy_rejects_unknown_tier():
    with pytest.raises(ValueError):
        get_strategy("genetic")  # type: ignore[arg-type]


def test_exact_strategy_keeps_shortest_heuristic():
    context = _context(18)

    route = ExactStrategy().build(context, start=(0.0, 0.0))

    distance = context.route_distance(route)
    for heuristic in (nearest_neighbor, greedy_edge, approximate_heuristic):
        assert distance <= context.route_distance(heuristic(context, (0.0, 0.0))) + 1e-9
    assert sorted(route) == list(range(18))


def test_exact_strategy_prefers_first_heuristic_on_ties():
    class Fixed(ExactStrategy):
        heuristics = (
            ("first", lambda context, start: [0, 1, 2]),
            ("second", lambda context, start: [0, 1, 2]),
            ("third", lambda context, start: [2, 1, 0]),
        )

    context = _context(3)

    assert Fixed().build(context) == [0, 1, 2]


@pytest.mark.parametrize("strategy, count", [(HybridStrategy(), 60), (ClusterStrategy(target_size=30), 130)])
def test_larger_tiers_return_permutations(strategy, count):
    context = _context(count)

    route = strategy.build(context, start=(0.15, 0.15))

    assert sorted(route) == list(range(count))


def test_trivial_strategy_is_identity():
    assert TrivialStrategy().build(_context(2)) == [0, 1]


def test_zero_tier_thresholds_are_honoured():
    assert select_tier(3, exact_max=0, hybrid_max=0) == "cluster"
    assert select_tier(3, exact_max=0, hybrid_max=10) == "hybrid"


def test_cluster_strategy_rejects_non_positive_target_size():
    with pytest.raises(ValueError):
        ClusterStrategy(target_size=0)
