"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Sequence

from ...models.domain import LocationGroup
from ..geospatial import haversine_km
from .matrix import DistanceMatrix

Route = list[int]


@dataclass(slots=True, frozen=True, eq=False)
class RoutingContext:
    """Immutable per-call state threaded through every optimisation step.

    ``positions`` maps every stop id (members and group representatives) to
    the position of its group. Positions covered by ``matrix`` use matrix
    costs; any other lookup falls back to the haversine distance between the
    two groups.
    """

    groups: tuple[LocationGroup, ...]
    matrix: DistanceMatrix
    positions: Mapping[str, int]

    @classmethod
    def build(cls, groups: Sequence[LocationGroup], matrix: DistanceMatrix) -> "RoutingContext":
        if matrix.size > len(groups):
            raise ValueError(f"Matrix covers {matrix.size} locations but only {len(groups)} groups were given.")
        positions: dict[str, int] = {}
        for position, group in enumerate(groups):
            positions[group.id] = position
            for member in group.members:
                positions[member.id] = position
        return cls(groups=tuple(groups), matrix=matrix, positions=MappingProxyType(positions))

    def __len__(self) -> int:
        return len(self.groups)

    def cost(self, origin: int, destination: int) -> float:
        if origin == destination:
            return 0.0
        size = self.matrix.size
        if 0 <= origin < size and 0 <= destination < size:
            return self.matrix.cost(origin, destination)
        lat1, lon1 = self.groups[origin].coordinates
        lat2, lon2 = self.groups[destination].coordinates
        return haversine_km(lat1, lon1, lat2, lon2)

    def route_distance(self, route: Sequence[int]) -> float:
        return sum(self.cost(route[k], route[k + 1]) for k in range(len(route) - 1))

    def nearest_position(self, coordinate: tuple[float, float]) -> int:
        """Position of the group closest to ``coordinate``; ties go to the earliest."""
        lat, lon = coordinate
        best_position = 0
        best_distance = float("inf")
        for position, group in enumerate(self.groups):
            distance = haversine_km(lat, lon, group.latitude, group.longitude)
            if distance < best_distance:
                best_distance = distance
                best_position = position
        return best_position

    def subcontext(self, positions: Sequence[int]) -> "RoutingContext":
        """Context restricted to ``positions``, re-indexed from zero."""
        return RoutingContext.build(
            [self.groups[position] for position in positions],
            self.matrix.submatrix(positions),
        )


@dataclass(slots=True, frozen=True)
class Cluster:
    members: tuple[int, ...]
    centroid: tuple[float, float]
