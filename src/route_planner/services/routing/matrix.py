"""Distance matrix construction with provider batches and haversine fallback."""

from __future__ import annotations

import logging
import math
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Literal, Sequence

import numpy as np

from ...config import settings
from ...models.domain import LocationGroup
from ..geospatial import haversine_km
from .maps_client import DistanceProvider, DistanceProviderError

logger = logging.getLogger(__name__)

MatrixSource = Literal["provider", "haversine"]


@dataclass(slots=True, frozen=True, eq=False)
class DistanceMatrix:
    """Square table of travel costs in kilometres, indexed by group position.

    The underlying array is copied and marked read-only, so a matrix cannot
    change once built.
    """

    values: np.ndarray
    source: MatrixSource = "haversine"
    fallback_cells: int = 0
    symmetric: bool = field(init=False)
    rows: tuple[tuple[float, ...], ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=float)
        if values.ndim != 2 or values.shape[0] != values.shape[1]:
            raise ValueError(f"Distance matrix must be square, got shape {values.shape}.")
        if values.size and (not np.all(np.isfinite(values)) or np.any(values < 0)):
            raise ValueError("Distance matrix entries must be finite and non-negative.")
        if values.size:
            np.fill_diagonal(values, 0.0)
        values.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "symmetric", bool(np.array_equal(values, values.T)))
        object.__setattr__(self, "rows", tuple(tuple(row) for row in values.tolist()))

    @property
    def size(self) -> int:
        return self.values.shape[0]

    def __len__(self) -> int:
        return self.size

    def cost(self, origin: int, destination: int) -> float:
        return self.rows[origin][destination]

    def submatrix(self, positions: Sequence[int]) -> "DistanceMatrix":
        index = np.asarray(positions, dtype=int)
        return DistanceMatrix(
            values=self.values[np.ix_(index, index)],
            source=self.source,
        )

    def to_lists(self) -> list[list[float]]:
        return self.values.tolist()


def haversine_matrix(points: Sequence[tuple[float, float]]) -> DistanceMatrix:
    """Build a full great-circle matrix for (lat, lon) points."""
    n = len(points)
    values = np.zeros((n, n), dtype=float)
    for i in range(n):
        lat1, lon1 = points[i]
        for j in range(n):
            if i == j:
                continue
            lat2, lon2 = points[j]
            values[i, j] = haversine_km(lat1, lon1, lat2, lon2)
    return DistanceMatrix(values=values, source="haversine")


def _batch_ranges(count: int, batch_size: int) -> list[tuple[int, int]]:
    return [(start, min(start + batch_size, count)) for start in range(0, count, batch_size)]


def _provider_matrix(
    points: Sequence[tuple[float, float]],
    provider: DistanceProvider,
    batch_size: int,
    max_parallel_requests: int,
) -> DistanceMatrix:
    n = len(points)
    values = np.zeros((n, n), dtype=float)
    fallback_cells = 0
    ranges = _batch_ranges(n, batch_size)
    start_time = time.time()
    logger.info(
        f"Requesting distance matrix for {n} locations in {len(ranges) ** 2} batches "
        f"(batch size {batch_size}, parallel {max_parallel_requests})"
    )

    with ThreadPoolExecutor(max_workers=max_parallel_requests) as executor:
        requests: list[tuple[tuple[int, int], tuple[int, int], Future]] = [
            (
                (src_start, src_end),
                (dst_start, dst_end),
                executor.submit(
                    provider.batch_distances,
                    list(points[src_start:src_end]),
                    list(points[dst_start:dst_end]),
                ),
            )
            for src_start, src_end in ranges
            for dst_start, dst_end in ranges
        ]
        try:
            for (src_start, src_end), (dst_start, dst_end), future in requests:
                cells = future.result()
                if len(cells) != src_end - src_start or any(len(row) != dst_end - dst_start for row in cells):
                    raise DistanceProviderError(
                        f"Batch [{src_start}:{src_end}] -> [{dst_start}:{dst_end}] returned a malformed block."
                    )
                for local_src, global_src in enumerate(range(src_start, src_end)):
                    for local_dst, global_dst in enumerate(range(dst_start, dst_end)):
                        if global_src == global_dst:
                            continue
                        value = cells[local_src][local_dst]
                        if value is None or not math.isfinite(value) or value < 0:
                            lat1, lon1 = points[global_src]
                            lat2, lon2 = points[global_dst]
                            value = haversine_km(lat1, lon1, lat2, lon2)
                            fallback_cells += 1
                        values[global_src, global_dst] = value
        except BaseException:
            for _, _, future in requests:
                future.cancel()
            raise

    elapsed = time.time() - start_time
    if fallback_cells:
        logger.warning(f"{fallback_cells} distance matrix cells were not OK and use haversine distance")
    logger.info(f"Completed distance matrix with {len(ranges) ** 2} batches in {elapsed:.2f}s")
    return DistanceMatrix(values=values, source="provider", fallback_cells=fallback_cells)


def build_distance_matrix(
    groups: Sequence[LocationGroup],
    provider: DistanceProvider | None = None,
    *,
    batch_size: int | None = None,
    max_parallel_requests: int | None = None,
) -> DistanceMatrix:
    """Build the per-call distance matrix for ``groups``.

    Without a provider the matrix is computed geometrically. With one, any
    request-level failure abandons the provider for the whole matrix; cells
    are never mixed from a partially failed run.
    """
    points = [group.coordinates for group in groups]
    if provider is None or len(points) < 2:
        return haversine_matrix(points)

    if batch_size is None:
        batch_size = settings.matrix_batch_size
    if max_parallel_requests is None:
        max_parallel_requests = settings.matrix_max_parallel_requests
    if batch_size < 1 or max_parallel_requests < 1:
        raise ValueError(
            f"Batch size and parallel requests must be positive, got {batch_size} and {max_parallel_requests}."
        )
    try:
        return _provider_matrix(points, provider, batch_size, max_parallel_requests)
    except (ConnectionError, ValueError) as e:
        logger.warning(f"Distance provider request failed: {e}. Using haversine fallback.")
    except Exception as e:
        logger.error(f"Unexpected error building provider distance matrix: {e}. Using haversine fallback.")

    logger.info(f"Computing distance matrix using haversine fallback for {len(points)} locations")
    return haversine_matrix(points)
