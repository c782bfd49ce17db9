"""HTTP client for the Google Distance Matrix and Geocoding services."""

from __future__ import annotations

import logging
import time
from typing import Protocol, Sequence

import httpx

from ...config import settings

# Google rejects more than 25 origins or 25 destinations per element request.
MAX_ELEMENTS_PER_SIDE = 25

logger = logging.getLogger(__name__)


class DistanceProviderError(ConnectionError):
    """A distance matrix request failed as a whole (network, quota, bad payload)."""


class GeocodingError(ValueError):
    """An address could not be resolved to coordinates."""


class DistanceProvider(Protocol):
    def batch_distances(
        self,
        origins: Sequence[tuple[float, float]],
        destinations: Sequence[tuple[float, float]],
    ) -> list[list[float | None]]:
        """Return kilometres per (origin, destination); ``None`` marks a failed cell."""
        ...


class Geocoder(Protocol):
    def geocode(self, address: str) -> tuple[float, float]:
        ...


def _format_coordinates(coordinates: Sequence[tuple[float, float]]) -> str:
    return "|".join(f"{lat},{lon}" for lat, lon in coordinates)


class GoogleMapsClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_maps_api_key
        if not self.api_key:
            raise ValueError("Google Maps API key is not configured.")
        self.base_url = (base_url or settings.google_maps_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.maps_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.maps_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.maps_backoff_seconds
        self.transport = transport

    def _get_client(self) -> httpx.Client:
        """Create a client per request; batches are issued from worker threads."""
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self.transport,
        )

    def _get_json(self, endpoint: str, params: dict) -> dict:
        url = f"{self.base_url}/{endpoint}/json"
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params={**params, "key": self.api_key})
                    response.raise_for_status()
                    return response.json()
                except (httpx.TimeoutException, httpx.NetworkError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise DistanceProviderError(
                            f"Google Maps service at {self.base_url} is not reachable: {exc}"
                        ) from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(
                        f"Google Maps network error, retrying in {wait_time:.1f}s "
                        f"(attempt {attempt}/{self.max_retries}): {exc}"
                    )
                    time.sleep(wait_time)
                except httpx.HTTPStatusError as exc:
                    status_code = exc.response.status_code
                    if status_code < 500 and status_code != 429:
                        raise DistanceProviderError(
                            f"Google Maps {endpoint} request rejected with HTTP {status_code}"
                        ) from exc
                    attempt += 1
                    if attempt > self.max_retries:
                        raise DistanceProviderError(f"Google Maps {endpoint} request failed: {exc}") from exc
                    time.sleep(self.backoff_seconds * attempt)
                except (httpx.HTTPError, ValueError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise DistanceProviderError(f"Google Maps {endpoint} request failed: {exc}") from exc
                    time.sleep(self.backoff_seconds * attempt)
        finally:
            client.close()

    def batch_distances(
        self,
        origins: Sequence[tuple[float, float]],
        destinations: Sequence[tuple[float, float]],
    ) -> list[list[float | None]]:
        """Request one origins x destinations block, in kilometres."""
        if not origins or not destinations:
            raise ValueError("At least one origin and one destination are required.")
        if len(origins) > MAX_ELEMENTS_PER_SIDE or len(destinations) > MAX_ELEMENTS_PER_SIDE:
            raise ValueError(
                f"Distance matrix batch {len(origins)}x{len(destinations)} exceeds "
                f"{MAX_ELEMENTS_PER_SIDE}x{MAX_ELEMENTS_PER_SIDE}."
            )

        data = self._get_json(
            "distancematrix",
            {
                "origins": _format_coordinates(origins),
                "destinations": _format_coordinates(destinations),
                "units": "metric",
            },
        )
        if not isinstance(data, dict):
            raise DistanceProviderError(f"Distance matrix response is not a JSON object: {type(data).__name__}")
        status = data.get("status")
        if status != "OK":
            message = data.get("error_message", "no error message")
            raise DistanceProviderError(f"Distance matrix request returned {status}: {message}")

        rows = data.get("rows")
        if not isinstance(rows, list) or len(rows) != len(origins):
            raise DistanceProviderError("Distance matrix response has an unexpected number of rows.")

        matrix: list[list[float | None]] = []
        for row in rows:
            elements = row.get("elements") if isinstance(row, dict) else None
            if not isinstance(elements, list) or len(elements) != len(destinations):
                raise DistanceProviderError("Distance matrix response has an unexpected number of elements.")
            cells: list[float | None] = []
            for element in elements:
                if isinstance(element, dict) and element.get("status") == "OK":
                    try:
                        cells.append(float(element["distance"]["value"]) / 1000.0)
                    except (KeyError, TypeError, ValueError) as exc:
                        raise DistanceProviderError(f"Malformed distance matrix element: {element}") from exc
                else:
                    cells.append(None)
            matrix.append(cells)
        return matrix

    def geocode(self, address: str) -> tuple[float, float]:
        try:
            data = self._get_json("geocode", {"address": address})
        except DistanceProviderError as exc:
            raise GeocodingError(f"Geocoding request failed for '{address}': {exc}") from exc

        if not isinstance(data, dict):
            raise GeocodingError(f"Malformed geocoding response for '{address}'.")
        status = data.get("status")
        results = data.get("results") or []
        if status != "OK" or not results:
            raise GeocodingError(f"Geocoding failed for '{address}': {status}")
        try:
            location = results[0]["geometry"]["location"]
            return (float(location["lat"]), float(location["lng"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodingError(f"Malformed geocoding response for '{address}'.") from exc


def get_maps_client() -> GoogleMapsClient | None:
    """Return a configured client, or None when no API key is set."""
    try:
        return GoogleMapsClient()
    except ValueError as exc:
        logger.info(f"Google Maps client unavailable: {exc}")
        return None


def check_health(api_key: str | None = None) -> bool:
    """Check provider reachability with a minimal one-cell distance request."""
    key = api_key or settings.google_maps_api_key
    if not key:
        return False
    try:
        client = GoogleMapsClient(api_key=key, max_retries=0, timeout=5.0)
        cells = client.batch_distances([(52.517037, 13.388860)], [(52.496891, 13.385983)])
        return len(cells) == 1
    except (DistanceProviderError, ValueError):
        return False
