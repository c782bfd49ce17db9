"""Address normalisation, same-location grouping and route expansion."""

from __future__ import annotations

import re
from typing import Sequence

from ...models.domain import LocationGroup, Stop

_UNIT_PATTERN = re.compile(
    r",?\s*(?:\b(?:apt|apartment|unit|suite)\b\.?|#)\s*[a-z0-9-]+",
    re.IGNORECASE,
)
_TRAILING_LETTER_PATTERN = re.compile(r"[,\s]+[a-z]\s*$", re.IGNORECASE)
_WHITESPACE_PATTERN = re.compile(r"\s+")


def _normalize_once(text: str) -> str:
    normalized = text.lower()
    normalized = _UNIT_PATTERN.sub("", normalized)
    normalized = _TRAILING_LETTER_PATTERN.sub("", normalized)
    normalized = _WHITESPACE_PATTERN.sub(" ", normalized)
    return normalized.strip()


def normalize_address(address: str) -> str:
    """Return the grouping key for an address.

    Unit designators ("Apt 2", "Suite 100", "#5") and a trailing
    single-letter suffix are removed, then whitespace is collapsed. The
    rules are applied until the text stops changing, so the result is a
    fixed point: ``normalize_address(normalize_address(s)) == normalize_address(s)``.
    """

    current = address
    while True:
        normalized = _normalize_once(current)
        if normalized == current:
            return normalized
        current = normalized


def _representative(key: str, members: Sequence[Stop]) -> Stop:
    first = members[0]
    if len(members) == 1:
        return first
    labels = ", ".join(member.name or member.id for member in members)
    return Stop(
        id=f"group_{key}",
        address=first.address,
        latitude=first.latitude,
        longitude=first.longitude,
        name=f"{first.name or first.address} (+{len(members) - 1} more)",
        notes=f"Group of {len(members)} deliveries: {labels}",
    )


def group_stops(stops: Sequence[Stop]) -> list[LocationGroup]:
    """Collapse stops sharing a normalised address into location groups.

    Groups come out in first-seen key order and members keep their input
    order.
    """

    buckets: dict[str, list[Stop]] = {}
    for stop in stops:
        buckets.setdefault(normalize_address(stop.address), []).append(stop)

    return [
        LocationGroup(key=key, members=tuple(members), representative=_representative(key, members))
        for key, members in buckets.items()
    ]


def expand_route(groups: Sequence[LocationGroup], route: Sequence[int]) -> list[Stop]:
    """Turn a route of group positions back into the member stops."""

    expanded: list[Stop] = []
    for position in route:
        expanded.extend(groups[position].members)
    return expanded
