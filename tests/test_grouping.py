import pytest

from route_planner.models.domain import Stop
from route_planner.services.routing.grouping import expand_route, group_stops, normalize_address


def _stop(sid: str, address: str, lat: float = 40.0, lon: float = -74.0, name: str | None = None) -> Stop:
    return Stop(id=sid, address=address, latitude=lat, longitude=lon, name=name)


@pytest.mark.parametrize(
    "address, expected",
    [
        ("123 Main St Apt 2", "123 main st"),
        ("123 Main St, Apt. 4B", "123 main st"),
        ("123  Main   St  Suite 100", "123 main st"),
        ("123 Main St Unit 7", "123 main st"),
        ("123 Main St #12", "123 main st"),
        ("123 Main St, Apartment 3", "123 main st"),
        ("45 Elm Rd B", "45 elm rd"),
        ("45 Elm Rd, c", "45 elm rd"),
        ("456 Oak Ave", "456 oak ave"),
        ("  456 OAK   Ave  ", "456 oak ave"),
    ],
)
def test_normalize_address(address, expected):
    assert normalize_address(address) == expected


@pytest.mark.parametrize(
    "address",
    [
        "123 Main St Apt 2",
        "12 a b",
        "Capt. Cook Street",
        "9 Community Way Unit 4",
        "7 Rue # 5 x",
        "",
        "Suite",
    ],
)
def test_normalize_address_is_idempotent(address):
    once = normalize_address(address)
    assert normalize_address(once) == once


def test_unit_words_inside_other_words_are_kept():
    assert normalize_address("9 Community Way") == "9 community way"
    assert normalize_address("1 Capt Street") == "1 capt street"


def test_group_stops_empty():
    assert group_stops([]) == []


def test_group_stops_collapses_units_in_first_seen_order():
    stops = [
        _stop("a", "123 Main St Apt 2", name="Alice"),
        _stop("b", "456 Oak Ave", lat=40.1, lon=-74.1),
        _stop("c", "123 Main St Apt 5", lat=40.0001, lon=-74.0001, name="Carol"),
    ]

    groups = group_stops(stops)

    assert [group.key for group in groups] == ["123 main st", "456 oak ave"]
    multi, single = groups
    assert [member.id for member in multi.members] == ["a", "c"]
    assert multi.is_group
    assert multi.id == "group_123 main st"
    assert multi.coordinates == (40.0, -74.0)
    assert multi.representative.name == "Alice (+1 more)"
    assert multi.representative.notes == "Group of 2 deliveries: Alice, Carol"

    assert not single.is_group
    assert single.representative is stops[1]
    assert single.id == "b"


def test_every_stop_belongs_to_exactly_one_group():
    stops = [_stop(str(i), f"{i % 4} Pine St Apt {i}") for i in range(12)]

    groups = group_stops(stops)

    member_ids = [member.id for group in groups for member in group.members]
    assert sorted(member_ids) == sorted(stop.id for stop in stops)
    assert len(member_ids) == len(set(member_ids))
    assert len(groups) == 4


def test_expand_route_splices_members_contiguously():
    stops = [
        _stop("a", "1 First St Apt 1"),
        _stop("b", "2 Second St"),
        _stop("c", "1 First St Apt 2"),
        _stop("d", "1 First St Apt 3"),
    ]
    groups = group_stops(stops)

    expanded = expand_route(groups, [1, 0])

    assert [stop.id for stop in expanded] == ["b", "a", "c", "d"]
