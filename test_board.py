import logging
import threading

import pytest

from ttr_engine.board import RouteMap, load_board, load_routes, route_points
from ttr_engine.cards import Color
from ttr_engine.errors import ValidationError


def make_map(*cities):
    route_map = RouteMap()
    for city in cities or ("A", "B", "C", "D"):
        route_map.add_city(city)
    return route_map


def test_add_city_normalizes_name():
    route_map = RouteMap()
    assert route_map.add_city("  Paris ") == "paris"
    assert route_map.has_city("PARIS")
    assert route_map.display_name("paris") == "Paris"

    route_map.add_city("paris")
    assert route_map.city_count == 1


@pytest.mark.parametrize("name", ["", "   ", None])
def test_add_city_rejects_empty_name(name):
    with pytest.raises(ValidationError):
        RouteMap().add_city(name)


def test_add_route_validation():
    route_map = make_map()
    with pytest.raises(ValidationError):
        route_map.add_route("A", "Z", 3)
    with pytest.raises(ValidationError):
        route_map.add_route("A", "B", 0)
    with pytest.raises(ValidationError):
        route_map.add_route("A", "B", -2)
    with pytest.raises(ValidationError):
        route_map.add_route("A", "B", 2, ferry_count=2)
    with pytest.raises(ValidationError):
        route_map.add_route("A", "B", 2, ferry_count=-1)
    assert route_map.routes() == []


def test_find_route_from_either_end():
    route_map = make_map()
    route = route_map.add_route("A", "B", 3, color=Color.RED)

    assert route_map.find_route("a", "b") is route
    assert route_map.find_route("B", "A") is route
    assert route_map.find_route("A", "C") is None
    assert route_map.find_route("A", "Nowhere") is None
    assert route_map.route_exists("b", "a")


def test_wild_route_color_means_any():
    route_map = make_map()
    route = route_map.add_route("A", "B", 2, color=Color.MULTICOLOR)
    assert route.color is None
    assert route.is_multicolor


def test_route_accessors():
    route_map = make_map()
    route_map.add_route("A", "B", 4, is_tunnel=True, ferry_count=1, color=Color.BLUE)

    assert route_map.get_route_weight("A", "B") == 4
    assert route_map.get_route_ferry_count("B", "A") == 1
    assert route_map.get_route_color("A", "B") is Color.BLUE
    assert route_map.is_route_tunnel("A", "B")
    assert route_map.get_route_points("A", "B") == 7

    assert route_map.get_route_weight("A", "C") == -1
    assert route_map.get_route_ferry_count("A", "C") == -1
    assert route_map.get_route_color("A", "C") is None
    assert not route_map.is_route_tunnel("A", "C")
    assert route_map.get_route_owner("A", "C") is None


def test_claim_route_only_once():
    route_map = make_map()
    route_map.add_route("A", "B", 3)

    assert route_map.claim_route("A", "B", "p1")
    assert not route_map.claim_route("B", "A", "p2")
    assert not route_map.claim_route("A", "B", "p1")
    assert route_map.get_route_owner("b", "a") == "p1"
    assert not route_map.claim_route("A", "C", "p1")


def test_claim_route_requires_player():
    route_map = make_map()
    route_map.add_route("A", "B", 3)
    with pytest.raises(ValidationError):
        route_map.claim_route("A", "B", "")
    assert route_map.get_route_owner("A", "B") is None


def test_concurrent_claims_have_one_winner():
    route_map = make_map()
    route_map.add_route("A", "B", 3)
    results = []
    start = threading.Barrier(8)

    def claim(player_id):
        start.wait()
        results.append(route_map.claim_route("A", "B", player_id))

    threads = [threading.Thread(target=claim, args=(f"p{i}",)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 1
    assert route_map.get_route_owner("A", "B") in {f"p{i}" for i in range(8)}


def test_parallel_routes():
    route_map = make_map()
    first = route_map.add_route("A", "B", 2, color=Color.RED)
    second = route_map.add_route("B", "A", 2, color=Color.BLUE)

    assert (first.key, second.key) == (0, 1)
    assert route_map.find_route("A", "B") is first
    assert route_map.find_route("A", "B", key=1) is second
    assert route_map.routes_between("B", "A") == [first, second]

    assert route_map.claim_route("A", "B", "p2", key=1)
    assert route_map.get_route_owner("A", "B") is None
    assert route_map.get_route_owner("A", "B", key=1) == "p2"


def test_same_city_is_reachable_without_routes():
    route_map = make_map()
    assert route_map.is_reachable("A", "a", "anyone")
    assert not route_map.is_reachable("Z", "Z", "anyone")
    assert not route_map.is_reachable("A", "Z", "anyone")


def test_reachability_uses_only_own_routes():
    route_map = make_map()
    route_map.add_route("A", "B", 2)
    route_map.add_route("B", "C", 2)
    route_map.add_route("C", "D", 2)
    route_map.claim_route("A", "B", "p1")
    route_map.claim_route("B", "C", "p1")
    route_map.claim_route("C", "D", "p2")

    assert route_map.is_reachable("A", "C", "p1")
    assert route_map.is_reachable("C", "A", "p1")
    assert not route_map.is_reachable("A", "D", "p1")
    assert not route_map.is_reachable("A", "C", "p2")
    assert route_map.is_reachable("D", "C", "p2")


def test_reachability_terminates_on_cycles():
    route_map = make_map()
    for a, b in [("A", "B"), ("B", "C"), ("C", "A")]:
        route_map.add_route(a, b, 1)
        route_map.claim_route(a, b, "p1")

    assert route_map.is_reachable("A", "C", "p1")
    assert not route_map.is_reachable("A", "D", "p1")


def test_route_points_table():
    assert [route_points(cost) for cost in range(1, 10)] == [1, 2, 4, 7, 10, 15, 0, 23, 0]


def test_longest_path_length():
    route_map = make_map()
    route_map.add_route("A", "B", 3)
    route_map.add_route("B", "C", 2)
    route_map.add_route("C", "D", 4)
    route_map.add_route("B", "D", 1)
    for a, b in [("A", "B"), ("B", "C"), ("C", "D"), ("B", "D")]:
        route_map.claim_route(a, b, "p1")

    # A-B-C-D-B uses every route once
    assert route_map.longest_path_length("p1") == 10
    assert route_map.longest_path_length("p2") == 0


def test_load_routes_skips_bad_rows(tmp_path, caplog):
    route_map = make_map()
    path = tmp_path / "routes.csv"
    path.write_text(
        "source,destination,weight,isTunnel,ferryCount,color\n"
        "A,B,3,false,0,red\n"
        "A,C,2,TRUE,1,null\n"
        "B,C,2,false,0,MULTICOLOR\n"
        "C,D,4,false,0,\n"
        "A,D,3,false,0\n"
        "A,Z,3,false,0,red\n"
        "B,D,two,false,0,red\n"
        "B,D,2,false,2,red\n"
        "B,D,2,false,0,purple\n"
        "\n"
    )

    with caplog.at_level(logging.WARNING):
        loaded = load_routes(route_map, path)

    assert loaded == 4
    assert len(caplog.records) == 5
    assert route_map.find_route("A", "B").color is Color.RED
    tunnel = route_map.find_route("C", "A")
    assert tunnel.is_tunnel and tunnel.ferry_count == 1 and tunnel.color is None
    assert route_map.find_route("B", "C").color is None
    assert route_map.find_route("B", "D") is None


def test_load_board_missing_files(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        route_map = load_board(tmp_path / "none.txt", tmp_path / "none.csv")
    assert route_map.city_count == 0
    assert len(caplog.records) == 2


def test_bundled_europe_board():
    route_map = load_board()

    assert route_map.city_count == 47
    assert len(route_map.routes()) == 101

    longest = route_map.find_route("Petrograd", "Stockholm")
    assert longest.train_cost == 8
    assert longest.is_tunnel
    assert longest.points == 23

    ferry = route_map.find_route("Amsterdam", "London")
    assert ferry.ferry_count == 1
    assert ferry.color is None
    assert len(route_map.routes_between("Edinburgh", "London")) == 2


def test_open_route_prefers_unclaimed_parallel():
    route_map = make_map()
    first = route_map.add_route("A", "B", 2, color=Color.RED)
    second = route_map.add_route("A", "B", 2, color=Color.BLUE)

    assert route_map.open_route("A", "B") is first
    route_map.claim_route("A", "B", "p1")
    assert route_map.open_route("B", "A") is second
    assert route_map.open_route("A", "B", key=0) is first
    route_map.claim_route("A", "B", "p2", key=1)
    assert route_map.open_route("A", "B") is first
    assert route_map.open_route("A", "C") is None
