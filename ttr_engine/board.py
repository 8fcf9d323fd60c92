import csv
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import networkx as nx

from ttr_engine.cards import Color, require_player_id
from ttr_engine.config import DATA_DIR, ROUTE_POINTS
from ttr_engine.errors import RouteClaimedError, ValidationError

logger = logging.getLogger(__name__)

ANY_COLOR_NAMES = {"", "null", "multicolor"}


def normalize_city(name):
    if name is None or not str(name).strip():
        raise ValidationError("City name cannot be null or empty")
    return str(name).strip().lower()


def route_points(train_cost):
    return ROUTE_POINTS.get(train_cost, 0)


@dataclass
class Route:
    city_a: str
    city_b: str
    train_cost: int
    is_tunnel: bool = False
    ferry_count: int = 0
    color: Optional[Color] = None
    key: int = 0
    _owner: Optional[str] = field(default=None, init=False, repr=False)

    @property
    def claimed_by(self):
        return self._owner

    @property
    def is_multicolor(self):
        return self.color is None

    @property
    def points(self):
        return route_points(self.train_cost)

    def claim(self, player_id):
        if self._owner is not None:
            raise RouteClaimedError(f"Route already claimed by {self._owner}")
        require_player_id(player_id)
        self._owner = player_id


class RouteMap:
    def __init__(self):
        self.graph = nx.MultiGraph()
        self._claim_lock = threading.Lock()

    def add_city(self, name):
        city = normalize_city(name)
        if city not in self.graph:
            self.graph.add_node(city, name=str(name).strip())
        return city

    def has_city(self, name):
        try:
            return normalize_city(name) in self.graph
        except ValidationError:
            return False

    @property
    def city_count(self):
        return self.graph.number_of_nodes()

    @property
    def cities(self):
        return list(self.graph.nodes())

    def display_name(self, city):
        return self.graph.nodes[normalize_city(city)]['name']

    def add_route(self, city_a, city_b, train_cost, is_tunnel=False, ferry_count=0, color=None):
        source = normalize_city(city_a)
        destination = normalize_city(city_b)
        if source not in self.graph:
            raise ValidationError(f"Source city '{city_a}' does not exist. Add cities first.")
        if destination not in self.graph:
            raise ValidationError(f"Destination city '{city_b}' does not exist. Add cities first.")
        if source == destination:
            raise ValidationError(f"Route cannot start and end at '{city_a}'")
        if train_cost <= 0:
            raise ValidationError("Train cost must be positive")
        if ferry_count < 0 or ferry_count >= train_cost:
            raise ValidationError("Ferry count must be non-negative and less than train cost")
        if color is not None and color.is_wild:
            color = None

        key = self.graph.number_of_edges(source, destination)
        route = Route(source, destination, train_cost, bool(is_tunnel), ferry_count, color, key)
        self.graph.add_edge(source, destination, key=key, route=route)
        return route

    def find_route(self, city_a, city_b, key=None):
        """Route between two cities in either direction, or None.

        Without a key the first route added between the pair is returned.
        """
        if not (self.has_city(city_a) and self.has_city(city_b)):
            return None
        source, destination = normalize_city(city_a), normalize_city(city_b)
        if not self.graph.has_edge(source, destination):
            return None
        parallel = self.graph[source][destination]
        if key is None:
            key = min(parallel)
        data = parallel.get(key)
        return data['route'] if data is not None else None

    def open_route(self, city_a, city_b, key=None):
        """Like ``find_route``, but without a key prefer the first unclaimed parallel route."""
        if key is not None:
            return self.find_route(city_a, city_b, key)
        parallel = self.routes_between(city_a, city_b)
        for route in parallel:
            if route.claimed_by is None:
                return route
        return parallel[0] if parallel else None

    def routes_between(self, city_a, city_b):
        if not (self.has_city(city_a) and self.has_city(city_b)):
            return []
        source, destination = normalize_city(city_a), normalize_city(city_b)
        if not self.graph.has_edge(source, destination):
            return []
        parallel = self.graph[source][destination]
        return [parallel[key]['route'] for key in sorted(parallel)]

    def routes(self):
        return [data['route'] for _, _, data in self.graph.edges(data=True)]

    def routes_claimed_by(self, player_id):
        return [route for route in self.routes() if route.claimed_by == player_id]

    def route_exists(self, city_a, city_b):
        return self.find_route(city_a, city_b) is not None

    def get_route_owner(self, city_a, city_b, key=None):
        route = self.find_route(city_a, city_b, key)
        return route.claimed_by if route is not None else None

    def get_route_weight(self, city_a, city_b, key=None):
        route = self.find_route(city_a, city_b, key)
        return route.train_cost if route is not None else -1

    def get_route_color(self, city_a, city_b, key=None):
        route = self.find_route(city_a, city_b, key)
        return route.color if route is not None else None

    def is_route_tunnel(self, city_a, city_b, key=None):
        route = self.find_route(city_a, city_b, key)
        return route is not None and route.is_tunnel

    def get_route_ferry_count(self, city_a, city_b, key=None):
        route = self.find_route(city_a, city_b, key)
        return route.ferry_count if route is not None else -1

    def get_route_points(self, city_a, city_b, key=None):
        route = self.find_route(city_a, city_b, key)
        return route.points if route is not None else 0

    def claim_route(self, city_a, city_b, player_id, key=None):
        route = self.find_route(city_a, city_b, key)
        if route is None:
            return False
        with self._claim_lock:
            if route.claimed_by is not None:
                return False
            route.claim(player_id)
        logger.debug("%s claimed %s-%s", player_id, route.city_a, route.city_b)
        return True

    def _claimed_view(self, player_id):
        graph = self.graph

        def owned(u, v, k):
            return graph[u][v][k]['route'].claimed_by == player_id

        return nx.subgraph_view(graph, filter_edge=owned)

    def is_reachable(self, city_a, city_b, player_id):
        if not (self.has_city(city_a) and self.has_city(city_b)):
            return False
        return nx.has_path(self._claimed_view(player_id), normalize_city(city_a), normalize_city(city_b))

    def longest_path_length(self, player_id):
        """Longest trail through the player's routes, summed by train cost.

        Each route is used at most once; cities may be revisited.
        """
        owned = self._claimed_view(player_id)
        longest = 0

        def dfs(city, used, length):
            nonlocal longest
            longest = max(longest, length)
            for _, neighbor, key, data in owned.edges(city, keys=True, data=True):
                edge = (frozenset((city, neighbor)), key)
                if edge not in used:
                    used.add(edge)
                    dfs(neighbor, used, length + data['route'].train_cost)
                    used.remove(edge)

        for start in owned.nodes():
            if owned.degree(start):
                dfs(start, set(), 0)

        return longest


def parse_route_color(text):
    if text is None or text.strip().lower() in ANY_COLOR_NAMES:
        return None
    return Color.parse(text)


def load_cities(route_map, path):
    loaded = 0
    try:
        with open(path, 'r') as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    route_map.add_city(line)
                    loaded += 1
                except ValidationError as e:
                    logger.warning("%s line %d: %s", path, line_number, e)
    except OSError as e:
        logger.warning("Could not read city file %s: %s", path, e)
    return loaded


def load_routes(route_map, path):
    """Read ``source,destination,weight,isTunnel,ferryCount,color`` rows.

    The first row is a header. Bad rows are logged and skipped.
    """
    loaded = 0
    try:
        with open(path, 'r', newline='') as f:
            reader = csv.reader(f)
            next(reader, None)
            for row in reader:
                line_number = reader.line_num
                if not any(cell.strip() for cell in row):
                    continue
                if len(row) != 6:
                    logger.warning("%s line %d: expected 6 columns, found %d", path, line_number, len(row))
                    continue
                source, destination, weight, tunnel, ferry, color = (cell.strip() for cell in row)
                try:
                    route_map.add_route(
                        source,
                        destination,
                        int(weight),
                        is_tunnel=tunnel.lower() == 'true',
                        ferry_count=int(ferry),
                        color=parse_route_color(color),
                    )
                    loaded += 1
                except ValueError as e:
                    logger.warning("%s line %d: %s", path, line_number, e)
    except OSError as e:
        logger.warning("Could not read route file %s: %s", path, e)
    return loaded


def load_board(city_path=None, route_path=None, map_name='europe'):
    city_path = Path(city_path) if city_path else DATA_DIR / 'cities' / f'{map_name}.txt'
    route_path = Path(route_path) if route_path else DATA_DIR / 'routes' / f'{map_name}.csv'

    route_map = RouteMap()
    cities = load_cities(route_map, city_path)
    routes = load_routes(route_map, route_path)
    logger.info("Loaded %d cities and %d routes", cities, routes)
    return route_map
