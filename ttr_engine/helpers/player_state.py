import threading
from dataclasses import dataclass
from typing import Optional

from ttr_engine.board import normalize_city
from ttr_engine.cards import WILD, Color, require_player_id
from ttr_engine.config import STARTING_TRAINS
from ttr_engine.errors import (
    ColorMismatchError,
    InsufficientCardsError,
    InsufficientTrainsError,
    RouteClaimedError,
    RouteNotFoundError,
    RuleViolation,
    ValidationError,
)


@dataclass
class RouteBuildResult:
    success: bool
    error: Optional[RuleViolation] = None
    points_earned: int = 0
    trains_remaining: int = 0
    extra_tunnel_cost: int = 0

    @property
    def error_message(self):
        return str(self.error) if self.error is not None else None


class Player:
    def __init__(self, player_id, route_map, train_supply, trains=STARTING_TRAINS):
        require_player_id(player_id)
        self.player_id = player_id
        self.route_map = route_map
        self.train_supply = train_supply
        self.score = 0
        self.trains = trains
        self.hand = {color: [] for color in Color}
        self.destinations = []
        self._lock = threading.Lock()

    def __repr__(self):
        return f"Player({self.player_id!r}, score={self.score}, trains={self.trains})"

    @property
    def claimed_routes(self):
        return self.route_map.routes_claimed_by(self.player_id)

    def hand_counts(self):
        return {color: len(cards) for color, cards in self.hand.items()}

    def card_count(self):
        return sum(len(cards) for cards in self.hand.values())

    def take_mystery(self):
        card = self.train_supply.draw_mystery(self.player_id)
        self.hand[card.color].append(card)
        return card

    def take_visible(self, slot):
        card = self.train_supply.draw_visible(slot, self.player_id)
        self.hand[card.color].append(card)
        return card

    def offer_destinations(self, supply, count):
        return supply.draw_destinations(self.player_id, count)

    def keep_destinations(self, offered, kept, supply):
        if any(card not in offered for card in kept):
            raise ValidationError("Kept destination cards must come from the offered cards")
        self.destinations.extend(kept)
        supply.return_to_bottom([card for card in offered if card not in kept])

    def award_bonus(self, points):
        if points < 0:
            raise ValidationError("Bonus points cannot be negative")
        with self._lock:
            self.score += points

    def _check_arguments(self, city_a, city_b, color_choice, extra_cost):
        normalize_city(city_a)
        normalize_city(city_b)
        if not isinstance(color_choice, Color):
            raise ValidationError(f"Color choice must be a Color, got {color_choice!r}")
        if not isinstance(extra_cost, int) or extra_cost < 0:
            raise ValidationError(f"Extra cost must be a non-negative integer, got {extra_cost!r}")

    def _plan(self, city_a, city_b, color_choice, extra_cost, route_key):
        route = self.route_map.open_route(city_a, city_b, route_key)
        if route is None:
            raise RouteNotFoundError(f"No route between {city_a} and {city_b}")
        if route.claimed_by is not None:
            raise RouteClaimedError(f"Route {route.city_a}-{route.city_b} is already claimed by {route.claimed_by}")

        if route.color is not None:
            if color_choice is not route.color and not color_choice.is_wild:
                raise ColorMismatchError(f"Route needs {route.color} cards, not {color_choice}")
            color = route.color
        else:
            if color_choice.is_wild:
                raise ColorMismatchError("Pick a color other than wild for a gray route")
            color = color_choice

        total = route.train_cost + extra_cost
        wilds = len(self.hand[WILD])
        colored = len(self.hand[color])
        if wilds < route.ferry_count or colored + wilds < total:
            raise InsufficientCardsError(
                f"Need {total} {color} or wild cards with at least {route.ferry_count} wild, "
                f"have {colored} {color} and {wilds} wild"
            )
        if total > self.trains:
            raise InsufficientTrainsError(f"Need {total} trains, have {self.trains}")

        # ferry wilds first, then the route color, then wilds for the rest
        use_colored = min(colored, total - route.ferry_count)
        return route, {color: use_colored, WILD: total - use_colored}

    def can_build_route(self, city_a, city_b, color_choice, extra_cost=0, route_key=None):
        """Run every check of ``build_route`` without spending anything."""
        self._check_arguments(city_a, city_b, color_choice, extra_cost)
        try:
            self._plan(city_a, city_b, color_choice, extra_cost, route_key)
        except RuleViolation as e:
            return RouteBuildResult(False, e, 0, self.trains, extra_cost)
        return RouteBuildResult(True, None, 0, self.trains, extra_cost)

    def build_route(self, city_a, city_b, color_choice, extra_cost=0, route_key=None):
        """Spend cards and trains and claim the route, or change nothing.

        Without ``route_key`` the first unclaimed route between the two cities
        is built. Rule violations are returned in the result, never raised.
        """
        self._check_arguments(city_a, city_b, color_choice, extra_cost)
        with self._lock:
            try:
                route, spend = self._plan(city_a, city_b, color_choice, extra_cost, route_key)
            except RuleViolation as e:
                return RouteBuildResult(False, e, 0, self.trains, extra_cost)

            # claim before spending so a lost race leaves the hand untouched
            if not self.route_map.claim_route(route.city_a, route.city_b, self.player_id, route.key):
                error = RouteClaimedError(f"Route {route.city_a}-{route.city_b} is already claimed by {route.claimed_by}")
                return RouteBuildResult(False, error, 0, self.trains, extra_cost)

            spent = []
            for color, count in spend.items():
                if count:
                    spent.extend(self.hand[color][-count:])
                    del self.hand[color][-count:]
            self.train_supply.discard(spent)
            self.trains -= len(spent)

            points = route.points
            self.score += points
            return RouteBuildResult(True, None, points, self.trains, extra_cost)

    def check_destination_card_completed(self, card):
        if card.completed:
            return 0
        if not self.route_map.is_reachable(card.city1, card.city2, self.player_id):
            return 0
        with self._lock:
            if not card.mark_completed():
                return 0
            self.score += card.points
        return card.points

    def check_destinations(self):
        return sum(self.check_destination_card_completed(card) for card in self.destinations)
