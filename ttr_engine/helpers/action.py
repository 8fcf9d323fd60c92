from dataclasses import dataclass
from itertools import combinations
from typing import Optional

from ttr_engine.cards import CONCRETE_COLORS, Color


@dataclass
class Action:
    type: str
    city_a: Optional[str] = None
    city_b: Optional[str] = None
    color: Optional[Color] = None
    route_key: Optional[int] = None
    slot: Optional[int] = None
    indices: tuple = ()
    player_id: Optional[str] = None


def _draw_card_actions(game):
    actions = []
    supply = game.state.train_supply

    if supply.draw_pile or supply.discard_pile:
        actions.append(Action(type="draw_card"))
    for slot, card in enumerate(supply.visible):
        if card is None:
            continue
        if card.color.is_wild and game.cards_drawn:
            continue
        actions.append(Action(type="draw_card", slot=slot))

    if not actions:
        actions.append(Action(type="end_turn"))
    return actions


def _claim_route_actions(game, player):
    actions = []

    for route in game.board.routes():
        if route.claimed_by is not None:
            continue
        if route.train_cost > player.trains:
            continue

        colors = [route.color] if route.color is not None else CONCRETE_COLORS
        for color in colors:
            check = player.can_build_route(route.city_a, route.city_b, color, 0, route.key)
            if check.success:
                actions.append(Action(
                    type="claim_route",
                    city_a=route.city_a,
                    city_b=route.city_b,
                    color=color,
                    route_key=route.key,
                ))

    return actions


def _draw_destinations_actions(game):
    if len(game.state.destination_supply) > 0:
        return [Action(type="draw_destinations")]
    return []


def _keep_destinations_actions(game, player):
    offered, minimum = game.state.pending_destinations[player.player_id]
    actions = []
    for size in range(max(minimum, 1), len(offered) + 1):
        for indices in combinations(range(len(offered)), size):
            actions.append(Action(type="keep_destinations", indices=indices, player_id=player.player_id))
    return actions


def legal_actions(game):
    if game.game_over:
        return []

    player = game.acting_player()
    if player.player_id in game.state.pending_destinations:
        return _keep_destinations_actions(game, player)

    actions = _draw_card_actions(game)
    if not game.cards_drawn:
        actions.extend(_claim_route_actions(game, player))
        actions.extend(_draw_destinations_actions(game))
    return actions


def execute_action(game, action):
    if action.type == "draw_card":
        return game.take_card(action.slot)
    elif action.type == "end_turn":
        return game.end_turn()
    elif action.type == "claim_route":
        return game.build_route(action.city_a, action.city_b, action.color, action.route_key)
    elif action.type == "draw_destinations":
        return game.draw_destinations()
    elif action.type == "keep_destinations":
        return game.keep_destinations(action.indices, action.player_id)
    raise ValueError(f"Unknown action type {action.type!r}")
