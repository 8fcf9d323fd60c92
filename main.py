import sys

from ttr_engine.errors import GameError
from ttr_engine.game import Game
from ttr_engine.helpers.action import legal_actions, execute_action


def prompt_int(message, low, high):
    while True:
        raw = input(message).strip()
        try:
            value = int(raw)
        except ValueError:
            print(f"Invalid input: '{raw}'. Must input an integer value between {low}-{high}.")
            continue
        if low <= value <= high:
            return value
        print(f"Must input an integer value between {low}-{high}.")


def prompt_players(low, high):
    count = prompt_int("Please enter the number of players: ", low, high)
    names = []
    while len(names) < count:
        name = input(f"Please enter the name of player {len(names) + 1}: ").strip()
        if not name:
            print("Player name cannot be empty. Please try again.")
        elif name in names:
            print("Player name already exists. Please enter a different name.")
        else:
            names.append(name)
    return names


def show_player(game, player):
    hand = ", ".join(f"{color.display_name} x{len(cards)}" for color, cards in player.hand.items() if cards)
    print(f"\n=== {player.player_id}: {player.score} points, {player.trains} trains ===")
    print(f"Hand: {hand or 'empty'}")
    for card in player.destinations:
        status = "done" if card.completed else "open"
        print(f"Destination: {card.city1} - {card.city2} ({card.points} pts) [{status}]")
    slots = []
    for i, card in enumerate(game.state.face_up_cards):
        slots.append(f"{i}: {card.color.display_name if card else '-'}")
    print("Face up: " + " | ".join(slots))


def describe(game, action):
    if action.type == "draw_card":
        if action.slot is None:
            return "Draw from the deck"
        card = game.state.face_up_cards[action.slot]
        return f"Take face-up {card.color.display_name} (slot {action.slot})"
    if action.type == "claim_route":
        route = game.board.find_route(action.city_a, action.city_b, action.route_key)
        kind = " tunnel" if route.is_tunnel else ""
        ferry = f", {route.ferry_count} wild" if route.ferry_count else ""
        return (f"Claim {game.board.display_name(route.city_a)} - {game.board.display_name(route.city_b)}"
                f"{kind} ({route.train_cost} {action.color.display_name}{ferry})")
    if action.type == "draw_destinations":
        return "Draw destination cards"
    return "End turn"


def choose_destinations(game, player):
    offered, minimum = game.state.pending_destinations[player.player_id]
    print(f"\n{player.player_id}, keep at least {minimum} of these destination cards:")
    for i, card in enumerate(offered):
        print(f"  {i}: {card.city1} - {card.city2} ({card.points} pts)")
    while True:
        raw = input("Cards to keep (e.g. 0 2): ")
        try:
            game.keep_destinations([int(x) for x in raw.split()], player.player_id)
            return
        except (ValueError, GameError) as e:
            print(f"  {e}")


def play_turn(game):
    player = game.acting_player()
    if player.player_id in game.state.pending_destinations:
        choose_destinations(game, player)
        return

    show_player(game, player)
    actions = legal_actions(game)
    for i, action in enumerate(actions):
        print(f"  {i}: {describe(game, action)}")
    action = actions[prompt_int("Choose an action: ", 0, len(actions) - 1)]

    try:
        outcome = execute_action(game, action)
    except GameError as e:
        print(f"Not allowed: {e}")
        return

    if action.type == "draw_card":
        print(f"You drew {outcome.color.display_name}")
    elif action.type == "claim_route":
        if game.last_revealed:
            shown = ", ".join(card.color.display_name for card in game.last_revealed)
            print(f"Tunnel cards: {shown} (+{outcome.extra_tunnel_cost})")
        if outcome.success:
            print(f"Route built for {outcome.points_earned} points, {outcome.trains_remaining} trains left")
        else:
            print(f"Could not build: {outcome.error_message}")


def run(map_name='europe'):
    print("Welcome to Ticket to Ride!")
    game_players = prompt_players(2, 6)
    game = Game.from_files(game_players, map_name)
    if game.board.city_count == 0:
        print("Error: Failed to load map files. Exiting.")
        return

    print("Map loaded successfully!")
    while not game.game_over:
        play_turn(game)

    print("\nGame over!")
    for player_id, score in sorted(game.scores().items(), key=lambda item: -item[1]):
        print(f"{player_id}: {score} points (longest path {game.longest_paths.get(player_id, 0)})")


if __name__ == "__main__":
    run(sys.argv[1] if len(sys.argv) > 1 else 'europe')
