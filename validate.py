import random
import statistics
from collections import Counter

from ttr_engine.errors import GameError
from ttr_engine.game import Game
from ttr_engine.helpers.action import execute_action, legal_actions


def check_invariants(game, owners, trains):
    problems = []
    state = game.state

    if state.train_cards_accounted() != state.total_train_cards:
        problems.append(f"train cards: {state.train_cards_accounted()} of {state.total_train_cards} accounted for")

    if state.train_supply.needs_purge():
        problems.append(f"visible row kept three of a kind: {state.face_up_cards}")

    for route in game.board.routes():
        route_id = (route.city_a, route.city_b, route.key)
        if route_id in owners and owners[route_id] != route.claimed_by:
            problems.append(f"route {route_id} changed owner")
        if route.claimed_by is not None:
            owners[route_id] = route.claimed_by

    for player in state.list_of_players:
        if player.trains > trains.get(player.player_id, player.trains):
            problems.append(f"{player.player_id} gained trains")
        if player.score < 0:
            problems.append(f"{player.player_id} has a negative score")
        trains[player.player_id] = player.trains

    return problems


def run_silent_game(seed):
    rng = random.Random(seed)
    game = Game.from_files(["p1", "p2", "p3"], rng=random.Random(seed))
    turn = 0
    action_counts = Counter()
    tunnel_attempts = 0
    tunnel_failures = 0
    problems = []
    owners = {}
    trains = {}

    while not game.game_over:
        actions = legal_actions(game)
        action = rng.choice(actions)
        action_counts[action.type] += 1

        try:
            outcome = execute_action(game, action)
        except GameError as e:
            problems.append(f"turn {turn}: legal action {action.type} failed: {e}")
            break

        if action.type == "claim_route" and game.last_revealed:
            tunnel_attempts += 1
            if not outcome.success:
                tunnel_failures += 1

        problems.extend(check_invariants(game, owners, trains))

        turn += 1
        if turn > 3000:
            break

    return {
        'turns': turn,
        'scores': list(game.scores().values()),
        'trains_left': [p.trains for p in game.state.list_of_players],
        'routes_claimed': [(r.city_a, r.city_b) for r in game.board.routes() if r.claimed_by is not None],
        'tickets_completed': sum(c.completed for p in game.state.list_of_players for c in p.destinations),
        'tickets_total': sum(len(p.destinations) for p in game.state.list_of_players),
        'action_counts': action_counts,
        'tunnel_attempts': tunnel_attempts,
        'tunnel_failures': tunnel_failures,
        'problems': problems,
        'finished': game.game_over,
    }


def run_validation(num_games=100):
    all_scores = []
    all_turns = []
    route_popularity = Counter()
    total_action_counts = Counter()
    tickets_completed = 0
    tickets_total = 0
    tunnel_attempts = 0
    tunnel_failures = 0
    unfinished = 0
    problems = []

    print(f"Running {num_games} games...")

    for i in range(num_games):
        results = run_silent_game(seed=i)
        all_turns.append(results['turns'])
        all_scores.extend(results['scores'])
        route_popularity.update(results['routes_claimed'])
        total_action_counts += results['action_counts']
        tickets_completed += results['tickets_completed']
        tickets_total += results['tickets_total']
        tunnel_attempts += results['tunnel_attempts']
        tunnel_failures += results['tunnel_failures']
        unfinished += not results['finished']
        problems.extend(f"game {i}: {p}" for p in results['problems'])

    print("\n" + "=" * 50)
    print("VALIDATION RESULTS")
    print("=" * 50)

    print(f"\nGames finished: {num_games - unfinished}/{num_games}")
    print(f"Invariant violations: {len(problems)}")
    for problem in problems[:20]:
        print(f"  {problem}")

    print(f"\n--- TURNS ---")
    print(f"Min: {min(all_turns)}, Max: {max(all_turns)}, Mean: {statistics.mean(all_turns):.1f}")

    print(f"\n--- SCORES ---")
    print(f"Min: {min(all_scores)}, Max: {max(all_scores)}, Mean: {statistics.mean(all_scores):.1f}")
    if len(all_scores) > 1:
        print(f"Std: {statistics.stdev(all_scores):.1f}")

    print(f"\n--- TICKETS ---")
    rate = tickets_completed / tickets_total * 100 if tickets_total else 0
    print(f"Completed: {tickets_completed}/{tickets_total} ({rate:.1f}%)")

    print(f"\n--- TUNNELS ---")
    if tunnel_attempts:
        print(f"Attempts: {tunnel_attempts}, Failures: {tunnel_failures} ({tunnel_failures / tunnel_attempts * 100:.1f}%)")
    else:
        print("No tunnel attempts")

    print(f"\n--- ACTION DISTRIBUTION ---")
    total_actions = sum(total_action_counts.values())
    for action_type, count in total_action_counts.most_common():
        print(f"{action_type}: {count} ({count / total_actions * 100:.1f}%)")

    print(f"\n--- TOP 10 MOST CLAIMED ROUTES ---")
    for route, count in route_popularity.most_common(10):
        print(f"{route[0]} - {route[1]}: {count}")

    return not problems


if __name__ == "__main__":
    run_validation(100)
