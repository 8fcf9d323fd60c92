import logging
from pathlib import Path

from ttr_engine.board import load_board
from ttr_engine.config import DATA_DIR, GameSettings
from ttr_engine.errors import IllegalActionError, ValidationError
from ttr_engine.helpers.game_state import GameState
from ttr_engine.helpers.supply import load_destination_cards, load_train_cards

logger = logging.getLogger(__name__)

TUNNEL_REVEAL = 3


class Game:
    def __init__(self, player_ids, board, train_cards, destination_cards, settings=None, rng=None):
        self.settings = settings or GameSettings()
        self.board = board
        self.state = GameState(player_ids, board, train_cards, destination_cards, self.settings, rng)
        self.num_players = len(player_ids)
        self.current_player_idx = 0
        self.cards_drawn = 0
        self.turn = 0
        self.setup_complete = False
        self.final_round = False
        self.final_round_starter = None
        self.game_over = False
        self.last_revealed = []
        self.longest_paths = {}
        self._scored = False

        self._deal_initial_cards()

    @classmethod
    def from_files(cls, player_ids, map_name='europe', data_dir=None, settings=None, rng=None):
        data_dir = Path(data_dir) if data_dir else DATA_DIR
        board = load_board(data_dir / 'cities' / f'{map_name}.txt', data_dir / 'routes' / f'{map_name}.csv')
        train_cards = load_train_cards(data_dir / 'colors' / f'{map_name}.csv')
        destination_cards = load_destination_cards(data_dir / 'destinations' / f'{map_name}.csv')
        return cls(player_ids, board, train_cards, destination_cards, settings, rng)

    def _deal_initial_cards(self):
        players = self.state.list_of_players
        for _ in range(self.settings.initial_train_cards):
            for player in players:
                player.take_mystery()

        supply = self.state.destination_supply
        for player in players:
            count = min(self.settings.initial_destinations, len(supply))
            if count == 0:
                continue
            offered = player.offer_destinations(supply, count)
            keep = min(self.settings.initial_destinations_kept, count)
            self.state.pending_destinations[player.player_id] = (offered, keep)

        self.setup_complete = not self.state.pending_destinations

    def get_current_player(self):
        return self.state.list_of_players[self.current_player_idx]

    def get_player(self, player_id):
        return self.state.get_player(player_id)

    def acting_player(self):
        """The player who must act next: anyone still choosing destinations, else the current player."""
        for player in self.state.list_of_players:
            if player.player_id in self.state.pending_destinations:
                return player
        return self.get_current_player()

    def scores(self):
        return {player.player_id: player.score for player in self.state.list_of_players}

    def _require_turn(self):
        if self.game_over:
            raise IllegalActionError("The game is over")
        if self.state.pending_destinations:
            raise IllegalActionError("Destination cards must be chosen first")
        return self.get_current_player()

    def _require_fresh_turn(self):
        player = self._require_turn()
        if self.cards_drawn:
            raise IllegalActionError("Finish drawing train cards first")
        return player

    def take_card(self, slot=None):
        player = self._require_turn()
        supply = self.state.train_supply

        if slot is None:
            card = player.take_mystery()
        else:
            shown = supply.visible[slot] if isinstance(slot, int) and 0 <= slot < supply.slots else None
            if shown is not None and shown.color.is_wild and self.cards_drawn:
                raise IllegalActionError("A face-up wild card can only be taken as the first card")
            card = player.take_visible(slot)
            if card.color.is_wild:
                self.cards_drawn += 1

        self.cards_drawn += 1
        if self.cards_drawn >= 2:
            self._end_turn()
        return card

    def can_draw_train_card(self):
        supply = self.state.train_supply
        if supply.draw_pile or supply.discard_pile:
            return True
        return any(card is not None and not (self.cards_drawn and card.color.is_wild) for card in supply.visible)

    def end_turn(self):
        """Pass the rest of the turn when no train card is left to take."""
        self._require_turn()
        if self.can_draw_train_card():
            raise IllegalActionError("Train cards are still available to draw")
        self._end_turn()

    def draw_destinations(self):
        player = self._require_fresh_turn()
        supply = self.state.destination_supply
        count = min(self.settings.destinations_per_draw, len(supply))
        if count == 0:
            raise IllegalActionError("No destination cards left")
        offered = player.offer_destinations(supply, count)
        self.state.pending_destinations[player.player_id] = (offered, self.settings.min_destinations_kept)
        return offered

    def keep_destinations(self, indices, player_id=None):
        player = self.get_player(player_id) if player_id is not None else self.acting_player()
        if self.game_over:
            raise IllegalActionError("The game is over")
        if player.player_id not in self.state.pending_destinations:
            raise IllegalActionError(f"{player.player_id} has no destination cards to choose from")

        offered, minimum = self.state.pending_destinations[player.player_id]
        indices = sorted(set(indices))
        if any(not 0 <= i < len(offered) for i in indices):
            raise ValidationError(f"Destination choices must be between 0 and {len(offered) - 1}")
        if len(indices) < minimum:
            raise IllegalActionError(f"Keep at least {minimum} destination cards")

        kept = [offered[i] for i in indices]
        player.keep_destinations(offered, kept, self.state.destination_supply)
        del self.state.pending_destinations[player.player_id]
        for card in kept:
            player.check_destination_card_completed(card)

        if self.setup_complete:
            self._end_turn()
        elif not self.state.pending_destinations:
            self.setup_complete = True
        return kept

    def tunnel_surcharge(self, color):
        self.last_revealed = self.state.train_supply.reveal(TUNNEL_REVEAL)
        return sum(1 for card in self.last_revealed if card.color is color or card.color.is_wild)

    def build_route(self, city_a, city_b, color, route_key=None):
        player = self._require_fresh_turn()
        self.last_revealed = []

        check = player.can_build_route(city_a, city_b, color, 0, route_key)
        if not check.success:
            return check

        route = self.board.open_route(city_a, city_b, route_key)
        extra_cost = 0
        if route.is_tunnel:
            extra_cost = self.tunnel_surcharge(route.color if route.color is not None else color)
            logger.debug("Tunnel %s-%s costs %d extra", route.city_a, route.city_b, extra_cost)

        result = player.build_route(city_a, city_b, color, extra_cost, route.key)
        if result.success:
            player.check_destinations()
            self._end_turn()
        elif route.is_tunnel:
            # the revealed cards are spent either way
            self._end_turn()
        return result

    def _end_turn(self):
        player = self.get_current_player()
        self.cards_drawn = 0
        self.turn += 1

        if player.trains <= self.settings.final_round_trains and not self.final_round:
            self.final_round = True
            self.final_round_starter = self.current_player_idx

        self.current_player_idx = (self.current_player_idx + 1) % self.num_players

        if self.final_round and self.current_player_idx == self.final_round_starter:
            self.game_over = True
            self.final_scoring()

    def final_scoring(self):
        if self._scored:
            return self.scores()
        self._scored = True
        players = self.state.list_of_players
        for player in players:
            player.check_destinations()

        self.longest_paths = {p.player_id: self.board.longest_path_length(p.player_id) for p in players}
        best = max(self.longest_paths.values(), default=0)
        if best > 0:
            for player in players:
                if self.longest_paths[player.player_id] == best:
                    player.award_bonus(self.settings.longest_path_bonus)

        logger.info("Final scores: %s", self.scores())
        return self.scores()
