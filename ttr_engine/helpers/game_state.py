import random

from ttr_engine.cards import require_player_id
from ttr_engine.config import GameSettings
from ttr_engine.errors import ValidationError
from .player_state import Player
from .supply import DestinationCardSupply, TrainCardSupply


class GameState:
    def __init__(self, player_ids, board, train_cards, destination_cards, settings=None, rng=None):
        self.settings = settings or GameSettings()
        self._check_players(player_ids)

        self.rng = rng or random.Random()
        self.board = board
        self.train_supply = TrainCardSupply(train_cards, rng=self.rng, settings=self.settings)
        self.destination_supply = DestinationCardSupply(destination_cards, rng=self.rng)
        self.total_train_cards = self.train_supply.card_count()

        self.list_of_players = [
            Player(player_id, board, self.train_supply, self.settings.starting_trains)
            for player_id in player_ids
        ]
        # player_id -> (offered cards, minimum to keep)
        self.pending_destinations = {}

    def _check_players(self, player_ids):
        count = len(player_ids)
        if not self.settings.min_players <= count <= self.settings.max_players:
            raise ValidationError(
                f"Need between {self.settings.min_players} and {self.settings.max_players} players, got {count}"
            )
        for player_id in player_ids:
            require_player_id(player_id)
        if len(set(player_ids)) != count:
            raise ValidationError("Player names must be unique")

    @property
    def face_up_cards(self):
        return self.train_supply.visible_cards

    def get_player(self, player_id):
        for player in self.list_of_players:
            if player.player_id == player_id:
                return player
        raise ValidationError(f"Unknown player {player_id!r}")

    def train_cards_accounted(self):
        return self.train_supply.card_count() + sum(p.card_count() for p in self.list_of_players)
