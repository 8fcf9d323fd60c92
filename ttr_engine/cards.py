from enum import Enum
from typing import Optional

from ttr_engine.errors import ValidationError


class Color(Enum):
    RED = "red"
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    BLACK = "black"
    WHITE = "white"
    PINK = "pink"
    ORANGE = "orange"
    MULTICOLOR = "multicolor"

    def __str__(self):
        return self.value

    @property
    def is_wild(self):
        return self is Color.MULTICOLOR

    @property
    def display_name(self):
        if self.is_wild:
            return "Wild"
        return self.value.capitalize()

    @classmethod
    def parse(cls, text):
        try:
            return cls(text.strip().lower())
        except ValueError:
            raise ValidationError(f"Invalid color: {text!r}") from None


WILD = Color.MULTICOLOR
CONCRETE_COLORS = [c for c in Color if not c.is_wild]


def require_player_id(player_id):
    if player_id is None or not str(player_id).strip():
        raise ValidationError("Player ID cannot be null or empty")


class CardKind(Enum):
    TRAIN = "TRAIN"
    DESTINATION = "DESTINATION"


class CardLocation(Enum):
    SUPPLY = "SUPPLY"
    DISCARD = "DISCARD"
    HAND = "HAND"


class Card:
    kind: CardKind

    def __init__(self, card_id):
        self.card_id = card_id
        self.location = CardLocation.SUPPLY
        self.player_id: Optional[str] = None

    def move_to_supply(self):
        self.location = CardLocation.SUPPLY
        self.player_id = None

    def move_to_discard(self):
        self.location = CardLocation.DISCARD
        self.player_id = None

    def move_to_hand(self, player_id):
        require_player_id(player_id)
        self.location = CardLocation.HAND
        self.player_id = player_id

    def is_in(self, location):
        return self.location is location


class TrainCard(Card):
    kind = CardKind.TRAIN

    def __init__(self, card_id, color: Color):
        super().__init__(card_id)
        self.color = color

    def __repr__(self):
        return f"TrainCard({self.card_id}, {self.color})"


class DestinationCard(Card):
    kind = CardKind.DESTINATION

    def __init__(self, card_id, city1: str, city2: str, points: int):
        super().__init__(card_id)
        if points < 0:
            raise ValidationError(f"Invalid points: {points}")
        self.city1 = city1
        self.city2 = city2
        self.points = points
        self._completed = False

    @property
    def completed(self):
        return self._completed

    def mark_completed(self):
        """Flip the completed flag once. Returns False if it was already set."""
        if self._completed:
            return False
        self._completed = True
        return True

    def __repr__(self):
        done = " COMPLETED" if self._completed else ""
        return f"DestinationCard[{self.card_id}: {self.city1} -> {self.city2} ({self.points} pts){done}]"
