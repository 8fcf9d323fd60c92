import csv
import logging
import random
import threading
from collections import Counter, deque
from pathlib import Path

from ttr_engine.cards import Color, DestinationCard, TrainCard, require_player_id
from ttr_engine.config import DATA_DIR, GameSettings
from ttr_engine.errors import EmptySupplyError, ValidationError

logger = logging.getLogger(__name__)


class SupplyPile:
    """Draw queue plus discard pile.

    Every card handed out by the pile lives in exactly one of the draw queue,
    the discard pile or a player's hand. Draws hold the pile lock so two
    callers never receive the same card.
    """

    def __init__(self, cards=(), rng=None, shuffle=True):
        self.rng = rng or random.Random()
        self.draw_pile = deque()
        self.discard_pile = []
        self._lock = threading.RLock()
        for card in cards:
            self.add_card(card)
        if shuffle:
            self.shuffle_draw_pile()

    def __len__(self):
        return len(self.draw_pile)

    def add_card(self, card):
        with self._lock:
            card.move_to_supply()
            self.draw_pile.append(card)

    def card_count(self):
        return len(self.draw_pile) + len(self.discard_pile)

    def shuffle_draw_pile(self):
        with self._lock:
            cards = list(self.draw_pile)
            self.rng.shuffle(cards)
            self.draw_pile = deque(cards)

    def reshuffle(self):
        with self._lock:
            if not self.discard_pile:
                return False
            cards = self.discard_pile
            self.discard_pile = []
            self.rng.shuffle(cards)
            for card in cards:
                card.move_to_supply()
            self.draw_pile.extend(cards)
            logger.info("Reshuffled %d discarded cards into the draw pile", len(cards))
            return True

    def discard(self, cards):
        with self._lock:
            for card in cards:
                card.move_to_discard()
                self.discard_pile.append(card)


class TrainCardSupply(SupplyPile):
    def __init__(self, cards=(), rng=None, shuffle=True, settings=None):
        settings = settings or GameSettings()
        self.slots = settings.visible_slots
        self.reshuffle_threshold = settings.reshuffle_threshold
        self.purge_count = settings.purge_count
        self.visible = [None] * self.slots
        super().__init__(cards, rng, shuffle)
        self.setup_visible()

    @property
    def visible_cards(self):
        return list(self.visible)

    def card_count(self):
        return super().card_count() + sum(1 for card in self.visible if card is not None)

    def setup_visible(self):
        with self._lock:
            self.refill_visible()
            self.check_visible()

    def _check_low_water(self):
        if len(self.draw_pile) <= self.reshuffle_threshold:
            self.reshuffle()

    def _take_head(self):
        if not self.draw_pile and not self.reshuffle():
            return None
        return self.draw_pile.popleft()

    def draw_mystery(self, player_id):
        require_player_id(player_id)
        with self._lock:
            card = self._take_head()
            if card is None:
                raise EmptySupplyError("No train cards left to draw")
            card.move_to_hand(player_id)
            self._check_low_water()
            return card

    def draw_visible(self, slot, player_id):
        require_player_id(player_id)
        with self._lock:
            if not isinstance(slot, int) or not 0 <= slot < self.slots:
                raise ValidationError(f"Visible slot must be between 0 and {self.slots - 1}, got {slot!r}")
            card = self.visible[slot]
            if card is None:
                raise ValidationError(f"Visible slot {slot} is empty")
            self.visible[slot] = None
            card.move_to_hand(player_id)
            self.refill_visible()
            self.check_visible()
            return card

    def refill_visible(self):
        with self._lock:
            drew = False
            for i in range(self.slots):
                if self.visible[i] is not None:
                    continue
                card = self._take_head()
                if card is None:
                    break
                self.visible[i] = card
                drew = True
            if drew:
                self._check_low_water()

    def _colors_to_purge(self):
        counts = Counter(card.color for card in self.visible if card is not None)
        return {color for color, count in counts.items() if count >= self.purge_count}

    def _has_replacements(self, colors):
        return any(card.color not in colors for card in self.draw_pile) or \
            any(card.color not in colors for card in self.discard_pile)

    def needs_purge(self):
        colors = self._colors_to_purge()
        return bool(colors) and self._has_replacements(colors)

    def check_visible(self):
        """Discard every color showing three or more times and refill, until none does."""
        with self._lock:
            for _ in range(self.card_count() + 1):
                colors = self._colors_to_purge()
                if not colors:
                    return
                if not self._has_replacements(colors):
                    logger.debug("No other colors left to draw, keeping visible row as is")
                    return

                purged = []
                for i, card in enumerate(self.visible):
                    if card is not None and card.color in colors:
                        purged.append(card)
                        self.visible[i] = None
                self.discard(purged)
                logger.debug("Purged %d visible cards (%s)", len(purged), ", ".join(sorted(str(c) for c in colors)))
                self.refill_visible()

    def reveal(self, count):
        """Turn over up to ``count`` cards from the draw pile straight onto the discard pile."""
        with self._lock:
            revealed = []
            for _ in range(count):
                card = self._take_head()
                if card is None:
                    break
                revealed.append(card)
            self.discard(revealed)
            if revealed:
                self._check_low_water()
            return revealed


class DestinationCardSupply(SupplyPile):
    def draw_destinations(self, player_id, count):
        require_player_id(player_id)
        if count <= 0:
            raise ValidationError("Must draw at least one destination card")
        with self._lock:
            if len(self.draw_pile) < count:
                raise EmptySupplyError(f"Only {len(self.draw_pile)} destination cards left, {count} requested")
            drawn = [self.draw_pile.popleft() for _ in range(count)]
            for card in drawn:
                card.move_to_hand(player_id)
            return drawn

    def return_to_bottom(self, cards):
        with self._lock:
            for card in cards:
                self.add_card(card)


def _read_rows(path, columns):
    try:
        with open(path, 'r', newline='') as f:
            reader = csv.reader(f)
            for row in reader:
                if not any(cell.strip() for cell in row):
                    continue
                if len(row) != columns:
                    logger.warning("%s line %d: expected %d columns, found %d", path, reader.line_num, columns, len(row))
                    continue
                yield reader.line_num, [cell.strip() for cell in row]
    except OSError as e:
        logger.warning("Could not read card file %s: %s", path, e)


def load_train_cards(path=None, map_name='europe'):
    path = Path(path) if path else DATA_DIR / 'colors' / f'{map_name}.csv'
    cards = []
    for line_number, (card_id, color) in _read_rows(path, 2):
        try:
            cards.append(TrainCard(card_id, Color.parse(color)))
        except ValidationError as e:
            logger.warning("%s line %d: %s", path, line_number, e)
    logger.info("Loaded %d train cards from %s", len(cards), path)
    return cards


def load_destination_cards(path=None, map_name='europe'):
    path = Path(path) if path else DATA_DIR / 'destinations' / f'{map_name}.csv'
    cards = []
    for line_number, (card_id, city1, city2, points) in _read_rows(path, 4):
        try:
            cards.append(DestinationCard(card_id, city1, city2, int(points)))
        except ValueError as e:
            logger.warning("%s line %d: %s", path, line_number, e)
    logger.info("Loaded %d destination cards from %s", len(cards), path)
    return cards
