"""Game constants and tunable settings."""

import os
from dataclasses import dataclass, fields
from pathlib import Path

DATA_DIR = Path(__file__).parent / 'data'

STARTING_TRAINS = 45
VISIBLE_SLOTS = 5
RESHUFFLE_THRESHOLD = 20
PURGE_COUNT = 3

# Points by train cost. There is no 7-length route on the supported boards.
ROUTE_POINTS = {1: 1, 2: 2, 3: 4, 4: 7, 5: 10, 6: 15, 8: 23}


@dataclass
class GameSettings:
    starting_trains: int = STARTING_TRAINS
    visible_slots: int = VISIBLE_SLOTS
    reshuffle_threshold: int = RESHUFFLE_THRESHOLD
    purge_count: int = PURGE_COUNT
    initial_train_cards: int = 7
    initial_destinations: int = 5
    initial_destinations_kept: int = 3
    destinations_per_draw: int = 3
    min_destinations_kept: int = 1
    final_round_trains: int = 2
    longest_path_bonus: int = 10
    min_players: int = 2
    max_players: int = 6

    @classmethod
    def from_env(cls) -> "GameSettings":
        """Build settings from ``TTR_*`` environment variables, e.g. ``TTR_STARTING_TRAINS``."""
        values = {}
        for field in fields(cls):
            raw = os.getenv(f"TTR_{field.name.upper()}")
            if raw is not None:
                values[field.name] = int(raw)
        return cls(**values)
