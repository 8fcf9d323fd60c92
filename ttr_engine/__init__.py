from .game import Game
