from .room import Room, Player
from .game import Action, Vote, GameResult, ChatMessage
from .stats import PlayerStats

__all__ = [
    "Room",
    "Player",
    "Action",
    "Vote",
    "GameResult",
    "ChatMessage",
    "PlayerStats",
]
