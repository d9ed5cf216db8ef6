"""Game domain services: session state machine, scoring and validation.

This package holds the pure(ish) game logic that HTTP routes and socket
handlers call into, keeping transport concerns separated from the core
game mechanics.
"""

from .manager import DisconnectResult, GameStateManager, JoinResult, MAX_PLAYERS
from .state import Phase, Player, PlayerGuesses, Response, ResultEntry, Round, RoundResults, Session

__all__ = [
    'GameStateManager',
    'JoinResult',
    'DisconnectResult',
    'MAX_PLAYERS',
    'Phase',
    'Session',
    'Player',
    'Round',
    'Response',
    'PlayerGuesses',
    'RoundResults',
    'ResultEntry',
]
