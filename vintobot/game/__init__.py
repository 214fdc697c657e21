"""
Vinto game model for the bot's search.

This package contains the card type, the immutable search state and move
types, and the default move generator / state transition used by the MCTS
engine. Turn sequencing of the real game lives with the orchestrator.
"""

from vintobot.game.constants import (
    RANKS,
    RANK_VALUES,
    RANK_ACTIONS,
    RANK_COUNTS,
    CANONICAL_DECK,
    DECK_SIZE,
    MOVE_TYPES,
    PHASES,
)
from vintobot.game.cards import (
    Card,
    VintoBotException,
    DecisionContextError,
    IllegalMoveException,
)
from vintobot.game.state import (
    ActionTarget,
    KnownCard,
    Move,
    PlayerState,
    SearchState,
)
from vintobot.game.rules import VintoRules

__all__ = [
    "RANKS",
    "RANK_VALUES",
    "RANK_ACTIONS",
    "RANK_COUNTS",
    "CANONICAL_DECK",
    "DECK_SIZE",
    "MOVE_TYPES",
    "PHASES",
    "Card",
    "VintoBotException",
    "DecisionContextError",
    "IllegalMoveException",
    "ActionTarget",
    "KnownCard",
    "Move",
    "PlayerState",
    "SearchState",
    "VintoRules",
]
