"""
Game constants for the Vinto card game.

This module defines the card definitions, the rank → special action map,
the canonical deck composition, and the tags used for moves, game phases
and action targets.
"""

from typing import Dict, List

# Card definitions
RANKS = ['2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K', 'A', 'Joker']

RANK_VALUES = {
    '2': 2,
    '3': 3,
    '4': 4,
    '5': 5,
    '6': 6,
    '7': 7,
    '8': 8,
    '9': 9,
    '10': 10,
    'J': 10,
    'Q': 10,
    'K': 0,
    'A': 1,
    'Joker': -1,
}

# Special actions
PEEK_OWN = 'peek-own'
PEEK_OPPONENT = 'peek-opponent'
SWAP_CARDS = 'swap-cards'
PEEK_AND_SWAP = 'peek-and-swap'
FORCE_DRAW = 'force-draw'
DECLARE_ACTION = 'declare-action'

CARD_ACTIONS = [
    PEEK_OWN,
    PEEK_OPPONENT,
    SWAP_CARDS,
    PEEK_AND_SWAP,
    FORCE_DRAW,
    DECLARE_ACTION,
]

RANK_ACTIONS = {
    '7': PEEK_OWN,
    '8': PEEK_OWN,
    '9': PEEK_OPPONENT,
    '10': PEEK_OPPONENT,
    'J': SWAP_CARDS,
    'Q': PEEK_AND_SWAP,
    'K': DECLARE_ACTION,
    'A': FORCE_DRAW,
}

# Ranks a King may declare
DECLARABLE_RANKS = ['7', '8', '9', '10', 'J', 'Q', 'A']

# Canonical deck: four of each rank, two Jokers
RANK_COUNTS: Dict[str, int] = {rank: (2 if rank == 'Joker' else 4) for rank in RANKS}
CANONICAL_DECK: List[str] = [rank for rank in RANKS for _ in range(RANK_COUNTS[rank])]
DECK_SIZE = len(CANONICAL_DECK)

# Estimated value of a card nobody has seen
UNKNOWN_CARD_VALUE = 6

# Move tags
DRAW = 'draw'
TAKE_DISCARD = 'take-discard'
USE_ACTION = 'use-action'
SWAP = 'swap'
DISCARD = 'discard'
TOSS_IN = 'toss-in'
CALL_VINTO = 'call-vinto'
PASS = 'pass'

MOVE_TYPES = [DRAW, TAKE_DISCARD, USE_ACTION, SWAP, DISCARD, TOSS_IN, CALL_VINTO, PASS]

# Game phases seen by the search
PHASE_TURN = 'turn'  # Choose draw / take-discard / call
PHASE_DRAWN = 'drawn'  # Pending card: use, swap or discard
PHASE_ACTION = 'action'  # Choosing targets for a special action
PHASE_TOSS_IN = 'toss-in'  # Matching-rank window after a discard

PHASES = [PHASE_TURN, PHASE_DRAWN, PHASE_ACTION, PHASE_TOSS_IN]

# Game constraints
MIN_PLAYERS = 2
MAX_PLAYERS = 6
TURN_LIMIT = 200
