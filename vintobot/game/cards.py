"""
Card type and exceptions for the Vinto bot.

Cards are immutable values. The bot never needs a deck object: deck
construction and shuffling belong to the game orchestrator, and the search
only ever reasons about ranks drawn from the canonical multiset.
"""

from dataclasses import dataclass
from typing import Optional
from vintobot.game.constants import RANKS, RANK_VALUES, RANK_ACTIONS


# ============================================================================
# Custom Exceptions
# ============================================================================


class VintoBotException(Exception):
    """Base exception for Vinto bot errors."""

    pass


class DecisionContextError(VintoBotException):
    """Raised when the orchestrator supplies a context the bot cannot act on."""

    def __init__(self, bot_id: str, reason: str):
        self.bot_id = bot_id
        self.reason = reason
        super().__init__(f"Invalid decision context for bot {bot_id!r}: {reason}")


class IllegalMoveException(VintoBotException):
    """Raised when a move cannot be applied to a search state."""

    def __init__(self, move, reason: str):
        self.move = move
        self.reason = reason
        super().__init__(f"Cannot apply {move}: {reason}")


# ============================================================================
# Card Class
# ============================================================================

SAMPLED_SUFFIX = '-sampled'


@dataclass(frozen=True)
class Card:
    """
    Immutable playing card.

    Attributes:
        rank: Card rank (2-10, J, Q, K, A, Joker)
        card_id: Identifier assigned by the orchestrator; sampled cards get
            an id ending in '-sampled'
    """

    rank: str
    card_id: str = ''

    def __post_init__(self):
        """Validate card creation."""
        if self.rank not in RANKS:
            raise ValueError(f"Invalid rank: {self.rank}. Must be one of {RANKS}")

    @property
    def value(self) -> int:
        """Points this card counts at round end."""
        return RANK_VALUES[self.rank]

    @property
    def action(self) -> Optional[str]:
        """Special action of this rank, or None for plain cards."""
        return RANK_ACTIONS.get(self.rank)

    @property
    def has_action(self) -> bool:
        return self.rank in RANK_ACTIONS

    @property
    def is_sampled(self) -> bool:
        """True for cards synthesized by determinization."""
        return self.card_id.endswith(SAMPLED_SUFFIX)

    @classmethod
    def sampled(cls, rank: str, player_id: str, position: int) -> 'Card':
        """Synthesize a card for an unknown slot."""
        return cls(rank, f"{player_id}-{position}{SAMPLED_SUFFIX}")

    def __str__(self) -> str:
        return self.rank

    def __repr__(self) -> str:
        if self.card_id:
            return f"Card('{self.rank}', '{self.card_id}')"
        return f"Card('{self.rank}')"
