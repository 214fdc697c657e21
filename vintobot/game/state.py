"""
Search-side game state and move types.

SearchState is an immutable snapshot of everything the bot's search may
reason about: public information (card counts, discard top, turn count),
the bot's beliefs (known cards with confidence) and, once determinized, a
fully resolved assignment of every hidden slot. Transitions never mutate a
state; they build a new one with dataclasses.replace().
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from vintobot.game.cards import Card
from vintobot.game.constants import MOVE_TYPES, PHASES, PHASE_TURN

# Confidence a known card must exceed to count as confidently known
CONFIDENT_THRESHOLD = 0.5


@dataclass(frozen=True)
class KnownCard:
    """A remembered card identity and how sure the bot is about it."""

    card: Optional[Card]
    confidence: float

    @property
    def is_confident(self) -> bool:
        return self.card is not None and self.confidence > CONFIDENT_THRESHOLD


@dataclass(frozen=True)
class ActionTarget:
    """A (player, position) target; position -1 targets the player itself."""

    player_id: str
    position: int


@dataclass(frozen=True)
class Move:
    """
    Tagged move.

    Attributes:
        type: One of MOVE_TYPES
        player_id: Player making the move
        targets: Action targets (use-action)
        swap_position: Hand position receiving the pending card (swap)
        declared_rank: Rank declared with a King (use-action)
        should_swap: Swap-or-not decision for peek-and-swap (use-action)
        toss_in_positions: Hand positions tossed in (toss-in)
    """

    type: str
    player_id: str
    targets: Tuple[ActionTarget, ...] = ()
    swap_position: Optional[int] = None
    declared_rank: Optional[str] = None
    should_swap: Optional[bool] = None
    toss_in_positions: Tuple[int, ...] = ()

    def __post_init__(self):
        """Validate move tag."""
        if self.type not in MOVE_TYPES:
            raise ValueError(f"Invalid move type: {self.type}. Must be one of {MOVE_TYPES}")

    def __str__(self) -> str:
        details = []
        if self.targets:
            details.append(
                "targets=" + ",".join(f"{t.player_id}[{t.position}]" for t in self.targets)
            )
        if self.swap_position is not None:
            details.append(f"position={self.swap_position}")
        if self.declared_rank is not None:
            details.append(f"rank={self.declared_rank}")
        if self.should_swap is not None:
            details.append(f"swap={self.should_swap}")
        if self.toss_in_positions:
            details.append(f"toss={list(self.toss_in_positions)}")
        suffix = f"({' '.join(details)})" if details else ""
        return f"{self.type}{suffix} by {self.player_id}"


@dataclass(frozen=True)
class PlayerState:
    """
    One player as seen by the deciding bot.

    Attributes:
        player_id: Player identifier
        card_count: Cards currently in hand
        known_cards: Position → KnownCard for slots the bot remembers
        score: Estimated hand total (known values plus an estimate per unknown)

    Compares by value but is not hashable (known_cards is a dict).
    """

    __hash__ = None

    player_id: str
    card_count: int
    known_cards: Dict[int, KnownCard] = field(default_factory=dict)
    score: float = 0.0

    def known_at(self, position: int) -> Optional[KnownCard]:
        return self.known_cards.get(position)


@dataclass(frozen=True)
class SearchState:
    """
    Immutable game snapshot for the search.

    Attributes:
        players: Player states in seat order
        current_player_index: Index of the player to move
        bot_player_id: Player the search decides for
        phase: One of PHASES
        discard_top: Top card of the discard pile
        deck_size: Estimated cards left in the draw pile
        pending_card: Drawn card awaiting use/swap/discard
        action_target_type: Action being resolved in the action phase
        peeked_targets: Targets already peeked during the current action
        toss_in_rank: Rank that may be tossed in during the toss-in phase
        toss_in_origin_index: Seat whose discard opened the toss-in window
            (None when the window was opened outside the search)
        turn_count: Turns played so far
        end_triggered: Whether Vinto has been called
        end_caller_id: Player who called Vinto
        is_terminal: Whether the round is over
        winner: Winning player id once terminal
        hidden_cards: (player_id, position) → Card, filled by determinization

    Compares by value but is not hashable (hidden_cards is a dict).
    """

    __hash__ = None

    players: Tuple[PlayerState, ...]
    current_player_index: int
    bot_player_id: str
    phase: str = PHASE_TURN
    discard_top: Optional[Card] = None
    deck_size: int = 0
    pending_card: Optional[Card] = None
    action_target_type: Optional[str] = None
    peeked_targets: Tuple[ActionTarget, ...] = ()
    toss_in_rank: Optional[str] = None
    toss_in_origin_index: Optional[int] = None
    turn_count: int = 0
    end_triggered: bool = False
    end_caller_id: Optional[str] = None
    is_terminal: bool = False
    winner: Optional[str] = None
    hidden_cards: Dict[Tuple[str, int], Card] = field(default_factory=dict)

    def __post_init__(self):
        """Validate phase tag."""
        if self.phase not in PHASES:
            raise ValueError(f"Invalid phase: {self.phase}. Must be one of {PHASES}")

    @property
    def current_player(self) -> PlayerState:
        return self.players[self.current_player_index]

    @property
    def is_determinized(self) -> bool:
        return bool(self.hidden_cards)

    def player_index(self, player_id: str) -> int:
        """
        Seat index of a player.

        Raises:
            ValueError: If no player has this id
        """
        for index, player in enumerate(self.players):
            if player.player_id == player_id:
                return index
        raise ValueError(f"Unknown player: {player_id}")

    def player(self, player_id: str) -> PlayerState:
        return self.players[self.player_index(player_id)]

    @property
    def bot_player(self) -> PlayerState:
        return self.player(self.bot_player_id)

    def card_at(self, player_id: str, position: int) -> Optional[Card]:
        """
        Best available identity of a slot.

        Uses the determinized card when present, otherwise the confidently
        remembered card, otherwise None.
        """
        card = self.hidden_cards.get((player_id, position))
        if card is not None:
            return card
        known = self.player(player_id).known_at(position)
        if known is not None and known.is_confident:
            return known.card
        return None
