"""
Decision context and decision result records.

The game orchestrator builds a DecisionContext for every question it asks a
bot, and gets back plain values or the small result records below. Nothing
here is persisted or serialized; the boundary is in-process only.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from vintobot.game.cards import Card
from vintobot.game.constants import DRAW, TAKE_DISCARD
from vintobot.game.state import ActionTarget


@dataclass
class PlayerView:
    """
    One seat as the orchestrator exposes it to a bot.

    Attributes:
        player_id: Player identifier
        card_count: Cards in hand
        cards: Actual hand; only supplied for the deciding bot
        known_positions: Positions of `cards` the bot has confidently seen
    """

    player_id: str
    card_count: int
    cards: Optional[List[Card]] = None
    known_positions: Set[int] = field(default_factory=set)


@dataclass
class ActionContext:
    """
    A special action currently being resolved by the bot.

    Attributes:
        target_type: Action tag (see CARD_ACTIONS)
        card: Card whose action is being played
        peek_targets: Targets already peeked during this action
        peeked_cards: Cards seen at `peek_targets`, in the same order
    """

    target_type: str
    card: Optional[Card] = None
    peek_targets: List[ActionTarget] = field(default_factory=list)
    peeked_cards: List[Card] = field(default_factory=list)


@dataclass
class DecisionContext:
    """
    Everything the bot may know when asked for a decision.

    Attributes:
        bot_id: Deciding bot
        tier: Skill tier name
        bot_player: The bot's own seat, with its hand
        players: Every seat in turn order, the bot included
        turn_count: Turns played so far
        end_triggered: Whether Vinto has been called
        end_caller_id: Who called Vinto
        discard_top: Top of the discard pile
        pending_card: Drawn card awaiting a decision
        current_action: Special action being resolved
        opponent_knowledge: player_id → position → card the bot has seen
        deck_size: Cards left in the draw pile (estimated when omitted)
    """

    bot_id: str
    bot_player: PlayerView
    players: List[PlayerView]
    tier: str = 'moderate'
    turn_count: int = 0
    end_triggered: bool = False
    end_caller_id: Optional[str] = None
    discard_top: Optional[Card] = None
    pending_card: Optional[Card] = None
    current_action: Optional[ActionContext] = None
    opponent_knowledge: Dict[str, Dict[int, Card]] = field(default_factory=dict)
    deck_size: Optional[int] = None


@dataclass
class TurnDecision:
    """Turn-start choice: 'draw' or 'take-discard'."""

    action: str = DRAW

    @property
    def takes_discard(self) -> bool:
        return self.action == TAKE_DISCARD


@dataclass
class ActionDecision:
    """
    Resolution of a special action.

    An empty target list means the action is skipped.
    """

    targets: List[ActionTarget] = field(default_factory=list)
    should_swap: Optional[bool] = None
    declared_rank: Optional[str] = None

    @property
    def is_skip(self) -> bool:
        return not self.targets and self.declared_rank is None
