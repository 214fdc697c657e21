"""
Decision façade: the only entry point the game orchestrator calls.

Every decision method follows the same three steps:
    1. Feed what the bot currently knows (its own seen positions and the
       opponent cards it has seen) into its CardMemoryStore
    2. Build a SearchState snapshot with the bot to move in the phase the
       question is about
    3. Run one MCTS search and read the answer off the chosen move's tag

Nothing is cached between calls; each call runs a full search. Methods are
async only so the orchestrator can interleave an optional "thinking" delay;
the search itself runs synchronously to completion.

Example:
    >>> service = MCTSBotDecisionService('hard')
    >>> decision = asyncio.run(service.decide_turn_action(context))
    >>> decision.action
    'draw'
"""

import asyncio
import logging
from typing import Callable, Optional, Union

import numpy as np

from vintobot.bot.context import ActionDecision, DecisionContext, TurnDecision
from vintobot.config import TierConfig, get_tier_config
from vintobot.game.cards import DecisionContextError
from vintobot.game.constants import (
    CALL_VINTO,
    DECK_SIZE,
    DECLARE_ACTION,
    DRAW,
    PEEK_AND_SWAP,
    PHASE_ACTION,
    PHASE_DRAWN,
    PHASE_TOSS_IN,
    PHASE_TURN,
    RANK_VALUES,
    SWAP,
    TAKE_DISCARD,
    TOSS_IN,
    UNKNOWN_CARD_VALUE,
    USE_ACTION,
)
from vintobot.game.rules import VintoRules
from vintobot.game.state import CONFIDENT_THRESHOLD, KnownCard, Move, PlayerState, SearchState
from vintobot.mcts.evaluator import StateEvaluator
from vintobot.mcts.memory import CardMemoryStore
from vintobot.mcts.search import MCTS, SearchResult

logger = logging.getLogger(__name__)

FALLBACK_DECLARATION = 'Q'


class MCTSBotDecisionService:
    """
    MCTS-backed decision maker for one bot seat.

    Attributes:
        config: Tier configuration shared by memory and search
        rules: Move generator and state transition
        evaluator: Rollout scorer
        rng: Random generator for memory and search
        clock: Millisecond clock for memory and search (None: defaults)
        thinking_delay: Seconds to sleep before each search
        bot_id: Bot the memory currently belongs to
        memory: The bot's CardMemoryStore (created on first decision)
        last_result: SearchResult of the most recent search
    """

    def __init__(
        self,
        tier: Union[str, TierConfig] = 'moderate',
        rules: Optional[VintoRules] = None,
        evaluator: Optional[StateEvaluator] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Optional[Callable[[], float]] = None,
        thinking_delay: float = 0.0,
    ):
        """
        Initialize the service.

        Args:
            tier: Tier name or explicit TierConfig
            rules: Rules used for generation and transitions (default: VintoRules())
            evaluator: State evaluator (default: StateEvaluator())
            rng: Random generator (default: fresh unseeded generator)
            clock: Millisecond clock (default: monotonic clocks)
            thinking_delay: Seconds to wait before searching

        Raises:
            ValueError: If the tier is unknown or its config is invalid
        """
        self.config = get_tier_config(tier) if isinstance(tier, str) else tier
        self.config.validate()
        self.rules = rules if rules is not None else VintoRules()
        self.evaluator = evaluator if evaluator is not None else StateEvaluator()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock
        self.thinking_delay = thinking_delay

        self.bot_id: Optional[str] = None
        self.memory: Optional[CardMemoryStore] = None
        self.last_result: Optional[SearchResult] = None

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    async def decide_turn_action(self, context: DecisionContext) -> TurnDecision:
        """Draw from the deck or take the discard top."""
        state = self._prepare(context, PHASE_TURN)
        move = await self._search(state)
        if move.type == TAKE_DISCARD:
            return TurnDecision(TAKE_DISCARD)
        return TurnDecision(DRAW)

    async def should_use_action(self, context: DecisionContext) -> bool:
        """Whether to play the pending card's special action."""
        card = context.pending_card
        if card is None or not card.has_action:
            return False
        state = self._prepare(context, PHASE_DRAWN, pending_card=card)
        move = await self._search(state)
        return move.type == USE_ACTION

    async def select_action_targets(self, context: DecisionContext) -> ActionDecision:
        """
        Choose targets for the action being resolved.

        Returns:
            ActionDecision; empty targets (and no declared rank) means skip

        Raises:
            DecisionContextError: If no action is being resolved
        """
        state = self._prepare_action(context)
        move = await self._search(state)
        if move.type != USE_ACTION:
            return ActionDecision()
        return ActionDecision(
            targets=list(move.targets),
            should_swap=move.should_swap,
            declared_rank=move.declared_rank,
        )

    async def should_swap_after_peek(self, context: DecisionContext) -> bool:
        """
        Peek-and-swap follow-up: swap the two peeked cards or not.

        The peeked cards are remembered before searching.
        """
        action = context.current_action
        if action is None or len(action.peek_targets) != 2:
            raise DecisionContextError(
                context.bot_id, "peek-and-swap needs exactly two peeked targets"
            )
        if len(action.peeked_cards) != len(action.peek_targets):
            raise DecisionContextError(
                context.bot_id,
                f"{len(action.peeked_cards)} peeked cards for "
                f"{len(action.peek_targets)} peeked targets",
            )

        self._validate(context)
        self._initialize_if_needed(context)
        for target, card in zip(action.peek_targets, action.peeked_cards):
            self._observe_if_new(card, target.player_id, target.position)

        state = self._prepare(
            context,
            PHASE_ACTION,
            action_target_type=PEEK_AND_SWAP,
            peeked_targets=tuple(action.peek_targets),
        )
        move = await self._search(state)
        return move.type == USE_ACTION and move.should_swap is True

    async def select_king_declaration(self, context: DecisionContext) -> str:
        """Rank to declare with a King ('Q' when the search declares nothing)."""
        state = self._prepare(context, PHASE_ACTION, action_target_type=DECLARE_ACTION)
        move = await self._search(state)
        if move.type == USE_ACTION and move.declared_rank is not None:
            return move.declared_rank

        logger.warning(
            f"{context.bot_id} found no King declaration, declaring {FALLBACK_DECLARATION}"
        )
        return FALLBACK_DECLARATION

    async def should_participate_in_toss_in(
        self, context: DecisionContext, discarded_rank: str
    ) -> bool:
        """
        Whether to toss in a remembered card of `discarded_rank`.

        Negative-valued ranks (Jokers) are kept rather than tossed in.
        """
        if RANK_VALUES.get(discarded_rank, 0) < 0:
            return False
        state = self._prepare(context, PHASE_TOSS_IN, toss_in_rank=discarded_rank)
        if not any(m.type == TOSS_IN for m in self.rules.generate(state)):
            return False
        move = await self._search(state)
        return move.type == TOSS_IN

    async def select_best_swap_position(self, context: DecisionContext) -> Optional[int]:
        """
        Hand position for the pending card.

        Returns:
            Position to swap into, or None to discard the card
        """
        if context.pending_card is None:
            return None
        state = self._prepare(context, PHASE_DRAWN, pending_card=context.pending_card)
        move = await self._search(state)
        if move.type == SWAP:
            return move.swap_position
        return None

    async def should_call_vinto(self, context: DecisionContext) -> bool:
        """Whether to end the round now; never before two full rotations."""
        if context.end_triggered:
            return False
        if context.turn_count < 2 * len(context.players):
            return False
        state = self._prepare(context, PHASE_TURN)
        move = await self._search(state)
        return move.type == CALL_VINTO

    def process_turn_boundary(self) -> int:
        """Apply per-turn forgetting and decay to the bot's memory."""
        if self.memory is None:
            return 0
        return self.memory.process_turn_boundary()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _search(self, state: SearchState) -> Move:
        if self.thinking_delay > 0:
            await asyncio.sleep(self.thinking_delay)

        mcts = MCTS(
            self.config,
            generator=self.rules,
            transition=self.rules,
            evaluator=self.evaluator,
            rng=self.rng,
            clock=self.clock,
        )
        result = mcts.search(state, self.memory)
        self.last_result = result

        if result.is_pass:
            logger.debug(f"{state.bot_player_id} search found no move, using default")
        return result.move

    def _prepare(self, context: DecisionContext, phase: str, **fields) -> SearchState:
        self._validate(context)
        self._initialize_if_needed(context)
        self._update_memory_from_context(context)
        self.memory.decay()
        return self._build_state(context, phase, **fields)

    def _prepare_action(self, context: DecisionContext) -> SearchState:
        action = context.current_action
        if action is None:
            raise DecisionContextError(context.bot_id, "no action is being resolved")
        return self._prepare(
            context,
            PHASE_ACTION,
            action_target_type=action.target_type,
            peeked_targets=tuple(action.peek_targets),
        )

    @staticmethod
    def _validate(context: DecisionContext) -> None:
        player_ids = [p.player_id for p in context.players]
        if context.bot_id not in player_ids:
            raise DecisionContextError(context.bot_id, "bot is not among the players")
        if context.bot_player.player_id != context.bot_id:
            raise DecisionContextError(
                context.bot_id,
                f"bot_player belongs to {context.bot_player.player_id!r}",
            )

    def _initialize_if_needed(self, context: DecisionContext) -> None:
        if self.memory is not None and self.bot_id == context.bot_id:
            return
        self.bot_id = context.bot_id
        self.memory = CardMemoryStore(
            context.bot_id, self.config, rng=self.rng, clock=self.clock
        )
        logger.info(f"Initialized {self.config.name} memory for {context.bot_id}")

    def _update_memory_from_context(self, context: DecisionContext) -> None:
        """Observe every card the context says the bot knows."""
        bot = context.bot_player
        for position, card in enumerate(bot.cards or []):
            if position in bot.known_positions:
                self._observe_if_new(card, bot.player_id, position)

        for player_id, known in context.opponent_knowledge.items():
            for position, card in known.items():
                self._observe_if_new(card, player_id, position)

    def _observe_if_new(self, card, player_id: str, position: int) -> None:
        existing = self.memory.query(player_id, position)
        if existing is not None and existing.card == card:
            return
        if existing is not None:
            # A different card now sits in the slot
            self.memory.forget(player_id, position)
        self.memory.observe(card, player_id, position)

    def _build_state(self, context: DecisionContext, phase: str, **fields) -> SearchState:
        players = []
        for view in context.players:
            known = {}
            score = 0.0
            for position, record in self.memory.get_player_memory(view.player_id).items():
                if position < view.card_count and record.card is not None:
                    known[position] = KnownCard(record.card, record.confidence)
            for position in range(view.card_count):
                entry = known.get(position)
                if entry is not None and entry.confidence > CONFIDENT_THRESHOLD:
                    score += entry.card.value
                else:
                    score += UNKNOWN_CARD_VALUE
            players.append(
                PlayerState(view.player_id, view.card_count, known_cards=known, score=score)
            )

        return SearchState(
            players=tuple(players),
            current_player_index=[p.player_id for p in context.players].index(context.bot_id),
            bot_player_id=context.bot_id,
            phase=phase,
            discard_top=context.discard_top,
            deck_size=self._deck_size(context),
            turn_count=context.turn_count,
            end_triggered=context.end_triggered,
            end_caller_id=context.end_caller_id,
            **fields,
        )

    @staticmethod
    def _deck_size(context: DecisionContext) -> int:
        if context.deck_size is not None:
            return context.deck_size
        in_hands = sum(p.card_count for p in context.players)
        on_discard = 1 if context.discard_top is not None else 0
        return max(0, DECK_SIZE - in_hands - on_discard)
