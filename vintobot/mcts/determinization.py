"""
Determinization sampling for imperfect information MCTS.

This module implements determinization - sampling one complete assignment of
every hidden card slot that is consistent with what the bot confidently
remembers. The result is an ordinary perfect-information SearchState that a
rollout can play out and the evaluator can score.

Determinization Sampling Strategy:

Goal: Resolve every slot on the table to a concrete card.

Approach: Multiset Sampling
    1. Start with the canonical deck multiset (4 of each rank, 2 Jokers)
    2. Remove one instance per rank for every slot known above 0.5
       confidence, for the discard top and for the pending card
    3. Known slots keep their remembered card
    4. Every other slot draws uniformly, without replacement, from what is
       left of the multiset and receives a synthesized '-sampled' card

Pool Exhaustion:
    When fewer than `refill_threshold` cards remain, the pool is topped up with
    another canonical multiset instead of failing. A sampled world may then
    hold more copies of a rank than physically exist. This trades strict
    consistency for availability and is kept deliberately; with refill
    disabled, an empty pool falls back to the memory store's rank pool.

A fresh determinization is drawn for every rollout, so different rollouts
explore different plausible worlds from the same belief state.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

import numpy as np

from vintobot.game.cards import Card
from vintobot.game.constants import CANONICAL_DECK
from vintobot.game.state import SearchState
from vintobot.mcts.memory import CardMemoryStore

logger = logging.getLogger(__name__)

FALLBACK_RANK = '6'


class Determinizer:
    """
    Samples complete hidden-card assignments from the bot's beliefs.

    Attributes:
        confidence_threshold: Known slots above this confidence keep their card
        refill_threshold: Pool size below which the canonical deck is added again
        rng: Random generator for slot sampling
    """

    def __init__(
        self,
        confidence_threshold: float = 0.5,
        refill_threshold: int = 10,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize determinizer.

        Args:
            confidence_threshold: Confidence a remembered slot must exceed
            refill_threshold: Refill the pool when it holds fewer cards than this
                (0 disables refilling)
            rng: Random generator (default: fresh unseeded generator)
        """
        if refill_threshold < 0:
            raise ValueError(
                f"refill_threshold must be non-negative, got {refill_threshold}"
            )
        self.confidence_threshold = confidence_threshold
        self.refill_threshold = refill_threshold
        self.rng = rng if rng is not None else np.random.default_rng()

    def is_known(self, state: SearchState, player_id: str, position: int) -> bool:
        """Whether a slot keeps its remembered identity."""
        known = state.player(player_id).known_at(position)
        return (
            known is not None
            and known.card is not None
            and known.confidence > self.confidence_threshold
        )

    def build_pool(self, state: SearchState) -> List[str]:
        """
        Ranks still available for unknown slots.

        Args:
            state: State whose confident knowledge is removed from the deck

        Returns:
            List of ranks (a multiset)
        """
        pool = list(CANONICAL_DECK)

        seen: List[str] = []
        for player in state.players:
            for position in range(player.card_count):
                if self.is_known(state, player.player_id, position):
                    seen.append(player.known_cards[position].card.rank)
        if state.discard_top is not None:
            seen.append(state.discard_top.rank)
        if state.pending_card is not None:
            seen.append(state.pending_card.rank)

        for rank in seen:
            if rank in pool:
                pool.remove(rank)
        return pool

    def determinize(
        self, state: SearchState, memory: Optional[CardMemoryStore] = None
    ) -> SearchState:
        """
        Sample one fully resolved world.

        Args:
            state: Belief state to resolve
            memory: Memory store whose rank pool backs an exhausted sampling pool

        Returns:
            New SearchState with every slot in hidden_cards and each player's
            score recomputed from the resolved cards
        """
        pool = self.build_pool(state)
        hidden: Dict[Tuple[str, int], Card] = {}
        players = []

        for player in state.players:
            total = 0
            for position in range(player.card_count):
                if self.is_known(state, player.player_id, position):
                    card = player.known_cards[position].card
                else:
                    rank = self._draw(pool, memory)
                    card = Card.sampled(rank, player.player_id, position)
                hidden[(player.player_id, position)] = card
                total += card.value
            players.append(replace(player, score=total))

        return replace(state, players=tuple(players), hidden_cards=hidden)

    def _draw(self, pool: List[str], memory: Optional[CardMemoryStore]) -> str:
        if self.refill_threshold and len(pool) < self.refill_threshold:
            logger.debug(
                f"Sampling pool down to {len(pool)} cards, refilling from canonical deck"
            )
            pool.extend(CANONICAL_DECK)

        if not pool:
            rank = memory.sample_unknown_rank() if memory is not None else None
            return rank if rank is not None else FALLBACK_RANK

        index = int(self.rng.integers(len(pool)))
        rank = pool[index]
        # Swap-remove keeps the draw O(1)
        pool[index] = pool[-1]
        pool.pop()
        return rank

    def sample_multiple_determinizations(
        self,
        state: SearchState,
        num_samples: int = 5,
        memory: Optional[CardMemoryStore] = None,
    ) -> List[SearchState]:
        """
        Sample several independent worlds from the same belief state.

        Args:
            state: Belief state
            num_samples: Number of worlds
            memory: Optional memory store for pool exhaustion fallback

        Returns:
            List of determinized states
        """
        return [self.determinize(state, memory) for _ in range(num_samples)]
