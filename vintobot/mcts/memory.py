"""
Card memory for imperfect, decaying bot perception.

This module implements the per-bot store of what a bot believes about every
tracked card slot: its own hand and every opponent's hand. Unlike a perfect
belief tracker, the store deliberately models a fallible player.

Core Concepts:
    - An observation is only recorded with the tier's accuracy probability;
      a failed observation is silently lost (misremembering)
    - Confidence starts at 0.7 and is boosted by repeat sightings of the
      same card, reaching 1.0 after the tier's required number of repeats
    - Confidence decays continuously: c ← c · exp(−rate · elapsed_ms)
    - Records below 0.1 confidence are forgotten
    - At each turn boundary every record may be dropped with the tier's
      forget chance (attention lapses)
    - Total records are capped per tier; the least confident go first

Rank Pool:
    Alongside the records the store keeps a count of unseen cards per rank,
    starting from the canonical deck (4 of each rank, 2 Jokers). A slot that
    gains an identity takes one unit from the pool; forgetting or invalidating
    the slot returns it. The pool is never negative and never exceeds the
    canonical count, and it is only used as a sampling fallback.
"""

import logging
import time
from collections import Counter
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Tuple, Union

import numpy as np

from vintobot.config import TierConfig, get_tier_config
from vintobot.game.cards import Card
from vintobot.game.constants import RANKS, RANK_COUNTS

logger = logging.getLogger(__name__)

INITIAL_CONFIDENCE = 0.7
REPEAT_BOOST = 0.3
FORGET_THRESHOLD = 0.1


def _default_clock() -> float:
    """Milliseconds on a monotonic clock."""
    return time.monotonic() * 1000.0


@dataclass
class CardObservation:
    """
    What the bot remembers about one card slot.

    Attributes:
        card: Remembered card, or None if only the slot is known
        confidence: Belief strength in [0, 1]
        last_seen: Timestamp (ms) of the latest sighting
        observations: Number of successful sightings
        pooled: Whether this record took one unit from the rank pool
    """

    card: Optional[Card]
    confidence: float
    last_seen: float
    observations: int = 1
    pooled: bool = False


class CardMemoryStore:
    """
    Fallible, decaying memory of card slots for one bot.

    The store is owned by a single bot's decision service and is never
    shared between bots.

    Attributes:
        bot_id: Owning bot
        config: Tier configuration (accuracy, decay, capacity, forgetting)
        rng: Random generator for the accuracy gate, forgetting and sampling
        clock: Callable returning the current time in milliseconds
    """

    def __init__(
        self,
        bot_id: str,
        tier: Union[str, TierConfig] = 'moderate',
        rng: Optional[np.random.Generator] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize an empty memory.

        Args:
            bot_id: Owning bot
            tier: Tier name or an explicit TierConfig
            rng: Random generator (default: fresh unseeded generator)
            clock: Millisecond clock (default: monotonic clock)

        Raises:
            ValueError: If tier is an unknown tier name
        """
        self.bot_id = bot_id
        self.config = get_tier_config(tier) if isinstance(tier, str) else tier
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock if clock is not None else _default_clock

        # player_id → position → observation; own hand is tracked first
        self._memory: Dict[str, Dict[int, CardObservation]] = {bot_id: {}}
        self._rank_pool: Dict[str, int] = dict(RANK_COUNTS)
        self._last_decay: Optional[float] = None

    # ------------------------------------------------------------------
    # Observation and forgetting
    # ------------------------------------------------------------------

    def observe(self, card: Optional[Card], player_id: str, position: int) -> bool:
        """
        Observe a card (peek, reveal, own setup look).

        Args:
            card: Card seen at the slot (None: the slot was seen face down)
            player_id: Owner of the slot
            position: Slot position in the owner's hand

        Returns:
            True if the observation was recorded, False if it was lost
        """
        if self.rng.random() >= self.config.memory_accuracy:
            logger.debug(
                f"{self.bot_id} failed to remember card at {player_id}[{position}]"
            )
            return False

        now = self.clock()
        player_memory = self._memory.setdefault(player_id, {})
        existing = player_memory.get(position)

        if existing is not None and self._same_card(existing.card, card):
            boost = REPEAT_BOOST / self.config.observations_required
            existing.confidence = min(1.0, existing.confidence + boost)
            existing.observations += 1
            existing.last_seen = now
            record = existing
        else:
            if existing is not None:
                # The slot now holds a different card
                self._release(existing)
            record = CardObservation(
                card=card,
                confidence=INITIAL_CONFIDENCE,
                last_seen=now,
                observations=1,
                pooled=self._take(card),
            )
            player_memory[position] = record

        logger.debug(
            f"{self.bot_id} remembered {card} at {player_id}[{position}] "
            f"(confidence: {record.confidence:.2f})"
        )

        self.enforce_capacity()
        return True

    def forget(self, player_id: str, position: int) -> Optional[CardObservation]:
        """
        Drop a slot's record because its card left the slot.

        Args:
            player_id: Owner of the slot
            position: Slot position

        Returns:
            The dropped record, or None if nothing was recorded
        """
        player_memory = self._memory.get(player_id)
        if not player_memory:
            return None
        record = player_memory.pop(position, None)
        if record is not None:
            self._release(record)
        return record

    def remove_position(self, player_id: str, position: int) -> None:
        """
        Forget a slot that left the hand and shift higher positions down.

        Used when a hand shrinks, e.g. after a successful toss-in.
        """
        self.forget(player_id, position)
        player_memory = self._memory.get(player_id)
        if not player_memory:
            return
        shifted = {}
        for pos, record in player_memory.items():
            shifted[pos - 1 if pos > position else pos] = record
        self._memory[player_id] = shifted

    def decay(self) -> int:
        """
        Decay every record's confidence by the time since it last changed.

        Elapsed time is measured from the later of the record's last sighting
        and the previous decay call, so calling decay() often does not decay
        faster than calling it rarely.

        Returns:
            Number of records forgotten for dropping below 0.1
        """
        now = self.clock()
        rate = self.config.memory_decay_rate
        dropped: List[Tuple[str, int]] = []

        for player_id, player_memory in self._memory.items():
            for position, record in player_memory.items():
                since = record.last_seen
                if self._last_decay is not None:
                    since = max(since, self._last_decay)
                elapsed = max(0.0, now - since)
                record.confidence *= float(np.exp(-rate * elapsed))

                if record.confidence < FORGET_THRESHOLD:
                    dropped.append((player_id, position))

        self._last_decay = now

        for player_id, position in dropped:
            self.forget(player_id, position)
        return len(dropped)

    def process_turn_boundary(self) -> int:
        """
        Apply per-turn attention lapses, then decay.

        Each record is independently dropped with the tier's forget chance.

        Returns:
            Number of records dropped by the lapse roll
        """
        lapses = [
            (player_id, position)
            for player_id, player_memory in self._memory.items()
            for position in player_memory
            if self.rng.random() < self.config.forget_chance
        ]
        for player_id, position in lapses:
            self.forget(player_id, position)

        if lapses:
            logger.debug(f"{self.bot_id} forgot {len(lapses)} cards")

        self.decay()
        return len(lapses)

    def enforce_capacity(self) -> int:
        """
        Evict the least confident records until within the tier's capacity.

        Own and opponent records compete for the same budget. Ties keep the
        earlier-tracked record ordering (own hand first).

        Returns:
            Number of records evicted
        """
        entries = [
            (record.confidence, player_id, position)
            for player_id, player_memory in self._memory.items()
            for position, record in player_memory.items()
        ]
        overflow = len(entries) - self.config.max_memory_size
        if overflow <= 0:
            return 0

        entries.sort(key=lambda entry: entry[0])
        for _, player_id, position in entries[:overflow]:
            self.forget(player_id, position)

        logger.debug(
            f"{self.bot_id} enforced memory limit, forgot {overflow} cards"
        )
        return overflow

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query(self, player_id: str, position: int) -> Optional[CardObservation]:
        """Record for a slot, or None."""
        return self._memory.get(player_id, {}).get(position)

    def confidence(self, player_id: str, position: int) -> float:
        """Confidence about a slot (0 if nothing is recorded)."""
        record = self.query(player_id, position)
        return record.confidence if record is not None else 0.0

    def get_player_memory(self, player_id: str) -> Dict[int, CardObservation]:
        """Copy of every record for one player."""
        return {
            position: replace(record)
            for position, record in self._memory.get(player_id, {}).items()
        }

    def tracked_players(self) -> List[str]:
        return list(self._memory.keys())

    def get_rank_pool(self) -> Dict[str, int]:
        """Copy of the unseen-card count per rank."""
        return dict(self._rank_pool)

    def known_rank_counts(self) -> Counter:
        """How many records currently hold each rank."""
        return Counter(
            record.card.rank
            for player_memory in self._memory.values()
            for record in player_memory.values()
            if record.card is not None
        )

    def sample_unknown_rank(self) -> Optional[str]:
        """
        Draw a rank from the pool, uniform over the remaining individual cards.

        Returns:
            A rank, or None if the pool is exhausted
        """
        counts = np.array([self._rank_pool[rank] for rank in RANKS], dtype=float)
        total = counts.sum()
        if total <= 0:
            return None
        index = self.rng.choice(len(RANKS), p=counts / total)
        return RANKS[int(index)]

    @property
    def size(self) -> int:
        """Total number of records across all players."""
        return sum(len(player_memory) for player_memory in self._memory.values())

    def stats(self) -> Dict[str, int]:
        """Memory statistics for debugging."""
        own = len(self._memory.get(self.bot_id, {}))
        return {
            'own_cards_known': own,
            'opponent_cards_known': self.size - own,
            'total_memory_used': self.size,
            'max_memory_size': self.config.max_memory_size,
            'unseen_cards': sum(self._rank_pool.values()),
        }

    def clear(self) -> None:
        """Forget everything and restore the canonical rank pool."""
        self._memory = {self.bot_id: {}}
        self._rank_pool = dict(RANK_COUNTS)
        self._last_decay = None

    # ------------------------------------------------------------------
    # Rank pool bookkeeping
    # ------------------------------------------------------------------

    def _take(self, card: Optional[Card]) -> bool:
        if card is None:
            return False
        if self._rank_pool[card.rank] <= 0:
            return False
        self._rank_pool[card.rank] -= 1
        return True

    def _release(self, record: CardObservation) -> None:
        if not record.pooled or record.card is None:
            return
        rank = record.card.rank
        self._rank_pool[rank] = min(RANK_COUNTS[rank], self._rank_pool[rank] + 1)
        record.pooled = False

    @staticmethod
    def _same_card(first: Optional[Card], second: Optional[Card]) -> bool:
        if first is None or second is None:
            return first is None and second is None
        return first.rank == second.rank and first.card_id == second.card_id

    def __repr__(self) -> str:
        return (
            f"CardMemoryStore(bot={self.bot_id}, tier={self.config.name}, "
            f"records={self.size}/{self.config.max_memory_size})"
        )
