"""
Heuristic state evaluation for MCTS rollouts.

Maps a SearchState to a reward in [0, 1] from the deciding bot's point of
view. The reward is a weighted sum of independent terms squashed through a
logistic function:

    - score advantage over the opponent average and over the best opponent
      (lower hand totals are better)
    - card-count advantage (fewer cards is better)
    - knowledge ratio: how much of the table the bot remembers
    - action-capable cards held by the bot
    - penalty for confidently known high-value cards in the bot's hand
    - a large bonus or penalty once the round is over
    - a small bonus for being well placed to call Vinto late in the round

Game phase shifts the weights: information is worth more early, raw score
matters more once Vinto has been called or the round runs long. All weights
live in EvaluatorWeights and can be replaced wholesale.
"""

from typing import Optional

import numpy as np

from vintobot.config import EvaluatorWeights
from vintobot.game.state import PlayerState, SearchState


class StateEvaluator:
    """
    Scores search states for the deciding bot.

    Attributes:
        weights: Weight table for every reward term
    """

    def __init__(self, weights: Optional[EvaluatorWeights] = None):
        self.weights = weights if weights is not None else EvaluatorWeights()
        self.weights.validate()

    def is_early_game(self, state: SearchState) -> bool:
        return state.turn_count < 2 * len(state.players)

    def is_late_game(self, state: SearchState) -> bool:
        return state.end_triggered or state.turn_count > self.weights.late_turn_count

    def _phase_factor(self, state: SearchState, factors: tuple) -> float:
        early, late = factors
        if self.is_late_game(state):
            return late
        if self.is_early_game(state):
            return early
        return 1.0

    def evaluate(self, state: SearchState) -> float:
        """
        Reward of a state for the deciding bot.

        Args:
            state: State to score (need not be terminal or determinized)

        Returns:
            Reward in [0, 1]
        """
        return self.squash(self.raw_score(state))

    def squash(self, raw: float) -> float:
        """Logistic squashing: 1 / (1 + exp(-raw / scale))."""
        return float(1.0 / (1.0 + np.exp(-raw / self.weights.squash_scale)))

    def raw_score(self, state: SearchState) -> float:
        """Unbounded weighted sum of every reward term."""
        w = self.weights
        bot = state.bot_player
        opponents = [p for p in state.players if p.player_id != bot.player_id]

        reward = 0.0

        if opponents:
            scores = [p.score for p in opponents]
            average = float(np.mean(scores))
            best = min(scores)

            score_factor = self._phase_factor(state, w.phase_score)
            reward += (average - bot.score) * w.score_vs_average * score_factor
            reward += (best - bot.score) * w.score_vs_best

            average_count = float(np.mean([p.card_count for p in opponents]))
            reward += (average_count - bot.card_count) * w.card_count

            if (
                self.is_late_game(state)
                and not state.is_terminal
                and bot.score < average - w.end_ready_margin
            ):
                reward += w.end_ready_bonus

        knowledge_factor = w.knowledge_early if self.is_early_game(state) else w.knowledge_late
        reward += self.knowledge_ratio(state) * w.knowledge_scale * knowledge_factor

        action_factor = self._phase_factor(state, w.phase_action_card)
        reward += self.action_cards_held(state, bot) * w.action_card * action_factor

        penalty_factor = self._phase_factor(state, w.phase_penalty)
        reward -= self.high_card_penalty(bot) * penalty_factor

        if state.is_terminal:
            if state.winner == bot.player_id:
                reward += w.terminal_bonus
            else:
                reward -= w.terminal_bonus

        return reward

    @staticmethod
    def knowledge_ratio(state: SearchState) -> float:
        """Summed confidence of remembered slots over all slots on the table."""
        slots = sum(p.card_count for p in state.players)
        if slots == 0:
            return 0.0
        confidence = sum(
            known.confidence
            for p in state.players
            for position, known in p.known_cards.items()
            if known.card is not None and position < p.card_count
        )
        return confidence / slots

    @staticmethod
    def action_cards_held(state: SearchState, player: PlayerState) -> int:
        count = 0
        for position in range(player.card_count):
            card = state.card_at(player.player_id, position)
            if card is not None and card.has_action:
                count += 1
        return count

    def high_card_penalty(self, player: PlayerState) -> float:
        """Penalty for confidently known own cards worth more than the threshold."""
        w = self.weights
        penalty = 0.0
        for known in player.known_cards.values():
            if known.is_confident and known.card.value > w.high_card_threshold:
                penalty += (known.card.value - w.high_card_baseline) * w.high_card_penalty
        return penalty
