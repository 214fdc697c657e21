"""
Tests for the heuristic state evaluator.
"""

import numpy as np
import pytest

from vintobot.config import EvaluatorWeights
from vintobot.game.cards import Card
from vintobot.game.state import KnownCard, PlayerState, SearchState
from vintobot.mcts.evaluator import StateEvaluator


def make_state(scores=(24.0, 24.0, 24.0), bot_known=None, **fields) -> SearchState:
    players = tuple(
        PlayerState(
            f"p{i + 1}",
            4,
            known_cards=dict(bot_known or {}) if i == 0 else {},
            score=score,
        )
        for i, score in enumerate(scores)
    )
    defaults = dict(players=players, current_player_index=0, bot_player_id='p1', turn_count=10)
    defaults.update(fields)
    return SearchState(**defaults)


@pytest.fixture
def evaluator():
    return StateEvaluator()


class TestStateEvaluator:
    """Test reward terms and squashing."""

    def test_even_position_is_neutral(self, evaluator):
        """Test a perfectly even state scores 0.5."""
        assert evaluator.evaluate(make_state()) == pytest.approx(0.5)

    def test_lower_score_is_better(self, evaluator):
        """Test score advantage over average and best opponent."""
        state = make_state(scores=(10.0, 20.0, 20.0))
        assert evaluator.raw_score(state) == pytest.approx(10 * 2.5 + 10 * 0.5)
        assert evaluator.evaluate(state) == pytest.approx(1 / (1 + np.exp(-30 / 20)))

        worse = make_state(scores=(30.0, 20.0, 20.0))
        assert evaluator.evaluate(worse) < 0.5

    def test_fewer_cards_is_better(self, evaluator):
        """Test card-count advantage."""
        players = (
            PlayerState('p1', 3, score=24.0),
            PlayerState('p2', 5, score=24.0),
            PlayerState('p3', 5, score=24.0),
        )
        state = SearchState(players=players, current_player_index=0, bot_player_id='p1', turn_count=10)
        assert evaluator.raw_score(state) == pytest.approx(2.0)

    def test_terminal_win_and_loss(self, evaluator):
        """Test the terminal bonus dominates."""
        won = make_state(is_terminal=True, winner='p1')
        lost = make_state(is_terminal=True, winner='p2')
        assert evaluator.evaluate(won) > 0.99
        assert evaluator.evaluate(lost) < 0.01

    def test_knowledge_matters_more_early(self, evaluator):
        """Test the knowledge ratio is weighted up early and down late."""
        known = {0: KnownCard(Card('3'), 1.0), 1: KnownCard(Card('4'), 1.0)}
        early = make_state(bot_known=known, turn_count=0)
        late = make_state(bot_known=known, turn_count=10, end_triggered=True)

        assert evaluator.knowledge_ratio(early) == pytest.approx(2 / 12)
        assert evaluator.raw_score(early) == pytest.approx(2 / 12 * 3 * 2.0)
        assert evaluator.raw_score(late) == pytest.approx(2 / 12 * 3 * 0.5)

    def test_action_cards_held(self, evaluator):
        """Test action-capable cards in the bot's resolved hand are rewarded."""
        hidden = {
            ('p1', 0): Card('7'),
            ('p1', 1): Card('J'),
            ('p1', 2): Card('5'),
            ('p1', 3): Card('Joker'),
        }
        state = make_state(turn_count=0, hidden_cards=hidden)
        assert evaluator.action_cards_held(state, state.bot_player) == 2
        assert evaluator.raw_score(state) == pytest.approx(2 * 2.0 * 1.5)

    def test_high_card_penalty(self, evaluator):
        """Test confidently known high cards in hand are penalized."""
        known = {
            0: KnownCard(Card('Q'), 0.9),
            1: KnownCard(Card('9'), 0.8),
            2: KnownCard(Card('8'), 1.0),
            3: KnownCard(Card('K'), 0.3),
        }
        bot = make_state(bot_known=known).bot_player
        assert evaluator.high_card_penalty(bot) == pytest.approx(2.0 + 1.5)

    def test_vinto_readiness_bonus(self, evaluator):
        """Test a late, well-placed bot earns the end-ready bonus."""
        state = make_state(scores=(10.0, 20.0, 20.0), turn_count=41)
        assert evaluator.raw_score(state) == pytest.approx(10 * 2.5 * 1.5 + 10 * 0.5 + 5.0)

    def test_reward_bounded(self, evaluator):
        """Test extreme states stay inside [0, 1]."""
        for scores in ((-50.0, 80.0, 80.0), (80.0, -50.0, -50.0)):
            for terminal in (False, True):
                state = make_state(scores=scores, is_terminal=terminal, winner='p2')
                assert 0.0 <= evaluator.evaluate(state) <= 1.0

    def test_weights_are_replaceable(self):
        """Test a custom weight table changes the reward."""
        state = make_state(scores=(10.0, 20.0, 20.0))
        flat = StateEvaluator(EvaluatorWeights(score_vs_average=0.0, score_vs_best=0.0))
        assert flat.evaluate(state) == pytest.approx(0.5)

    def test_invalid_weights(self):
        """Test a non-positive squashing scale is rejected."""
        with pytest.raises(ValueError, match="squash_scale"):
            StateEvaluator(EvaluatorWeights(squash_scale=0.0))
