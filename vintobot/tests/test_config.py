"""
Tests for tier configuration and evaluator weights.
"""

import math

import pytest

from vintobot.config import (
    TIER_CONFIGS,
    EvaluatorWeights,
    TierConfig,
    get_tier_config,
)


class TestTierConfig:
    """Test tier records and their helpers."""

    def test_tier_table(self):
        """Test the three tiers carry their memory and search budgets."""
        easy, moderate, hard = (get_tier_config(t) for t in ('easy', 'moderate', 'hard'))

        assert (easy.memory_accuracy, moderate.memory_accuracy, hard.memory_accuracy) == (0.4, 0.75, 0.95)
        assert (easy.max_memory_size, moderate.max_memory_size, hard.max_memory_size) == (4, 8, 16)
        assert (easy.iterations, moderate.iterations, hard.iterations) == (500, 1500, 5000)
        assert (easy.time_limit_ms, moderate.time_limit_ms, hard.time_limit_ms) == (500, 1000, 1500)
        assert (easy.rollout_depth, moderate.rollout_depth, hard.rollout_depth) == (5, 10, 15)
        for config in TIER_CONFIGS.values():
            assert config.exploration_constant == pytest.approx(math.sqrt(2))
            assert config.validate()

    def test_unknown_tier(self):
        """Test unknown tier names raise."""
        with pytest.raises(ValueError, match="Unknown tier"):
            get_tier_config('impossible')

    def test_dict_round_trip_ignores_unknown_keys(self):
        """Test from_dict accepts extra keys."""
        data = get_tier_config('hard').to_dict()
        data['comment'] = 'ignored'
        assert TierConfig.from_dict(data) == get_tier_config('hard')

    def test_file_round_trip(self, tmp_path):
        """Test saving and loading JSON."""
        path = tmp_path / "tier.json"
        config = TierConfig(name='custom', iterations=42, time_limit_ms=250.0)
        config.save(str(path))
        assert TierConfig.from_file(str(path)) == config

    @pytest.mark.parametrize(
        "field,value",
        [
            ('memory_accuracy', 1.5),
            ('memory_decay_rate', -0.1),
            ('max_memory_size', -1),
            ('forget_chance', -0.2),
            ('observations_required', 0),
            ('iterations', -5),
            ('rollout_depth', -1),
            ('time_limit_ms', 0.0),
        ],
    )
    def test_validate_rejects_bad_values(self, field, value):
        """Test each field's range check."""
        config = TierConfig(**{field: value})
        with pytest.raises(ValueError, match=field):
            config.validate()

    def test_str(self):
        """Test the summary mentions the tier and budget."""
        text = str(get_tier_config('easy'))
        assert "easy" in text
        assert "500 iterations" in text


class TestEvaluatorWeights:
    """Test the evaluator weight table."""

    def test_from_dict_restores_phase_tuples(self):
        """Test phase multipliers come back as tuples from JSON-style lists."""
        data = EvaluatorWeights().to_dict()
        data['phase_score'] = [0.5, 2.0]
        weights = EvaluatorWeights.from_dict(data)
        assert weights.phase_score == (0.5, 2.0)
        assert weights.phase_penalty == (0.8, 1.3)

    def test_file_round_trip(self, tmp_path):
        """Test saving and loading JSON keeps phase multipliers as tuples."""
        path = tmp_path / "weights.json"
        weights = EvaluatorWeights(score_vs_average=3.0, phase_penalty=(1.0, 2.0))
        weights.save(str(path))

        loaded = EvaluatorWeights.from_file(str(path))
        assert loaded == weights
        assert loaded.phase_penalty == (1.0, 2.0)

    def test_str(self):
        """Test the summary lists the main weights."""
        text = str(EvaluatorWeights())
        assert "Evaluator Weights" in text
        assert "vs_average=2.5" in text
        assert "squash_scale=20.0" in text

    def test_validate(self):
        """Test the squashing scale must be positive."""
        assert EvaluatorWeights().validate()
        with pytest.raises(ValueError):
            EvaluatorWeights(squash_scale=-1.0).validate()
