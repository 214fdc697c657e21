"""
Bot Configuration System

Centralized skill-tier configuration for the Vinto bot: memory fallibility
parameters and MCTS search budgets per tier, plus the state evaluator's
weight table. Tiers differ only in these numbers; every code path is shared.
"""

import json
import math
from dataclasses import dataclass, asdict
from typing import Dict, Any


@dataclass
class TierConfig:
    """Configuration for one bot skill tier."""

    name: str = 'moderate'

    # Memory settings
    memory_accuracy: float = 0.75  # Chance an observation is recorded at all
    memory_decay_rate: float = 0.00008  # Confidence decay per elapsed millisecond
    max_memory_size: int = 8  # Total tracked slots across all players
    forget_chance: float = 0.1  # Per-record drop chance at each turn boundary
    observations_required: int = 2  # Repeat sightings needed to reach full confidence

    # MCTS settings
    iterations: int = 1_500
    exploration_constant: float = math.sqrt(2)
    rollout_depth: int = 10
    time_limit_ms: float = 1_000.0

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert config to dictionary.

        Returns:
            Dictionary representation of config
        """
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'TierConfig':
        """
        Create config from dictionary.

        Args:
            config_dict: Dictionary of configuration values

        Returns:
            TierConfig instance
        """
        # Filter out keys that aren't valid config fields
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered_dict = {k: v for k, v in config_dict.items() if k in valid_keys}
        return cls(**filtered_dict)

    @classmethod
    def from_file(cls, filepath: str) -> 'TierConfig':
        """
        Load config from JSON file.

        Args:
            filepath: Path to JSON config file

        Returns:
            TierConfig instance
        """
        with open(filepath, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    def save(self, filepath: str):
        """
        Save config to JSON file.

        Args:
            filepath: Path to save config to
        """
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def validate(self) -> bool:
        """
        Validate configuration values.

        Returns:
            True if config is valid

        Raises:
            ValueError: If config values are invalid
        """
        if not 0 <= self.memory_accuracy <= 1:
            raise ValueError(
                f"memory_accuracy must be in [0, 1], got {self.memory_accuracy}"
            )

        if self.memory_decay_rate < 0:
            raise ValueError(
                f"memory_decay_rate must be non-negative, got {self.memory_decay_rate}"
            )

        if self.max_memory_size < 0:
            raise ValueError(
                f"max_memory_size must be non-negative, got {self.max_memory_size}"
            )

        if not 0 <= self.forget_chance <= 1:
            raise ValueError(
                f"forget_chance must be in [0, 1], got {self.forget_chance}"
            )

        if self.observations_required < 1:
            raise ValueError(
                f"observations_required must be at least 1, got {self.observations_required}"
            )

        if self.iterations < 0:
            raise ValueError(f"iterations must be non-negative, got {self.iterations}")

        if self.rollout_depth < 0:
            raise ValueError(
                f"rollout_depth must be non-negative, got {self.rollout_depth}"
            )

        if self.time_limit_ms <= 0:
            raise ValueError(
                f"time_limit_ms must be positive, got {self.time_limit_ms}"
            )

        return True

    def __str__(self) -> str:
        """String representation of config."""
        lines = [f"Tier Configuration ({self.name}):"]
        lines.append(
            f"  Memory: accuracy={self.memory_accuracy}, capacity={self.max_memory_size}, "
            f"decay={self.memory_decay_rate}/ms, forget={self.forget_chance}"
        )
        lines.append(
            f"  MCTS: {self.iterations} iterations, {self.time_limit_ms:.0f}ms, "
            f"depth={self.rollout_depth}, c={self.exploration_constant:.3f}"
        )
        return "\n".join(lines)


# Difficulty-based tier table
TIER_CONFIGS: Dict[str, TierConfig] = {
    'easy': TierConfig(
        name='easy',
        memory_accuracy=0.4,  # Often misremembers cards
        memory_decay_rate=0.00015,  # Fast decay
        max_memory_size=4,
        forget_chance=0.3,
        observations_required=3,
        iterations=500,
        rollout_depth=5,
        time_limit_ms=500.0,
    ),
    'moderate': TierConfig(
        name='moderate',
        memory_accuracy=0.75,
        memory_decay_rate=0.00008,
        max_memory_size=8,
        forget_chance=0.1,
        observations_required=2,
        iterations=1_500,
        rollout_depth=10,
        time_limit_ms=1_000.0,
    ),
    'hard': TierConfig(
        name='hard',
        memory_accuracy=0.95,  # Almost perfect memory
        memory_decay_rate=0.00002,  # Slow decay
        max_memory_size=16,
        forget_chance=0.02,
        observations_required=1,  # One observation enough
        iterations=5_000,
        rollout_depth=15,
        time_limit_ms=1_500.0,
    ),
}


def get_tier_config(tier: str) -> TierConfig:
    """
    Look up the configuration record for a skill tier.

    Args:
        tier: Tier name ('easy', 'moderate' or 'hard')

    Returns:
        TierConfig for the tier

    Raises:
        ValueError: If tier is unknown
    """
    if tier not in TIER_CONFIGS:
        raise ValueError(
            f"Unknown tier: {tier}. Must be one of {sorted(TIER_CONFIGS)}"
        )
    return TIER_CONFIGS[tier]


@dataclass
class EvaluatorWeights:
    """
    Hand-tuned weights for the state evaluator.

    None of these are derived; treat the table as a replaceable policy.
    """

    score_vs_average: float = 2.5
    score_vs_best: float = 0.5
    card_count: float = 1.0
    knowledge_scale: float = 3.0
    knowledge_early: float = 2.0
    knowledge_late: float = 0.5
    action_card: float = 2.0
    high_card_threshold: int = 8
    high_card_baseline: int = 6
    high_card_penalty: float = 0.5

    # Phase multipliers: (early, late)
    phase_score: tuple = (0.7, 1.5)
    phase_action_card: tuple = (1.5, 0.5)
    phase_penalty: tuple = (0.8, 1.3)

    late_turn_count: int = 40
    terminal_bonus: float = 100.0
    end_ready_bonus: float = 5.0
    end_ready_margin: float = 3.0
    squash_scale: float = 20.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert weights to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, weights_dict: Dict[str, Any]) -> 'EvaluatorWeights':
        """Create weights from dictionary, ignoring unknown keys."""
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in weights_dict.items() if k in valid_keys}
        for key in ('phase_score', 'phase_action_card', 'phase_penalty'):
            if key in filtered:
                filtered[key] = tuple(filtered[key])
        return cls(**filtered)

    @classmethod
    def from_file(cls, filepath: str) -> 'EvaluatorWeights':
        """
        Load weights from JSON file.

        Args:
            filepath: Path to JSON weights file

        Returns:
            EvaluatorWeights instance
        """
        with open(filepath, 'r') as f:
            weights_dict = json.load(f)
        return cls.from_dict(weights_dict)

    def save(self, filepath: str):
        """
        Save weights to JSON file.

        Args:
            filepath: Path to save weights to
        """
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def validate(self) -> bool:
        """
        Validate weight values.

        Raises:
            ValueError: If the squashing scale is not positive
        """
        if self.squash_scale <= 0:
            raise ValueError(
                f"squash_scale must be positive, got {self.squash_scale}"
            )
        return True

    def __str__(self) -> str:
        """String representation of weights."""
        lines = ["Evaluator Weights:"]
        lines.append(
            f"  Score: vs_average={self.score_vs_average}, vs_best={self.score_vs_best}, "
            f"phase={self.phase_score}"
        )
        lines.append(
            f"  Knowledge: scale={self.knowledge_scale}, "
            f"early={self.knowledge_early}, late={self.knowledge_late}"
        )
        lines.append(
            f"  Cards: count={self.card_count}, action={self.action_card}, "
            f"high_card_penalty={self.high_card_penalty}"
        )
        lines.append(
            f"  Terminal: bonus={self.terminal_bonus}, squash_scale={self.squash_scale}"
        )
        return "\n".join(lines)
