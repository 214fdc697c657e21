"""
Monte Carlo Tree Search (MCTS) implementation for VintoBot.

This module provides the search infrastructure behind every bot decision:
- CardMemoryStore: Fallible, decaying memory of seen card slots
- Determinizer: Samples hidden cards consistent with the bot's beliefs
- SearchTree / SearchNode: Arena-backed tree with UCB1 selection
- MCTS: Deadline- and iteration-bounded search loop
- StateEvaluator: Heuristic reward for rollout end states

Example:
    >>> from vintobot.mcts import CardMemoryStore, MCTS
    >>> from vintobot.config import get_tier_config
    >>>
    >>> config = get_tier_config('hard')
    >>> memory = CardMemoryStore('bot-1', config)
    >>> mcts = MCTS(config)
    >>> move = mcts.find_best_move(root_state, memory)
"""

from vintobot.mcts.memory import CardMemoryStore, CardObservation
from vintobot.mcts.determinization import Determinizer
from vintobot.mcts.node import SearchNode, SearchTree
from vintobot.mcts.evaluator import StateEvaluator
from vintobot.mcts.search import MCTS, MoveGenerator, SearchResult, StateTransition

__all__ = [
    "CardMemoryStore",
    "CardObservation",
    "Determinizer",
    "SearchNode",
    "SearchTree",
    "StateEvaluator",
    "MCTS",
    "MoveGenerator",
    "SearchResult",
    "StateTransition",
]
