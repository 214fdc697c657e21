"""
Monte Carlo Tree Search (MCTS) for Vinto bot decisions.

This module implements the information-set flavoured MCTS loop the bot uses
for every decision. Each search builds a fresh tree over belief states and
runs random rollouts in freshly determinized worlds.

Main Components:
    - MCTS: search engine bound to one tier's budget
    - MoveGenerator / StateTransition: the two injected collaborators
    - SearchResult: chosen move plus search statistics

Four-phase loop, repeated until the iteration cap or the deadline is hit:
    1. Selection: descend by UCB1 while a node is non-terminal, fully
       expanded and has children
    2. Expansion: apply one random untried move and register the child
    3. Simulation: determinize the leaf, play random moves up to the rollout
       depth, score the result with the StateEvaluator
    4. Backpropagation: add the reward to every node back to the root

The deadline is only checked between iterations, so a search may overrun its
budget by the cost of one simulation.

Example:
    >>> from vintobot.config import get_tier_config
    >>> from vintobot.mcts import MCTS
    >>>
    >>> mcts = MCTS(get_tier_config('moderate'))
    >>> result = mcts.search(root_state, memory)
    >>> result.move.type
    'draw'
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Tuple

import numpy as np

from vintobot.config import TierConfig
from vintobot.game.constants import PASS
from vintobot.game.rules import VintoRules
from vintobot.game.state import Move, SearchState
from vintobot.mcts.determinization import Determinizer
from vintobot.mcts.evaluator import StateEvaluator
from vintobot.mcts.memory import CardMemoryStore
from vintobot.mcts.node import SearchNode, SearchTree

logger = logging.getLogger(__name__)


class MoveGenerator(Protocol):
    def generate(self, state: SearchState) -> List[Move]:
        ...


class StateTransition(Protocol):
    def apply(self, state: SearchState, move: Move) -> SearchState:
        ...


def _perf_clock() -> float:
    """Milliseconds on a high-resolution clock."""
    return time.perf_counter() * 1000.0


@dataclass
class SearchResult:
    """
    Outcome of one search.

    Attributes:
        move: Chosen move (a pass move when nothing was expanded)
        iterations: Completed loop iterations
        elapsed_ms: Wall time spent in the loop
        tree_size: Number of nodes built
        max_depth: Deepest node reached (root is 0)
        child_stats: (move, visits, average reward) for each root child
    """

    move: Move
    iterations: int
    elapsed_ms: float
    tree_size: int = 1
    max_depth: int = 0
    child_stats: List[Tuple[Move, int, float]] = field(default_factory=list)

    @property
    def is_pass(self) -> bool:
        return self.move.type == PASS


class MCTS:
    """
    Monte Carlo Tree Search engine.

    Attributes:
        config: Tier configuration (iterations, deadline, rollout depth, C)
        generator: Legal move generator
        transition: State transition function
        evaluator: Rollout scorer
        determinizer: Hidden-card sampler
        rng: Random generator for expansion and rollouts
        clock: Callable returning the current time in milliseconds
    """

    def __init__(
        self,
        config: TierConfig,
        generator: Optional[MoveGenerator] = None,
        transition: Optional[StateTransition] = None,
        evaluator: Optional[StateEvaluator] = None,
        determinizer: Optional[Determinizer] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the search engine.

        Args:
            config: Tier configuration
            generator: Move generator (default: VintoRules)
            transition: State transition (default: the generator if it also
                implements apply(), otherwise VintoRules)
            evaluator: State evaluator (default: StateEvaluator())
            determinizer: Determinizer (default: one sharing this engine's rng)
            rng: Random generator (default: fresh unseeded generator)
            clock: Millisecond clock (default: perf counter)
        """
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock if clock is not None else _perf_clock

        self.generator = generator if generator is not None else VintoRules()
        if transition is not None:
            self.transition = transition
        elif hasattr(self.generator, 'apply'):
            self.transition = self.generator
        else:
            self.transition = VintoRules()

        self.evaluator = evaluator if evaluator is not None else StateEvaluator()
        self.determinizer = (
            determinizer if determinizer is not None else Determinizer(rng=self.rng)
        )

    def search(
        self, root_state: SearchState, memory: Optional[CardMemoryStore] = None
    ) -> SearchResult:
        """
        Run MCTS from a root state.

        Args:
            root_state: Belief state with the deciding bot to move
            memory: Bot memory, used as a determinization fallback

        Returns:
            SearchResult with the most visited root move, or a pass move
            tagged to the deciding bot if the root was never expanded
        """
        tree = SearchTree(root_state, self.generator.generate(root_state))
        start = self.clock()
        iterations = 0
        max_depth = 0

        while (
            iterations < self.config.iterations
            and self.clock() - start < self.config.time_limit_ms
        ):
            leaf = self._select(tree)
            leaf = self._expand(tree, leaf)
            max_depth = max(max_depth, tree.depth(leaf))
            reward = self._simulate(leaf.state, memory)
            tree.backpropagate(leaf, reward)
            iterations += 1

        elapsed = self.clock() - start
        best = tree.most_visited_child(tree.root)
        if best is None:
            move = Move(PASS, root_state.bot_player_id)
        else:
            move = best.move

        child_stats = [
            (child.move, child.visits, child.average_reward())
            for child in tree.children_of(tree.root)
        ]
        logger.debug(
            f"MCTS chose {move} after {iterations} iterations in {elapsed:.1f}ms "
            f"({len(tree)} nodes, depth {max_depth}, {len(child_stats)} root moves)"
        )

        return SearchResult(
            move=move,
            iterations=iterations,
            elapsed_ms=elapsed,
            tree_size=len(tree),
            max_depth=max_depth,
            child_stats=child_stats,
        )

    def find_best_move(
        self, root_state: SearchState, memory: Optional[CardMemoryStore] = None
    ) -> Move:
        """Convenience wrapper returning only the chosen move."""
        return self.search(root_state, memory).move

    def _select(self, tree: SearchTree) -> SearchNode:
        node = tree.root
        while (
            not node.is_terminal
            and node.is_fully_expanded
            and node.children
        ):
            node = tree.select_ucb1(node, self.config.exploration_constant)
        return node

    def _expand(self, tree: SearchTree, node: SearchNode) -> SearchNode:
        if node.is_terminal or not node.has_untried_moves():
            return node

        move = node.pop_random_untried_move(self.rng)
        child_state = self.transition.apply(node.state, move)
        return tree.add_child(node, child_state, move, self.generator.generate(child_state))

    def _simulate(
        self, state: SearchState, memory: Optional[CardMemoryStore]
    ) -> float:
        """
        Random rollout in one sampled world.

        Args:
            state: Leaf state
            memory: Determinization fallback

        Returns:
            Evaluator reward in [0, 1]
        """
        state = self.determinizer.determinize(state, memory)

        for _ in range(self.config.rollout_depth):
            if state.is_terminal:
                break
            moves = self.generator.generate(state)
            if not moves:
                break
            move = moves[int(self.rng.integers(len(moves)))]
            state = self.transition.apply(state, move)

        return self.evaluator.evaluate(state)
