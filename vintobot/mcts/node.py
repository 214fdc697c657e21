"""
MCTS tree with arena-backed nodes and UCB1 selection.

This module implements the tree structure for one Monte Carlo Tree Search
run, including UCB1-based child selection, expansion bookkeeping and
backpropagation.

Architecture Note:
    Nodes are stored in a single growable list owned by SearchTree and refer
    to each other by index. A node's children are the indices it created;
    its parent index is a non-owning back-reference used only to walk back to
    the root during backpropagation. The whole tree is built for a single
    decision and discarded with it, so no node ever outlives its search.
"""

from typing import List, Optional

import numpy as np

from vintobot.game.state import Move, SearchState


class SearchNode:
    """
    Node in the MCTS tree.

    Attributes:
        index: Position of this node in the tree's arena
        state: Game state at this node
        move: Move that produced this node (None for root)
        parent: Arena index of the parent (None for root)
        children: Arena indices of expanded children, in creation order
        untried_moves: Legal moves not yet expanded
        visits: Number of simulations through this node
        total_reward: Sum of rewards backpropagated through this node
    """

    def __init__(
        self,
        index: int,
        state: SearchState,
        move: Optional[Move] = None,
        parent: Optional[int] = None,
        untried_moves: Optional[List[Move]] = None,
    ):
        self.index = index
        self.state = state
        self.move = move
        self.parent = parent
        self.children: List[int] = []
        self.untried_moves: List[Move] = list(untried_moves or [])
        self.visits = 0
        self.total_reward = 0.0

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def is_root(self) -> bool:
        return self.parent is None

    def has_untried_moves(self) -> bool:
        return len(self.untried_moves) > 0

    @property
    def is_fully_expanded(self) -> bool:
        return not self.untried_moves

    def average_reward(self) -> float:
        """Mean backpropagated reward (0 before the first visit)."""
        return self.total_reward / self.visits if self.visits > 0 else 0.0

    def pop_random_untried_move(self, rng: np.random.Generator) -> Optional[Move]:
        """Remove and return a uniformly chosen untried move."""
        if not self.untried_moves:
            return None
        index = int(rng.integers(len(self.untried_moves)))
        return self.untried_moves.pop(index)

    def __repr__(self) -> str:
        move = str(self.move) if self.move is not None else "ROOT"
        return (
            f"SearchNode[{move}] visits={self.visits} "
            f"reward={self.total_reward:.2f} children={len(self.children)}"
        )


class SearchTree:
    """
    Arena of SearchNodes for a single search.

    The tree exclusively owns every node; index 0 is the root.
    """

    def __init__(self, root_state: SearchState, root_moves: Optional[List[Move]] = None):
        """
        Create a tree holding only the root.

        Args:
            root_state: State to search from
            root_moves: Legal moves at the root
        """
        self.nodes: List[SearchNode] = [SearchNode(0, root_state, untried_moves=root_moves)]

    @property
    def root(self) -> SearchNode:
        return self.nodes[0]

    def __len__(self) -> int:
        return len(self.nodes)

    def node(self, index: int) -> SearchNode:
        return self.nodes[index]

    def add_child(
        self,
        parent: SearchNode,
        state: SearchState,
        move: Move,
        untried_moves: Optional[List[Move]] = None,
    ) -> SearchNode:
        """
        Register a new child of `parent`.

        Args:
            parent: Node being expanded
            state: State reached by `move`
            move: Move applied at the parent
            untried_moves: Legal moves at the new state

        Returns:
            The new node
        """
        child = SearchNode(len(self.nodes), state, move, parent.index, untried_moves)
        self.nodes.append(child)
        parent.children.append(child.index)
        return child

    def children_of(self, node: SearchNode) -> List[SearchNode]:
        return [self.nodes[i] for i in node.children]

    def parent_of(self, node: SearchNode) -> Optional[SearchNode]:
        return self.nodes[node.parent] if node.parent is not None else None

    @staticmethod
    def ucb1_score(parent: SearchNode, child: SearchNode, exploration_constant: float) -> float:
        """
        UCB1 = average reward + C · sqrt(ln(parent visits) / child visits).

        Unvisited children score +inf so they are tried first.
        """
        if child.visits == 0:
            return float("inf")
        exploitation = child.total_reward / child.visits
        exploration = exploration_constant * np.sqrt(
            np.log(max(parent.visits, 1)) / child.visits
        )
        return float(exploitation + exploration)

    def select_ucb1(self, node: SearchNode, exploration_constant: float) -> Optional[SearchNode]:
        """
        Child with the highest UCB1 score (first seen wins ties).

        Returns:
            The selected child, or None if the node has no children
        """
        best_score = -float("inf")
        best_child = None

        for child in self.children_of(node):
            score = self.ucb1_score(node, child, exploration_constant)
            if score > best_score:
                best_score = score
                best_child = child

        return best_child

    def most_visited_child(self, node: SearchNode) -> Optional[SearchNode]:
        """
        Child with the strictly highest visit count (first seen wins ties).

        Returns:
            The child, or None if the node has no children
        """
        best_child = None
        max_visits = -1

        for child in self.children_of(node):
            if child.visits > max_visits:
                max_visits = child.visits
                best_child = child

        return best_child

    def backpropagate(self, node: SearchNode, reward: float) -> None:
        """Add one visit and `reward` to `node` and every ancestor."""
        current: Optional[SearchNode] = node
        while current is not None:
            current.visits += 1
            current.total_reward += reward
            current = self.parent_of(current)

    def depth(self, node: SearchNode) -> int:
        depth = 0
        current = self.parent_of(node)
        while current is not None:
            depth += 1
            current = self.parent_of(current)
        return depth
