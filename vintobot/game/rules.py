"""
Default move generation and state transitions for the search.

VintoRules implements both collaborators the MCTS engine takes as injected
dependencies: generate(state) lists the legal moves of the player to move,
and apply(state, move) returns the successor state. Both are pure functions
of their arguments; a SearchState is never modified in place.

The rules model a simplified Vinto round:
    - turn phase: draw, take the discard top, or call Vinto
    - drawn phase: use the drawn card's action, swap it into the hand, or discard
    - action phase: choose targets for one of the six special actions
    - toss-in phase: players holding the discarded rank may throw a copy in

Draws from the deck are not resolved to a concrete card: the player simply
passes the turn, as nobody else learns anything from it. Calling Vinto gives
every other player one final turn; the round then ends with the lowest
estimated hand total winning.
"""

from dataclasses import replace
from itertools import combinations
from typing import Dict, List, Optional, Tuple

from vintobot.game.cards import Card, IllegalMoveException
from vintobot.game.constants import (
    CALL_VINTO,
    DECLARE_ACTION,
    DECLARABLE_RANKS,
    DISCARD,
    DRAW,
    FORCE_DRAW,
    PASS,
    PEEK_AND_SWAP,
    PEEK_OPPONENT,
    PEEK_OWN,
    PHASE_ACTION,
    PHASE_DRAWN,
    PHASE_TOSS_IN,
    PHASE_TURN,
    RANK_ACTIONS,
    SWAP,
    SWAP_CARDS,
    TAKE_DISCARD,
    TOSS_IN,
    TURN_LIMIT,
    UNKNOWN_CARD_VALUE,
    USE_ACTION,
)
from vintobot.game.state import ActionTarget, KnownCard, Move, PlayerState, SearchState

# Priority used when pruning a large move list (lower = kept first)
MOVE_PRIORITY: Dict[str, int] = {
    CALL_VINTO: 1,
    USE_ACTION: 2,
    TAKE_DISCARD: 3,
    TOSS_IN: 4,
    DRAW: 5,
    SWAP: 6,
    DISCARD: 7,
    PASS: 8,
}


class VintoRules:
    """
    Move generator and state transition for Vinto search states.

    Attributes:
        max_moves: Branching cap applied after generation
        max_swap_moves: Cap on generated swap-cards target pairs
        max_peek_pairs: Cap on generated peek-and-swap target pairs
        vinto_margin: How far above the opponent average a player's estimated
            score may be while calling Vinto is still considered
    """

    def __init__(
        self,
        max_moves: int = 20,
        max_swap_moves: int = 50,
        max_peek_pairs: int = 15,
        vinto_margin: float = 5.0,
    ):
        self.max_moves = max_moves
        self.max_swap_moves = max_swap_moves
        self.max_peek_pairs = max_peek_pairs
        self.vinto_margin = vinto_margin

    # ------------------------------------------------------------------
    # Move generation
    # ------------------------------------------------------------------

    def generate(self, state: SearchState) -> List[Move]:
        """
        List the legal moves of the player to move.

        Args:
            state: State to generate moves for

        Returns:
            Pruned list of legal moves (empty for terminal states)
        """
        if state.is_terminal:
            return []

        if state.phase == PHASE_TOSS_IN:
            moves = self._toss_in_moves(state)
        elif state.phase == PHASE_ACTION:
            moves = self._action_moves(state)
        elif state.phase == PHASE_DRAWN:
            moves = self._drawn_moves(state)
        else:
            moves = self._turn_moves(state)

        return self.prune(moves)

    def prune(self, moves: List[Move]) -> List[Move]:
        """Limit the branching factor, keeping high-priority move types."""
        if len(moves) <= self.max_moves:
            return moves
        ordered = sorted(moves, key=lambda m: MOVE_PRIORITY.get(m.type, 99))
        return ordered[: self.max_moves]

    def _turn_moves(self, state: SearchState) -> List[Move]:
        player = state.current_player
        moves = []

        if state.deck_size > 0:
            moves.append(Move(DRAW, player.player_id))

        if state.discard_top is not None:
            moves.append(Move(TAKE_DISCARD, player.player_id))

        if self.can_call_vinto(state):
            moves.append(Move(CALL_VINTO, player.player_id))

        return moves

    def can_call_vinto(self, state: SearchState) -> bool:
        """
        Whether the player to move may sensibly call Vinto.

        Requires two full table rotations, no earlier call, and an estimated
        score close enough to the opponents' average.
        """
        if state.end_triggered:
            return False
        if state.turn_count < len(state.players) * 2:
            return False

        player = state.current_player
        opponent_scores = [
            p.score for p in state.players if p.player_id != player.player_id
        ]
        if not opponent_scores:
            return True
        average = sum(opponent_scores) / len(opponent_scores)
        return player.score <= average + self.vinto_margin

    def _drawn_moves(self, state: SearchState) -> List[Move]:
        player = state.current_player
        pending = state.pending_card
        if pending is None:
            return []

        moves = []
        if pending.has_action:
            moves.append(Move(USE_ACTION, player.player_id))

        moves.append(Move(DISCARD, player.player_id))

        for position in range(player.card_count):
            moves.append(Move(SWAP, player.player_id, swap_position=position))

        return moves

    def _action_moves(self, state: SearchState) -> List[Move]:
        player = state.current_player
        pid = player.player_id
        action = state.action_target_type
        moves: List[Move] = []

        if action == PEEK_OWN:
            for position in range(player.card_count):
                moves.append(
                    Move(USE_ACTION, pid, targets=(ActionTarget(pid, position),))
                )

        elif action == PEEK_OPPONENT:
            for target in self._opponent_slots(state, pid):
                moves.append(Move(USE_ACTION, pid, targets=(target,)))

        elif action == SWAP_CARDS:
            for first, second in self._slot_pairs(state, pid):
                if len(moves) >= self.max_swap_moves:
                    break
                moves.append(Move(USE_ACTION, pid, targets=(first, second)))

        elif action == PEEK_AND_SWAP:
            if len(state.peeked_targets) == 2:
                pairs = [tuple(state.peeked_targets)]
            else:
                pairs = list(self._slot_pairs(state, pid))[: self.max_peek_pairs]
            for first, second in pairs:
                for should_swap in (True, False):
                    moves.append(
                        Move(
                            USE_ACTION,
                            pid,
                            targets=(first, second),
                            should_swap=should_swap,
                        )
                    )

        elif action == FORCE_DRAW:
            for opponent in state.players:
                if opponent.player_id == pid:
                    continue
                moves.append(
                    Move(USE_ACTION, pid, targets=(ActionTarget(opponent.player_id, -1),))
                )

        elif action == DECLARE_ACTION:
            for rank in DECLARABLE_RANKS:
                moves.append(Move(USE_ACTION, pid, declared_rank=rank))

        # Every action may be skipped
        moves.append(Move(PASS, pid))
        return moves

    def _toss_in_moves(self, state: SearchState) -> List[Move]:
        player = state.current_player
        moves = [Move(PASS, player.player_id)]

        rank = state.toss_in_rank
        if rank is None and state.discard_top is not None:
            rank = state.discard_top.rank
        if rank is None:
            return moves

        for position in range(player.card_count):
            card = state.card_at(player.player_id, position)
            if card is not None and card.rank == rank:
                moves.append(
                    Move(TOSS_IN, player.player_id, toss_in_positions=(position,))
                )

        return moves

    @staticmethod
    def _opponent_slots(state: SearchState, player_id: str) -> List[ActionTarget]:
        return [
            ActionTarget(p.player_id, position)
            for p in state.players
            if p.player_id != player_id
            for position in range(p.card_count)
        ]

    def _slot_pairs(self, state: SearchState, player_id: str):
        """
        Yield slot pairs from two different players.

        Pairs that include the mover's own slots come first, since those
        are the swaps that change the mover's hand.
        """
        own = [
            ActionTarget(player_id, position)
            for position in range(state.player(player_id).card_count)
        ]
        opponents = self._opponent_slots(state, player_id)

        for own_slot in own:
            for opponent_slot in opponents:
                yield own_slot, opponent_slot

        for first, second in combinations(opponents, 2):
            if first.player_id != second.player_id:
                yield first, second

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def apply(self, state: SearchState, move: Move) -> SearchState:
        """
        Apply a move and return the successor state.

        Args:
            state: State to apply the move to (left untouched)
            move: Move made by the player to move

        Returns:
            New SearchState

        Raises:
            IllegalMoveException: If the state is terminal or the move is
                made out of turn
        """
        if state.is_terminal:
            raise IllegalMoveException(move, "state is terminal")
        if move.player_id != state.current_player.player_id:
            raise IllegalMoveException(
                move, f"it is {state.current_player.player_id}'s turn"
            )

        handlers = {
            DRAW: self._apply_draw,
            TAKE_DISCARD: self._apply_take_discard,
            USE_ACTION: self._apply_use_action,
            SWAP: self._apply_swap,
            DISCARD: self._apply_discard,
            TOSS_IN: self._apply_toss_in,
            CALL_VINTO: self._apply_call_vinto,
            PASS: self._apply_pass,
        }
        new_state = handlers[move.type](state, move)

        if new_state.is_terminal:
            return new_state
        return self._check_terminal(new_state)

    def _apply_draw(self, state: SearchState, move: Move) -> SearchState:
        state = replace(state, deck_size=max(0, state.deck_size - 1))
        return self._advance(state)

    def _apply_take_discard(self, state: SearchState, move: Move) -> SearchState:
        taken = state.discard_top
        if taken is None:
            raise IllegalMoveException(move, "discard pile is empty")

        # The taken card replaces the mover's highest-valued slot
        index = state.current_player_index
        player = state.players[index]
        if player.card_count == 0:
            return self._advance(replace(state, discard_top=None))

        position = max(
            range(player.card_count),
            key=lambda pos: self._slot_value(state, player.player_id, pos),
        )
        replaced = state.card_at(player.player_id, position)
        state = self._place_card(state, index, position, taken)
        state = replace(state, discard_top=replaced)
        return self._advance(state)

    def _apply_use_action(self, state: SearchState, move: Move) -> SearchState:
        if state.phase == PHASE_DRAWN:
            card = state.pending_card
            if card is None or not card.has_action:
                raise IllegalMoveException(move, "no action card pending")
            # The action card is played to the discard; targets come next
            return replace(
                state,
                phase=PHASE_ACTION,
                action_target_type=card.action,
                discard_top=card,
                pending_card=None,
                peeked_targets=(),
            )

        if state.phase != PHASE_ACTION:
            raise IllegalMoveException(move, f"no action to resolve in {state.phase} phase")

        action = state.action_target_type
        if action == DECLARE_ACTION:
            if move.declared_rank not in RANK_ACTIONS:
                raise IllegalMoveException(move, "declared rank has no action")
            return replace(
                state,
                action_target_type=RANK_ACTIONS[move.declared_rank],
                peeked_targets=(),
            )

        targets = move.targets
        if action in (PEEK_OWN, PEEK_OPPONENT):
            for target in targets:
                state = self._reveal(state, move.player_id, target)

        elif action == SWAP_CARDS:
            if len(targets) == 2:
                state = self._swap_slots(state, targets[0], targets[1])

        elif action == PEEK_AND_SWAP:
            for target in targets:
                state = self._reveal(state, move.player_id, target)
            if move.should_swap and len(targets) == 2:
                state = self._swap_slots(state, targets[0], targets[1])

        elif action == FORCE_DRAW:
            for target in targets:
                state = self._force_draw(state, target.player_id)

        return self._advance(state)

    def _apply_swap(self, state: SearchState, move: Move) -> SearchState:
        pending = state.pending_card
        index = state.current_player_index
        player = state.players[index]
        position = move.swap_position
        if pending is None:
            raise IllegalMoveException(move, "no card pending")
        if position is None or not 0 <= position < player.card_count:
            raise IllegalMoveException(move, "swap position out of range")

        replaced = state.card_at(player.player_id, position)
        state = self._place_card(state, index, position, pending)
        state = replace(state, pending_card=None, discard_top=replaced)
        return self._open_toss_in(state, replaced)

    def _apply_discard(self, state: SearchState, move: Move) -> SearchState:
        pending = state.pending_card
        if pending is None:
            raise IllegalMoveException(move, "no card pending")
        state = replace(state, pending_card=None, discard_top=pending)
        return self._open_toss_in(state, pending)

    def _apply_toss_in(self, state: SearchState, move: Move) -> SearchState:
        index = state.current_player_index
        tossed: Optional[Card] = None
        # Remove from the highest position down so earlier indices stay valid
        for position in sorted(move.toss_in_positions, reverse=True):
            card = state.card_at(move.player_id, position)
            state = self._remove_slot(state, index, position)
            if card is not None:
                tossed = card

        if tossed is not None:
            state = replace(state, discard_top=tossed)
        return self._continue_toss_in(state)

    def _apply_call_vinto(self, state: SearchState, move: Move) -> SearchState:
        state = replace(state, end_triggered=True, end_caller_id=move.player_id)
        return self._advance(state)

    def _apply_pass(self, state: SearchState, move: Move) -> SearchState:
        if state.phase == PHASE_TOSS_IN:
            return self._continue_toss_in(state)
        return self._advance(state)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _advance(self, state: SearchState) -> SearchState:
        """Hand the turn to the next seat and reset per-turn fields."""
        next_index = (state.current_player_index + 1) % len(state.players)
        state = replace(
            state,
            current_player_index=next_index,
            turn_count=state.turn_count + 1,
            phase=PHASE_TURN,
            pending_card=None,
            action_target_type=None,
            peeked_targets=(),
            toss_in_rank=None,
            toss_in_origin_index=None,
        )
        if state.end_triggered and state.players[next_index].player_id == state.end_caller_id:
            return self._finish(state)
        return state

    def _check_terminal(self, state: SearchState) -> SearchState:
        if any(p.card_count == 0 for p in state.players):
            return self._finish(state)
        if state.deck_size <= 0 and state.phase == PHASE_TURN:
            return self._finish(state)
        if state.turn_count > TURN_LIMIT:
            return self._finish(state)
        return state

    @staticmethod
    def _finish(state: SearchState) -> SearchState:
        """Mark the round over; lowest estimated score wins, seat order breaks ties."""
        winner = min(state.players, key=lambda p: p.score)
        return replace(state, is_terminal=True, winner=winner.player_id)

    @staticmethod
    def _slot_value(state: SearchState, player_id: str, position: int) -> float:
        card = state.card_at(player_id, position)
        return card.value if card is not None else UNKNOWN_CARD_VALUE

    @staticmethod
    def _with_player(state: SearchState, index: int, player: PlayerState) -> SearchState:
        players = state.players[:index] + (player,) + state.players[index + 1:]
        return replace(state, players=players)

    def _place_card(
        self, state: SearchState, index: int, position: int, card: Card
    ) -> SearchState:
        """Put a card the mover has seen into one of the mover's slots."""
        player = state.players[index]
        old_value = self._slot_value(state, player.player_id, position)

        known = dict(player.known_cards)
        if player.player_id == state.bot_player_id:
            known[position] = KnownCard(card, 1.0)
        else:
            # The bot does not see what an opponent keeps
            known.pop(position, None)

        player = replace(
            player, known_cards=known, score=player.score - old_value + card.value
        )
        state = self._with_player(state, index, player)

        if state.is_determinized:
            hidden = dict(state.hidden_cards)
            hidden[(player.player_id, position)] = card
            state = replace(state, hidden_cards=hidden)
        return state

    def _reveal(self, state: SearchState, viewer_id: str, target: ActionTarget) -> SearchState:
        """Record a peek in the bot's beliefs when the bot is the viewer."""
        if viewer_id != state.bot_player_id or target.position < 0:
            return state
        card = state.hidden_cards.get((target.player_id, target.position))
        if card is None:
            return state

        index = state.player_index(target.player_id)
        player = state.players[index]
        known = dict(player.known_cards)
        known[target.position] = KnownCard(card, 1.0)
        return self._with_player(state, index, replace(player, known_cards=known))

    def _swap_slots(
        self, state: SearchState, first: ActionTarget, second: ActionTarget
    ) -> SearchState:
        """Exchange two slots; beliefs follow the cards since swaps are public."""
        first_value = self._slot_value(state, first.player_id, first.position)
        second_value = self._slot_value(state, second.player_id, second.position)

        first_index = state.player_index(first.player_id)
        second_index = state.player_index(second.player_id)
        first_known = state.players[first_index].known_at(first.position)
        second_known = state.players[second_index].known_at(second.position)

        state = self._set_known(state, first_index, first.position, second_known)
        state = self._set_known(state, second_index, second.position, first_known)

        if first_index != second_index:
            p1 = state.players[first_index]
            state = self._with_player(
                state, first_index, replace(p1, score=p1.score - first_value + second_value)
            )
            p2 = state.players[second_index]
            state = self._with_player(
                state, second_index, replace(p2, score=p2.score - second_value + first_value)
            )

        if state.is_determinized:
            hidden = dict(state.hidden_cards)
            first_key = (first.player_id, first.position)
            second_key = (second.player_id, second.position)
            first_card = hidden.pop(first_key, None)
            second_card = hidden.pop(second_key, None)
            if second_card is not None:
                hidden[first_key] = second_card
            if first_card is not None:
                hidden[second_key] = first_card
            state = replace(state, hidden_cards=hidden)
        return state

    def _set_known(
        self, state: SearchState, index: int, position: int, known_card: Optional[KnownCard]
    ) -> SearchState:
        player = state.players[index]
        known = dict(player.known_cards)
        if known_card is None:
            known.pop(position, None)
        else:
            known[position] = known_card
        return self._with_player(state, index, replace(player, known_cards=known))

    def _force_draw(self, state: SearchState, player_id: str) -> SearchState:
        if state.deck_size <= 0:
            return state
        index = state.player_index(player_id)
        player = state.players[index]
        player = replace(
            player,
            card_count=player.card_count + 1,
            score=player.score + UNKNOWN_CARD_VALUE,
        )
        state = self._with_player(state, index, player)
        return replace(state, deck_size=state.deck_size - 1)

    def _remove_slot(self, state: SearchState, index: int, position: int) -> SearchState:
        """Remove a hand slot and shift higher positions down by one."""
        player = state.players[index]
        value = self._slot_value(state, player.player_id, position)

        known: Dict[int, KnownCard] = {}
        for pos, known_card in player.known_cards.items():
            if pos < position:
                known[pos] = known_card
            elif pos > position:
                known[pos - 1] = known_card

        player = replace(
            player,
            card_count=player.card_count - 1,
            known_cards=known,
            score=player.score - value,
        )
        state = self._with_player(state, index, player)

        if state.is_determinized:
            hidden: Dict[Tuple[str, int], Card] = {}
            for (pid, pos), card in state.hidden_cards.items():
                if pid != player.player_id or pos < position:
                    hidden[(pid, pos)] = card
                elif pos > position:
                    hidden[(pid, pos - 1)] = card
            state = replace(state, hidden_cards=hidden)
        return state

    def _open_toss_in(self, state: SearchState, discarded: Optional[Card]) -> SearchState:
        """
        Open a toss-in window after a discard, if anyone holds the rank.

        Only determinized states know enough about other hands to open one.
        """
        if discarded is None or not state.is_determinized:
            return self._advance(state)

        origin = state.current_player_index
        holder = self._next_toss_in_holder(state, discarded.rank, origin, origin)
        if holder is None:
            return self._advance(state)

        return replace(
            state,
            phase=PHASE_TOSS_IN,
            toss_in_rank=discarded.rank,
            toss_in_origin_index=origin,
            current_player_index=holder,
            pending_card=None,
            action_target_type=None,
        )

    def _continue_toss_in(self, state: SearchState) -> SearchState:
        """Move the toss-in window to the next holder, or close it."""
        origin = state.toss_in_origin_index
        if origin is None:
            return self._advance(state)

        holder = None
        if state.toss_in_rank is not None:
            holder = self._next_toss_in_holder(
                state, state.toss_in_rank, state.current_player_index, origin
            )
        if holder is not None:
            return replace(state, current_player_index=holder)

        # Window closed: play continues after the player who discarded
        return self._advance(replace(state, current_player_index=origin))

    @staticmethod
    def _next_toss_in_holder(
        state: SearchState, rank: str, after_index: int, origin_index: int
    ) -> Optional[int]:
        num_players = len(state.players)
        for step in range(1, num_players):
            index = (after_index + step) % num_players
            if index == origin_index:
                return None
            player = state.players[index]
            for position in range(player.card_count):
                card = state.card_at(player.player_id, position)
                if card is not None and card.rank == rank:
                    return index
        return None
