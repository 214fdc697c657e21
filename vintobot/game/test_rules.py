"""
Tests for default move generation and state transitions.

Tests cover:
- Legal moves per phase and pruning
- Pure transitions (input state never changes)
- Swaps, discards, taking the discard, special actions
- Toss-in windows in determinized states
- Vinto calls and terminal detection
"""

from dataclasses import replace

import pytest

from vintobot.game.cards import Card, IllegalMoveException
from vintobot.game.constants import (
    CALL_VINTO,
    DECLARE_ACTION,
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
    SWAP,
    SWAP_CARDS,
    TAKE_DISCARD,
    TOSS_IN,
    USE_ACTION,
)
from vintobot.game.rules import VintoRules
from vintobot.game.state import ActionTarget, KnownCard, Move, PlayerState, SearchState


def make_state(
    counts=(4, 4, 4),
    scores=(24.0, 24.0, 24.0),
    bot_known=None,
    **fields,
) -> SearchState:
    """Three players p1 (the bot), p2, p3 with p1 to move."""
    players = []
    for index, (count, score) in enumerate(zip(counts, scores)):
        known = dict(bot_known or {}) if index == 0 else {}
        players.append(PlayerState(f"p{index + 1}", count, known_cards=known, score=score))
    defaults = dict(
        players=tuple(players),
        current_player_index=0,
        bot_player_id='p1',
        deck_size=40,
        discard_top=Card('5', 'd0'),
    )
    defaults.update(fields)
    return SearchState(**defaults)


def determinized(state: SearchState, cards) -> SearchState:
    """Assign hidden cards: cards[player_id] is the list of ranks in hand order."""
    hidden = {}
    for player_id, ranks in cards.items():
        for position, rank in enumerate(ranks):
            hidden[(player_id, position)] = Card(rank, f"{player_id}-{position}")
    return replace(state, hidden_cards=hidden)


@pytest.fixture
def rules():
    return VintoRules()


class TestMoveGeneration:
    """Test legal moves per phase."""

    def test_turn_moves(self, rules):
        """Test draw and take-discard at turn start; no early Vinto."""
        moves = rules.generate(make_state())
        assert [m.type for m in moves] == [DRAW, TAKE_DISCARD]

    def test_turn_moves_without_deck_or_discard(self, rules):
        """Test empty deck and discard pile leave nothing to do."""
        assert rules.generate(make_state(deck_size=0, discard_top=None)) == []

    def test_call_vinto_after_two_rotations(self, rules):
        """Test Vinto becomes available after 2 x players turns."""
        state = make_state(turn_count=6, scores=(10.0, 20.0, 20.0))
        assert CALL_VINTO in [m.type for m in rules.generate(state)]

        early = make_state(turn_count=5, scores=(10.0, 20.0, 20.0))
        assert CALL_VINTO not in [m.type for m in rules.generate(early)]

    def test_no_vinto_when_far_behind_or_already_called(self, rules):
        """Test Vinto is withheld for high scores and after a call."""
        behind = make_state(turn_count=10, scores=(30.0, 20.0, 20.0))
        assert not rules.can_call_vinto(behind)

        called = make_state(turn_count=10, scores=(10.0, 20.0, 20.0), end_triggered=True)
        assert not rules.can_call_vinto(called)

    def test_drawn_moves_with_action_card(self, rules):
        """Test action card: use, discard, or swap into each slot."""
        state = make_state(phase=PHASE_DRAWN, pending_card=Card('7'))
        moves = rules.generate(state)
        assert [m.type for m in moves] == [USE_ACTION, DISCARD, SWAP, SWAP, SWAP, SWAP]
        assert [m.swap_position for m in moves[2:]] == [0, 1, 2, 3]

    def test_drawn_moves_without_action(self, rules):
        """Test plain card: no use-action."""
        state = make_state(phase=PHASE_DRAWN, pending_card=Card('4'))
        assert USE_ACTION not in [m.type for m in rules.generate(state)]

    def test_peek_own_moves(self, rules):
        """Test one move per own slot plus skipping."""
        state = make_state(phase=PHASE_ACTION, action_target_type=PEEK_OWN)
        moves = rules.generate(state)
        assert len(moves) == 5
        assert moves[-1].type == PASS
        assert all(m.targets[0].player_id == 'p1' for m in moves[:-1])

    def test_peek_opponent_moves(self, rules):
        """Test one move per opponent slot plus skipping."""
        state = make_state(
            counts=(4, 2, 3), phase=PHASE_ACTION, action_target_type=PEEK_OPPONENT
        )
        moves = rules.generate(state)
        assert len(moves) == 6
        assert {m.targets[0].player_id for m in moves[:-1]} == {'p2', 'p3'}

    def test_force_draw_moves(self, rules):
        """Test force-draw targets each opponent with position -1."""
        state = make_state(phase=PHASE_ACTION, action_target_type=FORCE_DRAW)
        moves = rules.generate(state)
        targets = [m.targets[0] for m in moves if m.type == USE_ACTION]
        assert targets == [ActionTarget('p2', -1), ActionTarget('p3', -1)]

    def test_declare_moves(self, rules):
        """Test each declarable rank plus skipping."""
        state = make_state(phase=PHASE_ACTION, action_target_type=DECLARE_ACTION)
        moves = rules.generate(state)
        declared = [m.declared_rank for m in moves if m.type == USE_ACTION]
        assert declared == ['7', '8', '9', '10', 'J', 'Q', 'A']

    def test_swap_cards_pruned_to_limit(self, rules):
        """Test large action move lists are cut to 20, own swaps first."""
        state = make_state(phase=PHASE_ACTION, action_target_type=SWAP_CARDS)
        moves = rules.generate(state)
        assert len(moves) == 20
        assert all(m.type == USE_ACTION for m in moves)
        assert moves[0].targets == (ActionTarget('p1', 0), ActionTarget('p2', 0))

    def test_peek_and_swap_after_peek(self, rules):
        """Test only swap yes/no remains once two targets are peeked."""
        peeked = (ActionTarget('p2', 1), ActionTarget('p3', 0))
        state = make_state(
            phase=PHASE_ACTION, action_target_type=PEEK_AND_SWAP, peeked_targets=peeked
        )
        moves = rules.generate(state)
        assert len(moves) == 3
        assert [m.should_swap for m in moves[:2]] == [True, False]
        assert all(m.targets == peeked for m in moves[:2])

    def test_toss_in_moves_use_confident_memory(self, rules):
        """Test toss-in is offered only for confidently known matching slots."""
        state = make_state(
            phase=PHASE_TOSS_IN,
            toss_in_rank='5',
            bot_known={2: KnownCard(Card('5'), 0.9), 3: KnownCard(Card('5'), 0.2)},
        )
        moves = rules.generate(state)
        assert moves[0].type == PASS
        assert [m.toss_in_positions for m in moves[1:]] == [(2,)]

    def test_terminal_state_has_no_moves(self, rules):
        """Test terminal states generate nothing."""
        assert rules.generate(make_state(is_terminal=True)) == []


class TestTransitions:
    """Test state transitions."""

    def test_apply_out_of_turn(self, rules):
        """Test moves by the wrong player are rejected."""
        with pytest.raises(IllegalMoveException, match="p1's turn"):
            rules.apply(make_state(), Move(DRAW, 'p2'))

    def test_apply_on_terminal_state(self, rules):
        """Test terminal states reject moves."""
        with pytest.raises(IllegalMoveException, match="terminal"):
            rules.apply(make_state(is_terminal=True), Move(DRAW, 'p1'))

    def test_draw_is_pure(self, rules):
        """Test draw advances the turn without touching the input state."""
        state = make_state()
        new_state = rules.apply(state, Move(DRAW, 'p1'))

        assert new_state.deck_size == 39
        assert new_state.current_player_index == 1
        assert new_state.turn_count == 1
        assert state.deck_size == 40
        assert state.current_player_index == 0

    def test_swap_pending_card(self, rules):
        """Test swapping a drawn card in updates memory, score and discard."""
        state = make_state(
            phase=PHASE_DRAWN,
            pending_card=Card('2', 'new'),
            bot_known={0: KnownCard(Card('K', 'old'), 0.9)},
            scores=(20.0, 24.0, 24.0),
        )
        new_state = rules.apply(state, Move(SWAP, 'p1', swap_position=0))

        bot = new_state.player('p1')
        assert bot.known_cards[0] == KnownCard(Card('2', 'new'), 1.0)
        assert bot.score == 22.0  # K (0) replaced by 2
        assert new_state.discard_top == Card('K', 'old')
        assert new_state.pending_card is None
        assert new_state.phase == PHASE_TURN
        assert new_state.current_player_index == 1

    def test_swap_out_of_range(self, rules):
        """Test swap positions must be inside the hand."""
        state = make_state(phase=PHASE_DRAWN, pending_card=Card('2'))
        with pytest.raises(IllegalMoveException, match="out of range"):
            rules.apply(state, Move(SWAP, 'p1', swap_position=7))

    def test_discard_pending_card(self, rules):
        """Test discarding puts the pending card on the pile."""
        state = make_state(phase=PHASE_DRAWN, pending_card=Card('9', 'x'))
        new_state = rules.apply(state, Move(DISCARD, 'p1'))
        assert new_state.discard_top == Card('9', 'x')
        assert new_state.pending_card is None

    def test_take_discard_replaces_highest_slot(self, rules):
        """Test the taken card replaces the highest-valued slot."""
        state = make_state(
            discard_top=Card('3', 'd'),
            bot_known={1: KnownCard(Card('Q', 'q'), 1.0)},
        )
        new_state = rules.apply(state, Move(TAKE_DISCARD, 'p1'))

        bot = new_state.player('p1')
        assert bot.known_cards[1].card == Card('3', 'd')
        assert new_state.discard_top == Card('Q', 'q')
        assert bot.score == 24.0 - 10 + 3

    def test_use_action_moves_to_action_phase(self, rules):
        """Test playing a drawn action card starts target selection."""
        state = make_state(phase=PHASE_DRAWN, pending_card=Card('J', 'j'))
        new_state = rules.apply(state, Move(USE_ACTION, 'p1'))

        assert new_state.phase == PHASE_ACTION
        assert new_state.action_target_type == SWAP_CARDS
        assert new_state.discard_top == Card('J', 'j')
        assert new_state.current_player_index == 0

    def test_king_declaration_switches_action(self, rules):
        """Test declaring a rank resolves that rank's action next."""
        state = make_state(phase=PHASE_ACTION, action_target_type=DECLARE_ACTION)
        new_state = rules.apply(state, Move(USE_ACTION, 'p1', declared_rank='9'))
        assert new_state.phase == PHASE_ACTION
        assert new_state.action_target_type == PEEK_OPPONENT

    def test_swap_cards_moves_beliefs(self, rules):
        """Test public swaps carry remembered cards and scores along."""
        state = make_state(
            phase=PHASE_ACTION,
            action_target_type=SWAP_CARDS,
            bot_known={0: KnownCard(Card('K'), 0.9)},
        )
        move = Move(
            USE_ACTION, 'p1', targets=(ActionTarget('p1', 0), ActionTarget('p2', 1))
        )
        new_state = rules.apply(state, move)

        assert 0 not in new_state.player('p1').known_cards
        assert new_state.player('p2').known_cards[1].card == Card('K')
        assert new_state.player('p1').score == 24.0 + 6  # K (0) out, unknown (6) in
        assert new_state.player('p2').score == 24.0 - 6

    def test_peek_reveals_hidden_card_to_bot(self, rules):
        """Test peeking in a determinized world updates the bot's beliefs."""
        state = determinized(
            make_state(phase=PHASE_ACTION, action_target_type=PEEK_OPPONENT),
            {'p1': ['2'] * 4, 'p2': ['8', '3', '4', '5'], 'p3': ['2'] * 4},
        )
        move = Move(USE_ACTION, 'p1', targets=(ActionTarget('p2', 0),))
        new_state = rules.apply(state, move)

        known = new_state.player('p2').known_cards[0]
        assert known.card.rank == '8'
        assert known.confidence == 1.0

    def test_force_draw(self, rules):
        """Test force-draw grows the target's hand from the deck."""
        state = make_state(phase=PHASE_ACTION, action_target_type=FORCE_DRAW)
        move = Move(USE_ACTION, 'p1', targets=(ActionTarget('p3', -1),))
        new_state = rules.apply(state, move)

        assert new_state.player('p3').card_count == 5
        assert new_state.player('p3').score == 30.0
        assert new_state.deck_size == 39

    def test_toss_in_window(self, rules):
        """Test a discard opens a toss-in window for a matching holder."""
        state = determinized(
            make_state(phase=PHASE_DRAWN, pending_card=Card('9', 'drawn')),
            {'p1': ['2'] * 4, 'p2': ['2'] * 4, 'p3': ['4', '9', '4', '4']},
        )

        window = rules.apply(state, Move(DISCARD, 'p1'))
        assert window.phase == PHASE_TOSS_IN
        assert window.toss_in_rank == '9'
        assert window.current_player.player_id == 'p3'

        moves = rules.generate(window)
        assert [m.type for m in moves] == [PASS, TOSS_IN]
        assert moves[1].toss_in_positions == (1,)

        after = rules.apply(window, moves[1])
        assert after.player('p3').card_count == 3
        assert after.hidden_cards[('p3', 1)].rank == '4'
        assert after.phase == PHASE_TURN
        assert after.current_player.player_id == 'p2'

    def test_toss_in_pass_closes_window(self, rules):
        """Test passing closes the window and play continues after the discarder."""
        state = determinized(
            make_state(phase=PHASE_DRAWN, pending_card=Card('9', 'drawn')),
            {'p1': ['2'] * 4, 'p2': ['2'] * 4, 'p3': ['4', '9', '4', '4']},
        )
        window = rules.apply(state, Move(DISCARD, 'p1'))
        after = rules.apply(window, Move(PASS, 'p3'))

        assert after.phase == PHASE_TURN
        assert after.current_player.player_id == 'p2'
        assert after.player('p3').card_count == 4

    def test_vinto_gives_everyone_a_final_turn(self, rules):
        """Test the round ends when play returns to the caller."""
        state = make_state(turn_count=6, scores=(10.0, 20.0, 5.0))
        state = rules.apply(state, Move(CALL_VINTO, 'p1'))
        assert state.end_triggered
        assert not state.is_terminal

        state = rules.apply(state, Move(DRAW, 'p2'))
        assert not state.is_terminal

        state = rules.apply(state, Move(DRAW, 'p3'))
        assert state.is_terminal
        assert state.winner == 'p3'

    def test_winner_tie_broken_by_seat(self, rules):
        """Test equal scores go to the earlier seat."""
        state = make_state(deck_size=1, scores=(12.0, 12.0, 30.0))
        final = rules.apply(state, Move(DRAW, 'p1'))
        assert final.is_terminal
        assert final.winner == 'p1'

    def test_empty_hand_ends_round(self, rules):
        """Test a player running out of cards ends the round."""
        state = determinized(
            make_state(
                counts=(4, 4, 1),
                phase=PHASE_DRAWN,
                pending_card=Card('9', 'drawn'),
            ),
            {'p1': ['2'] * 4, 'p2': ['2'] * 4, 'p3': ['9']},
        )
        window = rules.apply(state, Move(DISCARD, 'p1'))
        final = rules.apply(window, Move(TOSS_IN, 'p3', toss_in_positions=(0,)))
        assert final.is_terminal

    def test_turn_limit_ends_round(self, rules):
        """Test runaway rounds end after the turn limit."""
        final = rules.apply(make_state(turn_count=200), Move(DRAW, 'p1'))
        assert final.is_terminal
