"""
Verifies the round entry flow: bid and tricks ordering, board level
propagation, rainbow/jobo screens, back navigation, trick-total validation
and the commit payloads.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from game.logic.entry_flow import (
    BidDraft,
    back,
    bids_commit,
    build_bid_order,
    build_tricks_order,
    close,
    declare_board,
    finish_jobos,
    finish_rainbows,
    select_suit,
    start_entry_flow,
    submit_bid,
    submit_tricks,
    toggle_jobo,
    toggle_rainbow,
    tricks_commit,
)
from game.logic.enums import EntryPhase, Suit
from game.logic.exceptions import (
    InvalidBidError,
    InvalidEntryActionError,
    InvalidSuitError,
    InvalidTricksError,
    UnknownPlayerError,
)
from game.logic.game import set_bids_for_round
from game.logic.settings import GameSettings
from game.logic.types import BidEntry
from game.tests.conftest import PLAYERS, create_game, play_round

if TYPE_CHECKING:
    from collections.abc import Sequence

    from game.logic.entry_flow import EntryFlowState
    from game.logic.state import Game

# round 0 deals 10 with p1 dealing; round 6 is the 4-card rainbow hand with p2 dealing
RAINBOW_ROUND = 6


def _flow(game: Game, round_index: int = 0) -> EntryFlowState:
    return start_entry_flow(game.rounds[round_index], game.player_ids, game.settings)


def _bid_all(flow: EntryFlowState, bids: Sequence[int]) -> EntryFlowState:
    for bid in bids:
        flow = submit_bid(flow, bid)
    return flow


def _tricks_flow(bids_by_player: dict[str, int | tuple[int, int]], round_index: int = 0) -> EntryFlowState:
    entries = []
    for player_id, value in bids_by_player.items():
        bid, board_level = value if isinstance(value, tuple) else (value, 0)
        entries.append(BidEntry(player_id=player_id, bid=bid, board_level=board_level))
    game = set_bids_for_round(create_game(), round_index, Suit.HEARTS, entries)
    return _flow(game, round_index)


# ============================================================================
# Ordering
# ============================================================================


class TestBidOrder:
    def test_starts_clockwise_of_dealer(self):
        assert build_bid_order(PLAYERS, "p1") == (1, 2, 3, 4, 0)
        assert build_bid_order(PLAYERS, "p4") == (4, 0, 1, 2, 3)

    def test_last_seat_dealer_wraps_to_first(self):
        assert build_bid_order(PLAYERS, "p5") == (0, 1, 2, 3, 4)

    def test_unknown_dealer(self):
        with pytest.raises(UnknownPlayerError):
            build_bid_order(PLAYERS, "ghost")

    def test_flow_prompts_in_bid_order(self):
        flow = select_suit(_flow(create_game()), Suit.SPADES)
        prompted = []
        while flow.phase == EntryPhase.BIDS:
            prompted.append(flow.current_player_id)
            flow = submit_bid(flow, 1)

        assert prompted == ["p2", "p3", "p4", "p5", "p1"]


class TestTricksOrder:
    def test_sorted_by_bid_descending_with_bid_position_tiebreak(self):
        # bid order p2, p3, p4, p5, p1
        flow = _tricks_flow({"p2": 2, "p3": 1, "p4": 3, "p5": 2, "p1": 1})

        order = [PLAYERS[seat] for seat in flow.tricks_order]
        assert order == ["p4", "p2", "p5", "p3", "p1"]

    def test_board_counts_as_full_hand(self):
        flow = _tricks_flow({"p2": 9, "p3": (10, 1), "p4": 0, "p5": 0, "p1": 0})

        assert flow.player_ids[flow.tricks_order[0]] == "p3"
        assert flow.player_ids[flow.tricks_order[1]] == "p2"

    def test_all_equal_bids_keep_bid_order(self):
        bids = [BidDraft(bid=2) for _ in range(5)]
        assert build_tricks_order((3, 4, 0, 1, 2), bids, 10) == (3, 4, 0, 1, 2)


# ============================================================================
# Start
# ============================================================================


class TestStartEntryFlow:
    def test_fresh_round_starts_at_trump(self):
        flow = _flow(create_game())

        assert flow.phase == EntryPhase.TRUMP
        assert flow.current_player_id is None
        assert flow.is_rainbow_round is False

    def test_bid_round_starts_at_tricks(self):
        flow = _tricks_flow({"p1": 2})

        assert flow.phase == EntryPhase.TRICKS
        assert flow.suit == Suit.HEARTS
        assert flow.bid_for_player("p1") == BidDraft(bid=2)

    def test_complete_round_rejected(self):
        game = play_round(create_game(), 0, bids={}, tricks={"p1": 10})
        with pytest.raises(InvalidEntryActionError, match="already complete"):
            _flow(game, 0)


# ============================================================================
# Trump, rainbow and jobo
# ============================================================================


class TestTrumpStep:
    def test_non_rainbow_hand_goes_to_bids(self):
        flow = select_suit(_flow(create_game()), "diamonds")

        assert flow.phase == EntryPhase.BIDS
        assert flow.player_step == 0
        assert flow.suit == Suit.DIAMONDS

    def test_rainbow_hand_goes_to_rainbow_screen(self):
        flow = select_suit(_flow(create_game(), RAINBOW_ROUND), Suit.CLUBS)
        assert flow.phase == EntryPhase.RAINBOW

    def test_invalid_suit(self):
        with pytest.raises(InvalidSuitError):
            select_suit(_flow(create_game()), "stars")


class TestRainbowAndJobo:
    def _rainbow_flow(self) -> EntryFlowState:
        return select_suit(_flow(create_game(), RAINBOW_ROUND), Suit.CLUBS)

    def test_screens_lead_to_first_bid(self):
        flow = finish_jobos(finish_rainbows(self._rainbow_flow()))

        assert flow.phase == EntryPhase.BIDS
        assert flow.player_step == 0
        # p2 deals round 6
        assert flow.current_player_id == "p3"

    def test_toggle_is_reversible(self):
        flow = toggle_rainbow(self._rainbow_flow(), "p4")
        assert flow.rainbow_players == frozenset({"p4"})

        flow = toggle_rainbow(flow, "p4")
        assert flow.rainbow_players == frozenset()

    def test_rainbow_and_jobo_exclusive_per_player(self):
        flow = toggle_rainbow(self._rainbow_flow(), "p4")
        flow = finish_rainbows(flow)
        flow = toggle_jobo(flow, "p4")

        assert flow.jobo_players == frozenset({"p4"})
        assert flow.rainbow_players == frozenset()

    def test_toggle_rejected_outside_screen(self):
        with pytest.raises(InvalidEntryActionError):
            toggle_rainbow(_flow(create_game()), "p1")

    def test_toggle_unknown_player(self):
        with pytest.raises(UnknownPlayerError):
            toggle_rainbow(self._rainbow_flow(), "ghost")

    def test_back_chain_to_trump(self):
        flow = finish_jobos(finish_rainbows(self._rainbow_flow()))

        flow = back(flow)
        assert flow.phase == EntryPhase.JOBO
        flow = back(flow)
        assert flow.phase == EntryPhase.RAINBOW
        flow = back(flow)
        assert flow.phase == EntryPhase.TRUMP

    def test_commit_carries_rainbows_and_jobos_in_seat_order(self):
        flow = toggle_rainbow(self._rainbow_flow(), "p1")
        flow = toggle_jobo(finish_rainbows(flow), "p5")
        flow = _bid_all(finish_jobos(flow), [0, 1, 0, 2, 1])
        payload = bids_commit(flow)

        assert [e.player_id for e in payload.rainbows] == list(PLAYERS)
        assert [e.rainbow for e in payload.rainbows] == [True, False, False, False, False]
        assert [e.jobo for e in payload.jobos] == [False, False, False, False, True]


# ============================================================================
# Bids
# ============================================================================


class TestBidStep:
    def test_last_bid_reaches_commit(self):
        flow = _bid_all(select_suit(_flow(create_game()), Suit.HEARTS), [2, 1, 3, 2, 1])

        assert flow.phase == EntryPhase.COMMIT_BIDS
        payload = bids_commit(flow)
        assert payload.trump_suit == Suit.HEARTS
        assert [(e.player_id, e.bid) for e in payload.bids] == [("p2", 2), ("p3", 1), ("p4", 3), ("p5", 2), ("p1", 1)]

    def test_bid_range_checked(self):
        flow = select_suit(_flow(create_game()), Suit.HEARTS)
        with pytest.raises(InvalidBidError):
            submit_bid(flow, 11)
        with pytest.raises(InvalidBidError):
            submit_bid(flow, -1)

    def test_running_bid_total(self):
        flow = _bid_all(select_suit(_flow(create_game()), Suit.HEARTS), [2, 3])
        assert flow.current_bid_total == 5

    def test_dealer_bids_last(self):
        flow = _bid_all(select_suit(_flow(create_game()), Suit.HEARTS), [0, 0, 0, 0])

        assert flow.current_player_id == "p1"
        assert flow.current_is_dealer is True

    def test_back_from_first_bid_returns_to_trump(self):
        flow = back(select_suit(_flow(create_game()), Suit.HEARTS))
        assert flow.phase == EntryPhase.TRUMP

    def test_back_steps_to_previous_player(self):
        flow = _bid_all(select_suit(_flow(create_game()), Suit.HEARTS), [2, 3])
        flow = back(flow)

        assert flow.player_step == 1
        assert flow.current_player_id == "p3"


class TestBoardDeclaration:
    def test_first_board_is_level_one_with_full_hand_bid(self):
        flow = declare_board(select_suit(_flow(create_game()), Suit.HEARTS))

        assert flow.bids[0] == BidDraft(bid=10, board_level=1)

    def test_each_later_board_goes_one_higher(self):
        flow = select_suit(_flow(create_game()), Suit.HEARTS)
        flow = declare_board(flow)
        flow = submit_bid(flow, 2)
        flow = declare_board(flow)
        flow = declare_board(flow)

        assert [d.board_level for d in flow.bids[:4]] == [1, 0, 2, 3]

    def test_level_capped_at_max(self):
        game = create_game(settings=GameSettings(max_board_level=2))
        flow = select_suit(_flow(game), Suit.HEARTS)
        for _ in range(3):
            flow = declare_board(flow)

        assert [d.board_level for d in flow.bids[:3]] == [1, 2, 2]

    def test_numeric_bid_undeclares_board(self):
        flow = declare_board(select_suit(_flow(create_game()), Suit.HEARTS))
        flow = submit_bid(back(flow), 4)

        assert flow.bids[0] == BidDraft(bid=4, board_level=0)

    def test_commit_keeps_every_declaration_in_bid_order(self):
        flow = select_suit(_flow(create_game()), Suit.HEARTS)
        flow = declare_board(flow)
        flow = declare_board(flow)
        flow = _bid_all(flow, [0, 0, 0])
        payload = bids_commit(flow)

        assert [(e.player_id, e.board_level) for e in payload.bids[:2]] == [("p2", 1), ("p3", 2)]


# ============================================================================
# Tricks
# ============================================================================


class TestTricksStep:
    def test_unbalanced_total_goes_to_error_then_correction_commits(self):
        # unconstrained bids totalling 9 on a 10-card hand
        flow = _tricks_flow({"p2": 2, "p3": 1, "p4": 3, "p5": 2, "p1": 1})
        # tricks order p4, p2, p5, p3, p1
        for tricks in (3, 2, 2, 1, 1):
            flow = submit_tricks(flow, tricks)

        assert flow.phase == EntryPhase.TRICKS_ERROR
        assert flow.trick_total == 9

        flow = back(flow)
        assert flow.phase == EntryPhase.TRICKS
        assert flow.player_step == 4
        assert flow.current_player_id == "p1"

        flow = submit_tricks(flow, 2)
        assert flow.phase == EntryPhase.COMMIT_TRICKS

        payload = tricks_commit(flow)
        assert [(e.player_id, e.tricks_taken) for e in payload.tricks] == [
            ("p4", 3),
            ("p2", 2),
            ("p5", 2),
            ("p3", 1),
            ("p1", 2),
        ]

    def test_back_from_first_tricks_step_closes(self):
        flow = back(_tricks_flow({"p1": 1}))
        assert flow.phase == EntryPhase.CLOSED

    def test_tricks_range_checked(self):
        flow = _tricks_flow({"p1": 1})
        with pytest.raises(InvalidTricksError):
            submit_tricks(flow, 11)

    def test_running_trick_total(self):
        flow = _tricks_flow({"p1": 1})
        flow = submit_tricks(submit_tricks(flow, 4), 3)
        assert flow.current_trick_total == 7

    def test_bid_actions_rejected_in_tricks_phase(self):
        with pytest.raises(InvalidEntryActionError):
            submit_bid(_tricks_flow({"p1": 1}), 1)


# ============================================================================
# Termination
# ============================================================================


class TestTermination:
    def test_close_from_any_open_phase(self):
        assert close(_flow(create_game())).phase == EntryPhase.CLOSED
        assert close(_tricks_flow({"p1": 1})).phase == EntryPhase.CLOSED

    def test_commit_phases_are_terminal(self):
        flow = _bid_all(select_suit(_flow(create_game()), Suit.HEARTS), [0, 0, 0, 0, 0])

        assert flow.is_finished
        with pytest.raises(InvalidEntryActionError):
            back(flow)
        with pytest.raises(InvalidEntryActionError):
            close(flow)

    def test_payload_requires_commit_phase(self):
        with pytest.raises(InvalidEntryActionError):
            bids_commit(_flow(create_game()))
        with pytest.raises(InvalidEntryActionError):
            tricks_commit(_tricks_flow({"p1": 1}))

    def test_back_from_trump_closes(self):
        assert back(_flow(create_game())).phase == EntryPhase.CLOSED
