"""
Bid/trick entry flow for a single round.

The flow walks the table through trump selection, the rainbow and jobo screens
(rainbow hand size only), one bid per player and later one trick count per
player, then hands a single commit payload to the game layer.

    trump -> [rainbow -> jobo] -> bids x N -> commit_bids
    tricks x N -> tricks_error | commit_tricks

A flow covers either the bidding half or the tricks half of a round. The half
is chosen when the flow starts, from whether the round already has bids
entered. Every transition is a pure function returning a new frozen
EntryFlowState.

Ordering:
- bid order starts at the seat clockwise of the dealer: (dealer + 1 + k) mod N
- tricks order sorts by effective bid descending (a board counts as the full
  hand), ties broken by bid-order position ascending
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict

from game.logic.enums import TERMINAL_ENTRY_PHASES, EntryPhase, Suit
from game.logic.exceptions import InvalidEntryActionError, UnknownPlayerError
from game.logic.game import parse_suit, validate_bid, validate_tricks
from game.logic.scoring import effective_bid
from game.logic.types import BidEntry, BidsCommit, JoboEntry, RainbowEntry, TricksCommit, TricksEntry

if TYPE_CHECKING:
    from collections.abc import Sequence

    from game.logic.settings import GameSettings
    from game.logic.state import Round

logger = structlog.get_logger()


class BidDraft(BaseModel):
    """A bid collected during the flow but not yet committed."""

    model_config = ConfigDict(frozen=True)

    bid: int = 0
    board_level: int = 0

    @property
    def is_board(self) -> bool:
        return self.board_level > 0


class EntryFlowState(BaseModel):
    """
    Snapshot of an entry flow.

    ``bids`` is indexed by bid-order position, ``tricks`` by tricks-order
    position. Seat indexes in ``bid_order`` and ``tricks_order`` point into
    ``player_ids``.
    """

    model_config = ConfigDict(frozen=True)

    round_index: int
    hand_size: int
    dealer_player_id: str
    player_ids: tuple[str, ...]
    bid_order: tuple[int, ...]
    tricks_order: tuple[int, ...] = ()
    is_rainbow_round: bool = False
    max_board_level: int

    phase: EntryPhase
    player_step: int = 0
    suit: Suit | None = None
    bids: tuple[BidDraft, ...]
    tricks: tuple[int | None, ...]
    rainbow_players: frozenset[str] = frozenset()
    jobo_players: frozenset[str] = frozenset()

    @property
    def player_count(self) -> int:
        return len(self.player_ids)

    @property
    def is_finished(self) -> bool:
        return self.phase in TERMINAL_ENTRY_PHASES

    @property
    def current_player_id(self) -> str | None:
        """Player being prompted in the bids or tricks phase, None elsewhere."""
        if self.phase == EntryPhase.BIDS:
            return self.player_ids[self.bid_order[self.player_step]]
        if self.phase == EntryPhase.TRICKS:
            return self.player_ids[self.tricks_order[self.player_step]]
        return None

    @property
    def current_is_dealer(self) -> bool:
        return self.current_player_id == self.dealer_player_id

    @property
    def current_bid_total(self) -> int:
        """Effective bids entered by players before the current bid step."""
        return sum(effective_bid(d.bid, d.board_level, self.hand_size) for d in self.bids[: self.player_step])

    @property
    def max_board_so_far(self) -> int:
        """Highest board level declared by players before the current bid step."""
        return max((d.board_level for d in self.bids[: self.player_step]), default=0)

    @property
    def next_board_level(self) -> int:
        return min(self.max_board_so_far + 1, self.max_board_level)

    @property
    def current_trick_total(self) -> int:
        return sum(t for t in self.tricks[: self.player_step] if t is not None)

    @property
    def trick_total(self) -> int:
        return sum(t for t in self.tricks if t is not None)

    def bid_for_player(self, player_id: str) -> BidDraft:
        """Return the drafted bid for a player."""
        seat = self._seat(player_id)
        return self.bids[self.bid_order.index(seat)]

    def _seat(self, player_id: str) -> int:
        try:
            return self.player_ids.index(player_id)
        except ValueError:
            raise UnknownPlayerError(f"player {player_id!r} is not seated in this entry flow") from None


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def build_bid_order(player_ids: Sequence[str], dealer_player_id: str) -> tuple[int, ...]:
    """Seat indexes in bidding order, starting clockwise of the dealer."""
    if dealer_player_id not in player_ids:
        raise UnknownPlayerError(f"dealer {dealer_player_id!r} is not seated")
    dealer_index = list(player_ids).index(dealer_player_id)
    count = len(player_ids)
    return tuple((dealer_index + 1 + k) % count for k in range(count))


def build_tricks_order(bid_order: Sequence[int], bids: Sequence[BidDraft], hand_size: int) -> tuple[int, ...]:
    """
    Seat indexes in tricks-reporting order.

    Highest effective bid first; ties go to the player earlier in bid order.
    """
    positions = sorted(
        range(len(bid_order)),
        key=lambda k: (-effective_bid(bids[k].bid, bids[k].board_level, hand_size), k),
    )
    return tuple(bid_order[k] for k in positions)


# ---------------------------------------------------------------------------
# Start
# ---------------------------------------------------------------------------


def start_entry_flow(round_state: Round, player_ids: Sequence[str], settings: GameSettings) -> EntryFlowState:
    """
    Start an entry flow for a round.

    The initial phase is derived from the round: trump when bids have not been
    entered, tricks when they have. Raises InvalidEntryActionError for a
    complete round.
    """
    if round_state.is_complete:
        raise InvalidEntryActionError(f"round {round_state.round_index} is already complete")

    bid_order = build_bid_order(player_ids, round_state.dealer_player_id)
    rainbow_players = frozenset(pr.player_id for pr in round_state.player_rounds if pr.rainbow)
    jobo_players = frozenset(pr.player_id for pr in round_state.player_rounds if pr.jobo)
    common = {
        "round_index": round_state.round_index,
        "hand_size": round_state.hand_size,
        "dealer_player_id": round_state.dealer_player_id,
        "player_ids": tuple(player_ids),
        "bid_order": bid_order,
        "is_rainbow_round": settings.is_rainbow_hand(round_state.hand_size),
        "max_board_level": settings.max_board_level,
        "tricks": (None,) * len(player_ids),
        "rainbow_players": rainbow_players,
        "jobo_players": jobo_players,
    }

    if round_state.bids_entered:
        bids = []
        for seat in bid_order:
            player_round = round_state.get_player_round(player_ids[seat])
            if player_round is None:
                raise UnknownPlayerError(f"player {player_ids[seat]!r} has no record in round {round_state.round_index}")
            bids.append(BidDraft(bid=player_round.bid, board_level=player_round.board_level))
        return EntryFlowState(
            phase=EntryPhase.TRICKS,
            suit=round_state.trump_suit,
            bids=tuple(bids),
            tricks_order=build_tricks_order(bid_order, bids, round_state.hand_size),
            **common,
        )

    return EntryFlowState(
        phase=EntryPhase.TRUMP,
        bids=tuple(BidDraft() for _ in player_ids),
        **common,
    )


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def _require_phase(state: EntryFlowState, *phases: EntryPhase) -> None:
    if state.phase not in phases:
        expected = ", ".join(p.value for p in phases)
        raise InvalidEntryActionError(f"action requires phase {expected}, flow is in {state.phase.value}")


def select_suit(state: EntryFlowState, suit: Suit | str) -> EntryFlowState:
    """Choose trump; go to the rainbow screen on the rainbow hand, else to the first bid."""
    _require_phase(state, EntryPhase.TRUMP)
    next_phase = EntryPhase.RAINBOW if state.is_rainbow_round else EntryPhase.BIDS
    return state.model_copy(update={"suit": parse_suit(suit), "phase": next_phase, "player_step": 0})


def toggle_rainbow(state: EntryFlowState, player_id: str) -> EntryFlowState:
    """Flip a player's rainbow. Turning it on clears the same player's jobo."""
    _require_phase(state, EntryPhase.RAINBOW)
    state._seat(player_id)
    if player_id in state.rainbow_players:
        return state.model_copy(update={"rainbow_players": state.rainbow_players - {player_id}})
    return state.model_copy(
        update={
            "rainbow_players": state.rainbow_players | {player_id},
            "jobo_players": state.jobo_players - {player_id},
        },
    )


def finish_rainbows(state: EntryFlowState) -> EntryFlowState:
    _require_phase(state, EntryPhase.RAINBOW)
    return state.model_copy(update={"phase": EntryPhase.JOBO})


def toggle_jobo(state: EntryFlowState, player_id: str) -> EntryFlowState:
    """Flip a player's jobo. Turning it on clears the same player's rainbow."""
    _require_phase(state, EntryPhase.JOBO)
    state._seat(player_id)
    if player_id in state.jobo_players:
        return state.model_copy(update={"jobo_players": state.jobo_players - {player_id}})
    return state.model_copy(
        update={
            "jobo_players": state.jobo_players | {player_id},
            "rainbow_players": state.rainbow_players - {player_id},
        },
    )


def finish_jobos(state: EntryFlowState) -> EntryFlowState:
    _require_phase(state, EntryPhase.JOBO)
    return state.model_copy(update={"phase": EntryPhase.BIDS, "player_step": 0})


def _record_bid(state: EntryFlowState, draft: BidDraft) -> EntryFlowState:
    bids = list(state.bids)
    bids[state.player_step] = draft
    if state.player_step + 1 >= state.player_count:
        return state.model_copy(update={"bids": tuple(bids), "phase": EntryPhase.COMMIT_BIDS})
    return state.model_copy(update={"bids": tuple(bids), "player_step": state.player_step + 1})


def submit_bid(state: EntryFlowState, bid: int) -> EntryFlowState:
    """Record a normal numeric bid for the current player and advance.

    Replaces a board the player declared earlier in this flow.
    """
    _require_phase(state, EntryPhase.BIDS)
    validate_bid(state.hand_size, bid, 0, state.max_board_level)
    return _record_bid(state, BidDraft(bid=bid, board_level=0))


def declare_board(state: EntryFlowState) -> EntryFlowState:
    """
    Declare a board for the current player and advance.

    The bid becomes the full hand and the level is one above the highest board
    declared by earlier players, capped at the maximum level.
    """
    _require_phase(state, EntryPhase.BIDS)
    return _record_bid(state, BidDraft(bid=state.hand_size, board_level=state.next_board_level))


def submit_tricks(state: EntryFlowState, tricks_taken: int) -> EntryFlowState:
    """
    Record the current player's tricks and advance.

    After the last player the total is checked against the hand size:
    a mismatch goes to tricks_error, a match to commit_tricks.
    """
    _require_phase(state, EntryPhase.TRICKS)
    validate_tricks(state.hand_size, tricks_taken)
    tricks = list(state.tricks)
    tricks[state.player_step] = tricks_taken
    if state.player_step + 1 < state.player_count:
        return state.model_copy(update={"tricks": tuple(tricks), "player_step": state.player_step + 1})

    total = sum(t for t in tricks if t is not None)
    if total != state.hand_size:
        logger.info(
            "tricks do not add up",
            round_index=state.round_index,
            total=total,
            hand_size=state.hand_size,
        )
        return state.model_copy(update={"tricks": tuple(tricks), "phase": EntryPhase.TRICKS_ERROR})
    return state.model_copy(update={"tricks": tuple(tricks), "phase": EntryPhase.COMMIT_TRICKS})


# screens whose back target does not depend on the player step
_BACK_TARGETS: dict[EntryPhase, EntryPhase] = {
    EntryPhase.TRUMP: EntryPhase.CLOSED,
    EntryPhase.RAINBOW: EntryPhase.TRUMP,
    EntryPhase.JOBO: EntryPhase.RAINBOW,
}


def back(state: EntryFlowState) -> EntryFlowState:
    """
    Step backwards.

    Every forward step is reversible except the first tricks step, whose back
    closes the flow: committed bids are not reopened from the tricks half.
    """
    phase = state.phase
    if phase in _BACK_TARGETS:
        return state.model_copy(update={"phase": _BACK_TARGETS[phase]})
    if phase in (EntryPhase.BIDS, EntryPhase.TRICKS) and state.player_step > 0:
        return state.model_copy(update={"player_step": state.player_step - 1})
    if phase == EntryPhase.BIDS:
        previous = EntryPhase.JOBO if state.is_rainbow_round else EntryPhase.TRUMP
        return state.model_copy(update={"phase": previous})
    if phase == EntryPhase.TRICKS:
        return state.model_copy(update={"phase": EntryPhase.CLOSED})
    if phase == EntryPhase.TRICKS_ERROR:
        return state.model_copy(update={"phase": EntryPhase.TRICKS, "player_step": state.player_count - 1})
    raise InvalidEntryActionError(f"cannot go back from {phase.value}")


def close(state: EntryFlowState) -> EntryFlowState:
    """Abandon the flow without committing anything."""
    if state.phase in (EntryPhase.COMMIT_BIDS, EntryPhase.COMMIT_TRICKS):
        raise InvalidEntryActionError(f"flow already reached {state.phase.value}")
    return state.model_copy(update={"phase": EntryPhase.CLOSED})


# ---------------------------------------------------------------------------
# Commit payloads
# ---------------------------------------------------------------------------


def bids_commit(state: EntryFlowState) -> BidsCommit:
    """Build the bids payload: bids in bid order, rainbows and jobos in seating order."""
    _require_phase(state, EntryPhase.COMMIT_BIDS)
    if state.suit is None:
        raise InvalidEntryActionError("bids reached commit without a trump suit")
    return BidsCommit(
        round_index=state.round_index,
        trump_suit=state.suit,
        bids=tuple(
            BidEntry(player_id=state.player_ids[seat], bid=draft.bid, board_level=draft.board_level)
            for seat, draft in zip(state.bid_order, state.bids, strict=True)
        ),
        rainbows=tuple(
            RainbowEntry(player_id=pid, rainbow=state.is_rainbow_round and pid in state.rainbow_players)
            for pid in state.player_ids
        ),
        jobos=tuple(
            JoboEntry(player_id=pid, jobo=state.is_rainbow_round and pid in state.jobo_players)
            for pid in state.player_ids
        ),
    )


def tricks_commit(state: EntryFlowState) -> TricksCommit:
    """Build the tricks payload in tricks order."""
    _require_phase(state, EntryPhase.COMMIT_TRICKS)
    entries = []
    for seat, tricks_taken in zip(state.tricks_order, state.tricks, strict=True):
        if tricks_taken is None:
            raise InvalidEntryActionError(f"player {state.player_ids[seat]!r} has no tricks recorded")
        entries.append(TricksEntry(player_id=state.player_ids[seat], tricks_taken=tricks_taken))
    return TricksCommit(round_index=state.round_index, tricks=tuple(entries))
