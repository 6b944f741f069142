from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt


Street = Literal["preflop", "flop", "turn", "river", "showdown"]
ActionType = Literal["fold", "check", "call", "bet", "raise"]
PlayerId = Literal["human", "bot"]
Actor = Literal["human", "bot", "system"]
Winner = Literal["human", "bot", "split"]
Resolution = Literal["showdown", "fold"]


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class LegalActionModel(FrozenModel):
    type: ActionType
    min_amount: Optional[int] = None
    max_amount: Optional[int] = None
    to_call: Optional[int] = None


class ReplayEventModel(FrozenModel):
    """One entry of the hand feed.

    ``amount`` is the chips paid for blinds and calls, the street total
    ("raise to") for bets and raises, and the chips moved for returns and
    pot awards.
    """

    id: str
    hand_number: int
    street: Street
    actor: Actor
    action: str
    amount: Optional[int] = None
    all_in: bool = False
    pot: int
    board: List[str]
    stacks: Dict[PlayerId, int]


class HandStartModel(FrozenModel):
    hand_number: int
    button: PlayerId
    small_blind: int
    big_blind: int
    stacks: Dict[PlayerId, int]


class HandResultModel(FrozenModel):
    hand_number: int
    button: PlayerId
    winner: Winner
    resolution: Resolution
    pot: int
    big_blind: int
    net: Dict[PlayerId, int]
    board: List[str]
    showdown_players: List[PlayerId] = Field(default_factory=list)
    hands: Dict[PlayerId, str] = Field(default_factory=dict)
    best_category: Optional[str] = None

    def won_by(self, player_id: PlayerId) -> bool:
        return self.winner == player_id


class PlayerStateModel(FrozenModel):
    id: PlayerId
    name: str
    stack: int
    committed: int
    is_button: bool
    hole_cards: List[str]
    cards_visible: bool
    folded: bool
    all_in: bool


class TableSnapshotModel(FrozenModel):
    hand_number: int
    street: Street
    status: Literal["in_progress", "hand_complete"]
    small_blind: int
    big_blind: int
    pot: int
    board: List[str]
    button: PlayerId
    actor_to_act: Optional[PlayerId]
    players: Dict[PlayerId, PlayerStateModel]
    legal_actions: List[LegalActionModel]
    last_event: Optional[ReplayEventModel] = None
    result: Optional[HandResultModel] = None


class SessionSummaryModel(FrozenModel):
    hands_played: int
    hands_won: int
    starting_stack: int
    final_stacks: Dict[PlayerId, int]
    net_chips: int
    net_bb: float
    biggest_pot_won: int
    busted: Optional[PlayerId] = None


class PlayerStatsModel(BaseModel):
    """Counters for one player; derived rates are computed on read."""

    total_hands: NonNegativeInt = 0
    total_sessions: NonNegativeInt = 0
    hands_won: NonNegativeInt = 0

    vpip_hands: NonNegativeInt = 0
    pfr_hands: NonNegativeInt = 0
    three_bet_opportunities: NonNegativeInt = 0
    three_bet_hands: NonNegativeInt = 0

    cbet_opportunities: NonNegativeInt = 0
    cbet_hands: NonNegativeInt = 0
    fold_to_cbet_opportunities: NonNegativeInt = 0
    fold_to_cbet_hands: NonNegativeInt = 0

    saw_flop: NonNegativeInt = 0
    wtsd_hands: NonNegativeInt = 0
    wsd_hands: NonNegativeInt = 0

    bets: NonNegativeInt = 0
    raises: NonNegativeInt = 0
    calls: NonNegativeInt = 0

    net_bb: float = Field(0.0, allow_inf_nan=False)
    biggest_pot_won: NonNegativeInt = 0
    biggest_pot_lost: NonNegativeInt = 0

    @staticmethod
    def _pct(part: int, whole: int) -> float:
        return part / whole * 100.0 if whole else 0.0

    @property
    def vpip(self) -> float:
        return self._pct(self.vpip_hands, self.total_hands)

    @property
    def pfr(self) -> float:
        return self._pct(self.pfr_hands, self.total_hands)

    @property
    def three_bet(self) -> float:
        return self._pct(self.three_bet_hands, self.three_bet_opportunities)

    @property
    def cbet(self) -> float:
        return self._pct(self.cbet_hands, self.cbet_opportunities)

    @property
    def fold_to_cbet(self) -> float:
        return self._pct(self.fold_to_cbet_hands, self.fold_to_cbet_opportunities)

    @property
    def wtsd(self) -> float:
        return self._pct(self.wtsd_hands, self.saw_flop)

    @property
    def wsd(self) -> float:
        return self._pct(self.wsd_hands, self.wtsd_hands)

    @property
    def aggression_factor(self) -> float:
        if self.calls == 0:
            # Capped so it stays printable.
            return 99.9 if self.bets + self.raises > 0 else 0.0
        return (self.bets + self.raises) / self.calls

    @property
    def bb_per_100(self) -> float:
        if self.total_hands == 0:
            return 0.0
        return 100.0 * self.net_bb / self.total_hands


class StatDefinition(FrozenModel):
    abbrev: str
    name: str
    attribute: str
    explanation: str


STAT_DEFINITIONS: List[StatDefinition] = [
    StatDefinition(
        abbrev="VPIP",
        name="Voluntarily Put $ In Pot",
        attribute="vpip",
        explanation="% of hands where you voluntarily put money in preflop (calls or raises, not blinds)",
    ),
    StatDefinition(
        abbrev="PFR",
        name="Pre-Flop Raise",
        attribute="pfr",
        explanation="% of hands where you raised preflop. Should be close to VPIP for tight-aggressive play",
    ),
    StatDefinition(
        abbrev="3Bet",
        name="3-Bet Frequency",
        attribute="three_bet",
        explanation="% of times you re-raised when facing a raise. 7-10% is typical",
    ),
    StatDefinition(
        abbrev="Cbet",
        name="Continuation Bet",
        attribute="cbet",
        explanation="% of times you bet the flop after raising preflop. 60-70% is standard",
    ),
    StatDefinition(
        abbrev="FCbet",
        name="Fold to C-bet",
        attribute="fold_to_cbet",
        explanation="% of times you folded to a continuation bet. >50% is exploitable",
    ),
    StatDefinition(
        abbrev="WTSD",
        name="Went to Showdown",
        attribute="wtsd",
        explanation="% of hands that went to showdown when you saw the flop. 25-32% is healthy",
    ),
    StatDefinition(
        abbrev="W$SD",
        name="Won $ at Showdown",
        attribute="wsd",
        explanation="% of showdowns you won. >50% means you're showing down strong hands",
    ),
    StatDefinition(
        abbrev="AF",
        name="Aggression Factor",
        attribute="aggression_factor",
        explanation="Ratio of (bets + raises) / calls. Higher = more aggressive. 2-3 is typical",
    ),
    StatDefinition(
        abbrev="BB/100",
        name="Win Rate",
        attribute="bb_per_100",
        explanation="Net big blinds won per 100 hands",
    ),
]
