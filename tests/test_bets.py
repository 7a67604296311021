import math

import pytest

from betsim.bets import (
    BetKind,
    BetStatus,
    ComboPick,
    ExactScorePick,
    SimplePick,
    SpecialPick,
    build_selection,
    place_bet,
    quote_selection,
    validate_amount,
)
from betsim.errors import ComboConstraintError, StateError, ValidationError
from betsim.markets import MarketType
from betsim.models import ExactScore, MatchResult, MatchStatus
from tests.conftest import make_match


@pytest.mark.parametrize("amount", [0, -5, "abc", None, math.nan])
def test_invalid_amounts(amount):
    with pytest.raises(ValidationError):
        validate_amount(amount)


def test_amount_coercion():
    assert validate_amount("25.5") == 25.5


def test_simple_bet_takes_match_price(upcoming, leader, midtable):
    bet = place_bet(upcoming, leader, midtable, "alice", SimplePick(MatchResult.AWAY), 40)
    assert bet.odds == upcoming.odds.away
    assert bet.description == midtable.name
    assert bet.kind == BetKind.SIMPLE
    assert bet.status == BetStatus.PENDING
    assert bet.potential_winnings == round(40 * upcoming.odds.away, 2)


def test_bets_on_finished_match_are_rejected(leader, midtable):
    finished = make_match(leader, midtable, status=MatchStatus.FINISHED)
    with pytest.raises(StateError):
        place_bet(finished, leader, midtable, "alice", SimplePick(MatchResult.HOME), 10)


def test_quote_without_team_records(upcoming):
    price, description = quote_selection(upcoming, None, None, ExactScorePick(ExactScore(0, 0)))
    assert price == 8.5
    assert description == "Exact score 0-0"


@pytest.mark.parametrize("kind,value,expected", [
    ("simple", "team1", SimplePick(MatchResult.HOME)),
    ("simple", "empate", SimplePick(MatchResult.DRAW)),
    ("exact_score", "exacto-2-1", ExactScorePick(ExactScore(2, 1))),
    ("exact_score", "3:3", ExactScorePick(ExactScore(3, 3))),
    ("special", "roja-no", SpecialPick(MarketType.TOTAL_RED_CARDS_NO)),
])
def test_build_selection(kind, value, expected):
    assert build_selection(None, None, kind, value) == expected


def test_build_combo_selection(leader, midtable):
    selection = build_selection(leader, midtable, "special_combined", ["cabeza", "mas-2-5"])
    assert isinstance(selection, ComboPick)
    assert [leg.market for leg in selection.legs] == [MarketType.HEADER_GOAL, MarketType.TOTAL_GOALS_OVER_2_5]


def test_build_combo_checks_exclusivity(leader, midtable):
    with pytest.raises(ComboConstraintError):
        build_selection(leader, midtable, "special_combined", ["mas-2-5", "menos-2-5"])


@pytest.mark.parametrize("value", ["2-", "a-b", "2-1-0", ""])
def test_malformed_exact_score(value):
    with pytest.raises(ValidationError):
        build_selection(None, None, "exact_score", value)


def test_unknown_kind():
    with pytest.raises(ValidationError):
        build_selection(None, None, "parlay", "x")
