import pytest

from betsim.bets import ComboPick, ExactScorePick, SimplePick, SpecialPick, place_bet
from betsim.combos import compose_combo
from betsim.errors import StateError, ValidationError
from betsim.markets import MarketType
from betsim.models import ExactScore, MatchResult, MatchStats, MatchStatus
from betsim.settlement import finalize_match, settle
from tests.conftest import make_match


def bet_on(match, leader, midtable, selection, amount=100, user="alice"):
    return place_bet(match, leader, midtable, user, selection, amount)


def test_finalize_moves_match_to_finished(upcoming):
    finished, outcome = finalize_match(upcoming, "home", 2, 1)
    assert finished.status == MatchStatus.FINISHED
    assert upcoming.status == MatchStatus.UPCOMING
    assert outcome.result == MatchResult.HOME
    assert outcome.score == "2-1"
    assert outcome.is_manual
    assert outcome.recorded_at is not None


def test_finalize_accepts_aliases(upcoming):
    _, outcome = finalize_match(upcoming, "team2", 0, 1)
    assert outcome.result == MatchResult.AWAY


@pytest.mark.parametrize("result,home,away", [
    ("home", 1, 2),
    ("home", 1, 1),
    ("away", 3, 0),
    ("draw", 1, 2),
])
def test_finalize_rejects_inconsistent_score(upcoming, result, home, away):
    with pytest.raises(ValidationError):
        finalize_match(upcoming, result, home, away)


@pytest.mark.parametrize("home,away", [(-1, 0), ("two", 1), (1.5, 0)])
def test_finalize_rejects_bad_goals(upcoming, home, away):
    with pytest.raises(ValidationError):
        finalize_match(upcoming, "home", home, away)


def test_finalize_rejects_unknown_result(upcoming):
    with pytest.raises(ValidationError):
        finalize_match(upcoming, "abandoned", 0, 0)


def test_finalize_twice_is_a_state_error(upcoming):
    finished, _ = finalize_match(upcoming, "draw", 0, 0)
    with pytest.raises(StateError):
        finalize_match(finished, "draw", 0, 0)


def test_simple_bet_pays_stake_times_odds(upcoming, leader, midtable):
    winner = bet_on(upcoming, leader, midtable, SimplePick(MatchResult.HOME), 100)
    loser = bet_on(upcoming, leader, midtable, SimplePick(MatchResult.DRAW), 50, "bob")
    finished, outcome = finalize_match(upcoming, "home", 2, 1)

    batch = settle(finished, outcome, [winner, loser])
    by_id = {e.bet_id: e for e in batch.entries}
    assert by_id[winner.id].won
    assert by_id[winner.id].payout == round(100 * upcoming.odds.home, 2)
    assert not by_id[loser.id].won
    assert by_id[loser.id].payout == 0.0
    assert batch.total_payout == round(100 * upcoming.odds.home, 2)


def test_exact_score_bet(upcoming, leader, midtable):
    right = bet_on(upcoming, leader, midtable, ExactScorePick(ExactScore(2, 1)))
    wrong = bet_on(upcoming, leader, midtable, ExactScorePick(ExactScore(1, 2)))
    finished, outcome = finalize_match(upcoming, "home", 2, 1)

    batch = settle(finished, outcome, [right, wrong])
    assert [e.won for e in batch.entries] == [True, False]
    assert batch.entries[0].payout == round(100 * right.odds, 2)


def test_special_bet_uses_match_stats(upcoming, leader, midtable):
    corners = bet_on(upcoming, leader, midtable, SpecialPick(MarketType.TOTAL_CORNERS_OVER_4_5))
    finished, outcome = finalize_match(upcoming, "draw", 1, 1, MatchStats(total_corners=7))
    assert settle(finished, outcome, [corners]).entries[0].won


def test_combo_fails_if_any_leg_fails(upcoming, leader, midtable):
    quote = compose_combo(leader, midtable, ["total_goals_over_2_5", "both_teams_score"])
    combo = bet_on(upcoming, leader, midtable, ComboPick(quote.legs))
    assert combo.odds == quote.price

    finished, outcome = finalize_match(upcoming, "home", 3, 0)
    entry = settle(finished, outcome, [combo]).entries[0]
    assert not entry.won
    assert entry.payout == 0.0


def test_combo_wins_when_every_leg_wins(upcoming, leader, midtable):
    quote = compose_combo(leader, midtable, ["total_goals_over_2_5", "both_teams_score"])
    combo = bet_on(upcoming, leader, midtable, ComboPick(quote.legs))
    finished, outcome = finalize_match(upcoming, "home", 2, 1)
    entry = settle(finished, outcome, [combo]).entries[0]
    assert entry.won
    assert entry.payout == round(100 * quote.price, 2)


def test_settle_requires_finished_match(upcoming, leader, midtable):
    _, outcome = finalize_match(upcoming, "home", 1, 0)
    with pytest.raises(StateError):
        settle(upcoming, outcome, [])


def test_settle_rejects_foreign_outcome(upcoming, leader, midtable):
    other = make_match(leader, midtable, match_id="m2")
    finished, _ = finalize_match(upcoming, "home", 1, 0)
    _, foreign = finalize_match(other, "home", 1, 0)
    with pytest.raises(ValidationError):
        settle(finished, foreign, [])


def test_settle_skips_bets_on_other_matches(upcoming, leader, midtable):
    other = make_match(leader, midtable, match_id="m2")
    stray = bet_on(other, leader, midtable, SimplePick(MatchResult.HOME))
    finished, outcome = finalize_match(upcoming, "home", 1, 0)
    assert settle(finished, outcome, [stray]).entries == ()


def test_settle_is_deterministic(upcoming, leader, midtable):
    bets = [
        bet_on(upcoming, leader, midtable, SimplePick(MatchResult.HOME)),
        bet_on(upcoming, leader, midtable, SpecialPick(MarketType.TOTAL_RED_CARDS_NO)),
        bet_on(upcoming, leader, midtable, ExactScorePick(ExactScore(0, 0))),
    ]
    finished, outcome = finalize_match(upcoming, "home", 1, 0)
    assert settle(finished, outcome, bets) == settle(finished, outcome, bets)
