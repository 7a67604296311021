import random

import pytest

from betsim import service
from betsim.bets import BetStatus
from betsim.database import get_bet, get_bets_for_match, get_match_by_id, get_team, get_user, mark_match_finished
from betsim.errors import (
    BettingPausedError,
    InsufficientBalanceError,
    NotFoundError,
    StateError,
    ValidationError,
)
from betsim.models import MatchStats, MatchStatus, Tier
from betsim.strength import simulation_strength
from tests.conftest import make_team


@pytest.fixture
def seeded(conn):
    service.add_team(conn, "Atletico Costanera", "D1", 1, "WWWWW", "d1")
    service.add_team(conn, "Union del Sur", "D1", 10, "DDDDD", "d1")
    service.add_team(conn, "Ferro del Oeste", "D2", 18, "LLLLL", "d2")
    return conn


@pytest.fixture
def match(seeded):
    return service.create_match(seeded, "costanera", "union del sur")


def balance(conn, user_id="alice"):
    return get_user(conn, user_id).balance


# Teams and matches

def test_add_team_validates_input(conn):
    with pytest.raises(ValidationError):
        service.add_team(conn, "", "D1")
    with pytest.raises(ValidationError):
        service.add_team(conn, "Club", "D9")
    with pytest.raises(ValidationError):
        service.add_team(conn, "Club", "D1", form="WWXWW")
    with pytest.raises(ValidationError):
        service.add_team(conn, "Club", "D1", position=0)


def test_add_team_pads_short_form(conn):
    team = service.add_team(conn, "Short", "D1", 5, "w")
    assert team.form == "WDDDD"
    assert get_team(conn, team.key).form == "WDDDD"
    assert simulation_strength(team) == simulation_strength(make_team("Short", Tier.D1, 5, "WDDDD"))


def test_create_match_resolves_fuzzy_names(match):
    assert match.team1 == "Atletico Costanera (D1)"
    assert match.team2 == "Union del Sur (D1)"
    assert match.status == MatchStatus.UPCOMING
    assert match.odds.home < match.odds.away


def test_team_cannot_play_itself(seeded):
    with pytest.raises(ValidationError):
        service.create_match(seeded, "costanera", "Atletico Costanera")


def test_unknown_team_carries_suggestions(seeded):
    with pytest.raises(NotFoundError) as exc:
        service.create_match(seeded, "Costanera Rovers", "Union del Sur")
    assert "Atletico Costanera (D1)" in exc.value.suggestions


def test_unknown_tournament(seeded):
    with pytest.raises(ValidationError):
        service.create_match(seeded, "costanera", "union", tournament="champions")


def test_random_match_needs_two_teams(conn):
    service.add_team(conn, "Lonely FC", "D3")
    with pytest.raises(StateError):
        service.generate_random_match(conn)


def test_random_match(seeded):
    match = service.generate_random_match(seeded, rng=random.Random(1))
    assert match.team1 != match.team2
    assert not match.is_custom


def test_compare_teams(seeded):
    card = service.compare_teams(seeded, "costanera", "ferro")
    assert card["team1"].tier == Tier.D1
    assert card["odds"].home <= 1.05
    assert card["form2"]["points"] == 0


def test_team_detailed_stats(seeded):
    stats = service.team_detailed_stats(seeded, "union")
    assert stats["team"].name == "Union del Sur"
    assert stats["form_analysis"]["draws"] == 5


# Placement

def test_place_bet_debits_stake(seeded, match, broadcaster):
    bet = service.place_bet(seeded, "alice", match.id, "simple", "home", 100, "Alice", broadcaster=broadcaster)
    assert balance(seeded) == pytest.approx(900.0)
    assert bet.odds == match.odds.home
    assert get_user(seeded, "alice").total_bets == 1
    assert get_match_by_id(seeded, match.id).bet_ids == [bet.id]

    event, payload = broadcaster.events[0]
    assert event == "new-bet"
    assert payload["username"] == "Alice"
    assert payload["amount"] == 100


def test_insufficient_balance_leaves_no_trace(seeded, match, broadcaster):
    service.open_account(seeded, "alice")
    with pytest.raises(InsufficientBalanceError):
        service.place_bet(seeded, "alice", match.id, "simple", "home", 5000, broadcaster=broadcaster)
    assert balance(seeded) == 1000.0
    assert get_bets_for_match(seeded, match.id) == []
    assert broadcaster.events == []


def test_paused_betting(seeded, match, broadcaster):
    service.pause_betting(seeded)
    with pytest.raises(BettingPausedError):
        service.place_bet(seeded, "alice", match.id, "simple", "home", 10, broadcaster=broadcaster)
    service.resume_betting(seeded)
    service.place_bet(seeded, "alice", match.id, "simple", "home", 10, broadcaster=broadcaster)


def test_unknown_match(seeded, broadcaster):
    with pytest.raises(NotFoundError):
        service.place_bet(seeded, "alice", "nope", "simple", "home", 10, broadcaster=broadcaster)


def test_betting_closes_when_finished(seeded, match, broadcaster):
    service.finalize_and_settle(seeded, match.id, "home", 1, 0, broadcaster=broadcaster)
    with pytest.raises(StateError):
        service.place_bet(seeded, "alice", match.id, "simple", "home", 10, broadcaster=broadcaster)


def test_combo_bet_is_stored_with_legs(seeded, match, broadcaster):
    bet = service.place_bet(
        seeded, "alice", match.id, "special_combined", ["mas-2-5", "roja-no"], 20, broadcaster=broadcaster
    )
    stored = get_bet(seeded, bet.id)
    assert stored.selection == bet.selection
    assert stored.odds == bet.odds
    assert stored.description == "Over 2.5 goals + No red card"


# Settlement

def test_finalize_pays_winners(seeded, match, broadcaster):
    win = service.place_bet(seeded, "alice", match.id, "simple", "home", 100, broadcaster=broadcaster)
    service.place_bet(seeded, "bob", match.id, "exact_score", "0-0", 50, broadcaster=broadcaster)

    outcome, batch = service.finalize_and_settle(seeded, match.id, "home", 2, 1, broadcaster=broadcaster)
    assert outcome.score == "2-1"
    assert len(batch.winners) == 1

    assert balance(seeded) == pytest.approx(900 + round(100 * win.odds, 2))
    assert balance(seeded, "bob") == pytest.approx(950.0)
    assert get_user(seeded, "alice").won_bets == 1
    assert get_user(seeded, "bob").lost_bets == 1
    assert all(b.status != BetStatus.PENDING for b in get_bets_for_match(seeded, match.id))
    assert broadcaster.events[-1][0] == "match-result"


def test_second_finalize_never_pays_twice(seeded, match, ledger, broadcaster):
    service.place_bet(seeded, "alice", match.id, "simple", "home", 100, broadcaster=broadcaster)
    service.finalize_and_settle(seeded, match.id, "home", 1, 0, ledger=ledger, broadcaster=broadcaster)
    assert len(ledger.credits) == 1

    with pytest.raises(StateError):
        service.finalize_and_settle(seeded, match.id, "home", 1, 0, ledger=ledger, broadcaster=broadcaster)
    with pytest.raises(StateError):
        service.simulate_match(seeded, match.id, ledger=ledger, broadcaster=broadcaster)
    assert len(ledger.credits) == 1


def test_finish_is_compare_and_swap(seeded, match):
    assert mark_match_finished(seeded, match.id)
    assert not mark_match_finished(seeded, match.id)


def test_inconsistent_result_changes_nothing(seeded, match, broadcaster):
    service.place_bet(seeded, "alice", match.id, "simple", "home", 100, broadcaster=broadcaster)
    with pytest.raises(ValidationError):
        service.finalize_and_settle(seeded, match.id, "home", 1, 2, broadcaster=broadcaster)
    assert get_match_by_id(seeded, match.id).status == MatchStatus.UPCOMING
    assert balance(seeded) == pytest.approx(900.0)


def test_special_stats_settle_special_bets(seeded, match, broadcaster):
    service.place_bet(seeded, "alice", match.id, "special", "mas-4-5-corners", 100, broadcaster=broadcaster)
    _, batch = service.finalize_and_settle(
        seeded, match.id, "draw", 1, 1, MatchStats(total_corners=6), broadcaster=broadcaster
    )
    assert batch.entries[0].won


def test_simulate_match_settles_everything(seeded, match, broadcaster):
    service.place_bet(seeded, "alice", match.id, "simple", "draw", 100, broadcaster=broadcaster)
    outcome, batch = service.simulate_match(seeded, match.id, random.Random(5), broadcaster=broadcaster)
    assert not outcome.is_manual
    assert len(batch.entries) == 1
    assert get_match_by_id(seeded, match.id).status == MatchStatus.FINISHED
    assert get_bets_for_match(seeded, match.id, BetStatus.PENDING) == []


# Odds override and cleanup

def test_set_match_odds_keeps_placed_prices(seeded, match, broadcaster):
    bet = service.place_bet(seeded, "alice", match.id, "simple", "home", 10, broadcaster=broadcaster)
    updated = service.set_match_odds(seeded, match.id, 1.5, 4.0, 6.0)
    assert (updated.odds.home, updated.odds.draw, updated.odds.away) == (1.5, 4.0, 6.0)
    assert get_bet(seeded, bet.id).odds == match.odds.home


def test_set_match_odds_validation(seeded, match, broadcaster):
    with pytest.raises(ValidationError):
        service.set_match_odds(seeded, match.id, 1.0, 3.0, 3.0)
    service.finalize_and_settle(seeded, match.id, "draw", 0, 0, broadcaster=broadcaster)
    with pytest.raises(StateError):
        service.set_match_odds(seeded, match.id, 1.5, 3.0, 3.0)


def test_delete_match_refunds(seeded, match, broadcaster):
    service.place_bet(seeded, "alice", match.id, "simple", "home", 100, broadcaster=broadcaster)
    assert service.delete_match(seeded, match.id) == 1
    assert balance(seeded) == pytest.approx(1000.0)
    assert get_user(seeded, "alice").total_bets == 0
    assert get_match_by_id(seeded, match.id) is None


def test_finished_match_cannot_be_deleted(seeded, match, broadcaster):
    service.finalize_and_settle(seeded, match.id, "draw", 0, 0, broadcaster=broadcaster)
    with pytest.raises(StateError):
        service.delete_match(seeded, match.id)


def test_clear_upcoming_and_history(seeded, match, broadcaster):
    other = service.create_match(seeded, "ferro", "union")
    service.place_bet(seeded, "alice", other.id, "simple", "away", 50, broadcaster=broadcaster)
    service.finalize_and_settle(seeded, match.id, "draw", 0, 0, broadcaster=broadcaster)
    service.create_match(seeded, "costanera", "ferro")

    assert service.delete_upcoming_matches(seeded) == (2, 1)
    assert balance(seeded) == pytest.approx(1000.0)
    assert service.delete_finished_matches(seeded) == 1
    assert service.upcoming_matches(seeded) == []
    assert service.finished_matches(seeded) == []


# Wallets and reports

def test_transfer(conn):
    sender, receiver = service.transfer(conn, "alice", "bob", 250)
    assert sender.balance == pytest.approx(750.0)
    assert receiver.balance == pytest.approx(1250.0)


def test_transfer_rules(conn):
    with pytest.raises(ValidationError):
        service.transfer(conn, "alice", "alice", 10)
    with pytest.raises(InsufficientBalanceError):
        service.transfer(conn, "alice", "bob", 5000)
    assert get_user(conn, "alice") is None


def test_grant(conn):
    assert service.grant(conn, "alice", 500).balance == pytest.approx(1500.0)


def test_reports(seeded, match, broadcaster):
    service.place_bet(seeded, "alice", match.id, "simple", "home", 100, broadcaster=broadcaster)
    service.open_account(seeded, "bob")

    top = service.leaderboard(seeded)
    assert [u.id for u in top] == ["bob", "alice"]

    stats = service.general_stats(seeded)
    assert stats["total_users"] == 2
    assert stats["total_teams"] == 3
    assert stats["active_bets"] == 1
    assert stats["total_volume"] == pytest.approx(100.0)
    assert stats["betting_paused"] is False

    assert len(service.user_bets(seeded, "alice")) == 1
