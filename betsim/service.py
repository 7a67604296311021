"""Betting operations and orchestration.

Each operation runs inside one ``transaction()`` so that balance changes,
bet rows and match status move together or not at all.
"""
import logging
import random
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple, Union

from . import config
from .bets import Bet, BetKind, BetStatus, build_selection, place_bet as new_bet, validate_amount
from .broadcast import Broadcaster, default_broadcaster
from .database import (
    SqliteLedger,
    delete_match as delete_match_rows,
    get_all_teams,
    get_bets_by_user,
    get_bets_for_match,
    get_general_stats,
    get_match_by_id,
    get_matches_by_status,
    get_or_create_user,
    get_setting,
    get_team,
    get_top_users,
    get_user,
    insert_bet,
    insert_match,
    insert_outcome,
    lock_open_match,
    mark_match_finished,
    resolve_bet,
    set_setting,
    transaction,
    update_match_odds,
    upsert_team,
)
from .errors import (
    BettingPausedError,
    InsufficientBalanceError,
    NotFoundError,
    StateError,
    ValidationError,
)
from .models import (
    Match,
    MatchOutcome,
    MatchResult,
    MatchStats,
    MatchStatus,
    Team,
    ThreeWayOdds,
    Tier,
    User,
    normalize_form,
)
from .odds import OddsCalibration, compute_odds
from .settlement import SettlementBatch, finalize_match, settle
from .simulation import simulate_outcome
from .teams import find_team, form_analysis, suggest_teams

logger = logging.getLogger(__name__)

PAUSED_KEY = "betting_paused"


def calibration_from_config() -> OddsCalibration:
    return OddsCalibration(
        margin=config.LEAGUE_MARGIN,
        cup_margin=config.CUP_MARGIN,
        inter_tier_model=config.INTER_TIER_MODEL,
    )


# Users
def open_account(conn: sqlite3.Connection, user_id: str, username: Optional[str] = None) -> User:
    """Get a user's wallet, opening it with the starting balance on first use."""
    with transaction(conn):
        return get_or_create_user(conn, user_id, username)


def transfer(conn: sqlite3.Connection, from_id: str, to_id: str, amount, ledger=None) -> Tuple[User, User]:
    """Move money between two users. Returns both wallets after the transfer."""
    value = validate_amount(amount)
    if from_id == to_id:
        raise ValidationError("You cannot send money to yourself")

    with transaction(conn):
        ledger = ledger or SqliteLedger(conn)
        sender = get_or_create_user(conn, from_id)
        get_or_create_user(conn, to_id)
        if sender.balance < value:
            raise InsufficientBalanceError(sender.balance, value)
        ledger.debit(from_id, value)
        ledger.credit(to_id, value)

    logger.info(f"Transferred {value:.2f} from {from_id} to {to_id}")
    return get_user(conn, from_id), get_user(conn, to_id)


def grant(conn: sqlite3.Connection, user_id: str, amount, ledger=None) -> User:
    """Credit a user out of thin air (admin top-up)."""
    value = validate_amount(amount)
    with transaction(conn):
        ledger = ledger or SqliteLedger(conn)
        get_or_create_user(conn, user_id)
        ledger.credit(user_id, value)

    logger.info(f"Granted {value:.2f} to {user_id}")
    return get_user(conn, user_id)


# Teams
def add_team(
    conn: sqlite3.Connection,
    name: str,
    tier: Union[str, Tier],
    position: int = 10,
    form: str = "DDDDD",
    tournament: Optional[str] = None,
) -> Team:
    """Insert or replace a team record."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Team name cannot be empty")
    tier = tier if isinstance(tier, Tier) else Tier.parse(tier)
    if position < 1:
        raise ValidationError("Position must be 1 or greater")
    form = normalize_form(form)

    team = Team(name=name, tier=tier, position=position, form=form, tournament=tournament)
    with transaction(conn):
        upsert_team(conn, team)
    logger.info(f"Saved team {team.key} (pos. {position}, form {form})")
    return team


def resolve_team(conn: sqlite3.Connection, search: str, tier: Optional[Tier] = None) -> Team:
    """Fuzzy team lookup. Raises NotFoundError carrying close names."""
    teams = get_all_teams(conn)
    team = find_team(teams, search, tier)
    if team is None:
        suggestions = [t.key for t in suggest_teams(teams, search, tier=tier)]
        raise NotFoundError(f"Team '{search}' not found", suggestions)
    return team


def match_teams(conn: sqlite3.Connection, match: Match) -> Tuple[Optional[Team], Optional[Team]]:
    """Team records of a match. Either may be None if it was deleted."""
    return get_team(conn, match.team1), get_team(conn, match.team2)


def team_detailed_stats(conn: sqlite3.Connection, search: str) -> Dict:
    team = resolve_team(conn, search)
    return {"team": team, "form_analysis": form_analysis(team)}


def compare_teams(
    conn: sqlite3.Connection,
    search1: str,
    search2: str,
    tournament: Optional[str] = None,
) -> Dict:
    """Head-to-head card: both teams, their form and the odds we would quote."""
    team1 = resolve_team(conn, search1)
    team2 = resolve_team(conn, search2)
    if team1.key == team2.key:
        raise ValidationError("Pick two different teams to compare")
    return {
        "team1": team1,
        "team2": team2,
        "form1": form_analysis(team1),
        "form2": form_analysis(team2),
        "odds": compute_odds(team1, team2, tournament, calibration_from_config()),
    }


# Matches
def _new_match_id() -> str:
    return uuid.uuid4().hex[:12]


def create_match(
    conn: sqlite3.Connection,
    search1: str,
    search2: str,
    tournament: Optional[str] = None,
    commence_time: Optional[datetime] = None,
    is_custom: bool = True,
) -> Match:
    """Create an upcoming match from two typed team names."""
    team1 = resolve_team(conn, search1)
    team2 = resolve_team(conn, search2)
    return _open_match(conn, team1, team2, tournament, commence_time, is_custom)


def _open_match(
    conn: sqlite3.Connection,
    team1: Team,
    team2: Team,
    tournament: Optional[str],
    commence_time: Optional[datetime],
    is_custom: bool,
) -> Match:
    if team1.key == team2.key:
        raise ValidationError("A team cannot play against itself")
    if tournament and tournament.lower() not in config.TOURNAMENTS:
        raise ValidationError(f"Unknown tournament '{tournament}'")

    odds = compute_odds(team1, team2, tournament, calibration_from_config())
    match = Match(
        id=_new_match_id(),
        team1=team1.key,
        team2=team2.key,
        odds=odds,
        commence_time=commence_time or datetime.now(timezone.utc) + timedelta(hours=1),
        tournament=tournament.lower() if tournament else None,
        is_custom=is_custom,
    )
    with transaction(conn):
        insert_match(conn, match)
    logger.info(f"Created match {match.id}: {team1.key} vs {team2.key} @ {odds.home}/{odds.draw}/{odds.away}")
    return match


def generate_random_match(
    conn: sqlite3.Connection,
    tier: Optional[Tier] = None,
    rng: Optional[random.Random] = None,
) -> Match:
    """Pair two stored teams at random and open a match between them."""
    rng = rng or random.Random()
    teams = get_all_teams(conn, tier)
    if len(teams) < 2:
        raise StateError("At least two teams are needed to generate a match")
    team1, team2 = rng.sample(teams, 2)
    return _open_match(conn, team1, team2, None, None, is_custom=False)


def set_match_odds(conn: sqlite3.Connection, match_id: str, home, draw, away) -> Match:
    """Override the quoted odds of an upcoming match. Placed bets keep their price."""
    try:
        odds = ThreeWayOdds(float(home), float(draw), float(away))
    except (TypeError, ValueError):
        raise ValidationError("Odds must be numbers") from None
    if min(odds.home, odds.draw, odds.away) <= 1.0:
        raise ValidationError("Odds must be greater than 1.0")

    with transaction(conn):
        match = get_match(conn, match_id)
        if not update_match_odds(conn, match.id, odds):
            raise StateError(f"Match {match_id} is finished, odds are locked")
    logger.info(f"Odds for {match_id} set to {odds.home}/{odds.draw}/{odds.away}")
    return get_match_by_id(conn, match_id)


def get_match(conn: sqlite3.Connection, match_id: str) -> Match:
    match = get_match_by_id(conn, match_id)
    if match is None:
        raise NotFoundError(f"Match {match_id} not found")
    return match


def upcoming_matches(conn: sqlite3.Connection) -> List[Match]:
    return get_matches_by_status(conn, MatchStatus.UPCOMING)


def finished_matches(conn: sqlite3.Connection) -> List[Match]:
    return get_matches_by_status(conn, MatchStatus.FINISHED)


# Betting switch
def is_betting_paused(conn: sqlite3.Connection) -> bool:
    return get_setting(conn, PAUSED_KEY, "0") == "1"


def pause_betting(conn: sqlite3.Connection) -> None:
    with transaction(conn):
        set_setting(conn, PAUSED_KEY, "1")
    logger.info("Betting paused")


def resume_betting(conn: sqlite3.Connection) -> None:
    with transaction(conn):
        set_setting(conn, PAUSED_KEY, "0")
    logger.info("Betting resumed")


# Bets
def place_bet(
    conn: sqlite3.Connection,
    user_id: str,
    match_id: str,
    kind: Union[str, BetKind],
    value: Union[str, Sequence[str]],
    amount,
    username: Optional[str] = None,
    ledger=None,
    broadcaster: Optional[Broadcaster] = None,
) -> Bet:
    """
    Validate, price and record a wager, debiting the stake.

    Args:
        conn: Database connection
        user_id: Bettor
        match_id: Target match
        kind: simple, exact_score, special or special_combined
        value: Result tag, score, market code or list of market codes
        amount: Stake
        username: Display name stored on first use
        ledger: Balance sink (defaults to the users table)
        broadcaster: Receives a 'new-bet' event after commit

    Returns:
        The recorded pending bet
    """
    if is_betting_paused(conn):
        raise BettingPausedError()
    stake = validate_amount(amount)

    with transaction(conn):
        match = get_match(conn, match_id)
        # Write lock first: a concurrent finalize cannot slip in between check and insert
        if not lock_open_match(conn, match.id):
            raise StateError(f"Match {match_id} is already finished, betting is closed")

        team1, team2 = match_teams(conn, match)
        selection = build_selection(team1, team2, kind, value)
        bet = new_bet(match, team1, team2, user_id, selection, stake)

        user = get_or_create_user(conn, user_id, username)
        if user.balance < bet.amount:
            raise InsufficientBalanceError(user.balance, bet.amount)

        ledger = ledger or SqliteLedger(conn)
        ledger.debit(user_id, bet.amount)
        ledger.record_bet_placed(user_id)
        insert_bet(conn, bet)

    logger.info(f"Bet {bet.id}: {user_id} {bet.amount:.2f} on '{bet.description}' @ {bet.odds}")
    (broadcaster or default_broadcaster()).publish("new-bet", {
        "bet_id": bet.id,
        "username": user.username,
        "match_id": match.id,
        "team1": match.team1,
        "team2": match.team2,
        "description": bet.description,
        "amount": bet.amount,
        "odds": bet.odds,
    })
    return bet


def user_bets(conn: sqlite3.Connection, user_id: str, limit: int = 20) -> List[Bet]:
    return get_bets_by_user(conn, user_id, limit)


# Results
def _record_outcome(
    conn: sqlite3.Connection,
    finished: Match,
    outcome: MatchOutcome,
    ledger,
    broadcaster: Optional[Broadcaster],
) -> SettlementBatch:
    with transaction(conn):
        if not mark_match_finished(conn, finished.id):
            raise StateError(f"Match {finished.id} already has a result")
        insert_outcome(conn, outcome)

        pending = get_bets_for_match(conn, finished.id, BetStatus.PENDING)
        batch = settle(finished, outcome, pending)

        ledger = ledger or SqliteLedger(conn)
        for entry in batch.entries:
            # Only pending rows flip, so a bet is never paid twice
            if not resolve_bet(conn, entry.bet_id, entry.won, entry.payout):
                continue
            if entry.won:
                ledger.credit(entry.user_id, entry.payout)
                ledger.record_win(entry.user_id, entry.payout)
            else:
                ledger.record_loss(entry.user_id)

    (broadcaster or default_broadcaster()).publish("match-result", {
        "match_id": finished.id,
        "team1": finished.team1,
        "team2": finished.team2,
        "score": outcome.score,
        "result": outcome.result.value,
        "winners": len(batch.winners),
        "total_payout": batch.total_payout,
    })
    return batch


def finalize_and_settle(
    conn: sqlite3.Connection,
    match_id: str,
    result: Union[str, MatchResult],
    home_goals,
    away_goals,
    stats: Optional[MatchStats] = None,
    ledger=None,
    broadcaster: Optional[Broadcaster] = None,
) -> Tuple[MatchOutcome, SettlementBatch]:
    """Record a manual result and pay out every pending bet on the match."""
    match = get_match(conn, match_id)
    finished, outcome = finalize_match(match, result, home_goals, away_goals, stats)
    batch = _record_outcome(conn, finished, outcome, ledger, broadcaster)
    return outcome, batch


def simulate_match(
    conn: sqlite3.Connection,
    match_id: str,
    rng: Optional[random.Random] = None,
    ledger=None,
    broadcaster: Optional[Broadcaster] = None,
) -> Tuple[MatchOutcome, SettlementBatch]:
    """Play a match with the simulator, then settle it like a manual result."""
    match = get_match(conn, match_id)
    if not match.is_open:
        raise StateError(f"Match {match_id} already has a result")
    team1, team2 = match_teams(conn, match)
    if team1 is None or team2 is None:
        raise NotFoundError(f"Team records for match {match_id} are missing, cannot simulate")
    finished, outcome = simulate_outcome(match, team1, team2, rng)
    batch = _record_outcome(conn, finished, outcome, ledger, broadcaster)
    return outcome, batch


# Cleanup
def _refund_and_delete(conn: sqlite3.Connection, match: Match, ledger) -> int:
    refunded = 0
    for bet in get_bets_for_match(conn, match.id, BetStatus.PENDING):
        ledger.credit(bet.user_id, bet.amount)
        ledger.record_bet_cancelled(bet.user_id)
        refunded += 1
    delete_match_rows(conn, match.id)
    return refunded


def delete_match(conn: sqlite3.Connection, match_id: str, ledger=None) -> int:
    """Delete an upcoming match, refunding its pending bets. Returns the refund count."""
    with transaction(conn):
        match = get_match(conn, match_id)
        if not match.is_open:
            raise StateError(f"Match {match_id} is finished and cannot be deleted")
        refunded = _refund_and_delete(conn, match, ledger or SqliteLedger(conn))
    logger.info(f"Deleted match {match_id}, refunded {refunded} bets")
    return refunded


def delete_upcoming_matches(conn: sqlite3.Connection, ledger=None) -> Tuple[int, int]:
    """Delete every upcoming match. Returns (matches deleted, bets refunded)."""
    with transaction(conn):
        ledger = ledger or SqliteLedger(conn)
        matches = get_matches_by_status(conn, MatchStatus.UPCOMING)
        refunded = sum(_refund_and_delete(conn, match, ledger) for match in matches)
    logger.info(f"Deleted {len(matches)} upcoming matches, refunded {refunded} bets")
    return len(matches), refunded


def delete_finished_matches(conn: sqlite3.Connection) -> int:
    """Clear finished matches with their outcomes and settled bets."""
    with transaction(conn):
        matches = get_matches_by_status(conn, MatchStatus.FINISHED)
        for match in matches:
            delete_match_rows(conn, match.id)
    logger.info(f"Cleared {len(matches)} finished matches")
    return len(matches)


# Reports
def leaderboard(conn: sqlite3.Connection, limit: int = 10) -> List[User]:
    return get_top_users(conn, limit)


def general_stats(conn: sqlite3.Connection) -> Dict:
    stats = get_general_stats(conn)
    stats["total_teams"] = len(get_all_teams(conn))
    stats["betting_paused"] = is_betting_paused(conn)
    return stats
