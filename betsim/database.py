"""Database connection and operations for the betting simulator.

Write helpers never commit on their own; callers group them with
``transaction()`` so a bet placement or a settlement applies as one unit.
"""
import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Generator, List, Optional, Union

from .bets import Bet, BetKind, BetStatus, ComboPick, ExactScorePick, SimplePick, SpecialPick
from .config import DB_PATH, STARTING_BALANCE
from .markets import Leg, MarketType
from .models import (
    ExactScore, Match, MatchOutcome, MatchResult, MatchStats, MatchStatus,
    Team, ThreeWayOdds, Tier, User,
)


def get_connection(db_path: Union[Path, str] = DB_PATH) -> sqlite3.Connection:
    """Create a database connection with row factory enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Generator[sqlite3.Connection, None, None]:
    """Context manager for database transactions."""
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def init_database(conn: sqlite3.Connection) -> None:
    """Initialize the database schema."""
    conn.executescript("""
        -- Teams, keyed by name + tier
        CREATE TABLE IF NOT EXISTS teams (
            name TEXT NOT NULL,
            tier TEXT NOT NULL,
            position INTEGER DEFAULT 10,
            form TEXT DEFAULT 'DDDDD',
            tournament TEXT,
            played INTEGER DEFAULT 0,
            wins INTEGER DEFAULT 0,
            draws INTEGER DEFAULT 0,
            losses INTEGER DEFAULT 0,
            goals_for INTEGER DEFAULT 0,
            goals_against INTEGER DEFAULT 0,
            PRIMARY KEY (name, tier)
        );

        -- Matches with their quoted odds
        CREATE TABLE IF NOT EXISTS matches (
            id TEXT PRIMARY KEY,
            team1 TEXT NOT NULL,
            team2 TEXT NOT NULL,
            home_odds REAL NOT NULL,
            draw_odds REAL NOT NULL,
            away_odds REAL NOT NULL,
            commence_time DATETIME,
            status TEXT DEFAULT 'upcoming',
            tournament TEXT,
            is_custom INTEGER DEFAULT 0
        );

        -- Final results, written once per match
        CREATE TABLE IF NOT EXISTS outcomes (
            match_id TEXT PRIMARY KEY REFERENCES matches(id) ON DELETE CASCADE,
            result TEXT NOT NULL,
            home_goals INTEGER NOT NULL,
            away_goals INTEGER NOT NULL,
            stats TEXT,
            is_manual INTEGER DEFAULT 1,
            recorded_at DATETIME DEFAULT CURRENT_TIMESTAMP
        );

        -- User wallets
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            username TEXT,
            balance REAL NOT NULL,
            total_bets INTEGER DEFAULT 0,
            won_bets INTEGER DEFAULT 0,
            lost_bets INTEGER DEFAULT 0,
            total_winnings REAL DEFAULT 0
        );

        -- Wagers
        CREATE TABLE IF NOT EXISTS bets (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES users(id),
            match_id TEXT NOT NULL REFERENCES matches(id) ON DELETE CASCADE,
            kind TEXT NOT NULL,
            pick TEXT,
            exact_home INTEGER,
            exact_away INTEGER,
            market TEXT,
            legs TEXT,
            amount REAL NOT NULL,
            odds REAL NOT NULL,
            description TEXT,
            status TEXT DEFAULT 'pending',
            payout REAL DEFAULT 0,
            placed_at DATETIME DEFAULT CURRENT_TIMESTAMP
        );

        -- Key/value switches (betting pause)
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT
        );

        -- Indexes
        CREATE INDEX IF NOT EXISTS idx_matches_status ON matches(status);
        CREATE INDEX IF NOT EXISTS idx_bets_match ON bets(match_id);
        CREATE INDEX IF NOT EXISTS idx_bets_user ON bets(user_id);
    """)
    conn.commit()


# Team operations
def _row_to_team(row: sqlite3.Row) -> Team:
    return Team(
        name=row["name"],
        tier=Tier(row["tier"]),
        position=row["position"],
        form=row["form"],
        tournament=row["tournament"],
        played=row["played"],
        wins=row["wins"],
        draws=row["draws"],
        losses=row["losses"],
        goals_for=row["goals_for"],
        goals_against=row["goals_against"],
    )


def upsert_team(conn: sqlite3.Connection, team: Team) -> None:
    """Insert or replace a team record."""
    conn.execute(
        """
        INSERT OR REPLACE INTO teams
            (name, tier, position, form, tournament, played, wins, draws, losses, goals_for, goals_against)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (team.name, team.tier.value, team.position, team.form, team.tournament, team.played,
         team.wins, team.draws, team.losses, team.goals_for, team.goals_against)
    )


def get_team(conn: sqlite3.Connection, key: str) -> Optional[Team]:
    """Get a team by its composite key 'Name (TIER)'."""
    name, _, tier = key.rpartition(" (")
    if not name or not tier.endswith(")"):
        return None
    cursor = conn.execute("SELECT * FROM teams WHERE name = ? AND tier = ?", (name, tier[:-1]))
    row = cursor.fetchone()
    return _row_to_team(row) if row else None


def get_all_teams(conn: sqlite3.Connection, tier: Optional[Tier] = None) -> List[Team]:
    """Get all teams, optionally within one tier, ordered by standings."""
    if tier is None:
        cursor = conn.execute("SELECT * FROM teams ORDER BY tier, position")
    else:
        cursor = conn.execute("SELECT * FROM teams WHERE tier = ? ORDER BY position", (tier.value,))
    return [_row_to_team(row) for row in cursor.fetchall()]


# Match operations
def _row_to_match(conn: sqlite3.Connection, row: sqlite3.Row) -> Match:
    bet_ids = [r["id"] for r in conn.execute(
        "SELECT id FROM bets WHERE match_id = ? ORDER BY placed_at", (row["id"],)
    )]
    return Match(
        id=row["id"],
        team1=row["team1"],
        team2=row["team2"],
        odds=ThreeWayOdds(row["home_odds"], row["draw_odds"], row["away_odds"]),
        commence_time=datetime.fromisoformat(row["commence_time"]),
        status=MatchStatus(row["status"]),
        tournament=row["tournament"],
        is_custom=bool(row["is_custom"]),
        bet_ids=bet_ids,
    )


def insert_match(conn: sqlite3.Connection, match: Match) -> None:
    conn.execute(
        """
        INSERT INTO matches
            (id, team1, team2, home_odds, draw_odds, away_odds, commence_time, status, tournament, is_custom)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (match.id, match.team1, match.team2, match.odds.home, match.odds.draw, match.odds.away,
         match.commence_time.isoformat(), match.status.value, match.tournament, int(match.is_custom))
    )


def get_match_by_id(conn: sqlite3.Connection, match_id: str) -> Optional[Match]:
    """Get a match by its ID."""
    cursor = conn.execute("SELECT * FROM matches WHERE id = ?", (match_id,))
    row = cursor.fetchone()
    return _row_to_match(conn, row) if row else None


def get_matches_by_status(conn: sqlite3.Connection, status: MatchStatus) -> List[Match]:
    """Get all matches with a given status, soonest first."""
    cursor = conn.execute(
        "SELECT * FROM matches WHERE status = ? ORDER BY commence_time", (status.value,)
    )
    return [_row_to_match(conn, row) for row in cursor.fetchall()]


def update_match_odds(conn: sqlite3.Connection, match_id: str, odds: ThreeWayOdds) -> bool:
    """Overwrite the odds of an upcoming match."""
    cursor = conn.execute(
        "UPDATE matches SET home_odds = ?, draw_odds = ?, away_odds = ? WHERE id = ? AND status = 'upcoming'",
        (odds.home, odds.draw, odds.away, match_id)
    )
    return cursor.rowcount == 1


def lock_open_match(conn: sqlite3.Connection, match_id: str) -> bool:
    """Take the write lock on an upcoming match. False if it is no longer upcoming."""
    cursor = conn.execute(
        "UPDATE matches SET status = status WHERE id = ? AND status = 'upcoming'",
        (match_id,)
    )
    return cursor.rowcount == 1


def mark_match_finished(conn: sqlite3.Connection, match_id: str) -> bool:
    """Compare-and-swap upcoming -> finished. False if another caller got there first."""
    cursor = conn.execute(
        "UPDATE matches SET status = 'finished' WHERE id = ? AND status = 'upcoming'",
        (match_id,)
    )
    return cursor.rowcount == 1


def delete_match(conn: sqlite3.Connection, match_id: str) -> None:
    conn.execute("DELETE FROM bets WHERE match_id = ?", (match_id,))
    conn.execute("DELETE FROM outcomes WHERE match_id = ?", (match_id,))
    conn.execute("DELETE FROM matches WHERE id = ?", (match_id,))


# Outcome operations
def insert_outcome(conn: sqlite3.Connection, outcome: MatchOutcome) -> None:
    conn.execute(
        """
        INSERT INTO outcomes (match_id, result, home_goals, away_goals, stats, is_manual, recorded_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (outcome.match_id, outcome.result.value, outcome.home_goals, outcome.away_goals,
         json.dumps(outcome.stats.to_dict()), int(outcome.is_manual),
         (outcome.recorded_at or datetime.now()).isoformat())
    )


def get_outcome_by_match(conn: sqlite3.Connection, match_id: str) -> Optional[MatchOutcome]:
    """Get the outcome for a match."""
    cursor = conn.execute("SELECT * FROM outcomes WHERE match_id = ?", (match_id,))
    row = cursor.fetchone()
    if row:
        return MatchOutcome(
            match_id=row["match_id"],
            result=MatchResult(row["result"]),
            home_goals=row["home_goals"],
            away_goals=row["away_goals"],
            stats=MatchStats.from_dict(json.loads(row["stats"]) if row["stats"] else None),
            is_manual=bool(row["is_manual"]),
            recorded_at=datetime.fromisoformat(row["recorded_at"]) if row["recorded_at"] else None
        )
    return None


# User operations
def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        balance=row["balance"],
        total_bets=row["total_bets"],
        won_bets=row["won_bets"],
        lost_bets=row["lost_bets"],
        total_winnings=row["total_winnings"],
    )


def get_user(conn: sqlite3.Connection, user_id: str) -> Optional[User]:
    cursor = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
    row = cursor.fetchone()
    return _row_to_user(row) if row else None


def get_or_create_user(conn: sqlite3.Connection, user_id: str, username: Optional[str] = None) -> User:
    """Get existing user or open a wallet with the starting balance."""
    user = get_user(conn, user_id)
    if user:
        if username and user.username != username:
            conn.execute("UPDATE users SET username = ? WHERE id = ?", (username, user_id))
            user.username = username
        return user

    conn.execute(
        "INSERT INTO users (id, username, balance) VALUES (?, ?, ?)",
        (user_id, username or "User", STARTING_BALANCE)
    )
    return User(id=user_id, username=username or "User", balance=STARTING_BALANCE)


def get_top_users(conn: sqlite3.Connection, limit: int = 10) -> List[User]:
    cursor = conn.execute("SELECT * FROM users ORDER BY balance DESC LIMIT ?", (limit,))
    return [_row_to_user(row) for row in cursor.fetchall()]


class SqliteLedger:
    """Balance sink backed by the users table."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def debit(self, user_id: str, amount: float) -> None:
        self.conn.execute("UPDATE users SET balance = balance - ? WHERE id = ?", (amount, user_id))

    def credit(self, user_id: str, amount: float) -> None:
        self.conn.execute("UPDATE users SET balance = balance + ? WHERE id = ?", (amount, user_id))

    def record_bet_placed(self, user_id: str) -> None:
        self.conn.execute("UPDATE users SET total_bets = total_bets + 1 WHERE id = ?", (user_id,))

    def record_bet_cancelled(self, user_id: str) -> None:
        self.conn.execute("UPDATE users SET total_bets = total_bets - 1 WHERE id = ?", (user_id,))

    def record_win(self, user_id: str, payout: float) -> None:
        self.conn.execute(
            "UPDATE users SET won_bets = won_bets + 1, total_winnings = total_winnings + ? WHERE id = ?",
            (payout, user_id)
        )

    def record_loss(self, user_id: str) -> None:
        self.conn.execute("UPDATE users SET lost_bets = lost_bets + 1 WHERE id = ?", (user_id,))


# Bet operations
def insert_bet(conn: sqlite3.Connection, bet: Bet) -> None:
    selection = bet.selection
    pick = selection.pick.value if isinstance(selection, SimplePick) else None
    exact = selection.score if isinstance(selection, ExactScorePick) else None
    market = selection.market.value if isinstance(selection, SpecialPick) else None
    legs = json.dumps([leg.to_dict() for leg in selection.legs]) if isinstance(selection, ComboPick) else None

    conn.execute(
        """
        INSERT INTO bets
            (id, user_id, match_id, kind, pick, exact_home, exact_away, market, legs,
             amount, odds, description, status, payout, placed_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (bet.id, bet.user_id, bet.match_id, bet.kind.value, pick,
         exact.home if exact else None, exact.away if exact else None, market, legs,
         bet.amount, bet.odds, bet.description, bet.status.value, bet.payout,
         bet.placed_at.isoformat())
    )


def _row_to_bet(row: sqlite3.Row) -> Bet:
    kind = BetKind(row["kind"])
    if kind == BetKind.SIMPLE:
        selection = SimplePick(MatchResult(row["pick"]))
    elif kind == BetKind.EXACT_SCORE:
        selection = ExactScorePick(ExactScore(row["exact_home"], row["exact_away"]))
    elif kind == BetKind.SPECIAL:
        selection = SpecialPick(MarketType(row["market"]))
    else:
        selection = ComboPick(tuple(Leg.from_dict(d) for d in json.loads(row["legs"] or "[]")))

    return Bet(
        id=row["id"],
        user_id=row["user_id"],
        match_id=row["match_id"],
        amount=row["amount"],
        odds=row["odds"],
        selection=selection,
        description=row["description"] or "",
        status=BetStatus(row["status"]),
        payout=row["payout"] or 0.0,
        placed_at=datetime.fromisoformat(row["placed_at"]),
    )


def get_bet(conn: sqlite3.Connection, bet_id: str) -> Optional[Bet]:
    cursor = conn.execute("SELECT * FROM bets WHERE id = ?", (bet_id,))
    row = cursor.fetchone()
    return _row_to_bet(row) if row else None


def get_bets_for_match(conn: sqlite3.Connection, match_id: str, status: Optional[BetStatus] = None) -> List[Bet]:
    """Get all bets on a match, optionally filtered by status."""
    if status is None:
        cursor = conn.execute("SELECT * FROM bets WHERE match_id = ? ORDER BY placed_at", (match_id,))
    else:
        cursor = conn.execute(
            "SELECT * FROM bets WHERE match_id = ? AND status = ? ORDER BY placed_at",
            (match_id, status.value)
        )
    return [_row_to_bet(row) for row in cursor.fetchall()]


def get_bets_by_user(conn: sqlite3.Connection, user_id: str, limit: int = 20) -> List[Bet]:
    cursor = conn.execute(
        "SELECT * FROM bets WHERE user_id = ? ORDER BY placed_at DESC LIMIT ?",
        (user_id, limit)
    )
    return [_row_to_bet(row) for row in cursor.fetchall()]


def resolve_bet(conn: sqlite3.Connection, bet_id: str, won: bool, payout: float) -> bool:
    """Mark a pending bet won or lost. False if it was already resolved."""
    cursor = conn.execute(
        "UPDATE bets SET status = ?, payout = ? WHERE id = ? AND status = 'pending'",
        (BetStatus.WON.value if won else BetStatus.LOST.value, payout, bet_id)
    )
    return cursor.rowcount == 1


# Settings
def get_setting(conn: sqlite3.Connection, key: str, default: Optional[str] = None) -> Optional[str]:
    row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
    return row["value"] if row else default


def set_setting(conn: sqlite3.Connection, key: str, value: str) -> None:
    conn.execute("INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)", (key, value))


# Analysis queries
def get_general_stats(conn: sqlite3.Connection) -> dict:
    """Counts and volumes for the dashboard."""
    row = conn.execute(
        """
        SELECT
            (SELECT COUNT(*) FROM users) AS total_users,
            (SELECT COUNT(*) FROM matches WHERE status = 'upcoming') AS upcoming_matches,
            (SELECT COUNT(*) FROM matches WHERE status = 'finished') AS finished_matches,
            (SELECT COUNT(*) FROM bets) AS total_bets,
            (SELECT COUNT(*) FROM bets WHERE status = 'pending') AS active_bets,
            (SELECT COALESCE(SUM(amount), 0) FROM bets) AS total_volume,
            (SELECT COALESCE(MAX(balance), 0) FROM users) AS richest_balance,
            (SELECT COALESCE(AVG(balance), 0) FROM users) AS average_balance
        """
    ).fetchone()
    return dict(row)
