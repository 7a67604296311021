"""Export match and bet history to Parquet and CSV for analysis."""
import logging
import sqlite3
from pathlib import Path
from typing import Optional

import pandas as pd

from .config import EXPORT_DIR

logger = logging.getLogger(__name__)

MATCH_COLUMNS = [
    "match_id", "team1", "team2", "tournament", "commence_time", "status",
    "home_odds", "draw_odds", "away_odds", "result", "home_goals", "away_goals",
    "is_manual", "recorded_at", "home_prob", "draw_prob", "away_prob", "overround",
]


def match_history_frame(conn: sqlite3.Connection) -> pd.DataFrame:
    """One row per finished match with its quoted odds and final score."""
    query = """
        SELECT
            m.id as match_id,
            m.team1,
            m.team2,
            m.tournament,
            m.commence_time,
            m.status,
            m.home_odds,
            m.draw_odds,
            m.away_odds,
            o.result,
            o.home_goals,
            o.away_goals,
            o.is_manual,
            o.recorded_at
        FROM matches m
        JOIN outcomes o ON o.match_id = m.id
        WHERE m.status = 'finished'
        ORDER BY o.recorded_at, m.id
    """
    df = pd.read_sql_query(query, conn)
    if len(df) == 0:
        return pd.DataFrame(columns=MATCH_COLUMNS)

    df["commence_time"] = pd.to_datetime(df["commence_time"], utc=True, format="ISO8601")
    df["recorded_at"] = pd.to_datetime(df["recorded_at"], utc=True, format="ISO8601")
    df["is_manual"] = df["is_manual"].astype(bool)

    # Implied probabilities and the house edge
    df["home_prob"] = (1 / df["home_odds"]).round(4)
    df["draw_prob"] = (1 / df["draw_odds"]).round(4)
    df["away_prob"] = (1 / df["away_odds"]).round(4)
    df["overround"] = (df["home_prob"] + df["draw_prob"] + df["away_prob"]).round(4)
    return df


def bet_history_frame(conn: sqlite3.Connection) -> pd.DataFrame:
    """Every settled bet with the bettor's name and the match teams."""
    query = """
        SELECT
            b.id as bet_id,
            b.match_id,
            m.team1,
            m.team2,
            b.user_id,
            u.username,
            b.kind,
            b.description,
            b.amount,
            b.odds,
            b.status,
            b.payout,
            b.placed_at
        FROM bets b
        JOIN matches m ON b.match_id = m.id
        LEFT JOIN users u ON b.user_id = u.id
        WHERE b.status != 'pending'
        ORDER BY b.placed_at, b.id
    """
    df = pd.read_sql_query(query, conn)
    if len(df) == 0:
        return df

    df["placed_at"] = pd.to_datetime(df["placed_at"], utc=True, format="ISO8601")
    df["profit"] = (df["payout"] - df["amount"]).round(2)
    return df


def export_history(conn: sqlite3.Connection, output_dir: Optional[Path] = None) -> dict:
    """
    Write match and bet history as CSV and Parquet.

    Args:
        conn: Database connection
        output_dir: Target directory. Defaults to data/exports

    Returns:
        Dict of written file paths keyed by name
    """
    output_dir = Path(output_dir or EXPORT_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)

    matches = match_history_frame(conn)
    bets = bet_history_frame(conn)

    paths = {
        "matches_csv": output_dir / "matches.csv",
        "matches_parquet": output_dir / "matches.parquet",
        "bets_csv": output_dir / "bets.csv",
        "bets_parquet": output_dir / "bets.parquet",
    }
    matches.to_csv(paths["matches_csv"], index=False)
    matches.to_parquet(paths["matches_parquet"], index=False)
    bets.to_csv(paths["bets_csv"], index=False)
    bets.to_parquet(paths["bets_parquet"], index=False)

    logger.info(f"Exported {len(matches)} matches and {len(bets)} settled bets to {output_dir}")
    return paths
