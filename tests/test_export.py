import pandas as pd
import pytest

from betsim import service
from betsim.export import MATCH_COLUMNS, bet_history_frame, export_history, match_history_frame


@pytest.fixture
def played(conn, broadcaster):
    service.add_team(conn, "Atletico Costanera", "D1", 1, "WWWWW")
    service.add_team(conn, "Union del Sur", "D1", 10, "DDDDD")
    match = service.create_match(conn, "costanera", "union")
    service.place_bet(conn, "alice", match.id, "simple", "home", 100, broadcaster=broadcaster)
    service.place_bet(conn, "bob", match.id, "simple", "away", 40, broadcaster=broadcaster)
    service.create_match(conn, "union", "costanera")
    service.finalize_and_settle(conn, match.id, "home", 3, 1, broadcaster=broadcaster)
    return conn, match


def test_match_history_has_finished_matches_only(played):
    conn, match = played
    df = match_history_frame(conn)
    assert list(df["match_id"]) == [match.id]
    assert df.loc[0, "home_goals"] == 3
    assert df.loc[0, "overround"] > 1.0
    assert set(MATCH_COLUMNS) <= set(df.columns)


def test_bet_history_profit(played):
    conn, _ = played
    df = bet_history_frame(conn).set_index("user_id")
    assert df.loc["bob", "profit"] == -40.0
    assert df.loc["alice", "profit"] == pytest.approx(df.loc["alice", "payout"] - 100, abs=0.01)


def test_export_writes_csv_and_parquet(played, tmp_path):
    conn, match = played
    paths = export_history(conn, tmp_path)
    for path in paths.values():
        assert path.exists()
    assert pd.read_csv(paths["matches_csv"], dtype={"match_id": str})["match_id"].tolist() == [match.id]
    assert len(pd.read_parquet(paths["bets_parquet"])) == 2


def test_export_on_empty_database(conn, tmp_path):
    paths = export_history(conn, tmp_path)
    assert pd.read_csv(paths["matches_csv"]).columns.tolist() == MATCH_COLUMNS
