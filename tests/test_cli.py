import pytest
from click.testing import CliRunner

from betsim import main
from betsim.database import get_connection


@pytest.fixture
def run(tmp_path, monkeypatch):
    db_file = tmp_path / "cli.db"
    monkeypatch.setattr(main, "get_connection", lambda: get_connection(db_file))
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(main.cli, list(args))

    return invoke


def test_init(run):
    result = run("init")
    assert result.exit_code == 0
    assert "Database initialized" in result.output


def test_team_workflow(run):
    assert run("add-team", "Atletico Costanera", "--tier", "D1", "-p", "1", "-f", "WWWWW").exit_code == 0
    assert run("add-team", "Union del Sur", "--tier", "D1", "-p", "10").exit_code == 0

    result = run("teams")
    assert result.exit_code == 0
    assert "Union del Sur" in result.output

    result = run("create-match", "costanera", "union")
    assert result.exit_code == 0
    assert "created" in result.output


def test_bad_form_is_reported(run):
    result = run("add-team", "Club", "--tier", "D1", "-f", "XYZ")
    assert result.exit_code == 1
    assert "Error" in result.output


def test_unknown_team_suggests_names(run):
    run("add-team", "Atletico Costanera", "--tier", "D1")
    run("add-team", "Union del Sur", "--tier", "D1")
    result = run("create-match", "Costanera Rovers", "union")
    assert result.exit_code == 1
    assert "Did you mean" in result.output


def test_bet_on_missing_match(run):
    result = run("--user", "alice", "bet", "nope", "home", "10")
    assert result.exit_code == 1
    assert "not found" in result.output


def test_balance_opens_wallet(run):
    result = run("--user", "alice", "balance")
    assert result.exit_code == 0
    assert "1000.00" in result.output


def test_stats_shows_pause(run):
    assert run("pause").exit_code == 0
    result = run("stats")
    assert result.exit_code == 0
    assert "paused" in result.output
