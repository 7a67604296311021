"""Shared fixtures for betsim tests."""
from datetime import datetime, timezone

import pytest

from betsim.database import get_connection, init_database
from betsim.models import Match, MatchStatus, Team, ThreeWayOdds, Tier


class RecordingBroadcaster:
    """Collects published events instead of sending them."""

    def __init__(self):
        self.events = []

    def publish(self, event, payload):
        self.events.append((event, payload))


class FakeLedger:
    """Balance sink that only records calls."""

    def __init__(self):
        self.credits = []
        self.debits = []
        self.wins = []
        self.losses = []
        self.placed = []
        self.cancelled = []

    def credit(self, user_id, amount):
        self.credits.append((user_id, amount))

    def debit(self, user_id, amount):
        self.debits.append((user_id, amount))

    def record_bet_placed(self, user_id):
        self.placed.append(user_id)

    def record_bet_cancelled(self, user_id):
        self.cancelled.append(user_id)

    def record_win(self, user_id, payout):
        self.wins.append((user_id, payout))

    def record_loss(self, user_id):
        self.losses.append(user_id)


def make_team(name="Team", tier=Tier.D1, position=10, form="DDDDD", **kwargs):
    return Team(name=name, tier=tier, position=position, form=form, **kwargs)


def make_match(team1, team2, odds=None, match_id="m1", status=MatchStatus.UPCOMING):
    return Match(
        id=match_id,
        team1=team1.key,
        team2=team2.key,
        odds=odds or ThreeWayOdds(2.1, 3.4, 3.2),
        commence_time=datetime(2026, 1, 10, 18, 0, tzinfo=timezone.utc),
        status=status,
    )


@pytest.fixture(autouse=True)
def no_webhook(monkeypatch):
    monkeypatch.setattr("betsim.broadcast.DISCORD_WEBHOOK_URL", "")


@pytest.fixture
def conn():
    connection = get_connection(":memory:")
    init_database(connection)
    yield connection
    connection.close()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def leader():
    return make_team("Atletico Costanera", Tier.D1, 1, "WWWWW")


@pytest.fixture
def minnow():
    return make_team("Ferro del Oeste", Tier.D2, 18, "LLLLL")


@pytest.fixture
def midtable():
    return make_team("Union del Sur", Tier.D1, 10, "DDDDD")


@pytest.fixture
def upcoming(leader, midtable):
    return make_match(leader, midtable)
