"""Data models for the betting simulator."""
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from .errors import ValidationError

DEFAULT_FORM = "DDDDD"
DEFAULT_POSITION = 10
FORM_LENGTH = 5
FORM_RESULTS = set("WDL")


class Tier(str, Enum):
    """League tier, D1 being the top division."""
    D1 = "D1"
    D2 = "D2"
    D3 = "D3"
    CUSTOM = "CUSTOM"

    @property
    def rank(self) -> Optional[int]:
        """Numeric level for ranked divisions, None for custom teams."""
        return {Tier.D1: 1, Tier.D2: 2, Tier.D3: 3}.get(self)

    @classmethod
    def parse(cls, value: str) -> "Tier":
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValidationError(f"Unknown league tier: {value}") from None


class MatchStatus(str, Enum):
    UPCOMING = "upcoming"
    FINISHED = "finished"


class MatchResult(str, Enum):
    """Three-way result. HOME is team1, AWAY is team2."""
    HOME = "home"
    DRAW = "draw"
    AWAY = "away"

    @classmethod
    def parse(cls, value: str) -> "MatchResult":
        aliases = {
            "home": cls.HOME, "team1": cls.HOME, "favorite": cls.HOME, "1": cls.HOME,
            "draw": cls.DRAW, "x": cls.DRAW, "empate": cls.DRAW,
            "away": cls.AWAY, "team2": cls.AWAY, "underdog": cls.AWAY, "2": cls.AWAY,
        }
        result = aliases.get(str(value).strip().lower())
        if result is None:
            raise ValidationError(f"Invalid result '{value}'. Use: home (team1), draw or away (team2)")
        return result

    @classmethod
    def from_score(cls, home_goals: int, away_goals: int) -> "MatchResult":
        if home_goals > away_goals:
            return cls.HOME
        if away_goals > home_goals:
            return cls.AWAY
        return cls.DRAW


def normalize_form(form: Optional[str]) -> str:
    """Uppercase a form string and pad it to five results with draws."""
    form = (form or "").strip().upper()
    if not form or len(form) > FORM_LENGTH or set(form) - FORM_RESULTS:
        raise ValidationError(f"Form must be up to five of W, D, L (got '{form}')")
    return form.ljust(FORM_LENGTH, "D")


@dataclass
class Team:
    """A club in a league tier. Identified by name + tier."""
    name: str
    tier: Tier
    position: int = DEFAULT_POSITION
    form: str = DEFAULT_FORM  # last five results, oldest first
    tournament: Optional[str] = None
    played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0

    @property
    def key(self) -> str:
        return f"{self.name} ({self.tier.value})"

    @property
    def win_rate(self) -> float:
        if not self.played:
            return 0.0
        return round(self.wins / self.played * 100, 1)

    @property
    def recent_wins(self) -> int:
        return (self.form or DEFAULT_FORM).count("W")


@dataclass(frozen=True)
class ThreeWayOdds:
    """Decimal prices for team1 win, draw and team2 win."""
    home: float
    draw: float
    away: float

    def price_for(self, result: MatchResult) -> float:
        return {
            MatchResult.HOME: self.home,
            MatchResult.DRAW: self.draw,
            MatchResult.AWAY: self.away,
        }[result]

    @property
    def overround(self) -> float:
        """Sum of implied probabilities; above 1 means a house edge."""
        return 1 / self.home + 1 / self.draw + 1 / self.away


@dataclass
class Match:
    """A fixture between two teams, keyed by Team.key."""
    id: str
    team1: str
    team2: str
    odds: ThreeWayOdds
    commence_time: datetime
    status: MatchStatus = MatchStatus.UPCOMING
    tournament: Optional[str] = None
    is_custom: bool = False
    bet_ids: List[str] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.status == MatchStatus.UPCOMING


@dataclass(frozen=True)
class ExactScore:
    home: int
    away: int

    _PATTERN = re.compile(r"^\s*(?:exacto-)?(\d+)\s*[-:]\s*(\d+)\s*$", re.IGNORECASE)

    def __post_init__(self):
        if not isinstance(self.home, int) or not isinstance(self.away, int):
            raise ValidationError("Exact score goals must be integers")
        if self.home < 0 or self.away < 0:
            raise ValidationError("Exact score goals must be 0 or greater")

    @classmethod
    def parse(cls, text: str) -> "ExactScore":
        """Parse '2-1', '2:1' or 'exacto-2-1'."""
        m = cls._PATTERN.match(text or "")
        if not m:
            raise ValidationError(f"Malformed exact score '{text}'. Use X-Y, e.g. 2-1")
        return cls(int(m.group(1)), int(m.group(2)))

    def __str__(self) -> str:
        return f"{self.home}-{self.away}"


class GoalEvent(str, Enum):
    """Goal-method flags recorded with a finished match."""
    CORNER = "corner_goal"
    FREE_KICK = "free_kick_goal"
    BICYCLE_KICK = "bicycle_kick_goal"
    HEADER = "header_goal"
    STRIKER = "striker_goal"
    MIDFIELDER = "midfielder_goal"
    DEFENDER = "defender_goal"
    GOALKEEPER = "goalkeeper_goal"

    @classmethod
    def parse(cls, value: str) -> "GoalEvent":
        aliases = {
            "corner": cls.CORNER,
            "libre": cls.FREE_KICK, "tiro-libre": cls.FREE_KICK, "free-kick": cls.FREE_KICK,
            "chilena": cls.BICYCLE_KICK, "bicycle": cls.BICYCLE_KICK,
            "cabeza": cls.HEADER, "header": cls.HEADER,
            "delantero": cls.STRIKER, "striker": cls.STRIKER,
            "medio": cls.MIDFIELDER, "mediocampista": cls.MIDFIELDER, "midfielder": cls.MIDFIELDER,
            "defensa": cls.DEFENDER, "defender": cls.DEFENDER,
            "arquero": cls.GOALKEEPER, "portero": cls.GOALKEEPER, "goalkeeper": cls.GOALKEEPER,
        }
        key = value.strip().lower()
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise ValidationError(f"Unknown goal event: {value}") from None


@dataclass(frozen=True)
class MatchStats:
    """Auxiliary statistics used to settle special markets."""
    total_corners: int = 0
    total_yellow_cards: int = 0
    total_red_cards: int = 0
    team1_yellow_cards: int = 0
    team2_yellow_cards: int = 0
    team1_red_card: bool = False
    team2_red_card: bool = False
    goal_events: FrozenSet[GoalEvent] = frozenset()

    def __post_init__(self):
        counts = (
            self.total_corners, self.total_yellow_cards, self.total_red_cards,
            self.team1_yellow_cards, self.team2_yellow_cards,
        )
        if any(c < 0 for c in counts):
            raise ValidationError("Match statistics must be 0 or greater")
        if self.team1_yellow_cards + self.team2_yellow_cards > self.total_yellow_cards:
            raise ValidationError("Team yellow cards exceed the match total")
        if int(self.team1_red_card) + int(self.team2_red_card) > self.total_red_cards:
            raise ValidationError("Team red cards exceed the match total")

    def has_event(self, event: GoalEvent) -> bool:
        return event in self.goal_events

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_corners": self.total_corners,
            "total_yellow_cards": self.total_yellow_cards,
            "total_red_cards": self.total_red_cards,
            "team1_yellow_cards": self.team1_yellow_cards,
            "team2_yellow_cards": self.team2_yellow_cards,
            "team1_red_card": self.team1_red_card,
            "team2_red_card": self.team2_red_card,
            "goal_events": sorted(e.value for e in self.goal_events),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MatchStats":
        data = dict(data or {})
        events = frozenset(GoalEvent(e) for e in data.pop("goal_events", []))
        return cls(goal_events=events, **data)


@dataclass(frozen=True)
class MatchOutcome:
    """Final result of a match. Recorded once, never mutated."""
    match_id: str
    result: MatchResult
    home_goals: int
    away_goals: int
    stats: MatchStats = MatchStats()
    is_manual: bool = True
    recorded_at: Optional[datetime] = None

    @property
    def score(self) -> str:
        return f"{self.home_goals}-{self.away_goals}"

    @property
    def total_goals(self) -> int:
        return self.home_goals + self.away_goals


@dataclass
class User:
    """Virtual wallet and betting record of a user."""
    id: str
    username: str = "User"
    balance: float = 0.0
    total_bets: int = 0
    won_bets: int = 0
    lost_bets: int = 0
    total_winnings: float = 0.0

    @property
    def win_rate(self) -> float:
        if not self.total_bets:
            return 0.0
        return round(self.won_bets / self.total_bets * 100, 1)
