"""Special-market taxonomy.

Every proposition a wager can be placed on lives in ``MARKETS``: its base
price, display name, combo-exclusivity group and settlement condition. Pricing,
combo validation and settlement all read from this one table.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Union

from .errors import UnknownMarketError
from .models import GoalEvent, MatchStats


class MarketType(str, Enum):
    BOTH_TEAMS_SCORE = "both_teams_score"
    TOTAL_GOALS_OVER_2_5 = "total_goals_over_2_5"
    TOTAL_GOALS_UNDER_2_5 = "total_goals_under_2_5"
    HOME_GOALS_OVER_1_5 = "home_goals_over_1_5"
    AWAY_GOALS_OVER_1_5 = "away_goals_over_1_5"
    TOTAL_CORNERS_OVER_1_5 = "total_corners_over_1_5"
    TOTAL_CORNERS_OVER_2_5 = "total_corners_over_2_5"
    TOTAL_CORNERS_OVER_3_5 = "total_corners_over_3_5"
    TOTAL_CORNERS_OVER_4_5 = "total_corners_over_4_5"
    TOTAL_CORNERS_OVER_5_5 = "total_corners_over_5_5"
    TOTAL_CORNERS_OVER_6_5 = "total_corners_over_6_5"
    TOTAL_CORNERS_OVER_7_5 = "total_corners_over_7_5"
    TOTAL_CORNERS_OVER_8_5 = "total_corners_over_8_5"
    TOTAL_CORNERS_UNDER_1_5 = "total_corners_under_1_5"
    TOTAL_CORNERS_UNDER_2_5 = "total_corners_under_2_5"
    TOTAL_CORNERS_UNDER_3_5 = "total_corners_under_3_5"
    CORNER_GOAL = "corner_goal"
    FREE_KICK_GOAL = "free_kick_goal"
    BICYCLE_KICK_GOAL = "bicycle_kick_goal"
    HEADER_GOAL = "header_goal"
    STRIKER_GOAL = "striker_goal"
    MIDFIELDER_GOAL = "midfielder_goal"
    DEFENDER_GOAL = "defender_goal"
    GOALKEEPER_GOAL = "goalkeeper_goal"
    TOTAL_YELLOW_CARDS_OVER_2_5 = "total_yellow_cards_over_2_5"
    TOTAL_YELLOW_CARDS_OVER_3_5 = "total_yellow_cards_over_3_5"
    TOTAL_YELLOW_CARDS_OVER_4_5 = "total_yellow_cards_over_4_5"
    TOTAL_RED_CARDS_YES = "total_red_cards_yes"
    TOTAL_RED_CARDS_NO = "total_red_cards_no"
    TEAM1_YELLOW_CARDS_OVER_1_5 = "team1_yellow_cards_over_1_5"
    TEAM2_YELLOW_CARDS_OVER_1_5 = "team2_yellow_cards_over_1_5"
    TEAM1_RED_CARD_YES = "team1_red_card_yes"
    TEAM2_RED_CARD_YES = "team2_red_card_yes"


class MarketFamily(str, Enum):
    GOALS = "goals"
    BOTH_TEAMS_SCORE = "both_teams_score"
    CORNERS = "corners"
    GOAL_METHOD = "goal_method"
    CARDS = "cards"


class ComboGroup(str, Enum):
    """At most one selection per group in a combined bet."""
    GOALS = "goals"
    CORNERS = "corners"
    YELLOW_CARDS = "yellow cards"
    RED_CARDS = "red cards"


# home goals, away goals, stats -> won
Condition = Callable[[int, int, MatchStats], bool]


@dataclass(frozen=True)
class MarketSpec:
    base_price: float
    name: str  # may reference {team1} / {team2}
    family: MarketFamily
    group: Optional[ComboGroup]
    condition: Condition


def _corners_over(line: float) -> Condition:
    return lambda home, away, stats: stats.total_corners > line


def _corners_under(line: float) -> Condition:
    return lambda home, away, stats: stats.total_corners < line


def _scored(event: GoalEvent) -> Condition:
    return lambda home, away, stats: stats.has_event(event)


def _corner_market(price: float, line: float, over: bool) -> MarketSpec:
    word = "Over" if over else "Under"
    return MarketSpec(
        price, f"{word} {line} corners", MarketFamily.CORNERS, ComboGroup.CORNERS,
        _corners_over(line) if over else _corners_under(line),
    )


def _goal_method(price: float, name: str, event: GoalEvent) -> MarketSpec:
    return MarketSpec(price, name, MarketFamily.GOAL_METHOD, None, _scored(event))


M = MarketType
MARKETS: Dict[MarketType, MarketSpec] = {
    M.BOTH_TEAMS_SCORE: MarketSpec(
        1.10, "Both teams score", MarketFamily.BOTH_TEAMS_SCORE, None,
        lambda home, away, stats: home > 0 and away > 0),
    M.TOTAL_GOALS_OVER_2_5: MarketSpec(
        1.35, "Over 2.5 goals", MarketFamily.GOALS, ComboGroup.GOALS,
        lambda home, away, stats: home + away > 2.5),
    M.TOTAL_GOALS_UNDER_2_5: MarketSpec(
        2.25, "Under 2.5 goals", MarketFamily.GOALS, ComboGroup.GOALS,
        lambda home, away, stats: home + away < 2.5),
    M.HOME_GOALS_OVER_1_5: MarketSpec(
        1.25, "Over 1.5 goals {team1}", MarketFamily.GOALS, ComboGroup.GOALS,
        lambda home, away, stats: home > 1.5),
    M.AWAY_GOALS_OVER_1_5: MarketSpec(
        1.25, "Over 1.5 goals {team2}", MarketFamily.GOALS, ComboGroup.GOALS,
        lambda home, away, stats: away > 1.5),
    M.TOTAL_CORNERS_OVER_1_5: _corner_market(1.05, 1.5, True),
    M.TOTAL_CORNERS_OVER_2_5: _corner_market(1.15, 2.5, True),
    M.TOTAL_CORNERS_OVER_3_5: _corner_market(1.25, 3.5, True),
    M.TOTAL_CORNERS_OVER_4_5: _corner_market(1.40, 4.5, True),
    M.TOTAL_CORNERS_OVER_5_5: _corner_market(1.60, 5.5, True),
    M.TOTAL_CORNERS_OVER_6_5: _corner_market(1.90, 6.5, True),
    M.TOTAL_CORNERS_OVER_7_5: _corner_market(2.30, 7.5, True),
    M.TOTAL_CORNERS_OVER_8_5: _corner_market(2.80, 8.5, True),
    M.TOTAL_CORNERS_UNDER_1_5: _corner_market(8.00, 1.5, False),
    M.TOTAL_CORNERS_UNDER_2_5: _corner_market(4.50, 2.5, False),
    M.TOTAL_CORNERS_UNDER_3_5: _corner_market(3.00, 3.5, False),
    M.CORNER_GOAL: _goal_method(8.5, "Goal from a corner", GoalEvent.CORNER),
    M.FREE_KICK_GOAL: _goal_method(6.0, "Free-kick goal", GoalEvent.FREE_KICK),
    M.BICYCLE_KICK_GOAL: _goal_method(35.0, "Bicycle-kick goal", GoalEvent.BICYCLE_KICK),
    M.HEADER_GOAL: _goal_method(1.8, "Headed goal", GoalEvent.HEADER),
    M.STRIKER_GOAL: _goal_method(1.5, "Striker scores", GoalEvent.STRIKER),
    M.MIDFIELDER_GOAL: _goal_method(2.2, "Midfielder scores", GoalEvent.MIDFIELDER),
    M.DEFENDER_GOAL: _goal_method(4.5, "Defender scores", GoalEvent.DEFENDER),
    M.GOALKEEPER_GOAL: _goal_method(30.0, "Goalkeeper scores", GoalEvent.GOALKEEPER),
    M.TOTAL_YELLOW_CARDS_OVER_2_5: MarketSpec(
        1.50, "Over 2.5 yellow cards", MarketFamily.CARDS, ComboGroup.YELLOW_CARDS,
        lambda home, away, stats: stats.total_yellow_cards > 2.5),
    M.TOTAL_YELLOW_CARDS_OVER_3_5: MarketSpec(
        2.00, "Over 3.5 yellow cards", MarketFamily.CARDS, ComboGroup.YELLOW_CARDS,
        lambda home, away, stats: stats.total_yellow_cards > 3.5),
    M.TOTAL_YELLOW_CARDS_OVER_4_5: MarketSpec(
        2.70, "Over 4.5 yellow cards", MarketFamily.CARDS, ComboGroup.YELLOW_CARDS,
        lambda home, away, stats: stats.total_yellow_cards > 4.5),
    M.TOTAL_RED_CARDS_YES: MarketSpec(
        3.50, "A red card is shown", MarketFamily.CARDS, ComboGroup.RED_CARDS,
        lambda home, away, stats: stats.total_red_cards > 0),
    M.TOTAL_RED_CARDS_NO: MarketSpec(
        1.20, "No red card", MarketFamily.CARDS, ComboGroup.RED_CARDS,
        lambda home, away, stats: stats.total_red_cards == 0),
    M.TEAM1_YELLOW_CARDS_OVER_1_5: MarketSpec(
        1.80, "Over 1.5 yellow cards {team1}", MarketFamily.CARDS, ComboGroup.YELLOW_CARDS,
        lambda home, away, stats: stats.team1_yellow_cards > 1.5),
    M.TEAM2_YELLOW_CARDS_OVER_1_5: MarketSpec(
        1.80, "Over 1.5 yellow cards {team2}", MarketFamily.CARDS, ComboGroup.YELLOW_CARDS,
        lambda home, away, stats: stats.team2_yellow_cards > 1.5),
    M.TEAM1_RED_CARD_YES: MarketSpec(
        5.00, "Red card for {team1}", MarketFamily.CARDS, ComboGroup.RED_CARDS,
        lambda home, away, stats: stats.team1_red_card),
    M.TEAM2_RED_CARD_YES: MarketSpec(
        5.00, "Red card for {team2}", MarketFamily.CARDS, ComboGroup.RED_CARDS,
        lambda home, away, stats: stats.team2_red_card),
}
del M

# Short codes used by the chat commands
MARKET_ALIASES: Dict[str, MarketType] = {
    "ambos-marcan": MarketType.BOTH_TEAMS_SCORE,
    "btts": MarketType.BOTH_TEAMS_SCORE,
    "mas-2-5": MarketType.TOTAL_GOALS_OVER_2_5,
    "menos-2-5": MarketType.TOTAL_GOALS_UNDER_2_5,
    "mas-1-5-local": MarketType.HOME_GOALS_OVER_1_5,
    "mas-1-5-visitante": MarketType.AWAY_GOALS_OVER_1_5,
    "corner": MarketType.CORNER_GOAL,
    "libre": MarketType.FREE_KICK_GOAL,
    "chilena": MarketType.BICYCLE_KICK_GOAL,
    "cabeza": MarketType.HEADER_GOAL,
    "delantero": MarketType.STRIKER_GOAL,
    "medio": MarketType.MIDFIELDER_GOAL,
    "defensa": MarketType.DEFENDER_GOAL,
    "arquero": MarketType.GOALKEEPER_GOAL,
    "amarillas-mas-2-5": MarketType.TOTAL_YELLOW_CARDS_OVER_2_5,
    "amarillas-mas-3-5": MarketType.TOTAL_YELLOW_CARDS_OVER_3_5,
    "amarillas-mas-4-5": MarketType.TOTAL_YELLOW_CARDS_OVER_4_5,
    "roja-si": MarketType.TOTAL_RED_CARDS_YES,
    "roja-no": MarketType.TOTAL_RED_CARDS_NO,
    "amarillas1-mas-1-5": MarketType.TEAM1_YELLOW_CARDS_OVER_1_5,
    "amarillas2-mas-1-5": MarketType.TEAM2_YELLOW_CARDS_OVER_1_5,
    "roja1": MarketType.TEAM1_RED_CARD_YES,
    "roja2": MarketType.TEAM2_RED_CARD_YES,
}
for _line in range(1, 9):
    MARKET_ALIASES[f"mas-{_line}-5-corners"] = MarketType(f"total_corners_over_{_line}_5")
for _line in range(1, 4):
    MARKET_ALIASES[f"menos-{_line}-5-corners"] = MarketType(f"total_corners_under_{_line}_5")


@dataclass(frozen=True)
class Leg:
    """One priced proposition inside a combined bet."""
    market: MarketType
    name: str
    price: float

    def to_dict(self) -> dict:
        return {"type": self.market.value, "name": self.name, "odds": self.price}

    @classmethod
    def from_dict(cls, data: dict) -> "Leg":
        return cls(MarketType(data["type"]), data["name"], float(data["odds"]))


def parse_market(code: Union[str, MarketType]) -> MarketType:
    """Resolve a market value or short code, raising UnknownMarketError."""
    if isinstance(code, MarketType):
        return code
    key = (code or "").strip().lower()
    if key in MARKET_ALIASES:
        return MARKET_ALIASES[key]
    try:
        return MarketType(key)
    except ValueError:
        raise UnknownMarketError(code) from None


def market_spec(market: MarketType) -> MarketSpec:
    return MARKETS[market]


def display_name(market: MarketType, team1: str = "team 1", team2: str = "team 2") -> str:
    return MARKETS[market].name.format(team1=team1, team2=team2)


def market_won(market: MarketType, home_goals: int, away_goals: int, stats: MatchStats) -> bool:
    return bool(MARKETS[market].condition(home_goals, away_goals, stats))
