"""Exact-score and special-market prices."""
from typing import Optional, Union

from .markets import MarketFamily, MarketType, market_spec, parse_market
from .models import DEFAULT_POSITION, ExactScore, Team

EXACT_SCORE_RANGE = (4.0, 80.0)
SPECIAL_RANGE = (1.1, 100.0)

# Set-piece and aerial goals get shorter in top-of-table fixtures
SET_PIECE_MARKETS = frozenset({
    MarketType.CORNER_GOAL,
    MarketType.FREE_KICK_GOAL,
    MarketType.HEADER_GOAL,
})


def exact_score_base_price(home: int, away: int) -> float:
    margin = abs(home - away)
    if margin == 0:
        return {0: 8.5, 1: 6.5, 2: 12.0}.get(home, 25.0)
    if margin == 1:
        return 5.5 if max(home, away) <= 2 else 9.0
    if margin == 2:
        return 7.5 if max(home, away) <= 3 else 15.0
    return 20.0 + margin * 8


def price_exact_score(team1: Optional[Team], team2: Optional[Team], score: ExactScore) -> float:
    """
    Price an exact-score wager.

    A wide standings gap shortens the price, evenly matched sides lengthen it.
    Missing team records skip the adjustment.
    """
    price = exact_score_base_price(score.home, score.away)

    if team1 is not None and team2 is not None:
        gap = abs((team1.position or DEFAULT_POSITION) - (team2.position or DEFAULT_POSITION))
        if gap > 10:
            price *= 0.8
        elif gap < 3:
            price *= 1.3

    low, high = EXACT_SCORE_RANGE
    return max(low, min(high, round(price, 2)))


def price_special(team1: Optional[Team], team2: Optional[Team], market: Union[str, MarketType]) -> float:
    """Price a single special proposition. Unknown codes raise UnknownMarketError."""
    market = parse_market(market)
    spec = market_spec(market)
    price = spec.base_price

    if team1 is not None and team2 is not None:
        avg_position = ((team1.position or DEFAULT_POSITION) + (team2.position or DEFAULT_POSITION)) / 2
        if avg_position <= 5:
            if market in SET_PIECE_MARKETS:
                price *= 0.85
            if spec.family == MarketFamily.CARDS:
                price *= 1.1
        elif avg_position >= 15:
            if spec.family == MarketFamily.CARDS:
                price *= 0.9
            price *= 1.15

        avg_form = (team1.recent_wins + team2.recent_wins) / 2
        if avg_form >= 4:
            price *= 0.9
        elif avg_form <= 1:
            price *= 1.1

    low, high = SPECIAL_RANGE
    return max(low, min(high, round(price, 2)))
