"""Synthetic match results for auto-play."""
import logging
import random
from typing import Optional, Tuple

from .models import DEFAULT_POSITION, Match, MatchOutcome, MatchResult, Team, Tier
from .settlement import finalize_match
from .strength import quality_gap_multipliers, simulation_strength

logger = logging.getLogger(__name__)


def simulation_draw_probability(team1: Team, team2: Team) -> float:
    if team1.tier == team2.tier:
        return 0.22
    avg_position = ((team1.position or DEFAULT_POSITION) + (team2.position or DEFAULT_POSITION)) / 2
    if avg_position <= 5:
        return 0.15
    if avg_position <= 15:
        return 0.12
    return 0.08


def win_probability(team1: Team, team2: Team) -> float:
    """Share of team1 in the combined simulation strength."""
    strength1 = simulation_strength(team1)
    strength2 = simulation_strength(team2)

    if team1.tier == Tier.D1 and team2.tier == Tier.D2:
        top_mult, lower_mult = quality_gap_multipliers(team1.position, team2.position)
        strength1 *= top_mult
        strength2 *= lower_mult
    elif team1.tier == Tier.D2 and team2.tier == Tier.D1:
        top_mult, lower_mult = quality_gap_multipliers(team2.position, team1.position)
        strength1 *= lower_mult
        strength2 *= top_mult

    return strength1 / (strength1 + strength2)


def simulate_score(team1: Team, team2: Team, rng: Optional[random.Random] = None) -> Tuple[MatchResult, int, int]:
    """Draw a result and a scoreline consistent with it."""
    rng = rng or random.Random()
    draw_prob = simulation_draw_probability(team1, team2)
    roll = rng.random()

    if roll < win_probability(team1, team2) * (1 - draw_prob):
        result = MatchResult.HOME
    elif roll < 1 - draw_prob:
        result = MatchResult.AWAY
    else:
        result = MatchResult.DRAW

    if result == MatchResult.HOME:
        if team1.tier == Tier.D1 and team2.tier == Tier.D2:
            home, away = rng.randint(2, 5), rng.randint(0, 1)
        else:
            home = rng.randint(1, 3)
            away = rng.randrange(home)
    elif result == MatchResult.AWAY:
        if team2.tier == Tier.D1 and team1.tier == Tier.D2:
            away, home = rng.randint(2, 5), rng.randint(0, 1)
        else:
            away = rng.randint(1, 3)
            home = rng.randrange(away)
    else:
        home = away = rng.randint(0, 2)

    return result, home, away


def simulate_outcome(
    match: Match,
    team1: Team,
    team2: Team,
    rng: Optional[random.Random] = None,
) -> Tuple[Match, MatchOutcome]:
    """Simulate and finalize a match. Special statistics stay at zero."""
    result, home, away = simulate_score(team1, team2, rng)
    logger.info(f"Simulated {team1.key} {home}-{away} {team2.key}")
    return finalize_match(match, result, home, away, is_manual=False)
