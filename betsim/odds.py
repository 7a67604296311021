"""Three-way match odds from team strength."""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from . import config
from .models import DEFAULT_FORM, DEFAULT_POSITION, Team, ThreeWayOdds, Tier
from .strength import form_multiplier, pricing_strength, quality_gap_multipliers, count_form

logger = logging.getLogger(__name__)

NEUTRAL_ODDS = ThreeWayOdds(home=2.0, draw=3.0, away=2.0)

LEAGUE_WIN_RANGE = (1.01, 50.0)
LEAGUE_DRAW_RANGE = (2.5, 20.0)
CUP_WIN_RANGE = (1.05, 50.0)
CUP_DRAW_RANGE = (3.0, 25.0)


@dataclass(frozen=True)
class OddsCalibration:
    """Tunable constants of the pricing model."""
    margin: float = config.LEAGUE_MARGIN
    cup_margin: float = config.CUP_MARGIN
    inter_tier_model: str = config.INTER_TIER_MODEL  # "quality_gap" or "banded"


DEFAULT_CALIBRATION = OddsCalibration()


@dataclass(frozen=True)
class MismatchOverride:
    """Hard price limits for a D1 side against a weak D2 side.

    These are business rules layered on top of the model, reproduced as-is.
    """
    favourite_max_position: int
    underdog_min_position: int
    favourite_cap: float
    underdog_floor: float
    draw_floor: float


# Ordered, first match wins.
LEAGUE_MISMATCH_OVERRIDES = (
    MismatchOverride(1, 18, 1.05, 25.0, 15.0),
    MismatchOverride(1, 10, 1.10, 15.0, 12.0),
    MismatchOverride(3, 15, 1.20, 12.0, 10.0),
)

# (top-team position, lower-team position threshold, top multiplier, lower multiplier)
BANDED_INTER_TIER = {
    1: [(18, 8.0, 0.15), (15, 6.0, 0.2), (10, 4.5, 0.25), (5, 3.5, 0.35), (0, 2.8, 0.45)],
    3: [(15, 4.5, 0.25), (8, 3.2, 0.35), (0, 2.5, 0.5)],
    8: [(15, 3.0, 0.4), (8, 2.2, 0.55), (0, 1.8, 0.65)],
    None: [(15, 2.0, 0.6), (0, 1.5, 0.75)],
}

CUP_TIER_BASE = {Tier.D1: 180.0, Tier.D2: 130.0, Tier.D3: 60.0, Tier.CUSTOM: 100.0}

CUP_POSITION_BANDS = {
    Tier.D1: [(1, 3.5), (2, 2.8), (3, 2.4), (5, 2.0), (8, 1.6), (12, 1.3), (16, 1.0), (None, 0.8)],
    Tier.D2: [(1, 2.2), (2, 1.8), (3, 1.6), (5, 1.4), (8, 1.1), (12, 0.9), (16, 0.7), (None, 0.5)],
    Tier.D3: [(1, 1.5), (3, 1.2), (8, 0.9), (None, 0.7)],
}

CUP_TOURNAMENT_FACTORS = {
    "maradei": {Tier.D1: 1.3, Tier.D2: 0.8, Tier.D3: 0.6},
    "izoro": {Tier.D1: 1.2, Tier.D2: 0.9},
    "izplata": {Tier.D2: 1.15, Tier.D1: 0.9},
}


def _clamp(value: float, bounds: Tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


def is_knockout(tournament: Optional[str]) -> bool:
    return bool(tournament) and tournament.lower() in config.KNOCKOUT_TOURNAMENTS


def compute_odds(
    team1: Optional[Team],
    team2: Optional[Team],
    tournament: Optional[str] = None,
    calibration: OddsCalibration = DEFAULT_CALIBRATION,
) -> ThreeWayOdds:
    """
    Price a match between two teams.

    Args:
        team1: Home side (None if the team record is missing)
        team2: Away side (None if the team record is missing)
        tournament: Tournament key; knockout cups use the cup pricing path
        calibration: Model constants

    Returns:
        Odds rounded to 2 decimals, with a positive house margin
    """
    if team1 is None or team2 is None:
        logger.warning("Missing team record, quoting neutral odds")
        return NEUTRAL_ODDS

    if is_knockout(tournament):
        return compute_cup_odds(team1, team2, tournament.lower(), calibration)
    return compute_league_odds(team1, team2, calibration)


# League path
def banded_inter_tier_multipliers(top_position: int, lower_position: int) -> Tuple[float, float]:
    """The D1 vs D2 cliff table: (D1 multiplier, D2 multiplier)."""
    for max_position in (1, 3, 8, None):
        if max_position is None or top_position <= max_position:
            for threshold, top_mult, lower_mult in BANDED_INTER_TIER[max_position]:
                if lower_position >= threshold:
                    return top_mult, lower_mult
    return 1.0, 1.0


def inter_tier_multipliers(team1: Team, team2: Team, calibration: OddsCalibration) -> Tuple[float, float]:
    """Multipliers for (team1, team2) when they play in different ranked tiers."""
    if team1.tier == team2.tier or team1.tier.rank is None or team2.tier.rank is None:
        return 1.0, 1.0

    swapped = team2.tier.rank < team1.tier.rank
    top, lower = (team2, team1) if swapped else (team1, team2)
    top_pos = top.position or DEFAULT_POSITION
    lower_pos = lower.position or DEFAULT_POSITION

    if calibration.inter_tier_model == "banded":
        if (top.tier, lower.tier) != (Tier.D1, Tier.D2):
            return 1.0, 1.0
        top_mult, lower_mult = banded_inter_tier_multipliers(top_pos, lower_pos)
    else:
        top_mult, lower_mult = quality_gap_multipliers(top_pos, lower_pos)

    return (lower_mult, top_mult) if swapped else (top_mult, lower_mult)


def league_draw_probability(team1: Team, team2: Team, strength1: float, strength2: float) -> float:
    if team1.tier != team2.tier:
        ratio = max(strength1, strength2) / min(strength1, strength2)
        if ratio > 8:
            draw = 0.08
        elif ratio > 5:
            draw = 0.10
        else:
            draw = 0.12
    else:
        avg_position = ((team1.position or DEFAULT_POSITION) + (team2.position or DEFAULT_POSITION)) / 2
        if avg_position <= 5:
            draw = 0.18
        elif avg_position <= 10:
            draw = 0.22
        else:
            draw = 0.25
    return max(0.08, min(0.25, draw))


def _price(probability: float, margin: float, bounds: Tuple[float, float]) -> float:
    return _clamp((1 / probability) * (1 - margin), bounds)


def apply_mismatch_overrides(home: float, draw: float, away: float, team1: Team, team2: Team) -> Tuple[float, float, float]:
    """Cap the D1 favourite and floor the other prices in lopsided fixtures."""
    for favourite, underdog, favourite_is_home in ((team1, team2, True), (team2, team1, False)):
        if favourite.tier != Tier.D1 or underdog.tier != Tier.D2:
            continue
        fav_pos = favourite.position or DEFAULT_POSITION
        dog_pos = underdog.position or DEFAULT_POSITION
        for rule in LEAGUE_MISMATCH_OVERRIDES:
            if fav_pos <= rule.favourite_max_position and dog_pos >= rule.underdog_min_position:
                logger.debug(f"Mismatch override {rule} for {favourite.key} vs {underdog.key}")
                if favourite_is_home:
                    home = min(home, rule.favourite_cap)
                    away = max(away, rule.underdog_floor)
                else:
                    away = min(away, rule.favourite_cap)
                    home = max(home, rule.underdog_floor)
                draw = max(draw, rule.draw_floor)
                return home, draw, away
    return home, draw, away


def compute_league_odds(team1: Team, team2: Team, calibration: OddsCalibration = DEFAULT_CALIBRATION) -> ThreeWayOdds:
    strength1 = pricing_strength(team1)
    strength2 = pricing_strength(team2)

    mult1, mult2 = inter_tier_multipliers(team1, team2, calibration)
    strength1 *= mult1 * form_multiplier(team1.form or DEFAULT_FORM)
    strength2 *= mult2 * form_multiplier(team2.form or DEFAULT_FORM)

    total = strength1 + strength2
    draw_prob = league_draw_probability(team1, team2, strength1, strength2)
    home_prob = strength1 / total * (1 - draw_prob)
    away_prob = strength2 / total * (1 - draw_prob)

    home = _price(home_prob, calibration.margin, LEAGUE_WIN_RANGE)
    away = _price(away_prob, calibration.margin, LEAGUE_WIN_RANGE)
    draw = _price(draw_prob, calibration.margin, LEAGUE_DRAW_RANGE)

    home, draw, away = apply_mismatch_overrides(home, draw, away, team1, team2)
    return ThreeWayOdds(home=round(home, 2), draw=round(draw, 2), away=round(away, 2))


# Cup path
def cup_position_modifier(tier: Tier, position: int) -> float:
    bands = CUP_POSITION_BANDS.get(tier)
    if not bands:
        return 1.0
    for last, modifier in bands:
        if last is None or position <= last:
            return modifier
    return 1.0


def cup_form_multiplier(form: str) -> float:
    """Cup form bonus: wider bands, and a loss-free run with 2+ wins is rewarded."""
    wins, _, losses = count_form(form)

    if wins >= 4:
        bonus = 1.35
    elif wins >= 3:
        bonus = 1.25
    elif wins >= 2:
        bonus = 1.15
    elif wins == 1:
        bonus = 1.05
    else:
        bonus = 0.85

    if losses >= 4:
        bonus *= 0.65
    elif losses >= 3:
        bonus *= 0.75
    elif losses >= 2:
        bonus *= 0.85

    if losses == 0 and wins >= 2:
        bonus *= 1.1
    return max(0.5, min(1.8, bonus))


def cup_tournament_factor(tournament: str, tier: Tier) -> float:
    return CUP_TOURNAMENT_FACTORS.get(tournament, {}).get(tier, 1.0)


def _cup_cliffs(top: Team, other: Team) -> Tuple[float, float]:
    """Explicit multiplier cliffs for (top, other); reproduced as-is."""
    top_mult = other_mult = 1.0
    top_pos = top.position or DEFAULT_POSITION
    other_pos = other.position or DEFAULT_POSITION

    if top.tier == Tier.D1 and top_pos == 1:
        if other.tier == Tier.D2 and other_pos >= 7:
            top_mult, other_mult = 5.0, 0.2
        elif other.tier == Tier.D3 or (other.tier == Tier.D2 and other_pos >= 15):
            top_mult, other_mult = 8.0, 0.1
        elif other.tier == Tier.D2 and other_pos >= 4:
            top_mult, other_mult = 3.5, 0.3

    if top.tier == Tier.D1 and top_pos <= 3 and other.tier == Tier.D2 and other_pos >= 8:
        top_mult *= 3.5
        other_mult *= 0.4
    return top_mult, other_mult


def cup_draw_probability(strength1: float, strength2: float) -> float:
    ratio = max(strength1, strength2) / min(strength1, strength2)
    if ratio > 8:
        return 0.05
    if ratio > 5:
        return 0.08
    if ratio > 3:
        return 0.10
    if ratio > 2:
        return 0.12
    return 0.16


def compute_cup_odds(team1: Team, team2: Team, tournament: str, calibration: OddsCalibration = DEFAULT_CALIBRATION) -> ThreeWayOdds:
    strength1 = CUP_TIER_BASE[team1.tier] * cup_position_modifier(team1.tier, team1.position or DEFAULT_POSITION)
    strength2 = CUP_TIER_BASE[team2.tier] * cup_position_modifier(team2.tier, team2.position or DEFAULT_POSITION)

    strength1 *= cup_form_multiplier(team1.form) * cup_tournament_factor(tournament, team1.tier)
    strength2 *= cup_form_multiplier(team2.form) * cup_tournament_factor(tournament, team2.tier)

    mult1, mult2 = _cup_cliffs(team1, team2)
    strength1 *= mult1
    strength2 *= mult2
    mult2, mult1 = _cup_cliffs(team2, team1)
    strength1 *= mult1
    strength2 *= mult2

    total = strength1 + strength2
    draw_prob = cup_draw_probability(strength1, strength2)
    home_prob = strength1 / total * (1 - draw_prob)
    away_prob = strength2 / total * (1 - draw_prob)

    home = _price(home_prob, calibration.cup_margin, CUP_WIN_RANGE)
    away = _price(away_prob, calibration.cup_margin, CUP_WIN_RANGE)
    draw = _price(draw_prob, calibration.cup_margin, CUP_DRAW_RANGE)
    return ThreeWayOdds(home=round(home, 2), draw=round(draw, 2), away=round(away, 2))
