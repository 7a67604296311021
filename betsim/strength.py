"""Team strength ratings.

Two formulations are kept on purpose:

* ``pricing_strength`` * ``form_multiplier`` feeds the odds calculator.
* ``simulation_strength`` feeds the match simulator.

Form strings are read oldest-to-newest, so the trailing run of results is the
current streak.
"""
from typing import Tuple

from .models import DEFAULT_FORM, DEFAULT_POSITION, Team, Tier

MIN_STRENGTH = 10.0

TIER_BASE = {
    Tier.D1: 250.0,
    Tier.D2: 150.0,
    Tier.D3: 50.0,
    Tier.CUSTOM: 100.0,
}

# (last position in band, D1, D2, other tiers)
POSITION_BANDS = [
    (1, 2.8, 2.2, 1.8),
    (2, 2.4, 1.9, 1.6),
    (3, 2.1, 1.7, 1.4),
    (5, 1.8, 1.4, 1.2),
    (8, 1.5, 1.1, 1.0),
    (12, 1.2, 0.9, 0.8),
    (16, 1.0, 0.7, 0.6),
]
BOTTOM_BAND = (0.8, 0.5, 0.4)

FORM_WIN_BONUS = [(4, 1.25), (3, 1.15), (2, 1.08), (1, 1.02)]
FORM_LOSS_PENALTY = [(4, 0.75), (3, 0.85), (2, 0.92)]
FORM_RANGE = (0.7, 1.3)

SIMULATION_RANGE = (15, 150)


def _pick_column(row, tier: Tier) -> float:
    d1, d2, other = row
    if tier == Tier.D1:
        return d1
    if tier == Tier.D2:
        return d2
    return other


def position_multiplier(tier: Tier, position: int) -> float:
    """Standings bonus, most generous to a D1 leader."""
    for last, *row in POSITION_BANDS:
        if position <= last:
            return _pick_column(row, tier)
    return _pick_column(BOTTOM_BAND, tier)


def count_form(form: str) -> Tuple[int, int, int]:
    """Return (wins, draws, losses) in a form string."""
    form = (form or DEFAULT_FORM).upper()
    return form.count("W"), form.count("D"), form.count("L")


def form_multiplier(form: str) -> float:
    """Multiplicative form adjustment, clamped so form never dominates."""
    wins, _, losses = count_form(form)

    bonus = 1.0
    for threshold, value in FORM_WIN_BONUS:
        if wins >= threshold:
            bonus = value
            break
    for threshold, value in FORM_LOSS_PENALTY:
        if losses >= threshold:
            bonus *= value
            break

    low, high = FORM_RANGE
    return max(low, min(high, bonus))


def pricing_strength(team: Team) -> float:
    """Tier base times position bonus, floored above zero."""
    position = team.position or DEFAULT_POSITION
    strength = TIER_BASE[team.tier] * position_multiplier(team.tier, position)
    return max(MIN_STRENGTH, strength)


def quality_gap_multipliers(stronger_position: int, weaker_position: int) -> Tuple[float, float]:
    """Inter-tier multipliers for (higher-tier team, lower-tier team).

    Asymmetric: the stronger side grows faster than the weaker side shrinks.
    """
    stronger = min(20, max(1, stronger_position or DEFAULT_POSITION))
    weaker = min(20, max(1, weaker_position or DEFAULT_POSITION))
    stronger_quality = (21 - stronger) / 20
    weaker_quality = (21 - weaker) / 20

    gap = stronger_quality - weaker_quality + 0.3
    return 1.0 + max(0.2, gap * 2), max(0.3, 1.0 - gap * 1.5)


def simulation_strength(team: Team) -> float:
    """Flat-points rating used by the simulator, clamped to [15, 150]."""
    strength = 50
    if team.tier == Tier.D1:
        strength += 25
    elif team.tier == Tier.D2:
        strength += 5

    position = team.position or DEFAULT_POSITION
    if position == 1:
        strength += 35
    elif position <= 3:
        strength += 25
    elif position <= 6:
        strength += 15
    elif position <= 10:
        strength += 5
    elif position <= 15:
        strength -= 10
    else:
        strength -= 20

    form = (team.form or DEFAULT_FORM).upper()
    points = 0
    win_streak = loss_streak = 0
    for result in form:
        if result == "W":
            points += 3
            win_streak += 1
            loss_streak = 0
        elif result == "D":
            points += 1
            win_streak = loss_streak = 0
        elif result == "L":
            win_streak = 0
            loss_streak += 1

    if points >= 13:
        strength += 20
    elif points >= 10:
        strength += 15
    elif points >= 7:
        strength += 5
    elif points >= 4:
        strength -= 10
    else:
        strength -= 20

    if win_streak >= 3:
        strength += 15
    elif win_streak >= 2:
        strength += 8
    if loss_streak >= 3:
        strength -= 15
    elif loss_streak >= 2:
        strength -= 8

    if "L" not in form:
        strength += 12
    if "W" not in form:
        strength -= 15

    low, high = SIMULATION_RANGE
    return max(low, min(high, strength))
