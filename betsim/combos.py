"""Combined special bets."""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .errors import ComboConstraintError, ValidationError
from .markets import ComboGroup, Leg, MarketType, display_name, market_spec, parse_market
from .models import Team
from .pricing import price_special

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComboQuote:
    price: float
    legs: Tuple[Leg, ...]

    @property
    def description(self) -> str:
        return " + ".join(leg.name for leg in self.legs)


def check_exclusivity(markets: Sequence[MarketType]) -> None:
    """Raise ComboConstraintError if the selections cannot be combined."""
    groups: Dict[ComboGroup, List[MarketType]] = {}
    for market in markets:
        group = market_spec(market).group
        if group is not None:
            groups.setdefault(group, []).append(market)

    for group in ComboGroup:
        if len(groups.get(group, [])) > 1:
            raise ComboConstraintError(group.value)

    if MarketType.BOTH_TEAMS_SCORE in markets and len(groups) > 1:
        raise ComboConstraintError(
            "both teams score",
            "Both teams score can only be combined with a single goals, corners or cards selection",
        )


def compose_combo(
    team1: Optional[Team],
    team2: Optional[Team],
    markets: Sequence[Union[str, MarketType]],
) -> ComboQuote:
    """
    Validate and price a combined bet.

    Args:
        team1: Home side record (None if missing)
        team2: Away side record (None if missing)
        markets: Market values or short codes

    Returns:
        ComboQuote with the product price and the priced legs
    """
    if not markets:
        raise ValidationError("A combined bet needs at least one selection")

    parsed = [parse_market(m) for m in markets]
    if len(set(parsed)) != len(parsed):
        raise ValidationError("The same selection appears more than once")

    check_exclusivity(parsed)

    team1_name = team1.name if team1 else "team 1"
    team2_name = team2.name if team2 else "team 2"

    price = 1.0
    legs = []
    for market in parsed:
        leg_price = price_special(team1, team2, market)
        price *= leg_price
        legs.append(Leg(market, display_name(market, team1_name, team2_name), leg_price))

    logger.debug(f"Combo {[m.value for m in parsed]} priced at {price:.4f}")
    return ComboQuote(price=round(price, 2), legs=tuple(legs))
