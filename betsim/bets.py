"""Wager records and quoting."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

from .combos import compose_combo
from .errors import StateError, ValidationError
from .markets import Leg, MarketType, display_name, parse_market
from .models import ExactScore, Match, MatchResult, Team
from .pricing import price_exact_score, price_special


class BetKind(str, Enum):
    SIMPLE = "simple"
    EXACT_SCORE = "exact_score"
    SPECIAL = "special"
    COMBO = "special_combined"


class BetStatus(str, Enum):
    PENDING = "pending"
    WON = "won"
    LOST = "lost"


@dataclass(frozen=True)
class SimplePick:
    pick: MatchResult
    kind = BetKind.SIMPLE


@dataclass(frozen=True)
class ExactScorePick:
    score: ExactScore
    kind = BetKind.EXACT_SCORE


@dataclass(frozen=True)
class SpecialPick:
    market: MarketType
    kind = BetKind.SPECIAL


@dataclass(frozen=True)
class ComboPick:
    legs: Tuple[Leg, ...]
    kind = BetKind.COMBO


Selection = Union[SimplePick, ExactScorePick, SpecialPick, ComboPick]


@dataclass
class Bet:
    """A wager on one match. Amount, odds and selection are fixed once placed."""
    id: str
    user_id: str
    match_id: str
    amount: float
    odds: float
    selection: Selection
    description: str = ""
    status: BetStatus = BetStatus.PENDING
    payout: float = 0.0
    placed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def kind(self) -> BetKind:
        return self.selection.kind

    @property
    def potential_winnings(self) -> float:
        return round(self.amount * self.odds, 2)


def new_bet_id() -> str:
    return uuid.uuid4().hex[:16]


def validate_amount(amount) -> float:
    """Coerce a stake to a positive number."""
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError(f"Amount must be a number, got '{amount}'") from None
    if value != value or value <= 0:
        raise ValidationError("Amount must be greater than 0")
    return value


def quote_selection(
    match: Match,
    team1: Optional[Team],
    team2: Optional[Team],
    selection: Selection,
) -> Tuple[float, str]:
    """Return (price, description) for a selection on a match."""
    team1_name = team1.name if team1 else match.team1
    team2_name = team2.name if team2 else match.team2

    if isinstance(selection, SimplePick):
        names = {MatchResult.HOME: team1_name, MatchResult.DRAW: "Draw", MatchResult.AWAY: team2_name}
        return match.odds.price_for(selection.pick), names[selection.pick]
    if isinstance(selection, ExactScorePick):
        return price_exact_score(team1, team2, selection.score), f"Exact score {selection.score}"
    if isinstance(selection, SpecialPick):
        return price_special(team1, team2, selection.market), display_name(selection.market, team1_name, team2_name)
    if isinstance(selection, ComboPick):
        price = 1.0
        for leg in selection.legs:
            price *= leg.price
        return round(price, 2), " + ".join(leg.name for leg in selection.legs)
    raise ValidationError(f"Unsupported selection: {selection!r}")


def build_selection(
    team1: Optional[Team],
    team2: Optional[Team],
    kind: Union[str, BetKind],
    value: Union[str, Sequence[str]],
) -> Selection:
    """Build a selection from raw caller input (chat/CLI arguments)."""
    try:
        kind = BetKind(kind)
    except ValueError:
        raise ValidationError(f"Unknown bet type: {kind}") from None
    if kind == BetKind.SIMPLE:
        return SimplePick(MatchResult.parse(value))
    if kind == BetKind.EXACT_SCORE:
        return ExactScorePick(ExactScore.parse(value))
    if kind == BetKind.SPECIAL:
        return SpecialPick(parse_market(value))
    codes = [value] if isinstance(value, str) else list(value)
    return ComboPick(compose_combo(team1, team2, codes).legs)


def place_bet(
    match: Match,
    team1: Optional[Team],
    team2: Optional[Team],
    user_id: str,
    selection: Selection,
    amount,
    bet_id: Optional[str] = None,
) -> Bet:
    """Create a pending bet priced at placement time."""
    if not match.is_open:
        raise StateError(f"Match {match.id} is already finished, betting is closed")
    stake = validate_amount(amount)
    price, description = quote_selection(match, team1, team2, selection)
    return Bet(
        id=bet_id or new_bet_id(),
        user_id=user_id,
        match_id=match.id,
        amount=stake,
        odds=price,
        selection=selection,
        description=description,
    )
