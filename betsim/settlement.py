"""Match finalization and bet settlement."""
import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple, Union

from .bets import Bet, ComboPick, ExactScorePick, SimplePick, SpecialPick
from .errors import StateError, ValidationError
from .markets import market_won
from .models import Match, MatchOutcome, MatchResult, MatchStats, MatchStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementEntry:
    bet_id: str
    user_id: str
    won: bool
    payout: float


@dataclass(frozen=True)
class SettlementBatch:
    """Resolution of every bet on one match."""
    match_id: str
    entries: Tuple[SettlementEntry, ...]

    @property
    def winners(self) -> List[SettlementEntry]:
        return [e for e in self.entries if e.won]

    @property
    def total_payout(self) -> float:
        return round(sum(e.payout for e in self.entries), 2)


def _goals(value, label: str) -> int:
    try:
        goals = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a whole number, got '{value}'") from None
    if goals != value and not isinstance(value, str):
        raise ValidationError(f"{label} must be a whole number, got '{value}'")
    if goals < 0:
        raise ValidationError(f"{label} must be 0 or greater")
    return goals


def finalize_match(
    match: Match,
    result: Union[str, MatchResult],
    home_goals,
    away_goals,
    stats: Optional[MatchStats] = None,
    is_manual: bool = True,
) -> Tuple[Match, MatchOutcome]:
    """
    Move a match from upcoming to finished.

    The score must agree with the result tag. Returns the finished match and
    its outcome; the input match is left untouched.
    """
    if match.status != MatchStatus.UPCOMING:
        raise StateError(f"Match {match.id} already has a result")

    result = MatchResult.parse(result) if not isinstance(result, MatchResult) else result
    home = _goals(home_goals, "Home goals")
    away = _goals(away_goals, "Away goals")

    if result == MatchResult.HOME and home <= away:
        raise ValidationError("Score does not match a team1 win")
    if result == MatchResult.AWAY and away <= home:
        raise ValidationError("Score does not match a team2 win")
    if result == MatchResult.DRAW and home != away:
        raise ValidationError("A draw needs both teams on the same score")

    outcome = MatchOutcome(
        match_id=match.id,
        result=result,
        home_goals=home,
        away_goals=away,
        stats=stats or MatchStats(),
        is_manual=is_manual,
        recorded_at=datetime.now(timezone.utc),
    )
    finished = dataclasses.replace(match, status=MatchStatus.FINISHED, bet_ids=list(match.bet_ids))
    return finished, outcome


def bet_won(bet: Bet, outcome: MatchOutcome) -> bool:
    """Evaluate one bet against a final outcome."""
    selection = bet.selection
    home, away, stats = outcome.home_goals, outcome.away_goals, outcome.stats

    if isinstance(selection, SimplePick):
        return selection.pick == outcome.result
    if isinstance(selection, ExactScorePick):
        return selection.score.home == home and selection.score.away == away
    if isinstance(selection, SpecialPick):
        return market_won(selection.market, home, away, stats)
    if isinstance(selection, ComboPick):
        return bool(selection.legs) and all(market_won(leg.market, home, away, stats) for leg in selection.legs)

    logger.warning(f"Bet {bet.id} has an unrecognised selection, settling as lost")
    return False


def settle(match: Match, outcome: MatchOutcome, bets: Iterable[Bet]) -> SettlementBatch:
    """
    Resolve every bet on a finished match.

    Pure and deterministic: the same inputs always give the same batch.
    Payout is stake times the price quoted at placement.
    """
    if match.status != MatchStatus.FINISHED:
        raise StateError(f"Match {match.id} is not finished")
    if outcome.match_id != match.id:
        raise ValidationError(f"Outcome belongs to match {outcome.match_id}, not {match.id}")

    entries = []
    for bet in bets:
        if bet.match_id != match.id:
            continue
        won = bet_won(bet, outcome)
        payout = round(bet.amount * bet.odds, 2) if won else 0.0
        entries.append(SettlementEntry(bet.id, bet.user_id, won, payout))

    batch = SettlementBatch(match.id, tuple(entries))
    logger.info(
        f"Settled match {match.id}: {len(batch.entries)} bets, "
        f"{len(batch.winners)} winners, {batch.total_payout:.2f} paid"
    )
    return batch
