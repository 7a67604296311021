"""Team lookup by user-typed names, and team summaries."""
import re
from difflib import SequenceMatcher, get_close_matches
from typing import Iterable, List, Optional

from .models import Team, Tier
from .strength import count_form

TIER_SUFFIX = re.compile(r"\s*\([^)]+\)\s*$")
WORD_CUTOFF = 0.8
SUGGEST_CUTOFF = 0.6


def normalize_team_name(name: str) -> str:
    """Lowercase, trim and drop a trailing '(D1)' style tier tag."""
    return TIER_SUFFIX.sub("", name or "").lower().strip()


def name_similarity(a: str, b: str) -> float:
    return SequenceMatcher(None, a, b).ratio()


def _word_matches(word: str, name_words: List[str], cutoff: float) -> bool:
    if any(nw in word or word in nw for nw in name_words):
        return True
    return bool(get_close_matches(word, name_words, n=1, cutoff=cutoff))


def _filter_tier(teams: Iterable[Team], tier: Optional[Tier]) -> List[Team]:
    teams = list(teams)
    if tier is None:
        return teams
    return [t for t in teams if t.tier == tier]


def find_team(teams: Iterable[Team], search: str, tier: Optional[Tier] = None) -> Optional[Team]:
    """
    Resolve a typed team name.

    Tries, in order: exact key, exact name, substring either way, then word
    matching with typo tolerance.
    """
    if not search:
        return None
    query = search.lower().strip()
    candidates = _filter_tier(teams, tier)

    for team in candidates:
        if team.key.lower() == query:
            return team

    query = normalize_team_name(query)
    for team in candidates:
        if team.name.lower() == query:
            return team

    for team in candidates:
        name = team.name.lower()
        if query in name or name in query:
            return team

    query_words = [w for w in query.split() if len(w) > 2]
    if not query_words:
        return None
    needed = -(-len(query_words) * 7 // 10)  # ceil(70%)
    for team in candidates:
        name_words = team.name.lower().split()
        matching = [qw for qw in query_words if _word_matches(qw, name_words, WORD_CUTOFF)]
        if len(matching) >= needed:
            return team
    return None


def suggest_teams(teams: Iterable[Team], search: str, limit: int = 5, tier: Optional[Tier] = None) -> List[Team]:
    """Closest team names for a failed lookup, best first."""
    query = normalize_team_name(search)
    if not query:
        return []
    query_words = [w for w in query.split() if len(w) > 2]
    scored = []
    for team in _filter_tier(teams, tier):
        name = team.name.lower()
        score = name_similarity(query, name)
        name_words = name.split()
        if score >= SUGGEST_CUTOFF or any(_word_matches(w, name_words, SUGGEST_CUTOFF) for w in query_words):
            scored.append((score, team))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [team for _, team in scored[:limit]]


def form_analysis(team: Team) -> dict:
    """Points and percentage over the form window."""
    form = team.form or "DDDDD"
    wins, draws, losses = count_form(form)
    points = wins * 3 + draws
    max_points = len(form) * 3 or 15
    return {
        "form": form,
        "wins": wins,
        "draws": draws,
        "losses": losses,
        "points": points,
        "percentage": round(points / max_points * 100, 1),
    }
