# app/domain/recency.py
"""
Recency exclusion: pairs of candidates who shared a group within the cooldown
window must not be grouped again.
"""
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from itertools import combinations
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from app.domain.grouping import DEFAULT_COOLDOWN_WEEKS
from app.domain.models import MembershipRecord

PairKey = FrozenSet[str]


def pair_key(a: str, b: str) -> PairKey:
    return frozenset((a, b))


def cooldown_start(now: Optional[date] = None, cooldown_weeks: int = DEFAULT_COOLDOWN_WEEKS) -> date:
    """First reference date still inside the cooldown window."""
    if cooldown_weeks < 0:
        raise ValueError("cooldown_weeks must be >= 0")
    if now is None:
        now = datetime.now(timezone.utc).date()
    elif isinstance(now, datetime):
        now = now.date()
    return now - timedelta(weeks=cooldown_weeks)


def excluded_pairs(
    history: Iterable[MembershipRecord],
    cooldown_weeks: int = DEFAULT_COOLDOWN_WEEKS,
    now: Optional[date] = None,
) -> Set[PairKey]:
    """
    Every unordered pair of candidates that shared a group whose reference
    date falls within the last `cooldown_weeks` weeks.

    Example:
    >>> rows = [MembershipRecord("g1", "a", date(2026, 10, 5)),
    ...         MembershipRecord("g1", "b", date(2026, 10, 5))]
    >>> excluded_pairs(rows, 6, now=date(2026, 10, 19)) == {frozenset({"a", "b"})}
    True
    """
    since = cooldown_start(now, cooldown_weeks)

    groups: Dict[str, List[str]] = defaultdict(list)
    for record in history:
        if record.reference_date < since:
            continue
        members = groups[record.group_id]
        if record.candidate_id not in members:
            members.append(record.candidate_id)

    excluded: Set[PairKey] = set()
    for members in groups.values():
        for a, b in combinations(members, 2):
            excluded.add(pair_key(a, b))
    return excluded
