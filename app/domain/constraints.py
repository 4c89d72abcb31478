# app/domain/constraints.py
"""
Gender preference and balance rules for a candidate subset.
"""
from collections import Counter
from typing import Sequence

from app.domain.models import CandidateProfile, GenderPreference


def violates_preferences(members: Sequence[CandidateProfile]) -> bool:
    """
    True if any member's hard preference is broken by the subset.

    - same-gender-only: the subset must hold a single gender
    - mixed: the subset must hold at least two genders
    """
    distinct = len({m.gender for m in members})
    for m in members:
        if m.gender_preference == GenderPreference.SAME_GENDER_ONLY and distinct > 1:
            return True
        if m.gender_preference == GenderPreference.MIXED_REQUIRED and distinct < 2:
            return True
    return False


def has_balanced_shape(members: Sequence[CandidateProfile]) -> bool:
    """
    Advisory split heuristic: with exactly two genders, 4 members split 2/2
    and 3 members split 2/1. Anything else is accepted.
    """
    counts = sorted(Counter(m.gender for m in members).values(), reverse=True)
    if len(counts) != 2:
        return True
    if len(members) == 4:
        return counts == [2, 2]
    if len(members) == 3:
        return counts == [2, 1]
    return True


def satisfies_constraints(members: Sequence[CandidateProfile], balanced_shape: bool = True) -> bool:
    if violates_preferences(members):
        return False
    if balanced_shape and not has_balanced_shape(members):
        return False
    return True
