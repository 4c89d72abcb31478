# app/domain/scoring.py
"""
Pure compatibility scoring.

Functions included:
- score                    pairwise compatibility of two candidates
- group_score              mean pairwise score of a candidate subset
- compatibility_percentage score scaled to 0-100 for display
- describe_compatibility   display band for a percentage

No DB access, no side effects.
"""
import math
from dataclasses import dataclass
from itertools import combinations
from typing import AbstractSet, Sequence

from app.domain.grouping import DEFAULT_WEIGHTS, ScoringWeights
from app.domain.models import CandidateProfile, PairScore

SAME_SPECIALTY_SCORE = 1.0
CROSS_SPECIALTY_SCORE = 0.3


def overlap_ratio(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    """
    Shared items divided by the size of the smaller set; 0 if either is empty.

    Example:
    >>> overlap_ratio({"ai", "golf"}, {"ai", "golf", "chess", "jazz"})
    1.0
    """
    if not a or not b:
        return 0.0
    return len(a & b) / min(len(a), len(b))


def score(a: CandidateProfile, b: CandidateProfile, weights: ScoringWeights = DEFAULT_WEIGHTS) -> PairScore:
    """
    Weighted compatibility of two candidates, in [0, 1].

    Components:
    - specialty: 1.0 when equal, 0.3 otherwise
    - interests: overlap ratio of interest tags
    - proximity: 1.0 for the same city, 0.0 otherwise
    - availability: overlap ratio of availability slots
    """
    specialty = SAME_SPECIALTY_SCORE if a.specialty == b.specialty else CROSS_SPECIALTY_SCORE
    interests = overlap_ratio(a.interests, b.interests)
    proximity = 1.0 if a.city == b.city else 0.0
    availability = overlap_ratio(a.availability_slots, b.availability_slots)

    total = math.fsum((
        weights.specialty * specialty,
        weights.interests * interests,
        weights.proximity * proximity,
        weights.availability * availability,
    ))
    return PairScore(
        candidate_ids=tuple(sorted((a.id, b.id))),
        total=min(1.0, max(0.0, total)),
        breakdown={
            "specialty": specialty,
            "interests": interests,
            "proximity": proximity,
            "availability": availability,
        },
    )


def group_score(members: Sequence[CandidateProfile], weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    """Arithmetic mean of the pair totals within the group. 0.0 below two members."""
    if len(members) < 2:
        return 0.0
    totals = [score(a, b, weights).total for a, b in combinations(members, 2)]
    return sum(totals) / len(totals)


@dataclass(frozen=True)
class CompatibilityDescription:
    percentage: int
    description: str
    level: str


def compatibility_percentage(a: CandidateProfile, b: CandidateProfile, weights: ScoringWeights = DEFAULT_WEIGHTS) -> int:
    return round(score(a, b, weights).total * 100)


def describe_compatibility(percentage: int) -> CompatibilityDescription:
    if percentage >= 90:
        return CompatibilityDescription(percentage, "Excellent Match! You have tons in common", "excellent")
    if percentage >= 80:
        return CompatibilityDescription(percentage, "Great Match! Strong compatibility", "great")
    if percentage >= 70:
        return CompatibilityDescription(percentage, "Good Match! Several shared interests", "good")
    if percentage >= 60:
        return CompatibilityDescription(percentage, "Decent Match! Some common ground", "decent")
    return CompatibilityDescription(percentage, "Moderate Match! Room to explore differences", "moderate")
