# app/domain/grouping.py

import math
from dataclasses import dataclass, field
from typing import Tuple

DEFAULT_MIN_GROUP_SCORE = 0.55
DEFAULT_COOLDOWN_WEEKS = 6
DEFAULT_TARGET_SIZES = (3, 4)

MIN_GROUP_SIZE = 2
MAX_GROUP_SIZE = 4


@dataclass(frozen=True)
class ScoringWeights:
    """
    Weights of the pairwise compatibility components.
    They must be non-negative and add up to 1.0 so a total stays in [0, 1].
    """
    specialty: float = 0.3
    interests: float = 0.4
    proximity: float = 0.2
    availability: float = 0.1

    def __post_init__(self):
        values = (self.specialty, self.interests, self.proximity, self.availability)
        if any(v < 0 for v in values):
            raise ValueError("Scoring weights must be non-negative")
        if not math.isclose(sum(values), 1.0, abs_tol=1e-9):
            raise ValueError(f"Scoring weights must sum to 1.0 (got {sum(values):.4f})")


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class MatchingOptions:
    min_group_score: float = DEFAULT_MIN_GROUP_SCORE
    cooldown_weeks: int = DEFAULT_COOLDOWN_WEEKS
    target_sizes: Tuple[int, ...] = DEFAULT_TARGET_SIZES
    allow_pair_only_groups: bool = False
    balanced_shape: bool = True
    weights: ScoringWeights = field(default_factory=ScoringWeights)
