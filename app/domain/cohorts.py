# app/domain/cohorts.py
"""
Greedy weekly cohort construction.

build_cohorts turns a pool of eligible candidates into disjoint groups of
3-4 members (optionally 2) whose mean pairwise score clears a minimum and
whose gender make-up passes the constraint checker. Pairs listed in the
recency exclusion set never end up in the same group.

The function is pure: the set of assigned candidates lives only for the
duration of one call, and the same inputs always give the same groups
(apart from the generated group ids).
"""
import logging
import uuid
from itertools import combinations
from typing import AbstractSet, Dict, Iterable, List, Sequence, Set

from app.domain.constraints import satisfies_constraints
from app.domain.grouping import (
    DEFAULT_MIN_GROUP_SCORE,
    DEFAULT_TARGET_SIZES,
    DEFAULT_WEIGHTS,
    MAX_GROUP_SIZE,
    MIN_GROUP_SIZE,
    MatchingOptions,
    ScoringWeights,
)
from app.domain.models import CandidateGroup, CandidateProfile, PairScore
from app.domain.recency import PairKey, pair_key
from app.domain.scoring import score

logger = logging.getLogger(__name__)

MIN_POOL_SIZE = 3


def new_group_id() -> str:
    return f"match_{uuid.uuid4().hex[:12]}"


def rank_pairs(
    pool: Sequence[CandidateProfile],
    excluded: AbstractSet[PairKey],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[PairScore]:
    """
    Score every non-excluded pair and sort best first.
    Ties are broken by the sorted candidate id tuple.
    """
    scored = [
        score(a, b, weights)
        for a, b in combinations(pool, 2)
        if pair_key(a.id, b.id) not in excluded
    ]
    scored.sort(key=lambda p: (-p.total, p.candidate_ids))
    return scored


class _CohortRun:
    """State of a single build_cohorts call."""

    def __init__(self, pool, excluded, min_group_score, sizes, allow_pairs, weights, balanced_shape):
        self.pool = pool
        self.by_id: Dict[str, CandidateProfile] = {c.id: c for c in pool}
        self.excluded = excluded
        self.min_group_score = min_group_score
        self.sizes = sizes
        self.allow_pairs = allow_pairs
        self.weights = weights
        self.balanced_shape = balanced_shape
        self.assigned: Set[str] = set()
        self._pair_totals: Dict[PairKey, float] = {}

    def remember(self, pair_scores: Iterable[PairScore]):
        for p in pair_scores:
            self._pair_totals[p.pair] = p.total

    def group_score(self, members: Sequence[CandidateProfile]) -> float:
        if len(members) < 2:
            return 0.0
        totals = []
        for a, b in combinations(members, 2):
            key = pair_key(a.id, b.id)
            if key not in self._pair_totals:
                self._pair_totals[key] = score(a, b, self.weights).total
            totals.append(self._pair_totals[key])
        return sum(totals) / len(totals)

    def acceptable(self, members: Sequence[CandidateProfile]) -> bool:
        return (
            self.group_score(members) >= self.min_group_score
            and satisfies_constraints(members, balanced_shape=self.balanced_shape)
        )

    def conflicts(self, candidate: CandidateProfile, members: Sequence[CandidateProfile]) -> bool:
        return any(pair_key(candidate.id, m.id) in self.excluded for m in members)

    def extend(self, members: List[CandidateProfile]) -> List[CandidateProfile]:
        """Add the first unassigned candidate (pool order) that keeps the group acceptable."""
        current = {m.id for m in members}
        for candidate in self.pool:
            if candidate.id in self.assigned or candidate.id in current:
                continue
            if self.conflicts(candidate, members):
                continue
            trial = members + [candidate]
            if self.acceptable(trial):
                return trial
        return members

    def grow(self, seed: List[CandidateProfile]) -> List[CandidateProfile]:
        members = seed
        for size in range(len(seed) + 1, max(self.sizes) + 1):
            extended = self.extend(members)
            if len(extended) != size:
                break
            members = extended
        return members

    def final_size_ok(self, members: Sequence[CandidateProfile]) -> bool:
        if len(members) in self.sizes:
            return True
        return len(members) == 2 and self.allow_pairs

    def build(self, ranked: Sequence[PairScore]) -> List[CandidateGroup]:
        groups: List[CandidateGroup] = []
        for pair in ranked:
            a_id, b_id = pair.candidate_ids
            if a_id in self.assigned or b_id in self.assigned:
                continue

            members = self.grow([self.by_id[a_id], self.by_id[b_id]])

            # a rejected group releases its members; later pairs may reuse them
            if not self.final_size_ok(members) or not self.acceptable(members):
                logger.debug(
                    "Discarded seed %s-%s (size %d, score %.3f)",
                    a_id, b_id, len(members), self.group_score(members),
                )
                continue

            group = CandidateGroup(
                members=tuple(members),
                average_score=self.group_score(members),
                group_id=new_group_id(),
            )
            self.assigned.update(group.member_ids)
            groups.append(group)
            logger.debug("Created group of %d with score %.3f", len(group), group.average_score)
        return groups


def _check_sizes(target_sizes: Iterable[int]) -> frozenset:
    sizes = frozenset(target_sizes)
    if not sizes:
        raise ValueError("target_sizes must not be empty")
    if any(s < MIN_GROUP_SIZE or s > MAX_GROUP_SIZE for s in sizes):
        raise ValueError(f"target sizes must be between {MIN_GROUP_SIZE} and {MAX_GROUP_SIZE}")
    return sizes


def build_cohorts(
    pool: Sequence[CandidateProfile],
    excluded: AbstractSet[PairKey] = frozenset(),
    min_group_score: float = DEFAULT_MIN_GROUP_SCORE,
    target_sizes: Iterable[int] = DEFAULT_TARGET_SIZES,
    allow_pair_only_groups: bool = False,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    balanced_shape: bool = True,
) -> List[CandidateGroup]:
    """
    Partition the pool into disjoint, constraint-satisfying groups.

    Steps:
    1. fewer than 3 candidates -> []
    2. score every pair not in `excluded`, best first
    3. for each pair whose members are both unassigned, seed a group and try
       to extend it to 3, then 4, with the first candidate (pool order) that
       keeps the mean score >= min_group_score and passes the constraints
    4. keep the group if its size is a target size (or 2 with
       allow_pair_only_groups) and it is still acceptable; otherwise its
       members stay available for later pairs

    An empty result is a normal outcome, never an exception.
    """
    sizes = _check_sizes(target_sizes)

    if len(pool) < MIN_POOL_SIZE:
        logger.info("Not enough eligible candidates for matching (%d)", len(pool))
        return []

    ids = [c.id for c in pool]
    if len(set(ids)) != len(ids):
        raise ValueError("Candidate pool contains duplicate ids")

    run = _CohortRun(
        pool=list(pool),
        excluded=excluded,
        min_group_score=min_group_score,
        sizes=sizes,
        allow_pairs=allow_pair_only_groups,
        weights=weights,
        balanced_shape=balanced_shape,
    )
    ranked = rank_pairs(pool, excluded, weights)
    run.remember(ranked)
    logger.info("Scored %d candidate pairs (%d excluded)", len(ranked), len(excluded))

    groups = run.build(ranked)
    logger.info("Created %d groups from %d candidates", len(groups), len(pool))
    return groups


def build_cohorts_with_options(
    pool: Sequence[CandidateProfile],
    excluded: AbstractSet[PairKey],
    options: MatchingOptions,
) -> List[CandidateGroup]:
    return build_cohorts(
        pool,
        excluded,
        min_group_score=options.min_group_score,
        target_sizes=options.target_sizes,
        allow_pair_only_groups=options.allow_pair_only_groups,
        weights=options.weights,
        balanced_shape=options.balanced_shape,
    )
