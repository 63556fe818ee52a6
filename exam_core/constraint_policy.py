# exam_core/constraint_policy.py

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .allocation import split_counts
from .schema import (
    CONSTRAINT_DIMENSIONS,
    Constraint,
    ConstraintType,
    Question,
    ValidationError,
    normalize_bloom_level,
    normalize_difficulty,
)

logger = logging.getLogger(__name__)

PERCENT_SUFFIX = "percent"


# ============================
# Bucket targets
# ============================

@dataclass(frozen=True)
class BucketSpec:
    """
    Targets of one bucket constraint.
    - requested: ideal counts, used to measure deviation
    - effective: requested capped by pool availability, used for selection
    """
    constraint: Constraint
    dimension: str
    requested: Mapping[str, int]
    effective: Mapping[str, int]


@dataclass(frozen=True)
class TimeBudget:
    max_minutes: float
    is_required: bool
    priority: int


@dataclass(frozen=True)
class PointTarget:
    points: float
    priority: int


def constraint_weight(constraint: Constraint) -> int:
    return max(1, constraint.priority)


def _bucket_key(dimension: str, key: str) -> str:
    """
    Canonical bucket name; unknown names are kept as-is and never match.
    Label keys may carry a "Percent" suffix ("easyPercent" -> "easy").
    """
    if dimension != "topic" and str(key).lower().endswith(PERCENT_SUFFIX):
        key = str(key)[: -len(PERCENT_SUFFIX)]
    try:
        if dimension == "difficulty":
            return normalize_difficulty(key)
        if dimension == "bloom_level":
            return normalize_bloom_level(key)
    except ValidationError:
        return str(key)
    return str(key).strip()


def target_fractions(constraint: Constraint) -> Dict[str, float]:
    """
    Bucket weights of a constraint. Config may be flat ({"easy": .3, ...})
    or nested under "distribution"; fractions, percentages or raw counts.
    """
    raw = constraint.config.get("distribution", constraint.config)
    if not isinstance(raw, Mapping):
        raise ValidationError(f"{constraint.type.value}: distribution must be a mapping", "config")

    dimension = CONSTRAINT_DIMENSIONS[constraint.type]
    out: Dict[str, float] = {}
    for key, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"{constraint.type.value}: weight for {key!r} must be a number", "config")
        if value < 0:
            raise ValidationError(f"{constraint.type.value}: weight for {key!r} must be >= 0", "config")
        bucket = _bucket_key(dimension, key)
        out[bucket] = out.get(bucket, 0) + value
    return out


def time_budget(constraints: Sequence[Constraint]) -> Optional[TimeBudget]:
    """Strictest time_limit among the constraints (None if there is none)."""
    best: Optional[TimeBudget] = None
    for c in constraints:
        if c.type is not ConstraintType.TIME_LIMIT:
            continue
        limit = c.config.get("max_minutes", c.config.get("maxTime", c.config.get("max_time")))
        if isinstance(limit, bool) or not isinstance(limit, (int, float)) or limit <= 0:
            raise ValidationError(f"time_limit needs a positive max_minutes, got {limit!r}", "config")
        if best is None or limit < best.max_minutes:
            best = TimeBudget(max_minutes=float(limit), is_required=c.is_required, priority=c.priority)
        elif limit == best.max_minutes and c.is_required:
            best = TimeBudget(max_minutes=best.max_minutes, is_required=True,
                              priority=max(best.priority, c.priority))
    return best


def point_goal(constraint: Constraint, target_count: int) -> float:
    """targetPoints of a point_distribution constraint; one point per question if unset."""
    goal = constraint.config.get("target_points", constraint.config.get("targetPoints"))
    if goal is None:
        return float(target_count)
    if isinstance(goal, bool) or not isinstance(goal, (int, float)) or goal <= 0:
        raise ValidationError(f"point_distribution needs positive target_points, got {goal!r}", "config")
    return float(goal)


def point_target(constraints: Sequence[Constraint], target_count: int) -> Optional[PointTarget]:
    """Lowest point goal among point_distribution constraints (None if there is none)."""
    best: Optional[PointTarget] = None
    for c in constraints:
        if c.type is not ConstraintType.POINT_DISTRIBUTION:
            continue
        goal = point_goal(c, target_count)
        if best is None or goal < best.points:
            best = PointTarget(points=goal, priority=c.priority)
    return best


def compute_bucket_specs(
    pool: Sequence[Question],
    constraints: Sequence[Constraint],
    target_count: int,
) -> Tuple[List[BucketSpec], List[str]]:
    """
    Ideal per-bucket counts for every bucket constraint, plus warnings for
    buckets the pool cannot fill.
    """
    specs: List[BucketSpec] = []
    warnings: List[str] = []

    for c in constraints:
        if c.type not in CONSTRAINT_DIMENSIONS:
            continue
        dimension = CONSTRAINT_DIMENSIONS[c.type]
        available = Counter(getattr(q, dimension) for q in pool)
        requested = split_counts(target_count, target_fractions(c))

        effective: Dict[str, int] = {}
        for key, want in requested.items():
            have = available.get(key, 0)
            if want > 0 and have == 0:
                warnings.append(
                    f"{c.type.value}: no questions for '{key}' in pool, target {want} degraded to 0"
                )
            elif want > have:
                warnings.append(
                    f"{c.type.value}: '{key}' needs {want} questions, pool has only {have}"
                )
            effective[key] = min(want, have)

        specs.append(BucketSpec(constraint=c, dimension=dimension, requested=requested, effective=effective))
    return specs, warnings


# ============================
# Runtime selection state
# ============================

@dataclass
class QuotaState:
    """Counts served so far, one counter per bucket spec."""
    specs: List[BucketSpec]
    budget: Optional[TimeBudget] = None
    minutes_per_question: float = 2.0
    served: List[Dict[str, int]] = field(default_factory=list)
    time_used: float = 0.0
    total_served: int = 0
    points: Optional[PointTarget] = None
    points_used: float = 0.0


def initialize_state(
    specs: List[BucketSpec],
    budget: Optional[TimeBudget] = None,
    minutes_per_question: float = 2.0,
    points: Optional[PointTarget] = None,
) -> QuotaState:
    return QuotaState(
        specs=specs,
        budget=budget,
        minutes_per_question=minutes_per_question,
        served=[{} for _ in specs],
        points=points,
    )


def question_minutes(question: Question, minutes_per_question: float) -> float:
    if question.estimated_time is None:
        return minutes_per_question
    return question.estimated_time


def remaining_quota(state: QuotaState) -> List[Dict[str, int]]:
    """Unmet effective target per bucket, per spec."""
    out = []
    for spec, served in zip(state.specs, state.served):
        out.append({k: max(0, v - served.get(k, 0)) for k, v in spec.effective.items()})
    return out


def exceeds_time(question: Question, state: QuotaState) -> bool:
    if state.budget is None:
        return False
    spent = state.time_used + question_minutes(question, state.minutes_per_question)
    return spent > state.budget.max_minutes


def is_eligible(question: Question, state: QuotaState) -> bool:
    """A required time limit is a hard cap; everything else is scored."""
    return not (state.budget is not None and state.budget.is_required and exceeds_time(question, state))


def desirability(question: Question, state: QuotaState) -> Tuple[int, int, int]:
    """
    (unmet buckets helped, priority balance, -buckets overfilled).
    Compared as a tuple; higher is better.
    """
    helped = 0
    balance = 0
    over = 0
    for spec, served in zip(state.specs, state.served):
        key = getattr(question, spec.dimension)
        w = constraint_weight(spec.constraint)
        if spec.effective.get(key, 0) - served.get(key, 0) > 0:
            helped += 1
            balance += w
        else:
            over += 1
            balance -= w

    if state.budget is not None and not state.budget.is_required and exceeds_time(question, state):
        over += 1
        balance -= max(1, state.budget.priority)
    if state.points is not None and state.points_used + question.points > state.points.points:
        over += 1
        balance -= max(1, state.points.priority)
    return helped, balance, -over


def update_state_on_select(question: Question, state: QuotaState) -> None:
    for spec, served in zip(state.specs, state.served):
        key = getattr(question, spec.dimension)
        served[key] = served.get(key, 0) + 1
    state.time_used += question_minutes(question, state.minutes_per_question)
    state.points_used += question.points
    state.total_served += 1


# ============================
# Deviation
# ============================

def deviation(requested: Mapping[str, int], achieved: Mapping[str, int]) -> float:
    """
    Normalized L1 distance between two count maps.
    0 = identical, 1 = disjoint.
    """
    keys = set(requested) | set(achieved)
    num = sum(abs(achieved.get(k, 0) - requested.get(k, 0)) for k in keys)
    den = sum(requested.values()) + sum(achieved.values())
    if den == 0:
        return 0.0
    return min(1.0, num / den)


def time_deviation(total_minutes: float, budget: TimeBudget) -> float:
    if total_minutes <= budget.max_minutes:
        return 0.0
    return min(1.0, (total_minutes - budget.max_minutes) / budget.max_minutes)
