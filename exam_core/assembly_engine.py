# exam_core/assembly_engine.py

"""
Greedy constraint-based test assembly.

Selects `target_count` questions from a pool so that the selection follows
the requested difficulty / Bloom / topic mixes, stays inside a time budget
and keeps close to a point total.
Constraints are scored additively; this is a heuristic, not an exact solver.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import List, Optional, Sequence

from .config import Settings
from .constraint_policy import (
    compute_bucket_specs,
    constraint_weight,
    desirability,
    deviation,
    initialize_state,
    is_eligible,
    point_goal,
    point_target,
    question_minutes,
    time_budget,
    time_deviation,
    update_state_on_select,
)
from .schema import (
    AssemblyMetadata,
    AssemblyMetrics,
    AssemblyResult,
    Constraint,
    ConstraintReport,
    ConstraintType,
    Question,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Constraint types whose requested buckets count toward coverage_score
COVERAGE_TYPES = (ConstraintType.TOPIC_COVERAGE, ConstraintType.BLOOM_DISTRIBUTION)


def assemble(
    pool: Sequence[Question],
    constraints: Sequence[Constraint],
    target_count: int,
    settings: Optional[Settings] = None,
) -> AssemblyResult:
    """
    Assemble one test.

    Args:
        pool: approved candidate questions (already filtered by the caller)
        constraints: weighted constraints; required ones decide constraints_satisfied
        target_count: number of questions wanted (> 0)
        settings: minutes per question and balance warning threshold

    Returns:
        AssemblyResult; a pool smaller than target_count yields a partial
        result with a warning.
    """
    check_target_count(target_count)
    settings = settings or Settings()
    pool = list(pool)
    constraints = list(constraints)

    specs, warnings = compute_bucket_specs(pool, constraints, target_count)
    budget = time_budget(constraints)
    points = point_target(constraints, target_count)
    state = initialize_state(specs, budget, settings.minutes_per_question, points)

    if len(pool) < target_count:
        warnings.insert(0, shortfall_warning(len(pool), target_count))

    # Greedy selection
    remaining = list(enumerate(pool))
    selected: List[Question] = []
    while len(selected) < target_count and remaining:
        best_pos = -1
        best_key = None
        for pos, (idx, q) in enumerate(remaining):
            if not is_eligible(q, state):
                continue
            key = (*desirability(q, state), -idx)
            if best_key is None or key > best_key:
                best_key = key
                best_pos = pos
        if best_pos < 0:
            warnings.append(
                f"Time limit reached after {len(selected)} questions ({state.time_used:g} minutes)"
            )
            break
        _, q = remaining.pop(best_pos)
        selected.append(q)
        update_state_on_select(q, state)

    return finish_assembly(selected, constraints, specs, warnings, target_count, settings)


def check_target_count(target_count) -> int:
    if isinstance(target_count, bool) or not isinstance(target_count, int) or target_count <= 0:
        raise ValidationError(f"target_count must be a positive integer, got {target_count!r}", "target_count")
    return target_count


def shortfall_warning(pool_size: int, target_count: int) -> str:
    return f"Pool has only {pool_size} questions, target was {target_count}"


def finish_assembly(
    selected: Sequence[Question],
    constraints: Sequence[Constraint],
    specs,
    warnings: List[str],
    target_count: int,
    settings: Settings,
    strategy: str = "constraint_based",
) -> AssemblyResult:
    """Score a finished selection against the constraints and wrap it up."""
    selected = list(selected)
    reports = _constraint_reports(selected, constraints, specs, target_count, settings)
    balance = _balance_score(reports, constraints)
    coverage = coverage_score(selected, specs)
    satisfied = all(r.satisfied for r in reports if r.is_required)

    if balance > settings.balance_warning:
        warnings.append(f"Balance score {balance:.2f} exceeds {settings.balance_warning:.2f}")

    for w in warnings:
        logger.warning(f"⚠️ {w}")
    logger.info(
        f"✅ Assembled {len(selected)}/{target_count} questions with {strategy} "
        f"(balance={balance:.3f}, coverage={coverage:.3f}, satisfied={satisfied})"
    )

    return AssemblyResult(
        selected_questions=tuple(selected),
        metadata=AssemblyMetadata(
            warnings=tuple(warnings),
            constraints_satisfied=satisfied,
            balance_score=balance,
            coverage_score=coverage,
            constraint_reports=tuple(reports),
            metrics=calculate_metrics(selected, settings.minutes_per_question),
        ),
        target_count=target_count,
        strategy=strategy,
    )


# ============================
# Scoring
# ============================

def _constraint_reports(
    selected: Sequence[Question],
    constraints: Sequence[Constraint],
    specs,
    target_count: int,
    settings: Settings,
) -> List[ConstraintReport]:
    by_constraint = {id(s.constraint): s for s in specs}
    total_time = sum(question_minutes(q, settings.minutes_per_question) for q in selected)
    total_points = sum(q.points for q in selected)

    reports = []
    for c in constraints:
        spec = by_constraint.get(id(c))
        if spec is not None:
            achieved = dict(Counter(getattr(q, spec.dimension) for q in selected))
            reports.append(ConstraintReport(
                type=c.type,
                is_required=c.is_required,
                ideal=dict(spec.requested),
                achieved=achieved,
                deviation=deviation(spec.requested, achieved),
            ))
        elif c.type is ConstraintType.TIME_LIMIT:
            own = time_budget([c])
            reports.append(ConstraintReport(
                type=c.type,
                is_required=c.is_required,
                ideal={"max_minutes": own.max_minutes},
                achieved={"minutes": total_time},
                deviation=time_deviation(total_time, own),
            ))
        elif c.type is ConstraintType.POINT_DISTRIBUTION:
            goal = point_goal(c, target_count)
            reports.append(ConstraintReport(
                type=c.type,
                is_required=c.is_required,
                ideal={"points": goal},
                achieved={"points": total_points},
                deviation=deviation({"points": goal}, {"points": total_points}),
            ))
    return reports


def _balance_score(reports: Sequence[ConstraintReport], constraints: Sequence[Constraint]) -> float:
    """Priority-weighted mean deviation; 0 when there are no constraints."""
    if not reports:
        return 0.0
    weights = [constraint_weight(c) for c in constraints]
    total = sum(weights)
    return sum(r.deviation * w for r, w in zip(reports, weights)) / total


def coverage_score(selected: Sequence[Question], specs) -> float:
    """Share of requested topics / Bloom levels with at least one selected question."""
    requested = set()
    for spec in specs:
        if spec.constraint.type in COVERAGE_TYPES:
            requested.update((spec.dimension, k) for k, v in spec.requested.items() if v > 0)
    if not requested:
        return 1.0
    present = {(dim, getattr(q, dim)) for dim, _ in requested for q in selected}
    return len(requested & present) / len(requested)


def calculate_metrics(selected: Sequence[Question], minutes_per_question: float = 2.0) -> AssemblyMetrics:
    return AssemblyMetrics(
        topic_counts=dict(Counter(q.topic for q in selected)),
        difficulty_counts=dict(Counter(q.difficulty for q in selected)),
        bloom_counts=dict(Counter(q.bloom_level for q in selected)),
        total_time=sum(question_minutes(q, minutes_per_question) for q in selected),
        total_points=sum(q.points for q in selected),
    )


# ============================
# Recommendations
# ============================

def balance_recommendations(result: AssemblyResult, tolerance: int = 2) -> List[str]:
    """Buckets whose achieved count is more than `tolerance` away from ideal."""
    out = []
    for r in result.metadata.constraint_reports:
        if r.type is ConstraintType.TIME_LIMIT:
            if r.deviation > 0:
                out.append(
                    f"time_limit: {r.achieved['minutes']:g} minutes, limit {r.ideal['max_minutes']:g}"
                )
            continue
        if r.type is ConstraintType.POINT_DISTRIBUTION:
            if r.deviation > 0:
                out.append(
                    f"point_distribution: {r.achieved['points']:g} points, target {r.ideal['points']:g}"
                )
            continue
        for key in list(r.ideal) + [k for k in r.achieved if k not in r.ideal]:
            have, want = r.achieved.get(key, 0), r.ideal.get(key, 0)
            if abs(have - want) > tolerance:
                out.append(f"{r.type.value} '{key}': current {have}, target {want}")
    return out
