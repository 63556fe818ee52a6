# exam_core/length_optimizer.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .assembly_engine import assemble
from .config import Settings
from .schema import Constraint, Question, ValidationError

logger = logging.getLogger(__name__)

# Spearman-Brown reference point
BASE_LENGTH = 20
BASE_RELIABILITY = 0.7


@dataclass(frozen=True)
class LengthCandidate:
    length: int
    constraints_satisfied: bool
    balance_score: float
    coverage_score: float

    def acceptable(self, threshold: float) -> bool:
        return self.constraints_satisfied and self.balance_score <= threshold


@dataclass(frozen=True)
class LengthRecommendation:
    length: Optional[int]
    candidates: Tuple[LengthCandidate, ...] = ()
    reasoning: Tuple[str, ...] = ()
    estimated_reliability: Optional[float] = None
    estimated_minutes: Optional[float] = None


def estimate_reliability(length: int) -> float:
    """Spearman-Brown prediction from 0.7 at 20 items."""
    ratio = length / BASE_LENGTH
    return (ratio * BASE_RELIABILITY) / (1 + (ratio - 1) * BASE_RELIABILITY)


def candidate_lengths(min_length: int, max_length: int, step: int, pool_size: int) -> List[int]:
    """Multiples of `step` in [min_length, min(max_length, pool_size)]."""
    first = -(-min_length // step) * step
    last = min(max_length, pool_size)
    return list(range(max(first, step), last + 1, step))


def optimize_test_length(
    pool: Sequence[Question],
    constraints: Sequence[Constraint],
    min_length: int = 10,
    max_length: int = 100,
    step: int = 5,
    balance_threshold: float = 0.1,
    settings: Optional[Settings] = None,
) -> LengthRecommendation:
    """
    Shortest candidate length at which every required constraint holds and
    balance_score <= balance_threshold. A bounded linear scan.
    """
    for name, value in (("min_length", min_length), ("max_length", max_length), ("step", step)):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(f"{name} must be a positive integer, got {value!r}", name)
    if min_length > max_length:
        raise ValidationError(f"min_length {min_length} > max_length {max_length}", "min_length")

    settings = settings or Settings()
    pool = list(pool)
    lengths = candidate_lengths(min_length, max_length, step, len(pool))
    reasoning: List[str] = []
    if not lengths:
        reasoning.append(
            f"No multiple of {step} between {min_length} and {max_length} fits a pool of {len(pool)}"
        )
        return LengthRecommendation(length=None, reasoning=tuple(reasoning))

    if lengths[-1] < max_length and len(pool) < max_length:
        reasoning.append(f"Scan capped at {lengths[-1]} by the pool size ({len(pool)} questions)")

    candidates: List[LengthCandidate] = []
    for n in lengths:
        result = assemble(pool, constraints, n, settings)
        cand = LengthCandidate(
            length=n,
            constraints_satisfied=result.metadata.constraints_satisfied,
            balance_score=result.metadata.balance_score,
            coverage_score=result.metadata.coverage_score,
        )
        candidates.append(cand)
        logger.debug(f"⏳ length={n} satisfied={cand.constraints_satisfied} balance={cand.balance_score:.3f}")

        if cand.acceptable(balance_threshold):
            reasoning.append(
                f"{n} questions satisfy all required constraints with balance {cand.balance_score:.3f}"
            )
            reliability = estimate_reliability(n)
            reasoning.append(f"Estimated reliability at {n} items: {reliability:.2f}")
            logger.info(f"✅ Recommended length: {n}")
            return LengthRecommendation(
                length=n,
                candidates=tuple(candidates),
                reasoning=tuple(reasoning),
                estimated_reliability=reliability,
                estimated_minutes=result.metadata.metrics.total_time,
            )

    reasoning.append(
        f"No length in {lengths[0]}..{lengths[-1]} reached balance <= {balance_threshold} "
        f"with all required constraints satisfied"
    )
    logger.warning(f"⚠️ {reasoning[-1]}")
    return LengthRecommendation(length=None, candidates=tuple(candidates), reasoning=tuple(reasoning))
