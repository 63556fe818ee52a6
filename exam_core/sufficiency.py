# exam_core/sufficiency.py

"""
Question bank sufficiency for a TOS.

For every (topic, Bloom level) cell the TOS asks for, count the questions
the bank can offer and grade the cell:
- pass: available >= required
- warning: available >= 70% of required
- fail: otherwise
Topics match exactly after normalization, else by substring either way.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

from .schema import BLOOM_LEVELS, Question, TOSMatrix
from .tos_calculator import tos_from_dict

logger = logging.getLogger(__name__)

PASS = "pass"
WARNING = "warning"
FAIL = "fail"

WARNING_RATIO = 0.7
WARNING_SCORE = 70.0


@dataclass(frozen=True)
class CellSufficiency:
    topic: str
    bloom_level: str
    required: int
    available: int
    gap: int
    status: str


@dataclass(frozen=True)
class SufficiencyReport:
    """overall_score: 0-100, share of required items the bank can cover."""
    overall_status: str
    overall_score: float
    total_required: int
    total_available: int
    results: Tuple[CellSufficiency, ...]
    recommendations: Tuple[str, ...]

    @property
    def total_gap(self) -> int:
        return sum(r.gap for r in self.results)


def normalize_topic(name: str) -> str:
    return re.sub(r"[^a-z0-9 ]", "", str(name).lower()).strip()


def _bank_counts(pool: Sequence[Question]) -> Dict[str, Counter]:
    counts: Dict[str, Counter] = {}
    for q in pool:
        key = normalize_topic(q.topic)
        if key:
            counts.setdefault(key, Counter())[q.bloom_level] += 1
    return counts


def _available(counts: Mapping[str, Counter], topic_key: str, bloom_level: str) -> int:
    exact = counts.get(topic_key)
    if exact and exact[bloom_level]:
        return exact[bloom_level]
    if not topic_key:
        return 0
    return sum(
        c[bloom_level] for key, c in counts.items()
        if topic_key in key or key in topic_key
    )


def _cell_status(required: int, available: int) -> str:
    if available >= required:
        return PASS
    if available >= required * WARNING_RATIO:
        return WARNING
    return FAIL


def analyze_sufficiency(
    matrix: Union[TOSMatrix, Mapping[str, Any]],
    pool: Sequence[Question],
    approved_only: bool = False,
) -> SufficiencyReport:
    """
    Compare the TOS cell counts with what the bank holds.

    Args:
        matrix: a TOSMatrix or its stored dict form
        pool: bank snapshot; cells with nothing required are skipped
        approved_only: count approved questions only
    """
    if not isinstance(matrix, TOSMatrix):
        matrix = tos_from_dict(matrix)
    if approved_only:
        pool = [q for q in pool if q.approved]
    counts = _bank_counts(pool)

    results: List[CellSufficiency] = []
    total_required = 0
    total_available = 0
    for row in matrix.rows:
        topic_key = normalize_topic(row.topic)
        for level in BLOOM_LEVELS:
            required = row.cells[level].count
            if required == 0:
                continue
            available = _available(counts, topic_key, level)
            total_required += required
            total_available += min(available, required)
            results.append(CellSufficiency(
                topic=row.topic,
                bloom_level=level,
                required=required,
                available=available,
                gap=max(0, required - available),
                status=_cell_status(required, available),
            ))

    total_gap = sum(r.gap for r in results)
    score = 100.0 if total_required == 0 else min(100.0, total_available / total_required * 100)
    if total_gap == 0:
        status = PASS
    elif score >= WARNING_SCORE:
        status = WARNING
    else:
        status = FAIL

    recommendations: List[str] = []
    if total_required == 0:
        recommendations.append("Define TOS requirements to compute question gaps.")
    elif status == PASS:
        recommendations.append("Question bank has sufficient coverage for all topics and Bloom levels.")
    else:
        recommendations.append(f"Add {total_gap} question(s) to the bank to complete the exam.")
        for r in results:
            if r.gap:
                recommendations.append(
                    f"{r.topic} / {r.bloom_level}: {r.available} available, {r.required} required"
                )

    if status == PASS:
        logger.info(f"✅ Bank covers all {total_required} required items")
    else:
        logger.warning(f"⚠️ Bank sufficiency {status}: {score:.1f}% covered, gap {total_gap}")

    return SufficiencyReport(
        overall_status=status,
        overall_score=score,
        total_required=total_required,
        total_available=total_available,
        results=tuple(results),
        recommendations=tuple(recommendations),
    )
