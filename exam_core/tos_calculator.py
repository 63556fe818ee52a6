# exam_core/tos_calculator.py

"""
TOS (Table of Specification) calculator.

Distributes a test's items over topics (by teaching hours), then over the six
Bloom levels, then over difficulty bands, keeping every sum exact:
- sum of all cells == total_items
- each topic row == that topic's share
- item numbers 1..total_items, contiguous, topic order then Bloom order
"""

from __future__ import annotations

import logging
from dataclasses import asdict, fields
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .allocation import split_counts
from .schema import (
    BLOOM_DISTRIBUTION,
    BLOOM_LEVELS,
    DIFFICULTY_DISTRIBUTION,
    DIFFICULTY_LEVELS,
    BloomCell,
    Constraint,
    ConstraintType,
    TOSHeader,
    TOSMatrix,
    TopicAllocation,
    TopicRow,
    ValidationError,
    topics_from_records,
)

logger = logging.getLogger(__name__)

TopicInput = Union[TopicAllocation, Mapping[str, Any]]


# ============================
# Input validation
# ============================

def _coerce_topics(topics: Iterable[TopicInput]) -> List[TopicAllocation]:
    topics = list(topics or [])
    if not topics:
        raise ValidationError("at least one topic is required", "topics")

    records = [t for t in topics if not isinstance(t, TopicAllocation)]
    parsed = iter(topics_from_records(records))
    out = [t if isinstance(t, TopicAllocation) else next(parsed) for t in topics]

    seen = set()
    for t in out:
        if not t.topic:
            raise ValidationError("topic name is required", "topic")
        if t.topic in seen:
            raise ValidationError(f"duplicate topic {t.topic!r}", "topic")
        seen.add(t.topic)
        if isinstance(t.hours, bool) or not t.hours > 0:
            raise ValidationError(f"hours for {t.topic!r} must be > 0, got {t.hours!r}", "hours")
    return out


def _check_total_items(total_items: Any) -> int:
    if isinstance(total_items, bool) or not isinstance(total_items, int):
        raise ValidationError(f"total_items must be an integer, got {total_items!r}", "total_items")
    if total_items <= 0:
        raise ValidationError(f"total_items must be > 0, got {total_items}", "total_items")
    return total_items


# ============================
# Calculation
# ============================

def calculate_tos(
    topics: Sequence[TopicInput],
    total_items: int,
    header: Optional[TOSHeader] = None,
) -> TOSMatrix:
    """
    Compute the full TOS matrix.

    Args:
        topics: [{topic, hours}] or TopicAllocation, in display order
        total_items: number of test items (> 0)
        header: optional printable metadata

    Raises:
        ValidationError: empty topics, non-positive hours or total_items
    """
    allocations = _coerce_topics(topics)
    total_items = _check_total_items(total_items)

    total_hours = sum(t.hours for t in allocations)
    if total_hours <= 0:
        raise ValidationError("total hours cannot be zero", "hours")

    # 1-2. Topic shares by hours
    shares = split_counts(total_items, {i: t.hours for i, t in enumerate(allocations)})

    rows: List[TopicRow] = []
    next_item = 1
    for i, t in enumerate(allocations):
        # 3. Bloom split inside the topic
        bloom_counts = split_counts(shares[i], BLOOM_DISTRIBUTION)

        cells: Dict[str, BloomCell] = {}
        for level in BLOOM_LEVELS:
            count = bloom_counts[level]
            # 4. Difficulty split inside the cell
            diff = split_counts(count, DIFFICULTY_DISTRIBUTION)
            # 5. Contiguous item numbers
            numbers = tuple(range(next_item, next_item + count))
            next_item += count
            cells[level] = BloomCell(count=count, item_numbers=numbers, difficulty=diff)

        rows.append(TopicRow(
            topic=t.topic,
            hours=t.hours,
            percentage=round(t.hours / total_hours * 100, 2),
            total=shares[i],
            cells=cells,
        ))

    matrix = TOSMatrix(
        total_hours=total_hours,
        total_items=total_items,
        rows=tuple(rows),
        bloom_totals=_bloom_totals(rows),
        difficulty_totals=_difficulty_totals(rows),
        header=header or TOSHeader(),
    )
    validate_tos_matrix(matrix)

    logger.info(
        f"✅ TOS computed: {len(rows)} topics, {total_items} items, {total_hours:g} hours"
    )
    return matrix


def _bloom_totals(rows: Iterable[TopicRow]) -> Dict[str, int]:
    rows = list(rows)
    return {level: sum(r.cells[level].count for r in rows) for level in BLOOM_LEVELS}


def _difficulty_totals(rows: Iterable[TopicRow]) -> Dict[str, int]:
    out = {d: 0 for d in DIFFICULTY_LEVELS}
    for r in rows:
        for cell in r.cells.values():
            for d in DIFFICULTY_LEVELS:
                out[d] += cell.difficulty.get(d, 0)
    return out


# ============================
# Invariant checks
# ============================

def validate_tos_matrix(matrix: TOSMatrix) -> bool:
    """Re-check every invariant of a matrix. Raises ValidationError on the first violation."""
    grand = 0
    numbers: List[int] = []
    for r in matrix.rows:
        missing = [lv for lv in BLOOM_LEVELS if lv not in r.cells]
        if missing:
            raise ValidationError(f"topic {r.topic!r} is missing Bloom cells {missing}")

        row_sum = 0
        for level in BLOOM_LEVELS:
            cell = r.cells[level]
            if cell.count < 0 or cell.count != len(cell.item_numbers):
                raise ValidationError(
                    f"{r.topic}/{level}: count {cell.count} != {len(cell.item_numbers)} item numbers"
                )
            if cell.difficulty and sum(cell.difficulty.values()) != cell.count:
                raise ValidationError(f"{r.topic}/{level}: difficulty split does not sum to {cell.count}")
            row_sum += cell.count
            numbers.extend(cell.item_numbers)

        if row_sum != r.total:
            raise ValidationError(f"topic {r.topic!r}: row sum {row_sum} != total {r.total}")
        grand += row_sum

    if grand != matrix.total_items:
        raise ValidationError(f"matrix total ({grand}) != total items ({matrix.total_items})")

    columns = _bloom_totals(matrix.rows)
    for level in BLOOM_LEVELS:
        if matrix.bloom_totals.get(level, 0) != columns[level]:
            raise ValidationError(
                f"{level} column total ({columns[level]}) != bloom_totals ({matrix.bloom_totals.get(level)})"
            )

    for pos, n in enumerate(sorted(numbers), start=1):
        if n != pos:
            raise ValidationError(f"item sequence broken at position {pos}: got {n}")
    return True


# ============================
# Serialization
# ============================

def tos_to_dict(matrix: TOSMatrix) -> Dict[str, Any]:
    """Nested-map form used for storage and export."""
    distribution: Dict[str, Any] = {}
    for r in matrix.rows:
        entry: Dict[str, Any] = {"hours": r.hours, "percentage": r.percentage, "total": r.total}
        for level in BLOOM_LEVELS:
            cell = r.cells[level]
            entry[level] = {
                "count": cell.count,
                "items": list(cell.item_numbers),
                "difficulty": dict(cell.difficulty),
            }
        distribution[r.topic] = entry

    return {
        **asdict(matrix.header),
        "title": matrix.header.title,
        "total_items": matrix.total_items,
        "total_hours": matrix.total_hours,
        "topics": [{"topic": r.topic, "hours": r.hours} for r in matrix.rows],
        "distribution": distribution,
        "bloom_totals": dict(matrix.bloom_totals),
        "difficulty_totals": dict(matrix.difficulty_totals),
    }


def tos_from_dict(data: Mapping[str, Any]) -> TOSMatrix:
    """Rebuild a stored matrix as-is (no recomputation) and validate it."""
    try:
        topics = data["topics"]
        distribution = data["distribution"]
        total_items = int(data["total_items"])
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"malformed TOS data: {e}") from e

    header_fields = {f.name: data[f.name] for f in fields(TOSHeader) if data.get(f.name) is not None}

    rows = []
    for t in topics:
        name = t.get("topic")
        entry = distribution.get(name)
        if entry is None:
            raise ValidationError(f"no distribution for topic {name!r}")
        cells = {}
        for level in BLOOM_LEVELS:
            raw = entry.get(level) or {}
            items = tuple(int(n) for n in raw.get("items", ()))
            cells[level] = BloomCell(
                count=int(raw.get("count", len(items))),
                item_numbers=items,
                difficulty={d: int(v) for d, v in (raw.get("difficulty") or {}).items()},
            )
        rows.append(TopicRow(
            topic=name,
            hours=t.get("hours", entry.get("hours", 0)),
            percentage=float(entry.get("percentage", 0.0)),
            total=int(entry.get("total", sum(c.count for c in cells.values()))),
            cells=cells,
        ))

    matrix = TOSMatrix(
        total_hours=data.get("total_hours", sum(r.hours for r in rows)),
        total_items=total_items,
        rows=tuple(rows),
        bloom_totals=_bloom_totals(rows),
        difficulty_totals=_difficulty_totals(rows),
        header=TOSHeader(**header_fields),
    )
    validate_tos_matrix(matrix)
    return matrix


# ============================
# TOS -> assembly constraints
# ============================

def constraints_from_tos(matrix: TOSMatrix, required: bool = True, priority: int = 2) -> List[Constraint]:
    """
    Derive topic_coverage and bloom_distribution constraints whose targets
    are the matrix counts, so a test can be assembled to match the TOS.
    """
    topics = {r.topic: r.total for r in matrix.rows}
    return [
        Constraint(
            type=ConstraintType.TOPIC_COVERAGE,
            config={"distribution": topics},
            priority=priority,
            is_required=required,
        ),
        Constraint(
            type=ConstraintType.BLOOM_DISTRIBUTION,
            config={"distribution": dict(matrix.bloom_totals)},
            priority=priority,
            is_required=required,
        ),
    ]
