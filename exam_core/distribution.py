# exam_core/distribution.py

"""
Hand out test versions to students.

Strategies:
- random: each student draws a version
- sequential: A, B, C, A, B, C ... in roster order
- balanced: shuffled roster, version counts differ by at most one
- avoid-adjacent: seat order, neighbours never share a version (needs two or
  more versions)
"""

from __future__ import annotations

import logging
import random
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from .parallel_forms import fisher_yates
from .schema import ValidationError

logger = logging.getLogger(__name__)

STRATEGIES = ("random", "sequential", "balanced", "avoid-adjacent")


@dataclass(frozen=True)
class Student:
    id: str
    name: str = ""
    seat_number: Optional[str] = None


@dataclass(frozen=True)
class Assignment:
    student_id: str
    student_name: str
    version_label: str
    seat_number: Optional[str] = None


def _coerce_students(students: Sequence[Union[Student, Mapping[str, Any]]]) -> List[Student]:
    out = []
    for s in students:
        if isinstance(s, Student):
            out.append(s)
            continue
        if s.get("id") is None:
            raise ValidationError("student id is required", "students")
        seat = s.get("seat_number", s.get("seatNumber"))
        out.append(Student(id=str(s["id"]), name=str(s.get("name", "")),
                           seat_number=str(seat) if seat is not None else None))
    return out


def _seat_key(student: Student):
    seat = student.seat_number
    if seat is None:
        return (2, 0, "")
    if seat.isdigit():
        return (0, int(seat), seat)
    return (1, 0, seat)


def assign_versions(
    students: Sequence[Union[Student, Mapping[str, Any]]],
    version_labels: Sequence[str],
    strategy: str = "balanced",
    seed: Optional[str] = None,
    rng_factory: Callable[[Optional[str]], random.Random] = random.Random,
) -> Dict[str, Any]:
    """
    Assign one version label to every student.

    Returns:
        {"assignments": [Assignment], "version_counts": {...},
         "max_diff": int, "is_balanced": bool}
    """
    if strategy not in STRATEGIES:
        raise ValidationError(f"unknown distribution strategy {strategy!r}", "strategy")
    labels = list(version_labels)
    if not labels:
        raise ValidationError("at least one version is required", "version_labels")
    if strategy == "avoid-adjacent" and len(labels) < 2:
        raise ValidationError("avoid-adjacent needs at least two versions", "version_labels")
    roster = _coerce_students(students)
    rng = rng_factory(seed)

    if strategy == "random":
        picks = [(s, labels[int(rng.random() * len(labels))]) for s in roster]
    elif strategy == "sequential":
        picks = [(s, labels[i % len(labels)]) for i, s in enumerate(roster)]
    elif strategy == "balanced":
        shuffled = fisher_yates(roster, rng)
        picks = [(s, labels[i % len(labels)]) for i, s in enumerate(shuffled)]
    else:
        seated = sorted(roster, key=_seat_key)
        picks = [(s, labels[i % len(labels)]) for i, s in enumerate(seated)]

    assignments = [
        Assignment(student_id=s.id, student_name=s.name, version_label=lb, seat_number=s.seat_number)
        for s, lb in picks
    ]
    metrics = balance_metrics(assignments, labels)
    logger.info(
        f"✅ Distributed {len(labels)} versions to {len(assignments)} students "
        f"({strategy}, max_diff={metrics['max_diff']})"
    )
    return {"assignments": assignments, **metrics}


def balance_metrics(assignments: Sequence[Assignment], version_labels: Sequence[str]) -> Dict[str, Any]:
    counts = Counter(a.version_label for a in assignments)
    version_counts = {lb: counts.get(lb, 0) for lb in version_labels}
    values = list(version_counts.values())
    max_diff = max(values) - min(values) if values else 0
    return {"version_counts": version_counts, "max_diff": max_diff, "is_balanced": max_diff <= 2}
