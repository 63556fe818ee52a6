# exam_core/allocation.py

from __future__ import annotations

import math
from fractions import Fraction
from numbers import Real
from typing import Dict, Hashable, Mapping, Union

from .schema import ValidationError

Weight = Union[int, float, Fraction]


def _as_fraction(value: Weight) -> Fraction:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError(f"weight must be a number, got {value!r}")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(f"weight must be finite, got {value!r}")
        # str() keeps decimal inputs such as 0.15 exact
        return Fraction(str(value))
    return Fraction(value)


def normalize_weights(weights: Mapping[Hashable, Weight]) -> Dict[Hashable, Fraction]:
    """Scale weights to sum 1. All-zero weights stay zero."""
    fr = {k: _as_fraction(v) for k, v in weights.items()}
    if any(v < 0 for v in fr.values()):
        raise ValidationError("weights must be >= 0")
    s = sum(fr.values())
    if s == 0:
        return {k: Fraction(0) for k in fr}
    return {k: v / s for k, v in fr.items()}


def split_counts(total: int, weights: Mapping[Hashable, Weight]) -> Dict[Hashable, int]:
    """
    Largest-remainder split of `total` by `weights`.

    Every key gets floor(total * w / sum(w)); the leftover units go one at a
    time to the largest fractional remainders, ties in mapping order. The
    result always sums to `total` (or to 0 when every weight is 0).
    """
    if isinstance(total, bool) or not isinstance(total, int):
        raise ValidationError(f"total must be an integer, got {total!r}")
    if total < 0:
        raise ValidationError(f"total must be >= 0, got {total}")

    shares = {k: total * w for k, w in normalize_weights(weights).items()}
    if not shares or all(v == 0 for v in shares.values()):
        return {k: 0 for k in shares}

    base = {k: math.floor(v) for k, v in shares.items()}
    remain = total - sum(base.values())

    # sorted() is stable: equal remainders keep input order
    order = sorted(shares, key=lambda k: shares[k] - base[k], reverse=True)
    for k in order[:remain]:
        base[k] += 1
    return base
