# exam_core/assembly_strategies.py

"""
Assembly strategies.

- constraint_based: greedy constraint solver; falls back to balanced when
  no constraint is given
- balanced: even spread over topics, and over Bloom levels inside a topic
- topic_proportional: topic counts follow the pool's own topic mix
- random: seeded shuffle of the pool

Whatever the strategy, the selection is scored against the constraints the
same way, so results can be compared.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable, Dict, List, Optional, Sequence

from .allocation import split_counts
from .assembly_engine import assemble, check_target_count, finish_assembly, shortfall_warning
from .config import Settings
from .constraint_policy import compute_bucket_specs
from .parallel_forms import fisher_yates
from .schema import BLOOM_LEVELS, AssemblyResult, Constraint, Question, ValidationError

logger = logging.getLogger(__name__)

STRATEGIES = ("random", "balanced", "constraint_based", "topic_proportional")

_STRATEGY_ALIASES = {
    "constraintBased": "constraint_based",
    "topicProportional": "topic_proportional",
}

NO_CONSTRAINTS_WARNING = "No constraints specified, falling back to balanced strategy"


# ============================
# Selection helpers
# ============================

def _group(questions: Sequence[Question], attr: str) -> Dict[str, List[Question]]:
    """Group by attribute; groups keep first-seen order, items keep pool order."""
    groups: Dict[str, List[Question]] = {}
    for q in questions:
        groups.setdefault(getattr(q, attr), []).append(q)
    return groups


def _round_robin(groups: Sequence[Sequence[Question]], n: int) -> List[Question]:
    out: List[Question] = []
    depth = 0
    while len(out) < n:
        took = False
        for g in groups:
            if depth < len(g):
                out.append(g[depth])
                took = True
                if len(out) == n:
                    break
        if not took:
            break
        depth += 1
    return out


def balanced_selection(pool: Sequence[Question], target_count: int) -> List[Question]:
    """One question per topic in turn; inside a topic, one per Bloom level in turn."""
    per_topic = []
    for questions in _group(pool, "topic").values():
        by_bloom = _group(questions, "bloom_level")
        levels = [by_bloom[lv] for lv in BLOOM_LEVELS if lv in by_bloom]
        per_topic.append(_round_robin(levels, len(questions)))
    return _round_robin(per_topic, target_count)


def topic_proportional_selection(pool: Sequence[Question], target_count: int) -> List[Question]:
    """Largest-remainder quotas by topic size; the first questions of each topic, in pool order."""
    groups = _group(pool, "topic")
    quotas = split_counts(min(target_count, len(pool)), {t: len(qs) for t, qs in groups.items()})
    taken = set()
    for topic, questions in groups.items():
        taken.update(id(q) for q in questions[:quotas[topic]])
    return [q for q in pool if id(q) in taken]


def random_selection(
    pool: Sequence[Question],
    target_count: int,
    seed: str,
    rng_factory: Callable[[str], random.Random] = random.Random,
) -> List[Question]:
    return fisher_yates(pool, rng_factory(seed))[:target_count]


# ============================
# Entry point
# ============================

def apply_strategy(
    pool: Sequence[Question],
    target_count: int,
    strategy: str = "constraint_based",
    constraints: Optional[Sequence[Constraint]] = None,
    seed: Optional[str] = None,
    settings: Optional[Settings] = None,
    rng_factory: Callable[[str], random.Random] = random.Random,
) -> AssemblyResult:
    """
    Assemble a test with the named strategy.

    Args:
        strategy: one of STRATEGIES ("constraintBased" / "topicProportional" also accepted)
        constraints: used by constraint_based for selection, by every strategy for scoring
        seed: random strategy only; falls back to settings.base_seed, then the clock
    """
    name = _STRATEGY_ALIASES.get(strategy, strategy)
    if name not in STRATEGIES:
        raise ValidationError(f"unknown assembly strategy {strategy!r}", "strategy")
    check_target_count(target_count)
    settings = settings or Settings()
    pool = list(pool)
    constraints = list(constraints or [])

    warnings: List[str] = []
    if name == "constraint_based":
        if constraints:
            return assemble(pool, constraints, target_count, settings)
        warnings.append(NO_CONSTRAINTS_WARNING)
        name = "balanced"

    if len(pool) < target_count:
        warnings.append(shortfall_warning(len(pool), target_count))
    specs, bucket_warnings = compute_bucket_specs(pool, constraints, target_count)
    warnings.extend(bucket_warnings)

    if name == "balanced":
        selected = balanced_selection(pool, target_count)
    elif name == "topic_proportional":
        selected = topic_proportional_selection(pool, target_count)
    else:
        seed = seed or settings.base_seed or str(int(time.time() * 1000))
        logger.info(f"🎲 Random selection with seed '{seed}'")
        selected = random_selection(pool, target_count, seed, rng_factory)

    return finish_assembly(selected, constraints, specs, warnings, target_count, settings, strategy=name)
