# exam_core/parallel_forms.py

"""
Parallel forms: shuffled versions of one assembled test.

Every random decision comes from a generator seeded with a string derived
from the base seed, so a stored shuffle_seed regenerates the exact same
question order, choice letters and answer key.
"""

from __future__ import annotations

import json
import logging
import random
import time
from dataclasses import replace
from typing import Any, Callable, Dict, List, MutableSequence, Optional, Sequence, TypeVar, Union

from .config import Settings
from .schema import CHOICE_LABELS, AssemblyResult, Question, TestVersion, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")
RngFactory = Callable[[str], random.Random]

DIFFICULTY_SCORE = {"easy": 1, "average": 2, "difficult": 3}
MAX_IDENTICAL_SHARE = 0.2


# ============================
# Seeded helpers
# ============================

def form_seed(base_seed: str, index: int) -> str:
    return f"{base_seed}-form-{index}"


def version_label(index: int) -> str:
    """A, B, ..., Z, AA, AB, ..."""
    label = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        label = CHOICE_LABELS[rem] + label
    return label


def fisher_yates(items: Sequence[T], rng: random.Random) -> List[T]:
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = int(rng.random() * (i + 1))
        out[i], out[j] = out[j], out[i]
    return out


def shuffle_choices(question: Question, seed: str, rng_factory: RngFactory = random.Random) -> Question:
    """
    Reorder the choices of a multiple-choice item and relabel them A, B, C...
    Choice texts never change; the correct label follows its text.
    """
    if not question.is_multiple_choice:
        return question

    shuffled = fisher_yates(question.choices, rng_factory(seed))
    mapping = {}
    new_choices = []
    for i, (old_label, text) in enumerate(shuffled):
        mapping[old_label] = CHOICE_LABELS[i]
        new_choices.append((CHOICE_LABELS[i], text))

    correct = question.correct_answer
    return replace(
        question,
        choices=tuple(new_choices),
        correct_answer=mapping.get(correct, correct) if correct is not None else None,
    )


def _spread_positions(current: MutableSequence[Question], previous: Sequence[str], rng: random.Random) -> None:
    """Swap away repeated positions beyond MAX_IDENTICAL_SHARE of the previous form."""
    n = len(current)
    if n < 2:
        return
    allowed = int(n * MAX_IDENTICAL_SHARE)
    identical = 0
    for i in range(n):
        if i < len(previous) and current[i].id == previous[i]:
            identical += 1
            if identical > allowed:
                # any other slot; ids are unique so neither slot repeats afterwards
                j = int(rng.random() * (n - 1))
                if j >= i:
                    j += 1
                current[i], current[j] = current[j], current[i]
                identical -= 1


# ============================
# Version building
# ============================

def _build_version(
    questions: Sequence[Question],
    seed: str,
    label: str,
    shuffle_questions: bool,
    shuffle_choice_order: bool,
    rng_factory: RngFactory,
    previous_order: Optional[Sequence[str]] = None,
) -> TestVersion:
    rng = rng_factory(seed)
    ordered = fisher_yates(questions, rng) if shuffle_questions else list(questions)
    if previous_order is not None and shuffle_questions:
        _spread_positions(ordered, previous_order, rng)

    if shuffle_choice_order:
        ordered = [shuffle_choices(q, f"{seed}-{q.id}", rng_factory) for q in ordered]

    answer_key = {pos: q.correct_answer for pos, q in enumerate(ordered, start=1)}
    return TestVersion(
        version_label=label,
        question_order=tuple(q.id for q in ordered),
        shuffle_seed=seed,
        answer_key=answer_key,
        questions=tuple(ordered),
        total_points=sum(q.points for q in ordered),
    )


def generate_parallel_forms(
    source: Union[AssemblyResult, Sequence[Question]],
    num_forms: int,
    base_seed: Optional[str] = None,
    shuffle_questions: bool = True,
    shuffle_choices: bool = True,
    prevent_identical_positions: bool = False,
    rng_factory: RngFactory = random.Random,
    settings: Optional[Settings] = None,
) -> List[TestVersion]:
    """
    Produce `num_forms` versions (A, B, C...) of the same question set.

    Args:
        source: an AssemblyResult or the base question order
        num_forms: number of versions (> 0)
        base_seed: stored seed; falls back to settings.base_seed, then the clock
        prevent_identical_positions: at most 20% of positions may repeat the
            previous version's question
        rng_factory: builds a generator from a string seed
    """
    if isinstance(num_forms, bool) or not isinstance(num_forms, int) or num_forms <= 0:
        raise ValidationError(f"num_forms must be a positive integer, got {num_forms!r}", "num_forms")

    questions = list(source.selected_questions if isinstance(source, AssemblyResult) else source)
    ids = [q.id for q in questions]
    if len(set(ids)) != len(ids):
        raise ValidationError("question ids must be unique within a test", "questions")

    if base_seed is None:
        base_seed = (settings.base_seed if settings else None) or str(int(time.time() * 1000))

    versions: List[TestVersion] = []
    for i in range(num_forms):
        previous = versions[-1].question_order if (prevent_identical_positions and versions) else None
        versions.append(_build_version(
            questions,
            seed=form_seed(base_seed, i),
            label=version_label(i),
            shuffle_questions=shuffle_questions,
            shuffle_choice_order=shuffle_choices,
            rng_factory=rng_factory,
            previous_order=previous,
        ))

    logger.info(f"✅ Generated {num_forms} versions from base seed '{base_seed}'")
    return versions


def regenerate_version(
    questions: Sequence[Question],
    shuffle_seed: str,
    label: str,
    shuffle_questions: bool = True,
    shuffle_choices: bool = True,
    rng_factory: RngFactory = random.Random,
) -> TestVersion:
    """
    Rebuild one version from its stored shuffle_seed, e.g. to recover a lost
    answer key. Versions made with prevent_identical_positions also depend on
    the previous version and need generate_parallel_forms instead.
    """
    return _build_version(
        list(questions),
        seed=shuffle_seed,
        label=label,
        shuffle_questions=shuffle_questions,
        shuffle_choice_order=shuffle_choices,
        rng_factory=rng_factory,
    )


# ============================
# Checks & export
# ============================

def average_difficulty(questions: Sequence[Question]) -> float:
    if not questions:
        return 0.0
    return sum(DIFFICULTY_SCORE.get(q.difficulty, 2) for q in questions) / len(questions)


def validate_equivalence(versions: Sequence[TestVersion], tolerance: float = 0.3) -> Dict[str, Any]:
    """Compare every version with the first one: difficulty, topics, length."""
    issues: List[str] = []
    if len(versions) < 2:
        return {"are_equivalent": True, "issues": issues}

    base = versions[0]
    base_difficulty = average_difficulty(base.questions)
    base_topics = {q.topic for q in base.questions}
    for v in versions[1:]:
        diff = abs(average_difficulty(v.questions) - base_difficulty)
        if diff > tolerance:
            issues.append(f"Version {v.version_label} difficulty varies significantly ({diff:.2f})")
        if {q.topic for q in v.questions} != base_topics:
            issues.append(f"Version {v.version_label} has different topic coverage")
        if len(v.question_order) != len(base.question_order):
            issues.append(f"Version {v.version_label} has {len(v.question_order)} questions, "
                          f"version {base.version_label} has {len(base.question_order)}")
    return {"are_equivalent": not issues, "issues": issues}


def version_to_dict(version: TestVersion) -> Dict[str, Any]:
    return {
        "version_label": version.version_label,
        "shuffle_seed": version.shuffle_seed,
        "question_order": list(version.question_order),
        "total_points": version.total_points,
        "questions": [
            {
                "number": pos,
                "id": q.id,
                "text": q.text,
                "type": q.question_type,
                "choices": {lb: txt for lb, txt in q.choices} or None,
                "topic": q.topic,
                "bloom_level": q.bloom_level,
                "difficulty": q.difficulty,
                "points": q.points,
            }
            for pos, q in enumerate(version.questions, start=1)
        ],
        "answer_key": {str(pos): ans for pos, ans in version.answer_key.items()},
    }


def answer_key_rows(version: TestVersion) -> List[Dict[str, Any]]:
    points = {pos: q.points for pos, q in enumerate(version.questions, start=1)}
    return [
        {
            "question": pos,
            "question_id": version.question_order[pos - 1],
            "correct_answer": ans,
            "points": points.get(pos, 1),
        }
        for pos, ans in sorted(version.answer_key.items())
    ]


def version_fingerprint(version: TestVersion) -> str:
    """Canonical JSON of order + answer key; equal strings mean identical versions."""
    return json.dumps(
        {"order": list(version.question_order), "key": version_to_dict(version)["answer_key"]},
        sort_keys=True,
        ensure_ascii=False,
    )
