# exam_core/schema.py

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


# ============================
# Taxonomy constants
# ============================

BLOOM_LEVELS: Tuple[str, ...] = (
    "remembering",
    "understanding",
    "applying",
    "analyzing",
    "evaluating",
    "creating",
)

# Percent weights per Bloom level (sum = 100)
BLOOM_DISTRIBUTION: Dict[str, int] = {
    "remembering": 15,
    "understanding": 15,
    "applying": 20,
    "analyzing": 20,
    "evaluating": 15,
    "creating": 15,
}

DIFFICULTY_LEVELS: Tuple[str, ...] = ("easy", "average", "difficult")

DIFFICULTY_DISTRIBUTION: Dict[str, int] = {
    "easy": 30,
    "average": 40,
    "difficult": 30,
}

DIFFICULTY_GROUPS: Dict[str, Tuple[str, ...]] = {
    "easy": ("remembering", "understanding"),
    "average": ("applying", "analyzing"),
    "difficult": ("evaluating", "creating"),
}

MULTIPLE_CHOICE = "multiple_choice"
CHOICE_LABELS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

_BLOOM_ALIASES = {
    "remember": "remembering",
    "knowledge": "remembering",
    "understand": "understanding",
    "comprehension": "understanding",
    "apply": "applying",
    "application": "applying",
    "analyze": "analyzing",
    "analyse": "analyzing",
    "analysing": "analyzing",
    "analysis": "analyzing",
    "evaluate": "evaluating",
    "evaluation": "evaluating",
    "create": "creating",
    "synthesis": "creating",
}

_DIFFICULTY_ALIASES = {
    "medium": "average",
    "moderate": "average",
    "hard": "difficult",
}

_QUESTION_TYPE_ALIASES = {
    "mcq": MULTIPLE_CHOICE,
    "mc": MULTIPLE_CHOICE,
    "multiplechoice": MULTIPLE_CHOICE,
    "truefalse": "true_false",
    "t/f": "true_false",
    "true/false": "true_false",
}


class ValidationError(ValueError):
    """Malformed or impossible input; nothing is computed."""

    def __init__(self, reason: str, field: Optional[str] = None):
        super().__init__(reason if field is None else f"{field}: {reason}")
        self.reason = reason
        self.field = field


class ConstraintType(str, Enum):
    DIFFICULTY_BALANCE = "difficulty_balance"
    BLOOM_DISTRIBUTION = "bloom_distribution"
    TOPIC_COVERAGE = "topic_coverage"
    TIME_LIMIT = "time_limit"
    POINT_DISTRIBUTION = "point_distribution"


# Question attribute each bucket constraint partitions on
CONSTRAINT_DIMENSIONS: Dict[ConstraintType, str] = {
    ConstraintType.DIFFICULTY_BALANCE: "difficulty",
    ConstraintType.BLOOM_DISTRIBUTION: "bloom_level",
    ConstraintType.TOPIC_COVERAGE: "topic",
}


# ============================
# TOS types
# ============================

@dataclass(frozen=True)
class TopicAllocation:
    topic: str
    hours: float


@dataclass(frozen=True)
class BloomCell:
    """Items of one (topic, Bloom level) cell and their difficulty split."""
    count: int
    item_numbers: Tuple[int, ...] = ()
    difficulty: Mapping[str, int] = field(default_factory=dict)

    def range_label(self) -> str:
        """Item range as printed on the TOS sheet, e.g. "(12-15)"."""
        if not self.item_numbers:
            return ""
        first, last = self.item_numbers[0], self.item_numbers[-1]
        if first == last:
            return f"({first})"
        return f"({first}-{last})"


@dataclass(frozen=True)
class TopicRow:
    topic: str
    hours: float
    percentage: float
    total: int
    cells: Mapping[str, BloomCell]


@dataclass(frozen=True)
class TOSHeader:
    """Printable metadata of a TOS sheet."""
    subject_no: str = ""
    course: str = ""
    description: str = ""
    year_section: str = ""
    exam_period: str = ""
    school_year: str = ""
    prepared_by: str = "Teacher"
    noted_by: str = "Dean"

    @property
    def title(self) -> str:
        return f"{self.course} - {self.exam_period}"


@dataclass(frozen=True)
class TOSMatrix:
    """
    Table of Specification.
    - rows: one per topic, input order
    - bloom_totals / difficulty_totals: column totals
    """
    total_hours: float
    total_items: int
    rows: Tuple[TopicRow, ...]
    bloom_totals: Mapping[str, int]
    difficulty_totals: Mapping[str, int]
    header: TOSHeader = field(default_factory=TOSHeader)

    def row(self, topic: str) -> TopicRow:
        for r in self.rows:
            if r.topic == topic:
                return r
        raise KeyError(topic)

    def cell(self, topic: str, bloom_level: str) -> BloomCell:
        return self.row(topic).cells[bloom_level]


# ============================
# Assembly types
# ============================

@dataclass(frozen=True)
class Question:
    """
    Candidate question snapshot.
    - choices: ((label, text), ...) in display order
    - correct_answer: choice label for multiple choice, free text otherwise
    - estimated_time: minutes
    """
    id: str
    topic: str
    bloom_level: str
    difficulty: str
    question_type: str = MULTIPLE_CHOICE
    points: float = 1
    approved: bool = True
    text: str = ""
    choices: Tuple[Tuple[str, str], ...] = ()
    correct_answer: Optional[str] = None
    estimated_time: Optional[float] = None

    @property
    def is_multiple_choice(self) -> bool:
        return self.question_type == MULTIPLE_CHOICE and bool(self.choices)

    def choice_text(self, label: str) -> Optional[str]:
        for lb, txt in self.choices:
            if lb == label:
                return txt
        return None


@dataclass(frozen=True)
class Constraint:
    type: ConstraintType
    config: Mapping[str, Any] = field(default_factory=dict)
    priority: int = 1
    is_required: bool = False


@dataclass(frozen=True)
class ConstraintReport:
    """Outcome of one constraint after assembly."""
    type: ConstraintType
    is_required: bool
    ideal: Mapping[str, int]
    achieved: Mapping[str, int]
    deviation: float

    @property
    def satisfied(self) -> bool:
        return self.deviation == 0


@dataclass(frozen=True)
class AssemblyMetrics:
    topic_counts: Mapping[str, int]
    difficulty_counts: Mapping[str, int]
    bloom_counts: Mapping[str, int]
    total_time: float
    total_points: float


@dataclass(frozen=True)
class AssemblyMetadata:
    warnings: Tuple[str, ...]
    constraints_satisfied: bool
    balance_score: float
    coverage_score: float
    constraint_reports: Tuple[ConstraintReport, ...] = ()
    metrics: Optional[AssemblyMetrics] = None


@dataclass(frozen=True)
class AssemblyResult:
    selected_questions: Tuple[Question, ...]
    metadata: AssemblyMetadata
    target_count: int = 0
    strategy: str = "constraint_based"


@dataclass(frozen=True)
class TestVersion:
    """One parallel form. answer_key: 1-based position -> correct answer."""
    version_label: str
    question_order: Tuple[str, ...]
    shuffle_seed: str
    answer_key: Mapping[int, Optional[str]]
    questions: Tuple[Question, ...] = ()
    total_points: float = 0

    # keep pytest from collecting this class
    __test__ = False


# ============================
# Boundary coercion
# ============================

def _norm_token(value: Any) -> str:
    return str(value).strip().lower().replace("-", "_").replace(" ", "_")


def normalize_bloom_level(value: Any) -> str:
    token = _norm_token(value)
    if token in BLOOM_LEVELS:
        return token
    if token in _BLOOM_ALIASES:
        return _BLOOM_ALIASES[token]
    raise ValidationError(f"unknown Bloom level {value!r}", "bloom_level")


def normalize_difficulty(value: Any) -> str:
    token = _norm_token(value)
    if token in DIFFICULTY_LEVELS:
        return token
    if token in _DIFFICULTY_ALIASES:
        return _DIFFICULTY_ALIASES[token]
    raise ValidationError(f"unknown difficulty {value!r}", "difficulty")


def normalize_question_type(value: Any) -> str:
    token = _norm_token(value or MULTIPLE_CHOICE)
    squashed = token.replace("_", "")
    return _QUESTION_TYPE_ALIASES.get(squashed, _QUESTION_TYPE_ALIASES.get(token, token))


def difficulty_for_bloom(bloom_level: str) -> str:
    level = normalize_bloom_level(bloom_level)
    for difficulty, levels in DIFFICULTY_GROUPS.items():
        if level in levels:
            return difficulty
    return "difficult"


def _coerce_choices(record: Mapping[str, Any]) -> Tuple[Tuple[str, str], ...]:
    raw = record.get("choices", record.get("options"))
    if not raw:
        return ()
    if len(raw) > len(CHOICE_LABELS):
        raise ValidationError(f"at most {len(CHOICE_LABELS)} choices are supported, got {len(raw)}", "choices")
    if isinstance(raw, Mapping):
        return tuple((str(k), str(v)) for k, v in raw.items())

    out: List[Tuple[str, str]] = []
    for i, ch in enumerate(raw):
        if isinstance(ch, Mapping):
            label = ch.get("id", ch.get("label"))
            label = str(label) if label is not None else CHOICE_LABELS[i]
            out.append((label, str(ch.get("text", ""))))
        else:
            out.append((CHOICE_LABELS[i], str(ch)))
    return tuple(out)


def _coerce_correct(
    record: Mapping[str, Any],
    choices: Tuple[Tuple[str, str], ...],
    question_type: str,
) -> Optional[str]:
    correct = record.get("correct_answer", record.get("answer_key"))
    if correct is None and record.get("answer_index") is not None and choices:
        idx = int(record["answer_index"])
        if not 0 <= idx < len(choices):
            raise ValidationError(f"answer_index {idx} out of range", "answer_index")
        return choices[idx][0]
    if correct is None or question_type != MULTIPLE_CHOICE or not choices:
        return None if correct is None else str(correct)

    correct = str(correct).strip()
    labels = [lb for lb, _ in choices]
    if correct in labels:
        return correct
    if correct.upper() in labels:
        return correct.upper()
    for lb, txt in choices:
        if txt == correct:
            return lb
    raise ValidationError(f"correct answer {correct!r} matches no choice", "correct_answer")


def question_from_record(record: Mapping[str, Any]) -> Question:
    """
    Build a Question from a loosely typed store record.
    Raises ValidationError on missing/unknown required fields.
    """
    qid = record.get("id")
    if qid is None or str(qid).strip() == "":
        raise ValidationError("question id is required", "id")
    topic = str(record.get("topic") or "").strip()
    if not topic:
        raise ValidationError(f"question {qid}: topic is required", "topic")
    if record.get("bloom_level") is None:
        raise ValidationError(f"question {qid}: bloom_level is required", "bloom_level")
    if record.get("difficulty") is None:
        raise ValidationError(f"question {qid}: difficulty is required", "difficulty")

    question_type = normalize_question_type(record.get("question_type", record.get("type")))
    choices = _coerce_choices(record)
    correct = _coerce_correct(record, choices, question_type)

    points = record.get("points", 1)
    estimated = record.get("estimated_time")
    try:
        points = float(points) if points is not None else 1.0
        estimated = float(estimated) if estimated is not None else None
    except (TypeError, ValueError) as e:
        raise ValidationError(f"question {qid}: {e}", "points") from e
    if points < 0:
        raise ValidationError(f"question {qid}: points must be >= 0", "points")
    if points.is_integer():
        points = int(points)

    return Question(
        id=str(qid),
        topic=topic,
        bloom_level=normalize_bloom_level(record["bloom_level"]),
        difficulty=normalize_difficulty(record["difficulty"]),
        question_type=question_type,
        points=points,
        approved=bool(record.get("approved", True)),
        text=str(record.get("text", record.get("question_text", record.get("question", ""))) or ""),
        choices=choices,
        correct_answer=correct,
        estimated_time=estimated,
    )


def constraint_from_record(record: Mapping[str, Any]) -> Constraint:
    try:
        ctype = ConstraintType(str(record.get("type")))
    except ValueError:
        raise ValidationError(f"unknown constraint type {record.get('type')!r}", "type") from None

    required = record.get("is_required", record.get("isRequired", False))
    try:
        priority = int(record.get("priority", 1))
    except (TypeError, ValueError):
        raise ValidationError(f"priority must be an integer, got {record.get('priority')!r}", "priority") from None

    config = record.get("config") or {}
    if not isinstance(config, Mapping):
        raise ValidationError("config must be a mapping", "config")
    return Constraint(type=ctype, config=dict(config), priority=priority, is_required=bool(required))


def topics_from_records(records: List[Mapping[str, Any]]) -> List[TopicAllocation]:
    out = []
    for r in records:
        hours = r.get("hours")
        if isinstance(hours, bool):
            raise ValidationError(f"hours must be a number, got {hours!r}", "hours")
        if not isinstance(hours, (int, float)):
            try:
                hours = float(hours)
            except (TypeError, ValueError):
                raise ValidationError(f"hours must be a number, got {hours!r}", "hours") from None
        if not math.isfinite(hours):
            raise ValidationError(f"hours must be finite, got {hours!r}", "hours")
        out.append(TopicAllocation(topic=str(r.get("topic", "")).strip(), hours=hours))
    return out
