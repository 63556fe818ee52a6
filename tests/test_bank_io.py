# tests/test_bank_io.py

import json
import os

import pytest

from exam_core.bank_io import load_constraints, load_pool, save_json
from exam_core.schema import ConstraintType, ValidationError

DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data")


def test_sample_bank_loads():
    pool = load_pool(os.path.join(DATA_DIR, "questions.json"))
    assert len(pool) == 19, "One sample question is unapproved"
    by_id = {q.id: q for q in pool}
    assert by_id["q08"].correct_answer == "A"
    assert by_id["q10"].correct_answer == "B"
    assert by_id["q06"].question_type == "true_false"

    everything = load_pool(os.path.join(DATA_DIR, "questions.json"), approved_only=False)
    assert len(everything) == 20


def test_sample_constraints_load():
    constraints = load_constraints(os.path.join(DATA_DIR, "constraints.json"))
    assert [c.type for c in constraints] == [
        ConstraintType.DIFFICULTY_BALANCE,
        ConstraintType.BLOOM_DISTRIBUTION,
        ConstraintType.TOPIC_COVERAGE,
        ConstraintType.TIME_LIMIT,
    ]
    assert constraints[0].is_required and not constraints[1].is_required


def test_wrapped_list_and_save(tmp_path):
    path = tmp_path / "bank.json"
    path.write_text(json.dumps({"questions": [
        {"id": "x1", "topic": "Cells", "bloom_level": "applying", "difficulty": "easy"},
    ]}), encoding="utf-8")
    assert [q.id for q in load_pool(str(path))] == ["x1"]

    out = save_json({"tên": "Sinh học"}, str(tmp_path / "nested" / "out.json"))
    with open(out, encoding="utf-8") as f:
        assert json.load(f) == {"tên": "Sinh học"}


def test_not_a_list(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"items": 3}), encoding="utf-8")
    with pytest.raises(ValidationError):
        load_pool(str(path))
