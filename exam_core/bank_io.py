# exam_core/bank_io.py

import os
import json
import logging
from typing import Any, List

from .schema import Constraint, Question, ValidationError, constraint_from_record, question_from_record

logger = logging.getLogger(__name__)


def _read_json_list(path: str, what: str) -> List[Any]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict) and what in data:
        data = data[what]
    if not isinstance(data, list):
        raise ValidationError(f"{path}: expected a JSON list of {what}")
    return data


def load_pool(path: str, approved_only: bool = True) -> List[Question]:
    """
    Load a question bank snapshot.
    Records are validated one by one; unapproved items are dropped when
    approved_only is set.
    """
    records = _read_json_list(path, "questions")
    pool = [question_from_record(r) for r in records]
    if approved_only:
        kept = [q for q in pool if q.approved]
        if len(kept) < len(pool):
            logger.info(f"Skipped {len(pool) - len(kept)} unapproved questions")
        pool = kept
    logger.info(f"Loaded {len(pool)} questions from {path}")
    return pool


def load_constraints(path: str) -> List[Constraint]:
    return [constraint_from_record(r) for r in _read_json_list(path, "constraints")]


def save_json(obj: Any, path: str) -> str:
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)
    logger.info(f"✅ Saved {path}")
    return path
