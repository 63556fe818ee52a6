# tests/conftest.py

import pytest

from exam_core.schema import DIFFICULTY_GROUPS, Question


def _question(qid, topic="Cells", bloom_level="remembering", difficulty="easy", **kw):
    return Question(id=qid, topic=topic, bloom_level=bloom_level, difficulty=difficulty, **kw)


@pytest.fixture
def make_question():
    return _question


@pytest.fixture
def pool40():
    """12 easy, 16 average, 12 difficult over 4 topics; Bloom follows difficulty."""
    counts = {"easy": 12, "average": 16, "difficult": 12}
    topics = ["Cells", "Genetics", "Ecology", "Evolution"]
    pool = []
    n = 0
    for difficulty, count in counts.items():
        levels = DIFFICULTY_GROUPS[difficulty]
        for i in range(count):
            n += 1
            pool.append(_question(
                f"q{n:02d}",
                topic=topics[n % len(topics)],
                bloom_level=levels[i % len(levels)],
                difficulty=difficulty,
            ))
    return pool


@pytest.fixture
def mc_questions():
    """10 multiple-choice items; the correct choice text is 'right-<id>'."""
    out = []
    for i in range(1, 11):
        qid = f"mc{i:02d}"
        out.append(_question(
            qid,
            topic="Cells" if i % 2 else "Genetics",
            difficulty=("easy", "average", "difficult")[i % 3],
            text=f"Question {i}",
            choices=(("A", f"right-{qid}"), ("B", "wrong 1"), ("C", "wrong 2"), ("D", "wrong 3")),
            correct_answer="A",
        ))
    return out
