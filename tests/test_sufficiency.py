# tests/test_sufficiency.py

import pytest

from exam_core.schema import BLOOM_LEVELS
from exam_core.sufficiency import analyze_sufficiency, normalize_topic
from exam_core.tos_calculator import calculate_tos, tos_to_dict


@pytest.fixture
def matrix():
    return calculate_tos(
        [{"topic": "A", "hours": 10}, {"topic": "B", "hours": 10}, {"topic": "C", "hours": 5}], 50
    )


def bank_for(matrix, make_question, skip=()):
    """One question per required item, minus the (topic, level) cells in skip."""
    pool = []
    for row in matrix.rows:
        for level in BLOOM_LEVELS:
            if (row.topic, level) in skip:
                continue
            for i in range(row.cells[level].count):
                pool.append(make_question(f"{row.topic}-{level}-{i}", topic=row.topic, bloom_level=level))
    return pool


def test_full_bank_passes(matrix, make_question):
    report = analyze_sufficiency(matrix, bank_for(matrix, make_question))

    assert report.overall_status == "pass"
    assert report.overall_score == 100.0
    assert report.total_required == report.total_available == 50
    assert report.total_gap == 0
    assert all(r.status == "pass" for r in report.results)
    assert report.recommendations == (
        "Question bank has sufficient coverage for all topics and Bloom levels.",
    )


def test_missing_cell_fails_and_is_recommended(matrix, make_question):
    required = matrix.rows[2].cells["creating"].count
    assert required >= 1
    report = analyze_sufficiency(matrix, bank_for(matrix, make_question, skip={("C", "creating")}))

    cell = next(r for r in report.results if r.topic == "C" and r.bloom_level == "creating")
    assert cell.available == 0 and cell.gap == required and cell.status == "fail"
    assert report.overall_score == pytest.approx(100 * (50 - required) / 50)
    assert report.overall_status == "warning"
    assert report.recommendations[0] == f"Add {required} question(s) to the bank to complete the exam."
    assert f"C / creating: 0 available, {required} required" in report.recommendations


def test_near_miss_cell_is_a_warning(matrix, make_question):
    required = matrix.rows[0].cells["applying"].count
    assert required == 4
    pool = [q for q in bank_for(matrix, make_question) if q.id != "A-applying-0"]
    report = analyze_sufficiency(matrix, pool)

    cell = next(r for r in report.results if r.topic == "A" and r.bloom_level == "applying")
    assert (cell.available, cell.gap, cell.status) == (3, 1, "warning")
    assert report.overall_status == "warning"


def test_empty_bank_fails(matrix):
    report = analyze_sufficiency(matrix, [])
    assert report.overall_status == "fail"
    assert report.overall_score == 0.0
    assert report.total_gap == 50


def test_topic_names_match_loosely(make_question):
    m = calculate_tos([{"topic": "Intro to Cells!", "hours": 1}], 6)
    pool = [make_question(f"c-{lv}", topic="cells", bloom_level=lv) for lv in BLOOM_LEVELS]
    report = analyze_sufficiency(m, pool)

    assert normalize_topic("Intro to Cells!") == "intro to cells"
    assert report.overall_status == "pass", f"Results: {report.results}"


def test_exact_topic_wins_over_substring(make_question):
    m = calculate_tos([{"topic": "Cells", "hours": 1}], 6)
    pool = [make_question(f"c-{lv}", topic="Cells", bloom_level=lv) for lv in BLOOM_LEVELS] + \
           [make_question(f"x-{lv}", topic="Cells and Tissues", bloom_level=lv) for lv in BLOOM_LEVELS]
    report = analyze_sufficiency(m, pool)
    assert all(r.available == 1 for r in report.results)


def test_stored_matrix_and_approved_filter(matrix, make_question):
    pool = bank_for(matrix, make_question)
    pool[0] = make_question(pool[0].id, topic=pool[0].topic, bloom_level=pool[0].bloom_level, approved=False)

    assert analyze_sufficiency(tos_to_dict(matrix), pool).overall_status == "pass"
    assert analyze_sufficiency(matrix, pool, approved_only=True).total_gap == 1
