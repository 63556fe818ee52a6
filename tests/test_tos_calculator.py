# tests/test_tos_calculator.py

from dataclasses import replace
from fractions import Fraction

import pytest

from exam_core.schema import (
    BLOOM_LEVELS,
    ConstraintType,
    DIFFICULTY_LEVELS,
    TOSHeader,
    TopicAllocation,
    ValidationError,
)
from exam_core.tos_calculator import (
    calculate_tos,
    constraints_from_tos,
    tos_from_dict,
    tos_to_dict,
    validate_tos_matrix,
)


def _topics(n):
    return [{"topic": f"T{i}", "hours": (i % 4) + 1} for i in range(n)]


def test_three_topic_example():
    m = calculate_tos([{"topic": "A", "hours": 10}, {"topic": "B", "hours": 10}, {"topic": "C", "hours": 5}], 50)

    totals = {r.topic: r.total for r in m.rows}
    assert totals == {"A": 20, "B": 20, "C": 10}, f"Wrong topic shares: {totals}"

    expected_ranges = {"A": range(1, 21), "B": range(21, 41), "C": range(41, 51)}
    for r in m.rows:
        numbers = [n for level in BLOOM_LEVELS for n in r.cells[level].item_numbers]
        assert numbers == list(expected_ranges[r.topic]), f"{r.topic}: {numbers}"
        assert sum(c.count for c in r.cells.values()) == r.total

    # 20 items by 15/15/20/20/15/15 -> 3/3/4/4/3/3
    a = m.row("A")
    assert [a.cells[lv].count for lv in BLOOM_LEVELS] == [3, 3, 4, 4, 3, 3]
    assert m.cell("A", "remembering").item_numbers == (1, 2, 3)
    assert m.cell("A", "remembering").range_label() == "(1-3)"
    assert a.percentage == 40.0 and m.row("C").percentage == 20.0


@pytest.mark.parametrize("n_topics", [1, 2, 3, 7, 13, 50])
@pytest.mark.parametrize("total_items", [1, 2, 5, 17, 59, 100, 333, 500])
def test_exact_sums_and_item_partition(n_topics, total_items):
    m = calculate_tos(_topics(n_topics), total_items)

    grand = sum(c.count for r in m.rows for c in r.cells.values())
    assert grand == total_items, f"{n_topics} topics / {total_items} items: sum={grand}"
    assert sum(m.bloom_totals.values()) == total_items
    assert sum(m.difficulty_totals.values()) == total_items

    numbers = [n for r in m.rows for lv in BLOOM_LEVELS for n in r.cells[lv].item_numbers]
    assert numbers == list(range(1, total_items + 1)), "Item numbers must be 1..N in order"

    for r in m.rows:
        for lv in BLOOM_LEVELS:
            cell = r.cells[lv]
            assert sum(cell.difficulty.values()) == cell.count


@pytest.mark.parametrize("total_items", [7, 50, 101])
def test_topic_shares_are_fair(total_items):
    topics = _topics(5)
    total_hours = sum(t["hours"] for t in topics)
    m = calculate_tos(topics, total_items)
    for t, r in zip(topics, m.rows):
        exact = Fraction(total_items * t["hours"], total_hours)
        assert abs(r.total - exact) < 1, f"{r.topic}: {r.total} vs exact {exact}"


def test_fewer_items_than_cells():
    m = calculate_tos(_topics(3), 2)
    assert sum(r.total for r in m.rows) == 2
    empty = [c for r in m.rows for c in r.cells.values() if c.count == 0]
    assert all(c.range_label() == "" for c in empty)


def test_accepts_topic_allocations_and_header():
    header = TOSHeader(course="Biology 101", exam_period="Midterm")
    m = calculate_tos([TopicAllocation("Cells", 3), TopicAllocation("Genetics", 1.5)], 30, header)
    assert m.total_hours == 4.5
    assert m.header.title == "Biology 101 - Midterm"
    assert set(m.difficulty_totals) == set(DIFFICULTY_LEVELS)


@pytest.mark.parametrize("topics,total", [
    ([], 10),
    ([{"topic": "A", "hours": 0}], 10),
    ([{"topic": "A", "hours": -2}], 10),
    ([{"topic": "", "hours": 2}], 10),
    ([{"topic": "A", "hours": "many"}], 10),
    ([{"topic": "A", "hours": True}], 10),
    ([{"topic": "A", "hours": 1}, {"topic": "A", "hours": 2}], 10),
    ([{"topic": "A", "hours": 1}], 0),
    ([{"topic": "A", "hours": 1}], -5),
    ([{"topic": "A", "hours": 1}], 2.5),
    ([{"topic": "A", "hours": 1}], True),
])
def test_invalid_input_raises(topics, total):
    with pytest.raises(ValidationError):
        calculate_tos(topics, total)


def test_dict_round_trip_keeps_matrix():
    m = calculate_tos(_topics(4), 45, TOSHeader(course="Bio", exam_period="Final"))
    data = tos_to_dict(m)

    assert data["title"] == "Bio - Final"
    assert data["distribution"]["T0"]["remembering"]["items"] == list(m.cell("T0", "remembering").item_numbers)

    back = tos_from_dict(data)
    assert back.rows == m.rows
    assert back.header == m.header
    assert back.total_items == 45


def test_tampered_dict_is_rejected():
    data = tos_to_dict(calculate_tos(_topics(2), 20))
    data["distribution"]["T0"]["applying"]["count"] += 1
    with pytest.raises(ValidationError):
        tos_from_dict(data)

    with pytest.raises(ValidationError):
        tos_from_dict({"topics": []})


def test_validate_detects_broken_total():
    m = calculate_tos(_topics(2), 20)
    assert validate_tos_matrix(m)
    with pytest.raises(ValidationError):
        validate_tos_matrix(replace(m, total_items=21))


def test_constraints_from_tos():
    m = calculate_tos([{"topic": "A", "hours": 10}, {"topic": "B", "hours": 10}, {"topic": "C", "hours": 5}], 50)
    topic_c, bloom_c = constraints_from_tos(m)

    assert topic_c.type is ConstraintType.TOPIC_COVERAGE
    assert topic_c.config["distribution"] == {"A": 20, "B": 20, "C": 10}
    assert bloom_c.type is ConstraintType.BLOOM_DISTRIBUTION
    assert sum(bloom_c.config["distribution"].values()) == 50
    assert topic_c.is_required and bloom_c.is_required
