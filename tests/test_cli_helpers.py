# tests/test_cli_helpers.py

import pytest

from cli.build_tos import parse_topic_line, safe_filename
from exam_core.schema import ValidationError


def test_parse_topic_line():
    t = parse_topic_line("  Cell Biology, 6 ")
    assert t.topic == "Cell Biology" and t.hours == 6.0
    assert parse_topic_line("Mendel, Genetics, 2.5").topic == "Mendel, Genetics"
    assert parse_topic_line("   ") is None


@pytest.mark.parametrize("line", ["no hours here", ", 3", "Cells, lots"])
def test_parse_topic_line_rejects(line):
    with pytest.raises(ValidationError):
        parse_topic_line(line)


def test_safe_filename():
    assert safe_filename("Bio 101 - Midterm") == "Bio_101_-_Midterm"
    assert safe_filename("***") == "tos"
