# exam_core/report.py

from typing import Optional

from rich.table import Table

from .schema import BLOOM_LEVELS, AssemblyResult, TestVersion, TOSMatrix
from .sufficiency import SufficiencyReport


def render_tos_table(matrix: TOSMatrix) -> Table:
    """Two-way table: topics x Bloom levels, counts with item ranges."""
    title = matrix.header.title if matrix.header.course else "Table of Specification"
    table = Table(title=title, show_footer=True)
    table.add_column("Topic", footer="TOTAL", style="cyan")
    table.add_column("Hours", footer=f"{matrix.total_hours:g}", justify="right")
    table.add_column("%", footer="100", justify="right")
    for level in BLOOM_LEVELS:
        table.add_column(level.title(), footer=str(matrix.bloom_totals[level]), justify="center")
    table.add_column("Items", footer=str(matrix.total_items), justify="right", style="bold")

    for r in matrix.rows:
        cells = []
        for level in BLOOM_LEVELS:
            cell = r.cells[level]
            cells.append(f"{cell.count} {cell.range_label()}".strip())
        table.add_row(r.topic, f"{r.hours:g}", f"{r.percentage:g}", *cells, str(r.total))
    return table


def render_assembly_table(result: AssemblyResult, title: Optional[str] = None) -> Table:
    """One row per constraint: ideal vs achieved and deviation."""
    meta = result.metadata
    table = Table(
        title=title or f"Assembly ({result.strategy}): {len(result.selected_questions)}/{result.target_count} questions",
        caption=f"balance={meta.balance_score:.3f}  coverage={meta.coverage_score:.3f}  "
                f"satisfied={meta.constraints_satisfied}",
    )
    table.add_column("Constraint", style="cyan")
    table.add_column("Required", justify="center")
    table.add_column("Ideal")
    table.add_column("Achieved")
    table.add_column("Deviation", justify="right")

    for r in meta.constraint_reports:
        style = "green" if r.satisfied else ("red" if r.is_required else "yellow")
        table.add_row(
            r.type.value,
            "yes" if r.is_required else "no",
            ", ".join(f"{k}={v:g}" for k, v in r.ideal.items()),
            ", ".join(f"{k}={v:g}" for k, v in r.achieved.items()),
            f"[{style}]{r.deviation:.3f}[/{style}]",
        )
    return table


def render_answer_key(version: TestVersion) -> Table:
    table = Table(title=f"Answer key - Version {version.version_label}")
    table.add_column("#", justify="right")
    table.add_column("Question ID")
    table.add_column("Answer", justify="center", style="bold green")
    for pos, qid in enumerate(version.question_order, start=1):
        answer = version.answer_key.get(pos)
        table.add_row(str(pos), qid, "-" if answer is None else str(answer))
    return table


def render_sufficiency_table(report: SufficiencyReport) -> Table:
    """One row per required (topic, Bloom level) cell."""
    table = Table(
        title=f"Bank sufficiency: {report.overall_status.upper()}",
        caption=f"score={report.overall_score:.1f}%  gap={report.total_gap}",
    )
    table.add_column("Topic", style="cyan")
    table.add_column("Bloom level")
    table.add_column("Required", justify="right")
    table.add_column("Available", justify="right")
    table.add_column("Gap", justify="right")
    table.add_column("Status", justify="center")

    styles = {"pass": "green", "warning": "yellow", "fail": "red"}
    for r in report.results:
        style = styles.get(r.status, "white")
        table.add_row(
            r.topic, r.bloom_level.title(), str(r.required), str(r.available), str(r.gap),
            f"[{style}]{r.status}[/{style}]",
        )
    return table
