import os
import logging
from typing import List, Optional

from rich.console import Console

from exam_core.bank_io import load_pool, save_json
from exam_core.config import configure_logging, load_settings
from exam_core.report import render_sufficiency_table, render_tos_table
from exam_core.schema import TOSHeader, TopicAllocation, ValidationError
from exam_core.sufficiency import analyze_sufficiency
from exam_core.tos_calculator import calculate_tos, tos_to_dict

RESET = "\033[0m"
BOLD = "\033[1m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
CYAN = "\033[96m"
MAGENTA = "\033[95m"

console = Console()


def banner():
    print(f"\n{BOLD}{CYAN}╔══════════════════════════════════════════════════╗{RESET}")
    print(f"{BOLD}{CYAN}║        📐 TOS Builder - Table of Specification    ║{RESET}")
    print(f"{BOLD}{CYAN}╚══════════════════════════════════════════════════╝{RESET}\n")


def parse_topic_line(line: str) -> Optional[TopicAllocation]:
    """
    "Cell Biology, 6" -> TopicAllocation("Cell Biology", 6.0)
    Empty line -> None (end of input).
    """
    line = line.strip()
    if not line:
        return None
    name, sep, hours = line.rpartition(",")
    if not sep or not name.strip():
        raise ValidationError(f"expected 'topic, hours', got {line!r}", "topics")
    try:
        value = float(hours)
    except ValueError:
        raise ValidationError(f"hours must be a number, got {hours.strip()!r}", "hours") from None
    return TopicAllocation(topic=name.strip(), hours=value)


def safe_filename(text: str) -> str:
    keep = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in text.strip())
    return keep.strip("_") or "tos"


def prompt_topics() -> List[TopicAllocation]:
    print(f"{MAGENTA}📚 Enter one topic per line as 'topic, hours' (empty line = done):{RESET}")
    topics: List[TopicAllocation] = []
    while True:
        raw = input(f"  {CYAN}{len(topics) + 1}.{RESET} ")
        try:
            t = parse_topic_line(raw)
        except ValidationError as e:
            print(f"{YELLOW}⚠️ {e}{RESET}")
            continue
        if t is None:
            break
        topics.append(t)
    return topics


def check_bank(matrix, bank_path: str):
    try:
        pool = load_pool(bank_path)
        report = analyze_sufficiency(matrix, pool)
    except (OSError, ValidationError) as e:
        print(f"{RED}🚫 Cannot check bank: {e}{RESET}")
        logging.error(f"Bank check failed for {bank_path}: {e}")
        return None

    console.print(render_sufficiency_table(report))
    color = GREEN if report.overall_status == "pass" else YELLOW
    for line in report.recommendations:
        print(f"{color}• {line}{RESET}")
    return report


def run_tos_builder():
    settings = load_settings()
    configure_logging(settings)
    banner()

    course = input("👉 Course (Enter = skip): ").strip()
    exam_period = input("👉 Exam period (Enter = skip): ").strip()
    topics = prompt_topics()

    try:
        total_items = int(input(f"\n🔢 Total items (Enter = 50): ").strip() or 50)
    except ValueError:
        print(f"{YELLOW}⚠️ Invalid value, using 50{RESET}")
        total_items = 50

    try:
        matrix = calculate_tos(topics, total_items, TOSHeader(course=course, exam_period=exam_period))
    except ValidationError as e:
        print(f"{RED}🚫 Cannot build TOS: {e.reason}{RESET}")
        logging.error(f"TOS rejected: {e}")
        return None

    console.print(render_tos_table(matrix))

    name = safe_filename(matrix.header.title if course else "tos")
    path = save_json(tos_to_dict(matrix), os.path.join(settings.output_dir, f"{name}.json"))
    print(f"\n{GREEN}✅ Saved TOS to:{RESET} {path}")

    bank_path = input("📦 Question bank JSON to check coverage (Enter = skip): ").strip()
    if bank_path:
        check_bank(matrix, bank_path)
    return matrix


if __name__ == "__main__":
    run_tos_builder()
