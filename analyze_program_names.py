"""
Report which raw program names in all_schedules.json map to a canonical
category and which don't, so new spellings can be added to program_taxonomy.py.
"""

from collections import Counter

from aggregate import load_previous_schedules
from constants import ALL_SCHEDULES_FILE
from program_taxonomy import find_canonical_program, to_title_case


def analyze(records):
    """(mapped, unmapped) lists of {raw, display, canonical, count}, most frequent first."""
    counts = Counter()
    for record in records:
        for program in record.programs:
            counts[program.categoryOriginal or program.category or ""] += 1

    mapped = []
    unmapped = []
    for raw, count in counts.most_common():
        entry = {
            "raw": raw,
            "display": to_title_case(raw),
            "canonical": find_canonical_program(raw),
            "count": count,
        }
        if entry["canonical"]:
            mapped.append(entry)
        else:
            unmapped.append(entry)
    return mapped, unmapped


def format_report(records):
    mapped, unmapped = analyze(records)
    lines = [
        "=== Program Name Analysis ===",
        f"Pools: {len(records)}",
        f"Unique raw program names: {len(mapped) + len(unmapped)}",
        "",
        "-- Canonically mapped --",
    ]
    lines.extend(f"({e['count']}) {e['display']} -> {e['canonical']}" for e in mapped)
    lines.append("")
    lines.append("-- Unmapped / Novel --")
    lines.extend(f"({e['count']}) {e['display']}" for e in unmapped)
    return "\n".join(lines)


def run_analysis(path=ALL_SCHEDULES_FILE):
    records = load_previous_schedules(path)
    if not records:
        print("No schedules found. Run the pipeline first: python main.py build")
        return None
    report = format_report(records)
    print(report)
    return report
