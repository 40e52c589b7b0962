"""
Evaluation harness -- runs eval_questions.jsonl through the offline
translation path and generates analytics/reports/eval_report.md.

Checks:
  - Relevance   (off-topic questions rejected, sales questions accepted)
  - Rule choice (the heuristic rule that matched)
  - SQL content (expected fragments present, e.g. mandatory filters)
  - Chart kind  (when the question names one)
  - Allow-list  (generated SQL passes the safety gate)
  - Latency     (ms per question)
"""
from __future__ import annotations

import json
import sys
import time
import datetime
from pathlib import Path
from typing import Any

EVAL_PATH = Path(__file__).resolve().parent / "eval_questions.jsonl"
REPORT_PATH = Path(__file__).resolve().parents[1] / "reports" / "eval_report.md"


def _load_questions() -> list[dict[str, Any]]:
    lines = EVAL_PATH.read_text().splitlines()
    return [json.loads(line) for line in lines if line.strip()]


def _run_one(q: dict[str, Any]) -> dict[str, Any]:
    """Run a single question through relevance + heuristic translation."""
    from salesbot.copilot import heuristics
    from salesbot.governance.relevance import is_relevant
    from salesbot.governance.sql_safety import check_sql_safety

    question = q["question"]
    t0 = time.perf_counter()

    relevant = is_relevant(question)
    rule = heuristics.match_rule(question) if relevant else None
    translation = heuristics.translate(question) if relevant else None
    sql = translation.sql if translation else ""
    safety_errors = check_sql_safety(sql) if sql else []
    latency = int((time.perf_counter() - t0) * 1000)

    expected_relevant = q.get("relevant", True)
    relevance_ok = relevant == expected_relevant
    rule_ok = (rule.name if rule else None) == q.get("expected_rule")
    missing = [frag for frag in q.get("expected_fragments", []) if frag not in sql]
    chart_ok = True
    if "expected_chart" in q:
        chart_ok = (translation.chart_type if translation else None) == q["expected_chart"]

    if expected_relevant:
        success = relevance_ok and rule_ok and not missing and chart_ok and not safety_errors
    else:
        success = relevance_ok

    return {
        "question": question,
        "relevant": relevant,
        "relevance_ok": relevance_ok,
        "rule": rule.name if rule else None,
        "rule_ok": rule_ok,
        "missing_fragments": missing,
        "chart_ok": chart_ok,
        "safety_errors": safety_errors,
        "generated_sql": sql,
        "latency_ms": latency,
        "success": success,
    }


def _generate_report(results: list[dict[str, Any]]) -> str:
    """Generate the Markdown eval report."""
    total = len(results)
    now = datetime.datetime.now().strftime("%Y-%m-%d %H:%M")
    successes = sum(1 for r in results if r["success"])
    success_rate = (successes / total * 100) if total else 0
    relevance_correct = sum(1 for r in results if r["relevance_ok"])
    translated = [r for r in results if r["generated_sql"]]
    safe = sum(1 for r in translated if not r["safety_errors"])

    lines: list[str] = []
    lines.append("# Evaluation Report")
    lines.append("")
    lines.append(f"> Generated: {now}  |  Questions: **{total}**  |  Mode: heuristic rules (offline)")
    lines.append("")
    lines.append("## Summary")
    lines.append("")
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| Overall success rate | **{success_rate:.0f}%** ({successes}/{total}) |")
    lines.append(f"| Relevance correctness | **{relevance_correct}/{total}** |")
    lines.append(f"| Translated | **{len(translated)}/{total}** |")
    lines.append(f"| Passed allow-list | **{safe}/{len(translated)}** |")
    lines.append("")
    lines.append("## Per-Question Results")
    lines.append("")
    lines.append("| # | Question | Rule | Fragments | Chart | Latency | Pass |")
    lines.append("|---|----------|------|-----------|-------|---------|------|")
    for i, r in enumerate(results, 1):
        qtext = r["question"][:55] + ("..." if len(r["question"]) > 55 else "")
        frag = "OK" if not r["missing_fragments"] else "MISSING"
        chart = "OK" if r["chart_ok"] else "ERROR"
        p = "OK" if r["success"] else "ERROR"
        lines.append(f"| {i} | {qtext} | {r['rule'] or '--'} | {frag} | {chart} | {r['latency_ms']} | {p} |")
    lines.append("")

    failures = [(i, r) for i, r in enumerate(results, 1) if not r["success"]]
    lines.append("## Failures")
    lines.append("")
    if not failures:
        lines.append("None -- all questions handled correctly.")
        lines.append("")
    for i, r in failures:
        lines.append(f"### #{i}: {r['question']}")
        lines.append("")
        lines.append(f"**Rule:** `{r['rule']}`  **Relevant:** {r['relevant']}")
        if r["generated_sql"]:
            lines.append("")
            lines.append("```sql")
            lines.append(r["generated_sql"])
            lines.append("```")
        if r["missing_fragments"]:
            lines.append(f"**Missing:** {r['missing_fragments']}")
        if r["safety_errors"]:
            lines.append(f"**Safety:** {r['safety_errors']}")
        lines.append("")

    return "\n".join(lines)


def run():
    # Ensure UTF-8 output on Windows (cp1252 can't handle emoji)
    if sys.platform == "win32":
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")  # type: ignore[attr-defined]

    questions = _load_questions()
    print(f"Loaded {len(questions)} eval questions.")
    print("Running evaluation...\n")

    results = []
    for i, q in enumerate(questions, 1):
        r = _run_one(q)
        status = "PASS" if r["success"] else "FAIL"
        print(f"  [{i:2d}/{len(questions)}] {status}  {r['question'][:60]:<60}  rule={r['rule']}")
        results.append(r)

    report = _generate_report(results)
    REPORT_PATH.parent.mkdir(parents=True, exist_ok=True)
    REPORT_PATH.write_text(report, encoding="utf-8")
    print(f"\nReport written to {REPORT_PATH}")

    total = len(results)
    successes = sum(1 for r in results if r["success"])
    print(f"\n{'='*50}")
    print(f"  Success: {successes}/{total} ({successes/total*100:.0f}%)")
    print(f"{'='*50}")


if __name__ == "__main__":
    run()
