import json
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from prowflake.models import History, FlakyTest


SEPARATOR = "-" * 41


def rank_flaky_tests(history: History) -> List[FlakyTest]:
    flakes = [
        FlakyTest(name=name, flakiness=history.flakiness(name), flake_score=track.flake_score)
        for name, track in history.tests.items()
        if track.flake_score > 0
    ]
    flakes.sort(key=lambda f: (-f.flakiness, f.name))
    return flakes


def render_report(job_name: str, history: History) -> str:
    lines = [SEPARATOR, ""]
    lines.append(
        f"[{job_name}] Top flaky tests "
        f"(last {history.window_days:.0f} days, {history.builds_analyzed} builds)"
    )
    for flake in rank_flaky_tests(history):
        lines.append(f"{flake.flakiness:.2f}\t{flake.name}")
    return "\n".join(lines)


def _format_ts(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def write_report_json(job_name: str, history: History, output_path: Path):
    report = {
        "job": job_name,
        "window": {
            "from": _format_ts(history.from_ts),
            "to": _format_ts(history.to_ts),
            "days": history.window_days,
        },
        "builds_analyzed": history.builds_analyzed,
        "flaky_tests": [f.to_dict() for f in rank_flaky_tests(history)],
        "history": history.to_dict(),
    }
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2)


def write_summary(job_name: str, history: History, output_path: Path):
    flakes = rank_flaky_tests(history)

    lines = []
    lines.append(f"# Flaky Tests: {job_name}\n")
    lines.append(f"- Window: {_format_ts(history.from_ts)} to {_format_ts(history.to_ts)}")
    lines.append(f"- Days: {history.window_days:.0f}")
    lines.append(f"- Builds analyzed: {history.builds_analyzed}")
    lines.append(f"- Tests tracked: {len(history.tests)}")
    lines.append(f"- Flaky tests: {len(flakes)}")

    if flakes:
        lines.append("\n## Ranking\n")
        lines.append("| Flakiness | Transitions | Test |")
        lines.append("|---:|---:|---|")
        for flake in flakes:
            name = flake.name.replace("|", "\\|")
            lines.append(f"| {flake.flakiness:.2f} | {flake.flake_score * 2:.0f} | {name} |")
    else:
        lines.append("\nNo flaky tests detected.")

    with open(output_path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")
