"""Helpers for the consolidation CLI: snapshot files and rich tables."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.table import Table

from continuum.core.exceptions import ValidationError
from continuum.memory.backends.in_memory import InMemoryMemoryStore
from continuum.memory.config.settings import ContinuumConfig
from continuum.memory.models.consolidation import ConsolidationReport, CycleSummary
from continuum.memory.models.memory_item import ensure_utc
from continuum.memory.models.surprise import SurpriseBreakdown

_YAML_SUFFIXES = (".yaml", ".yml")


@dataclass
class ConsolidationCLIContext:
    """Shared state resolved by the root callback."""

    config: ContinuumConfig
    config_path: Optional[str] = None


class ConsolidationCLIError(RuntimeError):
    """Raised when a CLI operation encounters a user-facing error."""


def load_snapshot(path: Path) -> InMemoryMemoryStore:
    """
    Load a snapshot file into an in-memory store.

    The file holds either a list of memory records or a mapping with a
    ``memories`` list and an optional ``audit_log`` list.
    """

    if not path.exists():
        raise ConsolidationCLIError(f"Snapshot file '{path}' does not exist.")

    raw_text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in _YAML_SUFFIXES:
            parsed = yaml.safe_load(raw_text)
        else:
            parsed = json.loads(raw_text)
    except (yaml.YAMLError, json.JSONDecodeError) as error:
        raise ConsolidationCLIError(f"Could not parse snapshot '{path}': {error}") from error

    audit_log: List[Dict[str, Any]] = []
    if parsed is None:
        records: Any = []
    elif isinstance(parsed, list):
        records = parsed
    elif isinstance(parsed, dict) and isinstance(parsed.get("memories"), list):
        records = parsed["memories"]
        audit_log = parsed.get("audit_log") or []
    else:
        raise ConsolidationCLIError(
            f"Snapshot '{path}' must be a list of memories or a mapping with a 'memories' list."
        )

    try:
        return InMemoryMemoryStore.from_records(records, audit_log=audit_log)
    except ValidationError as error:
        raise ConsolidationCLIError(f"Invalid snapshot '{path}': {error.message}") from error


def write_snapshot(store: InMemoryMemoryStore, path: Path) -> Path:
    """Write the store contents to ``path`` as JSON or YAML (by suffix)."""

    # Round-trip through JSON so datetimes and tiers become plain scalars.
    document = json.loads(json.dumps(store.snapshot(), default=str))
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in _YAML_SUFFIXES:
        path.write_text(yaml.safe_dump(document, sort_keys=False, allow_unicode=True), encoding="utf-8")
    else:
        path.write_text(json.dumps(document, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 ``--now`` value; naive values are taken as UTC."""

    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as error:
        raise ConsolidationCLIError(f"Invalid timestamp '{value}'; expected ISO-8601.") from error
    return ensure_utc(parsed)


def format_duration(value: Optional[timedelta]) -> str:
    """Render a duration compactly (``90m``, ``24h``, ``7d``) or ``unbounded``."""

    if value is None:
        return "unbounded"
    seconds = int(value.total_seconds())
    if seconds >= 2 * 86400 and seconds % 86400 == 0:
        return f"{seconds // 86400}d"
    if seconds and seconds % 3600 == 0:
        return f"{seconds // 3600}h"
    if seconds and seconds % 60 == 0:
        return f"{seconds // 60}m"
    return f"{seconds}s"


def build_policy_table(rows: Dict[str, Dict[str, Any]]) -> Table:
    table = Table(title="Tier Policy")
    table.add_column("Tier", style="cyan", no_wrap=True)
    table.add_column("Label")
    table.add_column("TTL", justify="right")
    table.add_column("Min dwell", justify="right")
    table.add_column("Threshold", justify="right")
    table.add_column("Promotes to", justify="center")

    for tier, row in rows.items():
        table.add_row(
            tier,
            row["label"],
            format_duration(row["ttl"]),
            format_duration(row["min_dwell"]),
            f"{row['threshold']:.2f}",
            str(row["next_tier"]),
        )
    return table


def build_breakdown_table(breakdown: SurpriseBreakdown, weights: Dict[str, float]) -> Table:
    table = Table(title="Surprise Breakdown")
    table.add_column("Factor", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")
    table.add_column("Weight", justify="right")
    table.add_column("Contribution", justify="right")

    for name, value in breakdown.factors().items():
        weight = weights.get(name, 0.0)
        table.add_row(name, f"{value:.3f}", f"{weight:.2f}", f"{value * weight:.3f}")

    bonuses = breakdown.bonuses
    table.add_row("love bonus", "yes" if bonuses.love_applied else "no", "", f"{bonuses.love:.3f}")
    table.add_row(
        "breakthrough bonus",
        "yes" if bonuses.breakthrough_applied else "no",
        "",
        f"{bonuses.breakthrough:.3f}",
    )
    table.add_row("final score", "", "", f"[bold]{breakdown.final_score:.3f}[/]")
    return table


_ACTION_STYLES = {
    "consolidated": "green",
    "kept": "white",
    "expired": "red",
    "protected": "yellow",
    "failed": "bold red",
}


def build_report_table(report: ConsolidationReport) -> Table:
    title = f"Tier {report.tier_processed}" + (" (dry-run)" if report.dry_run else "")
    table = Table(title=title)
    table.add_column("Memory", style="cyan", no_wrap=True)
    table.add_column("Outcome", no_wrap=True)
    table.add_column("Target", justify="center")
    table.add_column("Score", justify="right")
    table.add_column("Reason")

    for result in report.results:
        action = result.action.value
        table.add_row(
            result.memory_id,
            f"[{_ACTION_STYLES.get(action, 'white')}]{action}[/]",
            str(result.to_tier) if result.to_tier else "-",
            f"{result.score:.3f}" if result.score is not None else "-",
            result.reason,
        )
    return table


def build_summary_table(summary: CycleSummary) -> Table:
    table = Table(title="Consolidation Summary")
    table.add_column("Tier", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Consolidated", justify="right")
    table.add_column("Kept", justify="right")
    table.add_column("Expired", justify="right")
    table.add_column("Protected", justify="right")
    table.add_column("Failed", justify="right")

    for report in summary.reports:
        table.add_row(
            str(report.tier_processed),
            str(report.total_memories),
            str(report.consolidated),
            str(report.kept),
            str(report.expired),
            str(report.protected),
            str(report.failed),
        )
    table.add_row(
        "[bold]all[/]",
        str(summary.total_processed),
        str(summary.total_consolidated),
        str(sum(report.kept for report in summary.reports)),
        str(summary.total_expired),
        str(summary.total_protected),
        str(summary.total_failed),
    )
    return table
