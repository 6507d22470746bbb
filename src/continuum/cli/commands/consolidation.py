"""Operational CLI commands for scoring memories and running consolidation."""


from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Any, Awaitable, List, Optional

import typer
from rich.console import Console

from continuum.cli.commands.consolidation_utils import (
    ConsolidationCLIContext,
    ConsolidationCLIError,
    build_breakdown_table,
    build_policy_table,
    build_report_table,
    build_summary_table,
    format_duration,
    load_snapshot,
    parse_timestamp,
    write_snapshot,
)
from continuum.core.enums import MemoryTier
from continuum.core.exceptions import ContinuumError
from continuum.memory.config.settings import default_config
from continuum.memory.factory import create_consolidation_engine
from continuum.memory.models.consolidation import ConsolidationReport, CycleSummary
from continuum.memory.models.memory_item import coerce_tiered_memory
from continuum.memory.tiers.policy import TierPolicy

logger = logging.getLogger(__name__)
console = Console()


def _get_context(ctx: typer.Context) -> ConsolidationCLIContext:
    """Return the context object initialised by the root callback."""

    obj = ctx.obj
    if isinstance(obj, ConsolidationCLIContext):
        return obj
    context = ConsolidationCLIContext(config=default_config())
    ctx.obj = context
    return context


def _run_cli_coroutine(task: Awaitable[Any]) -> Any:
    """Execute an async operation within the CLI event loop."""

    try:
        return asyncio.run(task)
    except KeyboardInterrupt as exc:  # pragma: no cover - interactive safeguard
        console.print("[red]Operation cancelled by user.[/]")
        raise typer.Exit(code=130) from exc


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]{message}[/]")
    return typer.Exit(code=1)


def show_policy(
    ctx: typer.Context,
    as_json: Annotated[bool, typer.Option("--json", help="Print the policy as JSON.")] = False,
) -> None:
    """Show the TTL, minimum dwell and promotion threshold of every source tier."""

    context = _get_context(ctx)
    rows = TierPolicy(context.config).describe()

    if as_json:
        payload = {
            tier: {
                "label": row["label"],
                "ttl": format_duration(row["ttl"]),
                "min_dwell": format_duration(row["min_dwell"]),
                "threshold": row["threshold"],
                "next_tier": str(row["next_tier"]),
            }
            for tier, row in rows.items()
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    console.print(build_policy_table(rows))


def score_memory(
    ctx: typer.Context,
    snapshot: Annotated[Path, typer.Argument(help="Snapshot file (JSON or YAML) holding the memories.")],
    memory_id: Annotated[str, typer.Argument(help="Identifier of the memory to score.")],
    now: Annotated[Optional[str], typer.Option(
        "--now",
        help="Evaluation time as ISO-8601 (defaults to the current UTC time).",
    )] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the breakdown as JSON.")] = False,
) -> None:
    """Explain the surprise score of one memory against the rest of the snapshot."""

    context = _get_context(ctx)
    try:
        store = load_snapshot(snapshot)
        evaluated_at = parse_timestamp(now)
    except ConsolidationCLIError as error:
        raise _fail(str(error)) from error

    records = store.export_records()
    matches = [record for record in records if str(record.get("id", record.get("_id"))) == memory_id]
    if not matches:
        console.print(f"[red]Memory '{memory_id}' not found in {snapshot}.[/]")
        raise typer.Exit(code=1)

    engine = create_consolidation_engine(store, context.config, dry_run=True)
    try:
        memory = coerce_tiered_memory(matches[-1])
        corpus = engine.load_corpus(record for record in records if record is not matches[-1])
        breakdown = engine.scorer.score(memory, corpus)
        decision = None
        if not memory.tier.is_terminal:
            decision = engine.evaluate(memory, corpus, now=evaluated_at)
    except ContinuumError as error:
        raise _fail(error.message) from error

    if as_json:
        payload = {
            "memory_id": memory.id,
            "tier": str(memory.tier),
            "breakdown": breakdown.model_dump(mode="json"),
            "decision": decision.model_dump(mode="json", exclude={"breakdown"}) if decision else None,
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    console.print(build_breakdown_table(breakdown, engine.config.weights.as_dict()))
    if decision is None:
        console.print(f"[blue]{memory.id}[/] is in the terminal tier and is never consolidated.")
    else:
        target = f" -> {decision.to_tier}" if decision.to_tier else ""
        console.print(
            f"[blue]{memory.id}[/] ({memory.tier}): [bold]{decision.action.value}[/]{target}. {decision.reason}"
        )


def consolidate(
    ctx: typer.Context,
    snapshot: Annotated[Path, typer.Argument(help="Snapshot file (JSON or YAML) holding the memories.")],
    tier: Annotated[Optional[str], typer.Option(
        "--tier",
        "-t",
        help="Process a single tier (t1-t4) instead of a full cycle.",
    )] = None,
    apply: Annotated[bool, typer.Option(
        "--apply",
        help="Apply the outcomes and write the resulting snapshot (dry-run otherwise).",
    )] = False,
    output: Annotated[Optional[Path], typer.Option(
        "--output",
        "-o",
        help="Where to write the resulting snapshot with --apply (defaults to SNAPSHOT).",
    )] = None,
    now: Annotated[Optional[str], typer.Option(
        "--now",
        help="Evaluation time as ISO-8601 (defaults to the current UTC time).",
    )] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the cycle summary as JSON.")] = False,
) -> None:
    """Run a consolidation cycle (or one tier) over a snapshot."""

    context = _get_context(ctx)
    try:
        store = load_snapshot(snapshot)
        evaluated_at = parse_timestamp(now)
        selected: Optional[MemoryTier] = MemoryTier.from_string(tier) if tier else None
    except ConsolidationCLIError as error:
        raise _fail(str(error)) from error
    except ValueError as error:
        raise _fail(f"Invalid tier '{tier}'. Choose one of t1, t2, t3, t4.") from error

    if selected is not None and selected.is_terminal:
        console.print("[red]Tier t5 is terminal and is never processed as a consolidation source.[/]")
        raise typer.Exit(code=1)

    engine = create_consolidation_engine(store, context.config, dry_run=not apply)

    async def _run() -> List[ConsolidationReport]:
        if selected is not None:
            return [await engine.process_tier(selected, evaluated_at)]
        return await engine.run_full_cycle(evaluated_at)

    try:
        reports = _run_cli_coroutine(_run())
    except ContinuumError as error:
        logger.exception("Consolidation failed")
        raise _fail(f"Consolidation failed: {error.message}") from error

    summary = CycleSummary.from_reports(reports, dry_run=not apply)

    destination = None
    if apply:
        destination = write_snapshot(store, output or snapshot)

    if as_json:
        payload = summary.model_dump(
            mode="json",
            exclude={"reports": {"__all__": {"results": {"__all__": {"breakdown"}}}}},
        )
        typer.echo(json.dumps(payload, indent=2))
    else:
        for report in reports:
            if report.results:
                console.print(build_report_table(report))
        console.print(build_summary_table(summary))
        if destination is not None:
            console.print(f"[green]Wrote consolidated snapshot to {destination}.[/]")
        else:
            console.print("[blue]Dry-run:[/] no changes were written. Use --apply to persist outcomes.")

    if not summary.success:
        if not as_json:
            console.print(f"[red]{summary.total_failed} memories failed; see the report above.[/]")
        raise typer.Exit(code=1)
