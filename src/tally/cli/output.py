"""Rich terminal output for stored conversations and runs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich import box
from rich.console import Console
from rich.table import Table

from tally.models.run_artifact import RunArtifact
from tally.utils.text import extract_text_from_message, extract_text_from_messages
from tally.utils.tool_calls import get_tool_names

if TYPE_CHECKING:
    from tally.models.conversation import Conversation
    from tally.models.trajectory import TrajectoryRunMeta
    from tally.store.run_ref import RunRef

# Verdict styling: verdict -> (symbol, Rich style)
_VERDICT_STYLES: dict[str, tuple[str, str]] = {
    "pass": ("✓ pass", "bold green"),
    "fail": ("✗ fail", "bold red"),
    "unknown": ("? unknown", "bold yellow"),
}

_MAX_CELL = 80


def _truncate(text: str, limit: int = _MAX_CELL) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _format_rate(rate: float | None) -> str:
    return f"{rate:.0%}" if rate is not None else "-"


def render_conversations(rows: list[tuple[str, int | None, int]], console: Console) -> None:
    """Render a table of (conversation id, step count, run count) rows."""
    if not rows:
        console.print("[dim]No conversations found.[/dim]")
        return
    table = Table(box=box.ROUNDED)
    table.add_column("Conversation")
    table.add_column("Steps", justify="right")
    table.add_column("Runs", justify="right")
    for conversation_id, step_count, run_count in rows:
        table.add_row(
            conversation_id,
            str(step_count) if step_count is not None else "-",
            str(run_count),
        )
    console.print(table)


def render_runs(conversation_id: str, runs: list[RunRef], console: Console) -> None:
    if not runs:
        console.print(f"[dim]No runs found for conversation '{conversation_id}'.[/dim]")
        return
    table = Table(box=box.ROUNDED, title=f"Runs for {conversation_id}")
    table.add_column("Run")
    table.add_column("Type")
    table.add_column("Created")
    for run in runs:
        created = run.created_at
        table.add_row(
            run.id,
            run.type,
            created.strftime("%Y-%m-%d %H:%M:%S") if created is not None else "-",
        )
    console.print(table)


def render_conversation(conversation: Conversation, console: Console) -> None:
    """Render every step: the input text, the output text, and tools used."""
    console.print()
    console.print(f"[bold]Conversation:[/bold] {conversation.id}")
    console.print(f"[bold]Steps:[/bold] {conversation.step_count}")
    console.print()

    table = Table(box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("Input")
    table.add_column("Output")
    table.add_column("Tools")
    for step in conversation.steps:
        table.add_row(
            str(step.step_index),
            _truncate(extract_text_from_message(step.input)),
            _truncate(extract_text_from_messages(step.output)),
            ", ".join(get_tool_names(step)) or "-",
        )
    console.print(table)


def render_run_artifact(artifact: RunArtifact, console: Console) -> None:
    """Render a tally run: header plus one row per eval summary."""
    result = artifact.result
    console.print()
    console.print(f"[bold]Run:[/bold] {artifact.run_id}")
    console.print(f"[bold]Created:[/bold] {artifact.created_at}")
    console.print(f"[bold]Steps:[/bold] {result.step_count}")
    console.print()

    table = Table(box=box.ROUNDED)
    table.add_column("Eval")
    table.add_column("Kind")
    table.add_column("Metric")
    table.add_column("Mean score", justify="right")
    table.add_column("Pass rate", justify="right")

    summaries = result.summaries.by_eval if result.summaries is not None else {}
    for name, eval_def in artifact.defs.evals.items():
        summary = summaries.get(name)
        mean = None
        pass_rate = None
        if summary is not None:
            if summary.aggregations is not None:
                value = summary.aggregations.score.get("mean")
                mean = value if isinstance(value, (int, float)) else None
            if summary.verdict_summary is not None:
                pass_rate = summary.verdict_summary.pass_rate
        table.add_row(
            name,
            eval_def.kind,
            eval_def.metric,
            f"{mean:.2f}" if mean is not None else "-",
            _format_rate(pass_rate),
        )
    console.print(table)

    for name, outcome_result in result.multi_turn.items():
        if outcome_result.outcome is None:
            continue
        symbol, style = _VERDICT_STYLES.get(
            outcome_result.outcome.verdict, _VERDICT_STYLES["unknown"]
        )
        console.print(f"  {name}: [{style}]{symbol}[/{style}]")


def render_trajectory_run(meta: TrajectoryRunMeta, console: Console) -> None:
    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Run", meta.run_id)
    table.add_row("Conversation", meta.conversation_id)
    table.add_row("Goal", meta.goal)
    table.add_row("Persona", meta.persona.name or _truncate(meta.persona.description))
    table.add_row("Completed", "yes" if meta.completed else "no")
    table.add_row("Reason", meta.reason)
    table.add_row("Turns", str(meta.total_turns))
    if meta.step_count is not None:
        table.add_row("Steps completed", f"{meta.steps_completed or 0}/{meta.step_count}")
    console.print(table)


def render_run(data: RunArtifact | TrajectoryRunMeta, console: Console) -> None:
    if isinstance(data, RunArtifact):
        render_run_artifact(data, console)
    else:
        render_trajectory_run(data, console)
