"""tally conversations / runs / show / run -- browse a tally store.

Every command opens the store from configuration (tally.yaml, TALLY_*
environment variables), reads through the store API, and renders with
rich. Nothing here writes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, Optional, TypeVar

import typer
from rich.console import Console

from tally.cli.output import (
    render_conversation,
    render_conversations,
    render_run,
    render_runs,
)
from tally.exceptions import CodecError, TallyError
from tally.store.conversation_ref import ConversationRef
from tally.store.tally_store import TallyStore

T = TypeVar("T")

_DIR_OPTION = typer.Option(
    None, "--dir", "-d", help="Directory to resolve tally.yaml and the store from"
)


async def _step_count(ref: ConversationRef) -> int | None:
    try:
        return (await ref.load()).step_count
    except (FileNotFoundError, CodecError):
        return None


async def _list_conversations(directory: Path | None) -> list[tuple[str, int | None, int]]:
    async with await TallyStore.open(cwd=directory) as store:
        rows = []
        for ref in await store.list_conversations():
            rows.append((ref.id, await _step_count(ref), len(await ref.list_runs())))
        return rows


async def _require_conversation(store: TallyStore, conversation_id: str) -> ConversationRef:
    ref = await store.get_conversation(conversation_id)
    if ref is None:
        raise TallyError(f"Conversation '{conversation_id}' not found.")
    return ref


def _run_command(coro: Coroutine[Any, Any, T], console: Console) -> T:
    """Run a store coroutine, turning tally errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except (TallyError, ImportError) as exc:
        console.print(str(exc), style="red", markup=False)
        raise typer.Exit(code=1) from None


def conversations(directory: Optional[Path] = _DIR_OPTION) -> None:
    """List stored conversations with their step and run counts."""
    console = Console()
    rows = _run_command(_list_conversations(directory), console)
    render_conversations(rows, console)


def runs(
    conversation_id: str = typer.Argument(..., help="Conversation ID"),
    directory: Optional[Path] = _DIR_OPTION,
) -> None:
    """List the tally and trajectory runs of a conversation."""
    console = Console()

    async def _load():
        async with await TallyStore.open(cwd=directory) as store:
            ref = await _require_conversation(store, conversation_id)
            return await ref.list_runs()

    render_runs(conversation_id, _run_command(_load(), console), console)


def show(
    conversation_id: str = typer.Argument(..., help="Conversation ID"),
    directory: Optional[Path] = _DIR_OPTION,
) -> None:
    """Show the steps of a conversation."""
    console = Console()

    async def _load():
        async with await TallyStore.open(cwd=directory) as store:
            ref = await _require_conversation(store, conversation_id)
            try:
                return await ref.load()
            except FileNotFoundError:
                raise TallyError(
                    f"Conversation '{conversation_id}' has no saved steps."
                ) from None

    render_conversation(_run_command(_load(), console), console)


def run(
    conversation_id: str = typer.Argument(..., help="Conversation ID"),
    run_id: str = typer.Argument(..., help="Run ID"),
    directory: Optional[Path] = _DIR_OPTION,
) -> None:
    """Show one run: eval summaries for tally runs, outcome for trajectory runs."""
    console = Console()

    async def _load():
        async with await TallyStore.open(cwd=directory) as store:
            ref = await _require_conversation(store, conversation_id)
            run_ref = await ref.get_run(run_id)
            if run_ref is None:
                raise TallyError(
                    f"Run '{run_id}' not found in conversation '{conversation_id}'."
                )
            return await run_ref.load()

    render_run(_run_command(_load(), console), console)
