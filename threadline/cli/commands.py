"""CLI commands for threadline."""

import json
import sys
from datetime import datetime
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from threadline import __logo__, __version__

app = typer.Typer(
    name="threadline",
    help=f"{__logo__} threadline - conversation context for stateless LLM sessions",
    no_args_is_help=True,
)

console = Console()


def _open_store(config):
    from threadline.history.store import JsonlConversationStore

    return JsonlConversationStore(config.store_path, days_back=config.store.days_back)


def _parse_now(now: str | None) -> datetime:
    from threadline.history.records import parse_timestamp

    if not now:
        return datetime.now().astimezone()
    try:
        return parse_timestamp(now)
    except ValueError:
        console.print(f"[red]Error: invalid --now timestamp '{now}'[/red]")
        raise typer.Exit(1)


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} threadline v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs"),
):
    """threadline - conversation context for stateless LLM sessions."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


# ============================================================================
# Context
# ============================================================================


@app.command()
def context(
    requester: str = typer.Argument(..., help="Requester ID (e.g. a chat ID)"),
    now: str = typer.Option(None, "--now", help="Reference time (ISO format)"),
    budget: int = typer.Option(None, "--budget", "-b", help="Override the character budget"),
    tokens: int = typer.Option(None, "--tokens", "-t", help="Override the budget in approximate tokens"),
    stats: bool = typer.Option(False, "--stats", help="Print tier statistics instead of the text"),
):
    """Print the conversation-history block for a requester."""
    from threadline.config.loader import load_config
    from threadline.context.assembler import ContextAssembler
    from threadline.context.tokens import chars_for_tokens, estimate_tokens

    config = load_config()
    context_config = config.context
    if tokens is not None:
        if budget is not None:
            console.print("[red]Error: use either --budget or --tokens, not both[/red]")
            raise typer.Exit(1)
        budget = chars_for_tokens(tokens)
    if budget is not None:
        if budget <= 0:
            console.print("[red]Error: the budget must be positive[/red]")
            raise typer.Exit(1)
        context_config = context_config.model_copy(update={"max_context_chars": budget})

    assembler = ContextAssembler(_open_store(config), context_config)
    result = assembler.assemble_detailed(requester, _parse_now(now))

    if stats:
        table = Table(title=f"Context for {requester}")
        table.add_column("Tier", style="cyan")
        table.add_column("Conversations")
        for tier, count in result.tier_counts.items():
            table.add_row(tier, str(count))
        console.print(table)
        console.print(f"Thread: {'continuation' if result.status.is_continuation else 'new'}")
        console.print(
            f"Budget: {result.allocation.used_chars}/{context_config.max_context_chars} chars"
            f"{' [yellow](truncated)[/yellow]' if result.allocation.truncated else ''}"
        )
        console.print(f"Output: {len(result.text)} chars (~{estimate_tokens(result.text)} tokens)")
        return

    if result.is_empty:
        console.print("[dim]No conversation history.[/dim]")
        return
    typer.echo(result.text)


@app.command()
def thread(
    requester: str = typer.Argument(..., help="Requester ID"),
    now: str = typer.Option(None, "--now", help="Reference time (ISO format)"),
):
    """Show whether a requester is in an active thread."""
    from threadline.config.loader import load_config
    from threadline.context.assembler import ContextAssembler

    config = load_config()
    assembler = ContextAssembler(_open_store(config), config.context)
    status = assembler.thread_status(requester, _parse_now(now))

    if not status.is_continuation:
        console.print("[yellow]No active thread[/yellow]")
        return

    console.print(f"[green]Active thread[/green] ({len(status.session_ids)} conversations)")
    for session_id in sorted(status.session_ids):
        console.print(f"  {session_id}")


# ============================================================================
# Conversations
# ============================================================================


@app.command()
def requesters():
    """List requesters with stored conversations."""
    from threadline.config.loader import load_config

    found = _open_store(load_config()).list_requesters()
    if not found:
        console.print("No stored conversations.")
        return
    for requester_id in found:
        typer.echo(requester_id)


@app.command()
def show(session_id: str = typer.Argument(..., help="Session ID")):
    """Print the full transcript of one conversation."""
    from threadline.config.loader import load_config
    from threadline.context.render import format_conversation

    config = load_config()
    record = _open_store(config).get_conversation(session_id)
    if record is None:
        console.print(f"[red]Conversation not found: {session_id}[/red]")
        raise typer.Exit(1)
    typer.echo(format_conversation(record, tz=config.context.tzinfo))


@app.command()
def search(
    query: str = typer.Argument(..., help="Keywords to look for in summaries"),
    top_k: int = typer.Option(5, "--top-k", "-k", help="Maximum results"),
    days: int = typer.Option(None, "--days", "-d", help="Only the last N days"),
):
    """Keyword search over conversation summaries."""
    from threadline.config.loader import load_config

    config = load_config()
    results = _open_store(config).search_conversations(query, top_k=top_k, days_back=days)
    if not results:
        console.print("No matching conversations.")
        return

    table = Table(title=f"Conversations matching '{query}'")
    table.add_column("Session", style="cyan")
    table.add_column("Ended")
    table.add_column("Score")
    table.add_column("Summary")
    for r in results:
        table.add_row(r.session_id, r.ended_at, f"{r.score:.2f}", r.summary)
    console.print(table)


@app.command("import")
def import_records(
    path: Path = typer.Argument(..., help="JSON or JSONL file with conversation records"),
):
    """Add conversation records to the store."""
    from threadline.config.loader import load_config
    from threadline.history.records import ConversationRecord

    if not path.is_file():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)

    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
        items = data if isinstance(data, list) else [data]
    except json.JSONDecodeError:
        try:
            items = [json.loads(line) for line in text.splitlines() if line.strip()]
        except json.JSONDecodeError as e:
            console.print(f"[red]Error: {path} is neither JSON nor JSONL: {e}[/red]")
            raise typer.Exit(1)

    store = _open_store(load_config())
    imported = 0
    for item in items:
        try:
            store.save(ConversationRecord.from_dict(item))
            imported += 1
        except (ValueError, TypeError) as e:
            console.print(f"[yellow]Skipped record: {e}[/yellow]")
    console.print(f"[green]✓[/green] Imported {imported} conversation(s)")


@app.command()
def identity():
    """Print the identity block loaded from the identity directory."""
    from threadline.config.loader import load_config
    from threadline.context.identity import IdentityLoader

    config = load_config()
    content = IdentityLoader(config.identity_path, config.identity.files).load()
    if not content:
        console.print(f"[dim]No identity files in {config.identity_path}[/dim]")
        return
    typer.echo(content)


# ============================================================================
# Config
# ============================================================================

config_app = typer.Typer(help="Inspect and edit configuration")
app.add_typer(config_app, name="config")


@config_app.command("list")
def config_list():
    """Show all configuration values."""
    from threadline.config.loader import get_config_path, load_config
    from threadline.config.path_utils import get_all_paths

    table = Table(title=f"Config ({get_config_path()})")
    table.add_column("Path", style="cyan")
    table.add_column("Value")
    for path, value in get_all_paths(load_config()).items():
        table.add_row(path, repr(value))
    console.print(table)


@config_app.command("get")
def config_get(path: str = typer.Argument(..., help="Dot-path, e.g. context.max_context_chars")):
    """Print one configuration value."""
    from threadline.config.loader import load_config
    from threadline.config.path_utils import get_by_path

    try:
        value = get_by_path(load_config(), path)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    typer.echo(json.dumps(value) if not isinstance(value, str) else value)


@config_app.command("set")
def config_set(
    path: str = typer.Argument(..., help="Dot-path, e.g. context.timezone"),
    value: str = typer.Argument(..., help="New value"),
):
    """Change one configuration value and save it."""
    from threadline.config.loader import load_config, save_config
    from threadline.config.path_utils import set_by_path

    config = load_config()
    try:
        set_by_path(config, path, value)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    save_config(config)
    console.print(f"[green]✓[/green] {path} updated")


if __name__ == "__main__":
    app()
