"""
Context CLI Commands.

Commands for inspecting budgets and building context windows from a
candidate file.
"""

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.text import Text
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import yaml

from memweave.core.config import get_settings
from memweave.core.exceptions import CandidateLoadError, ErrorCode, MemweaveError
from memweave.context.budget import (
    create_adaptive_budget,
    create_context_budget,
    get_budget_for_model,
    get_model_context_size,
)
from memweave.context.models import ContextBudget, SelectionWeights
from memweave.context.window import (
    CATEGORY_ORDER,
    build_optimized_context,
    compare_model_budgets,
    estimate_token_usage,
)
from memweave.logging import LogLevel, get_logger

app = typer.Typer(
    name="context",
    help="Build and inspect budgeted context windows",
    add_completion=False
)

console = Console()

CANDIDATE_KEYS = ("messages", "memories", "learnings", "entities")

_CEILING_LABELS = {
    "memory": "Memories",
    "learning": "Learnings",
    "entity": "Entities",
    "message": "Recent messages",
}


def load_candidates(path: Path) -> Dict[str, List[Dict[str, Any]]]:
    """
    Load candidate records from a YAML or JSON file.

    The file holds a mapping with optional ``messages``, ``memories``,
    ``learnings`` and ``entities`` lists.

    Raises:
        CandidateLoadError: If the file is missing or not in that shape
    """
    if not path.exists():
        raise CandidateLoadError(
            f"Candidate file not found: {path}",
            ErrorCode.CANDIDATES_NOT_FOUND,
            {"path": str(path)}
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise CandidateLoadError(
            f"Could not parse candidate file: {e}",
            context={"path": str(path)},
            cause=e
        )

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise CandidateLoadError(
            "Candidate file must contain a mapping",
            context={"path": str(path), "type": type(data).__name__}
        )

    candidates = {}
    for key in CANDIDATE_KEYS:
        records = data.get(key) or []
        if not isinstance(records, list):
            raise CandidateLoadError(
                f"'{key}' must be a list",
                context={"path": str(path), "key": key}
            )
        candidates[key] = [record for record in records if isinstance(record, dict)]

    return candidates


def _budget_table(budget: ContextBudget) -> Table:
    table = Table(title="Context Budget")
    table.add_column("Slot", style="cyan")
    table.add_column("Tokens", justify="right", style="green")

    table.add_row("Model context", str(budget.total))
    table.add_row("System prompt reserve", str(budget.system_prompt_reserve))
    table.add_row("Safety reserve", str(budget.safety_reserve))
    for category in CATEGORY_ORDER:
        table.add_row(_CEILING_LABELS[category.value], str(budget.ceiling(category)))
    table.add_row("Unallocated", str(budget.total - budget.system_prompt_reserve - budget.safety_reserve - budget.allocated))

    return table


@app.command()
def budget(
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model preset (e.g. claude-3-opus)"),
    total: Optional[int] = typer.Option(None, "--total", "-t", help="Model context size in tokens"),
    messages: Optional[int] = typer.Option(None, "--messages", help="Conversation candidates (adaptive)"),
    memories: Optional[int] = typer.Option(None, "--memories", help="Memory candidates (adaptive)"),
    learnings: Optional[int] = typer.Option(None, "--learnings", help="Learning candidates (adaptive)"),
    entities: Optional[int] = typer.Option(None, "--entities", help="Entity candidates (adaptive)"),
    as_json: bool = typer.Option(False, "--json", help="Print the budget as JSON"),
):
    """
    Show how a context size is split across categories.

    Example:
        memweave context budget --model gpt-4-turbo
        memweave context budget --total 32000 --messages 40 --memories 10
    """
    try:
        settings = get_settings()
        counts = (messages, memories, learnings, entities)

        if any(count is not None for count in counts):
            if total is None and model:
                total = get_model_context_size(model)
            result = create_adaptive_budget(
                message_count=messages or 0,
                memory_count=memories or 0,
                learning_count=learnings or 0,
                entity_count=entities or 0,
                total=total,
                config=settings,
            )
        elif model:
            result = get_budget_for_model(model, config=settings)
        else:
            result = create_context_budget(total=total, config=settings)
    except MemweaveError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(result.model_dump(mode="json"), indent=2))
        return

    console.print(_budget_table(result))


@app.command()
def build(
    file: Path = typer.Argument(..., help="YAML or JSON file with candidate records"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model preset (e.g. claude-3-opus)"),
    total: Optional[int] = typer.Option(None, "--total", "-t", help="Model context size in tokens"),
    group: Optional[bool] = typer.Option(None, "--group/--flat", help="Group output by category"),
    metadata: bool = typer.Option(False, "--metadata", help="Append category and importance to lines"),
    lost_in_middle: Optional[bool] = typer.Option(None, "--lost-in-middle/--no-lost-in-middle", help="Arrange best items at the edges"),
    estimator: Optional[str] = typer.Option(None, "--estimator", "-e", help="Token estimator (simple/accurate)"),
    importance_weight: Optional[float] = typer.Option(None, "--importance-weight", help="Weight of stored importance"),
    recency_weight: Optional[float] = typer.Option(None, "--recency-weight", help="Weight of recency"),
    as_json: bool = typer.Option(False, "--json", help="Print rendered text and stats as JSON"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Emit a structured build record at this level"),
):
    """
    Build a context window from a candidate file.

    Example:
        memweave context build candidates.yaml --model claude-3-opus
        memweave context build candidates.json --total 16000 --flat --metadata
    """
    try:
        settings = get_settings()
        candidates = load_candidates(file)
    except MemweaveError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    weights = None
    if importance_weight is not None or recency_weight is not None:
        weights = SelectionWeights(
            importance_weight=settings.selection.importance_weight if importance_weight is None else importance_weight,
            recency_weight=settings.selection.recency_weight if recency_weight is None else recency_weight,
        )

    result = build_optimized_context(
        messages=candidates["messages"],
        memories=candidates["memories"],
        learnings=candidates["learnings"],
        entities=candidates["entities"],
        model=model,
        total=total,
        use_lost_in_middle_fix=lost_in_middle,
        weights=weights,
        estimator=estimator,
        group_by_type=group,
        include_metadata=metadata,
        config=settings,
    )

    if log_level:
        try:
            level = LogLevel(log_level.lower())
        except ValueError:
            console.print(f"[red]✗ Unknown log level: {log_level}[/red]")
            raise typer.Exit(1)
        structured = get_logger(
            "memweave.cli",
            level=level,
            json_format=settings.observability.log_format == "json",
            source=str(file)
        )
        structured.log_window(
            total_items=result.stats.total_items,
            total_tokens=result.stats.total_tokens,
            budget_total=result.window.budget.total,
            truncated=result.stats.truncated,
        )

    if as_json:
        typer.echo(json.dumps({
            "formatted": result.formatted,
            "stats": result.stats.to_dict(),
        }, indent=2))
        return

    console.print(Panel(Text(result.formatted or "(empty)"), title="Context Window"))

    stats = result.stats
    table = Table(title="Window Stats")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_row("Items", str(stats.total_items))
    table.add_row("Tokens", str(stats.total_tokens))
    table.add_row("Budget used", f"{stats.budget_used:.2%}")
    table.add_row("Budget remaining", str(stats.budget_remaining))
    for category, count in sorted(stats.items_by_category.items()):
        table.add_row(f"  {category}", str(count))
    table.add_row("Truncated", "yes" if stats.truncated else "no")
    console.print(table)


@app.command()
def compare(
    file: Path = typer.Argument(..., help="YAML or JSON file with candidate records"),
    models: Optional[List[str]] = typer.Option(None, "--model", "-m", help="Model to compare (repeatable)"),
    lost_in_middle: Optional[bool] = typer.Option(None, "--lost-in-middle/--no-lost-in-middle", help="Arrange best items at the edges"),
    estimator: Optional[str] = typer.Option(None, "--estimator", "-e", help="Token estimator (simple/accurate)"),
    as_json: bool = typer.Option(False, "--json", help="Print the comparison as JSON"),
):
    """
    Build the same candidates under several models.

    Example:
        memweave context compare candidates.yaml
        memweave context compare candidates.yaml -m gpt-4 -m claude-3-opus
    """
    try:
        settings = get_settings()
        candidates = load_candidates(file)
    except MemweaveError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    results = compare_model_budgets(
        messages=candidates["messages"],
        memories=candidates["memories"],
        learnings=candidates["learnings"],
        entities=candidates["entities"],
        models=models,
        use_lost_in_middle_fix=lost_in_middle,
        estimator=estimator,
        config=settings,
    )

    if as_json:
        typer.echo(json.dumps([result.model_dump(mode="json") for result in results], indent=2))
        return

    table = Table(title="Model Comparison")
    table.add_column("Model", style="cyan")
    table.add_column("Context", justify="right")
    table.add_column("Items", justify="right", style="green")
    table.add_column("Tokens", justify="right", style="green")
    table.add_column("Budget used", justify="right")
    table.add_column("Truncated", justify="center")

    for result in results:
        table.add_row(
            result.model,
            str(result.budget.total),
            str(result.stats.total_items),
            str(result.stats.total_tokens),
            f"{result.stats.budget_used:.2%}",
            "yes" if result.stats.truncated else "no",
        )

    console.print(table)


@app.command()
def usage(
    file: Path = typer.Argument(..., help="YAML or JSON file with candidate records"),
    estimator: Optional[str] = typer.Option(None, "--estimator", "-e", help="Token estimator (simple/accurate)"),
    as_json: bool = typer.Option(False, "--json", help="Print the estimate as JSON"),
):
    """
    Estimate raw session tokens and the context size they need.

    Example:
        memweave context usage session.yaml
    """
    try:
        settings = get_settings()
        candidates = load_candidates(file)
    except MemweaveError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    result = estimate_token_usage(
        messages=candidates["messages"],
        memories=candidates["memories"],
        estimator=estimator,
        config=settings,
    )

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    console.print(f"Messages: [green]{result.messages}[/green] tokens")
    console.print(f"Memories: [green]{result.memories}[/green] tokens")
    console.print(f"Total: [bold]{result.total}[/bold] tokens")
    console.print(f"Recommended context size: [cyan]{result.context_size}[/cyan]")


if __name__ == "__main__":
    app()
