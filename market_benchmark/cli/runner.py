# market_benchmark/cli/runner.py

"""Headless CLI runner for category and competitor analyses."""

import dataclasses
import json
import logging
import sys
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from rich.console import Console
from rich.table import Table

from market_benchmark.models.analysis import (
    CategoryAnalysisResult,
    CompetitiveAnalysis,
    RankedListing,
)
from market_benchmark.services.category_analyzer import CategoryAnalyzer

logger = logging.getLogger("market_benchmark.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def _json_default(value: Any) -> Any:
    """Encode the non-JSON types found in analysis results."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def to_json(result: CategoryAnalysisResult | CompetitiveAnalysis) -> str:
    """Serialise an analysis result to an indented JSON document."""
    return json.dumps(
        dataclasses.asdict(result),
        default=_json_default,
        ensure_ascii=False,
        indent=2,
    )


def _ranked_table(title: str, ranked: list[RankedListing]) -> Table:
    table = Table(title=title, show_lines=True, title_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Listing", max_width=50)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Sold", justify="right")
    table.add_column("Rating", justify="center")
    table.add_column("Score", justify="right", style="bold")
    table.add_column("Advantage", style="magenta")
    table.add_column("Tier", style="dim")

    for entry in ranked:
        lst = entry.listing
        table.add_row(
            str(entry.rank),
            lst.name[:50],
            f"R$ {lst.price:,.2f}",
            str(lst.sold_count),
            f"{lst.rating:.1f}" if lst.rating is not None else "—",
            str(entry.performance_score),
            entry.competitive_advantage,
            lst.source_tier.value,
        )
    return table


def _print_category(result: CategoryAnalysisResult) -> None:
    """Render a category analysis as Rich tables on stdout."""
    console = Console()
    stats = result.price_statistics
    if stats is not None:
        summary = Table(
            title=f"Price statistics: {result.category}",
            title_style="bold cyan",
        )
        summary.add_column("Metric", style="bold")
        summary.add_column("Value", justify="right")
        for label, value in (
            ("Min", f"R$ {stats.min:,.2f}"),
            ("Q1", f"R$ {stats.q1:,.2f}"),
            ("Median", f"R$ {stats.median:,.2f}"),
            ("Average", f"R$ {stats.average:,.2f}"),
            ("Q3", f"R$ {stats.q3:,.2f}"),
            ("Max", f"R$ {stats.max:,.2f}"),
            ("Std dev", f"R$ {stats.std_dev:,.2f}"),
            ("Total sales", f"{stats.total_sales:,}"),
        ):
            summary.add_row(label, value)
        console.print(summary)

    console.print(_ranked_table("Top performers", result.top_performers))

    recs = Table(
        title="Recommendations", show_lines=True, title_style="bold cyan"
    )
    recs.add_column("Priority", justify="center")
    recs.add_column("Type", style="magenta")
    recs.add_column("Recommendation")
    recs.add_column("Confidence", justify="right")
    for rec in result.recommendations:
        recs.add_row(
            rec.priority.value,
            rec.type.value,
            f"[bold]{rec.title}[/bold]\n{rec.description}\n"
            f"[dim]{rec.action}[/dim]",
            f"{rec.confidence}%",
        )
    console.print(recs)


def _print_competitors(result: CompetitiveAnalysis) -> None:
    """Render a competitor analysis as Rich tables on stdout."""
    console = Console()
    console.print(
        _ranked_table(
            f"Competitors for '{result.product_name}' "
            f"({result.market_position})",
            result.direct_competitors,
        )
    )
    comparison = result.price_comparison
    if comparison is not None:
        console.print(
            f"Your price R$ {comparison.current_price:,.2f} vs median "
            f"R$ {comparison.market_median:,.2f}: "
            f"[bold]{comparison.price_position}[/bold]"
        )
    for rec in result.recommendations:
        console.print(f"[{rec.priority.value}] {rec.title}: {rec.action}")


def _emit(
    result: CategoryAnalysisResult | CompetitiveAnalysis,
    output_format: str,
) -> None:
    if output_format == "table":
        if isinstance(result, CategoryAnalysisResult):
            _print_category(result)
        else:
            _print_competitors(result)
    else:
        sys.stdout.write(to_json(result))
        sys.stdout.write("\n")


async def cli_analyze(
    category: str,
    limit: int | None,
    deadline: float | None,
    output_format: str,
) -> int:
    """Run a headless category analysis and return an exit code."""
    _err.print(f"[bold]Analysing category:[/bold] {category}")
    analyzer = CategoryAnalyzer()
    try:
        result = await analyzer.analyze_category(category, limit, deadline)
    except ValueError as exc:
        _err.print(f"[red]Error: {exc}[/red]")
        return 1

    parts: list[str] = [result.data_source.value]
    if result.duplicates_removed:
        parts.append(f"{result.duplicates_removed} deduped")
    if result.invalid_count:
        parts.append(f"{result.invalid_count} invalid")
    if result.deadline_exceeded:
        parts.append("deadline exceeded")
    _err.print(
        f"[green]✓ {result.total_listings} listings"
        f" ({', '.join(parts)})[/green]"
    )

    _emit(result, output_format)
    return 0


async def cli_compete(
    product_name: str,
    current_price: str | None,
    limit: int | None,
    output_format: str,
) -> int:
    """Run a headless competitor analysis and return an exit code."""
    _err.print(f"[bold]Analysing competitors of:[/bold] {product_name}")
    analyzer = CategoryAnalyzer()
    try:
        result = await analyzer.analyze_competitors(
            product_name, current_price, limit
        )
    except ValueError as exc:
        _err.print(f"[red]Error: {exc}[/red]")
        return 1

    _err.print(
        f"[green]✓ {result.competitors_found} competitors"
        f" ({result.data_source.value})[/green]"
    )
    _emit(result, output_format)
    return 0


async def run_health_check() -> int:
    """Run connectivity health check on marketplace endpoints."""
    from market_benchmark.services.health_checker import HealthChecker

    _err.print("[bold]Running marketplace health check...[/bold]")
    checker = HealthChecker()
    results = await checker.check_all()

    table = Table(
        title="Marketplace Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Endpoint", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status == "slow":
            status = "[yellow]⚠️  SLOW[/yellow]"
        else:
            status = "[red]❌ DOWN[/red]"
            any_down = True

        latency = (
            f"{r.latency_ms:.0f}ms"
            if r.latency_ms > 0
            else "—"
        )
        table.add_row(r.target, status, latency, r.message)

    Console().print(table)
    return 1 if any_down else 0
