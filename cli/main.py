"""Typer-powered command line for one-shot option signal batches."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from core.config import RuntimeSettings, load_scoring_config
from core.errors import ConfigError, ModelUnavailableError, OptionScoutError
from core.logging import setup_logging
from services.pipeline.context import PipelineContext
from services.pipeline.runner import run_batch
from services.sentiment.api import build_model
from services.signals.types import AnalysisReport

console = Console()
app = typer.Typer(add_completion=False, help="Options signal scanner")

SYMBOLS_OPTION = typer.Option(None, "--symbols", help="Comma-separated tickers; defaults to symbols in the news")
CONFIG_OPTION = typer.Option(None, "--config", exists=True, readable=True, help="YAML scoring overrides")
JSON_OPTION = typer.Option(False, "--json", help="Print the full report as JSON")
TIMEOUT_OPTION = typer.Option(None, "--timeout", min=1.0, help="Abort the batch after this many seconds")


def _load_env() -> RuntimeSettings:
    load_dotenv(override=False)
    settings = RuntimeSettings()
    setup_logging(settings.log_level)
    return settings


def _normalise_symbols(raw: Optional[str]) -> Optional[List[str]]:
    if raw is None:
        return None
    return [item.strip().upper() for item in raw.split(",") if item.strip()]


def _render(report: AnalysisReport) -> None:
    summary = report.market_summary
    meta = report.execution_metadata
    console.print(
        Panel.fit(
            f"Sentiment: {summary.market_sentiment}  Risk: {summary.risk_level}  "
            f"Signals: {summary.total_signals} ({summary.bullish_signals} call / {summary.bearish_signals} put)\n"
            f"Position size: {summary.recommended_position_size:.1f}%  "
            f"Volatility regime: {report.risk_metrics.volatility_regime}",
            title="Market summary",
            border_style="cyan",
        )
    )

    table = Table(title="Trading signals", show_header=True, header_style="bold magenta")
    table.add_column("Symbol")
    table.add_column("Signal")
    table.add_column("Contract")
    table.add_column("Entry", justify="right")
    table.add_column("Conf", justify="right")
    table.add_column("Risk", justify="right")
    table.add_column("Horizon")
    table.add_column("Reasoning")
    for signal in report.trading_signals:
        colour = "green" if signal.signal_type == "BUY_CALL" else "red"
        table.add_row(
            signal.symbol,
            f"[{colour}]{signal.signal_type}[/{colour}]",
            signal.contract_key,
            f"{signal.entry_price:.2f}",
            f"{signal.confidence:.2f}",
            f"{signal.risk_score:.2f}",
            signal.time_horizon,
            "; ".join(signal.reasoning[:3]),
        )
    console.print(table)

    failed = [a for a in report.symbol_analyses if a.error]
    for analysis in failed:
        console.print(f"[yellow]{analysis.symbol}:[/yellow] {analysis.error}")
    console.print(
        f"[dim]{meta.symbols_analyzed} symbols, {meta.api_calls_made} API calls, "
        f"cache hit rate {meta.cache_hit_rate:.0%}, {meta.processing_time_ms} ms[/dim]"
    )


@app.command()
def check() -> None:
    """Verify Alpaca credentials are configured."""

    settings = _load_env()
    if not settings.credentials_ok():
        console.print("[red]NOT READY:[/red] missing APCA_API_KEY_ID / APCA_API_SECRET_KEY")
        raise typer.Exit(code=1)
    console.print(f"[green]READY[/green] data={settings.data_url} backend={settings.sentiment_backend}")


@app.command()
def run(
    symbols: Optional[str] = SYMBOLS_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    as_json: bool = JSON_OPTION,
    timeout: Optional[float] = TIMEOUT_OPTION,
) -> None:
    """Run one analysis batch against Alpaca market data."""

    settings = _load_env()
    try:
        scoring = load_scoring_config(config)
        context = PipelineContext.build(settings, scoring)
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        raise typer.Exit(code=2) from None

    async def runner() -> AnalysisReport:
        async with context:
            return await asyncio.wait_for(run_batch(context, _normalise_symbols(symbols)), timeout=timeout)

    try:
        report = asyncio.run(runner())
    except ModelUnavailableError as exc:
        console.print(f"[red]Sentiment model unavailable:[/red] {exc}")
        raise typer.Exit(code=3) from None
    except asyncio.TimeoutError:
        console.print(f"[red]Batch timed out after {timeout:.0f}s[/red]")
        raise typer.Exit(code=4) from None
    except OptionScoutError as exc:
        console.print(f"[red]Batch failed:[/red] {exc}")
        raise typer.Exit(code=1) from None

    if as_json:
        sys.stdout.write(report.model_dump_json(indent=2) + "\n")
        return
    _render(report)


@app.command()
def sentiment(texts: List[str] = typer.Argument(..., help="Texts to score")) -> None:
    """Score texts with the configured sentiment backend."""

    settings = _load_env()
    model = build_model(settings)
    try:
        model.load()
    except ModelUnavailableError as exc:
        console.print(f"[red]Sentiment model unavailable:[/red] {exc}")
        raise typer.Exit(code=3) from None

    table = Table(title=f"Sentiment ({model.name})", show_header=True)
    table.add_column("Text")
    table.add_column("Label")
    table.add_column("Confidence", justify="right")
    for text, result in zip(texts, model.predict_batch(texts)):
        table.add_row(text, result.label, f"{result.confidence:.3f}")
    console.print(table)


if __name__ == "__main__":  # pragma: no cover - manual execution only
    app()
