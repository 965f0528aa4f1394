"""Main CLI entry point for Testimony Analyzer."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeElapsedColumn
from rich.table import Table

from testimony_analyzer import __version__
from testimony_analyzer.analysis.models import AnalysisResult
from testimony_analyzer.analysis.pipeline import AnalysisSession
from testimony_analyzer.analysis.progress import ProgressCallback
from testimony_analyzer.llm.models import LLMProvider, TokenUsage
from testimony_analyzer.llm.providers import DEFAULT_PROVIDER
from testimony_analyzer.llm.utils import (
    MODEL_MAX_OUTPUT_TOKENS, DEFAULT_MAX_OUTPUT_TOKENS, REASONING_MODELS, format_usage_summary
)
from testimony_analyzer.utils.config import Config, ProviderSettings

# Configure logging
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

console = Console()


def setup_config(config_path: Optional[Path] = None) -> Config:
    """Setup and return configuration instance.

    Args:
        config_path: Optional path to config file

    Returns:
        Configuration instance
    """
    return Config(config_path)


def format_number(number: int) -> str:
    """Format number with thousands separator."""
    return f"{number:,}"


def build_settings(
    config: Config,
    provider: Optional[str] = None,
    model: Optional[str] = None
) -> ProviderSettings:
    """Provider settings from config, with command-line overrides applied.

    Args:
        config: Loaded configuration
        provider: Provider id overriding the configured one
        model: Model id overriding the selected model of the active provider

    Returns:
        Provider settings
    """
    settings = ProviderSettings.from_config(config)
    if provider:
        settings.provider = provider
    if model:
        active = LLMProvider.from_id(settings.provider) or DEFAULT_PROVIDER
        setattr(settings, f"{active.value}_model", model)
    return settings


async def run_analysis(
    settings: ProviderSettings,
    transcript: str,
    case_summary: str,
    instructions: Optional[str],
    on_progress: ProgressCallback
) -> Tuple[Optional[AnalysisResult], Optional[str], TokenUsage]:
    """Run one analysis session and return (result, error, usage)."""
    async with AnalysisSession(settings, on_progress=on_progress) as session:
        result = await session.analyze(transcript, case_summary, extra_instructions=instructions)
        return result, session.error, session.usage


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
def main(verbose: bool) -> None:
    """Testimony Analyzer - structured analysis of hearing transcripts."""
    if verbose:
        console.print(f"[bold green]Testimony Analyzer v{__version__}[/bold green]")
        console.print("Verbose mode enabled")
        logging.getLogger().setLevel(logging.INFO)


@main.command("analyze")
@click.argument("transcript_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--summary", default="", help="Case summary text")
@click.option("--summary-file", type=click.Path(exists=True, dir_okay=False), help="Read the case summary from a file")
@click.option("--instructions", help="Extra instructions appended to the prompt")
@click.option("--provider", type=click.Choice([p.value for p in LLMProvider]), help="Provider to use (overrides config)")
@click.option("--model", help="Model to use for the active provider (overrides config)")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Path to config file")
@click.option("--output", "-o", type=click.Path(), help="Save the analysis to a JSON file")
def analyze_command(
    transcript_file: str,
    summary: str,
    summary_file: Optional[str],
    instructions: Optional[str],
    provider: Optional[str],
    model: Optional[str],
    config_path: Optional[str],
    output: Optional[str]
) -> None:
    """Analyze the oral evidence in a hearing transcript."""
    try:
        transcript = Path(transcript_file).read_text(encoding="utf-8")
        if summary_file:
            summary = Path(summary_file).read_text(encoding="utf-8")

        config = setup_config(Path(config_path) if config_path else None)
        settings = build_settings(config, provider, model)
        console.print(f"[bold cyan]Provider:[/bold cyan] {settings.provider} ({settings.active_model})")

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=console
        ) as progress:
            task = progress.add_task("Analyzing transcript...", total=100)

            def progress_callback(percent: int, message: str):
                progress.update(task, completed=percent, description=message)

            result, error, usage = asyncio.run(
                run_analysis(settings, transcript, summary, instructions, progress_callback)
            )

        if result is None:
            console.print(f"[red]Error: {error}[/red]")
            sys.exit(1)

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Section", style="cyan")
        table.add_column("Entries", justify="right")
        for section, count in result.section_counts().items():
            table.add_row(section, format_number(count))

        processo = result.processo
        console.print("\n[bold green]Analysis Complete![/bold green]")
        if processo.get("numero"):
            console.print(f"[bold cyan]Case:[/bold cyan] {processo['numero']}")
        console.print(table)
        console.print(Panel(format_usage_summary(usage), title="Token Usage", border_style="blue"))

        if output:
            output_path = Path(output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
            console.print(f"[green]Analysis saved to {output_path}[/green]")

    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user.[/yellow]")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Error: {str(e)}[/red]")
        logger.exception("Analysis failed")
        sys.exit(1)


@main.command("models")
def models_command() -> None:
    """List known models and their output-token ceilings."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Model", style="cyan")
    table.add_column("Max Output Tokens", justify="right")
    table.add_column("Reasoning", justify="center")

    for model_id, ceiling in MODEL_MAX_OUTPUT_TOKENS.items():
        reasoning = "[green]✓[/green]" if model_id in REASONING_MODELS else "-"
        table.add_row(model_id, format_number(ceiling), reasoning)

    console.print(table)
    console.print(f"Unknown models default to {format_number(DEFAULT_MAX_OUTPUT_TOKENS)} output tokens.")


if __name__ == "__main__":
    main()
