"""Main CLI interface using Typer."""

import json
import typer
from pathlib import Path
from typing import List, Optional
from rich.console import Console
from rich.table import Table

from changelog_ko.core.exceptions import ChangelogKoError
from changelog_ko.translation.backends import build_provider_table
from changelog_ko.translation.fallback import FallbackPolicy
from changelog_ko.translation.orchestrator import TranslationOrchestrator
from changelog_ko.translation.quality import (
    FIRST_PASS_THRESHOLD, check_translation_quality, is_suspect_translation
)
from changelog_ko.translation.retranslate import retranslate_entries
from changelog_ko.utils.config_loader import load_config
from changelog_ko.utils.debug_log import DebugLogger
from changelog_ko.utils.logger import setup_logger

app = typer.Typer(
    name="changelog-ko",
    help="changelog-ko: translate software changelogs into Korean",
    add_completion=False
)

# stdout is reserved for JSON results
console = Console(stderr=True)


def _load(config_path: Optional[Path], engine: Optional[str], debug: bool, verbose: bool):
    setup_logger(level="DEBUG" if verbose else "INFO")
    config = load_config(str(config_path) if config_path else None)
    if engine:
        config["translation"]["engine"] = engine
    if debug:
        config["debug"]["enabled"] = True
    return config


def _read_json(path: Path):
    if not path.exists():
        console.print(f"[red]Error: File not found: {path}[/red]")
        raise typer.Exit(1)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: {path} is not valid JSON: {e}[/red]")
        raise typer.Exit(1)


def _read_texts(texts: List[str], input_file: Optional[Path]) -> List[str]:
    if input_file is None:
        return list(texts)
    if input_file.suffix == ".json":
        data = _read_json(input_file)
        if not isinstance(data, list) or not all(isinstance(t, str) for t in data):
            console.print("[red]Error: JSON input must be a list of strings[/red]")
            raise typer.Exit(1)
        return list(texts) + data
    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)
    lines = input_file.read_text(encoding="utf-8").splitlines()
    return list(texts) + [line for line in lines if line.strip()]


@app.command()
def translate(
    texts: Optional[List[str]] = typer.Argument(None, help="Entries to translate"),
    input_file: Optional[Path] = typer.Option(None, "-f", "--file", help="Text file (one entry per line) or JSON list"),
    engine: Optional[str] = typer.Option(None, "-e", "--engine", help="auto/gemini/glm/openai/google/mock"),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config", help="YAML config file"),
    strip: bool = typer.Option(True, "--strip-prefix/--no-strip-prefix", help="Remove commit prefixes from results"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Write JSONL debug events"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
):
    """Translate changelog entries and print the result as JSON."""
    entries = _read_texts(texts or [], input_file)
    if not entries:
        console.print("[yellow]Nothing to translate[/yellow]")
        raise typer.Exit(0)

    try:
        config = _load(config_path, engine, debug, verbose)
        orchestrator = TranslationOrchestrator.from_config(config)
        context = orchestrator.new_context(DebugLogger.from_config(config))

        console.print(f"[bold blue]Translating {len(entries)} entries[/bold blue] "
                      f"(chain: {' → '.join(orchestrator.policy.provider_order())})")

        if strip:
            result = orchestrator.translate_groups({"entries": entries}, context)["entries"]
            payload = {
                "translations": result.translations,
                "engine": result.engine,
                "provider": result.provider,
                "model": result.model,
                "endpointType": result.endpoint_type,
                "charCount": result.char_count,
            }
        else:
            payload = orchestrator.translate(entries, context).to_dict()

        context.debug.close_session(entry_count=len(entries), engine=payload["engine"])
    except ChangelogKoError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@app.command()
def chain(
    engine: Optional[str] = typer.Option(None, "-e", "--engine", help="Override the configured engine"),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config", help="YAML config file"),
):
    """Show the primary engine and the fallback chain."""
    try:
        config = _load(config_path, engine, False, False)
        providers = build_provider_table(config)
        policy = FallbackPolicy.from_config(config, providers)
        primary = policy.select_primary_engine()
    except ChangelogKoError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Provider", style="cyan")
    table.add_column("Model", style="white")
    table.add_column("Endpoint", style="dim")
    table.add_column("Status", style="green")

    for i, name in enumerate(policy.provider_order(), start=1):
        provider = providers.get(name)
        status = "✓ Available" if policy.is_provider_available(name) else "✗ Not configured"
        table.add_row(str(i), name, provider.model if provider else "-",
                      provider.endpoint_type if provider else "-", status)

    console.print(f"\n[bold]Primary engine:[/bold] {primary}")
    console.print(table)


@app.command()
def quality(
    input_file: Path = typer.Argument(..., help='JSON list of {"original", "translated"} pairs'),
    threshold: float = typer.Option(FIRST_PASS_THRESHOLD, "-t", "--threshold", help="Poor-quality ratio"),
    show: bool = typer.Option(False, "--show", help="List suspect entries"),
):
    """Check a set of translations with the quality gate."""
    setup_logger(level="WARNING")
    pairs = _read_json(input_file)
    if not isinstance(pairs, list):
        console.print("[red]Error: expected a JSON list[/red]")
        raise typer.Exit(1)

    originals = [p.get("original") or "" for p in pairs]
    translations = [p.get("translated") or "" for p in pairs]
    verdict = check_translation_quality(originals, translations, threshold, context=input_file.name)

    table = Table(title="Translation Quality", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_row("Entries", str(verdict.total))
    table.add_row("Warnings", str(verdict.warning_count))
    table.add_row("Ratio", f"{verdict.ratio * 100:.1f}%")
    table.add_row("Threshold", f"{verdict.threshold * 100:g}%")
    table.add_row("Poor quality", "[red]yes[/red]" if verdict.is_poor_quality else "no")
    console.print(table)

    if show:
        for i, (o, t) in enumerate(zip(originals, translations)):
            if is_suspect_translation(o, t):
                console.print(f"  [yellow]{i}[/yellow] {o[:70]}")

    if verdict.is_poor_quality:
        raise typer.Exit(2)


@app.command()
def retranslate(
    input_file: Path = typer.Argument(..., help='JSON object {group_id: [{"original", "translated"}, ...]}'),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Output file (default: overwrite input)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only list entries that would be retranslated"),
    engine: Optional[str] = typer.Option(None, "-e", "--engine", help="auto/gemini/glm/openai/google/mock"),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config", help="YAML config file"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Write JSONL debug events"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
):
    """Retranslate empty, untouched or non-Korean entries."""
    groups = _read_json(input_file)
    if not isinstance(groups, dict):
        console.print("[red]Error: expected a JSON object of groups[/red]")
        raise typer.Exit(1)

    try:
        config = _load(config_path, engine, debug, verbose)
        orchestrator = TranslationOrchestrator.from_config(config)
        context = orchestrator.new_context(DebugLogger.from_config(config), mode="retranslate")
        report = retranslate_entries(
            groups, orchestrator, context,
            dry_run=dry_run,
            threshold=float(config["quality"]["retranslate_threshold"])
        )
        context.debug.close_session(**report.to_dict())
    except ChangelogKoError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    if dry_run:
        console.print(f"[bold]DRY RUN:[/bold] would retranslate {report.found_count} entries")
        return

    target = output or input_file
    target.write_text(json.dumps(groups, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    console.print(
        f"[green]✓ found={report.found_count}, retranslated={report.retranslated_count}, "
        f"still-poor={len(report.still_poor)}[/green] → {target}"
    )


if __name__ == "__main__":
    app()
