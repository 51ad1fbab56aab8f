"""CLI entry point for specmine."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import anthropic
import typer
from rich import print as rprint
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn

from specmine.config import Config
from specmine.extraction.extractor import ExtractionProgress, ExtractOptions, extract_specs
from specmine.extraction.models import ScanOptions, ScanResult
from specmine.extraction.refine import SpecRefiner
from specmine.finalize.domains import DomainRegistry, create_suggested_domains
from specmine.finalize.finalizer import FinalizeResult, Finalizer, get_finalized_specs
from specmine.reporting.report import build_report, format_report_markdown, save_report
from specmine.result import Result
from specmine.review.workflow import ReviewWorkflow
from specmine.scanning.diff import compare_scans
from specmine.scanning.scanner import ScanProgress, scan_project
from specmine.storage.cleanup import (
    cleanup_reverse_files,
    format_size,
    generate_commit_message,
    get_cleanup_status,
)
from specmine.storage.drafts import DraftStore
from specmine.storage.meta import MetaStore
from specmine.symbols.provider import (
    JsonSymbolProvider,
    NullSymbolProvider,
    PythonSymbolProvider,
    SymbolProvider,
)

app = typer.Typer(help="Reverse-extract specifications from an existing codebase.")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )


def _load_config(root: Optional[Path] = None) -> Config:
    config = Config.load()
    if root is not None:
        config.project_root = root
    issues = config.validate()
    if issues:
        for issue in issues:
            rprint(f"[red]Config error: {issue}[/red]")
        raise typer.Exit(1)
    return config


def _unwrap(result: Result):
    if not result.ok:
        rprint(f"[red]{result.error}[/red]")
        raise typer.Exit(1)
    return result.value


def _provider(symbols: str) -> SymbolProvider:
    if symbols == "none":
        return NullSymbolProvider()
    if symbols == "python":
        return PythonSymbolProvider()
    if symbols.startswith("json:"):
        return JsonSymbolProvider(Path(symbols[len("json:"):]))
    rprint(f"[red]Unknown symbol provider: {symbols} (use none, python or json:<path>)[/red]")
    raise typer.Exit(1)


def _load_snapshot(path: Path) -> ScanResult:
    if not path.exists():
        rprint(f"[red]Scan snapshot not found: {path}[/red]")
        raise typer.Exit(1)
    try:
        return ScanResult.from_dict(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        rprint(f"[red]Malformed scan snapshot {path}: {e}[/red]")
        raise typer.Exit(1)


def _run_scan(
    config: Config, options: ScanOptions, provider: SymbolProvider, hash_files: bool, quiet: bool = False
) -> ScanResult:
    if quiet:
        return _unwrap(scan_project(config.project_root, options, provider, hash_files=hash_files))

    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}")) as progress:
        task = progress.add_task("Scanning...", total=None)

        def on_progress(p: ScanProgress) -> None:
            progress.update(task, description=f"Scanning ({p.phase}, {p.total_files} files)...")

        return _unwrap(scan_project(config.project_root, options, provider, on_progress, hash_files))


def _sync_review_counts(config: Config, extracted: bool = False) -> None:
    """Mirror the review tally into the metadata counters.

    The extracted count only moves on extraction; finalizing removes drafts.
    """
    summary = _unwrap(ReviewWorkflow(DraftStore(config.drafts_path)).summary())
    counts = {"extracted_count": summary.total} if extracted else {}
    _unwrap(
        MetaStore(config.meta_path).update_extraction_status(
            **counts,
            pending_review_count=summary.pending + summary.needs_revision,
            approved_count=summary.approved,
            rejected_count=summary.rejected,
        )
    )


@app.command()
def scan(
    root: Optional[Path] = typer.Argument(None, help="Project root (defaults to SPECMINE_PROJECT_ROOT)"),
    depth: Optional[int] = typer.Option(None, help="Max directory depth"),
    include: list[str] = typer.Option([], "--include", "-i", help="Only paths matching this pattern"),
    exclude: list[str] = typer.Option([], "--exclude", "-e", help="Skip paths matching this pattern"),
    language: Optional[str] = typer.Option(None, help="Only files of this language or extension"),
    symbols: str = typer.Option("none", help="Symbol provider: none, python or json:<path>"),
    save: Optional[Path] = typer.Option(None, help="Write the scan snapshot to this JSON file"),
    hash_files: bool = typer.Option(False, "--hash", help="Record file content hashes for diffing"),
    create_domains: bool = typer.Option(True, help="Register suggested domains in domains.yml"),
    as_json: bool = typer.Option(False, "--json", help="Print the summary as JSON"),
) -> None:
    """Scan a project and suggest domains."""
    config = _load_config(root)
    options = ScanOptions(
        depth=config.scan_depth if depth is None else depth,
        include=include,
        exclude=exclude,
        language=language,
    )
    result = _run_scan(config, options, _provider(symbols), hash_files, quiet=as_json)

    _unwrap(MetaStore(config.meta_path).add_scan(result))
    if save:
        save.parent.mkdir(parents=True, exist_ok=True)
        save.write_text(result.to_json(), encoding="utf-8")

    synced = None
    if create_domains and result.summary.suggested_domains:
        synced = _unwrap(create_suggested_domains(DomainRegistry(config.domains_path), result.summary.suggested_domains))

    if as_json:
        typer.echo(json.dumps(result.to_dict()["summary"], indent=2))
        return

    summary = result.summary
    rprint(f"[bold]Scanned {result.project_path}[/bold]")
    rprint(f"  Files:      {summary.file_count}")
    rprint(f"  Symbols:    {summary.symbol_count}")
    rprint(f"  Complexity: {summary.complexity.grade} (~{summary.complexity.estimated_loc} LOC)")
    if summary.language_distribution:
        langs = sorted(summary.language_distribution.items(), key=lambda kv: -kv[1])
        rprint("  Languages:  " + ", ".join(f"{name} ({count})" for name, count in langs))
    if summary.suggested_domains:
        rprint("\n[bold]Suggested domains:[/bold]")
        for d in summary.suggested_domains:
            rprint(f"  {d.name:<20} {d.path:<30} {d.file_count} files, confidence {d.confidence}")
    if synced:
        rprint(f"\nDomains created: {len(synced.created)}, already registered: {len(synced.skipped)}")
        for error in synced.errors:
            rprint(f"  [red]{error['domain']}: {error['error']}[/red]")
    if save:
        rprint(f"\n[green]Snapshot saved to {save}[/green]")


@app.command()
def extract(
    snapshot: Optional[Path] = typer.Option(None, "--from", help="Use a saved scan snapshot instead of scanning"),
    depth: str = typer.Option("medium", help="Extraction depth: shallow, medium or deep"),
    domain: Optional[str] = typer.Option(None, help="Only extract this domain"),
    min_confidence: Optional[int] = typer.Option(None, help="Skip groups below this confidence score"),
    symbols: str = typer.Option("python", help="Symbol provider when scanning: none, python or json:<path>"),
    ai: bool = typer.Option(False, "--ai", help="Refine drafts with Claude"),
    as_json: bool = typer.Option(False, "--json", help="Print the extraction result as JSON"),
) -> None:
    """Generate draft specs from a scan."""
    config = _load_config()
    if snapshot:
        scanned = _load_snapshot(snapshot)
    else:
        scanned = _run_scan(config, ScanOptions(depth=config.scan_depth), _provider(symbols), False, quiet=as_json)

    refine = None
    if ai:
        if not config.anthropic_api_key:
            rprint("[red]ANTHROPIC_API_KEY not set[/red]")
            raise typer.Exit(1)
        refine = SpecRefiner(anthropic.Anthropic(api_key=config.anthropic_api_key))

    options = ExtractOptions(
        depth=depth,
        domain=domain,
        min_confidence=config.min_confidence if min_confidence is None else min_confidence,
    )
    store = DraftStore(config.drafts_path)
    if as_json:
        result = _unwrap(extract_specs(scanned, options, store=store, refine=refine))
    else:
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}")) as progress:
            task = progress.add_task("Extracting...", total=None)

            def on_progress(p: ExtractionProgress) -> None:
                progress.update(
                    task,
                    description=f"Extracting ({p.phase}, {p.processed_symbols}/{p.total_symbols} symbols, {p.specs_generated} specs)...",
                )

            result = _unwrap(extract_specs(scanned, options, on_progress, store, refine))

    _sync_review_counts(config, extracted=True)

    if as_json:
        typer.echo(result.to_json())
        return

    overall = result.overall_confidence
    rprint(f"[bold]Extracted {len(result.specs)} draft specs[/bold] into {result.saved_path}")
    rprint(f"  Symbols used:    {result.symbol_count}")
    rprint(f"  Symbols skipped: {result.skipped_count}")
    rprint(f"  Confidence:      {overall.score} ({overall.grade})")
    for spec in result.specs:
        rprint(f"  {spec.id}  [dim]{spec.confidence.score} ({spec.confidence.grade})[/dim]")
    for error in result.errors:
        rprint(f"  [red]{error['spec_id']}: {error['error']}[/red]")
    if not result.specs:
        rprint("\n[yellow]No drafts were generated.[/yellow]")
        rprint("Try --symbols python, a deeper --depth, or a lower --min-confidence.")
    else:
        rprint("\nNext: [bold]specmine review[/bold]")


@app.command()
def review(
    status: Optional[str] = typer.Option(None, help="Only show drafts with this review status"),
    as_json: bool = typer.Option(False, "--json", help="Print review items as JSON"),
) -> None:
    """List drafts and their review state."""
    config = _load_config()
    workflow = ReviewWorkflow(DraftStore(config.drafts_path))
    items = _unwrap(workflow.load_items())
    if status:
        items = [i for i in items if i.status == status]

    if as_json:
        rows = [
            {
                "id": i.spec_id,
                "status": i.status,
                "confidence": i.spec.confidence.score,
                "grade": i.spec.confidence.grade,
                "comments": len(i.comments),
            }
            for i in items
        ]
        typer.echo(json.dumps(rows, indent=2))
        return

    if not items:
        rprint("[yellow]No drafts to review. Run 'specmine extract' first.[/yellow]")
        return

    colors = {"pending": "yellow", "approved": "green", "rejected": "red", "needs_revision": "magenta"}
    for item in items:
        color = colors.get(item.status, "white")
        rprint(
            f"  [{color}]{item.status:<15}[/{color}] {item.spec_id}  "
            f"[dim]{item.spec.confidence.score} ({item.spec.confidence.grade})[/dim]"
        )
    summary = _unwrap(workflow.summary())
    rprint(
        f"\n{summary.total} drafts: {summary.pending} pending, {summary.approved} approved, "
        f"{summary.rejected} rejected, {summary.needs_revision} need revision"
    )


@app.command()
def approve(
    spec_id: str = typer.Argument(help="Draft id (<domain>/<name>)"),
    comment: Optional[str] = typer.Option(None, "--comment", "-m", help="Review comment"),
    reviewer: Optional[str] = typer.Option(None, help="Reviewer name"),
) -> None:
    """Approve a draft for finalization."""
    config = _load_config()
    _unwrap(ReviewWorkflow(DraftStore(config.drafts_path), reviewer).approve(spec_id, comment))
    _sync_review_counts(config)
    rprint(f"[green]Approved {spec_id}[/green]")


@app.command()
def reject(
    spec_id: str = typer.Argument(help="Draft id (<domain>/<name>)"),
    reason: str = typer.Option(..., "--reason", "-r", help="Why the draft is rejected"),
    reviewer: Optional[str] = typer.Option(None, help="Reviewer name"),
) -> None:
    """Reject a draft."""
    config = _load_config()
    _unwrap(ReviewWorkflow(DraftStore(config.drafts_path), reviewer).reject(spec_id, reason))
    _sync_review_counts(config)
    rprint(f"[red]Rejected {spec_id}[/red]")


@app.command()
def revise(
    spec_id: str = typer.Argument(help="Draft id (<domain>/<name>)"),
    suggestion: list[str] = typer.Option(..., "--suggestion", "-s", help="Requested change (repeatable)"),
    reviewer: Optional[str] = typer.Option(None, help="Reviewer name"),
) -> None:
    """Send a draft back for revision."""
    config = _load_config()
    _unwrap(ReviewWorkflow(DraftStore(config.drafts_path), reviewer).request_revision(spec_id, suggestion))
    _sync_review_counts(config)
    rprint(f"[magenta]Revision requested for {spec_id}[/magenta]")


@app.command()
def finalize(
    spec_id: Optional[str] = typer.Argument(None, help="Finalize only this approved draft"),
    domain: Optional[str] = typer.Option(None, help="Finalize approved drafts of this domain"),
    link: bool = typer.Option(False, help="Link finalized specs in domains.yml"),
) -> None:
    """Write approved drafts into the spec store."""
    config = _load_config()
    finalizer = Finalizer(
        config.project_root,
        config.specs_path,
        DraftStore(config.drafts_path),
        MetaStore(config.meta_path),
        DomainRegistry(config.domains_path),
    )

    if spec_id:
        finalized = _unwrap(finalizer.finalize_by_id(spec_id, link))
        result = FinalizeResult(finalized=[finalized])
        if finalized.link_error:
            result.errors.append({"spec_id": spec_id, "error": finalized.link_error})
    elif domain:
        result = _unwrap(finalizer.finalize_domain(domain, link))
    else:
        result = _unwrap(finalizer.finalize_all_approved(link))

    _sync_review_counts(config)

    if not result.finalized and not result.errors:
        rprint("[yellow]No approved drafts to finalize.[/yellow]")
        return
    for spec in result.finalized:
        rprint(f"  [green]{spec.id}[/green] -> {spec.spec_path}")
    for error in result.errors:
        rprint(f"  [red]{error['spec_id']}: {error['error']}[/red]")
    rprint(f"\n[bold]Finalized {len(result.finalized)} specs[/bold] ({len(result.errors)} errors)")
    if result.errors:
        raise typer.Exit(1)


@app.command()
def cleanup(
    archive: bool = typer.Option(False, help="Archive artifacts before deleting"),
    meta_only: bool = typer.Option(False, "--meta-only", help="Only delete the metadata file"),
    domain: Optional[str] = typer.Option(None, help="Only delete drafts of this domain"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be deleted"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete reverse-extraction artifacts."""
    config = _load_config()
    if not dry_run and not yes:
        typer.confirm("Delete reverse-extraction artifacts?", abort=True)

    result = _unwrap(
        cleanup_reverse_files(
            config.sdd_path,
            archive=archive,
            meta_only=meta_only,
            domain=domain,
            dry_run=dry_run,
        )
    )

    verb = "Would delete" if dry_run else "Deleted"
    rprint(f"[bold]{verb}:[/bold] {result.deleted_files} files, {result.deleted_dirs} directories")
    rprint(f"  Space: {format_size(result.freed_space)}")
    for path in result.archived:
        rprint(f"  [blue]Archived to {path}[/blue]")
    for error in result.errors:
        rprint(f"  [red]{error['path']}: {error['error']}[/red]")
    if not dry_run and (result.deleted_files or result.deleted_dirs):
        rprint("\n[bold]Suggested commit message:[/bold]")
        rprint(f"[dim]{generate_commit_message(result)}[/dim]")


@app.command()
def status(
    as_json: bool = typer.Option(False, "--json", help="Print status as JSON"),
) -> None:
    """Show scan history, review counters and artifact sizes."""
    config = _load_config()
    meta = _unwrap(MetaStore(config.meta_path).load())
    cleanup_status = _unwrap(get_cleanup_status(config.sdd_path))
    finalized = _unwrap(get_finalized_specs(config.specs_path, config.project_root))

    if as_json:
        counters = meta.extraction_status
        typer.echo(
            json.dumps(
                {
                    "last_scan": meta.last_scan.scanned_at if meta.last_scan else None,
                    "scans": len(meta.scan_history),
                    "extraction_status": asdict(counters),
                    "finalized_specs": [e.id for e in finalized],
                    "artifact_bytes": cleanup_status.total_size,
                },
                indent=2,
            )
        )
        return

    rprint("[bold]specmine status:[/bold]")
    if meta.last_scan:
        last = meta.last_scan
        rprint(f"  Last scan:       {last.scanned_at} ({last.file_count} files, {last.symbol_count} symbols)")
    else:
        rprint("  Last scan:       never")
    rprint(f"  Scan history:    {len(meta.scan_history)}")
    counters = meta.extraction_status
    rprint(f"  Extracted:       {counters.extracted_count}")
    rprint(f"  Pending review:  {counters.pending_review_count}")
    rprint(f"  Approved:        {counters.approved_count}")
    rprint(f"  Rejected:        {counters.rejected_count}")
    rprint(f"  Finalized:       {counters.finalized_count}")
    rprint(f"  Spec store:      {len(finalized)} specs")
    rprint(f"  Artifacts:       {format_size(cleanup_status.total_size)}")


@app.command()
def report(
    fmt: str = typer.Option("markdown", "--format", "-f", help="Output format: markdown or json"),
    save: bool = typer.Option(False, help="Also write the report into the reports directory"),
) -> None:
    """Summarize the extraction so far."""
    config = _load_config()
    meta = _unwrap(MetaStore(config.meta_path).load())
    items = _unwrap(ReviewWorkflow(DraftStore(config.drafts_path)).load_items())
    built = build_report(meta, items, project_path=str(config.project_root))

    if fmt == "json":
        typer.echo(built.to_json())
    else:
        typer.echo(format_report_markdown(built))

    if save:
        path = _unwrap(save_report(built, config.reports_path, fmt))
        rprint(f"[green]Report saved to {path}[/green]")


@app.command()
def diff(
    previous: Path = typer.Argument(help="Older scan snapshot (JSON)"),
    current: Path = typer.Argument(help="Newer scan snapshot (JSON)"),
    as_json: bool = typer.Option(False, "--json", help="Print the diff as JSON"),
) -> None:
    """Compare two scan snapshots."""
    result = compare_scans(_load_snapshot(previous), _load_snapshot(current))

    if as_json:
        typer.echo(result.to_json())
        return

    s = result.summary
    if not s.has_changes:
        rprint("[green]No changes between scans.[/green]")
        return
    rprint("[bold]Files:[/bold]")
    rprint(f"  +{s.files_added}  -{s.files_removed}  ~{s.files_modified}")
    rprint("[bold]Symbols:[/bold]")
    rprint(f"  +{s.symbols_added}  -{s.symbols_removed}  ~{s.symbols_modified}")
    markers = {"added": "[green]+[/green]", "removed": "[red]-[/red]", "modified": "[yellow]~[/yellow]"}
    for change in result.symbol_changes:
        rprint(f"  {markers[change.type]} {change.symbol.location.path}::{change.symbol.name_path}")
    if result.domain_changes.added or result.domain_changes.removed:
        rprint("[bold]Domains:[/bold]")
        for name in result.domain_changes.added:
            rprint(f"  [green]+ {name}[/green]")
        for name in result.domain_changes.removed:
            rprint(f"  [red]- {name}[/red]")


if __name__ == "__main__":
    app()
