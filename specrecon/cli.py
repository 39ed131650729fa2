"""specrecon CLI - reconcile a customer specification against supplier invoices.

Commands:
- init: Initialize database schema
- project-create: Create a project
- ingest-spec: Import a customer specification (XLSX/CSV)
- ingest-invoice: Import supplier invoices (PDF/XLSX/CSV)
- preview: Show raw rows and column mappings of a stored invoice
- reparse: Re-parse a stored invoice with a saved or given mapping
- match: Run matching for a project
- matches: Show candidates per specification item
- confirm / reject / manual-match: Review candidates
- search: Find specification items for manual matching
- rules: List learned matching rules
- summary: Priced summary grouped by section
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from specrecon.config import get_config
from specrecon.core.logging import configure_logging
from specrecon.db.connection import close_db, get_session, init_db
from specrecon.db.ingest import (
    create_project,
    ingest_invoice,
    ingest_specification,
    preview_invoice,
    reparse_invoice,
)
from specrecon.db.rules import SqlRuleStore
from specrecon.matching.service import (
    confirm_match,
    get_matching_view,
    manual_match,
    reject_match,
    run_matching,
    search_project_spec_items,
)
from specrecon.models import INVOICE_FIELDS, ColumnMapping, ConfirmationKind
from specrecon.reporting.summary import project_summary

app = typer.Typer(
    name="specrecon",
    help="specrecon - Specification vs. supplier invoice reconciliation",
    no_args_is_help=True,
)

console = Console()

PREVIEW_ROWS = 15


@app.callback()
def main_callback():
    try:
        config = get_config()
    except KeyError as e:
        console.print(f"[red]✗[/red] {e.args[0]}")
        raise typer.Exit(code=1) from e
    configure_logging(config.log_level, config.log_format)


def _run(coro):
    """Run a command coroutine; domain errors exit with status 1."""

    async def _wrapped():
        try:
            return await coro
        finally:
            await close_db()

    try:
        return asyncio.run(_wrapped())
    except (LookupError, ValueError) as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1) from e


def _uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as e:
        raise typer.BadParameter(f"Not a valid id: {value}") from e


def _money(value: float | None) -> str:
    return "" if value is None else f"{value:,.2f}".replace(",", " ")


def _mapping_text(mapping: ColumnMapping | None) -> str:
    if mapping is None:
        return "—"
    assigned = ", ".join(f"{k}={v}" for k, v in mapping.columns.items() if v is not None)
    return f"headerRow={mapping.header_row}: {assigned}"


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")
    if drop:
        console.print("[yellow]Dropping existing tables...[/yellow]")
    _run(init_db(drop=drop))
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command(name="project-create")
def project_create_cmd(
    name: str = typer.Argument(..., help="Project name"),
    description: str | None = typer.Option(None, "--description", "-d"),
):
    """Create a project and print its id."""

    async def _create():
        async with get_session() as session:
            project = await create_project(session, name, description)
            return project.id

    project_id = _run(_create())
    console.print(f"[bold green]✓[/bold green] Project created: {project_id}")


@app.command(name="ingest-spec")
def ingest_spec_cmd(
    files: list[Path] = typer.Argument(..., help="Specification files (XLSX/CSV)"),
    project_id: str = typer.Option(..., "--project", help="Project ID"),
    section: str | None = typer.Option(None, "--section", help="Engineering section"),
):
    """Import customer specification files."""
    project = _uuid(project_id)
    console.print(f"[bold]Ingesting specifications:[/bold] project={project}")

    async def _ingest():
        total = 0
        async with get_session() as session:
            for file_path in files:
                console.print(f"  Processing: {file_path}")
                _, result = await ingest_specification(
                    session, project, file_path, section, get_config().parsing
                )
                total += len(result.items)
                console.print(
                    f"    [green]✓[/green] {len(result.items)} items imported "
                    f"({result.skipped_rows} skipped of {result.total_rows} rows)"
                )
                for err in result.errors[:5]:  # Show first 5 errors
                    console.print(f"      {err}", style="dim")
        return total

    total = _run(_ingest())
    console.print(f"\n[bold green]✓[/bold green] Total: {total} items imported")


@app.command(name="ingest-invoice")
def ingest_invoice_cmd(
    files: list[Path] = typer.Argument(..., help="Invoice files (PDF/XLSX/CSV)"),
    project_id: str = typer.Option(..., "--project", help="Project ID"),
):
    """Import supplier invoices."""
    project = _uuid(project_id)
    console.print(f"[bold]Ingesting invoices:[/bold] project={project}")

    async def _ingest():
        async with get_session() as session:
            for file_path in files:
                console.print(f"  Processing: {file_path}")
                invoice, result = await ingest_invoice(
                    session, project, file_path, get_config().parsing
                )
                console.print(
                    f"    [green]✓[/green] {invoice.id}: {len(result.items)} items, "
                    f"status={invoice.status}, quality={result.quality.value}"
                )
                console.print(
                    f"      №{result.invoice_number or '—'} от {result.invoice_date or '—'}, "
                    f"{result.supplier_name or 'поставщик не определён'}, "
                    f"итого {_money(result.total_amount) or '—'}",
                    style="dim",
                )
                if result.quality_reason:
                    console.print(f"      {result.quality_reason}", style="dim")
                for err in result.errors[:5]:
                    console.print(f"      {err}", style="dim")

    _run(_ingest())


@app.command()
def preview(
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
    rows: int = typer.Option(PREVIEW_ROWS, "--rows", help="Rows to show"),
):
    """Show raw rows and detected/saved column mappings of an invoice."""
    invoice = _uuid(invoice_id)

    async def _preview():
        async with get_session() as session:
            return await preview_invoice(session, invoice, get_config().parsing)

    result = _run(_preview())
    for err in result.errors:
        console.print(f"[red]✗[/red] {err}")

    table = Table(title=f"Invoice rows ({result.total_rows} total)")
    table.add_column("#", justify="right", style="cyan")
    width = max((len(row) for row in result.rows), default=0)
    for col in range(width):
        table.add_column(str(col))
    for index, row in enumerate(result.rows[:rows]):
        table.add_row(str(index), *row)
    console.print(table)

    console.print(f"[bold]Detected:[/bold] {_mapping_text(result.detected_mapping)}")
    console.print(f"[bold]Saved:[/bold] {_mapping_text(result.supplier_mapping)}")


@app.command()
def reparse(
    invoice_id: str = typer.Argument(..., help="Invoice ID"),
    header_row: int | None = typer.Option(None, "--header-row", help="Header row index"),
    columns: list[str] = typer.Option(
        [], "--column", "-c", help="Field=index, e.g. name=1 (repeatable)"
    ),
):
    """Re-parse a stored invoice, saving a given mapping for its supplier."""
    invoice = _uuid(invoice_id)

    mapping = None
    if header_row is not None:
        assigned: dict[str, int | None] = {name: None for name in INVOICE_FIELDS}
        for spec in columns:
            field_name, _, index = spec.partition("=")
            if field_name not in assigned or not index.isdigit():
                raise typer.BadParameter(f"Invalid column spec: {spec}")
            assigned[field_name] = int(index)
        mapping = ColumnMapping(columns=assigned, header_row=header_row)

    async def _reparse():
        async with get_session() as session:
            return await reparse_invoice(session, invoice, mapping, get_config().parsing)

    result = _run(_reparse())
    console.print(
        f"[bold green]✓[/bold green] {len(result.items)} items, status={result.status.value}"
    )
    for err in result.errors[:5]:
        console.print(f"  {err}", style="dim")


@app.command()
def match(
    project_id: str = typer.Argument(..., help="Project ID"),
):
    """Run matching for all specification items of a project."""
    project = _uuid(project_id)
    console.print(f"[bold]Running matching:[/bold] project={project}")

    async def _match():
        async with get_session() as session:
            return await run_matching(session, project, get_config().matching)

    stats = _run(_match())

    table = Table(title="Matching")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")
    table.add_row("Specification items", str(stats.total))
    table.add_row("Matched", str(stats.matched))
    table.add_row("Unmatched", str(stats.unmatched))
    table.add_row("Candidates", str(stats.candidates))
    console.print(table)


@app.command()
def matches(
    project_id: str = typer.Argument(..., help="Project ID"),
    unmatched_only: bool = typer.Option(False, "--unmatched", help="Only items without candidates"),
):
    """Show candidates per specification item."""
    project = _uuid(project_id)

    async def _view():
        async with get_session() as session:
            return await get_matching_view(session, project)

    view = _run(_view())

    table = Table(title="Candidates")
    table.add_column("Specification item")
    table.add_column("Match ID", style="dim")
    table.add_column("Invoice item")
    table.add_column("Supplier")
    table.add_column("Price", justify="right")
    table.add_column("Conf.", justify="right")
    table.add_column("Type")
    table.add_column("", justify="center")

    for entry in view.items:
        if unmatched_only and entry.matches:
            continue
        if not entry.matches:
            table.add_row(entry.spec_item.name, "", "[red]нет совпадений[/red]", "", "", "", "", "")
            continue
        for index, m in enumerate(entry.matches):
            marker = "✓" if m.is_confirmed else ("•" if m.is_selected else "")
            table.add_row(
                entry.spec_item.name if index == 0 else "",
                str(m.id),
                m.invoice_name,
                m.supplier_name or "",
                _money(m.price),
                f"{m.confidence:.3f}",
                m.match_type,
                marker,
            )
    console.print(table)

    s = view.summary
    console.print(
        f"Total: {s.total}  matched: {s.matched}  confirmed: {s.confirmed}  unmatched: {s.unmatched}"
    )


@app.command()
def confirm(
    match_id: str = typer.Argument(..., help="Match ID"),
    analog: bool = typer.Option(False, "--analog", help="Confirm as an acceptable analog"),
):
    """Confirm a candidate and learn a matching rule from it."""
    match_uuid = _uuid(match_id)
    kind = ConfirmationKind.ANALOG if analog else ConfirmationKind.EXACT

    async def _confirm():
        async with get_session() as session:
            return await confirm_match(session, match_uuid, kind, get_config().learning)

    rule = _run(_confirm())
    console.print(f"[bold green]✓[/bold green] Confirmed ({kind.value})")
    if rule is not None:
        console.print(
            f"  Rule: {rule.specification_pattern!r} → {rule.invoice_pattern!r} "
            f"confidence={rule.confidence:.2f} used={rule.times_used}",
            style="dim",
        )


@app.command()
def reject(
    match_id: str = typer.Argument(..., help="Match ID"),
):
    """Delete a candidate."""
    match_uuid = _uuid(match_id)

    async def _reject():
        async with get_session() as session:
            await reject_match(session, match_uuid)

    _run(_reject())
    console.print("[bold green]✓[/bold green] Candidate removed")


@app.command(name="manual-match")
def manual_match_cmd(
    spec_item_id: str = typer.Option(..., "--spec-item", help="Specification item ID"),
    invoice_item_id: str = typer.Option(..., "--invoice-item", help="Invoice item ID"),
):
    """Link a specification item to an invoice item by hand."""
    spec_uuid = _uuid(spec_item_id)
    invoice_uuid = _uuid(invoice_item_id)

    async def _manual():
        async with get_session() as session:
            matched = await manual_match(session, spec_uuid, invoice_uuid, get_config().learning)
            return matched.id

    matched_id = _run(_manual())
    console.print(f"[bold green]✓[/bold green] Matched: {matched_id}")


@app.command()
def search(
    project_id: str = typer.Argument(..., help="Project ID"),
    query: str = typer.Argument(..., help="Search text (2+ characters)"),
    limit: int = typer.Option(20, "--limit", help="Maximum results"),
):
    """Find specification items for manual matching."""
    project = _uuid(project_id)

    async def _search():
        async with get_session() as session:
            return await search_project_spec_items(session, project, query, limit)

    hits = _run(_search())
    if not hits:
        console.print("[yellow]Nothing found[/yellow]")
        return

    table = Table(title=f"Search: {query}")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Code")
    table.add_column("Section")
    table.add_column("Score", justify="right", style="green")
    for hit in hits:
        table.add_row(
            str(hit.item.id),
            hit.item.name,
            hit.item.equipment_code or "",
            hit.item.section or "",
            f"{hit.score:.0f}",
        )
    console.print(table)


@app.command()
def rules(
    supplier_id: str | None = typer.Option(None, "--supplier", help="Only rules of this supplier"),
):
    """List learned matching rules."""
    supplier = _uuid(supplier_id) if supplier_id else None

    async def _rules():
        async with get_session() as session:
            return await SqlRuleStore(session).list_rules(supplier)

    learned = _run(_rules())

    table = Table(title=f"Matching rules ({len(learned)})")
    table.add_column("Specification pattern")
    table.add_column("Invoice pattern")
    table.add_column("Conf.", justify="right", style="green")
    table.add_column("Used", justify="right")
    table.add_column("Analog", justify="center")
    table.add_column("Supplier", style="dim")
    for rule in learned:
        table.add_row(
            rule.specification_pattern,
            rule.invoice_pattern,
            f"{rule.confidence:.2f}",
            str(rule.times_used),
            "✓" if rule.is_analog else "",
            str(rule.supplier_id) if rule.supplier_id else "",
        )
    console.print(table)


@app.command()
def summary(
    project_id: str = typer.Argument(..., help="Project ID"),
):
    """Priced summary of a project grouped by section."""
    project = _uuid(project_id)

    async def _summary():
        async with get_session() as session:
            return await project_summary(session, project)

    result = _run(_summary())

    table = Table(title=f"Итоговая спецификация: {result.project_name}")
    table.add_column("№", justify="right")
    table.add_column("Наименование")
    table.add_column("Ед.")
    table.add_column("Кол-во", justify="right")
    table.add_column("Цена", justify="right")
    table.add_column("Сумма", justify="right")
    table.add_column("Поставщик")

    row_number = 1
    for section in result.sections:
        table.add_row("", f"[bold]{section.name}[/bold]", "", "", "", "", "")
        for line in section.lines:
            table.add_row(
                str(row_number),
                line.name,
                line.unit or "",
                "" if line.quantity is None else f"{line.quantity:g}",
                _money(line.price),
                _money(line.amount),
                line.supplier_name or "",
            )
            row_number += 1
        table.add_row("", f"Итого {section.name}:", "", "", "", _money(section.subtotal), "")

    table.add_row("", "[bold]ОБЩИЙ ИТОГ:[/bold]", "", "", "", f"[bold]{_money(result.grand_total)}[/bold]", "")
    console.print(table)


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
