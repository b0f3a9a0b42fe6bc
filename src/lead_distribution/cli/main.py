"""Main CLI entry point for the leaddist command."""

import functools
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..audit.log import AuditEventType
from ..config import settings
from ..engine import DistributionEngine
from ..exceptions import LeadDistributionError
from ..redistribution.csv_format import write_leads_csv
from ..redistribution.models import (
    Destination,
    DestinationStrategy,
    ImportBatchPayload,
    LeadFilters,
    Selection,
)
from ..schemas.queue import parse_lead

console = Console()


def handle_errors(func):
    """Print engine errors in red and exit with status 1."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except LeadDistributionError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            sys.exit(1)
    return wrapper


def get_engine(data_dir: Optional[str] = None) -> DistributionEngine:
    """Load engine state from the data directory."""
    return DistributionEngine.open(data_dir)


def filter_options(func):
    """Archive filter options shared by search, preview and execute."""
    options = [
        click.option("--reason", help="Filter by reason"),
        click.option("--owner", help="Filter by owner"),
        click.option("--queue", "previous_queue", help="Filter by previous queue"),
        click.option("--tag", help="Filter by tag"),
        click.option("--status", help="Filter by status (archived, held)"),
        click.option("--from", "start_date", type=click.DateTime(["%Y-%m-%d"]), help="Archived on or after"),
        click.option("--to", "end_date", type=click.DateTime(["%Y-%m-%d"]), help="Archived on or before"),
        click.option("--search", "-q", help="Text search over name, email, origin, owner and reason"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def selection_options(func):
    """Selection and destination options for preview and execute."""
    options = [
        click.option("--id", "ids", multiple=True, help="Lead id to select (repeatable)"),
        click.option("--exclude", multiple=True, help="Lead id to leave out of a filter selection"),
        click.option("--target", required=True, help="Destination queue or member id"),
        click.option("--target-name", default="", help="Destination display name"),
        click.option("--strategy", type=click.Choice([s.value for s in DestinationStrategy]),
                     default=DestinationStrategy.QUEUE.value, help="Destination kind"),
    ]
    for option in reversed(options):
        func = option(func)
    return filter_options(func)


def build_filters(reason, owner, previous_queue, tag, status, start_date, end_date, search) -> LeadFilters:
    return LeadFilters(
        reason=reason,
        owner=owner,
        previous_queue=previous_queue,
        tag=tag,
        status=status,
        start_date=start_date.date() if start_date else None,
        end_date=end_date.date() if end_date else None,
        search=search,
    )


def build_selection(ids: Tuple[str, ...], exclude: Tuple[str, ...], filters: LeadFilters) -> Selection:
    if ids:
        return Selection.by_ids(list(ids))
    return Selection.matching(filters, list(exclude))


@click.group()
@click.version_option(version=__version__, prog_name="leaddist")
@click.option("--data-dir", envvar="LEAD_DIST_DATA_DIR", help="State directory")
@click.pass_context
@handle_errors
def cli(ctx, data_dir: Optional[str]):
    """Lead distribution - queue routing, rotation and redistribution.

    \b
    Quick Start:
      leaddist queues                                  # Show queues and rotation
      leaddist distribute '{"id": "L1", "preco": 600}'  # Route one lead
      leaddist retry-held                              # Retry held leads
      leaddist search --reason "No response"           # Browse the archive
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir


# ============================================================================
# ROUTING
# ============================================================================

@cli.command()
@click.pass_context
@handle_errors
def queues(ctx):
    """Show queues in priority order with their rotation state."""
    engine = get_engine(ctx.obj["data_dir"])
    queue_list = engine.registry.queues

    if not queue_list:
        console.print("[yellow]No queues configured.[/yellow]")
        return

    table = Table(title=f"Queues ({len(queue_list)})")
    table.add_column("Priority", justify="right", style="dim")
    table.add_column("ID")
    table.add_column("Name", style="cyan")
    table.add_column("Enabled", justify="center")
    table.add_column("Members")
    table.add_column("Last Served")
    table.add_column("Received", justify="right")

    for queue in queue_list:
        members = ", ".join(
            f"{m.rotation_order}:{m.id}" + ("" if m.active else " (inactive)")
            for m in sorted(queue.members, key=lambda m: m.rotation_order)
        )
        table.add_row(
            str(queue.priority),
            queue.id,
            queue.name,
            "[green]yes[/green]" if queue.enabled else "[dim]no[/dim]",
            members or "-",
            queue.next_member_id or "-",
            str(queue.received_count),
        )

    console.print(table)


@cli.command()
@click.argument("lead_json")
@click.option("--actor", default="system", help="Who is distributing")
@click.pass_context
@handle_errors
def distribute(ctx, lead_json: str, actor: str):
    """Route one lead, given as JSON or @path/to/lead.json."""
    if lead_json.startswith("@"):
        lead_json = Path(lead_json[1:]).read_text(encoding="utf-8")
    try:
        raw = json.loads(lead_json)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Invalid JSON: {e}")

    lead = parse_lead(raw)
    engine = get_engine(ctx.obj["data_dir"])
    result = engine.registry.distribute(lead, actor=actor)
    engine.save()

    if result.member:
        console.print(
            f"[green]Lead {lead['id']} assigned to {result.member.id} "
            f"via queue {result.queue.id}[/green]"
        )
    else:
        queue_note = f" (queue {result.queue.id})" if result.queue else ""
        console.print(f"[yellow]Lead {lead['id']} held: {result.reason}{queue_note}[/yellow]")


@cli.command("retry-held")
@click.option("--actor", default="system", help="Who is retrying")
@click.pass_context
@handle_errors
def retry_held(ctx, actor: str):
    """Run every held lead through distribution again."""
    engine = get_engine(ctx.obj["data_dir"])
    report = engine.worker.retry_held(engine.registry.queues, actor=actor)
    engine.save()

    for entry, result in zip(report.distributed_leads, report.distributed):
        console.print(f"[green]{entry.lead_id} -> {result.member.id} ({result.queue.id})[/green]")
    console.print(
        f"Distributed [green]{len(report.distributed)}[/green], "
        f"still held [yellow]{len(report.still_held)}[/yellow]"
    )


@cli.command("check-in")
@click.argument("member_id")
@click.pass_context
@handle_errors
def check_in(ctx, member_id: str):
    """Mark a member present in every queue they belong to."""
    engine = get_engine(ctx.obj["data_dir"])
    touched = engine.registry.check_in(member_id)
    engine.save()
    console.print(f"[green]{member_id} checked in ({', '.join(touched)})[/green]")


@cli.command("check-out")
@click.argument("member_id")
@click.pass_context
@handle_errors
def check_out(ctx, member_id: str):
    """Mark a member absent in every queue they belong to."""
    engine = get_engine(ctx.obj["data_dir"])
    touched = engine.registry.check_out(member_id)
    engine.save()
    console.print(f"[green]{member_id} checked out ({', '.join(touched)})[/green]")


# ============================================================================
# REDISTRIBUTION
# ============================================================================

@cli.command()
@filter_options
@click.option("--page", default=1, help="Page number")
@click.option("--per-page", default=10, help="Leads per page")
@click.pass_context
@handle_errors
def search(ctx, reason, owner, previous_queue, tag, status, start_date, end_date, search, page, per_page):
    """Browse held and archived leads."""
    engine = get_engine(ctx.obj["data_dir"])
    filters = build_filters(reason, owner, previous_queue, tag, status, start_date, end_date, search)
    result = engine.worker.search(filters, page=page, per_page=per_page)

    if not result.items:
        console.print("[yellow]No leads found matching criteria.[/yellow]")
        return

    table = Table(title=f"Leads (page {page}, {result.total} total)")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan", max_width=25)
    table.add_column("Reason")
    table.add_column("Owner")
    table.add_column("Queue")
    table.add_column("Status")
    table.add_column("Archived")

    for lead in result.items:
        table.add_row(
            lead.id,
            lead.name,
            lead.reason,
            lead.owner,
            lead.previous_queue,
            lead.status,
            lead.archived_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@cli.command()
@selection_options
@click.pass_context
@handle_errors
def preview(ctx, ids, exclude, target, target_name, strategy,
            reason, owner, previous_queue, tag, status, start_date, end_date, search):
    """Estimate a redistribution without changing anything."""
    engine = get_engine(ctx.obj["data_dir"])
    filters = build_filters(reason, owner, previous_queue, tag, status, start_date, end_date, search)
    selection = build_selection(ids, exclude, filters)
    destination = Destination(target, target_name, DestinationStrategy(strategy))

    result = engine.worker.preview(selection, destination)
    reasons = "\n".join(f"  {r['reason'] or '-'}: {r['count']}" for r in result.reason_breakdown)
    console.print(Panel.fit(
        f"Selected: [bold]{result.total_selected}[/bold] leads\n"
        f"Destination: [cyan]{target_name or target}[/cyan]\n"
        f"Estimated duration: {result.estimated_duration_minutes} min\n"
        f"Estimated completion: {result.estimated_completion_at:%Y-%m-%d %H:%M}\n\n"
        f"[bold]Reasons:[/bold]\n{reasons or '  -'}",
        title="Redistribution Preview"
    ))


@cli.command()
@selection_options
@click.option("--by", "requested_by", default="system", help="Who requested the job")
@click.pass_context
@handle_errors
def execute(ctx, ids, exclude, target, target_name, strategy,
            reason, owner, previous_queue, tag, status, start_date, end_date, search, requested_by):
    """Remove the selected leads from the pool and queue a job."""
    engine = get_engine(ctx.obj["data_dir"])
    filters = build_filters(reason, owner, previous_queue, tag, status, start_date, end_date, search)
    selection = build_selection(ids, exclude, filters)
    destination = Destination(target, target_name, DestinationStrategy(strategy))

    result = engine.worker.execute(selection, destination, requested_by, filters_used=filters.to_dict())
    engine.save()

    if result.job is None:
        console.print(f"[yellow]Nothing to redistribute: {result.reason}[/yellow]")
        return
    console.print(
        f"[green]Job {result.job.id} queued: {result.total_leads} leads "
        f"to {target_name or target}[/green]"
    )


@cli.command("import-batch")
@click.option("--target", required=True, help="Destination queue or member id")
@click.option("--target-name", default="", help="Destination display name")
@click.option("--quantity", "-n", default=20, help="Synthetic leads to create")
@click.option("--name", default="", help="Name prefix for synthetic leads")
@click.option("--source", default="Import", help="Lead origin")
@click.option("--reason", default="New batch", help="Archive reason")
@click.option("--csv", "csv_path", type=click.Path(exists=True), help="Import leads from a CSV file")
@click.pass_context
@handle_errors
def import_batch(ctx, target, target_name, quantity, name, source, reason, csv_path):
    """Add a batch of leads to the archive."""
    engine = get_engine(ctx.obj["data_dir"])
    csv_text = Path(csv_path).read_text(encoding="utf-8") if csv_path else None
    payload = ImportBatchPayload(
        destination=Destination(target, target_name),
        quantity=quantity,
        name=name,
        source=source,
        reason=reason,
        csv_text=csv_text,
    )

    result = engine.worker.import_batch(payload)
    engine.save()
    console.print(f"[green]Imported {result.created} leads (batch {result.batch_id})[/green]")


@cli.command()
@filter_options
@click.option("--output", "-o", type=click.Path(), help="Write to a file instead of stdout")
@click.pass_context
@handle_errors
def export(ctx, reason, owner, previous_queue, tag, status, start_date, end_date, search, output):
    """Export held and archived leads as CSV."""
    engine = get_engine(ctx.obj["data_dir"])
    filters = build_filters(reason, owner, previous_queue, tag, status, start_date, end_date, search)
    leads = engine.worker.resolve(Selection.matching(filters))

    if output:
        write_leads_csv(leads, output)
        console.print(f"[green]Exported {len(leads)} leads to {output}[/green]")
    else:
        click.echo(write_leads_csv(leads), nl=False)


# ============================================================================
# AUDIT
# ============================================================================

@cli.command()
@click.option("--type", "event_type", type=click.Choice([t.value for t in AuditEventType]),
              help="Filter by event type")
@click.option("--actor", help="Filter by actor (substring)")
@click.option("--queue", "queue_id", help="Filter by queue id")
@click.option("--page", default=1, help="Page number")
@click.option("--per-page", default=10, help="Entries per page")
@click.pass_context
@handle_errors
def audit(ctx, event_type, actor, queue_id, page, per_page):
    """Show the audit trail, newest first."""
    engine = get_engine(ctx.obj["data_dir"])
    items, total = engine.audit_log.query(
        event_type=AuditEventType(event_type) if event_type else None,
        actor=actor,
        queue_id=queue_id,
        page=page,
        per_page=per_page,
    )

    if not items:
        console.print("[yellow]No audit entries found.[/yellow]")
        return

    table = Table(title=f"Audit (page {page}, {total} total)")
    table.add_column("When", style="dim")
    table.add_column("Type", style="bold")
    table.add_column("Actor", style="cyan")
    table.add_column("Queue")
    table.add_column("Lead")
    table.add_column("Member")
    table.add_column("Details", max_width=40)

    for entry in items:
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            entry.type.value,
            entry.actor,
            entry.queue_id or "-",
            entry.lead_id or "-",
            entry.member_id or "-",
            json.dumps(entry.details, ensure_ascii=False, default=str),
        )

    console.print(table)


if __name__ == "__main__":
    cli()
