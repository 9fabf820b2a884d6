"""Radici CLI - Main entry point.

This module provides the command-line interface for Radici. Each command
loads the working roster from SQLite, applies one roster operation and
saves the result.
"""

import mimetypes
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from radici.catalog import (
    DOCUMENT_DISPLAY_NAMES,
    DOCUMENT_HELP_TEXT,
    RELATIONSHIP_LABELS,
    STATUS_LABELS,
)
from radici.config import settings
from radici.exceptions import RadiciError, get_user_friendly_message
from radici.logging import setup_logging
from radici.onboarding import start_roster
from radici.progress import (
    display_name,
    group_members_by_relationship,
    person_progress,
    progress_stats,
    roster_is_complete,
)
from radici.roster import RosterManager, high_water_member_id, parse_document_key
from radici.schemas.roster import DocumentStatus, FamilyMember, Relationship, Roster
from radici.storage.snapshot import default_export_name, read_snapshot, write_snapshot
from radici.storage.sqlite import RosterDatabase

app = typer.Typer(
    name="radici",
    help="Radici - Organize the documents for your Italian citizenship application",
    add_completion=False,
)
console = Console()

STATUS_STYLES = {
    DocumentStatus.NOT_STARTED: "dim",
    DocumentStatus.IN_PROGRESS: "yellow",
    DocumentStatus.COMPLETE: "green",
}

# Relationships the add-member command offers; the others come from onboarding
ADDABLE_RELATIONSHIPS = (
    Relationship.SPOUSE,
    Relationship.CHILD,
    Relationship.SIBLING,
    Relationship.COUSIN,
    Relationship.PARENT,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Radici - Organize the documents for your Italian citizenship application."""
    setup_logging(level="DEBUG" if verbose else None)


def _manager() -> RosterManager:
    # Stored rosters never hand out the id of a removed member again
    return RosterManager(allocate_id=high_water_member_id)


def _fail(error: RadiciError) -> NoReturn:
    console.print(f"[bold red]✗ {escape(get_user_friendly_message(error))}[/bold red]")
    raise typer.Exit(1)


def _load_roster(db_path: Path) -> tuple[RosterDatabase, Roster]:
    db = RosterDatabase(db_path=db_path)
    roster = db.load()
    if not roster.family_members:
        console.print("[yellow]No family yet. Run 'radici init' to get started.[/yellow]")
        raise typer.Exit(1)
    return db, roster


def _member_label(member: FamilyMember, roster: Roster) -> str:
    """Display name with status suffixes, escaped for rich markup."""
    label = escape(display_name(member, roster.family_members))
    if member.is_primary:
        label += " (You)"
    if member.is_ancestor:
        if member.is_deceased is True:
            label += " (Deceased)"
        elif member.is_deceased is False:
            label += " (Living)"
    return label


def _print_members(roster: Roster) -> None:
    table = Table(show_header=True, header_style="bold cyan", title="Family Members")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Relationship")
    table.add_column("Name")
    table.add_column("Basic Info")
    table.add_column("Documents", justify="right")

    for member in roster.family_members:
        completed, total = person_progress(member.id, roster.documents)
        info = (
            "[green]Complete[/green]"
            if member.is_complete
            else f"[yellow]Missing: {', '.join(member.missing_fields)}[/yellow]"
        )
        table.add_row(
            str(member.id),
            member.relationship.value,
            _member_label(member, roster),
            info,
            f"{completed}/{total}",
        )

    console.print(table)
    console.print()


def _has_progress(roster: Roster, member_id: int) -> bool:
    return any(
        doc.status is not DocumentStatus.NOT_STARTED or doc.image_url or doc.notes
        for doc in roster.documents_for(member_id)
    )


@app.command()
def init(
    first_name: str = typer.Option(
        ..., "--first-name", prompt="Your first & middle names", help="Your first & middle names"
    ),
    last_name: str = typer.Option(
        ..., "--last-name", prompt="Your last name at birth", help="Your last name at birth"
    ),
    ancestor_first_name: str = typer.Option(
        ...,
        "--ancestor-first-name",
        prompt="Italian ancestor's first & middle names",
        help="Italian ancestor's first & middle names",
    ),
    ancestor_last_name: str = typer.Option(
        ...,
        "--ancestor-last-name",
        prompt="Italian ancestor's last name at birth",
        help="Italian ancestor's last name at birth",
    ),
    ancestor_type: str = typer.Option(
        "grandparent",
        "--ancestor-type",
        help="How the ancestor relates to you: parent, grandparent or great-grandparent",
    ),
    spouse: bool = typer.Option(False, "--spouse", help="Include your spouse"),
    lineage_parent: bool = typer.Option(
        False, "--lineage-parent", help="Include your parent in the line of descent"
    ),
    children: int = typer.Option(0, "--children", min=0, max=10, help="Number of children"),
    siblings: int = typer.Option(0, "--siblings", min=0, max=10, help="Number of siblings"),
    cousins: int = typer.Option(0, "--cousins", min=0, max=10, help="Number of cousins"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Replace existing data without asking"),
    db_path: Path = typer.Option(settings.db_path, "--db", help="Path to SQLite database"),
) -> None:
    """Start a new application: declare yourself, your ancestor and your family.

    Creates the required document list for everyone. Ancestor details and
    living status can be completed later with 'update-member'.
    """
    console.print("\n[bold cyan]Radici - Benvenuto![/bold cyan]\n")

    db = RosterDatabase(db_path=db_path)
    if db.load().family_members and not yes:
        if not typer.confirm("This will replace all current data. Are you sure you want to continue?"):
            console.print("[dim]Cancelled[/dim]")
            raise typer.Exit(0)

    try:
        roster = start_roster(
            {
                "first_name": first_name,
                "birth_last_name": last_name,
                "ancestor_first_name": ancestor_first_name,
                "ancestor_birth_last_name": ancestor_last_name,
                "ancestor_type": ancestor_type,
                "include_spouse": spouse,
                "include_lineage_parent": lineage_parent,
                "children": children,
                "siblings": siblings,
                "cousins": cousins,
            },
            manager=_manager(),
        )
    except RadiciError as e:
        _fail(e)

    db.save(roster)

    console.print(
        f"[bold green]✓ Created {len(roster.family_members)} family members "
        f"and {len(roster.documents)} required documents[/bold green]\n"
    )
    _print_members(roster)


@app.command()
def members(
    db_path: Path = typer.Option(settings.db_path, "--db", help="Path to SQLite database"),
) -> None:
    """List family members and what is still missing for each."""
    _, roster = _load_roster(db_path)
    console.print()
    _print_members(roster)
    if roster_is_complete(roster.family_members):
        console.print("[green]Basic information is complete for everyone.[/green]\n")
    else:
        console.print(
            "[yellow]Some basic information is still missing. "
            "Fill it in with 'radici update-member'.[/yellow]\n"
        )


@app.command()
def add_member(
    relationship: str = typer.Argument(
        ..., help="Relationship to you: spouse, child, sibling, cousin or parent"
    ),
    first_name: Optional[str] = typer.Option(None, "--first-name", help="First & middle names"),
    last_name: Optional[str] = typer.Option(None, "--last-name", help="Last name at birth"),
    birth_month: Optional[int] = typer.Option(None, "--birth-month", help="Birth month (1-12)"),
    birth_day: Optional[int] = typer.Option(None, "--birth-day", help="Birth day (1-31)"),
    birth_year: Optional[int] = typer.Option(None, "--birth-year", help="Birth year"),
    birth_city: Optional[str] = typer.Option(None, "--birth-city", help="City of birth"),
    birth_state: Optional[str] = typer.Option(
        None, "--birth-state", help="Two-letter state of birth"
    ),
    db_path: Path = typer.Option(settings.db_path, "--db", help="Path to SQLite database"),
) -> None:
    """Add a family member and the documents they need."""
    db, roster = _load_roster(db_path)

    if relationship not in {rel.value for rel in ADDABLE_RELATIONSHIPS}:
        allowed = ", ".join(rel.value for rel in ADDABLE_RELATIONSHIPS)
        console.print(f"[red]Cannot add '{escape(relationship)}'. Choose one of: {allowed}[/red]")
        raise typer.Exit(1)
    if relationship == Relationship.SPOUSE.value and any(
        m.relationship is Relationship.SPOUSE for m in roster.family_members
    ):
        console.print("[red]Only one spouse can be added[/red]")
        raise typer.Exit(1)

    member_data = {
        "relationship": relationship,
        "first_name": first_name,
        "birth_last_name": last_name,
        "birth_month": birth_month,
        "birth_day": birth_day,
        "birth_year": birth_year,
        "birth_city": birth_city,
        "birth_state": birth_state,
    }
    member_data = {key: value for key, value in member_data.items() if value is not None}

    try:
        change = _manager().add_member(roster, member_data)
    except RadiciError as e:
        _fail(e)

    db.save(change.roster)

    name = _member_label(change.member, change.roster)
    console.print(f"\n[bold green]✓ Added {name} (ID: {change.member.id})[/bold green]")
    for doc in change.documents:
        console.print(f"  [dim]•[/dim] {DOCUMENT_DISPLAY_NAMES[doc.document_type]} [dim]({doc.id})[/dim]")
    console.print()


@app.command()
def update_member(
    member_id: int = typer.Argument(..., help="ID of the family member"),
    first_name: Optional[str] = typer.Option(None, "--first-name", help="First & middle names"),
    last_name: Optional[str] = typer.Option(None, "--last-name", help="Last name at birth"),
    birth_month: Optional[int] = typer.Option(None, "--birth-month", help="Birth month (1-12)"),
    birth_day: Optional[int] = typer.Option(None, "--birth-day", help="Birth day (1-31)"),
    birth_year: Optional[int] = typer.Option(None, "--birth-year", help="Birth year"),
    birth_location: Optional[str] = typer.Option(
        None, "--birth-location", help="Birthplace of the Italian ancestor"
    ),
    birth_city: Optional[str] = typer.Option(None, "--birth-city", help="City of birth"),
    birth_state: Optional[str] = typer.Option(
        None, "--birth-state", help="Two-letter state of birth"
    ),
    deceased: Optional[bool] = typer.Option(
        None, "--deceased/--living", help="Whether the Italian ancestor has died"
    ),
    relationship: Optional[str] = typer.Option(
        None, "--relationship", help="New relationship to you"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask before resetting documents"),
    db_path: Path = typer.Option(settings.db_path, "--db", help="Path to SQLite database"),
) -> None:
    """Update a family member's details.

    Changing the Italian ancestor's living status rebuilds the ancestor's
    document list; uploads, statuses and notes on those documents are lost.
    """
    db, roster = _load_roster(db_path)

    changes = {
        "first_name": first_name,
        "birth_last_name": last_name,
        "birth_month": birth_month,
        "birth_day": birth_day,
        "birth_year": birth_year,
        "birth_location": birth_location,
        "birth_city": birth_city,
        "birth_state": birth_state,
        "is_deceased": deceased,
        "relationship": relationship,
    }
    changes = {key: value for key, value in changes.items() if value is not None}
    if not changes:
        console.print("[yellow]Nothing to update.[/yellow]")
        return

    member = roster.get_member(member_id)
    if (
        member is not None
        and member.is_ancestor
        and "is_deceased" in changes
        and _has_progress(roster, member_id)
        and not yes
    ):
        console.print(
            "[yellow]Changing living status resets every document for this ancestor, "
            "including uploaded images and notes.[/yellow]"
        )
        if not typer.confirm("Continue?"):
            console.print("[dim]Cancelled[/dim]")
            raise typer.Exit(0)

    try:
        change = _manager().update_member(roster, member_id, changes)
    except RadiciError as e:
        _fail(e)

    db.save(change.roster)

    console.print(
        f"\n[bold green]✓ Updated {_member_label(change.member, change.roster)}[/bold green]"
    )
    if change.documents:
        console.print("[dim]New documents:[/dim]")
        for doc in change.documents:
            console.print(f"  [dim]•[/dim] {DOCUMENT_DISPLAY_NAMES[doc.document_type]} [dim]({doc.id})[/dim]")
    console.print()


@app.command()
def remove_member(
    member_id: int = typer.Argument(..., help="ID of the family member"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    db_path: Path = typer.Option(settings.db_path, "--db", help="Path to SQLite database"),
) -> None:
    """Remove a family member and all of their documents."""
    db, roster = _load_roster(db_path)

    if not yes and not typer.confirm(
        "Are you sure you want to remove this family member? "
        "This will also delete all their documents."
    ):
        console.print("[dim]Cancelled[/dim]")
        raise typer.Exit(0)

    try:
        updated = _manager().remove_member(roster, member_id)
    except RadiciError as e:
        _fail(e)

    db.save(updated)

    removed = len(roster.documents) - len(updated.documents)
    console.print(
        f"\n[bold green]✓ Removed member {member_id} and {removed} document(s)[/bold green]\n"
    )


@app.command()
def docs(
    member_id: Optional[int] = typer.Option(
        None, "--member", "-m", help="Only show documents for this member"
    ),
    details: bool = typer.Option(False, "--details", help="Show where to request each document"),
    db_path: Path = typer.Option(settings.db_path, "--db", help="Path to SQLite database"),
) -> None:
    """List required documents and their status, grouped by relationship."""
    _, roster = _load_roster(db_path)

    members = roster.family_members
    if member_id is not None:
        member = roster.get_member(member_id)
        if member is None:
            console.print(f"[red]Family member not found: {member_id}[/red]")
            raise typer.Exit(1)
        members = (member,)

    console.print()
    for relationship, group in group_members_by_relationship(members).items():
        rows = [(member, doc) for member in group for doc in roster.documents_for(member.id)]
        if not rows:
            continue

        table = Table(
            show_header=True, header_style="bold cyan", title=RELATIONSHIP_LABELS[relationship]
        )
        table.add_column("ID", style="dim")
        table.add_column("Member")
        table.add_column("Document")
        table.add_column("Status")
        table.add_column("Image", justify="center")
        table.add_column("Notes")
        if details:
            table.add_column("Where to get it", style="dim")

        for member, doc in rows:
            style = STATUS_STYLES[doc.status]
            row = [
                doc.id,
                _member_label(member, roster),
                DOCUMENT_DISPLAY_NAMES[doc.document_type],
                f"[{style}]{STATUS_LABELS[doc.status]}[/{style}]",
                "✓" if doc.image_url else "",
                escape(doc.notes),
            ]
            if details:
                row.append(DOCUMENT_HELP_TEXT[doc.document_type])
            table.add_row(*row)

        console.print(table)
        console.print()


@app.command()
def status(
    document_id: str = typer.Argument(..., help="Document ID, e.g. 1-birth_certificate"),
    new_status: str = typer.Argument(..., help="not_started, in_progress or complete"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Replace the document notes"),
    db_path: Path = typer.Option(settings.db_path, "--db", help="Path to SQLite database"),
) -> None:
    """Set the status of a document."""
    db, roster = _load_roster(db_path)

    try:
        change = _manager().set_document_status(roster, document_id, new_status, notes)
    except RadiciError as e:
        _fail(e)

    db.save(change.roster)
    console.print(
        f"\n[bold green]✓ {change.document.id} is now "
        f"{STATUS_LABELS[change.document.status]}[/bold green]\n"
    )


@app.command()
def attach(
    document_id: str = typer.Argument(..., help="Document ID, e.g. 1-birth_certificate"),
    image: Path = typer.Argument(
        ..., help="Photo or scan of the document", exists=True, dir_okay=False, readable=True
    ),
    db_path: Path = typer.Option(settings.db_path, "--db", help="Path to SQLite database"),
) -> None:
    """Attach a photo or scan to a document.

    Supported formats: JPEG, PNG, GIF, WebP (up to 10MB).
    """
    db, roster = _load_roster(db_path)

    mime_type, _ = mimetypes.guess_type(image.name)
    try:
        change = _manager().attach_image(
            roster,
            document_id,
            image_ref=image.resolve().as_uri(),
            size_bytes=image.stat().st_size,
            mime_type=mime_type or "",
        )
    except RadiciError as e:
        _fail(e)

    db.save(change.roster)
    console.print(
        f"\n[bold green]✓ Attached {escape(image.name)} to {change.document.id} "
        f"({STATUS_LABELS[change.document.status]})[/bold green]\n"
    )


@app.command()
def detach(
    document_id: str = typer.Argument(..., help="Document ID, e.g. 1-birth_certificate"),
    db_path: Path = typer.Option(settings.db_path, "--db", help="Path to SQLite database"),
) -> None:
    """Remove the image attached to a document. The status is kept."""
    db, roster = _load_roster(db_path)

    try:
        change = _manager().remove_image(roster, document_id)
    except RadiciError as e:
        _fail(e)

    db.save(change.roster)
    console.print(f"\n[bold green]✓ Removed image from {change.document.id}[/bold green]\n")


@app.command()
def progress(
    db_path: Path = typer.Option(settings.db_path, "--db", help="Path to SQLite database"),
) -> None:
    """Show overall and per-person progress."""
    _, roster = _load_roster(db_path)
    stats = progress_stats(roster.documents)

    if roster.user:
        console.print(f"\n[bold cyan]Ciao, {escape(roster.user.first_name)}![/bold cyan]")
    console.print(f"\n[bold]Overall Progress:[/bold] {stats.percent}%\n")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="dim")
    table.add_column("Value", justify="right")
    table.add_row("Complete", str(stats.completed))
    table.add_row("In Progress", str(stats.in_progress))
    table.add_row("Not Started", str(stats.not_started))
    table.add_row("Total", str(stats.total))
    console.print(table)
    console.print()

    table = Table(show_header=True, header_style="bold cyan", title="By Person")
    table.add_column("Member")
    table.add_column("Complete", justify="right")
    for member in roster.family_members:
        completed, total = person_progress(member.id, roster.documents)
        table.add_row(_member_label(member, roster), f"{completed}/{total}")
    console.print(table)
    console.print()


@app.command()
def export(
    output: Optional[Path] = typer.Argument(
        None, help="Output file path (default: radici-data-<date>.json)"
    ),
    db_path: Path = typer.Option(settings.db_path, "--db", help="Path to SQLite database"),
) -> None:
    """Export all family and document information to a JSON backup."""
    _, roster = _load_roster(db_path)

    output = output or Path(default_export_name())
    write_snapshot(roster, output)
    console.print(
        f"\n[bold green]✓ Exported {len(roster.family_members)} family members and "
        f"{len(roster.documents)} documents to {escape(str(output))}[/bold green]\n"
    )


@app.command("import")
def import_(
    source: Path = typer.Argument(
        ..., help="Backup file created by 'radici export'", exists=True, dir_okay=False
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Replace existing data without asking"),
    db_path: Path = typer.Option(settings.db_path, "--db", help="Path to SQLite database"),
) -> None:
    """Restore family and document information from a JSON backup."""
    db = RosterDatabase(db_path=db_path)

    try:
        roster = read_snapshot(source)
    except RadiciError as e:
        _fail(e)

    if db.load().family_members and not yes:
        if not typer.confirm("This will replace all current data. Are you sure you want to continue?"):
            console.print("[dim]Cancelled[/dim]")
            raise typer.Exit(0)

    db.save(roster)
    console.print(
        f"\n[bold green]✓ Imported {len(roster.family_members)} family members and "
        f"{len(roster.documents)} documents[/bold green]\n"
    )


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    db_path: Path = typer.Option(settings.db_path, "--db", help="Path to SQLite database"),
) -> None:
    """Clear all data and start over."""
    db = RosterDatabase(db_path=db_path)
    stats = db.get_stats()
    summary = (
        f"{stats['total_family_members']} family members and "
        f"{stats['total_documents']} documents ({stats['completed_documents']} complete)"
    )

    if not yes:
        console.print(f"[yellow]This will delete {summary}.[/yellow]")
        if not typer.confirm("Are you sure you want to clear all data? This cannot be undone."):
            console.print("[dim]Cancelled[/dim]")
            raise typer.Exit(0)

    db.clear()
    console.print(f"\n[bold green]✓ Cleared {summary}[/bold green]\n")


@app.command()
def show(
    document_id: str = typer.Argument(..., help="Document ID, e.g. 1-birth_certificate"),
    db_path: Path = typer.Option(settings.db_path, "--db", help="Path to SQLite database"),
) -> None:
    """Show one document in detail."""
    _, roster = _load_roster(db_path)

    try:
        key = parse_document_key(document_id)
    except RadiciError as e:
        _fail(e)
    doc = roster.get_document(key)
    if doc is None:
        console.print(f"[red]Document not found: {escape(document_id)}[/red]")
        raise typer.Exit(1)

    member = roster.get_member(doc.family_member_id)
    console.print(f"\n[bold cyan]{DOCUMENT_DISPLAY_NAMES[doc.document_type]}[/bold cyan]")
    console.print(f"[dim]ID:[/dim] {doc.id}")
    console.print(f"[dim]For:[/dim] {_member_label(member, roster) if member else doc.family_member_id}")
    console.print(f"[dim]Status:[/dim] {STATUS_LABELS[doc.status]}")
    console.print(f"[dim]Where to get it:[/dim] {DOCUMENT_HELP_TEXT[doc.document_type]}")
    console.print(f"[dim]Image:[/dim] {escape(doc.image_url or 'None')}")
    if doc.notes:
        console.print(f"[dim]Notes:[/dim] {escape(doc.notes)}")
    console.print()


@app.command()
def version() -> None:
    """Display version information."""
    from radici import __version__

    console.print(f"\n[bold cyan]Radici[/bold cyan] version {__version__}\n")


if __name__ == "__main__":
    app()
