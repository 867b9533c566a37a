"""
Main CLI application using Typer.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Iterator, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..adapters import build_data_source
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import DataSourceError, InvalidInputError, RangeTooLargeError, UnknownEntityError
from ..domain.models import WEEKDAY_NAMES, CapacitySnapshot
from ..services.availability_service import AppointmentAvailabilityService

app = typer.Typer(
    name="clinicslots",
    help="Termin-Verfügbarkeit und Arztzuteilung für Kliniken",
    add_completion=False
)

console = Console()
logger = logging.getLogger("clinicslots")

_state = {"verbose": False}

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug-Ausgaben anzeigen.")] = False,
):
    """
    Freie Termine, Kapazität und den passenden Arzt einer Klinik ermitteln.
    """
    _state["verbose"] = verbose


def _configure_logging(level: str) -> None:
    """Route log records through rich; --verbose forces DEBUG."""
    root = logging.getLogger()
    if not any(isinstance(handler, RichHandler) for handler in root.handlers):
        root.addHandler(RichHandler(console=console, show_path=False))
    root.setLevel(logging.DEBUG if _state["verbose"] else level)


def _build_service(config_file: Optional[Path]) -> AppointmentAvailabilityService:
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)
    _configure_logging(config.log_level)

    source = build_data_source(config.data_source, default_timezone=config.timezone)
    return AppointmentAvailabilityService(
        schedule_source=source,
        booking_ledger=source,
        search=config.search,
    )


@contextmanager
def _cli_errors() -> Iterator[None]:
    """Translate engine errors into user-facing messages and exit code 1."""
    try:
        yield
    except RangeTooLargeError as e:
        console.print(f"[bold red]Fehler:[/bold red] Der Datumsbereich ist zu groß ({escape(str(e))}).")
        raise typer.Exit(1)
    except UnknownEntityError as e:
        console.print(f"[bold red]Fehler:[/bold red] Nicht gefunden: {escape(str(e))}")
        raise typer.Exit(1)
    except InvalidInputError as e:
        console.print(f"[bold red]Fehler:[/bold red] Ungültige Eingabe: {escape(str(e))}")
        raise typer.Exit(1)
    except DataSourceError as e:
        logger.error("Data source failure: %s", e)
        console.print(
            "[bold red]Fehler:[/bold red] Die Termindaten konnten nicht geladen werden. "
            "Bitte versuchen Sie es später erneut."
        )
        raise typer.Exit(1)
    except FileNotFoundError as e:
        console.print(f"[bold red]Fehler:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[bold red]Fehler in der Konfiguration:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)


def _capacity_table(title: str, snapshots: List[CapacitySnapshot]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Datum", style="bold yellow")
    table.add_column("Gesamt", justify="right")
    table.add_column("Gebucht", justify="right")
    table.add_column("Frei", justify="right", style="green")
    table.add_column("Auslastung", justify="right")

    for snapshot in snapshots:
        weekday = WEEKDAY_NAMES[snapshot.date.weekday()]
        table.add_row(
            f"{weekday[:2]}, {snapshot.date.format('DD.MM.YYYY')}",
            str(snapshot.total),
            str(snapshot.booked),
            str(snapshot.available),
            f"{snapshot.utilization:.0%}",
        )
    return table


@app.command()
def slots(
    clinic_id: Annotated[int, typer.Argument(help="Klinik-ID")],
    date: Annotated[str, typer.Argument(help="Datum (YYYY-MM-DD)")],
    service_id: Annotated[Optional[int], typer.Option("--service", "-s", help="Leistungs-ID")] = None,
    doctor_id: Annotated[Optional[int], typer.Option("--doctor", "-d", help="Arzt-ID")] = None,
    only_available: Annotated[bool, typer.Option("--only-available", help="Nur freie Slots anzeigen.")] = False,
    config_file: ConfigOption = None,
):
    """
    Show all slots of a clinic on one day.

    Examples:

        clinicslots slots 1 2024-06-03
        clinicslots slots 1 2024-06-03 --service 10 --only-available
    """
    with _cli_errors():
        service = _build_service(config_file)
        result = service.get_available_slots(clinic_id, date, service_id=service_id, doctor_id=doctor_id)

        if only_available:
            result = [slot for slot in result if slot.available]

        if not result:
            console.print("[yellow]⚠ Keine Zeitfenster für diesen Tag gefunden.[/yellow]")
            return

        table = Table(title=f"Zeitfenster – Klinik {clinic_id}", show_header=True, header_style="bold cyan")
        table.add_column("Zeit", style="bold yellow")
        table.add_column("Arzt")
        table.add_column("Dauer", justify="right")
        table.add_column("Status")

        for slot in result:
            table.add_row(
                f"{slot.start.format('HH:mm')} – {slot.end.format('HH:mm')}",
                slot.doctor_name or str(slot.doctor_id),
                f"{slot.time_range.duration_minutes()} Min.",
                "[green]frei[/green]" if slot.available else "[red]belegt[/red]",
            )

        free = sum(1 for slot in result if slot.available)
        console.print()
        console.print(table)
        console.print(f"\n[bold green]✓ {free} von {len(result)} Zeitfenster(n) frei[/bold green]\n")


@app.command()
def capacity(
    clinic_id: Annotated[int, typer.Argument(help="Klinik-ID")],
    date: Annotated[str, typer.Argument(help="Datum (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
):
    """
    Show the clinic's capacity for one day.
    """
    with _cli_errors():
        service = _build_service(config_file)
        snapshot = service.get_clinic_capacity(clinic_id, date)

        console.print()
        console.print(_capacity_table("Klinikkapazität", [snapshot]))
        console.print()


@app.command("best-doctor")
def best_doctor(
    clinic_id: Annotated[int, typer.Argument(help="Klinik-ID")],
    date: Annotated[str, typer.Argument(help="Datum (YYYY-MM-DD)")],
    time: Annotated[str, typer.Argument(help="Uhrzeit (HH:MM)")],
    service_id: Annotated[Optional[int], typer.Option("--service", "-s", help="Leistungs-ID")] = None,
    exclude_doctor_id: Annotated[
        Optional[int], typer.Option("--exclude", "-x", help="Arzt-ID, die nicht in Frage kommt")
    ] = None,
    config_file: ConfigOption = None,
):
    """
    Find the best available doctor for a requested time.

    Use --exclude to move an appointment away from its current doctor.
    """
    with _cli_errors():
        service = _build_service(config_file)
        match = service.find_best_doctor(
            clinic_id, date, time, service_id=service_id, exclude_doctor_id=exclude_doctor_id
        )

        if match is None:
            console.print("[yellow]⚠ Kein verfügbarer Arzt für diesen Zeitslot.[/yellow]")
            raise typer.Exit(1)

        console.print(Panel.fit(
            f"[bold]Arzt:[/bold] {match.name} (ID {match.doctor_id})\n"
            f"[bold]Fachrichtung:[/bold] {match.specialty or 'Allgemein'}\n"
            f"[bold]Dauer:[/bold] {match.duration_minutes} Min.\n"
            f"[bold]Termine an diesem Tag:[/bold] {match.load_score}",
            title="✓ Bester Arzt"
        ))


@app.command("next-available")
def next_available(
    clinic_id: Annotated[int, typer.Argument(help="Klinik-ID")],
    start: Annotated[Optional[str], typer.Option("--start", help="Startdatum (YYYY-MM-DD), Standard: heute")] = None,
    service_id: Annotated[Optional[int], typer.Option("--service", "-s", help="Leistungs-ID")] = None,
    doctor_id: Annotated[Optional[int], typer.Option("--doctor", "-d", help="Arzt-ID")] = None,
    config_file: ConfigOption = None,
):
    """
    Find the next free slot of a clinic.
    """
    with _cli_errors():
        service = _build_service(config_file)
        slot = service.get_next_available_slot(
            clinic_id, start_date=start, service_id=service_id, doctor_id=doctor_id
        )

        if slot is None:
            console.print("[yellow]⚠ Keine verfügbaren Termine in den nächsten Tagen.[/yellow]")
            raise typer.Exit(1)

        console.print(f"\n[bold green]✓ Nächster freier Termin:[/bold green] {slot.format_display()}")
        console.print(f"   Arzt: {slot.doctor_name or slot.doctor_id}\n")


@app.command("capacity-range")
def capacity_range(
    clinic_id: Annotated[int, typer.Argument(help="Klinik-ID")],
    start: Annotated[str, typer.Argument(help="Startdatum (YYYY-MM-DD)")],
    end: Annotated[str, typer.Argument(help="Enddatum (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
):
    """
    Show the clinic's capacity for every day of a date range.
    """
    with _cli_errors():
        service = _build_service(config_file)
        snapshots = service.get_capacity_range(clinic_id, start, end)

        console.print()
        console.print(_capacity_table("Kapazität im Zeitraum", snapshots))
        console.print()


@app.command("list-doctors")
def list_doctors(
    clinic_id: Annotated[int, typer.Argument(help="Klinik-ID")],
    config_file: ConfigOption = None,
):
    """
    List all doctors of a clinic.
    """
    with _cli_errors():
        service = _build_service(config_file)
        clinic = service.get_clinic(clinic_id)

        if not clinic.doctors:
            console.print("[yellow]Keine Ärzte für diese Klinik hinterlegt.[/yellow]")
            return

        table = Table(title="Ärzte", show_header=True, header_style="bold cyan")
        table.add_column("ID", justify="right")
        table.add_column("Name", style="bold yellow")
        table.add_column("Fachrichtung", style="dim")
        table.add_column("Dauer", justify="right")
        table.add_column("Aktiv")

        for doctor in sorted(clinic.doctors, key=lambda d: d.id):
            duration = doctor.default_duration_minutes
            table.add_row(
                str(doctor.id),
                doctor.name,
                ", ".join(doctor.specialties) or "Allgemein",
                f"{duration} Min." if duration else "–",
                "ja" if doctor.active else "nein",
            )

        console.print()
        console.print(table)
        console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]clinicslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
