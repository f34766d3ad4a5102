"""
Command Line Interface for the ColorVision dashboard.
"""

from typing import Optional

import typer
import uvicorn
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..auth import SessionAuthProvider
from ..config import get_settings
from ..db.audit_service import AuditRecorder
from ..db.base import get_session_local, init_database
from ..db.services import AnalysisService, PatientService, UploadRecordService
from ..enums import AuditAction, Modality, ResourceType
from ..lifecycle.jobs import reconcile_stale_jobs
from ..logging_config import configure_logging

app = typer.Typer(help="ColorVision dashboard - retinal imaging and ERG analysis")
console = Console()

STATUS_STYLES = {
    "pending": "yellow",
    "processing": "cyan",
    "completed": "green",
    "failed": "red",
}


def _status(value: str) -> str:
    style = STATUS_STYLES.get(value, "white")
    return f"[{style}]{value}[/{style}]"


@app.callback()
def main() -> None:
    configure_logging(get_settings())


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind the server to"),
    port: Optional[int] = typer.Option(None, help="Port to run the API server on"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the API server."""
    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    rprint(Panel.fit(f"Starting ColorVision dashboard on http://{host}:{port}", style="bold blue"))
    uvicorn.run("colorvision_dashboard.main:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db():
    """Create all database tables."""
    init_database()
    console.print("✅ Database initialized")


@app.command("create-patient")
def create_patient(
    email: str = typer.Argument(..., help="Patient email address"),
    full_name: Optional[str] = typer.Option(None, "--name", help="Full name"),
):
    """Register a patient (or reuse an existing one) and issue a session token."""
    settings = get_settings()
    db = get_session_local()()
    try:
        service = PatientService(db)
        patient = service.get_by_email(email)
        if patient is None:
            patient = service.create(email, full_name)
            console.print(f"✅ Created patient {patient.id}")
        else:
            console.print(f"ℹ️  Patient {patient.id} already exists")

        session = SessionAuthProvider(db).issue(patient.id, settings.session_ttl_minutes)
        AuditRecorder(db).record(
            patient.id, AuditAction.USER_LOGIN, ResourceType.SESSION, None, {"via": "cli"}
        )
        console.print(f"Session token: [bold]{session.token}[/bold]")
    finally:
        db.close()


@app.command()
def records(email: str = typer.Argument(..., help="Patient email address")):
    """Show a patient's uploads and analyses."""
    db = get_session_local()()
    try:
        patient = PatientService(db).get_by_email(email)
        if patient is None:
            console.print(f"❌ No patient with email {email}")
            raise typer.Exit(code=1)

        table = Table(title="Uploads", show_header=True, header_style="bold magenta")
        table.add_column("Modality", style="cyan")
        table.add_column("ID")
        table.add_column("File")
        table.add_column("Status")
        table.add_column("Quality")
        for modality in Modality:
            for record in UploadRecordService(db, modality).list(patient.id):
                quality = (
                    f"{record.quality_score:.2f}" if record.quality_score is not None else "-"
                )
                table.add_row(
                    modality.value,
                    record.id,
                    record.filename,
                    _status(record.processing_status),
                    quality,
                )
        console.print(table)

        table = Table(title="Analyses", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan")
        table.add_column("Status")
        table.add_column("Diagnosis")
        table.add_column("Severity")
        table.add_column("Confidence")
        for analysis in AnalysisService(db).list(patient.id):
            confidence = (
                f"{analysis.combined_confidence:.1%}"
                if analysis.combined_confidence is not None
                else "-"
            )
            table.add_row(
                analysis.id,
                _status(analysis.analysis_status),
                analysis.color_blindness_type or "-",
                analysis.severity_level or "-",
                confidence,
            )
        console.print(table)
    finally:
        db.close()


@app.command()
def sweep(
    timeout: Optional[int] = typer.Option(
        None, help="Seconds a record may stay in processing"
    ),
):
    """Fail records and analyses stuck in processing."""
    settings = get_settings()
    if timeout is None:
        timeout = settings.processing_timeout_seconds
    failed = reconcile_stale_jobs(get_session_local(), timeout)
    console.print(f"Failed {failed} stale job(s)")


if __name__ == "__main__":
    app()
