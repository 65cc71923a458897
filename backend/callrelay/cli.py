import asyncio
import json
from datetime import datetime
from typing import Optional

import typer
from sqlalchemy.orm import Session

from callrelay.core.config import settings
from callrelay.core.database import SessionLocal, engine
from callrelay.core.schema import init_db
from callrelay.services.call_store import CallStore
from callrelay.services.crm_client import CRMClient
from callrelay.services.periods import parse_period, parse_report_date
from callrelay.services.reports import build_report
from callrelay.services.tenants import load_tenant_directory

app = typer.Typer(help="Operator commands for the OpenPhone CRM relay.")


@app.command("init-db")
def init_database():
    """Create the call_records table and add any missing columns."""
    init_db(engine)
    typer.echo("Schema ready")


@app.command()
def tenants():
    directory = load_tenant_directory(settings.tenants_json)
    if not len(directory):
        typer.echo("No tenants configured")
        raise typer.Exit(code=1)
    for tenant in directory.all():
        typer.echo(f"{tenant.id}\t{tenant.name}\t{tenant.open_phone_number}")


async def _run_report(period, reference_date, account: Optional[str], by_number: bool) -> dict:
    directory = load_tenant_directory(settings.tenants_json)
    tenant = None
    if account:
        tenant = directory.resolve_by_id(account)
        if tenant is None:
            raise typer.BadParameter(f"Unknown account {account}", param_hint="--account")
    crm = CRMClient(
        settings.crm_base_url,
        timeout=settings.crm_timeout_seconds,
        api_version=settings.crm_api_version,
    )
    db: Session = SessionLocal()
    try:
        records = CallStore(db).query_by_period(reference_date, period)
        report = await build_report(
            records,
            directory,
            crm,
            period,
            reference_date,
            tenant=tenant,
            by_number=by_number,
            tag_prefix=settings.meeting_tag_prefix,
            max_concurrency=settings.report_max_concurrency,
        )
    finally:
        db.close()
        await crm.aclose()
    return report.as_dict()


@app.command()
def report(
    period: str = typer.Option("daily", help="daily, weekly or monthly"),
    date: Optional[str] = typer.Option(None, help="Reference date (YYYY-MM-DD), default today"),
    account: Optional[str] = typer.Option(None, help="Limit the report to one account id"),
    by_number: bool = typer.Option(False, "--by-number", help="Split groups per number"),
):
    """Print a period report as JSON."""
    try:
        report_period = parse_period(period)
        reference_date = parse_report_date(date) if date else datetime.utcnow().date()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    result = asyncio.run(_run_report(report_period, reference_date, account, by_number))
    typer.echo(json.dumps(result, indent=2))


if __name__ == "__main__":
    app()
