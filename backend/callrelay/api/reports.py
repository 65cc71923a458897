import logging
from datetime import date
from typing import NamedTuple, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse

from callrelay.core.config import settings
from callrelay.core.deps import get_call_store, get_crm_client, get_tenant_directory
from callrelay.schemas import ReportResponse
from callrelay.services.call_store import CallStore
from callrelay.services.crm_client import CRMClient
from callrelay.services.periods import (
    Period,
    parse_flag,
    parse_period,
    parse_report_date,
    parse_report_format,
)
from callrelay.services.rendering import render_report
from callrelay.services.reports import Report, build_report
from callrelay.services.tenants import Tenant, TenantDirectory

router = APIRouter(tags=["reports"])
logger = logging.getLogger(__name__)


class ReportParams(NamedTuple):
    period: Period
    reference_date: date
    by_number: bool
    format: str


def parse_report_params(
    period: Optional[str],
    date_value: Optional[str],
    by_number: Optional[str] = None,
    format: Optional[str] = None,
    default_format: str = "json",
) -> ReportParams:
    """Validate raw query values; any bad value is a 400 rather than a 422."""
    try:
        return ReportParams(
            period=parse_period(period),
            reference_date=parse_report_date(date_value),
            by_number=parse_flag("by_number", by_number),
            format=parse_report_format(format, default_format),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


async def generate_report(
    store: CallStore,
    directory: TenantDirectory,
    crm: CRMClient,
    period: Period,
    reference_date: date,
    tenant: Optional[Tenant] = None,
    by_number: bool = False,
) -> Report:
    records = store.query_by_period(reference_date, period)
    return await build_report(
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


def report_payload(report: Report) -> ReportResponse:
    return ReportResponse(
        period=report.period.value,
        date=report.reference_date.isoformat(),
        start=report.start.isoformat(),
        end=report.end.isoformat(),
        groups=report.as_dict(),
    )


@router.get("/reports")
async def global_report(
    period: Optional[str] = None,
    date: Optional[str] = None,
    tenant: Optional[str] = None,
    by_number: Optional[str] = None,
    format: Optional[str] = None,
    store: CallStore = Depends(get_call_store),
    directory: TenantDirectory = Depends(get_tenant_directory),
    crm: CRMClient = Depends(get_crm_client),
):
    params = parse_report_params(period, date, by_number, format)
    scoped_tenant = None
    if tenant:
        scoped_tenant = directory.resolve_by_id(tenant)
        if scoped_tenant is None:
            raise HTTPException(status_code=404, detail="Account not found")
    try:
        report = await generate_report(
            store,
            directory,
            crm,
            params.period,
            params.reference_date,
            scoped_tenant,
            params.by_number,
        )
    except Exception as exc:
        logger.exception("Report generation failed.")
        raise HTTPException(status_code=500, detail="Error generating report") from exc
    if params.format == "html":
        return HTMLResponse(render_report(report, scoped_tenant))
    return JSONResponse(report_payload(report).model_dump())
