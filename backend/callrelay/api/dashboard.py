import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from callrelay.api.reports import generate_report, parse_report_params, report_payload
from callrelay.core.deps import get_call_store, get_crm_client, get_tenant_directory
from callrelay.services.call_store import CallStore
from callrelay.services.crm_client import CRMClient
from callrelay.services.periods import Period, parse_report_date
from callrelay.services.rendering import render_dashboard, render_error, render_index, render_report
from callrelay.services.tenants import Tenant, TenantDirectory

router = APIRouter(tags=["dashboard"])
logger = logging.getLogger(__name__)


def _html_error(status_code: int, message: str) -> HTMLResponse:
    return HTMLResponse(render_error(status_code, message), status_code=status_code)


def _tenant_or_404(directory: TenantDirectory, account_id: str) -> Tenant:
    tenant = directory.resolve_by_id(account_id)
    if tenant is None:
        raise HTTPException(status_code=404, detail="Account not found")
    return tenant


@router.get("/", response_class=HTMLResponse)
def index(directory: TenantDirectory = Depends(get_tenant_directory)) -> HTMLResponse:
    return HTMLResponse(render_index(directory.all()))


@router.get("/{account_id}/dashboard", response_class=HTMLResponse)
async def account_dashboard(
    account_id: str,
    date: Optional[str] = None,
    store: CallStore = Depends(get_call_store),
    directory: TenantDirectory = Depends(get_tenant_directory),
    crm: CRMClient = Depends(get_crm_client),
) -> HTMLResponse:
    try:
        tenant = _tenant_or_404(directory, account_id)
        reference_date = parse_report_date(date) if date else datetime.utcnow().date()
    except HTTPException as exc:
        return _html_error(exc.status_code, exc.detail)
    except ValueError as exc:
        return _html_error(400, str(exc))
    try:
        reports = [
            await generate_report(store, directory, crm, period, reference_date, tenant)
            for period in Period
        ]
    except Exception:
        logger.exception("Dashboard generation failed for %s.", account_id)
        return _html_error(500, "Error generating dashboard.")
    return HTMLResponse(render_dashboard(tenant, reports))


@router.get("/{account_id}/reports")
async def account_report(
    account_id: str,
    period: Optional[str] = None,
    date: Optional[str] = None,
    by_number: Optional[str] = None,
    format: Optional[str] = None,
    store: CallStore = Depends(get_call_store),
    directory: TenantDirectory = Depends(get_tenant_directory),
    crm: CRMClient = Depends(get_crm_client),
):
    try:
        tenant = _tenant_or_404(directory, account_id)
        params = parse_report_params(period, date, by_number, format, default_format="html")
    except HTTPException as exc:
        if format == "json":
            raise
        return _html_error(exc.status_code, exc.detail)
    try:
        report = await generate_report(
            store,
            directory,
            crm,
            params.period,
            params.reference_date,
            tenant,
            params.by_number,
        )
    except Exception as exc:
        logger.exception("Report generation failed for %s.", account_id)
        if params.format == "json":
            raise HTTPException(status_code=500, detail="Error generating report") from exc
        return _html_error(500, "Error generating report.")
    if params.format == "json":
        return JSONResponse(report_payload(report).model_dump())
    return HTMLResponse(render_report(report, tenant))


@router.get("/{account_id}")
def account_home(
    account_id: str, directory: TenantDirectory = Depends(get_tenant_directory)
):
    if directory.resolve_by_id(account_id) is None:
        return _html_error(404, "Account not found")
    return RedirectResponse(url=f"/{account_id}/dashboard")
