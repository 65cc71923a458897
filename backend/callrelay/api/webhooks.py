import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from callrelay.core.deps import get_call_store, get_crm_client, get_tenant_directory
from callrelay.services.call_store import CallStore
from callrelay.services.crm_client import CRMClient
from callrelay.services.ingest import IngestOutcome, handle_event
from callrelay.services.tenants import TenantDirectory

router = APIRouter(tags=["webhooks"])
logger = logging.getLogger(__name__)


@router.post("/openphone-webhook", response_class=PlainTextResponse)
async def openphone_webhook(
    request: Request,
    directory: TenantDirectory = Depends(get_tenant_directory),
    crm: CRMClient = Depends(get_crm_client),
    store: CallStore = Depends(get_call_store),
) -> PlainTextResponse:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return PlainTextResponse(IngestOutcome.IGNORED.value)
    try:
        outcome = await handle_event(payload, directory, crm, store)
    except Exception:
        logger.exception("Error processing webhook.")
        return PlainTextResponse("Error processing webhook.", status_code=500)
    return PlainTextResponse(outcome.value)
