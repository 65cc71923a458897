import enum
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from callrelay.schemas import CallObject, WebhookEvent
from callrelay.services.call_store import CallStore
from callrelay.services.crm_client import CRMClient
from callrelay.services.tenants import TenantDirectory, normalize_phone

logger = logging.getLogger(__name__)


class EventKind(enum.Enum):
    CALL_PROGRESS = "call.completed"
    RECORDING_READY = "call.recording.completed"
    OTHER = "other"


class IngestOutcome(str, enum.Enum):
    IGNORED = "ignored"
    UNROUTED = "unrouted"
    CONTACT_NOT_FOUND = "contact not found"
    CALL_RECORDED = "call recorded"
    DUPLICATE_CALL = "duplicate call ignored"
    NOTE_CREATED = "note created"


def classify_event(event_type: Optional[str]) -> EventKind:
    for kind in (EventKind.CALL_PROGRESS, EventKind.RECORDING_READY):
        if event_type == kind.value:
            return kind
    return EventKind.OTHER


def parse_datetime(value: Optional[str]) -> datetime:
    """ISO timestamp to naive UTC; missing values fall back to now."""
    if not value:
        return datetime.utcnow()
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable call timestamp %r; using current time.", value)
        return datetime.utcnow()
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def build_note_body(duration: float, recording_url: Optional[str]) -> str:
    return (
        "OpenPhone call completed.\n\n"
        f"Duration: {round(duration)} seconds.\n"
        f"Recording: {recording_url or 'N/A'}"
    )


def extract_call(payload: Any) -> tuple[EventKind, Optional[CallObject]]:
    try:
        event = WebhookEvent.model_validate(payload)
    except ValidationError:
        return EventKind.OTHER, None
    call = event.data.object if event.data else None
    if call is None or not call.id:
        return EventKind.OTHER, None
    return classify_event(event.type), call


async def handle_event(
    payload: Any,
    directory: TenantDirectory,
    crm: CRMClient,
    store: CallStore,
) -> IngestOutcome:
    """Apply one inbound call event.

    Business non-matches come back as outcomes; CRM and storage failures are
    raised to the caller.
    """
    kind, call = extract_call(payload)
    if call is None:
        logger.info("Webhook ignored: missing call object or call id.")
        return IngestOutcome.IGNORED
    if kind is EventKind.OTHER:
        logger.info("Webhook ignored (type: %s).", payload.get("type"))
        return IngestOutcome.IGNORED

    tenant = directory.resolve_by_number(call.from_number)
    if tenant is None:
        tenant = directory.resolve_by_number(call.to_number)
    if tenant is None:
        logger.warning(
            "Routing failed: neither %s nor %s matches a configured tenant.",
            call.from_number,
            call.to_number,
        )
        return IngestOutcome.UNROUTED
    tenant_number = normalize_phone(tenant.open_phone_number)
    logger.info("Call %s routed to tenant %s.", call.id, tenant.id)

    if normalize_phone(call.from_number) == tenant_number:
        counterparty = normalize_phone(call.to_number)
    else:
        counterparty = normalize_phone(call.from_number)
    if counterparty is None:
        logger.info("Call %s has no counter-party number.", call.id)
        return IngestOutcome.CONTACT_NOT_FOUND

    contact_id = await crm.find_contact_by_phone(tenant.credential, counterparty)
    if contact_id is None:
        logger.info("Contact %s not found for tenant %s.", counterparty, tenant.id)
        return IngestOutcome.CONTACT_NOT_FOUND

    if kind is EventKind.CALL_PROGRESS:
        inserted = store.upsert_call_start(
            call_id=call.id,
            contact_id=contact_id,
            credential=tenant.credential,
            call_time=parse_datetime(call.created_at),
            originating_number=tenant_number,
            tenant_id=tenant.id,
            was_answered=bool(call.answered_at),
        )
        if not inserted:
            return IngestOutcome.DUPLICATE_CALL
        return IngestOutcome.CALL_RECORDED

    if kind is EventKind.RECORDING_READY:
        media = call.media[0] if call.media else None
        duration = (media.duration if media else None) or 0
        recording_url = (media.url if media else None) or None
        await crm.create_note(
            tenant.credential, contact_id, build_note_body(duration, recording_url)
        )
        logger.info("Note created for contact %s.", contact_id)
        updated = store.apply_recording(call.id, int(round(duration)), recording_url)
        if not updated:
            logger.warning(
                "Recording for call %s has no stored call row; nothing updated.", call.id
            )
        return IngestOutcome.NOTE_CREATED

    raise ValueError(f"Unhandled event kind: {kind}")
