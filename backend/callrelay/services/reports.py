import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Set, Tuple

from callrelay.models import CallRecord
from callrelay.schemas import ReportStats
from callrelay.services.crm_client import CRMClient
from callrelay.services.periods import Period, bucket_bounds
from callrelay.services.tenants import Tenant, TenantDirectory

logger = logging.getLogger(__name__)

GroupKey = Tuple[str, Optional[str]]


@dataclass
class ReportRow:
    tenant_name: str
    originating_number: Optional[str] = None
    total_calls: int = 0
    answered_calls: int = 0
    scheduled_meetings: int = 0
    counted_contacts: Set[str] = field(default_factory=set)

    def stats(self) -> ReportStats:
        return ReportStats(
            total_calls=self.total_calls,
            answered_calls=self.answered_calls,
            scheduled_meetings=self.scheduled_meetings,
        )


@dataclass
class Report:
    period: Period
    reference_date: date
    start: datetime
    end: datetime
    by_number: bool = False
    rows: Dict[GroupKey, ReportRow] = field(default_factory=dict)
    dropped_rows: int = 0

    def as_dict(self) -> Dict[str, object]:
        """Group name to camelCase stats; nested per number when grouped by number."""
        result: Dict[str, object] = {}
        for (tenant_name, number), row in self.rows.items():
            stats = row.stats().model_dump(by_alias=True)
            if self.by_number:
                result.setdefault(tenant_name, {})[number or "unknown"] = stats
            else:
                result[tenant_name] = stats
        return result


def resolve_row_tenant(record: CallRecord, directory: TenantDirectory) -> Optional[Tenant]:
    tenant = directory.resolve_by_id(record.tenant_id)
    if tenant is None:
        tenant = directory.resolve_by_credential(record.credential)
    return tenant


def expected_meeting_tag(prefix: str, call_time: datetime) -> str:
    return f"{prefix}{call_time.strftime('%Y-%m-%d')}"


async def _check_meetings(
    crm: CRMClient,
    candidates: List[Tuple[GroupKey, Tenant, CallRecord]],
    tag_prefix: str,
    max_concurrency: int,
) -> List[bool]:
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def check(tenant: Tenant, record: CallRecord) -> bool:
        async with semaphore:
            return await crm.contact_has_tag(
                tenant.credential,
                record.contact_id,
                expected_meeting_tag(tag_prefix, record.call_time),
            )

    tasks = [
        asyncio.ensure_future(check(tenant, record)) for _, tenant, record in candidates
    ]
    try:
        return await asyncio.gather(*tasks)
    finally:
        # A failed check fails the whole report; stop the ones still waiting on the CRM.
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def build_report(
    records: Sequence[CallRecord],
    directory: TenantDirectory,
    crm: CRMClient,
    period: Period,
    reference_date: date,
    tenant: Optional[Tenant] = None,
    by_number: bool = False,
    tag_prefix: str = "meeting-scheduled-",
    max_concurrency: int = 5,
) -> Report:
    start, end = bucket_bounds(reference_date, period)
    report = Report(
        period=period,
        reference_date=reference_date,
        start=start,
        end=end,
        by_number=by_number,
    )

    # One representative (earliest) row per tenant/contact pair.
    representatives: Dict[Tuple[str, str], Tuple[GroupKey, Tenant, CallRecord]] = {}
    for record in sorted(records, key=lambda item: item.call_time):
        owner = resolve_row_tenant(record, directory)
        if owner is None:
            report.dropped_rows += 1
            continue
        if tenant is not None and owner.id != tenant.id:
            continue
        key: GroupKey = (owner.name, record.originating_number if by_number else None)
        row = report.rows.get(key)
        if row is None:
            row = report.rows[key] = ReportRow(
                tenant_name=owner.name,
                originating_number=key[1],
            )
        row.total_calls += 1
        if record.was_answered:
            row.answered_calls += 1
        representatives.setdefault((owner.id, record.contact_id), (key, owner, record))

    if report.dropped_rows:
        logger.debug(
            "Dropped %s call row(s) that match no configured tenant.", report.dropped_rows
        )

    candidates = list(representatives.values())
    results = await _check_meetings(crm, candidates, tag_prefix, max_concurrency)
    for (key, _, record), has_tag in zip(candidates, results):
        row = report.rows[key]
        if has_tag and record.contact_id not in row.counted_contacts:
            row.counted_contacts.add(record.contact_id)
            row.scheduled_meetings += 1
    return report
