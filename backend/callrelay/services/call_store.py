import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from callrelay.models import CallRecord
from callrelay.services.periods import Period, bucket_bounds

logger = logging.getLogger(__name__)


class CallStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def upsert_call_start(
        self,
        call_id: str,
        contact_id: str,
        credential: str,
        call_time: datetime,
        originating_number: Optional[str] = None,
        tenant_id: Optional[str] = None,
        was_answered: bool = False,
    ) -> bool:
        """Insert the call row; returns False when ``call_id`` already exists."""
        record = CallRecord(
            call_id=call_id,
            tenant_id=tenant_id,
            contact_id=contact_id,
            credential=credential,
            originating_number=originating_number,
            call_time=call_time,
            duration=0,
            was_answered=was_answered,
            recording_url=None,
        )
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("Call %s already stored; skipping insert.", call_id)
            return False
        return True

    def apply_recording(
        self, call_id: str, duration: int, recording_url: Optional[str]
    ) -> int:
        updated = (
            self.db.query(CallRecord)
            .filter(CallRecord.call_id == call_id)
            .update(
                {
                    CallRecord.duration: duration,
                    CallRecord.recording_url: recording_url,
                    CallRecord.was_answered: True,
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated

    def query_by_period(self, reference: date, period: Period) -> List[CallRecord]:
        start, end = bucket_bounds(reference, Period(period))
        return (
            self.db.query(CallRecord)
            .filter(CallRecord.call_time >= start, CallRecord.call_time < end)
            .order_by(CallRecord.call_time, CallRecord.id)
            .all()
        )
