from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from callrelay.core.database import Base


class CallRecord(Base):
    __tablename__ = "call_records"

    id = Column(Integer, primary_key=True)
    call_id = Column(String(128), unique=True, nullable=False)
    tenant_id = Column(String(64), nullable=True, index=True)
    contact_id = Column(String(128), nullable=False)
    credential = Column(String(255), nullable=False)
    originating_number = Column(String(64), nullable=True, index=True)
    call_time = Column(DateTime, nullable=False, index=True)
    duration = Column(Integer, default=0, nullable=False)
    was_answered = Column(Boolean, default=False, nullable=False)
    recording_url = Column(String(1024), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
