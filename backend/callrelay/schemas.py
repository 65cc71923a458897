from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MediaItem(BaseModel):
    duration: Optional[float] = None
    url: Optional[str] = None


class CallObject(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    from_number: Optional[str] = Field(default=None, alias="from")
    to_number: Optional[str] = Field(default=None, alias="to")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    answered_at: Optional[str] = Field(default=None, alias="answeredAt")
    media: Optional[List[MediaItem]] = None


class WebhookData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object: Optional[CallObject] = None


class WebhookEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = None
    data: Optional[WebhookData] = None


class ReportStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_calls: int = Field(default=0, serialization_alias="totalCalls")
    answered_calls: int = Field(default=0, serialization_alias="answeredCalls")
    scheduled_meetings: int = Field(default=0, serialization_alias="scheduledMeetings")


class ReportResponse(BaseModel):
    period: str
    date: str
    start: str
    end: str
    groups: Dict[str, object]
