from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Any, Optional


class ActivityLogRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    activity_type: str
    description: str
    details: Optional[Any] = None
    status: Optional[str] = None
    performed_by: Optional[str] = None
    request_id: Optional[int] = None
    created_at: Optional[datetime] = None


class ActivityStat(BaseModel):
    activity_type: str
    status: Optional[str] = None
    count: int
