from pydantic import BaseModel, ConfigDict, EmailStr
from datetime import datetime
from typing import Any, List, Optional


class SettingRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    value: Any = None
    description: Optional[str] = None
    updated_at: Optional[datetime] = None


class SettingUpsert(BaseModel):
    value: Any = None
    description: Optional[str] = None


class NotificationRecipients(BaseModel):
    emails: List[EmailStr] = []
