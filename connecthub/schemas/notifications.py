import json
from datetime import datetime
from pydantic import BaseModel, field_validator
from typing import Any, Dict, Optional

class NotificationOut(BaseModel):
    id: int
    kind: str
    payload: Dict[str, Any]
    read: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator('payload', mode='before')
    @classmethod
    def decode_payload(cls, value):
        if isinstance(value, str):
            return json.loads(value)
        return value
