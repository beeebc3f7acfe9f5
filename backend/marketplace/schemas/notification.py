from typing import List

from pydantic import BaseModel

from .types import UTCDateTime


class NotificationResponse(BaseModel):
    """A notification derived from a pending booking; nothing is stored."""
    id: str
    title: str
    message: str
    type: str = "booking"
    read: bool = False
    created_at: UTCDateTime


class NotificationList(BaseModel):
    notifications: List[NotificationResponse]


class NotificationAck(BaseModel):
    success: bool = True
