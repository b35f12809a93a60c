from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class EnrollRequest(BaseModel):
    name: str = Field(..., min_length=1)
    employee_id: str = Field(..., min_length=1)
    images: List[str] = Field(..., min_length=1)  # JPEG data URLs from one capture burst


class UserResponse(BaseModel):
    id: str
    name: str
    employee_id: str
    gallery_size: int
    thumbnail: str


class VerifyRequest(BaseModel):
    images: List[str] = []  # live capture burst; the first frame is the probe


class LogEntry(BaseModel):
    id: str
    user_id: str
    user_name: str
    employee_id: str
    timestamp: datetime


class VerifyResponse(BaseModel):
    status: str  # 'success' | 'no_users' | 'failure'
    icon: str
    title: str
    details: str
    action: str
    reason: Optional[str] = None
    user: Optional[UserResponse] = None
    record: Optional[LogEntry] = None
