from dataclasses import dataclass
from datetime import datetime
from typing import Tuple


@dataclass(frozen=True)
class Identity:
    """An enrolled person and the gallery captured at enrollment."""
    id: str
    name: str
    employee_id: str
    gallery: Tuple[str, ...]

    @property
    def thumbnail(self) -> str:
        return self.gallery[0]


@dataclass(frozen=True)
class AttendanceRecord:
    """Snapshot of an identity at the moment it checked in."""
    id: str
    user_id: str
    user_name: str
    employee_id: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "employee_id": self.employee_id,
            "timestamp": self.timestamp.isoformat(),
        }
