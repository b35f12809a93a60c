from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytz

from ..config import settings
from ..models.verification import Failure, NoCandidates, Success, VerificationOutcome

GO_BACK = "Go Back"
TRY_AGAIN = "Try Again"


@dataclass(frozen=True)
class OutcomeView:
    status: str   # success | no_users | failure
    icon: str
    title: str
    details: str
    action: str


def local_time(ts: datetime, tz: Optional[str] = None) -> datetime:
    zone = pytz.timezone(tz or settings.TIMEZONE)
    if ts.tzinfo is None:
        ts = pytz.utc.localize(ts)
    return ts.astimezone(zone)


def present(outcome: VerificationOutcome, checked_in_at: Optional[datetime] = None,
            tz: Optional[str] = None) -> OutcomeView:
    """Map a verification outcome to what the kiosk shows."""
    if isinstance(outcome, Success):
        name = outcome.identity.name
        when = local_time(checked_in_at or datetime.now(pytz.utc), tz)
        return OutcomeView(
            status="success",
            icon="check-circle",
            title=f"Attendance Marked for {name}",
            details=f"Welcome, {name}! Your check-in at {when.strftime('%H:%M:%S')} was successful.",
            action=GO_BACK,
        )
    if isinstance(outcome, NoCandidates):
        return OutcomeView(
            status="no_users",
            icon="alert-triangle",
            title="No Users Registered",
            details="Please register users in the admin view before marking attendance.",
            action=GO_BACK,
        )
    if isinstance(outcome, Failure):
        return OutcomeView(
            status="failure",
            icon="x-circle",
            title="Verification Failed",
            details=outcome.explanation,
            action=TRY_AGAIN,
        )
    raise TypeError(f"Unknown verification outcome: {outcome!r}")
