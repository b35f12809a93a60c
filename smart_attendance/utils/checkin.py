import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..models.oracle import VisionOracle
from ..models.records import AttendanceRecord
from ..models.verification import Success, VerificationOutcome, verify
from .store import AttendanceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckInResult:
    outcome: VerificationOutcome
    record: Optional[AttendanceRecord] = None


async def check_in(frames: Sequence[str], store: AttendanceStore, oracle: VisionOracle) -> CheckInResult:
    """
    Verify the first captured frame against every enrolled user and, only when
    someone is accepted, append their attendance record before returning.
    """
    probe = frames[0] if frames else None
    roster = await store.list_users()

    outcome = await verify(probe, roster, oracle)

    if isinstance(outcome, Success):
        record = await store.append_attendance_record(outcome.identity)
        return CheckInResult(outcome, record)

    logger.info("Check-in not accepted: %s", getattr(outcome, "reason", "no users registered"))
    return CheckInResult(outcome)
