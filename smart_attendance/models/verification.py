"""
Attendance verification: one probe image against the enrolled roster.

The scan is a fold over the roster. ``advance`` is the transition applied to
each candidate's oracle verdict and ``resolve`` turns the final state into the
single outcome of the attempt. ``verify`` drives the fold, calling the oracle
once per identity, in roster order, until a candidate is accepted.

Priority of failure explanations during a scan:

* a liveness failure is sticky: once seen, later match failures and later
  oracle errors never replace it;
* a later candidate that is live and matches still wins outright.
"""
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence, Union

from .oracle import Assessment, VisionOracle
from .records import Identity

logger = logging.getLogger(__name__)


class FailureReason(str, Enum):
    CAPTURE_EMPTY = "capture_empty"
    LIVENESS_FAILED = "liveness_failed"
    IDENTITY_NOT_RECOGNIZED = "identity_not_recognized"
    ORACLE_ERROR = "oracle_error"


@dataclass(frozen=True)
class Success:
    identity: Identity


@dataclass(frozen=True)
class NoCandidates:
    pass


@dataclass(frozen=True)
class Failure:
    reason: FailureReason
    explanation: str
    detail: Optional[str] = None


VerificationOutcome = Union[Success, NoCandidates, Failure]


# ==========================
# FAILURE EXPLANATIONS
# ==========================
def capture_failed() -> Failure:
    return Failure(FailureReason.CAPTURE_EMPTY, "Could not capture an image. Please try again.")


def liveness_failed(reason: str) -> Failure:
    return Failure(
        FailureReason.LIVENESS_FAILED,
        f"Liveness Check Failed: {reason}. Please make sure you are in a well-lit room "
        "and are not using a photo or screen.",
        detail=reason,
    )


def identity_not_recognized(reason: str) -> Failure:
    return Failure(
        FailureReason.IDENTITY_NOT_RECOGNIZED,
        f"Identity Match Failed: {reason}. Please ensure you are a registered user "
        "and your face is clearly visible.",
        detail=reason,
    )


def oracle_error() -> Failure:
    return Failure(FailureReason.ORACLE_ERROR, "An error occurred during verification. Please try again.")


def verification_error() -> Failure:
    return Failure(FailureReason.ORACLE_ERROR, "Could not verify your identity. Please try again.")


# ==========================
# SCAN STATE
# ==========================
@dataclass(frozen=True)
class ScanState:
    failure: Optional[Failure] = None
    liveness_failed: bool = False
    match: Optional[Identity] = None

    @property
    def done(self) -> bool:
        return self.match is not None


def advance(state: ScanState, identity: Identity, assessment: Optional[Assessment]) -> ScanState:
    """Fold one candidate's verdict (None = oracle unavailable) into the scan state."""
    if state.done:
        return state

    if assessment is None:
        if state.liveness_failed:
            return state
        return replace(state, failure=oracle_error())

    if assessment.is_live and assessment.is_match:
        return replace(state, match=identity)

    if not assessment.is_live:
        return replace(state, failure=liveness_failed(assessment.liveness_reason), liveness_failed=True)

    if not assessment.is_match and not state.liveness_failed:
        return replace(state, failure=identity_not_recognized(assessment.match_reason))

    return state


def resolve(state: ScanState) -> VerificationOutcome:
    if state.match is not None:
        return Success(state.match)
    return state.failure or verification_error()


async def verify(probe: Optional[str], roster: Sequence[Identity], oracle: VisionOracle) -> VerificationOutcome:
    """Run one verification attempt and return exactly one outcome."""
    if not probe:
        return capture_failed()
    if not roster:
        return NoCandidates()

    state = ScanState()
    for identity in roster:
        assessment = await oracle.assess(probe, identity.gallery)
        if assessment is None:
            logger.warning("Oracle unavailable for %s (%s)", identity.name, identity.employee_id)
        else:
            logger.info(
                "Verification attempt for %s: live=%s match=%s",
                identity.name, assessment.is_live, assessment.is_match,
            )
            logger.debug("Liveness reason: %s | Match reason: %s",
                         assessment.liveness_reason, assessment.match_reason)
        state = advance(state, identity, assessment)
        if state.done:
            break

    return resolve(state)
