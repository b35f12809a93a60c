import logging
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Response, status
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .errors import DuplicateExternalCode, InvalidEnrollment, UserNotFound
from .logging_config import setup_logging
from .models.oracle import OllamaVisionOracle, VisionOracle
from .models.records import AttendanceRecord, Identity
from .models.verification import Failure, Success
from .schemas import EnrollRequest, LogEntry, UserResponse, VerifyRequest, VerifyResponse
from .utils.checkin import check_in
from .utils.db import init_db
from .utils.images import read_image_from_b64
from .utils.presentation import present
from .utils.store import AttendanceStore

setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize database
init_db()

store = AttendanceStore()
oracle = OllamaVisionOracle()


def get_store() -> AttendanceStore:
    return store


def get_oracle() -> VisionOracle:
    return oracle


def user_response(identity: Identity) -> UserResponse:
    return UserResponse(
        id=identity.id,
        name=identity.name,
        employee_id=identity.employee_id,
        gallery_size=len(identity.gallery),
        thumbnail=identity.thumbnail,
    )


def log_entry(record: AttendanceRecord) -> LogEntry:
    return LogEntry(**record.to_dict())


def parse_iso(value: Optional[str], field: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid ISO timestamp for {field}: {value}")


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


# -----------------------------
# 1. Users
# -----------------------------
@app.get("/users", response_model=List[UserResponse])
async def list_users(store: AttendanceStore = Depends(get_store)):
    return [user_response(u) for u in await store.list_users()]


@app.post("/enroll", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def enroll(request: EnrollRequest, store: AttendanceStore = Depends(get_store)):
    for i, image in enumerate(request.images):
        if read_image_from_b64(image) is None:
            raise HTTPException(status_code=422, detail=f"Image {i + 1} is not a valid image")
    try:
        identity = await store.create_user(request.name, request.employee_id, request.images)
    except DuplicateExternalCode as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except InvalidEnrollment as e:
        raise HTTPException(status_code=422, detail=str(e))
    return user_response(identity)


@app.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: str, store: AttendanceStore = Depends(get_store)):
    try:
        await store.delete_user(user_id)
    except UserNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -----------------------------
# 2. Verify -> check-in
# -----------------------------
@app.post("/verify", response_model=VerifyResponse)
async def verify(request: VerifyRequest,
                 store: AttendanceStore = Depends(get_store),
                 oracle: VisionOracle = Depends(get_oracle)):
    result = await check_in(request.images, store, oracle)
    outcome = result.outcome
    view = present(outcome, checked_in_at=result.record.timestamp if result.record else None)

    response = VerifyResponse(
        status=view.status,
        icon=view.icon,
        title=view.title,
        details=view.details,
        action=view.action,
    )
    if isinstance(outcome, Success):
        response.user = user_response(outcome.identity)
        response.record = log_entry(result.record)
    elif isinstance(outcome, Failure):
        response.reason = outcome.reason.value
    return response


# -----------------------------
# 3. Logs -> attendance records
# -----------------------------
@app.get("/logs", response_model=List[LogEntry])
async def get_logs(since_iso: str = None, until_iso: str = None,
                   store: AttendanceStore = Depends(get_store)):
    records = await store.list_attendance_records(
        since=parse_iso(since_iso, "since_iso"),
        until=parse_iso(until_iso, "until_iso"),
        limit=settings.LOGS_LIMIT,
    )
    return [log_entry(r) for r in reversed(records)]


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
