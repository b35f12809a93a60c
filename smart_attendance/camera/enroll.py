# smart_attendance/camera/enroll.py
import asyncio
import sys

from ..config import settings
from ..errors import CameraError, EnrollmentError
from ..logging_config import setup_logging
from ..utils.db import init_db
from ..utils.store import AttendanceStore
from .capture import CapturePipeline, FrameEvent


def print_progress(event: FrameEvent) -> None:
    print(f"Capturing... {event.index}/{event.total}")


async def enroll_user(employee_id: str, name: str, pipeline: CapturePipeline = None,
                      store: AttendanceStore = None) -> bool:
    """Capture one burst and register it as the user's gallery."""
    pipeline = pipeline or CapturePipeline.from_settings()
    store = store or AttendanceStore()

    print("Camera ready. Look at the camera, capturing profile pictures...")
    try:
        images = await pipeline.capture(on_progress=print_progress)
    except CameraError as e:
        print(f"Camera error: {e}")
        return False

    if not images:
        print("No frames were captured. Please try again.")
        return False

    try:
        identity = await store.create_user(name, employee_id, images)
    except EnrollmentError as e:
        print(f"Enrollment failed: {e}")
        return False

    print(f"User {identity.name} (ID {identity.employee_id}) registered with {len(identity.gallery)} images.")
    return True


def main(argv=None) -> int:
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    init_db()

    args = sys.argv[1:] if argv is None else argv
    if len(args) >= 2:
        employee_id, name = args[0], " ".join(args[1:])
    else:
        employee_id = input("Employee ID: ").strip()
        name = input("Full name: ").strip()

    ok = asyncio.run(enroll_user(employee_id, name))
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
