# smart_attendance/camera/verify.py
import asyncio
import sys

from ..config import settings
from ..errors import CameraError
from ..logging_config import setup_logging
from ..models.oracle import OllamaVisionOracle, VisionOracle
from ..utils.checkin import check_in
from ..utils.db import init_db
from ..utils.presentation import present
from ..utils.store import AttendanceStore
from .capture import CapturePipeline
from .enroll import print_progress


async def verify_once(pipeline: CapturePipeline = None, store: AttendanceStore = None,
                      oracle: VisionOracle = None) -> bool:
    """Capture a burst, run the check-in and print the outcome. True on success."""
    pipeline = pipeline or CapturePipeline.from_settings()
    store = store or AttendanceStore()
    oracle = oracle or OllamaVisionOracle()

    print("Camera ready. Position your face clearly in the frame...")
    try:
        frames = await pipeline.capture(on_progress=print_progress)
    except CameraError as e:
        print(f"Camera error: {e}")
        return False

    print("Verifying your identity... Please hold still.")
    result = await check_in(frames, store, oracle)
    view = present(result.outcome, checked_in_at=result.record.timestamp if result.record else None)

    print(view.title)
    print(view.details)
    return view.status == "success"


def main() -> int:
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    init_db()
    ok = asyncio.run(verify_once())
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
