"""
Timed multi-frame capture from a local camera.

``CapturePipeline`` owns at most one open camera at a time. A capture session
opens the device, runs a burst of ``frame_count`` timer ticks (one frame per
tick, JPEG-encoded) and always releases the device on the way out, including
when the consuming task is cancelled.
"""
import asyncio
import logging
from contextlib import aclosing, asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, List, Optional, Union

import cv2

from ..config import settings
from ..errors import CameraBusy, DeviceAccessDenied, NoDevice
from ..utils.images import encode_frame

logger = logging.getLogger(__name__)

SourceType = Union[int, str]


@dataclass(frozen=True)
class FrameEvent:
    index: int   # 1-based count of frames collected so far
    total: int   # frames requested for the burst
    image: str   # JPEG data URL

    @property
    def progress(self) -> float:
        return self.index / self.total


def resolve_source(source: SourceType) -> SourceType:
    """Camera indices may come in as strings from env/CLI ("0" -> 0)."""
    if isinstance(source, str) and source.strip().isdigit():
        return int(source.strip())
    return source


class CameraHandle:
    """An open video device. Release it with ``close``; closing twice is harmless."""

    def __init__(self, capture, source: SourceType):
        self._capture = capture
        self.source = source

    @property
    def closed(self) -> bool:
        return self._capture is None

    def read(self):
        """Grab the current frame, or None if the device gave nothing usable."""
        if self._capture is None:
            return None
        ret, frame = self._capture.read()
        if not ret or frame is None or getattr(frame, "size", 0) == 0:
            return None
        return frame

    def close(self) -> None:
        capture, self._capture = self._capture, None
        if capture is not None:
            capture.release()
            logger.info("Camera %s released", self.source)


class CapturePipeline:
    def __init__(self, source: SourceType = None, *, width: Optional[int] = None,
                 height: Optional[int] = None, jpeg_quality: int = None,
                 capture_factory: Callable = cv2.VideoCapture):
        self.source = resolve_source(settings.CAMERA_SOURCE if source is None else source)
        self.width = width
        self.height = height
        self.jpeg_quality = settings.JPEG_QUALITY if jpeg_quality is None else jpeg_quality
        self.capture_factory = capture_factory
        self._handle: Optional[CameraHandle] = None
        self._busy = False

    @classmethod
    def from_settings(cls, **kwargs) -> "CapturePipeline":
        kwargs.setdefault("width", settings.CAMERA_WIDTH)
        kwargs.setdefault("height", settings.CAMERA_HEIGHT)
        return cls(settings.CAMERA_SOURCE, **kwargs)

    @property
    def busy(self) -> bool:
        return self._busy

    # -----------------------------
    # Device
    # -----------------------------
    def open_device(self) -> CameraHandle:
        if self._handle is not None and not self._handle.closed:
            raise CameraBusy("The camera is already open")

        try:
            capture = self.capture_factory(self.source)
        except (cv2.error, PermissionError, OSError) as e:
            logger.error("Camera %s access denied: %s", self.source, e)
            raise DeviceAccessDenied(
                "Could not access webcam. Please check permissions and try again."
            ) from e

        if capture is None or not capture.isOpened():
            if capture is not None:
                capture.release()
            logger.error("Camera %s could not be opened", self.source)
            raise NoDevice(f"No camera available at source {self.source!r}")

        if self.width:
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, float(self.width))
        if self.height:
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, float(self.height))

        self._handle = CameraHandle(capture, self.source)
        logger.info("Camera %s opened", self.source)
        return self._handle

    def close_device(self, handle: Optional[CameraHandle] = None) -> None:
        handle = handle or self._handle
        if handle is not None:
            handle.close()
        if handle is self._handle:
            self._handle = None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[CameraHandle]:
        handle = self.open_device()
        try:
            yield handle
        finally:
            self.close_device(handle)

    # -----------------------------
    # Burst
    # -----------------------------
    async def capture_burst(self, handle: CameraHandle, frame_count: int = None,
                            interval_ms: int = None) -> AsyncIterator[FrameEvent]:
        """
        Yield up to ``frame_count`` frames, one per timer tick of ``interval_ms``.

        Ticks that produce no usable frame are skipped, so fewer frames may come
        out, possibly none. Requesting a burst while another one is running
        yields nothing.
        """
        frame_count = settings.CAPTURE_FRAME_COUNT if frame_count is None else frame_count
        interval_ms = settings.CAPTURE_INTERVAL_MS if interval_ms is None else interval_ms

        if self._busy:
            logger.warning("Capture already in progress, ignoring new burst")
            return

        self._busy = True
        collected = 0
        try:
            for _ in range(frame_count):
                await asyncio.sleep(interval_ms / 1000.0)
                if handle.closed:
                    logger.info("Camera closed mid-burst after %d/%d frames", collected, frame_count)
                    break
                frame = handle.read()
                if frame is None:
                    logger.warning("No frame from camera %s", handle.source)
                    continue
                collected += 1
                yield FrameEvent(collected, frame_count, encode_frame(frame, self.jpeg_quality))
        finally:
            self._busy = False

    async def capture(self, frame_count: int = None, interval_ms: int = None,
                      on_progress: Optional[Callable[[FrameEvent], None]] = None) -> List[str]:
        """Open the camera, run one burst and release the camera. May return []."""
        images: List[str] = []
        async with self.session() as handle:
            async with aclosing(self.capture_burst(handle, frame_count, interval_ms)) as burst:
                async for event in burst:
                    images.append(event.image)
                    if on_progress is not None:
                        on_progress(event)
        logger.info("Captured %d frame(s)", len(images))
        return images
