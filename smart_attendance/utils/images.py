import base64
import binascii

import cv2
import numpy as np

DATA_URL_PREFIX = "data:image/jpeg;base64,"


# -----------------------------
# Data URLs <-> bytes / arrays
# -----------------------------
def to_data_url(jpeg_bytes: bytes) -> str:
    return DATA_URL_PREFIX + base64.b64encode(jpeg_bytes).decode("ascii")


def strip_data_url(image_b64: str) -> str:
    """Return the bare base64 payload of a data URL (or of a bare payload)."""
    if "," in image_b64:
        _, image_b64 = image_b64.split(",", 1)
    return image_b64


def read_image_from_b64(image_b64: str):
    """Decode a base64 image into a BGR array, or None if it is not an image."""
    try:
        raw = base64.b64decode(strip_data_url(image_b64), validate=True)
    except (binascii.Error, ValueError):
        return None
    nparr = np.frombuffer(raw, np.uint8)
    if nparr.size == 0:
        return None
    return cv2.imdecode(nparr, cv2.IMREAD_COLOR)


def encode_frame(frame, quality: int = 90) -> str:
    """Encode a BGR frame as a JPEG data URL."""
    ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise ValueError("Could not encode frame as JPEG")
    return to_data_url(buf.tobytes())
