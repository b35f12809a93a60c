# smart_attendance/models/oracle.py
import asyncio
import logging
import re
from typing import Optional, Protocol, Sequence

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import settings
from ..utils.images import strip_data_url

logger = logging.getLogger(__name__)

PROMPT = """
You are an advanced facial recognition system with implicit liveness detection.
You will be given the following images, in order:
1. A single live capture from a webcam.
2. A set of profile photos of one registered user, taken from slightly different angles.

Your tasks are:
1. Liveness check: decide whether the live capture shows a real, live person or a spoof
   attempt (a photo of a photo, a screen, a mask). Look at lighting, reflections, skin
   texture and signs of three-dimensionality.
2. Identity check: decide whether the person in the live capture is the same individual
   shown in the profile photos.

Respond ONLY with a JSON object of this form, without any other text or markdown:

{
  "isLive": <boolean>,
  "livenessReason": "<short explanation of the liveness decision>",
  "isMatch": <boolean>,
  "matchReason": "<short explanation of the identity decision>"
}
"""

RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "isLive": {"type": "boolean"},
        "livenessReason": {"type": "string"},
        "isMatch": {"type": "boolean"},
        "matchReason": {"type": "string"},
    },
    "required": ["isLive", "livenessReason", "isMatch", "matchReason"],
}

_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


class Assessment(BaseModel):
    """Liveness and identity verdict for one probe against one gallery."""
    model_config = ConfigDict(strict=True, frozen=True, populate_by_name=True)

    is_live: bool = Field(alias="isLive")
    liveness_reason: str = Field(alias="livenessReason")
    is_match: bool = Field(alias="isMatch")
    match_reason: str = Field(alias="matchReason")


class VisionOracle(Protocol):
    async def assess(self, probe: str, gallery: Sequence[str]) -> Optional[Assessment]:
        """Return the verdict, or None when the oracle is unavailable."""
        ...


def parse_assessment(text: str) -> Optional[Assessment]:
    """Parse the model output. Anything malformed is treated as unavailable."""
    if not text or not text.strip():
        return None
    fenced = _FENCE.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        return Assessment.model_validate_json(text)
    except ValidationError as e:
        logger.warning("Discarding malformed oracle response: %s", e.errors()[:1])
        return None


class OllamaVisionOracle:
    """Vision oracle backed by a multimodal model served by Ollama."""

    def __init__(self, url: str = None, model: str = None, timeout: float = None):
        self.url = url or settings.OLLAMA_URL
        self.model = model or settings.VISION_MODEL
        self.timeout = timeout if timeout is not None else settings.ORACLE_TIMEOUT_SECONDS

    def build_payload(self, probe: str, gallery: Sequence[str]) -> dict:
        images = [strip_data_url(probe)] + [strip_data_url(img) for img in gallery]
        return {
            "model": self.model,
            "prompt": PROMPT,
            "images": images,
            "format": RESPONSE_SCHEMA,
            "stream": False,
        }

    async def assess(self, probe: str, gallery: Sequence[str]) -> Optional[Assessment]:
        # requests is blocking; keep the event loop free while the model thinks
        return await asyncio.to_thread(self._assess_blocking, probe, gallery)

    def _assess_blocking(self, probe: str, gallery: Sequence[str]) -> Optional[Assessment]:
        payload = self.build_payload(probe, gallery)
        try:
            r = requests.post(self.url, json=payload, timeout=self.timeout)
            r.raise_for_status()
            response = r.json()
        except requests.RequestException as e:
            logger.warning("Vision oracle request failed: %s", e)
            return None
        except ValueError as e:
            logger.warning("Vision oracle returned a non-JSON body: %s", e)
            return None

        if not isinstance(response, dict):
            logger.warning("Vision oracle returned an unexpected body: %r", type(response))
            return None
        text = response.get("response")
        if not isinstance(text, str):
            logger.warning("Vision oracle response has no text")
            return None
        return parse_assessment(text)
