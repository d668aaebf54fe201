import asyncio
import logging
from typing import Any

import aiohttp
from pydantic import ValidationError

from ecoscan.core.models import ClassificationResult
from ecoscan.services.scanner.errors import (
    MalformedResponse,
    NoFrameAvailable,
    ServiceFailure,
    TransportFailure,
)

logger = logging.getLogger(__name__)

DEFAULT_CLASSIFIER_URL = "http://127.0.0.1:5000/predict"


def parse_classification(payload: Any) -> ClassificationResult:
    if not isinstance(payload, dict):
        raise MalformedResponse(f"Expected a JSON object, got {type(payload).__name__}")
    try:
        return ClassificationResult.model_validate(payload)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise MalformedResponse(f"Invalid classifier response ({fields})") from e


class ClassificationClient:
    """
    Submits one frame to the external classifier.

    Each call is a single POST with no internal retry; the capture loop decides
    whether another attempt happens on its next tick.
    """

    def __init__(self, url: str = DEFAULT_CLASSIFIER_URL, timeout: float = 1.2):
        self.url = url
        self.timeout = timeout

    async def classify(self, frame: bytes) -> ClassificationResult:
        if not frame:
            raise NoFrameAvailable("Empty frame")

        form = aiohttp.FormData()
        form.add_field("file", frame, filename="frame.jpg", content_type="image/jpeg")

        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.post(self.url, data=form) as response:
                    if not 200 <= response.status < 300:
                        raise ServiceFailure(response.status)
                    try:
                        payload = await response.json(content_type=None)
                    except ValueError as e:
                        raise MalformedResponse(f"Classifier returned invalid JSON: {e}") from e
        except asyncio.TimeoutError as e:
            raise TransportFailure(f"Classifier timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise TransportFailure(f"Classifier unreachable: {e}") from e

        result = parse_classification(payload)
        logger.debug(f"Classified as {result.waste_type} (recyclable={result.recyclable})")
        return result
