import asyncio
import base64
import binascii
import logging
import threading
from typing import Awaitable, Callable, Optional

import cv2

from ecoscan.services.scanner.errors import NoFrameAvailable

logger = logging.getLogger(__name__)

Frame = bytes


def decode_data_url(data_url: Optional[str]) -> Frame:
    """Decodes a `data:image/...;base64,` URL (or bare base64) into raw bytes."""
    if not data_url:
        raise NoFrameAvailable("Camera not active or ready")

    encoded = data_url.split(",", 1)[1] if "," in data_url else data_url
    try:
        content = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise NoFrameAvailable(f"Invalid frame data: {e}") from e

    if not content:
        raise NoFrameAvailable("Camera returned an empty frame")
    return content


class FrameSource:
    """Produces raw image bytes on demand. Never mutates pipeline state."""

    async def sample_frame(self) -> Frame:
        raise NotImplementedError

    async def capture_once(self) -> Frame:
        return await self.sample_frame()


class UploadFrameSource(FrameSource):
    """One-shot source backed by a user-selected file."""

    def __init__(self, content: Optional[bytes] = None, filename: Optional[str] = None):
        self.content = content
        self.filename = filename or "upload.jpg"

    async def capture_once(self) -> Frame:
        if not self.content:
            raise NoFrameAvailable("No file selected")
        return self.content

    async def sample_frame(self) -> Frame:
        return await self.capture_once()


class BrowserFrameSource(FrameSource):
    """
    Pulls the current snapshot of the page's <video> element.

    `run_javascript` is the client's JavaScript runner; the script must resolve
    to a JPEG data URL, or null while the camera is still starting.
    """

    def __init__(self, run_javascript: Callable[..., Awaitable], script: str = "captureSingleFrame()", timeout: float = 3.0):
        self.run_javascript = run_javascript
        self.script = script
        self.timeout = timeout

    async def sample_frame(self) -> Frame:
        try:
            data_url = await self.run_javascript(self.script, timeout=self.timeout)
        except TimeoutError as e:
            raise NoFrameAvailable("Camera did not answer in time") from e
        return decode_data_url(data_url)


class DeviceFrameSource(FrameSource):
    """Local capture device read through OpenCV."""

    def __init__(self, device: int = 0, resolution=(640, 480), jpeg_quality: int = 95):
        self.device = device
        self.resolution = resolution
        self.jpeg_quality = jpeg_quality
        self.capture = None
        # Serialises reads with release; reads run in a worker thread
        self._lock = threading.Lock()

    def open(self) -> bool:
        self.capture = cv2.VideoCapture(self.device)
        self.capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.resolution[0])
        self.capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.resolution[1])

        if not self.capture.isOpened():
            logger.error(f"Failed to open camera device {self.device}")
            self.release()
            return False

        logger.info(f"Camera device {self.device} opened")
        return True

    async def sample_frame(self) -> Frame:
        if self.capture is None or not self.capture.isOpened():
            raise NoFrameAvailable(f"Camera device {self.device} is not open")
        # Blocking read runs off the event loop
        return await asyncio.to_thread(self._read_jpeg)

    def _read_jpeg(self) -> Frame:
        with self._lock:
            capture = self.capture
            if capture is None:
                raise NoFrameAvailable(f"Camera device {self.device} was released")
            ret, frame = capture.read()

        if not ret or frame is None:
            raise NoFrameAvailable(f"Camera device {self.device} has no frame yet")

        ok, buffer = cv2.imencode('.jpg', frame, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
        if not ok:
            raise NoFrameAvailable("Failed to encode frame")
        return buffer.tobytes()

    def release(self):
        with self._lock:
            if self.capture is None:
                return
            self.capture.release()
            self.capture = None
        logger.info(f"Camera device {self.device} released")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
