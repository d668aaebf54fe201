from typing import Optional


class ScanError(Exception):
    """Base class for recoverable scanning failures."""


class NoFrameAvailable(ScanError):
    """No file was chosen or the camera has not produced a frame yet."""


class ClassificationError(ScanError):
    pass


class TransportFailure(ClassificationError):
    """Classifier unreachable or the request timed out."""


class ServiceFailure(ClassificationError):
    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        super().__init__(message or f"Classifier returned HTTP {status}")


class MalformedResponse(ClassificationError):
    """Classifier answered but the body is not a usable result."""
