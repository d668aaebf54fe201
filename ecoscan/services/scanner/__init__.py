from ecoscan.services.scanner.errors import (
    ClassificationError,
    MalformedResponse,
    NoFrameAvailable,
    ScanError,
    ServiceFailure,
    TransportFailure,
)
from ecoscan.services.scanner.classifier import ClassificationClient
from ecoscan.services.scanner.frame_source import (
    BrowserFrameSource,
    DeviceFrameSource,
    FrameSource,
    UploadFrameSource,
)
from ecoscan.services.scanner.reconciler import ScanHistory, ScanReconciler
from ecoscan.services.scanner.manager import ScannerManager
from ecoscan.core.config import ConfigManager


def build_scanner(config: ConfigManager, rewards, notifier) -> ScannerManager:
    """Wires a pipeline from the scanner config."""
    client = ClassificationClient(
        url=config.get_classifier_url(),
        timeout=config.get_request_timeout(),
    )
    reconciler = ScanReconciler(
        rewards=rewards,
        notifier=notifier,
        history_capacity=config.get_history_capacity(),
        reward_points=config.get_reward_points(),
    )
    return ScannerManager(client, reconciler, capture_period=config.get_capture_period())


__all__ = [
    'BrowserFrameSource', 'ClassificationClient', 'ClassificationError',
    'DeviceFrameSource', 'FrameSource', 'MalformedResponse', 'NoFrameAvailable',
    'ScanError', 'ScanHistory', 'ScanReconciler', 'ScannerManager',
    'ServiceFailure', 'TransportFailure', 'UploadFrameSource', 'build_scanner',
]
