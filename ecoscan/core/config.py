import json
import os
import logging
import secrets
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

CONFIG_PATH = "data/scanner_config.json"

DEFAULT_CONFIG = {
    "classifier_url": "http://127.0.0.1:5000/predict",
    "capture_period_ms": 1500,
    "request_timeout_s": 1.2,
    "history_capacity": 10,
    "recyclable_points": 5,
    "non_recyclable_points": 2,
    "camera_device": None,  # None = browser camera
    "storage_secret": None,  # None = random per process
    "log_level": "INFO"
}


class ConfigManager:
    def __init__(self, config_file: str = CONFIG_PATH):
        self.config_file = config_file
        self._generated_secret: Optional[str] = None
        self.config: Dict[str, Any] = self.load_config()

    def load_config(self) -> Dict[str, Any]:
        if not os.path.exists(self.config_file):
            return DEFAULT_CONFIG.copy()

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = json.load(f)
            if not isinstance(config, dict):
                raise ValueError("Config root must be an object")
            # Merge with defaults to ensure all keys exist
            merged = DEFAULT_CONFIG.copy()
            merged.update(config)
            return merged
        except Exception as e:
            logger.error(f"Failed to load config {self.config_file}: {e}")
            return DEFAULT_CONFIG.copy()

    def save_config(self):
        try:
            directory = os.path.dirname(self.config_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=4)
        except Exception as e:
            logger.error(f"Failed to save config: {e}")

    def get_classifier_url(self) -> str:
        return self.config.get("classifier_url", DEFAULT_CONFIG["classifier_url"])

    def set_classifier_url(self, url: str):
        self.config["classifier_url"] = url
        self.save_config()

    def get_capture_period(self) -> float:
        """Capture period in seconds."""
        return self.config.get("capture_period_ms", DEFAULT_CONFIG["capture_period_ms"]) / 1000.0

    def get_request_timeout(self) -> float:
        return float(self.config.get("request_timeout_s", DEFAULT_CONFIG["request_timeout_s"]))

    def get_history_capacity(self) -> int:
        return int(self.config.get("history_capacity", DEFAULT_CONFIG["history_capacity"]))

    def get_reward_points(self) -> Dict[bool, int]:
        return {
            True: int(self.config.get("recyclable_points", DEFAULT_CONFIG["recyclable_points"])),
            False: int(self.config.get("non_recyclable_points", DEFAULT_CONFIG["non_recyclable_points"])),
        }

    def get_camera_device(self) -> Optional[int]:
        return self.config.get("camera_device")

    def get_log_level(self) -> str:
        return self.config.get("log_level", "INFO")

    def get_storage_secret(self) -> str:
        """Secret for NiceGUI browser storage. Generated once if not configured."""
        secret = self.config.get("storage_secret")
        if secret:
            return secret
        if self._generated_secret is None:
            self._generated_secret = secrets.token_urlsafe(32)
        return self._generated_secret


config_manager = ConfigManager()
