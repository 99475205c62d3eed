"""WiFi credentials stored on the robot in ``/sd/.network``."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from .errors import SandBotError

logger = logging.getLogger(__name__)

NETWORK_FS = "sd"
NETWORK_FILE = ".network"
WIFI_MODES = ("yes", "ap")


@dataclass
class NetworkConfig:
    wifi: str = "yes"
    ssid: str = ""
    password: str = ""
    hostname: str = ""
    exists: bool = False

    def __post_init__(self) -> None:
        if self.wifi not in WIFI_MODES:
            raise ValueError(f"wifi must be one of {WIFI_MODES}, got {self.wifi!r}")

    @staticmethod
    def from_json(data: Mapping[str, Any]) -> "NetworkConfig":
        wifi = str(data.get("wifi") or "yes")
        return NetworkConfig(
            wifi=wifi if wifi in WIFI_MODES else "yes",
            ssid=str(data.get("WiFiSSID") or ""),
            password=str(data.get("WiFiPW") or ""),
            hostname=str(data.get("WiFiHostname") or ""),
            exists=True,
        )

    def to_json(self) -> Dict[str, str]:
        # access point mode only needs the mode key
        if self.wifi == "ap":
            return {"wifi": "ap"}
        return {
            "wifi": "yes",
            "WiFiSSID": self.ssid,
            "WiFiPW": self.password,
            "WiFiHostname": self.hostname,
        }

    def to_text(self) -> str:
        return json.dumps(self.to_json())


def load_network_config(client) -> NetworkConfig:
    """Read the robot's network file, falling back to defaults when absent."""
    try:
        content = client.file_content(NETWORK_FS, NETWORK_FILE)
        data = json.loads(content)
    except (SandBotError, ValueError) as exc:
        logger.info("no usable network config on %s: %s", getattr(client, "host", "?"), exc)
        return NetworkConfig()
    if not isinstance(data, Mapping):
        return NetworkConfig()
    return NetworkConfig.from_json(data)


__all__ = ["NetworkConfig", "NETWORK_FS", "NETWORK_FILE", "load_network_config"]
