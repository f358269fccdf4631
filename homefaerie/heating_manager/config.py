"""Configuration loading for the heating manager."""

import logging
import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Tuple

from homefaerie.shared.config import get_config_path, get_setting, load_yaml_config
from homefaerie.shared.database import DEFAULT_DATABASE_URL, DBConfig
from homefaerie.shared.models import as_decimal
from homefaerie.shared.mqtt import MQTTConfig
from .commands import DEFAULT_NAMESPACE

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "heating-manager.yaml"

DEFAULT_REGION = "ee"
DEFAULT_THRESHOLD = Decimal("100.0")
# VAT applied on top of the stored spot price
DEFAULT_MARKUP = Decimal("1.2")
DEFAULT_DEVICES = ("0xb4e3f9fffe19faf7", "0xb4e3f9fffe206084")
DEFAULT_PUBLISH_TIMEOUT = 30.0
DEFAULT_CONNECT_TIMEOUT = 10.0


@dataclass
class Config:
    """Main configuration container."""
    db: DBConfig
    mqtt: MQTTConfig
    region: str = DEFAULT_REGION
    threshold: Decimal = DEFAULT_THRESHOLD
    markup: Decimal = DEFAULT_MARKUP
    devices: Tuple[str, ...] = DEFAULT_DEVICES
    namespace: str = DEFAULT_NAMESPACE
    publish_timeout: Optional[float] = DEFAULT_PUBLISH_TIMEOUT
    connect_timeout: Optional[float] = DEFAULT_CONNECT_TIMEOUT


def parse_devices(value: Any) -> Tuple[str, ...]:
    """Parse a device list from a comma separated string or a YAML list."""
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        raise ValueError(f"Device list must be a string or a list, got {value!r}")
    devices = tuple(item.strip() for item in items if item.strip())
    if not devices:
        raise ValueError("Device list is empty")
    return devices


def parse_timeout(value: Any) -> Optional[float]:
    """Parse a timeout in seconds; zero or less disables it."""
    seconds = float(value)
    return seconds if seconds > 0 else None


def parse_port(value: Any) -> int:
    port = int(value)
    if not 0 < port < 65536:
        raise ValueError(f"Port out of range: {port}")
    return port


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from environment variables and an optional YAML file.

    Environment variables win over the YAML file, which wins over built-in
    defaults.

    Args:
        config_path: Path to a YAML file. Defaults to HEATING_MANAGER_CONFIG,
            then config/heating-manager.yaml at the repo root. Only an
            explicitly named file is required to exist.

    Returns:
        Config object with all settings loaded.

    Raises:
        FileNotFoundError: If an explicitly named config file is missing.
        ValueError: If DATABASE_URL or a config file value is invalid.
    """
    explicit = config_path or os.getenv("HEATING_MANAGER_CONFIG")
    path = explicit or get_config_path(CONFIG_FILE_NAME)
    data = load_yaml_config(path, required=bool(explicit))

    mqtt_data = data.get("mqtt") or {}
    if not isinstance(mqtt_data, dict):
        raise ValueError(f"mqtt section must be a mapping, got {mqtt_data!r}")

    database_url = get_setting("DATABASE_URL", data.get("database_url"), DEFAULT_DATABASE_URL)

    mqtt_config = MQTTConfig(
        broker=get_setting("MQTT_URL", mqtt_data.get("broker"), "localhost"),
        port=get_setting("MQTT_PORT", mqtt_data.get("port"), 1883, parse=parse_port),
        keepalive=get_setting("MQTT_KEEPALIVE", mqtt_data.get("keepalive"), 60, parse=int),
    )

    return Config(
        db=DBConfig.from_url(database_url),
        mqtt=mqtt_config,
        region=get_setting("PRICE_REGION", data.get("region"), DEFAULT_REGION),
        threshold=get_setting("PRICE_THRESHOLD", data.get("threshold"), DEFAULT_THRESHOLD, parse=as_decimal),
        markup=get_setting("PRICE_MARKUP", data.get("markup"), DEFAULT_MARKUP, parse=as_decimal),
        devices=get_setting("HEATER_DEVICES", data.get("devices"), DEFAULT_DEVICES, parse=parse_devices),
        namespace=get_setting("BRIDGE_NAMESPACE", data.get("namespace"), DEFAULT_NAMESPACE),
        publish_timeout=get_setting(
            "PUBLISH_TIMEOUT", data.get("publish_timeout"), DEFAULT_PUBLISH_TIMEOUT, parse=parse_timeout
        ),
        connect_timeout=get_setting(
            "CONNECT_TIMEOUT", data.get("connect_timeout"), DEFAULT_CONNECT_TIMEOUT, parse=parse_timeout
        ),
    )
