"""Shared utilities for homefaerie services."""

from .models import as_decimal, to_price
from .database import DBConfig, PriceStorage, DatabaseConnectionError, PriceLookupError
from .config import load_yaml_config, get_config_path, get_setting
from .mqtt import MQTTConfig, create_mqtt_client
from .logging import setup_logging

__all__ = [
    "as_decimal",
    "to_price",
    "DBConfig",
    "PriceStorage",
    "DatabaseConnectionError",
    "PriceLookupError",
    "load_yaml_config",
    "get_config_path",
    "get_setting",
    "MQTTConfig",
    "create_mqtt_client",
    "setup_logging",
]
