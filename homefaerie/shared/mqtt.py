"""MQTT configuration and client construction."""

import logging
import random
import string
from dataclasses import dataclass, field
from typing import Sequence

import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion
from paho.mqtt.packettypes import PacketTypes
from paho.mqtt.properties import Properties

logger = logging.getLogger(__name__)

QOS_EXACTLY_ONCE = 2

CLIENT_ID_PREFIX = ("home-faerie", "heating-manager")
CLIENT_ID_SUFFIX_LENGTH = 7

# 512 KiB, applied to both incoming and outgoing packets
DEFAULT_MAX_PACKET_SIZE = 512 * 1024


def generate_client_id(
    prefix: Sequence[str] = CLIENT_ID_PREFIX,
    suffix_length: int = CLIENT_ID_SUFFIX_LENGTH,
) -> str:
    """Build a client id with a random alphanumeric suffix.

    Concurrent runs must never share a client id, otherwise the broker would
    kick the older connection off.

    Args:
        prefix: Fixed leading parts of the identifier.
        suffix_length: Number of random characters to append.

    Returns:
        Identifier such as 'home-faerie-heating-manager-a8Zk2Qp'.
    """
    suffix = "".join(random.choices(string.ascii_letters + string.digits, k=suffix_length))
    return "-".join([*prefix, suffix])


@dataclass
class MQTTConfig:
    """MQTT broker configuration."""
    broker: str = "localhost"
    port: int = 1883
    client_id: str = field(default_factory=generate_client_id)
    keepalive: int = 60
    max_packet_size: int = DEFAULT_MAX_PACKET_SIZE


def create_mqtt_client(config: MQTTConfig) -> mqtt.Client:
    """Create a paho-mqtt client for the given configuration.

    The client speaks MQTT v5 so the receive packet limit can be advertised
    to the broker in the CONNECT properties.

    Args:
        config: MQTT configuration.

    Returns:
        An unconnected paho-mqtt client.
    """
    client = mqtt.Client(
        callback_api_version=CallbackAPIVersion.VERSION2,
        client_id=config.client_id,
        protocol=mqtt.MQTTv5,
        reconnect_on_failure=False,
    )
    client.enable_logger(logging.getLogger("paho.mqtt"))
    return client


def connect_properties(config: MQTTConfig) -> Properties:
    """Build MQTT v5 CONNECT properties for the configured limits."""
    properties = Properties(PacketTypes.CONNECT)
    properties.MaximumPacketSize = config.max_packet_size
    return properties
