"""Device command encoding for the zigbee2mqtt bridge."""

import json
from dataclasses import dataclass

from .policy import ActuationState

DEFAULT_NAMESPACE = "zigbee2mqtt"


@dataclass(frozen=True)
class Command:
    """A single MQTT message addressed to one device."""
    topic: str
    payload: bytes


def encode_command(
    device: str,
    state: ActuationState,
    namespace: str = DEFAULT_NAMESPACE,
) -> Command:
    """Encode a state change for a device.

    Args:
        device: Device identifier as known to the bridge (e.g., '0xb4e3f9fffe19faf7').
        state: Desired state.
        namespace: Bridge topic prefix.

    Returns:
        Command for topic '{namespace}/{device}/set' with payload {"state":"ON"|"OFF"}.
    """
    payload = json.dumps({"state": state.value}, separators=(",", ":"))
    return Command(topic=f"{namespace}/{device}/set", payload=payload.encode("utf-8"))
