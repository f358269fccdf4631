"""Price threshold decision for the heaters."""

from decimal import Decimal
from enum import Enum


class ActuationState(Enum):
    """Desired heater state, spelled the way zigbee2mqtt expects it."""
    ON = "ON"
    OFF = "OFF"


def decide(price: Decimal, threshold: Decimal) -> ActuationState:
    """Heat when electricity is at or below the threshold price."""
    if price <= threshold:
        return ActuationState.ON
    return ActuationState.OFF
