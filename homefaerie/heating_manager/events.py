"""Event loop outcomes and transport errors."""

from dataclasses import dataclass, field
from typing import Any, Dict, Union


class TransportError(Exception):
    """The MQTT connection failed or was lost."""


class PublishError(Exception):
    """A command could not be delivered."""


@dataclass(frozen=True)
class Event:
    """A transport event observed while the session is live."""
    name: str
    data: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        details = ", ".join(f"{k}={v}" for k, v in self.data.items())
        return f"{self.name}({details})"


@dataclass(frozen=True)
class Continue:
    """The loop observed an event and keeps polling."""
    event: Event


@dataclass(frozen=True)
class Cancelled:
    """The session was cancelled after all commands were delivered."""


@dataclass(frozen=True)
class Failed:
    """The session hit a fatal error."""
    error: BaseException


LoopOutcome = Union[Continue, Cancelled, Failed]
