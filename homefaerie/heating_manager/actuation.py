"""Publishes heater commands over an MQTT session."""

import logging
from typing import List, Optional, Sequence

from homefaerie.shared.mqtt import QOS_EXACTLY_ONCE
from .commands import DEFAULT_NAMESPACE, encode_command
from .policy import ActuationState
from .session import MQTTSession

logger = logging.getLogger(__name__)


class ActuationSession:
    """Sends one command per heater, then cancels the session.

    The first failure aborts the remaining commands and is reported to the
    event loop as a fatal error; devices already switched stay switched.
    """

    def __init__(
        self,
        session: MQTTSession,
        devices: Sequence[str],
        namespace: str = DEFAULT_NAMESPACE,
        publish_timeout: Optional[float] = None,
        connect_timeout: Optional[float] = None,
    ):
        self.session = session
        self.devices = tuple(devices)
        self.namespace = namespace
        self.publish_timeout = publish_timeout
        self.connect_timeout = connect_timeout
        self.published: List[str] = []

    async def actuate(self, state: ActuationState) -> bool:
        """Publish state to every device in order.

        Returns:
            True if every device acknowledged its command and the session
            was cancelled, False if the run failed.
        """
        try:
            await self.session.wait_connected(self.connect_timeout)

            for device in self.devices:
                command = encode_command(device, state, self.namespace)
                await self.session.publish(
                    command.topic,
                    command.payload,
                    qos=QOS_EXACTLY_ONCE,
                    retain=False,
                    timeout=self.publish_timeout,
                )
                self.published.append(device)
                logger.info(f"Set {device} to {state.value}")
        except Exception as e:
            remaining = self.devices[len(self.published):]
            logger.error(f"Failed to actuate heaters: {e} (not sent: {', '.join(remaining)})")
            self.session.fail(e)
            return False

        self.session.cancel()
        return True
