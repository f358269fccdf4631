"""Event loop driver for the MQTT session."""

import logging
from enum import Enum

from .events import Cancelled, Continue, LoopOutcome
from .session import MQTTSession

logger = logging.getLogger(__name__)


class DriverState(Enum):
    POLLING = "polling"
    DRAINING = "draining"
    TERMINATED = "terminated"


class EventLoopDriver:
    """Drains session events until the session is cancelled or fails.

    Cancellation is the normal way out: it is only signalled once every
    command has been acknowledged. Any other terminal outcome is a failure.
    """

    def __init__(self, session: MQTTSession):
        self.session = session
        self.state = DriverState.POLLING

    async def run(self) -> LoopOutcome:
        """Poll until a terminal outcome, then close the session.

        Returns:
            The terminal outcome, either Cancelled or Failed.
        """
        if self.state is not DriverState.POLLING:
            raise RuntimeError(f"Event loop driver is {self.state.value}")

        while True:
            outcome = await self.session.poll()
            if isinstance(outcome, Continue):
                logger.debug(f"Received event: {outcome.event}")
                continue
            break

        if isinstance(outcome, Cancelled):
            logger.debug("Received cancel event, exiting...")
        else:
            logger.error(f"Event loop error: {outcome.error}")

        self.state = DriverState.DRAINING
        try:
            await self.session.close()
        finally:
            self.state = DriverState.TERMINATED
        return outcome
