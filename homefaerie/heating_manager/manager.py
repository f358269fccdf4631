"""One run of the heating manager: look up the price, switch the heaters."""

import asyncio
import contextlib
import logging
from decimal import Decimal
from typing import Callable, Optional

from homefaerie.shared.database import DatabaseConnectionError, PriceLookupError, PriceStorage
from homefaerie.shared.models import to_price
from homefaerie.shared.mqtt import MQTTConfig
from .actuation import ActuationSession
from .config import Config
from .driver import EventLoopDriver
from .events import Cancelled
from .policy import decide
from .session import MQTTSession

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


class HeatingManager:
    """Decides the heater state from the current price and applies it."""

    def __init__(
        self,
        config: Config,
        price_source: Optional[PriceStorage] = None,
        session_factory: Callable[[MQTTConfig], MQTTSession] = MQTTSession,
    ):
        """Initialize the manager.

        Args:
            config: Heating manager configuration.
            price_source: Price lookup. Built from config.db if omitted.
            session_factory: Builds the MQTT session for a run.
        """
        self.config = config
        self.price_source = price_source if price_source is not None else PriceStorage(config.db)
        self.session_factory = session_factory

    def lookup_price(self) -> Decimal:
        """Current price for the configured region, markup included."""
        try:
            stored = self.price_source.get_current_price(self.config.region)
        finally:
            self.price_source.close()
        return stored * self.config.markup

    async def run(self) -> int:
        """Run once.

        Returns:
            Process exit code: 0 when every heater acknowledged its command,
            1 otherwise.
        """
        try:
            price = self.lookup_price()
        except DatabaseConnectionError as e:
            logger.error(f"Unable to connect to database: {e}")
            return EXIT_FAILURE
        except PriceLookupError as e:
            logger.error(f"Unable to look up price: {e}")
            return EXIT_FAILURE

        state = decide(price, self.config.threshold)
        logger.info(f"Current price: {to_price(price)}, heater status: {state.value}")

        session = self.session_factory(self.config.mqtt)
        driver = EventLoopDriver(session)
        actuation = ActuationSession(
            session,
            self.config.devices,
            namespace=self.config.namespace,
            publish_timeout=self.config.publish_timeout,
            connect_timeout=self.config.connect_timeout,
        )

        try:
            await session.start()
        except Exception as e:
            logger.error(f"Failed to start MQTT session: {e}")
            await session.close()
            return EXIT_FAILURE

        publisher = asyncio.create_task(actuation.actuate(state))
        outcome = await driver.run()

        if not publisher.done():
            publisher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await publisher

        if isinstance(outcome, Cancelled):
            return EXIT_OK
        return EXIT_FAILURE
