"""MQTT session shared by the publishing task and the event loop driver.

paho-mqtt runs its network I/O on a background thread and reports progress
through callbacks on that thread. MQTTSession never touches its own state from
those callbacks: each one is handed to the asyncio loop with
call_soon_threadsafe, so the loop is the only owner of the session state,
the acknowledgement futures and the outcome queue. Callers only see
publish/poll/cancel.
"""

import asyncio
import logging
from enum import Enum
from typing import Dict, Optional

import paho.mqtt.client as mqtt

from homefaerie.shared.mqtt import (
    QOS_EXACTLY_ONCE,
    MQTTConfig,
    connect_properties,
    create_mqtt_client,
)
from .events import (
    Cancelled,
    Continue,
    Event,
    Failed,
    LoopOutcome,
    PublishError,
    TransportError,
)

logger = logging.getLogger(__name__)

# Fixed header, topic length prefix, packet id and empty property block
PUBLISH_OVERHEAD = 16


class SessionState(Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    CANCELLING = "cancelling"
    CLOSED = "closed"


class MQTTSession:
    """A single MQTT connection for one run of the heating manager."""

    def __init__(self, config: MQTTConfig, client: Optional[mqtt.Client] = None):
        """Initialize the session.

        Args:
            config: MQTT configuration.
            client: paho-mqtt client to drive. Built from config if omitted.
        """
        self.config = config
        self._client = client if client is not None else create_mqtt_client(config)
        self._state = SessionState.CONNECTING
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._outcomes: Optional[asyncio.Queue] = None
        self._connected: Optional[asyncio.Event] = None
        self._connect_error: Optional[TransportError] = None
        self._pending: Dict[int, asyncio.Future] = {}
        self._closing = False
        self._cancel_requested = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def cancel_requested(self) -> bool:
        """Whether cancel() was ever called on this session."""
        return self._cancel_requested

    async def start(self):
        """Begin connecting to the broker in the background."""
        if self._loop is not None:
            raise RuntimeError("Session already started")

        self._loop = asyncio.get_running_loop()
        self._outcomes = asyncio.Queue()
        self._connected = asyncio.Event()

        self._client.on_connect = self._on_connect
        self._client.on_connect_fail = self._on_connect_fail
        self._client.on_disconnect = self._on_disconnect
        self._client.on_publish = self._on_publish

        logger.info(
            f"Connecting to MQTT broker at {self.config.broker}:{self.config.port} "
            f"as {self.config.client_id}"
        )
        self._client.connect_async(
            self.config.broker,
            self.config.port,
            keepalive=self.config.keepalive,
            properties=connect_properties(self.config),
        )
        self._client.loop_start()

    async def wait_connected(self, timeout: Optional[float] = None):
        """Wait for the broker to accept the connection.

        Raises:
            TransportError: If the connection is refused, fails or times out.
        """
        self._require_started()
        try:
            await asyncio.wait_for(self._connected.wait(), timeout)
        except asyncio.TimeoutError:
            raise TransportError(
                f"Timed out after {timeout}s connecting to {self.config.broker}:{self.config.port}"
            ) from None
        if self._connect_error is not None:
            raise self._connect_error

    async def publish(
        self,
        topic: str,
        payload: bytes,
        qos: int = QOS_EXACTLY_ONCE,
        retain: bool = False,
        timeout: Optional[float] = None,
    ):
        """Publish a message and wait until the broker has acknowledged it.

        For QoS 2 this returns once PUBCOMP has been received.

        Raises:
            PublishError: If the session is not active, the message is too
                large, the broker rejects it, or no acknowledgement arrives
                within the timeout.
            TransportError: If the connection is lost while waiting.
        """
        self._require_started()
        if self._state is not SessionState.ACTIVE:
            raise PublishError(f"Cannot publish to {topic}: session is {self._state.value}")

        size = len(topic.encode("utf-8")) + len(payload) + PUBLISH_OVERHEAD
        if size > self.config.max_packet_size:
            raise PublishError(
                f"Message to {topic} is {size} bytes, over the {self.config.max_packet_size} byte limit"
            )

        info = self._client.publish(topic, payload, qos=qos, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(f"Failed to publish to {topic}: {mqtt.error_string(info.rc)}")

        # Acks are delivered through call_soon_threadsafe, so none can be
        # processed before this future is registered
        future = self._loop.create_future()
        self._pending[info.mid] = future
        try:
            await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            raise PublishError(
                f"Timed out after {timeout}s waiting for acknowledgement of {topic}"
            ) from None
        finally:
            self._pending.pop(info.mid, None)

    async def poll(self) -> LoopOutcome:
        """Wait for the next transport event or terminal outcome."""
        self._require_started()
        return await self._outcomes.get()

    def cancel(self):
        """Ask the event loop to shut down after a successful run."""
        self._require_started()
        if self._state in (SessionState.CANCELLING, SessionState.CLOSED):
            return
        self._cancel_requested = True
        self._state = SessionState.CANCELLING
        self._outcomes.put_nowait(Cancelled())

    def fail(self, error: BaseException):
        """Report a fatal error to the event loop."""
        self._require_started()
        self._outcomes.put_nowait(Failed(error))

    async def close(self):
        """Disconnect from the broker and stop the network thread."""
        if self._state is SessionState.CLOSED:
            return
        self._closing = True

        if self._loop is not None:
            self._client.disconnect()
            await asyncio.to_thread(self._client.loop_stop)

        for future in self._pending.values():
            if not future.done():
                future.set_exception(TransportError("Session closed before acknowledgement"))
        self._pending.clear()

        was_connected = (
            self._connected is not None and self._connected.is_set() and self._connect_error is None
        )
        self._state = SessionState.CLOSED
        if was_connected:
            logger.info("Disconnected from MQTT broker")

    def _require_started(self):
        if self._loop is None:
            raise RuntimeError("Session has not been started")

    def _dispatch(self, callback, *args):
        """Run callback on the asyncio loop from the paho network thread."""
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(callback, *args)

    def _report_failure(self, error: TransportError):
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._outcomes.put_nowait(Failed(error))

    # paho network thread callbacks

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        self._dispatch(self._handle_connect, reason_code)

    def _on_connect_fail(self, client, userdata):
        self._dispatch(self._handle_connect_fail)

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        self._dispatch(self._handle_disconnect, reason_code)

    def _on_publish(self, client, userdata, mid, reason_code, properties):
        self._dispatch(self._handle_publish, mid, reason_code)

    # asyncio loop handlers

    def _handle_connect(self, reason_code):
        if reason_code.is_failure:
            self._connect_failed(
                TransportError(f"MQTT broker refused connection: {reason_code}")
            )
            return

        if self._state is SessionState.CONNECTING:
            self._state = SessionState.ACTIVE
        logger.info(f"Connected to MQTT broker at {self.config.broker}:{self.config.port}")
        self._connected.set()
        self._outcomes.put_nowait(Continue(Event("connected", {"reason": str(reason_code)})))

    def _handle_connect_fail(self):
        self._connect_failed(
            TransportError(f"Unable to connect to MQTT broker at {self.config.broker}:{self.config.port}")
        )

    def _connect_failed(self, error: TransportError):
        if self._connected.is_set() or self._closing:
            return
        self._connect_error = error
        self._connected.set()
        self._report_failure(error)

    def _handle_disconnect(self, reason_code):
        if self._closing or self._state in (SessionState.CANCELLING, SessionState.CLOSED):
            return
        error = TransportError(f"Unexpected disconnection from MQTT broker (reason={reason_code})")
        if not self._connected.is_set():
            self._connect_failed(error)
        else:
            self._report_failure(error)

    def _handle_publish(self, mid: int, reason_code):
        future = self._pending.get(mid)
        if future is not None and not future.done():
            if reason_code.is_failure:
                future.set_exception(PublishError(f"Broker rejected message {mid}: {reason_code}"))
            else:
                future.set_result(None)
        self._outcomes.put_nowait(Continue(Event("published", {"mid": mid, "reason": str(reason_code)})))
