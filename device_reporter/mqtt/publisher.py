"""
Device Reporter - MQTT Publisher

Sends report payloads to the collector over MQTT. One connect, publish,
disconnect sequence per cycle; the client itself is built once at startup.
"""

import threading
from typing import Any, Optional, Protocol, Tuple
from urllib.parse import urlsplit

import paho.mqtt.client as mqtt
import structlog

from ..config import RunnerConfig
from ..errors import SetupError, TransportError

logger = structlog.get_logger(__name__)

PLAIN_SCHEMES = ("tcp", "mqtt")
TLS_SCHEMES = ("ssl", "mqtts")
DEFAULT_PORT = 1883
DEFAULT_TLS_PORT = 8883


class Publisher(Protocol):
    """Transport collaborator. Every step raises TransportError on failure."""

    def connect(self) -> None: ...

    def publish(self, topic: str, payload: bytes) -> None: ...

    def disconnect(self) -> None: ...


def parse_server_address(address: str) -> Tuple[str, int, bool]:
    """Split an MQTT URI into host, port and whether TLS is used."""
    try:
        parts = urlsplit(address)
        port = parts.port
    except ValueError as e:
        raise SetupError(f"Invalid server address '{address}': {e}") from e

    scheme = parts.scheme.lower()
    if scheme not in PLAIN_SCHEMES + TLS_SCHEMES:
        raise SetupError(f"Unsupported scheme in server address '{address}'")
    if not parts.hostname:
        raise SetupError(f"Missing host in server address '{address}'")

    use_tls = scheme in TLS_SCHEMES
    if port is None:
        port = DEFAULT_TLS_PORT if use_tls else DEFAULT_PORT
    return parts.hostname, port, use_tls


class MqttPublisher:
    """Publisher backed by a paho-mqtt client."""

    def __init__(
        self,
        host: str,
        port: int,
        client_id: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = False,
        keep_alive: int = 20,
        qos: int = 0,
        timeout: float = 10.0,
    ):
        self._host = host
        self._port = port
        self._keep_alive = keep_alive
        self._qos = qos
        self._timeout = timeout

        self._connack = threading.Event()
        self._connack_reason: Any = None
        self._connected = False

        try:
            self._client = mqtt.Client(
                mqtt.CallbackAPIVersion.VERSION2,
                client_id=client_id,
                clean_session=True,
            )
            if use_tls:
                self._client.tls_set()
        except (ValueError, OSError) as e:
            raise SetupError(f"Failed to create MQTT client: {e}") from e

        if username:
            self._client.username_pw_set(username, password)

        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect

    @classmethod
    def from_config(cls, config: RunnerConfig) -> "MqttPublisher":
        host, port, use_tls = parse_server_address(config.server_address)
        publisher = cls(
            host=host,
            port=port,
            client_id=config.device_id,
            username=config.username,
            password=config.password,
            use_tls=use_tls,
            keep_alive=config.keep_alive_seconds,
            qos=config.qos,
            timeout=config.publish_timeout_seconds,
        )
        logger.info("MQTT publisher ready", host=host, port=port, tls=use_tls)
        return publisher

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        """Handle CONNACK."""
        self._connack_reason = reason_code
        self._connack.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        """Handle MQTT disconnection."""
        self._connected = False
        if getattr(reason_code, "is_failure", False):
            logger.warning("MQTT disconnected unexpectedly", reason=str(reason_code))

    def connect(self) -> None:
        self._connack.clear()
        self._connack_reason = None

        try:
            self._client.connect(self._host, self._port, keepalive=self._keep_alive)
        except (OSError, ValueError) as e:
            raise TransportError(f"Connect to {self._host}:{self._port} failed: {e}") from e

        self._client.loop_start()

        if not self._connack.wait(self._timeout):
            self._client.loop_stop()
            raise TransportError(f"No CONNACK from {self._host}:{self._port} within {self._timeout}s")

        if getattr(self._connack_reason, "is_failure", False):
            self._client.loop_stop()
            raise TransportError(f"Broker refused connection: {self._connack_reason}")

        self._connected = True
        logger.debug("MQTT connected", host=self._host, port=self._port)

    def publish(self, topic: str, payload: bytes) -> None:
        info = self._client.publish(topic, payload, qos=self._qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(f"Publish to '{topic}' failed: {mqtt.error_string(info.rc)}")

        try:
            info.wait_for_publish(timeout=self._timeout)
        except (ValueError, RuntimeError) as e:
            raise TransportError(f"Publish to '{topic}' failed: {e}") from e

        if not info.is_published():
            raise TransportError(f"Publish to '{topic}' not acknowledged within {self._timeout}s")

        logger.debug("Payload published", topic=topic, size=len(payload))

    def disconnect(self) -> None:
        try:
            rc = self._client.disconnect()
        finally:
            self._client.loop_stop()
            self._connected = False

        if rc != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(f"Disconnect failed: {mqtt.error_string(rc)}")


def transmit(publisher: Publisher, topic: str, payload: bytes) -> None:
    """
    Send one payload: connect, publish, disconnect.

    A connect failure aborts the sequence. Once connected, disconnect is
    always attempted exactly once; its own failure is logged and never
    raised, so a publish error is the one reported.
    """
    publisher.connect()
    try:
        publisher.publish(topic, payload)
    finally:
        try:
            publisher.disconnect()
        except TransportError as e:
            logger.warning("Disconnect failed", topic=topic, error=str(e))
