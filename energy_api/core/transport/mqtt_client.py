"""Cliente MQTT para recepción de telemetría."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import paho.mqtt.client as mqtt

from ..monitoring.metrics import MQTT_CONNECTED

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, bytes], object]


class MQTTSubscriber:
    """Suscriptor MQTT de un único topic fijo.

    Responsabilidades:
    - Conexión/desconexión al broker (reconexión a cargo de paho)
    - Suscripción al topic en cada on_connect
    - Delegación de mensajes al handler sin bloquear el hilo de red
    """

    def __init__(
        self,
        topic: str,
        broker_host: str = "localhost",
        broker_port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id: str = "energy-ingest",
        qos: int = 1,
        client_factory: Optional[Callable[..., mqtt.Client]] = None,
    ):
        self.topic = topic
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.username = username
        self.password = password
        self.client_id = f"{client_id}-{int(time.time())}"
        self.qos = qos

        self._client_factory = client_factory or mqtt.Client
        self._client: Optional[mqtt.Client] = None
        self._connected = False
        self._subscribed = False
        self._ever_connected = False
        self._running = False
        self._reconnect_count = 0
        self._message_handler: Optional[MessageHandler] = None

    def set_message_handler(self, handler: MessageHandler) -> None:
        """Configura el handler de mensajes."""
        self._message_handler = handler

    def start(self) -> bool:
        """Inicia la conexión en segundo plano.

        Un fallo se loguea y no detiene el proceso; paho reintenta
        la conexión según su propia política.
        """
        try:
            self._client = self._client_factory(
                callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
                client_id=self.client_id,
                protocol=mqtt.MQTTv311,
            )
            self._client.on_connect = self._on_connect
            self._client.on_disconnect = self._on_disconnect
            self._client.on_subscribe = self._on_subscribe
            self._client.on_message = self._on_message

            if self.username and self.password:
                self._client.username_pw_set(self.username, self.password)

            self._client.reconnect_delay_set(min_delay=1, max_delay=60)

            logger.info("[MQTT] Connecting to %s:%d", self.broker_host, self.broker_port)
            self._client.connect_async(self.broker_host, self.broker_port, keepalive=60)
            self._client.loop_start()
            self._running = True
            return True
        except Exception as e:
            logger.exception("[MQTT] Start failed: %s", e)
            return False

    def stop(self) -> None:
        """Desconecta del broker."""
        self._running = False
        if self._client:
            try:
                self._client.disconnect()
                self._client.loop_stop()
            except Exception as e:
                logger.warning("[MQTT] Disconnect error: %s", e)
        self._connected = False
        MQTT_CONNECTED.set(0)

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback de conexión: (re)suscribe al topic."""
        if reason_code.is_failure:
            self._connected = False
            logger.error("[MQTT] Connection failed: %s", reason_code)
            return

        if self._ever_connected:
            self._reconnect_count += 1
        self._ever_connected = True
        self._connected = True
        MQTT_CONNECTED.set(1)
        logger.info("[MQTT] Connected to broker")

        result, _mid = client.subscribe(self.topic, qos=self.qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            logger.error("[MQTT] Subscribe to %s failed: rc=%s", self.topic, result)
        else:
            logger.info("[MQTT] Subscribing to %s", self.topic)

    def _on_subscribe(self, client, userdata, mid, reason_code_list, properties=None):
        failures = [rc for rc in reason_code_list if rc.is_failure]
        if failures:
            self._subscribed = False
            logger.error("[MQTT] Broker refused subscription to %s: %s", self.topic, failures)
            return
        self._subscribed = True
        logger.info("[MQTT] Subscribed to %s", self.topic)

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        """Callback de desconexión."""
        self._connected = False
        self._subscribed = False
        MQTT_CONNECTED.set(0)
        if self._running:
            logger.warning("[MQTT] Disconnected (%s), paho will reconnect", reason_code)
        else:
            logger.info("[MQTT] Disconnected")

    def _on_message(self, client, userdata, msg):
        """Callback de mensaje - delega al handler."""
        if self._message_handler is None:
            logger.warning("[MQTT] No handler, message ignored topic=%s", msg.topic)
            return
        try:
            self._message_handler(msg.topic, msg.payload)
        except Exception:
            # Nunca propagar al hilo de red de paho
            logger.exception("[MQTT] Handler error topic=%s", msg.topic)

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def stats(self) -> dict:
        return {
            "running": self._running,
            "connected": self._connected,
            "subscribed": self._subscribed,
            "broker": f"{self.broker_host}:{self.broker_port}",
            "topic": self.topic,
            "reconnect_count": self._reconnect_count,
        }
