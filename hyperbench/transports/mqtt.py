"""MQTT publish transport: one persistent broker session per worker."""

import threading
from typing import Any

import paho.mqtt.client as mqtt
import structlog
from paho.mqtt.client import CallbackAPIVersion

from hyperbench.config import MqttSettings
from hyperbench.exceptions import TransportConnectError
from hyperbench.pool import BaseTransport
from hyperbench.records import MqttPayload, UserCredential, generate_record

logger = structlog.get_logger()


class PublishError(Exception):
    """The broker did not accept or acknowledge a publish."""


class MqttRequestBuilder:
    """Serialises one insert payload per call."""

    def __init__(self, settings: MqttSettings) -> None:
        self._settings = settings
        self._user = UserCredential(
            collection_id=settings.auth_collection_id,
            id=settings.auth_user_id,
        )

    def __call__(self) -> bytes:
        s = self._settings
        payload = MqttPayload(
            project_id=s.project_id,
            token_id=s.token_id,
            user=self._user,
            collection_id=s.target_collection_id,
            data=generate_record(),
        )
        return payload.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


def _reason_failed(reason_code: Any) -> bool:
    failed = getattr(reason_code, "is_failure", None)
    if failed is None:
        return reason_code != 0
    return bool(failed)


class MqttTransport(BaseTransport):
    """Publishes retained messages and waits for the broker acknowledgment."""

    name = "mqtt"

    def __init__(
        self,
        client: mqtt.Client,
        topic: str,
        qos: int,
        publish_timeout: float = 30.0,
        client_id: str = "",
    ) -> None:
        self._client = client
        self.topic = topic
        self.qos = qos
        self.publish_timeout = publish_timeout
        self.client_id = client_id

    @classmethod
    def connect(
        cls,
        settings: MqttSettings,
        index: int,
        client_cls: type[mqtt.Client] = mqtt.Client,
    ) -> "MqttTransport":
        """Open the session for worker *index*; any failure is fatal to the run."""
        client_id = f"{settings.client_id_prefix}{index}"
        address = settings.broker_address
        client = client_cls(
            callback_api_version=CallbackAPIVersion.VERSION2,
            client_id=client_id,
            clean_session=False,
        )
        if address.tls:
            client.tls_set()

        connected = threading.Event()
        result: dict[str, Any] = {}

        def _on_connect(_client, _userdata, _flags, reason_code, _properties=None) -> None:
            result["reason_code"] = reason_code
            connected.set()

        client.on_connect = _on_connect

        try:
            client.connect(address.host, address.port)
        except (OSError, ValueError) as exc:
            raise TransportConnectError(
                f"{client_id}: cannot connect to {address.host}:{address.port}: {exc}"
            ) from exc

        client.loop_start()
        if not connected.wait(settings.connect_timeout):
            client.disconnect()
            client.loop_stop()
            raise TransportConnectError(f"{client_id}: timed out waiting for CONNACK")

        reason_code = result["reason_code"]
        if _reason_failed(reason_code):
            client.disconnect()
            client.loop_stop()
            raise TransportConnectError(f"{client_id}: broker refused connection: {reason_code}")

        logger.info("mqtt_connected", client_id=client_id, host=address.host, port=address.port)
        return cls(client, settings.topic, settings.qos, settings.publish_timeout, client_id)

    def send(self, request: bytes) -> mqtt.MQTTMessageInfo:
        info = self._client.publish(self.topic, request, qos=self.qos, retain=True)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(mqtt.error_string(info.rc))
        info.wait_for_publish(timeout=self.publish_timeout)
        if not info.is_published():
            raise PublishError(f"no acknowledgment within {self.publish_timeout}s")
        return info

    def is_success(self, response: mqtt.MQTTMessageInfo) -> bool:
        return response.rc == mqtt.MQTT_ERR_SUCCESS

    def close(self) -> None:
        self._client.disconnect()
        self._client.loop_stop()
        logger.debug("mqtt_disconnected", client_id=self.client_id)
