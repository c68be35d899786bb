"""In-process stand-ins for transports, resource sampling and the MQTT client."""

from __future__ import annotations

import threading
import time
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import paho.mqtt.client as mqtt

from hyperbench.pool import BaseTransport

PROJECT_ID = "0190f1a2-7c3e-7b61-9a1e-2f4c5d6e7f80"
TOKEN_ID = "0190f1a2-7c3e-7b61-9a1e-2f4c5d6e7f81"
AUTH_COLLECTION_ID = "0190f1a2-7c3e-7b61-9a1e-2f4c5d6e7f82"
AUTH_USER_ID = "0190f1a2-7c3e-7b61-9a1e-2f4c5d6e7f83"
TARGET_COLLECTION_ID = "0190f1a2-7c3e-7b61-9a1e-2f4c5d6e7f84"


class FakeMonitor:
    """Deterministic CPU/RAM readings that step up with every sample."""

    def __init__(self, cpu_step: float = 1.5, ram_step: int = 1 << 20) -> None:
        self.samples = 0
        self.cpu_step = cpu_step
        self.ram_step = ram_step

    def cpu_percent(self) -> float:
        self.samples += 1
        return (self.samples % 7) * self.cpu_step

    def ram_used(self) -> int:
        return (1 << 30) + (self.samples % 5) * self.ram_step


class FakeTransport(BaseTransport):
    """Sleeps for ``delay`` seconds per request and remembers what it saw."""

    name = "fake"

    def __init__(
        self,
        delay: float = 0.0,
        succeed: bool = True,
        fail_on: set[Any] | None = None,
    ) -> None:
        self.delay = delay
        self.succeed = succeed
        self.fail_on = fail_on or set()
        self.seen: list[Any] = []
        self.closed = False
        self._lock = threading.Lock()

    def send(self, request: Any) -> Any:
        if self.delay:
            time.sleep(self.delay)
        with self._lock:
            self.seen.append(request)
        if request in self.fail_on:
            raise ConnectionError(f"refused {request}")
        return request

    def is_success(self, response: Any) -> bool:
        return self.succeed

    def close(self) -> None:
        self.closed = True


def reason_code(failed: bool = False) -> SimpleNamespace:
    return SimpleNamespace(is_failure=failed)


class FakeMqttClient:
    """Mimics the subset of ``paho.mqtt.client.Client`` the transport touches."""

    instances: list[FakeMqttClient] = []
    connect_reason = reason_code()
    connect_error: Exception | None = None
    acknowledge = True
    publish_rc = mqtt.MQTT_ERR_SUCCESS
    answer_connect = True

    def __init__(self, callback_api_version: Any, client_id: str, clean_session: bool) -> None:
        self.callback_api_version = callback_api_version
        self.client_id = client_id
        self.clean_session = clean_session
        self.on_connect = None
        self.published: list[tuple[str, bytes, int, bool]] = []
        self.tls = False
        self.loop_running = False
        self.disconnected = False
        type(self).instances.append(self)

    def tls_set(self) -> None:
        self.tls = True

    def connect(self, host: str, port: int) -> int:
        if self.connect_error is not None:
            raise self.connect_error
        self.host, self.port = host, port
        if self.answer_connect:
            self.on_connect(self, None, {}, self.connect_reason, None)
        return 0

    def loop_start(self) -> None:
        self.loop_running = True

    def loop_stop(self) -> None:
        self.loop_running = False

    def disconnect(self) -> None:
        self.disconnected = True

    def publish(self, topic: str, payload: bytes, qos: int = 0, retain: bool = False) -> MagicMock:
        self.published.append((topic, payload, qos, retain))
        info = MagicMock()
        info.rc = self.publish_rc
        info.is_published.return_value = self.acknowledge
        return info


def fake_mqtt_client(**overrides: Any) -> type[FakeMqttClient]:
    """A fresh subclass so class-level knobs and instance lists never leak between tests."""
    attrs = {"instances": []}
    attrs.update(overrides)
    return type("ConfiguredFakeMqttClient", (FakeMqttClient,), attrs)
