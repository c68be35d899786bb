"""Shared test fixtures for hyperbench tests."""

import uuid

import pytest

from hyperbench.aggregator import Aggregator
from hyperbench.config import HttpSettings, MqttSettings
from tests.fakes import (
    AUTH_COLLECTION_ID,
    AUTH_USER_ID,
    PROJECT_ID,
    TARGET_COLLECTION_ID,
    TOKEN_ID,
    FakeMonitor,
)

BENCH_ENV_VARS = (
    "PARALLEL",
    "COUNT",
    "DURATION",
    "BASE_URL",
    "PROJECT_ID",
    "TOKEN_ID",
    "TOKEN",
    "AUTH_COLLECTION_ID",
    "AUTH_USERNAME",
    "AUTH_PASSWORD",
    "AUTH_USER_ID",
    "TARGET_COLLECTION_ID",
    "HTTP_TIMEOUT",
    "BROKER",
    "TOPIC",
    "QOS",
    "CLIENT_ID_PREFIX",
    "PUBLISH_TIMEOUT",
    "CONNECT_TIMEOUT",
    "LOG_LEVEL",
    "LOG_JSON",
)

@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep the developer's shell from leaking into settings under test."""
    for name in BENCH_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def http_env(monkeypatch) -> dict[str, str]:
    env = {
        "BASE_URL": "http://hyperbase.test/",
        "PROJECT_ID": PROJECT_ID,
        "TOKEN_ID": TOKEN_ID,
        "TOKEN": "project-token",
        "AUTH_COLLECTION_ID": AUTH_COLLECTION_ID,
        "AUTH_USERNAME": "bench",
        "AUTH_PASSWORD": "s3cret",
        "TARGET_COLLECTION_ID": TARGET_COLLECTION_ID,
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture
def mqtt_env(monkeypatch) -> dict[str, str]:
    env = {
        "BROKER": "tcp://broker.test:1883",
        "TOPIC": "hyperbase-pg",
        "QOS": "1",
        "PROJECT_ID": PROJECT_ID,
        "TOKEN_ID": TOKEN_ID,
        "AUTH_COLLECTION_ID": AUTH_COLLECTION_ID,
        "AUTH_USER_ID": AUTH_USER_ID,
        "TARGET_COLLECTION_ID": TARGET_COLLECTION_ID,
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture
def http_settings() -> HttpSettings:
    return HttpSettings(
        base_url="http://hyperbase.test",
        project_id=uuid.UUID(PROJECT_ID),
        token_id=uuid.UUID(TOKEN_ID),
        token="project-token",
        auth_collection_id=uuid.UUID(AUTH_COLLECTION_ID),
        auth_username="bench",
        auth_password="s3cret",
        target_collection_id=uuid.UUID(TARGET_COLLECTION_ID),
    )


@pytest.fixture
def mqtt_settings() -> MqttSettings:
    return MqttSettings(
        broker="tcp://broker.test:1883",
        topic="hyperbase-pg",
        qos=1,
        project_id=uuid.UUID(PROJECT_ID),
        token_id=uuid.UUID(TOKEN_ID),
        auth_collection_id=uuid.UUID(AUTH_COLLECTION_ID),
        auth_user_id=uuid.UUID(AUTH_USER_ID),
        target_collection_id=uuid.UUID(TARGET_COLLECTION_ID),
        connect_timeout=0.2,
        publish_timeout=0.2,
    )


@pytest.fixture
def aggregator() -> Aggregator:
    return Aggregator(monitor=FakeMonitor())
