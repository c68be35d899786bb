"""Run configuration via environment variables.

Each transport reads its own group of variables; the termination condition
(``COUNT`` or ``DURATION``) and concurrency (``PARALLEL``) are shared.
"""

import re
from typing import NamedTuple, TypeVar
from urllib.parse import urlsplit
from uuid import UUID

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from hyperbench.controller import CountLimit, Deadline, Termination
from hyperbench.exceptions import ConfigurationError

_SETTINGS_CONFIG = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str | float | int) -> float:
    """Parse a duration into seconds.

    Accepts Go-style strings (``"90s"``, ``"1m30s"``, ``"1.5h"``, ``"250ms"``)
    as well as bare numbers, which are taken as seconds.
    """
    if isinstance(value, bool):
        raise ValueError("duration must be a number or duration string")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = value.strip()
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for match in _DURATION_PART.finditer(text):
                if match.start() != pos:
                    break
                seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
                pos = match.end()
            if pos == 0 or pos != len(text):
                raise ValueError(f"invalid duration: {value!r}") from None
    if seconds < 0:
        raise ValueError(f"duration must not be negative: {value!r}")
    return seconds


class BrokerAddress(NamedTuple):
    host: str
    port: int
    tls: bool


_BROKER_SCHEMES = {"tcp": False, "mqtt": False, "ssl": True, "tls": True, "mqtts": True}


def parse_broker(value: str) -> BrokerAddress:
    """Split ``tcp://host:1883`` style broker URLs; the scheme defaults to tcp."""
    raw = value.strip()
    if "://" not in raw:
        raw = f"tcp://{raw}"
    parts = urlsplit(raw)
    if parts.scheme not in _BROKER_SCHEMES:
        raise ValueError(f"unsupported broker scheme: {parts.scheme!r}")
    if not parts.hostname:
        raise ValueError(f"broker has no host: {value!r}")
    tls = _BROKER_SCHEMES[parts.scheme]
    port = parts.port or (8883 if tls else 1883)
    return BrokerAddress(parts.hostname, port, tls)


class AppSettings(BaseSettings):
    log_level: str = "INFO"
    log_json: bool = False

    model_config = _SETTINGS_CONFIG


class RunSettings(BaseSettings):
    """Concurrency and termination, shared by every transport."""

    parallel: int = Field(ge=1)
    count: int | None = Field(default=None, ge=1)
    duration: float | None = None

    model_config = _SETTINGS_CONFIG

    @field_validator("duration", mode="before")
    @classmethod
    def _parse_duration(cls, value: object) -> float | None:
        if value is None or value == "":
            return None
        return parse_duration(value)  # type: ignore[arg-type]

    def termination(self) -> Termination:
        """Resolve COUNT/DURATION into exactly one termination mode."""
        if self.count is not None and self.duration is not None:
            raise ConfigurationError("COUNT and DURATION are mutually exclusive")
        if self.count is not None:
            return CountLimit(self.count)
        if self.duration is not None:
            return Deadline(self.duration)
        raise ConfigurationError("one of COUNT or DURATION must be set")


class HttpSettings(BaseSettings):
    """REST insert target and the credentials used to obtain a bearer token."""

    base_url: str
    project_id: UUID
    token_id: UUID
    token: str
    auth_collection_id: UUID
    auth_username: str
    auth_password: str
    target_collection_id: UUID
    http_timeout: float = Field(default=30.0, gt=0)

    model_config = _SETTINGS_CONFIG

    @field_validator("base_url")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("BASE_URL must start with http:// or https://")
        return value.rstrip("/")


class MqttSettings(BaseSettings):
    """Broker, topic and the identities embedded in every published record."""

    broker: str
    topic: str
    qos: int = Field(ge=0, le=2)
    project_id: UUID
    token_id: UUID
    auth_collection_id: UUID
    auth_user_id: UUID
    target_collection_id: UUID
    client_id_prefix: str = "TEST-CLIENT-"
    publish_timeout: float = Field(default=30.0, gt=0)
    connect_timeout: float = Field(default=10.0, gt=0)

    model_config = _SETTINGS_CONFIG

    @field_validator("broker")
    @classmethod
    def _check_broker(cls, value: str) -> str:
        parse_broker(value)
        return value

    @property
    def broker_address(self) -> BrokerAddress:
        return parse_broker(self.broker)


S = TypeVar("S", bound=BaseSettings)


def load_settings(settings_cls: type[S], **overrides: object) -> S:
    """Instantiate *settings_cls* from the environment, failing fast.

    ``None`` overrides are dropped so that unset CLI flags fall back to the
    environment.
    """
    init = {k: v for k, v in overrides.items() if v is not None}
    try:
        return settings_cls(**init)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']).upper() or settings_cls.__name__}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(f"invalid {settings_cls.__name__}: {problems}") from exc
