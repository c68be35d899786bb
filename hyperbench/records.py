"""Pydantic models for the Hyperbase wire format and synthetic record data."""

import random
from datetime import UTC, datetime
from enum import StrEnum
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class DeviceState(StrEnum):
    ACTIVE = "Active"
    IDLE = "Idle"


class RecordData(BaseModel):
    """The document inserted by every benchmark request."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = Field(default=None, alias="_id")
    idle_time: float
    state: DeviceState
    timestamp: datetime

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def generate_record(rng: random.Random | None = None) -> RecordData:
    """Random ``idle_time`` in [0, 1), uniform state, current timestamp."""
    r = rng or random
    return RecordData(
        idle_time=r.random(),
        state=r.choice(list(DeviceState)),
        timestamp=datetime.now(UTC),
    )


class InsertedRecord(BaseModel):
    """Just enough of an insert response to tell whether the record was stored."""

    id: str = Field(default="", alias="_id")


class ErrorBody(BaseModel):
    status: str = ""
    message: str = ""


T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """``{"data": ..., "error": {...}}`` response wrapper used by every endpoint."""

    data: T | None = None
    error: ErrorBody = Field(default_factory=ErrorBody)


class AuthCredential(BaseModel):
    username: str
    password: str


class AuthRequest(BaseModel):
    token_id: UUID
    token: str
    collection_id: UUID
    data: AuthCredential


class AuthToken(BaseModel):
    token: str = ""


class UserCredential(BaseModel):
    collection_id: UUID
    id: UUID


class MqttPayload(BaseModel):
    """Message published to the broker for one insert."""

    project_id: UUID
    token_id: UUID
    user: UserCredential
    collection_id: UUID
    data: RecordData
