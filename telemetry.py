import datetime as dt
import json
from typing import Any, Dict, Union

import pydantic
from pydantic import BaseModel, ConfigDict, field_validator

from errors import ValidationError


class TelemetryMessage(BaseModel):
    """Decoded telemetry payload as published by a field station."""

    model_config = ConfigDict(extra="ignore")

    device_id: str
    ts: dt.datetime
    data: Dict[str, Any]

    @field_validator("device_id")
    @classmethod
    def validate_device_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("device_id must not be empty")
        return v

    @field_validator("ts", mode="before")
    @classmethod
    def validate_timestamp(cls, v: Any) -> Any:
        """Only ISO-8601 strings are accepted on the wire."""
        if not isinstance(v, str):
            raise ValueError('ts must be an ISO-8601 string (e.g., "2025-08-01T10:00:00Z")')
        try:
            dt.datetime.fromisoformat(v.replace("Z", "+00:00") if v.endswith("Z") else v)
        except ValueError:
            raise ValueError('ts must be an ISO-8601 string (e.g., "2025-08-01T10:00:00Z")')
        return v


def parse_telemetry(payload: Union[Dict[str, Any], str, bytes]) -> TelemetryMessage:
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise ValidationError(f"Telemetry is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ValidationError("Telemetry must be a JSON object")
    try:
        return TelemetryMessage.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid telemetry message: {e}") from e
