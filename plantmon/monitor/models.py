"""Domain models for raw soil-moisture readings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


class ValidationError(Exception):
    """Raised when input validation fails."""


@dataclass(slots=True)
class RawReading:
    """A validated raw ADC value from the moisture sensor."""

    raw: int
    recording_time: datetime

    @classmethod
    def from_payload(
        cls, payload: Any, recording_time: datetime
    ) -> RawReading:
        """Create a validated reading from a decoded JSON payload.

        Accepts either ``{"moisture_raw": N}`` as written by the sensor board,
        or the same object wrapped in an uplink envelope
        ``{"uplink_message": {"decoded_payload": {...}}}`` as forwarded by a
        LoRaWAN network server.

        Raises:
            ValidationError: If the payload is invalid.
        """
        if not isinstance(payload, dict):
            raise ValidationError(
                f"Expected JSON object, got {type(payload).__name__}"
            )
        data = cls._unwrap(payload)
        if "moisture_raw" not in data:
            raise ValidationError("Payload has no 'moisture_raw' field")
        return cls(cls._validate_raw(data["moisture_raw"]), recording_time)

    @staticmethod
    def _unwrap(payload: dict[str, Any]) -> dict[str, Any]:
        """Extract the decoded payload from an uplink envelope, if present."""
        uplink = payload.get("uplink_message")
        if uplink is None:
            return payload
        if not isinstance(uplink, dict) or not isinstance(
            uplink.get("decoded_payload"), dict
        ):
            raise ValidationError("Malformed uplink_message envelope")
        return uplink["decoded_payload"]

    @staticmethod
    def _validate_raw(value: Any) -> int:
        """Validate the raw value is a non-negative integer."""
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise ValidationError(
                f"moisture_raw must be a number, got {type(value).__name__}"
            )
        if isinstance(value, float) and not value.is_integer():
            raise ValidationError(
                f"moisture_raw must be an integer, got {value}"
            )
        if value < 0:
            raise ValidationError(
                f"moisture_raw must not be negative, got {value}"
            )
        return int(value)
