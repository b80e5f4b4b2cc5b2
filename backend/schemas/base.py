"""Base schemas shared by every API response."""
from datetime import datetime, UTC
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer, model_serializer

from backend.utils.money import quantize


def serialize_datetime_utc(dt: datetime) -> str:
    """
    Serialize datetime to ISO 8601 with an explicit UTC 'Z' suffix.

    SQLite stores datetimes as naive strings, so naive values are treated as UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat().replace('+00:00', 'Z')


def serialize_money(amount: Decimal) -> str:
    """Money goes over the wire as a string with exactly two decimal places."""
    return f"{quantize(amount):.2f}"


Money = Annotated[Decimal, PlainSerializer(serialize_money, return_type=str)]


class BaseSchema(BaseModel):
    """Base schema for API responses: UTC timestamps and cents-exact money strings."""

    model_config = ConfigDict(
        from_attributes=True,
    )

    @model_serializer(mode="wrap")
    def serialize_model(self, handler):
        """Normalize datetimes and amounts left untyped in nested dicts and lists."""

        def _convert(value):
            if isinstance(value, datetime):
                return serialize_datetime_utc(value)
            if isinstance(value, Decimal):
                return serialize_money(value)
            if isinstance(value, list):
                return [_convert(item) for item in value]
            if isinstance(value, dict):
                return {key: _convert(item) for key, item in value.items()}
            return value

        data = handler(self)
        return {key: _convert(value) for key, value in data.items()}
