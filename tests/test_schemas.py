"""Tests for response serialization."""
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import Optional

from backend.schemas.base import BaseSchema, Money, serialize_datetime_utc, serialize_money


class PayoutLine(BaseSchema):
    payout: Money
    refund: Optional[Money] = None
    details: dict = {}
    credited_at: Optional[datetime] = None


def test_money_is_a_two_place_string():
    assert serialize_money(Decimal("95")) == "95.00"
    assert serialize_money(Decimal("47.6")) == "47.60"
    assert serialize_money(Decimal("1.005")) == "1.01"


def test_money_fields_in_python_and_json_modes():
    line = PayoutLine(payout=Decimal("180"), refund=None)

    assert line.model_dump()["payout"] == "180.00"
    assert line.model_dump(mode="json")["payout"] == "180.00"
    assert line.model_dump()["refund"] is None


def test_nested_amounts_and_timestamps_are_normalized():
    line = PayoutLine(
        payout=Decimal("0"),
        details={"fee": Decimal("20"), "splits": [Decimal("90.5")]},
        credited_at=datetime(2026, 1, 2, 3, 4, 5),
    )

    data = line.model_dump()
    assert data["details"] == {"fee": "20.00", "splits": ["90.50"]}
    assert data["credited_at"] == "2026-01-02T03:04:05Z"


def test_aware_datetimes_are_converted_to_utc():
    plus_two = timezone(timedelta(hours=2))
    assert serialize_datetime_utc(datetime(2026, 1, 2, 5, 0, tzinfo=plus_two)) == "2026-01-02T03:00:00Z"
