import datetime as dt
import uuid
from decimal import Decimal
from enum import Enum, IntEnum
from pathlib import PurePosixPath
from typing import Optional, Union
import pytest

# pylint: disable=protected-access
# pyright: reportPrivateUsage=false

from zyre_common.serialization.errors import MemberCoercionError
from zyre_common.typeutils.coercion import (
    _format_type_name,
    coerce_scalar,
    is_optional,
    strict_cast,
    unwrap_optional,
)


class Color(Enum):
    RED = "red"
    GREEN = "green"


class Level(IntEnum):
    LOW = 1
    HIGH = 2


def test_format_type_name_single() -> None:
    assert _format_type_name(str) == "str"
    assert _format_type_name(int) == "int"


def test_format_type_name_tuple() -> None:
    assert _format_type_name((str, int, float)) == "str, int, float"
    assert _format_type_name((bool,)) == "bool"


def test_strict_cast_single_type_success() -> None:
    assert strict_cast(str, "hello") == "hello"
    assert strict_cast(int, 123) == 123
    assert strict_cast(list, [1, "2", 3]) == [1, "2", 3]


def test_strict_cast_tuple_type_success() -> None:
    assert strict_cast((str, bytes), b"bytes") == b"bytes"
    assert strict_cast((list, tuple), (1, 2)) == (1, 2)


def test_strict_cast_failure_is_a_type_error() -> None:
    with pytest.raises(TypeError, match="expected int, got str"):
        strict_cast(int, "wrong type")

    with pytest.raises(MemberCoercionError, match="expected int, float, got list"):
        strict_cast((int, float), [1.0])


def test_strict_cast_failure_reports_slot() -> None:
    with pytest.raises(MemberCoercionError, match=r"^point\.x: ") as info:
        strict_cast(int, "3", slot_name="point.x")
    assert info.value.slot_name == "point.x"
    assert info.value.expected_type is int


def test_optional_helpers() -> None:
    assert is_optional(Optional[int])
    assert is_optional(int | None)
    assert is_optional(None)
    assert not is_optional(int)
    assert not is_optional(int | str)

    assert unwrap_optional(int | None) is int
    assert unwrap_optional(Optional[str]) is str
    assert unwrap_optional(int) is int
    assert unwrap_optional(Union[int, str, None]) == Union[int, str]


@pytest.mark.parametrize("value, expected, result", [
    (True, bool, True),
    (7, int, 7),
    (7, float, 7.0),
    (2.5, float, 2.5),
    ("text", str, "text"),
    ("red", Color, Color.RED),
    (2, Level, Level.HIGH),
    ("aGVsbG8=", bytes, b"hello"),
    ("aGVsbG8=", bytearray, bytearray(b"hello")),
    ("12345678-1234-5678-1234-567812345678", uuid.UUID, uuid.UUID("12345678-1234-5678-1234-567812345678")),
    ("1.10", Decimal, Decimal("1.10")),
    (3, Decimal, Decimal("3")),
    ("/tmp/zyre", PurePosixPath, PurePosixPath("/tmp/zyre")),
    ("2024-05-01", dt.date, dt.date(2024, 5, 1)),
    ("10:30:00", dt.time, dt.time(10, 30)),
])
def test_coerce_scalar_success(value: object, expected: type, result: object) -> None:
    coerced = coerce_scalar(value, expected)
    assert coerced == result
    assert type(coerced) is type(result)


def test_coerce_scalar_datetime_keeps_offset() -> None:
    value = coerce_scalar("2024-05-01T10:00:00+02:00", dt.datetime)
    assert value.utcoffset() == dt.timedelta(hours=2)
    assert value == dt.datetime(2024, 5, 1, 8, 0, tzinfo=dt.timezone.utc)


@pytest.mark.parametrize("value, expected", [
    (1, bool),
    (True, int),
    (1.5, int),
    ("1", int),
    (False, float),
    (3, str),
    ("blue", Color),
    (5, Level),
    ("not base64!", bytes),
    ("not-a-uuid", uuid.UUID),
    ("abc", Decimal),
    ("yesterday", dt.datetime),
    ([1, 2], dt.date),
])
def test_coerce_scalar_failure(value: object, expected: type) -> None:
    with pytest.raises(MemberCoercionError):
        coerce_scalar(value, expected, slot_name="slot")
