import datetime
import decimal
import enum
import json
import uuid

import pytest

from jadoc import JadocJSONEncoder


class Color(enum.Enum):
    RED = "red"


class Opaque:
    def __init__(self):
        self.name = "opaque"
        self.size = 3
        self._secret = "hidden"


def dumps(value) -> str:
    return json.dumps({"value": value}, cls=JadocJSONEncoder)


@pytest.mark.parametrize(
    "value, expected",
    [
        (datetime.datetime(2024, 5, 1, 12, 30), "2024-05-01 12:30:00"),
        (datetime.date(2024, 5, 1), "2024-05-01"),
        (datetime.time(8, 15), "08:15:00"),
        (datetime.timedelta(hours=1), "1:00:00"),
        (uuid.UUID("12345678-1234-5678-1234-567812345678"), "12345678-1234-5678-1234-567812345678"),
        (decimal.Decimal("1.5"), 1.5),
        (Color.RED, "red"),
        (b"\x01\xff", "01ff"),
        (b"", ""),
        (frozenset(["a"]), ["a"]),
    ],
)
def test_encode_attribute_values(value, expected) -> None:
    assert json.loads(dumps(value)) == {"value": expected}


def test_unknown_type() -> None:
    assert json.loads(dumps(Opaque())) == {"value": {"error": "JadocJSONEncoder invalid object"}}


def test_unknown_type_in_debug(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("jadoc.json_encoder.is_debug", lambda: True)

    assert json.loads(dumps(Opaque())) == {"value": {"name": "opaque", "size": 3}}
    assert json.loads(dumps(object()))["value"].startswith("<object object")
