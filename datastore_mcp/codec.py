"""Conversion of MSSQL column values to JSON-compatible values.

The driver (pymssql) hands back plain Python objects. Each one is classified
into a ``ColumnKind`` and converted by the matching entry of ``_CONVERTERS``:

- NULL of any type -> None
- bit -> bool, integer types -> int (exact for tinyint..bigint)
- real/float -> float, or None when NaN or infinite
- decimal/numeric/money -> positional decimal string (no float rounding)
- uniqueidentifier -> canonical GUID string
- binary/varbinary/image -> lowercase hex, two digits per byte
- char/varchar/nchar/nvarchar/text/xml -> str
- date/time/datetime/smalldatetime/datetime2/datetimeoffset -> ``str(value)``

Temporal values use the driver value's display form, which is not guaranteed
to be ISO-8601. Cast in SQL if a specific format is needed, e.g.
``CONVERT(varchar, created_at, 127)``.

Conversion never raises: an unknown type or a failing converter yields None
for that cell and the rest of the row is kept.
"""

import logging
import math
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

logger = logging.getLogger(__name__)

JsonValue = Any


class ColumnKind(Enum):
    """Closed set of value kinds the MSSQL driver produces."""

    NULL = "null"
    BIT = "bit"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    GUID = "guid"
    BINARY = "binary"
    TEXT = "text"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    DATETIMEOFFSET = "datetimeoffset"


def classify(value: Any) -> Optional[ColumnKind]:
    """Return the ColumnKind of a driver value, or None if unrecognised."""
    if value is None:
        return ColumnKind.NULL
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return ColumnKind.BIT
    if isinstance(value, int):
        return ColumnKind.INTEGER
    if isinstance(value, float):
        return ColumnKind.FLOAT
    if isinstance(value, Decimal):
        return ColumnKind.DECIMAL
    if isinstance(value, uuid.UUID):
        return ColumnKind.GUID
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ColumnKind.BINARY
    if isinstance(value, str):
        return ColumnKind.TEXT
    # datetime before date: datetime is a date subclass
    if isinstance(value, datetime):
        if value.tzinfo is not None and value.utcoffset() is not None:
            return ColumnKind.DATETIMEOFFSET
        return ColumnKind.DATETIME
    if isinstance(value, date):
        return ColumnKind.DATE
    if isinstance(value, time):
        return ColumnKind.TIME
    return None


def _null(value: Any) -> JsonValue:
    return None


def _float(value: float) -> JsonValue:
    if not math.isfinite(value):
        return None
    return value


def _decimal(value: Decimal) -> JsonValue:
    if not value.is_finite():
        return None
    return format(value, "f")


def _binary(value: Any) -> JsonValue:
    return bytes(value).hex()


def _display(value: Any) -> JsonValue:
    return str(value)


_CONVERTERS: Dict[ColumnKind, Callable[[Any], JsonValue]] = {
    ColumnKind.NULL: _null,
    ColumnKind.BIT: bool,
    ColumnKind.INTEGER: int,
    ColumnKind.FLOAT: _float,
    ColumnKind.DECIMAL: _decimal,
    ColumnKind.GUID: _display,
    ColumnKind.BINARY: _binary,
    ColumnKind.TEXT: str,
    ColumnKind.DATE: _display,
    ColumnKind.TIME: _display,
    ColumnKind.DATETIME: _display,
    ColumnKind.DATETIMEOFFSET: _display,
}

_missing = set(ColumnKind) - set(_CONVERTERS)
if _missing:
    raise RuntimeError(f"No converter for column kinds: {sorted(k.value for k in _missing)}")


def column_value_to_json(value: Any) -> JsonValue:
    """Convert one MSSQL cell value to a JSON-compatible value.

    Args:
        value: Value as returned by the driver

    Returns:
        None, bool, int, float or str
    """
    kind = classify(value)
    if kind is None:
        logger.warning("Unsupported column value type %s, emitting null", type(value).__name__)
        return None
    try:
        return _CONVERTERS[kind](value)
    except Exception as e:
        logger.warning("Failed to convert %s column value: %s", kind.value, e)
        return None


def row_to_json(columns: Sequence[str], values: Iterable[Any]) -> Dict[str, JsonValue]:
    """Build a JSON object from column names and one row of values.

    Duplicate column names keep the last value.
    """
    row: Dict[str, JsonValue] = {}
    for name, value in zip(columns, values):
        row[name] = column_value_to_json(value)
    return row
