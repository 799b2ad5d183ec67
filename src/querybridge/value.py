"""
Dynamic value representation for result cells and parameters.

This module handles the conversion of native driver values to the closed set
of `Value` variants (Database → caller direction). The converter is total:

1. Null markers (None, pandas NA/NaT, numpy NaT) become NIL
2. Integers of any width become INT when they fit in 64 bits, else a decimal string
3. Floats and decimals become FLOAT (decimals are narrowed)
4. Temporal values become ISO-8601 strings, durations become seconds
5. Byte sequences and homogeneous 1-d arrays/lists become array variants
6. Anything else is rendered with str(), or NIL if even that fails

Usage:
    value = convert(cursor.fetchone()[0])
    if value.kind is ValueKind.INT:
        ...
    native = value.to_native()
"""
import datetime
import decimal
import logging
import uuid
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

import numpy as np
import pandas as pd
import pyarrow as pa

__all__ = [
    'Value',
    'ValueKind',
    'convert',
    'INT64_MIN',
    'INT64_MAX',
]

logger = logging.getLogger(__name__)

INT64_MIN = -2**63
INT64_MAX = 2**63 - 1


class ValueKind(Enum):
    """Variants of the dynamic value."""
    NIL = auto()
    STRING = auto()
    INT = auto()            # 64-bit signed
    FLOAT = auto()          # double precision
    BOOL = auto()
    BYTES = auto()
    INT_ARRAY = auto()      # 32-bit ints
    LONG_ARRAY = auto()     # 64-bit ints
    FLOAT_ARRAY = auto()    # single precision
    DOUBLE_ARRAY = auto()
    STRING_ARRAY = auto()


ARRAY_KINDS = frozenset({
    ValueKind.INT_ARRAY,
    ValueKind.LONG_ARRAY,
    ValueKind.FLOAT_ARRAY,
    ValueKind.DOUBLE_ARRAY,
    ValueKind.STRING_ARRAY,
})


@dataclass(frozen=True, slots=True)
class Value:
    """Tagged union over the variants in `ValueKind`.

    Array payloads are stored as tuples so values stay hashable.
    `fallback` marks a STRING produced by rendering an unsupported type.
    """
    kind: ValueKind
    data: Any = None
    fallback: bool = False

    @classmethod
    def null(cls) -> 'Value':
        return cls(ValueKind.NIL)

    @classmethod
    def from_str(cls, data: str, fallback: bool = False) -> 'Value':
        return cls(ValueKind.STRING, data, fallback)

    @classmethod
    def from_int(cls, data: int) -> 'Value':
        if not INT64_MIN <= data <= INT64_MAX:
            raise OverflowError(f'{data} does not fit in a 64-bit signed integer')
        return cls(ValueKind.INT, int(data))

    @classmethod
    def from_float(cls, data: float) -> 'Value':
        return cls(ValueKind.FLOAT, float(data))

    @classmethod
    def from_bool(cls, data: bool) -> 'Value':
        return cls(ValueKind.BOOL, bool(data))

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview) -> 'Value':
        return cls(ValueKind.BYTES, bytes(data))

    @classmethod
    def array(cls, kind: ValueKind, items: Any) -> 'Value':
        if kind not in ARRAY_KINDS:
            raise ValueError(f'{kind} is not an array kind')
        return cls(kind, tuple(items))

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NIL

    def to_native(self) -> Any:
        """Return the plain Python payload (arrays as lists)."""
        if self.kind in ARRAY_KINDS:
            return list(self.data)
        return self.data

    def __repr__(self) -> str:
        if self.fallback:
            return f'Value({self.kind.name}, {self.data!r}, fallback=True)'
        return f'Value({self.kind.name}, {self.data!r})'


def _is_null_marker(value: Any) -> bool:
    if value is None or value is pd.NA or value is pd.NaT:
        return True
    if isinstance(value, np.datetime64 | np.timedelta64):
        return bool(np.isnat(value))
    return False


def _convert_integer(value: int) -> Value:
    """64-bit when it fits, else the decimal rendering."""
    if INT64_MIN <= value <= INT64_MAX:
        return Value(ValueKind.INT, value)
    return Value.from_str(str(value))


def _convert_ndarray(arr: np.ndarray) -> Value | None:
    """Map a 1-d numpy array by dtype; None when there is no array variant."""
    if arr.ndim != 1:
        return None
    kind = arr.dtype.kind
    if arr.dtype == np.uint8:
        return Value.from_bytes(arr.tobytes())
    if kind == 'b':
        return None
    if kind in 'iu':
        if arr.dtype.itemsize < 4 or arr.dtype == np.int32:
            return Value.array(ValueKind.INT_ARRAY, (int(v) for v in arr))
        if arr.dtype == np.uint64 and arr.size and int(arr.max()) > INT64_MAX:
            return None
        return Value.array(ValueKind.LONG_ARRAY, (int(v) for v in arr))
    if kind == 'f':
        if arr.dtype.itemsize <= 4:
            return Value.array(ValueKind.FLOAT_ARRAY, (float(v) for v in arr))
        return Value.array(ValueKind.DOUBLE_ARRAY, (float(v) for v in arr))
    if kind == 'U':
        return Value.array(ValueKind.STRING_ARRAY, (str(v) for v in arr))
    if kind == 'O':
        return _convert_sequence(arr.tolist())
    return None


def _convert_sequence(items: list | tuple) -> Value | None:
    """Homogeneous str/int/float sequences map to arrays; mixed ones do not.
    """
    if not items:
        return Value.array(ValueKind.STRING_ARRAY, ())
    if all(isinstance(v, str) for v in items):
        return Value.array(ValueKind.STRING_ARRAY, items)
    if all(isinstance(v, int) and not isinstance(v, bool) for v in items):
        if all(INT64_MIN <= v <= INT64_MAX for v in items):
            return Value.array(ValueKind.LONG_ARRAY, items)
        return None
    if all(isinstance(v, float) for v in items):
        return Value.array(ValueKind.DOUBLE_ARRAY, items)
    return None


def _dispatch(value: Any) -> Value | None:
    """Closed dispatch over native type categories.

    Returns None when the type has no direct mapping. Order matters: bool
    before int, datetime before date.
    """
    if _is_null_marker(value):
        return Value.null()

    # np.timedelta64 is an np.signedinteger, so numpy temporals go before int
    if isinstance(value, np.datetime64):
        return Value.from_str(pd.Timestamp(value).isoformat())

    if isinstance(value, np.timedelta64):
        return Value.from_float(pd.Timedelta(value).total_seconds())

    if isinstance(value, str):
        return Value.from_str(value)

    if isinstance(value, bool | np.bool_):
        return Value.from_bool(bool(value))

    if isinstance(value, int | np.integer):
        return _convert_integer(int(value))

    if isinstance(value, float | np.floating | decimal.Decimal):
        return Value.from_float(float(value))

    if isinstance(value, uuid.UUID):
        return Value.from_str(str(value))

    if isinstance(value, datetime.datetime | datetime.date | datetime.time):
        return Value.from_str(value.isoformat())

    if isinstance(value, datetime.timedelta):
        return Value.from_float(value.total_seconds())

    if isinstance(value, bytes | bytearray | memoryview):
        return Value.from_bytes(value)

    if isinstance(value, np.ndarray):
        return _convert_ndarray(value)

    if isinstance(value, list | tuple):
        return _convert_sequence(value)

    if isinstance(value, pa.Scalar):
        return convert(value.as_py())

    if isinstance(value, pa.Array | pa.ChunkedArray):
        return convert(value.to_pylist())

    return None


def _fallback(value: Any) -> Value:
    """Render an unsupported value as a string, or NIL if that fails too.
    """
    try:
        rendered = str(value)
    except Exception as e:
        logger.error(f'Critical error while converting type {type(value).__name__!r}. Returning NIL. Error: {e}')
        return Value.null()
    logger.info(f'Non supported type {type(value).__name__!r}. Converting to string: {rendered!r}')
    return Value.from_str(rendered, fallback=True)


def convert(value: Any) -> Value:
    """Convert a native driver value to a `Value`.

    Never raises: a value that fails inside its category mapping goes down
    the fallback path like any unsupported type.
    """
    try:
        result = _dispatch(value)
    except Exception as e:
        logger.debug(f'Direct conversion of {type(value).__name__!r} failed: {e}')
        result = None
    if result is None:
        return _fallback(value)
    return result
