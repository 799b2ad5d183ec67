"""Row type for query results.

A row keeps every column the driver returned, in driver order, including
repeated column names (e.g. `select a.id, b.id from ...`). Lookup by name
returns the first matching column.
"""
from collections.abc import Iterator, Sequence
from typing import Any

from querybridge.value import Value, convert

__all__ = ['Row', 'RowSet', 'row_from_cursor']


class Row:
    """Ordered, duplicate-preserving mapping of column name to `Value`.

    Supports `row['name']`, `row[0]`, `row.name`, `in`, `len()` and
    iteration over column names.
    """

    __slots__ = ('_columns', '_values')

    def __init__(self, columns: Sequence[str], values: Sequence[Value]) -> None:
        if len(columns) != len(values):
            raise ValueError(f'Got {len(values)} values for {len(columns)} columns')
        self._columns = tuple(columns)
        self._values = tuple(values)

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def values(self) -> tuple[Value, ...]:
        return self._values

    def __getitem__(self, key: str | int) -> Value:
        if isinstance(key, int):
            return self._values[key]
        for name, value in zip(self._columns, self._values):
            if name == key:
                return value
        raise KeyError(key)

    def __getattr__(self, name: str) -> Value:
        if name.startswith('_'):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None

    def __contains__(self, key: object) -> bool:
        return key in self._columns

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Row):
            return NotImplemented
        return self._columns == other._columns and self._values == other._values

    def __repr__(self) -> str:
        cells = ', '.join(f'{name}={value!r}' for name, value in self.items())
        return f'Row({cells})'

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def getall(self, key: str) -> list[Value]:
        """All values for a column name, in column order."""
        return [value for name, value in zip(self._columns, self._values) if name == key]

    def keys(self) -> list[str]:
        return list(self._columns)

    def items(self) -> list[tuple[str, Value]]:
        return list(zip(self._columns, self._values))

    def to_dict(self) -> dict[str, Any]:
        """Native values keyed by column name; the first of duplicate names wins.
        """
        result: dict[str, Any] = {}
        for name, value in zip(self._columns, self._values):
            result.setdefault(name, value.to_native())
        return result


RowSet = list[Row]


def row_from_cursor(columns: Sequence[str], raw: Sequence[Any]) -> Row:
    """Convert one fetched DB-API row, cell by cell."""
    return Row(columns, [convert(cell) for cell in raw])
