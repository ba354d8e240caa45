from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from event_sink.domain import InsertionRecord, ScalarKind, TypedValue


class ColumnType(str, Enum):
    """PostgreSQL parameter types, spelled the way they appear in a cast."""
    TIMESTAMPTZ = "timestamptz"
    BOOLEAN = "bool"
    DOUBLE = "float8"
    BIGINT = "int8"
    NUMERIC = "numeric"
    VARCHAR = "varchar"


# No native unsigned 64-bit type exists, so unsigned integers go to NUMERIC.
SCALAR_KIND_TO_COLUMN_TYPE: dict[ScalarKind, ColumnType] = {
    ScalarKind.BOOLEAN: ColumnType.BOOLEAN,
    ScalarKind.FLOAT: ColumnType.DOUBLE,
    ScalarKind.SIGNED_INTEGER: ColumnType.BIGINT,
    ScalarKind.UNSIGNED_INTEGER: ColumnType.NUMERIC,
    ScalarKind.TEXT: ColumnType.VARCHAR,
}

if missing := set(ScalarKind) - {ScalarKind.UNSPECIFIED} - set(SCALAR_KIND_TO_COLUMN_TYPE):
    raise RuntimeError(f"No column type for scalar kinds: {sorted(k.value for k in missing)}")


def split_value(value: TypedValue) -> tuple[ColumnType, Any]:
    """Column type and bound parameter for one typed value."""
    column_type = SCALAR_KIND_TO_COLUMN_TYPE[value.kind]
    if column_type is ColumnType.NUMERIC:
        return column_type, Decimal(value.value)
    return column_type, value.value


@dataclass(frozen=True)
class PreparedInsert:
    table: str
    columns: tuple[str, ...]
    column_types: tuple[ColumnType, ...]
    values: tuple[Any, ...]

    @property
    def sql(self) -> str:
        placeholders = ", ".join(f"${i}" for i in range(1, len(self.values) + 1))
        return f"INSERT INTO {self.table} ({', '.join(self.columns)}) VALUES ({placeholders})"

    @property
    def typed_sql(self) -> str:
        """Same statement with an explicit type on every parameter, so the server never infers one."""
        placeholders = ", ".join(
            f"${i}::{column_type.value}" for i, column_type in enumerate(self.column_types, start=1)
        )
        return f"INSERT INTO {self.table} ({', '.join(self.columns)}) VALUES ({placeholders})"


def build_insert(table: str, record: InsertionRecord) -> PreparedInsert:
    columns = [record.time_column]
    column_types = [ColumnType.TIMESTAMPTZ]
    values: list[Any] = [record.timestamp]

    for column_name, typed_value in record.columns:
        column_type, bound_value = split_value(typed_value)
        columns.append(column_name)
        column_types.append(column_type)
        values.append(bound_value)

    return PreparedInsert(
        table=table,
        columns=tuple(columns),
        column_types=tuple(column_types),
        values=tuple(values),
    )
