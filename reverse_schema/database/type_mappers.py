"""Database-specific type mapping strategies.

Each dialect mapper turns a native column type descriptor into a
NormalizedType. Unknown types never raise: they come back as
``TypeKind.UNKNOWN`` with the raw type preserved and a note attached.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from ..config import Dialect
from ..errors import ReverseSchemaError
from .literals import is_literal_type, parse_literal_list
from .models import RawColumn


class TypeKind(str, Enum):
    """Dialect independent storage kinds."""

    INTEGER = "integer"
    DECIMAL = "decimal"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING = "string"
    TEXT = "text"
    DATE = "date"
    DATETIME = "datetime"
    BINARY = "binary"
    ENUM = "enum"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TypeDescriptor:
    """Native type information as reported by a dialect catalog."""
    raw_type: str
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    unsigned: bool = False
    nullable: bool = True
    default: Optional[str] = None
    enum_values: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_column(cls, column: RawColumn) -> "TypeDescriptor":
        return cls(
            raw_type=column.native_type,
            length=column.length,
            precision=column.precision,
            scale=column.scale,
            unsigned=column.unsigned,
            nullable=column.nullable,
            default=column.default,
            enum_values=column.enum_values,
        )


@dataclass(frozen=True)
class NormalizedType:
    """Normalized classification of a column type."""
    kind: TypeKind
    raw_type: str
    nullable: bool = True
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    default: Optional[str] = None
    unsigned: bool = False
    fixed_length: bool = False
    timezone: bool = False
    integer_bits: Optional[int] = None
    notes: Tuple[str, ...] = ()

    @property
    def has_notes(self) -> bool:
        return bool(self.notes)


@dataclass(frozen=True)
class ParsedType:
    """A native type string split into its parts."""
    base: str
    args: Tuple[str, ...] = ()
    unsigned: bool = False
    is_array: bool = False


_MODIFIERS = re.compile(r"\b(unsigned|signed|zerofill)\b", re.IGNORECASE)


def parse_type_string(raw_type: str) -> ParsedType:
    """Split ``int(10) unsigned`` into base ``int``, args ``('10',)`` and flags.

    Text after the parenthesised arguments is folded back into the base,
    so ``timestamp(3) with time zone`` has base ``timestamp with time zone``.
    """
    text = (raw_type or "").strip()
    is_array = text.endswith("[]")
    if is_array:
        text = text[:-2].strip()

    unsigned = bool(re.search(r"\bunsigned\b", text, re.IGNORECASE))

    args: Tuple[str, ...] = ()
    open_pos = text.find("(")
    close_pos = text.rfind(")")
    if open_pos != -1 and close_pos > open_pos:
        inner = text[open_pos + 1:close_pos]
        args = tuple(part.strip() for part in inner.split(","))
        text = text[:open_pos] + " " + text[close_pos + 1:]

    text = _MODIFIERS.sub(" ", text)
    base = " ".join(text.lower().split())
    return ParsedType(base=base, args=args, unsigned=unsigned, is_array=is_array)


def _int_arg(args: Tuple[str, ...], index: int) -> Optional[int]:
    if len(args) > index and args[index].isdigit():
        return int(args[index])
    return None


# Next signed width able to hold an unsigned value of the given width
_UNSIGNED_WIDENING = {8: 16, 16: 32, 24: 32, 32: 64, 64: 64, 128: 128}


class TypeMapper:
    """Base class for dialect type mapping.

    Subclasses fill in the class-level vocabularies and may override
    ``_classify_special`` for dialect quirks that do not fit them.
    """

    dialect: str = ""

    INTEGER_BITS: Dict[str, int] = {}
    DECIMAL_TYPES: FrozenSet[str] = frozenset({"decimal", "numeric"})
    FLOAT_TYPES: FrozenSet[str] = frozenset({"float", "double", "real", "double precision"})
    BOOLEAN_TYPES: FrozenSet[str] = frozenset({"boolean", "bool"})
    STRING_TYPES: FrozenSet[str] = frozenset({"varchar", "character varying", "nvarchar"})
    FIXED_STRING_TYPES: FrozenSet[str] = frozenset({"char", "character", "nchar"})
    TEXT_TYPES: Dict[str, Optional[int]] = {"text": None}
    BINARY_TYPES: Dict[str, Optional[int]] = {"blob": None}
    DATE_TYPES: FrozenSet[str] = frozenset({"date"})
    DATETIME_TYPES: FrozenSet[str] = frozenset({"datetime", "timestamp"})
    DATETIME_TZ_TYPES: FrozenSet[str] = frozenset()
    TIME_TYPES: FrozenSet[str] = frozenset({"time"})
    JSON_TYPES: FrozenSet[str] = frozenset({"json"})
    UUID_TYPES: FrozenSet[str] = frozenset({"uuid"})

    def normalize(self, descriptor: TypeDescriptor) -> NormalizedType:
        """Map a native type descriptor to a NormalizedType."""
        parsed = parse_type_string(descriptor.raw_type)
        notes: List[str] = []

        enum_values = descriptor.enum_values
        if not enum_values and is_literal_type(descriptor.raw_type, "enum"):
            enum_values = parse_literal_list(descriptor.raw_type)

        if enum_values:
            fields: Optional[Dict[str, Any]] = {
                "kind": TypeKind.ENUM,
                "length": max(len(v) for v in enum_values),
            }
        elif parsed.is_array:
            notes.append(f"Array type '{descriptor.raw_type}' has no normalized equivalent")
            fields = {"kind": TypeKind.UNKNOWN}
        else:
            fields = self._classify_special(parsed, descriptor, notes)
            if fields is None:
                fields = self._classify(parsed, descriptor, notes)

        if fields is None:
            notes.append(f"Unrecognized {self.dialect} type '{descriptor.raw_type}'")
            fields = {"kind": TypeKind.UNKNOWN}

        return NormalizedType(
            raw_type=descriptor.raw_type,
            nullable=descriptor.nullable,
            default=descriptor.default,
            unsigned=descriptor.unsigned or parsed.unsigned,
            notes=tuple(notes),
            **fields,
        )

    def _classify_special(
        self,
        parsed: ParsedType,
        descriptor: TypeDescriptor,
        notes: List[str],
    ) -> Optional[Dict[str, Any]]:
        """Dialect quirks, checked before the shared vocabularies."""
        return None

    def _classify(
        self,
        parsed: ParsedType,
        descriptor: TypeDescriptor,
        notes: List[str],
    ) -> Optional[Dict[str, Any]]:
        base = parsed.base

        if base in self.INTEGER_BITS:
            return self._integer(self.INTEGER_BITS[base], descriptor.unsigned or parsed.unsigned, notes)

        if base in self.DECIMAL_TYPES:
            return {
                "kind": TypeKind.DECIMAL,
                "precision": descriptor.precision if descriptor.precision is not None else _int_arg(parsed.args, 0),
                "scale": descriptor.scale if descriptor.scale is not None else _int_arg(parsed.args, 1),
            }

        if base in self.FLOAT_TYPES:
            return self._float(parsed, descriptor, notes)

        if base in self.BOOLEAN_TYPES:
            return {"kind": TypeKind.BOOLEAN}

        if base in self.STRING_TYPES or base in self.FIXED_STRING_TYPES:
            return {
                "kind": TypeKind.STRING,
                "length": descriptor.length if descriptor.length is not None else _int_arg(parsed.args, 0),
                "fixed_length": base in self.FIXED_STRING_TYPES,
            }

        if base in self.TEXT_TYPES:
            return {
                "kind": TypeKind.TEXT,
                "length": descriptor.length if descriptor.length is not None else self.TEXT_TYPES[base],
            }

        if base in self.BINARY_TYPES:
            length = descriptor.length if descriptor.length is not None else _int_arg(parsed.args, 0)
            return {
                "kind": TypeKind.BINARY,
                "length": length if length is not None else self.BINARY_TYPES[base],
            }

        if base in self.DATE_TYPES:
            return {"kind": TypeKind.DATE}

        if base in self.DATETIME_TYPES or base in self.DATETIME_TZ_TYPES:
            return {
                "kind": TypeKind.DATETIME,
                "precision": self._fractional_seconds(parsed, descriptor),
                "timezone": base in self.DATETIME_TZ_TYPES,
            }

        if base in self.TIME_TYPES:
            notes.append(f"Time-of-day type '{descriptor.raw_type}' represented as datetime")
            return {
                "kind": TypeKind.DATETIME,
                "precision": self._fractional_seconds(parsed, descriptor),
            }

        if base in self.JSON_TYPES:
            notes.append(f"JSON document type '{descriptor.raw_type}' stored as text")
            return {"kind": TypeKind.TEXT}

        if base in self.UUID_TYPES:
            return {"kind": TypeKind.STRING, "length": 36, "fixed_length": True}

        return None

    def _integer(self, bits: int, unsigned: bool, notes: List[str]) -> Dict[str, Any]:
        if unsigned:
            widened = _UNSIGNED_WIDENING.get(bits, bits)
            if widened == bits:
                notes.append(
                    f"Unsigned {bits}-bit integer exceeds the signed {bits}-bit range"
                )
            bits = widened
        return {"kind": TypeKind.INTEGER, "integer_bits": bits}

    def _float(
        self,
        parsed: ParsedType,
        descriptor: TypeDescriptor,
        notes: List[str],
    ) -> Dict[str, Any]:
        precision = _int_arg(parsed.args, 0)
        scale = _int_arg(parsed.args, 1)
        if scale is not None:
            notes.append(
                f"Scale {scale} of '{descriptor.raw_type}' is not kept by float columns"
            )
        return {"kind": TypeKind.FLOAT, "precision": precision}

    @staticmethod
    def _fractional_seconds(parsed: ParsedType, descriptor: TypeDescriptor) -> Optional[int]:
        arg = _int_arg(parsed.args, 0)
        if arg is not None:
            return arg
        return descriptor.precision


class MySQLTypeMapper(TypeMapper):
    """Type mapper for MySQL/MariaDB column types."""

    dialect = "mysql"

    INTEGER_BITS = {
        "tinyint": 8,
        "smallint": 16,
        "mediumint": 24,
        "int": 32,
        "integer": 32,
        "bigint": 64,
        "year": 16,
    }
    FLOAT_TYPES = frozenset({"float", "double", "real", "double precision"})
    STRING_TYPES = frozenset({"varchar", "nvarchar", "character varying"})
    TEXT_TYPES = {
        "tinytext": 255,
        "text": 65535,
        "mediumtext": 16777215,
        "longtext": 4294967295,
    }
    BINARY_TYPES = {
        "binary": None,
        "varbinary": None,
        "tinyblob": 255,
        "blob": 65535,
        "mediumblob": 16777215,
        "longblob": 4294967295,
    }
    SPATIAL_TYPES = frozenset({
        "geometry", "point", "linestring", "polygon",
        "multipoint", "multilinestring", "multipolygon", "geometrycollection",
    })

    def _classify_special(self, parsed, descriptor, notes):
        base = parsed.base

        if base == "bit":
            width = _int_arg(parsed.args, 0) or descriptor.precision or 1
            if width == 1:
                return {"kind": TypeKind.BOOLEAN}
            notes.append(f"bit({width}) stored as binary")
            return {"kind": TypeKind.BINARY, "length": (width + 7) // 8}

        if base == "set":
            notes.append("SET column normalized as string; members kept as set_values")
            return {"kind": TypeKind.STRING}

        if base in self.SPATIAL_TYPES:
            notes.append(f"Spatial type '{descriptor.raw_type}' stored as binary")
            return {"kind": TypeKind.BINARY}

        if base == "year":
            return {"kind": TypeKind.INTEGER, "integer_bits": 16}

        return None


class PostgresTypeMapper(TypeMapper):
    """Type mapper for PostgreSQL column types."""

    dialect = "postgresql"

    INTEGER_BITS = {
        "smallint": 16,
        "int2": 16,
        "smallserial": 16,
        "integer": 32,
        "int": 32,
        "int4": 32,
        "serial": 32,
        "bigint": 64,
        "int8": 64,
        "bigserial": 64,
    }
    FLOAT_TYPES = frozenset({"real", "float4", "double precision", "float8", "float"})
    BOOLEAN_TYPES = frozenset({"boolean", "bool"})
    STRING_TYPES = frozenset({"character varying", "varchar", "citext", "inet", "cidr", "macaddr"})
    FIXED_STRING_TYPES = frozenset({"character", "char", "bpchar"})
    TEXT_TYPES = {"text": None, "xml": None}
    BINARY_TYPES = {"bytea": None}
    DATETIME_TYPES = frozenset({"timestamp", "timestamp without time zone"})
    DATETIME_TZ_TYPES = frozenset({"timestamptz", "timestamp with time zone"})
    TIME_TYPES = frozenset({"time", "time without time zone", "timetz", "time with time zone"})
    JSON_TYPES = frozenset({"json", "jsonb"})

    def _classify_special(self, parsed, descriptor, notes):
        if parsed.base == "money":
            notes.append("money mapped to decimal; currency formatting is not kept")
            return {"kind": TypeKind.DECIMAL, "scale": 2}
        if parsed.base.startswith("_"):
            # information_schema udt_name form of array types, e.g. _int4
            notes.append(f"Array type '{descriptor.raw_type}' has no normalized equivalent")
            return {"kind": TypeKind.UNKNOWN}
        return None


class SQLiteTypeMapper(TypeMapper):
    """Type mapper for SQLite declared column types.

    SQLite accepts any declared type name. Well-known names are mapped
    directly; anything else falls back to SQLite's column affinity rules,
    and a type that matches no rule at all is reported as unknown.
    """

    dialect = "sqlite"

    INTEGER_BITS = {
        "integer": 64,
        "int": 64,
        "bigint": 64,
        "mediumint": 32,
        "smallint": 16,
        "tinyint": 8,
        "int2": 16,
        "int8": 64,
    }
    STRING_TYPES = frozenset({"varchar", "character varying", "nvarchar", "varying character", "native character"})
    FIXED_STRING_TYPES = frozenset({"char", "character", "nchar"})
    TEXT_TYPES = {"text": None, "clob": None}
    BINARY_TYPES = {"blob": None}

    def _classify(self, parsed, descriptor, notes):
        fields = super()._classify(parsed, descriptor, notes)
        if fields is not None:
            return fields

        declared = parsed.base.upper()
        if not declared:
            notes.append("Column has no declared type")
            return None
        # https://www.sqlite.org/datatype3.html#determination_of_column_affinity
        if "INT" in declared:
            notes.append(f"'{descriptor.raw_type}' mapped by INTEGER affinity")
            return {"kind": TypeKind.INTEGER, "integer_bits": 64}
        if any(t in declared for t in ("CHAR", "CLOB", "TEXT")):
            notes.append(f"'{descriptor.raw_type}' mapped by TEXT affinity")
            return {"kind": TypeKind.TEXT}
        if "BLOB" in declared:
            notes.append(f"'{descriptor.raw_type}' mapped by BLOB affinity")
            return {"kind": TypeKind.BINARY}
        if any(t in declared for t in ("REAL", "FLOA", "DOUB")):
            notes.append(f"'{descriptor.raw_type}' mapped by REAL affinity")
            return {"kind": TypeKind.FLOAT}
        return None


class DuckDBTypeMapper(TypeMapper):
    """Type mapper for DuckDB column types."""

    dialect = "duckdb"

    INTEGER_BITS = {
        "tinyint": 8,
        "int1": 8,
        "smallint": 16,
        "int2": 16,
        "integer": 32,
        "int": 32,
        "int4": 32,
        "bigint": 64,
        "int8": 64,
        "hugeint": 128,
    }
    UNSIGNED_INTEGER_BITS = {
        "utinyint": 8,
        "usmallint": 16,
        "uinteger": 32,
        "ubigint": 64,
        "uhugeint": 128,
    }
    FLOAT_TYPES = frozenset({"double", "float8", "float", "float4", "real"})
    STRING_TYPES = frozenset({"varchar", "string", "text"})
    TEXT_TYPES = {}
    BINARY_TYPES = {"blob": None, "bytea": None, "varbinary": None, "binary": None, "bit": None, "bitstring": None}
    DATETIME_TYPES = frozenset({"timestamp", "datetime", "timestamp_s", "timestamp_ms", "timestamp_ns"})
    DATETIME_TZ_TYPES = frozenset({"timestamptz", "timestamp with time zone"})
    TIME_TYPES = frozenset({"time", "timetz", "time with time zone"})

    _TIMESTAMP_UNITS = {"timestamp_s": 0, "timestamp_ms": 3, "timestamp_ns": 9}

    def _classify_special(self, parsed, descriptor, notes):
        base = parsed.base
        if base in self.UNSIGNED_INTEGER_BITS:
            return self._integer(self.UNSIGNED_INTEGER_BITS[base], True, notes)
        if base in self._TIMESTAMP_UNITS:
            return {"kind": TypeKind.DATETIME, "precision": self._TIMESTAMP_UNITS[base]}
        if base.startswith(("struct", "map", "union", "list")):
            notes.append(f"Nested type '{descriptor.raw_type}' has no normalized equivalent")
            return {"kind": TypeKind.UNKNOWN}
        return None


_MAPPERS: Dict[str, TypeMapper] = {
    Dialect.MYSQL.value: MySQLTypeMapper(),
    Dialect.POSTGRESQL.value: PostgresTypeMapper(),
    Dialect.SQLITE.value: SQLiteTypeMapper(),
    Dialect.DUCKDB.value: DuckDBTypeMapper(),
}


def get_type_mapper(dialect: Union[Dialect, str]) -> TypeMapper:
    """Get the mapper for a dialect."""
    key = dialect.value if isinstance(dialect, Dialect) else str(dialect).lower()
    try:
        return _MAPPERS[key]
    except KeyError:
        raise ReverseSchemaError.configuration_invalid(
            f"Unsupported dialect '{dialect}'. Supported dialects: {', '.join(sorted(_MAPPERS))}",
            dialect=str(dialect),
        ) from None


def normalize(dialect: Union[Dialect, str], descriptor: TypeDescriptor) -> NormalizedType:
    """Normalize one native type descriptor for the given dialect."""
    return get_type_mapper(dialect).normalize(descriptor)
