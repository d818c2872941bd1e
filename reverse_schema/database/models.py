"""Raw catalog data models produced by schema introspection."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ..errors import ReverseSchemaError


@dataclass(frozen=True)
class RawColumn:
    """A column exactly as the dialect catalog reports it."""
    name: str
    native_type: str
    nullable: bool = True
    default: Optional[str] = None
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    unsigned: bool = False
    auto_increment: bool = False
    comment: str = ""
    # Inline literal set (MySQL/DuckDB ENUM, PostgreSQL enum type, SQLite CHECK IN)
    enum_values: Optional[Tuple[str, ...]] = None
    # MySQL SET members
    set_values: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class RawIndex:
    """An index on a table."""
    name: str
    columns: Tuple[str, ...]
    unique: bool = False
    primary: bool = False


@dataclass(frozen=True)
class RawForeignKey:
    """A foreign key constraint declared by a table.

    The target table is referenced by name only; it is looked up in the
    RawSchema when relationships are resolved.
    """
    name: str
    columns: Tuple[str, ...]
    target_table: str
    target_columns: Tuple[str, ...]
    on_delete: str = "RESTRICT"
    on_update: str = "RESTRICT"


@dataclass(frozen=True)
class RawTable:
    """Everything the catalog knows about one table."""
    name: str
    columns: Tuple[RawColumn, ...] = ()
    primary_key: Tuple[str, ...] = ()
    indexes: Tuple[RawIndex, ...] = ()
    foreign_keys: Tuple[RawForeignKey, ...] = ()

    def get_column(self, name: str) -> Optional[RawColumn]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    @property
    def foreign_key_columns(self) -> List[str]:
        """Columns that take part in any foreign key, in first-seen order."""
        seen: List[str] = []
        for fk in self.foreign_keys:
            for column in fk.columns:
                if column not in seen:
                    seen.append(column)
        return seen


@dataclass
class RawSchema:
    """All successfully introspected tables for one run."""
    dialect: str
    database: str
    tables: Dict[str, RawTable] = field(default_factory=dict)

    def get_table(self, name: str) -> Optional[RawTable]:
        return self.tables.get(name)

    def has_table(self, name: str) -> bool:
        return name in self.tables

    @property
    def table_names(self) -> List[str]:
        return sorted(self.tables)


@dataclass(frozen=True)
class TableResult:
    """Outcome of introspecting a single table."""
    table: str
    success: bool
    error: Optional["ReverseSchemaError"] = None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None


@dataclass(frozen=True)
class TableWarning:
    """A non-fatal problem with a requested table."""
    table: str
    message: str


@dataclass
class IntrospectionResult:
    """What SchemaIntrospector.introspect hands back to the engine."""
    schema: RawSchema
    warnings: List[TableWarning] = field(default_factory=list)
    results: Dict[str, TableResult] = field(default_factory=dict)

    @property
    def failed_tables(self) -> List[str]:
        return [name for name, result in self.results.items() if not result.success]

    @property
    def missing_tables(self) -> List[str]:
        return [w.table for w in self.warnings]
