"""Data models for the assembled schema model."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..database.models import RawForeignKey, RawIndex
from ..database.type_mappers import NormalizedType, TypeKind


class RelationshipKind(str, Enum):
    """Association kinds, seen from the owning side."""

    ONE_TO_ONE = "OneToOne"
    ONE_TO_MANY = "OneToMany"
    MANY_TO_ONE = "ManyToOne"
    MANY_TO_MANY = "ManyToMany"

    @property
    def inverse(self) -> "RelationshipKind":
        return _INVERSE_KINDS[self]


_INVERSE_KINDS = {
    RelationshipKind.ONE_TO_ONE: RelationshipKind.ONE_TO_ONE,
    RelationshipKind.ONE_TO_MANY: RelationshipKind.MANY_TO_ONE,
    RelationshipKind.MANY_TO_ONE: RelationshipKind.ONE_TO_MANY,
    RelationshipKind.MANY_TO_MANY: RelationshipKind.MANY_TO_MANY,
}


@dataclass(frozen=True)
class JoinTable:
    """Join table of a collapsed ManyToMany relationship.

    Column pairs are ``(join table column, referenced column)``.
    """

    name: str
    owning_columns: Tuple[Tuple[str, str], ...]
    inverse_columns: Tuple[Tuple[str, str], ...]
    follows_pattern: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "owning_columns": [list(pair) for pair in self.owning_columns],
            "inverse_columns": [list(pair) for pair in self.inverse_columns],
            "follows_pattern": self.follows_pattern,
        }


@dataclass(frozen=True)
class Relationship:
    """A resolved association between two tables.

    One Relationship covers both sides: ``kind`` is the owning side's view
    and ``inverse_kind`` the inverse side's. For direct associations the
    owning table declares the foreign key; for ManyToMany the owning table
    is the target of the join table's first foreign key.
    """

    kind: RelationshipKind
    owning_table: str
    owning_columns: Tuple[str, ...]
    inverse_table: str
    inverse_columns: Tuple[str, ...]
    declaring_table: str
    foreign_keys: Tuple[str, ...] = ()
    ordinal: int = 0
    nullable: bool = True
    on_delete: str = "RESTRICT"
    on_update: str = "RESTRICT"
    join_table: Optional[JoinTable] = None
    owning_property: Optional[str] = None
    inverse_property: Optional[str] = None

    @property
    def inverse_kind(self) -> RelationshipKind:
        return self.kind.inverse

    @property
    def self_referencing(self) -> bool:
        return self.owning_table == self.inverse_table

    @property
    def sort_key(self) -> Tuple[str, int]:
        return (self.declaring_table, self.ordinal)

    def describe(self) -> str:
        """One-line summary, e.g. ``orders.customer_id -> customers.id (ManyToOne)``."""
        if self.join_table is not None:
            return (
                f"{self.owning_table} <-> {self.inverse_table} "
                f"via {self.join_table.name} ({self.kind.value})"
            )
        return (
            f"{self.owning_table}.{','.join(self.owning_columns)} -> "
            f"{self.inverse_table}.{','.join(self.inverse_columns)} ({self.kind.value})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "inverse_kind": self.inverse_kind.value,
            "owning_table": self.owning_table,
            "owning_columns": list(self.owning_columns),
            "owning_property": self.owning_property,
            "inverse_table": self.inverse_table,
            "inverse_columns": list(self.inverse_columns),
            "inverse_property": self.inverse_property,
            "foreign_keys": list(self.foreign_keys),
            "nullable": self.nullable,
            "on_delete": self.on_delete,
            "on_update": self.on_update,
            "join_table": self.join_table.to_dict() if self.join_table else None,
        }


@dataclass(frozen=True)
class EnumCase:
    """One case of a backed enum."""
    name: str
    value: str


@dataclass(frozen=True)
class CaseConflict:
    """Two literals of one enum that derived the same case name."""
    value: str
    derived_name: str
    resolved_name: str


@dataclass(frozen=True)
class EnumDefinition:
    """A backed enum derived from an enum-typed column."""

    table: str
    column: str
    class_name: str
    values: Tuple[str, ...]
    cases: Tuple[EnumCase, ...]
    conflicts: Tuple[CaseConflict, ...] = ()

    @property
    def case_names(self) -> Dict[str, str]:
        """Mapping of literal value to case name."""
        return {case.value: case.name for case in self.cases}

    def case_for(self, value: str) -> Optional[EnumCase]:
        for case in self.cases:
            if case.value == value:
                return case
        return None

    def possible_values(self) -> str:
        return "Possible values: " + ", ".join(f"'{v}'" for v in self.values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "column": self.column,
            "class_name": self.class_name,
            "cases": [{"name": c.name, "value": c.value} for c in self.cases],
            "conflicts": [
                {"value": c.value, "derived_name": c.derived_name, "resolved_name": c.resolved_name}
                for c in self.conflicts
            ],
        }


@dataclass(frozen=True)
class Column:
    """A column of an entity table with its normalized type."""

    name: str
    native_type: str
    type: NormalizedType
    property_name: str
    is_primary_key: bool = False
    is_auto_increment: bool = False
    is_foreign_key: bool = False
    comment: str = ""
    enum_class: Optional[str] = None
    set_values: Optional[Tuple[str, ...]] = None
    needs_lifecycle_callback: bool = False

    @property
    def kind(self) -> TypeKind:
        return self.type.kind

    @property
    def nullable(self) -> bool:
        return self.type.nullable

    @property
    def notes(self) -> Tuple[str, ...]:
        return self.type.notes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "property": self.property_name,
            "native_type": self.native_type,
            "kind": self.kind.value,
            "nullable": self.nullable,
            "length": self.type.length,
            "precision": self.type.precision,
            "scale": self.type.scale,
            "default": self.type.default,
            "primary_key": self.is_primary_key,
            "auto_increment": self.is_auto_increment,
            "foreign_key": self.is_foreign_key,
            "enum_class": self.enum_class,
            "set_values": list(self.set_values) if self.set_values is not None else None,
            "lifecycle_callback": self.needs_lifecycle_callback,
            "comment": self.comment,
            "notes": list(self.notes),
        }


@dataclass(frozen=True)
class Table:
    """An entity candidate table."""

    name: str
    entity_name: str
    columns: Tuple[Column, ...]
    primary_key: Tuple[str, ...] = ()
    indexes: Tuple[RawIndex, ...] = ()
    foreign_keys: Tuple[RawForeignKey, ...] = ()
    relationships: Tuple[Relationship, ...] = ()

    def get_column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    @property
    def has_composite_key(self) -> bool:
        return len(self.primary_key) > 1

    @property
    def secondary_indexes(self) -> Tuple[RawIndex, ...]:
        return tuple(index for index in self.indexes if not index.primary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "entity": self.entity_name,
            "primary_key": list(self.primary_key),
            "columns": [c.to_dict() for c in self.columns],
            "indexes": [
                {"name": i.name, "columns": list(i.columns), "unique": i.unique, "primary": i.primary}
                for i in self.indexes
            ],
            "foreign_keys": [
                {
                    "name": fk.name,
                    "columns": list(fk.columns),
                    "target_table": fk.target_table,
                    "target_columns": list(fk.target_columns),
                    "on_delete": fk.on_delete,
                    "on_update": fk.on_update,
                }
                for fk in self.foreign_keys
            ],
        }


@dataclass(frozen=True)
class SchemaModel:
    """The assembled, read-only schema model handed to renderers."""

    dialect: str
    database: str
    tables: Mapping[str, Table] = field(default_factory=lambda: MappingProxyType({}))
    relationships: Tuple[Relationship, ...] = ()
    enums: Tuple[EnumDefinition, ...] = ()
    junction_tables: Tuple[str, ...] = ()
    membership: Mapping[Tuple[str, str], Tuple[Relationship, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def get_table(self, name: str) -> Optional[Table]:
        return self.tables.get(name)

    @property
    def table_names(self) -> List[str]:
        return list(self.tables)

    @property
    def entity_names(self) -> Dict[str, str]:
        return {name: table.entity_name for name, table in self.tables.items()}

    def relationships_for(self, table: str, column: Optional[str] = None) -> List[Relationship]:
        """Get relationships a table (or one of its columns) takes part in.

        Args:
            table: Table name
            column: Optional column name to narrow to

        Returns:
            Relationships in resolution order
        """
        if column is not None:
            return list(self.membership.get((table, column), ()))
        return [
            r for r in self.relationships
            if table in (r.owning_table, r.inverse_table)
        ]

    def relationship_for_foreign_key(self, table: str, foreign_key: str) -> Optional[Relationship]:
        for relationship in self.relationships:
            if relationship.declaring_table == table and foreign_key in relationship.foreign_keys:
                return relationship
        return None

    def enum_for(self, table: str, column: str) -> Optional[EnumDefinition]:
        for enum in self.enums:
            if enum.table == table and enum.column == column:
                return enum
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert the model to a JSON-serializable dictionary."""
        return {
            "dialect": self.dialect,
            "database": self.database,
            "tables": [table.to_dict() for table in self.tables.values()],
            "junction_tables": list(self.junction_tables),
            "relationships": [r.to_dict() for r in self.relationships],
            "enums": [e.to_dict() for e in self.enums],
        }
