"""Assembly of the final schema model.

Combines the raw schema, normalized column types, enum definitions and
resolved relationships into one SchemaModel, naming entities and
relationship properties and rejecting any name collision.
"""

import logging
import re
from dataclasses import replace
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from ..database.models import RawColumn, RawSchema, RawTable
from ..database.type_mappers import NormalizedType, TypeDescriptor, TypeKind, get_type_mapper
from ..errors import ReverseSchemaError
from ..events import EngineEvent, EventSink, EventType, LoggingEventSink
from ..naming import entity_name, lcfirst, pluralize, to_camel_case, unique_name
from .models import Column, EnumDefinition, Relationship, RelationshipKind, SchemaModel, Table
from .relationship_resolver import RelationshipResolution

logger = logging.getLogger(__name__)

NormalizedColumns = Dict[str, Dict[str, NormalizedType]]

_CURRENT_TIMESTAMP = re.compile(r"^\s*current_timestamp\s*(\(\s*\d*\s*\))?\s*$", re.IGNORECASE)


def normalize_columns(schema: RawSchema, events: Optional[EventSink] = None) -> NormalizedColumns:
    """Normalize every column type of a schema.

    Columns whose normalization carries notes are reported as
    ``type_normalized`` events.

    Returns:
        Mapping of table name to column name to NormalizedType
    """
    events = events if events is not None else LoggingEventSink()
    mapper = get_type_mapper(schema.dialect)

    normalized: NormalizedColumns = {}
    for name in schema.table_names:
        columns: Dict[str, NormalizedType] = {}
        for column in schema.tables[name].columns:
            result = mapper.normalize(TypeDescriptor.from_column(column))
            columns[column.name] = result
            for note in result.notes:
                events.emit(EngineEvent(
                    EventType.TYPE_NORMALIZED,
                    note,
                    table=name,
                    column=column.name,
                    data={"raw_type": result.raw_type, "kind": result.kind.value},
                ))
        normalized[name] = columns
    return normalized


def needs_lifecycle_callback(normalized: NormalizedType) -> bool:
    """True for datetime columns defaulting to CURRENT_TIMESTAMP."""
    return (
        normalized.kind == TypeKind.DATETIME
        and normalized.default is not None
        and bool(_CURRENT_TIMESTAMP.match(normalized.default))
    )


class ModelAssembler:
    """Builds the immutable SchemaModel."""

    def __init__(self, events: Optional[EventSink] = None):
        self.events = events if events is not None else LoggingEventSink()

    def assemble(
        self,
        schema: RawSchema,
        normalized_columns: NormalizedColumns,
        enum_definitions: Sequence[EnumDefinition],
        relationships: Union[RelationshipResolution, Sequence[Relationship]],
        junction_tables: Iterable[str] = (),
    ) -> SchemaModel:
        """Assemble the schema model.

        Args:
            schema: Raw schema of the run
            normalized_columns: Output of normalize_columns()
            enum_definitions: Enum definitions in output order
            relationships: RelationshipResolution, or relationships in resolution order
            junction_tables: Collapsed junction tables (taken from the
                resolution when one is given)

        Returns:
            SchemaModel with tables sorted by name

        Raises:
            ReverseSchemaError: NAMING_CONFLICT when two tables derive the same
                entity name or two enums the same class name
        """
        if isinstance(relationships, RelationshipResolution):
            junction_tables = relationships.junction_tables
            relationships = relationships.relationships
        junctions = set(junction_tables)

        entity_tables = [name for name in schema.table_names if name not in junctions]
        entities = self._entity_names(entity_tables)

        enums = [e for e in enum_definitions if e.table not in junctions]
        self._check_enum_class_names(enums)
        enums_by_column = {(e.table, e.column): e for e in enums}

        tables: Dict[str, Table] = {}
        columns_by_table: Dict[str, Tuple[Column, ...]] = {}
        for name in entity_tables:
            raw_table = schema.tables[name]
            columns_by_table[name] = tuple(
                self._column(raw_table, raw_column, normalized_columns[name][raw_column.name], enums_by_column)
                for raw_column in raw_table.columns
            )

        named = self._name_relationship_properties(relationships, columns_by_table)

        for name in entity_tables:
            raw_table = schema.tables[name]
            tables[name] = Table(
                name=name,
                entity_name=entities[name],
                columns=columns_by_table[name],
                primary_key=raw_table.primary_key,
                indexes=raw_table.indexes,
                foreign_keys=raw_table.foreign_keys,
                relationships=tuple(r for r in named if r.owning_table == name),
            )

        logger.info(
            "Assembled %d entities, %d relationships, %d enums",
            len(tables), len(named), len(enums),
        )
        return SchemaModel(
            dialect=schema.dialect,
            database=schema.database,
            tables=MappingProxyType(tables),
            relationships=tuple(named),
            enums=tuple(enums),
            junction_tables=tuple(sorted(junctions)),
            membership=MappingProxyType(self._membership(named)),
        )

    def _conflict(self, message: str, **details) -> ReverseSchemaError:
        self.events.emit(EngineEvent(EventType.NAMING_CONFLICT, message, data=details))
        return ReverseSchemaError.naming_conflict(message, **details)

    def _entity_names(self, tables: Iterable[str]) -> Dict[str, str]:
        names: Dict[str, str] = {}
        owners: Dict[str, str] = {}
        for table in tables:
            name = entity_name(table)
            if name in owners:
                raise self._conflict(
                    f"Tables '{owners[name]}' and '{table}' both map to entity '{name}'",
                    entity=name,
                    tables=[owners[name], table],
                )
            owners[name] = table
            names[table] = name
        return names

    def _check_enum_class_names(self, enums: Iterable[EnumDefinition]) -> None:
        owners: Dict[str, EnumDefinition] = {}
        for enum in enums:
            other = owners.get(enum.class_name)
            if other is not None:
                raise self._conflict(
                    f"Columns '{other.table}.{other.column}' and '{enum.table}.{enum.column}' "
                    f"both map to enum class '{enum.class_name}'",
                    enum_class=enum.class_name,
                    columns=[f"{other.table}.{other.column}", f"{enum.table}.{enum.column}"],
                )
            owners[enum.class_name] = enum

    @staticmethod
    def _column(
        table: RawTable,
        raw: RawColumn,
        normalized: NormalizedType,
        enums: Dict[Tuple[str, str], EnumDefinition],
    ) -> Column:
        is_primary_key = raw.name in table.primary_key
        if is_primary_key and normalized.nullable:
            normalized = replace(normalized, nullable=False)

        enum = enums.get((table.name, raw.name))
        comment = raw.comment
        if enum is not None:
            comment = f"{comment} - {enum.possible_values()}" if comment else enum.possible_values()

        return Column(
            name=raw.name,
            native_type=raw.native_type,
            type=normalized,
            property_name=to_camel_case(raw.name),
            is_primary_key=is_primary_key,
            is_auto_increment=raw.auto_increment,
            is_foreign_key=raw.name in table.foreign_key_columns,
            comment=comment,
            enum_class=enum.class_name if enum is not None else None,
            set_values=raw.set_values,
            needs_lifecycle_callback=needs_lifecycle_callback(normalized),
        )

    def _name_relationship_properties(
        self,
        relationships: Sequence[Relationship],
        columns: Dict[str, Tuple[Column, ...]],
    ) -> List[Relationship]:
        used: Dict[str, Set[str]] = {
            table: {c.property_name for c in table_columns}
            for table, table_columns in columns.items()
        }

        named = []
        for relationship in relationships:
            owning_used = used.setdefault(relationship.owning_table, set())
            inverse_used = used.setdefault(relationship.inverse_table, set())

            if relationship.kind == RelationshipKind.MANY_TO_MANY:
                owning = unique_name(pluralize(lcfirst(entity_name(relationship.inverse_table))), owning_used)
                owning_used.add(owning)
                inverse = unique_name(pluralize(lcfirst(entity_name(relationship.owning_table))), inverse_used)
            else:
                owning = self._owning_property(relationship, owning_used)
                owning_used.add(owning)
                inverse = self._inverse_property(relationship, inverse_used)
            inverse_used.add(inverse)

            named.append(replace(relationship, owning_property=owning, inverse_property=inverse))
        return named

    @staticmethod
    def _column_based_name(local_column: str, other_table: str) -> str:
        """``original_language_id`` + ``language`` -> ``originalLanguage``."""
        base = re.sub(r"_id$", "", local_column)
        other_entity = entity_name(other_table)
        name = to_camel_case(base)
        if other_entity.lower() not in name.lower():
            name += other_entity
        return name

    def _owning_property(self, relationship: Relationship, used: Set[str]) -> str:
        base = lcfirst(entity_name(relationship.inverse_table))
        if base not in used:
            return base
        column_based = self._column_based_name(relationship.owning_columns[0], relationship.inverse_table)
        if column_based not in used:
            return column_based
        return unique_name(base, used)

    def _inverse_property(self, relationship: Relationship, used: Set[str]) -> str:
        base = lcfirst(entity_name(relationship.owning_table))
        if relationship.inverse_kind == RelationshipKind.ONE_TO_MANY:
            base = pluralize(base)
        if base not in used:
            return base
        column_based = self._column_based_name(relationship.owning_columns[0], relationship.owning_table)
        if relationship.inverse_kind == RelationshipKind.ONE_TO_MANY:
            column_based = pluralize(column_based)
        if column_based not in used:
            return column_based
        return unique_name(base, used)

    @staticmethod
    def _membership(relationships: Iterable[Relationship]) -> Dict[Tuple[str, str], Tuple[Relationship, ...]]:
        membership: Dict[Tuple[str, str], List[Relationship]] = {}
        for relationship in relationships:
            keys = [(relationship.owning_table, c) for c in relationship.owning_columns]
            keys += [(relationship.inverse_table, c) for c in relationship.inverse_columns]
            for key in dict.fromkeys(keys):
                membership.setdefault(key, []).append(relationship)
        return {key: tuple(value) for key, value in membership.items()}
