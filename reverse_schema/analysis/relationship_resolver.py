"""Relationship resolution from declared foreign keys.

Classifies every foreign key into a directional association, detects
junction tables and, depending on the configured junction strategy,
collapses them into ManyToMany relationships.
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterator, List, Optional, Set, Tuple

from ..config import JunctionStrategy, ManyToManyConfig
from ..database.models import RawForeignKey, RawSchema, RawTable
from ..errors import ReverseSchemaError
from ..events import EngineEvent, EventSink, EventType, LoggingEventSink
from .models import JoinTable, Relationship, RelationshipKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JunctionCandidate:
    """A table that could be represented as a ManyToMany relationship."""

    table: str
    foreign_keys: Tuple[RawForeignKey, RawForeignKey]
    metadata_columns: Tuple[str, ...]

    @property
    def metadata_count(self) -> int:
        return len(self.metadata_columns)


@dataclass(frozen=True)
class RelationshipResolution:
    """Resolved relationships plus the junction tables that were collapsed.

    Unpacks as ``relationships, junction_tables``.
    """

    relationships: Tuple[Relationship, ...]
    junction_tables: FrozenSet[str]
    candidates: Tuple[JunctionCandidate, ...] = ()

    def __iter__(self) -> Iterator:
        yield self.relationships
        yield self.junction_tables


class RelationshipResolver:
    """Turns the foreign keys of a RawSchema into Relationships.

    Rules:
    - A foreign key whose columns are exactly the primary key of the
      declaring table is OneToOne; any other foreign key is ManyToOne,
      with OneToMany as its inverse side.
    - A table with exactly two foreign keys to two different other tables,
      whose combined columns are the primary key (compared as sets), is a
      junction candidate. Columns outside both foreign keys count as
      metadata.
    - ``skip_simple`` collapses candidates without metadata, ``auto``
      collapses up to ``metadata_threshold`` metadata columns,
      ``always_entity`` never collapses.
    """

    def __init__(
        self,
        config: Optional[ManyToManyConfig] = None,
        events: Optional[EventSink] = None,
    ):
        self.config = config if config is not None else ManyToManyConfig()
        self.events = events if events is not None else LoggingEventSink()

    def resolve(
        self,
        schema: RawSchema,
        config: Optional[ManyToManyConfig] = None,
    ) -> RelationshipResolution:
        """Resolve all relationships of a schema.

        Args:
            schema: Complete raw schema of the run
            config: Optional policy overriding the resolver's own

        Returns:
            RelationshipResolution ordered by (declaring table, foreign key order)

        Raises:
            ReverseSchemaError: METADATA_EXTRACTION_FAILURE for a foreign key
                referencing a table or column missing from the schema
        """
        config = config if config is not None else self.config
        self.check_references(schema)

        referenced = self.referenced_tables(schema)
        candidates: List[JunctionCandidate] = []
        collapsed = set()
        for name in schema.table_names:
            candidate = self.find_junction_candidate(schema.tables[name])
            if candidate is None:
                continue
            candidates.append(candidate)
            if name in referenced:
                logger.debug("Keeping junction table '%s' as an entity: other tables reference it", name)
                continue
            if self.should_collapse(candidate, config):
                collapsed.add(name)

        relationships: List[Relationship] = []
        for name in schema.table_names:
            table = schema.tables[name]
            if name in collapsed:
                candidate = next(c for c in candidates if c.table == name)
                relationship = self._many_to_many(candidate, config)
                self.events.emit(EngineEvent(
                    EventType.JUNCTION_COLLAPSED,
                    f"Collapsed into ManyToMany between '{relationship.owning_table}' "
                    f"and '{relationship.inverse_table}'",
                    table=name,
                    data={
                        "metadata_count": candidate.metadata_count,
                        "strategy": config.junction_strategy.value,
                    },
                ))
                relationships.append(relationship)
                continue

            for ordinal, fk in enumerate(table.foreign_keys):
                relationships.append(self._direct(table, fk, ordinal))

        for relationship in relationships:
            self.events.emit(EngineEvent(
                EventType.RELATIONSHIP_RESOLVED,
                relationship.describe(),
                table=relationship.declaring_table,
                data={"kind": relationship.kind.value},
            ))

        logger.debug(
            "Resolved %d relationships, collapsed %d junction tables",
            len(relationships),
            len(collapsed),
        )
        return RelationshipResolution(
            relationships=tuple(relationships),
            junction_tables=frozenset(collapsed),
            candidates=tuple(candidates),
        )

    def check_references(self, schema: RawSchema) -> None:
        """Fail on any foreign key pointing outside the schema."""
        for name in schema.table_names:
            for fk in schema.tables[name].foreign_keys:
                target = schema.get_table(fk.target_table)
                if target is None:
                    raise ReverseSchemaError.metadata_extraction(
                        f"Foreign key '{fk.name}' on table '{name}' references table "
                        f"'{fk.target_table}' which is not part of the introspected schema",
                        table=name,
                        foreign_key=fk.name,
                        target_table=fk.target_table,
                    )
                missing = [c for c in fk.target_columns if target.get_column(c) is None]
                if missing:
                    raise ReverseSchemaError.metadata_extraction(
                        f"Foreign key '{fk.name}' on table '{name}' references unknown "
                        f"column(s) {', '.join(missing)} of table '{fk.target_table}'",
                        table=name,
                        foreign_key=fk.name,
                        target_table=fk.target_table,
                        columns=missing,
                    )

    @staticmethod
    def referenced_tables(schema: RawSchema) -> Set[str]:
        """Tables that are the target of a foreign key declared on another table."""
        return {
            fk.target_table
            for name in schema.table_names
            for fk in schema.tables[name].foreign_keys
            if fk.target_table != name
        }

    def find_junction_candidate(self, table: RawTable) -> Optional[JunctionCandidate]:
        """Check whether a table has the shape of a junction table."""
        if len(table.foreign_keys) != 2 or not table.primary_key:
            return None

        first, second = table.foreign_keys
        targets = {first.target_table, second.target_table}
        if len(targets) != 2 or table.name in targets:
            return None

        fk_columns = set(first.columns) | set(second.columns)
        if fk_columns != set(table.primary_key):
            return None

        metadata = tuple(c.name for c in table.columns if c.name not in fk_columns)
        return JunctionCandidate(
            table=table.name,
            foreign_keys=(first, second),
            metadata_columns=metadata,
        )

    @staticmethod
    def should_collapse(candidate: JunctionCandidate, config: ManyToManyConfig) -> bool:
        strategy = config.junction_strategy
        if strategy == JunctionStrategy.ALWAYS_ENTITY:
            return False
        if strategy == JunctionStrategy.SKIP_SIMPLE:
            return candidate.metadata_count == 0
        return candidate.metadata_count <= config.metadata_threshold

    @staticmethod
    def _direct(table: RawTable, fk: RawForeignKey, ordinal: int) -> Relationship:
        if table.primary_key and set(fk.columns) == set(table.primary_key):
            kind = RelationshipKind.ONE_TO_ONE
        else:
            kind = RelationshipKind.MANY_TO_ONE

        nullable = any(
            column.nullable
            for column in (table.get_column(name) for name in fk.columns)
            if column is not None
        )
        return Relationship(
            kind=kind,
            owning_table=table.name,
            owning_columns=fk.columns,
            inverse_table=fk.target_table,
            inverse_columns=fk.target_columns,
            declaring_table=table.name,
            foreign_keys=(fk.name,),
            ordinal=ordinal,
            nullable=nullable,
            on_delete=fk.on_delete,
            on_update=fk.on_update,
        )

    @staticmethod
    def _many_to_many(candidate: JunctionCandidate, config: ManyToManyConfig) -> Relationship:
        first, second = candidate.foreign_keys
        expected_name = config.join_table_name(first.target_table, second.target_table)
        join_table = JoinTable(
            name=candidate.table,
            owning_columns=tuple(zip(first.columns, first.target_columns)),
            inverse_columns=tuple(zip(second.columns, second.target_columns)),
            follows_pattern=(candidate.table == expected_name),
        )
        return Relationship(
            kind=RelationshipKind.MANY_TO_MANY,
            owning_table=first.target_table,
            owning_columns=first.target_columns,
            inverse_table=second.target_table,
            inverse_columns=second.target_columns,
            declaring_table=candidate.table,
            foreign_keys=(first.name, second.name),
            ordinal=0,
            nullable=False,
            on_delete=first.on_delete,
            on_update=first.on_update,
            join_table=join_table,
        )
