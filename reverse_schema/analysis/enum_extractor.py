"""Enum extraction for enum-typed columns.

Turns the literal value set of an enum column into an EnumDefinition with
a generated class name and one case per literal.
"""

import logging
import re
from typing import Collection, Iterable, List, Optional, Sequence, Set

from ..database.models import RawSchema, RawTable
from ..events import EngineEvent, EventSink, EventType, LoggingEventSink
from ..naming import to_pascal_case
from .models import CaseConflict, EnumCase, EnumDefinition

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_UNDERSCORES = re.compile(r"_+")

EMPTY_CASE_NAME = "EMPTY_VALUE"


def generate_enum_class_name(table: str, column: str) -> str:
    """Generate the enum class name for a column.

    Example:
        >>> generate_enum_class_name("users", "status")
        'UserStatusEnum'
    """
    table_part = to_pascal_case(table)
    if table_part.endswith("s"):
        table_part = table_part[:-1]
    return f"{table_part}{to_pascal_case(column)}Enum"


def generate_enum_case_name(value: str) -> str:
    """Derive an enum case name from a literal value (``PG-13`` -> ``PG_13``)."""
    name = _NON_ALNUM.sub("_", value).upper()
    name = _UNDERSCORES.sub("_", name).strip("_")
    if name[:1].isdigit():
        name = "_" + name
    return name or EMPTY_CASE_NAME


class EnumExtractor:
    """Builds EnumDefinitions from enum column literal values."""

    def __init__(self, events: Optional[EventSink] = None):
        self.events = events if events is not None else LoggingEventSink()

    def extract(self, table: str, column: str, literal_values: Sequence[str]) -> EnumDefinition:
        """Build the EnumDefinition for one column.

        Literal order is kept and exact duplicate literals are dropped. When
        two literals derive the same case name, the later one gets its
        ordinal index in ``literal_values`` appended (``PG_13`` -> ``PG_13_3``)
        and the clash is recorded in ``conflicts``.

        Args:
            table: Source table name
            column: Source column name
            literal_values: Literal values in declaration order

        Returns:
            EnumDefinition
        """
        values: List[str] = []
        cases: List[EnumCase] = []
        conflicts: List[CaseConflict] = []
        used: Set[str] = set()

        for index, value in enumerate(literal_values):
            if value in values:
                continue
            derived = generate_enum_case_name(value)
            name = derived
            if name in used:
                name = self._disambiguate(derived, index, used)
                conflicts.append(CaseConflict(value=value, derived_name=derived, resolved_name=name))
                self.events.emit(EngineEvent(
                    EventType.NAMING_CONFLICT,
                    f"Enum literal '{value}' derives case name '{derived}' which is already used; "
                    f"renamed to '{name}'",
                    table=table,
                    column=column,
                    data={"value": value, "derived_name": derived, "resolved_name": name},
                ))
            used.add(name)
            values.append(value)
            cases.append(EnumCase(name=name, value=value))

        definition = EnumDefinition(
            table=table,
            column=column,
            class_name=generate_enum_class_name(table, column),
            values=tuple(values),
            cases=tuple(cases),
            conflicts=tuple(conflicts),
        )
        self.events.emit(EngineEvent(
            EventType.ENUM_EXTRACTED,
            f"{definition.class_name} with {len(cases)} cases",
            table=table,
            column=column,
            data={"class_name": definition.class_name, "cases": len(cases)},
        ))
        return definition

    @staticmethod
    def _disambiguate(name: str, index: int, used: Collection[str]) -> str:
        candidate = f"{name}_{index}"
        counter = 2
        while candidate in used:
            candidate = f"{name}_{index}_{counter}"
            counter += 1
        return candidate

    def extract_table(self, table: RawTable) -> List[EnumDefinition]:
        """Extract every enum column of a table, in column order."""
        return [
            self.extract(table.name, column.name, column.enum_values)
            for column in table.columns
            if column.enum_values
        ]

    def extract_schema(
        self,
        schema: RawSchema,
        skip_tables: Iterable[str] = (),
    ) -> List[EnumDefinition]:
        """Extract enums for all tables, ordered by table name then column order."""
        skipped = set(skip_tables)
        definitions: List[EnumDefinition] = []
        for name in schema.table_names:
            if name in skipped:
                continue
            definitions.extend(self.extract_table(schema.tables[name]))
        logger.debug("Extracted %d enum definitions", len(definitions))
        return definitions
