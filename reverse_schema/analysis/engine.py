"""Reverse engineering engine orchestrator.

Coordinates introspection, type normalization, relationship resolution,
enum extraction and model assembly to produce one SchemaModel per run.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..config import EngineConfig, Settings, build_engine_config
from ..database.base import SchemaIntrospector
from ..database.connect import create_introspector
from ..database.models import TableResult, TableWarning
from ..events import EventSink, LoggingEventSink
from .assembler import ModelAssembler, normalize_columns
from .enum_extractor import EnumExtractor
from .models import EnumDefinition, SchemaModel
from .relationship_resolver import RelationshipResolver

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    """Everything one run hands to the rendering layer."""

    model: SchemaModel
    warnings: List[TableWarning] = field(default_factory=list)
    table_results: Dict[str, TableResult] = field(default_factory=dict)

    @property
    def enums(self) -> Tuple[EnumDefinition, ...]:
        return self.model.enums

    @property
    def failed_tables(self) -> List[str]:
        return [name for name, result in self.table_results.items() if not result.success]

    @property
    def has_failures(self) -> bool:
        return bool(self.failed_tables)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model.to_dict(),
            "warnings": [{"table": w.table, "message": w.message} for w in self.warnings],
            "tables": {
                name: (
                    {"success": True}
                    if result.success
                    else {"success": False, "error": result.error.to_dict() if result.error else None}
                )
                for name, result in self.table_results.items()
            },
        }


class ReverseEngineeringEngine:
    """Runs the full reverse engineering pipeline for one configuration.

    Example:
        engine = ReverseEngineeringEngine(build_engine_config(db_driver="sqlite", db_name="app.db"))
        result = engine.run()
        for table in result.model.tables.values():
            print(table.entity_name)
    """

    def __init__(
        self,
        config: EngineConfig,
        events: Optional[EventSink] = None,
        introspector: Optional[SchemaIntrospector] = None,
    ):
        """Initialize the engine.

        Args:
            config: Validated engine configuration
            events: Sink for engine events (logs by default)
            introspector: Optional introspector to use instead of one built
                from ``config.connection``
        """
        self.config = config
        self.events = events if events is not None else LoggingEventSink()
        self._introspector = introspector

    def _get_introspector(self) -> SchemaIntrospector:
        if self._introspector is not None:
            return self._introspector
        return create_introspector(self.config.connection, events=self.events)

    def test_connection(self) -> bool:
        """Open the connection and run a trivial query.

        Raises:
            ReverseSchemaError: CONNECTION_FAILURE when the database is unreachable
        """
        with self._get_introspector() as introspector:
            return introspector.ping()

    def available_tables(self) -> List[str]:
        """List the catalog's tables, system tables excluded."""
        with self._get_introspector() as introspector:
            selected, _missing = introspector.select_tables()
            return selected

    def run(self) -> EngineResult:
        """Run introspection and analysis.

        Per-table extraction failures are returned in ``table_results``;
        the model is built from the tables that succeeded.

        Raises:
            ReverseSchemaError: CONNECTION_FAILURE, a schema-wide
                METADATA_EXTRACTION_FAILURE (unreadable catalog, dangling
                foreign key) or NAMING_CONFLICT
        """
        tables = self.config.tables
        logger.info("Reverse engineering %s", self.config.connection.describe())

        with self._get_introspector() as introspector:
            introspection = introspector.introspect(tables.include, tables.exclude)

        schema = introspection.schema
        logger.info(
            "Introspected %d tables (%d failed, %d missing)",
            len(schema.tables),
            len(introspection.failed_tables),
            len(introspection.missing_tables),
        )

        normalized = normalize_columns(schema, self.events)
        resolution = RelationshipResolver(self.config.many_to_many, self.events).resolve(schema)
        enums = EnumExtractor(self.events).extract_schema(schema, skip_tables=resolution.junction_tables)
        model = ModelAssembler(self.events).assemble(schema, normalized, enums, resolution)

        return EngineResult(
            model=model,
            warnings=list(introspection.warnings),
            table_results=dict(introspection.results),
        )


def reverse_engineer(
    config: Optional[EngineConfig] = None,
    events: Optional[EventSink] = None,
    settings: Optional[Settings] = None,
    **overrides: Any,
) -> EngineResult:
    """Build the configuration (when not given) and run the engine once.

    Args:
        config: Ready EngineConfig; when omitted one is built from
            ``settings`` and ``overrides`` via build_engine_config()
        events: Sink for engine events
        settings: Base settings for build_engine_config()
        **overrides: Settings field overrides (``db_name``, ``junction_strategy`` ...)

    Returns:
        EngineResult
    """
    if config is None:
        config = build_engine_config(settings, **overrides)
    return ReverseEngineeringEngine(config, events=events).run()
