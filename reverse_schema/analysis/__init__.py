"""Schema analysis for reverse-schema.

This module turns introspected raw metadata into the final schema model:
- Enum extraction from enum-typed columns
- Relationship resolution and junction table collapsing
- Model assembly with collision-free entity and enum names
"""

from .models import (
    RelationshipKind,
    JoinTable,
    Relationship,
    EnumCase,
    CaseConflict,
    EnumDefinition,
    Column,
    Table,
    SchemaModel,
)
from .enum_extractor import EnumExtractor, generate_enum_class_name, generate_enum_case_name
from .relationship_resolver import RelationshipResolver, RelationshipResolution, JunctionCandidate
from .assembler import ModelAssembler, normalize_columns
from .engine import ReverseEngineeringEngine, EngineResult, reverse_engineer

__all__ = [
    # Models
    "RelationshipKind",
    "JoinTable",
    "Relationship",
    "EnumCase",
    "CaseConflict",
    "EnumDefinition",
    "Column",
    "Table",
    "SchemaModel",
    # Analyzers
    "EnumExtractor",
    "generate_enum_class_name",
    "generate_enum_case_name",
    "RelationshipResolver",
    "RelationshipResolution",
    "JunctionCandidate",
    "ModelAssembler",
    "normalize_columns",
    # Orchestrator
    "ReverseEngineeringEngine",
    "EngineResult",
    "reverse_engineer",
]
