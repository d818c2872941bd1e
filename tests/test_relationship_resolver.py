"""Tests for relationship resolution and junction table collapsing."""

import pytest

from reverse_schema.analysis.models import RelationshipKind
from reverse_schema.analysis.relationship_resolver import RelationshipResolver
from reverse_schema.config import JunctionStrategy, ManyToManyConfig
from reverse_schema.database.models import RawColumn
from reverse_schema.errors import ErrorKind, ReverseSchemaError
from reverse_schema.events import EventType


def resolver(strategy=JunctionStrategy.AUTO, threshold=1, pattern="%s_%s", events=None):
    config = ManyToManyConfig(
        junction_strategy=strategy,
        metadata_threshold=threshold,
        junction_table_pattern=pattern,
    )
    return RelationshipResolver(config, events=events)


class TestDirectRelationships:
    """Test ManyToOne/OneToOne classification."""

    def test_many_to_one(self, table_builder, schema_builder):
        schema = schema_builder(
            table_builder("customers", ["id"], ["id"]),
            table_builder("orders", ["id", "customer_id"], ["id"], [(["customer_id"], "customers", ["id"])]),
        )

        relationships, junctions = resolver().resolve(schema)

        (relationship,) = relationships
        assert relationship.kind == RelationshipKind.MANY_TO_ONE
        assert relationship.inverse_kind == RelationshipKind.ONE_TO_MANY
        assert relationship.owning_table == "orders"
        assert relationship.owning_columns == ("customer_id",)
        assert relationship.inverse_table == "customers"
        assert relationship.inverse_columns == ("id",)
        assert relationship.nullable is False
        assert junctions == frozenset()

    def test_one_to_one_when_fk_is_primary_key(self, table_builder, schema_builder):
        schema = schema_builder(
            table_builder("users", ["id"], ["id"]),
            table_builder("profiles", ["user_id", RawColumn(name="bio", native_type="text")],
                          ["user_id"], [(["user_id"], "users", ["id"])]),
        )

        (relationship,), _ = resolver().resolve(schema)

        assert relationship.kind == RelationshipKind.ONE_TO_ONE
        assert relationship.inverse_kind == RelationshipKind.ONE_TO_ONE

    def test_one_to_one_composite_key_in_other_order(self, table_builder, schema_builder):
        """Test a composite key matches regardless of column order."""
        schema = schema_builder(
            table_builder("orders", ["id", "rev"], ["id", "rev"]),
            table_builder("invoices", ["order_id", "order_rev"], ["order_rev", "order_id"],
                          [(["order_id", "order_rev"], "orders", ["id", "rev"])]),
        )

        (relationship,), _ = resolver().resolve(schema)

        assert relationship.kind == RelationshipKind.ONE_TO_ONE

    def test_partial_key_is_many_to_one(self, table_builder, schema_builder):
        schema = schema_builder(
            table_builder("orders", ["id"], ["id"]),
            table_builder("order_lines", ["order_id", "line_no"], ["order_id", "line_no"],
                          [(["order_id"], "orders", ["id"])]),
        )

        (relationship,), _ = resolver().resolve(schema)

        assert relationship.kind == RelationshipKind.MANY_TO_ONE

    def test_nullable_from_fk_column(self, table_builder, schema_builder):
        manager = RawColumn(name="manager_id", native_type="int", nullable=True)
        schema = schema_builder(
            table_builder("employees", ["id", manager], ["id"], [(["manager_id"], "employees", ["id"])]),
        )

        (relationship,), _ = resolver().resolve(schema)

        assert relationship.nullable is True
        assert relationship.self_referencing is True
        assert relationship.kind == RelationshipKind.MANY_TO_ONE

    def test_two_foreign_keys_to_same_table(self, table_builder, schema_builder):
        schema = schema_builder(
            table_builder("language", ["language_id"], ["language_id"]),
            table_builder("film", ["film_id", "language_id", "original_language_id"], ["film_id"], [
                (["language_id"], "language", ["language_id"]),
                (["original_language_id"], "language", ["language_id"]),
            ]),
        )

        relationships, _ = resolver().resolve(schema)

        assert [r.owning_columns for r in relationships] == [("language_id",), ("original_language_id",)]
        assert [r.ordinal for r in relationships] == [0, 1]
        assert all(r.inverse_table == "language" for r in relationships)

    def test_order_by_declaring_table(self, table_builder, schema_builder):
        schema = schema_builder(
            table_builder("zones", ["id"], ["id"]),
            table_builder("stores", ["id", "zone_id"], ["id"], [(["zone_id"], "zones", ["id"])]),
            table_builder("addresses", ["id", "zone_id"], ["id"], [(["zone_id"], "zones", ["id"])]),
        )

        relationships, _ = resolver().resolve(schema)

        assert [r.declaring_table for r in relationships] == ["addresses", "stores"]


class TestJunctionTables:
    """Test junction detection and the collapse strategies."""

    def test_pure_junction_collapses(self, users_roles_schema, collecting_sink):
        relationships, junctions = resolver(events=collecting_sink).resolve(users_roles_schema())

        (relationship,) = relationships
        assert junctions == frozenset({"user_roles"})
        assert relationship.kind == RelationshipKind.MANY_TO_MANY
        assert relationship.inverse_kind == RelationshipKind.MANY_TO_MANY
        assert relationship.owning_table == "users"
        assert relationship.inverse_table == "roles"
        assert relationship.declaring_table == "user_roles"
        assert relationship.join_table.owning_columns == (("user_id", "id"),)
        assert relationship.join_table.inverse_columns == (("role_id", "id"),)
        assert relationship.join_table.follows_pattern is False
        assert collecting_sink.of_type(EventType.JUNCTION_COLLAPSED)[0].table == "user_roles"

    @pytest.mark.parametrize("strategy,threshold,metadata,collapsed", [
        (JunctionStrategy.AUTO, 1, (), True),
        (JunctionStrategy.AUTO, 1, ("created_at",), True),
        (JunctionStrategy.AUTO, 1, ("created_at", "granted_by"), False),
        (JunctionStrategy.AUTO, 0, ("created_at",), False),
        (JunctionStrategy.AUTO, 2, ("created_at", "granted_by"), True),
        (JunctionStrategy.SKIP_SIMPLE, 5, (), True),
        (JunctionStrategy.SKIP_SIMPLE, 5, ("created_at",), False),
        (JunctionStrategy.ALWAYS_ENTITY, 5, (), False),
    ])
    def test_strategies(self, users_roles_schema, strategy, threshold, metadata, collapsed):
        schema = users_roles_schema(metadata_columns=metadata)

        relationships, junctions = resolver(strategy, threshold).resolve(schema)

        assert ("user_roles" in junctions) is collapsed
        if collapsed:
            assert [r.kind for r in relationships] == [RelationshipKind.MANY_TO_MANY]
        else:
            assert [r.kind for r in relationships] == [RelationshipKind.MANY_TO_ONE] * 2

    def test_primary_key_order_does_not_matter(self, users_roles_schema):
        schema = users_roles_schema(primary_key=["role_id", "user_id"])

        _, junctions = resolver().resolve(schema)

        assert junctions == frozenset({"user_roles"})

    def test_surrogate_key_is_not_a_junction(self, users_roles_schema):
        """Test a junction-like table with its own id stays an entity."""
        schema = users_roles_schema(metadata_columns=(), primary_key=["user_id"])

        _, junctions = resolver().resolve(schema)

        assert junctions == frozenset()

    def test_both_keys_to_same_table_is_not_a_junction(self, table_builder, schema_builder):
        schema = schema_builder(
            table_builder("users", ["id"], ["id"]),
            table_builder("friendships", ["user_id", "friend_id"], ["user_id", "friend_id"], [
                (["user_id"], "users", ["id"]),
                (["friend_id"], "users", ["id"]),
            ]),
        )

        relationships, junctions = resolver().resolve(schema)

        assert junctions == frozenset()
        assert len(relationships) == 2

    def test_referenced_junction_stays_entity(self, table_builder, schema_builder):
        """Test a junction table targeted by another table's foreign key is not collapsed."""
        schema = schema_builder(
            table_builder("users", ["id"], ["id"]),
            table_builder("roles", ["id"], ["id"]),
            table_builder("users_roles", ["user_id", "role_id"], ["user_id", "role_id"], [
                (["user_id"], "users", ["id"]),
                (["role_id"], "roles", ["id"]),
            ]),
            table_builder("grants", ["id", "user_id", "role_id"], ["id"], [
                (["user_id", "role_id"], "users_roles", ["user_id", "role_id"]),
            ]),
        )

        resolution = resolver().resolve(schema)

        assert resolution.junction_tables == frozenset()
        assert [c.table for c in resolution.candidates] == ["users_roles"]
        assert [r.kind for r in resolution.relationships] == [RelationshipKind.MANY_TO_ONE] * 3
        known = set(schema.table_names)
        assert all(r.inverse_table in known for r in resolution.relationships)

    def test_candidates_are_reported(self, users_roles_schema):
        resolution = resolver(JunctionStrategy.ALWAYS_ENTITY).resolve(users_roles_schema(("created_at",)))

        (candidate,) = resolution.candidates
        assert candidate.table == "user_roles"
        assert candidate.metadata_columns == ("created_at",)

    def test_override_config_on_resolve(self, users_roles_schema):
        config = ManyToManyConfig(junction_strategy=JunctionStrategy.ALWAYS_ENTITY)

        _, junctions = resolver().resolve(users_roles_schema(), config)

        assert junctions == frozenset()


class TestFollowsPattern:
    """Test join table naming checks."""

    def test_name_matches_pattern(self, table_builder, schema_builder):
        schema = schema_builder(
            table_builder("users", ["id"], ["id"]),
            table_builder("roles", ["id"], ["id"]),
            table_builder("users_roles", ["user_id", "role_id"], ["user_id", "role_id"], [
                (["user_id"], "users", ["id"]),
                (["role_id"], "roles", ["id"]),
            ]),
        )

        (relationship,), _ = resolver().resolve(schema)

        assert relationship.join_table.follows_pattern is True

    def test_custom_pattern(self, table_builder, schema_builder):
        schema = schema_builder(
            table_builder("users", ["id"], ["id"]),
            table_builder("roles", ["id"], ["id"]),
            table_builder("users_to_roles", ["user_id", "role_id"], ["user_id", "role_id"], [
                (["user_id"], "users", ["id"]),
                (["role_id"], "roles", ["id"]),
            ]),
        )

        (matching,), _ = resolver(pattern="%s_to_%s").resolve(schema)
        (default,), _ = resolver().resolve(schema)

        assert matching.join_table.follows_pattern is True
        assert default.join_table.follows_pattern is False


class TestDanglingReferences:
    """Test foreign keys pointing outside the schema."""

    def test_missing_target_table(self, table_builder, schema_builder):
        schema = schema_builder(
            table_builder("orders", ["id", "customer_id"], ["id"], [(["customer_id"], "customers", ["id"])]),
        )

        with pytest.raises(ReverseSchemaError) as exc_info:
            resolver().resolve(schema)

        assert exc_info.value.kind == ErrorKind.METADATA_EXTRACTION_FAILURE
        assert exc_info.value.details["target_table"] == "customers"

    def test_missing_target_column(self, table_builder, schema_builder):
        schema = schema_builder(
            table_builder("customers", ["id"], ["id"]),
            table_builder("orders", ["id", "customer_id"], ["id"], [(["customer_id"], "customers", ["uuid"])]),
        )

        with pytest.raises(ReverseSchemaError) as exc_info:
            resolver().resolve(schema)

        assert exc_info.value.details["columns"] == ["uuid"]
