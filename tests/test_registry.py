"""스키마 레지스트리 및 카탈로그 테스트.

Schema registry tests — registration, lookup, duplicate detection and
descriptors derived from the mapped models.
"""

import threading

import pytest

from typedquery.exceptions import (
    DuplicateEntity,
    DuplicateField,
    SchemaError,
    UnknownEntity,
    UnknownField,
)
from typedquery.models import Member, Team
from typedquery.schema.descriptors import EntityDescriptor, FieldDescriptor, FieldType
from typedquery.schema.registry import SchemaRegistry
from typedquery.schema.catalog import create_registry, describe_model, mapped_models


def _widget() -> EntityDescriptor:
    return EntityDescriptor("Widget", (
        FieldDescriptor("id", FieldType.INTEGER),
        FieldDescriptor("label", FieldType.STRING, nullable=True),
    ))


class TestCatalog:
    """매핑 모델 → 디스크립터 변환 테스트."""

    def test_member_fields(self):
        descriptor = describe_model(Member)
        assert descriptor.name == "Member"
        assert descriptor.field_names == ("id", "username", "age", "team")
        assert descriptor.primary_key == "id"

    def test_member_field_types(self):
        descriptor = describe_model(Member)
        assert descriptor.field("age").type is FieldType.INTEGER
        assert descriptor.field("username").type is FieldType.STRING
        assert descriptor.field("username").nullable is True
        assert descriptor.field("age").nullable is False

    def test_foreign_key_becomes_reference(self):
        team = describe_model(Member).field("team")
        assert team.type is FieldType.REFERENCE
        assert team.target == "Team"
        assert team.nullable is True

    def test_team_has_no_collection_field(self):
        """일대다 컬렉션(members)은 쿼리 필드가 아님."""
        assert describe_model(Team).field_names == ("id", "name")

    def test_mapped_models(self):
        assert mapped_models() == {"Team": Team, "Member": Member}


class TestRegistry:
    """레지스트리 등록/조회 테스트."""

    def test_resolve(self, registry: SchemaRegistry):
        assert registry.resolve("Member").field("age").type is FieldType.INTEGER
        assert "Team" in registry
        assert len(registry) == 2
        assert registry.names() == ("Team", "Member")

    def test_register_then_resolve(self):
        registry = SchemaRegistry()
        registry.register(_widget())
        assert registry.resolve("Widget") == _widget()

    def test_unknown_entity(self, registry: SchemaRegistry):
        with pytest.raises(UnknownEntity) as exc_info:
            registry.resolve("Order")
        assert exc_info.value.name == "Order"

    def test_unknown_field(self, registry: SchemaRegistry):
        with pytest.raises(UnknownField):
            registry.resolve("Member").field("nickname")

    def test_duplicate_entity(self, registry: SchemaRegistry):
        with pytest.raises(DuplicateEntity):
            registry.register(describe_model(Member))

    def test_duplicate_field(self):
        descriptor = EntityDescriptor("Widget", (
            FieldDescriptor("id", FieldType.INTEGER),
            FieldDescriptor("id", FieldType.STRING),
        ))
        with pytest.raises(DuplicateField):
            SchemaRegistry().register(descriptor)

    def test_primary_key_must_be_declared(self):
        descriptor = EntityDescriptor("Widget", (FieldDescriptor("label", FieldType.STRING),))
        with pytest.raises(UnknownField):
            SchemaRegistry().register(descriptor)

    def test_reference_requires_target(self):
        with pytest.raises(SchemaError):
            FieldDescriptor("owner", FieldType.REFERENCE)
        with pytest.raises(SchemaError):
            FieldDescriptor("label", FieldType.STRING, target="Team")

    def test_relation_target(self, registry: SchemaRegistry):
        assert registry.relation_target("Member", "team").name == "Team"
        with pytest.raises(UnknownField):
            registry.relation_target("Member", "age")

    def test_default_alias(self, registry: SchemaRegistry):
        assert registry.path("Member").alias == "member"
        assert registry.path("Member", alias="m2").alias == "m2"

    def test_descriptors_are_frozen(self):
        descriptor = EntityDescriptor("Widget", [FieldDescriptor("id", FieldType.INTEGER)])
        assert isinstance(descriptor.fields, tuple)
        with pytest.raises(AttributeError):
            descriptor.name = "Gadget"  # type: ignore[misc]

    def test_concurrent_resolve_during_register(self):
        """등록 중에도 동시 조회는 항상 일관된 결과를 봄."""
        registry = create_registry()
        errors: list[Exception] = []

        def reader() -> None:
            try:
                for _ in range(500):
                    assert registry.resolve("Member").name == "Member"
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for thread in threads:
            thread.start()
        registry.register(_widget())
        for thread in threads:
            thread.join()

        assert errors == []
        assert "Widget" in registry
