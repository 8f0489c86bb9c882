"""ORM 매퍼 기반 스키마 카탈로그.

Schema catalog built from SQLAlchemy mappers.
describe_model() reads a mapped class once and produces the frozen
descriptor the query layer validates against; nothing is generated at
build time.
"""

from sqlalchemy import Integer, String, inspect
from sqlalchemy.orm import MANYTOONE

from typedquery.database import Base
from typedquery.exceptions import SchemaError
from typedquery.models import Member, Team
from typedquery.schema.descriptors import EntityDescriptor, FieldDescriptor, FieldType
from typedquery.schema.registry import SchemaRegistry

# 등록 순서 = 카탈로그 순서 (Registration order of the bundled models)
MODELS: tuple[type[Base], ...] = (Team, Member)


def _field_type(column_type: object) -> FieldType:
    if isinstance(column_type, Integer):
        return FieldType.INTEGER
    if isinstance(column_type, String):
        return FieldType.STRING
    raise SchemaError(f"Unsupported column type: {column_type!r}")


def describe_model(model: type[Base]) -> EntityDescriptor:
    """매핑된 모델 클래스로부터 엔티티 디스크립터를 생성합니다.

    Build an entity descriptor from a mapped model class.
    Foreign key columns owned by a many-to-one relationship are exposed as
    one REFERENCE field named after the relationship, at the position of
    the foreign key column.

    Args:
        model: SQLAlchemy 매핑 클래스 (Mapped model class)

    Returns:
        EntityDescriptor: 모델의 디스크립터 (Descriptor named after the class)
    """
    mapper = inspect(model)

    # FK 컬럼 키 → 다대일 관계 (FK column key → owning many-to-one relationship)
    relation_by_column = {}
    for relationship in mapper.relationships:
        if relationship.direction is MANYTOONE:
            for column in relationship.local_columns:
                relation_by_column[column.key] = relationship

    fields: list[FieldDescriptor] = []
    for attribute in mapper.column_attrs:
        column = attribute.columns[0]
        relationship = relation_by_column.get(column.key)
        if relationship is not None:
            fields.append(FieldDescriptor(
                relationship.key,
                FieldType.REFERENCE,
                nullable=all(c.nullable for c in relationship.local_columns),
                target=relationship.mapper.class_.__name__,
            ))
            continue
        fields.append(FieldDescriptor(
            attribute.key,
            _field_type(column.type),
            nullable=bool(column.nullable) and not column.primary_key,
        ))

    primary_key = mapper.get_property_by_column(mapper.primary_key[0]).key
    return EntityDescriptor(model.__name__, tuple(fields), primary_key)


def mapped_models() -> dict[str, type[Base]]:
    """엔티티 이름 → 모델 클래스 매핑 (Entity name → mapped class)."""
    return {model.__name__: model for model in MODELS}


def create_registry() -> SchemaRegistry:
    """번들 모델(Team, Member)을 등록한 레지스트리를 생성합니다."""
    return SchemaRegistry(describe_model(model) for model in MODELS)
