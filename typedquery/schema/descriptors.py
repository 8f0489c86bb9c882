"""엔티티/필드 디스크립터 정의.

Entity and field descriptor definitions.
Descriptors are frozen value objects: once an entity is registered its
shape never changes, so they can be shared freely between threads.
"""

from dataclasses import dataclass, field as dataclass_field
from enum import Enum

from typedquery.exceptions import SchemaError, UnknownField


class FieldType(str, Enum):
    """필드 의미 타입 (Semantic field type)."""

    INTEGER = "integer"
    STRING = "string"
    REFERENCE = "reference"


@dataclass(frozen=True)
class FieldDescriptor:
    """필드 디스크립터.

    Describes one queryable field of an entity.

    Attributes:
        name: 필드 이름 (Field name)
        type: 의미 타입 (Semantic type)
        nullable: NULL 허용 여부 (Whether the field may hold NULL)
        target: 참조 대상 엔티티 이름, REFERENCE 전용
                (Related entity name, REFERENCE fields only)
    """

    name: str
    type: FieldType
    nullable: bool = False
    target: str | None = None

    def __post_init__(self) -> None:
        if (self.type is FieldType.REFERENCE) != (self.target is not None):
            raise SchemaError(
                f"Field '{self.name}': relation target is required for reference "
                f"fields and forbidden otherwise"
            )

    @property
    def is_reference(self) -> bool:
        return self.type is FieldType.REFERENCE


@dataclass(frozen=True)
class EntityDescriptor:
    """엔티티 디스크립터.

    Describes an entity: its ordered fields and primary key.

    Attributes:
        name: 엔티티 이름 (Entity name, unique within a registry)
        fields: 필드 디스크립터 튜플, 선언 순서 유지 (Fields in declaration order)
        primary_key: 기본키 필드 이름 (Primary key field name)
    """

    name: str
    fields: tuple[FieldDescriptor, ...] = dataclass_field(default=())
    primary_key: str = "id"

    def __post_init__(self) -> None:
        # 리스트로 전달되어도 불변 튜플로 고정 — Freeze any sequence into a tuple
        object.__setattr__(self, "fields", tuple(self.fields))

    def field(self, name: str) -> FieldDescriptor:
        """이름으로 필드를 찾습니다. 없으면 UnknownField."""
        for descriptor in self.fields:
            if descriptor.name == name:
                return descriptor
        raise UnknownField(self.name, name)

    def has_field(self, name: str) -> bool:
        return any(descriptor.name == name for descriptor in self.fields)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(descriptor.name for descriptor in self.fields)

    @property
    def references(self) -> tuple[FieldDescriptor, ...]:
        """REFERENCE 타입 필드 목록 (Relation fields only)."""
        return tuple(descriptor for descriptor in self.fields if descriptor.is_reference)
