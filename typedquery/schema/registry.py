"""스키마 레지스트리 — 엔티티 디스크립터의 프로세스 공유 저장소.

Schema registry — Process-wide store of entity descriptors.

Writers take a lock and publish a fresh read-only mapping; readers only
ever dereference the current mapping, so concurrent resolve() calls need
no locking.
"""

import threading
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from typedquery.exceptions import DuplicateEntity, DuplicateField, UnknownEntity, UnknownField
from typedquery.query.paths import EntityPath
from typedquery.schema.descriptors import EntityDescriptor


class SchemaRegistry:
    """엔티티 디스크립터 레지스트리.

    Registry of entity descriptors keyed by entity name.
    Descriptors are registered once at startup and read-only afterwards.
    """

    def __init__(self, descriptors: Iterable[EntityDescriptor] = ()) -> None:
        self._lock: threading.Lock = threading.Lock()
        self._entities: Mapping[str, EntityDescriptor] = MappingProxyType({})
        for descriptor in descriptors:
            self.register(descriptor)

    def register(self, descriptor: EntityDescriptor) -> EntityDescriptor:
        """엔티티 디스크립터를 등록합니다.

        Register an entity descriptor.

        Args:
            descriptor: 등록할 디스크립터 (Descriptor to register)

        Returns:
            EntityDescriptor: 등록된 디스크립터 (The registered descriptor)

        Raises:
            DuplicateEntity: 같은 이름이 이미 등록됨 (Name already registered)
            DuplicateField: 필드 이름 중복 (Field declared twice)
            UnknownField: 기본키가 선언된 필드가 아님 (Primary key not a declared field)
        """
        seen: set[str] = set()
        for field in descriptor.fields:
            if field.name in seen:
                raise DuplicateField(descriptor.name, field.name)
            seen.add(field.name)
        if descriptor.primary_key not in seen:
            raise UnknownField(descriptor.name, descriptor.primary_key)

        with self._lock:
            if descriptor.name in self._entities:
                raise DuplicateEntity(descriptor.name)
            entities = dict(self._entities)
            entities[descriptor.name] = descriptor
            self._entities = MappingProxyType(entities)
        return descriptor

    def resolve(self, name: str) -> EntityDescriptor:
        """이름으로 디스크립터를 조회합니다. 없으면 UnknownEntity."""
        try:
            return self._entities[name]
        except KeyError:
            raise UnknownEntity(name) from None

    def path(self, name: str, alias: str | None = None) -> EntityPath:
        """엔티티의 쿼리 경로를 생성합니다.

        Create a typed query path for an entity.
        The default alias is the entity name with a lower-case first letter
        ("Member" → "member").
        """
        descriptor = self.resolve(name)
        return EntityPath(descriptor, alias or name[:1].lower() + name[1:])

    def relation_target(self, entity: str, field: str) -> EntityDescriptor:
        """참조 필드가 가리키는 엔티티를 반환합니다 (Entity a reference field points to)."""
        descriptor = self.resolve(entity).field(field)
        if not descriptor.is_reference:
            raise UnknownField(entity, field)
        return self.resolve(descriptor.target)

    def names(self) -> tuple[str, ...]:
        return tuple(self._entities)

    def __contains__(self, name: object) -> bool:
        return name in self._entities

    def __iter__(self) -> Iterator[EntityDescriptor]:
        return iter(tuple(self._entities.values()))

    def __len__(self) -> int:
        return len(self._entities)
