"""엔티티/필드 쿼리 경로 — 타입이 지정된 쿼리 메타모델.

Entity and field query paths — the typed query metamodel.

    member = registry.path("Member")
    member.username.eq("member1")
    member.age.between(10, 20)
    member.username.asc().nulls_last()
    member.age.avg()

Paths only carry descriptors; every validation happens in the predicate
and aggregate builders they delegate to.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from typedquery.exceptions import TypeMismatch, UnknownField
from typedquery.schema.descriptors import EntityDescriptor, FieldDescriptor, FieldType

if TYPE_CHECKING:
    from typedquery.query.aggregates import Aggregate
    from typedquery.query.planner import SortKey
    from typedquery.query.predicates import Predicate


@dataclass(frozen=True)
class EntityPath:
    """엔티티 경로 — 쿼리 안에서 이름(alias)을 가진 엔티티.

    An aliased occurrence of an entity inside a query.
    Field paths are reachable as attributes (``member.age``) or through
    field() for names that collide with ``entity``, ``alias``, ``field``
    or ``count``.

    Attributes:
        entity: 엔티티 디스크립터 (Entity descriptor)
        alias: 쿼리 내 별칭 (Alias inside the query)
    """

    entity: EntityDescriptor
    alias: str

    def field(self, name: str) -> FieldRef:
        """필드 경로를 반환합니다. 없는 필드면 UnknownField."""
        return FieldRef(self.alias, self.entity, self.entity.field(name))

    def __getattr__(self, name: str) -> FieldRef:
        # UnknownField는 AttributeError이기도 하므로 hasattr()/copy가 정상 동작
        if name.startswith("_"):
            raise AttributeError(name)
        return self.field(name)

    def count(self) -> Aggregate:
        from typedquery.query import aggregates

        return aggregates.count(self)

    def __repr__(self) -> str:
        return f"EntityPath({self.entity.name} as {self.alias})"


@dataclass(frozen=True)
class FieldRef:
    """필드 경로 — 특정 별칭의 엔티티 필드.

    A field of an aliased entity, e.g. ``member.age``.

    Attributes:
        alias: 소속 엔티티 별칭 (Alias of the owning entity)
        entity: 소속 엔티티 디스크립터 (Owning entity descriptor)
        field: 필드 디스크립터 (Field descriptor)
    """

    alias: str
    entity: EntityDescriptor
    field: FieldDescriptor

    @property
    def name(self) -> str:
        return self.field.name

    @property
    def type(self) -> FieldType:
        return self.field.type

    @property
    def label(self) -> str:
        return f"{self.alias}.{self.field.name}"

    def __repr__(self) -> str:
        return f"FieldRef({self.label})"

    # --- 조건식 (Predicates) ---

    def eq(self, value: Any) -> Predicate:
        from typedquery.query import predicates

        return predicates.eq(self, value)

    def ne(self, value: Any) -> Predicate:
        from typedquery.query import predicates

        return predicates.ne(self, value)

    def lt(self, value: Any) -> Predicate:
        from typedquery.query import predicates

        return predicates.lt(self, value)

    def loe(self, value: Any) -> Predicate:
        from typedquery.query import predicates

        return predicates.loe(self, value)

    def gt(self, value: Any) -> Predicate:
        from typedquery.query import predicates

        return predicates.gt(self, value)

    def goe(self, value: Any) -> Predicate:
        from typedquery.query import predicates

        return predicates.goe(self, value)

    def between(self, low: Any, high: Any) -> Predicate:
        from typedquery.query import predicates

        return predicates.between(self, low, high)

    def in_(self, *values: Any) -> Predicate:
        from typedquery.query import predicates

        return predicates.in_(self, *values)

    def like(self, pattern: str) -> Predicate:
        from typedquery.query import predicates

        return predicates.like(self, pattern)

    def is_null(self) -> Predicate:
        from typedquery.query import predicates

        return predicates.is_null(self)

    def is_not_null(self) -> Predicate:
        from typedquery.query import predicates

        return predicates.is_not_null(self)

    # --- 정렬 (Ordering) ---

    def asc(self) -> SortKey:
        from typedquery.query.planner import Direction, SortKey

        return SortKey(self, Direction.ASC)

    def desc(self) -> SortKey:
        from typedquery.query.planner import Direction, SortKey

        return SortKey(self, Direction.DESC)

    # --- 집계 (Aggregates) ---

    def count(self) -> Aggregate:
        from typedquery.query import aggregates

        return aggregates.count(self)

    def sum(self) -> Aggregate:
        from typedquery.query import aggregates

        return aggregates.sum_(self)

    def avg(self) -> Aggregate:
        from typedquery.query import aggregates

        return aggregates.avg(self)

    def min(self) -> Aggregate:
        from typedquery.query import aggregates

        return aggregates.min_(self)

    def max(self) -> Aggregate:
        from typedquery.query import aggregates

        return aggregates.max_(self)


def checked(ref: Any) -> FieldRef:
    """필드 경로가 소속 엔티티에 실제로 선언되었는지 확인합니다.

    Return ref unchanged when it is a FieldRef whose field is declared on
    its entity.

    Raises:
        TypeMismatch: 필드 경로가 아님 (Not a field path)
        UnknownField: 엔티티에 없는 필드 (Field not declared on the entity)
    """
    if not isinstance(ref, FieldRef):
        raise TypeMismatch(f"Expected a field path, got {ref!r}")
    if ref.entity.field(ref.field.name) != ref.field:
        raise UnknownField(ref.entity.name, ref.field.name)
    return ref
