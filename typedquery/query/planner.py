"""쿼리 플래너 — 검증된 불변 QueryPlan 생성.

Query planner — builds validated, immutable query plans.

Everything that can be checked without the store is checked here, so a
QueryPlan that exists is one the executor can translate: fields resolve
to aliases in scope, joins follow declared relations, pagination bounds
are non-negative and aggregate projections are consistent.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Union

from typedquery.exceptions import (
    InvalidAggregation,
    InvalidJoin,
    InvalidPagination,
    TypeMismatch,
    UnknownEntity,
    UnknownField,
)
from typedquery.query.aggregates import Aggregate
from typedquery.query.paths import EntityPath, FieldRef, checked
from typedquery.query.predicates import Predicate, Subquery, fields_of, subqueries_of

if TYPE_CHECKING:
    from typedquery.schema.registry import SchemaRegistry

ProjectionItem = Union[EntityPath, FieldRef, Aggregate]


class Direction(str, Enum):
    """정렬 방향 (Sort direction)."""

    ASC = "asc"
    DESC = "desc"


class NullPlacement(str, Enum):
    """NULL 정렬 위치 (Where NULLs sort)."""

    FIRST = "first"
    LAST = "last"


@dataclass(frozen=True)
class SortKey:
    """정렬 키.

    Attributes:
        field: 정렬 필드 (Sort field)
        direction: 정렬 방향 (Direction)
        nulls: NULL 위치, None이면 저장소 기본값 (Null placement; store default when None)
    """

    field: FieldRef
    direction: Direction = Direction.ASC
    nulls: NullPlacement | None = None

    def nulls_first(self) -> "SortKey":
        return replace(self, nulls=NullPlacement.FIRST)

    def nulls_last(self) -> "SortKey":
        return replace(self, nulls=NullPlacement.LAST)


@dataclass(frozen=True)
class Join:
    """조인 명세.

    Attributes:
        field: 범위 내 별칭의 참조 필드 (Reference field of an alias in scope)
        target: 조인 대상 경로와 별칭 (Joined entity path and its alias)
        fetch: True면 관련 객체를 즉시 채움 (Eager: populate the related object)
        outer: True면 LEFT OUTER JOIN (Left outer join)
    """

    field: FieldRef
    target: EntityPath
    fetch: bool = False
    outer: bool = False


@dataclass(frozen=True)
class QueryPlan:
    """불변 논리 쿼리 계획 (Immutable logical query plan).

    Attributes:
        source: 루트 엔티티 경로 (Root entity path)
        projection: 프로젝션 항목 (Entity paths, fields and aggregates)
        joins: 조인 목록, 지정 순서 유지 (Joins in the given order)
        predicate: 조건식 트리 (Predicate tree)
        sort: 정렬 키 (Sort keys)
        group_by: 그룹 키 (Grouping keys)
        offset: 건너뛸 행 수 (Rows to skip)
        limit: 최대 행 수, None이면 무제한 (Max rows; unbounded when None)
    """

    source: EntityPath
    projection: tuple[ProjectionItem, ...]
    joins: tuple[Join, ...] = ()
    predicate: Predicate | None = None
    sort: tuple[SortKey, ...] = ()
    group_by: tuple[FieldRef, ...] = ()
    offset: int = 0
    limit: int | None = None

    @property
    def has_aggregates(self) -> bool:
        return any(isinstance(item, Aggregate) for item in self.projection)

    @property
    def is_aggregate(self) -> bool:
        """그룹 키 없는 순수 집계 쿼리 — 결과는 항상 한 행."""
        return not self.group_by and all(isinstance(item, Aggregate) for item in self.projection)

    @property
    def scope(self) -> dict[str, EntityPath]:
        """별칭 → 경로 (Alias → path for the source and every join)."""
        scope = {self.source.alias: self.source}
        for join in self.joins:
            scope[join.target.alias] = join.target
        return scope

    def fetched(self, alias: str) -> frozenset[str]:
        """별칭에서 fetch 조인된 관계 필드 이름 (Relations of alias joined eagerly)."""
        return frozenset(
            join.field.name for join in self.joins if join.fetch and join.field.alias == alias
        )

    def join_for(self, alias: str, relation: str) -> Join | None:
        for join in self.joins:
            if join.field.alias == alias and join.field.name == relation:
                return join
        return None


def _check_scoped(field: FieldRef, scope: dict[str, EntityPath]) -> FieldRef:
    field = checked(field)
    path = scope.get(field.alias)
    if path is None or path.entity.name != field.entity.name:
        raise UnknownField(field.alias, field.name)
    if path.entity.field(field.name) != field.field:
        raise UnknownField(path.entity.name, field.name)
    return field


def _check_entity(path: EntityPath, registry: "SchemaRegistry") -> EntityPath:
    if not isinstance(path, EntityPath):
        raise TypeMismatch(f"Expected an entity path, got {path!r}")
    if registry.resolve(path.entity.name) != path.entity:
        raise UnknownEntity(path.entity.name)
    return path


def _check_predicate(
    predicate: Predicate,
    scope: dict[str, EntityPath],
    registry: "SchemaRegistry",
) -> None:
    for field in fields_of(predicate):
        _check_scoped(field, scope)
    for sub in subqueries_of(predicate):
        _check_subquery(sub, scope, registry)


def _check_subquery(
    sub: Subquery,
    scope: dict[str, EntityPath],
    registry: "SchemaRegistry",
) -> None:
    # 서브쿼리 별칭은 바깥 별칭을 가림 (The subquery alias shadows outer ones)
    inner = dict(scope)
    inner[sub.source.alias] = _check_entity(sub.source, registry)
    target = sub.aggregate.target
    if isinstance(target, FieldRef):
        _check_scoped(target, inner)
    if sub.predicate is not None:
        _check_predicate(sub.predicate, inner, registry)


def _check_joins(
    joins: Iterable[Join],
    scope: dict[str, EntityPath],
    registry: "SchemaRegistry",
) -> tuple[Join, ...]:
    checked_joins: list[Join] = []
    for join in joins:
        if not isinstance(join, Join):
            raise TypeMismatch(f"Expected a join, got {join!r}")
        if join.field.alias not in scope:
            raise InvalidJoin(f"Join owner '{join.field.alias}' is not in scope")
        field = _check_scoped(join.field, scope)
        if not field.field.is_reference:
            raise InvalidJoin(f"{field.label} is not a relation")
        target = _check_entity(join.target, registry)
        if target.entity.name != field.field.target:
            raise InvalidJoin(
                f"{field.label} relates to {field.field.target}, not {target.entity.name}"
            )
        if target.alias in scope:
            raise InvalidJoin(f"Alias '{target.alias}' is already in use")
        scope[target.alias] = target
        checked_joins.append(join)
    return tuple(checked_joins)


def _check_fetch_owners(joins: tuple[Join, ...], projection: tuple[ProjectionItem, ...]) -> None:
    # fetch 조인의 소유 별칭은 엔티티로 프로젝션되거나 앞선 fetch 조인의 대상이어야 함
    owners = {item.alias for item in projection if isinstance(item, EntityPath)}
    for join in joins:
        if not join.fetch:
            continue
        if join.field.alias not in owners:
            raise InvalidJoin(
                f"Fetch join on {join.field.label} requires '{join.field.alias}' in the projection"
            )
        owners.add(join.target.alias)


def _check_aggregation(
    projection: tuple[ProjectionItem, ...],
    group_by: tuple[FieldRef, ...],
    sort: tuple[SortKey, ...],
) -> None:
    has_aggregates = any(isinstance(item, Aggregate) for item in projection)
    plain = [item for item in projection if not isinstance(item, Aggregate)]
    if not has_aggregates and not group_by:
        return
    if plain and not group_by:
        raise InvalidAggregation("Aggregate and plain projections mixed without a grouping key")
    for item in plain:
        if isinstance(item, EntityPath):
            raise InvalidAggregation(f"Entity '{item.alias}' cannot be projected in an aggregate query")
        if item not in group_by:
            raise InvalidAggregation(f"{item.label} is neither aggregated nor a grouping key")
    for key in sort:
        if key.field not in group_by:
            raise InvalidAggregation(f"Cannot sort aggregate rows by {key.field.label}")


def plan(
    registry: "SchemaRegistry",
    source: EntityPath | str,
    projection: Sequence[ProjectionItem] = (),
    predicate: Predicate | None = None,
    joins: Sequence[Join] = (),
    sort: Sequence[SortKey | FieldRef] = (),
    offset: int = 0,
    limit: int | None = None,
    group_by: Sequence[FieldRef] = (),
) -> QueryPlan:
    """검증된 QueryPlan을 생성합니다.

    Build a validated QueryPlan.

    Args:
        registry: 스키마 레지스트리 (Schema registry)
        source: 루트 엔티티 경로 또는 이름 (Root entity path or name)
        projection: 프로젝션, 비어 있으면 루트 엔티티 (Projection; root entity when empty)
        predicate: 조건식 (Filter predicate)
        joins: 조인 목록 (Joins, kept in order)
        sort: 정렬 키, FieldRef는 오름차순 (Sort keys; a bare field sorts ascending)
        offset: 건너뛸 행 수 (Rows to skip, ≥ 0)
        limit: 최대 행 수 (Max rows, ≥ 0 when given)
        group_by: 그룹 키 (Grouping keys)

    Returns:
        QueryPlan: 불변 계획 (Immutable plan)

    Raises:
        UnknownEntity: 등록되지 않은 엔티티
        UnknownField: 범위 밖 별칭 또는 선언되지 않은 필드
        TypeMismatch: 잘못된 인자 타입
        InvalidJoin: 관계로 도달할 수 없는 조인
        InvalidAggregation: 그룹 키 없이 집계/비집계 혼용
        InvalidPagination: 음수 offset/limit
    """
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise InvalidPagination(f"offset must be a non-negative integer, got {offset!r}")
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 0):
        raise InvalidPagination(f"limit must be a non-negative integer, got {limit!r}")

    if isinstance(source, str):
        source = registry.path(source)
    source = _check_entity(source, registry)
    scope: dict[str, EntityPath] = {source.alias: source}

    checked_joins = _check_joins(joins, scope, registry)

    items: tuple[ProjectionItem, ...] = tuple(projection) or (source,)
    for item in items:
        if isinstance(item, EntityPath):
            if scope.get(item.alias) != item:
                raise UnknownField(item.alias, "*")
        elif isinstance(item, FieldRef):
            _check_scoped(item, scope)
        elif isinstance(item, Aggregate):
            if isinstance(item.target, FieldRef):
                _check_scoped(item.target, scope)
            elif scope.get(item.target.alias) != item.target:
                raise UnknownField(item.target.alias, "*")
        else:
            raise TypeMismatch(f"Unsupported projection item: {item!r}")

    keys: tuple[FieldRef, ...] = tuple(_check_scoped(field, scope) for field in group_by)

    sort_keys: list[SortKey] = []
    for key in sort:
        if isinstance(key, FieldRef):
            key = SortKey(key)
        if not isinstance(key, SortKey):
            raise TypeMismatch(f"Expected a sort key, got {key!r}")
        _check_scoped(key.field, scope)
        sort_keys.append(key)

    if predicate is not None:
        if not isinstance(predicate, Predicate):
            raise TypeMismatch(f"Expected a predicate, got {predicate!r}")
        _check_predicate(predicate, scope, registry)

    _check_fetch_owners(checked_joins, items)
    _check_aggregation(items, keys, tuple(sort_keys))

    return QueryPlan(
        source=source,
        projection=items,
        joins=checked_joins,
        predicate=predicate,
        sort=tuple(sort_keys),
        group_by=keys,
        offset=offset,
        limit=limit,
    )
