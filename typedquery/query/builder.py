"""플루언트 쿼리 빌더.

Fluent query builder over the planner.

    plan = (
        QueryBuilder(registry)
        .select(member)
        .from_(member)
        .join(member.team, team).fetch_join()
        .where(member.username.eq("member1"))
        .build()
    )

Each call returns a new builder, so a partially built query can be
reused as a template. build() runs every planner check.
"""

from typing import Any

from typedquery.exceptions import InvalidJoin, PlanError
from typedquery.query.paths import EntityPath, FieldRef, checked
from typedquery.query.planner import Join, ProjectionItem, QueryPlan, SortKey, plan
from typedquery.query.predicates import Predicate, and_
from typedquery.schema.registry import SchemaRegistry


class QueryBuilder:
    """불변 플루언트 쿼리 빌더 (Immutable fluent query builder)."""

    def __init__(self, registry: SchemaRegistry) -> None:
        self._registry: SchemaRegistry = registry
        self._projection: tuple[ProjectionItem, ...] = ()
        self._source: EntityPath | None = None
        self._joins: tuple[Join, ...] = ()
        self._predicate: Predicate | None = None
        self._sort: tuple[SortKey | FieldRef, ...] = ()
        self._group_by: tuple[FieldRef, ...] = ()
        self._offset: int = 0
        self._limit: int | None = None

    def _with(self, **changes: Any) -> "QueryBuilder":
        clone = QueryBuilder.__new__(QueryBuilder)
        clone.__dict__.update(self.__dict__)
        for name, value in changes.items():
            setattr(clone, f"_{name}", value)
        return clone

    def select(self, *items: ProjectionItem) -> "QueryBuilder":
        return self._with(projection=tuple(items))

    def from_(self, source: EntityPath) -> "QueryBuilder":
        return self._with(source=source)

    def select_from(self, source: EntityPath) -> "QueryBuilder":
        """select(source).from_(source) 단축형."""
        return self._with(projection=(source,), source=source)

    def _join(self, field: FieldRef, target: EntityPath | None, outer: bool) -> "QueryBuilder":
        field = checked(field)
        if target is None:
            if not field.field.is_reference:
                raise InvalidJoin(f"{field.label} is not a relation")
            # 별칭 기본값은 관계 필드 이름 (member.team → "team")
            target = self._registry.path(field.field.target, alias=field.name)
        return self._with(joins=self._joins + (Join(field, target, outer=outer),))

    def join(self, field: FieldRef, target: EntityPath | None = None) -> "QueryBuilder":
        return self._join(field, target, outer=False)

    def left_join(self, field: FieldRef, target: EntityPath | None = None) -> "QueryBuilder":
        return self._join(field, target, outer=True)

    def fetch_join(self) -> "QueryBuilder":
        """직전 조인을 fetch 조인(즉시 로딩)으로 표시합니다."""
        if not self._joins:
            raise InvalidJoin("fetch_join() must follow join()")
        last = self._joins[-1]
        fetched = Join(last.field, last.target, fetch=True, outer=last.outer)
        return self._with(joins=self._joins[:-1] + (fetched,))

    def where(self, *predicates: Predicate | None) -> "QueryBuilder":
        """조건을 AND로 추가합니다. None은 무시 (동적 조건 조립용).

        Add conditions combined with AND; None entries are skipped so
        optional filters can be passed straight through.
        """
        combined = self._predicate
        for predicate in predicates:
            if predicate is None:
                continue
            combined = predicate if combined is None else and_(combined, predicate)
        return self._with(predicate=combined)

    def order_by(self, *keys: SortKey | FieldRef) -> "QueryBuilder":
        return self._with(sort=self._sort + tuple(keys))

    def group_by(self, *fields: FieldRef) -> "QueryBuilder":
        return self._with(group_by=self._group_by + tuple(fields))

    def offset(self, offset: int) -> "QueryBuilder":
        return self._with(offset=offset)

    def limit(self, limit: int | None) -> "QueryBuilder":
        return self._with(limit=limit)

    def build(self) -> QueryPlan:
        """검증된 QueryPlan을 생성합니다 (Validate and build the plan)."""
        source = self._source
        if source is None:
            entities = [item for item in self._projection if isinstance(item, EntityPath)]
            if not entities:
                raise PlanError("No source entity: call from_() or select_from()")
            source = entities[0]
        return plan(
            self._registry,
            source,
            projection=self._projection,
            predicate=self._predicate,
            joins=self._joins,
            sort=self._sort,
            offset=self._offset,
            limit=self._limit,
            group_by=self._group_by,
        )
