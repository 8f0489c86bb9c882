"""쿼리 실행기 — QueryPlan을 SQLAlchemy 문장으로 변환하고 실행.

Query executor — translates QueryPlans into SQLAlchemy statements, runs
them on a caller-supplied AsyncSession and maps rows back to typed records.

Translation rules:
    - 조건식 → 컬럼 표현식, 서브쿼리 → aliased() 기반 scalar_subquery
      (Predicates → column expressions; subqueries → scalar subqueries over aliased())
    - fetch 조인 → contains_eager, 일반 조인 → 관계 미로딩 + Unresolved
      (Fetch joins → contains_eager; plain joins leave the relation Unresolved)
    - 전체 개수는 페이지네이션 전 별도 COUNT 쿼리
      (Totals come from a separate COUNT over the filtered source)
    - 순수 집계 쿼리는 offset/limit을 적용하지 않음
      (Pure aggregate plans ignore offset/limit)

The executor keeps no state between calls and never commits, rolls back
or closes the session; that belongs to whoever opened it.
"""

import operator
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from typing import Any

from sqlalchemy import Select, and_, func, inspect, not_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, contains_eager
from sqlalchemy.orm.base import NO_VALUE

from typedquery.database import Base
from typedquery.exceptions import EmptyResult, ExecutionError, NonUniqueResult
from typedquery.query.aggregates import Aggregate, AggregateFunction
from typedquery.query.paths import EntityPath, FieldRef
from typedquery.query.planner import Direction, NullPlacement, QueryPlan
from typedquery.query.predicates import (
    And,
    Comparison,
    IsNull,
    Like,
    Membership,
    Not,
    Operator,
    Or,
    Predicate,
    Range,
    Subquery,
)
from typedquery.query.results import EntityRecord, Loaded, ResultPage, ResultRow, Unresolved
from typedquery.schema.descriptors import EntityDescriptor
from typedquery.schema.registry import SchemaRegistry

# 비교 연산자 → 파이썬 연산자 (SQLAlchemy 컬럼이 오버로드)
_OPERATORS: dict[Operator, Callable[[Any, Any], Any]] = {
    Operator.EQ: operator.eq,
    Operator.NE: operator.ne,
    Operator.LT: operator.lt,
    Operator.LOE: operator.le,
    Operator.GT: operator.gt,
    Operator.GOE: operator.ge,
}

_FUNCTIONS: dict[AggregateFunction, Callable[..., Any]] = {
    AggregateFunction.COUNT: func.count,
    AggregateFunction.SUM: func.sum,
    AggregateFunction.AVG: func.avg,
    AggregateFunction.MIN: func.min,
    AggregateFunction.MAX: func.max,
}

# 별칭 → 매핑 클래스 또는 aliased() 엔티티 (Alias → mapped class or aliased entity)
Scope = dict[str, Any]


class Executor:
    """QueryPlan 실행기.

    Executes query plans against mapped SQLAlchemy models.

    Attributes:
        registry: 스키마 레지스트리 (Schema registry the plans were built with)
        models: 엔티티 이름 → 매핑 클래스 (Entity name → mapped model class)
    """

    def __init__(self, registry: SchemaRegistry, models: Mapping[str, type[Base]]) -> None:
        self.registry: SchemaRegistry = registry
        self.models: dict[str, type[Base]] = dict(models)

    # ------------------------------------------------------------------
    # 모델 바인딩 (Model binding)
    # ------------------------------------------------------------------

    def _model(self, entity: str) -> type[Base]:
        try:
            return self.models[entity]
        except KeyError:
            raise ExecutionError(f"No mapped model for entity '{entity}'") from None

    def _foreign_key(self, entity: str, relation: str) -> str:
        """관계 필드의 FK 속성 이름 (Attribute key of a relation's FK column)."""
        mapper = inspect(self._model(entity))
        try:
            relationship = mapper.relationships[relation]
        except KeyError:
            raise ExecutionError(f"'{entity}.{relation}' is not a mapped relationship") from None
        column = next(iter(relationship.local_columns))
        return mapper.get_property_by_column(column).key

    def _column(self, scope: Scope, field: FieldRef) -> Any:
        entity = scope[field.alias]
        if field.field.is_reference:
            return getattr(entity, self._foreign_key(field.entity.name, field.name))
        return getattr(entity, field.name)

    # ------------------------------------------------------------------
    # 변환 (Translation)
    # ------------------------------------------------------------------

    def _aggregate(self, aggregate: Aggregate, scope: Scope) -> Any:
        target = aggregate.target
        if isinstance(target, EntityPath):
            primary_key = getattr(scope[target.alias], target.entity.primary_key)
            return func.count(primary_key)
        return _FUNCTIONS[aggregate.function](self._column(scope, target))

    def _subquery(self, subquery: Subquery, scope: Scope) -> Any:
        inner: Scope = dict(scope)
        source = aliased(self._model(subquery.source.entity.name), name=subquery.source.alias)
        inner[subquery.source.alias] = source
        stmt = select(self._aggregate(subquery.aggregate, inner)).select_from(source)
        if subquery.predicate is not None:
            stmt = stmt.where(self._where(subquery.predicate, inner))
        return stmt.scalar_subquery()

    def _value(self, value: Any, scope: Scope) -> Any:
        if isinstance(value, Subquery):
            return self._subquery(value, scope)
        return value

    def _where(self, predicate: Predicate, scope: Scope) -> Any:
        if isinstance(predicate, Comparison):
            column = self._column(scope, predicate.field)
            return _OPERATORS[predicate.op](column, self._value(predicate.value, scope))
        if isinstance(predicate, Range):
            column = self._column(scope, predicate.field)
            return column.between(self._value(predicate.low, scope), self._value(predicate.high, scope))
        if isinstance(predicate, And):
            return and_(self._where(predicate.left, scope), self._where(predicate.right, scope))
        if isinstance(predicate, Or):
            return or_(self._where(predicate.left, scope), self._where(predicate.right, scope))
        if isinstance(predicate, Not):
            return not_(self._where(predicate.operand, scope))
        if isinstance(predicate, IsNull):
            column = self._column(scope, predicate.field)
            return column.is_not(None) if predicate.negated else column.is_(None)
        if isinstance(predicate, Membership):
            return self._column(scope, predicate.field).in_(predicate.values)
        if isinstance(predicate, Like):
            return self._column(scope, predicate.field).like(predicate.pattern)
        raise ExecutionError(f"Unsupported predicate: {predicate!r}")

    def _scope(self, plan: QueryPlan) -> Scope:
        scope: Scope = {plan.source.alias: self._model(plan.source.entity.name)}
        for join in plan.joins:
            scope[join.target.alias] = aliased(
                self._model(join.target.entity.name), name=join.target.alias
            )
        return scope

    def _filtered(self, plan: QueryPlan, scope: Scope, columns: Sequence[Any]) -> Select:
        """SELECT columns FROM source [JOIN ...] [WHERE ...]."""
        stmt = select(*columns).select_from(scope[plan.source.alias])
        for join in plan.joins:
            relation = getattr(scope[join.field.alias], join.field.name)
            target = relation.of_type(scope[join.target.alias])
            stmt = stmt.outerjoin(target) if join.outer else stmt.join(target)
        if plan.predicate is not None:
            stmt = stmt.where(self._where(plan.predicate, scope))
        return stmt

    def _projection(self, plan: QueryPlan, scope: Scope) -> list[Any]:
        columns: list[Any] = []
        for item in plan.projection:
            if isinstance(item, EntityPath):
                columns.append(scope[item.alias])
            elif isinstance(item, Aggregate):
                columns.append(self._aggregate(item, scope))
            else:
                columns.append(self._column(scope, item))
        return columns

    def _eager_options(self, plan: QueryPlan, scope: Scope) -> list[Any]:
        # fetch 조인 체인: 소유 별칭이 앞선 fetch 대상이면 그 로더 옵션에 이어 붙임
        loaders: dict[str, Any] = {}
        options: list[Any] = []
        for join in plan.joins:
            if not join.fetch:
                continue
            relation = getattr(scope[join.field.alias], join.field.name)
            target = relation.of_type(scope[join.target.alias])
            parent = loaders.get(join.field.alias)
            loader = parent.contains_eager(target) if parent is not None else contains_eager(target)
            loaders[join.target.alias] = loader
            options.append(loader)
        return options

    def to_statement(self, plan: QueryPlan) -> Select:
        """계획을 SQLAlchemy SELECT 문으로 변환합니다.

        Translate a plan into the SQLAlchemy statement execute() would run
        for its rows.

        Args:
            plan: 검증된 쿼리 계획 (Validated plan)

        Returns:
            Select: 실행 가능한 SELECT 문 (Executable select statement)
        """
        scope = self._scope(plan)
        stmt = self._filtered(plan, scope, self._projection(plan, scope))

        if plan.is_aggregate:
            return stmt

        if plan.group_by:
            stmt = stmt.group_by(*(self._column(scope, field) for field in plan.group_by))

        options = self._eager_options(plan, scope)
        if options:
            stmt = stmt.options(*options)

        for key in plan.sort:
            column = self._column(scope, key.field)
            clause = column.desc() if key.direction is Direction.DESC else column.asc()
            if key.nulls is NullPlacement.FIRST:
                clause = clause.nulls_first()
            elif key.nulls is NullPlacement.LAST:
                clause = clause.nulls_last()
            stmt = stmt.order_by(clause)

        if plan.offset:
            stmt = stmt.offset(plan.offset)
        if plan.limit is not None:
            stmt = stmt.limit(plan.limit)
        return stmt

    def to_count_statement(self, plan: QueryPlan) -> Select:
        """페이지네이션 전 전체 행 수를 세는 SELECT 문.

        Statement counting the rows the plan yields before pagination.
        Grouped plans count groups. Pure aggregate plans always yield one
        row, so count() never runs this for them.
        """
        scope = self._scope(plan)
        if plan.group_by:
            keys = [self._column(scope, field) for field in plan.group_by]
            grouped = self._filtered(plan, scope, keys).group_by(*keys).subquery()
            return select(func.count()).select_from(grouped)
        return self._filtered(plan, scope, [func.count()])

    # ------------------------------------------------------------------
    # 결과 매핑 (Result mapping)
    # ------------------------------------------------------------------

    def _record(
        self,
        plan: QueryPlan | None,
        alias: str | None,
        descriptor: EntityDescriptor,
        obj: Any,
    ) -> EntityRecord | None:
        if obj is None:
            return None
        state = inspect(obj)
        values: dict[str, Any] = {}
        relations: dict[str, Any] = {}
        for field in descriptor.fields:
            if not field.is_reference:
                values[field.name] = getattr(obj, field.name)
                continue

            join = plan.join_for(alias, field.name) if plan is not None else None
            if join is not None and join.fetch:
                related = state.attrs[field.name].loaded_value
                if related is NO_VALUE:
                    raise ExecutionError(f"Fetch join did not populate {descriptor.name}.{field.name}")
                target = self.registry.resolve(field.target)
                record = self._record(plan, join.target.alias, target, related)
                relations[field.name] = None if record is None else Loaded(record=record)
                continue

            # 지연 관계는 접근하지 않고 FK 값만 읽음 — Lazy relation: read the FK only
            foreign_key = getattr(obj, self._foreign_key(descriptor.name, field.name))
            relations[field.name] = (
                None if foreign_key is None else Unresolved(entity=field.target, id=foreign_key)
            )

        return EntityRecord(
            entity=descriptor.name,
            id=getattr(obj, descriptor.primary_key),
            values=values,
            relations=relations,
        )

    def _value_of(self, plan: QueryPlan, item: Any, value: Any) -> Any:
        if isinstance(item, EntityPath):
            return self._record(plan, item.alias, item.entity, value)
        if isinstance(item, Aggregate) and value is not None:
            # avg는 항상 float, count/sum은 int (드라이버별 Decimal 정규화)
            if item.function is AggregateFunction.AVG:
                return float(value)
            if item.function in (AggregateFunction.COUNT, AggregateFunction.SUM):
                return int(value)
        return value

    def _map_row(self, plan: QueryPlan, row: Sequence[Any]) -> Any:
        values = tuple(self._value_of(plan, item, value) for item, value in zip(plan.projection, row))
        if len(values) == 1:
            return values[0]
        labels = tuple(item.alias if isinstance(item, EntityPath) else item.label for item in plan.projection)
        return ResultRow(labels=labels, values=values)

    # ------------------------------------------------------------------
    # 실행 (Execution)
    # ------------------------------------------------------------------

    async def _run(self, db: AsyncSession, stmt: Select) -> Sequence[Any]:
        try:
            result = await db.execute(stmt)
            return result.all()
        except SQLAlchemyError as exc:
            diagnostic = str(getattr(exc, "orig", None) or exc)
            raise ExecutionError("Query execution failed", diagnostic) from exc

    async def fetch(self, db: AsyncSession, plan: QueryPlan) -> list[Any]:
        """계획의 행을 조회합니다 (페이지네이션 적용).

        Fetch the rows of a plan, with pagination applied.

        Args:
            db: 호출자가 소유한 비동기 세션 (Caller-owned async session)
            plan: 검증된 쿼리 계획 (Validated plan)

        Returns:
            list[Any]: 매핑된 행 목록 (Mapped rows)

        Raises:
            ExecutionError: 저장소 오류 또는 지원하지 않는 구성
        """
        rows = await self._run(db, self.to_statement(plan))
        return [self._map_row(plan, row) for row in rows]

    async def count(self, db: AsyncSession, plan: QueryPlan) -> int:
        """페이지네이션 전 전체 행 수 (Total rows before pagination)."""
        if plan.is_aggregate:
            return 1
        rows = await self._run(db, self.to_count_statement(plan))
        return int(rows[0][0]) if rows else 0

    async def execute(self, db: AsyncSession, plan: QueryPlan) -> ResultPage:
        """계획을 실행하고 결과 페이지를 반환합니다.

        Execute a plan and return its page together with the total count.

        Args:
            db: 호출자가 소유한 비동기 세션 (Caller-owned async session)
            plan: 검증된 쿼리 계획 (Validated plan)

        Returns:
            ResultPage: 현재 페이지 행, 전체 개수, offset/limit
                        (Page rows, pre-pagination total, echoed offset/limit)

        Raises:
            ExecutionError: 저장소 오류 또는 지원하지 않는 구성
        """
        total = await self.count(db, plan)
        items = await self.fetch(db, plan)
        return ResultPage(items=items, total=total, offset=plan.offset, limit=plan.limit)

    async def fetch_one(self, db: AsyncSession, plan: QueryPlan) -> Any:
        """정확히 한 행을 조회합니다.

        Fetch exactly one row.

        Raises:
            EmptyResult: 일치하는 행 없음 (No row matched)
            NonUniqueResult: 두 행 이상 일치 (More than one row matched)
            ExecutionError: 저장소 오류
        """
        rows = await self.fetch(db, plan if plan.limit == 0 else replace(plan, limit=2))
        if not rows:
            raise EmptyResult(f"No {plan.source.entity.name} row matched")
        if len(rows) > 1:
            raise NonUniqueResult(f"More than one {plan.source.entity.name} row matched")
        return rows[0]

    async def fetch_first(self, db: AsyncSession, plan: QueryPlan) -> Any:
        """첫 번째 행을 조회합니다. 없으면 EmptyResult."""
        rows = await self.fetch(db, replace(plan, limit=1))
        if not rows:
            raise EmptyResult(f"No {plan.source.entity.name} row matched")
        return rows[0]

    async def resolve(self, db: AsyncSession, reference: Unresolved) -> EntityRecord:
        """지연 참조를 명시적으로 로드합니다.

        Load the record an Unresolved reference points to.

        Raises:
            UnknownEntity: 참조 엔티티가 레지스트리에 없음
            EmptyResult: 대상 행이 존재하지 않음 (Referenced row is gone)
            ExecutionError: 저장소 오류
        """
        descriptor = self.registry.resolve(reference.entity)
        model = self._model(reference.entity)
        try:
            obj = await db.get(model, reference.id)
        except SQLAlchemyError as exc:
            diagnostic = str(getattr(exc, "orig", None) or exc)
            raise ExecutionError("Query execution failed", diagnostic) from exc
        if obj is None:
            raise EmptyResult(f"{reference.entity} {reference.id!r} not found")
        return self._record(None, None, descriptor, obj)
