"""쿼리 플래너/빌더 테스트.

Query planner and builder tests — scope, joins, aggregation rules,
pagination bounds and the SQL the executor translates plans into.
No database involved.
"""

import pytest

from typedquery.exceptions import (
    InvalidAggregation,
    InvalidJoin,
    InvalidPagination,
    PlanError,
    UnknownEntity,
    UnknownField,
)
from typedquery.query.builder import QueryBuilder
from typedquery.query.executor import Executor
from typedquery.query.paths import EntityPath
from typedquery.query.planner import Direction, Join, NullPlacement, SortKey, plan
from typedquery.schema.registry import SchemaRegistry


class TestPlan:
    """plan() 검증 테스트."""

    def test_defaults(self, registry: SchemaRegistry, member: EntityPath):
        result = plan(registry, "Member")
        assert result.source == member
        assert result.projection == (member,)
        assert result.offset == 0
        assert result.limit is None

    def test_unknown_entity(self, registry: SchemaRegistry):
        with pytest.raises(UnknownEntity):
            plan(registry, "Order")

    def test_field_out_of_scope(self, registry: SchemaRegistry, member: EntityPath, team: EntityPath):
        """조인하지 않은 팀 필드로 필터링하면 UnknownField."""
        with pytest.raises(UnknownField):
            plan(registry, member, predicate=team.name.eq("teamA"))

    def test_negative_pagination(self, registry: SchemaRegistry, member: EntityPath):
        with pytest.raises(InvalidPagination):
            plan(registry, member, offset=-1)
        with pytest.raises(InvalidPagination):
            plan(registry, member, limit=-1)

    def test_bare_field_sorts_ascending(self, registry: SchemaRegistry, member: EntityPath):
        result = plan(registry, member, sort=[member.age])
        assert result.sort == (SortKey(member.age, Direction.ASC),)

    def test_nulls_placement(self, member: EntityPath):
        key = member.username.asc().nulls_last()
        assert key.nulls is NullPlacement.LAST
        assert member.username.desc().nulls_first().direction is Direction.DESC


class TestJoins:
    """조인 검증 테스트."""

    def test_join_on_relation(self, registry: SchemaRegistry, member: EntityPath, team: EntityPath):
        result = plan(registry, member, joins=[Join(member.team, team)], predicate=team.name.eq("teamA"))
        assert result.scope == {"member": member, "team": team}
        assert result.fetched("member") == frozenset()

    def test_join_on_scalar_field(self, registry: SchemaRegistry, member: EntityPath, team: EntityPath):
        with pytest.raises(InvalidJoin):
            plan(registry, member, joins=[Join(member.age, team)])

    def test_join_wrong_target(self, registry: SchemaRegistry, member: EntityPath):
        other = registry.path("Member", alias="other")
        with pytest.raises(InvalidJoin):
            plan(registry, member, joins=[Join(member.team, other)])

    def test_join_owner_out_of_scope(self, registry: SchemaRegistry, member: EntityPath, team: EntityPath):
        other = registry.path("Member", alias="other")
        with pytest.raises(InvalidJoin):
            plan(registry, member, joins=[Join(other.team, team)])

    def test_duplicate_alias(self, registry: SchemaRegistry, member: EntityPath):
        clash = registry.path("Team", alias="member")
        with pytest.raises(InvalidJoin):
            plan(registry, member, joins=[Join(member.team, clash)])

    def test_fetch_requires_projected_owner(self, registry: SchemaRegistry, member: EntityPath, team: EntityPath):
        with pytest.raises(InvalidJoin):
            plan(registry, member, projection=[member.username], joins=[Join(member.team, team, fetch=True)])

    def test_fetched(self, registry: SchemaRegistry, member: EntityPath, team: EntityPath):
        result = plan(registry, member, joins=[Join(member.team, team, fetch=True)])
        assert result.fetched("member") == frozenset({"team"})
        assert result.join_for("member", "team").fetch is True


class TestAggregation:
    """집계 프로젝션 검증 테스트."""

    def test_pure_aggregate(self, registry: SchemaRegistry, member: EntityPath):
        result = plan(registry, member, projection=[member.count(), member.age.avg()])
        assert result.is_aggregate

    def test_mixed_without_group_by(self, registry: SchemaRegistry, member: EntityPath):
        with pytest.raises(InvalidAggregation):
            plan(registry, member, projection=[member.username, member.age.avg()])

    def test_group_by(self, registry: SchemaRegistry, member: EntityPath, team: EntityPath):
        result = plan(
            registry, member,
            projection=[team.name, member.age.avg()],
            joins=[Join(member.team, team)],
            group_by=[team.name],
        )
        assert not result.is_aggregate
        assert result.has_aggregates

    def test_plain_field_outside_group_by(self, registry: SchemaRegistry, member: EntityPath, team: EntityPath):
        with pytest.raises(InvalidAggregation):
            plan(
                registry, member,
                projection=[team.name, member.username, member.age.avg()],
                joins=[Join(member.team, team)],
                group_by=[team.name],
            )

    def test_entity_in_aggregate_query(self, registry: SchemaRegistry, member: EntityPath):
        with pytest.raises(InvalidAggregation):
            plan(registry, member, projection=[member, member.age.avg()], group_by=[member.age])

    def test_sort_outside_group_by(self, registry: SchemaRegistry, member: EntityPath):
        with pytest.raises(InvalidAggregation):
            plan(registry, member, projection=[member.count()], sort=[member.age.desc()])


class TestBuilder:
    """플루언트 빌더 테스트."""

    def test_select_from(self, registry: SchemaRegistry, member: EntityPath):
        result = (
            QueryBuilder(registry)
            .select_from(member)
            .where(member.username.eq("member1"), None, member.age.goe(10))
            .order_by(member.age.desc())
            .offset(1)
            .limit(2)
            .build()
        )
        assert result.projection == (member,)
        assert list(result.predicate.walk())[1:] == [member.username.eq("member1"), member.age.goe(10)]
        assert (result.offset, result.limit) == (1, 2)

    def test_default_join_alias(self, registry: SchemaRegistry, member: EntityPath, team: EntityPath):
        result = QueryBuilder(registry).select_from(member).join(member.team).fetch_join().build()
        assert result.joins == (Join(member.team, team, fetch=True),)

    def test_builder_is_immutable(self, registry: SchemaRegistry, member: EntityPath):
        base = QueryBuilder(registry).select_from(member)
        base.where(member.age.gt(10))
        assert base.build().predicate is None

    def test_fetch_join_without_join(self, registry: SchemaRegistry, member: EntityPath):
        with pytest.raises(InvalidJoin):
            QueryBuilder(registry).select_from(member).fetch_join()

    def test_no_source(self, registry: SchemaRegistry, member: EntityPath):
        with pytest.raises(PlanError):
            QueryBuilder(registry).select(member.age.avg()).build()


class TestStatement:
    """QueryPlan → SQL 변환 테스트."""

    def test_sort_with_nulls_last(self, registry: SchemaRegistry, executor: Executor, member: EntityPath):
        result = plan(registry, member, sort=[member.age.desc(), member.username.asc().nulls_last()])
        sql = str(executor.to_statement(result))
        assert "ORDER BY member.age DESC, member.username ASC NULLS LAST" in sql

    def test_pure_aggregate_ignores_pagination(self, registry: SchemaRegistry, executor: Executor, member: EntityPath):
        result = plan(registry, member, projection=[member.count()], offset=5, limit=1)
        sql = str(executor.to_statement(result))
        assert "LIMIT" not in sql
        assert "OFFSET" not in sql

    def test_subquery_uses_own_alias(self, registry: SchemaRegistry, executor: Executor, member: EntityPath):
        from typedquery.query.predicates import subquery

        member_sub = registry.path("Member", alias="member_sub")
        result = plan(registry, member, predicate=member.age.goe(subquery(member_sub.age.avg(), member_sub)))
        sql = str(executor.to_statement(result))
        assert "avg(member_sub.age)" in sql
        assert "FROM member AS member_sub" in sql
