"""멤버 레포지토리 — 타입 쿼리 기반 멤버/팀 조회.

Member Repository — member and team lookups expressed as typed query plans.
Filters are optional: each one that is None is simply left out of the
where clause.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from typedquery.query.builder import QueryBuilder
from typedquery.query.executor import Executor
from typedquery.query.paths import EntityPath
from typedquery.query.planner import SortKey
from typedquery.query.predicates import subquery
from typedquery.query.results import EntityRecord, ResultPage, ResultRow
from typedquery.schema.catalog import create_registry, mapped_models
from typedquery.schema.registry import SchemaRegistry

# 정렬 파라미터 → 필드 이름과 내림차순 여부 (Sort parameter → field, descending)
SORT_FIELDS: dict[str, tuple[str, bool]] = {
    "age": ("age", False),
    "-age": ("age", True),
    "username": ("username", False),
    "-username": ("username", True),
}


class MemberRepository:
    """멤버 조회 레포지토리.

    Attributes:
        registry: 스키마 레지스트리 (Schema registry)
        executor: 쿼리 실행기 (Query executor bound to the mapped models)
    """

    def __init__(self, registry: SchemaRegistry, executor: Executor) -> None:
        self.registry: SchemaRegistry = registry
        self.executor: Executor = executor

    def _paths(self) -> tuple[EntityPath, EntityPath]:
        return self.registry.path("Member"), self.registry.path("Team")

    def _sort_key(self, member: EntityPath, sort: str) -> SortKey:
        field_name, descending = SORT_FIELDS[sort]
        field = member.field(field_name)
        key = field.desc() if descending else field.asc()
        return key.nulls_last()

    async def search(
        self,
        db: AsyncSession,
        username: str | None = None,
        team_name: str | None = None,
        age_goe: int | None = None,
        age_loe: int | None = None,
        sort: list[str] | None = None,
        offset: int = 0,
        limit: int | None = None,
        fetch_team: bool = False,
    ) -> ResultPage:
        """조건에 맞는 멤버 페이지를 조회합니다.

        Search members with optional filters, sort and paging.

        Args:
            db: 비동기 DB 세션 (Async database session)
            username: 사용자명 일치 (Exact username)
            team_name: 팀 이름 일치 (Exact team name; joins the team)
            age_goe: 최소 나이, 포함 (Minimum age, inclusive)
            age_loe: 최대 나이, 포함 (Maximum age, inclusive)
            sort: 정렬 키 목록 (Keys from SORT_FIELDS, applied in order)
            offset: 건너뛸 행 수 (Rows to skip)
            limit: 최대 행 수 (Max rows)
            fetch_team: 팀 즉시 로딩 여부 (Fetch the team eagerly)

        Returns:
            ResultPage: EntityRecord 페이지 (Page of member records)

        Raises:
            KeyError: 알 수 없는 정렬 키 (Unknown sort key)
            QueryError: 계획 검증 또는 실행 실패
        """
        member, team = self._paths()
        query = QueryBuilder(self.registry).select_from(member)

        if team_name is not None or fetch_team:
            query = query.left_join(member.team, team) if team_name is None else query.join(member.team, team)
            if fetch_team:
                query = query.fetch_join()

        query = query.where(
            member.username.eq(username) if username is not None else None,
            team.name.eq(team_name) if team_name is not None else None,
            member.age.goe(age_goe) if age_goe is not None else None,
            member.age.loe(age_loe) if age_loe is not None else None,
        )
        keys = [self._sort_key(member, key) for key in sort or ()]
        plan = query.order_by(*keys, member.id.asc()).offset(offset).limit(limit).build()
        return await self.executor.execute(db, plan)

    async def get_member(self, db: AsyncSession, member_id: int) -> EntityRecord:
        """ID로 멤버를 팀과 함께 조회합니다. 없으면 EmptyResult."""
        member, team = self._paths()
        plan = (
            QueryBuilder(self.registry)
            .select_from(member)
            .left_join(member.team, team).fetch_join()
            .where(member.id.eq(member_id))
            .build()
        )
        return await self.executor.fetch_one(db, plan)

    async def get_team(self, db: AsyncSession, team_id: int) -> EntityRecord:
        """ID로 팀을 조회합니다. 없으면 EmptyResult."""
        _, team = self._paths()
        plan = QueryBuilder(self.registry).select_from(team).where(team.id.eq(team_id)).build()
        return await self.executor.fetch_one(db, plan)

    async def age_stats(self, db: AsyncSession, team_name: str | None = None) -> ResultRow:
        """멤버 나이 집계 (count, sum, avg, min, max)를 조회합니다."""
        member, team = self._paths()
        query = QueryBuilder(self.registry).select(
            member.count(),
            member.age.sum(),
            member.age.avg(),
            member.age.min(),
            member.age.max(),
        ).from_(member)
        if team_name is not None:
            query = query.join(member.team, team).where(team.name.eq(team_name))
        return await self.executor.fetch_one(db, query.build())

    async def age_stats_by_team(self, db: AsyncSession) -> list[ResultRow]:
        """팀별 멤버 수와 평균 나이를 팀 이름 순으로 조회합니다."""
        member, team = self._paths()
        plan = (
            QueryBuilder(self.registry)
            .select(team.name, member.count(), member.age.avg())
            .from_(member)
            .join(member.team, team)
            .group_by(team.name)
            .order_by(team.name.asc())
            .build()
        )
        return await self.executor.fetch(db, plan)

    async def above_average(self, db: AsyncSession) -> list[EntityRecord]:
        """전체 평균 나이 이상인 멤버를 나이 순으로 조회합니다."""
        member, _ = self._paths()
        member_sub = self.registry.path("Member", alias="member_sub")
        average = subquery(member_sub.age.avg(), member_sub)
        plan = (
            QueryBuilder(self.registry)
            .select_from(member)
            .where(member.age.goe(average))
            .order_by(member.age.asc(), member.id.asc())
            .build()
        )
        return await self.executor.fetch(db, plan)


# 싱글턴 인스턴스 — Singleton over the bundled Team/Member schema
_registry: SchemaRegistry = create_registry()
member_repository: MemberRepository = MemberRepository(
    _registry, Executor(_registry, mapped_models())
)
