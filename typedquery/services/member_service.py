"""멤버 서비스 — 멤버/팀 조회 비즈니스 로직.

Member Service — business logic for member and team lookups.
Converts query records into response schemas and maps query layer errors:

    PlanError / SchemaError → 400
    EmptyResult             → 404
    ExecutionError          → 500
"""

from collections.abc import Awaitable
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from typedquery.config import settings
from typedquery.exceptions import EmptyResult, ExecutionError, PlanError, QueryError, SchemaError
from typedquery.query.results import EntityRecord
from typedquery.repositories.member_repository import (
    SORT_FIELDS,
    MemberRepository,
    member_repository,
)
from typedquery.schemas.member import (
    AgeStatsResponse,
    MemberPage,
    MemberResponse,
    TeamAgeStatsResponse,
    TeamResponse,
)
from typedquery.utils.exceptions import BadRequestError, NotFoundError, ServerError

T = TypeVar("T")


class MemberService:
    """멤버 관련 비즈니스 로직을 처리하는 서비스.

    Service handling member and team queries.
    """

    def __init__(self, repository: MemberRepository) -> None:
        self.repository: MemberRepository = repository

    async def _run(self, call: Awaitable[T], not_found: str = "Resource not found") -> T:
        """쿼리를 실행하고 쿼리 예외를 HTTP 예외로 변환합니다.

        Await a repository call, translating query layer errors.

        Raises:
            BadRequestError: 계획 검증 실패 (Plan or schema validation failed)
            NotFoundError: 일치하는 행 없음 (No row matched)
            ServerError: 저장소 실행 실패 (Store rejected the query)
        """
        try:
            return await call
        except EmptyResult:
            raise NotFoundError(not_found) from None
        except (PlanError, SchemaError) as exc:
            raise BadRequestError(str(exc)) from exc
        except ExecutionError as exc:
            raise ServerError(str(exc)) from exc
        except QueryError as exc:
            # NonUniqueResult: ID 조회에서는 발생하지 않아야 함 (Cannot happen for id lookups)
            raise ServerError(str(exc)) from exc

    def _team_response(self, record: EntityRecord) -> TeamResponse:
        return TeamResponse(id=record.id, name=record["name"])

    def _to_response(self, record: EntityRecord) -> MemberResponse:
        """멤버 레코드를 응답 스키마로 변환합니다.

        Convert a member record to a MemberResponse. The team is included
        only when the record carries it loaded.

        Args:
            record: 멤버 레코드 (Member record)

        Returns:
            MemberResponse: 멤버 응답 (Member response)
        """
        relation = record.relations.get("team")
        team: TeamResponse | None = None
        team_id: int | None = None
        if record.is_loaded("team"):
            team = self._team_response(record.related("team"))
            team_id = team.id
        elif relation is not None:
            team_id = relation.id
        return MemberResponse(
            id=record.id,
            username=record["username"],
            age=record["age"],
            team_id=team_id,
            team=team,
        )

    async def list_members(
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
    ) -> MemberPage:
        """조건에 맞는 멤버 목록을 페이지 단위로 조회합니다.

        List members matching the optional filters, one page at a time.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            username: 사용자명 일치 (Exact username)
            team_name: 팀 이름 일치 (Exact team name)
            age_goe: 최소 나이 (Minimum age, inclusive)
            age_loe: 최대 나이 (Maximum age, inclusive)
            sort: 정렬 키, 예: ["-age", "username"] (Sort keys)
            offset: 건너뛸 행 수 (Rows to skip)
            limit: 페이지 크기, None이면 DEFAULT_PAGE_LIMIT (Page size)
            fetch_team: 팀 즉시 로딩 여부 (Include the team in each item)

        Returns:
            MemberPage: 멤버 페이지 (Page of members with total)

        Raises:
            BadRequestError: 알 수 없는 정렬 키, limit 초과, 잘못된 값
        """
        for key in sort or ():
            if key not in SORT_FIELDS:
                raise BadRequestError(f"Unknown sort key '{key}', expected one of {sorted(SORT_FIELDS)}")
        if limit is None:
            limit = settings.DEFAULT_PAGE_LIMIT
        if limit > settings.MAX_PAGE_LIMIT:
            raise BadRequestError(f"limit must not exceed {settings.MAX_PAGE_LIMIT}")

        page = await self._run(self.repository.search(
            db,
            username=username,
            team_name=team_name,
            age_goe=age_goe,
            age_loe=age_loe,
            sort=sort,
            offset=offset,
            limit=limit,
            fetch_team=fetch_team,
        ))
        return MemberPage(
            items=[self._to_response(record) for record in page.items],
            total=page.total,
            offset=page.offset,
            limit=page.limit,
        )

    async def get_member(self, db: AsyncSession, member_id: int) -> MemberResponse:
        """멤버 상세를 팀과 함께 조회합니다.

        Raises:
            NotFoundError: 멤버가 존재하지 않음 (Member not found)
        """
        record = await self._run(
            self.repository.get_member(db, member_id), not_found="Member not found"
        )
        return self._to_response(record)

    async def get_team(self, db: AsyncSession, team_id: int) -> TeamResponse:
        record = await self._run(self.repository.get_team(db, team_id), not_found="Team not found")
        return self._team_response(record)

    async def age_stats(self, db: AsyncSession, team_name: str | None = None) -> AgeStatsResponse:
        """멤버 나이 통계를 조회합니다 (Age statistics, optionally per team)."""
        row = await self._run(self.repository.age_stats(db, team_name))
        count, total, average, youngest, oldest = row.values
        return AgeStatsResponse(count=count, sum=total, avg=average, min=youngest, max=oldest)

    async def age_stats_by_team(self, db: AsyncSession) -> list[TeamAgeStatsResponse]:
        rows = await self._run(self.repository.age_stats_by_team(db))
        return [
            TeamAgeStatsResponse(team_name=name, member_count=count, avg_age=average)
            for name, count, average in (row.values for row in rows)
        ]

    async def above_average(self, db: AsyncSession) -> list[MemberResponse]:
        """평균 나이 이상인 멤버 목록 (Members at or above the average age)."""
        records = await self._run(self.repository.above_average(db))
        return [self._to_response(record) for record in records]


# 싱글턴 인스턴스 — Singleton instance
member_service: MemberService = MemberService(member_repository)
