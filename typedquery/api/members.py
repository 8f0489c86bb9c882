"""멤버 라우터 — 멤버 검색/통계 엔드포인트.

Member Router — search and statistics endpoints over the member table.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from typedquery.database import get_db
from typedquery.schemas.member import (
    AgeStatsResponse,
    MemberPage,
    MemberResponse,
    TeamAgeStatsResponse,
)
from typedquery.services.member_service import member_service

router: APIRouter = APIRouter()


@router.get("", response_model=MemberPage)
async def list_members(
    db: Annotated[AsyncSession, Depends(get_db)],
    username: str | None = None,
    team_name: str | None = None,
    age_goe: int | None = None,
    age_loe: int | None = None,
    sort: Annotated[list[str] | None, Query()] = None,
    offset: int = 0,
    limit: int | None = None,
    fetch_team: bool = False,
) -> MemberPage:
    """멤버 목록을 조회합니다. 모든 필터는 선택 사항.

    Search members. Sort keys: age, -age, username, -username (nulls last).
    """
    return await member_service.list_members(
        db,
        username=username,
        team_name=team_name,
        age_goe=age_goe,
        age_loe=age_loe,
        sort=sort,
        offset=offset,
        limit=limit,
        fetch_team=fetch_team,
    )


@router.get("/stats", response_model=AgeStatsResponse)
async def member_stats(
    db: Annotated[AsyncSession, Depends(get_db)],
    team_name: str | None = None,
) -> AgeStatsResponse:
    """멤버 나이 통계 (count/sum/avg/min/max)."""
    return await member_service.age_stats(db, team_name)


@router.get("/stats/by-team", response_model=list[TeamAgeStatsResponse])
async def member_stats_by_team(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[TeamAgeStatsResponse]:
    """팀별 멤버 수와 평균 나이 (Per-team member count and average age)."""
    return await member_service.age_stats_by_team(db)


@router.get("/above-average", response_model=list[MemberResponse])
async def members_above_average(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[MemberResponse]:
    """전체 평균 나이 이상인 멤버 목록."""
    return await member_service.above_average(db)


@router.get("/{member_id}", response_model=MemberResponse)
async def get_member(
    member_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MemberResponse:
    """멤버 상세 정보를 팀과 함께 조회합니다.

    Retrieve a member with its team fetched eagerly.
    """
    return await member_service.get_member(db, member_id)
