"""팀 라우터 — 팀 조회 엔드포인트.

Team Router — team lookup endpoint.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from typedquery.database import get_db
from typedquery.schemas.member import TeamResponse
from typedquery.services.member_service import member_service

router: APIRouter = APIRouter()


@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TeamResponse:
    """팀 정보를 조회합니다 (Retrieve a team by id)."""
    return await member_service.get_team(db, team_id)
