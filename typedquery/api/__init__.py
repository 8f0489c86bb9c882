"""API 라우터 패키지 — 모든 엔드포인트 통합.

API Router package — aggregates the query endpoints into one router
for inclusion in the FastAPI application.

Included routers:
    - members: 멤버 검색/통계 (Member search and statistics)
    - teams: 팀 조회 (Team lookup)
"""

from fastapi import APIRouter

from typedquery.api.members import router as members_router
from typedquery.api.teams import router as teams_router

api_router: APIRouter = APIRouter()

api_router.include_router(members_router, prefix="/members", tags=["Members"])
api_router.include_router(teams_router, prefix="/teams", tags=["Teams"])
