"""멤버/팀 관련 Pydantic 응답 스키마 정의.

Member and team response schema definitions.
"""

from pydantic import BaseModel


class TeamResponse(BaseModel):
    """팀 응답 스키마.

    Attributes:
        id: 팀 ID (Team identifier)
        name: 팀 이름 (Team name)
    """

    id: int  # 팀 ID (Team identifier)
    name: str  # 팀 이름 (Team name)


class MemberResponse(BaseModel):
    """멤버 응답 스키마.

    Member response schema. ``team`` is only populated when the query
    fetched it eagerly; ``team_id`` is always present.

    Attributes:
        id: 멤버 ID (Member identifier)
        username: 사용자명, NULL 허용 (Username, nullable)
        age: 나이 (Age)
        team_id: 소속 팀 ID (Team identifier, None when teamless)
        team: 즉시 로딩된 팀 (Eagerly fetched team)
    """

    id: int  # 멤버 ID (Member identifier)
    username: str | None  # 사용자명 (Username, nullable)
    age: int  # 나이 (Age)
    team_id: int | None = None  # 소속 팀 ID (Team identifier)
    team: TeamResponse | None = None  # fetch 조인 시에만 채워짐 (Set only when fetched)


class MemberPage(BaseModel):
    """멤버 목록 페이지 응답 스키마.

    Attributes:
        items: 현재 페이지 멤버 (Members on this page)
        total: 필터 적용 후 전체 수 (Total matching members before paging)
        offset: 요청 offset (Echoed offset)
        limit: 요청 limit (Echoed limit)
    """

    items: list[MemberResponse]
    total: int
    offset: int
    limit: int | None


class AgeStatsResponse(BaseModel):
    """나이 통계 응답 스키마 (count/sum/avg/min/max of age).

    avg/min/max are None when no member matched.
    """

    count: int
    sum: int | None = None
    avg: float | None = None
    min: int | None = None
    max: int | None = None


class TeamAgeStatsResponse(BaseModel):
    """팀별 나이 통계 응답 스키마.

    Attributes:
        team_name: 팀 이름 (Team name)
        member_count: 팀 멤버 수 (Members in the team)
        avg_age: 평균 나이 (Average age)
    """

    team_name: str
    member_count: int
    avg_age: float | None = None
