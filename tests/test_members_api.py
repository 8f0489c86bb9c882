"""멤버/팀 조회 API 테스트.

Member and team API tests — filters, sorting, paging, statistics and
error mapping (400/404) over the seeded sample data.
"""

from httpx import AsyncClient

from typedquery.config import settings
from typedquery.models import Member

URL = "/api/v1/members"


class TestHealth:
    async def test_health(self, client: AsyncClient):
        res = await client.get("/health")
        assert res.status_code == 200
        assert res.json() == {"status": "ok"}


class TestMemberList:
    """멤버 목록 조회 테스트."""

    async def test_list_all(self, client: AsyncClient):
        res = await client.get(URL)
        assert res.status_code == 200
        data = res.json()
        assert data["total"] == 4
        assert data["offset"] == 0
        assert data["limit"] == settings.DEFAULT_PAGE_LIMIT
        assert [m["username"] for m in data["items"]] == ["member1", "member2", "member3", "member4"]

    async def test_items_carry_team_id_only(self, client: AsyncClient, seeded: list[Member]):
        """fetch_team 없이는 팀이 로드되지 않음."""
        data = (await client.get(URL, params={"username": "member1"})).json()
        item = data["items"][0]
        assert item["team_id"] == seeded[0].team_id
        assert item["team"] is None

    async def test_fetch_team(self, client: AsyncClient):
        data = (await client.get(URL, params={"username": "member3", "fetch_team": "true"})).json()
        assert data["items"][0]["team"]["name"] == "teamB"

    async def test_filter_by_team_and_age(self, client: AsyncClient):
        res = await client.get(URL, params={"team_name": "teamB", "age_goe": 35})
        data = res.json()
        assert data["total"] == 1
        assert data["items"][0]["username"] == "member4"

    async def test_age_range(self, client: AsyncClient):
        data = (await client.get(URL, params={"age_goe": 15, "age_loe": 35})).json()
        assert [m["username"] for m in data["items"]] == ["member2", "member3"]

    async def test_sort_and_paging(self, client: AsyncClient):
        res = await client.get(URL, params={"sort": "-age", "offset": 1, "limit": 2})
        data = res.json()
        assert data["total"] == 4
        assert [m["age"] for m in data["items"]] == [30, 20]

    async def test_unknown_sort_key(self, client: AsyncClient):
        res = await client.get(URL, params={"sort": "height"})
        assert res.status_code == 400

    async def test_limit_above_max(self, client: AsyncClient):
        res = await client.get(URL, params={"limit": settings.MAX_PAGE_LIMIT + 1})
        assert res.status_code == 400

    async def test_negative_offset(self, client: AsyncClient):
        res = await client.get(URL, params={"offset": -1})
        assert res.status_code == 400
        assert "offset" in res.json()["detail"]


class TestMemberDetail:
    """멤버 상세 조회 테스트."""

    async def test_get_member(self, client: AsyncClient, seeded: list[Member]):
        res = await client.get(f"{URL}/{seeded[1].id}")
        assert res.status_code == 200
        data = res.json()
        assert data["username"] == "member2"
        assert data["team"]["name"] == "teamA"

    async def test_get_nonexistent_member(self, client: AsyncClient):
        res = await client.get(f"{URL}/9999")
        assert res.status_code == 404

    async def test_get_team(self, client: AsyncClient, seeded: list[Member]):
        res = await client.get(f"/api/v1/teams/{seeded[2].team_id}")
        assert res.status_code == 200
        assert res.json()["name"] == "teamB"

    async def test_get_nonexistent_team(self, client: AsyncClient):
        res = await client.get("/api/v1/teams/9999")
        assert res.status_code == 404


class TestMemberStats:
    """멤버 통계 테스트."""

    async def test_stats(self, client: AsyncClient):
        res = await client.get(f"{URL}/stats")
        assert res.status_code == 200
        assert res.json() == {"count": 4, "sum": 100, "avg": 25.0, "min": 10, "max": 40}

    async def test_stats_for_team(self, client: AsyncClient):
        data = (await client.get(f"{URL}/stats", params={"team_name": "teamA"})).json()
        assert data["count"] == 2
        assert data["avg"] == 15.0

    async def test_stats_for_unknown_team(self, client: AsyncClient):
        data = (await client.get(f"{URL}/stats", params={"team_name": "teamZ"})).json()
        assert data == {"count": 0, "sum": None, "avg": None, "min": None, "max": None}

    async def test_stats_by_team(self, client: AsyncClient):
        data = (await client.get(f"{URL}/stats/by-team")).json()
        assert data == [
            {"team_name": "teamA", "member_count": 2, "avg_age": 15.0},
            {"team_name": "teamB", "member_count": 2, "avg_age": 35.0},
        ]

    async def test_above_average(self, client: AsyncClient):
        data = (await client.get(f"{URL}/above-average")).json()
        assert [m["username"] for m in data] == ["member3", "member4"]
