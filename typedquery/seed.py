"""샘플 데이터 시드 스크립트 — 팀 2개, 멤버 4명 생성.

Seed script — creates the sample teams and members the API
and tests run against.

Usage:
    python -m typedquery.seed

Creates:
    - 2개 팀: teamA, teamB (2 teams)
    - 4명 멤버: member1(10), member2(20) → teamA, member3(30), member4(40) → teamB
"""

import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from typedquery.database import Base, engine, session_scope
from typedquery.models import Member, Team

# (사용자명, 나이, 팀 이름) — (username, age, team name)
SAMPLE_MEMBERS: list[tuple[str, int, str]] = [
    ("member1", 10, "teamA"),
    ("member2", 20, "teamA"),
    ("member3", 30, "teamB"),
    ("member4", 40, "teamB"),
]


async def seed_sample(db: AsyncSession) -> list[Member]:
    """샘플 팀과 멤버를 세션에 추가합니다. 커밋은 호출자 책임.

    Add the sample teams and members to db and flush them so ids are
    assigned. Committing is left to the caller.

    Args:
        db: 비동기 DB 세션 (Async database session)

    Returns:
        list[Member]: 생성된 멤버 (Created members, in SAMPLE_MEMBERS order)
    """
    teams: dict[str, Team] = {}
    members: list[Member] = []
    for username, age, team_name in SAMPLE_MEMBERS:
        team = teams.get(team_name)
        if team is None:
            team = teams[team_name] = Team(team_name)
            db.add(team)
        member = Member(username, age, team)
        db.add(member)
        members.append(member)
    await db.flush()
    return members


async def seed() -> None:
    """테이블을 생성하고 샘플 데이터를 시드합니다.

    Idempotent: 멤버가 이미 있으면 건너뜁니다 (Skips when members exist).
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_scope() as db:
        result = await db.execute(select(Member).limit(1))
        if result.scalar_one_or_none() is not None:
            print("Already seeded. Skipping.")
            return
        members = await seed_sample(db)

    print(f"Seeded {len(members)} members.")


if __name__ == "__main__":
    asyncio.run(seed())
