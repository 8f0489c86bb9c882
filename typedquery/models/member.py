"""멤버 SQLAlchemy ORM 모델 정의.

Member SQLAlchemy ORM model definition.
Each member optionally belongs to one team (many-to-one, lazy).

Tables:
    - member: 멤버 (Members, team_id FK → team.id)
"""

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from typedquery.database import Base
from typedquery.models.team import Team


class Member(Base):
    """멤버 모델 — 팀에 소속되는 개인.

    Member model — Person that may belong to a team.

    Attributes:
        id: 자동 증가 식별자 (Auto-increment identifier)
        username: 사용자 이름, NULL 허용 (Username, nullable)
        age: 나이 (Age, defaults to 0)
        team_id: 소속 팀 FK (Team foreign key, nullable)

    Relationships:
        team: 소속 팀 (Owning team, loaded lazily)
    """

    __tablename__ = "member"

    # 멤버 고유 식별자 — Member identifier (auto-increment)
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # 사용자 이름 — Username (NULL 허용: 정렬 시 nulls first/last 검증용)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # 나이 — Age in years
    age: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 소속 팀 FK — Owning team (SET NULL: 팀 삭제 시 멤버는 무소속)
    team_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("team.id", ondelete="SET NULL"), nullable=True
    )

    # 관계 — Relationships (lazy: 명시적으로 조인/조회할 때만 로드)
    team = relationship("Team", back_populates="members", lazy="select")

    def __init__(self, username: str | None, age: int = 0, team: Team | None = None) -> None:
        super().__init__(username=username, age=age)
        if team is not None:
            self.change_team(team)

    def change_team(self, team: Team) -> None:
        """소속 팀을 변경합니다.

        Move this member to another team.
        back_populates keeps team.members in sync without loading it.
        """
        self.team = team

    def __repr__(self) -> str:
        return f"Member(id={self.id}, username={self.username}, age={self.age})"
