"""팀 SQLAlchemy ORM 모델 정의.

Team SQLAlchemy ORM model definition.
A team groups members; the members collection is the inverse side of
Member.team and is never loaded implicitly by the query layer.

Tables:
    - team: 팀 (Teams)
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from typedquery.database import Base


class Team(Base):
    """팀 모델 — 멤버가 소속되는 그룹.

    Team model — Group that members belong to.

    Attributes:
        id: 자동 증가 식별자 (Auto-increment identifier)
        name: 팀 이름 (Team name)

    Relationships:
        members: 소속 멤버 목록 (Members of this team, inverse of Member.team)
    """

    __tablename__ = "team"

    # 팀 고유 식별자 — Team identifier (auto-increment)
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # 팀 이름 — Team display name
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # 관계 — Relationships
    members = relationship("Member", back_populates="team")

    def __init__(self, name: str) -> None:
        super().__init__(name=name)

    def __repr__(self) -> str:
        return f"Team(id={self.id}, name={self.name})"
