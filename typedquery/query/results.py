"""쿼리 결과 모델 — 엔티티 레코드, 튜플 행, 페이지.

Query result models: entity records, tuple rows and result pages.

Relations on a record are explicit: Loaded(record) when the plan fetched
them, Unresolved(entity, id) otherwise. Nothing loads on attribute access;
an Unresolved reference is turned into a record by Executor.resolve().
"""

from typing import Any, Union

from pydantic import BaseModel, ConfigDict

from typedquery.query.paths import EntityPath


class Unresolved(BaseModel):
    """로드되지 않은 참조 — 대상 엔티티와 식별자만 보유.

    Reference to a related row that was not materialized.

    Attributes:
        entity: 대상 엔티티 이름 (Related entity name)
        id: 대상 식별자 (Related primary key)
    """

    model_config = ConfigDict(frozen=True)

    entity: str
    id: Any


class Loaded(BaseModel):
    """로드된 참조 — 관련 레코드 전체를 보유 (Materialized related record)."""

    model_config = ConfigDict(frozen=True)

    record: "EntityRecord"


Relation = Union[Loaded, Unresolved, None]


class EntityRecord(BaseModel):
    """엔티티 레코드 — 스칼라 값과 관계 참조.

    Typed row for an entity projection.

    Attributes:
        entity: 엔티티 이름 (Entity name)
        id: 기본키 값 (Primary key value)
        values: 스칼라 필드 값 (Scalar field values by name)
        relations: 관계 필드 값 (Relation fields: Loaded, Unresolved or None)
    """

    model_config = ConfigDict(frozen=True)

    entity: str
    id: Any
    values: dict[str, Any]
    relations: dict[str, Relation] = {}

    def __getitem__(self, name: str) -> Any:
        if name in self.values:
            return self.values[name]
        if name in self.relations:
            return self.relations[name]
        raise KeyError(name)

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self[name]
        except KeyError:
            return default

    def is_loaded(self, relation: str) -> bool:
        """관계가 즉시 로드되었는지 여부 (Whether relation was materialized)."""
        return isinstance(self.relations.get(relation), Loaded)

    def related(self, relation: str) -> "EntityRecord | None":
        """로드된 관련 레코드. 로드되지 않았으면 LookupError.

        Return the loaded related record, or None when there is no related
        row. Raises LookupError for an Unresolved relation.
        """
        value = self.relations[relation]
        if value is None:
            return None
        if isinstance(value, Unresolved):
            raise LookupError(f"{self.entity}.{relation} is not loaded; resolve it explicitly")
        return value.record


Loaded.model_rebuild()
EntityRecord.model_rebuild()


class ResultRow(BaseModel):
    """다중 프로젝션 결과 행 — 프로젝션 항목 또는 레이블로 접근.

    Row of a multi-item projection. Values are addressed by position,
    label (``"avg(member.age)"``) or by the projection item itself.
    """

    model_config = ConfigDict(frozen=True)

    labels: tuple[str, ...]
    values: tuple[Any, ...]

    def get(self, item: Any) -> Any:
        if isinstance(item, str):
            label = item
        elif isinstance(item, EntityPath):
            label = item.alias
        else:
            label = item.label
        try:
            return self.values[self.labels.index(label)]
        except ValueError:
            raise KeyError(label) from None

    def __getitem__(self, key: Any) -> Any:
        if isinstance(key, int):
            return self.values[key]
        return self.get(key)

    def as_dict(self) -> dict[str, Any]:
        return dict(zip(self.labels, self.values))


class ResultPage(BaseModel):
    """페이지네이션 결과 모델.

    Page of query results with the pre-pagination total.

    Attributes:
        items: 현재 페이지 행 (Rows of this page)
        total: 페이지네이션 전 전체 행 수 (Total rows before pagination)
        offset: 요청 offset (Echoed offset)
        limit: 요청 limit (Echoed limit, None when unbounded)
    """

    items: list[Any]
    total: int
    offset: int
    limit: int | None
