"""쿼리 계층 예외 모듈.

Query layer exception module.
Validation errors are raised while a plan is being built, before anything
reaches the store; execution errors are raised by the executor.
Nothing here is retried.

Hierarchy:
    QueryError
    ├── SchemaError: UnknownEntity, UnknownField, DuplicateEntity, DuplicateField
    ├── PlanError: TypeMismatch, InvalidAggregation, InvalidJoin, InvalidPagination
    ├── ExecutionError
    └── NonUniqueResult
    EmptyResult (LookupError — "no row" is an outcome, not a failure)
"""


class QueryError(Exception):
    """쿼리 계층 기본 예외 (Base class for query layer errors)."""


class SchemaError(QueryError):
    """스키마 레지스트리 관련 예외 (Schema registry errors)."""


class UnknownEntity(SchemaError):
    """등록되지 않은 엔티티 이름 (Entity name not registered)."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown entity: {name}")
        self.name: str = name


class UnknownField(SchemaError, AttributeError):
    """엔티티에 없는 필드 (Field not declared on the entity).

    Also an AttributeError: ``member.nickname`` on an entity path raises it.
    """

    def __init__(self, entity: str, field: str) -> None:
        super().__init__(f"Unknown field: {entity}.{field}")
        self.entity: str = entity
        self.field: str = field


class DuplicateEntity(SchemaError):
    """이미 등록된 엔티티 이름 (Entity name already registered)."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Entity already registered: {name}")
        self.name: str = name


class DuplicateField(SchemaError):
    """엔티티 내 중복 필드 이름 (Field declared twice on one entity)."""

    def __init__(self, entity: str, field: str) -> None:
        super().__init__(f"Duplicate field: {entity}.{field}")
        self.entity: str = entity
        self.field: str = field


class PlanError(QueryError):
    """쿼리 구성 시 검증 실패 (Query construction validation errors)."""


class TypeMismatch(PlanError):
    """값 타입이 필드 타입과 호환되지 않음 (Value incompatible with field type)."""


class InvalidAggregation(PlanError):
    """집계/비집계 프로젝션 혼용 오류 (Aggregate and plain projections mixed without grouping)."""


class InvalidJoin(PlanError):
    """도달할 수 없는 조인 (Join not reachable through a relation in scope)."""


class InvalidPagination(PlanError):
    """음수 offset/limit (Negative offset or limit)."""


class ExecutionError(QueryError):
    """저장소 실행 오류 — 원본 진단 메시지를 포함.

    Error surfaced from the store while executing a plan.
    The store's own diagnostic is kept in ``diagnostic`` and the original
    exception is chained as ``__cause__``.
    """

    def __init__(self, message: str, diagnostic: str | None = None) -> None:
        super().__init__(message if diagnostic is None else f"{message}: {diagnostic}")
        self.diagnostic: str | None = diagnostic


class NonUniqueResult(QueryError):
    """단일 행 조회에서 여러 행이 반환됨 (More than one row for a single-row fetch)."""


class EmptyResult(LookupError):
    """단일 행 조회에서 일치하는 행이 없음.

    No row matched a single-row fetch. Not a QueryError:
    ``except QueryError`` does not catch it.
    """
