"""조건식 빌더 — 타입 검증된 필터 조건.

Predicate builder — type-checked filter expressions.

Every constructor validates the field against its entity descriptor
(UnknownField) and the value against the field type (TypeMismatch).
Predicates are frozen; combining them builds new trees and never touches
the operands.

Compatibility:
    INTEGER    int / float (bool 제외), 숫자 서브쿼리 (numeric subquery)
    STRING     str, 문자열 서브쿼리 (string subquery)
    REFERENCE  int 식별자 — eq/ne/in 전용 (identifier, eq/ne/in only)
"""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from typedquery.exceptions import InvalidAggregation, TypeMismatch
from typedquery.query.aggregates import Aggregate
from typedquery.query.paths import EntityPath, FieldRef, checked
from typedquery.schema.descriptors import FieldType


class Operator(str, Enum):
    """비교 연산자 (Comparison operator)."""

    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LOE = "loe"
    GT = "gt"
    GOE = "goe"

    @property
    def is_ordering(self) -> bool:
        return self not in (Operator.EQ, Operator.NE)


class Predicate:
    """조건식 기본 클래스 (Base class for predicate nodes)."""

    def and_(self, other: "Predicate") -> "Predicate":
        return and_(self, other)

    def or_(self, other: "Predicate") -> "Predicate":
        return or_(self, other)

    def not_(self) -> "Predicate":
        return not_(self)

    def __and__(self, other: "Predicate") -> "Predicate":
        return and_(self, other)

    def __or__(self, other: "Predicate") -> "Predicate":
        return or_(self, other)

    def __invert__(self) -> "Predicate":
        return not_(self)

    def children(self) -> tuple["Predicate", ...]:
        return ()

    def walk(self) -> Iterator["Predicate"]:
        """이 노드와 모든 하위 노드를 전위 순회합니다 (Pre-order traversal)."""
        yield self
        for child in self.children():
            yield from child.walk()


@dataclass(frozen=True)
class Subquery:
    """스칼라 서브쿼리 — 다른 별칭에 대한 단일 집계 값.

    Scalar subquery: one aggregate over its own alias of an entity,
    optionally filtered. The filter may reference aliases of the enclosing
    query, which makes it correlated.

    Attributes:
        aggregate: 집계 항목 (Aggregate computed by the subquery)
        source: 서브쿼리 대상 경로 (Subquery's own aliased entity)
        predicate: 서브쿼리 조건 (Optional subquery filter)
    """

    aggregate: Aggregate
    source: EntityPath
    predicate: Predicate | None = None

    @property
    def result_type(self) -> FieldType:
        return self.aggregate.result_type


@dataclass(frozen=True)
class Comparison(Predicate):
    field: FieldRef
    op: Operator
    value: Any


@dataclass(frozen=True)
class Range(Predicate):
    """low ≤ field ≤ high (양 끝 포함, inclusive)."""

    field: FieldRef
    low: Any
    high: Any


@dataclass(frozen=True)
class And(Predicate):
    left: Predicate
    right: Predicate

    def children(self) -> tuple[Predicate, ...]:
        return (self.left, self.right)


@dataclass(frozen=True)
class Or(Predicate):
    left: Predicate
    right: Predicate

    def children(self) -> tuple[Predicate, ...]:
        return (self.left, self.right)


@dataclass(frozen=True)
class Not(Predicate):
    operand: Predicate

    def children(self) -> tuple[Predicate, ...]:
        return (self.operand,)


@dataclass(frozen=True)
class IsNull(Predicate):
    field: FieldRef
    negated: bool = False


@dataclass(frozen=True)
class Membership(Predicate):
    """field IN (values)."""

    field: FieldRef
    values: tuple[Any, ...]


@dataclass(frozen=True)
class Like(Predicate):
    """SQL LIKE 패턴 (%, _ 와일드카드)."""

    field: FieldRef
    pattern: str


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_value(field: FieldRef, value: Any, *, ordering: bool) -> None:
    field_type = field.type
    if ordering and field_type is FieldType.REFERENCE:
        raise TypeMismatch(f"{field.label}: reference fields only support eq, ne and in")
    if isinstance(value, Subquery):
        if field_type is FieldType.REFERENCE or value.result_type is not field_type:
            raise TypeMismatch(
                f"{field.label} ({field_type.value}) cannot be compared with "
                f"{value.aggregate.label} ({value.result_type.value})"
            )
        return
    if field_type is FieldType.INTEGER and _is_number(value):
        return
    if field_type is FieldType.STRING and isinstance(value, str):
        return
    if field_type is FieldType.REFERENCE and isinstance(value, int) and not isinstance(value, bool):
        return
    raise TypeMismatch(f"{field.label} ({field_type.value}) cannot be compared with {value!r}")


def _compare(field: FieldRef, op: Operator, value: Any) -> Predicate:
    field = checked(field)
    if value is None:
        if op.is_ordering:
            raise TypeMismatch(f"{field.label}: NULL cannot be used with '{op.value}'")
        if not field.field.nullable:
            raise TypeMismatch(f"{field.label} is not nullable")
        return IsNull(field, negated=op is Operator.NE)
    _check_value(field, value, ordering=op.is_ordering)
    return Comparison(field, op, value)


def _require_predicate(value: Any) -> Predicate:
    if not isinstance(value, Predicate):
        raise TypeMismatch(f"Expected a predicate, got {value!r}")
    return value


def eq(field: FieldRef, value: Any) -> Predicate:
    """field = value. None은 nullable 필드에서 IS NULL로 변환됩니다."""
    return _compare(field, Operator.EQ, value)


def ne(field: FieldRef, value: Any) -> Predicate:
    """field <> value. None은 nullable 필드에서 IS NOT NULL로 변환됩니다."""
    return _compare(field, Operator.NE, value)


def lt(field: FieldRef, value: Any) -> Predicate:
    return _compare(field, Operator.LT, value)


def loe(field: FieldRef, value: Any) -> Predicate:
    return _compare(field, Operator.LOE, value)


def gt(field: FieldRef, value: Any) -> Predicate:
    return _compare(field, Operator.GT, value)


def goe(field: FieldRef, value: Any) -> Predicate:
    return _compare(field, Operator.GOE, value)


def between(field: FieldRef, low: Any, high: Any) -> Predicate:
    """low ≤ field ≤ high.

    Args:
        field: 대상 필드 (Field path)
        low: 하한, 포함 (Inclusive lower bound)
        high: 상한, 포함 (Inclusive upper bound)

    Raises:
        UnknownField: 엔티티에 없는 필드
        TypeMismatch: 경계값 타입 불일치, NULL 경계, 참조 필드
    """
    field = checked(field)
    for bound in (low, high):
        if bound is None:
            raise TypeMismatch(f"{field.label}: NULL cannot be a range bound")
        _check_value(field, bound, ordering=True)
    return Range(field, low, high)


def in_(field: FieldRef, *values: Any) -> Predicate:
    """field IN (values). 단일 리스트/튜플/셋 인자도 허용합니다."""
    field = checked(field)
    if len(values) == 1 and isinstance(values[0], (list, tuple, set, frozenset)):
        values = tuple(values[0])
    for value in values:
        if value is None or isinstance(value, Subquery):
            raise TypeMismatch(f"{field.label}: IN accepts literal values only, got {value!r}")
        _check_value(field, value, ordering=False)
    return Membership(field, tuple(values))


def like(field: FieldRef, pattern: str) -> Predicate:
    field = checked(field)
    if field.type is not FieldType.STRING or not isinstance(pattern, str):
        raise TypeMismatch(f"LIKE requires a string field and pattern, got {field.label} / {pattern!r}")
    return Like(field, pattern)


def is_null(field: FieldRef) -> Predicate:
    return IsNull(checked(field))


def is_not_null(field: FieldRef) -> Predicate:
    return IsNull(checked(field), negated=True)


def and_(left: Predicate, right: Predicate, *more: Predicate) -> Predicate:
    """모든 조건을 왼쪽부터 AND로 결합합니다 (Left-fold with AND)."""
    result = And(_require_predicate(left), _require_predicate(right))
    for predicate in more:
        result = And(result, _require_predicate(predicate))
    return result


def or_(left: Predicate, right: Predicate, *more: Predicate) -> Predicate:
    """모든 조건을 왼쪽부터 OR로 결합합니다 (Left-fold with OR)."""
    result = Or(_require_predicate(left), _require_predicate(right))
    for predicate in more:
        result = Or(result, _require_predicate(predicate))
    return result


def not_(predicate: Predicate) -> Predicate:
    return Not(_require_predicate(predicate))


def subquery(aggregate: Aggregate, source: EntityPath, where: Predicate | None = None) -> Subquery:
    """스칼라 서브쿼리를 생성합니다.

    Build a scalar subquery computing aggregate over source.

        member_sub = registry.path("Member", alias="member_sub")
        member.age.goe(subquery(member_sub.age.avg(), member_sub))

    Raises:
        InvalidAggregation: 집계 대상이 서브쿼리 자신의 별칭이 아님
                            (Aggregate does not range over the subquery source)
        TypeMismatch: 조건이 Predicate가 아님 (Filter is not a predicate)
    """
    if not isinstance(aggregate, Aggregate):
        raise TypeMismatch(f"Expected an aggregate, got {aggregate!r}")
    if not isinstance(source, EntityPath):
        raise TypeMismatch(f"Expected an entity path, got {source!r}")
    target = aggregate.target
    target_entity = target.entity
    if target.alias != source.alias or target_entity.name != source.entity.name:
        raise InvalidAggregation(
            f"Subquery aggregate {aggregate.label} must range over its source '{source.alias}'"
        )
    if where is not None:
        _require_predicate(where)
    return Subquery(aggregate, source, where)


def fields_of(predicate: Predicate) -> Iterator[FieldRef]:
    """조건식이 직접 참조하는 필드 (서브쿼리 내부 제외).

    Fields referenced by the predicate tree, not descending into subqueries.
    """
    for node in predicate.walk():
        field = getattr(node, "field", None)
        if isinstance(field, FieldRef):
            yield field


def subqueries_of(predicate: Predicate) -> Iterator[Subquery]:
    """조건식 트리 안의 서브쿼리 값 (Subquery values in the tree)."""
    for node in predicate.walk():
        if isinstance(node, Comparison):
            values: tuple[Any, ...] = (node.value,)
        elif isinstance(node, Range):
            values = (node.low, node.high)
        else:
            continue
        for value in values:
            if isinstance(value, Subquery):
                yield value
