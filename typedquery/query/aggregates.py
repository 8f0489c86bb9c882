"""집계 함수 — count, sum, avg, min, max 프로젝션 항목.

Aggregate projection items: count, sum, avg, min and max.
Aggregates are kept apart from plain field projections so the planner can
reject mixed projections that have no grouping key.
"""

from dataclasses import dataclass
from enum import Enum

from typedquery.exceptions import TypeMismatch
from typedquery.query.paths import EntityPath, FieldRef, checked
from typedquery.schema.descriptors import FieldType


class AggregateFunction(str, Enum):
    """집계 함수 종류 (Aggregate function kind)."""

    COUNT = "count"
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


@dataclass(frozen=True)
class Aggregate:
    """집계 프로젝션 항목.

    Aggregate projection item over a field, or over whole rows for count.

    Attributes:
        function: 집계 함수 (Aggregate function)
        target: 대상 필드 또는 엔티티 (Field, or entity for count(*))
    """

    function: AggregateFunction
    target: FieldRef | EntityPath

    @property
    def alias(self) -> str:
        return self.target.alias

    @property
    def label(self) -> str:
        inner = self.target.label if isinstance(self.target, FieldRef) else self.target.alias
        return f"{self.function.value}({inner})"

    @property
    def result_type(self) -> FieldType:
        """결과 값의 의미 타입 — count/sum/avg는 숫자, min/max는 필드 타입."""
        if self.function in (AggregateFunction.MIN, AggregateFunction.MAX):
            return self.target.type
        return FieldType.INTEGER

    def __repr__(self) -> str:
        return f"Aggregate({self.label})"


def _numeric(field: FieldRef, function: AggregateFunction) -> Aggregate:
    field = checked(field)
    if field.type is not FieldType.INTEGER:
        raise TypeMismatch(f"{function.value}() requires an integer field, got {field.label}")
    return Aggregate(function, field)


def _comparable(field: FieldRef, function: AggregateFunction) -> Aggregate:
    field = checked(field)
    if field.type is FieldType.REFERENCE:
        raise TypeMismatch(f"{function.value}() is not defined on reference field {field.label}")
    return Aggregate(function, field)


def count(target: FieldRef | EntityPath) -> Aggregate:
    """행 수(엔티티) 또는 NULL이 아닌 값의 수(필드)."""
    if isinstance(target, EntityPath):
        return Aggregate(AggregateFunction.COUNT, target)
    return Aggregate(AggregateFunction.COUNT, checked(target))


def sum_(field: FieldRef) -> Aggregate:
    return _numeric(field, AggregateFunction.SUM)


def avg(field: FieldRef) -> Aggregate:
    return _numeric(field, AggregateFunction.AVG)


def min_(field: FieldRef) -> Aggregate:
    return _comparable(field, AggregateFunction.MIN)


def max_(field: FieldRef) -> Aggregate:
    return _comparable(field, AggregateFunction.MAX)
