"""쿼리 패키지 — 타입 경로, 조건식, 계획, 실행기.

Query package — Typed paths, predicates, plans and the executor.

Modules:
    paths: 엔티티/필드 경로 (EntityPath, FieldRef)
    predicates: 조건식 빌더 (Predicate builder)
    aggregates: 집계 함수 (count, sum, avg, min, max)
    planner: 쿼리 계획 검증/생성 (QueryPlan construction)
    builder: 플루언트 쿼리 빌더 (Fluent QueryBuilder)
    executor: SQLAlchemy 실행기 (Executor)
    results: 결과 행/페이지 (Result rows and pages)
"""
