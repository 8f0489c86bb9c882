"""서비스 패키지 — 비즈니스 로직 계층.

Service package — Business logic layer.
Services call repositories, convert query results into response schemas
and translate query layer errors into HTTP errors.
"""
