"""레포지토리 패키지 — 데이터베이스 쿼리 계층.

Repository package — Database query layer.
Repositories compose typed query plans and run them through the shared
executor; they never commit.
"""
