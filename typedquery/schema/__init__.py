"""스키마 패키지 — 엔티티 디스크립터와 레지스트리.

Schema package — Entity descriptors and the registry that holds them.
"""
