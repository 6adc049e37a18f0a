"""
데이터베이스 어댑터

SQLite WAL 모드 연결 및 트랜잭션(작업 단위) 관리.
"""

from adapters.db.sqlite_adapter import (
    SQLiteAdapter,
    create_connection,
    init_schema,
    translate_error,
)

__all__ = [
    "SQLiteAdapter",
    "create_connection",
    "init_schema",
    "translate_error",
]
