"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
여러 프로세스가 같은 DB 파일에 동시에 접근 가능하도록 설정.

트랜잭션은 autocommit 연결 위에서 어댑터가 직접 BEGIN/COMMIT/ROLLBACK을 발행.
BEGIN IMMEDIATE는 시작 시점에 DB 전체 쓰기 잠금(RESERVED)을 잡으므로
잠금을 보유한 작업 단위 동안 다른 쓰기 작업 단위는 대기(busy_timeout)한다.
"""

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from core.constants import Defaults, Tables
from core.errors import ConflictError, StorageError
from core.types import TransactionMode

logger = logging.getLogger(__name__)

# 잠금 경합으로 분류되는 SQLite 오류 (재시도 가능)
_BUSY_ERROR_NAMES = frozenset({"SQLITE_BUSY", "SQLITE_LOCKED", "SQLITE_BUSY_SNAPSHOT"})
_BUSY_MESSAGES = ("database is locked", "database table is locked", "database is busy")


def translate_error(error: sqlite3.Error, context: str) -> StorageError:
    """sqlite3 예외 → StorageError / ConflictError 변환

    Args:
        error: 원본 sqlite3 예외
        context: 실패한 작업 설명 (로그/메시지용)

    Returns:
        잠금 경합이면 ConflictError, 그 외 StorageError
    """
    error_name = getattr(error, "sqlite_errorname", "") or ""
    message = str(error).lower()

    if error_name in _BUSY_ERROR_NAMES or any(m in message for m in _BUSY_MESSAGES):
        return ConflictError(f"{context}: {error}")
    return StorageError(f"{context}: {error}")


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
) -> aiosqlite.Connection:
    """SQLite 연결 생성 (WAL 모드, autocommit)

    Args:
        db_path: DB 파일 경로 (":memory:" 허용)
        readonly: 읽기 전용 여부
        busy_timeout_ms: 잠금 대기 한도 (ms)

    Returns:
        aiosqlite 연결 객체

    Raises:
        StorageError: 연결 실패
    """
    db_path_str = str(db_path)
    in_memory = db_path_str == ":memory:"

    # 디렉토리가 없으면 생성
    if not in_memory:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    try:
        if readonly and not in_memory:
            conn = await aiosqlite.connect(
                f"file:{db_path_str}?mode=ro", uri=True, isolation_level=None
            )
        else:
            conn = await aiosqlite.connect(db_path_str, isolation_level=None)

        # WAL 모드 설정 (읽기 전용 연결은 journal_mode 변경 불가)
        if not readonly:
            await conn.execute("PRAGMA journal_mode=WAL")

        # 동시 접근 설정
        await conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")

        # 외래 키 제약 활성화
        await conn.execute("PRAGMA foreign_keys=ON")
    except sqlite3.Error as e:
        raise translate_error(e, f"DB 연결 실패 ({db_path_str})") from e

    logger.info(
        "SQLite 연결 생성",
        extra={"db_path": db_path_str, "readonly": readonly},
    )

    return conn


class SQLiteAdapter:
    """SQLite 어댑터

    WAL 모드로 SQLite 연결 관리.
    트랜잭션 컨텍스트 매니저 제공.

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부
        busy_timeout_ms: 잠금 대기 한도 (ms)

    사용 예시:
    ```python
    async with SQLiteAdapter(db_path) as db:
        async with db.transaction():
            await db.execute("INSERT INTO ...")
    ```
    """

    def __init__(
        self,
        db_path: Path | str,
        readonly: bool = False,
        busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
    ):
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self.readonly = readonly
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: aiosqlite.Connection | None = None
        # 같은 연결 위에서는 작업 단위를 하나씩만 실행
        self._tx_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        """트랜잭션 진행 여부"""
        return self._conn is not None and self._conn.in_transaction

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return

        self._conn = await create_connection(
            self.db_path, self.readonly, self.busy_timeout_ms
        )

    async def close(self) -> None:
        """연결 종료"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite 연결 종료")

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Not connected to database")
        return self._conn

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행

        Raises:
            ConflictError: 잠금 경합
            StorageError: 그 외 SQLite 오류
        """
        conn = self._require_conn()

        try:
            if parameters:
                return await conn.execute(sql, parameters)
            return await conn.execute(sql)
        except sqlite3.Error as e:
            raise translate_error(e, "SQL 실행 실패") from e
        except OverflowError as e:
            # INTEGER(int64) 범위를 넘는 파라미터
            raise StorageError(f"SQL 실행 실패: {e}") from e

    async def executemany(
        self,
        sql: str,
        parameters: list[tuple[Any, ...]],
    ) -> aiosqlite.Cursor:
        """SQL 다중 실행"""
        conn = self._require_conn()

        try:
            return await conn.executemany(sql, parameters)
        except sqlite3.Error as e:
            raise translate_error(e, "SQL 다중 실행 실패") from e
        except OverflowError as e:
            raise StorageError(f"SQL 다중 실행 실패: {e}") from e

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        """단일 행 조회"""
        cursor = await self.execute(sql, parameters)
        try:
            return await cursor.fetchone()
        except sqlite3.Error as e:
            raise translate_error(e, "행 조회 실패") from e

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        """전체 행 조회"""
        cursor = await self.execute(sql, parameters)
        try:
            return list(await cursor.fetchall())
        except sqlite3.Error as e:
            raise translate_error(e, "행 조회 실패") from e

    @asynccontextmanager
    async def transaction(
        self,
        mode: TransactionMode = TransactionMode.IMMEDIATE,
    ) -> AsyncIterator[aiosqlite.Connection]:
        """트랜잭션 컨텍스트 매니저 (작업 단위)

        성공 시 자동 커밋. 예외, 취소(CancelledError), 커밋 실패 등
        정상 종료 외 모든 경로에서 자동 롤백 후 예외 재전파.

        사용 예시:
        ```python
        async with adapter.transaction():
            await adapter.execute("INSERT INTO ...")
            # 성공 시 자동 커밋
        ```

        Raises:
            ConflictError: BEGIN/COMMIT 시 잠금 대기 초과
            StorageError: 그 외 SQLite 오류
        """
        conn = self._require_conn()

        async with self._tx_lock:
            # 취소되어도 워커 스레드의 BEGIN/COMMIT은 계속 실행됨 (완료 대기 후 롤백)
            statement: asyncio.Future | None = None
            try:
                statement = asyncio.ensure_future(
                    self.execute(f"BEGIN {TransactionMode(mode).value}")
                )
                await asyncio.shield(statement)
                yield conn
                statement = asyncio.ensure_future(self.execute("COMMIT"))
                await asyncio.shield(statement)
            except BaseException:
                if statement is not None and not statement.done():
                    await asyncio.wait([statement])
                await asyncio.shield(self._rollback())
                raise

    async def _rollback(self) -> None:
        """열린 트랜잭션 롤백

        롤백 실패는 기록만 하고 원래 예외가 전파되도록 둔다.
        """
        if self._conn is None or not self._conn.in_transaction:
            return

        try:
            await self._conn.execute("ROLLBACK")
            logger.debug("트랜잭션 롤백")
        except sqlite3.Error as e:
            logger.error("트랜잭션 롤백 실패", extra={"error": str(e)})

    async def table_exists(self, table_name: str) -> bool:
        """테이블 존재 여부 확인"""
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None

    async def get_table_info(self, table_name: str) -> list[dict[str, Any]]:
        """테이블 정보 조회"""
        rows = await self.fetchall(f"PRAGMA table_info({table_name})")

        columns = []
        for row in rows:
            columns.append({
                "cid": row[0],
                "name": row[1],
                "type": row[2],
                "notnull": bool(row[3]),
                "default_value": row[4],
                "pk": bool(row[5]),
            })

        return columns

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


async def init_schema(adapter: SQLiteAdapter) -> None:
    """스키마 초기화 (테이블 생성)

    여러 번 호출해도 안전 (IF NOT EXISTS).

    Args:
        adapter: 연결된 SQLiteAdapter
    """
    async with adapter.transaction():
        # ledger_entries (append-only 원장)
        # sequence: AUTOINCREMENT라 삭제된 값도 재사용되지 않음
        await adapter.execute(f"""
            CREATE TABLE IF NOT EXISTS {Tables.LEDGER_ENTRIES} (
                sequence         INTEGER PRIMARY KEY AUTOINCREMENT,
                id               TEXT NOT NULL UNIQUE,
                from_account     TEXT,
                to_account       TEXT,
                amount           INTEGER NOT NULL CHECK (amount > 0),
                created_at       TEXT NOT NULL,

                CHECK (from_account IS NOT NULL OR to_account IS NOT NULL),
                CHECK (from_account IS NULL OR to_account IS NULL
                       OR from_account <> to_account)
            )
        """)

        # account_checkpoints (계좌별 잔액 체크포인트)
        await adapter.execute(f"""
            CREATE TABLE IF NOT EXISTS {Tables.ACCOUNT_CHECKPOINTS} (
                account_id            TEXT PRIMARY KEY,
                last_credit_sequence  INTEGER NOT NULL DEFAULT 0,
                last_debit_sequence   INTEGER NOT NULL DEFAULT 0,
                cached_balance        INTEGER NOT NULL DEFAULT 0,
                updated_at            TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)

        # 계좌별 증분 스캔 인덱스
        await adapter.execute(f"""
            CREATE INDEX IF NOT EXISTS ix_ledger_entries_to_account
            ON {Tables.LEDGER_ENTRIES}(to_account, sequence)
        """)

        await adapter.execute(f"""
            CREATE INDEX IF NOT EXISTS ix_ledger_entries_from_account
            ON {Tables.LEDGER_ENTRIES}(from_account, sequence)
        """)

        # 원장 불변성: UPDATE/DELETE 금지
        await adapter.execute(f"""
            CREATE TRIGGER IF NOT EXISTS tr_ledger_entries_no_update
            BEFORE UPDATE ON {Tables.LEDGER_ENTRIES}
            BEGIN
                SELECT RAISE(ABORT, 'ledger_entries is append-only');
            END
        """)

        await adapter.execute(f"""
            CREATE TRIGGER IF NOT EXISTS tr_ledger_entries_no_delete
            BEFORE DELETE ON {Tables.LEDGER_ENTRIES}
            BEGIN
                SELECT RAISE(ABORT, 'ledger_entries is append-only');
            END
        """)

    logger.info("스키마 초기화 완료")
