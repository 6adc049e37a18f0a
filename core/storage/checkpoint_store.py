"""
CheckpointStore - 계좌별 잔액 체크포인트 저장소

계좌별로 마지막 대사 잔액과 그 잔액이 반영한 원장 워터마크를 기억.
행이 없으면 잔액 0 / 워터마크 0 기준점을 반환.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from core.constants import Tables
from core.domain.ledger import Checkpoint

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


class CheckpointStore:
    """체크포인트 저장소

    upsert는 비교 없이 덮어쓴다. 워터마크 역행 방지는
    작업 단위의 잠금(BEGIN IMMEDIATE)이 보장한다.

    Args:
        db: SQLiteAdapter 인스턴스
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def read(self, account_id: str) -> Checkpoint:
        """체크포인트 조회

        Args:
            account_id: 계좌 ID

        Returns:
            Checkpoint (없으면 Checkpoint.zero)
        """
        row = await self.db.fetchone(
            f"""
            SELECT account_id, last_credit_sequence, last_debit_sequence, cached_balance
            FROM {Tables.ACCOUNT_CHECKPOINTS}
            WHERE account_id = ?
            """,
            (account_id,),
        )

        if row is None:
            return Checkpoint.zero(account_id)

        return self._row_to_checkpoint(row)

    async def upsert(self, checkpoint: Checkpoint) -> None:
        """체크포인트 저장 (없으면 생성, 있으면 덮어쓰기)

        Args:
            checkpoint: 저장할 체크포인트
        """
        now = datetime.now(timezone.utc).isoformat()

        await self.db.execute(
            f"""
            INSERT INTO {Tables.ACCOUNT_CHECKPOINTS} (
                account_id, last_credit_sequence, last_debit_sequence,
                cached_balance, updated_at
            ) VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(account_id) DO UPDATE SET
                last_credit_sequence = excluded.last_credit_sequence,
                last_debit_sequence = excluded.last_debit_sequence,
                cached_balance = excluded.cached_balance,
                updated_at = excluded.updated_at
            """,
            (
                checkpoint.account_id,
                checkpoint.last_credit_sequence,
                checkpoint.last_debit_sequence,
                checkpoint.cached_balance,
                now,
            ),
        )

        logger.debug(
            "체크포인트 저장",
            extra={
                "account_id": checkpoint.account_id,
                "watermark": checkpoint.watermark,
                "cached_balance": checkpoint.cached_balance,
            },
        )

    async def list_all(self) -> list[Checkpoint]:
        """전체 체크포인트 조회 (account_id 순)"""
        rows = await self.db.fetchall(
            f"""
            SELECT account_id, last_credit_sequence, last_debit_sequence, cached_balance
            FROM {Tables.ACCOUNT_CHECKPOINTS}
            ORDER BY account_id
            """
        )
        return [self._row_to_checkpoint(row) for row in rows]

    def _row_to_checkpoint(self, row: tuple[Any, ...]) -> Checkpoint:
        """DB 행 → Checkpoint 변환"""
        account_id, last_credit_seq, last_debit_seq, cached_balance = row

        return Checkpoint(
            account_id=account_id,
            last_credit_sequence=last_credit_seq,
            last_debit_sequence=last_debit_seq,
            cached_balance=cached_balance,
        )
