"""
Balance Reconciler

체크포인트 + 워터마크 이후 원장 증분 → 현재 잔액과 갱신된 체크포인트.

대사 비용은 체크포인트 이후 항목 수에 비례하며,
새 항목이 없으면 같은 잔액과 같은 체크포인트를 돌려준다 (멱등).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.domain.ledger import Checkpoint, Reconciliation

if TYPE_CHECKING:
    from core.ledger.store import LedgerStore
    from core.storage.checkpoint_store import CheckpointStore

logger = logging.getLogger(__name__)


class BalanceReconciler:
    """잔액 대사기

    저장소는 읽기만 한다. 새 체크포인트의 저장 여부/시점은 호출자가 결정.

    Args:
        ledger_store: 원장 저장소
        checkpoint_store: 체크포인트 저장소

    사용 예시:
    ```python
    async with db.transaction():
        result = await reconciler.reconcile("user1")
        if result.changed:
            await checkpoint_store.upsert(result.checkpoint)
    ```
    """

    def __init__(
        self,
        ledger_store: LedgerStore,
        checkpoint_store: CheckpointStore,
    ):
        self.ledger_store = ledger_store
        self.checkpoint_store = checkpoint_store

    async def reconcile(
        self,
        account_id: str,
        baseline: Checkpoint | None = None,
    ) -> Reconciliation:
        """계좌 잔액 대사

        Args:
            account_id: 계좌 ID
            baseline: 시작 체크포인트 (None이면 저장된 체크포인트,
                Checkpoint.zero()면 전체 원장 재집계)

        Returns:
            Reconciliation (잔액, 새 체크포인트, 이전 체크포인트)
        """
        if baseline is None:
            baseline = await self.checkpoint_store.read(account_id)
        elif baseline.account_id != account_id:
            raise ValueError(
                f"baseline 계좌 불일치: {baseline.account_id} != {account_id}"
            )

        delta = await self.ledger_store.scan_since(
            account_id,
            baseline.last_credit_sequence,
            baseline.last_debit_sequence,
        )

        checkpoint = baseline.advance(delta)

        if not delta.is_empty:
            logger.debug(
                "잔액 대사",
                extra={
                    "account_id": account_id,
                    "credit_sum": delta.credit_sum,
                    "debit_sum": delta.debit_sum,
                    "balance": checkpoint.cached_balance,
                    "watermark": checkpoint.watermark,
                },
            )

        return Reconciliation(
            balance=checkpoint.cached_balance,
            checkpoint=checkpoint,
            previous=baseline,
        )
