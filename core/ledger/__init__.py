"""
잔액 원장 시스템

append-only 원장 + 계좌별 체크포인트로 잔액을 증분 대사.

사용 예시:
```python
from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.ledger import LedgerOperations

async with SQLiteAdapter(db_path) as db:
    await init_schema(db)
    ops = LedgerOperations(db)

    await ops.deposit("user1", 40)
    await ops.transfer("user1", "user2", 30)

    # 잔액 조회 (체크포인트 전진)
    balance = await ops.get_balance("user1")
```
"""

from core.ledger.operations import LedgerOperations
from core.ledger.reconciler import BalanceReconciler
from core.ledger.store import InvalidEntryError, LedgerStore

__all__ = [
    # 핵심 클래스
    "LedgerOperations",
    "BalanceReconciler",
    "LedgerStore",
    # 예외
    "InvalidEntryError",
]
