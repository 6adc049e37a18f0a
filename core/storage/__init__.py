"""
스토리지 모듈

계좌별 잔액 체크포인트 저장소
"""

from core.storage.checkpoint_store import CheckpointStore

__all__ = [
    "CheckpointStore",
]
