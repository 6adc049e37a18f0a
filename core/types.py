"""
타입 정의 모듈

Enum 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from enum import Enum


class ErrorKind(str, Enum):
    """오류 종류 (닫힌 집합)

    호출자는 메시지 문자열이 아닌 kind로 분기한다.
    """

    INVALID_AMOUNT = "INVALID_AMOUNT"  # 0 이하 금액
    SAME_ACCOUNT = "SAME_ACCOUNT"  # 자기 자신에게 이체
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"  # 잔액 부족 (업무 거절)
    CONFLICT = "CONFLICT"  # 직렬화 충돌 / 잠금 대기 초과 (재시도 가능)
    STORAGE_FAILURE = "STORAGE_FAILURE"  # 그 외 저장소 오류


class OperationType(str, Enum):
    """원장 연산 종류"""

    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    TRANSFER = "TRANSFER"
    BALANCE = "BALANCE"


class OperationStatus(str, Enum):
    """연산 결과 상태"""

    SUCCESS = "SUCCESS"
    REJECTED = "REJECTED"  # 업무 규칙 거절 (체크포인트 갱신은 커밋됨)


class TransactionMode(str, Enum):
    """SQLite 트랜잭션 시작 모드

    IMMEDIATE: BEGIN 시점에 쓰기 잠금(RESERVED) 획득
    DEFERRED: 첫 쓰기 시점까지 잠금 지연 (스냅샷 읽기 전용 용도)
    EXCLUSIVE: 읽기까지 배타
    """

    DEFERRED = "DEFERRED"
    IMMEDIATE = "IMMEDIATE"
    EXCLUSIVE = "EXCLUSIVE"
