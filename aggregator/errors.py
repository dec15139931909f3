"""
집계 오류 계층
===============

모든 오류는 ``AggregatorError(ValueError)`` 를 상속한다. 재시도는 없고,
오류는 발생 즉시 호출자에게 전달된다.

  ConstructionError     배치 구성 단계 (청크 수, 연결, 체인 ID)
  ConsistencyViolation  해시 체인 연결 규칙 위반 (규칙 번호, 청크 인덱스)
  AccumulationError     자식 증명 파싱 / 인스턴스 불일치
"""

from enum import IntEnum


class Rule(IntEnum):
    """해시 체인 연결 규칙 번호."""
    DIGEST_REUSE = 1
    ROOT_SHARING = 2
    DATA_HASH_LENGTH = 3
    CONTINUITY = 4
    CHAIN_ID = 5
    PADDING_SHAPE = 6
    PADDING_DATA = 7
    DATA_HASH_COMPOSITION = 8
    INSTANCE_BINDING = 9


class AggregatorError(ValueError):
    pass


# ─────────────────────────────────────────────────────────────────────
# 배치 구성
# ─────────────────────────────────────────────────────────────────────

class ConstructionError(AggregatorError):
    pass


class InvalidChunkCount(ConstructionError):
    def __init__(self, count, max_chunks):
        self.count = count
        self.max_chunks = max_chunks
        super().__init__(f"청크 수 {count}는 1 이상 {max_chunks} 이하여야 합니다")


class BrokenChunkLinkage(ConstructionError):
    def __init__(self, index):
        self.index = index
        super().__init__(
            f"청크 {index}의 prev_state_root가 청크 {index - 1}의 post_state_root와 다릅니다"
        )


class ChainIdMismatch(ConstructionError):
    def __init__(self, index, expected, found):
        self.index = index
        self.expected = expected
        self.found = found
        super().__init__(f"청크 {index}의 체인 ID {found} != {expected}")


# ─────────────────────────────────────────────────────────────────────
# 연결 규칙
# ─────────────────────────────────────────────────────────────────────

class ConsistencyViolation(AggregatorError):
    pass


class BatchConsistencyViolation(ConsistencyViolation):
    """규칙 위반. rule_id는 Rule, chunk_index는 해당 청크(없으면 None)."""

    def __init__(self, rule_id, chunk_index=None, detail=""):
        self.rule_id = Rule(rule_id)
        self.chunk_index = chunk_index
        self.detail = detail
        msg = f"규칙 {int(self.rule_id)} ({self.rule_id.name}) 위반"
        if chunk_index is not None:
            msg += f", 청크 {chunk_index}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class PreimageShapeError(ConsistencyViolation):
    """전상 개수나 폭이 배치 모양과 맞지 않는다. index는 해당 전상 (없으면 None)."""

    def __init__(self, index, detail):
        self.index = index
        self.detail = detail
        if index is None:
            super().__init__(f"전상 모양 오류: {detail}")
        else:
            super().__init__(f"전상 {index} 모양 오류: {detail}")


# ─────────────────────────────────────────────────────────────────────
# 누산
# ─────────────────────────────────────────────────────────────────────

class AccumulationError(AggregatorError):
    pass


class MalformedChildProof(AccumulationError):
    def __init__(self, child_index, reason):
        self.child_index = child_index
        self.reason = reason
        if child_index is None:
            super().__init__(f"자식 증명 형식 오류: {reason}")
        else:
            super().__init__(f"자식 증명 {child_index} 형식 오류: {reason}")


class InstanceMismatch(AccumulationError):
    def __init__(self, child_index):
        self.child_index = child_index
        super().__init__(
            f"자식 증명 {child_index}의 공개 입력 해시가 청크 해시와 일치하지 않습니다"
        )
