"""
청크 해시 (ChunkHash)
======================

청크는 연속된 실행 블록들의 묶음이며, 네 개의 해시 커밋먼트와 체인 ID로 요약된다.

  - prev_state_root: 청크 이전 상태 루트
  - post_state_root: 청크 이후 상태 루트
  - withdraw_root: 청크의 출금 루트
  - data_hash: 청크 데이터 해시

**전상 (136바이트)**:
    chain_id (8, BE) ‖ prev ‖ post ‖ withdraw ‖ data_hash

**공개 입력 해시**: keccak256(전상)

**패딩 청크**: prev == post 이고 data_hash == 0 인 청크.
  배치의 빈 슬롯을 채우며, 마지막 실제 청크의 상태에 고정된다.

사용 예시:
    >>> c = ChunkHash(1, b"\\x00" * 32, b"\\x11" * 32, b"\\x22" * 32, b"\\x33" * 32)
    >>> len(c.to_bytes())  # 136
    >>> ChunkHash.padded_chunk_hash(c).is_padding()  # True
"""

from dataclasses import dataclass
from enum import Enum

from aggregator.constants import (
    CHAIN_ID_LEN, DIGEST_LEN, CHUNK_PREIMAGE_LEN,
    PREV_STATE_ROOT_INDEX, POST_STATE_ROOT_INDEX, WITHDRAW_ROOT_INDEX, DATA_HASH_INDEX,
)
from aggregator.keccak import keccak256

ZERO_HASH = b"\x00" * DIGEST_LEN


@dataclass(frozen=True)
class ChunkHash:
    chain_id: int
    prev_state_root: bytes
    post_state_root: bytes
    withdraw_root: bytes
    data_hash: bytes

    def __post_init__(self):
        if not 0 <= self.chain_id < 1 << (8 * CHAIN_ID_LEN):
            raise ValueError(f"체인 ID는 u64 범위여야 합니다: {self.chain_id}")
        for name in ("prev_state_root", "post_state_root", "withdraw_root", "data_hash"):
            value = getattr(self, name)
            if len(value) != DIGEST_LEN:
                raise ValueError(f"{name}은 {DIGEST_LEN}바이트여야 합니다: {len(value)}")
            object.__setattr__(self, name, bytes(value))

    @classmethod
    def from_bytes(cls, data):
        """136바이트 전상 인코딩으로부터 청크를 복원한다."""
        if len(data) != CHUNK_PREIMAGE_LEN:
            raise ValueError(f"청크 인코딩은 {CHUNK_PREIMAGE_LEN}바이트여야 합니다: {len(data)}")
        return cls(
            int.from_bytes(data[:CHAIN_ID_LEN], "big"),
            data[PREV_STATE_ROOT_INDEX:POST_STATE_ROOT_INDEX],
            data[POST_STATE_ROOT_INDEX:WITHDRAW_ROOT_INDEX],
            data[WITHDRAW_ROOT_INDEX:DATA_HASH_INDEX],
            data[DATA_HASH_INDEX:CHUNK_PREIMAGE_LEN],
        )

    def to_bytes(self):
        return (
            self.chain_id.to_bytes(CHAIN_ID_LEN, "big")
            + self.prev_state_root
            + self.post_state_root
            + self.withdraw_root
            + self.data_hash
        )

    def public_input_hash(self):
        return keccak256(self.to_bytes())

    def is_padding(self):
        return self.prev_state_root == self.post_state_root and self.data_hash == ZERO_HASH

    @classmethod
    def padded_chunk_hash(cls, previous):
        """previous 바로 뒤에 이어지는 패딩 청크."""
        return cls(
            previous.chain_id,
            previous.post_state_root,
            previous.post_state_root,
            previous.withdraw_root,
            ZERO_HASH,
        )

    @classmethod
    def random(cls, rng, chain_id=0):
        """테스트용 무작위 청크. rng는 random.Random 인스턴스."""
        return cls(
            chain_id,
            rng.randbytes(DIGEST_LEN),
            rng.randbytes(DIGEST_LEN),
            rng.randbytes(DIGEST_LEN),
            rng.randbytes(DIGEST_LEN),
        )


class SlotKind(Enum):
    REAL = "real"
    PADDING = "padding"


@dataclass(frozen=True)
class ChunkSlot:
    """배치의 고정 길이 슬롯 하나: 실제 청크 또는 패딩 청크."""
    kind: SlotKind
    chunk: ChunkHash

    @property
    def is_real(self):
        return self.kind is SlotKind.REAL
