"""
배치 해시 (BatchHash)
======================

실제 청크 k개(1 ≤ k ≤ max_chunks)를 검증하고 패딩하여 고정 길이 배치를 만든다.
생성 후에는 변경하지 않으며, 이후 단계(연결기, 집계 회로)는 이 불변식을 신뢰한다.

  data_hash = keccak256(c₀.data_hash ‖ ... ‖ c_{k-1}.data_hash)   (실제 청크만)

  public_input_hash = keccak256(chain_id ‖ c₀.prev ‖ c_{k-1}.post
                                ‖ c_{k-1}.withdraw ‖ data_hash)

**전상 목록 (길이 max_chunks + 2)**:
  [0] 배치 공개 입력 해시 전상 (136바이트)
  [1] 배치 데이터 해시 전상 (32·max_chunks바이트, 패딩 슬롯의 0 포함)
  [2..] 슬롯별 청크 전상 (136바이트)

사용 예시:
    >>> batch = BatchHash.construct([chunk_a, chunk_b], AggregatorConfig(max_chunks=4))
    >>> batch.number_of_valid_chunks  # 2
    >>> len(batch.extract_hash_preimages())  # 6
"""

import logging
from dataclasses import dataclass

from aggregator.config import DEFAULT_CONFIG
from aggregator.constants import CHAIN_ID_LEN, DIGEST_LEN
from aggregator.errors import BrokenChunkLinkage, ChainIdMismatch, InvalidChunkCount
from aggregator.field import FR
from aggregator.keccak import keccak256
from aggregator.padding import pad

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchPublicInput:
    """배치 해시 회로의 원시 공개 입력 (필드 원소로 바꾸기 전)."""
    chain_id: int
    first_chunk_prev_state_root: bytes
    last_chunk_post_state_root: bytes
    last_chunk_withdraw_root: bytes
    batch_public_input_hash: bytes


class BatchHash:
    """고정 용량 청크 배열과 배치 수준 해시.

    속성:
        slots: ChunkSlot 튜플 (길이 max_chunks)
        chain_id: 모든 청크가 공유하는 체인 ID
        number_of_valid_chunks: 실제 청크 수 k
        data_hash: 배치 데이터 해시 (32바이트)
        public_input_hash: 배치 공개 입력 해시 (32바이트)
    """

    def __init__(self, slots, number_of_valid_chunks, data_hash, public_input_hash, config):
        self.slots = slots
        self.number_of_valid_chunks = number_of_valid_chunks
        self.data_hash = data_hash
        self.public_input_hash = public_input_hash
        self.config = config
        self.chain_id = slots[0].chunk.chain_id

    @classmethod
    def construct(cls, chunks, config=DEFAULT_CONFIG):
        """실제 청크 리스트로부터 배치를 만든다.

        Raises:
            InvalidChunkCount: 청크 수가 [1, max_chunks] 밖일 때
            ChainIdMismatch: 체인 ID가 청크마다 다를 때
            BrokenChunkLinkage: chunks[i+1].prev != chunks[i].post 일 때
        """
        chunks = list(chunks)
        if not chunks or len(chunks) > config.max_chunks:
            raise InvalidChunkCount(len(chunks), config.max_chunks)

        chain_id = chunks[0].chain_id
        for i, chunk in enumerate(chunks):
            if chunk.chain_id != chain_id:
                raise ChainIdMismatch(i, chain_id, chunk.chain_id)
        for i in range(len(chunks) - 1):
            if chunks[i + 1].prev_state_root != chunks[i].post_state_root:
                raise BrokenChunkLinkage(i + 1)

        slots = pad(chunks, config.max_chunks)
        data_hash = keccak256(b"".join(c.data_hash for c in chunks))
        last = chunks[-1]
        preimage = cls._public_input_preimage(chain_id, chunks[0], last, data_hash)
        public_input_hash = keccak256(preimage)

        logger.info(
            "constructed batch: %d valid chunks of %d, chain %d",
            len(chunks), config.max_chunks, chain_id,
        )
        return cls(slots, len(chunks), data_hash, public_input_hash, config)

    @staticmethod
    def _public_input_preimage(chain_id, first, last, data_hash):
        return (
            chain_id.to_bytes(CHAIN_ID_LEN, "big")
            + first.prev_state_root
            + last.post_state_root
            + last.withdraw_root
            + data_hash
        )

    @property
    def chunks_with_padding(self):
        return [slot.chunk for slot in self.slots]

    @property
    def real_chunks(self):
        return [slot.chunk for slot in self.slots if slot.is_real]

    @property
    def data_hash_length(self):
        """배치 데이터 해시 전상 중 의미 있는 앞부분 길이: 32·k."""
        return DIGEST_LEN * self.number_of_valid_chunks

    def extract_hash_preimages(self):
        """해시 블랙박스와 연결기가 공유하는 고정 순서 전상 목록 (길이 max_chunks + 2)."""
        chunks = self.chunks_with_padding
        last = chunks[self.number_of_valid_chunks - 1]
        preimages = [
            self._public_input_preimage(self.chain_id, chunks[0], last, self.data_hash),
            b"".join(c.data_hash for c in chunks),
        ]
        preimages.extend(c.to_bytes() for c in chunks)
        return preimages

    def hash_lengths(self):
        """전상마다 실제로 해싱되는 길이. 데이터 해시 전상만 32·k로 잘린다."""
        lengths = [len(p) for p in self.extract_hash_preimages()]
        lengths[1] = self.data_hash_length
        return lengths

    def instances_exclude_acc(self):
        """공개 입력 해시 32바이트를 바이트 하나당 FR 원소 하나로."""
        return [FR(b) for b in self.public_input_hash]

    def public_input(self):
        chunks = self.real_chunks
        return BatchPublicInput(
            self.chain_id,
            chunks[0].prev_state_root,
            chunks[-1].post_state_root,
            chunks[-1].withdraw_root,
            self.public_input_hash,
        )


def public_input(batch):
    return batch.public_input()
