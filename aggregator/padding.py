"""
패딩 정책
==========

실제 청크 k개를 받아 길이 max_chunks의 슬롯 배열을 만든다.
빈 슬롯은 마지막 실제 청크의 post 상태에 고정된 패딩 청크로 채운다.

    [Real(c₀), ..., Real(c_{k-1}), Padding(p), ..., Padding(p)]
    p = {chain_id, prev = post = c_{k-1}.post, withdraw = c_{k-1}.withdraw, data_hash = 0}
"""

from aggregator.chunk import ChunkHash, ChunkSlot, SlotKind
from aggregator.errors import InvalidChunkCount


def pad(real_chunks, max_chunks):
    """실제 청크 리스트를 max_chunks 길이의 슬롯 튜플로 채운다.

    Raises:
        InvalidChunkCount: 청크가 없거나 max_chunks보다 많을 때
    """
    k = len(real_chunks)
    if k == 0 or k > max_chunks:
        raise InvalidChunkCount(k, max_chunks)

    slots = [ChunkSlot(SlotKind.REAL, chunk) for chunk in real_chunks]
    padding = ChunkHash.padded_chunk_hash(real_chunks[-1])
    slots.extend(ChunkSlot(SlotKind.PADDING, padding) for _ in range(max_chunks - k))
    return tuple(slots)
